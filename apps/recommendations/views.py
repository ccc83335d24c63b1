import json
import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status
from rest_framework.exceptions import ValidationError
from rest_framework.views import APIView

from apps.common.responses import error_response, success_response
from apps.common.utils import parse_bool_param, parse_csv_param
from apps.core.middleware import resolve_organization
from apps.users.permissions import IsAdmin, IsOrganizationMember, is_admin_user

from .conf import get_setting
from .models import RecommendationModel, RecommendationType
from .serializers import (
    CareerPathSerializer,
    ContentFeaturesSerializer,
    ContentSimilaritySerializer,
    FeedbackSerializer,
    InteractionCreateSerializer,
    InterestsSerializer,
    ProfileUpdateSerializer,
    RecommendationModelSerializer,
    UserLearningProfileSerializer,
    UserRecommendationSerializer,
    UserSimilaritySerializer,
)
from .services import (
    ContentAnalysisService,
    InteractionService,
    ModelService,
    ProfileService,
    RecommendationAnalyticsService,
    RecommendationService,
)
from .strategies import RecommendationFilters, RecommendationRequest

logger = logging.getLogger(__name__)

TAGS = ["AI Recommendations"]
MAX_LIMIT = 50


def int_param(request, name, default, minimum=1, maximum=MAX_LIMIT):
    """Integer query parameter clamped to [minimum, maximum]."""
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({name: f"'{raw}' is not a valid integer."})
    return max(minimum, min(value, maximum))


def float_param(request, name, default, minimum=0.0, maximum=1.0):
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError({name: f"'{raw}' is not a valid number."})
    return max(minimum, min(value, maximum))


def request_meta(request) -> dict:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    return {
        "ip_address": forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR"),
        "user_agent": request.META.get("HTTP_USER_AGENT", ""),
    }


def candidates_payload(candidates) -> list[dict]:
    return [candidate.to_dict() for candidate in candidates]


class OrganizationAPIView(APIView):
    """APIView whose requests act on the caller's organization."""

    permission_classes = [permissions.IsAuthenticated, IsOrganizationMember]

    def get_organization(self):
        return resolve_organization(self.request)


@extend_schema(
    tags=TAGS,
    summary="Personalized recommendations from the strategy ensemble",
    parameters=[
        OpenApiParameter("limit", int, description="Maximum recommendations (default 10)"),
        OpenApiParameter("diversity_level", float, description="0..1, default 0.3"),
        OpenApiParameter("content_types", str, description="Comma separated content types"),
        OpenApiParameter("difficulty_levels", str, description="Comma separated difficulty levels"),
        OpenApiParameter("max_duration", int, description="Maximum duration in minutes"),
        OpenApiParameter("exclude_completed", bool),
        OpenApiParameter("context", str, description="JSON encoded request context"),
    ],
    responses={200: OpenApiTypes.OBJECT},
)
class PersonalizedRecommendationsView(OrganizationAPIView):
    def get(self, request):
        try:
            context = json.loads(request.query_params.get("context") or "{}")
        except ValueError:
            return error_response("Invalid JSON in 'context' parameter.")
        if not isinstance(context, dict):
            return error_response("'context' must be a JSON object.")

        max_duration = request.query_params.get("max_duration")
        recommendation_request = RecommendationRequest(
            user_id=request.user.id,
            tenant_id=self.get_organization().id,
            context=context,
            filters=RecommendationFilters(
                content_types=parse_csv_param(request.query_params.get("content_types")),
                difficulty_levels=parse_csv_param(request.query_params.get("difficulty_levels")),
                max_duration=int_param(request, "max_duration", None, maximum=10_000) if max_duration else None,
                exclude_completed=parse_bool_param(request.query_params.get("exclude_completed")),
            ),
            max_recommendations=int_param(request, "limit", get_setting("DEFAULT_LIMIT")),
            diversity_level=float_param(request, "diversity_level", 0.3),
        )

        try:
            result = RecommendationService().get_personalized_recommendations(recommendation_request)
        except Exception as e:
            logger.error(f"Personalized recommendations failed for user {request.user.id}: {e}", exc_info=True)
            return error_response(
                "Failed to generate recommendations.", status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return success_response(
            {
                "recommendations": UserRecommendationSerializer(result["recommendations"], many=True).data,
                "metadata": result["metadata"],
            }
        )


class StrategyRecommendationsView(OrganizationAPIView):
    """Runs a single strategy without persisting its candidates."""

    model_type = None
    default_limit = 10

    def get_context(self, request) -> dict:
        return {}

    def get(self, request):
        limit = int_param(request, "limit", self.default_limit)
        try:
            candidates = RecommendationService().run_strategy(
                self.model_type,
                request.user.id,
                self.get_organization().id,
                context=self.get_context(request),
                limit=limit,
            )
        except Exception as e:
            logger.error(f"{self.model_type} recommendations failed for user {request.user.id}: {e}", exc_info=True)
            return error_response(
                "Failed to generate recommendations.", status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        return success_response(
            {"recommendations": candidates_payload(candidates), "algorithm_used": self.model_type}
        )


@extend_schema(tags=TAGS, summary="Content-based recommendations", responses={200: OpenApiTypes.OBJECT})
class ContentBasedRecommendationsView(StrategyRecommendationsView):
    model_type = RecommendationType.CONTENT_BASED.value


@extend_schema(tags=TAGS, summary="Collaborative recommendations", responses={200: OpenApiTypes.OBJECT})
class CollaborativeRecommendationsView(StrategyRecommendationsView):
    model_type = RecommendationType.COLLABORATIVE.value
    default_limit = 20


@extend_schema(tags=TAGS, summary="Trending courses in the organization", responses={200: OpenApiTypes.OBJECT})
class TrendingRecommendationsView(StrategyRecommendationsView):
    model_type = RecommendationType.TRENDING.value
    default_limit = 20


@extend_schema(
    tags=TAGS,
    summary="Recommendations for the content or course being viewed",
    parameters=[
        OpenApiParameter("current_content", str),
        OpenApiParameter("current_course", str),
        OpenApiParameter("platform", str, description="e.g. web, mobile"),
    ],
    responses={200: OpenApiTypes.OBJECT},
)
class ContextualRecommendationsView(StrategyRecommendationsView):
    model_type = RecommendationType.CONTEXTUAL.value
    default_limit = 15

    def get_context(self, request):
        return {
            key: request.query_params[key]
            for key in ("current_content", "current_course", "platform")
            if request.query_params.get(key)
        }


@extend_schema(
    tags=TAGS,
    summary="Matrix factorization recommendations",
    parameters=[OpenApiParameter("limit", int), OpenApiParameter("factors", int)],
    responses={200: OpenApiTypes.OBJECT},
)
class MatrixFactorizationRecommendationsView(OrganizationAPIView):
    def get(self, request):
        limit = int_param(request, "limit", 20)
        n_factors = int_param(request, "factors", 50, maximum=500)
        try:
            candidates = RecommendationService().matrix_factorization(
                request.user.id, self.get_organization().id, limit=limit, n_factors=n_factors
            )
        except Exception as e:
            logger.error(f"Matrix factorization failed for user {request.user.id}: {e}", exc_info=True)
            return error_response(
                "Failed to generate recommendations.", status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        return success_response(
            {"recommendations": candidates_payload(candidates), "algorithm_used": "matrix_factorization"}
        )


@extend_schema(tags=TAGS, summary="Learning profile analysis (GET) or update (PUT)", responses={200: OpenApiTypes.OBJECT})
class LearningProfileView(OrganizationAPIView):
    def get(self, request):
        service = ProfileService()
        profile = service.get_or_create(request.user.id, self.get_organization().id)
        return success_response(service.analyze(profile))

    @extend_schema(request=ProfileUpdateSerializer)
    def put(self, request):
        serializer = ProfileUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        profile = ProfileService().update(
            request.user.id, self.get_organization().id, serializer.validated_data
        )
        return success_response(
            UserLearningProfileSerializer(profile).data, message="Profile updated successfully."
        )


@extend_schema(tags=TAGS, summary="Add interests to the learning profile", request=InterestsSerializer)
class ProfileInterestsView(OrganizationAPIView):
    def post(self, request):
        serializer = InterestsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = ProfileService().add_interests(
            request.user.id, self.get_organization().id, serializer.validated_data
        )
        return success_response(
            UserLearningProfileSerializer(profile).data, message="Interests updated successfully."
        )


@extend_schema(tags=TAGS, summary="Set the learner's career path", request=CareerPathSerializer)
class CareerPathView(OrganizationAPIView):
    def put(self, request):
        serializer = CareerPathSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = ProfileService().update_career_path(
            request.user.id, self.get_organization().id, serializer.validated_data
        )
        return success_response(
            UserLearningProfileSerializer(profile).data, message="Career path updated successfully."
        )


@extend_schema(tags=TAGS, summary="Record an interaction with a recommendation", request=InteractionCreateSerializer)
class InteractionView(OrganizationAPIView):
    def post(self, request):
        serializer = InteractionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        interaction = InteractionService().record(
            request.user.id,
            data["recommendation_id"],
            data["interaction_type"],
            data.get("interaction_data"),
            session_id=data.get("session_id"),
            **request_meta(request),
        )
        return success_response(
            {"interaction_id": str(interaction.id), "interaction_type": interaction.interaction_type},
            message="Interaction recorded successfully.",
            status_code=status.HTTP_201_CREATED,
        )


@extend_schema(tags=TAGS, summary="Rate a recommendation", request=FeedbackSerializer)
class FeedbackView(OrganizationAPIView):
    def post(self, request):
        serializer = FeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        feedback = dict(serializer.validated_data)
        recommendation_id = feedback.pop("recommendation_id")
        InteractionService().record_feedback(
            request.user.id, recommendation_id, feedback, **request_meta(request)
        )
        return success_response(message="Feedback recorded successfully.")


@extend_schema(tags=TAGS, summary="Extract features for a content item", responses={200: ContentFeaturesSerializer})
class ContentAnalysisView(OrganizationAPIView):
    def post(self, request, content_id):
        features = ContentAnalysisService().analyze(content_id, self.get_organization().id)
        return success_response(
            ContentFeaturesSerializer(features).data, message="Content analyzed successfully."
        )


@extend_schema(
    tags=TAGS,
    summary="Content most similar to a content item",
    parameters=[OpenApiParameter("limit", int)],
    responses={200: ContentSimilaritySerializer(many=True)},
)
class SimilarContentView(OrganizationAPIView):
    def get(self, request, content_id):
        limit = int_param(request, "limit", 10)
        rows = ContentAnalysisService().similar_content(content_id, self.get_organization().id, limit)
        return success_response(ContentSimilaritySerializer(rows, many=True).data)


@extend_schema(tags=TAGS, summary="Skills and topics taught by a content item", responses={200: OpenApiTypes.OBJECT})
class SkillExtractionView(OrganizationAPIView):
    def get(self, request, content_id):
        service = ContentAnalysisService()
        features = service.stores.features.get(content_id)
        if features is None or features.tenant_id != self.get_organization().id:
            features = service.analyze(content_id, self.get_organization().id)
        return success_response(
            {
                "content_id": str(content_id),
                "skills": features.skills,
                "topics": features.topics,
                "difficulty_level": features.difficulty_level,
                "prerequisites": features.prerequisites,
                "learning_objectives": features.learning_objectives,
            }
        )


@extend_schema(tags=TAGS, summary="List (GET) or create (POST, admin) recommendation models")
class RecommendationModelListView(OrganizationAPIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsOrganizationMember(), IsAdmin()]
        return super().get_permissions()

    @extend_schema(responses={200: RecommendationModelSerializer(many=True)})
    def get(self, request):
        models = RecommendationModel.objects.filter(tenant=self.get_organization()).order_by("name")
        return success_response(RecommendationModelSerializer(models, many=True).data)

    @extend_schema(request=RecommendationModelSerializer, responses={201: RecommendationModelSerializer})
    def post(self, request):
        serializer = RecommendationModelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        organization = self.get_organization()
        data = serializer.validated_data
        if RecommendationModel.objects.filter(tenant=organization, name=data["name"]).exists():
            return error_response(
                "A model with this name already exists.", status.HTTP_400_BAD_REQUEST
            )
        model = ModelService.create_model(
            organization,
            data["name"],
            data["model_type"],
            description=data.get("description", ""),
            configuration=data.get("configuration"),
        )
        return success_response(
            RecommendationModelSerializer(model).data,
            message="Model created successfully.",
            status_code=status.HTTP_201_CREATED,
        )


@extend_schema(tags=TAGS, summary="Activate or deactivate a recommendation model", request=None)
class RecommendationModelActivationView(OrganizationAPIView):
    permission_classes = [permissions.IsAuthenticated, IsOrganizationMember, IsAdmin]
    is_active = True

    def post(self, request, model_id):
        model = get_object_or_404(RecommendationModel, pk=model_id, tenant=self.get_organization())
        ModelService.set_active(model, self.is_active)
        state = "activated" if self.is_active else "deactivated"
        logger.info(f"Recommendation model {model.name} {state} by {request.user.email}")
        return success_response(
            RecommendationModelSerializer(model).data, message=f"Model {state} successfully."
        )


@extend_schema(
    tags=TAGS,
    summary="Recommendation performance for the organization",
    parameters=[OpenApiParameter("period", str, description="e.g. 7d, 30d (default 30d)")],
    responses={200: OpenApiTypes.OBJECT},
)
class RecommendationAnalyticsView(OrganizationAPIView):
    def get(self, request):
        period = (request.query_params.get("period") or "30d").strip().lower().rstrip("d")
        try:
            period_days = max(1, min(int(period), 365))
        except ValueError:
            return error_response("Invalid period, expected a value like '30d'.")
        summary = RecommendationAnalyticsService.summary(self.get_organization().id, period_days)
        return success_response(summary)


@extend_schema(tags=TAGS, summary="A stored recommendation of the current user", responses={200: UserRecommendationSerializer})
class RecommendationDetailView(OrganizationAPIView):
    def get(self, request, recommendation_id):
        recommendation = RecommendationService().get_recommendation(recommendation_id, request.user.id)
        return success_response(UserRecommendationSerializer(recommendation).data)


@extend_schema(
    tags=TAGS,
    summary="Learners most similar to a learner",
    parameters=[OpenApiParameter("limit", int)],
    responses={200: UserSimilaritySerializer(many=True)},
)
class UserSimilaritiesView(OrganizationAPIView):
    def get(self, request, user_id):
        if user_id != request.user.id and not is_admin_user(request.user):
            return error_response(
                "You can only view your own similarities.", status.HTTP_403_FORBIDDEN
            )
        organization = self.get_organization()
        get_object_or_404(get_user_model(), pk=user_id, tenant=organization)
        limit = int_param(request, "limit", 20)
        rows = ContentAnalysisService().similar_users(user_id, organization.id, limit)
        return success_response(UserSimilaritySerializer(rows, many=True).data)


@extend_schema(tags=TAGS, summary="Queue similarity recomputation (admin)", request=None, responses={202: OpenApiTypes.OBJECT})
class RefreshSimilaritiesView(OrganizationAPIView):
    permission_classes = [permissions.IsAuthenticated, IsOrganizationMember, IsAdmin]

    def post(self, request):
        from .tasks import recompute_content_similarities_task, recompute_user_similarities_task

        organization = self.get_organization()
        recompute_content_similarities_task.delay()
        recompute_user_similarities_task.delay(str(organization.id))
        logger.info(f"Similarity refresh queued for tenant {organization.id} by {request.user.email}")
        return success_response(
            message="Similarity refresh queued.", status_code=status.HTTP_202_ACCEPTED
        )


@extend_schema(tags=TAGS, summary="Service health", responses={200: OpenApiTypes.OBJECT})
class HealthView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request):
        return success_response(
            {
                "status": "healthy",
                "service": "ai-recommendations",
                "timestamp": timezone.now().isoformat(),
            }
        )
