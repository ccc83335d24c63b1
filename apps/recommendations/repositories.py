"""
ORM-backed stores handed to the strategies, the combiner and the services.

Strategies never query models directly; they receive a ``RecommendationStores``
bundle in their constructor, which keeps them testable with fakes and keeps
database access in one place.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field

import numpy as np
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from .models import (
    ContentFeatures,
    ContentSimilarity,
    RecommendationInteraction,
    RecommendationModel,
    RecommendationStatus,
    UserLearningProfile,
    UserRecommendation,
    UserSimilarity,
)

logger = logging.getLogger(__name__)


class ProfileStore:
    def get(self, user_id, tenant_id):
        return (
            UserLearningProfile.objects.filter(user_id=user_id, tenant_id=tenant_id)
            .select_related("user")
            .first()
        )

    def save(self, profile):
        profile.save()
        return profile

    def users_needing_refresh(self, stale_before, limit):
        """
        ``(user_id, tenant_id)`` pairs whose profile is older than ``stale_before``
        or who have enrollments but no profile yet, oldest first.
        """
        from apps.enrollments.models import Enrollment

        stale = list(
            UserLearningProfile.objects.filter(
                Q(last_profiled_at__lt=stale_before) | Q(last_profiled_at__isnull=True)
            )
            .order_by("last_profiled_at")
            .values_list("user_id", "tenant_id")[:limit]
        )
        remaining = limit - len(stale)
        if remaining <= 0:
            return stale

        missing = (
            Enrollment.objects.filter(user__tenant__isnull=False)
            .exclude(user__learning_profiles__isnull=False)
            .order_by()
            .values_list("user_id", "user__tenant_id")
            .distinct()[:remaining]
        )
        return stale + list(missing)


class ContentFeatureStore:
    def for_tenant(self, tenant_id):
        return ContentFeatures.objects.filter(
            tenant_id=tenant_id, content_item__is_published=True
        ).select_related("content_item", "content_item__module")

    def get(self, content_id):
        return ContentFeatures.objects.filter(content_item_id=content_id).first()

    def for_content_ids(self, content_ids):
        return {
            features.content_item_id: features
            for features in ContentFeatures.objects.filter(content_item_id__in=content_ids)
        }

    def with_any_skill(self, tenant_id, skills):
        """Published content whose skills intersect ``skills`` (case-insensitive)."""
        wanted = {str(skill).lower() for skill in skills or []}
        if not wanted:
            return []
        return [
            features
            for features in self.for_tenant(tenant_id)
            if wanted & {str(skill).lower() for skill in features.skills or []}
        ]

    def short_content(self, tenant_id, max_minutes):
        short = []
        for features in self.for_tenant(tenant_id):
            duration = (features.content_characteristics or {}).get("duration_minutes")
            if duration is not None and duration <= max_minutes:
                short.append(features)
        return short


class SimilarityStore:
    def content_neighbors(self, content_id, tenant_id, limit):
        return list(
            ContentSimilarity.objects.filter(
                content_item_1_id=content_id,
                content_item_1__module__course__tenant_id=tenant_id,
                content_item_2__module__course__tenant_id=tenant_id,
            ).order_by("-similarity_score")[:limit]
        )

    def user_neighbors(self, user_id, tenant_id, limit):
        return list(
            UserSimilarity.objects.filter(
                user_1_id=user_id, user_1__tenant_id=tenant_id, user_2__tenant_id=tenant_id
            ).order_by("-similarity_score")[:limit]
        )

    @transaction.atomic
    def save_content_pair(self, first_id, second_id, score, factors=None, algorithm="cosine"):
        """Write the pair in both directions so (a, b) and (b, a) always agree."""
        now = timezone.now()
        for left, right in ((first_id, second_id), (second_id, first_id)):
            ContentSimilarity.objects.update_or_create(
                content_item_1_id=left,
                content_item_2_id=right,
                defaults={
                    "similarity_score": score,
                    "similarity_factors": factors or {},
                    "algorithm_used": algorithm,
                    "last_calculated_at": now,
                },
            )

    @transaction.atomic
    def save_user_pair(self, first_id, second_id, score, factors=None, algorithm="cosine"):
        now = timezone.now()
        for left, right in ((first_id, second_id), (second_id, first_id)):
            UserSimilarity.objects.update_or_create(
                user_1_id=left,
                user_2_id=right,
                defaults={
                    "similarity_score": score,
                    "similarity_factors": factors or {},
                    "algorithm_used": algorithm,
                    "last_calculated_at": now,
                },
            )


class LearningHistoryStore:
    """Read-only access to enrollments, content progress and assessment attempts."""

    def enrollments(self, user_id, tenant_id):
        from apps.enrollments.models import Enrollment

        return list(
            Enrollment.objects.filter(user_id=user_id, course__tenant_id=tenant_id)
            .select_related("course")
        )

    def progress(self, user_id, tenant_id):
        from apps.enrollments.models import LearnerProgress

        return list(
            LearnerProgress.objects.filter(
                enrollment__user_id=user_id, enrollment__course__tenant_id=tenant_id
            ).select_related("content_item")
        )

    def attempts(self, user_id, tenant_id):
        from apps.assessments.models import AssessmentAttempt

        return list(
            AssessmentAttempt.objects.filter(
                user_id=user_id, assessment__course__tenant_id=tenant_id
            )
            .exclude(score__isnull=True)
            .select_related("assessment", "assessment__course")
        )

    def interacted_content_ids(self, user_id):
        from apps.enrollments.models import LearnerProgress

        return set(
            LearnerProgress.objects.filter(enrollment__user_id=user_id).values_list(
                "content_item_id", flat=True
            )
        )

    def completed_content_ids(self, user_id):
        from apps.enrollments.models import LearnerProgress

        return set(
            LearnerProgress.objects.filter(
                enrollment__user_id=user_id, status=LearnerProgress.Status.COMPLETED
            ).values_list("content_item_id", flat=True)
        )

    def completed_course_ids(self, user_id):
        from apps.enrollments.models import Enrollment

        return set(
            Enrollment.objects.filter(
                user_id=user_id, status=Enrollment.Status.COMPLETED
            ).values_list("course_id", flat=True)
        )

    def positive_interactions(self, user_ids, min_percentage=80.0):
        """
        ``{user_id: [(content_id, rating), ...]}`` for content each user completed
        or progressed past ``min_percentage``. Rating is 1.0 for completed items,
        otherwise percentage / 100.
        """
        from apps.enrollments.models import LearnerProgress

        interactions = defaultdict(list)
        records = LearnerProgress.objects.filter(
            enrollment__user_id__in=list(user_ids)
        ).select_related("enrollment")
        for record in records:
            percentage = record.completion_percentage
            if record.is_completed or percentage > min_percentage:
                rating = 1.0 if record.is_completed else percentage / 100.0
                interactions[record.enrollment.user_id].append((record.content_item_id, rating))
        return interactions

    def recent_enrollment_counts(self, tenant_id, since, limit):
        from apps.enrollments.models import Enrollment

        return list(
            Enrollment.objects.filter(course__tenant_id=tenant_id, enrolled_at__gte=since)
            .values("course_id")
            .annotate(enrollment_count=Count("id"))
            .order_by("-enrollment_count", "course_id")[:limit]
        )

    def user_feature_vectors(self, tenant_id, user_ids=None):
        """
        Sparse behaviour vectors per learner: enrolled categories, tag counts,
        completion rate and best score per assessed skill.
        """
        from apps.assessments.models import AssessmentAttempt
        from apps.enrollments.models import Enrollment

        enrollments = Enrollment.objects.filter(course__tenant_id=tenant_id).select_related("course")
        attempts = AssessmentAttempt.objects.filter(
            assessment__course__tenant_id=tenant_id, score__isnull=False
        ).select_related("assessment")
        if user_ids is not None:
            enrollments = enrollments.filter(user_id__in=list(user_ids))
            attempts = attempts.filter(user_id__in=list(user_ids))

        vectors = defaultdict(dict)
        totals = Counter()
        completed = Counter()
        for enrollment in enrollments:
            vector = vectors[enrollment.user_id]
            course = enrollment.course
            if course.category:
                vector[f"category_{course.category.lower()}"] = 1.0
            for tag in course.tags or []:
                key = f"tag_{str(tag).lower()}"
                vector[key] = vector.get(key, 0.0) + 1.0
            totals[enrollment.user_id] += 1
            if enrollment.status == Enrollment.Status.COMPLETED:
                completed[enrollment.user_id] += 1

        for user_id, total in totals.items():
            vectors[user_id]["completion_rate"] = completed[user_id] / total

        for attempt in attempts:
            key = f"skill_{attempt.assessment.title.lower()}"
            vector = vectors[attempt.user_id]
            vector[key] = max(vector.get(key, 0.0), attempt.score_fraction)

        return dict(vectors)

    def interaction_matrix(self, tenant_id):
        """
        Dense user x content matrix of completion data for the tenant:
        1.0 for completed items, otherwise percentage / 100.
        """
        from apps.enrollments.models import LearnerProgress

        records = list(
            LearnerProgress.objects.filter(
                enrollment__course__tenant_id=tenant_id, content_item__is_published=True
            ).select_related("enrollment")
        )
        user_ids = sorted({record.enrollment.user_id for record in records}, key=str)
        content_ids = sorted({record.content_item_id for record in records}, key=str)
        user_index = {user_id: index for index, user_id in enumerate(user_ids)}
        content_index = {content_id: index for index, content_id in enumerate(content_ids)}

        matrix = np.zeros((len(user_ids), len(content_ids)))
        for record in records:
            value = 1.0 if record.is_completed else record.completion_percentage / 100.0
            matrix[user_index[record.enrollment.user_id], content_index[record.content_item_id]] = value
        return user_ids, content_ids, matrix


class RecommendationStore:
    def active_models(self, tenant_id):
        return list(RecommendationModel.objects.filter(tenant_id=tenant_id, is_active=True))

    @transaction.atomic
    def save_batch(self, user_id, tenant_id, candidates, expires_at, metadata=None):
        rows = [
            UserRecommendation(
                tenant_id=tenant_id,
                user_id=user_id,
                content_item_id=candidate.content_id,
                course_id=candidate.course_id,
                model_key=UserRecommendation.ENSEMBLE_MODEL_KEY,
                recommendation_type=candidate.recommendation_type,
                source_strategies=list(candidate.sources),
                confidence_score=round(min(max(candidate.confidence_score, 0.0), 1.0), 4),
                relevance_score=round(min(max(candidate.relevance_score, 0.0), 1.0), 4),
                reasoning=candidate.reasoning,
                metadata=metadata or {},
                expires_at=expires_at,
            )
            for candidate in candidates
        ]
        return UserRecommendation.objects.bulk_create(rows)

    def get_for_user(self, recommendation_id, user_id):
        return UserRecommendation.objects.select_related("content_item", "course").get(
            pk=recommendation_id, user_id=user_id
        )

    def add_interaction(self, recommendation, interaction_type, data=None, **request_meta):
        return RecommendationInteraction.objects.create(
            user_id=recommendation.user_id,
            recommendation=recommendation,
            interaction_type=interaction_type,
            interaction_data=data or {},
            ip_address=request_meta.get("ip_address"),
            user_agent=request_meta.get("user_agent") or "",
            session_id=request_meta.get("session_id") or "",
        )

    def expire_past_due(self, now):
        return UserRecommendation.objects.filter(
            status=RecommendationStatus.ACTIVE, expires_at__lt=now
        ).update(status=RecommendationStatus.EXPIRED, updated_at=now)


@dataclass
class RecommendationStores:
    """Bundle of stores injected into strategies, services and jobs."""

    profiles: ProfileStore = field(default_factory=ProfileStore)
    features: ContentFeatureStore = field(default_factory=ContentFeatureStore)
    similarities: SimilarityStore = field(default_factory=SimilarityStore)
    history: LearningHistoryStore = field(default_factory=LearningHistoryStore)
    recommendations: RecommendationStore = field(default_factory=RecommendationStore)
