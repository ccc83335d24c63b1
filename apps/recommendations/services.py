import logging
import time
from collections import Counter, defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import numpy as np
from django.core.exceptions import ObjectDoesNotExist
from django.db import connections, transaction
from django.utils import timezone
from scipy.sparse import csr_matrix
from sklearn.metrics.pairwise import cosine_similarity

from .conf import get_setting
from .ensemble import EnsembleCombiner
from .factorization import MatrixFactorizationRecommender
from .features import ContentFeatureExtractor, content_type_label
from .models import (
    ContentFeatures,
    InteractionType,
    LearningStyle,
    RecommendationInteraction,
    RecommendationModel,
    RecommendationStatus,
    RecommendationType,
    SkillLevel,
    UserLearningProfile,
    UserRecommendation,
    default_interests,
    default_learning_behavior,
    default_preferences,
)
from .repositories import RecommendationStores
from .scoring import difficulty_match, jaccard_similarity, profile_completeness, skill_gaps
from .strategies import RecommendationRequest, build_strategy

logger = logging.getLogger(__name__)


class RecommendationError(Exception):
    """Base error for the recommendation services."""


class ContentNotFound(RecommendationError, ObjectDoesNotExist):
    pass


class RecommendationNotFound(RecommendationError, ObjectDoesNotExist):
    pass


class ProfileService:
    """Loads, synthesizes and edits learners' UserLearningProfile rows."""

    EDITABLE_FIELDS = (
        "interests",
        "skill_levels",
        "learning_style",
        "preferences",
        "learning_behavior",
        "career_path",
    )
    MAX_TOPICS = 10
    MAX_SKILLS = 15

    def __init__(self, stores: RecommendationStores = None):
        self.stores = stores or RecommendationStores()

    def get_or_create(self, user_id, tenant_id) -> UserLearningProfile:
        profile = self.stores.profiles.get(user_id, tenant_id)
        if profile is not None:
            return profile

        profile = UserLearningProfile(user_id=user_id, tenant_id=tenant_id)
        for name, value in self.derive_from_history(user_id, tenant_id).items():
            setattr(profile, name, value)
        self._stamp(profile)
        self.stores.profiles.save(profile)
        logger.info(f"Synthesized learning profile for user {user_id} (completeness {profile.profile_completeness})")
        return profile

    def update(self, user_id, tenant_id, updates: dict) -> UserLearningProfile:
        """Create-if-absent, then replace each provided top-level field wholesale."""
        profile = self.stores.profiles.get(user_id, tenant_id)
        if profile is None:
            profile = UserLearningProfile(user_id=user_id, tenant_id=tenant_id)

        for name in self.EDITABLE_FIELDS:
            if name in updates:
                setattr(profile, name, updates[name])
        self._stamp(profile)
        return self.stores.profiles.save(profile)

    def add_interests(self, user_id, tenant_id, interests: dict) -> UserLearningProfile:
        profile = self.get_or_create(user_id, tenant_id)
        merged = {**default_interests(), **(profile.interests or {})}
        for key, values in interests.items():
            current = list(merged.get(key) or [])
            for value in values or []:
                if value not in current:
                    current.append(value)
            merged[key] = current
        return self.update(user_id, tenant_id, {"interests": merged})

    def update_career_path(self, user_id, tenant_id, career_path: dict) -> UserLearningProfile:
        profile = self.get_or_create(user_id, tenant_id)
        career_path = dict(career_path)
        if not career_path.get("skill_gaps"):
            career_path["skill_gaps"] = skill_gaps(
                career_path.get("required_skills"), (profile.skill_levels or {}).keys()
            )
        return self.update(user_id, tenant_id, {"career_path": career_path})

    def refresh(self, profile) -> UserLearningProfile:
        """Re-derive history-based fields; fields the learner edits are kept."""
        derived = self.derive_from_history(profile.user_id, profile.tenant_id)
        profile.skill_levels = derived["skill_levels"]
        profile.learning_behavior = derived["learning_behavior"]
        interests = {**default_interests(), **(profile.interests or {})}
        for key in ("topics", "categories", "skills"):
            for value in derived["interests"][key]:
                if value not in interests[key]:
                    interests[key].append(value)
        profile.interests = interests
        self._stamp(profile)
        return self.stores.profiles.save(profile)

    def analyze(self, profile) -> dict:
        career_path = profile.career_path or {}
        gaps = career_path.get("skill_gaps") or skill_gaps(
            career_path.get("required_skills"), (profile.skill_levels or {}).keys()
        )
        target_role = career_path.get("target_role")
        return {
            "interests": profile.interests,
            "skill_levels": profile.skill_levels,
            "learning_style": profile.learning_style,
            "preferences": profile.preferences,
            "learning_behavior": profile.learning_behavior,
            "career_path": profile.career_path,
            "profile_completeness": profile.profile_completeness,
            "last_profiled_at": profile.last_profiled_at,
            "recommendations": {
                "skill_gaps": gaps,
                "career_alignment": [
                    f"Develop {skill} to progress toward {target_role}" for skill in gaps
                ] if target_role else [],
                "content_suggestions": self._content_suggestions(profile),
            },
        }

    def derive_from_history(self, user_id, tenant_id) -> dict:
        history = self.stores.history
        enrollments = history.enrollments(user_id, tenant_id)
        progress = history.progress(user_id, tenant_id)
        attempts = history.attempts(user_id, tenant_id)

        topics = []
        skills = []
        for enrollment in enrollments:
            category = enrollment.course.category
            if category and category not in topics:
                topics.append(category)
            for tag in enrollment.course.tags or []:
                if tag not in skills:
                    skills.append(tag)

        topics = topics[: self.MAX_TOPICS]
        return {
            "interests": {
                "topics": topics,
                "categories": list(topics),
                "skills": skills[: self.MAX_SKILLS],
                "career_goals": [],
            },
            "skill_levels": self._skill_levels(attempts),
            "learning_style": LearningStyle.MIXED,
            "preferences": self._preferences(progress, attempts),
            "learning_behavior": self._behavior(progress),
        }

    @staticmethod
    def _skill_levels(attempts) -> dict:
        evidence = defaultdict(list)
        for attempt in attempts:
            assessment = attempt.assessment
            passed = attempt.is_passed
            if passed is None:
                passed = attempt.score_fraction * 100 >= assessment.pass_mark_percentage
            for skill in assessment.course.tags or [assessment.title]:
                evidence[skill].append((passed, attempt.score_fraction))

        levels = {}
        for skill, results in evidence.items():
            confidence = sum(score for _, score in results) / len(results)
            level = SkillLevel.INTERMEDIATE if any(passed for passed, _ in results) else SkillLevel.BEGINNER
            levels[skill] = {
                "level": level.value,
                "confidence": round(confidence, 4),
                "evidence_count": len(results),
            }
        return levels

    @staticmethod
    def _preferences(progress, attempts) -> dict:
        preferences = default_preferences()

        type_counts = Counter(content_type_label(p.content_item.content_type) for p in progress)
        if type_counts:
            preferences["content_types"] = [label for label, _ in type_counts.most_common(3)]

        durations = [p.content_item.duration_minutes for p in progress if p.content_item.duration_minutes]
        if durations:
            average = sum(durations) / len(durations)
            if average < 15:
                preferences["duration_preference"] = "short"
            elif average > 45:
                preferences["duration_preference"] = "long"

        if attempts:
            average_score = sum(a.score_fraction for a in attempts) / len(attempts)
            if average_score >= 0.85:
                preferences["difficulty_preference"] = SkillLevel.ADVANCED.value
            elif average_score < 0.5:
                preferences["difficulty_preference"] = SkillLevel.BEGINNER.value
        return preferences

    @staticmethod
    def _behavior(progress) -> dict:
        behavior = default_learning_behavior()
        if not progress:
            return behavior
        completion_rate = sum(1 for p in progress if p.is_completed) / len(progress)
        behavior["completion_rate"] = round(completion_rate, 4)
        behavior["engagement_score"] = round(completion_rate * 0.8, 4)
        minutes = [
            p.progress_details.get("time_spent_minutes")
            for p in progress
            if isinstance((p.progress_details or {}).get("time_spent_minutes"), (int, float))
        ]
        if minutes:
            behavior["session_patterns"]["average_session_minutes"] = round(sum(minutes) / len(minutes), 1)
        return behavior

    @staticmethod
    def _content_suggestions(profile) -> list[str]:
        by_style = {
            LearningStyle.VISUAL: "Favour video lessons and diagram-rich material",
            LearningStyle.AUDITORY: "Try audio lessons and recorded lectures",
            LearningStyle.READING: "Written guides and documentation suit you best",
            LearningStyle.KINESTHETIC: "Hands-on exercises and interactive labs suit you best",
            LearningStyle.MIXED: "Mix video, reading and hands-on practice",
        }
        suggestions = [by_style.get(profile.learning_style, by_style[LearningStyle.MIXED])]
        completion_rate = (profile.learning_behavior or {}).get("completion_rate", 0.0)
        if completion_rate and completion_rate < 0.5:
            suggestions.append("Shorter content can help you finish more of what you start")
        return suggestions

    @staticmethod
    def _stamp(profile):
        profile.profile_completeness = profile_completeness(
            profile.interests,
            profile.skill_levels,
            profile.preferences,
            profile.learning_behavior,
            profile.career_path,
        )
        profile.last_profiled_at = timezone.now()


class RecommendationService:
    """Runs the strategies for a learner, combines them and stores the result."""

    DEFAULT_STRATEGY_TYPES = (
        RecommendationType.CONTENT_BASED.value,
        RecommendationType.COLLABORATIVE.value,
        RecommendationType.TRENDING.value,
        RecommendationType.CAREER_PATH.value,
        RecommendationType.SKILL_GAP.value,
        RecommendationType.CONTEXTUAL.value,
    )

    def __init__(self, stores: RecommendationStores = None, combiner: EnsembleCombiner = None):
        self.stores = stores or RecommendationStores()
        self.combiner = combiner or EnsembleCombiner(diversity_cap=get_setting("DIVERSITY_CAP"))
        self.profiles = ProfileService(self.stores)

    def get_personalized_recommendations(self, request: RecommendationRequest) -> dict:
        started = time.monotonic()
        profile = self.profiles.get_or_create(request.user_id, request.tenant_id)

        candidates = self._run_strategies(self._configured_strategies(request.tenant_id), profile, request)
        candidates = self._annotate_and_filter(candidates, request)
        selected = self.combiner.combine(
            candidates, request.diversity_level, request.max_recommendations
        )

        expires_at = timezone.now() + timedelta(days=get_setting("EXPIRY_DAYS"))
        rows = self.stores.recommendations.save_batch(
            request.user_id,
            request.tenant_id,
            selected,
            expires_at,
            metadata={"context": request.context, "diversity_level": request.diversity_level},
        )
        logger.info(
            f"Generated {len(rows)} recommendations for user {request.user_id} "
            f"from {len(candidates)} candidates"
        )
        return {
            "recommendations": rows,
            "metadata": {
                "total_available": len(candidates),
                "algorithm_used": UserRecommendation.ENSEMBLE_MODEL_KEY,
                "personalization_level": round(profile.profile_completeness * 0.8 + 0.2, 4),
                "diversity_score": round(self.combiner.diversity_score(selected), 4),
                "response_time_ms": int((time.monotonic() - started) * 1000),
            },
        }

    def run_strategy(self, model_type, user_id, tenant_id, context=None, limit=None) -> list:
        """Candidates of a single strategy, not persisted."""
        profile = self.profiles.get_or_create(user_id, tenant_id)
        request = RecommendationRequest(user_id=user_id, tenant_id=tenant_id, context=context or {})
        strategy = build_strategy(model_type, self.stores)
        return strategy.recommend(profile, request, limit)

    def get_recommendation(self, recommendation_id, user_id) -> UserRecommendation:
        try:
            return self.stores.recommendations.get_for_user(recommendation_id, user_id)
        except UserRecommendation.DoesNotExist:
            raise RecommendationNotFound(f"Recommendation {recommendation_id} not found.")

    def matrix_factorization(self, user_id, tenant_id, limit=20, n_factors=50) -> list:
        recommender = MatrixFactorizationRecommender(self.stores, n_factors=n_factors)
        return recommender.recommend(user_id, tenant_id, limit)

    def _configured_strategies(self, tenant_id):
        models = self.stores.recommendations.active_models(tenant_id)
        strategies = {}
        for model in models:
            if model.model_type not in strategies:
                strategies[model.model_type] = build_strategy(
                    model.model_type, self.stores, model.configuration
                )
        if not strategies:
            for model_type in self.DEFAULT_STRATEGY_TYPES:
                strategies[model_type] = build_strategy(model_type, self.stores)
        return list(strategies.values())

    def _run_strategies(self, strategies, profile, request) -> list:
        workers = get_setting("STRATEGY_WORKERS")
        if workers > 1 and len(strategies) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(
                    executor.map(lambda s: self._run_in_thread(s, profile, request), strategies)
                )
        else:
            results = [self._safe_run(strategy, profile, request) for strategy in strategies]
        return [candidate for result in results for candidate in result]

    def _run_in_thread(self, strategy, profile, request):
        try:
            return self._safe_run(strategy, profile, request)
        finally:
            connections.close_all()

    @staticmethod
    def _safe_run(strategy, profile, request):
        try:
            candidates = strategy.recommend(profile, request)
        except Exception as e:
            logger.error(
                f"{strategy.__class__.__name__} failed for user {request.user_id}: {e}", exc_info=True
            )
            return []
        min_confidence = strategy.configuration.get("min_confidence") or 0.0
        return [c for c in candidates if c.confidence_score >= min_confidence]

    def _annotate_and_filter(self, candidates, request) -> list:
        content_ids = {c.content_id for c in candidates if c.content_id is not None}
        features_by_id = self.stores.features.for_content_ids(content_ids) if content_ids else {}
        filters = request.filters

        completed_content = completed_courses = set()
        if filters.exclude_completed:
            completed_content = self.stores.history.completed_content_ids(request.user_id)
            completed_courses = self.stores.history.completed_course_ids(request.user_id)

        wanted_types = {t.lower() for t in filters.content_types or []}
        wanted_levels = {level.lower() for level in filters.difficulty_levels or []}

        kept = []
        for candidate in candidates:
            if candidate.course_id is not None and candidate.content_id is None:
                if candidate.course_id not in completed_courses:
                    kept.append(candidate)
                continue

            if candidate.content_id in completed_content:
                continue
            features = features_by_id.get(candidate.content_id)
            if features is not None and not candidate.primary_topic:
                candidate.primary_topic = features.primary_topic
            if wanted_types and (features is None or features.content_type not in wanted_types):
                continue
            if wanted_levels and (features is None or features.difficulty_level not in wanted_levels):
                continue
            if filters.max_duration is not None:
                duration = (features.content_characteristics or {}).get("duration_minutes") if features else None
                if duration is None or duration > filters.max_duration:
                    continue
            kept.append(candidate)
        return kept


class InteractionService:
    """Records learner feedback on recommendations and moves their status."""

    STATUS_BY_INTERACTION = {
        InteractionType.VIEW: RecommendationStatus.ACTIVE,
        InteractionType.CLICK: RecommendationStatus.CLICKED,
        InteractionType.ENROLL: RecommendationStatus.ENROLLED,
        InteractionType.DISMISS: RecommendationStatus.DISMISSED,
    }
    TIMESTAMP_FIELDS = {
        InteractionType.VIEW: "viewed_at",
        InteractionType.CLICK: "clicked_at",
        InteractionType.ENROLL: "enrolled_at",
        InteractionType.DISMISS: "dismissed_at",
    }

    def __init__(self, stores: RecommendationStores = None):
        self.stores = stores or RecommendationStores()

    @transaction.atomic
    def record(self, user_id, recommendation_id, interaction_type, data=None, **request_meta):
        if interaction_type not in InteractionType.values:
            raise ValueError(f"Unknown interaction type: {interaction_type}")
        interaction_type = InteractionType(interaction_type)

        try:
            recommendation = self.stores.recommendations.get_for_user(recommendation_id, user_id)
        except UserRecommendation.DoesNotExist:
            raise RecommendationNotFound(f"Recommendation {recommendation_id} not found.")
        interaction = self.stores.recommendations.add_interaction(
            recommendation, interaction_type, data, **request_meta
        )

        now = timezone.now()
        update_fields = ["updated_at"]
        new_status = self.STATUS_BY_INTERACTION.get(interaction_type)
        if new_status is not None:
            recommendation.status = new_status
            update_fields.append("status")
        timestamp_field = self.TIMESTAMP_FIELDS.get(interaction_type)
        if timestamp_field and getattr(recommendation, timestamp_field) is None:
            setattr(recommendation, timestamp_field, now)
            update_fields.append(timestamp_field)
        if interaction_type == InteractionType.VIEW:
            recommendation.impressions += 1
            update_fields.append("impressions")
        if interaction_type == InteractionType.RATE and data:
            recommendation.user_feedback = {**(recommendation.user_feedback or {}), **data}
            update_fields.append("user_feedback")
        recommendation.save(update_fields=update_fields)

        logger.info(
            f"Recorded {interaction_type} on recommendation {recommendation.id} by user {user_id}"
        )
        return interaction

    def record_feedback(self, user_id, recommendation_id, feedback: dict, **request_meta):
        data = {key: value for key, value in feedback.items() if value is not None}
        data["submitted_at"] = timezone.now().isoformat()
        return self.record(user_id, recommendation_id, InteractionType.RATE, data, **request_meta)


class ContentAnalysisService:
    """Feature extraction and similarity computation for content items."""

    MIN_SIMILARITY = 0.1

    def __init__(self, stores: RecommendationStores = None, extractor: ContentFeatureExtractor = None):
        self.stores = stores or RecommendationStores()
        self.extractor = extractor or ContentFeatureExtractor()

    def analyze(self, content_id, tenant_id=None) -> ContentFeatures:
        from apps.courses.models import ContentItem
        from apps.enrollments.models import LearnerProgress

        queryset = ContentItem.objects.select_related("module__course")
        if tenant_id is not None:
            queryset = queryset.filter(module__course__tenant_id=tenant_id)
        content_item = queryset.filter(pk=content_id).first()
        if content_item is None:
            raise ContentNotFound(f"Content {content_id} not found.")

        progress = list(LearnerProgress.objects.filter(content_item=content_item))
        values = self.extractor.extract(content_item, progress)
        features, _ = ContentFeatures.objects.update_or_create(
            content_item=content_item,
            defaults={"tenant_id": content_item.module.course.tenant_id, **values},
        )
        logger.info(f"Analyzed content {content_id}: {len(features.topics)} topics, {len(features.skills)} skills")
        return features

    def analyze_missing(self, limit) -> int:
        """Extract features for published content that has none yet."""
        from apps.courses.models import ContentItem

        missing = ContentItem.objects.filter(
            is_published=True, features__isnull=True
        ).values_list("id", flat=True)[:limit]
        count = 0
        for content_id in list(missing):
            self.analyze(content_id)
            count += 1
        return count

    def similar_content(self, content_id, tenant_id, limit=10):
        from apps.courses.models import ContentItem

        if not ContentItem.objects.filter(pk=content_id, module__course__tenant_id=tenant_id).exists():
            raise ContentNotFound(f"Content {content_id} not found.")
        return self.stores.similarities.content_neighbors(content_id, tenant_id, limit)

    def similar_users(self, user_id, tenant_id, limit=20):
        return self.stores.similarities.user_neighbors(user_id, tenant_id, limit)

    def recompute_content_similarities(self, limit=None, neighbors=None) -> int:
        """
        Cosine similarity over one-hot feature vectors of up to ``limit`` published
        items per tenant; keeps the closest ``neighbors`` of each item.
        """
        limit = limit or get_setting("SIMILARITY_BATCH_SIZE")
        neighbors = neighbors or get_setting("SIMILARITY_NEIGHBORS")

        features = list(
            ContentFeatures.objects.filter(content_item__is_published=True)
            .order_by("-last_analyzed_at")[:limit]
        )
        by_tenant = defaultdict(list)
        for row in features:
            by_tenant[row.tenant_id].append(row)

        saved = 0
        for rows in by_tenant.values():
            saved += self._save_similarities(rows, neighbors)
        logger.info(f"Content similarity recompute stored {saved} pairs over {len(features)} items")
        return saved

    def _save_similarities(self, rows, neighbors) -> int:
        if len(rows) < 2:
            return 0
        vectors = [self.extractor.vectorize(row) for row in rows]
        vocabulary = {}
        data, indices, indptr = [], [], [0]
        for vector in vectors:
            for key, value in vector.items():
                indices.append(vocabulary.setdefault(key, len(vocabulary)))
                data.append(value)
            indptr.append(len(indices))
        matrix = csr_matrix((data, indices, indptr), shape=(len(rows), len(vocabulary)))
        scores = cosine_similarity(matrix)
        np.fill_diagonal(scores, 0.0)

        saved_pairs = set()
        for i, row in enumerate(rows):
            for j in np.argsort(-scores[i])[:neighbors]:
                score = float(scores[i, j])
                if score <= self.MIN_SIMILARITY:
                    break
                pair = frozenset((i, int(j)))
                if pair in saved_pairs:
                    continue
                saved_pairs.add(pair)
                other = rows[j]
                self.stores.similarities.save_content_pair(
                    row.content_item_id,
                    other.content_item_id,
                    round(min(score, 1.0), 4),
                    factors={
                        "topic_similarity": round(jaccard_similarity(row.topics, other.topics), 4),
                        "skill_similarity": round(jaccard_similarity(row.skills, other.skills), 4),
                        "difficulty_similarity": round(
                            difficulty_match(row.difficulty_level, other.difficulty_level), 4
                        ),
                        "same_content_type": row.content_type == other.content_type,
                    },
                )
        return len(saved_pairs)

    def recompute_user_similarities(self, tenant_id, neighbors=50) -> int:
        from sklearn.feature_extraction import DictVectorizer

        vectors = self.stores.history.user_feature_vectors(tenant_id)
        user_ids = list(vectors)
        if len(user_ids) < 2:
            return 0
        matrix = DictVectorizer().fit_transform([vectors[user_id] for user_id in user_ids])
        scores = cosine_similarity(matrix)
        np.fill_diagonal(scores, 0.0)

        saved_pairs = set()
        for i, user_id in enumerate(user_ids):
            for j in np.argsort(-scores[i])[:neighbors]:
                score = float(scores[i, j])
                if score <= self.MIN_SIMILARITY:
                    break
                pair = frozenset((i, int(j)))
                if pair in saved_pairs:
                    continue
                saved_pairs.add(pair)
                self.stores.similarities.save_user_pair(user_id, user_ids[j], round(min(score, 1.0), 4))
        logger.info(f"User similarity recompute for tenant {tenant_id} stored {len(saved_pairs)} pairs")
        return len(saved_pairs)


class ModelService:
    """Admin operations on RecommendationModel rows."""

    DEFAULT_CONFIGURATION = {
        "algorithm": "weighted_similarity",
        "parameters": {},
        "feature_weights": {},
        "similarity_threshold": 0.3,
        "min_confidence": 0.0,
    }
    PERFORMANCE_WINDOW_DAYS = 30

    @staticmethod
    def create_model(tenant, name, model_type, description="", configuration=None):
        if model_type not in RecommendationType.values:
            raise ValueError(f"Unknown recommendation model type: {model_type}")
        model = RecommendationModel.objects.create(
            tenant=tenant,
            name=name,
            model_type=model_type,
            description=description,
            configuration={**ModelService.DEFAULT_CONFIGURATION, **(configuration or {})},
            training_data={"user_interactions": 0, "content_items": 0, "last_training": None},
            performance={"click_through_rate": 0.0, "conversion_rate": 0.0},
            is_active=False,
        )
        logger.info(f"Created recommendation model '{name}' ({model_type}) for tenant {tenant.id}")
        return model

    @staticmethod
    def set_active(model, is_active: bool):
        model.is_active = is_active
        model.save(update_fields=["is_active", "updated_at"])
        return model

    @staticmethod
    def train(model):
        """Refresh the model's training counters and its measured performance."""
        now = timezone.now()
        since = now - timedelta(days=ModelService.PERFORMANCE_WINDOW_DAYS)
        served = clicked = enrolled = 0
        rows = UserRecommendation.objects.filter(
            tenant_id=model.tenant_id, created_at__gte=since
        ).values_list("source_strategies", "clicked_at", "enrolled_at")
        for sources, clicked_at, enrolled_at in rows:
            if model.model_type not in (sources or []):
                continue
            served += 1
            clicked += clicked_at is not None
            enrolled += enrolled_at is not None

        model.training_data = {
            "user_interactions": RecommendationInteraction.objects.filter(
                recommendation__tenant_id=model.tenant_id
            ).count(),
            "content_items": ContentFeatures.objects.filter(tenant_id=model.tenant_id).count(),
            "user_profiles": UserLearningProfile.objects.filter(tenant_id=model.tenant_id).count(),
            "last_training": now.isoformat(),
        }
        model.performance = {
            "recommendations_served": served,
            "click_through_rate": round(clicked / served, 4) if served else 0.0,
            "conversion_rate": round(enrolled / served, 4) if served else 0.0,
            "window_days": ModelService.PERFORMANCE_WINDOW_DAYS,
        }
        model.last_trained_at = now
        model.next_training_at = now + timedelta(days=1)
        model.save(
            update_fields=[
                "training_data",
                "performance",
                "last_trained_at",
                "next_training_at",
                "updated_at",
            ]
        )
        return model


class RecommendationAnalyticsService:
    @staticmethod
    def summary(tenant_id, period_days=30) -> dict:
        since = timezone.now() - timedelta(days=period_days)
        rows = list(
            UserRecommendation.objects.filter(tenant_id=tenant_id, created_at__gte=since)
            .select_related("content_item", "course")
        )
        total = len(rows)

        def rate(count):
            return round(count / total, 4) if total else 0.0

        clicked = sum(1 for r in rows if r.clicked_at)
        enrolled = sum(1 for r in rows if r.enrolled_at)
        dismissed = sum(1 for r in rows if r.dismissed_at)
        ratings = [
            float(r.user_feedback["rating"])
            for r in rows
            if isinstance(r.user_feedback, dict) and isinstance(r.user_feedback.get("rating"), (int, float))
        ]

        per_strategy = defaultdict(lambda: {"served": 0, "clicked": 0, "enrolled": 0})
        targets = Counter()
        titles = {}
        for r in rows:
            for source in r.source_strategies or [r.recommendation_type]:
                stats = per_strategy[source]
                stats["served"] += 1
                stats["clicked"] += bool(r.clicked_at)
                stats["enrolled"] += bool(r.enrolled_at)
            target = r.content_item or r.course
            if target is not None:
                targets[str(target.pk)] += 1
                titles[str(target.pk)] = target.title
        for stats in per_strategy.values():
            stats["click_through_rate"] = round(stats["clicked"] / stats["served"], 4)

        return {
            "period_days": period_days,
            "total_recommendations": total,
            "status_breakdown": dict(Counter(r.status for r in rows)),
            "click_through_rate": rate(clicked),
            "conversion_rate": rate(enrolled),
            "dismissal_rate": rate(dismissed),
            "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
            "strategy_performance": dict(per_strategy),
            "top_recommended": [
                {"id": pk, "title": titles[pk], "count": count}
                for pk, count in targets.most_common(5)
            ],
        }


class MaintenanceService:
    """Bodies of the scheduled jobs. Each is safe to run repeatedly."""

    def __init__(self, stores: RecommendationStores = None):
        self.stores = stores or RecommendationStores()

    def refresh_stale_profiles(self) -> int:
        stale_before = timezone.now() - timedelta(hours=get_setting("PROFILE_STALE_HOURS"))
        batch_size = get_setting("PROFILE_BATCH_SIZE")
        profiles = ProfileService(self.stores)
        refreshed = 0
        while True:
            pending = self.stores.profiles.users_needing_refresh(stale_before, batch_size)
            if not pending:
                break
            for user_id, tenant_id in pending:
                profile = self.stores.profiles.get(user_id, tenant_id)
                if profile is None:
                    profiles.get_or_create(user_id, tenant_id)
                else:
                    profiles.refresh(profile)
                refreshed += 1
            if len(pending) < batch_size:
                break
        logger.info(f"Refreshed {refreshed} learning profiles")
        return refreshed

    def recompute_content_similarities(self) -> int:
        analysis = ContentAnalysisService(self.stores)
        batch_size = get_setting("SIMILARITY_BATCH_SIZE")
        analysis.analyze_missing(batch_size)
        return analysis.recompute_content_similarities(limit=batch_size)

    def train_models(self) -> int:
        trained = 0
        for model in RecommendationModel.objects.filter(is_active=True):
            ModelService.train(model)
            trained += 1
        logger.info(f"Trained {trained} recommendation models")
        return trained

    def expire_recommendations(self) -> int:
        expired = self.stores.recommendations.expire_past_due(timezone.now())
        logger.info(f"Expired {expired} recommendations")
        return expired
