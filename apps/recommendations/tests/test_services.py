"""Tests for the recommendation services against the database."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.core.exceptions import ObjectDoesNotExist
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from apps.assessments.models import Assessment, AssessmentAttempt
from apps.courses.models import ContentItem
from apps.recommendations.ensemble import EnsembleCombiner
from apps.recommendations.models import (
    ContentFeatures,
    ContentSimilarity,
    InteractionType,
    LearningStyle,
    RecommendationInteraction,
    RecommendationModel,
    RecommendationStatus,
    UserLearningProfile,
    UserRecommendation,
    UserSimilarity,
)
from apps.recommendations.repositories import RecommendationStores
from apps.recommendations.services import (
    ContentAnalysisService,
    ContentNotFound,
    InteractionService,
    MaintenanceService,
    ModelService,
    ProfileService,
    RecommendationAnalyticsService,
    RecommendationNotFound,
    RecommendationService,
)
from apps.recommendations.strategies import (
    ContentBasedStrategy,
    RecommendationFilters,
    RecommendationRequest,
    ScoredCandidate,
)

from .fixtures import (
    enroll,
    make_content,
    make_course,
    make_features,
    make_tenant,
    make_user,
    record_progress,
)


class ProfileServiceTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.user = make_user(self.tenant, "learner@example.com")
        self.course = make_course(self.tenant, "Python Programming", category="python", tags=["django", "sql"])
        enroll(self.user, self.course)
        assessment = Assessment.objects.create(course=self.course, title="Python quiz", is_published=True)
        AssessmentAttempt.objects.create(
            assessment=assessment, user=self.user, score=Decimal("80"), max_score=100, is_passed=True
        )
        self.service = ProfileService()

    def test_profile_is_synthesized_from_history(self):
        profile = self.service.get_or_create(self.user.id, self.tenant.id)

        self.assertEqual(profile.interests["topics"], ["python"])
        self.assertEqual(profile.interests["skills"], ["django", "sql"])
        self.assertEqual(profile.skill_levels["django"]["level"], "intermediate")
        self.assertAlmostEqual(profile.skill_levels["sql"]["confidence"], 0.8)
        self.assertEqual(profile.skill_levels["sql"]["evidence_count"], 1)
        self.assertEqual(profile.learning_style, LearningStyle.MIXED)
        self.assertEqual(profile.preferences["difficulty_preference"], "intermediate")
        self.assertEqual(profile.profile_completeness, 0.7)
        self.assertIsNotNone(profile.last_profiled_at)
        self.assertTrue(UserLearningProfile.objects.filter(user=self.user, tenant=self.tenant).exists())

    def test_second_call_returns_stored_profile(self):
        first = self.service.get_or_create(self.user.id, self.tenant.id)
        second = self.service.get_or_create(self.user.id, self.tenant.id)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(UserLearningProfile.objects.count(), 1)

    def test_failed_attempts_make_beginner_skills(self):
        other = make_user(self.tenant, "other@example.com")
        assessment = Assessment.objects.create(course=self.course, title="Hard exam")
        AssessmentAttempt.objects.create(
            assessment=assessment, user=other, score=Decimal("30"), max_score=100, is_passed=False
        )

        profile = self.service.get_or_create(other.id, self.tenant.id)

        self.assertEqual(profile.skill_levels["django"]["level"], "beginner")
        self.assertEqual(profile.preferences["difficulty_preference"], "beginner")

    def test_progress_shapes_preferences_and_behavior(self):
        video = make_content(self.course, "Intro video", duration_minutes=10)
        reading = make_content(
            self.course, "Setup guide", content_type=ContentItem.ContentType.TEXT, duration_minutes=12
        )
        record_progress(self.user, video, completed=True)
        record_progress(self.user, reading, percentage=50)

        profile = self.service.get_or_create(self.user.id, self.tenant.id)

        self.assertCountEqual(profile.preferences["content_types"], ["video", "text"])
        self.assertEqual(profile.preferences["duration_preference"], "short")
        self.assertEqual(profile.learning_behavior["completion_rate"], 0.5)
        self.assertEqual(profile.learning_behavior["engagement_score"], 0.4)

    def test_update_replaces_fields_and_recomputes_completeness(self):
        self.service.get_or_create(self.user.id, self.tenant.id)

        profile = self.service.update(
            self.user.id,
            self.tenant.id,
            {"career_path": {"target_role": "Backend Engineer"}, "learning_style": LearningStyle.VISUAL},
        )

        self.assertEqual(profile.learning_style, LearningStyle.VISUAL)
        self.assertEqual(profile.profile_completeness, 1.0)
        self.assertEqual(profile.interests["topics"], ["python"])

    def test_update_creates_missing_profile(self):
        newcomer = make_user(self.tenant, "new@example.com")

        profile = self.service.update(newcomer.id, self.tenant.id, {"interests": {"topics": ["art"]}})

        self.assertEqual(profile.interests, {"topics": ["art"]})
        self.assertEqual(profile.profile_completeness, 0.5)

    def test_add_interests_unions_lists(self):
        self.service.get_or_create(self.user.id, self.tenant.id)

        profile = self.service.add_interests(
            self.user.id, self.tenant.id, {"topics": ["python", "data"], "career_goals": ["lead"]}
        )

        self.assertEqual(profile.interests["topics"], ["python", "data"])
        self.assertEqual(profile.interests["career_goals"], ["lead"])

    def test_career_path_gaps_are_derived(self):
        profile = self.service.update_career_path(
            self.user.id,
            self.tenant.id,
            {"target_role": "Data Engineer", "required_skills": ["SQL", "Spark"]},
        )

        self.assertEqual(profile.career_path["skill_gaps"], ["Spark"])

    def test_refresh_keeps_declared_fields(self):
        profile = self.service.get_or_create(self.user.id, self.tenant.id)
        self.service.update(self.user.id, self.tenant.id, {"learning_style": LearningStyle.READING})
        profile.refresh_from_db()

        refreshed = self.service.refresh(profile)

        self.assertEqual(refreshed.learning_style, LearningStyle.READING)
        self.assertIn("django", refreshed.skill_levels)

    def test_analyze_reports_gaps(self):
        profile = self.service.update_career_path(
            self.user.id, self.tenant.id, {"target_role": "Data Engineer", "required_skills": ["Spark"]}
        )

        analysis = self.service.analyze(profile)

        self.assertEqual(analysis["recommendations"]["skill_gaps"], ["Spark"])
        self.assertEqual(
            analysis["recommendations"]["career_alignment"], ["Develop Spark to progress toward Data Engineer"]
        )


class PersonalizedRecommendationTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.user = make_user(self.tenant, "learner@example.com")
        self.course = make_course(self.tenant, "Python Programming", category="python", tags=["django"])
        self.video = make_content(self.course, "Django views", duration_minutes=20)
        make_features(self.video)
        enroll(self.user, self.course)

    def _request(self, **kwargs):
        return RecommendationRequest(user_id=self.user.id, tenant_id=self.tenant.id, **kwargs)

    def test_results_are_persisted_with_ensemble_provenance(self):
        result = RecommendationService().get_personalized_recommendations(self._request())

        rows = result["recommendations"]
        self.assertEqual({row.model_key for row in rows}, {"ensemble"})
        by_target = {(row.content_item_id, row.course_id): row for row in rows}
        content_row = by_target[(self.video.id, None)]
        self.assertEqual(content_row.source_strategies, ["content_based"])
        self.assertEqual(by_target[(None, self.course.id)].source_strategies, ["trending"])
        self.assertEqual(UserRecommendation.objects.filter(user=self.user).count(), len(rows))

        expected_expiry = timezone.now() + timedelta(days=7)
        self.assertLess(abs((content_row.expires_at - expected_expiry).total_seconds()), 60)
        self.assertEqual(content_row.status, RecommendationStatus.ACTIVE)

    def test_metadata(self):
        result = RecommendationService().get_personalized_recommendations(self._request())

        metadata = result["metadata"]
        self.assertEqual(metadata["algorithm_used"], "ensemble")
        self.assertEqual(metadata["total_available"], 2)
        self.assertEqual(metadata["diversity_score"], 1.0)
        self.assertGreaterEqual(metadata["response_time_ms"], 0)
        profile = UserLearningProfile.objects.get(user=self.user)
        self.assertAlmostEqual(metadata["personalization_level"], profile.profile_completeness * 0.8 + 0.2)

    def test_failing_strategy_contributes_nothing(self):
        with patch.object(ContentBasedStrategy, "recommend", side_effect=RuntimeError("boom")):
            with self.assertLogs("apps.recommendations.services", level="ERROR"):
                result = RecommendationService().get_personalized_recommendations(self._request())

        self.assertEqual([row.course_id for row in result["recommendations"]], [self.course.id])

    def test_active_models_replace_defaults(self):
        RecommendationModel.objects.create(
            tenant=self.tenant,
            name="Popular only",
            model_type="trending",
            configuration={"min_confidence": 0.5},
            is_active=True,
        )

        result = RecommendationService().get_personalized_recommendations(self._request())

        self.assertEqual([row.recommendation_type for row in result["recommendations"]], ["trending"])

    def test_min_confidence_filters_candidates(self):
        RecommendationModel.objects.create(
            tenant=self.tenant,
            name="Strict trending",
            model_type="trending",
            configuration={"min_confidence": 0.7},
            is_active=True,
        )

        result = RecommendationService().get_personalized_recommendations(self._request())

        self.assertEqual(result["recommendations"], [])

    def test_content_type_filter_keeps_courses(self):
        result = RecommendationService().get_personalized_recommendations(
            self._request(filters=RecommendationFilters(content_types=["text"]))
        )

        self.assertEqual([row.course_id for row in result["recommendations"]], [self.course.id])

    def test_exclude_completed_drops_completed_courses(self):
        enroll(self.user, self.course).mark_as_completed()

        result = RecommendationService().get_personalized_recommendations(
            self._request(filters=RecommendationFilters(exclude_completed=True))
        )

        self.assertNotIn(self.course.id, [row.course_id for row in result["recommendations"]])

    def test_truncated_to_max_recommendations(self):
        result = RecommendationService().get_personalized_recommendations(self._request(max_recommendations=1))

        self.assertEqual(len(result["recommendations"]), 1)

    def test_get_recommendation_is_owner_scoped(self):
        row = RecommendationService().get_personalized_recommendations(self._request())["recommendations"][0]
        stranger = make_user(self.tenant, "stranger@example.com")

        self.assertEqual(RecommendationService().get_recommendation(row.id, self.user.id).pk, row.pk)
        with self.assertRaises(RecommendationNotFound):
            RecommendationService().get_recommendation(row.id, stranger.id)


class StaticStrategy:
    def __init__(self, candidates, configuration=None):
        self.candidates = candidates
        self.configuration = configuration or {}

    def recommend(self, profile, request):
        return list(self.candidates)


class BrokenStrategy(StaticStrategy):
    def recommend(self, profile, request):
        raise RuntimeError("feature store offline")


class StrategyFanOutTests(SimpleTestCase):
    def setUp(self):
        self.service = RecommendationService(stores=MagicMock(), combiner=EnsembleCombiner())
        self.request = RecommendationRequest(user_id="learner", tenant_id="tenant")

    def candidate(self, content_id, confidence):
        return ScoredCandidate(
            recommendation_type="content_based",
            confidence_score=confidence,
            relevance_score=confidence,
            content_id=content_id,
        )

    def test_strategies_run_on_a_thread_pool(self):
        strategies = [
            StaticStrategy([self.candidate("a", 0.9)]),
            BrokenStrategy([]),
            StaticStrategy([self.candidate("b", 0.2), self.candidate("c", 0.6)], {"min_confidence": 0.5}),
        ]

        with patch("apps.recommendations.services.get_setting", return_value=4), patch(
            "apps.recommendations.services.ThreadPoolExecutor", wraps=ThreadPoolExecutor
        ) as executor:
            with self.assertLogs("apps.recommendations.services", level="ERROR") as logs:
                candidates = self.service._run_strategies(strategies, profile=None, request=self.request)

        executor.assert_called_once_with(max_workers=4)
        self.assertEqual([c.content_id for c in candidates], ["a", "c"])
        self.assertIn("BrokenStrategy failed for user learner", logs.output[0])

    def test_single_worker_runs_inline(self):
        strategies = [StaticStrategy([self.candidate("a", 0.9)]), StaticStrategy([self.candidate("b", 0.8)])]

        with patch("apps.recommendations.services.get_setting", return_value=1), patch(
            "apps.recommendations.services.ThreadPoolExecutor"
        ) as executor:
            candidates = self.service._run_strategies(strategies, profile=None, request=self.request)

        executor.assert_not_called()
        self.assertEqual([c.content_id for c in candidates], ["a", "b"])


class InteractionServiceTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.user = make_user(self.tenant, "learner@example.com")
        self.course = make_course(self.tenant, "SQL Basics")
        self.recommendation = UserRecommendation.objects.create(
            tenant=self.tenant,
            user=self.user,
            course=self.course,
            recommendation_type="trending",
            source_strategies=["trending"],
            confidence_score=0.6,
            relevance_score=0.5,
            expires_at=timezone.now() + timedelta(days=7),
        )
        self.service = InteractionService()

    def test_dismiss_sets_status(self):
        self.service.record(self.user.id, self.recommendation.id, InteractionType.DISMISS)

        self.recommendation.refresh_from_db()
        self.assertEqual(self.recommendation.status, RecommendationStatus.DISMISSED)
        self.assertIsNotNone(self.recommendation.dismissed_at)
        self.assertEqual(RecommendationInteraction.objects.count(), 1)

    def test_rate_leaves_status_and_stores_feedback(self):
        self.service.record_feedback(self.user.id, self.recommendation.id, {"rating": 4, "comments": None})

        self.recommendation.refresh_from_db()
        self.assertEqual(self.recommendation.status, RecommendationStatus.ACTIVE)
        self.assertEqual(self.recommendation.user_feedback["rating"], 4)
        self.assertNotIn("comments", self.recommendation.user_feedback)
        interaction = RecommendationInteraction.objects.get()
        self.assertEqual(interaction.interaction_type, InteractionType.RATE)

    def test_view_counts_impressions(self):
        self.service.record(self.user.id, self.recommendation.id, "view")
        self.service.record(self.user.id, self.recommendation.id, "view")

        self.recommendation.refresh_from_db()
        self.assertEqual(self.recommendation.impressions, 2)
        self.assertEqual(RecommendationInteraction.objects.count(), 2)

    def test_click_then_enroll(self):
        self.service.record(self.user.id, self.recommendation.id, "click")
        self.service.record(self.user.id, self.recommendation.id, "enroll", {"device": "mobile"})

        self.recommendation.refresh_from_db()
        self.assertEqual(self.recommendation.status, RecommendationStatus.ENROLLED)
        self.assertIsNotNone(self.recommendation.clicked_at)
        self.assertIsNotNone(self.recommendation.enrolled_at)

    def test_share_leaves_status(self):
        self.service.record(self.user.id, self.recommendation.id, "share")

        self.recommendation.refresh_from_db()
        self.assertEqual(self.recommendation.status, RecommendationStatus.ACTIVE)

    def test_only_owner_can_record(self):
        stranger = make_user(self.tenant, "stranger@example.com")

        with self.assertRaises(ObjectDoesNotExist):
            self.service.record(stranger.id, self.recommendation.id, "click")
        self.assertEqual(RecommendationInteraction.objects.count(), 0)

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValueError):
            self.service.record(self.user.id, self.recommendation.id, "like")

    def test_interactions_are_append_only(self):
        interaction = self.service.record(self.user.id, self.recommendation.id, "click")
        interaction.interaction_data = {"tampered": True}

        with self.assertRaises(ValueError):
            interaction.save()


class ContentAnalysisServiceTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.course = make_course(self.tenant, "Python Programming", category="python", tags=["django"])
        self.first = make_content(self.course, "Django models", text="Relational databases with Django")
        self.second = make_content(self.course, "Django forms", text="Validating input with Django")
        painting = make_course(
            self.tenant, "Watercolor", category="art", tags=["painting"], difficulty_level="advanced"
        )
        self.unrelated = make_content(painting, "Brushes", content_type=ContentItem.ContentType.TEXT)
        self.service = ContentAnalysisService()

    def test_analyze_creates_features(self):
        features = self.service.analyze(self.first.id, self.tenant.id)

        self.assertEqual(features.skills, ["django"])
        self.assertEqual(features.difficulty_level, "beginner")
        self.assertEqual(features.content_type, "video")
        self.assertIn("django", features.topics)

    def test_analyze_other_tenant_content_is_not_found(self):
        other = make_tenant("Other Org")

        with self.assertRaises(ContentNotFound):
            self.service.analyze(self.first.id, other.id)

    def test_similarities_are_symmetric(self):
        for item in (self.first, self.second, self.unrelated):
            make_features(item)

        saved = self.service.recompute_content_similarities()

        self.assertGreaterEqual(saved, 1)
        forward = ContentSimilarity.objects.get(content_item_1=self.first, content_item_2=self.second)
        backward = ContentSimilarity.objects.get(content_item_1=self.second, content_item_2=self.first)
        self.assertEqual(forward.similarity_score, backward.similarity_score)
        self.assertEqual(forward.similarity_factors["skill_similarity"], 1.0)
        nearest = self.service.similar_content(self.first.id, self.tenant.id)[0]
        self.assertEqual(nearest.content_item_2_id, self.second.id)

    def test_similar_content_stays_inside_organization(self):
        other = make_tenant("Other Org")
        roadmap = make_course(other, "Roadmaps", category="python", tags=["django"])
        alpha = make_content(roadmap, "Confidential roadmap alpha")
        bravo = make_content(roadmap, "Confidential roadmap bravo")
        similarities = self.service.stores.similarities
        similarities.save_content_pair(alpha.id, bravo.id, 0.9)
        similarities.save_content_pair(self.first.id, bravo.id, 0.8)
        similarities.save_content_pair(self.first.id, self.second.id, 0.5)

        with self.assertRaises(ContentNotFound):
            self.service.similar_content(alpha.id, self.tenant.id)
        rows = self.service.similar_content(self.first.id, self.tenant.id)
        self.assertEqual([row.content_item_2_id for row in rows], [self.second.id])

    def test_similar_users_stay_inside_organization(self):
        alice = make_user(self.tenant, "alice@example.com")
        bob = make_user(self.tenant, "bob@example.com")
        other = make_tenant("Other Org")
        mallory = make_user(other, "mallory@example.com")
        similarities = self.service.stores.similarities
        similarities.save_user_pair(alice.id, bob.id, 0.6)
        similarities.save_user_pair(alice.id, mallory.id, 0.9)

        rows = self.service.similar_users(alice.id, self.tenant.id)

        self.assertEqual([row.user_2_id for row in rows], [bob.id])
        self.assertEqual(self.service.similar_users(alice.id, other.id), [])

    def test_save_pair_updates_both_directions(self):
        stores = RecommendationStores()
        stores.similarities.save_content_pair(self.first.id, self.second.id, 0.4)
        stores.similarities.save_content_pair(self.second.id, self.first.id, 0.9)

        scores = set(ContentSimilarity.objects.values_list("similarity_score", flat=True))
        self.assertEqual(scores, {0.9})
        self.assertEqual(ContentSimilarity.objects.count(), 2)

    def test_user_similarities(self):
        alice = make_user(self.tenant, "alice@example.com")
        bob = make_user(self.tenant, "bob@example.com")
        enroll(alice, self.course)
        enroll(bob, self.course)

        saved = self.service.recompute_user_similarities(self.tenant.id)

        self.assertEqual(saved, 1)
        self.assertEqual(
            UserSimilarity.objects.get(user_1=alice, user_2=bob).similarity_score,
            UserSimilarity.objects.get(user_1=bob, user_2=alice).similarity_score,
        )


class ModelServiceTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.user = make_user(self.tenant, "learner@example.com")
        self.course = make_course(self.tenant, "SQL Basics")

    def test_create_model_defaults(self):
        model = ModelService.create_model(self.tenant, "Content", "content_based")

        self.assertFalse(model.is_active)
        self.assertEqual(model.version, "1.0.0")
        self.assertEqual(model.configuration["similarity_threshold"], 0.3)

    def test_create_model_rejects_unknown_type(self):
        with self.assertRaises(ValueError):
            ModelService.create_model(self.tenant, "Bad", "astrology")

    def test_train_measures_performance_from_provenance(self):
        model = ModelService.create_model(self.tenant, "Trending", "trending")
        for clicked in (True, False):
            UserRecommendation.objects.create(
                tenant=self.tenant,
                user=self.user,
                course=self.course,
                recommendation_type="trending",
                source_strategies=["trending", "content_based"],
                confidence_score=0.6,
                relevance_score=0.5,
                clicked_at=timezone.now() if clicked else None,
                expires_at=timezone.now() + timedelta(days=7),
            )

        ModelService.train(model)

        model.refresh_from_db()
        self.assertEqual(model.performance["recommendations_served"], 2)
        self.assertEqual(model.performance["click_through_rate"], 0.5)
        self.assertIsNotNone(model.last_trained_at)
        self.assertGreater(model.next_training_at, model.last_trained_at)


class MaintenanceServiceTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.user = make_user(self.tenant, "learner@example.com")
        self.course = make_course(self.tenant, "Python Programming", category="python", tags=["django"])
        self.service = MaintenanceService()

    def _recommendation(self, status, expires_in):
        return UserRecommendation.objects.create(
            tenant=self.tenant,
            user=self.user,
            course=self.course,
            recommendation_type="trending",
            confidence_score=0.6,
            relevance_score=0.5,
            status=status,
            expires_at=timezone.now() + expires_in,
        )

    def test_expiry_sweep_only_touches_past_due_active_rows(self):
        past_active = self._recommendation(RecommendationStatus.ACTIVE, timedelta(days=-1))
        past_clicked = self._recommendation(RecommendationStatus.CLICKED, timedelta(days=-1))
        future_active = self._recommendation(RecommendationStatus.ACTIVE, timedelta(days=1))

        self.assertEqual(self.service.expire_recommendations(), 1)

        statuses = dict(UserRecommendation.objects.values_list("id", "status"))
        self.assertEqual(statuses[past_active.id], RecommendationStatus.EXPIRED)
        self.assertEqual(statuses[past_clicked.id], RecommendationStatus.CLICKED)
        self.assertEqual(statuses[future_active.id], RecommendationStatus.ACTIVE)

    def test_refresh_creates_missing_and_stale_profiles(self):
        enroll(self.user, self.course)
        stale_user = make_user(self.tenant, "stale@example.com")
        stale = ProfileService().update(stale_user.id, self.tenant.id, {"learning_style": LearningStyle.VISUAL})
        UserLearningProfile.objects.filter(pk=stale.pk).update(
            last_profiled_at=timezone.now() - timedelta(days=2)
        )

        refreshed = self.service.refresh_stale_profiles()

        self.assertEqual(refreshed, 2)
        self.assertTrue(UserLearningProfile.objects.filter(user=self.user).exists())
        stale.refresh_from_db()
        self.assertGreater(stale.last_profiled_at, timezone.now() - timedelta(hours=1))
        self.assertEqual(stale.learning_style, LearningStyle.VISUAL)

    def test_similarity_job_extracts_missing_features(self):
        first = make_content(self.course, "Django models")
        make_content(self.course, "Django forms")

        self.service.recompute_content_similarities()

        self.assertEqual(ContentFeatures.objects.count(), 2)
        self.assertEqual(ContentSimilarity.objects.filter(content_item_1=first).count(), 1)

    def test_train_models_only_active(self):
        ModelService.create_model(self.tenant, "Idle", "trending")
        active = ModelService.create_model(self.tenant, "Live", "content_based")
        ModelService.set_active(active, True)

        self.assertEqual(self.service.train_models(), 1)


class RecommendationAnalyticsServiceTests(TestCase):
    def test_summary_rates(self):
        tenant = make_tenant()
        user = make_user(tenant, "learner@example.com")
        course = make_course(tenant, "SQL Basics")
        for clicked in (True, False, False, False):
            UserRecommendation.objects.create(
                tenant=tenant,
                user=user,
                course=course,
                recommendation_type="trending",
                source_strategies=["trending"],
                confidence_score=0.6,
                relevance_score=0.5,
                clicked_at=timezone.now() if clicked else None,
                user_feedback={"rating": 4} if clicked else None,
                expires_at=timezone.now() + timedelta(days=7),
            )

        summary = RecommendationAnalyticsService.summary(tenant.id, 30)

        self.assertEqual(summary["total_recommendations"], 4)
        self.assertEqual(summary["click_through_rate"], 0.25)
        self.assertEqual(summary["average_rating"], 4.0)
        self.assertEqual(summary["strategy_performance"]["trending"]["served"], 4)
        self.assertEqual(summary["top_recommended"][0]["count"], 4)
