"""Tests for the individual recommendation strategies, run against in-memory stores."""

from types import SimpleNamespace
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from apps.recommendations.models import LearningStyle
from apps.recommendations.strategies import (
    CareerPathStrategy,
    CollaborativeStrategy,
    ContentBasedStrategy,
    ContextualStrategy,
    HybridStrategy,
    RecommendationRequest,
    SkillGapStrategy,
    TrendingStrategy,
    _SkillTargetingStrategy,
    build_strategy,
)


def features(content_id, topics=(), skills=(), difficulty="beginner", content_type="video", duration=30):
    return SimpleNamespace(
        content_item_id=content_id,
        topics=list(topics),
        skills=list(skills),
        difficulty_level=difficulty,
        content_characteristics={"content_type": content_type, "duration_minutes": duration},
        content_type=content_type,
        primary_topic=topics[0] if topics else None,
    )


def make_stores(feature_rows=(), seen=()):
    stores = SimpleNamespace(
        features=MagicMock(),
        history=MagicMock(),
        similarities=MagicMock(),
    )
    stores.features.for_tenant.return_value = list(feature_rows)
    stores.history.interacted_content_ids.return_value = set(seen)
    return stores


def make_profile(**overrides):
    values = {
        "user_id": "learner",
        "interests": {"topics": ["python"]},
        "preferences": {"content_types": ["video"], "difficulty_preference": "beginner"},
        "learning_style": LearningStyle.MIXED,
        "skill_levels": {"django": {"level": "beginner", "confidence": 0.6, "evidence_count": 1}},
        "career_path": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class ContentBasedStrategyTests(SimpleTestCase):
    def setUp(self):
        self.request = RecommendationRequest(user_id="learner", tenant_id="tenant")

    def test_keeps_matches_and_drops_weak_ones(self):
        stores = make_stores(
            [
                features("match", topics=["python"], skills=["django"]),
                features("weak", topics=["pottery"], difficulty="expert", content_type="text"),
            ]
        )

        candidates = ContentBasedStrategy(stores).recommend(make_profile(), self.request)

        self.assertEqual([c.content_id for c in candidates], ["match"])
        self.assertEqual(candidates[0].recommendation_type, "content_based")
        self.assertEqual(candidates[0].primary_topic, "python")
        self.assertIn("topic", candidates[0].reasoning["primary_factors"])

    def test_partial_topic_overlap_still_included(self):
        stores = make_stores([features("ml-intro", topics=["python", "ml"])])
        profile = make_profile(interests={"topics": ["python", "data"]})

        candidates = ContentBasedStrategy(stores).recommend(profile, self.request)

        self.assertEqual([c.content_id for c in candidates], ["ml-intro"])
        factor_scores = candidates[0].reasoning["factor_scores"]
        self.assertAlmostEqual(factor_scores["topic"], 0.3333)
        self.assertEqual(factor_scores["difficulty"], 1.0)
        self.assertEqual(factor_scores["content_type"], 1.0)
        self.assertGreater(candidates[0].relevance_score, 0.3)

    def test_skill_factor_uses_assessed_skills(self):
        stores = make_stores([features("orm", topics=["databases"], skills=["Django"])])

        candidates = ContentBasedStrategy(stores).recommend(make_profile(), self.request)

        self.assertEqual(candidates[0].reasoning["factor_scores"]["skill"], 1.0)
        self.assertIn("skill", candidates[0].reasoning["primary_factors"])

    def test_excludes_content_already_in_progress(self):
        stores = make_stores([features("match", topics=["python"], skills=["django"])], seen={"match"})

        self.assertEqual(ContentBasedStrategy(stores).recommend(make_profile(), self.request), [])


class CollaborativeStrategyTests(SimpleTestCase):
    def test_score_is_weighted_sum_over_neighbor_count(self):
        stores = make_stores()
        stores.similarities.user_neighbors.return_value = [
            SimpleNamespace(user_2_id="n1", similarity_score=0.8),
            SimpleNamespace(user_2_id="n2", similarity_score=0.4),
            SimpleNamespace(user_2_id="n3", similarity_score=0.2),  # below 0.3, ignored
        ]
        stores.history.positive_interactions.return_value = {
            "n1": [("c1", 1.0), ("c2", 0.9)],
            "n2": [("c1", 1.0)],
        }

        candidates = CollaborativeStrategy(stores).recommend(
            make_profile(), RecommendationRequest(user_id="learner", tenant_id="tenant")
        )

        scores = {c.content_id: c.relevance_score for c in candidates}
        self.assertAlmostEqual(scores["c1"], (0.8 + 0.4) / 2)
        self.assertAlmostEqual(scores["c2"], 0.9 * 0.8 / 2)
        self.assertEqual([c.content_id for c in candidates], ["c1", "c2"])

    def test_falls_back_to_on_the_fly_similarity(self):
        stores = make_stores()
        stores.similarities.user_neighbors.return_value = []
        stores.history.user_feature_vectors.return_value = {
            "learner": {"tag_python": 2.0, "completion_rate": 0.5},
            "twin": {"tag_python": 2.0, "completion_rate": 0.5},
            "stranger": {"tag_pottery": 1.0},
        }

        neighbors = CollaborativeStrategy(stores).find_neighbors("learner", "tenant")

        stores.similarities.user_neighbors.assert_called_once_with("learner", "tenant", 50)
        self.assertEqual([uid for uid, _ in neighbors], ["twin"])
        self.assertAlmostEqual(neighbors[0][1], 1.0)

    def test_no_neighbors_no_candidates(self):
        stores = make_stores()
        stores.similarities.user_neighbors.return_value = []
        stores.history.user_feature_vectors.return_value = {}

        candidates = CollaborativeStrategy(stores).recommend(
            make_profile(), RecommendationRequest(user_id="learner", tenant_id="tenant")
        )

        self.assertEqual(candidates, [])


class HybridStrategyTests(SimpleTestCase):
    def test_damps_confidence_and_relabels(self):
        stores = make_stores([features("match", topics=["python"], skills=["django"])])
        stores.similarities.user_neighbors.return_value = []
        stores.history.user_feature_vectors.return_value = {}

        candidates = HybridStrategy(stores).recommend(
            make_profile(), RecommendationRequest(user_id="learner", tenant_id="tenant")
        )

        self.assertEqual(len(candidates), 1)
        self.assertEqual(candidates[0].recommendation_type, "hybrid")
        self.assertAlmostEqual(candidates[0].confidence_score, 0.97 * 0.9)


class TrendingStrategyTests(SimpleTestCase):
    def test_courses_with_fixed_scores(self):
        stores = make_stores()
        stores.history.recent_enrollment_counts.return_value = [
            {"course_id": "course-1", "enrollment_count": 12},
            {"course_id": "course-2", "enrollment_count": 3},
        ]

        candidates = TrendingStrategy(stores).recommend(
            make_profile(), RecommendationRequest(user_id="learner", tenant_id="tenant")
        )

        self.assertEqual([c.course_id for c in candidates], ["course-1", "course-2"])
        self.assertTrue(all(c.confidence_score == 0.6 and c.relevance_score == 0.5 for c in candidates))
        self.assertIsNone(candidates[0].content_id)


class SkillTargetingStrategyTests(SimpleTestCase):
    def setUp(self):
        self.request = RecommendationRequest(user_id="learner", tenant_id="tenant")
        self.sql = features("sql-course", topics=["queries"], skills=["SQL"])
        self.stores = make_stores()
        self.stores.features.with_any_skill.return_value = [self.sql]

    def test_career_path_uses_declared_gaps(self):
        profile = make_profile(
            career_path={"target_role": "Data Engineer", "required_skills": ["Python"], "skill_gaps": ["SQL"]}
        )

        candidates = CareerPathStrategy(self.stores).recommend(profile, self.request)

        self.stores.features.with_any_skill.assert_called_once_with("tenant", ["SQL"])
        self.assertEqual(candidates[0].confidence_score, 0.85)
        self.assertEqual(candidates[0].relevance_score, 0.9)
        self.assertEqual(candidates[0].reasoning["explanation"], "Helps you progress toward Data Engineer role")

    def test_skill_gap_derives_gaps_from_skill_levels(self):
        profile = make_profile(
            career_path={"required_skills": ["Python", "SQL"]},
            skill_levels={"python": {"level": "intermediate"}},
        )

        candidates = SkillGapStrategy(self.stores).recommend(profile, self.request)

        self.stores.features.with_any_skill.assert_called_once_with("tenant", ["SQL"])
        self.assertEqual((candidates[0].confidence_score, candidates[0].relevance_score), (0.8, 0.85))
        self.assertEqual(candidates[0].reasoning["matched_skills"], ["SQL"])

    def test_without_career_path_nothing_is_recommended(self):
        self.assertEqual(CareerPathStrategy(self.stores).recommend(make_profile(), self.request), [])
        self.assertEqual(SkillGapStrategy(self.stores).recommend(make_profile(), self.request), [])

    def test_targeting_hooks_are_abstract(self):
        class Incomplete(_SkillTargetingStrategy):
            def target_skills(self, profile):
                return ["SQL"]

        with self.assertRaises(TypeError):
            Incomplete(self.stores)


class ContextualStrategyTests(SimpleTestCase):
    def test_neighbors_of_current_content(self):
        stores = make_stores()
        stores.similarities.content_neighbors.return_value = [
            SimpleNamespace(content_item_2_id="near", similarity_score=0.9),
            SimpleNamespace(content_item_2_id="far", similarity_score=0.2),
        ]
        request = RecommendationRequest(user_id="learner", tenant_id="tenant", context={"current_content": "now"})

        candidates = ContextualStrategy(stores).recommend(make_profile(), request)

        stores.similarities.content_neighbors.assert_called_once_with("now", "tenant", 15)
        self.assertEqual([(c.content_id, c.relevance_score) for c in candidates], [("near", 0.9), ("far", 0.2)])

    def test_mobile_adds_short_content(self):
        stores = make_stores()
        stores.features.short_content.return_value = [features("snack", topics=["python"], duration=10)]
        request = RecommendationRequest(user_id="learner", tenant_id="tenant", context={"platform": "mobile"})

        candidates = ContextualStrategy(stores).recommend(make_profile(), request)

        stores.features.short_content.assert_called_once_with("tenant", 15)
        self.assertEqual([(c.content_id, c.confidence_score) for c in candidates], [("snack", 0.7)])

    def test_no_context_no_candidates(self):
        stores = make_stores()
        request = RecommendationRequest(user_id="learner", tenant_id="tenant")

        self.assertEqual(ContextualStrategy(stores).recommend(make_profile(), request), [])


class BuildStrategyTests(SimpleTestCase):
    def test_known_type(self):
        strategy = build_strategy("trending", make_stores(), {"min_confidence": 0.2})

        self.assertIsInstance(strategy, TrendingStrategy)
        self.assertEqual(strategy.configuration["min_confidence"], 0.2)

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            build_strategy("astrology")
