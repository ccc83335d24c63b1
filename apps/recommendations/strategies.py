"""
Recommendation strategies.

Each strategy scores candidates for one learner from a single angle (profile
match, similar learners, trending courses, career goals, the page being
viewed...). Strategies only read through the injected stores and return
``ScoredCandidate`` lists; merging, filtering and persistence happen in the
ensemble and the services.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from django.utils import timezone
from sklearn.feature_extraction import DictVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from .models import RecommendationType
from .repositories import RecommendationStores
from .scoring import (
    CONTENT_BASED_THRESHOLD,
    content_profile_similarity,
    skill_gaps,
)

logger = logging.getLogger(__name__)


@dataclass
class ScoredCandidate:
    """A content item or course proposed by one or more strategies."""

    recommendation_type: str
    confidence_score: float
    relevance_score: float
    content_id: Any = None
    course_id: Any = None
    primary_topic: str | None = None
    reasoning: dict = field(default_factory=dict)
    sources: list = field(default_factory=list)

    @property
    def key(self):
        """Identity used to merge duplicates across strategies."""
        if self.content_id is not None:
            return ("content", str(self.content_id))
        return ("course", str(self.course_id))

    def to_dict(self) -> dict:
        return {
            "content_id": str(self.content_id) if self.content_id is not None else None,
            "course_id": str(self.course_id) if self.course_id is not None else None,
            "type": self.recommendation_type,
            "confidence_score": round(self.confidence_score, 4),
            "relevance_score": round(self.relevance_score, 4),
            "reasoning": self.reasoning,
            "sources": list(self.sources),
        }


@dataclass
class RecommendationFilters:
    content_types: list = field(default_factory=list)
    difficulty_levels: list = field(default_factory=list)
    max_duration: int | None = None
    exclude_completed: bool = False


@dataclass
class RecommendationRequest:
    user_id: Any
    tenant_id: Any
    context: dict = field(default_factory=dict)
    filters: RecommendationFilters = field(default_factory=RecommendationFilters)
    max_recommendations: int = 10
    diversity_level: float = 0.0


class BaseStrategy(ABC):
    """Abstract base class for all recommendation strategies."""

    recommendation_type = None
    default_limit = 20

    def __init__(self, stores: RecommendationStores = None, configuration: dict = None):
        self.stores = stores or RecommendationStores()
        self.configuration = configuration or {}

    @abstractmethod
    def recommend(self, profile, request: RecommendationRequest, limit: int = None) -> list[ScoredCandidate]:
        """Score candidates for the profile's learner."""

    def _limit(self, limit):
        return limit or self.configuration.get("parameters", {}).get("limit") or self.default_limit

    def _candidate(self, confidence, relevance, factors, explanation, **target):
        return ScoredCandidate(
            recommendation_type=self.recommendation_type,
            confidence_score=float(confidence),
            relevance_score=float(relevance),
            reasoning={"primary_factors": factors, "explanation": explanation},
            sources=[self.recommendation_type],
            **target,
        )


class ContentBasedStrategy(BaseStrategy):
    """Matches content features against the learner's interests and preferences."""

    recommendation_type = RecommendationType.CONTENT_BASED.value

    def recommend(self, profile, request, limit=None):
        seen = self.stores.history.interacted_content_ids(profile.user_id)
        candidates = []
        for features in self.stores.features.for_tenant(request.tenant_id):
            if features.content_item_id in seen:
                continue
            score, factors = content_profile_similarity(features, profile)
            if score < CONTENT_BASED_THRESHOLD:
                continue
            strong = [name for name, value in factors.items() if value >= 0.5]
            candidate = self._candidate(
                score,
                score,
                strong,
                "Matches your interests and learning preferences",
                content_id=features.content_item_id,
                primary_topic=features.primary_topic,
            )
            candidate.reasoning["factor_scores"] = {
                name: round(value, 4) for name, value in factors.items()
            }
            candidates.append(candidate)

        candidates.sort(key=lambda c: c.relevance_score, reverse=True)
        return candidates[: self._limit(limit)]


class CollaborativeStrategy(BaseStrategy):
    """Recommends what similar learners completed or nearly completed."""

    recommendation_type = RecommendationType.COLLABORATIVE.value
    neighbor_threshold = 0.3
    fallback_threshold = 0.1
    max_neighbors = 50

    def find_neighbors(self, user_id, tenant_id) -> list[tuple]:
        """``[(user_id, similarity), ...]`` at or above the neighbor threshold."""
        rows = self.stores.similarities.user_neighbors(user_id, tenant_id, self.max_neighbors)
        if rows:
            neighbors = [(row.user_2_id, row.similarity_score) for row in rows]
        else:
            neighbors = self.compute_neighbors(user_id, tenant_id)
        return [(uid, score) for uid, score in neighbors if score >= self.neighbor_threshold]

    def compute_neighbors(self, user_id, tenant_id) -> list[tuple]:
        """On-the-fly cosine similarity over learners' sparse behaviour vectors."""
        vectors = self.stores.history.user_feature_vectors(tenant_id)
        target = vectors.get(user_id)
        others = [uid for uid in vectors if uid != user_id]
        if not target or not others:
            return []

        matrix = DictVectorizer().fit_transform([target] + [vectors[uid] for uid in others])
        scores = cosine_similarity(matrix[0], matrix[1:]).ravel()
        neighbors = [
            (uid, float(score))
            for uid, score in zip(others, scores)
            if score > self.fallback_threshold
        ]
        neighbors.sort(key=lambda pair: pair[1], reverse=True)
        return neighbors[: self.max_neighbors]

    def recommend(self, profile, request, limit=None):
        neighbors = self.find_neighbors(profile.user_id, request.tenant_id)
        if not neighbors:
            return []

        seen = self.stores.history.interacted_content_ids(profile.user_id)
        interactions = self.stores.history.positive_interactions(uid for uid, _ in neighbors)
        totals = defaultdict(float)
        supporters = defaultdict(int)
        for neighbor_id, similarity in neighbors:
            for content_id, rating in interactions.get(neighbor_id, []):
                if content_id in seen:
                    continue
                totals[content_id] += rating * similarity
                supporters[content_id] += 1

        candidates = []
        for content_id, total in totals.items():
            score = total / len(neighbors)
            candidate = self._candidate(
                score,
                score,
                ["similar_learners"],
                f"Learners like you engaged with this ({supporters[content_id]} similar learners)",
                content_id=content_id,
            )
            candidates.append(candidate)

        candidates.sort(key=lambda c: c.relevance_score, reverse=True)
        return candidates[: self._limit(limit)]


class HybridStrategy(BaseStrategy):
    """Union of content-based and collaborative results with damped confidence."""

    recommendation_type = RecommendationType.HYBRID.value
    confidence_factor = 0.9

    def recommend(self, profile, request, limit=None):
        merged = {}
        for strategy_class in (ContentBasedStrategy, CollaborativeStrategy):
            strategy = strategy_class(self.stores, self.configuration)
            for candidate in strategy.recommend(profile, request, limit):
                candidate.recommendation_type = self.recommendation_type
                candidate.confidence_score *= self.confidence_factor
                candidate.sources = [self.recommendation_type]
                existing = merged.get(candidate.key)
                if existing is None or candidate.relevance_score > existing.relevance_score:
                    merged[candidate.key] = candidate

        candidates = sorted(merged.values(), key=lambda c: c.relevance_score, reverse=True)
        return candidates[: self._limit(limit)]


class TrendingStrategy(BaseStrategy):
    """Courses with the most enrollments in the organization over the last week."""

    recommendation_type = RecommendationType.TRENDING.value
    window_days = 7
    confidence = 0.6
    relevance = 0.5

    def recommend(self, profile, request, limit=None):
        since = timezone.now() - timedelta(days=self.window_days)
        rows = self.stores.history.recent_enrollment_counts(
            request.tenant_id, since, self._limit(limit)
        )
        return [
            self._candidate(
                self.confidence,
                self.relevance,
                ["popularity"],
                f"Trending: {row['enrollment_count']} new enrollments this week",
                course_id=row["course_id"],
            )
            for row in rows
        ]


class _SkillTargetingStrategy(BaseStrategy):
    confidence = 0.0
    relevance = 0.0

    @abstractmethod
    def target_skills(self, profile) -> list[str]:
        """Skills the recommended content should teach."""

    @abstractmethod
    def explanation(self, profile, matched) -> str:
        """Human readable reason shown with each candidate."""

    def recommend(self, profile, request, limit=None):
        gaps = self.target_skills(profile)
        if not gaps:
            return []

        wanted = {str(skill).lower() for skill in gaps}
        seen = self.stores.history.interacted_content_ids(profile.user_id)
        candidates = []
        for features in self.stores.features.with_any_skill(request.tenant_id, gaps):
            if features.content_item_id in seen:
                continue
            matched = [s for s in features.skills if str(s).lower() in wanted]
            candidate = self._candidate(
                self.confidence,
                self.relevance,
                ["skill_gap"],
                self.explanation(profile, matched),
                content_id=features.content_item_id,
                primary_topic=features.primary_topic,
            )
            candidate.reasoning["matched_skills"] = matched
            candidates.append(candidate)
        return candidates[: self._limit(limit)]


class CareerPathStrategy(_SkillTargetingStrategy):
    """Content teaching the skills the learner's target role still needs."""

    recommendation_type = RecommendationType.CAREER_PATH.value
    confidence = 0.85
    relevance = 0.9

    def target_skills(self, profile):
        career_path = profile.career_path or {}
        if not career_path:
            return []
        return career_path.get("skill_gaps") or skill_gaps(
            career_path.get("required_skills"), (profile.skill_levels or {}).keys()
        )

    def explanation(self, profile, matched):
        target_role = (profile.career_path or {}).get("target_role") or "your target"
        return f"Helps you progress toward {target_role} role"


class SkillGapStrategy(_SkillTargetingStrategy):
    """Content covering required skills the learner has no evidence for yet."""

    recommendation_type = RecommendationType.SKILL_GAP.value
    confidence = 0.8
    relevance = 0.85

    def target_skills(self, profile):
        career_path = profile.career_path or {}
        return skill_gaps(career_path.get("required_skills"), (profile.skill_levels or {}).keys())

    def explanation(self, profile, matched):
        return f"Builds missing skills: {', '.join(matched)}"


class ContextualStrategy(BaseStrategy):
    """Neighbors of the content currently being viewed, plus platform fitting picks."""

    recommendation_type = RecommendationType.CONTEXTUAL.value
    default_limit = 15
    mobile_max_minutes = 15
    mobile_score = 0.7

    def recommend(self, profile, request, limit=None):
        context = request.context or {}
        current = context.get("current_content")
        limit = self._limit(limit)
        candidates = {}

        if current:
            for row in self.stores.similarities.content_neighbors(current, request.tenant_id, limit):
                candidate = self._candidate(
                    row.similarity_score,
                    row.similarity_score,
                    ["current_content"],
                    "Related to what you are viewing now",
                    content_id=row.content_item_2_id,
                )
                candidates[candidate.key] = candidate

        if str(context.get("platform") or "").lower() == "mobile":
            for features in self.stores.features.short_content(
                request.tenant_id, self.mobile_max_minutes
            ):
                if str(features.content_item_id) == str(current):
                    continue
                candidate = self._candidate(
                    self.mobile_score,
                    self.mobile_score,
                    ["platform"],
                    "Short enough for a mobile session",
                    content_id=features.content_item_id,
                    primary_topic=features.primary_topic,
                )
                existing = candidates.get(candidate.key)
                if existing is None or candidate.relevance_score > existing.relevance_score:
                    candidates[candidate.key] = candidate

        ranked = sorted(candidates.values(), key=lambda c: c.relevance_score, reverse=True)
        return ranked[:limit]


STRATEGY_CLASSES = {
    RecommendationType.CONTENT_BASED.value: ContentBasedStrategy,
    RecommendationType.COLLABORATIVE.value: CollaborativeStrategy,
    RecommendationType.HYBRID.value: HybridStrategy,
    RecommendationType.TRENDING.value: TrendingStrategy,
    RecommendationType.CAREER_PATH.value: CareerPathStrategy,
    RecommendationType.SKILL_GAP.value: SkillGapStrategy,
    RecommendationType.CONTEXTUAL.value: ContextualStrategy,
}


def build_strategy(model_type, stores=None, configuration=None) -> BaseStrategy:
    try:
        strategy_class = STRATEGY_CLASSES[model_type]
    except KeyError:
        raise ValueError(f"Unknown recommendation model type: {model_type}")
    return strategy_class(stores, configuration)
