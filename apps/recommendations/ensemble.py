import logging
from dataclasses import replace

from .strategies import ScoredCandidate

logger = logging.getLogger(__name__)


class EnsembleCombiner:
    """
    Merges the candidate lists of several strategies into one ranked list.

    Duplicates (same content or course) keep the highest confidence, the mean
    relevance and the union of contributing strategies.
    """

    def __init__(self, diversity_cap: int = 20):
        self.diversity_cap = diversity_cap

    def merge(self, candidates: list[ScoredCandidate]) -> list[ScoredCandidate]:
        merged = {}
        relevances = {}
        for candidate in candidates:
            key = candidate.key
            if key not in merged:
                merged[key] = replace(
                    candidate,
                    reasoning=dict(candidate.reasoning),
                    sources=list(candidate.sources),
                )
                relevances[key] = [candidate.relevance_score]
                continue

            current = merged[key]
            relevances[key].append(candidate.relevance_score)
            current.confidence_score = max(current.confidence_score, candidate.confidence_score)
            current.relevance_score = sum(relevances[key]) / len(relevances[key])
            current.primary_topic = current.primary_topic or candidate.primary_topic
            for source in candidate.sources:
                if source not in current.sources:
                    current.sources.append(source)
            factors = current.reasoning.setdefault("primary_factors", [])
            for factor in candidate.reasoning.get("primary_factors", []):
                if factor not in factors:
                    factors.append(factor)

        # sorted() is stable, so ties keep first-seen order
        return sorted(merged.values(), key=lambda c: c.relevance_score, reverse=True)

    def diversify(self, candidates: list[ScoredCandidate], diversity_level: float) -> list[ScoredCandidate]:
        """
        With a positive diversity level, admit an item only when its type or
        its primary topic has not been admitted yet. Always capped.
        """
        if not diversity_level or diversity_level <= 0:
            return candidates[: self.diversity_cap]

        admitted = []
        seen_types = set()
        seen_topics = set()
        for candidate in candidates:
            if len(admitted) >= self.diversity_cap:
                break
            topic = (candidate.primary_topic or "").lower() or None
            new_type = candidate.recommendation_type not in seen_types
            new_topic = topic is not None and topic not in seen_topics
            if new_type or new_topic:
                admitted.append(candidate)
                seen_types.add(candidate.recommendation_type)
                if topic is not None:
                    seen_topics.add(topic)
        return admitted

    def combine(self, candidates, diversity_level=0.0, max_recommendations=10) -> list[ScoredCandidate]:
        merged = self.merge(candidates)
        diverse = self.diversify(merged, diversity_level)
        logger.debug(
            f"Ensemble: {len(candidates)} candidates, {len(merged)} merged, {len(diverse)} after diversity"
        )
        return diverse[:max_recommendations]

    @staticmethod
    def diversity_score(candidates) -> float:
        if not candidates:
            return 0.0
        return len({c.recommendation_type for c in candidates}) / len(candidates)
