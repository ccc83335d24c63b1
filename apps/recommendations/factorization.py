"""
Latent factor recommendations via stochastic gradient descent.

Kept separate from the ensemble: it scores every unseen (learner, content)
pair of an organization at once and is exposed as its own endpoint.
"""

import logging

import numpy as np

from .models import RecommendationType
from .repositories import RecommendationStores
from .strategies import ScoredCandidate

logger = logging.getLogger(__name__)


class MatrixFactorizer:
    """
    Factor a user x item matrix R into P (users x k) and Q (items x k) so that
    ``P[u] @ Q[i]`` approximates every observed (non-zero) cell.
    """

    def __init__(
        self,
        n_factors: int = 50,
        learning_rate: float = 0.01,
        regularization: float = 0.01,
        iterations: int = 100,
        init_scale: float = 0.1,
        random_state=None,
    ):
        if n_factors < 1:
            raise ValueError("n_factors must be at least 1")
        self.n_factors = n_factors
        self.learning_rate = learning_rate
        self.regularization = regularization
        self.iterations = iterations
        self.init_scale = init_scale
        self.random_state = random_state
        self.user_factors = None
        self.item_factors = None

    def fit(self, matrix) -> "MatrixFactorizer":
        matrix = np.asarray(matrix, dtype=float)
        n_users, n_items = matrix.shape
        rng = np.random.default_rng(self.random_state)
        P = rng.random((n_users, self.n_factors)) * self.init_scale
        Q = rng.random((n_items, self.n_factors)) * self.init_scale

        observed = np.argwhere(matrix > 0)
        lr, reg = self.learning_rate, self.regularization
        for _ in range(self.iterations):
            for u, i in observed:
                error = matrix[u, i] - P[u] @ Q[i]
                user_row = P[u].copy()
                P[u] += lr * (error * Q[i] - reg * P[u])
                Q[i] += lr * (error * user_row - reg * Q[i])

        self.user_factors = P
        self.item_factors = Q
        return self

    def predict(self, user_index, item_index) -> float:
        if self.user_factors is None:
            raise RuntimeError("MatrixFactorizer.fit() must be called before predict()")
        return float(self.user_factors[user_index] @ self.item_factors[item_index])

    def predict_all(self):
        if self.user_factors is None:
            raise RuntimeError("MatrixFactorizer.fit() must be called before predict_all()")
        return self.user_factors @ self.item_factors.T


class MatrixFactorizationRecommender:
    """Recommends unseen content from factors fitted on the organization's completion data."""

    def __init__(self, stores: RecommendationStores = None, n_factors: int = 50, random_state=None):
        self.stores = stores or RecommendationStores()
        self.n_factors = n_factors
        self.random_state = random_state

    def recommend(self, user_id, tenant_id, limit: int = 20) -> list[ScoredCandidate]:
        user_ids, content_ids, matrix = self.stores.history.interaction_matrix(tenant_id)
        if user_id not in user_ids or not content_ids:
            logger.info(f"No interaction data for user {user_id}; skipping matrix factorization")
            return []

        factorizer = MatrixFactorizer(n_factors=self.n_factors, random_state=self.random_state)
        factorizer.fit(matrix)

        row = user_ids.index(user_id)
        predictions = factorizer.predict_all()[row]
        candidates = []
        for column, content_id in enumerate(content_ids):
            score = float(predictions[column])
            if matrix[row, column] > 0 or score <= 0:
                continue
            bounded = min(score, 1.0)
            candidates.append(
                ScoredCandidate(
                    recommendation_type=RecommendationType.COLLABORATIVE.value,
                    confidence_score=bounded,
                    relevance_score=bounded,
                    content_id=content_id,
                    reasoning={
                        "primary_factors": ["latent_factors"],
                        "explanation": "Predicted from learners with similar completion patterns",
                        "predicted_score": round(score, 4),
                    },
                    sources=["matrix_factorization"],
                )
            )

        candidates.sort(key=lambda c: c.relevance_score, reverse=True)
        return candidates[:limit]
