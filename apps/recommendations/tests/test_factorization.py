"""Tests for the SGD matrix factorizer."""

from types import SimpleNamespace

import numpy as np
from django.test import SimpleTestCase

from apps.recommendations.factorization import MatrixFactorizationRecommender, MatrixFactorizer


class MatrixFactorizerTests(SimpleTestCase):
    def test_reconstructs_single_observed_cell(self):
        factorizer = MatrixFactorizer(n_factors=200, random_state=7).fit(np.array([[1.0]]))

        self.assertAlmostEqual(factorizer.predict(0, 0), 1.0, delta=0.2)

    def test_predict_all_shape(self):
        matrix = np.array([[1.0, 0.0, 0.5], [0.0, 1.0, 0.0]])
        factorizer = MatrixFactorizer(n_factors=4, iterations=5, random_state=1).fit(matrix)

        self.assertEqual(factorizer.predict_all().shape, (2, 3))

    def test_seeded_runs_are_reproducible(self):
        matrix = np.array([[1.0, 0.0], [1.0, 1.0]])
        first = MatrixFactorizer(n_factors=8, random_state=3).fit(matrix).predict_all()
        second = MatrixFactorizer(n_factors=8, random_state=3).fit(matrix).predict_all()

        np.testing.assert_allclose(first, second)

    def test_predict_requires_fit(self):
        with self.assertRaises(RuntimeError):
            MatrixFactorizer().predict(0, 0)

    def test_rank_must_be_positive(self):
        with self.assertRaises(ValueError):
            MatrixFactorizer(n_factors=0)


class MatrixFactorizationRecommenderTests(SimpleTestCase):
    def _recommender(self, user_ids, content_ids, matrix):
        history = SimpleNamespace(interaction_matrix=lambda tenant_id: (user_ids, content_ids, matrix))
        return MatrixFactorizationRecommender(
            SimpleNamespace(history=history), n_factors=10, random_state=11
        )

    def test_recommends_only_unseen_content(self):
        recommender = self._recommender(
            ["u1", "u2"], ["c1", "c2"], np.array([[1.0, 0.0], [1.0, 1.0]])
        )

        candidates = recommender.recommend("u1", "tenant")

        self.assertEqual([c.content_id for c in candidates], ["c2"])
        self.assertEqual(candidates[0].sources, ["matrix_factorization"])
        self.assertGreater(candidates[0].relevance_score, 0.0)
        self.assertLessEqual(candidates[0].relevance_score, 1.0)

    def test_unknown_user_gets_nothing(self):
        recommender = self._recommender(["u1"], ["c1"], np.array([[1.0]]))

        self.assertEqual(recommender.recommend("someone-else", "tenant"), [])
