import random
import unittest

from dogdog.errors import NotInitializedError
from dogdog.models import Difficulty, PathType
from dogdog.samplers.question_pool import QuestionPool

from tests.helpers import make_pool, make_question, make_questions


class QuestionPoolTests(unittest.TestCase):
    def test_sample_respects_exclusions_and_count(self) -> None:
        pool = make_pool()
        exclude = {f"dogBreeds-easy-{i}" for i in range(5)}
        batch = pool.sample(PathType.DOG_BREEDS, exclude, 12, 1)
        ids = [q.id for q in batch]
        self.assertEqual(len(ids), 12)
        self.assertEqual(len(set(ids)), 12)
        self.assertTrue(exclude.isdisjoint(ids))
        self.assertTrue(all(q.category is PathType.DOG_BREEDS for q in batch))

    def test_round_trip_non_repetition(self) -> None:
        pool = make_pool()
        exclude = set()
        first = pool.sample(PathType.DOG_BREEDS, exclude, 10, 2)
        exclude.update(q.id for q in first)
        second = pool.sample(PathType.DOG_BREEDS, exclude, 10, 2)
        self.assertTrue({q.id for q in first}.isdisjoint(q.id for q in second))
        self.assertLessEqual(len(second), 10)

    def test_under_fill_returns_all_remaining(self) -> None:
        pool = make_pool(make_questions(per_tier={Difficulty.EASY: 3, Difficulty.HARD: 2}))
        batch = pool.sample(PathType.DOG_BREEDS, set(), 20, 1)
        self.assertEqual(len(batch), 5)
        self.assertEqual(pool.sample(PathType.DOG_HEALTH, set(), 5, 1), [])
        self.assertEqual(pool.sample(PathType.DOG_BREEDS, set(), -3, 1), [])

    def test_exhausted_tier_falls_back_to_closest(self) -> None:
        # level 1 weights only easy and medium; only hard questions exist
        pool = make_pool(make_questions(per_tier={Difficulty.HARD: 4, Difficulty.EXPERT: 4}))
        batch = pool.sample(PathType.DOG_BREEDS, set(), 4, 1)
        self.assertEqual([q.difficulty for q in batch], [Difficulty.HARD] * 4)

    def test_low_level_prefers_easy(self) -> None:
        pool = make_pool(make_questions(per_tier={d: 50 for d in Difficulty}))
        batch = pool.sample(PathType.DOG_BREEDS, set(), 40, 1)
        easy = sum(1 for q in batch if q.difficulty is Difficulty.EASY)
        self.assertGreater(easy, 20)
        self.assertFalse(any(q.difficulty in (Difficulty.HARD, Difficulty.EXPERT) for q in batch))

    def test_explicit_weights(self) -> None:
        pool = make_pool()
        weights = {Difficulty.EASY: 0.0, Difficulty.MEDIUM: 0.0, Difficulty.HARD: 0.0, Difficulty.EXPERT: 1.0}
        batch = pool.sample(PathType.DOG_BREEDS, set(), 5, 1, weights=weights)
        self.assertTrue(all(q.difficulty is Difficulty.EXPERT for q in batch))

    def test_sampling_is_reproducible_with_seed(self) -> None:
        a = make_pool(seed=42).sample(PathType.DOG_BREEDS, set(), 10, 3)
        b = make_pool(seed=42).sample(PathType.DOG_BREEDS, set(), 10, 3)
        self.assertEqual([q.id for q in a], [q.id for q in b])

    def test_sample_for_restart_relaxes_exclusions(self) -> None:
        questions = make_questions(per_tier={Difficulty.EASY: 6})
        pool = make_pool(questions)
        answered = {q.id for q in questions[:5]}
        batch = pool.sample_for_restart(PathType.DOG_BREEDS, answered, 4, 1)
        ids = [q.id for q in batch]
        self.assertEqual(len(ids), 4)
        self.assertEqual(len(set(ids)), 4)
        self.assertIn(questions[5].id, ids)

    def test_counts(self) -> None:
        pool = make_pool(make_questions(per_tier={Difficulty.EASY: 3}))
        self.assertEqual(len(pool), 3)
        self.assertEqual(pool.available_count(PathType.DOG_BREEDS, {"dogBreeds-easy-0"}), 2)
        self.assertTrue(pool.has_enough(PathType.DOG_BREEDS, set(), 3))
        self.assertFalse(pool.has_enough(PathType.DOG_BREEDS, set(), 4))
        self.assertIn("dogBreeds-easy-1", pool)
        self.assertIsNotNone(pool.get("dogBreeds-easy-1"))
        self.assertIsNone(pool.get("missing"))

    def test_use_before_load_fails_fast(self) -> None:
        pool = QuestionPool(rng=random.Random(1))
        with self.assertRaises(NotInitializedError):
            pool.sample(PathType.DOG_BREEDS, set(), 1, 1)
        with self.assertRaises(NotInitializedError):
            pool.available_count(PathType.DOG_BREEDS)

    def test_duplicate_ids_rejected(self) -> None:
        pool = QuestionPool()
        with self.assertRaises(ValueError):
            pool.load([make_question("x"), make_question("x")])


if __name__ == "__main__":
    unittest.main()
