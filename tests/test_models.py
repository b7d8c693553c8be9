import unittest

from dogdog.models import Checkpoint, Difficulty, GameSession, PathProgress, PathType, PowerUpType, Question
from dogdog.models.enums import parse_enum


class EnumTests(unittest.TestCase):
    def test_parse_legacy_strings(self) -> None:
        self.assertIs(parse_enum(PathType, "PathType.dogHealth"), PathType.DOG_HEALTH)
        self.assertIs(parse_enum(PathType, "dogHealth"), PathType.DOG_HEALTH)
        self.assertIs(parse_enum(Checkpoint, "GREAT_DANE"), Checkpoint.GREAT_DANE)
        with self.assertRaises(ValueError):
            parse_enum(PowerUpType, "teleport")

    def test_orders_and_points(self) -> None:
        self.assertEqual([c.order for c in Checkpoint], list(range(6)))
        self.assertEqual([d.points for d in Difficulty], [10, 15, 20, 25])
        self.assertEqual(Checkpoint.COCKER_SPANIEL.display_name, "Cocker Spaniel")


class PathProgressTests(unittest.TestCase):
    def test_fresh_progress(self) -> None:
        p = PathProgress(path_type=PathType.DOG_TRAINING)
        self.assertEqual(p.current_accuracy, 0.0)
        self.assertEqual(set(p.power_up_inventory), set(PowerUpType))
        self.assertFalse(p.is_completed)

    def test_record_answer(self) -> None:
        p = PathProgress(path_type=PathType.DOG_TRAINING)
        p.record_answer("a", True)
        p.record_answer("b", False)
        p.record_answer("a", True)
        self.assertEqual(p.answered_question_ids, ["a", "b"])
        self.assertEqual(p.total_questions, 3)
        self.assertEqual(p.correct_answers, 2)
        self.assertEqual(p.track_position, 2)
        self.assertAlmostEqual(p.segment_accuracy, 2 / 3)

    def test_mark_checkpoint_never_moves_current_back(self) -> None:
        p = PathProgress(path_type=PathType.DOG_TRAINING)
        p.mark_checkpoint(Checkpoint.PUG, final=False)
        p.mark_checkpoint(Checkpoint.CHIHUAHUA, final=False)
        self.assertEqual(p.completed_checkpoints, [Checkpoint.CHIHUAHUA, Checkpoint.PUG])
        self.assertEqual(p.current_checkpoint, Checkpoint.PUG)

    def test_use_power_up(self) -> None:
        p = PathProgress(path_type=PathType.DOG_TRAINING)
        self.assertFalse(p.use_power_up(PowerUpType.HINT))
        p.add_power_ups({PowerUpType.HINT: 1})
        self.assertTrue(p.use_power_up(PowerUpType.HINT))
        self.assertEqual(p.power_up_count(PowerUpType.HINT), 0)

    def test_reset_and_restart(self) -> None:
        p = PathProgress(path_type=PathType.DOG_TRAINING)
        for i in range(12):
            p.record_answer(str(i), True)
        p.reset_to_checkpoint(10)
        self.assertEqual(p.track_position, 10)
        self.assertEqual(p.correct_answers, 12)
        p.restart()
        self.assertEqual(p.track_position, 0)
        self.assertEqual(p.fallback_count, 2)
        self.assertEqual(len(p.answered_question_ids), 12)


class GameSessionTests(unittest.TestCase):
    def test_lives_are_clamped(self) -> None:
        s = GameSession(path_type=PathType.DOG_BREEDS, lives_remaining=7)
        self.assertEqual(s.lives_remaining, 3)
        for _ in range(5):
            s.lose_life()
        self.assertEqual(s.lives_remaining, 0)
        self.assertTrue(s.is_game_over)
        s.gain_life()
        self.assertEqual(s.lives_remaining, 1)

    def test_streaks(self) -> None:
        s = GameSession.start(PathType.DOG_BREEDS)
        for ok in (True, True, True, False, True):
            s.record_answer("q", ok)
        self.assertEqual(s.current_streak, 1)
        self.assertEqual(s.best_streak, 3)
        stats = s.stats()
        self.assertEqual(stats["questionsAnswered"], 5)
        self.assertEqual(stats["correctAnswers"], 4)


class QuestionTests(unittest.TestCase):
    DATA = {
        "id": "q1",
        "category": "dogBreeds",
        "difficulty": "easy+",
        "text": {"de": "Frage", "en": "Question"},
        "answers": {"de": ["Ja", "Nein", "Vielleicht"], "en": ["Yes", "No", "Maybe"]},
        "correctAnswerIndex": 1,
        "hint": {"de": "Tipp"},
    }

    def test_from_json_accepts_legacy_difficulty(self) -> None:
        q = Question.from_json(self.DATA)
        self.assertIs(q.difficulty, Difficulty.EASY)
        self.assertEqual(q.points, 10)
        self.assertTrue(q.is_correct(1))
        self.assertEqual(q.answer_count, 3)

    def test_locale_fallback(self) -> None:
        q = Question.from_json(self.DATA)
        self.assertEqual(q.text_for("en"), "Question")
        self.assertEqual(q.text_for("es"), "Frage")
        self.assertEqual(q.hint_for("en"), "Tipp")
        self.assertIsNone(q.fun_fact_for("de"))
        self.assertEqual(q.correct_answer_for("en"), "No")

    def test_json_round_trip(self) -> None:
        q = Question.from_json(self.DATA)
        self.assertEqual(Question.from_json(q.to_json()), q)


if __name__ == "__main__":
    unittest.main()
