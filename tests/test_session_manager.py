import random
import tempfile
import unittest
from pathlib import Path

from dogdog.app import events
from dogdog.app.events import EventBus
from dogdog.app.session_manager import SessionManager, build_session_manager
from dogdog.config.config import validate_config
from dogdog.errors import NotInitializedError, SessionError
from dogdog.models import Checkpoint, FallbackAction, PathType, PowerUpType, RewardBundle
from dogdog.policy.rewards import BASE_REWARDS
from dogdog.samplers.question_pool import QuestionPool
from dogdog.stats.history import load_history
from dogdog.storage.store import ProgressStore

from tests.helpers import make_pool, make_questions

PATH = PathType.DOG_BREEDS


def _cfg():
    return validate_config({"storage": {"backend": "memory"}})


async def _answer(mgr: SessionManager, n: int, correct: bool):
    outcome = None
    for _ in range(n):
        q = mgr.current_question()
        assert q is not None
        index = q.correct_answer_index if correct else (q.correct_answer_index + 1) % q.answer_count
        outcome = await mgr.submit_answer(q.id, index)
    return outcome


class SessionManagerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.bus = EventBus()
        self.seen = []
        for name in (events.CHECKPOINT_REACHED, events.GAME_OVER, events.FALLBACK_APPLIED, events.SESSION_ENDED):
            self.bus.subscribe(name, lambda payload, name=name: self.seen.append((name, payload)))
        self.mgr = build_session_manager(_cfg(), bus=self.bus, seed=3, questions=make_questions(PATH))
        await self.mgr.initialize()

    async def test_start_session(self) -> None:
        snap = await self.mgr.start_session(PATH)
        self.assertEqual(snap.lives_remaining, 3)
        self.assertIsNotNone(snap.current_question)
        self.assertEqual(snap.next_checkpoint, Checkpoint.CHIHUAHUA)
        self.assertEqual(snap.questions_to_next, 10)
        self.assertEqual(snap.difficulty_level, 1)
        self.assertIsNone(snap.current_checkpoint)
        self.assertEqual(sum(snap.power_ups.values()), 0)

    async def test_checkpoint_after_ten_correct(self) -> None:
        await self.mgr.start_session(PATH)
        outcome = await _answer(self.mgr, 9, correct=True)
        self.assertIsNone(outcome.checkpoint_reached)
        outcome = await _answer(self.mgr, 1, correct=True)
        self.assertEqual(outcome.checkpoint_reached, Checkpoint.CHIHUAHUA)
        self.assertEqual(outcome.rewards, BASE_REWARDS[Checkpoint.CHIHUAHUA] + RewardBundle.uniform(1))
        self.assertIsNotNone(outcome.next_question)
        self.assertEqual(outcome.current_streak, 10)

        snap = self.mgr.snapshot()
        self.assertEqual(snap.current_checkpoint, Checkpoint.CHIHUAHUA)
        self.assertEqual(snap.next_checkpoint, Checkpoint.PUG)
        self.assertEqual(snap.power_ups[PowerUpType.HINT], 3)
        self.assertEqual(snap.power_ups[PowerUpType.SECOND_CHANCE], 1)
        self.assertEqual([name for name, _ in self.seen], [events.CHECKPOINT_REACHED])

        stored = await self.mgr.store.load(PATH)
        self.assertEqual(stored.completed_checkpoints, [Checkpoint.CHIHUAHUA])
        self.assertEqual(stored.correct_answers, 10)

    async def test_no_repeats_within_a_path(self) -> None:
        await self.mgr.start_session(PATH)
        asked = []
        for _ in range(25):
            q = self.mgr.current_question()
            asked.append(q.id)
            await self.mgr.submit_answer(q.id, q.correct_answer_index)
        self.assertEqual(len(asked), len(set(asked)))

    async def test_game_over_without_checkpoint_restarts(self) -> None:
        await self.mgr.start_session(PATH)
        await _answer(self.mgr, 4, correct=True)
        outcome = await _answer(self.mgr, 3, correct=False)
        self.assertTrue(outcome.game_over)
        self.assertEqual(outcome.lives_remaining, 0)
        self.assertIsNone(outcome.next_question)
        with self.assertRaises(SessionError):
            await self.mgr.submit_answer("anything", 0)

        result = await self.mgr.on_lives_exhausted()
        self.assertEqual(result.action, FallbackAction.RESTART_FROM_BEGINNING)
        snap = self.mgr.snapshot()
        self.assertEqual(snap.lives_remaining, 3)
        self.assertIsNotNone(snap.current_question)
        self.assertEqual(snap.questions_to_next, 10)
        stored = await self.mgr.store.load(PATH)
        self.assertEqual(stored.track_position, 0)
        self.assertEqual(stored.fallback_count, 1)
        self.assertEqual(stored.total_questions, 7)

    async def test_game_over_after_checkpoint_resets(self) -> None:
        await self.mgr.start_session(PATH)
        await _answer(self.mgr, 10, correct=True)
        await _answer(self.mgr, 2, correct=True)
        await _answer(self.mgr, 3, correct=False)
        result = await self.mgr.on_lives_exhausted()
        self.assertEqual(result.action, FallbackAction.RESET_TO_CHECKPOINT)
        self.assertEqual(result.checkpoint, Checkpoint.CHIHUAHUA)
        snap = self.mgr.snapshot()
        self.assertEqual(snap.lives_remaining, 3)
        self.assertEqual(snap.current_checkpoint, Checkpoint.CHIHUAHUA)
        self.assertEqual(snap.questions_to_next, 15)
        self.assertEqual(snap.power_ups[PowerUpType.HINT], 4)
        self.assertIn(events.FALLBACK_APPLIED, [name for name, _ in self.seen])
        stored = await self.mgr.store.load(PATH)
        self.assertEqual(stored.completed_checkpoints, [Checkpoint.CHIHUAHUA])

    async def test_lives_exhausted_requires_game_over(self) -> None:
        await self.mgr.start_session(PATH)
        with self.assertRaises(SessionError):
            await self.mgr.on_lives_exhausted()

    async def test_stale_question_rejected(self) -> None:
        await self.mgr.start_session(PATH)
        q = self.mgr.current_question()
        await self.mgr.submit_answer(q.id, q.correct_answer_index)
        with self.assertRaises(SessionError):
            await self.mgr.submit_answer(q.id, q.correct_answer_index)

    async def test_calls_before_start(self) -> None:
        with self.assertRaises(SessionError):
            await self.mgr.submit_answer("x", 0)
        with self.assertRaises(SessionError):
            self.mgr.snapshot()
        with self.assertRaises(SessionError):
            await self.mgr.end_session()

    async def test_power_ups(self) -> None:
        await self.mgr.start_session(PATH)
        empty = await self.mgr.use_power_up(PowerUpType.HINT)
        self.assertFalse(empty.success)

        await _answer(self.mgr, 10, correct=True)
        q = self.mgr.current_question()
        hint = await self.mgr.use_power_up(PowerUpType.HINT)
        self.assertTrue(hint.success)
        self.assertEqual(hint.hint, "Tipp")
        self.assertEqual(hint.remaining, 2)

        fifty = await self.mgr.use_power_up(PowerUpType.FIFTY_FIFTY)
        self.assertEqual(len(fifty.removed_answer_indices), 2)
        self.assertNotIn(q.correct_answer_index, fifty.removed_answer_indices)

        full = await self.mgr.use_power_up(PowerUpType.SECOND_CHANCE)
        self.assertFalse(full.success)
        self.assertEqual(full.remaining, 1)

        extra = await self.mgr.use_power_up(PowerUpType.EXTRA_TIME)
        self.assertEqual(extra.extra_seconds, 10)

        skipped = await self.mgr.use_power_up(PowerUpType.SKIP)
        self.assertTrue(skipped.success)
        self.assertIsNotNone(skipped.next_question)
        self.assertNotEqual(skipped.next_question.id, q.id)
        self.assertEqual(self.mgr.current_question().id, skipped.next_question.id)
        stored = await self.mgr.store.load(PATH)
        self.assertTrue(stored.has_answered(q.id))
        self.assertEqual(stored.total_questions, 10)

        await _answer(self.mgr, 1, correct=False)
        second = await self.mgr.use_power_up(PowerUpType.SECOND_CHANCE)
        self.assertTrue(second.success)
        self.assertEqual(second.lives_remaining, 3)

    async def test_power_ups_blocked_after_game_over(self) -> None:
        await self.mgr.start_session(PATH)
        await _answer(self.mgr, 10, correct=True)
        outcome = await _answer(self.mgr, 3, correct=False)
        self.assertTrue(outcome.game_over)

        second = await self.mgr.use_power_up(PowerUpType.SECOND_CHANCE)
        self.assertFalse(second.success)
        self.assertEqual(second.lives_remaining, 0)
        self.assertEqual(second.remaining, 1)
        self.assertFalse((await self.mgr.use_power_up(PowerUpType.EXTRA_TIME)).success)

        result = await self.mgr.on_lives_exhausted()
        self.assertEqual(result.action, FallbackAction.RESET_TO_CHECKPOINT)
        self.assertIsNotNone(self.mgr.current_question())

    async def test_pause_stops_clock(self) -> None:
        await self.mgr.start_session(PATH)
        self.mgr.tick(5)
        self.mgr.pause()
        self.mgr.tick(100)
        self.assertTrue(self.mgr.snapshot().is_paused)
        self.mgr.resume()
        self.mgr.tick(2)
        summary = await self.mgr.end_session()
        self.assertEqual(summary["timeSpent"], 7)

    async def test_end_session(self) -> None:
        await self.mgr.start_session(PATH)
        await _answer(self.mgr, 3, correct=True)
        await _answer(self.mgr, 1, correct=False)
        summary = await self.mgr.end_session()
        self.assertEqual(summary["questionsAnswered"], 4)
        self.assertEqual(summary["correctAnswers"], 3)
        self.assertEqual(summary["path"], PATH.value)
        self.assertFalse(self.mgr.has_session)
        self.assertIsNone(await self.mgr.store.load_session())
        stats = await self.mgr.store.load_global_stats()
        self.assertEqual(stats.total_game_sessions, 1)
        self.assertEqual(stats.total_questions_answered, 4)
        self.assertEqual(stats.favorite_path_type, PATH)
        progress = await self.mgr.store.load(PATH)
        self.assertAlmostEqual(progress.best_accuracy, 0.75)
        self.assertEqual(self.seen[-1][0], events.SESSION_ENDED)


class SessionLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_initialize_requires_loaded_pool(self) -> None:
        mgr = SessionManager(_cfg(), QuestionPool(), ProgressStore())
        with self.assertRaises(NotInitializedError):
            await mgr.initialize()

    async def test_start_requires_initialize(self) -> None:
        mgr = SessionManager(_cfg(), make_pool(), ProgressStore())
        with self.assertRaises(NotInitializedError):
            await mgr.start_session(PATH)

    async def test_resume_interrupted_session(self) -> None:
        store = ProgressStore()
        first = SessionManager(_cfg(), make_pool(), store, rng=random.Random(1))
        await first.initialize()
        await first.start_session(PATH)
        await _answer(first, 2, correct=False)
        current = first.current_question()

        second = SessionManager(_cfg(), make_pool(), store, rng=random.Random(2))
        await second.initialize()
        snap = await second.resume_session()
        self.assertIsNotNone(snap)
        self.assertEqual(snap.lives_remaining, 1)
        self.assertEqual(snap.current_question.id, current.id)

    async def test_resume_without_saved_session(self) -> None:
        mgr = SessionManager(_cfg(), make_pool(), ProgressStore())
        await mgr.initialize()
        self.assertIsNone(await mgr.resume_session())

    async def test_path_completion_reported_once(self) -> None:
        cfg = validate_config(
            {"storage": {"backend": "memory"}, "checkpoints": {"paths": {PATH.value: {"chihuahua": 2, "pug": 4}}}}
        )
        mgr = build_session_manager(cfg, seed=8, questions=make_questions(PATH))
        await mgr.initialize()
        await mgr.start_session(PATH)
        outcome = await _answer(mgr, 3, correct=True)
        self.assertFalse(outcome.path_completed)
        outcome = await _answer(mgr, 1, correct=True)
        self.assertTrue(outcome.path_completed)
        self.assertEqual(outcome.checkpoint_reached, Checkpoint.PUG)
        outcome = await _answer(mgr, 1, correct=True)
        self.assertFalse(outcome.path_completed)
        self.assertIsNone(outcome.checkpoint_reached)
        self.assertTrue(mgr.snapshot().is_completed)
        await mgr.end_session()
        self.assertEqual((await mgr.store.load_global_stats()).paths_completed, 1)

        await mgr.start_session(PATH)
        await _answer(mgr, 1, correct=True)
        await mgr.end_session()
        stats = await mgr.store.load_global_stats()
        self.assertEqual(stats.total_game_sessions, 2)
        self.assertEqual(stats.paths_completed, 1)

    async def test_history_row_written(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            history_dir = Path(tmp) / "history"
            mgr = SessionManager(_cfg(), make_pool(), ProgressStore(), history_dir=history_dir, rng=random.Random(4))
            await mgr.initialize()
            await mgr.start_session(PATH)
            await _answer(mgr, 5, correct=True)
            await mgr.end_session()
            df = load_history(history_dir)
            self.assertEqual(len(df), 1)
            self.assertEqual(int(df["questions"].iloc[0]), 5)
            self.assertEqual(str(df["path"].iloc[0]), PATH.value)


if __name__ == "__main__":
    unittest.main()
