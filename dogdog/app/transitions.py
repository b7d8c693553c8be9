from __future__ import annotations

"""State transitions applied after answers, checkpoints and fallbacks.

Pure with respect to storage: these functions only mutate the records they
are given.
"""

from typing import List, Tuple

from ..models.enums import Checkpoint, FallbackAction
from ..models.progress import PathProgress
from ..models.rewards import RewardBundle
from ..models.session import GameSession
from ..policy.checkpoints import CheckpointTrack
from ..policy.fallback import FallbackResult
from ..policy.rewards import RewardTable


def apply_answer(progress: PathProgress, session: GameSession, question_id: str, correct: bool) -> None:
    progress.record_answer(question_id, correct)
    session.record_answer(question_id, correct)
    if not correct:
        session.lose_life()


def award_checkpoints(
    progress: PathProgress,
    track: CheckpointTrack,
    rewards: RewardTable,
) -> List[Tuple[Checkpoint, RewardBundle]]:
    """Complete every checkpoint due at the current track position and grant its rewards.

    Accuracy is taken over the answers since the previous checkpoint, before
    any of them is marked.
    """
    due = track.due_checkpoints(progress.track_position)
    if not due:
        return []
    accuracy = progress.segment_accuracy
    awarded: List[Tuple[Checkpoint, RewardBundle]] = []
    for cp in due:
        bundle = rewards.rewards_for(cp, accuracy)
        track.complete_checkpoint(cp)
        progress.mark_checkpoint(cp, final=cp == track.final_checkpoint)
        progress.add_power_ups(bundle)
        awarded.append((cp, bundle))
    return awarded


def apply_fallback(
    progress: PathProgress,
    session: GameSession,
    track: CheckpointTrack,
    result: FallbackResult,
) -> None:
    session.restore_lives(result.restored_lives)
    progress.add_power_ups(result.awarded_power_ups)
    if result.action is FallbackAction.RESET_TO_CHECKPOINT and result.checkpoint is not None:
        progress.reset_to_checkpoint(track.threshold_for(result.checkpoint))
    elif result.action is FallbackAction.RESTART_FROM_BEGINNING:
        progress.restart()
