from .enums import Checkpoint, Difficulty, FallbackAction, PathType, PowerUpType
from .question import Question
from .progress import PathProgress
from .session import GameSession, MAX_LIVES
from .rewards import RewardBundle

__all__ = [
    "Checkpoint",
    "Difficulty",
    "FallbackAction",
    "PathType",
    "PowerUpType",
    "Question",
    "PathProgress",
    "GameSession",
    "MAX_LIVES",
    "RewardBundle",
]
