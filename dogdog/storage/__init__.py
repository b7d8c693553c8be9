from .backends import JsonFileBackend, KeyValueBackend, MemoryBackend
from .migration import MigrationReport, migrate_backend
from .schema import GameSessionRecord, GlobalStatsRecord, PathProgressRecord
from .store import ProgressStore

__all__ = [
    "JsonFileBackend",
    "KeyValueBackend",
    "MemoryBackend",
    "MigrationReport",
    "migrate_backend",
    "GameSessionRecord",
    "GlobalStatsRecord",
    "PathProgressRecord",
    "ProgressStore",
]
