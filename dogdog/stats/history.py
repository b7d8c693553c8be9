from __future__ import annotations

"""Parquet-backed session history using pandas + pyarrow.

Unit of data: one summary row per finished session.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Literal, Optional

import pandas as pd
from pandas.api.types import CategoricalDtype
from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.enums import Checkpoint, PathType

HISTORY_FILE = "session_history.parquet"

PATHS = {p.value for p in PathType}
CHECKPOINTS = {c.value for c in Checkpoint}


def _cat_dtype(categories: set[str]) -> CategoricalDtype:
    return CategoricalDtype(categories=sorted(categories), ordered=False)


DTYPES = {
    "session_id": "string",
    "session_start": pd.DatetimeTZDtype(tz="UTC"),
    "path": _cat_dtype(PATHS),
    "questions": "UInt16",
    "correct": "UInt16",
    "time_spent_s": "UInt32",
    "best_streak": "UInt16",
    "power_ups_used": "UInt16",
    "lives_lost": "UInt16",
    "fallbacks": "UInt8",
    "checkpoint": _cat_dtype(CHECKPOINTS),
    "path_completed": "boolean",
}


class SessionHistoryRow(BaseModel):
    session_id: str
    session_start: datetime
    path: Literal[tuple(PATHS)]  # type: ignore[valid-type]
    questions: int = Field(ge=0, le=65535)
    correct: int = Field(ge=0, le=65535)
    time_spent_s: int = Field(default=0, ge=0, le=4294967295)
    best_streak: int = Field(default=0, ge=0, le=65535)
    power_ups_used: int = Field(default=0, ge=0, le=65535)
    lives_lost: int = Field(default=0, ge=0, le=65535)
    fallbacks: int = Field(default=0, ge=0, le=255)
    checkpoint: Optional[Literal[tuple(CHECKPOINTS)]] = None  # type: ignore[valid-type]
    path_completed: bool = False

    @field_validator("session_start")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _correct_le_questions(self) -> "SessionHistoryRow":
        if self.correct > self.questions:
            raise ValueError("correct must be <= questions")
        return self


def _empty_df() -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in DTYPES.items()})


def _fix_dtypes(df: pd.DataFrame) -> pd.DataFrame:
    for col, dt in DTYPES.items():
        if col not in df.columns:
            df[col] = pd.NA
        df[col] = df[col].astype(dt)
    return df[list(DTYPES.keys())]


def init_history(data_dir: Path) -> Path:
    """Ensure the data directory and an empty history table exist; return the table path."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    f = data_dir / HISTORY_FILE
    if not f.exists():
        _empty_df().to_parquet(f, engine="pyarrow", compression="zstd", index=False)
    return f


def validate_rows(rows: Iterable[SessionHistoryRow | dict[str, Any]]) -> pd.DataFrame:
    """Validate rows with SessionHistoryRow and return a DataFrame with the table dtypes."""
    models = [r if isinstance(r, SessionHistoryRow) else SessionHistoryRow.model_validate(r) for r in rows]
    if not models:
        return _empty_df()
    df = pd.DataFrame([m.model_dump() for m in models])
    return _fix_dtypes(df)


def append_session_rows(df_new: pd.DataFrame, data_dir: Path) -> None:
    """Append rows to the history table, dropping exact duplicates."""
    f = init_history(data_dir)
    df_old = pd.read_parquet(f, engine="pyarrow")
    combined = pd.concat([_fix_dtypes(df_old), _fix_dtypes(df_new.copy())], ignore_index=True)
    combined = _fix_dtypes(combined).drop_duplicates()
    combined.to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def load_history(data_dir: Path) -> pd.DataFrame:
    """Load the full history with an `acc` (correct / questions) convenience column."""
    f = Path(data_dir) / HISTORY_FILE
    if not f.exists():
        return _empty_df().assign(acc=pd.Series(dtype="float32"))
    df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"))
    q = df["questions"].astype("float32").where(df["questions"] > 0, other=1.0)
    df["acc"] = (df["correct"].astype("float32") / q).astype("float32")
    return df


def query_path_trend(df: pd.DataFrame, *, path: PathType | str) -> pd.DataFrame:
    """Rows for one path, oldest session first."""
    value = path.value if isinstance(path, PathType) else str(path)
    if value not in PATHS:
        raise ValueError(f"Unknown path: {path}")
    dff = df[df["path"].astype("string") == value]
    return dff.sort_values("session_start").reset_index(drop=True)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")
