from .history import (
    DTYPES,
    SessionHistoryRow,
    init_history,
    validate_rows,
    append_session_rows,
    load_history,
    query_path_trend,
    export_ndjson,
)

__all__ = [
    "DTYPES",
    "SessionHistoryRow",
    "init_history",
    "validate_rows",
    "append_session_rows",
    "load_history",
    "query_path_trend",
    "export_ndjson",
]
