"""SQLite-backed store for run accounting records."""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from uuid import UUID

from doc_bot.models import AIInteraction, BuildAttempt, FileResult, RunRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS runs (
    run_id TEXT PRIMARY KEY,
    start_time TEXT NOT NULL,
    end_time TEXT,
    workload_type TEXT NOT NULL,
    repository_url TEXT,
    branch_name TEXT,
    model_name TEXT,
    server_url TEXT,
    configuration_json TEXT,
    total_files_discovered INTEGER NOT NULL DEFAULT 0,
    files_selected INTEGER NOT NULL DEFAULT 0,
    files_succeeded INTEGER NOT NULL DEFAULT 0,
    files_failed INTEGER NOT NULL DEFAULT 0,
    files_skipped INTEGER NOT NULL DEFAULT 0,
    total_build_failures INTEGER NOT NULL DEFAULT 0,
    total_build_retries INTEGER NOT NULL DEFAULT 0,
    total_prompt_tokens INTEGER NOT NULL DEFAULT 0,
    total_response_tokens INTEGER NOT NULL DEFAULT 0,
    total_items_documented INTEGER NOT NULL DEFAULT 0,
    total_sanitization_fixes INTEGER NOT NULL DEFAULT 0,
    success INTEGER NOT NULL DEFAULT 0,
    error_message TEXT,
    pull_request_url TEXT
);
CREATE INDEX IF NOT EXISTS idx_runs_model_name ON runs(model_name);

CREATE TABLE IF NOT EXISTS file_results (
    run_id TEXT NOT NULL,
    file_index INTEGER NOT NULL,
    file_path TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    success INTEGER NOT NULL DEFAULT 0,
    was_modified INTEGER NOT NULL DEFAULT 0,
    members_processed INTEGER NOT NULL DEFAULT 0,
    members_already_documented INTEGER NOT NULL DEFAULT 0,
    members_documented INTEGER NOT NULL DEFAULT 0,
    sanitization_fixes INTEGER NOT NULL DEFAULT 0,
    prompt_tokens INTEGER NOT NULL DEFAULT 0,
    response_tokens INTEGER NOT NULL DEFAULT 0,
    build_attempt_count INTEGER NOT NULL DEFAULT 0,
    build_passed INTEGER,
    was_reverted INTEGER NOT NULL DEFAULT 0,
    outcome TEXT,
    error_message TEXT,
    PRIMARY KEY(run_id, file_index),
    FOREIGN KEY(run_id) REFERENCES runs(run_id)
);

CREATE TABLE IF NOT EXISTS build_attempts (
    run_id TEXT NOT NULL,
    file_index INTEGER NOT NULL,
    attempt_number INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    duration_seconds REAL NOT NULL DEFAULT 0,
    success INTEGER NOT NULL,
    error_count INTEGER NOT NULL DEFAULT 0,
    warning_count INTEGER NOT NULL DEFAULT 0,
    errors_json TEXT,
    ai_fix_attempted INTEGER NOT NULL DEFAULT 0,
    raw_output TEXT,
    PRIMARY KEY(run_id, file_index, attempt_number),
    FOREIGN KEY(run_id, file_index) REFERENCES file_results(run_id, file_index)
);

CREATE TABLE IF NOT EXISTS ai_interactions (
    run_id TEXT NOT NULL,
    file_index INTEGER NOT NULL,
    sequence INTEGER NOT NULL,
    interaction_type TEXT NOT NULL,
    start_time TEXT NOT NULL,
    duration_seconds REAL NOT NULL DEFAULT 0,
    prompt TEXT,
    response TEXT,
    prompt_tokens INTEGER NOT NULL DEFAULT 0,
    response_tokens INTEGER NOT NULL DEFAULT 0,
    applied INTEGER NOT NULL DEFAULT 0,
    build_fix_attempt INTEGER,
    member_name TEXT,
    PRIMARY KEY(run_id, file_index, sequence),
    FOREIGN KEY(run_id, file_index) REFERENCES file_results(run_id, file_index)
);
"""

_RUN_COLUMNS = (
    "run_id", "start_time", "end_time", "workload_type", "repository_url",
    "branch_name", "model_name", "server_url", "configuration_json",
    "total_files_discovered", "files_selected", "files_succeeded", "files_failed",
    "files_skipped", "total_build_failures", "total_build_retries",
    "total_prompt_tokens", "total_response_tokens", "total_items_documented",
    "total_sanitization_fixes", "success", "error_message", "pull_request_url",
)
_FILE_COLUMNS = (
    "file_path", "start_time", "end_time", "success", "was_modified",
    "members_processed", "members_already_documented", "members_documented",
    "sanitization_fixes", "prompt_tokens", "response_tokens", "build_attempt_count",
    "build_passed", "was_reverted", "outcome", "error_message",
)
_ATTEMPT_COLUMNS = (
    "attempt_number", "start_time", "duration_seconds", "success", "error_count",
    "warning_count", "errors_json", "ai_fix_attempted", "raw_output",
)
_INTERACTION_COLUMNS = (
    "interaction_type", "start_time", "duration_seconds", "prompt", "response",
    "prompt_tokens", "response_tokens", "applied", "build_fix_attempt", "member_name",
)


class SQLiteRecordStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _initialize(self) -> None:
        with closing(self._connect()) as conn:
            conn.executescript(_SCHEMA)
            conn.commit()

    def save_run(self, run: RunRecord) -> None:
        values = _row_values(run.model_dump(mode="json"), _RUN_COLUMNS)
        placeholders = ", ".join("?" for _ in _RUN_COLUMNS)
        updates = ", ".join(f"{column} = excluded.{column}" for column in _RUN_COLUMNS[1:])
        with closing(self._connect()) as conn:
            conn.execute(
                f"INSERT INTO runs ({', '.join(_RUN_COLUMNS)}) VALUES ({placeholders}) "
                f"ON CONFLICT(run_id) DO UPDATE SET {updates}",
                values,
            )
            conn.commit()

    def save_file_result(self, run_id: UUID, index: int, file_result: FileResult) -> None:
        key = (str(run_id), index)
        data = file_result.model_dump(mode="json")
        with closing(self._connect()) as conn:
            for table in ("ai_interactions", "build_attempts", "file_results"):
                conn.execute(
                    f"DELETE FROM {table} WHERE run_id = ? AND file_index = ?", key
                )
            conn.execute(
                f"INSERT INTO file_results (run_id, file_index, {', '.join(_FILE_COLUMNS)}) "
                f"VALUES (?, ?, {', '.join('?' for _ in _FILE_COLUMNS)})",
                key + _row_values(data, _FILE_COLUMNS),
            )
            conn.executemany(
                f"INSERT INTO build_attempts (run_id, file_index, {', '.join(_ATTEMPT_COLUMNS)}) "
                f"VALUES (?, ?, {', '.join('?' for _ in _ATTEMPT_COLUMNS)})",
                [key + _row_values(attempt, _ATTEMPT_COLUMNS) for attempt in data["build_attempts"]],
            )
            conn.executemany(
                f"INSERT INTO ai_interactions (run_id, file_index, sequence, "
                f"{', '.join(_INTERACTION_COLUMNS)}) "
                f"VALUES (?, ?, ?, {', '.join('?' for _ in _INTERACTION_COLUMNS)})",
                [
                    key + (sequence,) + _row_values(interaction, _INTERACTION_COLUMNS)
                    for sequence, interaction in enumerate(data["ai_interactions"])
                ],
            )
            conn.commit()

    def get_run(self, run_id: UUID) -> RunRecord | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM runs WHERE run_id = ?", (str(run_id),)
            ).fetchone()
            if row is None:
                return None
            return self._load_run(conn, row)

    def list_runs(self) -> list[RunRecord]:
        with closing(self._connect()) as conn:
            rows = conn.execute("SELECT * FROM runs ORDER BY start_time").fetchall()
            return [self._load_run(conn, row) for row in rows]

    def _load_run(self, conn: sqlite3.Connection, row: sqlite3.Row) -> RunRecord:
        run_id = row["run_id"]
        file_results = []
        file_rows = conn.execute(
            "SELECT * FROM file_results WHERE run_id = ? ORDER BY file_index", (run_id,)
        ).fetchall()
        for file_row in file_rows:
            key = (run_id, file_row["file_index"])
            attempts = conn.execute(
                "SELECT * FROM build_attempts WHERE run_id = ? AND file_index = ? "
                "ORDER BY attempt_number",
                key,
            ).fetchall()
            interactions = conn.execute(
                "SELECT * FROM ai_interactions WHERE run_id = ? AND file_index = ? "
                "ORDER BY sequence",
                key,
            ).fetchall()
            data = dict(file_row)
            data["build_attempts"] = [
                BuildAttempt.model_validate(dict(attempt)) for attempt in attempts
            ]
            data["ai_interactions"] = [
                AIInteraction.model_validate(dict(interaction)) for interaction in interactions
            ]
            file_results.append(FileResult.model_validate(data))

        data = dict(row)
        data["file_results"] = file_results
        return RunRecord.model_validate(data)


def _row_values(data: dict, columns: tuple[str, ...]) -> tuple:
    values = []
    for column in columns:
        value = data.get(column)
        if isinstance(value, bool):
            value = int(value)
        values.append(value)
    return tuple(values)
