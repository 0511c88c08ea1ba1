"""Run accounting: recorder, statistics and record stores."""

from doc_bot.recording.contracts import RecordStore
from doc_bot.recording.memory_store import InMemoryRecordStore
from doc_bot.recording.recorder import RunRecorder
from doc_bot.recording.sqlite_store import SQLiteRecordStore
from doc_bot.recording.statistics import ModelStatistics, RunStatistics, compare_models

__all__ = [
    "InMemoryRecordStore",
    "ModelStatistics",
    "RecordStore",
    "RunRecorder",
    "RunStatistics",
    "SQLiteRecordStore",
    "compare_models",
]
