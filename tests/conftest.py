from pathlib import Path

import pytest

from doc_bot.models import WorkloadConfig
from doc_bot.recording import InMemoryRecordStore, RunRecorder

from fakes import WIDGET_SOURCE


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir():
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def widget_file(tmp_path):
    path = tmp_path / "Widget.cs"
    path.write_bytes(WIDGET_SOURCE.encode("utf-8"))
    return path


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def recorder(record_store):
    return RunRecorder(store=record_store, max_build_retries=10)


@pytest.fixture
def run(recorder):
    return recorder.start_run(model_name="fake-model", repository_url="file:///repo")


@pytest.fixture
def workload():
    return WorkloadConfig(max_build_retries=2)
