"""Tests for configuration models."""

import json

import pytest
from pydantic import ValidationError

from doc_bot.models import (
    MAX_BUILD_RETRIES_LIMIT,
    AppConfig,
    DocumentVisibility,
    MemberVisibility,
    WorkloadConfig,
)


class TestWorkloadConfig:
    def test_defaults(self):
        workload = WorkloadConfig()

        assert workload.batch_size == 10
        assert workload.validate_builds is True
        assert workload.max_build_retries == 2
        assert workload.revert_on_build_failure is True
        assert workload.document_visibility == DocumentVisibility.PUBLIC
        assert workload.require_all_files_succeed is False

    @pytest.mark.parametrize("value, expected", [(-3, 0), (0, 0), (4, 4), (99, MAX_BUILD_RETRIES_LIMIT)])
    def test_retries_clamped(self, value, expected):
        assert WorkloadConfig(max_build_retries=value).max_build_retries == expected

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            WorkloadConfig(batch_size=0)

    def test_visibility_case_insensitive(self):
        assert WorkloadConfig(document_visibility=" Internal ").document_visibility == (
            DocumentVisibility.INTERNAL
        )

    def test_unknown_visibility_rejected(self):
        with pytest.raises(ValidationError):
            WorkloadConfig(document_visibility="friends")


class TestDocumentVisibility:
    @pytest.mark.parametrize(
        "setting, visibility, allowed",
        [
            (DocumentVisibility.PUBLIC, MemberVisibility.PUBLIC, True),
            (DocumentVisibility.PUBLIC, MemberVisibility.INTERNAL, False),
            (DocumentVisibility.INTERNAL, MemberVisibility.PROTECTED_INTERNAL, True),
            (DocumentVisibility.INTERNAL, MemberVisibility.PRIVATE, False),
            (DocumentVisibility.ALL, MemberVisibility.PRIVATE, True),
        ],
    )
    def test_allows(self, setting, visibility, allowed):
        assert setting.allows(visibility) is allowed


class TestAppConfig:
    def test_from_file(self, tmp_path):
        path = tmp_path / "doc_bot.json"
        path.write_text(
            json.dumps({
                "workload": {"batch_size": 3, "ignore_projects": ["Demo.Tests"]},
                "ai_server": {"model_name": "mistral", "base_url": "http://localhost:11434/v1"},
                "database_path": "runs.db",
            }),
            encoding="utf-8",
        )

        config = AppConfig.from_file(path)

        assert config.workload.batch_size == 3
        assert config.workload.ignore_projects == {"Demo.Tests"}
        assert config.ai_server.model_name == "mistral"
        assert config.ai_server.provider == "auto"
        assert config.database_path == "runs.db"

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.from_file(tmp_path / "missing.json")

    def test_from_file_invalid(self, tmp_path):
        path = tmp_path / "doc_bot.json"
        path.write_text('{"ai_server": {"provider": "ollama"}}', encoding="utf-8")

        with pytest.raises(ValidationError):
            AppConfig.from_file(path)

    def test_workload_json_is_stable(self):
        config = AppConfig(workload=WorkloadConfig(batch_size=5, validate_builds=False))

        data = json.loads(config.workload_json())

        assert data["batch_size"] == 5
        assert data["validate_builds"] is False
        assert config.workload_json() == config.workload_json()
