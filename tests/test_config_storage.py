"""Tests for settings, logging setup, collaborators and blob storage."""

import structlog
import pytest
from uuid_extensions import uuid7

from povsync.collaborators import LoggingNotifier, RecordingNotifier
from povsync.config.logging import configure_logging
from povsync.config.settings import Environment, LogLevel, Settings
from povsync.storage import BlobStorage


class TestSettings:

    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)
        assert settings.ENVIRONMENT == Environment.DEV
        assert settings.LOG_LEVEL == LogLevel.INFO
        assert settings.DATABASE_URL.startswith("postgresql+asyncpg://")
        assert settings.ENVIRONMENT != Environment.PROD

    def test_environment_override(self, monkeypatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("DOCUMENTS_BUCKET", "prod-docs")
        settings = Settings(_env_file=None)
        assert settings.ENVIRONMENT == Environment.PROD
        assert settings.DOCUMENTS_BUCKET == "prod-docs"


class TestLogging:

    def test_configure_logging(self) -> None:
        try:
            configure_logging(Settings(_env_file=None, LOG_LEVEL=LogLevel.WARNING,
                                       ENVIRONMENT=Environment.PROD))
            assert structlog.is_configured()
        finally:
            structlog.reset_defaults()

    def test_logging_notifier_emits_events(self) -> None:
        notifier = LoggingNotifier()
        with structlog.testing.capture_logs() as logs:
            notifier.started("Saving...")
            notifier.failed("Boom")
        assert [entry["event"] for entry in logs] == ["notification.started", "notification.failed"]
        assert logs[1]["log_level"] == "warning"

    def test_recording_notifier(self) -> None:
        notifier = RecordingNotifier()
        notifier.started("a")
        notifier.succeeded("b")
        assert notifier.events == [("started", "a"), ("succeeded", "b")]


class TestBlobStorage:

    def test_round_trip_and_remove(self, tmp_path) -> None:
        storage = BlobStorage(str(tmp_path))
        path = BlobStorage.document_path(uuid7(), uuid7(), "../../etc/report.pdf")
        assert path.endswith("/report.pdf")
        assert storage.upload(bucket="docs", path=path, content=b"abc") == 3
        assert storage.retrieve(bucket="docs", path=path) == b"abc"
        assert storage.remove(bucket="docs", path=path) is True
        assert storage.remove(bucket="docs", path=path) is False

    def test_rejects_escaping_paths(self, tmp_path) -> None:
        storage = BlobStorage(str(tmp_path / "root"))
        with pytest.raises(ValueError):
            storage.upload(bucket="docs", path="../../outside.txt", content=b"x")

    def test_rejects_empty_content(self, tmp_path) -> None:
        with pytest.raises(ValueError):
            BlobStorage(str(tmp_path)).upload(bucket="docs", path="a.txt", content=b"")

    def test_missing_blob(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            BlobStorage(str(tmp_path)).retrieve(bucket="docs", path="missing.txt")

    @pytest.mark.parametrize("name", ["", ".", "..", "reports/.."])
    def test_directory_names_become_document(self, name) -> None:
        engagement_id, document_id = uuid7(), uuid7()
        path = BlobStorage.document_path(engagement_id, document_id, name)
        assert path == f"{engagement_id}/{document_id}/document"

    def test_dot_dot_name_does_not_block_later_uploads(self, tmp_path) -> None:
        storage = BlobStorage(str(tmp_path))
        engagement_id = uuid7()
        first = BlobStorage.document_path(engagement_id, uuid7(), "..")
        second = BlobStorage.document_path(engagement_id, uuid7(), "plan.pdf")
        storage.upload(bucket="docs", path=first, content=b"one")
        storage.upload(bucket="docs", path=second, content=b"two")
        assert (tmp_path / "docs" / str(engagement_id)).is_dir()
        assert storage.retrieve(bucket="docs", path=first) == b"one"
        assert storage.retrieve(bucket="docs", path=second) == b"two"
