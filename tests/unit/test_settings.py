import pytest
from pydantic import ValidationError

from docworker.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_poll_policy(self) -> None:
        s = Settings()
        assert s.poll_max_attempts == 100
        assert s.poll_base_interval_seconds == 5.0
        assert s.poll_backoff_multiplier == 2.0

    def test_default_stage_timeout_is_disabled(self) -> None:
        s = Settings()
        assert s.stage_timeout_seconds is None

    def test_default_pdf_engine(self) -> None:
        s = Settings()
        assert s.pdf_engine == "pdfplumber"

    def test_default_adapters(self) -> None:
        s = Settings()
        assert s.object_store == "s3"
        assert s.job_service == "textract"
        assert s.notifier == "log"
        assert s.event_source == "postgres"

    def test_default_asset_location(self) -> None:
        s = Settings()
        assert s.asset_location == "assets"

    def test_default_sqs_visibility_timeout(self) -> None:
        assert Settings().sqs_visibility_timeout_seconds == 300


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_poll_max_attempts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLL_MAX_ATTEMPTS", "7")
        s = Settings()
        assert s.poll_max_attempts == 7

    def test_loads_stage_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAGE_TIMEOUT_SECONDS", "2.5")
        s = Settings()
        assert s.stage_timeout_seconds == 2.5

    def test_loads_aws_endpoint(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")
        s = Settings()
        assert s.aws_endpoint_url == "http://localhost:4566"


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_poll_attempts_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLL_MAX_ATTEMPTS", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_shrinking_multiplier_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLL_BACKOFF_MULTIPLIER", "0.5")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_concurrency_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_CONCURRENT_EXECUTIONS", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_too_short_visibility_timeout_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SQS_VISIBILITY_TIMEOUT_SECONDS", "1")
        with pytest.raises(ValidationError):
            Settings()
