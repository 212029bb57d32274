import pytest
from pydantic import ValidationError

from biomarker_ingest.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_pipeline_max_attempts(self) -> None:
        s = Settings()
        assert s.pipeline_max_attempts == 3

    def test_default_upload_limit_is_50_mb(self) -> None:
        s = Settings()
        assert s.max_upload_bytes == 50 * 1024 * 1024

    def test_default_allowed_mime_types(self) -> None:
        s = Settings()
        assert "application/pdf" in s.allowed_mime_types
        assert "image/png" in s.allowed_mime_types
        assert "text/html" not in s.allowed_mime_types

    def test_default_pdf_engine(self) -> None:
        s = Settings()
        assert s.pdf_engine == "pdfplumber"

    def test_default_llm_provider(self) -> None:
        s = Settings()
        assert s.llm_provider == "openai"

    def test_default_progress_ttl(self) -> None:
        s = Settings()
        assert s.progress_ttl_seconds == 300


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_pipeline_max_attempts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPELINE_MAX_ATTEMPTS", "5")
        s = Settings()
        assert s.pipeline_max_attempts == 5

    def test_loads_model_extraction_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODEL_EXTRACTION_ENABLED", "false")
        s = Settings()
        assert s.model_extraction_enabled is False

    def test_loads_allowed_mime_types_as_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALLOWED_MIME_TYPES", '["application/pdf", "text/plain"]')
        s = Settings()
        assert s.allowed_mime_types == ["application/pdf", "text/plain"]


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_max_attempts_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPELINE_MAX_ATTEMPTS", "abc")
        with pytest.raises(ValidationError):
            Settings()
