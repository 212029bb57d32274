from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "biomarkers"
    db_username: str = "biomarkers"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    upload_dir: str = "/app/uploads"
    max_upload_bytes: int = 50 * 1024 * 1024
    allowed_mime_types: list[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/png",
    ]

    pipeline_max_attempts: int = 3
    pipeline_max_workers: int = 4
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0
    retry_jitter_seconds: float = 1.0
    min_text_length: int = 50
    min_word_count: int = 10
    biomarker_insert_chunk_size: int = 50
    conversion_confidence_penalty: float = 0.95

    progress_ttl_seconds: int = 300

    model_extraction_enabled: bool = True
    model_min_pattern_matches: int = 15
    model_long_text_chars: int = 1000

    llm_provider: str = "openai"
    llm_api_key: str = ""
    llm_base_url: str | None = None
    llm_timeout_seconds: int = 30
    llm_temperature: float = 0.0
    extraction_model_name: str = "gpt-4o-mini"
    summary_model_name: str = "gpt-4o-mini"

    pdf_engine: str = "pdfplumber"

    reprocess_poll_interval_seconds: int = 60
    reprocess_batch_size: int = 10
    reprocess_stale_after_seconds: int = 3600
