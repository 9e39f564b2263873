from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "creditworker"
    db_username: str = "creditworker"
    db_password: str = "secret"
    db_pool_max_size: int = 10
    db_pool_timeout_seconds: float = 30.0

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    files_root: str = "/app/files"

    pdf_engine: str = "pdfplumber"

    max_document_bytes: int = 10 * 1024 * 1024
    extraction_deadline_seconds: float = 120.0
    method_timeout_seconds: float = 30.0
    method_max_attempts: int = 3
    method_backoff_base_seconds: float = 1.0
    max_concurrent_methods: int = 4

    google_document_ai_project_id: str = ""
    google_document_ai_location: str = "us"
    google_document_ai_processor_id: str = ""
    google_document_ai_access_token: str = ""
    google_vision_api_key: str = ""
    google_vision_max_pages: int = 5

    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    textract_max_pages: int = 5
    textract_render_dpi: int = 150

    quality_scorer_min_text_length: int = 10
    quality_scorer_length_cap: int = 5000
    quality_scorer_prior_full_length: int = 1000
    quality_scorer_length_weight: float = 0.2
    quality_scorer_alnum_weight: float = 0.1
    quality_scorer_keyword_credit: float = 0.02
    quality_scorer_keyword_cap: float = 0.15
    quality_validator_min_length: int = 40
    quality_validator_container_marker_min: int = 3
    quality_validator_metadata_max_keyword_hits: int = 0
    quality_validator_min_alnum_ratio: float = 0.4
    quality_validator_large_text_length: int = 20000
    quality_validator_large_text_min_alnum_ratio: float = 0.5
    quality_structured_margin: float = 0.1
    quality_agreement_bonus: float = 0.05
    quality_agreement_bonus_cap: float = 0.1
    quality_structured_bonus: float = 0.05
    quality_review_threshold: float = 0.7
    quality_conflict_length_spread: float = 0.5
