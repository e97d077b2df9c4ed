from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "cpadocs"
    db_username: str = "cpadocs"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5

    max_upload_size_bytes: int = 50 * 1024 * 1024
    image_compression_threshold_bytes: int = 2 * 1024 * 1024
    image_max_dimension: int = 1920
    image_quality: int = 80

    storage_backend: str = "local"
    storage_root: Path = Path("/app/files")
    storage_public_base_url: str = "http://localhost:8000/storage"
    storage_signing_key: str = "change-me"
    s3_endpoint_url: str | None = None
    s3_region: str = "us-east-1"
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    signed_url_ttl_seconds: int = 3600
    client_documents_bucket: str = "client-documents"
    notices_bucket: str = "irs-notices"

    pdf_engine: str = "pdfplumber"
    image_ocr_enabled: bool = True
    tesseract_lang: str = "eng"

    analysis_provider: str = "openai"
    analysis_openai_api_key: str = ""
    analysis_openai_model_name: str = "gpt-4o-mini"
    analysis_openai_timeout_seconds: int = 15
    analysis_openai_temperature: float = 0.0
    analysis_openai_compatible_base_url: str | None = None
    analysis_openai_compatible_api_key: str = ""
    analysis_openai_compatible_model_name: str = ""
    analysis_openai_compatible_timeout_seconds: int = 15
    analysis_openrouter_api_key: str = ""
    analysis_openrouter_model_name: str = ""
    analysis_openrouter_timeout_seconds: int = 15
    analysis_groq_api_key: str = ""
    analysis_groq_model_name: str = ""
    analysis_groq_timeout_seconds: int = 15
    analysis_ollama_api_key: str = ""
    analysis_ollama_model_name: str = ""
    analysis_ollama_timeout_seconds: int = 15

    eden_ai_api_key: str = ""
    eden_ai_base_url: str = "https://api.edenai.run/v2"
    eden_ai_timeout_seconds: int = 60
    financial_parser_providers: list[str] = ["microsoft"]
    financial_parser_fallback_providers: list[str] = ["amazon"]
    summarization_provider: str = "openai/gpt-4o-mini"
