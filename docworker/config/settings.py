from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "docworker"
    db_username: str = "docworker"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    object_store: str = "s3"
    local_store_root: str = "/app/files"
    asset_location: str = "assets"

    aws_region: str = "us-east-1"
    aws_endpoint_url: str | None = None

    job_service: str = "textract"
    pdf_engine: str = "pdfplumber"

    poll_max_attempts: int = Field(default=100, ge=1)
    poll_base_interval_seconds: float = Field(default=5.0, ge=0)
    poll_backoff_multiplier: float = Field(default=2.0, ge=1)
    stage_timeout_seconds: float | None = None

    thumbnail_width: int = Field(default=300, gt=0)

    execution_store: str = "postgres"

    event_source: str = "postgres"
    sqs_queue_url: str = ""
    sqs_visibility_timeout_seconds: int = Field(default=300, ge=2, le=43200)
    event_poll_interval_seconds: int = 5
    max_concurrent_executions: int = Field(default=10, ge=1)

    notifier: str = "log"
    eventbridge_bus_name: str = "default"
    eventbridge_source: str = "docworker.pipeline"

    default_owner: str = ""
