from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "onboarding"
    db_username: str = "onboarding"
    db_password: str = "secret"
    db_pool_max_size: int = 4

    storage_endpoint: str = "localhost:9000"
    storage_access_key: str = "minioadmin"
    storage_secret_key: str = "minioadmin"
    storage_secure: bool = False
    storage_region: str | None = None
    storage_bucket: str = "onboarding-files"
    storage_temp_prefix: str = "temp"
    storage_public_base_url: str = ""
    upload_part_size_bytes: int = 8 * 1024 * 1024

    template_path: str = "templates/npt-india-application-form-fillable.pdf"
    form_date_format: str = "%d/%m/%Y"
    merge_add_outline: bool = True
