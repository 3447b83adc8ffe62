"""TaskSync configuration — settings for storage, the Classroom feed and sync."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///data/tasksync.db"

    # HTTP surface
    tasksync_api_key: str = ""  # Empty = auth disabled (dev mode)
    cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Google Classroom feed
    classroom_base_url: str = "https://classroom.googleapis.com/v1"
    classroom_timeout: float = 15.0
    classroom_course_page_size: int = 30
    classroom_coursework_page_size: int = 50
    classroom_max_concurrency: int = 5

    # Reconciliation scheduling
    classroom_sync_enabled: bool = True
    classroom_sync_interval_minutes: float = 30.0
    sync_on_start: bool = True  # Run one sync right after an owner signs in

    # Device-local preferences
    hidden_lists_path: str = "data/hidden_lists.json"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
