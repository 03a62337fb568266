from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the chat notification function"""

    # Application settings
    service_name: str = "chat-notifications"
    log_level: str = "INFO"
    environment: str = "dev"

    # Firebase settings
    firebase_secret: Optional[str] = None  # service account JSON, ADC when unset
    firebase_project_id: Optional[str] = None

    # Cloud Functions settings
    function_region: str = "us-central1"

    # Firestore read retry settings
    read_retry_attempts: int = 3
    read_retry_backoff_seconds: float = 0.5

    # FCM settings
    click_action: str = "FLUTTER_NOTIFICATION_CLICK"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


# Create settings instance
settings = Settings()
