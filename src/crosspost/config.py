import httpx
from pydantic_settings import BaseSettings

from .domain.media import MediaKind
from .infrastructure.retry import RetryPolicy


class Settings(BaseSettings):
    """Publishing settings loaded from environment."""

    # Service
    service_name: str = "crosspost"
    log_level: str = "INFO"
    log_json: bool = True

    # Destination APIs
    twitter_api_url: str = "https://api.twitter.com/2"
    twitter_upload_url: str = "https://upload.twitter.com/1.1/media/upload.json"
    graph_api_url: str = "https://graph.facebook.com/v18.0"  # Facebook, Instagram
    linkedin_api_url: str = "https://api.linkedin.com/v2"

    # Timeouts (seconds)
    metadata_timeout: float = 30.0
    image_transfer_timeout: float = 60.0
    video_transfer_timeout: float = 300.0
    remote_fetch_timeout: float = 30.0
    container_timeout: float = 60.0
    status_check_timeout: float = 10.0

    # Instagram container polling
    instagram_poll_interval: float = 10.0
    instagram_poll_max_attempts: int = 30

    # Per-item media upload retries
    media_retry_max_attempts: int = 2
    media_retry_base_delay: float = 1.0
    media_retry_backoff: float = 2.0

    # Object storage (S3)
    aws_region: str = "us-east-1"
    aws_endpoint_url: str | None = None  # For LocalStack
    object_store_bucket: str = ""
    object_store_prefix: str = "crosspost-media"
    object_store_public_base_url: str | None = None

    def timeout_for(self, kind: MediaKind) -> httpx.Timeout:
        """Timeout for a binary transfer of the given media kind."""
        seconds = (
            self.video_transfer_timeout if kind is MediaKind.VIDEO else self.image_transfer_timeout
        )
        return httpx.Timeout(seconds, connect=self.metadata_timeout)

    def media_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.media_retry_max_attempts,
            base_delay=self.media_retry_base_delay,
            backoff_factor=self.media_retry_backoff,
        )

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
