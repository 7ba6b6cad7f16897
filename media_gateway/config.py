from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # AWS Configuration (falls back to the boto3 default credential chain)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None

    # S3 Configuration
    s3_bucket_name: Optional[str] = None
    s3_key_prefix: str = ""  # e.g., "uploads/"
    s3_verify_exists_on_download: bool = False
    upload_url_expiry_seconds: int = 600
    download_url_expiry_seconds: int = 300  # shorter than uploads, download links are replayable

    # Media policy
    allowed_extensions: Optional[List[str]] = None  # None means any extension
    inline_extensions: List[str] = []
    max_upload_size_bytes: Optional[int] = None  # advertised to clients only

    # Access Oracle Configuration
    access_oracle_url: Optional[str] = None
    access_oracle_timeout_seconds: float = 5.0
    reject_anonymous: bool = False

    # Rate Limiting
    rate_limit_max_requests: int = 30
    rate_limit_window_seconds: int = 60
    rate_limit_sweep_interval_seconds: int = 300
    rate_limit_sweep_batch_size: int = 500
    trust_forwarded_for: bool = False

    # Application Settings
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
