"""Environment configuration for the EventLane automation service."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")
        self.SITE_BASE_URL: str = os.getenv("SITE_BASE_URL", "http://localhost:8000").rstrip("/")

        # Operator API authentication
        self.AUTOMATION_API_SECRET: str = os.getenv("AUTOMATION_API_SECRET", "")
        self.JWT_ALGORITHM: str = "HS256"
        self.JWT_EXPIRATION_HOURS: int = 24

        # Messaging collaborator (empty URL = log-only delivery)
        self.MESSAGING_API_URL: str = os.getenv("MESSAGING_API_URL", "")
        self.MESSAGING_TIMEOUT_SECONDS: float = float(os.getenv("MESSAGING_TIMEOUT_SECONDS", "10"))

        # Queue workers
        self.WORKER_BATCH_SIZE: int = int(os.getenv("WORKER_BATCH_SIZE", "50"))
        self.WORKER_MAX_RETRIES: int = int(os.getenv("WORKER_MAX_RETRIES", "3"))
        self.WORKER_POLL_INTERVAL_SECONDS: int = int(os.getenv("WORKER_POLL_INTERVAL_SECONDS", "60"))
        self.QUEUE_LEASE_SECONDS: int = int(os.getenv("QUEUE_LEASE_SECONDS", "300"))

        # Scanner
        # Weekday for the category digest, Monday == 0
        self.DIGEST_WEEKDAY: int = int(os.getenv("DIGEST_WEEKDAY", "0"))
        self.WAITLIST_INVITE_TTL_HOURS: int = int(os.getenv("WAITLIST_INVITE_TTL_HOURS", "2"))

        # Rate limiting
        self.RATE_LIMIT_PUBLIC_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PUBLIC_PER_MINUTE", "60"))
        self.RATE_LIMIT_CLEANUP_PROBABILITY: float = float(
            os.getenv("RATE_LIMIT_CLEANUP_PROBABILITY", "0.1")
        )

    def validate(self) -> None:
        """Validate that required environment variables are set."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if not self.AUTOMATION_API_SECRET:
            raise ValueError("AUTOMATION_API_SECRET environment variable is required")
        if not 0 <= self.DIGEST_WEEKDAY <= 6:
            raise ValueError("DIGEST_WEEKDAY must be between 0 (Monday) and 6 (Sunday)")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
