"""Configuration management for the proactive guest call engine."""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration.

    Resolved once at process start; components receive the instance through
    their constructors instead of reading the environment themselves.
    """

    # Application Settings
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./proactive_calls.db")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")  # Celery broker + results

    # Hotel
    HOTEL_NAME: str = os.getenv("HOTEL_NAME", "The Grand Luxe Hotel")
    # Milestone windows and target call times are evaluated in this timezone.
    HOTEL_TIMEZONE: str = os.getenv("HOTEL_TIMEZONE", "America/Los_Angeles")
    HOTEL_CHECK_IN_TIME: str = os.getenv("HOTEL_CHECK_IN_TIME", "15:00")
    HOTEL_CHECK_OUT_TIME: str = os.getenv("HOTEL_CHECK_OUT_TIME", "11:00")

    # Voice platform (outbound call placement)
    VAPI_API_URL: str = os.getenv("VAPI_API_URL", "https://api.vapi.ai")
    VAPI_API_KEY: str = os.getenv("VAPI_API_KEY", "")
    VAPI_PHONE_NUMBER_ID: str = os.getenv("VAPI_PHONE_NUMBER_ID", "")
    VAPI_SERVER_URL: str = os.getenv("VAPI_SERVER_URL", "")  # Webhook URL handed to the assistant
    VAPI_WEBHOOK_SECRET: str = os.getenv("VAPI_WEBHOOK_SECRET", "")
    VAPI_TIMEOUT_SECONDS: float = float(os.getenv("VAPI_TIMEOUT_SECONDS", "15"))

    # Property management system
    PMS_API_URL: str = os.getenv("PMS_API_URL", "")
    PMS_API_KEY: str = os.getenv("PMS_API_KEY", "")
    PMS_HOTEL_ID: str = os.getenv("PMS_HOTEL_ID", "")
    PMS_TIMEOUT_SECONDS: float = float(os.getenv("PMS_TIMEOUT_SECONDS", "20"))
    PMS_LOOKBACK_DAYS: int = int(os.getenv("PMS_LOOKBACK_DAYS", "1"))
    PMS_LOOKAHEAD_DAYS: int = int(os.getenv("PMS_LOOKAHEAD_DAYS", "30"))

    # Staff notifications (Slack incoming webhook)
    SLACK_WEBHOOK_URL: str = os.getenv("SLACK_WEBHOOK_URL", "")
    # normal | urgent | emergency - lower urgencies are only logged.
    STAFF_NOTIFY_MIN_URGENCY: str = os.getenv("STAFF_NOTIFY_MIN_URGENCY", "urgent")

    # Dispatch
    DISPATCH_BATCH_SIZE: int = int(os.getenv("DISPATCH_BATCH_SIZE", "10"))
    # Hard cap on attempts for any job, applied on top of each job's own max_attempts.
    DISPATCH_ATTEMPT_CEILING: int = int(os.getenv("DISPATCH_ATTEMPT_CEILING", "3"))
    RETRY_BACKOFF_MINUTES: int = int(os.getenv("RETRY_BACKOFF_MINUTES", "60"))

    # Wake-up calls
    WAKE_UP_WINDOW_MINUTES: int = int(os.getenv("WAKE_UP_WINDOW_MINUTES", "5"))
    WAKE_UP_MAX_ATTEMPTS: int = int(os.getenv("WAKE_UP_MAX_ATTEMPTS", "2"))
    WAKE_UP_BATCH_SIZE: int = int(os.getenv("WAKE_UP_BATCH_SIZE", "10"))

    # Security
    CRON_SECRET: str = os.getenv("CRON_SECRET", "")  # Bearer token for the trigger endpoint

    def has_vapi_config(self) -> bool:
        """Check if outbound calling is fully configured."""
        return all([
            self.VAPI_API_KEY,
            self.VAPI_PHONE_NUMBER_ID,
        ])

    def has_pms_config(self) -> bool:
        """Check if the PMS connection is configured."""
        return bool(self.PMS_API_URL and self.PMS_API_KEY)

    def has_slack_config(self) -> bool:
        return bool(self.SLACK_WEBHOOK_URL)


# Create a global config instance
config = Config()
