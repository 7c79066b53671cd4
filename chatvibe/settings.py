import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Remote analysis backend (JSON over HTTPS, cookies kept per device)
    REMOTE_BASE_URL: str = os.getenv("REMOTE_BASE_URL", "https://chatvibe.tvintla.net")
    # Only read-only queries get a client-side timeout; mutating calls are bounded by the transport.
    REMOTE_READ_TIMEOUT_SEC: float = float(os.getenv("REMOTE_READ_TIMEOUT_SEC", "15.0"))
    AVATAR_BASE_URL: str = os.getenv("AVATAR_BASE_URL", "https://chatvibe.dategram.io")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "notifications")

    # Durable local state
    PENDING_ANALYSIS_KEY: str = os.getenv("PENDING_ANALYSIS_KEY", "pending_analysis")
    INTRO_SHOWN_KEY: str = os.getenv("INTRO_SHOWN_KEY", "intro_shown")

    # Push gateway used for "analysis ready" notifications while the UI is not visible
    PUSH_GATEWAY_URL: str = os.getenv("PUSH_GATEWAY_URL", "")
    PUSH_TIMEOUT_SEC: int = int(os.getenv("PUSH_TIMEOUT_SEC", "5"))

    # Phone validation (digits only, country code excluded)
    PHONE_MIN_DIGITS: int = int(os.getenv("PHONE_MIN_DIGITS", "7"))
    PHONE_MAX_DIGITS: int = int(os.getenv("PHONE_MAX_DIGITS", "16"))
    DEFAULT_COUNTRY_CODE: str = os.getenv("DEFAULT_COUNTRY_CODE", "+7")

    # UI notices kept per device until the UI drains them
    UI_FEED_MAX: int = int(os.getenv("UI_FEED_MAX", "50"))

    # Device runtimes kept in memory; idle ones beyond this are evicted least-recently-used first
    MAX_RUNTIMES: int = int(os.getenv("MAX_RUNTIMES", "1000"))

    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"

settings = Settings()
