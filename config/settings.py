import os
from functools import lru_cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings:
    """Application settings loaded from environment variables with defaults.

    Every value can be overridden through the environment (or a .env file),
    while the defaults are enough to run the tracker locally against an
    embedded SQLite database and a headless Chromium.
    """

    # Project metadata
    PROJECT_NAME = "Price Tracker"
    PROJECT_VERSION = "0.1.0"

    # Database Settings
    DB_BACKEND = os.getenv("DB_BACKEND", "sqlite").lower()  # "sqlite" or "mysql"
    SQLITE_PATH = os.getenv("SQLITE_PATH", "price_tracker.db")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "3306")
    DB_NAME = os.getenv("DB_NAME", "price_tracker")
    DB_USER = os.getenv("DB_USER", "user")
    DB_PASS = os.getenv("DB_PASSWORD", "password")

    # Page rendering
    RENDERER = os.getenv("RENDERER", "browser").lower()  # "browser" or "static"
    RENDER_TIMEOUT_MS = int(os.getenv("RENDER_TIMEOUT_MS", "30000"))
    USER_AGENT = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    )
    CHROMIUM_EXECUTABLE_PATH = os.getenv("CHROMIUM_EXECUTABLE_PATH") or None

    # Seconds to wait between two products during a refresh
    REFRESH_DELAY_SECONDS = float(os.getenv("REFRESH_DELAY_SECONDS", "2"))

    # Email alerts
    SMTP_HOST = os.getenv("SMTP_HOST", "").strip()
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER = os.getenv("SMTP_USER", "").strip()
    SMTP_PASS = os.getenv("SMTP_PASS", "").strip()
    SMTP_USE_SSL = os.getenv("SMTP_USE_SSL", "false").lower() == "true"
    EMAIL_FROM = os.getenv("EMAIL_FROM", "").strip()
    EMAIL_TO = os.getenv("EMAIL_TO", "").strip()

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def DATABASE_URL(self) -> str:
        """Constructs a SQLAlchemy connection string for the configured backend."""
        if self.DB_BACKEND == "mysql":
            return f"mysql+pymysql://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return f"sqlite:///{self.SQLITE_PATH}"

    @property
    def email_recipients(self) -> list:
        """Alert recipients, comma or semicolon separated in EMAIL_TO."""
        parts = [p.strip() for p in self.EMAIL_TO.replace(";", ",").split(",")]
        return [p for p in parts if p]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


# For direct access in other modules
settings = get_settings()
