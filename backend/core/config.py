import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./housebartender.db"
    )
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    base_url: str = os.getenv("BASE_URL", "http://localhost:8000")
    environment: str = os.getenv("ENVIRONMENT", "development").lower()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Session signing (hex encoded, at least 32 bytes). Empty -> ephemeral key.
    session_hash_key_hex: str = os.getenv("SESSION_HASH_KEY_HEX", "").strip()

    # Server-sent events
    sse_keepalive_seconds: float = float(os.getenv("SSE_KEEPALIVE_SECONDS", "25"))

    # First admin account, created once when no admin exists
    bootstrap_admin_email: str = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "").strip()
    bootstrap_admin_password: str = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "").strip()
    bootstrap_admin_name: str = os.getenv("BOOTSTRAP_ADMIN_NAME", "").strip()

    @property
    def secure_cookies(self) -> bool:
        return self.base_url.lower().startswith("https://")


settings = Settings()
