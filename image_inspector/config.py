from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BASE_DIR / ".env", env_file_encoding="utf-8")

    # Out-of-band image loads (seconds)
    IMAGE_LOAD_TIMEOUT: float = 5.0
    # Extra wait for an in-page image that is still loading (seconds)
    HANDLE_SETTLE_TIMEOUT: float = 1.0

    # Network probes / byte fetches. None = httpx's own default timeout
    FETCH_TIMEOUT: float | None = None
    FETCH_MAX_RETRIES: int = 1

    # Preview thumbnails
    THUMBNAIL_MAX_DIMENSION: int = 100

    # Images resolved at once per pass (1 = sequential)
    RESOLVE_CONCURRENCY: int = 1

    # Playwright
    PLAYWRIGHT_MAX_CONTEXTS: int = 3
    PAGE_LOAD_TIMEOUT: int = 15000  # milliseconds
    PAGE_WAIT_FOR: str = "networkidle"


settings = Settings()
