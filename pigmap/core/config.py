from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── API ───────────────────────────────────────────────────
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # ── Persistent store ─────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./pigmap.db"

    # ── Live coordinator ─────────────────────────────────────
    SNAPSHOT_BACKEND: str = "redis"  # redis | memory
    REDIS_URL: str = "redis://localhost:6379/0"
    COORDINATOR_NAME: str = "global"
    CACHE_LIMIT: int = 100

    # ── Reports ───────────────────────────────────────────────
    REPORT_TYPES: list[str] = ["cow", "horse", "sheep", "goat", "pig", "other"]
    DEFAULT_ICON: str = "default_icon.png"
    EDIT_TOKEN_TTL_DAYS: int = 7
    MAX_COUNT: int = 1000
    MAX_TEXT_LENGTH: int = 5000
    REPORTS_DEFAULT_LIMIT: int = 100
    REPORTS_MAX_LIMIT: int = 500

    # ── Media ─────────────────────────────────────────────────
    MEDIA_DIR: str = "./media"
    MEDIA_BASE_URL: str = "/media"

    # ── Regions (host -> map defaults) ───────────────────────
    DEFAULT_REGION_NAME: str = "Default"
    DEFAULT_REGION_LAT: float = 39.8283
    DEFAULT_REGION_LON: float = -98.5795
    DEFAULT_REGION_ZOOM: int = 4
    KC_HOSTS: list[str] = ["kc.pigmap.org", "kcmo.pigmap.org", "kansascity.pigmap.org"]

    def edit_token_ttl_ms(self) -> int:
        """Token lifetime in epoch millis, clamped to 7..30 days."""
        days = min(max(self.EDIT_TOKEN_TTL_DAYS, 7), 30)
        return days * 24 * 60 * 60 * 1000

    def region_for_host(self, host: str | None) -> dict:
        """Map settings for the requesting host; Kansas City subdomains get their own region."""
        hostname = (host or "").split(":")[0].lower()
        if hostname in self.KC_HOSTS:
            return {
                "id": "kansascity",
                "name": "Kansas City",
                "state": "MO",
                "center": {"lat": 39.0997, "lon": -94.5786},
                "zoom": 10,
                "defaultLanguage": "en",
            }
        return {
            "id": "default",
            "name": self.DEFAULT_REGION_NAME,
            "center": {"lat": self.DEFAULT_REGION_LAT, "lon": self.DEFAULT_REGION_LON},
            "zoom": self.DEFAULT_REGION_ZOOM,
            "defaultLanguage": "en",
        }


settings = Settings()
