from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://timebudget:timebudget@db:5432/timebudget"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    # Optional rotating log file in addition to stderr.
    LOG_FILE: str = ""

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # Bearer token expected by POST /cron/weekly-snapshots. Empty = not configured.
    CRON_SECRET: str = ""

    # IANA zone every week boundary and occurrence is computed in.
    REFERENCE_TIMEZONE: str = "UTC"

    # Used when a user has no settings row (16 waking hours x 7 days).
    DEFAULT_WEEKLY_AVAILABLE_HOURS: float = 112.0

    # Upper bound on concurrent child-snapshot writes within one user.
    SNAPSHOT_WRITE_WORKERS: int = 8

    # Wall-clock budget for one cron batch; 0 disables the budget.
    SNAPSHOT_BATCH_BUDGET_SECONDS: float = 300.0

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
