from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

PLAID_BASE_URLS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)
    plaid_client_id: str | None = Field(default=None, alias="PLAID_CLIENT_ID")
    plaid_secret: str | None = Field(default=None, alias="PLAID_SECRET")
    plaid_env: str = Field(default="production", alias="PLAID_ENV")
    plaid_base_url: str | None = Field(default=None, alias="PLAID_BASE_URL")
    plaid_client_name: str = Field(default="Nova", alias="PLAID_CLIENT_NAME")
    plaid_client_user_id: str = Field(default="nova-user", alias="PLAID_CLIENT_USER_ID")
    plaid_link_products: str = Field(default="transactions", alias="PLAID_LINK_PRODUCTS")
    db_path: str = Field(default="./data/nova.db", alias="DB_PATH")
    local_tz: str = Field(default="America/Los_Angeles", alias="LOCAL_TZ")
    daily_cutover: str = Field(default="00:00", alias="DAILY_CUTOVER")
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")
    http_retry_attempts: int = Field(default=3, alias="HTTP_RETRY_ATTEMPTS")
    http_retry_backoff_seconds: float = Field(default=1.0, alias="HTTP_RETRY_BACKOFF_SECONDS")
    snapshot_hour: int = Field(default=6, alias="SNAPSHOT_HOUR")
    snapshot_minute: int = Field(default=0, alias="SNAPSHOT_MINUTE")
    snapshot_lock_ttl_seconds: int = Field(default=900, alias="SNAPSHOT_LOCK_TTL_SECONDS")
    scheduler_enabled: int = Field(default=1, alias="SCHEDULER_ENABLED")
    history_default_days: int = Field(default=90, alias="HISTORY_DEFAULT_DAYS")
    credit_balance_convention: str = Field(default="owed_positive", alias="CREDIT_BALANCE_CONVENTION")
    classification_rules_json: str | None = Field(default=None, alias="CLASSIFICATION_RULES_JSON")

    def plaid_url(self) -> str:
        if self.plaid_base_url:
            return self.plaid_base_url.rstrip("/")
        return PLAID_BASE_URLS.get(self.plaid_env.lower(), PLAID_BASE_URLS["production"])

    def link_products(self) -> list[str]:
        return [p.strip() for p in self.plaid_link_products.split(",") if p.strip()]

settings = Settings()
