"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (audit trail persistence)
    database_url: str = "sqlite:///./invoice_gateway.db"

    # Service
    service_name: str = "invoice-gateway"
    log_level: str = "INFO"

    # Invoice builder
    forecast_months: int = 3
    holiday_calendar: str = "BR"  # BR | weekends
    roll_unpaid_balance: bool = False

    # Late charges (monthly rates are prorated per day over 30 days)
    late_fee_rate: float = 0.02
    mora_monthly_rate: float = 0.01
    revolving_monthly_rate: float = 0.15

    # Audit
    audit_history_limit: int = 50


settings = Settings()
