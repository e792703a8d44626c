from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BILLCYCLE_", extra="ignore")

    db_url: str = "mysql://billcycle:billcycle@db:3306/billcycle"

    log_level: str = "INFO"
    log_json: bool = False

    timezone: str = "America/Sao_Paulo"

    # Used when neither the schedule nor the customer names a payment method.
    default_payment_method: str = "bank_slip"

    batch_max_workers: int = 4
    batch_schedule_timeout: float = 30.0  # seconds per schedule

    upcoming_window_days: int = 30


settings = Settings()
