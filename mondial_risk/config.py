from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    PROJECT_NAME: str = "Mondial 2030 Ticket Fraud Risk API"
    PROJECT_VERSION: str = "1.0.0"

    # sqlite file, or ":memory:" for tests
    DATABASE_PATH: str = str(BASE_DIR / "mondial_risk.db")

    LOG_LEVEL: str = "INFO"
    SEED_DEMO_DATA: bool = True

    HIGH_RISK_THRESHOLD: float = 0.7
    MAX_BATCH_SIZE: int = 500

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
