from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Exam Portal API"
    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: Optional[str] = None
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Share of total marks needed to count a result as passed
    PASS_MARK_RATIO: float = 0.4
    # Exams per week for the dashboard progress widget
    WEEKLY_GOAL: int = 5


settings = Settings()
