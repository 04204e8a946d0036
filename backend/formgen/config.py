from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_URI: str
    DB_NAME: str

    # AI field generator; any OpenAI-compatible gateway works via AI_BASE_URL
    OPENAI_API_KEY: Optional[str] = None
    AI_BASE_URL: Optional[str] = None
    AI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT: float = 45.0

    PUBLIC_BASE_URL: str = "http://localhost:5173"
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
