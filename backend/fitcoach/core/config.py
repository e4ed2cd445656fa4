# fitcoach/core/config.py
# env loading (.env)
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"  # split per prod/staging if needed
    MONGO_DB: str = "fitcoach"
    APP_ID: str = "default-app-id"  # saved plans live under artifacts/{APP_ID}/users/{uid}

    # plan generation (Gemini through its OpenAI-compatible endpoint)
    GOOGLE_API_KEY: Optional[str] = None
    GENERATION_API_KEY: Optional[str] = None  # overrides GOOGLE_API_KEY when set
    GENERATION_BASE_URL: Optional[str] = "https://generativelanguage.googleapis.com/v1beta/openai/"
    GENERATION_MODEL: str = "gemini-2.5-flash"
    GENERATION_TIMEOUT_S: float = 60.0

    # image generation / search
    IMAGE_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta/models"
    IMAGEN_MODEL: str = "imagen-3.0-generate-002"
    GEMINI_IMAGE_MODEL: str = "gemini-nano-banana"
    IMAGE_SEARCH_URL: str = "https://source.unsplash.com/600x600/"
    PLACEHOLDER_IMAGE_URL: str = "https://via.placeholder.com/600x400/purple/white"

    RETRY_ATTEMPTS: int = 3
    RETRY_BASE_DELAY_S: float = 1.0

    PLANS_POLL_INTERVAL_S: float = 2.0
    TRUST_USER_HEADER: bool = False  # X-User-Id from an auth proxy in front of us

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def generation_api_key(self) -> Optional[str]:
        return self.GENERATION_API_KEY or self.GOOGLE_API_KEY


settings = Settings()
