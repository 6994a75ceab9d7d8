from pydantic_settings import BaseSettings
from typing import List

from ..domain import SearchConfig


class Settings(BaseSettings):
    # Database - supports both SQLite (dev) and PostgreSQL (prod)
    DATABASE_URL: str = "sqlite:///./freightmatch.db"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    # Trip search
    MAX_DEVIATION_KM: float = 100.0
    DEFAULT_DEVIATION_KM: float = 50.0
    COARSE_BUFFER_KM: float = 50.0  # added to the deviation for the coarse origin query
    CANDIDATE_LIMIT: int = 200
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    class Config:
        env_file = ".env"

    def search_config(self) -> SearchConfig:
        return SearchConfig(
            max_deviation_km=self.MAX_DEVIATION_KM,
            default_deviation_km=self.DEFAULT_DEVIATION_KM,
            coarse_buffer_km=self.COARSE_BUFFER_KM,
            candidate_limit=self.CANDIDATE_LIMIT,
            default_page_size=self.DEFAULT_PAGE_SIZE,
            max_page_size=self.MAX_PAGE_SIZE,
        )

settings = Settings()
