from typing import List

from pydantic.v1 import BaseSettings


class Settings(BaseSettings):

    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    MESSAGE_MAX_LENGTH: int = 1000
    CONVERSATION_PAGE_LIMIT: int = 50

    CORS_ORIGINS: str = "*"
    SQL_ECHO: bool = False
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Единственный экземпляр настроек, импортируется во всех модулях
settings = Settings()
