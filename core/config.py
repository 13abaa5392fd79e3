from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# Dialect used when DSN is only the part after "://"
DRIVER_DIALECTS = {
    "mysql": "mysql+pymysql",
    "sqlite": "sqlite",
    "postgres": "postgresql+psycopg2",
}


class Settings(BaseSettings):
    DRIVER: str = "mysql"
    DSN: str = ""

    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: str = "3306"
    DB_NAME: str = "spx"

    BLOB_US: str = "file://media"
    CDN_PREFIX: str = "http://localhost:8000/media"
    MEDIA_URL_PATH: str = "/media"

    PROJECT_PREFIX: str = "projects"
    SPRITE_PREFIX: str = "sprites"
    SOUND_PREFIX: str = "sounds"
    ANIMATED_PREFIX: str = "gifs"

    FORMATTER_EXECUTABLE: str = "gop"
    FORMATTER_TIMEOUT: float = 30.0
    GO_EXECUTABLE: str = "go"
    GOIMPORTS_EXECUTABLE: str = "goimports"

    LOG_LEVEL: str = "INFO"
    AUTO_CREATE_TABLES: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        dialect = DRIVER_DIALECTS.get(self.DRIVER, self.DRIVER)
        if self.DSN:
            if "://" in self.DSN:
                return self.DSN
            return f"{dialect}://{self.DSN}"
        return (
            f"{dialect}://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
