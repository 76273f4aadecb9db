from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "LMS Analytics Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./lms.db"

    # Cache
    CACHE_ENABLED: bool = True
    CACHE_MAX_ENTRIES: int = 500

    # Analytics
    DEFAULT_DATE_RANGE_DAYS: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"

settings = Settings()
