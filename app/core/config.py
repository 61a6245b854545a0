import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from typing import List
from sqlalchemy.engine.url import URL

# Load .env file if it exists
load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "Exam Paper Generator API"
    API_V1_STR: str = "/api/v1"

    # Database configuration
    DB_DRIVER: str = os.getenv("DB_DRIVER", "mysql+aiomysql") # Use 'postgresql+asyncpg' for PostgreSQL
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", 3306))
    DB_USER: str = os.getenv("DB_USER", "root")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_NAME: str = os.getenv("DB_NAME", "paper_generator_db")

    # Asynchronous SQLAlchemy database URL
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> URL:
        return URL.create(
            drivername=self.DB_DRIVER,
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    # CORS Origins (adjust in production)
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paper generation
    # A paper holding any question of this marks value is an end-semester (ESE) paper
    ESE_MARKS: int = int(os.getenv("ESE_MARKS", 10))
    RECENT_PAPERS_LIMIT: int = 10

    # Uploads
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", 10))

    # PDF rendering
    PDF_INSTITUTION_NAME: str = os.getenv("PDF_INSTITUTION_NAME", "COLLEGE OF ENGINEERING & TECHNOLOGY")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()

# Example .env file content:
# DB_HOST=127.0.0.1
# DB_PORT=3306
# DB_USER=myuser
# DB_PASSWORD=mypassword
# DB_NAME=paper_generator_db
# LOG_LEVEL=DEBUG
# ESE_MARKS=10
