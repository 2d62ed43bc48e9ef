from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database Configuration
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "files"
    DB_USER: str = "postgres"
    DB_PASS: str = "postgres"
    DATABASE_URL: Optional[str] = None  # overrides the DB_* parts when set

    # MinIO Configuration
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET: str = "files"
    MINIO_SECURE: bool = False

    # Blob layout and public URLs
    BUCKET_BASE_PATH: str = "files/"
    RESOURCE_BASE_PATH: str = "http://localhost:9000/files/"

    # Thumbnails and listing
    THUMBNAIL_WIDTH: int = 300
    THUMBNAIL_HEIGHT: int = 300
    PAGE_SIZE: int = 50
    SERIALIZE_MUTATIONS: bool = False

    # Reconciliation sweep
    RECONCILE_MIN_AGE_SECONDS: int = 3600  # younger objects may belong to an upload in flight
    RECONCILE_INTERVAL_SECONDS: int = 6 * 3600
    RECONCILE_REMOVE_ORPHANS: bool = False

    # Redis Configuration
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Environment
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

# Initialize settings
settings = Settings()
