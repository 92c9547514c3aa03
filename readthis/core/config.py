from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str

    ENV: str = "dev"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    JWT_SECRET: str
    JWT_ISSUER: str = "readthis"

    ACCESS_TTL_MIN: int = 15
    REFRESH_TTL_DAYS: int = 7

    AWS_REGION: str
    S3_BUCKET_NAME: str
    S3_PUBLIC_BASE_URL: str | None = None
    DEFAULT_COVER_KEY: str = "posts/DefaultBook.png"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    GOOGLE_CLIENT_ID: str
    GOOGLE_CLIENT_SECRET: str | None = None

    OPENAI_API_KEY: str | None = None
    RECOMMENDATION_API_URL: str = "https://api.aimlapi.com/v1/chat/completions"
    RECOMMENDATION_MODEL: str = "gpt-4o-mini"

    GOOGLE_BOOKS_URL: str = "https://www.googleapis.com/books/v1/volumes"
    OPEN_LIBRARY_URL: str = "https://openlibrary.org/search.json"
    OPEN_LIBRARY_COVERS_URL: str = "https://covers.openlibrary.org/b/id"
    HTTP_TIMEOUT_SEC: float = 10.0

    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    @property
    def is_prod(self) -> bool:
        return self.ENV.lower() == "prod"


settings = Settings()
