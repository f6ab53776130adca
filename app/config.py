import os
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Application settings
APP_NAME = os.getenv("APP_NAME", "BlogCraft AI API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
API_PREFIX = os.getenv("API_PREFIX", "/api")

# Database
DATABASE_URL = os.getenv("DATABASE_URL")

# JWT Settings
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "blogcraft-dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

# AI providers
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", 30))

# AI rate limiting (20 requests per 15 minutes per client)
AI_RATE_LIMIT = int(os.getenv("AI_RATE_LIMIT", 20))
AI_RATE_WINDOW_SECONDS = int(os.getenv("AI_RATE_WINDOW_SECONDS", 15 * 60))

# CORS Settings
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

# Background scheduler
SCHEDULER_INTERVAL_SECONDS = int(os.getenv("SCHEDULER_INTERVAL_SECONDS", 30))

# Collaboration server
COLLAB_HOST = os.getenv("COLLAB_HOST", "0.0.0.0")
COLLAB_PORT = int(os.getenv("COLLAB_PORT", 1234))
COLLAB_CLEANUP_SECONDS = int(os.getenv("COLLAB_CLEANUP_SECONDS", 5 * 60))
COLLAB_STATS_INTERVAL_SECONDS = int(os.getenv("COLLAB_STATS_INTERVAL_SECONDS", 60))


class Settings:
    app_name: str = APP_NAME
    app_version: str = APP_VERSION
    api_prefix: str = API_PREFIX
    environment: str = ENVIRONMENT
    log_level: str = LOG_LEVEL
    database_url: str = DATABASE_URL
    jwt_secret_key: str = JWT_SECRET_KEY
    jwt_algorithm: str = JWT_ALGORITHM
    access_token_expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES
    groq_api_key: str = GROQ_API_KEY
    huggingface_api_key: str = HUGGINGFACE_API_KEY
    ai_request_timeout: float = AI_REQUEST_TIMEOUT
    ai_rate_limit: int = AI_RATE_LIMIT
    ai_rate_window_seconds: int = AI_RATE_WINDOW_SECONDS
    cors_origins: List[str] = CORS_ORIGINS
    scheduler_interval_seconds: int = SCHEDULER_INTERVAL_SECONDS
    collab_host: str = COLLAB_HOST
    collab_port: int = COLLAB_PORT
    collab_cleanup_seconds: int = COLLAB_CLEANUP_SECONDS
    collab_stats_interval_seconds: int = COLLAB_STATS_INTERVAL_SECONDS

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


# Create settings instance
settings = Settings()
