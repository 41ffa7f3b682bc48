"""
Configuration settings for Mealshare Service
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Mealshare Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8005

    # Storage ("mongodb" or "memory")
    STORAGE_BACKEND: str = "mongodb"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "mealshare"

    # Kafka
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_ENABLED: bool = True
    KAFKA_TOPIC_POST_CREATED: str = "mealshare.post.created"
    KAFKA_TOPIC_POST_MODERATED: str = "mealshare.post.moderated"
    KAFKA_TOPIC_POST_CLAIMED: str = "mealshare.post.claimed"
    KAFKA_TOPIC_POST_REPORTED: str = "mealshare.post.reported"
    KAFKA_TOPIC_POST_REMOVED: str = "mealshare.post.removed"
    KAFKA_TOPIC_CHAT_MESSAGE: str = "mealshare.chat.message"
    KAFKA_TOPIC_CHAT_CLOSED: str = "mealshare.chat.closed"

    # JWT Settings
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Password Settings
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_HASH_SCHEMES: List[str] = ["pbkdf2_sha256"]

    # Admin registry (JSON list of {id, email, userId})
    ADMIN_REGISTRY_PATH: str = "admin_config.json"

    # Discovery
    DEFAULT_SEARCH_RADIUS_KM: float = 5.0

    # Chat
    INACTIVE_CONVERSATION_DAYS: int = 7

    # Statistics
    TOP_USERS_LIMIT: int = 5
    STATS_DAYS_WINDOW: int = 7

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
