"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Database
    DATABASE_URL: str = "sqlite:///./certquiz.db"
    
    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    
    # Application
    APP_NAME: str = "Certification Quiz API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:8000"]
    
    # Quiz Settings
    ALLOWED_QUESTION_COUNTS: List[int] = [1, 3, 5, 10]
    RESULTS_CACHE_TTL: int = 3600  # 1 hour
    SNAPSHOT_INTERVAL: int = 10  # snapshot every N versions
    
    # Expiry sweep
    EXPIRY_SWEEP_ENABLED: bool = True
    EXPIRY_SWEEP_INTERVAL_SECONDS: float = 60.0
    EXPIRY_SWEEP_BATCH_SIZE: int = 100
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
