import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True)

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./edubrain.db")
    
    # Authentication settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "CHANGEME_SUPER_SECRET_KEY_FOR_JWT_TOKENS")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    
    # CORS settings
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5000"]
    
    # Logging settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = None
    
    # Seeded administrator account
    DEFAULT_ADMIN_USERNAME: str = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
    
    # Reminder sweep. Production cadence is once a day (86400).
    REMINDER_ENABLED: bool = True
    REMINDER_INTERVAL_SECONDS: float = 60
    REMINDER_COOLDOWN_DAYS: int = 2
    REMINDER_LOG_LIMIT: int = 100
    
    # Reminder message rendering
    INSTITUTION_NAME: str = "eDU Brain Education"
    CURRENCY_SYMBOL: str = "₹"
    REMINDER_CHANNEL: str = "SMS/Email"

# Create settings instance
settings = Settings()
