# App configuration file
# clinicbook/core/config.py
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default="dev", description="Environment name: dev|test|prod")
    API_PREFIX: str = Field(default="/api", description="Base prefix for API routes")
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    # Durable key-value store
    # Example: sqlite:///./clinicbook.db
    STORE_DSN: str = Field(default="sqlite:///./clinicbook.db", description="SQLAlchemy DSN for the local store")
    DB_ECHO: bool = False

    # Auth
    JWT_SECRET: str = Field(default="change_me", description="Only for dev")
    ACCESS_EXPIRES_MIN: int = 60
    PASSWORD_HASH_ROUNDS: int = 29000
    MIN_PASSWORD_LENGTH: int = 6

    # Well-known admin account, repaired on every start
    ADMIN_EMAIL: str = "admin@docbook.com"
    ADMIN_PASSWORD: str = "Admin123"
    ADMIN_NAME: str = "Admin User"
    SEED_SAMPLE_DATA: bool = True

    # Backups
    BACKUP_DIR: str = "./backups"
    KEEP_DAYS: int = 14

    class Config:
        env_file = ".env"
        extra = "ignore"  # ignore variables that are not defined

settings = Settings()
