# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Alumni Network API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Mentorship rules
    # Capacity used when "become a mentor" omits max_mentees
    default_max_mentees: int = int(os.getenv("DEFAULT_MAX_MENTEES", "3"))
    # Upper bound a mentor may declare for themselves
    max_mentees_limit: int = int(os.getenv("MAX_MENTEES_LIMIT", "20"))
    # Bio shorter than this is rejected as too trivial
    min_bio_length: int = int(os.getenv("MIN_BIO_LENGTH", "20"))

    # Messaging
    max_message_length: int = int(os.getenv("MAX_MESSAGE_LENGTH", "5000"))

settings = Settings()  # Instantiate configuration
