"""Configuration management for the assignment service."""
import os
from typing import Final
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Platform API
COACH_API_BASE_URL: Final[str] = os.getenv('COACH_API_BASE_URL', 'http://localhost:5000').rstrip('/')
COACH_API_TOKEN: Final[str] = os.getenv('COACH_API_TOKEN', '')

# Application Settings
APP_HOST: Final[str] = os.getenv('APP_HOST', '0.0.0.0')
APP_PORT: Final[int] = int(os.getenv('APP_PORT', '8000'))
DEBUG: Final[bool] = os.getenv('DEBUG', 'False').lower() == 'true'
LOG_LEVEL: Final[str] = os.getenv('LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO').upper()

# Web notifications
MAX_EVENTS: Final[int] = int(os.getenv('MAX_EVENTS', '300'))

# Assignment sessions
MAX_SESSIONS: Final[int] = int(os.getenv('MAX_SESSIONS', '200'))
SESSION_TTL_SECONDS: Final[int] = int(os.getenv('SESSION_TTL_SECONDS', '3600'))
