"""Configuration module for the Course Portal access service.

This module provides centralized configuration management, including the
database location, API server settings, session token settings, the
super-admin identity and outgoing mail settings. All configuration values
can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# Email templates directory
EMAIL_TEMPLATE_DIR_NAME = "templates"
EMAIL_TEMPLATE_DIR = ROOT_DIR / "src" / EMAIL_TEMPLATE_DIR_NAME

# --- Database Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/course_portal.db"
)

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

APP_NAME: str = os.getenv("APP_NAME", "Course Portal")
APP_VERSION: str = "1.0.0"

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv(
    "JWT_SECRET_KEY", "your-secret-key-change-in-production"
)
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

# Session credentials live for 30 days unless invalidated earlier
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30))
)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))

# Email verification and password reset codes
VERIFICATION_CODE_TTL_MINUTES: int = int(
    os.getenv("VERIFICATION_CODE_TTL_MINUTES", "15")
)
PASSWORD_RESET_CODE_TTL_MINUTES: int = int(
    os.getenv("PASSWORD_RESET_CODE_TTL_MINUTES", "60")
)

# --- Super Admin Configuration ---

# The super admin is identified by email match, never by a stored role.
SUPER_ADMIN_EMAIL: Optional[str] = os.getenv("SUPER_ADMIN_EMAIL")
SUPER_ADMIN_PASSWORD: Optional[str] = os.getenv("SUPER_ADMIN_PASSWORD")
SUPER_ADMIN_NAME: str = os.getenv("SUPER_ADMIN_NAME", "Super Admin")

# --- Catalog Configuration ---

DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "NPR")
DEFAULT_ACCESS_DURATION_MONTHS: int = int(
    os.getenv("DEFAULT_ACCESS_DURATION_MONTHS", "6")
)
# Month length used for enrollment expiry arithmetic
DAYS_PER_MONTH: int = 30

# Throwaway mailbox providers refused at registration
DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "tempmail.com",
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "trashmail.com",
        "throwaway.email",
        "getnada.com",
        "temp-mail.org",
        "fakeinbox.com",
        "yopmail.com",
        "maildrop.cc",
        "sharklasers.com",
    }
)

# --- SMTP Configuration ---

SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER: Optional[str] = os.getenv("SMTP_USER")
SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_TIMEOUT_SECONDS: float = float(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))


def is_smtp_configured() -> bool:
    """Return True when outgoing mail credentials are present."""
    return bool(SMTP_USER and SMTP_PASSWORD)
