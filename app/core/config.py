# app/core/config.py
"""
Application configuration - loads from environment variables.
Single source of truth for all settings.
"""
import os
from typing import List, Optional
from urllib.parse import quote_plus
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables FIRST
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_path = BASE_DIR / '.env'
load_dotenv(dotenv_path=env_path)

# ────────────────────────────────────────────
# Server Configuration
# ────────────────────────────────────────────
PORT: int = int(os.getenv("PORT", "4334"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# ────────────────────────────────────────────
# Database Configuration
# ────────────────────────────────────────────
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "whatsgroups_db")
DATABASE_URL = os.getenv("DATABASE_URL")

# Build DATABASE_URL
if not DATABASE_URL:
    encoded_password = quote_plus(DB_PASSWORD)
    DATABASE_URL = f"postgresql://{DB_USER}:{encoded_password}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

# Instances live in the main backend's store; read-only from here
INSTANCE_DATABASE_URL: str = os.getenv("INSTANCE_DATABASE_URL") or DATABASE_URL

DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_RECYCLE_SECONDS: int = int(os.getenv("DB_POOL_RECYCLE_SECONDS", "30"))
DB_CONNECT_TIMEOUT_SECONDS: int = int(os.getenv("DB_CONNECT_TIMEOUT_SECONDS", "2"))

# ────────────────────────────────────────────
# Redis (group list cache)
# ────────────────────────────────────────────
REDIS_URL: Optional[str] = os.getenv("REDIS_URL")
GROUPS_CACHE_TTL_SECONDS: int = int(os.getenv("GROUPS_CACHE_TTL_SECONDS", "30"))
GROUPS_STALE_TTL_SECONDS: int = int(os.getenv("GROUPS_STALE_TTL_SECONDS", "3600"))

# ────────────────────────────────────────────
# Evolution API
# ────────────────────────────────────────────
EVOLUTION_API_URL: str = os.getenv("EVOLUTION_API_URL", "http://localhost:8080")
EVOLUTION_API_KEY: str = os.getenv("EVOLUTION_API_KEY") or os.getenv("EVOLUTION_APIKEY") or ""
EVOLUTION_TIMEOUT_SECONDS: float = float(os.getenv("EVOLUTION_TIMEOUT_SECONDS", "30"))

# ────────────────────────────────────────────
# Media Service (group pictures)
# ────────────────────────────────────────────
MEDIA_SERVICE_URL: str = os.getenv("MEDIA_SERVICE_URL", "http://localhost:4500")
MEDIA_SERVICE_TOKEN: str = os.getenv("MEDIA_SERVICE_TOKEN", "")

# ────────────────────────────────────────────
# JWT Configuration (same secret as the main backend)
# ────────────────────────────────────────────
JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY") or os.getenv("JWT_SECRET") or ""
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

if not JWT_SECRET_KEY:
    import warnings
    warnings.warn("JWT_SECRET_KEY not set!")

# ────────────────────────────────────────────
# Auto messages / phone handling
# ────────────────────────────────────────────
DEFAULT_COUNTRY_PREFIX: str = os.getenv("DEFAULT_COUNTRY_PREFIX", "55")
DEFAULT_CONTACT_NAME: str = os.getenv("DEFAULT_CONTACT_NAME", "Cliente")
LOCAL_TIMEZONE: str = os.getenv("LOCAL_TIMEZONE", "America/Sao_Paulo")
AREA_CODES_FILE: Optional[str] = os.getenv("AREA_CODES_FILE")
DISPATCH_MAX_WORKERS: int = int(os.getenv("DISPATCH_MAX_WORKERS", "32"))
