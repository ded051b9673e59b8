"""Environment configuration management for the energy audit backend.

This module handles loading environment variables from .env files
with proper priority handling for local development vs production.

File Priority (highest to lowest):
1. .env.local (local secrets, gitignored)
2. .env (base configuration, committed)
3. Environment variables set by hosting platform
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union, List

from dotenv import load_dotenv

from services.error_types import ConfigurationError

logger = logging.getLogger(__name__)

# Store credentials the process cannot boot without
REQUIRED_STORE_VARS = ["STORE_ACCESS_KEY_ID", "STORE_SECRET_ACCESS_KEY", "STORE_BUCKET"]

# Keys only needed once the matching service is called
SERVICE_KEY_VARS = ["DEEPSEEK_API_KEY", "GOOGLE_VISION_API_KEY", "CHAT_PROXY_URL"]


def load_environment(env_dir: Optional[Union[str, Path]] = None) -> None:
    """Load environment variables from .env files.

    Args:
        env_dir: Directory containing .env files. Defaults to current directory.
    """
    if env_dir is None:
        env_dir = Path.cwd()
    else:
        env_dir = Path(env_dir)

    # Load files in reverse priority order (last loaded wins)
    env_files = [
        env_dir / ".env",          # Base configuration
        env_dir / ".env.local",    # Local overrides (secrets)
    ]

    loaded_files = []
    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=True)
            loaded_files.append(env_file.name)
            logger.debug(f"Loaded environment from {env_file}")

    if loaded_files:
        logger.info(f"Environment loaded from: {', '.join(loaded_files)}")
    else:
        logger.debug("No .env files found")


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.getenv(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    elif value in ("false", "0", "no", "off"):
        return False
    else:
        return default


def get_env_list(key: str, separator: str = ",", default: Optional[list] = None) -> list:
    """Get list from environment variable.

    Args:
        key: Environment variable name
        separator: List item separator
        default: Default value if not set

    Returns:
        List of strings
    """
    if default is None:
        default = []

    value = os.getenv(key, "")
    if not value.strip():
        return default

    return [item.strip() for item in value.split(separator) if item.strip()]


def validate_required_env_vars(required_vars: list[str]) -> list[str]:
    """Validate that required environment variables are set.

    Returns:
        List of missing variables
    """
    missing = []
    for var in required_vars:
        value = os.getenv(var)
        if not value or value.strip() in ("", "your-api-key-here", "placeholder"):
            missing.append(var)

    return missing


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration."""
    database_url: str = "sqlite:///./energy_audit.db"

    store_endpoint_url: Optional[str] = None
    store_access_key_id: Optional[str] = None
    store_secret_access_key: Optional[str] = None
    store_region: str = "us-east-1"
    store_bucket: str = "audit-files"
    store_public_base_url: Optional[str] = None

    deepseek_api_key: Optional[str] = None
    deepseek_base_url: str = "https://api.deepseek.com"
    deepseek_model: str = "deepseek-chat"

    google_vision_api_key: Optional[str] = None
    chat_proxy_url: str = "http://localhost:8000/api/v1/proxy/chat"

    allowed_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:5173",
    ])
    supported_locales: List[str] = field(default_factory=lambda: ["en", "ar"])
    translation_cache_seconds: float = 300.0
    debug: bool = False
    disable_pdf: bool = False
    reports_dir: str = "./reports"
    wkhtmltopdf_path: Optional[str] = None


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    defaults = Settings()
    return Settings(
        database_url=get_database_url(),
        store_endpoint_url=os.getenv("STORE_ENDPOINT_URL") or None,
        store_access_key_id=os.getenv("STORE_ACCESS_KEY_ID"),
        store_secret_access_key=os.getenv("STORE_SECRET_ACCESS_KEY"),
        store_region=os.getenv("STORE_REGION", defaults.store_region),
        store_bucket=os.getenv("STORE_BUCKET", defaults.store_bucket),
        store_public_base_url=os.getenv("STORE_PUBLIC_BASE_URL") or None,
        deepseek_api_key=os.getenv("DEEPSEEK_API_KEY"),
        deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", defaults.deepseek_base_url),
        deepseek_model=os.getenv("DEEPSEEK_MODEL", defaults.deepseek_model),
        google_vision_api_key=os.getenv("GOOGLE_VISION_API_KEY"),
        chat_proxy_url=os.getenv("CHAT_PROXY_URL", defaults.chat_proxy_url),
        allowed_origins=get_env_list("ALLOWED_ORIGINS", default=defaults.allowed_origins),
        supported_locales=get_env_list("SUPPORTED_LOCALES", default=defaults.supported_locales),
        translation_cache_seconds=float(os.getenv("TRANSLATION_CACHE_SECONDS", defaults.translation_cache_seconds)),
        debug=get_env_bool("DEBUG"),
        disable_pdf=get_env_bool("DISABLE_PDF"),
        reports_dir=os.getenv("REPORTS_DIR", defaults.reports_dir),
        wkhtmltopdf_path=os.getenv("WKHTMLTOPDF_PATH"),
    )


def require_store_credentials() -> None:
    """Fail fast when document store credentials are absent.

    Raises:
        ConfigurationError: naming every missing variable
    """
    missing = validate_required_env_vars(REQUIRED_STORE_VARS)
    if missing:
        raise ConfigurationError(
            f"Missing document store configuration: {', '.join(missing)}",
            {"missing": missing},
        )


def warn_missing_service_keys() -> list[str]:
    """Log service keys that are not configured yet; they are checked again on use."""
    missing = validate_required_env_vars(SERVICE_KEY_VARS)
    for var in missing:
        logger.warning(f"{var} not set; the dependent service will fail when called")
    return missing


def get_database_url() -> str:
    """Get database URL with fallback for development."""
    return os.getenv("DATABASE_URL", "sqlite:///./energy_audit.db")


def is_production() -> bool:
    """Check if running in production environment."""
    return os.getenv("ENV", "development").lower() == "production"


# Load environment on import
load_environment()
