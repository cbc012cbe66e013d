"""Configuration loading and validation for shortsmith."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

from utils.logging import quiet_third_party_loggers

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_VOICE_ID = "a0e99841-438c-4a64-b679-ae501e7d6091"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str | None) -> str | None:
        if not path:
            return str(PROJECT_ROOT / default_relative) if default_relative else None
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Script + image generation (Gemini)
        "gemini_api_key": os.getenv("GEMINI_API_KEY"),
        "gemini_script_model": os.getenv("GEMINI_SCRIPT_MODEL", "gemini-2.5-pro"),
        "gemini_fallback_models": _env_list("GEMINI_FALLBACK_MODELS", "gemini-2.5-flash"),
        "gemini_image_model": os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        # Narration (Cartesia)
        "cartesia_api_key": os.getenv("CARTESIA_API_KEY"),
        "cartesia_voice_id": os.getenv("CARTESIA_VOICE_ID", DEFAULT_VOICE_ID),
        "cartesia_model": os.getenv("CARTESIA_MODEL", "sonic-3"),
        # Working directories
        "temp_dir": resolve_path(os.getenv("TEMP_DIR"), "temp"),
        "output_dir": resolve_path(os.getenv("OUTPUT_DIR"), "output"),
        # Optional assets
        "cta_image_path": resolve_path(os.getenv("CTA_IMAGE_PATH"), None),
        "background_music_path": resolve_path(os.getenv("BACKGROUND_MUSIC_PATH"), None),
        "background_music_volume": float(os.getenv("BACKGROUND_MUSIC_VOLUME", "0.15")),
        # Remote storage (Cloudflare R2); local /output serving when unset
        "r2_account_id": os.getenv("R2_ACCOUNT_ID"),
        "r2_access_key_id": os.getenv("R2_ACCESS_KEY_ID"),
        "r2_secret_access_key": os.getenv("R2_SECRET_ACCESS_KEY"),
        "r2_bucket_name": os.getenv("R2_BUCKET_NAME"),
        "signed_url_ttl_seconds": int(os.getenv("SIGNED_URL_TTL_SECONDS", "86400")),
        # Session persistence; in-memory when unset
        "session_store_path": resolve_path(os.getenv("SESSION_STORE_PATH"), None),
        "preview_ttl_seconds": int(os.getenv("PREVIEW_TTL_SECONDS", "0")),
        # Logging / server
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": _env_flag("LOG_JSON"),
        "port": int(os.getenv("PORT", "8000")),
    }

    return config


def r2_configured(config: dict) -> bool:
    """True when every R2 credential needed for remote storage is present."""
    return all(
        config.get(key)
        for key in ("r2_account_id", "r2_access_key_id", "r2_secret_access_key", "r2_bucket_name")
    )


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    # Check required API keys
    if not config.get("gemini_api_key"):
        errors.append("GEMINI_API_KEY is required")
    if not config.get("cartesia_api_key"):
        errors.append("CARTESIA_API_KEY is required")

    if not config.get("gemini_script_model"):
        errors.append("GEMINI_SCRIPT_MODEL must not be empty")

    # Validate local paths exist
    for key, label in (("temp_dir", "temp"), ("output_dir", "output")):
        folder = config.get(key)
        if not folder:
            errors.append(f"{key.upper()} is required")
            continue
        try:
            Path(folder).mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create {label} folder: {e}")

    for key in ("cta_image_path", "background_music_path"):
        path = config.get(key)
        if path and not Path(path).is_file():
            errors.append(f"{key.upper()} does not exist: {path}")

    volume = config.get("background_music_volume", 0.15)
    if not 0.0 <= volume <= 1.0:
        errors.append("BACKGROUND_MUSIC_VOLUME must be between 0 and 1")

    # Partial R2 credentials are almost always a mistake
    r2_keys = ("r2_account_id", "r2_access_key_id", "r2_secret_access_key", "r2_bucket_name")
    if any(config.get(k) for k in r2_keys) and not r2_configured(config):
        errors.append(
            "R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY and R2_BUCKET_NAME "
            "must all be set to use R2 storage"
        )

    if config.get("signed_url_ttl_seconds", 1) <= 0:
        errors.append("SIGNED_URL_TTL_SECONDS must be positive")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration with Rich for beautiful terminal output."""
    # Clear any existing handlers
    logging.root.handlers.clear()

    # Rich handler for console output
    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[rich_handler],
        format="%(message)s",
    )

    quiet_third_party_loggers()
