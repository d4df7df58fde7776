"""
Startup configuration.

All settings come from environment variables (optionally from a .env file).
load_settings() checks everything up front so a missing credential stops the
process at boot instead of failing inside a request handler.
"""

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from postdesk.errors import ConfigError

REQUIRED = [
    "DATABASE_URL",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "SMTP_HOST",
    "SMTP_USER",
    "SMTP_PASS",
    "NOTIFY_EMAIL",
]

TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    cloudinary_cloud_name: str
    cloudinary_api_key: str
    cloudinary_api_secret: str
    smtp_host: str
    smtp_user: str
    smtp_pass: str
    notify_email: str
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    port: int = 3000
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_from: Optional[str] = None
    caption_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.0-flash"
    cloudinary_folder: Optional[str] = None
    cors_origins: tuple = ("*",)
    db_pool_max: int = 10
    max_upload_mb: int = 100
    notify_async: bool = True


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def _int(env: Mapping[str, str], name: str, default: int, errors: List[str]) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer (got {raw!r})")
        return default
    if value <= 0:
        errors.append(f"{name} must be positive (got {raw!r})")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env (Mapping, optional): Variables to read. Defaults to os.environ
            after loading .env.

    Raises:
        ConfigError: Listing every missing or malformed variable.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    errors = [f"{name} is not set" for name in REQUIRED if not (env.get(name) or "").strip()]

    openai_key = (env.get("OPENAI_API_KEY") or "").strip() or None
    gemini_key = (env.get("GEMINI_API_KEY") or "").strip() or None
    if not openai_key and not gemini_key:
        errors.append("OPENAI_API_KEY or GEMINI_API_KEY must be set")

    port = _int(env, "PORT", 3000, errors)
    smtp_port = _int(env, "SMTP_PORT", 587, errors)
    db_pool_max = _int(env, "DB_POOL_MAX", 10, errors)
    max_upload_mb = _int(env, "MAX_UPLOAD_MB", 100, errors)

    if errors:
        raise ConfigError("Invalid configuration: " + "; ".join(errors))

    origins = tuple(o.strip() for o in (env.get("CORS_ORIGINS") or "*").split(",") if o.strip())

    return Settings(
        database_url=env["DATABASE_URL"].strip(),
        cloudinary_cloud_name=env["CLOUDINARY_CLOUD_NAME"].strip(),
        cloudinary_api_key=env["CLOUDINARY_API_KEY"].strip(),
        cloudinary_api_secret=env["CLOUDINARY_API_SECRET"].strip(),
        smtp_host=env["SMTP_HOST"].strip(),
        smtp_user=env["SMTP_USER"].strip(),
        smtp_pass=env["SMTP_PASS"],
        notify_email=env["NOTIFY_EMAIL"].strip(),
        openai_api_key=openai_key,
        gemini_api_key=gemini_key,
        port=port,
        smtp_port=smtp_port,
        smtp_secure=_flag(env.get("SMTP_SECURE"), False),
        smtp_from=(env.get("SMTP_FROM") or "").strip() or None,
        caption_model=(env.get("CAPTION_MODEL") or "").strip() or "gpt-4o-mini",
        gemini_model=(env.get("GEMINI_MODEL") or "").strip() or "gemini-2.0-flash",
        cloudinary_folder=(env.get("CLOUDINARY_FOLDER") or "").strip() or None,
        cors_origins=origins or ("*",),
        db_pool_max=db_pool_max,
        max_upload_mb=max_upload_mb,
        notify_async=_flag(env.get("NOTIFY_ASYNC"), True),
    )
