"""Settings for the extension installer.

Values come from, in order of precedence: explicit overrides (CLI flags),
environment variables, the optional ``~/.orchext.json`` file, and defaults.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from orchext.utils.log import get_logger


logger = get_logger()

DEFAULT_GITHUB_ORG = "keyfactor"
DEFAULT_EXTENSIONS_DIR = "./extensions"
DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_DOWNLOAD_BASE = "https://github.com"
SETTINGS_FILE_NAME = ".orchext.json"

# field name -> environment variables checked in order
_ENV_CANDIDATES: Dict[str, tuple[str, ...]] = {
    "github_token": ("ORCHEXT_GITHUB_TOKEN", "GITHUB_TOKEN"),
    "github_org": ("ORCHEXT_GITHUB_ORG",),
    "extensions_dir": ("ORCHEXT_EXTENSIONS_DIR",),
    "api_base": ("ORCHEXT_API_BASE",),
    "download_base": ("ORCHEXT_DOWNLOAD_BASE",),
    "timeout_seconds": ("ORCHEXT_HTTP_TIMEOUT",),
}


class InstallerSettings(BaseModel):
    """Connection and layout settings for an installer run."""

    model_config = {"populate_by_name": True}

    github_token: Optional[str] = Field(default=None, repr=False)
    github_org: str = DEFAULT_GITHUB_ORG
    extensions_dir: str = DEFAULT_EXTENSIONS_DIR
    api_base: str = DEFAULT_API_BASE
    download_base: str = DEFAULT_DOWNLOAD_BASE
    timeout_seconds: float = 30.0

    @field_validator("github_org", "extensions_dir", mode="before")
    @classmethod
    def _blank_means_default(cls, value: Any, info: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_GITHUB_ORG if info.field_name == "github_org" else DEFAULT_EXTENSIONS_DIR
        return value

    @field_validator("api_base", "download_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def with_overrides(self, **overrides: Any) -> "InstallerSettings":
        """Return a copy with every non-empty override applied."""
        values = {key: value for key, value in overrides.items() if value not in (None, "")}
        if not values:
            return self
        return InstallerSettings(**{**self.model_dump(), **values})


def settings_file_path(home: Optional[Path] = None) -> Path:
    return (home or Path.home()).expanduser() / SETTINGS_FILE_NAME


def _load_settings_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.debug("[config] Settings file not found; using defaults", extra={"path": str(path)})
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning(
            "Error loading settings file: %s: %s",
            type(e).__name__,
            e,
            extra={"path": str(path)},
        )
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file must contain a JSON object", extra={"path": str(path)})
        return {}
    return data


def _env_values(environ: Mapping[str, str]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for field, candidates in _ENV_CANDIDATES.items():
        for env_name in candidates:
            raw = environ.get(env_name, "").strip()
            if raw:
                values[field] = raw
                break
    return values


def load_settings(
    *,
    home: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InstallerSettings:
    """Build settings from the settings file overlaid with environment variables."""
    env = os.environ if environ is None else environ
    path = settings_file_path(home)
    data = _load_settings_file(path)
    data.update(_env_values(env))
    try:
        settings = InstallerSettings(**data)
    except (ValueError, TypeError) as e:
        logger.warning(
            "Invalid installer settings: %s: %s",
            type(e).__name__,
            e,
            extra={"path": str(path)},
        )
        settings = InstallerSettings(**_env_values(env))
    logger.debug(
        "[config] Loaded installer settings",
        extra={
            "org": settings.github_org,
            "extensions_dir": settings.extensions_dir,
            "has_token": bool(settings.github_token),
        },
    )
    return settings


__all__ = [
    "DEFAULT_API_BASE",
    "DEFAULT_DOWNLOAD_BASE",
    "DEFAULT_EXTENSIONS_DIR",
    "DEFAULT_GITHUB_ORG",
    "InstallerSettings",
    "load_settings",
    "settings_file_path",
]
