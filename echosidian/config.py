from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_API_URL = "https://echo.yourhost.com"
DEFAULT_SAVE_FOLDER = "Echo"
DEFAULT_CLIENT_ID = "obsidian_client"

# Keys a user edits through `echosidian config set`; persisted in the settings file
EDITABLE_KEYS = ("api_url", "vault_token", "save_folder")


@dataclass(frozen=True)
class EchoConfig:
    api_url: str = DEFAULT_API_URL
    vault_token: str = ""
    save_folder: str = DEFAULT_SAVE_FOLDER
    vault_path: Path = Path(".")
    client_id: str = DEFAULT_CLIENT_ID
    page_size: int = 1000
    request_timeout: float = 30.0
    sync_interval_minutes: float = 10.0
    startup_delay_seconds: float = 1.0
    on_error: str = "abort"
    transliterate_titles: bool = False

    def with_updates(self, **changes: Any) -> "EchoConfig":
        """Return a copy with `changes` applied; this instance is left as is."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigError(f"unknown setting(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)

    def editable_settings(self) -> Dict[str, str]:
        return {key: getattr(self, key) for key in EDITABLE_KEYS}


def default_settings_path() -> Path:
    raw = os.getenv("ECHOSIDIAN_SETTINGS_PATH", "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".echosidian.json"


def _env_number(name: str, default: float, cast=float, minimum: float = 0) -> Any:
    raw = os.getenv(name, "").strip()
    if not raw:
        return cast(default)
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {raw!r}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def env_settings() -> Dict[str, str]:
    """Editable settings as the environment (or the defaults) define them."""
    return {
        "api_url": os.getenv("ECHOSIDIAN_API_URL", "").strip() or DEFAULT_API_URL,
        "vault_token": os.getenv("ECHOSIDIAN_VAULT_TOKEN", "").strip(),
        "save_folder": os.getenv("ECHOSIDIAN_SAVE_FOLDER", "").strip() or DEFAULT_SAVE_FOLDER,
    }


def load_settings(path: Path) -> Dict[str, str]:
    """Read the persisted key/value settings file (missing file -> {})."""
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except ValueError as e:
        raise ConfigError(f"Settings file is not valid JSON: {path} ({e})") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file must hold a JSON object: {path}")
    return {key: str(raw[key]) for key in EDITABLE_KEYS if raw.get(key) is not None}


def save_settings(config: EchoConfig, path: Path) -> None:
    """Persist the user-editable settings of `config` to `path`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config.editable_settings(), f, indent=2)
        f.write("\n")


def load_config(project_root: Optional[Path] = None, settings_path: Optional[Path] = None) -> EchoConfig:
    """
    Load configuration from .env, the environment and the settings file.

    The settings file wins over the environment for the editable keys
    (api_url, vault_token, save_folder) since that is where edits land.
    """

    if project_root is None:
        # Assume this file is echosidian/config.py
        project_root = Path(__file__).resolve().parents[1]

    # 1) Load .env (never overrides variables already set)
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if settings_path is None:
        settings_path = default_settings_path()

    vault_path = Path(os.getenv("ECHOSIDIAN_VAULT_PATH", "").strip() or ".").expanduser()

    on_error = os.getenv("ECHOSIDIAN_ON_ERROR", "abort").strip().lower() or "abort"
    if on_error not in {"abort", "skip"}:
        raise ConfigError(f"ECHOSIDIAN_ON_ERROR must be 'abort' or 'skip', got {on_error!r}")

    config = EchoConfig(
        **env_settings(),
        vault_path=vault_path,
        client_id=os.getenv("ECHOSIDIAN_CLIENT_ID", "").strip() or DEFAULT_CLIENT_ID,
        page_size=_env_number("ECHOSIDIAN_PAGE_SIZE", 1000, cast=int, minimum=1),
        request_timeout=_env_number("ECHOSIDIAN_REQUEST_TIMEOUT", 30.0, minimum=1),
        sync_interval_minutes=_env_number("ECHOSIDIAN_SYNC_INTERVAL_MINUTES", 10.0, minimum=1),
        startup_delay_seconds=_env_number("ECHOSIDIAN_STARTUP_DELAY_SECONDS", 1.0),
        on_error=on_error,
        transliterate_titles=_env_bool("ECHOSIDIAN_TRANSLITERATE_TITLES"),
    )

    # 2) Persisted settings take precedence for the editable keys
    stored = load_settings(settings_path)
    if stored:
        config = config.with_updates(**stored)

    return config
