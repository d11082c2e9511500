"""Runtime settings: .env, environment variables, then conductor.toml."""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from conductor.errors import ConfigError
from conductor.types.config import AuditConfig, DuplicatePolicy, RuntimeSettings, SubtaskLimits
from conductor.types.permissions import PermissionPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path("~/.config/conductor")
SETTINGS_FILE = "conductor.toml"
DEFAULT_MAX_STEPS = 50
DEFAULT_AUDIT_DIR = Path("~/.conductor/audit")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _env_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(name, f"expected a boolean, got {value!r}")


def load_env_config(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Settings from CONDUCTOR_* environment variables."""
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}

    if value := env.get("CONDUCTOR_CONFIG_DIR"):
        config["config_dir"] = value
    if value := env.get("CONDUCTOR_DEFAULT_AGENT"):
        config["default_agent"] = value
    if (value := env.get("CONDUCTOR_STRICT")) is not None:
        config["strict"] = _env_bool("CONDUCTOR_STRICT", value)
    if value := env.get("CONDUCTOR_MODEL"):
        config["model"] = value
    if value := env.get("CONDUCTOR_AUDIT_DIR"):
        config["audit_dir"] = value

    return config


def load_toml_config(config_dir: Path) -> dict[str, Any]:
    """Load ``<config_dir>/conductor.toml`` if present. Raises ConfigError if malformed."""
    path = config_dir / SETTINGS_FILE
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(path, f"invalid TOML: {exc}") from exc


def _table(data: dict[str, Any], key: str, path: Path) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(path, f"[{key}] must be a table")
    return value


def load_settings(
    config_dir: str | Path | None = None,
    *,
    default_agent: str | None = None,
    strict: bool | None = None,
    model: str | None = None,
    environ: Mapping[str, str] | None = None,
    dotenv: bool = True,
) -> RuntimeSettings:
    """Resolve settings. Precedence: explicit argument > env > TOML > defaults."""
    if dotenv and environ is None:
        # Won't override variables that are already set
        load_dotenv()

    env = load_env_config(environ)
    root = Path(config_dir or env.get("config_dir") or DEFAULT_CONFIG_DIR).expanduser()
    toml_path = root / SETTINGS_FILE
    data = load_toml_config(root)

    def pick(explicit: Any, key: str, default: Any) -> Any:
        if explicit is not None:
            return explicit
        if key in env:
            return env[key]
        return data.get(key, default)

    raw_duplicate = data.get("on_duplicate", DuplicatePolicy.FIRST.value)
    try:
        on_duplicate = DuplicatePolicy(str(raw_duplicate).lower())
    except ValueError:
        raise ConfigError(
            toml_path, f"on_duplicate must be first, last, or error, got {raw_duplicate!r}",
        ) from None

    subtask_data = _table(data, "subtask", toml_path)
    audit_data = _table(data, "audit", toml_path)
    limits = SubtaskLimits()
    try:
        subtask = SubtaskLimits(
            max_steps=int(subtask_data.get("max_steps", limits.max_steps)),
            timeout=float(subtask_data.get("timeout", limits.timeout)),
        )
        max_steps = int(data.get("max_steps", DEFAULT_MAX_STEPS))
        permission = PermissionPolicy.from_mapping(_table(data, "permission", toml_path))
    except (TypeError, ValueError) as exc:
        raise ConfigError(toml_path, str(exc)) from exc

    for key, value in (
        ("max_steps", max_steps),
        ("subtask.max_steps", subtask.max_steps),
        ("subtask.timeout", subtask.timeout),
    ):
        if value <= 0:
            raise ConfigError(toml_path, f"'{key}' must be positive, got {value!r}")

    audit_dir = env.get("audit_dir") or audit_data.get("dir")
    audit = AuditConfig(
        enabled=bool(audit_data.get("enabled", False)) or "audit_dir" in env,
        audit_dir=Path(audit_dir).expanduser() if audit_dir else None,
    )

    settings = RuntimeSettings(
        config_dir=root,
        default_agent=pick(default_agent, "default_agent", None),
        strict=bool(pick(strict, "strict", False)),
        on_duplicate=on_duplicate,
        max_steps=max_steps,
        subtask=subtask,
        audit=audit,
        permission=permission,
        model=pick(model, "model", None),
    )
    logger.debug("Resolved settings: %s", settings)
    return settings
