"""Tests for conductor.core.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from conductor.core.config import DEFAULT_MAX_STEPS, load_env_config, load_settings, load_toml_config
from conductor.errors import ConfigError
from conductor.types.config import DuplicatePolicy
from conductor.types.permissions import PermissionLevel


def _toml(root: Path, text: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "conductor.toml").write_text(text)
    return root


class TestEnvConfig:
    def test_reads_prefixed_vars(self):
        env = load_env_config({
            "CONDUCTOR_CONFIG_DIR": "/cfg",
            "CONDUCTOR_DEFAULT_AGENT": "plan",
            "CONDUCTOR_STRICT": "yes",
            "CONDUCTOR_MODEL": "pkg.mod:client",
            "UNRELATED": "x",
        })
        assert env == {
            "config_dir": "/cfg",
            "default_agent": "plan",
            "strict": True,
            "model": "pkg.mod:client",
        }

    def test_bad_boolean(self):
        with pytest.raises(ConfigError, match="CONDUCTOR_STRICT"):
            load_env_config({"CONDUCTOR_STRICT": "perhaps"})


class TestTomlConfig:
    def test_missing_file(self, tmp_path: Path):
        assert load_toml_config(tmp_path) == {}

    def test_invalid_toml(self, tmp_path: Path):
        _toml(tmp_path, "strict = [")
        with pytest.raises(ConfigError, match="invalid TOML"):
            load_toml_config(tmp_path)


class TestLoadSettings:
    def test_defaults(self, tmp_path: Path):
        settings = load_settings(tmp_path, environ={})
        assert settings.config_dir == tmp_path
        assert settings.default_agent is None
        assert settings.strict is False
        assert settings.on_duplicate is DuplicatePolicy.FIRST
        assert settings.max_steps == DEFAULT_MAX_STEPS
        assert settings.subtask.max_steps == 25
        assert settings.subtask.timeout == 300.0
        assert settings.audit.enabled is False
        assert not settings.permission

    def test_toml_values(self, tmp_path: Path):
        _toml(tmp_path, """
default_agent = "plan"
strict = true
on_duplicate = "last"
max_steps = 12

[subtask]
max_steps = 5
timeout = 30

[permission]
read = "allow"
bash = { "git *" = "ask" }

[audit]
enabled = true
dir = "logs"
""")
        settings = load_settings(tmp_path, environ={})
        assert settings.default_agent == "plan"
        assert settings.strict is True
        assert settings.on_duplicate is DuplicatePolicy.LAST
        assert settings.max_steps == 12
        assert settings.subtask.max_steps == 5
        assert settings.subtask.timeout == 30.0
        assert settings.permission.get("read").level is PermissionLevel.ALLOW
        assert settings.permission.get("bash").resolve("git log") == (PermissionLevel.ASK, "git *")
        assert settings.audit.enabled is True
        assert settings.audit.audit_dir == Path("logs")

    def test_precedence(self, tmp_path: Path):
        _toml(tmp_path, 'default_agent = "toml"\nmodel = "toml:model"\n')
        env = {"CONDUCTOR_DEFAULT_AGENT": "env", "CONDUCTOR_MODEL": "env:model"}
        settings = load_settings(tmp_path, default_agent="explicit", environ=env)
        assert settings.default_agent == "explicit"
        assert settings.model == "env:model"

    def test_config_dir_from_env(self, tmp_path: Path):
        settings = load_settings(environ={"CONDUCTOR_CONFIG_DIR": str(tmp_path)})
        assert settings.config_dir == tmp_path

    def test_audit_dir_from_env_enables_audit(self, tmp_path: Path):
        settings = load_settings(tmp_path, environ={"CONDUCTOR_AUDIT_DIR": str(tmp_path / "a")})
        assert settings.audit.enabled is True
        assert settings.audit.audit_dir == tmp_path / "a"

    @pytest.mark.parametrize("text, message", [
        ('on_duplicate = "newest"', "on_duplicate"),
        ("subtask = 3", r"\[subtask\] must be a table"),
        ('max_steps = "many"', "invalid literal"),
        ('[permission]\nbash = "sometimes"', "invalid permission level"),
        ("max_steps = 0", "'max_steps' must be positive"),
        ("[subtask]\nmax_steps = 0", "'subtask.max_steps' must be positive"),
        ("[subtask]\ntimeout = -5", "'subtask.timeout' must be positive"),
    ])
    def test_invalid_values(self, tmp_path: Path, text: str, message: str):
        _toml(tmp_path, text)
        with pytest.raises(ConfigError, match=message):
            load_settings(tmp_path, environ={})
