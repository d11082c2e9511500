"""Discovery and parsing of agent, skill, and command markdown files.

Layout under the configuration root::

    AGENTS.md                 global rules (optional)
    agents/<name>.md          (legacy: agent/)
    commands/<name>.md        (legacy: command/)
    skills/<name>/SKILL.md    (or skills/<name>.md)

Each file is an optional ``---`` YAML header followed by the body.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import yaml

from conductor.definitions.registry import Registry
from conductor.errors import ConfigError
from conductor.types.agents import AgentDefinition, AgentMode, ToolCapabilitySet
from conductor.types.commands import CommandDefinition
from conductor.types.config import DuplicatePolicy
from conductor.types.permissions import PermissionPolicy
from conductor.types.skills import SkillDefinition

logger = logging.getLogger(__name__)

AGENT_DIRS = ("agents", "agent")
COMMAND_DIRS = ("commands", "command")
SKILL_DIRS = ("skills",)
RULES_FILE = "AGENTS.md"

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)

D = TypeVar("D", AgentDefinition, SkillDefinition, CommandDefinition)


@dataclass(frozen=True, slots=True)
class LoadResult:
    """A registry plus the per-file problems found while building it."""

    registry: Registry
    warnings: tuple[ConfigError, ...] = ()


# ---------------------------------------------------------------------------
# Frontmatter
# ---------------------------------------------------------------------------

def split_frontmatter(text: str, path: Path) -> tuple[dict[str, Any], str]:
    """Return ``(metadata, body)``. A file without a header has empty metadata."""
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}, text.strip()
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ConfigError(path, f"invalid YAML header: {exc}") from exc
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ConfigError(path, f"YAML header must be a mapping, got {type(meta).__name__}")
    return meta, text[match.end():].strip()


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(path, f"cannot read file: {exc}") from exc


def _read(path: Path) -> tuple[dict[str, Any], str]:
    return split_frontmatter(_read_text(path), path)


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _required_str(meta: dict[str, Any], key: str, path: Path) -> str:
    value = meta.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError(path, f"missing required field '{key}'")
    if not isinstance(value, str):
        raise ConfigError(path, f"'{key}' must be a string, got {type(value).__name__}")
    return value.strip()


def _optional_str(meta: dict[str, Any], key: str, path: Path) -> str | None:
    value = meta.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(path, f"'{key}' must be a string, got {type(value).__name__}")
    return value.strip() or None


def _optional_bool(meta: dict[str, Any], key: str, path: Path) -> bool:
    value = meta.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(path, f"'{key}' must be true or false, got {value!r}")
    return value


def _name(meta: dict[str, Any], default: str, path: Path) -> str:
    return _optional_str(meta, "name", path) or default


def _tools(meta: dict[str, Any], path: Path) -> ToolCapabilitySet:
    try:
        return ToolCapabilitySet.from_mapping(meta.get("tools"))
    except ValueError as exc:
        raise ConfigError(path, str(exc)) from exc


# ---------------------------------------------------------------------------
# Per-kind parsers
# ---------------------------------------------------------------------------

def parse_agent(path: Path) -> AgentDefinition:
    meta, body = _read(path)

    raw_mode = meta.get("mode", AgentMode.PRIMARY.value)
    try:
        mode = AgentMode(str(raw_mode).strip().lower())
    except ValueError:
        raise ConfigError(
            path, f"invalid mode {raw_mode!r} (expected primary or subagent)",
        ) from None

    try:
        permission = PermissionPolicy.from_mapping(meta.get("permission"))
    except ValueError as exc:
        raise ConfigError(path, str(exc)) from exc

    temperature = meta.get("temperature")
    if temperature is not None:
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
            raise ConfigError(path, f"'temperature' must be a number, got {temperature!r}")
        temperature = float(temperature)

    max_steps = meta.get("max_steps")
    if max_steps is not None and (
        isinstance(max_steps, bool) or not isinstance(max_steps, int) or max_steps < 1
    ):
        raise ConfigError(path, f"'max_steps' must be a positive integer, got {max_steps!r}")

    return AgentDefinition(
        name=_name(meta, path.stem, path),
        description=_required_str(meta, "description", path),
        mode=mode,
        tools=_tools(meta, path),
        permission=permission,
        temperature=temperature,
        model=_optional_str(meta, "model", path),
        max_steps=max_steps,
        prompt=body,
        source=str(path),
    )


def parse_skill(path: Path) -> SkillDefinition:
    meta, body = _read(path)
    default = path.parent.name if path.name == "SKILL.md" else path.stem
    return SkillDefinition(
        name=_name(meta, default, path),
        description=_required_str(meta, "description", path),
        prompt=body,
        source=str(path),
    )


def parse_command(path: Path) -> CommandDefinition:
    meta, body = _read(path)
    if not body:
        raise ConfigError(path, "command template is empty")
    return CommandDefinition(
        name=_name(meta, path.stem, path),
        description=_required_str(meta, "description", path),
        template=body,
        subtask=_optional_bool(meta, "subtask", path),
        agent=_optional_str(meta, "agent", path),
        read_only=_optional_bool(meta, "read_only", path),
        tools=_tools(meta, path),
        model=_optional_str(meta, "model", path),
        source=str(path),
    )


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def _markdown_files(root: Path, dirnames: tuple[str, ...]) -> Iterator[Path]:
    for dirname in dirnames:
        directory = root / dirname
        if directory.is_dir():
            yield from sorted(p for p in directory.glob("*.md") if p.is_file())


def _skill_files(root: Path) -> Iterator[Path]:
    for dirname in SKILL_DIRS:
        directory = root / dirname
        if not directory.is_dir():
            continue
        for entry in sorted(directory.iterdir()):
            if entry.is_dir() and (entry / "SKILL.md").is_file():
                yield entry / "SKILL.md"
            elif entry.is_file() and entry.suffix == ".md":
                yield entry


class _Collector:
    """Accumulates definitions of one kind, applying the duplicate policy."""

    def __init__(self, kind: str, on_duplicate: DuplicatePolicy, warn: Callable[[ConfigError], None]):
        self.kind = kind
        self.items: dict[str, Any] = {}
        self._on_duplicate = on_duplicate
        self._warn = warn

    def add(self, item: Any) -> None:
        existing = self.items.get(item.name)
        if existing is None:
            self.items[item.name] = item
            return
        match self._on_duplicate:
            case DuplicatePolicy.ERROR:
                raise ConfigError(
                    item.source,
                    f"duplicate {self.kind} '{item.name}' (already defined in {existing.source})",
                )
            case DuplicatePolicy.LAST:
                self._warn(ConfigError(
                    existing.source,
                    f"duplicate {self.kind} '{item.name}' overridden by {item.source}",
                ))
                self.items[item.name] = item
            case DuplicatePolicy.FIRST:
                self._warn(ConfigError(
                    item.source,
                    f"duplicate {self.kind} '{item.name}' ignored (already defined in {existing.source})",
                ))


def load_registry(
    root: str | Path,
    *,
    strict: bool = False,
    on_duplicate: DuplicatePolicy = DuplicatePolicy.FIRST,
) -> LoadResult:
    """Load every definition under ``root`` into a Registry.

    A bad file is reported in ``LoadResult.warnings`` and skipped; other
    files still load. With ``strict=True`` the first problem is raised.
    ``DuplicatePolicy.ERROR`` always raises.
    """
    root = Path(root).expanduser()
    warnings: list[ConfigError] = []

    def warn(err: ConfigError) -> None:
        if strict:
            raise err
        logger.warning("%s", err)
        warnings.append(err)

    def collect(kind: str, files: Iterator[Path], parse: Callable[[Path], D]) -> dict[str, D]:
        collector = _Collector(kind, on_duplicate, warn)
        for path in files:
            try:
                item = parse(path)
            except ConfigError as err:
                warn(err)
                continue
            collector.add(item)
            logger.debug("Loaded %s '%s' from %s", kind, item.name, path)
        return collector.items

    if not root.is_dir():
        warn(ConfigError(root, "configuration directory does not exist"))
        return LoadResult(Registry(root=root), tuple(warnings))

    agents = collect("agent", _markdown_files(root, AGENT_DIRS), parse_agent)
    skills = collect("skill", _skill_files(root), parse_skill)
    commands = collect("command", _markdown_files(root, COMMAND_DIRS), parse_command)

    for command in commands.values():
        if command.agent is not None and command.agent not in agents:
            warn(ConfigError(
                command.source,
                f"command '{command.name}' targets unknown agent '{command.agent}'",
            ))

    rules = ""
    rules_path = root / RULES_FILE
    if rules_path.is_file():
        try:
            rules = _read_text(rules_path).strip()
        except ConfigError as err:
            warn(err)

    registry = Registry(agents, skills, commands, rules=rules, root=root)
    logger.info(
        "Loaded %d agents, %d skills, %d commands from %s (%d warnings)",
        len(agents), len(skills), len(commands), root, len(warnings),
    )
    return LoadResult(registry, tuple(warnings))
