"""On-demand injection of skill instructions into a session."""

from __future__ import annotations

import logging
import re

from conductor.core.session import Session
from conductor.definitions.registry import Registry
from conductor.types.skills import SkillDefinition

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9]+")


def _words(text: str) -> set[str]:
    return {w for w in _WORD_RE.findall(text.lower()) if len(w) > 2}


class SkillLoader:
    """Loads skills from a registry snapshot into sessions.

    Loading appends a reference to the shared, immutable definition. A
    skill is loaded at most once per session and there is no unload.
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    @property
    def registry(self) -> Registry:
        return self._registry

    def load_skill(self, session: Session, name: str) -> SkillDefinition:
        """Inject a skill into ``session``. Raises UnknownSkillError."""
        skill = self._registry.get_skill(name)
        if session.add_skill(skill):
            logger.info("Loaded skill '%s' into session %s", name, session.session_id)
        else:
            logger.debug("Skill '%s' already loaded in session %s", name, session.session_id)
        return skill

    def match(self, query: str, limit: int = 3) -> list[SkillDefinition]:
        """Skills whose name or description share words with ``query``, best first."""
        wanted = _words(query)
        if not wanted:
            return []
        scored: list[tuple[int, str, SkillDefinition]] = []
        for skill in self._registry.skills.values():
            score = 2 * len(wanted & _words(skill.name)) + len(wanted & _words(skill.description))
            if score:
                scored.append((-score, skill.name, skill))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [skill for _, _, skill in scored[:limit]]

    def summary(self) -> str:
        """One line per available skill, for the model's tool description."""
        return "\n".join(
            f"- {s.name}: {s.description}" for s in self._registry.skills.values()
        )
