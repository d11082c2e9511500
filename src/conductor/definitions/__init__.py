"""Agent, skill, and command definitions loaded from a configuration directory."""

from conductor.definitions.loader import LoadResult, load_registry, split_frontmatter
from conductor.definitions.registry import Registry, RegistryDiff

__all__ = [
    "LoadResult",
    "Registry",
    "RegistryDiff",
    "load_registry",
    "split_frontmatter",
]
