"""Skill system for Conductor."""

from conductor.skills.loader import SkillLoader

__all__ = ["SkillLoader"]
