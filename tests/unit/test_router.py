"""Tests for conductor.agents.router."""

from __future__ import annotations

from pathlib import Path

import pytest

from conductor.agents.router import AgentRouter
from conductor.core.session import Session
from conductor.definitions.loader import load_registry
from conductor.definitions.registry import Registry
from conductor.errors import UnknownAgentError
from conductor.types.agents import AgentMode, ToolCapabilitySet
from conductor.types.commands import CommandDefinition
from conductor.types.tools import ToolKind
from tests.conftest import make_agent


@pytest.fixture
def registry(config_dir: Path) -> Registry:
    return load_registry(config_dir).registry


class TestSelectAgent:
    def test_requested_agent(self, registry: Registry):
        assert AgentRouter(registry).select_agent("plan").name == "plan"

    def test_configured_default(self, registry: Registry):
        assert AgentRouter(registry, default_agent="plan").select_agent(None).name == "plan"

    def test_requested_beats_default(self, registry: Registry):
        router = AgentRouter(registry, default_agent="plan")
        assert router.select_agent("build").name == "build"

    def test_first_primary_alphabetically(self, registry: Registry):
        assert AgentRouter(registry).select_agent(None).name == "build"

    def test_unknown_agent(self, registry: Registry):
        with pytest.raises(UnknownAgentError) as exc_info:
            AgentRouter(registry).select_agent("ghost")
        assert exc_info.value.available == ("build", "plan")

    def test_subagent_not_selectable(self, registry: Registry):
        with pytest.raises(UnknownAgentError, match="'reviewer'") as exc_info:
            AgentRouter(registry).select_agent("reviewer")
        assert exc_info.value.available == ("build", "plan")

    def test_subagent_default_rejected(self, registry: Registry):
        with pytest.raises(UnknownAgentError, match="reviewer"):
            AgentRouter(registry, default_agent="reviewer").select_agent(None)

    def test_unknown_default(self, registry: Registry):
        with pytest.raises(UnknownAgentError, match="ghost"):
            AgentRouter(registry, default_agent="ghost").select_agent(None)

    def test_no_primary_agents(self):
        registry = Registry(agents={"r": make_agent("r", mode=AgentMode.SUBAGENT)})
        with pytest.raises(UnknownAgentError):
            AgentRouter(registry).select_agent(None)

    def test_explicit_pool(self, registry: Registry):
        pool = {"solo": make_agent("solo")}
        assert AgentRouter(registry).select_agent(None, pool).name == "solo"


class TestDeriveAgent:
    def test_target_agent_is_frozen_as_subagent(self, registry: Registry):
        router = AgentRouter(registry)
        command = registry.get_command("git-quick")
        derived = router.derive_agent(command, registry.get_agent("build"))
        assert derived.name == "reviewer"
        assert derived.mode is AgentMode.SUBAGENT
        assert derived.prompt == "You review code."

    def test_read_only_revokes_side_effecting_tools(self, registry: Registry):
        router = AgentRouter(registry)
        derived = router.derive_agent(registry.get_command("git-quick"), registry.get_agent("build"))
        for kind in (ToolKind.EDIT, ToolKind.WRITE, ToolKind.BASH, ToolKind.TODOWRITE):
            assert not derived.tools.enabled(kind)
        assert derived.tools.enabled(ToolKind.READ)

    def test_parent_restrictions_carry_over(self, registry: Registry):
        router = AgentRouter(registry)
        command = CommandDefinition(name="c", description="d", template="t", subtask=True, agent="reviewer")
        derived = router.derive_agent(command, registry.get_agent("plan"))
        assert not derived.tools.enabled(ToolKind.BASH)
        assert not derived.tools.enabled(ToolKind.EDIT)

    def test_command_tools_narrow_further(self, registry: Registry):
        router = AgentRouter(registry)
        command = CommandDefinition(
            name="c", description="d", template="t", subtask=True,
            tools=ToolCapabilitySet.from_mapping({"webfetch": False}),
        )
        derived = router.derive_agent(command, registry.get_agent("build"))
        assert derived.name == "build"
        assert not derived.tools.enabled(ToolKind.WEBFETCH)
        assert derived.tools.enabled(ToolKind.BASH)

    def test_command_model_override(self, registry: Registry):
        router = AgentRouter(registry)
        command = CommandDefinition(name="c", description="d", template="t", model="fast")
        assert router.derive_agent(command, registry.get_agent("build")).model == "fast"

    def test_registry_record_unchanged(self, registry: Registry):
        router = AgentRouter(registry)
        router.derive_agent(registry.get_command("git-quick"), registry.get_agent("build"))
        assert registry.get_agent("reviewer").tools.enabled(ToolKind.BASH)

    def test_unknown_target(self, registry: Registry):
        command = CommandDefinition(name="c", description="d", template="t", agent="ghost")
        with pytest.raises(UnknownAgentError):
            AgentRouter(registry).derive_agent(command, registry.get_agent("build"))


class TestSpawnSubagent:
    def test_child_session(self, registry: Registry, tmp_path: Path):
        parent = Session(registry.get_agent("build"), cwd=tmp_path, rules=registry.rules)
        child = AgentRouter(registry).spawn_subagent(
            registry.get_command("git-quick"), "HEAD~1", parent,
        )
        assert child.parent_id == parent.session_id
        assert child.depth == 1
        assert child.agent.name == "reviewer"
        assert [t.role for t in child.history] == ["user"]
        assert child.history[0].content == "Summarize the changes in HEAD~1."
        assert parent.history == ()
