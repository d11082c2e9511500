"""Tests for the permission engine and policy types."""

from __future__ import annotations

import pytest

from conductor.permissions.approval import PendingDecision
from conductor.permissions.engine import PermissionEngine
from conductor.types.agents import AgentMode, ToolCapabilitySet
from conductor.types.permissions import (
    PermissionLevel,
    PermissionPolicy,
    PolicyEntry,
    PolicyRule,
    parse_level,
)
from conductor.types.tools import ResourceClass, ToolKind
from tests.conftest import make_agent

ALLOW, ASK, DENY = PermissionLevel.ALLOW, PermissionLevel.ASK, PermissionLevel.DENY


# --- Policy parsing ---


class TestPolicyEntry:
    def test_fixed_level(self):
        entry = PolicyEntry(key="read", level=ALLOW)
        assert entry.resolve("anything") == (ALLOW, None)

    def test_exact_pattern_beats_glob(self):
        entry = PolicyEntry(key="bash", patterns=(("git*", DENY), ("git status", ALLOW)))
        assert entry.resolve("git status") == (ALLOW, "git status")

    def test_longest_glob_wins(self):
        entry = PolicyEntry(key="bash", patterns=(("*", ALLOW), ("git push*", ASK), ("git *", DENY)))
        assert entry.resolve("git push origin main") == (ASK, "git push*")
        assert entry.resolve("git log") == (DENY, "git *")
        assert entry.resolve("ls") == (ALLOW, "*")

    def test_no_match(self):
        entry = PolicyEntry(key="bash", patterns=(("git *", ALLOW),))
        assert entry.resolve("rm -rf /") is None

    def test_glob_is_case_sensitive(self):
        entry = PolicyEntry(key="bash", patterns=(("git *", ALLOW),))
        assert entry.resolve("GIT log") is None


class TestPermissionPolicy:
    def test_from_mapping(self):
        policy = PermissionPolicy.from_mapping({
            "Edit": "Deny",
            "bash": {"git push*": "ask", "*": "allow"},
        })
        assert policy.get("edit").level is DENY
        assert policy.get("bash").resolve("git push") == (ASK, "git push*")
        assert policy.get("read") is None

    def test_round_trip_dict(self):
        raw = {"bash": {"*": "allow"}, "read": "ask"}
        assert PermissionPolicy.from_mapping(raw).to_dict() == raw

    def test_empty_is_falsy(self):
        assert not PermissionPolicy.from_mapping(None)
        assert PermissionPolicy.from_mapping({"read": "allow"})

    @pytest.mark.parametrize("raw", [
        {"teleport": "allow"},
        {"bash": "sometimes"},
        {"bash": {"*": "maybe"}},
        ["read"],
    ])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            PermissionPolicy.from_mapping(raw)

    def test_parse_level(self):
        assert parse_level(" ASK ") is ASK
        with pytest.raises(ValueError, match="expected allow, ask, or deny"):
            parse_level("yes")


class TestPolicyRule:
    def test_str(self):
        rule = PolicyRule(source="tool", level=ASK, key="bash", pattern="git push*", agent="build")
        assert str(rule) == "tool:bash['git push*']=ask (agent build)"
        assert str(PolicyRule(source="default", level=DENY)) == "global default=deny"


# --- Capability sets ---


class TestToolCapabilitySet:
    def test_missing_entries_are_enabled(self):
        caps = ToolCapabilitySet.from_mapping(None)
        assert all(caps.enabled(k) for k in ToolKind)

    def test_class_entry_covers_tools(self):
        caps = ToolCapabilitySet.from_mapping({"edit": False})
        assert not caps.enabled(ToolKind.EDIT)
        assert not caps.enabled(ToolKind.WRITE)
        assert caps.enabled(ToolKind.READ)

    def test_explicit_tool_beats_class(self):
        caps = ToolCapabilitySet.from_mapping({"read": False, "glob": True})
        assert caps.enabled(ToolKind.GLOB)
        assert not caps.enabled(ToolKind.GREP)

    def test_intersect_only_narrows(self):
        a = ToolCapabilitySet.from_mapping({"bash": False})
        b = ToolCapabilitySet.from_mapping({"webfetch": False, "bash": True})
        both = a.intersect(b)
        assert not both.enabled(ToolKind.BASH)
        assert not both.enabled(ToolKind.WEBFETCH)
        assert both.enabled(ToolKind.READ)

    def test_without(self):
        caps = ToolCapabilitySet().without(ToolKind.BASH)
        assert not caps.enabled(ToolKind.BASH)
        assert ToolKind.BASH not in caps.enabled_tools()


class TestToolKind:
    def test_parse(self):
        assert ToolKind.parse("Bash") is ToolKind.BASH
        with pytest.raises(ValueError, match="Unknown tool"):
            ToolKind.parse("teleport")

    def test_resource_classes(self):
        assert ToolKind.WRITE.resource_class is ResourceClass.EDIT
        assert ToolKind.GREP.resource_class is ResourceClass.READ
        assert ToolKind.TODOREAD.resource_class is ResourceClass.TODO

    def test_side_effecting(self):
        assert ToolKind.BASH.side_effecting
        assert not ToolKind.READ.side_effecting


# --- PermissionEngine ---


class TestPermissionEngine:
    def test_global_default_is_deny(self):
        decision = PermissionEngine().evaluate(make_agent(), "read", "a.txt")
        assert decision.denied
        assert decision.rule.source == "default"

    def test_tool_entry(self):
        agent = make_agent(permission={"read": "allow"})
        decision = PermissionEngine().evaluate(agent, ToolKind.READ, "a.txt")
        assert decision.allowed
        assert decision.rule.source == "tool"
        assert decision.rule.agent == "build"

    def test_class_entry_applies_to_every_tool_in_class(self):
        agent = make_agent(permission={"edit": "ask"})
        engine = PermissionEngine()
        assert engine.evaluate(agent, "write", "x").needs_approval
        decision = engine.evaluate(agent, "edit", "x")
        assert decision.needs_approval

    def test_tool_entry_beats_class_entry(self):
        agent = make_agent(permission={"read": "allow", "grep": "deny"})
        engine = PermissionEngine()
        assert engine.evaluate(agent, "glob", "*.py").allowed
        decision = engine.evaluate(agent, "grep", "TODO")
        assert decision.denied
        assert decision.rule.source == "tool"

    def test_bash_patterns(self):
        agent = make_agent(permission={"bash": {"git status": "allow", "git push*": "ask", "*": "deny"}})
        engine = PermissionEngine()
        assert engine.evaluate(agent, "bash", "git status").allowed
        pushed = engine.evaluate(agent, "bash", "git push --force")
        assert pushed.needs_approval
        assert pushed.rule.pattern == "git push*"
        assert engine.evaluate(agent, "bash", "rm -rf /").denied

    def test_unmatched_pattern_falls_through(self):
        agent = make_agent(permission={"bash": {"git *": "allow"}})
        engine = PermissionEngine(PermissionPolicy.from_mapping({"bash": "ask"}))
        decision = engine.evaluate(agent, "bash", "make")
        assert decision.needs_approval
        assert decision.rule.source == "runtime"

    def test_runtime_defaults(self):
        engine = PermissionEngine(PermissionPolicy.from_mapping({"read": "allow"}))
        decision = engine.evaluate(make_agent(), "list", ".")
        assert decision.allowed
        assert decision.rule.source == "runtime"
        assert decision.rule.agent is None

    def test_agent_policy_beats_runtime(self):
        engine = PermissionEngine(PermissionPolicy.from_mapping({"read": "allow"}))
        agent = make_agent(permission={"read": "deny"})
        assert engine.evaluate(agent, "read", "x").denied

    def test_disabled_capability_denies(self):
        agent = make_agent(mode=AgentMode.SUBAGENT, tools={"webfetch": False},
                           permission={"webfetch": "allow"})
        decision = PermissionEngine().evaluate(agent, "webfetch", "https://example.com")
        assert decision.denied
        assert decision.rule.source == "capability"

    def test_plan_only_agent_cannot_edit_even_if_allowed(self):
        agent = make_agent("plan", tools={"edit": False}, permission={"edit": "allow", "read": "allow"})
        assert agent.plan_only
        engine = PermissionEngine()
        for tool in ("edit", "write"):
            decision = engine.evaluate(agent, tool, "main.py")
            assert decision.denied
            assert decision.rule.source == "mode"
        assert engine.evaluate(agent, "read", "main.py").allowed

    def test_plan_only_agent_cannot_reach_files_through_bash(self):
        agent = make_agent("plan", tools={"edit": False}, permission={"bash": "allow"})
        decision = PermissionEngine().evaluate(agent, "bash", "sed -i s/a/b/ main.py")
        assert decision.denied
        assert decision.rule.source == "mode"
        assert decision.rule.key == "bash"

    def test_bash_disabled_plan_agent_cannot_write(self):
        agent = make_agent("plan", tools={"bash": False}, permission={"edit": "allow"})
        assert PermissionEngine().evaluate(agent, "write", "main.py").rule.source == "mode"

    def test_subagent_is_never_plan_only(self):
        agent = make_agent(mode=AgentMode.SUBAGENT, tools={"bash": False})
        assert not agent.plan_only
        assert PermissionEngine().evaluate(agent, "bash", "ls").rule.source == "capability"

    def test_override_upgrades_ask(self):
        agent = make_agent(permission={"bash": "ask"})
        engine = PermissionEngine()
        first = engine.evaluate(agent, "bash", "make test")
        pending = PendingDecision("s1", "build", "bash", "make test", first.rule)
        decision = engine.evaluate(agent, "bash", "make test", override=pending)
        assert decision.allowed
        assert decision.rule.source == "override"

    def test_override_is_bound_to_resource(self):
        agent = make_agent(permission={"bash": "ask"})
        engine = PermissionEngine()
        rule = engine.evaluate(agent, "bash", "make test").rule
        pending = PendingDecision("s1", "build", "bash", "make test", rule)
        assert engine.evaluate(agent, "bash", "make deploy", override=pending).needs_approval

    def test_override_never_upgrades_deny(self):
        agent = make_agent(permission={"bash": {"rm *": "deny", "*": "ask"}})
        engine = PermissionEngine()
        rule = engine.evaluate(agent, "bash", "ls").rule
        pending = PendingDecision("s1", "build", "bash", "rm -rf /", rule)
        assert engine.evaluate(agent, "bash", "rm -rf /", override=pending).denied

    def test_deterministic(self):
        agent = make_agent(permission={"bash": {"git *": "allow", "*": "ask"}})
        engine = PermissionEngine()
        results = {engine.evaluate(agent, "bash", "git log") for _ in range(5)}
        assert len(results) == 1
