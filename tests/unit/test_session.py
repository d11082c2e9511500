"""Tests for conductor.core.session."""

from __future__ import annotations

from pathlib import Path

from conductor.audit.logger import AuditEntry, AuditOutcome
from conductor.core.session import Session, new_session_id
from conductor.types.messages import Turn
from conductor.types.skills import SkillDefinition
from tests.conftest import make_agent


def _entry(session_id: str) -> AuditEntry:
    return AuditEntry(
        tool="read", resource="a.txt", decision="allow", rule="tool:read=allow",
        outcome=AuditOutcome.SUCCESS, session_id=session_id, agent="build",
    )


class TestSession:
    def test_ids_are_unique(self):
        assert new_session_id() != new_session_id()

    def test_history_is_a_snapshot(self, tmp_path: Path):
        session = Session(make_agent(), cwd=tmp_path)
        history = session.history
        session.add_turn(Turn(role="user", content="hi"))
        assert history == ()
        assert len(session.history) == 1

    def test_context_blocks_order(self, tmp_path: Path):
        session = Session(make_agent(prompt="Agent prompt"), cwd=tmp_path, rules="Rules")
        session.add_skill(SkillDefinition("a", "A", "Skill A"))
        session.add_skill(SkillDefinition("b", "B", "Skill B"))
        assert session.context_blocks() == (
            "Rules",
            "Agent prompt",
            "# Skill: a\n\nSkill A",
            "# Skill: b\n\nSkill B",
        )

    def test_empty_blocks_dropped(self, tmp_path: Path):
        assert Session(make_agent(), cwd=tmp_path).context_blocks() == ()

    def test_add_skill_once(self, tmp_path: Path):
        session = Session(make_agent(), cwd=tmp_path)
        skill = SkillDefinition("a", "A", "Skill A")
        assert session.add_skill(skill) is True
        assert session.add_skill(skill) is False
        assert session.has_skill("a")

    def test_tool_context_shares_todos(self, tmp_path: Path):
        session = Session(make_agent(), cwd=tmp_path)
        ctx = session.tool_context()
        ctx.todos.append({"content": "x"})
        assert session.todos == [{"content": "x"}]
        assert ctx.cwd == tmp_path.resolve()


class TestChildSession:
    def test_spawn_child(self, tmp_path: Path):
        parent = Session(make_agent(), cwd=tmp_path, rules="Rules")
        parent.add_turn(Turn(role="user", content="parent only"))
        child = parent.spawn_child(make_agent("reviewer"))

        assert child.parent_id == parent.session_id
        assert child.depth == 1
        assert child.rules == "Rules"
        assert child.history == ()
        assert child.cwd == parent.cwd

    def test_child_audit_forwards_to_parent(self, tmp_path: Path):
        parent = Session(make_agent(), cwd=tmp_path)
        child = parent.spawn_child(make_agent("reviewer"))
        grandchild = child.spawn_child(make_agent("reviewer"))

        grandchild.audit.append(_entry(grandchild.session_id))
        assert len(grandchild.audit) == 1
        assert len(child.audit) == 1
        assert len(parent.audit) == 1
        assert parent.audit.entries[0].session_id == grandchild.session_id

    def test_discard(self, tmp_path: Path):
        child = Session(make_agent(), cwd=tmp_path).spawn_child(make_agent("reviewer"))
        child.add_turn(Turn(role="user", content="work"))
        child.add_skill(SkillDefinition("a", "A", "Skill A"))
        child.todos.append({"content": "x"})
        child.discard()
        assert child.history == ()
        assert child.skills == ()
        assert child.todos == []

    def test_repr(self, tmp_path: Path):
        session = Session(make_agent(), session_id="abc", cwd=tmp_path)
        assert repr(session) == "Session(id='abc', agent='build', turns=0, depth=0)"
