"""Test fixtures including MockModel for deterministic testing."""

from __future__ import annotations

import asyncio
import itertools
import textwrap
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from conductor.core.session import Session
from conductor.types.agents import AgentDefinition, AgentMode, ToolCapabilitySet
from conductor.types.config import RuntimeSettings
from conductor.types.messages import ModelRequest, ModelStep
from conductor.types.permissions import PermissionPolicy
from conductor.types.tools import ToolCall

_call_ids = itertools.count(1)


@dataclass
class MockTurn:
    """A scripted model step.

    Specify either text or tool_calls (or both) for what the model should "respond" with.
    """

    text: str = ""
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    # Each tool call: {"name": "read", "args": {"file_path": "foo.py"}} (id optional)

    def to_step(self) -> ModelStep:
        calls = tuple(
            ToolCall(id=tc.get("id", f"call_{next(_call_ids)}"), name=tc["name"], args=tc.get("args", {}))
            for tc in self.tool_calls
        )
        return ModelStep(text=self.text, tool_calls=calls)


class MockModel:
    """A deterministic ModelClient for testing.

    Usage:
        model = MockModel(turns=[
            MockTurn(tool_calls=[{"name": "read", "args": {"file_path": "test.py"}}]),
            MockTurn(text="The file contains test code."),
        ])

    Every request is recorded in ``requests``. When the script runs out the
    model answers with a plain "done".
    """

    def __init__(self, turns: list[MockTurn] | None = None) -> None:
        self._turns = list(turns or [])
        self._index = 0
        self.requests: list[ModelRequest] = []

    async def next_step(self, request: ModelRequest) -> ModelStep:
        self.requests.append(request)
        if self._index >= len(self._turns):
            return ModelStep(text="done")
        turn = self._turns[self._index]
        self._index += 1
        return turn.to_step()


class LoopingModel:
    """Calls the same tool forever, to exhaust step budgets."""

    def __init__(self, name: str = "todoread", args: dict[str, Any] | None = None) -> None:
        self._name = name
        self._args = args or {}
        self.requests: list[ModelRequest] = []

    async def next_step(self, request: ModelRequest) -> ModelStep:
        self.requests.append(request)
        return ModelStep(
            text="working",
            tool_calls=(ToolCall(id=f"call_{next(_call_ids)}", name=self._name, args=self._args),),
        )


class SlowModel:
    """Sleeps before every step, to exhaust time budgets."""

    def __init__(self, delay: float = 5.0) -> None:
        self._delay = delay

    async def next_step(self, request: ModelRequest) -> ModelStep:
        await asyncio.sleep(self._delay)
        return ModelStep(text="too late")


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

def make_agent(
    name: str = "build",
    *,
    mode: AgentMode = AgentMode.PRIMARY,
    tools: dict[str, bool] | None = None,
    permission: dict[str, Any] | None = None,
    prompt: str = "",
    max_steps: int | None = None,
) -> AgentDefinition:
    return AgentDefinition(
        name=name,
        description=f"{name} agent",
        mode=mode,
        tools=ToolCapabilitySet.from_mapping(tools),
        permission=PermissionPolicy.from_mapping(permission),
        prompt=prompt,
        max_steps=max_steps,
    )


def write_file(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """A configuration directory with two primaries, a subagent, a skill, and commands."""
    root = tmp_path / "conductor"
    write_file(root, "AGENTS.md", "Always run the tests.\n")
    write_file(root, "agents/build.md", """
        ---
        description: Default agent with full tool access
        permission:
          read: allow
          edit: allow
          todo: allow
          task: allow
          skill: allow
          bash:
            "git status": allow
            "git push*": ask
            "*": deny
        ---
        You are the build agent.
    """)
    write_file(root, "agents/plan.md", """
        ---
        description: Planning agent that never edits
        tools:
          edit: false
          bash: false
        permission:
          read: allow
          edit: allow
          bash: allow
        ---
        You are the plan agent.
    """)
    write_file(root, "agents/reviewer.md", """
        ---
        description: Reviews diffs
        mode: subagent
        permission:
          read: allow
          bash: allow
        ---
        You review code.
    """)
    write_file(root, "skills/pdf/SKILL.md", """
        ---
        description: Working with PDF files and forms
        ---
        Use pdftotext to extract text.
    """)
    write_file(root, "commands/git-quick.md", """
        ---
        description: Summarize a revision
        subtask: true
        agent: reviewer
        read_only: true
        ---
        Summarize the changes in $ARGUMENTS.
    """)
    write_file(root, "commands/hello.md", """
        ---
        description: Say hello
        ---
        Say hello to the user.
    """)
    return root


@pytest.fixture
def settings(config_dir: Path) -> RuntimeSettings:
    return RuntimeSettings(config_dir=config_dir)


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory with sample files."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "README.md").write_text("# Test Project\n\nA test project.\n")
    (project / "main.py").write_text("def hello():\n    print('Hello, world!')\n\nhello()\n")
    src = project / "src"
    src.mkdir()
    (src / "utils.py").write_text("def add(a, b):\n    return a + b\n")
    (src / "app.py").write_text("from utils import add\n\nresult = add(1, 2)\nprint(result)\n")
    return project


@pytest.fixture
def make_session(tmp_project: Path) -> Callable[..., Session]:
    """Factory for sessions rooted in ``tmp_project``."""

    def factory(agent: AgentDefinition | None = None, **kwargs: Any) -> Session:
        return Session(agent or make_agent(), cwd=tmp_project, **kwargs)

    return factory
