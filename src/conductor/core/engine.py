"""Runtime: wires registry, permissions, gateway, router, and loop together."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from conductor.agents.router import AgentRouter
from conductor.audit.logger import AuditLog
from conductor.core.config import DEFAULT_AUDIT_DIR
from conductor.core.dispatcher import TaskDispatcher
from conductor.core.loop import AgentLoop
from conductor.core.session import Session, new_session_id
from conductor.definitions.loader import LoadResult, load_registry
from conductor.definitions.registry import Registry, RegistryDiff
from conductor.errors import ConfigError
from conductor.permissions.approval import ApprovalBroker
from conductor.permissions.engine import PermissionEngine
from conductor.skills.loader import SkillLoader
from conductor.tools.base import BaseTool
from conductor.tools.gateway import ToolGateway
from conductor.types.agents import AgentMode
from conductor.types.commands import CommandDefinition
from conductor.types.config import RuntimeSettings
from conductor.types.messages import ModelClient, SubtaskResult, TurnResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Wiring:
    """Everything that depends on a registry snapshot, swapped as one unit."""

    registry: Registry
    router: AgentRouter
    skills: SkillLoader
    loop: AgentLoop
    dispatcher: TaskDispatcher


class Runtime:
    """A loaded configuration directory plus the machinery to run turns.

    Usage::

        runtime = Runtime(load_settings(), model)
        runtime.load()
        session = runtime.new_session()
        result = await runtime.run_command("git-quick", "HEAD~1", session)
    """

    def __init__(
        self,
        settings: RuntimeSettings,
        model: ModelClient,
        *,
        broker: ApprovalBroker | None = None,
        tools: Iterable[BaseTool] | None = None,
        cwd: str | Path = ".",
    ) -> None:
        self._settings = settings
        self._model = model
        self._cwd = Path(cwd)
        self._gateway = ToolGateway(
            PermissionEngine(settings.permission),
            broker or ApprovalBroker(),
            tools,
        )
        self._wiring: _Wiring | None = None
        self._warnings: tuple[ConfigError, ...] = ()
        self._sessions: dict[str, Session] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> LoadResult:
        """Load the configuration directory. Raises ConfigError in strict mode."""
        result = self._read_config()
        self._install(result)
        return result

    def _read_config(self) -> LoadResult:
        return load_registry(
            self._settings.config_dir,
            strict=self._settings.strict,
            on_duplicate=self._settings.on_duplicate,
        )

    def reload(self) -> RegistryDiff:
        """Re-read the configuration directory and swap in the new snapshot.

        Sessions already running keep the agent records they started with.
        """
        old = self.registry
        result = self._read_config()
        if result.registry.fingerprint() == old.fingerprint():
            logger.info("Reload: no changes")
            return RegistryDiff()
        diff = old.diff(result.registry)
        self._install(result)
        logger.info("Reload: %s", diff)
        return diff

    def _install(self, result: LoadResult) -> _Wiring:
        registry = result.registry
        router = AgentRouter(registry, self._settings.default_agent)
        skills = SkillLoader(registry)
        loop = AgentLoop(self._model, self._gateway, skills, max_steps=self._settings.max_steps)
        dispatcher = TaskDispatcher(router, loop, self._settings.subtask)
        loop.attach_dispatcher(dispatcher)
        self._wiring = _Wiring(registry, router, skills, loop, dispatcher)
        self._warnings = result.warnings
        return self._wiring

    def _require(self) -> _Wiring:
        if self._wiring is None:
            return self._install(self._read_config())
        return self._wiring

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def settings(self) -> RuntimeSettings:
        return self._settings

    @property
    def registry(self) -> Registry:
        return self._require().registry

    @property
    def warnings(self) -> tuple[ConfigError, ...]:
        return self._warnings

    @property
    def router(self) -> AgentRouter:
        return self._require().router

    @property
    def skills(self) -> SkillLoader:
        return self._require().skills

    @property
    def loop(self) -> AgentLoop:
        return self._require().loop

    @property
    def dispatcher(self) -> TaskDispatcher:
        return self._require().dispatcher

    @property
    def gateway(self) -> ToolGateway:
        return self._gateway

    @property
    def broker(self) -> ApprovalBroker:
        return self._gateway.broker

    # ------------------------------------------------------------------
    # Sessions and turns
    # ------------------------------------------------------------------

    def new_session(self, agent: str | None = None) -> Session:
        """Start a session for ``agent`` (or the default primary agent)."""
        wiring = self._require()
        definition = wiring.router.select_agent(agent)
        session_id = new_session_id()
        audit = AuditLog(session_id, log_path=self._audit_path(session_id))
        session = Session(
            definition,
            session_id=session_id,
            cwd=self._cwd,
            rules=wiring.registry.rules,
            audit=audit,
        )
        self._sessions[session_id] = session
        logger.info("New session %s with agent %s", session_id, definition.name)
        return session

    def _audit_path(self, session_id: str) -> Path | None:
        audit = self._settings.audit
        if not audit.enabled:
            return None
        directory = (audit.audit_dir or DEFAULT_AUDIT_DIR).expanduser()
        return directory / f"audit-{session_id}.jsonl"

    async def chat(self, session: Session, message: str) -> TurnResult:
        return await self._require().loop.run_turn(session, message)

    def runs_as_subtask(self, command: CommandDefinition, session: Session) -> bool:
        """True for subtask commands and for commands aimed at another agent.

        A session never changes agent, so a command targeting a different
        agent (including any subagent) always runs in a child session.
        """
        if command.subtask:
            return True
        if command.agent is None or command.agent == session.agent.name:
            return False
        self.registry.get_agent(command.agent)
        return True

    async def run_command(
        self, name: str, args: str = "", session: Session | None = None,
    ) -> TurnResult | SubtaskResult:
        """Run a command by name. Raises UnknownCommandError.

        Subtask commands return a SubtaskResult; the rest run as an
        ordinary turn in ``session``. Without a session, a fresh one is
        started and ended around the command.
        """
        wiring = self._require()
        command = wiring.registry.get_command(name)
        if session is not None:
            return await self._run_in(wiring, command, args, session)

        session = self.new_session(self._session_agent_for(command))
        try:
            return await self._run_in(wiring, command, args, session)
        finally:
            self.end_session(session)

    async def _run_in(
        self, wiring: _Wiring, command: CommandDefinition, args: str, session: Session,
    ) -> TurnResult | SubtaskResult:
        if self.runs_as_subtask(command, session):
            async with session.turn_lock:
                return await wiring.dispatcher.run_subtask(command, args, session)
        return await wiring.loop.run_turn(session, command.render(args))

    def _session_agent_for(self, command: CommandDefinition) -> str | None:
        """A non-subtask command aimed at a primary agent gets a session with it."""
        if command.subtask or command.agent is None:
            return None
        target = self.registry.get_agent(command.agent)
        return target.name if target.mode is AgentMode.PRIMARY else None

    def end_session(self, session: Session) -> None:
        """Close the session's audit sink and stop tracking it."""
        self._sessions.pop(session.session_id, None)
        session.audit.close()

    @property
    def sessions(self) -> tuple[Session, ...]:
        """Sessions started by this runtime and not yet ended."""
        return tuple(self._sessions.values())

    def close(self) -> None:
        """End every session this runtime still tracks."""
        for session in list(self._sessions.values()):
            self.end_session(session)
