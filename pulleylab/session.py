"""
Simulation Session Management

Holds everything a running PulleyLab view needs between frames: which
simulation is active, the current snapshots, the frame clock and the
sampled history. The step functions stay pure; this is the only place
their output is stored.
"""

import uuid
from datetime import datetime
from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel, Field, PrivateAttr

from pulleylab.logging_utils import get_logger
from pulleylab.models.settings import settings
from pulleylab.sim import editor
from pulleylab.sim.atwood import step_atwood
from pulleylab.sim.clock import (
    FrameClock,
    HistoryPoint,
    HistoryRecorder,
    atwood_point,
    sandbox_point,
)
from pulleylab.sim.presets import load_atwood_preset, load_sandbox_preset
from pulleylab.sim.sandbox import step_sandbox
from pulleylab.sim.schema import AtwoodState, RealityMode, SandboxState, SimulationType

logger = get_logger("session")


def _default_atwood() -> AtwoodState:
    return load_atwood_preset(settings.SIM_DEFAULT_ATWOOD_PRESET)


def _default_sandbox() -> SandboxState:
    return load_sandbox_preset(settings.SIM_DEFAULT_SANDBOX_PRESET)


# Operation name -> editor function. Arguments are passed through as keywords.
EDIT_OPERATIONS = {
    "add_fixed_pulley": editor.add_fixed_pulley,
    "add_movable_pulley": editor.add_movable_pulley,
    "add_anchor": editor.add_anchor,
    "add_load": editor.add_load,
    "connect_direct": editor.connect_direct,
    "route_over_pulley": editor.route_over_pulley,
    "remove_node": editor.remove_node,
    "remove_rope": editor.remove_rope,
    "clear_ropes": editor.clear_ropes,
    "move_node": editor.move_node,
    "set_load_mass": editor.set_load_mass,
    "set_pulley_radius": editor.set_pulley_radius,
    "set_parameters": editor.set_parameters,
}


class SimulationSession(BaseModel):
    """
    State container for one interactive simulation view.

    Tracks:
    - Active simulation (Atwood or sandbox) and reality mode
    - Play/pause and time scale
    - Current mechanical snapshots
    - Sampled history for graphs (sliding window)
    """

    session_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique session identifier"
    )

    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Session start time"
    )

    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="Last update time"
    )

    simulation_type: SimulationType = Field(
        default=SimulationType.ATWOOD,
        description="Which simulation advances on tick"
    )

    reality_mode: RealityMode = Field(
        default=RealityMode.IDEAL,
        description="IDEAL (lossless, unbreakable) or REAL (drag, breakable rope)"
    )

    paused: bool = Field(
        default=True,
        description="Paused sessions ignore ticks"
    )

    time_scale: float = Field(
        default_factory=lambda: settings.SIM_DEFAULT_TIME_SCALE,
        description="Multiplier applied after the frame-delta cap"
    )

    atwood: AtwoodState = Field(default_factory=_default_atwood)

    sandbox: SandboxState = Field(default_factory=_default_sandbox)

    elapsed_s: float = Field(
        default=0.0,
        description="Simulated seconds since the last reset (sandbox history clock)"
    )

    _clock: FrameClock = PrivateAttr()
    _history: HistoryRecorder = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._clock = FrameClock(
            max_frame_dt=settings.SIM_MAX_FRAME_DT_S,
            time_scale=self.time_scale,
            sample_interval=settings.SIM_HISTORY_SAMPLE_S,
        )
        self._history = HistoryRecorder(window=settings.SIM_HISTORY_WINDOW)

    @property
    def history(self) -> list[HistoryPoint]:
        return self._history.points

    @property
    def is_broken(self) -> bool:
        if self.simulation_type == SimulationType.ATWOOD:
            return self.atwood.is_broken
        return self.sandbox.is_broken

    def _touch(self) -> None:
        self.updated_at = datetime.now()

    # Stepping

    def step(self, dt: float, sample: bool = False) -> None:
        """Advance the active simulation by `dt` simulated seconds."""
        was_broken = self.is_broken
        if self.simulation_type == SimulationType.ATWOOD:
            self.atwood = step_atwood(self.atwood, dt, self.reality_mode)
        else:
            self.sandbox = step_sandbox(self.sandbox, dt, self.reality_mode)
        self.elapsed_s += max(dt, 0.0)

        if not was_broken and self.is_broken:
            limit = (self.atwood if self.simulation_type == SimulationType.ATWOOD else self.sandbox).rope_max_tension
            logger.warning(
                "Rope snapped in session %s (%s, limit %.1f N)",
                self.session_id, self.simulation_type.value, limit,
            )

        if sample and not was_broken:
            if self.simulation_type == SimulationType.ATWOOD:
                self._history.record(atwood_point(self.atwood))
            else:
                self._history.record(sandbox_point(self.sandbox, self.elapsed_s))
        self._touch()

    def advance(self, now_s: float) -> Optional[float]:
        """Run one scheduler frame at wall-clock `now_s`. Returns the dt stepped, if any."""
        frame = self._clock.tick(now_s, paused=self.paused)
        if frame is None:
            return None
        self.step(frame.dt, sample=frame.should_sample)
        return frame.dt

    # Controls

    def set_controls(
        self,
        *,
        paused: Optional[bool] = None,
        time_scale: Optional[float] = None,
        reality_mode: Optional[RealityMode] = None,
        simulation_type: Optional[SimulationType] = None,
    ) -> None:
        if paused is not None:
            self.paused = paused
        if time_scale is not None:
            self.time_scale = min(max(time_scale, settings.SIM_MIN_TIME_SCALE), settings.SIM_MAX_TIME_SCALE)
            self._clock.time_scale = self.time_scale
        if reality_mode is not None:
            self.reality_mode = reality_mode
        if simulation_type is not None and simulation_type != self.simulation_type:
            self.simulation_type = simulation_type
            self.paused = True
            self._history.clear()
        self._touch()

    def reset(self) -> None:
        """Restore authored Atwood heights, reload the default sandbox, pause."""
        self.atwood = self.atwood.reset()
        self.sandbox = _default_sandbox()
        self.elapsed_s = 0.0
        self._history.clear()
        self._clock.reset()
        self.paused = True
        self._touch()

    def apply_preset(self, family: Literal["atwood", "sandbox"], name: str) -> None:
        self.paused = True
        if family == "atwood":
            self.atwood = load_atwood_preset(name)
            self.sandbox = _default_sandbox()
            self.simulation_type = SimulationType.ATWOOD
        else:
            self.sandbox = load_sandbox_preset(name)
            self.simulation_type = SimulationType.SANDBOX
        self.elapsed_s = 0.0
        self._history.clear()
        logger.info("Session %s loaded %s preset '%s'", self.session_id, family, name)
        self._touch()

    def apply_edits(self, operations: Iterable[dict[str, Any]]) -> int:
        """
        Apply a batch of sandbox authoring operations atomically.

        Each operation is {"op": <name>, **arguments}. If any operation fails
        the sandbox is left untouched and the error propagates.

        Returns:
            Number of operations applied
        """
        sandbox = self.sandbox
        count = 0
        for operation in operations:
            args = dict(operation)
            name = args.pop("op", None)
            fn = EDIT_OPERATIONS.get(name)
            if fn is None:
                raise editor.SandboxEditError(f"Unknown edit operation: {name}")
            try:
                sandbox = fn(sandbox, **args)
            except TypeError as e:
                raise editor.SandboxEditError(f"Bad arguments for {name}: {e}") from e
            count += 1
        self.sandbox = sandbox
        logger.info("Session %s applied %d sandbox edits", self.session_id, count)
        self._touch()
        return count

    def snapshot(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["history"] = [p.model_dump() for p in self.history]
        data["is_broken"] = self.is_broken
        return data


class SessionStore:
    """
    In-memory storage for simulation sessions.

    Sessions live for the lifetime of the process.
    """

    def __init__(self):
        self._sessions: dict[str, SimulationSession] = {}

    def create_session(self) -> SimulationSession:
        session = SimulationSession()
        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> SimulationSession | None:
        return self._sessions.get(session_id)

    def update_session(self, session: SimulationSession):
        session.updated_at = datetime.now()
        self._sessions[session.session_id] = session

    def delete_session(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def list_sessions(self) -> list[SimulationSession]:
        return list(self._sessions.values())


# Global session store instance
_store = SessionStore()


def get_session_store() -> SessionStore:
    """Get global session store instance."""
    return _store
