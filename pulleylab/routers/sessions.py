"""
Router: /sessions - Interactive Simulation Sessions (v1.0)

Server-held simulation views. The client drives a session by posting
frame timestamps (tick) or explicit steps, flips controls, loads presets
and edits the sandbox between frames.

Architecture:
- SimulationSession holds the snapshots, frame clock and history
- SessionStore keeps sessions in memory for the process lifetime
- Integrators stay pure; the session stores their output
"""

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pulleylab.models.settings import settings
from pulleylab.session import EDIT_OPERATIONS, SimulationSession, get_session_store
from pulleylab.sim.editor import SandboxEditError
from pulleylab.sim.presets import PresetNotFoundError
from pulleylab.sim.schema import RealityMode, SimulationType

logger = logging.getLogger("pulleylab.sessions")

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ===========================
# Request/Response Models
# ===========================

class TickRequest(BaseModel):
    """One scheduler frame."""

    now_s: float = Field(
        description="Client wall-clock timestamp in seconds (e.g. performance.now() / 1000)"
    )


class StepRequest(BaseModel):
    """Explicit stepping, independent of the frame clock and pause state."""

    dt_s: float = Field(
        default_factory=lambda: settings.SIM_DEFAULT_DT_S,
        ge=0.0,
        description="Seconds per step"
    )
    steps: int = Field(
        default=1,
        ge=1,
        description="Number of consecutive steps"
    )
    record: bool = Field(
        default=False,
        description="Sample history after every step"
    )


class ControlsRequest(BaseModel):
    """Play/pause, speed, reality mode and active simulation."""

    paused: Optional[bool] = Field(default=None, description="Pause or resume")
    time_scale: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Speed multiplier (clamped to the configured range)"
    )
    reality_mode: Optional[RealityMode] = Field(default=None, description="IDEAL or REAL")
    simulation_type: Optional[SimulationType] = Field(
        default=None,
        description="Switching simulations pauses and clears history"
    )


class PresetRequest(BaseModel):
    family: Literal["atwood", "sandbox"] = Field(description="Preset family")
    name: str = Field(description="Preset name")


class EditOperation(BaseModel):
    """
    One sandbox authoring operation.

    Example:
        {"op": "add_load", "mass": 8.0, "x": 420, "y": 360, "node_id": "crate"}
    """

    model_config = ConfigDict(extra="allow")

    op: str = Field(description="Editor operation name, e.g. 'add_load' or 'route_over_pulley'")

    @field_validator("op")
    @classmethod
    def _known_op(cls, value: str) -> str:
        if value not in EDIT_OPERATIONS:
            raise ValueError(f"Unknown edit operation '{value}'. Expected one of: {sorted(EDIT_OPERATIONS)}")
        return value


class EditRequest(BaseModel):
    operations: list[EditOperation] = Field(
        description="Applied in order; if one fails none are kept"
    )


class SessionResponse(BaseModel):
    """Full session snapshot."""

    session_id: str
    simulation_type: SimulationType
    reality_mode: RealityMode
    paused: bool
    time_scale: float
    elapsed_s: float
    is_broken: bool
    atwood: dict[str, Any]
    sandbox: dict[str, Any]
    history: list[dict[str, Any]]
    meta: dict[str, Any] = Field(
        default_factory=dict,
        description="Per-call details (dt stepped, operations applied, ...)"
    )


# ===========================
# Helper Functions
# ===========================

def _get_session(session_id: str) -> SimulationSession:
    session = get_session_store().get_session(session_id)
    if not session:
        raise HTTPException(
            status_code=404,
            detail=f"Session {session_id} not found"
        )
    return session


def _respond(session: SimulationSession, **meta: Any) -> SessionResponse:
    get_session_store().update_session(session)
    return SessionResponse(**session.snapshot(), meta=meta)


# ===========================
# Endpoints
# ===========================

@router.post("", response_model=SessionResponse)
async def create_session():
    """Start a paused session on the default Atwood and sandbox presets."""
    session = get_session_store().create_session()
    logger.info(f"[sessions] Created session {session.session_id}")
    return _respond(session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _respond(_get_session(session_id))


@router.delete("/{session_id}")
async def delete_session(session_id: str) -> dict[str, str]:
    if not get_session_store().delete_session(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    logger.info(f"[sessions] Deleted session {session_id}")
    return {"status": "deleted", "session_id": session_id}


@router.post("/{session_id}/tick", response_model=SessionResponse)
async def tick_session(session_id: str, request: TickRequest):
    """
    Run one animation frame.

    The first tick after creation, reset or a pause only records the
    timestamp. Later ticks step the active simulation by the capped,
    time-scaled frame delta.
    """
    session = _get_session(session_id)
    try:
        dt = session.advance(request.now_s)
    except Exception as e:
        logger.error(f"[sessions] Tick failed for {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Simulation error: {str(e)}")
    return _respond(session, dt_s=dt)


@router.post("/{session_id}/step", response_model=SessionResponse)
async def step_session(session_id: str, request: StepRequest):
    session = _get_session(session_id)
    if request.steps > settings.SIM_MAX_STEPS_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"steps must be <= {settings.SIM_MAX_STEPS_PER_REQUEST}"
        )
    try:
        for _ in range(request.steps):
            session.step(request.dt_s, sample=request.record)
    except Exception as e:
        logger.error(f"[sessions] Step failed for {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Simulation error: {str(e)}")
    return _respond(session, steps=request.steps)


@router.post("/{session_id}/controls", response_model=SessionResponse)
async def update_controls(session_id: str, request: ControlsRequest):
    session = _get_session(session_id)
    session.set_controls(**request.model_dump(exclude_none=True))
    return _respond(session)


@router.post("/{session_id}/reset", response_model=SessionResponse)
async def reset_session(session_id: str):
    session = _get_session(session_id)
    session.reset()
    return _respond(session)


@router.post("/{session_id}/preset", response_model=SessionResponse)
async def apply_preset(session_id: str, request: PresetRequest):
    session = _get_session(session_id)
    try:
        session.apply_preset(request.family, request.name)
    except PresetNotFoundError:
        raise HTTPException(
            status_code=404,
            detail=f"Preset '{request.name}' not found in family '{request.family}'"
        )
    return _respond(session)


@router.post("/{session_id}/sandbox/edit", response_model=SessionResponse)
async def edit_sandbox(session_id: str, request: EditRequest):
    """
    Apply a batch of sandbox edits.

    Example:
        POST /sessions/{id}/sandbox/edit
        {
          "operations": [
            {"op": "add_fixed_pulley", "node_id": "top", "x": 400, "y": 50},
            {"op": "add_load", "node_id": "crate", "x": 375, "y": 300},
            {"op": "add_load", "node_id": "weight", "x": 425, "y": 300},
            {"op": "route_over_pulley", "first_id": "crate", "second_id": "weight", "pulley_id": "top"}
          ]
        }
    """
    session = _get_session(session_id)
    try:
        applied = session.apply_edits(op.model_dump() for op in request.operations)
    except SandboxEditError as e:
        logger.warning(f"[sessions] Rejected sandbox edit for {session_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"[sessions] Sandbox edit failed for {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Edit error: {str(e)}")
    return _respond(session, operations_applied=applied)
