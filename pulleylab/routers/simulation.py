"""
Router: /simulation - Stateless Stepping API (v1.0)

Steps or analyses a snapshot the client sends and returns the result.
Nothing is stored server-side; sessions live under /sessions.

Endpoints:
- POST /simulation/atwood/step
- POST /simulation/sandbox/step
- POST /simulation/atwood/analysis
- POST /simulation/sandbox/analysis
- GET  /simulation/presets
- GET  /simulation/presets/{family}/{name}
"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from pulleylab.models.settings import settings
from pulleylab.sim.analysis import AtwoodReport, SandboxReport, analyze_atwood, analyze_sandbox
from pulleylab.sim.atwood import step_atwood
from pulleylab.sim.presets import PresetNotFoundError, list_presets, load_preset
from pulleylab.sim.sandbox import step_sandbox
from pulleylab.sim.schema import AtwoodState, RealityMode, SandboxState

logger = logging.getLogger("pulleylab.simulation")

router = APIRouter(prefix="/simulation", tags=["simulation"])

PresetFamily = Literal["atwood", "sandbox"]


# ===========================
# Request/Response Models
# ===========================

class AtwoodStepRequest(BaseModel):
    """Request body for /simulation/atwood/step."""

    state: AtwoodState = Field(
        description="Atwood snapshot to advance"
    )
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
    mode: RealityMode = Field(
        default=RealityMode.IDEAL,
        description="IDEAL or REAL"
    )


class SandboxStepRequest(BaseModel):
    """Request body for /simulation/sandbox/step."""

    state: SandboxState = Field(
        description="Sandbox snapshot to advance"
    )
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
    mode: RealityMode = Field(
        default=RealityMode.IDEAL,
        description="IDEAL or REAL"
    )


class AtwoodStepResponse(BaseModel):
    state: AtwoodState
    steps: int = Field(description="Steps actually integrated")


class SandboxStepResponse(BaseModel):
    state: SandboxState
    steps: int = Field(description="Steps actually integrated")


class AtwoodAnalysisRequest(BaseModel):
    state: AtwoodState
    mode: RealityMode = RealityMode.IDEAL


class SandboxAnalysisRequest(BaseModel):
    state: SandboxState
    mode: RealityMode = RealityMode.IDEAL


# ===========================
# Helper Functions
# ===========================

def _check_steps(steps: int) -> None:
    if steps > settings.SIM_MAX_STEPS_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"steps must be <= {settings.SIM_MAX_STEPS_PER_REQUEST}"
        )


# ===========================
# Endpoints
# ===========================

@router.post("/atwood/step", response_model=AtwoodStepResponse)
async def atwood_step(request: AtwoodStepRequest):
    """
    Advance an Atwood machine `steps` times by `dt_s`.

    Stops early once the rope breaks; the broken state is returned as-is.
    """
    _check_steps(request.steps)
    state = request.state
    taken = 0
    try:
        for _ in range(request.steps):
            state = step_atwood(state, request.dt_s, request.mode)
            taken += 1
            if state.is_broken:
                break
    except Exception as e:
        logger.error(f"[atwood_step] Stepping failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Simulation error: {str(e)}")

    return AtwoodStepResponse(state=state, steps=taken)


@router.post("/sandbox/step", response_model=SandboxStepResponse)
async def sandbox_step(request: SandboxStepRequest):
    """
    Advance a sandbox `steps` times by `dt_s`.

    Unlike the Atwood endpoint this keeps stepping after a break, so the
    free-fall of the released loads can be watched.
    """
    _check_steps(request.steps)
    dangling = request.state.dangling_references()
    if dangling:
        logger.warning(f"[sandbox_step] Rope endpoints without nodes: {dangling}")

    state = request.state
    try:
        for _ in range(request.steps):
            state = step_sandbox(state, request.dt_s, request.mode)
    except Exception as e:
        logger.error(f"[sandbox_step] Stepping failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Simulation error: {str(e)}")

    return SandboxStepResponse(state=state, steps=request.steps)


@router.post("/atwood/analysis", response_model=AtwoodReport)
async def atwood_analysis(request: AtwoodAnalysisRequest):
    """Force and inertia breakdown of an Atwood snapshot."""
    return analyze_atwood(request.state, request.mode)


@router.post("/sandbox/analysis", response_model=SandboxReport)
async def sandbox_analysis(request: SandboxAnalysisRequest):
    """Reduced 1-DOF breakdown of a sandbox snapshot."""
    return analyze_sandbox(request.state, request.mode)


@router.get("/presets")
async def get_presets() -> dict[str, list[dict[str, str]]]:
    """List every preset by family."""
    return {
        "atwood": list_presets("atwood"),
        "sandbox": list_presets("sandbox"),
    }


@router.get("/presets/{family}/{name}")
async def get_preset(family: PresetFamily, name: str) -> dict[str, Any]:
    """Return a preset as a ready-to-step state."""
    try:
        state = load_preset(family, name)
    except PresetNotFoundError:
        raise HTTPException(
            status_code=404,
            detail=f"Preset '{name}' not found in family '{family}'"
        )
    return {"family": family, "name": name, "state": state.model_dump(mode="json")}
