"""Newton's second law breakdowns for display.

Reads the same force model the integrators use; never steps anything.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from pulleylab.sim.atwood import atwood_forces
from pulleylab.sim.constants import GRAVITY
from pulleylab.sim.sandbox import sandbox_forces
from pulleylab.sim.schema import AtwoodState, RealityMode, SandboxState
from pulleylab.sim.topology import resolve_groups

Behavior = Literal["accelerating", "coasting", "held by friction", "at rest", "rope broken"]


class InertiaTerm(BaseModel):
  label: str
  mass_kg: float


class AtwoodReport(BaseModel):
  """Force and inertia breakdown of the Atwood machine."""
  weight1_n: float
  weight2_n: float
  driving_n: float = Field(description="(m2 - m1) g")
  centering_n: float = Field(description="Equal-height settling term (balanced masses only)")
  friction_limit_n: float
  friction_applied_n: float
  drag_n: float
  net_n: float
  inertia_terms: list[InertiaTerm] = Field(description="Mass contributions, pulley as I/R^2")
  total_inertia_kg: float
  acceleration_m_s2: float
  behavior: Behavior


class SandboxReport(BaseModel):
  """Reduced 1-DOF breakdown of the sandbox rope network."""
  group_a: list[str]
  group_b: list[str]
  mechanical_advantage: int
  mass_load_kg: float
  mass_counter_kg: float
  force_pull_n: float
  force_load_n: float
  load_share_n: float = Field(description="Load weight carried by the pull side, F_load / MA")
  friction_n: float
  net_n: float
  effective_mass_kg: float
  acceleration_m_s2: float
  behavior: Behavior


def _behavior(broken: bool, moving: bool, accel: float, drive: float, friction: float) -> Behavior:
  if broken:
    return "rope broken"
  if abs(accel) > 1e-6:
    return "accelerating"
  if moving:
    return "coasting"
  if abs(drive) > 1e-6 and abs(drive) <= friction:
    return "held by friction"
  return "at rest"


def analyze_atwood(state: AtwoodState, mode: RealityMode = RealityMode.IDEAL) -> AtwoodReport:
  f = atwood_forces(state, mode)
  accel = 0.0 if state.is_broken else f.acceleration
  return AtwoodReport(
    weight1_n=state.mass1 * GRAVITY,
    weight2_n=state.mass2 * GRAVITY,
    driving_n=f.driving,
    centering_n=f.centering,
    friction_limit_n=f.friction_limit,
    friction_applied_n=f.friction_applied,
    drag_n=f.drag,
    net_n=f.net,
    inertia_terms=[
      InertiaTerm(label="m1", mass_kg=state.mass1),
      InertiaTerm(label="m2", mass_kg=state.mass2),
      InertiaTerm(label="I/R^2", mass_kg=0.5 * state.pulley_mass),
    ],
    total_inertia_kg=f.inertia,
    acceleration_m_s2=accel,
    behavior=_behavior(state.is_broken, abs(state.velocity) > 1e-3, accel, f.static_drive, f.friction_limit),
  )


def analyze_sandbox(state: SandboxState, mode: RealityMode = RealityMode.IDEAL) -> SandboxReport:
  groups = resolve_groups(state)
  f = sandbox_forces(state, groups, mode)
  return SandboxReport(
    group_a=[l.id for l in groups.group_a],
    group_b=[l.id for l in groups.group_b],
    mechanical_advantage=f.ma,
    mass_load_kg=f.mass_load,
    mass_counter_kg=f.mass_counter,
    force_pull_n=f.force_pull,
    force_load_n=f.force_load,
    load_share_n=f.force_load / f.ma,
    friction_n=f.friction,
    net_n=f.net_force,
    effective_mass_kg=f.effective_mass,
    acceleration_m_s2=f.acceleration,
    behavior=_behavior(state.is_broken, abs(state.load_velocity) > 1e-2, f.acceleration, f.static_drive, f.friction),
  )


__all__ = ["InertiaTerm", "AtwoodReport", "SandboxReport", "analyze_atwood", "analyze_sandbox"]
