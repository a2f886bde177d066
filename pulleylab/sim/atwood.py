"""Atwood machine integrator (semi-implicit Euler, one step per frame).

Conventions:
- y1, y2 measured downward from the pulley axle, in meters
- positive velocity = mass 1 rising, mass 2 falling
- the solid-disk pulley adds I/R^2 = 0.5 * pulley_mass of inertia
"""
from __future__ import annotations

from dataclasses import dataclass

from pulleylab.sim.constants import (
  AIR_RESISTANCE_SCALE,
  ATWOOD_BALANCE_TOL_KG,
  ATWOOD_BALANCED_DAMPING,
  ATWOOD_BROKEN_FLOOR_M,
  ATWOOD_CENTERING_GAIN,
  ATWOOD_DEFAULT_ROPE_M,
  ATWOOD_END_MARGIN_M,
  ATWOOD_MOTION_EPS,
  FRICTION_SCALE,
  GRAVITY,
  sign,
)
from pulleylab.sim.schema import AtwoodState, RealityMode


@dataclass(frozen=True)
class AtwoodForces:
  """Force budget for one intact tick. Forces in N, masses in kg."""
  driving: float
  centering: float
  friction_limit: float
  friction_applied: float
  drag: float
  net: float
  inertia: float
  acceleration: float
  balanced: bool

  @property
  def static_drive(self) -> float:
    return self.driving + self.centering


def _rope_length(state: AtwoodState) -> float:
  return state.total_rope_length or ATWOOD_DEFAULT_ROPE_M


def atwood_forces(state: AtwoodState, mode: RealityMode = RealityMode.IDEAL) -> AtwoodForces:
  m1, m2, v = state.mass1, state.mass2, state.velocity
  total_mass = m1 + m2

  driving = (m2 - m1) * GRAVITY

  # Balanced masses get pulled toward equal heights. Not a physical force.
  balanced = abs(m2 - m1) < ATWOOD_BALANCE_TOL_KG
  centering = 0.0
  if balanced:
    target_y = _rope_length(state) / 2.0
    centering = -(target_y - state.y1) * total_mass * ATWOOD_CENTERING_GAIN

  friction_limit = 0.0
  if state.friction_coeff > 0:
    friction_limit = state.friction_coeff * total_mass * GRAVITY * FRICTION_SCALE

  net = driving + centering
  if abs(v) > ATWOOD_MOTION_EPS:
    friction_applied = sign(v) * friction_limit
  elif abs(net) <= friction_limit:
    friction_applied = net
  else:
    friction_applied = sign(net) * friction_limit
  net -= friction_applied

  drag = 0.0
  if mode == RealityMode.REAL and abs(v) > ATWOOD_MOTION_EPS:
    drag = sign(v) * state.air_resistance * AIR_RESISTANCE_SCALE * v * v
    net -= drag

  inertia = total_mass + 0.5 * state.pulley_mass
  acceleration = net / inertia if inertia > 0 else 0.0

  return AtwoodForces(
    driving=driving,
    centering=centering,
    friction_limit=friction_limit,
    friction_applied=friction_applied,
    drag=drag,
    net=net,
    inertia=inertia,
    acceleration=acceleration,
    balanced=balanced,
  )


def _step_broken(state: AtwoodState, dt: float, mode: RealityMode) -> AtwoodState:
  v1 = state.velocity + GRAVITY * dt
  v2 = state.velocity + GRAVITY * dt
  if mode == RealityMode.REAL:
    drag = 0.5 * state.air_resistance * v1 * v1 * AIR_RESISTANCE_SCALE
    if state.mass1 > 0:
      v1 -= drag / state.mass1 * dt
    if state.mass2 > 0:
      v2 -= drag / state.mass2 * dt

  # Half-speed drift, stopped at the floor. A mass already below the floor mark is never lifted back.
  y1 = min(state.y1 + v1 * dt * 0.5, max(ATWOOD_BROKEN_FLOOR_M, state.y1))
  y2 = min(state.y2 + v2 * dt * 0.5, max(ATWOOD_BROKEN_FLOOR_M, state.y2))

  return state.model_copy(update={
    "y1": y1,
    "y2": y2,
    "tension1": 0.0,
    "tension2": 0.0,
    "velocity": 0.0,
    "acceleration": 0.0,
  })


def step_atwood(state: AtwoodState, dt: float, mode: RealityMode = RealityMode.IDEAL) -> AtwoodState:
  """Advance the Atwood machine by `dt` seconds and return the new state."""
  if dt <= 0:
    return state
  if state.is_broken:
    return _step_broken(state, dt, mode)

  rope_len = _rope_length(state)
  forces = atwood_forces(state, mode)
  acceleration = forces.acceleration
  velocity = state.velocity + acceleration * dt

  # Stiction: a velocity sign flip the static drive cannot sustain stops the rope.
  if abs(state.velocity) > ATWOOD_MOTION_EPS and sign(velocity) != sign(state.velocity):
    if abs(forces.static_drive) <= forces.friction_limit:
      velocity = 0.0
      acceleration = 0.0

  if forces.balanced:
    velocity *= ATWOOD_BALANCED_DAMPING

  y1 = state.y1 - velocity * dt
  lo, hi = ATWOOD_END_MARGIN_M, rope_len - ATWOOD_END_MARGIN_M
  if y1 < lo or y1 > hi:
    y1 = lo if y1 < lo else hi
    return state.model_copy(update={
      "y1": y1,
      "y2": rope_len - y1,
      "velocity": 0.0,
      "acceleration": 0.0,
    })

  tension1 = state.mass1 * (GRAVITY + acceleration)
  tension2 = state.mass2 * (GRAVITY - acceleration)

  is_broken = False
  if mode == RealityMode.REAL:
    is_broken = tension1 > state.rope_max_tension or tension2 > state.rope_max_tension

  return state.model_copy(update={
    "y1": y1,
    "y2": rope_len - y1,
    "velocity": velocity,
    "acceleration": acceleration,
    "tension1": tension1,
    "tension2": tension2,
    "angular_velocity": velocity / state.pulley_radius,
    "is_broken": is_broken,
    "time": state.time + dt,
  })


__all__ = ["AtwoodForces", "atwood_forces", "step_atwood"]
