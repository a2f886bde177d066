"""Sandbox (block-and-tackle) integrator.

The whole rope network is reduced to one rope-feed coordinate (see
`topology`). Each tick:

1. build the 1-DOF force model (pull side vs load side / MA)
2. integrate the feed velocity, with friction, drag and stiction
3. veto the tick if any coupled item would cross the ceiling or floor
4. test the rope against its tension limit (REAL mode)
5. resolve per-object motion: movable pulleys, hanging loads, free bodies

Geometry is in pixels, y increasing downward. Velocities of the feed are in
m/s and converted with METERS_TO_PIXELS.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

from pulleylab.sim.constants import (
  AIR_RESISTANCE_SCALE,
  BALANCE_THRESHOLD_N,
  BOUNCE_CUTOFF,
  BOUNCE_RESTITUTION,
  BROKEN_PULLEY_DROP_PX_S,
  CEILING_MARGIN,
  CENTROID_GAIN,
  DEFAULT_CEILING_Y,
  FLOOR_Y,
  FREEFALL_DRAG,
  FREEFALL_GRAVITY_GAIN,
  FRICTION_SCALE,
  GRAVITY,
  GROUND_CUTOFF,
  GROUND_FRICTION,
  MAX_ROPE_SPEED,
  METERS_TO_PIXELS,
  PENDULUM_DAMPING,
  PENDULUM_GRAVITY_GAIN,
  PULLEY_DRIFT_DAMPING,
  PULLEY_SPRING_K,
  PULLEY_SWAY_DAMPING,
  PULLEY_SWAY_GAIN,
  REAL_PULLEY_WEIGHT_KG,
  ROPE_INERTIA_FLOOR_KG,
  SANDBOX_BALANCED_DAMPING,
  SANDBOX_MOTION_EPS,
  SLACK_DAMPING,
  sign,
)
from pulleylab.sim.schema import (
  Anchor,
  FixedPulley,
  Load,
  MovablePulley,
  RealityMode,
  SandboxState,
)
from pulleylab.sim.topology import LoadGroups, mechanical_advantage, resolve_groups


@dataclass(frozen=True)
class SandboxForces:
  """Reduced 1-DOF force model. Forces in N, masses in kg."""
  mass_load: float
  mass_counter: float
  ma: int
  force_pull: float
  pull_inertia: float
  force_load: float
  friction: float
  static_drive: float
  net_force: float
  effective_mass: float
  acceleration: float
  balanced: bool


def _mean_y(items) -> float:
  return sum(i.y for i in items) / len(items) if items else 0.0


def sandbox_forces(
  state: SandboxState,
  groups: LoadGroups,
  mode: RealityMode = RealityMode.IDEAL,
) -> SandboxForces:
  pulley_weight = REAL_PULLEY_WEIGHT_KG if mode == RealityMode.REAL else 0.0
  mass_load = sum(l.mass for l in groups.group_a) + len(state.movable_pulleys) * pulley_weight
  mass_counter = sum(l.mass for l in groups.group_b)
  ma = mechanical_advantage(state)

  force_pull = 0.0
  pull_inertia = 0.0
  if mass_counter > 0:
    force_pull = mass_counter * GRAVITY
    pull_inertia = mass_counter
  elif not groups.group_b and (groups.group_a or state.movable_pulleys):
    # The hand only pulls when something hangs on the other end of the rope.
    force_pull = state.effort_force

  force_load = mass_load * GRAVITY
  static_drive = force_pull - force_load / ma
  net = static_drive

  # Counterweighted systems that nearly balance are nudged toward equal
  # heights. Settling aid only.
  balanced = False
  if mass_counter > 0 and (groups.group_a or state.movable_pulleys) and abs(net) < BALANCE_THRESHOLD_N:
    balanced = True
    centroid_a = _mean_y(groups.group_a) if groups.group_a else _mean_y(state.movable_pulleys)
    centroid_b = _mean_y(groups.group_b)
    if centroid_a > 0 and centroid_b > 0:
      net += (centroid_a - centroid_b) * CENTROID_GAIN

  friction = 0.0
  if state.friction > 0:
    friction = state.friction * (force_load + force_pull) * FRICTION_SCALE * max(1, state.pulley_count)

  v = state.load_velocity
  if abs(v) > SANDBOX_MOTION_EPS:
    net -= sign(v) * friction
  elif abs(net) <= friction:
    net = 0.0
  else:
    net -= sign(net) * friction

  if mode == RealityMode.REAL and abs(v) > SANDBOX_MOTION_EPS:
    net -= sign(v) * state.air_resistance * AIR_RESISTANCE_SCALE * 2 * v * v

  effective_mass = pull_inertia + mass_load / (ma * ma) + ROPE_INERTIA_FLOOR_KG
  acceleration = 0.0 if state.is_broken else net / effective_mass

  return SandboxForces(
    mass_load=mass_load,
    mass_counter=mass_counter,
    ma=ma,
    force_pull=force_pull,
    pull_inertia=pull_inertia,
    force_load=force_load,
    friction=friction,
    static_drive=static_drive,
    net_force=net,
    effective_mass=effective_mass,
    acceleration=acceleration,
    balanced=balanced,
  )


def ceiling_y(state: SandboxState) -> float:
  if not state.fixed_pulleys:
    return DEFAULT_CEILING_Y
  return max(p.y + p.radius for p in state.fixed_pulleys) + CEILING_MARGIN


def _crosses(y: float, disp: float, ceiling: float, floor: float) -> bool:
  nxt = y + disp
  return (disp < 0 and nxt < ceiling) or (disp > 0 and nxt > floor)


def _clamp(value: float, lo: float, hi: float) -> float:
  return max(lo, min(hi, value))


Support = Union[FixedPulley, MovablePulley, Anchor]


def _support(state: SandboxState, node_id: str) -> Optional[Support]:
  """Pulley or anchor with this id. Missing ids and loads resolve to None."""
  node = state.node(node_id)
  if isinstance(node, (FixedPulley, MovablePulley, Anchor)):
    return node
  return None


def _departure_x(node: Support, side: int) -> float:
  """X where a rope leaves `node` on the given tangent side."""
  if isinstance(node, Anchor):
    return node.x
  return node.x + side * node.radius


def _update_movable(
  state: SandboxState,
  pulley: MovablePulley,
  disp_a: float,
  dt: float,
  ceiling: float,
  broken: bool,
) -> MovablePulley:
  if broken:
    y = min(FLOOR_Y, pulley.y + BROKEN_PULLEY_DROP_PX_S * dt)
  else:
    y = _clamp(pulley.y + disp_a, ceiling, FLOOR_Y)

  # Average the centre positions that would make every supporting rope vertical.
  targets: list[float] = []
  for rope in state.ropes_at(pulley.id):
    other = _support(state, rope.other(pulley.id))
    if other is None or other.y >= pulley.y:
      continue
    anchor_x = _departure_x(other, rope.side_at(other.id))
    targets.append(anchor_x - rope.side_at(pulley.id) * pulley.radius)

  x, vx = pulley.x, pulley.vx
  if targets and not broken:
    target_x = sum(targets) / len(targets)
    vx += PULLEY_SPRING_K * (target_x - x) * dt
    vx *= PULLEY_SWAY_DAMPING
    x += vx * dt * PULLEY_SWAY_GAIN
  else:
    vx *= PULLEY_DRIFT_DAMPING
    x += vx * dt

  return pulley.model_copy(update={"x": x, "y": y, "vx": vx})


def _pivot(
  state: SandboxState,
  load: Load,
  movables: dict[str, MovablePulley],
) -> Optional[tuple[float, float]]:
  """Tangent departure point of the nearest pulley or anchor roped to `load`."""
  best: Optional[tuple[float, float]] = None
  best_dist = math.inf
  for rope in state.ropes_at(load.id):
    other_id = rope.other(load.id)
    other = movables.get(other_id) or _support(state, other_id)
    if other is None:
      continue
    point = (_departure_x(other, rope.side_at(other_id)), other.y)
    dist = math.hypot(load.x - point[0], load.y - point[1])
    if dist < best_dist:
      best, best_dist = point, dist
  return best


def _update_hanging(
  state: SandboxState,
  load: Load,
  disp: float,
  dt: float,
  ceiling: float,
  movables: dict[str, MovablePulley],
) -> Load:
  y = _clamp(load.y + disp, ceiling, FLOOR_Y)
  vx = load.vx

  pivot = _pivot(state, load, movables)
  if pivot is not None and y > pivot[1]:
    dx = load.x - pivot[0]
    dy = load.y - pivot[1]
    length = math.hypot(dx, dy)
    if length > 0:
      # Small-angle pendulum about the departure point.
      vx += -(GRAVITY * PENDULUM_GRAVITY_GAIN) * (dx / length) * dt
      vx *= PENDULUM_DAMPING
  else:
    vx *= SLACK_DAMPING

  return load.model_copy(update={"x": load.x + vx * dt * METERS_TO_PIXELS, "y": y, "vx": vx, "vy": 0.0})


def _update_free(load: Load, dt: float, mode: RealityMode) -> Load:
  vy = load.vy + GRAVITY * dt * FREEFALL_GRAVITY_GAIN
  if mode == RealityMode.REAL:
    vy *= FREEFALL_DRAG
  y = load.y + vy * dt * METERS_TO_PIXELS

  if y >= FLOOR_Y:
    vy = -vy * BOUNCE_RESTITUTION
    if abs(vy) < BOUNCE_CUTOFF:
      vy = 0.0
    vx = load.vx * GROUND_FRICTION
    if abs(vx) < GROUND_CUTOFF:
      vx = 0.0
    return load.model_copy(update={"x": load.x + vx * dt, "y": FLOOR_Y, "vx": vx, "vy": vy})

  return load.model_copy(update={"x": load.x + load.vx * dt, "y": y, "vy": vy})


def step_sandbox(state: SandboxState, dt: float, mode: RealityMode = RealityMode.IDEAL) -> SandboxState:
  """Advance the sandbox by `dt` seconds and return the new state."""
  if dt <= 0 or state.is_dragging:
    return state

  groups = resolve_groups(state)
  forces = sandbox_forces(state, groups, mode)
  ma = forces.ma
  acceleration = forces.acceleration

  velocity = state.load_velocity + acceleration * dt
  if forces.balanced:
    velocity *= SANDBOX_BALANCED_DAMPING

  if abs(state.load_velocity) > SANDBOX_MOTION_EPS and sign(velocity) != sign(state.load_velocity):
    if abs(forces.static_drive) <= forces.friction:
      velocity = 0.0
      acceleration = 0.0

  clamped = _clamp(velocity, -MAX_ROPE_SPEED, MAX_ROPE_SPEED)
  if clamped != velocity:
    velocity = clamped
    acceleration = (velocity - state.load_velocity) / dt
  delta_rope = velocity * dt * METERS_TO_PIXELS

  ceiling = ceiling_y(state)
  disp_a = -(delta_rope / ma)
  disp_b = delta_rope

  # Hard stop: one item at a boundary holds the whole rope.
  boundary_hit = False
  if not state.is_broken:
    side_a = [*groups.group_a, *state.movable_pulleys]
    boundary_hit = (
      any(_crosses(item.y, disp_a, ceiling, FLOOR_Y) for item in side_a)
      or any(_crosses(item.y, disp_b, ceiling, FLOOR_Y) for item in groups.group_b)
    )
    if boundary_hit:
      velocity = 0.0
      acceleration = 0.0

  is_broken = state.is_broken
  if mode == RealityMode.REAL and not is_broken:
    tension = forces.force_load / ma + forces.mass_load * abs(acceleration) + forces.friction * 0.5
    is_broken = tension > state.rope_max_tension or forces.force_pull > state.rope_max_tension

  frozen = boundary_hit or is_broken
  final_a = 0.0 if frozen else disp_a
  final_b = 0.0 if frozen else disp_b

  movables = tuple(
    _update_movable(state, p, final_a, dt, ceiling, is_broken) for p in state.movable_pulleys
  )
  movable_by_id = {p.id: p for p in movables}

  loads: list[Load] = []
  for load in state.loads:
    if is_broken or not groups.contains(load.id):
      loads.append(_update_free(load, dt, mode))
      continue
    disp = final_a if load.id in groups.ids_a else final_b
    loads.append(_update_hanging(state, load, disp, dt, ceiling, movable_by_id))

  return state.model_copy(update={
    "load_velocity": 0.0 if is_broken else velocity,
    "load_position": state.load_position + (0.0 if is_broken else velocity * dt),
    "acceleration": 0.0 if is_broken else acceleration,
    "movable_pulleys": movables,
    "loads": tuple(loads),
    "is_broken": is_broken,
  })


__all__ = ["SandboxForces", "sandbox_forces", "ceiling_y", "step_sandbox"]
