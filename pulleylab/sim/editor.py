"""Sandbox authoring operations.

Every function takes a SandboxState and returns a new one. The integrators
never call these; they only read the structure that results.
"""
from __future__ import annotations

from typing import Optional
from uuid import uuid4

from pulleylab.sim.constants import DEFAULT_PULLEY_RADIUS
from pulleylab.sim.schema import (
  Anchor,
  FixedPulley,
  Load,
  MovablePulley,
  RopeSegment,
  SandboxState,
)

LOAD_COLORS = ("#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6")
PULLEY_SPACING = 60.0


class SandboxEditError(ValueError):
  """An authoring operation referenced something that does not exist or is not allowed."""


def _new_id(prefix: str) -> str:
  return f"{prefix}-{uuid4().hex[:8]}"


def _require(state: SandboxState, node_id: str):
  node = state.node(node_id)
  if node is None:
    raise SandboxEditError(f"Unknown node id: {node_id}")
  return node


def _build(model, **fields):
  try:
    return model(**fields)
  except ValueError as e:
    raise SandboxEditError(str(e)) from e


def _validated(state: SandboxState, **updates) -> SandboxState:
  """Copy with updates and re-run schema validation (unique ids)."""
  try:
    return SandboxState.model_validate(state.model_copy(update=updates).model_dump())
  except ValueError as e:
    raise SandboxEditError(str(e)) from e


def add_fixed_pulley(
  state: SandboxState,
  x: Optional[float] = None,
  y: float = 50.0,
  radius: float = DEFAULT_PULLEY_RADIUS,
  node_id: Optional[str] = None,
) -> SandboxState:
  if x is None:
    x = state.fixed_pulleys[-1].x + PULLEY_SPACING if state.fixed_pulleys else 400.0
  pulley = _build(FixedPulley, id=node_id or _new_id("fixed"), x=x, y=y, radius=radius)
  return _validated(state, fixed_pulleys=(*state.fixed_pulleys, pulley))


def add_movable_pulley(
  state: SandboxState,
  x: Optional[float] = None,
  y: float = 250.0,
  radius: float = DEFAULT_PULLEY_RADIUS,
  node_id: Optional[str] = None,
) -> SandboxState:
  if x is None:
    x = state.movable_pulleys[-1].x + PULLEY_SPACING if state.movable_pulleys else 400.0
  pulley = _build(MovablePulley, id=node_id or _new_id("movable"), x=x, y=y, radius=radius)
  return _validated(state, movable_pulleys=(*state.movable_pulleys, pulley))


def add_anchor(
  state: SandboxState,
  x: float = 50.0,
  y: float = 50.0,
  node_id: Optional[str] = None,
) -> SandboxState:
  anchor = _build(Anchor, id=node_id or _new_id("anchor"), x=x, y=y)
  return _validated(state, anchors=(*state.anchors, anchor))


def add_load(
  state: SandboxState,
  mass: float = 5.0,
  x: float = 400.0,
  y: float = 350.0,
  color: Optional[str] = None,
  node_id: Optional[str] = None,
) -> SandboxState:
  load = _build(
    Load,
    id=node_id or _new_id("load"),
    mass=mass,
    x=x,
    y=y,
    color=color or LOAD_COLORS[len(state.loads) % len(LOAD_COLORS)],
  )
  return _validated(state, loads=(*state.loads, load))


def connect_direct(state: SandboxState, from_id: str, to_id: str) -> SandboxState:
  """Tie a straight rope between two nodes. Existing links are left alone."""
  if from_id == to_id:
    raise SandboxEditError("A rope needs two distinct endpoints")
  _require(state, from_id)
  _require(state, to_id)
  for r in state.rope_segments:
    if {r.from_id, r.to_id} == {from_id, to_id}:
      return state
  rope = RopeSegment(id=_new_id("rope"), from_id=from_id, to_id=to_id, kind="direct")
  return state.model_copy(update={"rope_segments": (*state.rope_segments, rope)})


def route_over_pulley(state: SandboxState, first_id: str, second_id: str, pulley_id: str) -> SandboxState:
  """Run a rope from `first_id` over `pulley_id` down to `second_id`.

  Each leg leaves the pulley on the side its endpoint sits: -1 when the
  endpoint is left of the pulley centre, 1 otherwise.
  """
  if first_id == second_id:
    raise SandboxEditError("A rope needs two distinct endpoints")
  first = _require(state, first_id)
  second = _require(state, second_id)
  pulley = _require(state, pulley_id)
  if not isinstance(pulley, (FixedPulley, MovablePulley)):
    raise SandboxEditError(f"Node {pulley_id} is not a pulley")
  if pulley_id in (first_id, second_id):
    raise SandboxEditError("Rope endpoints must differ from the pulley")

  first_side = -1 if first.x < pulley.x else 1
  second_side = -1 if second.x < pulley.x else 1
  base = _new_id("rope")
  legs = (
    RopeSegment(id=f"{base}-1", from_id=first_id, to_id=pulley_id, kind="pulley",
                from_side=0, to_side=first_side),
    RopeSegment(id=f"{base}-2", from_id=pulley_id, to_id=second_id, kind="pulley",
                from_side=second_side, to_side=0),
  )
  return state.model_copy(update={"rope_segments": (*state.rope_segments, *legs)})


def remove_node(state: SandboxState, node_id: str) -> SandboxState:
  """Delete a node together with every rope touching it."""
  _require(state, node_id)
  return state.model_copy(update={
    "fixed_pulleys": tuple(p for p in state.fixed_pulleys if p.id != node_id),
    "movable_pulleys": tuple(p for p in state.movable_pulleys if p.id != node_id),
    "loads": tuple(l for l in state.loads if l.id != node_id),
    "anchors": tuple(a for a in state.anchors if a.id != node_id),
    "rope_segments": tuple(r for r in state.rope_segments if not r.touches(node_id)),
  })


def remove_rope(state: SandboxState, rope_id: str) -> SandboxState:
  remaining = tuple(r for r in state.rope_segments if r.id != rope_id)
  if len(remaining) == len(state.rope_segments):
    raise SandboxEditError(f"Unknown rope id: {rope_id}")
  return state.model_copy(update={"rope_segments": remaining})


def clear_ropes(state: SandboxState) -> SandboxState:
  return state.model_copy(update={"rope_segments": ()})


def move_node(state: SandboxState, node_id: str, x: float, y: float) -> SandboxState:
  """Drag a node. Movable pulleys only take the new x; their y belongs to the rope."""
  node = _require(state, node_id)

  def moved(items, **coords):
    return tuple(i.model_copy(update=coords) if i.id == node_id else i for i in items)

  if isinstance(node, FixedPulley):
    return state.model_copy(update={"fixed_pulleys": moved(state.fixed_pulleys, x=x, y=y)})
  if isinstance(node, MovablePulley):
    return state.model_copy(update={"movable_pulleys": moved(state.movable_pulleys, x=x)})
  if isinstance(node, Load):
    return state.model_copy(update={"loads": moved(state.loads, x=x, y=y)})
  return state.model_copy(update={"anchors": moved(state.anchors, x=x, y=y)})


def set_load_mass(state: SandboxState, load_id: str, mass: float) -> SandboxState:
  if mass < 0:
    raise SandboxEditError("Mass must be non-negative")
  if not isinstance(_require(state, load_id), Load):
    raise SandboxEditError(f"Node {load_id} is not a load")
  loads = tuple(l.model_copy(update={"mass": mass}) if l.id == load_id else l for l in state.loads)
  return state.model_copy(update={"loads": loads})


def set_pulley_radius(state: SandboxState, pulley_id: str, radius: float) -> SandboxState:
  if radius <= 0:
    raise SandboxEditError("Radius must be positive")
  node = _require(state, pulley_id)
  if isinstance(node, FixedPulley):
    fixed = tuple(p.model_copy(update={"radius": radius}) if p.id == pulley_id else p
                  for p in state.fixed_pulleys)
    return state.model_copy(update={"fixed_pulleys": fixed})
  if isinstance(node, MovablePulley):
    movable = tuple(p.model_copy(update={"radius": radius}) if p.id == pulley_id else p
                    for p in state.movable_pulleys)
    return state.model_copy(update={"movable_pulleys": movable})
  raise SandboxEditError(f"Node {pulley_id} is not a pulley")


def set_parameters(
  state: SandboxState,
  *,
  effort_force: Optional[float] = None,
  friction: Optional[float] = None,
  rope_max_tension: Optional[float] = None,
  air_resistance: Optional[float] = None,
) -> SandboxState:
  updates = {
    "effort_force": effort_force,
    "friction": friction,
    "rope_max_tension": rope_max_tension,
    "air_resistance": air_resistance,
  }
  updates = {k: v for k, v in updates.items() if v is not None}
  if any(v < 0 for v in updates.values()) or updates.get("rope_max_tension", 1.0) <= 0:
    raise SandboxEditError(f"Invalid sandbox parameters: {updates}")
  return state.model_copy(update=updates)


__all__ = [
  "LOAD_COLORS",
  "SandboxEditError",
  "add_fixed_pulley",
  "add_movable_pulley",
  "add_anchor",
  "add_load",
  "connect_direct",
  "route_over_pulley",
  "remove_node",
  "remove_rope",
  "clear_ropes",
  "move_node",
  "set_load_mass",
  "set_pulley_radius",
  "set_parameters",
]
