"""Mechanical state schema for PulleyLab.

Two simulations share this module:
- AtwoodState: two masses over one massive pulley, scalar state in meters.
- SandboxState: a user-assembled graph of fixed pulleys, movable pulleys,
  anchors and loads joined by rope segments, geometry in screen pixels.

States are frozen snapshots. Integrators never mutate them; they return a
new instance via `model_copy(update=...)`.
"""
from __future__ import annotations

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pulleylab.sim.constants import ATWOOD_DEFAULT_ROPE_M, DEFAULT_PULLEY_RADIUS

SCHEMA_VERSION = "1.0.0"


class RealityMode(str, Enum):
  IDEAL = "IDEAL"  # lossless, unbreakable
  REAL = "REAL"    # drag, finite rope strength


class SimulationType(str, Enum):
  ATWOOD = "ATWOOD"
  SANDBOX = "SANDBOX"


class AtwoodState(BaseModel):
  """Two-mass Atwood machine with a solid-disk pulley.

  Positions are measured downward from the pulley axle and satisfy
  `y1 + y2 == total_rope_length` while the rope is intact. Positive
  velocity means mass 1 rising.
  """
  model_config = ConfigDict(frozen=True)

  mass1: float = Field(2.0, ge=0.0, description="Left mass (kg).")
  mass2: float = Field(3.0, ge=0.0, description="Right mass (kg).")
  pulley_mass: float = Field(1.0, ge=0.0, description="Pulley disk mass (kg).")
  pulley_radius: float = Field(0.2, gt=0.0, description="Pulley radius (m).")
  friction_coeff: float = Field(0.0, ge=0.0, description="Simplified bearing friction factor.")
  total_rope_length: float = Field(ATWOOD_DEFAULT_ROPE_M, gt=0.0, description="Rope length (m).")
  rope_max_tension: float = Field(50.0, gt=0.0, description="Tension at which the rope snaps (N).")
  air_resistance: float = Field(0.1, ge=0.0, description="Quadratic drag coefficient.")

  initial_y1: float = Field(2.0, description="Authored height of mass 1, restored on reset (m).")
  initial_y2: float = Field(3.0, description="Authored height of mass 2, restored on reset (m).")

  y1: float = 2.0
  y2: float = 3.0
  velocity: float = 0.0
  angular_velocity: float = 0.0
  acceleration: float = 0.0
  tension1: float = 0.0
  tension2: float = 0.0
  time: float = 0.0
  is_broken: bool = False

  def reset(self) -> "AtwoodState":
    """Return this configuration at its authored heights, at rest and intact."""
    return self.model_copy(update={
      "y1": self.initial_y1,
      "y2": self.initial_y2,
      "velocity": 0.0,
      "acceleration": 0.0,
      "angular_velocity": 0.0,
      "tension1": 0.0,
      "tension2": 0.0,
      "time": 0.0,
      "is_broken": False,
    })


class FixedPulley(BaseModel):
  model_config = ConfigDict(frozen=True)

  kind: Literal["fixed_pulley"] = "fixed_pulley"
  id: str
  x: float
  y: float
  radius: float = Field(DEFAULT_PULLEY_RADIUS, gt=0.0, description="Pulley radius (px).")


class MovablePulley(BaseModel):
  """Free-floating pulley: y follows the rope feed, x seeks vertical ropes."""
  model_config = ConfigDict(frozen=True)

  kind: Literal["movable_pulley"] = "movable_pulley"
  id: str
  x: float
  y: float
  radius: float = Field(DEFAULT_PULLEY_RADIUS, gt=0.0, description="Pulley radius (px).")
  vx: float = Field(0.0, description="Horizontal sway velocity.")


class Load(BaseModel):
  model_config = ConfigDict(frozen=True)

  kind: Literal["load"] = "load"
  id: str
  mass: float = Field(5.0, ge=0.0, description="Mass (kg).")
  x: float
  y: float
  vx: float = Field(0.0, description="Horizontal (swing) velocity.")
  vy: float = Field(0.0, description="Vertical velocity while free falling.")
  color: str = "#3b82f6"


class Anchor(BaseModel):
  model_config = ConfigDict(frozen=True)

  kind: Literal["anchor"] = "anchor"
  id: str
  x: float
  y: float


Node = Union[FixedPulley, MovablePulley, Load, Anchor]
Side = Literal[-1, 0, 1]


class RopeSegment(BaseModel):
  """Rope edge between two nodes.

  `from_side` / `to_side` record which tangent of a pulley endpoint the rope
  leaves from (-1 left, 1 right, 0 centre). They are set when the rope is
  authored and trusted afterwards.
  """
  model_config = ConfigDict(frozen=True)

  id: str
  from_id: str
  to_id: str
  kind: Literal["direct", "pulley"] = "direct"
  from_side: Side = 0
  to_side: Side = 0

  def touches(self, node_id: str) -> bool:
    return self.from_id == node_id or self.to_id == node_id

  def other(self, node_id: str) -> str:
    return self.to_id if self.from_id == node_id else self.from_id

  def side_at(self, node_id: str) -> int:
    """Tangent side recorded at `node_id`'s end of this rope."""
    return self.from_side if self.from_id == node_id else self.to_side


class SandboxState(BaseModel):
  """Block-and-tackle sandbox graph plus its single rope-feed state."""
  model_config = ConfigDict(frozen=True)

  version: str = Field(SCHEMA_VERSION, description="Schema version.")
  fixed_pulleys: tuple[FixedPulley, ...] = ()
  movable_pulleys: tuple[MovablePulley, ...] = ()
  loads: tuple[Load, ...] = ()
  anchors: tuple[Anchor, ...] = ()
  rope_segments: tuple[RopeSegment, ...] = ()

  effort_force: float = Field(50.0, ge=0.0, description="Hand force on a free rope end (N).")
  friction: float = Field(0.0, ge=0.0, description="Friction loss factor per pulley.")
  rope_max_tension: float = Field(120.0, gt=0.0, description="Rope breaking tension (N).")
  air_resistance: float = Field(0.1, ge=0.0, description="Quadratic drag coefficient.")

  load_velocity: float = Field(0.0, description="Rope feed rate (m/s).")
  load_position: float = Field(80.0, description="Accumulated rope feed, display units.")
  acceleration: float = Field(0.0, description="Rope feed acceleration of the last tick (m/s^2).")
  is_broken: bool = False
  is_dragging: bool = Field(False, description="A user is holding the system; stepping is suspended.")

  @model_validator(mode="after")
  def _check_unique_ids(self) -> "SandboxState":
    seen: set[str] = set()
    dupes: list[str] = []
    for node in self.nodes():
      if node.id in seen:
        dupes.append(node.id)
      seen.add(node.id)
    if dupes:
      raise ValueError(f"Node ids must be unique across collections: {sorted(set(dupes))}")
    rope_ids = [r.id for r in self.rope_segments]
    if len(rope_ids) != len(set(rope_ids)):
      raise ValueError("Rope segment ids must be unique")
    return self

  def nodes(self) -> list[Node]:
    return [*self.fixed_pulleys, *self.movable_pulleys, *self.loads, *self.anchors]

  def node_ids(self) -> set[str]:
    return {n.id for n in self.nodes()}

  def node(self, node_id: str) -> Optional[Node]:
    for n in self.nodes():
      if n.id == node_id:
        return n
    return None

  def ropes_at(self, node_id: str) -> list[RopeSegment]:
    return [r for r in self.rope_segments if r.touches(node_id)]

  @property
  def pulley_count(self) -> int:
    return len(self.fixed_pulleys) + len(self.movable_pulleys)

  def dangling_references(self) -> list[str]:
    """Rope endpoint ids that name no node."""
    ids = self.node_ids()
    missing: list[str] = []
    for r in self.rope_segments:
      for end in (r.from_id, r.to_id):
        if end not in ids and end not in missing:
          missing.append(end)
    return missing


__all__ = [
  "SCHEMA_VERSION",
  "RealityMode",
  "SimulationType",
  "AtwoodState",
  "FixedPulley",
  "MovablePulley",
  "Load",
  "Anchor",
  "Node",
  "RopeSegment",
  "SandboxState",
]
