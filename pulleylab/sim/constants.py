"""Physical and geometric constants shared by the integrators.

Atwood quantities are in SI units (positions in meters from the pulley
axle). Sandbox geometry is in screen pixels with y increasing downward;
`METERS_TO_PIXELS` converts the rope feed between the two.
"""
from __future__ import annotations

from typing import Final

GRAVITY: Final[float] = 9.81
FRICTION_SCALE: Final[float] = 0.4
AIR_RESISTANCE_SCALE: Final[float] = 3.0
METERS_TO_PIXELS: Final[float] = 100.0

# Atwood machine
ATWOOD_MOTION_EPS: Final[float] = 0.001
ATWOOD_BALANCE_TOL_KG: Final[float] = 0.001
ATWOOD_CENTERING_GAIN: Final[float] = 5.0
ATWOOD_BALANCED_DAMPING: Final[float] = 0.90
ATWOOD_END_MARGIN_M: Final[float] = 0.2
ATWOOD_BROKEN_FLOOR_M: Final[float] = 4.5
ATWOOD_DEFAULT_ROPE_M: Final[float] = 5.0

# Sandbox
FLOOR_Y: Final[float] = 550.0
DEFAULT_CEILING_Y: Final[float] = 50.0
CEILING_MARGIN: Final[float] = 5.0
DEFAULT_PULLEY_RADIUS: Final[float] = 25.0
SANDBOX_MOTION_EPS: Final[float] = 0.01
REAL_PULLEY_WEIGHT_KG: Final[float] = 0.1
ROPE_INERTIA_FLOOR_KG: Final[float] = 1.0
MAX_ROPE_SPEED: Final[float] = 50.0
BALANCE_THRESHOLD_N: Final[float] = 0.1
CENTROID_GAIN: Final[float] = 0.1
SANDBOX_BALANCED_DAMPING: Final[float] = 0.95
BROKEN_PULLEY_DROP_PX_S: Final[float] = 100.0

PULLEY_SPRING_K: Final[float] = 1.2
PULLEY_SWAY_DAMPING: Final[float] = 0.95
PULLEY_SWAY_GAIN: Final[float] = 5.0
PULLEY_DRIFT_DAMPING: Final[float] = 0.98

PENDULUM_GRAVITY_GAIN: Final[float] = 2.5
PENDULUM_DAMPING: Final[float] = 0.98
SLACK_DAMPING: Final[float] = 0.90

FREEFALL_GRAVITY_GAIN: Final[float] = 5.0
FREEFALL_DRAG: Final[float] = 0.99
BOUNCE_RESTITUTION: Final[float] = 0.3
BOUNCE_CUTOFF: Final[float] = 0.5
GROUND_FRICTION: Final[float] = 0.9
GROUND_CUTOFF: Final[float] = 0.1


def sign(value: float) -> float:
  """Sign of `value` with sign(0) == 0."""
  if value > 0:
    return 1.0
  if value < 0:
    return -1.0
  return 0.0


__all__ = [name for name in dir() if name.isupper()] + ["sign"]
