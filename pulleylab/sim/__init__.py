"""Pulley physics core.

This package provides:
- State schema (schema.py)
- Rope-graph reduction to one rope-feed DOF (topology.py)
- Step functions:
  - step_atwood: two masses over a massive pulley (atwood.py)
  - step_sandbox: free-form block and tackle (sandbox.py)
- Authoring helpers, presets, force analysis and frame scheduling
"""

from pulleylab.sim.schema import (
  AtwoodState,
  RealityMode,
  SandboxState,
  SimulationType,
)
from pulleylab.sim.topology import resolve_groups
from pulleylab.sim.atwood import step_atwood
from pulleylab.sim.sandbox import step_sandbox

__all__ = [
  # Schema
  "AtwoodState",
  "SandboxState",
  "RealityMode",
  "SimulationType",
  # Core
  "resolve_groups",
  "step_atwood",
  "step_sandbox",
]
