"""Preset configurations for the Atwood machine and the sandbox."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml

from pulleylab.sim.schema import AtwoodState, SandboxState

PRESETS_DIR = Path(__file__).parent


class PresetNotFoundError(KeyError):
  """Raised when a preset family or name is unknown."""


@lru_cache
def load_family(family: str) -> Dict[str, Any]:
  """
  Load a preset YAML file.

  Args:
    family: "atwood" or "sandbox" (file name without .yaml)

  Returns:
    Mapping of preset name -> {"description": str, "state": dict}
  """
  path = PRESETS_DIR / f"{family}.yaml"
  if not path.exists():
    raise PresetNotFoundError(f"Unknown preset family: {family}")
  with open(path, "r", encoding="utf-8") as f:
    return yaml.safe_load(f) or {}


def list_presets(family: str) -> List[Dict[str, str]]:
  return [
    {"name": name, "description": entry.get("description", "")}
    for name, entry in load_family(family).items()
  ]


def _preset_state(family: str, name: str) -> Dict[str, Any]:
  presets = load_family(family)
  if name not in presets:
    raise PresetNotFoundError(f"Unknown {family} preset: {name}")
  return dict(presets[name].get("state") or {})


def load_atwood_preset(name: str = "default") -> AtwoodState:
  return AtwoodState.model_validate(_preset_state("atwood", name))


def load_sandbox_preset(name: str = "empty") -> SandboxState:
  return SandboxState.model_validate(_preset_state("sandbox", name))


def load_preset(family: str, name: str) -> AtwoodState | SandboxState:
  if family == "atwood":
    return load_atwood_preset(name)
  if family == "sandbox":
    return load_sandbox_preset(name)
  raise PresetNotFoundError(f"Unknown preset family: {family}")


__all__ = [
  "PRESETS_DIR",
  "PresetNotFoundError",
  "list_presets",
  "load_atwood_preset",
  "load_sandbox_preset",
  "load_preset",
]
