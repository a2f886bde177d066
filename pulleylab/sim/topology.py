"""Reduce a sandbox rope graph to the two ends of one rope-feed coordinate.

GroupA loads hang on the movable-pulley (lifted) side and move by
-feed/MA; GroupB loads hang on the fixed/anchor (pulling) side and move by
+feed. Loads reached by neither walk are free bodies.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from pulleylab.sim.schema import Load, SandboxState


@dataclass(frozen=True)
class LoadGroups:
  group_a: tuple[Load, ...] = ()
  group_b: tuple[Load, ...] = ()

  @property
  def ids_a(self) -> set[str]:
    return {l.id for l in self.group_a}

  @property
  def ids_b(self) -> set[str]:
    return {l.id for l in self.group_b}

  def contains(self, load_id: str) -> bool:
    return load_id in self.ids_a or load_id in self.ids_b


def mechanical_advantage(state: SandboxState) -> int:
  return max(1, 2 * len(state.movable_pulleys))


def _collect_loads(
  state: SandboxState,
  start_ids: Iterable[str],
  is_boundary: Callable[[str], bool],
) -> list[Load]:
  """Breadth-first walk from `start_ids`, never entering boundary nodes."""
  loads_by_id = {l.id: l for l in state.loads}
  queue = deque(start_ids)
  visited = set(queue)
  found: list[Load] = []

  while queue:
    current = queue.popleft()
    load = loads_by_id.get(current)
    if load is not None and load not in found:
      found.append(load)
    for rope in state.rope_segments:
      if not rope.touches(current):
        continue
      neighbor = rope.other(current)
      if neighbor in visited or is_boundary(neighbor):
        continue
      visited.add(neighbor)
      queue.append(neighbor)
  return found


def _tangent_side(state: SandboxState, load_id: str) -> Optional[int]:
  """Side flag at the first fixed pulley reachable through loads.

  Anchors do not stop the walk. A load that reaches an anchor but no fixed
  pulley reports side 0; one that reaches neither returns None.
  """
  fixed_ids = {p.id for p in state.fixed_pulleys}
  anchor_ids = {a.id for a in state.anchors}
  load_ids = {l.id for l in state.loads}

  queue = deque([load_id])
  visited: set[str] = set()
  anchored = False
  while queue:
    current = queue.popleft()
    if current in visited:
      continue
    visited.add(current)
    for rope in state.ropes_at(current):
      other = rope.other(current)
      if other in fixed_ids:
        return rope.side_at(other)
      if other in anchor_ids:
        anchored = True
      elif other in load_ids:
        queue.append(other)
  return 0 if anchored else None


def resolve_groups(state: SandboxState) -> LoadGroups:
  movable_ids = {p.id for p in state.movable_pulleys}
  fixed_point_ids = [p.id for p in state.fixed_pulleys] + [a.id for a in state.anchors]
  fixed_point_set = set(fixed_point_ids)

  if movable_ids:
    group_a = _collect_loads(
      state, [p.id for p in state.movable_pulleys], lambda nid: nid in fixed_point_set
    )
    ids_a = {l.id for l in group_a}
    from_fixed = _collect_loads(state, fixed_point_ids, lambda nid: nid in movable_ids)
    group_b = [l for l in from_fixed if l.id not in ids_a]
    return LoadGroups(tuple(group_a), tuple(group_b))

  group_a: list[Load] = []
  group_b: list[Load] = []
  for load in state.loads:
    if not state.ropes_at(load.id):
      continue
    side = _tangent_side(state, load.id)
    if side is None:
      continue
    if side == 1:
      group_b.append(load)
    else:
      group_a.append(load)
  return LoadGroups(tuple(group_a), tuple(group_b))


__all__ = ["LoadGroups", "mechanical_advantage", "resolve_groups"]
