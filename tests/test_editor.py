import pytest

from pulleylab.sim import editor
from pulleylab.sim.editor import SandboxEditError
from pulleylab.sim.schema import FixedPulley, MovablePulley, SandboxState


def make_scene() -> SandboxState:
  state = SandboxState()
  state = editor.add_fixed_pulley(state, x=400, y=50, node_id="top")
  state = editor.add_movable_pulley(state, x=400, y=250, node_id="block")
  state = editor.add_anchor(state, x=350, y=50, node_id="hook")
  state = editor.add_load(state, mass=4.0, x=450, y=300, node_id="crate")
  return state


def test_add_nodes_defaults_and_spacing():
  state = editor.add_fixed_pulley(SandboxState())
  state = editor.add_fixed_pulley(state)
  xs = [p.x for p in state.fixed_pulleys]
  assert xs == [400.0, 460.0]
  assert all(p.y == 50.0 and p.radius == 25.0 for p in state.fixed_pulleys)

  state = editor.add_movable_pulley(state)
  assert state.movable_pulleys[0].y == 250.0


def test_load_colours_cycle():
  state = SandboxState()
  for _ in range(6):
    state = editor.add_load(state)
  colours = [l.color for l in state.loads]
  assert colours[:5] == list(editor.LOAD_COLORS)
  assert colours[5] == editor.LOAD_COLORS[0]


def test_duplicate_node_id_rejected():
  state = make_scene()
  with pytest.raises(SandboxEditError):
    editor.add_load(state, node_id="top")


def test_invalid_node_fields_rejected():
  with pytest.raises(SandboxEditError):
    editor.add_load(SandboxState(), mass=-1.0)
  with pytest.raises(SandboxEditError):
    editor.add_fixed_pulley(SandboxState(), radius=0.0)


def test_connect_direct_is_idempotent_both_ways():
  state = editor.connect_direct(make_scene(), "block", "crate")
  assert len(state.rope_segments) == 1
  rope = state.rope_segments[0]
  assert rope.kind == "direct" and rope.from_side == 0 and rope.to_side == 0

  assert editor.connect_direct(state, "crate", "block") is state


def test_connect_direct_rejects_self_loop_and_unknown_ids():
  state = make_scene()
  with pytest.raises(SandboxEditError):
    editor.connect_direct(state, "crate", "crate")
  with pytest.raises(SandboxEditError):
    editor.connect_direct(state, "crate", "nowhere")


def test_route_over_pulley_records_tangent_sides():
  state = editor.route_over_pulley(make_scene(), "hook", "crate", "top")
  first, second = state.rope_segments
  assert first.kind == second.kind == "pulley"
  assert (first.from_id, first.to_id, first.to_side) == ("hook", "top", -1)   # hook left of pulley
  assert (second.from_id, second.to_id, second.from_side) == ("top", "crate", 1)


def test_route_over_pulley_requires_a_pulley():
  state = make_scene()
  with pytest.raises(SandboxEditError):
    editor.route_over_pulley(state, "hook", "crate", "block-missing")
  with pytest.raises(SandboxEditError):
    editor.route_over_pulley(state, "hook", "top", "crate")


def test_remove_node_drops_its_ropes():
  state = editor.route_over_pulley(make_scene(), "hook", "crate", "top")
  state = editor.connect_direct(state, "block", "crate")
  state = editor.remove_node(state, "crate")
  assert state.node("crate") is None
  assert all(not r.touches("crate") for r in state.rope_segments)
  assert len(state.rope_segments) == 1


def test_remove_rope_and_clear():
  state = editor.connect_direct(make_scene(), "block", "crate")
  rope_id = state.rope_segments[0].id
  assert editor.remove_rope(state, rope_id).rope_segments == ()
  with pytest.raises(SandboxEditError):
    editor.remove_rope(state, "missing")

  state = editor.route_over_pulley(state, "hook", "crate", "top")
  assert editor.clear_ropes(state).rope_segments == ()


def test_move_node_keeps_movable_pulley_height():
  state = make_scene()
  moved = editor.move_node(state, "block", 500, 100)
  block = moved.node("block")
  assert isinstance(block, MovablePulley)
  assert block.x == 500 and block.y == 250

  moved = editor.move_node(state, "top", 300, 60)
  top = moved.node("top")
  assert isinstance(top, FixedPulley)
  assert (top.x, top.y) == (300, 60)


def test_set_load_mass_and_pulley_radius():
  state = make_scene()
  assert editor.set_load_mass(state, "crate", 9.0).node("crate").mass == 9.0
  with pytest.raises(SandboxEditError):
    editor.set_load_mass(state, "crate", -1.0)
  with pytest.raises(SandboxEditError):
    editor.set_load_mass(state, "top", 1.0)

  assert editor.set_pulley_radius(state, "block", 40.0).node("block").radius == 40.0
  with pytest.raises(SandboxEditError):
    editor.set_pulley_radius(state, "crate", 10.0)


def test_set_parameters_validates():
  state = editor.set_parameters(SandboxState(), effort_force=80.0, friction=0.1)
  assert state.effort_force == 80.0 and state.friction == 0.1
  assert state.rope_max_tension == 120.0
  with pytest.raises(SandboxEditError):
    editor.set_parameters(state, rope_max_tension=0.0)
  with pytest.raises(SandboxEditError):
    editor.set_parameters(state, friction=-0.5)
