from pulleylab.sim import editor
from pulleylab.sim.constants import FLOOR_Y
from pulleylab.sim.presets import load_sandbox_preset
from pulleylab.sim.sandbox import ceiling_y, sandbox_forces, step_sandbox
from pulleylab.sim.schema import (
  FixedPulley,
  Load,
  MovablePulley,
  RealityMode,
  RopeSegment,
  SandboxState,
)
from pulleylab.sim.topology import resolve_groups

DT = 0.016


def make_hand_lifted() -> SandboxState:
  """10 kg on a movable pulley whose rope runs up over a fixed pulley to a 50 N hand."""
  return SandboxState(
    effort_force=50.0,
    fixed_pulleys=(FixedPulley(id="top", x=450, y=50),),
    movable_pulleys=(MovablePulley(id="block", x=400, y=300),),
    loads=(Load(id="crate", mass=10.0, x=400, y=400),),
    rope_segments=(
      RopeSegment(id="r1", from_id="block", to_id="top", kind="pulley", from_side=1, to_side=-1),
      RopeSegment(id="r2", from_id="block", to_id="crate"),
    ),
  )


def make_pair(left_mass: float, right_mass: float, left_y: float = 300, right_y: float = 300) -> SandboxState:
  state = SandboxState()
  state = editor.add_fixed_pulley(state, x=400, y=50, node_id="top")
  state = editor.add_load(state, mass=left_mass, x=375, y=left_y, node_id="left")
  state = editor.add_load(state, mass=right_mass, x=425, y=right_y, node_id="right")
  return editor.route_over_pulley(state, "left", "right", "top")


def load_by_id(state: SandboxState, load_id: str) -> Load:
  return next(l for l in state.loads if l.id == load_id)


def test_effort_lifts_load_through_movable_pulley():
  state = make_hand_lifted()
  f = sandbox_forces(state, resolve_groups(state))
  assert f.ma == 2
  assert abs(f.force_pull - 50.0) < 1e-12
  assert abs(f.net_force - 0.95) < 1e-9       # 50 - 98.1 / 2
  assert abs(f.effective_mass - 3.5) < 1e-12  # 10 / 2^2 + 1

  nxt = step_sandbox(state, DT)
  expected_a = 0.95 / 3.5
  assert abs(nxt.acceleration - expected_a) < 1e-9
  assert abs(nxt.load_velocity - expected_a * DT) < 1e-9
  assert load_by_id(nxt, "crate").y < 400
  assert nxt.movable_pulleys[0].y < 300


def test_lifted_side_moves_at_fraction_of_rope_feed():
  state = make_hand_lifted()
  nxt = step_sandbox(state, DT)
  feed_px = nxt.load_velocity * DT * 100
  assert abs((400 - load_by_id(nxt, "crate").y) - feed_px / 2) < 1e-9
  assert abs(nxt.load_position - (state.load_position + nxt.load_velocity * DT)) < 1e-12


def test_counterweight_descends_and_lifts_through_movable_pulley():
  state = load_sandbox_preset("movable")
  for _ in range(10):
    state = step_sandbox(state, DT)
  assert load_by_id(state, "load-pull").y > 300
  assert load_by_id(state, "load-lift").y < 400
  assert state.load_velocity > 0


def test_zero_dt_and_dragging_leave_state_untouched():
  state = load_sandbox_preset("movable")
  assert step_sandbox(state, 0.0) is state
  held = state.model_copy(update={"is_dragging": True})
  assert step_sandbox(held, DT) is held


def test_boundary_veto_holds_whole_rope():
  state = make_pair(1.0, 5.0, right_y=549.9)
  nxt = step_sandbox(state, DT)
  assert nxt.load_velocity == 0.0
  assert nxt.acceleration == 0.0
  assert load_by_id(nxt, "right").y == 549.9
  assert load_by_id(nxt, "left").y == 300


def test_ceiling_from_tallest_fixed_pulley():
  assert ceiling_y(SandboxState()) == 50.0
  state = SandboxState(fixed_pulleys=(
    FixedPulley(id="a", x=100, y=50, radius=25),
    FixedPulley(id="b", x=200, y=80, radius=30),
  ))
  assert ceiling_y(state) == 115.0


def test_rope_breaks_in_real_mode_and_loads_fall():
  state = make_pair(1.0, 20.0).model_copy(update={"rope_max_tension": 100.0})

  ideal = step_sandbox(state, DT, RealityMode.IDEAL)
  assert not ideal.is_broken

  broken = step_sandbox(state, DT, RealityMode.REAL)
  assert broken.is_broken
  assert broken.load_velocity == 0.0
  for load in broken.loads:
    assert load.y > 300
    assert load.vy > 0

  later = step_sandbox(broken, DT, RealityMode.REAL)
  assert later.is_broken
  assert later.load_velocity == 0.0
  assert all(l.y > b.y for l, b in zip(later.loads, broken.loads))


def test_free_load_bounces_off_floor():
  state = SandboxState(loads=(Load(id="ball", x=300, y=549, vy=5.0),))
  nxt = step_sandbox(state, DT)
  ball = load_by_id(nxt, "ball")
  assert ball.y == FLOOR_Y
  expected_vy = -(5.0 + 9.81 * DT * 5) * 0.3
  assert abs(ball.vy - expected_vy) < 1e-9


def test_free_load_comes_to_rest_on_floor():
  state = SandboxState(loads=(Load(id="crate", x=300, y=FLOOR_Y, vx=0.05),))
  nxt = step_sandbox(state, DT)
  crate = load_by_id(nxt, "crate")
  assert crate.y == FLOOR_Y
  assert crate.vy == 0.0
  assert crate.vx == 0.0


def test_load_on_dangling_rope_falls_freely():
  state = SandboxState(
    loads=(Load(id="crate", x=300, y=200),),
    rope_segments=(RopeSegment(id="r", from_id="ghost", to_id="crate"),),
  )
  nxt = step_sandbox(state, DT)
  assert load_by_id(nxt, "crate").y > 200


def test_movable_pulley_centres_under_its_ropes():
  state = load_sandbox_preset("tackle")
  offset = state.model_copy(update={
    "movable_pulleys": tuple(p.model_copy(update={"x": 430.0}) for p in state.movable_pulleys),
  })
  for _ in range(400):
    offset = step_sandbox(offset, DT)
  assert abs(offset.movable_pulleys[0].x - 400.0) < 0.5


def test_hanging_load_swings_back_under_its_pivot():
  # Left rope leaves the pulley at x=375; a load hung further left swings right.
  state = make_pair(5.0, 5.0)
  state = editor.move_node(state, "left", 300, 300)
  nxt = step_sandbox(state, DT)
  left = load_by_id(nxt, "left")
  assert left.vx > 0
  assert left.x > 300


def test_friction_holds_nearly_balanced_pair():
  state = make_pair(4.9, 5.0).model_copy(update={"friction": 0.2})
  nxt = step_sandbox(state, DT)
  assert nxt.load_velocity == 0.0
  assert nxt.acceleration == 0.0


def test_empty_scene_keeps_the_rope_still():
  state = load_sandbox_preset("empty")
  assert state.effort_force > 0
  for _ in range(200):
    state = step_sandbox(state, DT)
  assert state.load_velocity == 0.0
  assert state.acceleration == 0.0
  assert state.load_position == 80.0


def test_nearly_balanced_pair_is_nudged_toward_equal_heights():
  state = make_pair(5.0, 5.0, left_y=300, right_y=400)
  f = sandbox_forces(state, resolve_groups(state))
  assert f.balanced
  assert abs(f.net_force - (300 - 400) * 0.1) < 1e-9
  assert abs(f.effective_mass - 11.0) < 1e-12

  nxt = step_sandbox(state, DT)
  assert abs(nxt.load_velocity - (-10.0 / 11.0) * DT * 0.95) < 1e-12
  assert load_by_id(nxt, "right").y < 400
  assert load_by_id(nxt, "left").y > 300


def test_real_mode_feed_drag_is_quadratic():
  for v in (2.0, -2.0):
    state = load_sandbox_preset("movable").model_copy(update={"load_velocity": v})
    groups = resolve_groups(state)
    ideal = sandbox_forces(state, groups, RealityMode.IDEAL)
    real = sandbox_forces(state, groups, RealityMode.REAL)
    assert ideal.net_force == ideal.static_drive
    drag = 0.1 * 3.0 * 2 * v * v
    assert abs(real.net_force - (real.static_drive - (1 if v > 0 else -1) * drag)) < 1e-9


def test_feed_speed_is_capped():
  state = make_hand_lifted().model_copy(update={"effort_force": 5000.0, "load_velocity": 49.0})
  nxt = step_sandbox(state, DT)
  assert nxt.load_velocity == 50.0
  assert abs(nxt.acceleration - (50.0 - 49.0) / DT) < 1e-9


def test_rising_pulley_at_ceiling_holds_whole_rope():
  state = make_hand_lifted()
  state = state.model_copy(update={
    "load_velocity": 1.0,
    "movable_pulleys": (state.movable_pulleys[0].model_copy(update={"y": 80.5}),),
    "loads": (state.loads[0].model_copy(update={"y": 180.0}),),
  })
  assert ceiling_y(state) == 80.0
  nxt = step_sandbox(state, DT)
  assert nxt.load_velocity == 0.0
  assert nxt.acceleration == 0.0
  assert nxt.movable_pulleys[0].y == 80.5
  assert load_by_id(nxt, "crate").y == 180.0


def test_reversal_against_friction_stops_the_rope():
  state = make_pair(4.9, 5.0).model_copy(update={"friction": 0.5, "load_velocity": -0.02})
  f = sandbox_forces(state, resolve_groups(state))
  assert abs(f.static_drive) <= f.friction
  assert f.acceleration * DT > 0.02

  nxt = step_sandbox(state, DT)
  assert nxt.load_velocity == 0.0
  assert nxt.acceleration == 0.0


def test_heavy_counterweight_alone_breaks_rope():
  state = make_pair(0.1, 12.0).model_copy(update={"rope_max_tension": 100.0})
  f = sandbox_forces(state, resolve_groups(state), RealityMode.REAL)
  assert f.force_pull > 100.0
  assert f.force_load / f.ma + f.mass_load * abs(f.acceleration) + f.friction * 0.5 < 100.0

  nxt = step_sandbox(state, DT, RealityMode.REAL)
  assert nxt.is_broken


def test_broken_rope_drops_movable_pulley():
  state = make_hand_lifted().model_copy(update={"is_broken": True})
  nxt = step_sandbox(state, DT)
  assert abs(nxt.movable_pulleys[0].y - (300 + 100 * DT)) < 1e-9
  assert nxt.movable_pulleys[0].x == 400
  assert nxt.load_velocity == 0.0

  low = state.model_copy(update={
    "movable_pulleys": (state.movable_pulleys[0].model_copy(update={"y": 549.0}),),
  })
  assert step_sandbox(low, DT).movable_pulleys[0].y == FLOOR_Y
