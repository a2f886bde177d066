from pulleylab.sim.atwood import atwood_forces, step_atwood
from pulleylab.sim.presets import load_atwood_preset
from pulleylab.sim.schema import AtwoodState, RealityMode

DT = 0.016


def test_unbalanced_first_step_matches_newton():
  state = load_atwood_preset("default")
  nxt = step_atwood(state, DT)

  expected_a = 9.81 / 5.5  # (m2 - m1) g / (m1 + m2 + M/2)
  assert abs(nxt.acceleration - expected_a) < 1e-9
  assert abs(nxt.velocity - expected_a * DT) < 1e-9
  assert abs(nxt.y1 - (2.0 - expected_a * DT * DT)) < 1e-9
  assert abs(nxt.y1 + nxt.y2 - 5.0) < 1e-12
  assert abs(nxt.angular_velocity - nxt.velocity / 0.2) < 1e-12
  assert abs(nxt.time - DT) < 1e-12
  assert not nxt.is_broken


def test_tension_difference_drives_pulley_inertia():
  nxt = step_atwood(load_atwood_preset("default"), DT)
  assert abs(nxt.tension1 - 2.0 * (9.81 + nxt.acceleration)) < 1e-9
  assert abs(nxt.tension2 - 3.0 * (9.81 - nxt.acceleration)) < 1e-9
  # T2 - T1 = (I / R^2) a for a solid disk
  assert abs((nxt.tension2 - nxt.tension1) - 0.5 * 1.0 * nxt.acceleration) < 1e-9


def test_zero_dt_is_identity():
  state = load_atwood_preset("default")
  assert step_atwood(state, 0.0) is state
  assert step_atwood(state, 0.0, RealityMode.REAL) is state


def test_rope_length_and_tension_identity_hold_every_tick():
  state = load_atwood_preset("classic")
  for _ in range(60):
    state = step_atwood(state, DT)
    assert abs(state.y1 + state.y2 - state.total_rope_length) < 1e-9
    identity = (state.mass1 - state.mass2) * 9.81 + (state.mass1 + state.mass2) * state.acceleration
    assert abs((state.tension1 - state.tension2) - identity) < 1e-9


def test_balanced_masses_settle_at_equal_heights():
  state = AtwoodState(mass1=2.0, mass2=2.0, y1=1.0, y2=4.0, initial_y1=1.0, initial_y2=4.0)
  for _ in range(1000):
    state = step_atwood(state, DT)
  assert abs(state.y1 - 2.5) < 1e-3
  assert abs(state.y2 - 2.5) < 1e-3
  assert abs(state.velocity) < 1e-3


def test_heavier_side_descends():
  state = load_atwood_preset("default")
  for _ in range(30):
    state = step_atwood(state, DT)
  assert state.y1 < 2.0   # mass 1 (lighter) rises
  assert state.y2 > 3.0
  assert state.velocity > 0


def test_end_stop_clamps_and_stops():
  state = AtwoodState(y1=0.21, y2=4.79, velocity=5.0)
  nxt = step_atwood(state, DT)
  assert nxt.y1 == 0.2
  assert abs(nxt.y2 - 4.8) < 1e-12
  assert nxt.velocity == 0.0
  assert nxt.acceleration == 0.0
  assert nxt.time == state.time


def test_static_friction_holds_small_imbalance():
  state = AtwoodState(friction_coeff=1.0)
  f = atwood_forces(state)
  assert f.friction_limit > abs(f.driving)
  assert f.acceleration == 0.0

  nxt = step_atwood(state, DT)
  assert nxt.velocity == 0.0
  assert nxt.y1 == state.y1


def test_kinetic_friction_can_stop_motion_without_reversal():
  # Moving the "wrong" way against a drive friction can hold: the rope stops dead.
  state = AtwoodState(friction_coeff=1.0, velocity=-0.01)
  nxt = step_atwood(state, DT)
  assert nxt.velocity == 0.0
  assert nxt.acceleration == 0.0


def test_real_mode_drag_opposes_motion():
  moving = AtwoodState(velocity=2.0)
  ideal = atwood_forces(moving, RealityMode.IDEAL)
  real = atwood_forces(moving, RealityMode.REAL)
  assert ideal.drag == 0.0
  assert abs(real.drag - 0.1 * 3.0 * 4.0) < 1e-12
  assert real.acceleration < ideal.acceleration


def test_rope_snaps_in_real_mode_only():
  heavy = AtwoodState(mass1=1.0, mass2=10.0, rope_max_tension=20.0)

  ideal = step_atwood(heavy, DT, RealityMode.IDEAL)
  assert not ideal.is_broken

  real = step_atwood(heavy, DT, RealityMode.REAL)
  assert real.is_broken
  assert real.tension2 > 20.0


def test_broken_rope_masses_only_fall_and_stop_at_floor():
  state = step_atwood(AtwoodState(mass1=1.0, mass2=10.0, rope_max_tension=20.0), DT, RealityMode.REAL)
  assert state.is_broken

  prev = state
  for _ in range(5000):
    state = step_atwood(state, DT, RealityMode.REAL)
    assert state.is_broken
    assert state.y1 >= prev.y1
    assert state.y2 >= prev.y2
    assert state.tension1 == 0.0 and state.tension2 == 0.0
    assert state.velocity == 0.0
    prev = state
  assert state.y1 <= 4.5 + 1e-9
  assert state.y2 <= 4.5 + 1e-9

  assert step_atwood(state, 0.5, RealityMode.IDEAL).is_broken


def test_reset_restores_authored_heights():
  state = load_atwood_preset("default")
  for _ in range(20):
    state = step_atwood(state, DT)
  reset = state.reset()
  assert reset.y1 == 2.0 and reset.y2 == 3.0
  assert reset.velocity == 0.0 and reset.time == 0.0
  assert not reset.is_broken


def test_masses_stay_between_end_stops():
  for mass1, mass2, stop in ((2.0, 3.0, 0.2), (3.0, 2.0, 4.8)):
    state = AtwoodState(mass1=mass1, mass2=mass2)
    for _ in range(2000):
      state = step_atwood(state, DT)
      assert 0.2 - 1e-12 <= state.y1 <= 4.8 + 1e-12
      assert abs(state.y1 + state.y2 - 5.0) < 1e-9
    assert abs(state.y1 - stop) < 1e-12
    assert state.velocity == 0.0
