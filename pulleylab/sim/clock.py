"""Frame scheduling and history sampling for the step functions.

The caller owns one FrameClock per running simulation and feeds it wall
clock timestamps. The clock turns them into a capped, time-scaled `dt` and
tells the caller when a history sample is due. Sampling runs on real time,
so graphs keep a steady rate whatever the time scale.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from pulleylab.sim.schema import AtwoodState, SandboxState


@dataclass(frozen=True)
class FrameTick:
  dt: float
  real_dt: float
  should_sample: bool


class FrameClock:
  def __init__(self, max_frame_dt: float = 0.05, time_scale: float = 1.0, sample_interval: float = 0.05):
    self.max_frame_dt = max_frame_dt
    self.time_scale = time_scale
    self.sample_interval = sample_interval
    self.last_time: Optional[float] = None
    self.sample_accumulator = 0.0

  def tick(self, now_s: float, paused: bool = False) -> Optional[FrameTick]:
    """Register a frame at `now_s` seconds.

    Returns None for the first frame, while paused, or when time did not
    advance; otherwise the step to integrate.
    """
    last, self.last_time = self.last_time, now_s
    if last is None or paused:
      return None
    real_dt = now_s - last
    if real_dt <= 0:
      return None

    dt = min(real_dt, self.max_frame_dt) * self.time_scale

    self.sample_accumulator += real_dt
    should_sample = self.sample_accumulator >= self.sample_interval
    if should_sample:
      self.sample_accumulator = 0.0
    return FrameTick(dt=dt, real_dt=real_dt, should_sample=should_sample)

  def reset(self) -> None:
    self.last_time = None
    self.sample_accumulator = 0.0


class HistoryPoint(BaseModel):
  time: float
  velocity: float
  acceleration: float
  position: float
  angular_velocity: Optional[float] = None


def _snap(value: float, eps: float = 0.001) -> float:
  return 0.0 if abs(value) < eps else value


def atwood_point(state: AtwoodState) -> HistoryPoint:
  return HistoryPoint(
    time=round(state.time, 2),
    velocity=round(_snap(state.velocity), 3),
    acceleration=round(_snap(state.acceleration), 3),
    position=round(state.y1, 3),
    angular_velocity=round(_snap(state.angular_velocity), 3),
  )


def sandbox_point(state: SandboxState, elapsed_s: float) -> HistoryPoint:
  return HistoryPoint(
    time=round(elapsed_s, 2),
    velocity=round(_snap(state.load_velocity), 3),
    acceleration=round(_snap(state.acceleration), 3),
    position=round(state.load_position / 10, 3),
  )


class HistoryRecorder:
  """Sliding window of the most recent samples."""

  def __init__(self, window: int = 100):
    self._points: deque[HistoryPoint] = deque(maxlen=window)

  def record(self, point: HistoryPoint) -> None:
    self._points.append(point)

  def clear(self) -> None:
    self._points.clear()

  @property
  def points(self) -> list[HistoryPoint]:
    return list(self._points)

  def __len__(self) -> int:
    return len(self._points)


__all__ = [
  "FrameTick",
  "FrameClock",
  "HistoryPoint",
  "HistoryRecorder",
  "atwood_point",
  "sandbox_point",
]
