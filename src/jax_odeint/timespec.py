"""
Integration horizons.

A time specification describes where an integration starts, where it ends and
which times are reported back to the caller. Two variants are provided:

    - FixedStep: start time, duration and a constant step size.
    - ExplicitGrid: an explicit, strictly increasing list of output times.

Both validate eagerly and raise `InvalidTimeSpec` on construction, so a bad
horizon is reported before the right-hand side is ever evaluated.
"""

import math
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Optional, TypeAlias, Union

import numpy as np

from .custom_types import StepPair
from .errors import InvalidTimeSpec

# Ratios duration/dt this close to an integer are treated as that integer
_STEP_COUNT_RTOL = 1e-9


class ScheduledStep(NamedTuple):
    """One step of a fixed-step integration: start, size, end, record flag."""

    t: float
    h: float
    t_next: float
    record: bool


def _count_steps(duration: float, dt: float) -> int:
    """Number of steps of size dt needed to cover duration, ceil-rounded."""
    ratio = duration / dt
    nearest = round(ratio)
    if nearest >= 1 and abs(ratio - nearest) <= _STEP_COUNT_RTOL * nearest:
        return int(nearest)
    return max(1, int(math.ceil(ratio)))


@dataclass(frozen=True)
class FixedStep:
    """
    Integrate from t0 for `duration` with a constant step `dt`.

    The number of steps is ceil(duration / dt). Interior steps have size dt
    exactly; if dt does not divide the duration the final step is shortened
    so that the last time is exactly t0 + duration.

    Attributes:
        t0: Start time.
        duration: Length of the horizon. Must be positive.
        dt: Step size. Must be positive.
    """

    t0: float
    duration: float
    dt: float

    def __post_init__(self):
        for name in ("t0", "duration", "dt"):
            value = getattr(self, name)
            try:
                value = float(value)
            except (TypeError, ValueError) as exc:
                raise InvalidTimeSpec(f"{name} must be a real number, got {value!r}") from exc
            if not math.isfinite(value):
                raise InvalidTimeSpec(f"{name} must be finite, got {value}")
            object.__setattr__(self, name, value)
        if self.dt <= 0.0:
            raise InvalidTimeSpec(f"dt must be positive, got {self.dt}")
        if self.duration <= 0.0:
            raise InvalidTimeSpec(f"duration must be positive, got {self.duration}")

    @property
    def n_steps(self) -> int:
        return _count_steps(self.duration, self.dt)

    @property
    def t_end(self) -> float:
        return self.t0 + self.duration

    def grid(self) -> np.ndarray:
        """All n_steps + 1 grid times, the last one exactly t0 + duration."""
        n = self.n_steps
        times = self.t0 + self.dt * np.arange(n + 1, dtype=np.float64)
        times[-1] = self.t_end
        return times

    def steps(self) -> Iterator[StepPair]:
        """Yield (t, h) for every step of the horizon."""
        times = self.grid()
        n = self.n_steps
        for i in range(n):
            t = float(times[i])
            h = self.dt if i < n - 1 else float(times[n] - times[i])
            yield t, h

    def schedule(self, max_step: Optional[float] = None) -> Iterator[ScheduledStep]:
        """Yield the steps of the horizon, every one flagged for recording."""
        if max_step is not None:
            raise ValueError(
                "max_step only applies to ExplicitGrid; FixedStep already "
                "defines its step size through dt"
            )
        grid = self.grid()
        for i, (t, h) in enumerate(self.steps()):
            yield ScheduledStep(t, h, float(grid[i + 1]), True)

    def output_times(self) -> np.ndarray:
        return self.grid()


@dataclass(frozen=True)
class ExplicitGrid:
    """
    Report the solution at an explicit list of times.

    The first entry is the initial time. Solvers may take several internal
    steps between consecutive entries, but only the listed times appear in
    the returned trajectory.

    Attributes:
        times: Strictly increasing 1-d sequence with at least two entries.
    """

    times: np.ndarray = field()

    def __post_init__(self):
        try:
            times = np.array(self.times, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InvalidTimeSpec(f"times must be real numbers: {exc}") from exc
        if times.ndim != 1:
            raise InvalidTimeSpec(f"times must be 1-dimensional, got shape {times.shape}")
        if times.size < 2:
            raise InvalidTimeSpec("times must contain at least two points")
        if not np.all(np.isfinite(times)):
            raise InvalidTimeSpec("times must be finite")
        if np.any(np.diff(times) <= 0.0):
            raise InvalidTimeSpec("times must be strictly increasing")
        times.setflags(write=False)
        object.__setattr__(self, "times", times)

    def __eq__(self, other):
        if not isinstance(other, ExplicitGrid):
            return NotImplemented
        return np.array_equal(self.times, other.times)

    def __hash__(self):
        return hash(self.times.tobytes())

    @property
    def t0(self) -> float:
        return float(self.times[0])

    @property
    def t_end(self) -> float:
        return float(self.times[-1])

    @property
    def n_steps(self) -> int:
        return self.times.size - 1

    def steps(self) -> Iterator[StepPair]:
        """Yield (t, h) with one step per grid interval."""
        for t_a, t_b in zip(self.times[:-1], self.times[1:]):
            yield float(t_a), float(t_b - t_a)

    def schedule(self, max_step: Optional[float] = None) -> Iterator[ScheduledStep]:
        """
        Yield the steps of a fixed-step integration over the grid.

        Without `max_step` each interval is a single step. With it, each
        interval is split by the same rules as `FixedStep`, and only the
        step that closes an interval is flagged for recording. Interval end
        points are reported exactly as given in `times`.
        """
        for t_a, t_b in zip(self.times[:-1], self.times[1:]):
            t_a, t_b = float(t_a), float(t_b)
            if max_step is None:
                yield ScheduledStep(t_a, t_b - t_a, t_b, True)
                continue
            sub = FixedStep(t_a, t_b - t_a, max_step)
            grid = sub.grid()
            n = sub.n_steps
            for i, (t, h) in enumerate(sub.steps()):
                last = i == n - 1
                yield ScheduledStep(t, h, t_b if last else float(grid[i + 1]), last)

    def output_times(self) -> np.ndarray:
        return self.times


TimeSpec: TypeAlias = Union[FixedStep, ExplicitGrid]


def as_timespec(spec) -> TimeSpec:
    """
    Coerce `spec` into a TimeSpec.

    TimeSpec instances are returned unchanged; any 1-d array-like of times is
    wrapped in an `ExplicitGrid`.
    """
    if isinstance(spec, (FixedStep, ExplicitGrid)):
        return spec
    return ExplicitGrid(spec)
