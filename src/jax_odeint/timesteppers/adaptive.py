"""
Adaptive time-stepping with an embedded Runge-Kutta pair.

The Dormand-Prince 5(4) pair evaluates seven stages per step and combines
them into a fifth-order solution (used to advance) and an embedded
fourth-order solution (used only for error estimation). The difference of
the two drives the step-size controller:

    err    = rms( e / (atol + rtol * max(|y_n|, |y_{n+1}|)) )
    factor = clip(safety * err^(-1/5), min_factor, max_factor)
    h_new  = min(h * factor, max_step)

A step is accepted when err <= 1. After a rejection the factor is capped at 1
so the retry never grows the step.
"""

import math
from typing import Callable, Optional

from jax import Array
import jax.numpy as jnp

from .base import AbstractStepper, StepResult

# Dormand & Prince (1980), "A family of embedded Runge-Kutta formulae"
_C = (0.0, 1.0 / 5.0, 3.0 / 10.0, 4.0 / 5.0, 8.0 / 9.0, 1.0, 1.0)

_A = (
    (),
    (1.0 / 5.0,),
    (3.0 / 40.0, 9.0 / 40.0),
    (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0),
    (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0),
    (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0,
     -5103.0 / 18656.0),
    (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0,
     11.0 / 84.0),
)

# Fifth-order weights (equal to the last row of _A, k7 has zero weight)
_B = (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0,
      11.0 / 84.0, 0.0)

# _B minus the embedded fourth-order weights
_E = (71.0 / 57600.0, 0.0, -71.0 / 16695.0, 71.0 / 1920.0,
      -17253.0 / 339200.0, 22.0 / 525.0, -1.0 / 40.0)


def _combine(weights, ks):
    """Linear combination sum_i w_i k_i, skipping zero weights."""
    total = None
    for w, k in zip(weights, ks):
        if w == 0.0:
            continue
        term = w * k
        total = term if total is None else total + term
    return total


def _rms(x: Array) -> Array:
    return jnp.sqrt(jnp.mean(jnp.square(x)))


class DormandPrince(AbstractStepper):
    """
    Dormand-Prince 5(4) embedded Runge-Kutta method with step-size control.

    Implements: StepperProtocol

    Attributes:
        rtol: Relative error tolerance per component.
        atol: Absolute error tolerance per component.
        safety: Safety factor applied to the optimal step-size prediction.
        min_factor: Smallest allowed ratio h_next / h.
        max_factor: Largest allowed ratio h_next / h.
        min_step: Smallest step the driver may attempt. If a rejection asks
            for a smaller step, integration fails with StepSizeUnderflow.
        max_step: Largest step ever suggested.
        first_step: Initial step size. If None, a starting step is estimated
            from the right-hand side (unless the driver is given one).
    """

    adaptive = True
    order = 5
    error_order = 4
    n_stages = 7

    def __init__(
        self,
        rtol: float = 1e-6,
        atol: float = 1e-9,
        safety: float = 0.9,
        min_factor: float = 0.2,
        max_factor: float = 10.0,
        min_step: float = 1e-12,
        max_step: float = math.inf,
        first_step: Optional[float] = None,
    ):
        if rtol < 0.0 or atol < 0.0 or (rtol == 0.0 and atol == 0.0):
            raise ValueError(
                f"Tolerances must be non-negative and not both zero, "
                f"got rtol={rtol}, atol={atol}"
            )
        if not 0.0 < safety <= 1.0:
            raise ValueError(f"safety must lie in (0, 1], got {safety}")
        if not 0.0 < min_factor < 1.0 < max_factor:
            raise ValueError(
                "Step factors must satisfy 0 < min_factor < 1 < max_factor, "
                f"got min_factor={min_factor}, max_factor={max_factor}"
            )
        if min_step < 0.0 or max_step <= min_step:
            raise ValueError(
                f"Need 0 <= min_step < max_step, got {min_step}, {max_step}"
            )
        if first_step is not None and first_step <= 0.0:
            raise ValueError(f"first_step must be positive, got {first_step}")

        self.rtol = float(rtol)
        self.atol = float(atol)
        self.safety = float(safety)
        self.min_factor = float(min_factor)
        self.max_factor = float(max_factor)
        self.min_step = float(min_step)
        self.max_step = float(max_step)
        self.first_step = None if first_step is None else float(first_step)

    def error_norm(self, error: Array, y: Array, y_new: Array) -> Array:
        """Scaled RMS norm of a local error estimate."""
        scale = self.atol + self.rtol * jnp.maximum(jnp.abs(y), jnp.abs(y_new))
        return _rms(error / scale)

    def step(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> StepResult:
        """
        Attempt a single Dormand-Prince step.

        Args:
            fun: Right-hand side of system dy/dt = f(y, t, *args).
            y: Current solution.
            t: Current time.
            h: Step size to attempt.
            args: Additional arguments to pass to fun.

        Returns:
            StepResult. On acceptance `y`, `t` hold the fifth-order solution
            at t + h; on rejection they equal the inputs. In both cases
            `h_next` is the controller's suggestion.
        """
        h = jnp.asarray(h)
        ks = [fun(y, t, *args)]
        for c, a in zip(_C[1:], _A[1:]):
            y_stage = y + h * _combine(a, ks)
            ks.append(fun(y_stage, t + c * h, *args))

        # The seventh stage was evaluated at the fifth-order solution
        y_new = y + h * _combine(_B, ks)
        error = h * _combine(_E, ks)
        err = self.error_norm(error, y, y_new)
        accepted = err <= 1.0

        exponent = -1.0 / (self.error_order + 1)
        factor = jnp.where(
            err == 0.0,
            self.max_factor,
            self.safety * jnp.power(jnp.where(err == 0.0, 1.0, err), exponent),
        )
        factor = jnp.clip(factor, self.min_factor, self.max_factor)
        factor = jnp.where(accepted, factor, jnp.minimum(factor, 1.0))
        h_next = jnp.minimum(h * factor, self.max_step)

        return StepResult(
            y=jnp.where(accepted, y_new, y),
            t=jnp.where(accepted, t + h, t),
            h=h,
            accepted=accepted,
            error=err,
            h_next=h_next,
        )

    def initial_step(
        self,
        fun: Callable,
        y: Array,
        t: float,
        args: tuple = ()
    ) -> float:
        """
        Estimate a starting step size.

        Uses the first-step heuristic of Hairer, Norsett & Wanner, "Solving
        Ordinary Differential Equations I", Sec. II.4. Costs two evaluations
        of fun. Returns `first_step` unchanged when it is configured.
        """
        if self.first_step is not None:
            return self.first_step

        y = jnp.asarray(y)
        f0 = fun(y, t, *args)
        scale = self.atol + self.rtol * jnp.abs(y)
        d0 = float(_rms(y / scale))
        d1 = float(_rms(f0 / scale))
        if d0 < 1e-5 or d1 < 1e-5:
            h0 = 1e-6
        else:
            h0 = 0.01 * d0 / d1

        y1 = y + h0 * f0
        f1 = fun(y1, t + h0, *args)
        d2 = float(_rms((f1 - f0) / scale)) / h0

        if max(d1, d2) <= 1e-15:
            h1 = max(1e-6, h0 * 1e-3)
        else:
            h1 = (0.01 / max(d1, d2)) ** (1.0 / (self.error_order + 1))

        return min(100.0 * h0, h1, self.max_step)


# Conventional name used by other ODE libraries
RK45 = DormandPrince
