import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

import jax
from jax import Array
import jax.numpy as jnp
import numpy as np

from .custom_types import ODEFunction
from .errors import RHSEvaluationError, StepSizeUnderflow
from .timespec import FixedStep, ExplicitGrid, TimeSpec, as_timespec
from .timesteppers import StepperProtocol, get_stepper

# First step of an adaptive method that has no estimate of its own
_DEFAULT_FIRST_STEP_FRACTION = 100.0


@dataclass(frozen=True)
class IntegrationInfo:
    """
    Diagnostics collected by `odeint(..., full_output=True)`.

    Attributes:
        method: Class name of the stepper.
        n_accepted: Number of accepted steps (recorded or not).
        n_rejected: Number of rejected step attempts.
        n_fun_evals: Number of right-hand side evaluations.
        step_sizes: Size of every accepted step, in order.
        errors: Scaled error estimate of every accepted step, in order.
            All zeros for schemes without error estimation.
        wallclock: Elapsed wall-clock time in seconds.
    """

    method: str
    n_accepted: int
    n_rejected: int
    n_fun_evals: int
    step_sizes: np.ndarray = field(repr=False)
    errors: np.ndarray = field(repr=False)
    wallclock: float


class _Recorder:
    """Accumulates the trajectory and per-step statistics of one integration."""

    def __init__(self, t0: float, y0: Array):
        self.times: List[float] = [t0]
        self.states: List[Array] = [y0]
        self.step_sizes: List[float] = []
        self.errors: List[float] = []
        self.n_rejected = 0
        self.n_fun_evals = 0

    @property
    def index(self) -> int:
        """Index of the last recorded state."""
        return len(self.times) - 1

    def accept(self, h: float, error: float = 0.0):
        self.step_sizes.append(h)
        self.errors.append(error)

    def record(self, t: float, y: Array):
        self.times.append(t)
        self.states.append(y)

    def trajectory(self) -> Tuple[Array, Array]:
        return jnp.asarray(self.times), jnp.stack(self.states, axis=0)

    def info(self, method_name: str, wallclock: float) -> IntegrationInfo:
        return IntegrationInfo(
            method=method_name,
            n_accepted=len(self.step_sizes),
            n_rejected=self.n_rejected,
            n_fun_evals=self.n_fun_evals,
            step_sizes=np.asarray(self.step_sizes, dtype=np.float64),
            errors=np.asarray(self.errors, dtype=np.float64),
            wallclock=wallclock,
        )


def _as_state(y0) -> Array:
    """Convert y0 to a floating-point JAX array."""
    y0 = jnp.asarray(y0)
    if not jnp.issubdtype(y0.dtype, jnp.inexact):
        y0 = y0.astype(float)
    return y0


def _resolve_method(method) -> StepperProtocol:
    if isinstance(method, str):
        return get_stepper(method)
    if not isinstance(method, StepperProtocol):
        raise TypeError(
            f"method must be a stepper instance or a registered name, "
            f"got {type(method)}"
        )
    return method


def _make_step_fn(method, fun, args, jit: bool) -> Callable:
    def step_fn(y, t, h):
        return method.step(fun, y, t, h, args)

    return jax.jit(step_fn) if jit else step_fn


def _all_finite(y: Array) -> bool:
    return bool(jnp.all(jnp.isfinite(y)))


def _integrate_fixed(
    step_fn: Callable,
    method: StepperProtocol,
    y0: Array,
    spec: TimeSpec,
    step_size: Optional[float],
    rec: _Recorder,
    check_finite: bool,
):
    """Time-integration with fixed-step and symplectic schemes."""
    n_stages = getattr(method, "n_stages", 1)
    y = y0
    for t, h, t_next, record in spec.schedule(step_size):
        y = step_fn(y, t, h).y
        rec.n_fun_evals += n_stages
        rec.accept(h)
        if check_finite and not _all_finite(y):
            raise RHSEvaluationError(t, h, rec.index, rec.trajectory())
        if record:
            rec.record(t_next, y)


def _integrate_adaptive(
    step_fn: Callable,
    method: StepperProtocol,
    fun: ODEFunction,
    y0: Array,
    spec: TimeSpec,
    args: tuple,
    step_size: Optional[float],
    rec: _Recorder,
    check_finite: bool,
):
    """
    Time-integration with adaptive schemes.

    With a FixedStep horizon, dt is the first step size and every accepted
    step is recorded. With an ExplicitGrid, steps are clipped to land exactly
    on each requested time and only those times are recorded.
    """
    n_stages = getattr(method, "n_stages", 1)
    min_step = getattr(method, "min_step", 0.0)
    max_step = getattr(method, "max_step", math.inf)

    record_all = isinstance(spec, FixedStep)
    targets = [spec.t_end] if record_all else [float(s) for s in spec.times[1:]]

    # Initial step: configured on the method, then horizon, then estimated
    h = getattr(method, "first_step", None)
    if h is None:
        h = spec.dt if record_all else step_size
    if h is None:
        initial_step = getattr(method, "initial_step", None)
        if initial_step is not None:
            h = initial_step(fun, y0, spec.t0, args)
            if h is not None:
                rec.n_fun_evals += 2
    if h is None:
        h = (spec.t_end - spec.t0) / _DEFAULT_FIRST_STEP_FRACTION
    h = min(float(h), max_step)

    # t is tracked on the host in Python floats, never read back from the device
    t = spec.t0
    y = y0
    for t_target in targets:
        while t < t_target:
            remaining = t_target - t
            clipped = h >= remaining
            h_try = remaining if clipped else h

            result = step_fn(y, t, h_try)
            rec.n_fun_evals += n_stages
            error = float(result.error)
            h_next = float(result.h_next)
            if not (math.isfinite(error) and math.isfinite(h_next)):
                raise RHSEvaluationError(t, h_try, rec.index, rec.trajectory())

            if bool(result.accepted):
                y = result.y
                t_new = t + h_try
                t = t_target if (clipped or t_new >= t_target) else t_new
                rec.accept(h_try, error)
                if check_finite and not _all_finite(y):
                    raise RHSEvaluationError(t, h_try, rec.index, rec.trajectory())
                if record_all or t == t_target:
                    rec.record(t, y)
                if clipped and h_try < h:
                    # Keep the pre-clip step size after a shortened landing step
                    h_next = max(h_next, h)
            else:
                rec.n_rejected += 1
                if h_next < min_step:
                    raise StepSizeUnderflow(
                        t, h_next, rec.index, min_step, rec.trajectory()
                    )
            h = h_next


def odeint(
    method: Union[StepperProtocol, str],
    fun: ODEFunction,
    y0: Array,
    timespec: Union[TimeSpec, Array],
    args: tuple = (),
    step_size: Optional[float] = None,
    full_output: bool = False,
    check_finite: bool = False,
    jit: bool = True,
    verbose: bool = False,
) -> Union[Tuple[Array, Array], Tuple[Array, Array, IntegrationInfo]]:
    """
    Integrate dy/dt = fun(y, t, *args) with y(t0) = y0 over a time specification.

    Args:
        method: Time-stepping method instance (e.g., RK4(), DormandPrince())
            or a registered name ('euler', 'rk4', 'rk45', 'leapfrog', ...).
        fun: Right-hand side with signature (y, t, *args) -> dydt. Leapfrog
            also accepts a {'position': g, 'momentum': h} dict.
        y0: Initial condition.
        timespec: FixedStep, ExplicitGrid, or an array of output times
            (wrapped in an ExplicitGrid).
        args: Additional arguments to pass to fun.
        step_size: Only for ExplicitGrid. Fixed-step methods split every grid
            interval into steps of at most this size (one step per interval
            if None). Adaptive methods use it as the first step size.
        full_output: Also return an IntegrationInfo with step statistics.
        check_finite: Raise RHSEvaluationError as soon as an accepted state
            contains NaN or inf.
        jit: JIT-compile the step function once per call.
        verbose: Print progress information.

    Returns:
        t: Array of time points, shape (n_points,), starting at t0.
        y: Array of solution values at times t, shape (n_points, *y0.shape).
        info: IntegrationInfo, only if full_output is True.

    Raises:
        InvalidTimeSpec: Malformed horizon, raised before fun is evaluated.
        IncompatibleStateLayout: Leapfrog on a state without [q, p] halves.
        StepSizeUnderflow: An adaptive method needed a step below min_step.
        RHSEvaluationError: Non-finite error estimate or (with check_finite)
            non-finite state.

    Exceptions raised by fun itself propagate unchanged.

    Example usage:
    ```python
    import jax.numpy as jnp
    from jax_odeint import odeint, FixedStep, RK4

    # Define ODE: dy/dt = -k*y
    def fun(y, t, k):
        return -k * y

    t, y = odeint(RK4(), fun, jnp.array([1.0]), FixedStep(0.0, 2.0, 0.01),
                  args=(0.5,))
    ```

    Example usage with an adaptive method and explicit output times:
    ```python
    from jax_odeint import DormandPrince

    t_eval = jnp.linspace(0.0, 2.0, 5)
    t, y, info = odeint(DormandPrince(rtol=1e-8, atol=1e-10), fun,
                        jnp.array([1.0]), t_eval, args=(0.5,),
                        full_output=True)
    ```
    """
    spec = as_timespec(timespec)
    if step_size is not None:
        if isinstance(spec, FixedStep):
            raise ValueError(
                "step_size only applies to ExplicitGrid; FixedStep already "
                "defines its step size through dt"
            )
        if not (math.isfinite(step_size) and step_size > 0.0):
            raise ValueError(f"step_size must be positive and finite, got {step_size}")

    method = _resolve_method(method)
    adaptive = getattr(method, "adaptive", False)
    method_name = type(method).__name__
    y0 = _as_state(y0)

    if verbose:
        n_points = spec.output_times().size
        print(f"Solving with {method_name}")
        if adaptive:
            print(
                f"Time: [{spec.t0}, {spec.t_end}], "
                f"rtol={getattr(method, 'rtol', None)}, "
                f"atol={getattr(method, 'atol', None)}"
            )
        else:
            print(f"Time: [{spec.t0}, {spec.t_end}], {spec.n_steps} output steps")
        if not (adaptive and isinstance(spec, FixedStep)):
            print(f"Evaluating at {n_points} time points")

    step_fn = _make_step_fn(method, fun, args, jit)
    rec = _Recorder(spec.t0, y0)

    start_wallclock = time.time()

    if adaptive:
        _integrate_adaptive(
            step_fn, method, fun, y0, spec, args, step_size, rec, check_finite
        )
    else:
        _integrate_fixed(step_fn, method, y0, spec, step_size, rec, check_finite)

    elapsed_wallclock = time.time() - start_wallclock
    info = rec.info(method_name, elapsed_wallclock)

    if verbose:
        rate = info.n_accepted / elapsed_wallclock if elapsed_wallclock > 0 else float("inf")
        print(
            f"Completed in {elapsed_wallclock:.3f}s ({rate:.1f} steps/s), "
            f"{info.n_accepted} accepted, {info.n_rejected} rejected"
        )

    t_arr, y_arr = rec.trajectory()
    if full_output:
        return t_arr, y_arr, info
    return t_arr, y_arr


def integrate(
    fun: ODEFunction,
    t_span: Tuple[float, float],
    y0: Array,
    method: StepperProtocol,
    step_size: float,
    args: tuple = (),
    max_steps: int = 1_000_000,
) -> Tuple[Array, Array]:
    """
    Integrate dy/dt = fun(y, t, *args) over t_span, returning only the final state.

    Unlike `odeint`, this function is built on `jax.lax.while_loop` and is
    compatible with JAX transformations such as `jax.jit` and `jax.vmap`.
    Because no Python exceptions can be raised inside the loop, adaptive
    methods do not check min_step here; the loop stops after `max_steps`
    attempts instead, so callers should check that t_final reached t_end.

    Args:
        fun: Right-hand side of system dy/dt = fun(y, t, *args).
        t_span: (t_start, t_end) time interval.
        y0: Initial condition.
        method: Time-stepping method instance.
        step_size: Time step size. For adaptive methods, the first step size.
        args: Additional arguments to pass to fun.
        max_steps: Maximum number of step attempts.

    Returns:
        t_final: Final time.
        y_final: Solution at t_final.

    Example usage:
    ```python
    import jax
    import jax.numpy as jnp
    from jax_odeint import integrate, RK4

    @jax.jit
    def decay(y0, k):
        return integrate(lambda y, t, k: -k * y, (0.0, 2.0), y0, RK4(),
                         step_size=0.01, args=(k,))

    t, y = decay(jnp.array([1.0]), 0.5)
    ```
    """
    t_start, t_end = t_span
    adaptive = getattr(method, "adaptive", False)
    y0 = _as_state(y0)
    dtype = jnp.result_type(float)

    def cond_fn(carry):
        t, y, h, n = carry
        return (t < t_end) & (n < max_steps)

    def body_fn(carry):
        t, y, h, n = carry

        # Adjust final step to hit t_end exactly
        h_step = jnp.maximum(0.0, jnp.minimum(h, t_end - t))

        result = method.step(fun, y, t, h_step, args)

        h_next = result.h_next if adaptive else h

        return (
            jnp.asarray(result.t).astype(t.dtype),
            jnp.asarray(result.y).astype(y.dtype),
            jnp.asarray(h_next).astype(h.dtype),
            n + 1,
        )

    carry0 = (
        jnp.asarray(t_start, dtype=dtype),
        y0,
        jnp.asarray(step_size, dtype=dtype),
        jnp.asarray(0),
    )
    t_final, y_final, _, _ = jax.lax.while_loop(cond_fn, body_fn, carry0)

    return t_final, y_final
