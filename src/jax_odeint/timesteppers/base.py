"""Base classes and result type for time-stepping schemes."""

from typing import Callable, NamedTuple, Optional

from flax import nnx
from jax import Array
import jax.numpy as jnp


class StepResult(NamedTuple):
    """
    Outcome of a single step attempt.

    NamedTuples are pytrees, so a StepResult can be returned from jitted
    functions and carried through `jax.lax` control flow.

    Attributes:
        y: Solution at `t`. Equal to the input state if the step was rejected.
        t: Time reached. Equal to the input time if the step was rejected.
        h: Step size that was attempted.
        accepted: Whether the step was accepted. Always true for fixed steps.
        error: Scaled local error estimate; a value <= 1 meets the tolerance.
            Always 0 for schemes without error estimation.
        h_next: Suggested size of the next step (or of the retry, if the
            step was rejected). Equals `h` for fixed-step schemes.
    """

    y: Array
    t: Array
    h: Array
    accepted: Array
    error: Array
    h_next: Array


class AbstractStepper(nnx.Module):
    """
    Base class for all time-stepping schemes.

    Steppers hold configuration only. They keep no state between calls to
    `step`, so one instance can be shared by independent integrations.

    Class attributes:
        adaptive: True if the scheme estimates its error and may reject steps.
        order: Global order of accuracy.
        n_stages: Right-hand side evaluations per step attempt.
    """

    adaptive = False
    order = 1
    n_stages = 1

    def step(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> StepResult:
        """
        Attempt a single time step from (y, t) with step size h.

        Args:
            fun: Right-hand side of system dy/dt = f(y, t, *args).
            y: Current solution.
            t: Current time. Type: 0-dimensional JAX array.
            h: Time step size. Type: 0-dimensional JAX array.
            args: Additional arguments to pass to fun.

        Returns:
            StepResult for the attempt.
        """
        raise NotImplementedError

    def initial_step(
        self,
        fun: Callable,
        y: Array,
        t: float,
        args: tuple = ()
    ) -> Optional[float]:
        """Suggested first step size, or None if the scheme has no opinion."""
        return None


class FixedStepper(AbstractStepper):
    """
    Base class for schemes with a constant step size.

    Subclasses implement `update`, which maps (y_n, t_n) to y_{n+1}.
    Every step is accepted and the step size is left unchanged.
    """

    def update(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> Array:
        """Return the solution at t + h."""
        raise NotImplementedError

    def step(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> StepResult:
        y_next = self.update(fun, y, t, h, args)
        h = jnp.asarray(h)
        return StepResult(
            y=y_next,
            t=t + h,
            h=h,
            accepted=jnp.asarray(True),
            error=jnp.zeros((), dtype=h.dtype),
            h_next=h,
        )
