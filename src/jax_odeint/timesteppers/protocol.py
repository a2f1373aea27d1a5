"""Structural type for anything that can advance an ODE by one step."""

from typing import Callable, Protocol, runtime_checkable

from jax import Array


@runtime_checkable
class StepperProtocol(Protocol):
    """
    A stepper maps (fun, y, t, h) to a StepResult.

    Subclassing AbstractStepper is optional: `odeint` and `integrate` accept
    any object with a matching `step` method. Optional attributes `adaptive`,
    `n_stages`, `min_step`, `max_step` and `first_step` are read with
    defaults when absent.
    """

    def step(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ):
        """
        Attempt to advance (y, t) to t + h.

        `fun` is called as fun(y, t, *args). Fixed-step schemes always accept;
        adaptive ones may return the input state together with a smaller
        suggested `h_next`.
        """
        ...
