"""Explicit fixed-step time-stepping schemes."""

from typing import Callable

from jax import Array

from .base import FixedStepper


class ForwardEuler(FixedStepper):
    """
    Forward Euler method.

    Discretisation:
        $$ \\frac{\\partial y}{\\partial t} \\rightarrow
        \\frac{(y_{n+1} - y_n)}{h} = f(y_n, t_n) $$
    """

    order = 1
    n_stages = 1

    def update(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> Array:
        """
        Perform a single Forward Euler step.

        Computes $$ y_{n+1} = y_n + h f(y_n, t_n, *args). $$

        Args:
            fun: Right-hand side of system dydt = f(y, t, *args).
            y: Current solution.
            t: Current time. Type: 0-dimensional JAX array.
            h: Time step size. Type: 0-dimensional JAX array.
            args: Additional arguments to pass to fun.

        Returns:
            Solution at t + h.
        """
        return y + h * fun(y, t, *args)


class RK4(FixedStepper):
    """Fourth (4th) order Runge-Kutta method."""

    order = 4
    n_stages = 4

    def update(
        self,
        fun: Callable,
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> Array:
        """
        Perform a single RK4 step.

        Args:
            fun: Right-hand side of system dy/dt = f(y, t, *args).
            y: Current solution.
            t: Current time.
            h: Time step size.
            args: Additional arguments to pass to fun.

        Returns:
            Solution at t + h.
        """
        k1 = fun(y, t, *args)
        k2 = fun(y + 0.5 * h * k1, t + 0.5 * h, *args)
        k3 = fun(y + 0.5 * h * k2, t + 0.5 * h, *args)
        k4 = fun(y + h * k3, t + h, *args)
        return y + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
