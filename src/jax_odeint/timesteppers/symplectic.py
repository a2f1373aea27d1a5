"""Symplectic time-stepping schemes for separable Hamiltonian systems."""

from typing import Callable, Dict, Tuple, Union

from jax import Array
import jax.numpy as jnp

from .base import FixedStepper
from ..errors import IncompatibleStateLayout

_SPLIT_KEYS = ("position", "momentum")


class Leapfrog(FixedStepper):
    """
    Leapfrog (velocity Verlet) method in kick-drift-kick form.

    Applies to separable systems with state y = [q, p]:
        dq/dt = g(p, t),    dp/dt = h(q, t)

    Update:
        p_{1/2}  = p_n + (h/2) dp/dt(q_n, t_n)
        q_{n+1}  = q_n + h dq/dt(p_{1/2}, t_n + h/2)
        p_{n+1}  = p_{1/2} + (h/2) dp/dt(q_{n+1}, t_n + h)

    The scheme is second order, time-reversible and symplectic, so the
    energy error of a Hamiltonian system stays bounded instead of drifting.

    The right-hand side may be given in two forms:
        - A callable f(y, t, *args) on the full state. The first half of its
          output is taken as dq/dt and the second half as dp/dt. For a
          separable system dq/dt must not depend on q, nor dp/dt on p.
        - A dict {'position': g, 'momentum': h} with g(p, t, *args) -> dq/dt
          and h(q, t, *args) -> dp/dt.

    Example:
        ```python
        # Harmonic oscillator q'' = -q
        ode = {
            'position': lambda p, t: p,
            'momentum': lambda q, t: -q,
        }
        t, y = odeint(Leapfrog(), ode, jnp.array([1.0, 0.0]),
                      FixedStep(0.0, 100.0, 0.01))
        ```
    """

    order = 2
    n_stages = 3

    @staticmethod
    def split_state(y: Array) -> Tuple[Array, Array]:
        """
        Split y into (q, p).

        Raises:
            IncompatibleStateLayout: If y is not 1-dimensional or has odd size.
        """
        if y.ndim != 1:
            raise IncompatibleStateLayout(
                f"Leapfrog requires a 1-dimensional state [q, p], got shape {y.shape}"
            )
        if y.shape[0] % 2 != 0:
            raise IncompatibleStateLayout(
                f"Leapfrog requires an even state dimension to split into "
                f"position and momentum halves, got {y.shape[0]}"
            )
        n = y.shape[0] // 2
        return y[:n], y[n:]

    @staticmethod
    def make_split_rhs(
        fun: Union[Callable, Dict[str, Callable]],
        args: tuple = (),
    ) -> Tuple[Callable, Callable]:
        """
        Build the drift and kick functions from either form of right-hand side.

        Returns:
            (dqdt, dpdt), each with signature (q, p, t) -> derivative.
        """
        if isinstance(fun, dict):
            missing = [k for k in _SPLIT_KEYS if k not in fun]
            if missing:
                raise IncompatibleStateLayout(
                    "Leapfrog requires fun to be a dict with 'position' and "
                    f"'momentum' keys, but got keys: {list(fun.keys())}"
                )
            position, momentum = fun["position"], fun["momentum"]
            dqdt = lambda q, p, t: position(p, t, *args)
            dpdt = lambda q, p, t: momentum(q, t, *args)
        elif callable(fun):
            def dqdt(q, p, t):
                return fun(jnp.concatenate([q, p]), t, *args)[: q.shape[0]]

            def dpdt(q, p, t):
                return fun(jnp.concatenate([q, p]), t, *args)[q.shape[0]:]
        else:
            raise TypeError(
                f"fun must be a callable or a dict of callables, got {type(fun)}"
            )
        return dqdt, dpdt

    def update(
        self,
        fun: Union[Callable, Dict[str, Callable]],
        y: Array,
        t: Array,
        h: Array,
        args: tuple = ()
    ) -> Array:
        """
        Perform a single kick-drift-kick step.

        Args:
            fun: Full-state callable or {'position', 'momentum'} dict.
            y: Current state [q, p].
            t: Current time.
            h: Time step size.
            args: Additional arguments to pass to fun.

        Returns:
            State [q, p] at t + h.
        """
        q, p = self.split_state(y)
        dqdt, dpdt = self.make_split_rhs(fun, args)

        p_half = p + 0.5 * h * dpdt(q, p, t)
        q_next = q + h * dqdt(q, p_half, t + 0.5 * h)
        p_next = p_half + 0.5 * h * dpdt(q_next, p_half, t + h)
        return jnp.concatenate([q_next, p_next])
