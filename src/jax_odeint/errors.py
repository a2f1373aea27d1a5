"""Exceptions raised while setting up or running an integration."""

from typing import Optional, Tuple

from jax import Array


class IntegrationError(Exception):
    """Base class for all errors raised by jax_odeint."""


class InvalidTimeSpec(IntegrationError, ValueError):
    """Malformed integration horizon (non-positive dt or duration, bad grid)."""


class IncompatibleStateLayout(IntegrationError, ValueError):
    """State cannot be split into position and momentum halves."""


class _TerminalStepError(IntegrationError):
    """
    Failure part-way through an integration.

    Attributes:
        t: Time of the last accepted state.
        h: Step size that was being attempted.
        step_index: Index of the last accepted state in the trajectory.
        partial: (times, states) recorded up to the last accepted step,
            or None if not available.
    """

    def __init__(
        self,
        message: str,
        t: float,
        h: float,
        step_index: int,
        partial: Optional[Tuple[Array, Array]] = None,
    ):
        super().__init__(
            f"{message} (t={t:.6g}, h={h:.3e}, last accepted index={step_index})"
        )
        self.t = t
        self.h = h
        self.step_index = step_index
        self.partial = partial


class StepSizeUnderflow(_TerminalStepError, RuntimeError):
    """Adaptive step size fell below the configured minimum."""

    def __init__(
        self,
        t: float,
        h: float,
        step_index: int,
        min_step: float,
        partial: Optional[Tuple[Array, Array]] = None,
    ):
        super().__init__(
            f"Step size fell below min_step={min_step:.3e} without meeting "
            "the error tolerance",
            t, h, step_index, partial,
        )
        self.min_step = min_step


class RHSEvaluationError(_TerminalStepError, FloatingPointError):
    """Right-hand side produced non-finite values (state or error estimate)."""

    def __init__(
        self,
        t: float,
        h: float,
        step_index: int,
        partial: Optional[Tuple[Array, Array]] = None,
    ):
        super().__init__(
            "Step produced non-finite values", t, h, step_index, partial
        )
