"""Time-stepping schemes for initial value problems."""

from .base import AbstractStepper, FixedStepper, StepResult
from .protocol import StepperProtocol
from .explicit import ForwardEuler, RK4
from .adaptive import DormandPrince, RK45
from .symplectic import Leapfrog
from .registry import register_stepper, get_stepper, available_steppers

__all__ = [
    # Base classes and protocol
    'AbstractStepper',
    'FixedStepper',
    'StepResult',
    'StepperProtocol',

    # Explicit methods
    'ForwardEuler',
    'RK4',

    # Adaptive methods
    'DormandPrince',
    'RK45',

    # Symplectic methods
    'Leapfrog',

    # Registry
    'register_stepper',
    'get_stepper',
    'available_steppers',
]
