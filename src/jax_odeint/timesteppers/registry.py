"""Name-based lookup of time-stepping schemes."""

from typing import Callable, Dict, List

from .base import AbstractStepper
from .explicit import ForwardEuler, RK4
from .adaptive import DormandPrince
from .symplectic import Leapfrog

_REGISTRY: Dict[str, Callable[..., AbstractStepper]] = {}


def _normalise(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Stepper name must be a non-empty string, got {name!r}")
    return name.strip().lower()


def register_stepper(
    name: str,
    factory: Callable[..., AbstractStepper],
    overwrite: bool = False,
) -> None:
    """
    Register a time-stepping scheme under `name`.

    Args:
        name: Case-insensitive lookup key.
        factory: Stepper class, or any callable returning a stepper when
            called with the keyword arguments given to `get_stepper`.
        overwrite: Replace an existing registration instead of raising.
    """
    key = _normalise(name)
    if not callable(factory):
        raise TypeError(f"factory must be callable, got {type(factory)}")
    if key in _REGISTRY and not overwrite:
        raise ValueError(
            f"A stepper named '{key}' is already registered. "
            "Pass overwrite=True to replace it."
        )
    _REGISTRY[key] = factory


def get_stepper(name: str, **kwargs) -> AbstractStepper:
    """Instantiate the stepper registered under `name` with `kwargs`."""
    key = _normalise(name)
    try:
        factory = _REGISTRY[key]
    except KeyError:
        raise ValueError(
            f"Unknown stepper '{name}'. "
            f"Valid options are: {', '.join(available_steppers())}."
        ) from None
    return factory(**kwargs)


def available_steppers() -> List[str]:
    return sorted(_REGISTRY)


register_stepper("euler", ForwardEuler)
register_stepper("forward_euler", ForwardEuler)
register_stepper("rk4", RK4)
register_stepper("rk45", DormandPrince)
register_stepper("dopri5", DormandPrince)
register_stepper("leapfrog", Leapfrog)
