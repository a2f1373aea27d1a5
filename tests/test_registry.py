"""Unit tests for the stepper registry and custom steppers."""

import pytest
import jax.numpy as jnp

from jax_odeint import (
    AbstractStepper,
    DormandPrince,
    ExplicitGrid,
    FixedStep,
    FixedStepper,
    ForwardEuler,
    Leapfrog,
    RK4,
    StepResult,
    available_steppers,
    get_stepper,
    odeint,
    register_stepper,
)


class Midpoint(FixedStepper):
    """Explicit midpoint method, used as a caller-supplied scheme."""

    order = 2
    n_stages = 2

    def update(self, fun, y, t, h, args=()):
        k1 = fun(y, t, *args)
        return y + h * fun(y + 0.5 * h * k1, t + 0.5 * h, *args)


class ProtocolOnlyEuler:
    """Satisfies StepperProtocol without inheriting from the base classes."""

    def step(self, fun, y, t, h, args=()):
        h = jnp.asarray(h)
        return StepResult(
            y=y + h * fun(y, t, *args),
            t=t + h,
            h=h,
            accepted=jnp.asarray(True),
            error=jnp.zeros(()),
            h_next=h,
        )


class DelegatingAdaptive(AbstractStepper):
    """Adaptive scheme that keeps the base class initial_step (no estimate)."""

    adaptive = True
    n_stages = 7

    def __init__(self):
        self.inner = DormandPrince(rtol=1e-8, atol=1e-10)

    def step(self, fun, y, t, h, args=()):
        return self.inner.step(fun, y, t, h, args)


class ProtocolOnlyAdaptive:
    """Adaptive scheme with neither initial_step nor step-size limits."""

    adaptive = True
    n_stages = 7

    def __init__(self):
        self.inner = DormandPrince(rtol=1e-8, atol=1e-10)

    def step(self, fun, y, t, h, args=()):
        return self.inner.step(fun, y, t, h, args)


class TestRegistry:

    @pytest.mark.parametrize(
        "name, cls",
        [
            ("euler", ForwardEuler),
            ("forward_euler", ForwardEuler),
            ("RK4", RK4),
            ("rk45", DormandPrince),
            ("dopri5", DormandPrince),
            (" Leapfrog ", Leapfrog),
        ],
    )
    def test_builtin_names(self, name, cls):
        assert isinstance(get_stepper(name), cls)

    def test_keyword_arguments(self):
        method = get_stepper("rk45", rtol=1e-3, atol=1e-5)
        assert method.rtol == 1e-3
        assert method.atol == 1e-5

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Valid options are"):
            get_stepper("implicit_euler")

    @pytest.mark.parametrize("name", ["", "   ", None, 3])
    def test_invalid_name(self, name):
        with pytest.raises(ValueError):
            register_stepper(name, RK4)

    def test_register_custom(self):
        register_stepper("midpoint_test", Midpoint, overwrite=True)
        assert "midpoint_test" in available_steppers()

        with pytest.raises(ValueError, match="already registered"):
            register_stepper("midpoint_test", Midpoint)

        t, y = odeint("midpoint_test", lambda y, t: -y, jnp.array([1.0]),
                      FixedStep(0.0, 1.0, 0.01))
        assert jnp.allclose(y[-1], jnp.exp(-1.0), atol=1e-4)

    def test_register_non_callable(self):
        with pytest.raises(TypeError):
            register_stepper("not_callable_test", 42)

    def test_available_steppers_sorted(self):
        names = available_steppers()
        assert names == sorted(names)
        assert {"euler", "rk4", "rk45", "leapfrog"} <= set(names)


class TestCustomSteppers:

    def test_protocol_only_stepper(self):
        spec = FixedStep(0.0, 1.0, 0.1)
        _, y_custom = odeint(ProtocolOnlyEuler(), lambda y, t: -y, jnp.array([1.0]), spec)
        _, y_euler = odeint(ForwardEuler(), lambda y, t: -y, jnp.array([1.0]), spec)
        assert jnp.allclose(y_custom, y_euler, atol=1e-14)

    def test_solver_reused_across_integrations(self):
        method = DormandPrince(rtol=1e-6, atol=1e-9)
        spec = FixedStep(0.0, 2.0, 0.1)
        _, y_a = odeint(method, lambda y, t: -y, jnp.array([1.0]), spec)
        _, y_b = odeint(method, lambda y, t: -2.0 * y, jnp.array([1.0]), spec)
        _, y_c = odeint(method, lambda y, t: -y, jnp.array([1.0]), spec)
        assert jnp.array_equal(y_a, y_c)
        assert jnp.allclose(y_b[-1], jnp.exp(-4.0), atol=1e-6)

    @pytest.mark.parametrize("stepper_cls", [DelegatingAdaptive, ProtocolOnlyAdaptive])
    def test_adaptive_stepper_without_initial_step(self, stepper_cls):
        register_stepper("custom_adaptive_test", stepper_cls, overwrite=True)
        t_eval = jnp.array([0.0, 0.5, 1.0])

        t, y, info = odeint("custom_adaptive_test", lambda y, t: -y,
                            jnp.array([1.0]), ExplicitGrid(t_eval),
                            full_output=True)

        assert jnp.array_equal(t, t_eval)
        assert jnp.allclose(y[:, 0], jnp.exp(-t_eval), atol=1e-7)
        # No estimate was made, so only step attempts cost evaluations
        assert info.n_fun_evals == 7 * (info.n_accepted + info.n_rejected)
        # Default first step is 1/100 of the horizon
        assert info.step_sizes[0] == pytest.approx(0.01)
