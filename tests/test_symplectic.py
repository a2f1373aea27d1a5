"""Tests for the Leapfrog symplectic integrator."""

import numpy as np
import pytest
import jax.numpy as jnp

from jax_odeint import (
    FixedStep,
    IncompatibleStateLayout,
    Leapfrog,
    RK4,
    odeint,
)


def harmonic_oscillator(y, t):
    """q'' = -q with state [q, p]."""
    return jnp.array([y[1], -y[0]])


harmonic_oscillator_split = {
    'position': lambda p, t: p,
    'momentum': lambda q, t: -q,
}


def energy(states):
    q, p = states[:, 0], states[:, 1]
    return 0.5 * (q**2 + p**2)


@pytest.fixture
def long_horizon():
    """10,000 steps of dt = 0.1."""
    return FixedStep(0.0, 1000.0, 0.1)


class TestEnergyBehaviour:

    def test_leapfrog_energy_bounded(self, long_horizon):
        y0 = jnp.array([1.0, 0.0])
        t, y = odeint(Leapfrog(), harmonic_oscillator, y0, long_horizon)
        assert t.shape == (10_001,)

        e = np.asarray(energy(y))
        deviation = e - e[0]
        assert np.max(np.abs(deviation)) < 0.01 * e[0]
        # Energy oscillates rather than drifting one way
        de = np.diff(e)
        assert np.any(de > 0) and np.any(de < 0)
        # No secular trend between the first and last thousand steps
        assert abs(e[-1000:].mean() - e[:1000].mean()) < 1e-3 * e[0]

    def test_rk4_energy_drifts_monotonically(self, long_horizon):
        y0 = jnp.array([1.0, 0.0])
        _, y = odeint(RK4(), harmonic_oscillator, y0, long_horizon)

        e = np.asarray(energy(y))
        assert np.all(np.diff(e) < 0)
        assert e[-1] < e[0]


class TestLeapfrogStep:

    def test_split_and_full_forms_agree(self):
        y = jnp.array([0.3, -0.2, 0.5, 0.1])
        full = lambda y, t: jnp.concatenate([y[2:], -y[:2]])
        a = Leapfrog().step(full, y, 0.0, 0.05)
        b = Leapfrog().step(harmonic_oscillator_split, y, 0.0, 0.05)
        assert jnp.allclose(a.y, b.y, atol=1e-15)

    def test_time_reversible(self):
        y0 = jnp.array([1.0, 0.5])
        h = 0.1
        forward = Leapfrog().step(harmonic_oscillator, y0, 0.0, h)
        backward = Leapfrog().step(harmonic_oscillator, forward.y, h, -h)
        assert jnp.allclose(backward.y, y0, atol=1e-14)

    def test_second_order_convergence(self):
        y0 = jnp.array([1.0, 0.0])
        t_end = 2.0
        exact = jnp.array([jnp.cos(t_end), -jnp.sin(t_end)])

        errors = []
        for dt in (0.1, 0.05, 0.025):
            _, y = odeint(Leapfrog(), harmonic_oscillator_split, y0,
                          FixedStep(0.0, t_end, dt))
            errors.append(float(jnp.max(jnp.abs(y[-1] - exact))))

        orders = np.log2(np.array(errors[:-1]) / np.array(errors[1:]))
        assert np.all((orders > 1.8) & (orders < 2.2))

    def test_parameters_are_passed(self):
        split = {
            'position': lambda p, t, m, k: p / m,
            'momentum': lambda q, t, m, k: -k * q,
        }
        _, y = odeint(Leapfrog(), split, jnp.array([1.0, 0.0]),
                      FixedStep(0.0, 1.0, 0.001), args=(2.0, 8.0))
        # omega = sqrt(k / m) = 2
        assert jnp.allclose(y[-1, 0], jnp.cos(2.0), atol=1e-5)


class TestStateLayout:

    def test_odd_dimension(self):
        with pytest.raises(IncompatibleStateLayout):
            odeint(Leapfrog(), lambda y, t: -y, jnp.array([1.0, 0.0, 2.0]),
                   FixedStep(0.0, 1.0, 0.1))

    def test_multi_dimensional_state(self):
        with pytest.raises(IncompatibleStateLayout):
            odeint(Leapfrog(), lambda y, t: -y, jnp.ones((2, 2)),
                   FixedStep(0.0, 1.0, 0.1))

    def test_missing_split_key(self):
        with pytest.raises(IncompatibleStateLayout):
            odeint(Leapfrog(), {'position': lambda p, t: p},
                   jnp.array([1.0, 0.0]), FixedStep(0.0, 1.0, 0.1))

    def test_layout_error_is_value_error(self):
        assert issubclass(IncompatibleStateLayout, ValueError)
