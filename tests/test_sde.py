# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for pompjax.sde — exact transitions and parameter checking."""

import jax
import jax.numpy as jnp
import jax.random as jr
import pytest

from pompjax.errors import (
    FilterError,
    IncompatibleParameterError,
    KernelNotImplementedError,
)
from pompjax.parameters import (
    BrownianParameter,
    CIRParameter,
    OrnsteinParameter,
    StepConstantParameter,
)
from pompjax.sde import (
    SdePath,
    as_sampler,
    ornstein_moments,
    step_brownian,
    step_cir,
    step_constant,
    step_identity,
    step_ornstein,
)

OU = OrnsteinParameter(
    theta=jnp.array([1.0, -2.0]),
    alpha=jnp.array([0.5, 2.0]),
    sigma=jnp.array([0.3, 1.0]),
)
BROWNIAN = BrownianParameter(mu=jnp.array([0.5]), sigma=jnp.array([2.0]))


class TestDeterministicKernels:
    """Identity and constant-drift kernels are exact."""

    def test_identity_returns_state(self, key):
        x = jnp.array([0.3, -1.0])
        sample = as_sampler(step_identity())(key, x, 5.0)
        assert jnp.array_equal(sample, x)

    def test_identity_accepts_any_parameter(self, key):
        x = jnp.array([1.0])
        sample = as_sampler(step_identity(OU))(key, x, 1.0)
        assert jnp.array_equal(sample, x)

    def test_constant_drift(self, key):
        params = StepConstantParameter(drift=jnp.array([0.5, -1.0]))
        x = jnp.array([1.0, 1.0])
        sample = as_sampler(step_constant(params))(key, x, 2.0)
        assert jnp.allclose(sample, jnp.array([2.0, -1.0]))

    def test_constant_drift_zero_increment(self, key):
        params = StepConstantParameter(drift=jnp.array([3.0]))
        x = jnp.array([0.7])
        sample = as_sampler(step_constant(params))(key, x, 0.0)
        assert jnp.array_equal(sample, x)


class TestBrownian:
    """Generalised Brownian motion moments."""

    def test_moments(self):
        dist = step_brownian(BROWNIAN)(jnp.array([1.0]), 3.0)
        assert jnp.allclose(dist.mean(), 2.5)
        assert jnp.allclose(dist.variance(), 12.0)

    def test_sample_moments(self, key):
        sampler = as_sampler(step_brownian(BROWNIAN))
        keys = jr.split(key, 5000)
        x = jnp.array([1.0])
        samples = jax.vmap(lambda k: sampler(k, x, 0.25))(keys)
        assert jnp.allclose(jnp.mean(samples), 1.125, atol=0.1)
        assert jnp.allclose(jnp.var(samples), 1.0, atol=0.1)


class TestOrnstein:
    """Exact Ornstein-Uhlenbeck transition."""

    def test_zero_increment_is_identity(self):
        x = jnp.array([3.0, 0.0])
        mean, var = ornstein_moments(OU, x, 0.0)
        assert jnp.allclose(mean, x)
        assert jnp.allclose(var, 0.0)

    def test_stationary_limit(self):
        """As dt grows the transition tends to N(theta, sigma^2 / 2 alpha)."""
        dist = step_ornstein(OU)(jnp.array([10.0, 10.0]), 100.0)
        assert jnp.allclose(dist.mean(), OU.theta, atol=1e-8)
        assert jnp.allclose(
            dist.variance(), OU.sigma**2 / (2 * OU.alpha), atol=1e-8
        )

    def test_semigroup_mean(self):
        """Two half steps give the mean of one full step."""
        x = jnp.array([2.0, 1.0])
        half, _ = ornstein_moments(OU, x, 0.35)
        twice, _ = ornstein_moments(OU, half, 0.35)
        once, _ = ornstein_moments(OU, x, 0.7)
        assert jnp.allclose(twice, once)

    def test_small_increment_variance(self):
        """Variance is sigma^2 dt to first order."""
        _, var = ornstein_moments(OU, jnp.zeros(2), 1e-6)
        assert jnp.allclose(var, OU.sigma**2 * 1e-6, rtol=1e-4)


class TestParameterChecking:
    """Kernels reject the wrong parameter variant when built."""

    @pytest.mark.parametrize(
        'kernel, params',
        [
            (step_constant, BROWNIAN),
            (step_brownian, OU),
            (step_ornstein, StepConstantParameter(drift=jnp.array([1.0]))),
        ],
    )
    def test_mismatch_raises(self, kernel, params):
        with pytest.raises(IncompatibleParameterError) as info:
            kernel(params)
        assert info.value.component == kernel.__name__
        assert info.value.received is params

    def test_mismatch_is_a_type_error(self):
        with pytest.raises(TypeError):
            step_ornstein(BROWNIAN)

    def test_cir_not_implemented(self):
        params = CIRParameter(
            theta=jnp.array([1.0]),
            alpha=jnp.array([1.0]),
            sigma=jnp.array([0.1]),
        )
        with pytest.raises(KernelNotImplementedError):
            step_cir(params)
        with pytest.raises(FilterError):
            step_cir(params)


class TestSdePath:
    """Lazy, restartable discretised paths."""

    def _path(self, key, total=1.0, precision=1):
        sampler = as_sampler(step_ornstein(OU))
        return SdePath(sampler, jnp.zeros(2), 2.0, total, precision, key)

    def test_grid_is_bounded(self, key):
        times = [p.time for p in self._path(key)]
        assert len(times) == 11
        assert times[0] == 2.0
        assert jnp.allclose(times[-1], 3.0)

    def test_restartable(self, key):
        path = self._path(key)
        first = jnp.stack([p.state for p in path])
        second = jnp.stack([p.state for p in path])
        assert jnp.array_equal(first, second)

    def test_starts_at_initial_state(self, key):
        point = next(iter(self._path(key)))
        assert jnp.array_equal(point.state, jnp.zeros(2))

    def test_lazy_generation(self, key):
        """Only the requested points are produced."""
        calls = []

        def sampler(k, x, dt):
            calls.append(dt)
            return x + dt

        path = SdePath(sampler, jnp.zeros(1), 0.0, 1000.0, 2, key)
        it = iter(path)
        for _ in range(3):
            next(it)
        assert len(calls) == 2
