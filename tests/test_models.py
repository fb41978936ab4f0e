# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for pompjax.models — likelihoods checked against jax.scipy."""

import jax
import jax.numpy as jnp
import jax.random as jr
import jax.scipy.stats as jstats
import pytest

from pompjax.errors import IncompatibleParameterError
from pompjax.models import (
    bernoulli_model,
    compose,
    gaussian_model,
    lgcp_model,
    poisson_model,
)
from pompjax.parameters import (
    BranchParameter,
    BrownianParameter,
    LeafParameter,
    StepConstantParameter,
)
from pompjax.sde import step_brownian, step_constant, step_identity


def _leaf(mean=0.0, scale=None, sde=None):
    return LeafParameter(
        initial_mean=jnp.array([mean]),
        initial_scale=jnp.array([1.0]),
        sde=sde,
        scale=scale,
    )


class TestGaussianModel:
    """Gaussian observations with identity link."""

    def test_log_likelihood(self):
        model = gaussian_model(step_identity)(_leaf(scale=0.5))
        eta = model.link(model.linear_predictor(jnp.array([1.2]), 0.0))
        expected = jstats.norm.logpdf(0.7, 1.2, 0.5)
        assert jnp.allclose(model.log_likelihood(eta, 0.7), expected)

    def test_missing_scale(self):
        with pytest.raises(ValueError, match='scale'):
            gaussian_model(step_identity)(_leaf())

    def test_initial_sampler_moments(self, key):
        model = gaussian_model(step_identity)(_leaf(mean=3.0, scale=1.0))
        draws = jax.vmap(model.initial_sampler)(jr.split(key, 4000))
        assert draws.shape == (4000, 1)
        assert jnp.allclose(jnp.mean(draws), 3.0, atol=0.1)
        assert jnp.allclose(jnp.std(draws), 1.0, atol=0.1)


class TestCountModels:
    """Poisson and Bernoulli observation models."""

    def test_poisson_log_likelihood(self):
        model = poisson_model(step_identity)(_leaf())
        eta = model.link(jnp.log(2.5))
        expected = jstats.poisson.logpmf(3, 2.5)
        assert jnp.allclose(eta, jnp.array([2.5]))
        assert jnp.allclose(model.log_likelihood(eta, 3.0), expected)

    def test_bernoulli_log_likelihood(self):
        model = bernoulli_model(step_identity)(_leaf())
        eta = model.link(0.4)
        p = jax.nn.sigmoid(0.4)
        assert jnp.allclose(model.log_likelihood(eta, 1.0), jnp.log(p))
        assert jnp.allclose(model.log_likelihood(eta, 0.0), jnp.log1p(-p))


class TestLgcpModel:
    """Log-Gaussian Cox process point-process likelihood."""

    def test_event_and_no_event(self):
        model = lgcp_model(step_identity)(_leaf())
        eta = jnp.array([0.5, 1.25])
        assert jnp.allclose(model.log_likelihood(eta, 1.0), 0.5 - 1.25)
        assert jnp.allclose(model.log_likelihood(eta, 0.0), -1.25)

    def test_requires_compensator(self):
        model = lgcp_model(step_identity)(_leaf())
        with pytest.raises(ValueError, match='cox_advance'):
            model.log_likelihood(model.link(0.5), 1.0)

    def test_observation_probability(self):
        """P(event) is 1 - exp(-compensator)."""
        model = lgcp_model(step_identity)(_leaf())
        dist = model.observation(jnp.array([0.0, 0.3]))
        assert jnp.allclose(dist.prob(1.0), 1.0 - jnp.exp(-0.3))


class TestParameterChecking:
    """Builders reject the wrong parameter variant."""

    def test_leaf_model_rejects_branch(self):
        params = BranchParameter(_leaf(scale=1.0), _leaf())
        with pytest.raises(IncompatibleParameterError):
            gaussian_model(step_identity)(params)

    def test_compose_rejects_leaf(self):
        unparam = compose(
            gaussian_model(step_identity), poisson_model(step_identity)
        )
        with pytest.raises(IncompatibleParameterError):
            unparam(_leaf(scale=1.0))

    def test_kernel_checks_sde_parameter(self):
        params = _leaf(scale=1.0, sde=StepConstantParameter(jnp.ones(1)))
        with pytest.raises(IncompatibleParameterError):
            gaussian_model(step_brownian)(params)


class TestCompose:
    """Composed models add linear predictors."""

    def _model(self):
        unparam = compose(
            gaussian_model(step_constant), poisson_model(step_brownian)
        )
        params = BranchParameter(
            left=_leaf(scale=0.5, sde=StepConstantParameter(jnp.ones(1))),
            right=_leaf(
                sde=BrownianParameter(
                    mu=jnp.zeros(1), sigma=jnp.ones(1)
                )
            ),
        )
        return unparam(params)

    def test_state_is_pair(self, key):
        model = self._model()
        left, right = model.initial_sampler(key)
        assert left.shape == (1,)
        assert right.shape == (1,)

    def test_linear_predictor_is_sum(self):
        model = self._model()
        state = (jnp.array([1.5]), jnp.array([-0.25]))
        assert jnp.allclose(model.linear_predictor(state, 0.0), 1.25)

    def test_left_observation_model(self):
        model = self._model()
        eta = model.link(1.25)
        expected = jstats.norm.logpdf(2.0, 1.25, 0.5)
        assert jnp.allclose(model.log_likelihood(eta, 2.0), expected)

    def test_each_side_uses_its_kernel(self, key):
        model = self._model()
        state = (jnp.array([0.0]), jnp.array([0.0]))
        left, right = model.transition_sampler(key, state, 2.0)
        assert jnp.allclose(left, 2.0)
        assert not jnp.allclose(right, 0.0)
