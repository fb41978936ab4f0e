# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Shared test fixtures for pompjax."""

import jax
import jax.numpy as jnp
import jax.random as jr
import pytest

import pompjax
from pompjax.containers import Observation
from pompjax.parameters import (
    LeafParameter,
    OrnsteinParameter,
    StepConstantParameter,
)


@pytest.fixture
def package():
    """Return the top-level package module for introspection."""
    return pompjax


@pytest.fixture
def key():
    """Fixed JAX PRNG key for reproducibility."""
    return jr.PRNGKey(42)


@pytest.fixture
def ornstein_params():
    """Zero-mean 1-D Ornstein-Uhlenbeck model with Gaussian noise.

    Model:
        x_0  ~ N(0, 1)
        dx   = -0.5 x dt + 0.8 dW
        y_t  = x_t + eps,  eps ~ N(0, 0.7^2)
    """
    return LeafParameter(
        initial_mean=jnp.array([0.0]),
        initial_scale=jnp.array([1.0]),
        sde=OrnsteinParameter(
            theta=jnp.array([0.0]),
            alpha=jnp.array([0.5]),
            sigma=jnp.array([0.8]),
        ),
        scale=0.7,
    )


@pytest.fixture
def drift_params():
    """1-D deterministic drift model with Gaussian noise.

    Model:
        x_0  ~ N(1, 0.5^2)
        x_t  = x_0 + 0.3 t
        y_t  = x_t + eps,  eps ~ N(0, 1)
    """
    return LeafParameter(
        initial_mean=jnp.array([1.0]),
        initial_scale=jnp.array([0.5]),
        sde=StepConstantParameter(drift=jnp.array([0.3])),
        scale=1.0,
    )


@pytest.fixture
def observations():
    """Ten Gaussian observations at irregular, increasing times."""
    times = jnp.array([0.0, 0.4, 1.0, 1.1, 2.0, 2.0, 3.5, 4.0, 4.2, 5.0])
    values = jnp.array([0.3, 1.1, 0.2, -0.4, 0.9, 1.4, 1.0, 2.1, 1.6, 2.3])
    return Observation(t=times, value=values)


# Configure JAX to use 64-bit floats for higher precision in tests.
jax.config.update('jax_enable_x64', True)
