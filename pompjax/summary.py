# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Summaries of particle clouds.

- :func:`weighted_mean` — weighted mean state
- :func:`order_statistic` — two-sided order-statistic interval
- :func:`credible_intervals` — order-statistic interval per state
  dimension
- :func:`summarize` — :class:`~pompjax.containers.FilterSummary` of a
  filter state
- :func:`forecast_summary` — :class:`~pompjax.containers.ForecastSummary`
  of a predicted particle cloud

The intervals are plain order statistics of the particle values, not
weighted or bias-corrected quantiles.  :func:`order_statistic` returns
``(sorted[n - idx], sorted[idx])`` with ``idx = floor(n * interval)``,
so for ``interval`` close to one the bounds are the extreme order
statistics rather than a symmetric central interval.
"""

import math

import jax
import jax.numpy as jnp
import jax.random as jr
from jaxtyping import Array, Float

from pompjax.containers import (
    CredibleInterval,
    FilterState,
    FilterSummary,
    ForecastSummary,
)
from pompjax.models import Model
from pompjax.types import PRNGKeyT, Scalar, State
from pompjax.weights import normalize


def flatten_particles(particles: State) -> Float[Array, 'num_particles dim']:
    """Concatenate every leaf of a particle PyTree into one matrix."""
    leaves = jax.tree_util.tree_leaves(particles)
    n = leaves[0].shape[0]
    return jnp.concatenate([leaf.reshape(n, -1) for leaf in leaves], axis=1)


def weighted_mean(
    particles: State,
    weights: Float[Array, ' num_particles'],
) -> State:
    """Compute the weighted mean of a particle cloud.

    Args:
        particles: Particle PyTree, leaves with a leading
            ``num_particles`` axis.
        weights: Relative (unnormalized) particle weights.

    Returns:
        A state with the same structure as one particle.
    """
    w = normalize(weights)
    return jax.tree_util.tree_map(
        lambda x: jnp.tensordot(w, x, axes=1), particles
    )


def order_statistic(
    samples: Float[Array, ' num_samples'],
    interval: float,
) -> CredibleInterval:
    """Two-sided interval from the order statistics of a sample.

    Args:
        samples: One-dimensional sample.
        interval: Upper level of the interval, e.g. ``0.995``.  Must be a
            Python float.

    Returns:
        ``CredibleInterval(sorted[n - idx], sorted[idx])`` with
        ``idx = floor(n * interval)``.

    Raises:
        ValueError: If ``idx`` is ``0`` or not below ``n``, which would
            index outside the sample.
    """
    n = samples.shape[0]
    index = math.floor(n * interval)
    if not 0 < index < n:
        raise ValueError(
            f'interval {interval} gives order statistic {index}, which '
            f'is outside a sample of size {n}'
        )
    ordered = jnp.sort(samples)
    return CredibleInterval(lower=ordered[n - index], upper=ordered[index])


def credible_intervals(particles: State, interval: float) -> CredibleInterval:
    """Order-statistic interval of every flattened state dimension.

    Returns:
        A :class:`CredibleInterval` whose bounds have shape ``(dim,)``.
    """
    flat = flatten_particles(particles)
    return jax.vmap(lambda col: order_statistic(col, interval), in_axes=1)(
        flat
    )


def summarize(
    model: Model,
    state: FilterState,
    interval: float = 0.995,
) -> FilterSummary:
    r"""Summarise a filtering distribution.

    The linked predictor is reported through its first component,
    :math:`\eta_0`.

    Args:
        model: The model being filtered.
        state: A single filter state.
        interval: Upper level of the order-statistic intervals.

    Returns:
        The weighted mean state, :math:`\eta_0` at that mean, and
        intervals of :math:`\eta_0` and of the state over the particles.
    """
    mean_state = weighted_mean(state.particles, state.weights)

    def _eta(x):
        return model.link(model.linear_predictor(x, state.t))[0]

    etas = jax.vmap(_eta)(state.particles)
    return FilterSummary(
        t=state.t,
        observation=state.observation,
        eta_mean=_eta(mean_state),
        eta_interval=order_statistic(etas, interval),
        state_mean=mean_state,
        state_interval=credible_intervals(state.particles, interval),
    )


def forecast_summary(
    key: PRNGKeyT,
    model: Model,
    t: Scalar,
    particles: State,
    eta: Float[Array, 'num_particles eta_dim'],
    interval: float = 0.995,
) -> ForecastSummary:
    r"""Summarise an unweighted, predicted particle cloud.

    One observation is drawn per particle from the observation model.

    Args:
        key: JAX PRNG key for the predicted observations.
        model: The model being filtered.
        t: Time being forecast.
        particles: Predicted particles at ``t``.
        eta: Linked predictor of each predicted particle.
        interval: Upper level of the order-statistic intervals.

    Returns:
        Means and intervals of the predicted observation, of
        :math:`\eta_0` and of the state.
    """
    keys = jr.split(key, eta.shape[0])
    draws = jax.vmap(lambda k, e: model.observation(e).sample(seed=k))(
        keys, eta
    )
    return ForecastSummary(
        t=t,
        observation_mean=jnp.mean(draws),
        observation_interval=order_statistic(draws, interval),
        eta_mean=jnp.mean(eta[:, 0]),
        eta_interval=order_statistic(eta[:, 0], interval),
        state_mean=jax.tree_util.tree_map(
            lambda x: jnp.mean(x, axis=0), particles
        ),
        state_interval=credible_intervals(particles, interval),
    )
