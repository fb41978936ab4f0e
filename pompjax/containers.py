# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Containers for observations, filter state and filter summaries.

All containers are :class:`~typing.NamedTuple` subclasses so they are
registered as JAX PyTrees by default.
"""

from typing import Any, NamedTuple

import jax
from jaxtyping import Array, Float

from pompjax.types import Scalar, State


class Observation(NamedTuple):
    """A time-stamped observation.

    For a batch of observations both fields are arrays of shape
    ``(ntime,)`` ordered by non-decreasing time.

    Attributes:
        t: Observation time.
        value: Observed value.
    """

    t: Scalar
    value: Scalar


class SimulatedObservation(NamedTuple):
    r"""An observation together with the latent quantities behind it.

    Attributes:
        t: Observation time.
        value: Observed value, :math:`y \sim \pi(\eta)`.
        eta: Link-transformed linear predictor, :math:`\eta = g(\gamma)`.
        gamma: Linear predictor, :math:`\gamma = f(x, t)`.
        state: Latent state :math:`x`.
    """

    t: Scalar
    value: Scalar
    eta: Float[Array, ' eta_dim']
    gamma: Scalar
    state: State


class FilterState(NamedTuple):
    r"""State of the particle filter after one observation.

    A batch run returns a single ``FilterState`` whose leaves carry a
    leading time axis; use :func:`state_at` to recover the state at one
    time step.

    Attributes:
        t: Time of the last observation (or the start time).
        observation: Value of the last observation, ``nan`` before the
            first observation.
        particles: Particle cloud, a state PyTree whose leaves have a
            leading ``num_particles`` axis.
        weights: Relative particle weights, shape ``(num_particles,)``.
            Scaled so the largest weight is one; not normalized.
        log_likelihood: Running estimate of the log marginal likelihood
            :math:`\log p(y_{1:t})`.
    """

    t: Scalar
    observation: Scalar
    particles: State
    weights: Float[Array, ' num_particles']
    log_likelihood: Scalar


class CredibleInterval(NamedTuple):
    """Lower and upper order statistics of a sample."""

    lower: Any
    upper: Any


class FilterSummary(NamedTuple):
    """Point estimates and intervals of a filtering distribution.

    Attributes:
        t: Time of the filtering distribution.
        observation: Observation at ``t`` (``nan`` if none).
        eta_mean: Linked predictor evaluated at the weighted mean state.
        eta_interval: Interval of the particles' linked predictor.
        state_mean: Weighted mean state.
        state_interval: Per-dimension interval of the flattened state.
    """

    t: Scalar
    observation: Scalar
    eta_mean: Scalar
    eta_interval: CredibleInterval
    state_mean: State
    state_interval: CredibleInterval


class ForecastSummary(NamedTuple):
    """One-step-ahead prediction made before an observation is weighed in.

    Attributes:
        t: Time being forecast.
        observation_mean: Mean predicted observation.
        observation_interval: Interval of the predicted observation.
        eta_mean: Mean linked predictor.
        eta_interval: Interval of the linked predictor.
        state_mean: Mean predicted state.
        state_interval: Per-dimension interval of the flattened state.
    """

    t: Scalar
    observation_mean: Scalar
    observation_interval: CredibleInterval
    eta_mean: Scalar
    eta_interval: CredibleInterval
    state_mean: State
    state_interval: CredibleInterval


def state_at(history: FilterState, index: int) -> FilterState:
    """Extract the :class:`FilterState` at one step of a batch history.

    Args:
        history: Stacked filter states from
            :func:`~pompjax.filter.filter_history`.
        index: Time step; ``0`` is the initial state.

    Returns:
        The filter state at ``index``.
    """
    return jax.tree_util.tree_map(lambda leaf: leaf[index], history)
