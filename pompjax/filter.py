# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Bootstrap particle filter for POMP models observed at irregular times.

At each observation :math:`(t, y)` the filter:

1. **Resamples** the current cloud according to its weights (at every
   step; there is no ESS threshold).
2. **Advances** each resampled particle over :math:`\Delta t = t - t_{prev}`
   and computes its linked predictor :math:`\eta`.
3. **Weights** each particle by :math:`\log p(y \mid \eta)`.
4. **Accumulates** the log-likelihood increment
   :math:`m + \log \overline{e^{\ell - m}}` with :math:`m = \max \ell`.

Execution modes, all sharing one step function:

- :func:`marginal_log_likelihood` — reduced mode, final log-likelihood
  only
- :func:`filter_history` — batch mode, every filter state
- :func:`filter_stream` — streaming mode over an iterable of observations
- :func:`forecast_stream` — streaming one-step-ahead forecasts
- :func:`filter_summaries` — batch mode summarised by
  :func:`~pompjax.summary.summarize`

The batch and reduced modes use :func:`jax.lax.scan`; the streaming modes
are generators around a jitted step.  Step ``i`` always draws from
``fold_in(step_key, i)``, so every mode gives the same particles for the
same key.
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from functools import partial
from typing import Optional, Union

import jax
import jax.numpy as jnp
import jax.random as jr
from jax import lax, vmap
from jaxtyping import Array, Float

from pompjax.containers import (
    FilterState,
    FilterSummary,
    ForecastSummary,
    Observation,
)
from pompjax.errors import DegenerateWeightsError, NonMonotonicTimeError
from pompjax.models import Model
from pompjax.resampling import ResamplingFn, get_resampler, resample
from pompjax.summary import forecast_summary, summarize
from pompjax.types import PRNGKeyT, Scalar, State
from pompjax.weights import stabilize

logger = logging.getLogger(__name__)

AdvanceFn = Callable[[PRNGKeyT, State, Scalar, Scalar], tuple[State, Array]]
Resampler = Union[str, ResamplingFn]


def advance(model: Model) -> AdvanceFn:
    """Default advance: one draw from the transition over ``dt``.

    Args:
        model: The model being filtered.

    Returns:
        Function ``(key, state, t, dt) -> (state, eta)`` where
        ``eta = link(linear_predictor(state, t))``.
    """

    def _advance(key, state, t, dt):
        x1 = model.transition_sampler(key, state, dt)
        return x1, model.link(model.linear_predictor(x1, t))

    return _advance


def initialize(
    key: PRNGKeyT,
    model: Model,
    num_particles: int,
    t0: Scalar = 0.0,
) -> FilterState:
    """Draw the initial particle cloud.

    Args:
        key: JAX PRNG key.
        model: The model being filtered.
        num_particles: Number of particles :math:`N`.
        t0: Start time.

    Returns:
        Filter state with ``num_particles`` draws from the initial
        distribution, unit weights and zero log-likelihood.
    """
    dtype = _float_dtype()
    particles = vmap(model.initial_sampler)(jr.split(key, num_particles))
    return FilterState(
        t=jnp.asarray(t0, dtype=dtype),
        observation=jnp.asarray(jnp.nan, dtype=dtype),
        particles=particles,
        weights=jnp.ones(num_particles, dtype=dtype),
        log_likelihood=jnp.zeros((), dtype=dtype),
    )


def step(
    key: PRNGKeyT,
    model: Model,
    state: FilterState,
    observation: Observation,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> FilterState:
    """Incorporate one observation.

    Args:
        key: JAX PRNG key for this step.
        model: The model being filtered.
        state: Current filter state.
        observation: A single ``(t, value)`` observation.
        resampling_fn: Resampling scheme or its name.
        advance_fn: Advance function; defaults to :func:`advance`.

    Returns:
        The filter state at the observation time.

    Raises:
        NonMonotonicTimeError: If the observation precedes ``state.t``.
        DegenerateWeightsError: If the new weights are degenerate.
    """
    t, value = _as_arrays(observation)
    _check_order(None, t, state.t)
    step_fn = _make_step(model, resampling_fn, advance_fn)
    new_state = step_fn(key, state, t, value)
    _check_finite(None, new_state)
    return new_state


def step_with_forecast(
    key: PRNGKeyT,
    model: Model,
    state: FilterState,
    observation: Observation,
    interval: float = 0.995,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> tuple[FilterState, ForecastSummary]:
    """Incorporate one observation, forecasting it first.

    The resampled cloud is advanced to the observation time and
    summarised before the observation is weighed in, so the forecast is
    a genuine one-step-ahead prediction.  The returned filter state is
    identical to the one from :func:`step` with the same key.

    Returns:
        A tuple ``(state, forecast)``.
    """
    t, value = _as_arrays(observation)
    _check_order(None, t, state.t)
    step_fn = _make_forecast_step(model, resampling_fn, advance_fn, interval)
    new_state, forecast = step_fn(key, state, t, value)
    _check_finite(None, new_state)
    return new_state, forecast


# --- Batch drivers ----------------------------------------------------------


def marginal_log_likelihood(
    key: PRNGKeyT,
    model: Model,
    observations: Observation,
    num_particles: int,
    t0: Scalar = 0.0,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> Scalar:
    r"""Estimate :math:`\log p(y_{1:T})`, keeping only the running state.

    Args:
        key: JAX PRNG key.
        model: The model being filtered.
        observations: Observations with ``t`` and ``value`` of shape
            ``(T,)``, ordered by non-decreasing time.
        num_particles: Number of particles :math:`N`.
        t0: Start time, at or before the first observation.
        resampling_fn: Resampling scheme or its name.
        advance_fn: Advance function; defaults to :func:`advance`.

    Returns:
        The log marginal likelihood estimate.

    Raises:
        NonMonotonicTimeError: If the observation times decrease.
        DegenerateWeightsError: At the first step with degenerate weights.
    """
    times, values = _prepare(observations, t0)
    init_key, step_key = jr.split(key)
    state_0 = initialize(init_key, model, num_particles, t0)
    step_fn = _make_step(model, resampling_fn, advance_fn)
    logger.debug(
        'Filtering %d observations with %d particles',
        times.shape[0],
        num_particles,
    )

    def _scan_step(state, args):
        k, t, y = args
        new_state = step_fn(k, state, t, y)
        return new_state, new_state.log_likelihood

    final_state, running_ll = lax.scan(
        _scan_step, state_0, (_step_keys(step_key, times), times, values)
    )
    _check_history(running_ll, times)
    return final_state.log_likelihood


def filter_history(
    key: PRNGKeyT,
    model: Model,
    observations: Observation,
    num_particles: int,
    t0: Scalar = 0.0,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> FilterState:
    """Run the filter and keep every filter state.

    Arguments are as for :func:`marginal_log_likelihood`.

    Returns:
        Stacked :class:`~pompjax.containers.FilterState` with a leading
        time axis of length ``T + 1``; index 0 is the initial state.
        ``history.log_likelihood[-1]`` equals the value returned by
        :func:`marginal_log_likelihood` for the same inputs.
    """
    times, values = _prepare(observations, t0)
    init_key, step_key = jr.split(key)
    state_0 = initialize(init_key, model, num_particles, t0)
    step_fn = _make_step(model, resampling_fn, advance_fn)
    logger.debug(
        'Filtering %d observations with %d particles (full history)',
        times.shape[0],
        num_particles,
    )

    def _scan_step(state, args):
        k, t, y = args
        new_state = step_fn(k, state, t, y)
        return new_state, new_state

    _, states = lax.scan(
        _scan_step, state_0, (_step_keys(step_key, times), times, values)
    )
    _check_history(states.log_likelihood, times)

    # --- Combine the initial state with steps 1..T -------------------------
    def _prepend(first: Array, rest: Array) -> Array:
        return jnp.concatenate([jnp.expand_dims(first, 0), rest], axis=0)

    return jax.tree_util.tree_map(_prepend, state_0, states)


def filter_summaries(
    key: PRNGKeyT,
    model: Model,
    observations: Observation,
    num_particles: int,
    t0: Scalar = 0.0,
    interval: float = 0.995,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> FilterSummary:
    """Run the filter and summarise every filter state.

    Returns:
        Stacked :class:`~pompjax.containers.FilterSummary`, one per
        state of :func:`filter_history` (initial state included).
    """
    history = filter_history(
        key,
        model,
        observations,
        num_particles,
        t0,
        resampling_fn=resampling_fn,
        advance_fn=advance_fn,
    )
    return vmap(lambda s: summarize(model, s, interval))(history)


# --- Streaming drivers ------------------------------------------------------


def filter_stream(
    key: PRNGKeyT,
    model: Model,
    observations: Iterable[Observation],
    num_particles: int,
    t0: Scalar = 0.0,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> Iterator[FilterState]:
    """Filter observations one at a time as they arrive.

    Only the current filter state is retained.  Nothing is computed until
    the consumer asks for the next state, and closing the generator
    stops the run without producing a partial state.

    Args:
        key: JAX PRNG key.
        model: The model being filtered.
        observations: Iterable of ``(t, value)`` pairs, possibly
            unbounded.
        num_particles: Number of particles :math:`N`.
        t0: Start time.
        resampling_fn: Resampling scheme or its name.
        advance_fn: Advance function; defaults to :func:`advance`.

    Yields:
        One :class:`~pompjax.containers.FilterState` per observation.

    Raises:
        NonMonotonicTimeError: When an observation precedes the current
            filter time.
        DegenerateWeightsError: At the first step with degenerate weights.
    """
    init_key, step_key = jr.split(key)
    state = initialize(init_key, model, num_particles, t0)
    step_fn = jax.jit(_make_step(model, resampling_fn, advance_fn))
    logger.debug('Streaming filter started with %d particles', num_particles)
    count = 0
    try:
        for i, observation in enumerate(observations):
            t, value = _as_arrays(observation)
            _check_order(i, t, state.t)
            state = step_fn(jr.fold_in(step_key, i), state, t, value)
            _check_finite(i, state)
            count += 1
            yield state
    finally:
        logger.debug('Streaming filter stopped after %d observations', count)


def forecast_stream(
    key: PRNGKeyT,
    model: Model,
    observations: Iterable[Observation],
    num_particles: int,
    t0: Scalar = 0.0,
    interval: float = 0.995,
    resampling_fn: Resampler = 'systematic',
    advance_fn: Optional[AdvanceFn] = None,
) -> Iterator[ForecastSummary]:
    """Stream one-step-ahead forecasts of each arriving observation.

    Each forecast is made from the filter state before the observation,
    advanced to the observation time; the observation is then
    incorporated and the filter moves on.

    Yields:
        One :class:`~pompjax.containers.ForecastSummary` per observation.
    """
    init_key, step_key = jr.split(key)
    state = initialize(init_key, model, num_particles, t0)
    step_fn = jax.jit(
        _make_forecast_step(model, resampling_fn, advance_fn, interval)
    )
    logger.debug('Forecast stream started with %d particles', num_particles)
    count = 0
    try:
        for i, observation in enumerate(observations):
            t, value = _as_arrays(observation)
            _check_order(i, t, state.t)
            state, forecast = step_fn(
                jr.fold_in(step_key, i), state, t, value
            )
            _check_finite(i, state)
            count += 1
            yield forecast
    finally:
        logger.debug('Forecast stream stopped after %d observations', count)


# --- Internal helpers -------------------------------------------------------


def _float_dtype():
    return jnp.zeros(()).dtype


def _make_step(
    model: Model,
    resampling_fn: Resampler,
    advance_fn: Optional[AdvanceFn],
) -> Callable:
    return partial(
        _step,
        model,
        get_resampler(resampling_fn),
        advance(model) if advance_fn is None else advance_fn,
    )


def _make_forecast_step(
    model: Model,
    resampling_fn: Resampler,
    advance_fn: Optional[AdvanceFn],
    interval: float,
) -> Callable:
    return partial(
        _forecast_step,
        model,
        get_resampler(resampling_fn),
        advance(model) if advance_fn is None else advance_fn,
        interval,
    )


def _as_arrays(observation) -> tuple[Array, Array]:
    t, value = observation
    dtype = _float_dtype()
    return jnp.asarray(t, dtype=dtype), jnp.asarray(value, dtype=dtype)


def _split_step_key(key: PRNGKeyT) -> tuple[Array, Array, Array]:
    """Keys for resampling, for advancing and for predicted observations."""
    k_resample, k_advance, k_observe = jr.split(key, 3)
    return k_resample, k_advance, k_observe


def _predict(
    resampling_fn: ResamplingFn,
    advance_fn: AdvanceFn,
    k_resample: PRNGKeyT,
    k_advance: PRNGKeyT,
    state: FilterState,
    t: Scalar,
) -> tuple[State, Float[Array, 'num_particles eta_dim']]:
    """Resample the cloud and advance every particle to time ``t``."""
    num_particles = state.weights.shape[0]
    resampled, _ = resample(
        k_resample, state.particles, state.weights, resampling_fn
    )
    keys = jr.split(k_advance, num_particles)
    advanced, eta = vmap(advance_fn, in_axes=(0, 0, None, None))(
        keys, resampled, t, t - state.t
    )
    # Keep the carry dtypes fixed across steps.
    advanced = jax.tree_util.tree_map(
        lambda new, old: new.astype(old.dtype), advanced, state.particles
    )
    return advanced, eta


def _update(
    model: Model,
    state: FilterState,
    t: Scalar,
    value: Scalar,
    particles: State,
    eta: Float[Array, 'num_particles eta_dim'],
) -> FilterState:
    """Weight predicted particles by the observation."""
    log_weights = vmap(model.log_likelihood, in_axes=(0, None))(eta, value)
    weights, increment = stabilize(log_weights)
    return FilterState(
        t=t,
        observation=value,
        particles=particles,
        weights=weights.astype(state.weights.dtype),
        log_likelihood=(state.log_likelihood + increment).astype(
            state.log_likelihood.dtype
        ),
    )


def _step(
    model: Model,
    resampling_fn: ResamplingFn,
    advance_fn: AdvanceFn,
    key: PRNGKeyT,
    state: FilterState,
    t: Scalar,
    value: Scalar,
) -> FilterState:
    k_resample, k_advance, _ = _split_step_key(key)
    particles, eta = _predict(
        resampling_fn, advance_fn, k_resample, k_advance, state, t
    )
    return _update(model, state, t, value, particles, eta)


def _forecast_step(
    model: Model,
    resampling_fn: ResamplingFn,
    advance_fn: AdvanceFn,
    interval: float,
    key: PRNGKeyT,
    state: FilterState,
    t: Scalar,
    value: Scalar,
) -> tuple[FilterState, ForecastSummary]:
    k_resample, k_advance, k_observe = _split_step_key(key)
    particles, eta = _predict(
        resampling_fn, advance_fn, k_resample, k_advance, state, t
    )
    forecast = forecast_summary(
        k_observe, model, t, particles, eta, interval
    )
    return _update(model, state, t, value, particles, eta), forecast


def _prepare(
    observations: Observation,
    t0: Scalar,
) -> tuple[Float[Array, ' ntime'], Float[Array, ' ntime']]:
    """Convert observations to arrays and reject decreasing times."""
    dtype = _float_dtype()
    times = jnp.asarray(observations.t, dtype=dtype)
    values = jnp.asarray(observations.value, dtype=dtype)
    previous = jnp.concatenate([jnp.asarray([t0], dtype=dtype), times])[:-1]
    decreasing = times < previous
    if bool(jnp.any(decreasing)):
        i = int(jnp.argmax(decreasing))
        logger.error('Observation %d at t=%s is out of order', i, times[i])
        raise NonMonotonicTimeError(i, float(times[i]), float(previous[i]))
    return times, values


def _step_keys(step_key: PRNGKeyT, times: Array) -> Array:
    return vmap(lambda i: jr.fold_in(step_key, i))(
        jnp.arange(times.shape[0])
    )


def _check_order(index: Optional[int], t: Array, previous: Array) -> None:
    if float(t) < float(previous):
        logger.error('Observation %s at t=%s is out of order', index, t)
        raise NonMonotonicTimeError(index, float(t), float(previous))


def _check_finite(index: Optional[int], state: FilterState) -> None:
    if not bool(jnp.isfinite(state.log_likelihood)):
        logger.error('Degenerate weights at observation %s', index)
        raise DegenerateWeightsError(index, float(state.t))


def _check_history(running_ll: Array, times: Array) -> None:
    """Report the first step whose log-likelihood is not finite."""
    degenerate = ~jnp.isfinite(running_ll)
    if bool(jnp.any(degenerate)):
        i = int(jnp.argmax(degenerate))
        logger.error('Degenerate weights at observation %d', i)
        raise DegenerateWeightsError(i, float(times[i]))
