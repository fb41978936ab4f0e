# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Forward simulation from POMP models.

:func:`simulate` draws one realisation of a model at given observation
times, using the same :class:`~pompjax.models.Model` as the filter so that
model definitions are reusable.  :func:`simulate_lgcp` draws event times
of a log-Gaussian Cox process by thinning.

:func:`simulate` uses :func:`jax.lax.scan` so the full time-loop is
compiled into a single XLA program.
"""

import jax.numpy as jnp
import jax.random as jr
from jax import lax
from jaxtyping import Array, Float

from pompjax.containers import Observation, SimulatedObservation
from pompjax.models import Model
from pompjax.sde import SdePath
from pompjax.types import PRNGKeyT


def simulate(
    key: PRNGKeyT,
    model: Model,
    times: Float[Array, ' ntime'],
) -> SimulatedObservation:
    r"""Simulate a model at a sequence of observation times.

    The initial state is drawn at ``times[0]`` and observed there; each
    later state is drawn from the transition over the gap to the
    previous time.

    Args:
        key: JAX PRNG key.
        model: Model to simulate from.
        times: Non-decreasing observation times, shape ``(T,)``.

    Returns:
        Stacked :class:`~pompjax.containers.SimulatedObservation` with a
        leading time axis of length ``T``.
    """
    times = jnp.asarray(times)
    k_init, k_rest = jr.split(key)
    x_0 = model.initial_sampler(k_init)
    dts = jnp.diff(times, prepend=times[:1])

    # --- Scan body for t = 0, ..., T-1 --------------------------------------
    def _step(x_prev, args):
        step_key, t, dt = args
        k_x, k_y = jr.split(step_key)
        x_t = model.transition_sampler(k_x, x_prev, dt)
        gamma = model.linear_predictor(x_t, t)
        eta = model.link(gamma)
        y_t = model.observation(eta).sample(seed=k_y)
        return x_t, SimulatedObservation(t, y_t, eta, gamma, x_t)

    step_keys = jr.split(k_rest, times.shape[0])
    _, simulated = lax.scan(_step, x_0, (step_keys, times, dts))
    return simulated


def simulate_lgcp(
    key: PRNGKeyT,
    model: Model,
    start: float,
    end: float,
    precision: int,
) -> list[SimulatedObservation]:
    r"""Simulate event times of a log-Gaussian Cox process by thinning.

    The latent state is simulated on a grid of step
    :math:`10^{-precision}` over ``[start, end]``.  Candidate times are
    drawn from a homogeneous Poisson process whose rate is the largest
    intensity on the grid, and each candidate is kept with probability
    :math:`\lambda(t) / \lambda_{max}`, :math:`\lambda(t)` taken at the
    latest grid point not after :math:`t`.

    Args:
        key: JAX PRNG key.
        model: Model whose linear predictor is the log-intensity, e.g.
            built with :func:`~pompjax.models.lgcp_model`.
        start: Start of the observation window.
        end: End of the observation window.
        precision: Grid step exponent.

    Returns:
        The accepted events in time order, each with ``value == 1``.
    """
    k_x0, k_path, k_events = jr.split(key, 3)
    path = SdePath(
        model.transition_sampler,
        model.initial_sampler(k_x0),
        start,
        end - start,
        precision,
        k_path,
    )
    points = list(path)
    gammas = jnp.stack(
        [model.linear_predictor(p.state, p.time) for p in points]
    )
    upper_bound = float(jnp.max(jnp.exp(gammas)))

    events = []
    t, i, j = float(start), 0, 0
    while True:
        k_gap, k_accept = jr.split(jr.fold_in(k_events, j))
        j += 1
        t += float(jr.exponential(k_gap)) / upper_bound
        if t > end:
            return events
        while i + 1 < len(points) and points[i + 1].time <= t:
            i += 1
        gamma = gammas[i]
        if float(jr.uniform(k_accept)) <= float(jnp.exp(gamma)) / upper_bound:
            events.append(
                SimulatedObservation(
                    t, 1.0, model.link(gamma), gamma, points[i].state
                )
            )


def as_observations(simulated) -> Observation:
    """Drop the latent fields of simulated observations.

    Args:
        simulated: Stacked output of :func:`simulate`, or the list
            returned by :func:`simulate_lgcp`.

    Returns:
        :class:`~pompjax.containers.Observation` with arrays of shape
        ``(T,)``.
    """
    if isinstance(simulated, SimulatedObservation):
        return Observation(t=simulated.t, value=simulated.value)
    return Observation(
        t=jnp.asarray([s.t for s in simulated]),
        value=jnp.asarray([s.value for s in simulated]),
    )
