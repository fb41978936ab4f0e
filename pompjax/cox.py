# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Advance function for point-process (Cox process) observations.

The likelihood of an event, or of no event, at time :math:`t` given the
last observation at :math:`s` depends on the whole intensity path
through the compensator

.. math::

    \Lambda(s, t) = \int_s^t \lambda(u)\,du,
    \qquad \lambda(u) = \exp f(x_u, u),

not only on the intensity at :math:`t`.  :func:`cox_advance` therefore
simulates the latent state on a fine grid of step
:math:`\delta = 10^{-precision}` across the interval and accumulates a
left Riemann sum of the intensity.  Use it with
:func:`~pompjax.models.lgcp_model`::

    model = lgcp_model(step_ornstein)(params)
    ll = marginal_log_likelihood(
        key, model, events, 500, advance_fn=cox_advance(model, 2)
    )
"""

import jax.numpy as jnp
import jax.random as jr
from jax import lax

from pompjax.filter import AdvanceFn
from pompjax.models import Model


def cox_advance(model: Model, precision: int) -> AdvanceFn:
    r"""Build an advance function that integrates the intensity.

    The interval :math:`[t - \Delta t, t]` is covered by
    :math:`K = \lfloor \Delta t / \delta \rfloor` sub-steps of size
    :math:`\delta` followed by one remainder step of size
    :math:`\Delta t - K\delta`, so the particle ends exactly at :math:`t`.

    Args:
        model: The model being filtered.
        precision: Sub-step size exponent, :math:`\delta = 10^{-precision}`.

    Returns:
        Function ``(key, state, t, dt) -> (state, eta)`` with
        ``eta = (f(x_t, t), compensator)``.
    """
    delta = 10.0 ** (-precision)

    def _advance(key, state, t, dt):
        t_start = t - dt
        num_steps = jnp.floor(dt / delta + 1e-9).astype(jnp.int32)
        remainder = jnp.maximum(dt - num_steps * delta, 0.0)

        def _substep(j, carry):
            x, compensator = carry
            gamma = model.linear_predictor(x, t_start + j * delta)
            x = model.transition_sampler(jr.fold_in(key, j), x, delta)
            return x, compensator + jnp.exp(gamma) * delta

        zero = jnp.zeros_like(model.linear_predictor(state, t_start))
        x, compensator = lax.fori_loop(
            0, num_steps, _substep, (state, zero)
        )
        gamma = model.linear_predictor(x, t_start + num_steps * delta)
        compensator = compensator + jnp.exp(gamma) * remainder
        x = model.transition_sampler(
            jr.fold_in(key, num_steps), x, remainder
        )
        log_intensity = model.linear_predictor(x, t)
        return x, jnp.stack([log_intensity, compensator])

    return _advance
