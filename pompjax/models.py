# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Partially observed Markov process (POMP) models.

A :class:`Model` bundles everything the particle filter needs from a
model:

.. math::

    x_0 \sim p(x_0), \qquad
    x_t \mid x_s \sim p(x_t \mid x_s, t - s), \qquad
    \gamma_t = f(x_t, t), \qquad
    \eta_t = g(\gamma_t), \qquad
    y_t \sim \pi(\eta_t)

Models are built in two stages.  A builder such as :func:`gaussian_model`
takes an SDE kernel from :mod:`pompjax.sde` and returns an
*unparameterised* model, a function from parameters to :class:`Model`.
Unparameterised models compose with :func:`compose`, whose state is the
pair of the two component states.
"""

from collections.abc import Callable
from typing import NamedTuple, Optional

import jax
import jax.numpy as jnp
import jax.random as jr
from tensorflow_probability.substrates.jax import distributions as tfd

from pompjax.errors import IncompatibleParameterError
from pompjax.parameters import BranchParameter, LeafParameter, Parameters
from pompjax.sde import StepFunction, as_sampler


class Model(NamedTuple):
    r"""A parameterised POMP model.

    Attributes:
        initial_sampler: Function ``(key) -> state`` drawing one sample
            from :math:`p(x_0)`.
        transition_sampler: Function ``(key, state, dt) -> state`` drawing
            from the latent transition over a time increment ``dt``.
        linear_predictor: Function ``(state, t) -> gamma`` (scalar).
        link: Function ``(gamma) -> eta`` (1-D array).
        observation: Function ``(eta) -> distribution`` over a single
            observation.
        log_likelihood: Function ``(eta, y) -> log_prob`` (scalar).
    """

    initial_sampler: Callable
    transition_sampler: Callable
    linear_predictor: Callable
    link: Callable
    observation: Callable
    log_likelihood: Callable


UnparamModel = Callable[[Parameters], Model]
Kernel = Callable[..., StepFunction]


def _leaf_model(
    name: str,
    kernel: Kernel,
    params: Parameters,
    link: Callable,
    observation: Callable,
    log_likelihood: Optional[Callable] = None,
) -> Model:
    if not isinstance(params, LeafParameter):
        raise IncompatibleParameterError(name, LeafParameter, params)
    step = kernel(params.sde)
    m0 = jnp.asarray(params.initial_mean)
    c0 = jnp.asarray(params.initial_scale)

    def initial_sampler(key):
        return tfd.Normal(loc=m0, scale=c0).sample(seed=key)

    def linear_predictor(state, t):
        return state[0]

    if log_likelihood is None:

        def log_likelihood(eta, y):
            return observation(eta).log_prob(y)

    return Model(
        initial_sampler=initial_sampler,
        transition_sampler=as_sampler(step),
        linear_predictor=linear_predictor,
        link=link,
        observation=observation,
        log_likelihood=log_likelihood,
    )


def gaussian_model(kernel: Kernel) -> UnparamModel:
    r"""Gaussian observations with an identity link.

    :math:`y \sim N(\eta, v^2)` where :math:`v` is
    :attr:`LeafParameter.scale <pompjax.parameters.LeafParameter.scale>`.
    """

    def build(params: Parameters) -> Model:
        if isinstance(params, LeafParameter) and params.scale is None:
            raise ValueError('gaussian_model requires LeafParameter.scale')

        def observation(eta):
            return tfd.Normal(loc=eta[0], scale=params.scale)

        return _leaf_model(
            'gaussian_model',
            kernel,
            params,
            link=jnp.atleast_1d,
            observation=observation,
        )

    return build


def poisson_model(kernel: Kernel) -> UnparamModel:
    r"""Poisson counts with a log link, :math:`y \sim Pois(e^\gamma)`."""

    def build(params: Parameters) -> Model:
        return _leaf_model(
            'poisson_model',
            kernel,
            params,
            link=lambda gamma: jnp.atleast_1d(jnp.exp(gamma)),
            observation=lambda eta: tfd.Poisson(rate=eta[0]),
        )

    return build


def bernoulli_model(kernel: Kernel) -> UnparamModel:
    """Binary observations with a logistic link."""

    def build(params: Parameters) -> Model:
        return _leaf_model(
            'bernoulli_model',
            kernel,
            params,
            link=lambda gamma: jnp.atleast_1d(jax.nn.sigmoid(gamma)),
            observation=lambda eta: tfd.Bernoulli(
                probs=eta[0], dtype=eta.dtype
            ),
        )

    return build


def _check_compensated(eta):
    if eta.shape[-1] != 2:
        raise ValueError(
            'lgcp_model needs eta = (log-intensity, compensator); '
            'filter it with pompjax.cox.cox_advance'
        )


def lgcp_model(kernel: Kernel) -> UnparamModel:
    r"""Log-Gaussian Cox process.

    The linear predictor is the log-intensity
    :math:`\log\lambda(t) = \gamma_t`.  Filtering requires
    :func:`pompjax.cox.cox_advance`, which produces
    :math:`\eta = (\log\lambda(t), \Lambda)` with :math:`\Lambda` the
    compensator over the interval since the last observation.  An
    observation :math:`y = 1` marks an event at :math:`t` and :math:`y = 0`
    its absence, with log-likelihood :math:`y\log\lambda(t) - \Lambda`.
    """

    def observation(eta):
        _check_compensated(eta)
        return tfd.Bernoulli(probs=-jnp.expm1(-eta[1]), dtype=eta.dtype)

    def log_likelihood(eta, y):
        _check_compensated(eta)
        return y * eta[0] - eta[1]

    def build(params: Parameters) -> Model:
        return _leaf_model(
            'lgcp_model',
            kernel,
            params,
            link=jnp.atleast_1d,
            observation=observation,
            log_likelihood=log_likelihood,
        )

    return build


def compose(left: UnparamModel, right: UnparamModel) -> UnparamModel:
    """Compose two unparameterised models.

    The composed state is the pair ``(left_state, right_state)`` and each
    half evolves under its own kernel.  The linear predictors are added;
    the link and observation model are those of the left model.

    Args:
        left: Model supplying the observation model.
        right: Model contributing an additive linear predictor.

    Returns:
        An unparameterised model taking a
        :class:`~pompjax.parameters.BranchParameter`.
    """

    def build(params: Parameters) -> Model:
        if not isinstance(params, BranchParameter):
            raise IncompatibleParameterError(
                'compose', BranchParameter, params
            )
        mod1 = left(params.left)
        mod2 = right(params.right)

        def initial_sampler(key):
            k1, k2 = jr.split(key)
            return (mod1.initial_sampler(k1), mod2.initial_sampler(k2))

        def transition_sampler(key, state, dt):
            k1, k2 = jr.split(key)
            return (
                mod1.transition_sampler(k1, state[0], dt),
                mod2.transition_sampler(k2, state[1], dt),
            )

        def linear_predictor(state, t):
            return mod1.linear_predictor(
                state[0], t
            ) + mod2.linear_predictor(state[1], t)

        return Model(
            initial_sampler=initial_sampler,
            transition_sampler=transition_sampler,
            linear_predictor=linear_predictor,
            link=mod1.link,
            observation=mod1.observation,
            log_likelihood=mod1.log_likelihood,
        )

    return build
