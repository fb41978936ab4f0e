# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""State-transition kernels for SDE-driven latent states.

A *kernel* is built from a tagged SDE parameter and returns a *step*
function ``(state, dt) -> distribution`` giving the distribution of the
next latent state after a time increment :math:`\Delta t`:

- :func:`step_identity` — no latent dynamics
- :func:`step_constant` — deterministic drift
- :func:`step_brownian` — generalised Brownian motion
- :func:`step_ornstein` — exact Ornstein-Uhlenbeck transition
- :func:`step_cir` — declared, not implemented

The parameter tag is checked once, when the kernel is built, so a
mismatched parameter fails before any particle is drawn.
"""

from collections.abc import Callable, Iterator
from typing import Any, NamedTuple, Optional

import jax.numpy as jnp
import jax.random as jr
from jaxtyping import Array, Float
from tensorflow_probability.substrates.jax import distributions as tfd

from pompjax.errors import (
    IncompatibleParameterError,
    KernelNotImplementedError,
)
from pompjax.parameters import (
    BrownianParameter,
    OrnsteinParameter,
    SdeParameter,
    StepConstantParameter,
)
from pompjax.types import PRNGKeyT, Scalar, State

StepFunction = Callable[[State, Scalar], tfd.Distribution]
TransitionSampler = Callable[[PRNGKeyT, State, Scalar], State]


def _require(component: str, expected: type, params: Any) -> None:
    if not isinstance(params, expected):
        raise IncompatibleParameterError(component, expected, params)


# --- Kernels ----------------------------------------------------------------


def step_identity(params: Optional[SdeParameter] = None) -> StepFunction:
    """Kernel that leaves the state unchanged.

    Accepts any parameter, for models without latent dynamics.
    """

    def step(state, dt):
        return tfd.Deterministic(loc=state)

    return step


def step_constant(params: SdeParameter) -> StepFunction:
    r"""Kernel stepping the state by :math:`a\,\Delta t`.

    Args:
        params: A :class:`~pompjax.parameters.StepConstantParameter`.

    Returns:
        Step function returning a point distribution.
    """
    _require('step_constant', StepConstantParameter, params)
    drift = jnp.asarray(params.drift)

    def step(state, dt):
        return tfd.Deterministic(loc=state + drift * dt)

    return step


def brownian_moments(
    params: BrownianParameter,
    state: Float[Array, ' state_dim'],
    dt: Scalar,
) -> tuple[Float[Array, ' state_dim'], Float[Array, ' state_dim']]:
    """Per-dimension mean and variance of a Brownian motion step."""
    mu = jnp.asarray(params.mu)
    sigma = jnp.asarray(params.sigma)
    return state + mu * dt, sigma**2 * dt


def step_brownian(params: SdeParameter) -> StepFunction:
    r"""Kernel for :math:`dx = \mu\,dt + \sigma\,dW`.

    Each dimension is drawn independently from
    :math:`N(x_i + \mu_i \Delta t,\ \sigma_i^2 \Delta t)`.

    Args:
        params: A :class:`~pompjax.parameters.BrownianParameter`.

    Returns:
        Step function returning an independent Normal per dimension.
    """
    _require('step_brownian', BrownianParameter, params)

    def step(state, dt):
        mean, variance = brownian_moments(params, state, dt)
        return tfd.Normal(loc=mean, scale=jnp.sqrt(variance))

    return step


def ornstein_moments(
    params: OrnsteinParameter,
    state: Float[Array, ' state_dim'],
    dt: Scalar,
) -> tuple[Float[Array, ' state_dim'], Float[Array, ' state_dim']]:
    r"""Exact transition moments of the Ornstein-Uhlenbeck process.

    .. math::

        \mathbb{E}[x'] = \theta + (x - \theta) e^{-\alpha \Delta t},
        \qquad
        \mathrm{Var}[x'] = \frac{\sigma^2}{2\alpha}
            \bigl(1 - e^{-2\alpha \Delta t}\bigr)

    Args:
        params: Ornstein-Uhlenbeck parameters (``alpha > 0``).
        state: Current state.
        dt: Time increment.

    Returns:
        A tuple ``(mean, variance)``, each shape ``(state_dim,)``.
    """
    theta = jnp.asarray(params.theta)
    alpha = jnp.asarray(params.alpha)
    sigma = jnp.asarray(params.sigma)
    mean = theta + (state - theta) * jnp.exp(-alpha * dt)
    variance = sigma**2 / (2 * alpha) * -jnp.expm1(-2 * alpha * dt)
    return mean, variance


def step_ornstein(params: SdeParameter) -> StepFunction:
    r"""Kernel for :math:`dx = \alpha(\theta - x)\,dt + \sigma\,dW`.

    Uses the exact discretisation from :func:`ornstein_moments`, so any
    :math:`\Delta t` is valid.

    Args:
        params: A :class:`~pompjax.parameters.OrnsteinParameter`.

    Returns:
        Step function returning an independent Normal per dimension.
    """
    _require('step_ornstein', OrnsteinParameter, params)

    def step(state, dt):
        mean, variance = ornstein_moments(params, state, dt)
        return tfd.Normal(loc=mean, scale=jnp.sqrt(variance))

    return step


def step_cir(params: SdeParameter) -> StepFunction:
    """Kernel for the mean-reverting square-root (CIR) process.

    Raises:
        KernelNotImplementedError: Always.
    """
    raise KernelNotImplementedError(
        'step_cir: the mean-reverting square-root kernel is not implemented'
    )


def as_sampler(step: StepFunction) -> TransitionSampler:
    """Turn a step function into a ``(key, state, dt) -> state`` sampler."""

    def sample(key, state, dt):
        return step(state, dt).sample(seed=key)

    return sample


# --- Lazy time discretisation -----------------------------------------------


class SdePoint(NamedTuple):
    """One point of a discretised SDE path."""

    time: float
    state: State


class SdePath:
    r"""Lazily generated path of an SDE on a regular grid.

    Iterating yields :class:`SdePoint` values at times
    :math:`t_0, t_0 + \delta, t_0 + 2\delta, \ldots` while the time does
    not exceed ``t0 + total``, where :math:`\delta = 10^{-precision}`.
    Points are generated on demand.  Each iteration restarts from ``x0``
    and reproduces the same path, the draw for step ``j`` using
    ``fold_in(key, j)``.

    Args:
        transition_sampler: Function ``(key, state, dt) -> state``.
        x0: Starting state.
        t0: Starting time.
        total: Length of the time interval covered by the path.
        precision: Step size exponent, :math:`\delta = 10^{-precision}`.
        key: JAX PRNG key.
    """

    def __init__(
        self,
        transition_sampler: TransitionSampler,
        x0: State,
        t0: float,
        total: float,
        precision: int,
        key: PRNGKeyT,
    ):
        self.transition_sampler = transition_sampler
        self.x0 = x0
        self.t0 = float(t0)
        self.total = float(total)
        self.delta = 10.0 ** (-precision)
        self.key = key

    def __iter__(self) -> Iterator[SdePoint]:
        end = self.t0 + self.total + 1e-9 * self.delta
        state, j = self.x0, 0
        time = self.t0
        while time <= end:
            yield SdePoint(time, state)
            state = self.transition_sampler(
                jr.fold_in(self.key, j), state, self.delta
            )
            j += 1
            time = self.t0 + j * self.delta
