# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Tagged parameter variants for SDE kernels and models.

Every parameter is a :class:`~typing.NamedTuple`, so it is a JAX PyTree
and its array fields may be traced, while the variant itself (the tag)
stays static.  Kernels and model builders dispatch on the variant with
``isinstance`` and reject any other kind with
:class:`~pompjax.errors.IncompatibleParameterError`.
"""

from typing import NamedTuple, Optional, Union

from jaxtyping import Array, Float

# --- SDE parameters ---------------------------------------------------------


class StepConstantParameter(NamedTuple):
    r"""Deterministic drift :math:`x' = x + a\,\Delta t`.

    Attributes:
        drift: Per-dimension drift :math:`a`, shape ``(state_dim,)``.
    """

    drift: Float[Array, ' state_dim']


class BrownianParameter(NamedTuple):
    r"""Generalised Brownian motion :math:`dx = \mu\,dt + \sigma\,dW`.

    Attributes:
        mu: Per-dimension drift, shape ``(state_dim,)``.
        sigma: Per-dimension diffusion standard deviation (the diagonal
            of the diffusion matrix), shape ``(state_dim,)``.
    """

    mu: Float[Array, ' state_dim']
    sigma: Float[Array, ' state_dim']


class OrnsteinParameter(NamedTuple):
    r"""Ornstein-Uhlenbeck process :math:`dx = \alpha(\theta - x)\,dt +
    \sigma\,dW`.

    Attributes:
        theta: Mean-reversion level, shape ``(state_dim,)``.
        alpha: Mean-reversion rate (positive), shape ``(state_dim,)``.
        sigma: Volatility, shape ``(state_dim,)``.
    """

    theta: Float[Array, ' state_dim']
    alpha: Float[Array, ' state_dim']
    sigma: Float[Array, ' state_dim']


class CIRParameter(NamedTuple):
    r"""Mean-reverting square-root process :math:`dx = \alpha(\theta - x)\,dt
    + \sigma\sqrt{x}\,dW`."""

    theta: Float[Array, ' state_dim']
    alpha: Float[Array, ' state_dim']
    sigma: Float[Array, ' state_dim']


SdeParameter = Union[
    StepConstantParameter,
    BrownianParameter,
    OrnsteinParameter,
    CIRParameter,
]


# --- Model parameters -------------------------------------------------------


class LeafParameter(NamedTuple):
    r"""Parameters of a single (non-composed) model.

    Attributes:
        initial_mean: Mean of the initial state, shape ``(state_dim,)``.
        initial_scale: Standard deviation of the initial state,
            shape ``(state_dim,)``.
        sde: Parameters of the latent-state kernel.
        scale: Observation standard deviation, only used by observation
            models with a scale (Gaussian).
    """

    initial_mean: Float[Array, ' state_dim']
    initial_scale: Float[Array, ' state_dim']
    sde: Optional[SdeParameter]
    scale: Optional[float] = None


class BranchParameter(NamedTuple):
    """Parameters of a composed model, one per side of the composition."""

    left: 'Parameters'
    right: 'Parameters'


Parameters = Union[LeafParameter, BranchParameter]
