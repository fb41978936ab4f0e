# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Weight stabilisation and normalization utilities."""

import jax.numpy as jnp
from jaxtyping import Array, Float

from pompjax.types import Scalar


def stabilize(
    log_weights: Float[Array, ' num_particles'],
) -> tuple[Float[Array, ' num_particles'], Scalar]:
    r"""Exponentiate log weights relative to their maximum.

    With :math:`m = \max_i \ell_i`, returns :math:`w_i = e^{\ell_i - m}`
    and the log-likelihood increment

    .. math::

        \Delta\ell = m + \log\Bigl(\frac{1}{N}\sum_i w_i\Bigr),

    the log of the mean unnormalized weight.  If every log weight is
    ``-inf`` (or any is ``nan``) the increment is not finite.

    Args:
        log_weights: Unnormalized log importance weights.

    Returns:
        A tuple ``(weights, increment)``; the largest weight is one.
    """
    m = jnp.max(log_weights)
    weights = jnp.exp(log_weights - m)
    return weights, m + jnp.log(jnp.mean(weights))


def normalize(
    weights: Float[Array, ' num_particles'],
) -> Float[Array, ' num_particles']:
    """Normalize relative weights so they sum to one.

    Args:
        weights: Non-negative relative weights.

    Returns:
        Normalized weights that sum to one.
    """
    return weights / jnp.sum(weights)
