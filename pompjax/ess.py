# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Effective sample size (ESS) computation.

:func:`ess` works on linear weights, which is how
:class:`~pompjax.containers.FilterState` stores them.  For log weights,
:func:`log_ess` is re-exported from Blackjax (``blackjax.smc.ess``).
"""

import jax.numpy as jnp
from blackjax.smc.ess import log_ess
from jaxtyping import Array, Float

from pompjax.containers import FilterState
from pompjax.types import Scalar
from pompjax.weights import normalize

__all__ = ['effective_sample_size', 'ess', 'log_ess']


def ess(weights: Float[Array, ' num_particles']) -> Scalar:
    r"""Compute the effective sample size of normalized weights.

    .. math::

        \mathrm{ESS} = \frac{1}{\sum_i w_i^2}

    The value lies in :math:`[1, N]` only if *weights* sum to one; the
    formula is applied as-is to whatever is passed, so normalize first
    (see :func:`effective_sample_size`).

    Args:
        weights: Normalized importance weights.

    Returns:
        The effective sample size (scalar).
    """
    return 1.0 / jnp.sum(weights**2)


def effective_sample_size(state: FilterState) -> Scalar:
    """ESS of a filter state's particle weights.

    Diagnostic only; the filter resamples at every step regardless.
    """
    return ess(normalize(state.weights))
