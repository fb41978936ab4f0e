# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Resampling of weighted particle clouds.

Index-level schemes take ``(rng_key, weights, num_samples)`` with
weights summing to one and return ancestor indices, which keeps them
interchangeable with ``blackjax.smc.resampling``.  Every scheme except
:func:`residual` draws ordered points in ``[0, 1)`` and locates them
with :func:`invecdf`.  :func:`resample` applies a scheme to a particle
PyTree carrying relative weights, as stored in
:class:`~pompjax.containers.FilterState`.
"""

from collections.abc import Callable
from typing import Union

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float, Int

from pompjax.types import PRNGKeyT, Scalar, State
from pompjax.weights import normalize

ResamplingFn = Callable[..., Int[Array, ' num_samples']]

# --- Empirical CDF inversion ------------------------------------------------


def invecdf(
    cumulative_weights: Float[Array, ' num_particles'],
    p: Union[Scalar, Float[Array, ' num_samples']],
) -> Int[Array, '...']:
    """Invert an empirical CDF.

    Args:
        cumulative_weights: Non-decreasing cumulative normalized weights.
        p: Query point(s) in [0, 1).

    Returns:
        Index of the first cumulative weight strictly greater than *p*,
        clipped to the last particle to absorb round-off in the final
        cumulative weight.
    """
    idx = jnp.searchsorted(cumulative_weights, p, side='right')
    return jnp.clip(idx, 0, cumulative_weights.shape[0] - 1)


# --- Quantile points --------------------------------------------------------


def stratified_points(
    rng_key: PRNGKeyT,
    num_samples: int,
) -> Float[Array, ' num_samples']:
    """Ordered points ``u_k = (k - 1 + U_k) / n`` with independent ``U_k``."""
    u = jax.random.uniform(rng_key, (num_samples,))
    return (jnp.arange(num_samples, dtype=u.dtype) + u) / num_samples


def systematic_points(
    rng_key: PRNGKeyT,
    num_samples: int,
) -> Float[Array, ' num_samples']:
    """Ordered points ``u_k = (k - 1 + U) / n`` sharing one ``U``."""
    u = jax.random.uniform(rng_key, ())
    return (jnp.arange(num_samples, dtype=u.dtype) + u) / num_samples


# --- Index-level schemes ----------------------------------------------------


def systematic(
    rng_key: PRNGKeyT,
    weights: Float[Array, ' num_particles'],
    num_samples: int,
) -> Int[Array, ' num_samples']:
    """Systematic resampling, one uniform shared by all strata.

    The default scheme of the filter drivers.  Each particle is copied
    either ``floor(n w_i)`` or ``ceil(n w_i)`` times.

    Args:
        rng_key: Key for the single uniform draw.
        weights: Normalized weights.
        num_samples: Number of ancestors *n*.

    Returns:
        Ancestor indices in non-decreasing order.
    """
    points = systematic_points(rng_key, num_samples)
    return invecdf(jnp.cumsum(weights), points)


def stratified(
    rng_key: PRNGKeyT,
    weights: Float[Array, ' num_particles'],
    num_samples: int,
) -> Int[Array, ' num_samples']:
    """Stratified resampling, one independent uniform per stratum."""
    points = stratified_points(rng_key, num_samples)
    return invecdf(jnp.cumsum(weights), points)


def multinomial(
    rng_key: PRNGKeyT,
    weights: Float[Array, ' num_particles'],
    num_samples: int,
) -> Int[Array, ' num_samples']:
    """Multinomial resampling: *n* independent categorical draws.

    The draws are located through sorted uniforms, so the indices come
    back in non-decreasing order.
    """
    points = _sorted_uniforms(rng_key, num_samples)
    return invecdf(jnp.cumsum(weights), points)


def residual(
    rng_key: PRNGKeyT,
    weights: Float[Array, ' num_particles'],
    num_samples: int,
    remainder_fn: ResamplingFn = multinomial,
) -> Int[Array, ' num_samples']:
    """Residual resampling.

    Particle *i* is first copied ``floor(n w_i)`` times.  The ``m`` slots
    left over are filled by *remainder_fn* applied to the residual
    weights ``n w_i - floor(n w_i)``, renormalized by ``m``.

    Args:
        rng_key: JAX PRNG key.
        weights: Normalized weights.
        num_samples: Number of ancestors *n*.
        remainder_fn: Index-level scheme for the leftover slots.

    Returns:
        Ancestor indices; the deterministic copies come first.
    """
    k_remainder, k_shuffle = jax.random.split(rng_key)
    num_particles = weights.shape[0]
    expected = num_samples * weights
    copies = jnp.floor(expected).astype(jnp.int32)
    num_copies = jnp.sum(copies)
    num_left = num_samples - num_copies

    leftover = remainder_fn(
        k_remainder, (expected - copies) / num_left, num_samples
    )
    leftover = jax.random.permutation(k_shuffle, leftover)

    # The extra index num_particles soaks up the num_left tail slots of the
    # repeat; those slots are replaced by leftover draws in the where below.
    counts = jnp.concatenate([copies, jnp.array([num_left])], 0)
    deterministic = jnp.repeat(
        jnp.arange(num_particles + 1),
        counts,
        total_repeat_length=num_samples,
    )
    slot = jnp.arange(num_samples)
    return jnp.where(slot >= num_copies, leftover, deterministic)


RESAMPLING_SCHEMES = {
    'multinomial': multinomial,
    'residual': residual,
    'stratified': stratified,
    'systematic': systematic,
}


def get_resampler(scheme: Union[str, ResamplingFn]) -> ResamplingFn:
    """Look up a resampling scheme by name.

    Args:
        scheme: One of ``'multinomial'``, ``'residual'``,
            ``'stratified'``, ``'systematic'``, or a resampling function,
            which is returned unchanged.

    Returns:
        The resampling function.

    Raises:
        ValueError: If *scheme* is an unknown name.
    """
    if callable(scheme):
        return scheme
    try:
        return RESAMPLING_SCHEMES[scheme]
    except KeyError:
        raise ValueError(
            f'Unknown resampling scheme {scheme!r}, expected one of '
            f'{sorted(RESAMPLING_SCHEMES)}'
        ) from None


def resample(
    rng_key: PRNGKeyT,
    particles: State,
    weights: Float[Array, ' num_particles'],
    resampling_fn: ResamplingFn = systematic,
) -> tuple[State, Int[Array, ' num_particles']]:
    """Resample a weighted particle cloud into an unweighted one.

    Args:
        rng_key: JAX PRNG key.
        particles: Particle PyTree, leaves with a leading
            ``num_particles`` axis.
        weights: Relative (unnormalized) particle weights.
        resampling_fn: Index-level resampling scheme.

    Returns:
        A tuple ``(resampled, ancestors)`` with the same number of
        particles as the input.
    """
    num_particles = weights.shape[0]
    ancestors = resampling_fn(rng_key, normalize(weights), num_particles)
    resampled = jax.tree_util.tree_map(lambda x: x[ancestors], particles)
    return resampled, ancestors


# --- Internal helpers -------------------------------------------------------


def _sorted_uniforms(
    rng_key: PRNGKeyT,
    n: int,
) -> Float[Array, ' n']:
    """Generate *n* sorted uniform random variates in [0, 1).

    Uses the exponential spacings trick (credit: Nicolas Chopin).
    """
    # Normalized partial sums of n + 1 exponentials are ordered uniforms.
    us = jax.random.uniform(rng_key, (n + 1,))
    z = jnp.cumsum(-jnp.log(us))
    return z[:-1] / z[-1]
