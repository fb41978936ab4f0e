# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Type aliases shared across pompjax.

Array aliases follow Dynamax (``dynamax.types``).
"""

from typing import Any, Union

from jaxtyping import Array, Float, PRNGKeyArray

PRNGKeyT = PRNGKeyArray
"""JAX PRNG key (handles both old and new JAX key formats)."""

Scalar = Union[float, Float[Array, '']]
"""Python float or scalar JAX array with float dtype."""

State = Any
"""Latent state of one particle.

A 1-D float array for a single model, or a ``(left, right)`` pair of
states for a composed model.  Particle clouds are the same PyTree with a
leading ``num_particles`` axis on every leaf.
"""
