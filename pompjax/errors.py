# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Exceptions raised by pompjax.

Configuration errors (:class:`IncompatibleParameterError`,
:class:`KernelNotImplementedError`) are raised when a kernel or model is
built.  Step-level errors (:class:`NonMonotonicTimeError`,
:class:`DegenerateWeightsError`) are raised by the filter drivers and
carry the index of the failing observation.
"""

from typing import Optional


class FilterError(Exception):
    """Base class for all pompjax errors."""


class IncompatibleParameterError(FilterError, TypeError):
    """A kernel or model was given a parameter of the wrong kind."""

    def __init__(self, component: str, expected: type, received: object):
        self.component = component
        self.expected = expected
        self.received = received
        super().__init__(
            f'Incorrect parameters supplied to {component}: expected '
            f'{expected.__name__}, received {type(received).__name__}'
        )


class KernelNotImplementedError(FilterError, NotImplementedError):
    """A declared SDE kernel has no implementation."""


class NonMonotonicTimeError(FilterError, ValueError):
    """An observation is earlier than the current filter time."""

    def __init__(
        self,
        index: Optional[int],
        time: float,
        previous_time: float,
    ):
        self.index = index
        self.time = time
        self.previous_time = previous_time
        where = '' if index is None else f' at index {index}'
        super().__init__(
            f'Observation{where} has time {time} earlier than the '
            f'current filter time {previous_time}'
        )


class DegenerateWeightsError(FilterError, ArithmeticError):
    """Every particle weight is zero or non-finite after a step."""

    def __init__(self, index: Optional[int], time: float):
        self.index = index
        self.time = time
        where = '' if index is None else f' at index {index}'
        super().__init__(
            f'Degenerate particle weights for observation{where} '
            f'(t={time}): the log-likelihood increment is not finite'
        )
