# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for the package-level API."""

import logging
from importlib.metadata import PackageNotFoundError
from unittest.mock import patch

from pompjax import __version__


def test_version_is_accessible():
    """Test that __version__ is a non-empty string."""
    assert isinstance(__version__, str)
    assert __version__ != ''


def test_public_api_names_resolve(package):
    """Every name in __all__ is an attribute of the package."""
    for name in package.__all__:
        assert hasattr(package, name), name


def test_public_api_covers_filter_modes(package):
    """The execution modes and error types are exported."""
    expected = {
        'initialize',
        'step',
        'step_with_forecast',
        'marginal_log_likelihood',
        'filter_history',
        'filter_stream',
        'forecast_stream',
        'filter_summaries',
        'cox_advance',
        'FilterError',
        'IncompatibleParameterError',
        'KernelNotImplementedError',
        'NonMonotonicTimeError',
        'DegenerateWeightsError',
    }
    assert expected <= set(package.__all__)


def test_library_logger_has_null_handler(package):
    """Importing the package does not configure logging output."""
    handlers = logging.getLogger('pompjax').handlers
    assert any(isinstance(h, logging.NullHandler) for h in handlers)


def test_version_fallback_when_package_not_found():
    """Test that __version__ falls back to '0.0.0' when not installed."""
    import importlib

    import pompjax

    with patch(
        'importlib.metadata.version',
        side_effect=PackageNotFoundError,
    ):
        importlib.reload(pompjax)
        assert pompjax.__version__ == '0.0.0'

    # Restore the real version
    importlib.reload(pompjax)
