# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Command-line entry point: ``python -m pompjax``."""

from pompjax import __version__


def main() -> None:
    """Print the installed pompjax version."""
    print(f'pompjax {__version__}')


if __name__ == '__main__':
    main()
