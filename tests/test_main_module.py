# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
from pompjax.__main__ import main


def test_main_prints_version(capsys):
    """Test that main prints the package name and version."""
    main()
    captured = capsys.readouterr()
    assert captured.out.startswith('pompjax ')
    assert len(captured.out.strip()) > len('pompjax ')
