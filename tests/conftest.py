"""Shared pytest fixtures for wirekit tests."""

import pytest

from wirekit.registry import Registry


@pytest.fixture()
def registry() -> Registry:
    """Empty registry with the default (private) mixin visibility."""
    return Registry()
