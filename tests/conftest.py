"""Shared fixtures for the ScriptIt tests."""

import os

import pytest
import structlog


@pytest.fixture(autouse=True)
def clean_test_environment():
    """Remove SCRIPTIT_TEST_* variables that prompting wrote to os.environ."""
    yield
    for name in [name for name in os.environ if name.startswith("SCRIPTIT_TEST_")]:
        del os.environ[name]


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
