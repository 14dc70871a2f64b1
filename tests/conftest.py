"""
Shared test fixtures for the ExportHub test suite.
"""

import pytest

from exporthub import HubConfig, Injector, reset_injector, set_injector
from exporthub.members import clear_declaration_cache
from exporthub.testing import RecordingListener


# ============================================================================
# Injector Fixtures
# ============================================================================


@pytest.fixture
def injector():
    """A fresh injector with no bootstrapper, shut down after the test."""
    hub = Injector(HubConfig())
    yield hub
    hub.shutdown()


@pytest.fixture
def events(injector):
    """Recording listener attached to the ``injector`` fixture."""
    listener = RecordingListener()
    injector.diagnostics.add_listener(listener)
    return listener


@pytest.fixture
def default_injector():
    """Install a fresh injector as the process-wide default."""
    hub = Injector(HubConfig())
    previous = set_injector(hub)
    yield hub
    set_injector(previous)
    hub.shutdown()


@pytest.fixture(autouse=True)
def _isolate_global_state():
    yield
    clear_declaration_cache()
    reset_injector()
