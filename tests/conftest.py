import os
from pathlib import Path

import pytest

_LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "bdd": pytest.mark.bdd,
    "integration": pytest.mark.integration,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="PROTEAN_ENV overlay to load the sandbox domain with",
    )


def pytest_sessionstart(session):
    """Initialize the sandbox domain once, before collection.

    Collaborators run in their deterministic modes and logs are rendered as
    plain console lines, whatever the developer's shell exports.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["SANDBOX_GATEWAY_MODE"] = "fake"
    os.environ.setdefault("SANDBOX_LOG_LEVEL", "WARNING")

    from sandbox.domain import sandbox
    from sandbox.utils.logging import configure_logging

    configure_logging()
    sandbox.init()
    sandbox.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Mark each test with the layer its directory belongs to."""
    for item in items:
        parts = Path(item.fspath).parts
        layer = next((name for name in _LAYER_MARKERS if name in parts), None)
        if layer is None:
            continue
        item.add_marker(_LAYER_MARKERS[layer])
        if layer == "integration" and not any(m.name == "fast" for m in item.iter_markers()):
            item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Wipe stored aggregates and recorded events after every test."""
    yield

    from protean import current_domain

    for provider in current_domain.providers.values():
        provider._data_reset()
    current_domain.event_store.store._data_reset()
