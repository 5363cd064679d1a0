import pytest
from protean.integrations.pytest import DomainFixture
from sandbox.config import reset_config
from sandbox.directory import reset_directory, set_directory
from sandbox.directory.memory_adapter import InMemoryDirectory
from sandbox.gateway import reset_gateway, set_gateway
from sandbox.gateway.fake_adapter import FakeGateway
from sandbox.notifier import reset_notifier, set_notifier
from sandbox.notifier.memory_adapter import InMemoryNotifier


@pytest.fixture(scope="session")
def sandbox_bed():
    from sandbox.domain import sandbox

    bed = DomainFixture(sandbox)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(sandbox_bed):
    with sandbox_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def collaborators():
    """Fresh fake gateway, recording notifier and directory for every test."""
    reset_config()
    gateway = FakeGateway()
    notifier = InMemoryNotifier()
    directory = InMemoryDirectory()
    set_gateway(gateway)
    set_notifier(notifier)
    set_directory(directory)
    yield {"gateway": gateway, "notifier": notifier, "directory": directory}
    reset_gateway()
    reset_notifier()
    reset_directory()
    reset_config()


@pytest.fixture()
def gateway(collaborators) -> FakeGateway:
    return collaborators["gateway"]


@pytest.fixture()
def notifier(collaborators) -> InMemoryNotifier:
    return collaborators["notifier"]


@pytest.fixture()
def directory(collaborators) -> InMemoryDirectory:
    return collaborators["directory"]


class UnreachableGateway(FakeGateway):
    """Records calls like FakeGateway, then raises as a dropped connection would.

    Set ``reachable`` to let calls through again.
    """

    def __init__(self) -> None:
        super().__init__()
        self.reachable = False

    def create_charge(self, amount, currency, reference, metadata=None):
        result = super().create_charge(amount, currency, reference, metadata)
        if self.reachable:
            return result
        raise ConnectionError("gateway unreachable")

    def create_refund(self, gateway_transaction_id, amount, reason):
        result = super().create_refund(gateway_transaction_id, amount, reason)
        if self.reachable:
            return result
        raise ConnectionError("gateway unreachable")


@pytest.fixture()
def unreachable_gateway(collaborators) -> UnreachableGateway:
    """Swap the gateway for one whose every call raises."""
    gateway = UnreachableGateway()
    set_gateway(gateway)
    return gateway
