import pytest

from codeshui_gateway.config_store import ConfigStore, MemoryStorage
from codeshui_gateway.transport import HostContext

from .fakes import ImmediateExecutor


@pytest.fixture
def executor():
    return ImmediateExecutor()


@pytest.fixture
def remote_host():
    return HostContext(is_local_host=False, relay_url="https://relay.example.com")


@pytest.fixture
def local_host():
    return HostContext(is_local_host=True, relay_url="http://localhost:3001")


@pytest.fixture
def make_store(executor, remote_host):
    def _make(storage=None, host=None, session=None, **kwargs):
        return ConfigStore(
            storage=storage if storage is not None else MemoryStorage(),
            host=host or remote_host,
            session=session,
            executor=executor,
            **kwargs,
        )

    return _make
