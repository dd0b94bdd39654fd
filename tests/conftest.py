"""Shared fixtures: a fixed clock, a store and an engine writing under tmp_path."""
import pytest

from keytracker.engine import CooldownEngine
from keytracker.models.items import default_catalog
from keytracker.systems.backups import BackupRotator
from keytracker.systems.persistence import StateRepository
from keytracker.systems.state_store import CooldownStateStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, value=1_000_000.0):
        self.value = value

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


class Identity:
    """Mutable identity provider."""

    def __init__(self, value=42):
        self.value = value

    def __call__(self):
        return self.value


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def store(catalog):
    return CooldownStateStore(catalog)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeClock(0.0)


@pytest.fixture
def identity():
    return Identity()


@pytest.fixture
def storage_requests():
    return []


@pytest.fixture
def engine(tmp_path, clock, monotonic, identity, storage_requests):
    rotator = BackupRotator(tmp_path / "backups", interval=3600, retention=5, clock=clock, monotonic=monotonic)
    engine = CooldownEngine(
        StateRepository(tmp_path),
        rotator=rotator,
        identity_provider=identity,
        request_storage=lambda: storage_requests.append(True),
        clock=clock,
        monotonic=monotonic,
    )
    engine.load()
    return engine
