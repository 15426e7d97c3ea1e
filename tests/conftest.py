import pytest

from tests.helpers import FakeLifiService, FakeWallet, RecordingNotifier


@pytest.fixture
def lifi() -> FakeLifiService:
    return FakeLifiService()


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
