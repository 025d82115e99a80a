import pytest

from core.hub import NotificationHub
from core.signing import SignedSerializer


@pytest.fixture
def hub():
    return NotificationHub()


@pytest.fixture
def serializer():
    return SignedSerializer(bytes(range(32)))
