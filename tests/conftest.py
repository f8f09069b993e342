"""pytest configuration for paychat tests."""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to path so tests can import paychat
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Fixed key so encrypted values are stable across a test session
TEST_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
os.environ["PAYCHAT_ENCRYPTION_KEY"] = TEST_ENCRYPTION_KEY

# Tests use the in-memory store unless they opt into Redis explicitly
os.environ["REDIS_ENABLED"] = "false"

from paychat.crypto import Cipher  # noqa: E402
from paychat.store import KeyValueStore  # noqa: E402


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cipher() -> Cipher:
    return Cipher.from_hex(TEST_ENCRYPTION_KEY)


@pytest.fixture
def store(cipher: Cipher, clock: FakeClock) -> KeyValueStore:
    """In-memory store whose expiry follows the fake clock."""
    return KeyValueStore(redis_client=None, cipher=cipher, clock=clock)


@pytest.fixture
def wall_clock() -> FakeClock:
    """Clock for confirmation expiry and rate windows, independent of the store."""
    return FakeClock()
