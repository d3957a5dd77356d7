"""Pytest configuration and fixtures."""

import os
import sys
import pytest

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from fakes import FakeDeviceManager, FakePeerConnection, FakeSignaling


def pytest_configure(config):
    """Configure pytest."""
    os.environ['VOICE_LOG_LEVEL'] = 'WARNING'
    # Register asyncio marker
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def voice_config():
    """Config with short status delays and no environment influence."""
    from voice_edit.config import VoiceConfig
    return VoiceConfig(
        relay_url="http://relay.test/api/rtc-connect",
        edit_url="http://edit.test/api/voice-edit",
        stun_urls=["stun:stun.test:3478"],
        tool_complete_delay=0.05,
        error_delay=0.08,
    )


@pytest.fixture
def peer():
    return FakePeerConnection()


@pytest.fixture
def devices():
    return FakeDeviceManager()


@pytest.fixture
def signaling():
    return FakeSignaling()
