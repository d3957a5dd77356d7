"""Tests for configuration module."""

import logging
import os
import pytest
import sys

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_edit.config import VoiceConfig, get_config, get_logger, reset_config, setup_logging


class TestVoiceConfig:
    """Test VoiceConfig class."""

    def setup_method(self):
        """Reset config before each test."""
        reset_config()
        # Clear relevant env vars
        for key in list(os.environ.keys()):
            if key.startswith('VOICE_') and key != 'VOICE_LOG_LEVEL':
                del os.environ[key]
        os.environ.pop('OPENAI_API_KEY', None)

    def test_default_values(self):
        """Test default configuration values."""
        config = VoiceConfig()

        assert config.control_channel == "response"
        assert config.edit_provider == "fal"
        assert config.signaling_timeout == 30.0
        assert config.tool_timeout == 300.0
        assert config.tool_complete_delay == 2.0
        assert config.error_delay == 3.0
        assert config.modalities == ["text", "audio"]
        assert config.default_width == 1024
        assert config.default_height == 768
        assert config.openai_api_key is None
        assert config.metrics_port == 0

    def test_env_var_override(self):
        """Test environment variable overrides."""
        os.environ['VOICE_RELAY_URL'] = 'http://relay.example.com/api/rtc-connect'
        os.environ['VOICE_SIGNALING_TIMEOUT'] = '5'
        os.environ['VOICE_RELAY_PORT'] = '9000'

        config = VoiceConfig()

        assert config.relay_url == 'http://relay.example.com/api/rtc-connect'
        assert config.signaling_timeout == 5.0
        assert config.relay_port == 9000

    def test_stun_urls_from_env(self):
        """Test STUN URL collection from env vars."""
        os.environ['VOICE_STUN_URLS'] = (
            'stun:a.example.com:3478, # stun:commented.example.com,stun:b.example.com:3478,'
        )

        config = VoiceConfig()

        assert config.stun_urls == ['stun:a.example.com:3478', 'stun:b.example.com:3478']
        assert config.ice_servers == config.stun_urls
        assert config.ice_servers is not config.stun_urls

    def test_unknown_provider_falls_back(self):
        """Test that an unknown edit provider falls back to fal."""
        os.environ['VOICE_EDIT_PROVIDER'] = 'midjourney'

        config = VoiceConfig()

        assert config.edit_provider == 'fal'

    def test_modelscope_provider_kept(self):
        config = VoiceConfig(edit_provider='modelscope')
        assert config.edit_provider == 'modelscope'

    def test_empty_api_key_is_none(self):
        os.environ['OPENAI_API_KEY'] = ''
        assert VoiceConfig().openai_api_key is None

    def test_singleton_get_config(self):
        """Test singleton pattern of get_config."""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_reset_config(self):
        """Test config reset."""
        config1 = get_config()
        reset_config()
        config2 = get_config()

        assert config1 is not config2


class TestLogging:
    """Test logging setup."""

    def teardown_method(self):
        setup_logging(level="WARNING")

    def test_setup_logging_level(self):
        logger = setup_logging(level="debug")

        assert logger.name == "voice"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logging.getLogger("aiortc").level == logging.DEBUG

    def test_libraries_quiet_above_debug(self):
        setup_logging(level="INFO")

        assert logging.getLogger("aioice").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging(level="LOUD").level == logging.INFO

    def test_setup_replaces_handler(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger("voice").handlers) == 1

    def test_get_logger_prefixes_name(self):
        assert get_logger("media").name == "voice.media"
        assert get_logger("voice.protocol").name == "voice.protocol"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
