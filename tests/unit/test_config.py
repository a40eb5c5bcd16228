"""
Unit tests for server configuration.
"""

import pytest

from httpkit.config import ServerConfig, parse_address


class TestParseAddress:

    @pytest.mark.parametrize("address, expected", [
        ("127.0.0.1:8080", ("127.0.0.1", 8080)),
        ("localhost:0", ("localhost", 0)),
        ("[::1]:6969", ("::1", 6969)),
        (":8080", ("0.0.0.0", 8080)),
        ("  0.0.0.0:80  ", ("0.0.0.0", 80)),
    ])
    def test_valid(self, address, expected):
        assert parse_address(address) == expected

    @pytest.mark.parametrize("address", [
        "127.0.0.1",
        "127.0.0.1:",
        "127.0.0.1:http",
        "127.0.0.1:65536",
        "::1:8080",
        "[::1]8080",
        "[::1",
    ])
    def test_invalid(self, address):
        with pytest.raises(ValueError):
            parse_address(address)


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.bind_address == "127.0.0.1:6969"
        assert config.workers == 4
        assert config.queue_size == 64
        assert config.timeout == 30.0
        config.validate()

    def test_bind_address_brackets_ipv6(self):
        assert ServerConfig(host="::1", port=80).bind_address == "[::1]:80"

    def test_from_address(self):
        config = ServerConfig.from_address("0.0.0.0:8080", workers=8)

        assert (config.host, config.port, config.workers) == ("0.0.0.0", 8080, 8)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTPKIT_BIND", "0.0.0.0:9000")
        monkeypatch.setenv("HTTPKIT_WORKERS", "2")
        monkeypatch.setenv("HTTPKIT_QUEUE_SIZE", "10")
        monkeypatch.setenv("HTTPKIT_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTPKIT_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.workers == 2
        assert config.queue_size == 10
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("HTTPKIT_BIND", "HTTPKIT_WORKERS", "HTTPKIT_QUEUE_SIZE",
                     "HTTPKIT_TIMEOUT", "HTTPKIT_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"backlog": 0},
        {"workers": 0},
        {"queue_size": 0},
        {"timeout": 0},
        {"poll_interval": 0},
        {"max_line_size": 10},
        {"max_headers": 0},
        {"max_body_size": -1},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_timeout_none_is_valid(self):
        ServerConfig(timeout=None).validate()
