# uds_gateway/test_config.py
from uds_gateway.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("SERVICE_SOCK", "UPSTREAM_HOST", "BUFFER_REQUEST_BODY", "PROXY_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        cfg = Settings(_env_file=None)
        assert cfg.upstream_host == "unix_socket"
        assert cfg.buffer_request_body is False
        assert cfg.proxy_timeout is None
        assert cfg.upload_chunk_size == 64 * 1024

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SERVICE_SOCK", "/srv/app/socket")
        monkeypatch.setenv("buffer_request_body", "true")
        monkeypatch.setenv("PROXY_TIMEOUT", "2.5")
        cfg = Settings(_env_file=None)
        assert cfg.service_sock == "/srv/app/socket"
        assert cfg.buffer_request_body is True
        assert cfg.proxy_timeout == 2.5

    def test_explicit_socket_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("SERVICE_SOCK", "/from/env")
        assert Settings(_env_file=None, service_sock="/baked/in").service_sock == "/baked/in"
