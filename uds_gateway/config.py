# uds_gateway/config.py
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend — a local HTTP server bound to a unix domain socket.
    service_sock: str = "/run/service/socket"   # SERVICE_SOCK
    # Host used in the synthesized URL; routing is by socket path, not DNS.
    upstream_host: str = "unix_socket"          # UPSTREAM_HOST

    # Set when the hosting environment reads the whole request body before
    # the gateway runs. Streaming is impossible then, so every request fails.
    buffer_request_body: bool = False           # BUFFER_REQUEST_BODY

    upload_chunk_size: int = 64 * 1024          # UPLOAD_CHUNK_SIZE (bytes)
    proxy_timeout: float | None = None          # PROXY_TIMEOUT (unset = wait forever)

    log_level: str = "INFO"                     # LOG_LEVEL

    model_config = {"env_file": ".env", "case_sensitive": False}


settings = Settings()
