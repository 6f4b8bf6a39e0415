# uds_gateway/main.py
import logging
import sys
from typing import Any, Iterable
from urllib.parse import quote
from wsgiref.handlers import CGIHandler

import httpx

from uds_gateway import proxy
from uds_gateway.config import Settings, settings
from uds_gateway.errors import ConfigurationError, GatewayError, ResourceError
from uds_gateway.proxy import InboundRequest, ResponseCapture

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

_BAD_GATEWAY = b"Bad Gateway"


def request_uri(environ: dict[str, Any]) -> str:
    """Original path and query; REQUEST_URI survives rewrites, PATH_INFO may not."""
    uri = environ.get("REQUEST_URI")
    if uri:
        return uri
    # environ strings are wire bytes decoded as latin-1 (PEP 3333).
    path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
    uri = quote(path, encoding="latin-1") or "/"
    if environ.get("QUERY_STRING"):
        uri += "?" + environ["QUERY_STRING"]
    return uri


def request_headers(environ: dict[str, Any]) -> list[tuple[str, str]]:
    headers = [
        (key[5:].replace("_", "-").title(), value)
        for key, value in environ.items()
        if key.startswith("HTTP_")
    ]
    if environ.get("CONTENT_TYPE"):
        headers.append(("Content-Type", environ["CONTENT_TYPE"]))
    if environ.get("CONTENT_LENGTH"):
        headers.append(("Content-Length", environ["CONTENT_LENGTH"]))
    return headers


def declared_length(environ: dict[str, Any]) -> int | None:
    try:
        length = int(environ.get("CONTENT_LENGTH") or "")
    except ValueError:
        return None
    return length if length >= 0 else None


def inbound_request(environ: dict[str, Any], cfg) -> InboundRequest:
    if cfg.buffer_request_body:
        raise ConfigurationError(
            "preflight", "request body buffering is enabled, cannot stream"
        )
    body = environ.get("wsgi.input")
    if body is None:
        raise ResourceError("preflight", "no request body stream")
    return InboundRequest(
        method=environ.get("REQUEST_METHOD", "GET"),
        uri=request_uri(environ),
        headers=request_headers(environ),
        body=body,
        content_length=declared_length(environ),
    )


def make_app(cfg: Settings | None = None, transport: httpx.BaseTransport | None = None):
    """Build the WSGI application forwarding every request to the backend socket."""
    cfg = cfg or settings

    def application(environ, start_response) -> Iterable[bytes]:
        capture = ResponseCapture(start_response)
        try:
            proxy.forward(inbound_request(environ, cfg), capture, cfg, transport)
        except GatewayError as exc:
            capture.abort()
            if capture.headers_sent:
                logger.error("Response truncated, %s", exc)
                return []
            logger.error("Bad gateway, %s", exc)
            start_response(
                "502 Bad Gateway",
                [
                    ("Content-Type", "text/plain"),
                    ("Content-Length", str(len(_BAD_GATEWAY))),
                ],
            )
            return [_BAD_GATEWAY]
        return []

    return application


application = make_app()


def cgi_main(cfg: Settings | None = None) -> None:
    """Serve the current CGI request (environment + stdin) and exit."""
    if sys.stdin is None or sys.stdout is None:
        logger.error("Bad gateway, preflight: standard streams are not available")
        raise SystemExit(1)
    try:
        CGIHandler().run(make_app(cfg))
    finally:
        sys.stdin.buffer.close()
        sys.stdout.buffer.close()


if __name__ == "__main__":
    cgi_main()
