# uds_gateway/proxy.py
import enum
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, BinaryIO, Callable, Iterator

import httpx

from uds_gateway.config import settings
from uds_gateway.errors import (
    BodyReadError,
    OptionError,
    ResourceError,
    ResponseWriteError,
    TransportError,
    UploadLengthError,
    UpstreamProtocolError,
)
from uds_gateway.headers import (
    HOP_BY_HOP_HEADERS,
    connection_tokens,
    request_removal_set,
    split_header_line,
    strip_hop_by_hop,
)

logger = logging.getLogger(__name__)

StartResponse = Callable[[str, list[tuple[str, str]]], Callable[[bytes], Any]]


@dataclass
class InboundRequest:
    method: str
    uri: str                         # path and query, as the client sent it
    headers: list[tuple[str, str]]
    body: BinaryIO
    content_length: int | None = None


class InboundBody:
    """Reads the inbound body without ever reading past a declared length."""

    def __init__(self, stream: BinaryIO, limit: int | None = None) -> None:
        self._stream = stream
        self._remaining = limit

    def read(self, size: int) -> bytes:
        if self._remaining is not None:
            size = min(size, self._remaining)
        if size <= 0:
            return b""
        try:
            data = self._stream.read(size)
        except (OSError, ValueError) as exc:
            raise BodyReadError("read_body", str(exc)) from exc
        if data is None:
            raise BodyReadError("read_body", "request body stream is non-blocking")
        if self._remaining is not None:
            self._remaining -= len(data)
        return data


class Stage(enum.Enum):
    AWAITING_HEADERS = "awaiting_headers"
    HEADERS_COMPLETE = "headers_complete"
    STREAMING_BODY = "streaming_body"
    DONE = "done"


def wsgi_status(status_line: str) -> str:
    """Turn ``HTTP/1.1 404 Not Found`` into the WSGI form ``404 Not Found``."""
    parts = status_line.split(None, 2)
    if len(parts) < 2 or len(parts[1]) != 3 or not parts[1].isdigit():
        raise UpstreamProtocolError("flush", f"malformed status line {status_line!r}")
    code = parts[1]
    if len(parts) == 3:
        return f"{code} {parts[2]}"
    try:
        return f"{code} {HTTPStatus(int(code)).phrase}"
    except ValueError:
        return f"{code} Unknown"


class ResponseCapture:
    """Collects the backend response and relays it through ``start_response``.

    The transport feeds header lines first (one per call, status lines
    included), then body chunks. Status and headers leave exactly once:
    just before the first body byte, or from :meth:`finish` when the body
    is empty. Hop-by-hop headers, including any named by the backend's own
    ``Connection`` header, are dropped at that point.
    """

    def __init__(self, start_response: StartResponse) -> None:
        self.stage = Stage.AWAITING_HEADERS
        self.status_line: str | None = None
        self.header_lines: list[str] = []
        self._remove: set[str] | frozenset[str] = set(HOP_BY_HOP_HEADERS)
        self._start_response = start_response
        self._write: Callable[[bytes], Any] | None = None

    @property
    def headers_sent(self) -> bool:
        return self._write is not None

    def header_line(self, line: str) -> None:
        if self.stage is not Stage.AWAITING_HEADERS:
            raise UpstreamProtocolError("capture", "header line after the body started")
        line = line.rstrip("\r\n")
        if not line:
            return
        lower = line.lower()
        if lower.startswith("http/"):
            # Only the last status line counts (interim 1xx responses come first).
            self.status_line = line
            return
        self.header_lines.append(line)
        name, value = split_header_line(lower)
        if name == "connection":
            self._remove |= connection_tokens(value)

    def flush(self) -> None:
        if self.stage is not Stage.AWAITING_HEADERS:
            return
        if self.status_line is None:
            raise UpstreamProtocolError("flush", "backend response has no status line")
        status = wsgi_status(self.status_line)
        self._remove = frozenset(self._remove)
        headers = [
            (name, value)
            for name, value in map(split_header_line, self.header_lines)
            if name.lower() not in self._remove
        ]
        self._write = self._start_response(status, headers)
        self.stage = Stage.HEADERS_COMPLETE

    def body_chunk(self, data: bytes) -> None:
        if self.stage is Stage.DONE:
            raise UpstreamProtocolError("capture", "body chunk after the response ended")
        self.flush()
        self.stage = Stage.STREAMING_BODY
        try:
            self._write(data)
        except OSError as exc:
            raise ResponseWriteError("write_response", str(exc)) from exc

    def finish(self) -> None:
        self.flush()
        self.stage = Stage.DONE

    def abort(self) -> None:
        self.stage = Stage.DONE


def upload_stream(
    body: InboundBody, preread: bytes, chunk_size: int, expected: int | None = None
) -> Iterator[bytes]:
    """Yield the whole inbound body, starting with the already-read byte(s)."""
    sent = 0
    data = preread + body.read(chunk_size - len(preread))
    while data:
        sent += len(data)
        yield data
        data = body.read(chunk_size)
    if expected is not None and sent != expected:
        raise UploadLengthError(
            "upload", f"request body ended after {sent} of {expected} bytes"
        )


def build_request(request: InboundRequest, cfg=None) -> httpx.Request:
    """Translate the inbound request into the outbound one.

    Reads one byte from the body to learn whether there is a body at all;
    if there is, the outbound request streams it.
    """
    cfg = cfg or settings
    remove = request_removal_set(request.headers)
    headers = strip_hop_by_hop(request.headers, remove)

    body = InboundBody(request.body, request.content_length)
    preread = body.read(1)
    content = None
    if preread:
        # httpx never waits for 100-continue; the backend must not either.
        headers = [(k, v) for k, v in headers if k.lower() != "expect"]
        content = upload_stream(
            body, preread, cfg.upload_chunk_size, request.content_length
        )
    elif request.content_length:
        raise UploadLengthError(
            "upload", f"request body empty, {request.content_length} bytes declared"
        )

    try:
        return httpx.Request(
            method=request.method,
            url=f"http://{cfg.upstream_host}{request.uri}",
            headers=[(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers],
            content=content,
        )
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise OptionError("build_request", str(exc)) from exc


def open_client(cfg=None, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    cfg = cfg or settings
    try:
        if transport is None:
            transport = httpx.HTTPTransport(uds=cfg.service_sock)
        # trust_env=False: CGI puts a client-controlled HTTP_PROXY in the env.
        return httpx.Client(
            transport=transport, timeout=cfg.proxy_timeout, trust_env=False
        )
    except (OSError, TypeError, ValueError) as exc:
        raise ResourceError("open_client", str(exc)) from exc


def transfer(client: httpx.Client, outbound: httpx.Request, capture: ResponseCapture) -> None:
    """Send ``outbound`` and stream the response into ``capture``."""
    try:
        response = client.send(outbound, stream=True)
    except httpx.HTTPError as exc:
        raise TransportError("transfer", str(exc) or type(exc).__name__) from exc
    try:
        if response.status_code >= 500:
            logger.error(
                "Upstream error %s for %s %s",
                response.status_code, outbound.method, outbound.url.raw_path.decode("ascii"),
            )
        capture.header_line(
            f"{response.http_version} {response.status_code} {response.reason_phrase}"
        )
        for name, value in response.headers.raw:
            capture.header_line(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
        for chunk in response.iter_raw():
            capture.body_chunk(chunk)
    except httpx.HTTPError as exc:
        raise TransportError("transfer", str(exc) or type(exc).__name__) from exc
    finally:
        response.close()


def forward(
    request: InboundRequest,
    capture: ResponseCapture,
    cfg=None,
    transport: httpx.BaseTransport | None = None,
) -> None:
    cfg = cfg or settings
    outbound = build_request(request, cfg)
    logger.debug("Forwarding %s %s to %s", request.method, request.uri, cfg.service_sock)

    client = open_client(cfg, transport)
    try:
        transfer(client, outbound, capture)
        capture.finish()
    finally:
        client.close()
