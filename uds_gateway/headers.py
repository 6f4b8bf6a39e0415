# uds_gateway/headers.py
from typing import Iterable

# RFC 7230 §6.1 connection-management headers, never forwarded by a proxy.
HOP_BY_HOP_HEADERS: frozenset[str] = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


def connection_tokens(value: str) -> set[str]:
    """Return the lower-cased header names listed in a Connection value."""
    return {x.strip().lower() for x in value.split(",") if x.strip()}


def removal_set(connection_values: Iterable[str]) -> frozenset[str]:
    """Static hop-by-hop names plus every token named by Connection headers."""
    names = set(HOP_BY_HOP_HEADERS)
    for value in connection_values:
        names |= connection_tokens(value)
    return frozenset(names)


def request_removal_set(headers: Iterable[tuple[str, str]]) -> frozenset[str]:
    return removal_set(v for k, v in headers if k.lower() == "connection")


def strip_hop_by_hop(
    headers: Iterable[tuple[str, str]], remove: frozenset[str]
) -> list[tuple[str, str]]:
    """Drop headers named in ``remove``; order, case and duplicates are kept."""
    return [(k, v) for k, v in headers if k.lower() not in remove]


def split_header_line(line: str) -> tuple[str, str]:
    """Split ``"Name: value"`` into ``("Name", "value")``.

    A line without a colon yields its whole text as the name and an empty value.
    """
    name, _, value = line.partition(":")
    return name.strip(), value.strip()
