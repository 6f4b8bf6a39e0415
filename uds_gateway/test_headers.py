# uds_gateway/test_headers.py
from uds_gateway.headers import (
    HOP_BY_HOP_HEADERS,
    connection_tokens,
    removal_set,
    request_removal_set,
    split_header_line,
    strip_hop_by_hop,
)


# ---------------------------------------------------------------------------
# connection_tokens
# ---------------------------------------------------------------------------

class TestConnectionTokens:
    def test_splits_trims_and_lowercases(self):
        assert connection_tokens(" Foo ,BAR,baz") == {"foo", "bar", "baz"}

    def test_empty_tokens_ignored(self):
        assert connection_tokens("close,, ,") == {"close"}

    def test_empty_value(self):
        assert connection_tokens("") == set()


# ---------------------------------------------------------------------------
# removal_set / request_removal_set
# ---------------------------------------------------------------------------

class TestRemovalSet:
    def test_static_set_when_no_connection_header(self):
        assert removal_set([]) == HOP_BY_HOP_HEADERS

    def test_static_set_contents(self):
        assert HOP_BY_HOP_HEADERS == {
            "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
            "proxy-connection", "te", "trailer", "transfer-encoding", "upgrade",
        }

    def test_connection_tokens_added(self):
        names = removal_set(["foo, Bar"])
        assert {"foo", "bar"} <= names
        assert HOP_BY_HOP_HEADERS <= names

    def test_result_is_immutable(self):
        assert isinstance(removal_set(["foo"]), frozenset)

    def test_static_set_not_mutated(self):
        removal_set(["x-secret"])
        assert "x-secret" not in HOP_BY_HOP_HEADERS

    def test_request_side_reads_every_connection_header(self):
        headers = [("Connection", "foo"), ("X-A", "1"), ("connection", "bar")]
        names = request_removal_set(headers)
        assert {"foo", "bar"} <= names
        assert "x-a" not in names


# ---------------------------------------------------------------------------
# strip_hop_by_hop
# ---------------------------------------------------------------------------

class TestStripHopByHop:
    def test_custom_kept_hop_by_hop_dropped(self):
        headers = [
            ("Connection", "foo, bar"),
            ("foo", "1"),
            ("Bar", "2"),
            ("Keep-Alive", "timeout=5"),
            ("X-Custom", "yes"),
        ]
        out = strip_hop_by_hop(headers, request_removal_set(headers))
        assert out == [("X-Custom", "yes")]

    def test_order_case_and_duplicates_preserved(self):
        headers = [("X-A", "1"), ("x-b", "2"), ("X-A", "3"), ("TE", "trailers")]
        out = strip_hop_by_hop(headers, HOP_BY_HOP_HEADERS)
        assert out == [("X-A", "1"), ("x-b", "2"), ("X-A", "3")]


# ---------------------------------------------------------------------------
# split_header_line
# ---------------------------------------------------------------------------

class TestSplitHeaderLine:
    def test_name_and_value(self):
        assert split_header_line("Content-Type: text/html") == ("Content-Type", "text/html")

    def test_value_with_colons(self):
        assert split_header_line("Location: http://x:80/") == ("Location", "http://x:80/")

    def test_no_colon(self):
        assert split_header_line("garbage") == ("garbage", "")
