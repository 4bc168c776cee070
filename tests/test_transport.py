"""Tests for the httpx-based API transport."""

from unittest.mock import patch

import httpx

from brewapi.api.cache import CachedFile
from brewapi.api.exceptions import TransportError
from brewapi.api.transport import ApiTransport
from brewapi.core.config import USER_AGENT

URL = "https://formulae.brew.sh/api/formula.jws.json"


def make_transport(handler, **kwargs) -> ApiTransport:
    return ApiTransport(transport=httpx.MockTransport(handler), **kwargs)


# =============================================================================
# Downloads
# =============================================================================


class TestDownload:
    """Tests for ApiTransport.download."""

    def test_writes_target(self, tmp_path):
        target = CachedFile(tmp_path / "formula.jws.json")
        transport = make_transport(lambda request: httpx.Response(200, content=b'{"a": 1}'))

        outcome = transport.download(URL, target)

        assert outcome.ok
        assert not outcome.not_modified
        assert target.read_text() == '{"a": 1}'

    def test_sends_user_agent(self, tmp_path):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("User-Agent")
            return httpx.Response(200, content=b"{}")

        make_transport(handler).download(URL, CachedFile(tmp_path / "f.json"))

        assert seen["ua"] == USER_AGENT

    def test_conditional_request_header(self, tmp_path):
        """if_modified_since is sent as an HTTP date."""
        seen = {}

        def handler(request):
            seen["ims"] = request.headers.get("If-Modified-Since")
            return httpx.Response(200, content=b"{}")

        make_transport(handler).download(URL, CachedFile(tmp_path / "f.json"), if_modified_since=0.0)

        assert seen["ims"] == "Thu, 01 Jan 1970 00:00:00 GMT"

    def test_no_conditional_header_by_default(self, tmp_path):
        seen = {}

        def handler(request):
            seen["ims"] = request.headers.get("If-Modified-Since")
            return httpx.Response(200, content=b"{}")

        make_transport(handler).download(URL, CachedFile(tmp_path / "f.json"))

        assert seen["ims"] is None

    def test_not_modified_leaves_target(self, tmp_path, write_file):
        target = CachedFile(write_file(tmp_path / "f.json", "cached"))
        transport = make_transport(lambda request: httpx.Response(304))

        outcome = transport.download(URL, target, if_modified_since=target.mtime())

        assert outcome.ok
        assert outcome.not_modified
        assert target.read_text() == "cached"

    def test_http_error_is_returned_not_raised(self, tmp_path, write_file):
        """A 404 yields a failed outcome and leaves the cached copy."""
        target = CachedFile(write_file(tmp_path / "f.json", "cached"))
        transport = make_transport(lambda request: httpx.Response(404))

        outcome = transport.download(URL, target)

        assert not outcome.ok
        assert isinstance(outcome.error, TransportError)
        assert outcome.error.url == URL
        assert "HTTP 404" in outcome.error.message
        assert target.read_text() == "cached"

    def test_connect_error_is_translated(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = make_transport(handler).download(URL, CachedFile(tmp_path / "f.json"))

        assert not outcome.ok
        assert outcome.error.message.startswith(f"Request failed for {URL}")
        assert outcome.error.recoverable

    def test_timeout_is_translated(self, tmp_path):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = make_transport(handler, speed_time=5).download(URL, CachedFile(tmp_path / "f.json"))

        assert not outcome.ok
        assert outcome.error.message == f"Timeout after 5s fetching {URL}"

    def test_slow_transfer_is_aborted(self, tmp_path, write_file):
        """Transfers below the speed limit fail and leave the old file."""
        target = CachedFile(write_file(tmp_path / "f.json", "cached"))
        transport = make_transport(
            lambda request: httpx.Response(200, content=b"{}"),
            speed_limit=100,
            speed_time=10,
        )

        with patch("brewapi.api.transport.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 20.0]
            outcome = transport.download(URL, target)

        assert not outcome.ok
        assert "slower than 100 bytes/s" in outcome.error.message
        assert target.read_text() == "cached"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["f.json"]


# =============================================================================
# In-memory fetch
# =============================================================================


class TestGet:
    """Tests for ApiTransport.get."""

    def test_returns_content(self):
        transport = make_transport(lambda request: httpx.Response(200, content=b"[1, 2]"))

        outcome = transport.get(URL)

        assert outcome.ok
        assert outcome.content == b"[1, 2]"

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path.endswith("old.json"):
                return httpx.Response(301, headers={"Location": URL})
            return httpx.Response(200, content=b"{}")

        outcome = make_transport(handler).get("https://formulae.brew.sh/api/old.json")

        assert outcome.ok
        assert outcome.content == b"{}"

    def test_server_error(self):
        outcome = make_transport(lambda request: httpx.Response(503)).get(URL)

        assert not outcome.ok
        assert outcome.error.message == f"HTTP 503: Service Unavailable fetching {URL}"
