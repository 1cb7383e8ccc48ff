"""Tests for transports, request/response models and auth handlers."""

import base64
import json

import httpx
import pytest

from gql_shape.core.transport import (
    ApiKeyAuth,
    Auth,
    BasicAuth,
    BearerAuth,
    ErrorEntry,
    HeaderAuth,
    HTTPTransport,
    NoAuth,
    Request,
    Response,
    Transport,
    TransportError,
)

URL = "https://example.com/graphql"


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# =============================================================================
# Tests: Models
# =============================================================================


class TestRequest:
    """Tests for Request.payload."""

    def test_variables_omitted_when_none(self):
        assert Request(query="{viewer{login}}").payload() == {"query": "{viewer{login}}"}

    def test_variables_omitted_when_empty(self):
        assert Request(query="{a}", variables={}).payload() == {"query": "{a}"}

    def test_variables_included(self):
        request = Request(query="query($a:Int!){a}", variables={"a": 1, "b": None})
        assert request.payload() == {"query": "query($a:Int!){a}", "variables": {"a": 1, "b": None}}


class TestResponse:
    """Tests for Response parsing."""

    def test_data_only(self):
        response = Response.model_validate({"data": {"viewer": {"login": "octocat"}}})
        assert response.data == {"viewer": {"login": "octocat"}}
        assert response.errors == []

    def test_null_errors(self):
        response = Response.model_validate({"data": None, "errors": None})
        assert response.data is None
        assert response.errors == []

    def test_errors(self):
        response = Response.model_validate({
            "data": None,
            "errors": [
                {
                    "message": "Field 'nope' doesn't exist",
                    "locations": [{"line": 1, "column": 2}],
                    "path": ["viewer", 0],
                    "extensions": {"code": "undefinedField"},
                },
                {"message": "second"},
            ],
        })
        first = response.errors[0]
        assert isinstance(first, ErrorEntry)
        assert first.message == "Field 'nope' doesn't exist"
        assert first.locations[0].line == 1
        assert first.locations[0].column == 2
        assert first.path == ["viewer", 0]
        assert first.extensions == {"code": "undefinedField"}
        assert response.errors[1].locations == []


# =============================================================================
# Tests: HTTPTransport
# =============================================================================


class TestHTTPTransport:
    """Tests for HTTPTransport."""

    @pytest.mark.asyncio
    async def test_posts_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers["content-type"]
            seen["authorization"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"viewer": {"login": "octocat"}}})

        async with mock_client(handler) as http_client:
            transport = HTTPTransport(URL, BearerAuth("t0ken"), http_client=http_client)
            response = await transport.do(Request(query="query($a:Int!){viewer{login}}", variables={"a": 1}))

        assert seen == {
            "method": "POST",
            "url": URL,
            "content_type": "application/json",
            "authorization": "Bearer t0ken",
            "body": {"query": "query($a:Int!){viewer{login}}", "variables": {"a": 1}},
        }
        assert response.data == {"viewer": {"login": "octocat"}}
        assert response.errors == []

    @pytest.mark.asyncio
    async def test_protocol_errors_are_returned(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": None, "errors": [{"message": "boom"}]})

        async with mock_client(handler) as http_client:
            transport = HTTPTransport(URL, http_client=http_client)
            response = await transport.do(Request(query="{a}"))

        assert response.errors[0].message == "boom"

    @pytest.mark.asyncio
    async def test_unexpected_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="upstream down")

        async with mock_client(handler) as http_client:
            transport = HTTPTransport(URL, http_client=http_client)
            with pytest.raises(TransportError, match="unexpected status: 502 Bad Gateway") as exc_info:
                await transport.do(Request(query="{a}"))

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_connection_errors_propagate(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection failed", request=request)

        async with mock_client(handler) as http_client:
            transport = HTTPTransport(URL, http_client=http_client)
            with pytest.raises(httpx.ConnectError, match="Connection failed"):
                await transport.do(Request(query="{a}"))

    @pytest.mark.asyncio
    async def test_close_leaves_supplied_client_open(self):
        http_client = mock_client(lambda request: httpx.Response(200, json={"data": {}}))
        transport = HTTPTransport(URL, http_client=http_client)
        await transport.close()

        assert not http_client.is_closed
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_close_owned_client(self):
        transport = HTTPTransport(URL, timeout=5.0)
        client = await transport._get_client()
        assert client.timeout.read == 5.0

        await transport.close()
        assert client.is_closed

    def test_is_transport(self):
        assert isinstance(HTTPTransport(URL), Transport)


# =============================================================================
# Tests: Auth
# =============================================================================


class TestAuth:
    """Tests for auth handlers."""

    def test_no_auth(self):
        assert NoAuth().get_headers() == {}

    def test_bearer(self):
        assert BearerAuth("abc").get_headers() == {"Authorization": "Bearer abc"}

    def test_api_key_default_header(self):
        assert ApiKeyAuth("my-secret-key").get_headers() == {"x-api-key": "my-secret-key"}

    def test_api_key_custom_header(self):
        auth = ApiKeyAuth("token123", header_name="x-auth-token")
        assert auth.get_headers() == {"x-auth-token": "token123"}

    def test_basic(self):
        expected = base64.b64encode(b"user@domain.com:p@ss:word!").decode()
        auth = BasicAuth("user@domain.com", "p@ss:word!")
        assert auth.get_headers() == {"Authorization": f"Basic {expected}"}

    def test_header_auth_returns_copy(self):
        original = {"X-Tenant-ID": "tenant456"}
        auth = HeaderAuth(original)
        headers = auth.get_headers()
        headers["X-New"] = "new"
        original["X-Other"] = "other"

        assert auth.get_headers() == {"X-Tenant-ID": "tenant456"}

    @pytest.mark.parametrize(
        "auth",
        [NoAuth(), BearerAuth("t"), ApiKeyAuth("k"), BasicAuth("u", "p"), HeaderAuth({})],
    )
    def test_implements_protocol(self, auth):
        assert isinstance(auth, Auth)
