"""Transports carrying GraphQL requests to a server.

A transport takes a ``Request`` (query text plus variables) and returns the
first-phase ``Response``: the raw ``data`` object and the protocol
``errors``. Mapping ``data`` onto shapes happens in the client.

HTTP+JSON is the default; anything implementing ``Transport`` can replace
it, e.g. a transport replaying recorded fixtures in tests.
"""

import base64
import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Exception raised when the server does not answer with 200 OK."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class Request(BaseModel):
    """A GraphQL request: the query together with its variable values."""
    query: str
    variables: dict[str, Any] | None = None

    def payload(self) -> dict[str, Any]:
        """JSON body for the request; variables are omitted when empty."""
        body: dict[str, Any] = {"query": self.query}
        if self.variables:
            body["variables"] = self.variables
        return body


class Location(BaseModel):
    line: int
    column: int


class ErrorEntry(BaseModel):
    """One entry of the "errors" array of a response.

    Specification: https://spec.graphql.org/October2021/#sec-Errors
    """
    message: str
    locations: list[Location] = Field(default_factory=list)
    path: list[str | int] | None = None
    extensions: dict[str, Any] | None = None


class Response(BaseModel):
    """A GraphQL response before its data is mapped onto a shape."""
    data: Any = None
    errors: list[ErrorEntry] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _null_errors(cls, value: Any) -> Any:
        return [] if value is None else value


@runtime_checkable
class Transport(Protocol):
    """Protocol for GraphQL transports.

    Example:
        class FixtureTransport:
            def __init__(self, responses: dict[str, dict]):
                self.responses = responses

            async def do(self, request: Request) -> Response:
                return Response.model_validate(self.responses[request.query])
    """

    async def do(self, request: Request) -> Response:
        """Send a request and return the decoded response."""
        ...


@runtime_checkable
class Auth(Protocol):
    """Protocol for authentication handlers used by ``HTTPTransport``."""

    def get_headers(self) -> dict[str, str]:
        """Return headers to include in requests."""
        ...


class NoAuth:
    """No authentication (for public APIs or testing)."""

    def get_headers(self) -> dict[str, str]:
        return {}


class BearerAuth:
    """Bearer token authentication, e.g. ``BearerAuth(github_token)``."""

    def __init__(self, token: str):
        self.token = token

    def get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class ApiKeyAuth:
    """API key sent in a custom header (default: "x-api-key")."""

    def __init__(self, api_key: str, header_name: str = "x-api-key"):
        self.api_key = api_key
        self.header_name = header_name

    def get_headers(self) -> dict[str, str]:
        return {self.header_name: self.api_key}


class BasicAuth:
    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    def get_headers(self) -> dict[str, str]:
        encoded = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return {"Authorization": f"Basic {encoded}"}


class HeaderAuth:
    """Fixed set of headers, e.g. tenant and API key headers together."""

    def __init__(self, headers: dict[str, str]):
        self._headers = dict(headers)

    def get_headers(self) -> dict[str, str]:
        return dict(self._headers)


class HTTPTransport:
    """Posts requests as JSON to a GraphQL endpoint using httpx.

    Examples:
        transport = HTTPTransport("https://api.github.com/graphql", BearerAuth(token))

        # Share a configured client (proxies, retries, event hooks...)
        transport = HTTPTransport(url, http_client=httpx.AsyncClient(http2=True))
    """

    def __init__(
        self,
        url: str,
        auth: Auth | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the transport.

        Args:
            url: GraphQL endpoint URL
            auth: Authentication handler (implements Auth protocol)
            http_client: Client to send requests with; owned by the caller
            timeout: Request timeout in seconds, for the client created here
        """
        self.url = url
        self.timeout = timeout
        self._auth = auth or NoAuth()
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def do(self, request: Request) -> Response:
        """POST the request and decode the response body.

        Raises:
            TransportError: If the status is not 200 OK
            httpx.HTTPError: On connection failures and timeouts
        """
        client = await self._get_client()
        logger.debug("POST %s: %s", self.url, request.query)

        response = await client.post(
            self.url,
            json=request.payload(),
            headers=self._auth.get_headers(),
        )
        if response.status_code != httpx.codes.OK:
            raise TransportError(
                f"unexpected status: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return Response.model_validate(response.json())
