"""GraphQL client executing shape-derived operations.

Builds the operation text from a shape, sends it through a transport and
populates an instance of the shape from the response.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel

from .populate import populate
from .query_builder import QueryBuilder, Variable
from .scalars import ScalarCodec, ScalarRegistry
from .transport import Auth, ErrorEntry, HTTPTransport, Request, Transport

logger = logging.getLogger(__name__)


class GraphQLError(Exception):
    """Exception raised for the "errors" array of a GraphQL response.

    The message is the first error's message. ``data`` holds whatever
    could be populated from the response alongside the errors.
    """

    def __init__(self, errors: list[ErrorEntry], data: Any = None):
        self.errors = errors
        self.data = data
        self.message = errors[0].message
        super().__init__(self.message)


class GraphQLClient:
    """Executes GraphQL operations derived from shape models.

    Examples:
        # Default HTTP transport
        client = GraphQLClient.from_url(url, auth=BearerAuth(token))

        # Any transport implementing the Transport protocol
        client = GraphQLClient(FixtureTransport(responses))

        async with client:
            result = await client.query(ViewerQuery)
            print(result.viewer.login)
    """

    def __init__(self, transport: Transport, *, registry: ScalarRegistry | None = None):
        """Initialize the client.

        Args:
            transport: Transport used to send requests
            registry: Scalar registry for variable types and values
        """
        self.transport = transport
        self.registry = registry or ScalarRegistry()
        self._query_builder = QueryBuilder(self.registry)

    @classmethod
    def from_url(
        cls,
        url: str,
        auth: Auth | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        registry: ScalarRegistry | None = None,
    ) -> "GraphQLClient":
        """Create a client targeting a GraphQL server URL over HTTP."""
        transport = HTTPTransport(url, auth, http_client=http_client, timeout=timeout)
        return cls(transport, registry=registry)

    async def close(self):
        """Close the transport, if it holds resources."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "GraphQLClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def query(self, shape: Any, variables: Mapping[str, Any] | None = None) -> Any:
        """Execute a query derived from ``shape`` and return it populated."""
        return await self._do(shape, self._query_builder.query(shape, variables), variables)

    async def query_custom(
        self,
        shape: Any,
        query: str,
        variables: Mapping[str, Any] | None = None,
    ) -> Any:
        """Execute a caller-written query, populating the response into ``shape``.

        The variables referenced by the query must be provided in ``variables``.
        """
        return await self._do(shape, query, variables)

    async def mutate(self, shape: Any, variables: Mapping[str, Any] | None = None) -> Any:
        """Execute a mutation derived from ``shape`` and return it populated."""
        return await self._do(shape, self._query_builder.mutation(shape, variables), variables)

    async def mutate_custom(
        self,
        shape: Any,
        mutation: str,
        variables: Mapping[str, Any] | None = None,
    ) -> Any:
        """Execute a caller-written mutation, populating the response into ``shape``."""
        return await self._do(shape, mutation, variables)

    async def _do(self, shape: Any, query: str, variables: Mapping[str, Any] | None) -> Any:
        """Execute a single GraphQL operation.

        Raises:
            pydantic.ValidationError: If the data does not fit the shape
            GraphQLError: If the response carries errors
        """
        request = Request(
            query=query,
            variables=self._serialize_variables(variables) if variables else None,
        )
        logger.debug("Executing %s", query)

        response = await self.transport.do(request)

        result = populate(response.data, shape)
        if response.errors:
            logger.warning(
                "GraphQL response carried %d error(s): %s",
                len(response.errors),
                response.errors[0].message,
            )
            raise GraphQLError(response.errors, data=result)
        return result

    def _serialize_variables(self, variables: Mapping[str, Any]) -> dict[str, Any]:
        """Serialize variables for the GraphQL request.

        Handles Pydantic models by converting them to dicts.
        """
        return {key: self._serialize_value(value) for key, value in variables.items()}

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, Variable):
            value = value.value
        if value is None:
            return None
        if isinstance(value, BaseModel):
            # Input objects use their aliases and leave out unset optionals
            return value.model_dump(mode="json", by_alias=True, exclude_none=True)
        if isinstance(value, ScalarCodec):
            return value.encode_graphql()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._serialize_value(item) for item in value]
        if isinstance(value, dict):
            return {key: self._serialize_value(item) for key, item in value.items()}

        handler = self.registry.get(type(value))
        if handler is not None:
            return handler.serialize(value)
        return value
