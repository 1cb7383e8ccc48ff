"""Core modules for shape-derived GraphQL operations."""

from .client import GraphQLClient, GraphQLError
from .populate import populate
from .query_builder import (
    QueryBuilder,
    Variable,
    compile_arguments,
    compile_selection,
    construct_mutation,
    construct_query,
)
from .scalars import (
    DateHandler,
    DateTimeHandler,
    JSONHandler,
    ScalarCodec,
    ScalarHandler,
    ScalarRegistry,
    UUIDHandler,
)
from .shape import (
    CycleError,
    GraphQLField,
    RecursionLimitError,
    ShapeError,
    ShapeField,
    gql,
    shape_fields,
)
from .transport import (
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

__all__ = [
    # Shapes
    "GraphQLField",
    "ShapeField",
    "gql",
    "shape_fields",
    "ShapeError",
    "CycleError",
    "RecursionLimitError",
    # Scalars
    "ScalarCodec",
    "ScalarHandler",
    "ScalarRegistry",
    "DateTimeHandler",
    "DateHandler",
    "UUIDHandler",
    "JSONHandler",
    # Query Builder
    "QueryBuilder",
    "Variable",
    "compile_arguments",
    "compile_selection",
    "construct_mutation",
    "construct_query",
    # Population
    "populate",
    # Transport
    "Auth",
    "ApiKeyAuth",
    "BearerAuth",
    "BasicAuth",
    "HeaderAuth",
    "NoAuth",
    "ErrorEntry",
    "HTTPTransport",
    "Request",
    "Response",
    "Transport",
    "TransportError",
    # Client
    "GraphQLClient",
    "GraphQLError",
]
