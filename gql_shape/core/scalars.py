"""Scalar types for GraphQL shapes and variables.

Two concerns live here:

* ``ScalarCodec`` marks a Python type as an opaque GraphQL scalar. Shape
  compilation never expands it, and pydantic decodes it from the JSON value
  through ``decode_graphql``.
* ``ScalarRegistry`` maps Python types to GraphQL scalar names for variable
  declarations, and knows how to serialize their values.

Example usage:
    from gql_shape.core.scalars import ScalarCodec, ScalarRegistry

    class Money(ScalarCodec):
        __graphql_name__ = "Money"

        def __init__(self, cents: int):
            self.cents = cents

        @classmethod
        def decode_graphql(cls, value):
            return cls(round(float(value) * 100))

        def encode_graphql(self):
            return f"{self.cents / 100:.2f}"

    # Declare plain str variables as String! instead of ID!
    registry = ScalarRegistry(string_type="String")
"""

from datetime import date, datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pydantic_core import core_schema


class ScalarCodec:
    """Base class for leaf types that decode themselves from a JSON scalar.

    Subclasses implement ``decode_graphql`` and, when used as variables,
    ``encode_graphql``. The GraphQL type name defaults to the class name;
    set ``__graphql_name__`` to override it.
    """

    __graphql_name__: str | None = None

    @classmethod
    def decode_graphql(cls, value: Any) -> "ScalarCodec":
        """Build an instance from the JSON value returned by the server."""
        raise NotImplementedError(f"{cls.__name__} does not implement decode_graphql")

    def encode_graphql(self) -> Any:
        """Convert the instance to a JSON-serializable value."""
        raise NotImplementedError(f"{type(self).__name__} does not implement encode_graphql")

    @classmethod
    def _validate(cls, value: Any) -> "ScalarCodec":
        if isinstance(value, cls):
            return value
        return cls.decode_graphql(value)

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: value.encode_graphql()
            ),
        )


@runtime_checkable
class ScalarHandler(Protocol):
    """Protocol for scalar handlers registered against a Python type.

    Attributes:
        graphql_name: The GraphQL scalar name used in variable declarations
    """

    graphql_name: str

    def serialize(self, value: Any) -> Any:
        """Convert a Python value to a JSON-serializable variable value."""
        ...


class BuiltinHandler:
    """Handler for values JSON already represents (strings, numbers, booleans)."""

    def __init__(self, graphql_name: str):
        self.graphql_name = graphql_name

    def serialize(self, value: Any) -> Any:
        return value


class DateTimeHandler:
    """Handler for DateTime scalars using ISO 8601 format."""

    graphql_name = "DateTime"

    def serialize(self, value: datetime) -> str:
        return value.isoformat()


class DateHandler:
    """Handler for Date scalars using ISO 8601 date format."""

    graphql_name = "Date"

    def serialize(self, value: date) -> str:
        return value.isoformat()


class UUIDHandler:
    graphql_name = "UUID"

    def serialize(self, value: UUID) -> str:
        return str(value)


class JSONHandler:
    """Handler for JSON scalars (pass-through)."""

    graphql_name = "JSON"

    def serialize(self, value: Any) -> Any:
        return value


class ScalarRegistry:
    """Registry mapping Python types to GraphQL scalars.

    Lookups are by exact type: a subclass of ``str`` or ``int`` declares
    itself under its own class name, like enums and input models do.

    Args:
        string_type: GraphQL name for ``str`` variables. Defaults to "ID",
            which matches servers that take IDs as plain strings.

    Example:
        registry = ScalarRegistry()
        registry.graphql_name(int)  # "Int"
        registry.graphql_name(str)  # "ID"
    """

    def __init__(self, string_type: str = "ID"):
        self._handlers: dict[type, ScalarHandler] = {}
        self.string_type = string_type
        self._register_defaults()

    def _register_defaults(self):
        """Register built-in default handlers."""
        self.register(str, BuiltinHandler(self.string_type))
        self.register(int, BuiltinHandler("Int"))
        self.register(float, BuiltinHandler("Float"))
        self.register(bool, BuiltinHandler("Boolean"))
        self.register(datetime, DateTimeHandler())
        self.register(date, DateHandler())
        self.register(UUID, UUIDHandler())
        self.register(dict, JSONHandler())

    def register(self, python_type: type, handler: ScalarHandler):
        """Register a handler for a Python type."""
        self._handlers[python_type] = handler

    def get(self, python_type: type) -> ScalarHandler | None:
        """Get the handler for a Python type, or None if not registered."""
        return self._handlers.get(python_type)

    def has(self, python_type: type) -> bool:
        return python_type in self._handlers

    def graphql_name(self, python_type: Any) -> str:
        """Return the GraphQL named type for a Python type.

        Raises:
            TypeError: If the annotation is not a class (e.g. a union).
        """
        handler = self.get(python_type)
        if handler is not None:
            return handler.graphql_name
        if not isinstance(python_type, type):
            raise TypeError(f"cannot derive a GraphQL type name from {python_type!r}")
        return getattr(python_type, "__graphql_name__", None) or python_type.__name__
