"""Shape descriptors for GraphQL response models.

A shape is a pydantic model describing the data a caller wants back.
Every field of the model becomes one selection in the compiled query.
Per-field behaviour is configured with ``gql()`` inside ``Annotated``:

    from typing import Annotated, Optional
    from pydantic import BaseModel
    from gql_shape.core.shape import gql

    class Repository(BaseModel):
        name_with_owner: str
        stargazer_count: int

    class Query(BaseModel):
        repository: Annotated[Repository, gql('repository(owner:"o",name:"n")')]

The helpers at the bottom of this module unwrap ``Optional``, list and
``Annotated`` annotations; the compiler, the argument encoder and the
populator all walk annotations through them.
"""

import collections.abc
import re
import types
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin

from pydantic import BaseModel

from .scalars import ScalarCodec

_LIST_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.Iterable,
)

_RESPONSE_KEY = re.compile(r"\s*(?:(\w+)\s*:\s*)?(\w+)")


class ShapeError(Exception):
    """Base class for malformed shape definitions."""


class CycleError(ShapeError):
    """A field was revisited beyond its allowed recursion limit.

    Attributes:
        trail: Visit path at the point of detection, root model first,
            then one ``Model.field`` label per field being expanded.
    """

    def __init__(self, trail: list[str]):
        self.trail = trail
        super().__init__(f"cycle found: {'->'.join(trail)}")


class RecursionLimitError(ShapeError):
    """A ``recurse`` setting is not an integer greater than 1."""


@dataclass(frozen=True)
class GraphQLField:
    """Per-field configuration attached through ``Annotated``.

    Attributes:
        selection: Literal selection text emitted instead of the derived
            name, e.g. ``'user(login:"x")'``, ``"me:viewer"`` or
            ``"... on Issue"``.
        recurse: How many times this field may nest inside itself.
            Unset means once; a second visit is a ``CycleError``.
        embed: Splice the field's own selections into the parent's braces.
            Ignored when ``selection`` is set.
    """
    selection: str | None = None
    recurse: Any = None
    embed: bool = False


def gql(selection: str | None = None, *, recurse: Any = None, embed: bool = False) -> GraphQLField:
    """Build a ``GraphQLField`` for use as ``Annotated`` metadata."""
    return GraphQLField(selection=selection, recurse=recurse, embed=embed)


@dataclass(frozen=True)
class ShapeField:
    """One field of a shape model, in declaration order."""
    index: int
    name: str
    annotation: Any
    config: GraphQLField
    alias: str | None = None

    @property
    def embedded(self) -> bool:
        return self.config.embed and self.config.selection is None

    @property
    def selection_name(self) -> str:
        """Token emitted for this field; empty for embedded fields."""
        if self.config.selection is not None:
            return self.config.selection
        if self.embedded:
            return ""
        return to_lower_camel_case(self.name)

    @property
    def fragment(self) -> bool:
        """Whether the selection is an inline fragment spread (``... on Type``)."""
        return self.selection_name.lstrip().startswith("...")

    @property
    def response_key(self) -> str | None:
        """Key holding this field's value in the response object.

        None means the field reads from the enclosing object (embedded
        fields and inline fragment spreads).
        """
        if self.embedded or self.fragment:
            return None
        selection = self.selection_name
        match = _RESPONSE_KEY.match(selection)
        if not match:
            return selection
        return match.group(1) or match.group(2)

    @property
    def validation_key(self) -> str:
        """Key pydantic expects for this field when validating a dict."""
        return self.alias or self.name

    @property
    def recursion_limit(self) -> int:
        return self.config.recurse if self.config.recurse is not None else 1


def shape_fields(model: type[BaseModel]) -> list[ShapeField]:
    """Describe the fields of a shape model.

    Raises:
        RecursionLimitError: If a field's ``recurse`` setting is invalid.
    """
    if not model.__pydantic_complete__:
        model.model_rebuild()

    fields = []
    for index, (name, info) in enumerate(model.model_fields.items()):
        config = next(
            (item for item in info.metadata if isinstance(item, GraphQLField)),
            GraphQLField(),
        )
        _check_recursion_limit(model, name, config.recurse)
        fields.append(ShapeField(
            index=index,
            name=name,
            annotation=info.annotation,
            config=config,
            alias=info.alias,
        ))
    return fields


def _check_recursion_limit(model: type, name: str, limit: Any):
    if limit is None:
        return
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise RecursionLimitError(
            f"recursion limit of {model.__name__}.{name} should be int, got {limit!r}"
        )
    if limit < 2:
        raise RecursionLimitError(
            f"recursion limit of {model.__name__}.{name} only makes sense for values greater than 1"
        )


# Initialisms recognized inside runs of capitals, e.g. "HTMLURL" -> "HTML", "URL"
_INITIALISMS = frozenset({
    "ACL", "API", "ASCII", "CPU", "CSS", "DNS", "EOF", "GUID", "HTML", "HTTP",
    "HTTPS", "ID", "IP", "JSON", "LHS", "QPS", "RAM", "RHS", "RPC", "SLA",
    "SMTP", "SQL", "SSH", "TCP", "TLS", "TTL", "UDP", "UI", "UID", "UUID",
    "URI", "URL", "UTF8", "VM", "XML", "XMPP", "XSRF", "XSS",
})


def _split_initialisms(word: str) -> list[str]:
    """Split a run of capitals into known initialisms, longest first."""
    if not word.isupper() or word in _INITIALISMS:
        return [word]
    parts = []
    rest = word
    while rest:
        for size in range(min(len(rest), 5), 1, -1):
            if rest[:size] in _INITIALISMS:
                parts.append(rest[:size])
                rest = rest[size:]
                break
        else:
            return [word]
    return parts


def to_lower_camel_case(name: str) -> str:
    """Convert snake_case, PascalCase or mixed caps to lowerCamelCase.

    E.g., "foo_bar" -> "fooBar", "FooBar" -> "fooBar", "DatabaseID" -> "databaseId",
    "HTMLURL" -> "htmlUrl".
    """
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', name)
    words = [
        part.lower()
        for word in re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1).split("_")
        if word
        for part in _split_initialisms(word)
    ]
    if not words:
        return name
    return words[0] + "".join(word.capitalize() for word in words[1:])


def is_record(annotation: Any) -> bool:
    """Check if an annotation is a selectable model (not an opaque scalar)."""
    return (
        isinstance(annotation, type)
        and issubclass(annotation, BaseModel)
        and not issubclass(annotation, ScalarCodec)
    )


def strip_annotated(annotation: Any) -> Any:
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``Optional[X]`` / ``X | None`` into ``(X, True)``.

    Anything else, including unions of several types, comes back as
    ``(annotation, False)``.
    """
    annotation = strip_annotated(annotation)
    if get_origin(annotation) not in (Union, types.UnionType):
        return annotation, False
    members = [arg for arg in get_args(annotation) if arg is not type(None)]
    if len(members) != 1 or len(members) == len(get_args(annotation)):
        return annotation, False
    return strip_annotated(members[0]), True


def list_element(annotation: Any) -> Any | None:
    """Return the element annotation of a list-like annotation, else None."""
    annotation = strip_annotated(annotation)
    if annotation in (list, tuple, set, frozenset):
        return Any
    origin = get_origin(annotation)
    if origin not in _LIST_ORIGINS:
        return None
    args = get_args(annotation)
    return strip_annotated(args[0]) if args else Any


def element_type(annotation: Any) -> Any:
    """Strip every optional, list and ``Annotated`` wrapper."""
    while True:
        annotation, optional = unwrap_optional(annotation)
        if optional:
            continue
        element = list_element(annotation)
        if element is None:
            return annotation
        annotation = element
