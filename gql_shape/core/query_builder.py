"""Query builder for GraphQL operations.

Derives minified GraphQL query/mutation strings from shape models and
variable sets.

E.g., a model with fields ``foo_bar: int`` and ``baz: bool | None`` compiles
to "{fooBar,baz}", and {"a": 123, "b": True} declares "$a:Int!$b:Boolean!".
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from .scalars import ScalarRegistry
from .shape import (
    CycleError,
    element_type,
    is_record,
    list_element,
    shape_fields,
    strip_annotated,
    unwrap_optional,
)


@dataclass(frozen=True)
class Variable:
    """A variable value with an explicit type annotation.

    Needed when the type cannot be read off the value itself: optional
    variables, ``None`` values and empty lists.

    Example:
        Variable(None, Optional[int])      # $x:Int
        Variable([], list[str])            # $x:[ID!]!
    """
    value: Any
    annotation: Any


def variable_annotation(value: Any) -> Any:
    """Infer the annotation of a variable value.

    Lists take their element type from the first non-None element; any
    None element makes the element optional.

    Raises:
        TypeError: If the value is None or an empty list.
    """
    if isinstance(value, Variable):
        return value.annotation
    if value is None:
        raise TypeError("cannot infer the type of None; wrap it in Variable(None, Optional[...])")
    if isinstance(value, (list, tuple)):
        items = [item for item in value if item is not None]
        if not items:
            raise TypeError("cannot infer the element type of an empty list; wrap it in Variable")
        element = variable_annotation(items[0])
        if len(items) != len(value):
            element = Optional[element]
        return list[element]
    return type(value)


class QueryBuilder:
    """Builds GraphQL operation strings from shape models.

    Compilation is a pure function of the shape and the variables: every
    call starts from fresh visitation state.
    """

    def __init__(self, registry: ScalarRegistry | None = None):
        """Initialize with the scalar registry used for variable types."""
        self.registry = registry or ScalarRegistry()

    def query(self, shape: Any, variables: Mapping[str, Any] | None = None) -> str:
        """Build a query; the argument list is only emitted for non-empty variables."""
        selection = self.selection(shape)
        if variables:
            return "query(" + self.arguments(variables) + ")" + selection
        return selection

    def mutation(self, shape: Any, variables: Mapping[str, Any] | None = None) -> str:
        """Build a mutation. The keyword is emitted even without variables."""
        selection = self.selection(shape)
        if variables:
            return "mutation(" + self.arguments(variables) + ")" + selection
        return "mutation" + selection

    def selection(self, shape: Any) -> str:
        """Build the minified selection set for a shape.

        You can concatenate snippets to produce custom queries; pass them to
        ``GraphQLClient.query_custom``.

        Raises:
            CycleError: If a field without a recursion limit nests in itself.
            RecursionLimitError: If a recursion limit is malformed.
        """
        root = element_type(shape)
        visit_path = [root.__name__] if isinstance(root, type) else []
        return self._write_selection(shape, {}, visit_path, embedded=False)

    def _write_selection(
        self,
        annotation: Any,
        visited: dict[tuple[type, int], int],
        visit_path: list[str],
        embedded: bool,
    ) -> str:
        """Build the selection for one model. Embedded models omit their braces."""
        model = element_type(annotation)
        if not is_record(model):
            return ""

        parts = []
        for shape_field in shape_fields(model):
            edge = (model, shape_field.index)
            visited[edge] = visited.get(edge, 0) + 1
            try:
                if visited[edge] > shape_field.recursion_limit:
                    if shape_field.config.recurse is None:
                        raise CycleError(list(visit_path))
                    continue

                visit_path.append(f"{model.__name__}.{shape_field.name}")
                try:
                    sub_selection = self._write_selection(
                        shape_field.annotation, visited, visit_path, shape_field.embedded
                    )
                finally:
                    visit_path.pop()
            finally:
                visited[edge] -= 1

            part = shape_field.selection_name + sub_selection
            # Don't emit separators for empty embedded fields.
            if part:
                parts.append(part)

        body = ",".join(parts)
        return body if embedded else "{" + body + "}"

    def arguments(self, variables: Mapping[str, Any]) -> str:
        """Build the minified variable declarations, without parentheses.

        Names are sorted to produce deterministic output. No commas are
        inserted: commas in GraphQL are insignificant.
        """
        return "".join(
            f"${name}:{self.argument_type(variable_annotation(variables[name]))}"
            for name in sorted(variables)
        )

    def argument_type(self, annotation: Any, required: bool = True) -> str:
        """Build the minified GraphQL type for an annotation.

        ``required`` is False directly under an Optional wrapper, which
        suppresses the trailing "!" at that level only.
        """
        annotation = strip_annotated(annotation)
        inner, optional = unwrap_optional(annotation)
        if optional:
            return self.argument_type(inner, required=False)

        element = list_element(annotation)
        if element is not None:
            type_str = "[" + self.argument_type(element) + "]"
        else:
            type_str = self.registry.graphql_name(annotation)

        if required:
            return type_str + "!"
        return type_str


_default_builder = QueryBuilder()


def compile_selection(shape: Any) -> str:
    """Build the minified selection set for a shape, e.g. "{foo,barBaz}"."""
    return _default_builder.selection(shape)


def compile_arguments(variables: Mapping[str, Any]) -> str:
    """Build variable declarations, e.g. "$a:Int!$b:Boolean!"."""
    return _default_builder.arguments(variables)


def construct_query(shape: Any, variables: Mapping[str, Any] | None = None) -> str:
    return _default_builder.query(shape, variables)


def construct_mutation(shape: Any, variables: Mapping[str, Any] | None = None) -> str:
    return _default_builder.mutation(shape, variables)
