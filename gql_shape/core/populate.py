"""Populate shape models from GraphQL response data.

The response uses the selection names the query was compiled with, so the
data is first re-keyed along the same shape descriptors (aliases, argument
overrides, embedded fields and inline fragments), then validated with
pydantic.
"""

from typing import Any

from pydantic import TypeAdapter

from .shape import is_record, list_element, shape_fields, strip_annotated, unwrap_optional


def populate(data: Any, shape: Any) -> Any:
    """Build an instance of ``shape`` from the ``data`` of a response.

    Args:
        data: Decoded JSON ``data`` object (None when the server sent null)
        shape: Shape model, or any annotation wrapping one (e.g. ``list[Model]``)

    Returns:
        The populated instance, or None when ``data`` is None

    Raises:
        pydantic.ValidationError: If the data does not fit the shape
    """
    if data is None:
        return None
    return TypeAdapter(shape).validate_python(_rekey(data, shape))


def _rekey(value: Any, annotation: Any) -> Any:
    """Rename response keys to the field names pydantic validates against."""
    if value is None:
        return None

    annotation = strip_annotated(annotation)
    inner, optional = unwrap_optional(annotation)
    if optional:
        return _rekey(value, inner)

    element = list_element(annotation)
    if element is not None:
        if isinstance(value, list):
            return [_rekey(item, element) for item in value]
        return value

    if not is_record(annotation) or not isinstance(value, dict):
        # Leave it to pydantic to report the mismatch
        return value

    result = {}
    for shape_field in shape_fields(annotation):
        key = shape_field.response_key
        if shape_field.fragment and not _fragment_matches(value, shape_field.annotation):
            # Spread on another concrete type; the field keeps its default
            continue
        if key is None:
            result[shape_field.validation_key] = _rekey(value, shape_field.annotation)
        elif key in value:
            result[shape_field.validation_key] = _rekey(value[key], shape_field.annotation)
    return result


def _fragment_matches(value: dict, annotation: Any) -> bool:
    """Check whether ``value`` carries any key selected by a fragment's model."""
    annotation, _ = unwrap_optional(annotation)
    if not is_record(annotation):
        return True
    for shape_field in shape_fields(annotation):
        key = shape_field.response_key
        if key is None:
            if _fragment_matches(value, shape_field.annotation):
                return True
        elif key in value:
            return True
    return False
