from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Collection, Mapping as AbcMapping
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel

from wiretag.exceptions import UnsupportedStructureError
from wiretag.model import OMITTED_TAG, FieldDescriptor, FieldKind, StructureDescriptor

DEFAULT_TAG_KEY = "json"
WIRE_FIELDS_ATTR = "__wire_fields__"

logger = structlog.get_logger(__name__)

_COLLECTION_TYPES = (list, tuple, set, frozenset, dict)


@runtime_checkable
class StructureDescriber(Protocol):
    kind: str

    def supports(self, target: type) -> bool: ...

    def describe(self, target: type, *, tag_key: str) -> tuple[FieldDescriptor, ...]: ...


def structure_type(value: object) -> type:
    return value if isinstance(value, type) else type(value)


def qualified_name(target: type) -> str:
    unit = str(target.__module__).rsplit(".", 1)[-1]
    return f"{unit}.{target.__qualname__}"


def _exported(name: str) -> bool:
    return bool(name) and not name.startswith("_")


def _type_hints(target: type) -> dict[str, object]:
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError) as exc:
        # Unresolvable forward references only cost us the field kind.
        logger.debug("type_hints_unresolved", target=qualified_name(target), error=str(exc))
        return {}


def field_kind(annotation: object) -> FieldKind:
    if annotation is None or isinstance(annotation, str):
        return FieldKind.PRIMITIVE
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return field_kind(typing.get_args(annotation)[0])
    if origin is typing.Union or origin is types.UnionType:
        if type(None) in typing.get_args(annotation):
            return FieldKind.POINTER
        return FieldKind.PRIMITIVE
    if origin is not None:
        if isinstance(origin, type) and issubclass(origin, Collection):
            return FieldKind.COLLECTION
        annotation = origin
    if isinstance(annotation, type):
        if issubclass(annotation, (str, bytes)):
            return FieldKind.PRIMITIVE
        if issubclass(annotation, _COLLECTION_TYPES):
            return FieldKind.COLLECTION
        if is_structure(annotation):
            return FieldKind.STRUCTURE
    return FieldKind.PRIMITIVE


class WireFieldsDescriber:
    """Classes with hand-written serialization publish ``__wire_fields__``.

    The attribute is either a mapping of identifier to tag or a sequence of
    ``(identifier, tag)`` pairs; a tag of ``None`` means undeclared.
    """

    kind = "wire_fields"

    def supports(self, target: type) -> bool:
        return isinstance(target, type) and hasattr(target, WIRE_FIELDS_ATTR)

    def describe(self, target: type, *, tag_key: str) -> tuple[FieldDescriptor, ...]:
        raw = getattr(target, WIRE_FIELDS_ATTR)
        pairs = list(raw.items()) if isinstance(raw, AbcMapping) else [tuple(item) for item in raw]
        hints = _type_hints(target)
        fields: list[FieldDescriptor] = []
        for identifier, tag in pairs:
            name = str(identifier)
            if not _exported(name):
                continue
            fields.append(
                FieldDescriptor(
                    identifier=name,
                    declared_tag=None if tag is None else str(tag),
                    kind=field_kind(hints.get(name)),
                )
            )
        return tuple(fields)


class PydanticDescriber:
    kind = "pydantic"

    def supports(self, target: type) -> bool:
        return isinstance(target, type) and issubclass(target, BaseModel)

    def describe(self, target: type, *, tag_key: str) -> tuple[FieldDescriptor, ...]:
        fields: list[FieldDescriptor] = []
        for name, info in target.model_fields.items():
            if not _exported(name):
                continue
            if info.exclude is True:
                tag: str | None = OMITTED_TAG
            else:
                tag = info.serialization_alias or info.alias
            fields.append(
                FieldDescriptor(identifier=name, declared_tag=tag, kind=field_kind(info.annotation))
            )
        return tuple(fields)


class DataclassDescriber:
    kind = "dataclass"

    def supports(self, target: type) -> bool:
        return isinstance(target, type) and dataclasses.is_dataclass(target)

    def describe(self, target: type, *, tag_key: str) -> tuple[FieldDescriptor, ...]:
        hints = _type_hints(target)
        fields: list[FieldDescriptor] = []
        for item in dataclasses.fields(target):
            if not _exported(item.name):
                continue
            tag = item.metadata.get(tag_key)
            fields.append(
                FieldDescriptor(
                    identifier=item.name,
                    declared_tag=None if tag is None else str(tag),
                    kind=field_kind(hints.get(item.name, item.type)),
                )
            )
        return tuple(fields)


_DESCRIBERS: list[StructureDescriber] = []


def register_describer(describer: StructureDescriber, *, first: bool = False) -> None:
    if not isinstance(describer, StructureDescriber):
        raise TypeError(f"{describer!r} does not implement StructureDescriber")
    if first:
        _DESCRIBERS.insert(0, describer)
    else:
        _DESCRIBERS.append(describer)


def describer_for(target: type) -> StructureDescriber | None:
    for describer in _DESCRIBERS:
        if describer.supports(target):
            return describer
    return None


def is_structure(value: object) -> bool:
    return describer_for(structure_type(value)) is not None


def describe(value: object, *, tag_key: str = DEFAULT_TAG_KEY) -> StructureDescriptor:
    """Return the exported fields of ``value``'s structure in declaration order.

    ``value`` may be an instance or the class itself. Raises
    ``UnsupportedStructureError`` when no describer recognises it.
    """
    target = structure_type(value)
    describer = describer_for(target)
    if describer is None:
        raise UnsupportedStructureError(value)
    return StructureDescriptor(
        name=qualified_name(target),
        kind=describer.kind,
        fields=describer.describe(target, tag_key=tag_key),
    )


register_describer(WireFieldsDescriber())
register_describer(PydanticDescriber())
register_describer(DataclassDescriber())
