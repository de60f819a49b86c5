"""
Entity projection

Maps raw remote entities onto the ImageMeta shape used everywhere else.
Never raises: missing or malformed attributes become empty strings.
"""

import re
from typing import Any, Iterable, List

from gallery.models import ImageMeta

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def attribute_value(entity: Any, key: str) -> str:
    """Stringified value of the attribute named `key`, or "" if absent"""
    attributes = _field(entity, "attributes")
    if not isinstance(attributes, (list, tuple)):
        return ""

    for attr in attributes:
        if _field(attr, "key") == key:
            value = _field(attr, "value")
            if not value or isinstance(value, bool):
                return ""
            return str(value)
    return ""


def project_entities(entities: Iterable[Any]) -> List[ImageMeta]:
    """Project raw entities into ImageMeta records (same length, same order)"""
    images = []
    for entity in entities:
        key = _field(entity, "key")
        images.append(ImageMeta(
            key="" if key is None else str(key),
            id=attribute_value(entity, "id"),
            prompt=attribute_value(entity, "prompt"),
        ))
    return images


def parse_id(value: Any) -> int:
    """
    Parse the leading integer of an id string

    "42" -> 42, "12abc" -> 12, "7.0" -> 7, "" / "abc" / None -> 0
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return 0

    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


def sort_newest_first(images: List[ImageMeta]) -> List[ImageMeta]:
    """Sort by numeric id, descending"""
    return sorted(images, key=lambda image: parse_id(image.id), reverse=True)


def max_id(images: Iterable[ImageMeta]) -> int:
    """Largest numeric id, 0 for an empty sequence"""
    return max((parse_id(image.id) for image in images), default=0)
