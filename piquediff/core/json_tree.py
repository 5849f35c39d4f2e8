"""
JSON Tree Traversal

Untyped report documents are modelled as a closed variant:

    OBJECT  - a mapping of string keys to values
    ARRAY   - an ordered sequence of values
    SCALAR  - anything else (str, int, float, bool, None)

Traversal dispatches on that variant instead of on fixed field names, so
the extractor keeps working when report generators change their layout.

All walks use an explicit work-stack. Each JSON value is pushed exactly
once, so a walk is linear in the number of visited values and cannot
exhaust the interpreter stack on deep documents.
"""

from enum import Enum
from collections.abc import Mapping
from typing import Any, Callable, Iterator, List, Optional, Tuple, Union


Key = Union[str, int, None]


class JsonKind(str, Enum):
    """Variant tag of a JSON value"""
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"


# Returned by a visitor to stop descent below the current value
PRUNE = object()


def kind_of(value: Any) -> JsonKind:
    if isinstance(value, Mapping):
        return JsonKind.OBJECT
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    return JsonKind.SCALAR


def child_items(value: Any) -> Iterator[Tuple[Key, Any]]:
    """Yield (key, child) pairs; keys are str for objects and int for arrays."""
    kind = kind_of(value)
    if kind is JsonKind.OBJECT:
        for key, child in value.items():
            yield str(key), child
    elif kind is JsonKind.ARRAY:
        for index, child in enumerate(value):
            yield index, child


def walk(root: Any,
         visit: Callable[[Key, Any, Any], Any],
         context: Any = None) -> int:
    """
    Depth-first pre-order walk over every value of a JSON tree.

    ``visit(key, value, context)`` is called once per value, in document
    order. Its return value becomes the context handed to the value's
    children; returning ``PRUNE`` skips the children entirely.

    Args:
        root: Document (or sub-document) to walk
        visit: Visitor callback
        context: Context passed to the root visit

    Returns:
        Number of values visited
    """
    stack: List[Tuple[Key, Any, Any]] = [(None, root, context)]
    visited = 0

    while stack:
        key, value, ctx = stack.pop()
        visited += 1

        child_ctx = visit(key, value, ctx)
        if child_ctx is PRUNE or kind_of(value) is JsonKind.SCALAR:
            continue

        # Reversed push keeps pops in document order
        children = list(child_items(value))
        for child_key, child in reversed(children):
            stack.append((child_key, child, child_ctx))

    return visited


def as_mapping(value: Any) -> Mapping:
    """Return ``value`` when it is an OBJECT, else an empty mapping."""
    return value if kind_of(value) is JsonKind.OBJECT else {}


def child_keys(value: Any) -> List[str]:
    """
    Names declared by a ``children`` entry.

    PIQUE writes children either as a list of keys or as a mapping of
    key to node; both resolve to the ordered list of keys.
    """
    kind = kind_of(value)
    if kind is JsonKind.OBJECT:
        return [str(k) for k in value.keys()]
    if kind is JsonKind.ARRAY:
        return [str(item) for item in value if isinstance(item, (str, int)) and not isinstance(item, bool)]
    return []


def inline_child(children: Any, key: str) -> Optional[Mapping]:
    """Node stored inline under ``key`` of a children mapping, if any."""
    if kind_of(children) is JsonKind.OBJECT:
        node = children.get(key)
        if kind_of(node) is JsonKind.OBJECT:
            return node
    return None
