"""Helpers for raw record trees."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple


def copy_tree(value: Any) -> Any:
    """Deep-copy nested mappings and lists without recursion.

    Mappings become dicts and sequences become lists; every other value is
    shared. Depth is bounded only by memory, unlike ``copy.deepcopy``.
    A container reached twice is copied once, so shared references and
    cycles keep their shape in the copy.
    """
    if not isinstance(value, (Mapping, list, tuple)):
        return value

    root = {} if isinstance(value, Mapping) else []
    copies: Dict[int, Any] = {id(value): root}
    stack: List[Tuple[Any, Any]] = [(value, root)]
    while stack:
        source, target = stack.pop()
        items = source.items() if isinstance(source, Mapping) else enumerate(source)
        for key, item in items:
            if isinstance(item, (Mapping, list, tuple)):
                item_copy = copies.get(id(item))
                if item_copy is None:
                    item_copy = {} if isinstance(item, Mapping) else []
                    copies[id(item)] = item_copy
                    stack.append((item, item_copy))
            else:
                item_copy = item
            if isinstance(target, dict):
                target[key] = item_copy
            else:
                target.append(item_copy)
    return root
