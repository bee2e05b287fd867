# diy_search/parsers/tree.py

"""Bounded-depth visitor over decoded JSON trees.

Upstream payloads are untyped grab-bags, so several call sites need to
walk them looking for "something that looks like X".  They all share the
same pre-order traversal defined here.  Depth counts container levels:
the root is depth 0, its direct children depth 1, and so on.
"""

from collections.abc import Callable, Iterator, Sequence
from typing import Any

Predicate = Callable[[Any], bool]


def iter_nodes(
    root: Any,
    max_depth: int | None = None,
) -> Iterator[tuple[Any, int]]:
    """Yield ``(node, depth)`` for every dict and list, pre-order.

    Each container is visited once even if it is referenced twice.
    """
    seen: set[int] = set()
    stack: list[tuple[Any, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if not isinstance(node, (dict, list)) or id(node) in seen:
            continue
        seen.add(id(node))
        yield node, depth
        if max_depth is not None and depth >= max_depth:
            continue
        children = node.values() if isinstance(node, dict) else node
        # Reversed so the first child is popped first
        for child in reversed(list(children)):
            if isinstance(child, (dict, list)):
                stack.append((child, depth + 1))


def find_first(
    root: Any,
    predicate: Predicate,
    max_depth: int | None = None,
) -> Any | None:
    """Return the first container satisfying *predicate*, or ``None``."""
    for node, _depth in iter_nodes(root, max_depth):
        if predicate(node):
            return node
    return None


def find_all(
    root: Any,
    predicate: Predicate,
    max_depth: int | None = None,
) -> list[Any]:
    """Return every container satisfying *predicate*, in visit order."""
    return [
        node
        for node, _depth in iter_nodes(root, max_depth)
        if predicate(node)
    ]


def collect_arrays(root: Any) -> list[list[Any]]:
    """Every list anywhere in the tree, in visit order."""
    return find_all(root, lambda node: isinstance(node, list))


def has_any(node: Any, keys: Sequence[str]) -> bool:
    """True if *node* is a dict carrying at least one of *keys*."""
    return isinstance(node, dict) and any(k in node for k in keys)


def find_best_effort_candidate(
    tree: Any,
    name_keys: Sequence[str],
    url_keys: Sequence[str],
    price_keys: Sequence[str],
) -> dict[str, Any] | None:
    """Last-resort search for the first product-ish object in *tree*.

    A candidate has a name field plus either a URL field or a
    price-bearing field.
    """
    def looks_like_product(node: Any) -> bool:
        return has_any(node, name_keys) and (
            has_any(node, url_keys) or has_any(node, price_keys)
        )

    found = find_first(tree, looks_like_product)
    return found if isinstance(found, dict) else None
