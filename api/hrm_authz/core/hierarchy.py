"""Upward walks over self-referencing parent pointers.

Roles and menu nodes are stored flat with a nullable parent id. These helpers
take a lookup callable instead of a session so cycle detection can be used
(and tested) independently of the storage layer.
"""
from typing import Callable, Iterator, Optional, Set, TypeVar

T = TypeVar("T")


def detect_cycle(
    node_id: str,
    proposed_parent_id: Optional[str],
    get_parent_id: Callable[[str], Optional[str]],
) -> bool:
    """Return True if making ``proposed_parent_id`` the parent of ``node_id`` closes a loop.

    Walks upward from the proposed parent. Meeting ``node_id`` means the
    proposed parent is a descendant; meeting an id twice means the existing
    chain is already corrupt. ``get_parent_id`` returns None for roots and
    for ids that no longer exist.
    """
    visited: Set[str] = set()
    current = proposed_parent_id
    while current:
        if current == node_id or current in visited:
            return True
        visited.add(current)
        current = get_parent_id(current)
    return False


def walk_ancestors(
    start: T,
    get_parent: Callable[[T], Optional[T]],
    get_id: Callable[[T], str],
) -> Iterator[T]:
    """Yield ancestors of ``start``, nearest first.

    Stops at a root, a dangling parent pointer, or the first repeated id.
    """
    seen: Set[str] = {get_id(start)}
    current = get_parent(start)
    while current is not None:
        current_id = get_id(current)
        if current_id in seen:
            return
        seen.add(current_id)
        yield current
        current = get_parent(current)
