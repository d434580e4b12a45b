#!/usr/bin/env python3
"""
tabgroups.py

Build a tab hierarchy from items tagged with slash-delimited `tabgroup`
paths and flatten it back into an ordered item list.

    items:   A (no path), B ("demo/age"), C ("demo/sex"), D (no path)
    build -> root
               items:    A, D
               children: demo
                           children: age (B), sex (C)
    flatten -> [A, {"type": "tabgroup", "name": "demo",
                    "tabs": [{"type": "tabgroup", "name": "age", "tabs": [B]},
                             {"type": "tabgroup", "name": "sex", "tabs": [C]}]},
                D]

The children of a node become the tabs of ONE container for that node,
never one container per child. Containers sit in the flattened list at the
smallest insertion index found beneath them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
import math


def insertion_key(item: Any) -> float:
    """Sort key for authoring order; items without an index sort last."""
    if isinstance(item, dict):
        index = item.get(".insertion_index")
        if isinstance(index, (int, float)) and not isinstance(index, bool):
            return index
    return math.inf


def sort_by_insertion(items: list[Any]) -> list[Any]:
    return sorted(items, key=insertion_key)


def split_path(tabgroup: Any) -> list[str]:
    """
    Split a tabgroup value into path segments.

    Accepts "a/b/c" or ["a", "b", "c"]; empty segments are dropped.
    """
    if tabgroup is None:
        return []
    if isinstance(tabgroup, (list, tuple)):
        parts = [str(p) for p in tabgroup]
    else:
        parts = str(tabgroup).split("/")
    return [p.strip() for p in parts if p.strip()]


@dataclass
class HierarchyNode:
    name: str = ""
    path: str = ""
    # (insertion index, item) pairs, kept in arrival order
    items: list[tuple[float, dict[str, Any]]] = field(default_factory=list)
    children: dict[str, "HierarchyNode"] = field(default_factory=dict)
    min_index: float = math.inf

    def child(self, name: str) -> "HierarchyNode":
        node = self.children.get(name)
        if node is None:
            path = f"{self.path}/{name}" if self.path else name
            node = HierarchyNode(name=name, path=path)
            self.children[name] = node
        return node


def build(items: list[dict[str, Any]]) -> HierarchyNode:
    """
    Insert every item at the node named by its `tabgroup` path.

    Items are not modified; an item without `.insertion_index` is indexed
    by its position in `items`.
    """
    root = HierarchyNode()
    for position, item in enumerate(items):
        index = _position_index(position, item)

        node = root
        node.min_index = min(node.min_index, index)
        for segment in split_path(item.get("tabgroup")):
            node = node.child(segment)
            node.min_index = min(node.min_index, index)
        node.items.append((index, item))
    return root


def _merge(
    items: list[tuple[float, dict[str, Any]]],
    containers: list[tuple[float, dict[str, Any]]],
) -> list[dict[str, Any]]:
    # sorted() is stable: equal indices keep items ahead of containers
    merged = sorted(items + containers, key=lambda pair: pair[0])
    return [entry for _, entry in merged]


def _label(node: HierarchyNode, labels: dict[str, str]) -> Optional[str]:
    return labels.get(node.path) or labels.get(node.name)


def _container(node: HierarchyNode, labels: dict[str, str]) -> dict[str, Any]:
    children = sorted(node.children.values(), key=lambda c: c.min_index)
    tabs = _merge(node.items, [(c.min_index, _container(c, labels)) for c in children])
    container: dict[str, Any] = {
        "type": "tabgroup",
        "name": node.name,
        "path": node.path,
        "tabs": tabs,
        ".insertion_index": node.min_index,
    }
    label = _label(node, labels)
    if label:
        container["label"] = label
    return container


def flatten(node: HierarchyNode, labels: Optional[dict[str, str]] = None) -> list[dict[str, Any]]:
    """
    Turn a hierarchy back into an ordered list of items and tab containers.

    `labels` maps a path ("demo/age") or a segment name ("age") to the
    display label used for that tab.
    """
    labels = labels or {}
    children = sorted(node.children.values(), key=lambda c: c.min_index)
    return _merge(node.items, [(c.min_index, _container(c, labels)) for c in children])


def has_tabgroups(items: list[Any]) -> bool:
    return any(isinstance(i, dict) and split_path(i.get("tabgroup")) for i in items)


def _position_index(position: int, item: Any) -> float:
    index = item.get(".insertion_index") if isinstance(item, dict) else None
    if not isinstance(index, (int, float)) or isinstance(index, bool):
        return position
    return index


def group_items(items: list[dict[str, Any]], labels: Optional[dict[str, str]] = None) -> list[dict[str, Any]]:
    """build() + flatten(); without tabgroup paths the items are only ordered."""
    if not has_tabgroups(items):
        ordered = sorted(enumerate(items), key=lambda pair: _position_index(*pair))
        return [item for _, item in ordered]
    return flatten(build(items), labels)
