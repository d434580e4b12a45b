#!/usr/bin/env python3
"""
layout.py

Assemble a page's item stream into Quarto structure in two passes:

1. build_nodes() turns a list of specs into a tree of typed nodes
   (Section, Row, Column, TabContainer, Tab, Standalone, ManualLayout).
   Tabgroup paths, pagination breaks and dashboard row grouping are all
   resolved here.
2. render_nodes() walks the finished tree once and returns the lines.

Flat mode puts chart titles at level 2 and tabs at level 3.
Dashboard mode puts charts at level 4 under `### Row` and tabs at level 4.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from compile_context import CompileContext
from content_blocks import LAYOUT_TYPES, has_text, is_content_block, render_block, text_of, with_icon
from tabgroups import group_items
from viz_codegen import render_viz


# ---------------- node types -------------------------------------------------


@dataclass
class Standalone:
    spec: dict[str, Any]
    next_block: Optional[dict[str, Any]] = None


@dataclass
class ManualLayout:
    spec: dict[str, Any]


@dataclass
class Tab:
    title: str
    content: Union["Standalone", "TabContainer"]
    lazy: bool = False


@dataclass
class TabContainer:
    header: Optional[str]
    tabs: list[Tab]
    depth: int = 0
    name: str = ""
    text_before: Optional[str] = None
    text_after: Optional[str] = None


@dataclass
class Row:
    nodes: list["Node"]


@dataclass
class Column:
    nodes: list["Node"]


@dataclass
class Section:
    nodes: list["Node"]
    pagination: Optional[dict[str, Any]] = None


Node = Union[Standalone, ManualLayout, Tab, TabContainer, Row, Column, Section]


# ---------------- classification ---------------------------------------------


def is_pagination(item: dict[str, Any]) -> bool:
    return item.get("pagination_break") is True or item.get("type") == "pagination"


def is_viz(item: dict[str, Any]) -> bool:
    if item.get("type") == "viz":
        return True
    return item.get("type") is None and (item.get("viz_type") is not None or item.get("fn") is not None)


def is_tab_container(item: dict[str, Any]) -> bool:
    return item.get("type") == "tabgroup" and "tabs" in item


def split_by_pagination(
    items: list[dict[str, Any]],
) -> list[tuple[list[dict[str, Any]], Optional[dict[str, Any]]]]:
    """
    Split `items` at pagination markers.

    Returns (items, marker) pairs; the marker is the pagination break that
    closed the section (None for the last one). Markers themselves render
    nothing. Empty sections are dropped.
    """
    sections: list[tuple[list[dict[str, Any]], Optional[dict[str, Any]]]] = []
    current: list[dict[str, Any]] = []
    for item in items:
        if is_pagination(item):
            if current:
                sections.append((current, item))
                current = []
            continue
        current.append(item)
    if current:
        sections.append((current, None))
    return sections


def find_tabset_texts(items: list[dict[str, Any]]) -> tuple[Optional[str], Optional[str]]:
    """First text_before_tabset / text_after_tabset found among `items`, depth first."""
    before: Optional[str] = None
    after: Optional[str] = None
    for item in items:
        if is_tab_container(item):
            nested_before, nested_after = find_tabset_texts(item["tabs"])
            before = before or nested_before
            after = after or nested_after
            continue
        if before is None and has_text(item.get("text_before_tabset")):
            before = text_of(item["text_before_tabset"])
        if after is None and has_text(item.get("text_after_tabset")):
            after = text_of(item["text_after_tabset"])
    return before, after


def tab_title(item: dict[str, Any], position: int) -> str:
    if is_tab_container(item):
        return str(item.get("label") or item.get("name") or f"Section {position}")

    if is_content_block(item):
        if has_text(item.get("title")):
            return text_of(item["title"])
        if item.get("type") == "text":
            return f"Content {position}"
        return f"{str(item.get('type')).title()} {position}"

    title = item.get("title_tabset") or item.get("title") or f"Chart {position}"
    return with_icon(str(title), item.get("icon"))


# ---------------- phase 1: build ---------------------------------------------


def _tab_container(item: dict[str, Any], ctx: CompileContext, depth: int) -> TabContainer:
    entries = [e for e in item["tabs"] if isinstance(e, dict)]
    tabs: list[Tab] = []
    for position, entry in enumerate(entries, start=1):
        if is_tab_container(entry):
            content: Union[Standalone, TabContainer] = _tab_container(entry, ctx, depth + 1)
        else:
            content = Standalone(entry)
        lazy = ctx.lazy_load_tabs and position > 1
        tabs.append(Tab(tab_title(entry, position), content, lazy))

    before, after = find_tabset_texts(entries) if depth == 0 else (None, None)
    return TabContainer(
        header=item.get("label") or item.get("name") or None,
        tabs=tabs,
        depth=depth,
        name=str(item.get("name") or ""),
        text_before=before,
        text_after=after,
    )


def _leaf_nodes(items: list[dict[str, Any]], ctx: CompileContext) -> list[Node]:
    nodes: list[Node] = []
    for i, item in enumerate(items):
        if is_tab_container(item):
            nodes.append(_tab_container(item, ctx, 0))
        elif item.get("type") in LAYOUT_TYPES:
            nodes.append(ManualLayout(item))
        else:
            next_block = items[i + 1] if i + 1 < len(items) else None
            nodes.append(Standalone(item, next_block))
    return nodes


def _dashboard_rows(nodes: list[Node], row_size: int) -> list[Node]:
    """
    Group nodes for the dashboard grid.

    Runs of standalone charts fill rows of `row_size`, runs of content
    blocks share one row, every tab container gets a row of its own and
    manual layouts bring their own row/column headings.
    """
    rows: list[Node] = []
    run: list[Node] = []
    run_kind: Optional[str] = None

    def flush() -> None:
        nonlocal run, run_kind
        if run_kind == "viz":
            for start in range(0, len(run), row_size):
                rows.append(Row(run[start:start + row_size]))
        elif run_kind == "content":
            rows.append(Row(run))
        run, run_kind = [], None

    for node in nodes:
        if isinstance(node, TabContainer):
            flush()
            rows.append(Row([node]))
        elif isinstance(node, ManualLayout):
            flush()
            rows.append(node)
        else:
            kind = "viz" if is_viz(node.spec) else "content"
            if kind != run_kind:
                flush()
                run_kind = kind
            run.append(node)
    flush()
    return rows


def build_nodes(
    items: list[dict[str, Any]],
    ctx: CompileContext,
    labels: Optional[dict[str, str]] = None,
) -> list[Node]:
    """
    Build the node tree for an ordered item stream.

    Items may be vizzes, content blocks, manual layouts and pagination
    markers; items with `tabgroup` paths are folded into tab containers.
    """
    sections: list[Node] = []
    for section_items, marker in split_by_pagination([i for i in items if isinstance(i, dict)]):
        grouped = group_items(section_items, labels)
        nodes = _leaf_nodes(grouped, ctx)
        if ctx.dashboard:
            nodes = _dashboard_rows(nodes, ctx.cfg.dashboard_row_size)
        sections.append(Section(nodes, marker))
    return sections


# ---------------- phase 2: render --------------------------------------------


def render_child(item: dict[str, Any], ctx: CompileContext) -> list[str]:
    """Render one child of a manual layout."""
    if is_viz(item):
        return render_viz(item, ctx, lazy=ctx.lazy_load_charts)
    return render_block(item, ctx, render_child=render_child, where="layout") or []


def _render_standalone(node: Standalone, ctx: CompileContext, *, in_tab: bool = False, lazy: bool = False) -> list[str]:
    spec = node.spec
    if is_viz(spec):
        if in_tab:
            return render_viz(spec, ctx, skip_header=True, lazy=lazy)
        return render_viz(spec, ctx, lazy=ctx.lazy_load_charts)
    lines = render_block(spec, ctx, next_block=node.next_block, render_child=render_child)
    return lines or []


def _tab_heading_level(ctx: CompileContext, depth: int) -> int:
    return (4 if ctx.dashboard else 3) + depth


def _render_tab(tab: Tab, ctx: CompileContext, depth: int) -> list[str]:
    lines = ["#" * _tab_heading_level(ctx, depth) + " " + tab.title, ""]
    content = tab.content
    if isinstance(content, Standalone):
        return lines + _render_standalone(content, ctx, in_tab=True, lazy=tab.lazy)

    if tab.lazy:
        chart_id = "chart-nested-" + "".join(c if c.isalnum() else "-" for c in content.name.lower())
        return lines + [
            "",
            f"::: {{#{chart_id} .chart-lazy data-loaded='false'}}",
            "",
            *_render_container(content, ctx),
            "",
            ":::",
            "",
        ]
    return lines + _render_container(content, ctx)


def _render_container(node: TabContainer, ctx: CompileContext) -> list[str]:
    lines: list[str] = []
    if node.depth == 0 and node.header and not ctx.dashboard:
        lines += [f"## {node.header}", ""]

    if node.text_before:
        lines += ["", node.text_before, ""]

    single = node.tabs[0].content if len(node.tabs) == 1 else None
    if isinstance(single, Standalone):
        lines += ["", *_render_standalone(single, ctx, in_tab=True)]
    else:
        lines += ["", "::: {.panel-tabset}", ""]
        for i, tab in enumerate(node.tabs):
            lines += _render_tab(tab, ctx, node.depth)
            if i < len(node.tabs) - 1:
                lines.append("")
        lines += ["", ":::", ""]

    if node.text_after:
        lines += ["", node.text_after, ""]
    return lines


def render_nodes(nodes: list[Node], ctx: CompileContext) -> list[str]:
    lines: list[str] = []
    for node in nodes:
        if isinstance(node, Section):
            lines += render_nodes(node.nodes, ctx)
        elif isinstance(node, Column):
            lines += ["", "## Column", ""]
            lines += render_nodes(node.nodes, ctx)
        elif isinstance(node, Row):
            lines += ["", "### Row", ""]
            lines += render_nodes(node.nodes, ctx)
        elif isinstance(node, TabContainer):
            lines += _render_container(node, ctx)
        elif isinstance(node, Tab):
            lines += _render_tab(node, ctx, 0)
        elif isinstance(node, ManualLayout):
            lines += render_block(node.spec, ctx, render_child=render_child) or []
        else:
            lines += _render_standalone(node, ctx)
    return lines


def assemble(items: list[dict[str, Any]], ctx: CompileContext, labels: Optional[dict[str, str]] = None) -> list[str]:
    return render_nodes(build_nodes(items, ctx, labels), ctx)
