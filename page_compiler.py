#!/usr/bin/env python3
"""
page_compiler.py

Compile one page spec (a dict, usually loaded from YAML) into Quarto
markdown. The stages run in a fixed order:

    front matter -> feature config -> custom text -> feature switches
    -> setup chunk -> metric data -> overlay / lazy load -> debug hook
    -> left sidebar -> content stream -> right sidebar -> fallback

Every call works on a deep copy of the page and a fresh CompileContext,
so compiling the same page twice gives the same text.
"""
from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Optional
import copy
import re

from compile_context import CompileContext
from config_loader import CompilerConfig, DEFAULT_CONFIG
from content_blocks import (
    LAYOUT_TYPES,
    PRELOAD_KEYS,
    escape_attr,
    has_text,
    preload_variable,
    render_block,
    text_of,
    with_icon,
)
from helper import print_event_gray
from layout import Column, Node, build_nodes, is_pagination, is_viz, render_child, render_nodes
from r_serializer import format_call, quote_string, serialize
from tabgroups import sort_by_insertion
from viz_codegen import collect_unique_filters, iter_vizzes

SIDEBAR_BLOCK_TYPES = {
    "text", "input", "input_row", "image", "badge", "metric", "divider",
    "spacer", "html", "callout", "accordion", "card",
}

FEATURE_FLAGS = (
    ("modals", "needs_modals"),
    ("inputs", "needs_inputs"),
    ("linked_inputs", "needs_linked_inputs"),
    ("show_when", "needs_show_when"),
    ("url_params", "url_params"),
    ("chart_export", "chart_export"),
)

# block type -> setup-chunk comment for its preloads
PRELOAD_GROUPS = (
    (("table", "gt", "reactable", "DT"), "# Load styled table objects"),
    (("hc",), "# Load custom highcharter charts"),
    (("widget",), "# Load htmlwidget objects"),
    (("ggplot",), "# Load ggplot objects"),
)

_URL_RE = re.compile(r"^https?://")
_PARQUET_RE = re.compile(r"\.parquet$", re.IGNORECASE)


# ---------------- small helpers ----------------------------------------------


def slugify(text: Any) -> str:
    """
    Namespace slug for a page name.

    'Sales & Revenue 2024' -> 'sales-revenue-2024'
    """
    slug = str(text or "").lower()
    slug = re.sub(r"[^a-z0-9\-_\s]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    return slug or "page"


def is_collection(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and isinstance(item.get("items"), list)
        and item.get("type") in (None, "collection")
    )


def expand_collection(block: dict[str, Any], labels: dict[str, str]) -> list[dict[str, Any]]:
    """
    Items of a content collection in authoring order.

    Nested collections are expanded in place, collection `defaults` are
    filled into visualizations that lack the key and `tabgroup_labels`
    are merged into `labels`.
    """
    labels.update(block.get("tabgroup_labels") or {})
    defaults = block.get("defaults") or {}
    items: list[dict[str, Any]] = []
    for item in sort_by_insertion([i for i in block["items"] if isinstance(i, dict)]):
        if is_collection(item):
            items += expand_collection(item, labels)
            continue
        if defaults and is_viz(item):
            item = {**defaults, **item}
        items.append(item)
    return items


def find_sidebar(page: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Page sidebar, or the first sidebar carried by a content collection."""
    if isinstance(page.get("sidebar"), dict):
        return page["sidebar"]
    for block in page.get("content_blocks") or []:
        if is_collection(block) and isinstance(block.get("sidebar"), dict):
            return block["sidebar"]
    return None


def walk_blocks(items: Any):
    """Yield every block dict under `items`, entering collections and layouts."""
    if isinstance(items, dict):
        items = [items]
    for item in items or []:
        if not isinstance(item, dict):
            continue
        yield item
        if is_collection(item) or item.get("type") in LAYOUT_TYPES:
            yield from walk_blocks(item.get("items"))
        if item.get("type") == "input_row":
            yield from walk_blocks(item.get("inputs"))


def has_manual_layout(page: dict[str, Any]) -> bool:
    return any(
        b.get("type") in LAYOUT_TYPES
        for b in walk_blocks([*(page.get("content_blocks") or []), *(page.get(".items") or [])])
    )


def _filter_var_names(block: dict[str, Any]) -> list[str]:
    value = block.get("filter_var")
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ValueError(
        f"input {block.get('input_id') or '<unnamed>'!r}: filter_var must be a "
        f"column name or a list of column names, got {type(value).__name__}"
    )


def extract_filter_vars(block: Any) -> list[str]:
    """
    Filter variables declared by input blocks anywhere under `block`.

    Raises ValueError for a malformed filter_var.
    """
    names: list[str] = []
    for item in walk_blocks(block):
        if item.get("type") == "input":
            names += _filter_var_names(item)
    return names


def page_filter_vars(page: dict[str, Any], sidebar: Optional[dict[str, Any]]) -> list[str]:
    """Deduplicated filter variables of the sidebar and content, first use wins."""
    name = page.get("name") or "<unnamed>"
    found: list[str] = []
    if sidebar is not None:
        try:
            found += extract_filter_vars(sidebar.get("blocks"))
        except ValueError as e:
            raise ValueError(f"Page '{name}': sidebar: {e}") from e

    for index, block in enumerate(page.get("content_blocks") or [], start=1):
        try:
            found += extract_filter_vars(block)
        except ValueError as e:
            raise ValueError(f"Page '{name}': content item {index}: {e}") from e
    return list(dict.fromkeys(found))


def data_load_code(data_path: str, var_name: str) -> str:
    """
    R statement that loads one dataset.

    Remote RDS goes through gzcon() because the files are gzip-compressed;
    local files are referenced by basename next to the rendered page.
    """
    is_url = bool(_URL_RE.match(data_path))
    is_parquet = bool(_PARQUET_RE.search(data_path))
    if is_url and is_parquet:
        return f"{var_name} <- arrow::read_parquet({quote_string(data_path)})"
    if is_url:
        return f"{var_name} <- readRDS(gzcon(url({quote_string(data_path)})))"
    basename = PurePosixPath(data_path.replace("\\", "/")).name
    if is_parquet:
        return f"{var_name} <- arrow::read_parquet({quote_string(basename)})"
    return f"{var_name} <- readRDS({quote_string(basename)})"


def _asis_chunk(*body: str) -> list[str]:
    return ["```{r, echo=FALSE, results='asis'}", *body, "```", ""]


# ---------------- stages -----------------------------------------------------


def front_matter(page: dict[str, Any], dashboard: bool) -> list[str]:
    title = with_icon(str(page.get("name") or ""), page.get("icon"))
    title = title.replace("\\", "\\\\").replace('"', '\\"')
    return [
        "---",
        f'title: "{title}"',
        f"format: {'dashboard' if dashboard else 'html'}",
        "---",
        "",
    ]


def feature_config(page: dict[str, Any], ctx: CompileContext, has_sidebar: bool) -> list[str]:
    args = ["accessibility = TRUE"]
    for arg, flag in FEATURE_FLAGS:
        if page.get(flag):
            args.append(f"{arg} = TRUE")
    if has_sidebar:
        args.append("sidebar = TRUE")
    if page.get("lazy_load_charts"):
        args.append("lazy_load = TRUE")
    for key in ("min_cell_size", "cross_tab_output"):
        if page.get(key) is not None:
            args.append(f"{key} = {serialize(page[key])}")
    args.append(f"namespace = {quote_string(slugify(page.get('name')))}")
    return [
        "```{r, include=FALSE}",
        "# Initialize page configuration (CSS/JS for charts)",
        f"{ctx.r_package}::.page_config({', '.join(args)})",
        "```",
        "",
    ]


def feature_switches(page: dict[str, Any], ctx: CompileContext, has_sidebar: bool) -> list[str]:
    pkg = ctx.r_package
    lines: list[str] = []
    if page.get("needs_modals"):
        lines += _asis_chunk(f"{pkg}::enable_modals()")
    if page.get("needs_inputs"):
        args = []
        if page.get("needs_linked_inputs"):
            args.append("linked = TRUE")
        if page.get("needs_show_when"):
            args.append("show_when = TRUE")
        lines += _asis_chunk(f"{pkg}::enable_inputs({', '.join(args)})")
    elif page.get("needs_show_when"):
        lines += _asis_chunk(f"{pkg}::enable_show_when()")
    if page.get("chart_export"):
        lines += _asis_chunk(
            "# Enable chart export buttons (download as PNG/SVG/PDF/CSV)",
            f"{pkg}::enable_chart_export()",
        )
    if has_sidebar:
        lines += _asis_chunk(f"{pkg}::enable_sidebar()")
    return lines


SHOW_WHEN_FALLBACK = [
    "# Conditional-visibility helpers (fallback for older package versions)",
    "if (!exists('show_when_open', mode = 'function')) {",
    r"""  show_when_open  <- function(j) cat(paste0('<div class="viz-show-when" data-show-when=\'', j, '\'>\n'))""",
    r"  show_when_close <- function()  cat('</div>\n')",
    "}",
    "",
]


def data_loading(data_path: Any) -> list[str]:
    if isinstance(data_path, dict):
        lines = ["# Load multiple datasets", ""]
        for name, path in data_path.items():
            lines += [
                f"# Load {name}",
                data_load_code(str(path), str(name)),
                f"cat('{name} loaded:', nrow({name}), 'rows,', ncol({name}), 'columns\\n')",
                "",
            ]
        return lines
    return [
        "# Load data",
        data_load_code(str(data_path), "data"),
        "",
        "# Data summary",
        "cat('Dataset loaded:', nrow(data), 'rows,', ncol(data), 'columns\\n')",
        "",
    ]


def preload_lines(blocks: list[dict[str, Any]]) -> list[str]:
    lines: list[str] = []
    for types, comment in PRELOAD_GROUPS:
        loads: list[str] = []
        for block in blocks:
            block_type = block.get("type")
            if block_type not in types:
                continue
            _, file_key, _ = PRELOAD_KEYS[block_type]
            if block.get(file_key):
                loads.append(f"{preload_variable(block)} <- readRDS({quote_string(str(block[file_key]))})")
        if loads:
            lines += [comment, "", *dict.fromkeys(loads), ""]
    return lines


def setup_chunk(page: dict[str, Any], ctx: CompileContext, vizzes: list[dict[str, Any]]) -> list[str]:
    lines = [
        "```{r setup}",
        "#| echo: false",
        "#| warning: false",
        "#| message: false",
        "#| error: false",
        "#| results: 'hide'",
        "",
        f"library({ctx.r_package})",
        "",
        "# Global chunk options",
        *format_call(
            "knitr::opts_chunk$set",
            [(k, serialize(v)) for k, v in ctx.cfg.knitr_options.items()],
        ),
        "",
    ]

    if page.get("needs_show_when"):
        lines += SHOW_WHEN_FALLBACK

    data_path = page.get("data_path")
    if data_path:
        lines += data_loading(data_path)

        filters = collect_unique_filters(vizzes, ctx)
        if filters:
            lines += [
                "# Create filtered datasets",
                "# Each filter is applied once and reused across visualizations",
                "",
            ]
            for entry in filters:
                lines.append(
                    f"{entry.name} <- {ctx.r_package}::.convert_haven({entry.source_dataset})"
                    f" %>% dplyr::filter({entry.expr})"
                )
            lines.append("")

    blocks = list(walk_blocks([*(page.get("content_blocks") or []), *(page.get(".items") or [])]))
    lines += preload_lines(blocks)
    return lines + ["```", ""]


def metric_data_embed(page: dict[str, Any]) -> list[str]:
    time_var = page.get("time_var")
    if has_text(time_var):
        opener = f"cat(\"<script>window.dashboardrTimeVar = '{time_var}';\")"
    else:
        opener = "cat('<script>')"
    return _asis_chunk(
        "# Embed full data for metric switching",
        opener,
        "cat('window.dashboardrMetricData = ')",
        "cat(jsonlite::toJSON(data, dataframe = 'rows'))",
        "cat(';</script>')",
    )


def overlay_chunk(page: dict[str, Any], ctx: CompileContext) -> list[str]:
    defaults = ctx.cfg.overlay
    theme = page.get("overlay_theme") or defaults["theme"]
    text = page.get("overlay_text") or defaults["text"]
    duration = page.get("overlay_duration") or defaults["duration"]
    text = str(text).replace("\\", "\\\\").replace('"', '\\"')
    return [
        "",
        "```{r, echo=FALSE, message=FALSE, warning=FALSE, results='asis'}",
        "# Loading overlay",
        f'{ctx.r_package}::add_loading_overlay("{text}", {duration}, theme = "{theme}")',
        "```",
        "",
    ]


def lazy_load_chunk(page: dict[str, Any], ctx: CompileContext) -> list[str]:
    defaults = ctx.cfg.lazy_load
    margin = page.get("lazy_load_margin") or defaults["margin"]
    tabs = page.get("lazy_load_tabs")
    if tabs is None:
        tabs = defaults["tabs"]
    theme = (page.get("overlay_theme") if page.get("overlay") else None) or defaults["theme"]
    call = (
        f"{ctx.r_package}::enable_lazy_load(margin = {quote_string(str(margin))}, "
        f"tabs = {serialize(bool(tabs))}, theme = {quote_string(str(theme))})"
    )
    return [""] + _asis_chunk(call)


def render_sidebar(sidebar: dict[str, Any], ctx: CompileContext) -> list[str]:
    attrs = [".sidebar"]
    if has_text(sidebar.get("width")):
        attrs.append(f'width="{escape_attr(sidebar["width"])}"')
    if sidebar.get("open") is False:
        attrs.append('open="false"')
    if has_text(sidebar.get("class")):
        attrs += ["." + c for c in str(sidebar["class"]).split()]
    lines = ["", "## {" + " ".join(attrs) + "}", ""]

    styles: list[str] = []
    if has_text(sidebar.get("background")):
        styles.append(f"background-color: {sidebar['background']}")
    if has_text(sidebar.get("padding")):
        styles.append(f"padding: {sidebar['padding']}")
    border = sidebar.get("border")
    if border is False:
        styles += ["border-right: none", "box-shadow: none"]
    elif isinstance(border, str):
        styles.append(f"border-right: {border}")
    if styles:
        css = "; ".join(styles).replace("'", "\\'")
        lines += [""] + _asis_chunk(f"cat('<style>.sidebar {{ {css}; }}</style>')")

    if has_text(sidebar.get("title")):
        lines += [f"### {text_of(sidebar['title'])}", ""]

    blocks = [b for b in sidebar.get("blocks") or [] if isinstance(b, dict)]
    for i, block in enumerate(blocks):
        if block.get("type") not in SIDEBAR_BLOCK_TYPES:
            continue
        next_block = blocks[i + 1] if i + 1 < len(blocks) else None
        lines += render_block(
            block, ctx, next_block=next_block, render_child=render_child, where="sidebar"
        ) or []
    return lines


# ---------------- content stream ---------------------------------------------


def _runs(items: list[dict[str, Any]]) -> list[list[dict[str, Any]]]:
    """Split a stream into runs of viz/pagination items and runs of everything else."""
    runs: list[list[dict[str, Any]]] = []
    kind: Optional[bool] = None
    for item in items:
        item_kind = is_viz(item) or is_pagination(item)
        if not runs or item_kind != kind:
            runs.append([])
            kind = item_kind
        runs[-1].append(item)
    return runs


def stream_nodes(items: list[dict[str, Any]], ctx: CompileContext, labels: dict[str, str]) -> list[Node]:
    nodes: list[Node] = []
    for run in _runs(items):
        nodes += build_nodes(run, ctx, labels)
    return nodes


def expand_stream(items: Any, labels: dict[str, str]) -> list[dict[str, Any]]:
    if is_collection(items):
        return expand_collection(items, labels)
    out: list[dict[str, Any]] = []
    for item in items or []:
        if is_collection(item):
            out += expand_collection(item, labels)
        elif isinstance(item, dict):
            out.append(item)
    return out


def uses_show_when(items: Any) -> bool:
    """True when any item, or any child of a layout, has a show_when condition."""
    for item in items or []:
        if not isinstance(item, dict):
            continue
        if item.get("show_when") is not None:
            return True
        if isinstance(item.get("items"), list) and uses_show_when(item["items"]):
            return True
    return False


def _prepare_vizzes(
    page: dict[str, Any],
    streams: list[list[dict[str, Any]]],
    filter_vars: list[str],
) -> list[dict[str, Any]]:
    """
    Inject page-wide settings into every visualization of the expanded
    streams and return them all.
    """
    vizzes = list(iter_vizzes([item for stream in streams for item in stream]))
    for spec in vizzes:
        if filter_vars and spec.get("cross_tab_filter_vars") is None:
            spec["cross_tab_filter_vars"] = list(filter_vars)
        if page.get("backend") and spec.get("backend") is None:
            spec["backend"] = page["backend"]
    return vizzes


# ---------------- entry point ------------------------------------------------


def compile_page(page: dict[str, Any], cfg: CompilerConfig = DEFAULT_CONFIG, *, debug: bool = False) -> str:
    """
    Compile a page spec into the text of a .qmd document.

    Raises ValueError for invalid specs (show_when, inputs, layouts, block
    fields); messages name the page and the offending item.
    """
    page = copy.deepcopy(page)
    name = page.get("name") or "<unnamed>"

    def trace(stage: str) -> None:
        if debug:
            print_event_gray(f"[{name}] {stage}")

    sidebar = find_sidebar(page)
    ctx = CompileContext(
        cfg=cfg,
        dashboard=sidebar is not None,
        has_data=bool(page.get("data_path")),
        lazy_load_charts=bool(page.get("lazy_load_charts")),
        lazy_load_tabs=bool(page.get("lazy_load_tabs")),
        backend=page.get("backend"),
    )

    labels: dict[str, str] = dict(page.get("tabgroup_labels") or {})
    streams = [
        expand_stream(page.get("content_blocks"), labels),
        expand_stream(page.get(".items"), labels),
    ]
    if not page.get("viz_embedded_in_content"):
        streams.append(expand_stream(page.get("visualizations"), labels))

    filter_vars = page_filter_vars(page, sidebar)
    vizzes = _prepare_vizzes(page, streams, filter_vars)
    if any(uses_show_when(stream) for stream in streams) or uses_show_when((sidebar or {}).get("blocks")):
        page["needs_show_when"] = True

    trace("front matter")
    lines = front_matter(page, ctx.dashboard)
    lines += feature_config(page, ctx, sidebar is not None)

    if has_text(page.get("text")):
        lines += [text_of(page["text"]), ""]

    lines += feature_switches(page, ctx, sidebar is not None)

    if page.get("data_path") or page.get("visualizations") or page.get("content_blocks") or page.get(".items"):
        trace("setup chunk")
        lines += setup_chunk(page, ctx, vizzes)

    if page.get("needs_metric_data") and page.get("data_path"):
        lines += metric_data_embed(page)
    if page.get("overlay"):
        lines += overlay_chunk(page, ctx)
    if ctx.lazy_load_charts:
        lines += lazy_load_chunk(page, ctx)
    if page.get("debug_hook") or page.get("lazy_debug"):
        lines += _asis_chunk(f"{ctx.r_package}::enable_debug_hook()")

    position = (sidebar or {}).get("position") or "left"
    if sidebar is not None and position == "left":
        trace("sidebar (left)")
        lines += render_sidebar(sidebar, ctx)

    trace("content")
    nodes: list[Node] = []
    for stream in streams:
        nodes += stream_nodes(stream, ctx, labels)

    needs_column = sidebar is not None and (position == "right" or not has_manual_layout(page))
    if needs_column:
        nodes = [Column(nodes)]
    lines += render_nodes(nodes, ctx)

    if sidebar is not None and position == "right":
        trace("sidebar (right)")
        lines += render_sidebar(sidebar, ctx)

    has_viz = bool(page.get("visualizations")) and not page.get("viz_embedded_in_content")
    if not (has_text(page.get("text")) or page.get("content_blocks") or page.get(".items") or has_viz):
        lines.append(cfg.fallback_text)

    return "\n".join(lines) + "\n"
