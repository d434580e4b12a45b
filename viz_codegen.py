#!/usr/bin/env python3
"""
viz_codegen.py

Generate the R chunk for one visualization spec.

    spec:  {"type": "viz", "viz_type": "bar", "x_var": "degree", "title": "Degrees"}
    ->
    ## Degrees

    ```{r bar-degree}
    # Degrees
    result <- tryCatch({
      viz_bar(
        data = data,
        x_var = 'degree',
        title = 'Degrees'
      )
    }, error = function(e) {
      stop("Visualization failed ('Degrees', type 'bar'): ", conditionMessage(e), call. = FALSE)
    })

    result
    ```

generate() returns only the R statements; render_viz() adds heading,
surrounding text, lazy-load container and the show_when wrapper.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional
import hashlib
import re

from compile_context import CompileContext
from content_blocks import has_text, text_of, with_icon
from r_expr import canonical_expression
from r_serializer import RCode, escape_string, quote_string, serialize
from show_when import show_when_json

VIZ_FUNCTIONS = {
    "map": "viz_map",
    "treemap": "viz_treemap",
    "stackedbars": "viz_stackedbars",
    "stackedbar": "viz_stackedbar",
    "histogram": "viz_histogram",
    "heatmap": "viz_heatmap",
    "timeline": "viz_timeline",
    "bar": "viz_bar",
    "scatter": "viz_scatter",
    "density": "viz_density",
    "boxplot": "viz_boxplot",
    "pie": "viz_pie",
    "donut": "viz_pie",
    "lollipop": "viz_lollipop",
    "dumbbell": "viz_dumbbell",
    "gauge": "viz_gauge",
    "funnel": "viz_funnel",
    "pyramid": "viz_funnel",
    "sankey": "viz_sankey",
    "waffle": "viz_waffle",
}

# Types that are aliases of another renderer plus a default argument.
TYPE_DEFAULTS: dict[str, dict[str, Any]] = {
    "donut": {"inner_size": "50%"},
    "pyramid": {"reversed": True},
}

# legacy name -> current name
LEGACY_ALIASES = (
    ("questions", "x_vars"),
    ("question_labels", "x_var_labels"),
    ("response_var", "y_var"),
    ("response_filter", "y_filter"),
    ("response_filter_label", "y_filter_label"),
    ("response_filter_combine", "y_filter_combine"),
)

EXCLUDED_PARAMS = {
    "type", "viz_type", "data_path", "tabgroup", "text", "icon", "text_position",
    "text_before_tabset", "text_after_tabset", "text_before_viz", "text_after_viz",
    "height", "filter", "data", "has_data", "multi_dataset", "title_tabset",
    "nested_children", "drop_na_vars", "data_is_dataframe", "data_serialized",
    "alter_data", "show_when", "export", "annotations", "reference_lines",
    "cross_tab_filter_vars", ".insertion_index", ".min_index", ".pagination_section",
    "pagination_break",
    "questions", "question_labels",
    "response_var", "response_filter", "response_filter_label", "response_filter_combine",
}

WEIGHT_VAR_TYPES = {
    "bar", "boxplot", "density", "funnel", "pyramid", "heatmap", "histogram",
    "lollipop", "pie", "donut", "stackedbar", "stackedbars", "timeline", "waffle",
}

CROSS_TAB_TYPES = {"stackedbar", "stackedbars", "timeline"}

# viz_type -> variables that must be non-missing for the chart
DROP_NA_VARS: dict[str, tuple[str, ...]] = {
    "stackedbar": ("x_var", "stack_var"),
    "timeline": ("y_var", "group_var", "time_var"),
    "histogram": ("x_var", "group_var"),
    "bar": ("x_var", "group_var"),
    "heatmap": ("x_var", "y_var", "fill_var"),
    "scatter": ("x_var", "y_var", "color_var", "size_var"),
    "density": ("x_var", "group_var"),
    "boxplot": ("y_var", "x_var"),
    "pie": ("x_var",),
    "donut": ("x_var",),
    "lollipop": ("x_var", "group_var"),
    "dumbbell": ("x_var", "low_var", "high_var"),
    "funnel": ("x_var", "y_var"),
    "pyramid": ("x_var", "y_var"),
    "sankey": ("from_var", "to_var", "value_var"),
    "waffle": ("x_var",),
}

# viz_type -> variables that name the chunk
LABEL_VARS: dict[str, tuple[str, ...]] = {
    "stackedbar": ("x_var", "stack_var", "group_var"),
    "bar": ("x_var", "stack_var", "group_var"),
    "timeline": ("y_var", "group_var"),
    "histogram": ("x_var",),
    "heatmap": ("x_var", "y_var", "value_var"),
    "density": ("x_var", "group_var"),
    "boxplot": ("y_var", "x_var"),
}


@dataclass(frozen=True)
class FilterEntry:
    name: str
    expr: str
    source_dataset: str


# ---------------- dataset references -----------------------------------------


def source_dataset(spec: dict[str, Any], ctx: CompileContext) -> str:
    name = spec.get("data")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return ctx.cfg.default_dataset


def filter_dataset_name(source: str, expr: str, ctx: CompileContext) -> str:
    """Variable name of the filtered copy of `source` for a canonical filter."""
    digest = hashlib.sha1(expr.encode("utf-8")).hexdigest()
    return f"{source}_filtered_{digest[:ctx.cfg.filter_hash_length]}"


def filter_entry(spec: dict[str, Any], ctx: CompileContext) -> Optional[FilterEntry]:
    if spec.get("filter") is None:
        return None
    source = source_dataset(spec, ctx)
    expr = canonical_expression(spec["filter"])
    return FilterEntry(filter_dataset_name(source, expr, ctx), expr, source)


def collect_unique_filters(specs: list[dict[str, Any]], ctx: CompileContext) -> list[FilterEntry]:
    """
    One FilterEntry per distinct (dataset, canonical filter) pair, in order
    of first appearance.
    """
    seen: dict[tuple[str, str], FilterEntry] = {}
    for spec in specs:
        entry = filter_entry(spec, ctx)
        if entry is not None:
            seen.setdefault((entry.source_dataset, entry.expr), entry)
    return list(seen.values())


def data_variable(spec: dict[str, Any], ctx: CompileContext) -> str:
    entry = filter_entry(spec, ctx)
    if entry is not None:
        return entry.name
    return source_dataset(spec, ctx)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def drop_na_variables(spec: dict[str, Any]) -> list[str]:
    viz_type = spec.get("viz_type")
    if viz_type == "stackedbars":
        chosen = spec.get("x_vars") or spec.get("x_var") or spec.get("questions")
        return [str(v) for v in _as_list(chosen)]
    names: list[str] = []
    for key in DROP_NA_VARS.get(viz_type, ()):
        names += [str(v) for v in _as_list(spec.get(key))]
    return names


def data_argument(spec: dict[str, Any], ctx: CompileContext) -> Optional[str]:
    """
    R text for the `data =` argument, or None when the chart gets no data.
    """
    inline = spec.get("data_serialized")
    data = spec.get("data")
    if has_text(inline) and not (isinstance(data, str) and data.strip()):
        return f"as.data.frame({inline})"
    if isinstance(data, dict):
        return f"as.data.frame({serialize(data)})"

    if spec.get("data_path") is None and not spec.get("has_data") and not ctx.has_data:
        return None

    var = data_variable(spec, ctx)
    if spec.get("drop_na_vars"):
        names = drop_na_variables(spec)
        if names:
            return f"{var} %>% tidyr::drop_na({', '.join(names)})"
    return var


# ---------------- argument list ----------------------------------------------


def apply_aliases(spec: dict[str, Any]) -> dict[str, Any]:
    """Copy legacy parameters to their current names and inject type defaults."""
    out = dict(spec)
    for legacy, current in LEGACY_ALIASES:
        if out.get(legacy) is not None and out.get(current) is None:
            out[current] = out[legacy]
    for key, value in TYPE_DEFAULTS.get(out.get("viz_type"), {}).items():
        if out.get(key) is None:
            out[key] = value
    return out


def call_arguments(spec: dict[str, Any], ctx: CompileContext) -> list[tuple[str, str]]:
    spec = apply_aliases(spec)
    viz_type = spec.get("viz_type")

    args: list[tuple[str, str]] = []
    data_arg = data_argument(spec, ctx)
    if data_arg is not None:
        args.append(("data", data_arg))

    excluded = set(EXCLUDED_PARAMS)
    if viz_type not in WEIGHT_VAR_TYPES:
        excluded.add("weight_var")

    for key, value in spec.items():
        if key in excluded:
            continue
        args.append((key, serialize(value)))

    cross_tab = spec.get("cross_tab_filter_vars")
    if viz_type in CROSS_TAB_TYPES and cross_tab:
        args.append(("cross_tab_filter_vars", serialize(_as_list(cross_tab))))
    return args


def function_name(viz_type: str) -> str:
    return VIZ_FUNCTIONS.get(viz_type, viz_type)


def _escape_message(text: Any) -> str:
    return escape_string(str(text), quote='"')


def wrapped_call(function: str, args: list[tuple[str, str]], label: Any, viz_type: Any) -> list[str]:
    lines = ["result <- tryCatch({"]
    if not args:
        lines.append(f"  {function}()")
    else:
        lines.append(f"  {function}(")
        for i, (name, value) in enumerate(args):
            comma = "," if i < len(args) - 1 else ""
            lines.append(f"    {name} = {value}{comma}")
        lines.append("  )")
    lines += [
        "}, error = function(e) {",
        f"  stop(\"Visualization failed ('{_escape_message(label)}', type "
        f"'{_escape_message(viz_type)}'): \", conditionMessage(e), call. = FALSE)",
        "})",
    ]
    return lines


# ---------------- post-processing --------------------------------------------


def _reference_line(entry: dict[str, Any], axis: str) -> dict[str, Any]:
    color = entry.get("color") or "#333333"
    line: dict[str, Any] = {
        "value": entry.get(axis),
        "color": color,
        "width": entry.get("width", 2),
        "dashStyle": entry.get("dash") or entry.get("style") or "Solid",
        "zIndex": entry.get("zIndex", 4),
    }
    if entry.get("label") is not None:
        line["label"] = {"text": entry["label"], "style": {"fontSize": "11px", "color": color}}
    return line


def _highchart_step(comment: str, statement: str) -> list[str]:
    return [
        "",
        f"# {comment}",
        "if (inherits(result, 'highchart')) {",
        f"  result <- {statement}",
        "}",
    ]


def reference_line_statements(spec: dict[str, Any]) -> list[str]:
    entries = [e for e in _as_list(spec.get("reference_lines")) if isinstance(e, dict)]
    lines: list[str] = []
    for axis, function in (("y", "hc_yAxis"), ("x", "hc_xAxis")):
        picked = [_reference_line(e, axis) for e in entries if e.get(axis) is not None]
        if picked:
            lines += _highchart_step(
                f"Add {axis}-axis reference lines",
                f"highcharter::{function}(result, plotLines = {serialize(picked)})",
            )
    return lines


def annotation_statements(spec: dict[str, Any]) -> list[str]:
    entries = [e for e in _as_list(spec.get("annotations")) if isinstance(e, dict)]
    if not entries:
        return []
    labels = []
    for ann in entries:
        labels.append({
            "point": {"x": ann.get("x"), "y": ann.get("y", 0), "xAxis": 0, "yAxis": 0},
            "text": ann.get("label") or "",
            "backgroundColor": ann.get("color") or "rgba(255,255,255,0.9)",
            "borderColor": ann.get("color") or "#333333",
            "style": {"fontSize": "11px"},
        })
    payload = [{
        "labels": labels,
        "labelOptions": {"shape": "callout", "borderRadius": 4, "padding": 6},
    }]
    return _highchart_step(
        "Add annotations",
        f"highcharter::hc_annotations(result, {serialize(payload)})",
    )


def post_processing(spec: dict[str, Any], ctx: CompileContext) -> list[str]:
    """
    Statements applied to `result` after the call, in a fixed order:
    height, export, reference lines, annotations, cross-tab embed and the
    fixed-height wrapper. The wrapper changes the object's class so it
    has to come last.
    """
    height = spec.get("height")
    lines: list[str] = []

    if height is not None:
        lines += _highchart_step("Set chart height", f"highcharter::hc_size(result, height = {height})")
    if spec.get("export") is True:
        lines += _highchart_step("Enable chart export button", "highcharter::hc_exporting(result, enabled = TRUE)")
    lines += reference_line_statements(spec)
    lines += annotation_statements(spec)

    if spec.get("viz_type") in CROSS_TAB_TYPES and _as_list(spec.get("cross_tab_filter_vars")):
        lines += ["", f"result <- {ctx.r_package}:::.embed_cross_tab(result)"]

    if height is not None:
        lines += [
            "",
            "# Force container height with explicit wrapper",
            "result <- htmltools::div(",
            f"  style = 'height: {height}px !important; min-height: {height}px !important; width: 100%; overflow: visible;',",
            "  result",
            ")",
        ]
    return lines + ["", "result"]


# ---------------- generators -------------------------------------------------


def generate_typed(spec: dict[str, Any], ctx: CompileContext) -> list[str]:
    viz_type = spec["viz_type"]
    function = function_name(viz_type)
    label = spec.get("title") or viz_type or function
    lines = wrapped_call(function, call_arguments(spec, ctx), label, viz_type)
    return lines + post_processing(spec, ctx)


def generate_function(spec: dict[str, Any], ctx: CompileContext) -> list[str]:
    """A spec with `fn` and `args` calls an arbitrary R function."""
    args = dict(spec.get("args") or {})
    has_data = spec.get("data_path") is not None or spec.get("has_data") or ctx.has_data
    if "data" in args and has_data:
        args["data"] = RCode(data_variable(spec, ctx))

    rendered = ", ".join(f"{name} = {serialize(value)}" for name, value in args.items())
    lines = [f"result <- {spec['fn']}({rendered})"]

    height = spec.get("height")
    if height is not None:
        lines += [
            "",
            "# Force container height with explicit wrapper",
            "if (inherits(result, 'highchart')) {",
            f"  result <- highcharter::hc_size(result, height = {height})",
            "}",
            "result <- htmltools::div(",
            f"  style = 'height: {height}px !important; min-height: {height}px !important; width: 100%; overflow: visible;',",
            "  result",
            ")",
        ]
    return lines + ["", "result"]


def generate(spec: dict[str, Any], ctx: CompileContext) -> list[str]:
    """
    R statements for a visualization, ending with a bare `result`.
    """
    spec = {k: v for k, v in spec.items() if k != "nested_children"}
    if spec.get("viz_type") is not None:
        return generate_typed(spec, ctx)
    if spec.get("fn") is not None:
        return generate_function(spec, ctx)
    raise ValueError(
        f"Visualization {spec.get('title') or '<untitled>'!r} has neither viz_type nor fn"
    )


# ---------------- chunk labels -----------------------------------------------


def sanitize_label(text: str, max_length: int = 50) -> str:
    label = text.lower().replace("/", "-")
    label = re.sub(r"[_. #]", "-", label)
    label = re.sub(r"[^a-z0-9-]", "-", label)
    label = re.sub(r"-+", "-", label).strip("-")
    if len(label) > max_length:
        label = label[:max_length].rstrip("-")
    return label


def _label_vars(spec: dict[str, Any], viz_type: str) -> list[str]:
    if viz_type == "stackedbars":
        chosen = _as_list(spec.get("x_vars") or spec.get("x_var") or spec.get("questions"))
        return [str(chosen[0])] if chosen else []
    names: list[str] = []
    for key in LABEL_VARS.get(viz_type, ()):
        names += [str(v) for v in _as_list(spec.get(key))]
    return names


def base_label(spec: dict[str, Any], max_length: int = 50) -> str:
    """
    Readable label source, by priority: tabgroup path, type plus its first
    two variables, title, type.
    """
    label: Optional[str] = None
    tabgroup = spec.get("tabgroup")
    if tabgroup:
        label = "/".join(tabgroup) if isinstance(tabgroup, (list, tuple)) else str(tabgroup)

    viz_type = spec.get("viz_type") or spec.get("type")
    if label is None and viz_type:
        names = _label_vars(spec, viz_type)
        if names:
            label = f"{viz_type}-{'-'.join(names[:2])}"

    if label is None and spec.get("title"):
        label = str(spec["title"])
    if label is None:
        label = str(viz_type or "viz")

    return sanitize_label(label, max_length) or "viz"


def chunk_label(spec: dict[str, Any], ctx: CompileContext) -> str:
    return ctx.claim_label(base_label(spec, ctx.cfg.chunk_label_max_length))


# ---------------- full chunk -------------------------------------------------


def render_viz(
    spec: dict[str, Any],
    ctx: CompileContext,
    heading_level: Optional[int] = None,
    skip_header: bool = False,
    lazy: bool = False,
) -> list[str]:
    """
    Heading, texts and R chunk for one visualization.

    Raises ValueError when `show_when` cannot be parsed.
    """
    spec = {k: v for k, v in spec.items() if k != "nested_children"}
    level = heading_level or ctx.heading_level
    lines: list[str] = []

    if not skip_header and spec.get("title"):
        lines += ["#" * level + " " + with_icon(str(spec["title"]), spec.get("icon")), ""]

    if has_text(spec.get("text_before_viz")):
        lines += ["", text_of(spec["text_before_viz"]), ""]

    legacy_text = spec.get("text")
    text_position = spec.get("text_position") or "above"
    if has_text(legacy_text) and text_position == "above" and spec.get("text_before_viz") is None:
        lines += ["", text_of(legacy_text), ""]

    label = chunk_label(spec, ctx)
    if lazy:
        chart_id = "chart-" + re.sub(r"[^a-z0-9]", "-", label.lower())
        lines += ["", f"::: {{#{chart_id} .chart-lazy data-loaded='false'}}", ""]

    condition = show_when_json(spec["show_when"]) if spec.get("show_when") is not None else None

    lines.append(f"```{{r {label}}}")
    if condition is not None:
        lines.append("#| results: 'asis'")
    lines.append(f"# {spec.get('title') or str(spec.get('viz_type')) + ' visualization'}")

    if condition is not None:
        lines.append(f"show_when_open({quote_string(condition)})")
    lines += generate(spec, ctx)
    if condition is not None:
        lines.append("show_when_close()")
    lines.append("```")

    if lazy:
        lines += ["", ":::", ""]

    if has_text(spec.get("text_after_viz")):
        lines += ["", text_of(spec["text_after_viz"]), ""]
    if has_text(legacy_text) and text_position == "below" and spec.get("text_after_viz") is None:
        lines += ["", text_of(legacy_text), ""]

    lines.append("")
    return lines


def iter_vizzes(items: Any) -> Iterator[dict[str, Any]]:
    """
    Yield every viz spec found under `items`, descending into content
    collections, tab containers, manual layouts and `.items` lists.
    """
    if isinstance(items, dict):
        items = [items]
    if not isinstance(items, (list, tuple)):
        return
    for item in items:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "viz" or (item.get("type") is None and (item.get("viz_type") or item.get("fn"))):
            yield item
            continue
        for key in ("items", ".items", "tabs", "visualizations", "content_blocks"):
            if key in item:
                yield from iter_vizzes(item[key])
