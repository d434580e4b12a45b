#!/usr/bin/env python3
"""
content_blocks.py

One renderer per content block type. Each renderer takes a block spec (a
plain dict as loaded from YAML) and returns the Quarto lines for it.

Dispatch goes through render_block(): unknown block types return None so a
page written for a newer block vocabulary still compiles. Structural misuse
(layout children with tabgroups, invalid inputs) raises ValueError instead.

Preload statements for out-of-band objects (table_file, hc_file, ...) are
collected by the page compiler's setup chunk, not here.
"""
from __future__ import annotations

from typing import Any, Callable, Optional
import html
import json
import re

from compile_context import CompileContext
from r_expr import strip_formula
from r_serializer import RCode, RFormula, format_call, serialize
from show_when import show_when_json
from tabgroups import insertion_key

RenderChild = Callable[[dict[str, Any], CompileContext], list[str]]

CALLOUT_TYPES = {"note", "warning", "important", "tip", "caution"}

BADGE_COLORS = {"success", "warning", "danger", "info", "primary", "secondary"}

VALID_INPUT_TYPES = (
    "select_multiple", "select_single", "checkbox", "radio", "switch",
    "slider", "text", "number", "button_group",
)
VALID_INPUT_SIZES = ("sm", "md", "lg")

LAYOUT_TYPES = {"layout_row", "layout_column"}

# Blocks that reference an object saved out-of-band:
# type -> (variable key, file key, default variable name)
PRELOAD_KEYS: dict[str, tuple[str, str, str]] = {
    "table": ("table_var", "table_file", "data"),
    "gt": ("table_var", "table_file", "data"),
    "reactable": ("table_var", "table_file", "data"),
    "DT": ("table_var", "table_file", "data"),
    "hc": ("hc_var", "hc_file", "hc_obj"),
    "widget": ("widget_var", "widget_file", "widget_obj"),
    "ggplot": ("plot_var", "plot_file", "plot_obj"),
}

# A "|" means any one of the alternatives satisfies the requirement.
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "image": ("src",),
    "video": ("url|src",),
    "iframe": ("url|src",),
    "code": ("code",),
}

_YOUTUBE_RE = re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/)([^&?/#]+)")
_VIMEO_RE = re.compile(r"vimeo\.com/(?:.*/)?([0-9]+)")


# ---------------- helpers ----------------------------------------------------


def escape_attr(value: Any) -> str:
    """Escape a value embedded in an HTML attribute."""
    return html.escape(str(value), quote=True)


def text_of(value: Any) -> str:
    """Join multi-line text given as a list; None becomes ''."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "\n".join(str(v) for v in value)
    return str(value)


def has_text(value: Any) -> bool:
    return bool(text_of(value).strip())


def icon_shortcode(icon: str) -> str:
    """
    Turn 'collection:name' into a Quarto iconify shortcode.

    Values that already are shortcodes are returned unchanged.
    """
    if "{{< iconify" in icon:
        return icon
    parts = icon.split(":")
    if len(parts) != 2 or not all(parts):
        raise ValueError(
            f"Icon name must be in format 'collection:name' (e.g. 'ph:users-three'), got {icon!r}"
        )
    return f"{{{{< iconify {parts[0]} {parts[1]} >}}}}"


def with_icon(text: str, icon: Optional[str]) -> str:
    if not icon:
        return text
    return f"{icon_shortcode(icon)} {text}"


def dataset_ref(block: dict[str, Any], ctx: CompileContext) -> RCode:
    name = block.get("data")
    if isinstance(name, str) and name.strip():
        return RCode(name.strip())
    return RCode(ctx.cfg.default_dataset)


def validate_required_fields(block: dict[str, Any], where: str = "content block") -> None:
    """
    Raise ValueError when a block lacks a field its renderer cannot do without.
    """
    block_type = block.get("type", "")
    missing: list[str] = []
    for field in REQUIRED_FIELDS.get(block_type, ()):
        options = field.split("|")
        if not any(has_text(block.get(opt)) for opt in options):
            missing.append(field)
    if missing:
        raise ValueError(
            f"Invalid {block_type} block in {where}: "
            f"missing required field(s): {', '.join(missing)}."
        )


def _chunk(body: list[str], options: list[str], header: str = "```{r}") -> list[str]:
    return ["", header, *options, *body, "```", ""]


# ---------------- text-like blocks -------------------------------------------


def render_text(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    content = block.get("content")
    if content is None:
        content = block.get("text")
    return ["", text_of(content), ""]


def render_image(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    src = str(block.get("src") or "")
    alt = str(block.get("alt") or "")
    link = block.get("link")

    styled = any(block.get(k) is not None for k in ("width", "height", "align", "class"))
    if styled:
        attrs = [f'src="{escape_attr(src)}"', f'alt="{escape_attr(alt)}"']
        for key in ("width", "height"):
            if block.get(key) is not None:
                attrs.append(f'{key}="{escape_attr(block[key])}"')
        align = block.get("align")
        if align is not None:
            style = f"text-align: {align};"
            if align == "center":
                style += " display: block; margin-left: auto; margin-right: auto;"
            attrs.append(f'style="{escape_attr(style)}"')
        if block.get("class") is not None:
            attrs.append(f'class="{escape_attr(block["class"])}"')
        tag = "<img " + " ".join(attrs) + " />"
        if link:
            tag = f'<a href="{escape_attr(link)}">{tag}</a>'
    else:
        tag = f"![{alt}]({src})"
        if link:
            tag = f"[{tag}]({link})"

    lines = ["", tag, ""]
    if has_text(block.get("caption")):
        lines += [f"*{text_of(block['caption'])}*", ""]
    return lines


def render_callout(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    callout_type = str(block.get("callout_type") or "note").lower()
    if callout_type not in CALLOUT_TYPES:
        callout_type = "note"

    lines = ["", f"::: {{.callout-{callout_type}}}"]
    if has_text(block.get("title")):
        lines.append(f"## {text_of(block['title'])}")
    body = block.get("content")
    if body is None:
        body = block.get("text")
    lines += [text_of(body), ":::", ""]
    return lines


def render_divider(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    styles = {
        "thick": "<hr style='border: 3px solid #333;' />",
        "dashed": "<hr style='border-top: 2px dashed #ccc;' />",
        "dotted": "<hr style='border-top: 2px dotted #ccc;' />",
    }
    return ["", styles.get(str(block.get("style") or "default"), "---"), ""]


def render_code(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    language = str(block.get("language") or "")
    return ["", f"```{language}", text_of(block.get("code")), "```", ""]


def render_card(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    lines = ["", "<div class='card'>"]
    if has_text(block.get("title")):
        lines.append(f"<div class='card-header'>{text_of(block['title'])}</div>")
    lines += ["<div class='card-body'>", text_of(block.get("text")), "</div>", "</div>", ""]
    return lines


def render_accordion(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    title = text_of(block.get("title")) or "Details"
    return ["", "<details>", f"<summary>{title}</summary>", "", text_of(block.get("text")), "", "</details>", ""]


def render_iframe(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    url = block.get("url") or block.get("src")
    width = block.get("width") or "100%"
    height = block.get("height") or "500px"
    style = block.get("style")

    tag = (
        f"<iframe src='{escape_attr(url)}'"
        f" width='{escape_attr(width)}'"
        f" height='{escape_attr(height)}'"
        " frameborder='0'"
        " allowfullscreen"
    )
    if has_text(style):
        tag += f" style='{escape_attr(style)}'"
    tag += "></iframe>"
    return ["", tag, ""]


def video_embed_url(url: str) -> Optional[str]:
    """
    Canonical embed URL for YouTube and Vimeo links, else None.

    Example:
        'https://www.youtube.com/watch?v=abc123&t=5' -> 'https://www.youtube.com/embed/abc123'
        'https://vimeo.com/76979871'                  -> 'https://vimeo.com/76979871'
    """
    match = _YOUTUBE_RE.search(url)
    if match:
        return f"https://www.youtube.com/embed/{match.group(1)}"
    match = _VIMEO_RE.search(url)
    if match:
        return f"https://vimeo.com/{match.group(1)}"
    return None


def render_video(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    url = str(block.get("url") or block.get("src"))
    embed = video_embed_url(url)
    if embed is not None:
        return ["", f"{{{{< video {embed} >}}}}", ""]
    return ["", f"<video controls src='{escape_attr(url)}' width='100%'></video>", ""]


def render_spacer(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    height = block.get("height") or "1rem"
    return ["", f"<div style='height: {escape_attr(height)};'></div>", ""]


def render_html(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    return ["", text_of(block.get("html")), ""]


def render_quote(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    lines = [""]
    for line in text_of(block.get("quote")).split("\n"):
        lines.append(f"> {line}".rstrip())
    attribution = block.get("attribution")
    if attribution:
        lines.append(">")
        cite = block.get("cite")
        if cite:
            lines.append(f"> \u2014 [{attribution}]({cite})")
        else:
            lines.append(f"> \u2014 {attribution}")
    lines.append("")
    return lines


def render_badge(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    color = str(block.get("color") or "primary")
    color_class = f"badge-{color}" if color in BADGE_COLORS else "badge-primary"
    return ["", f"<span class='badge {color_class}'>{text_of(block.get('text'))}</span>", ""]


def render_metric(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    icon_html = ""
    if block.get("icon"):
        icon_html = icon_shortcode(str(block["icon"])).replace(" >}}", " size=2em >}}")

    color_style = ""
    if block.get("color"):
        color_style = f" style='border-left: 4px solid {escape_attr(block['color'])};'"

    subtitle_html = ""
    if block.get("subtitle") is not None:
        subtitle_html = f"<p class='text-muted small'>{text_of(block['subtitle'])}</p>"

    metric_html = (
        f"<div class='card mb-3'{color_style}>"
        "<div class='card-body'>"
        "<div class='d-flex justify-content-between align-items-start'>"
        "<div>"
        f"<h6 class='card-subtitle mb-2 text-muted'>{text_of(block.get('title'))}</h6>"
        f"<h2 class='card-title mb-1'>{text_of(block.get('value'))}</h2>"
        f"{subtitle_html}"
        "</div>"
        f"<div class='text-primary'>{icon_html}</div>"
        "</div>"
        "</div>"
        "</div>"
    )
    return ["", "```{=html}", metric_html, "```", ""]


# ---------------- R-backed blocks --------------------------------------------


def _caption_option(caption: Any) -> str:
    # JSON strings are valid YAML double-quoted scalars
    return "#| tbl-cap: " + json.dumps(text_of(caption), ensure_ascii=False)


def _object_chunk(options: list[str], print_line: str) -> list[str]:
    opts = ["#| echo: false", *options]
    return _chunk(["", print_line], opts)


def preload_variable(block: dict[str, Any]) -> str:
    var_key, _, default = PRELOAD_KEYS[block["type"]]
    return str(block.get(var_key) or default)


def render_table(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    options = []
    if has_text(block.get("caption")):
        options.append(_caption_option(block["caption"]))
    return _object_chunk(options, f"knitr::kable({preload_variable(block)})")


def render_gt(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    options = ["#| results: asis"]
    if has_text(block.get("caption")):
        options.append(_caption_option(block["caption"]))
    return _object_chunk(options, f"cat(as.character(gt::as_raw_html({preload_variable(block)})))")


def render_widget_object(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    """reactable, DT and generic htmlwidgets print themselves."""
    return _object_chunk([], preload_variable(block))


def render_hc(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    options = []
    height = block.get("height")
    if has_text(height):
        options.append(f"#| fig-height: {str(height).replace('px', '')}")
    return _object_chunk(options, preload_variable(block))


def render_ggplot(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    options = []
    for key in ("width", "height"):
        if block.get(key) is not None:
            options.append(f"#| fig-{key}: {block[key]}")
    return _object_chunk(options, preload_variable(block))


def render_modal(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    call = format_call(
        f"{ctx.r_package}::modal_content",
        [
            ("modal_id", serialize(block.get("modal_id"))),
            ("text", serialize(text_of(block.get("html_content")))),
        ],
    )
    return _chunk(call, [], header="```{r, echo=FALSE, results='asis'}")


def _value_box_args(box: dict[str, Any]) -> list[tuple[str, str]]:
    return [
        (key, serialize(box.get(key)))
        for key in ("title", "value", "bg_color", "logo_url", "logo_text")
    ]


def markdown_to_html(text: str) -> str:
    """Convert the markdown subset used in value-box descriptions."""
    text = re.sub(
        r"\[([^\]]+)\]\(([^)]+)\)",
        r"<a href='\2' target='_blank' rel='noopener'>\1</a>",
        text,
    )
    text = re.sub(r"\*\*([^*]+)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"\*([^*]+)\*", r"<em>\1</em>", text)
    return text.replace("\n", "<br>")


def render_value_box(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    call = format_call(f"{ctx.r_package}::render_value_box", _value_box_args(block))
    lines = ["", "```{r}", "#| echo: false", "#| results: 'asis'", *call, "```"]

    if has_text(block.get("description")):
        title = text_of(block.get("description_title")) or "Details"
        description_html = (
            "<details class='value-box-description'>"
            f"<summary><span>{title}</span><span class='expand-icon'>▼</span></summary>"
            f"<div>{markdown_to_html(text_of(block['description']))}</div>"
            "</details>"
        )
        lines += ["", "```{=html}", description_html, "```"]

    return lines + [""]


def render_value_box_row(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    boxes = block.get("boxes") or []
    lines = ["", "```{r}", "#| echo: false", "#| results: 'asis'", f"{ctx.r_package}::render_value_box_row(list("]
    for i, box in enumerate(boxes):
        call = format_call("list", _value_box_args(box), indent="  ")
        if i < len(boxes) - 1:
            call[-1] += ","
        lines += call
    lines += ["))", "```", ""]
    return lines


SPARKLINE_DEFAULTS: dict[str, Any] = {
    "agg": "count",
    "line_color": "#2b74ff",
    "bg_color": "#ffffff",
    "text_color": "#111827",
    "height": 130,
    "smooth": 0.6,
    "area_opacity": 0.18,
}

SPARKLINE_KEYS = (
    "x_var", "y_var", "value", "subtitle", "agg", "line_color", "bg_color",
    "text_color", "height", "smooth", "area_opacity", "filter_expr",
    "value_prefix", "value_suffix", "connect_group",
)


def _sparkline_args(card: dict[str, Any]) -> list[tuple[str, str]]:
    args: list[tuple[str, str]] = []
    for key in SPARKLINE_KEYS:
        value = card.get(key, SPARKLINE_DEFAULTS.get(key))
        if value is None:
            continue
        if key == "filter_expr" and not isinstance(value, RFormula):
            value = RFormula(strip_formula(value))
        args.append((key, serialize(value)))
    return args


def render_sparkline_card(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    args = [("data", serialize(dataset_ref(block, ctx))), *_sparkline_args(block)]
    if block.get("backend"):
        args.append(("backend", serialize(block["backend"])))
    call = format_call(f"{ctx.r_package}::render_sparkline_card", args)
    return _chunk(call, ["#| echo: false", "#| results: 'asis'"])


def render_sparkline_card_row(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    cards = block.get("cards") or []
    lines = [
        f"{ctx.r_package}::render_sparkline_card_row(",
        f"  data = {serialize(dataset_ref(block, ctx))},",
        "  cards = list(",
    ]
    for i, card in enumerate(cards):
        call = format_call("list", _sparkline_args(card), indent="    ")
        if i < len(cards) - 1:
            call[-1] += ","
        lines += call
    closing = "  )"
    if block.get("backend"):
        lines += [closing + ",", f"  backend = {serialize(block['backend'])}"]
    else:
        lines.append(closing)
    lines.append(")")
    return _chunk(lines, ["#| echo: false", "#| results: 'asis'"])


# ---------------- inputs -----------------------------------------------------


def validate_input(block: dict[str, Any]) -> str:
    """
    Check an input block and return its widget type.

    Raises ValueError for unknown widget types or sizes and for labels that
    do not line up with the options they describe.
    """
    input_id = block.get("input_id") or "<unnamed>"
    input_type = block.get("input_type")
    if input_type is None:
        input_type = block.get("type") if block.get("type") != "input" else "select_multiple"
    if input_type not in VALID_INPUT_TYPES:
        raise ValueError(
            f"Input '{input_id}': unknown input type {input_type!r}; "
            f"expected one of: {', '.join(VALID_INPUT_TYPES)}"
        )

    size = block.get("size") or "md"
    if size not in VALID_INPUT_SIZES:
        raise ValueError(f"Input '{input_id}': size must be one of sm, md, lg (got {size!r})")

    labels = block.get("labels")
    options = block.get("options")
    if (
        input_type != "slider"
        and isinstance(labels, (list, tuple))
        and isinstance(options, (list, tuple))
        and len(labels) != len(options)
    ):
        raise ValueError(
            f"Input '{input_id}': {len(labels)} labels given for {len(options)} options"
        )
    return input_type


def _input_args(block: dict[str, Any], input_type: str) -> list[tuple[str, str]]:
    g = block.get
    return [
        ("input_id", serialize(g("input_id"))),
        ("label", serialize(g("label"))),
        ("type", serialize(input_type)),
        ("filter_var", serialize(g("filter_var"))),
        ("options", serialize(g("options"))),
        ("options_from", serialize(g("options_from"))),
        ("default_selected", serialize(g("default_selected"))),
        ("placeholder", serialize(g("placeholder"))),
        ("width", serialize(g("width"))),
        ("min", serialize(g("min", 0))),
        ("max", serialize(g("max", 100))),
        ("step", serialize(g("step", 1))),
        ("value", serialize(g("value"))),
        ("show_value", serialize(g("show_value", True))),
        ("inline", serialize(g("inline", True))),
        ("stacked", serialize(g("stacked", False))),
        ("stacked_align", serialize(g("stacked_align", "center"))),
        ("group_align", serialize(g("group_align", "left"))),
        ("ncol", serialize(g("ncol"))),
        ("nrow", serialize(g("nrow"))),
        ("toggle_series", serialize(g("toggle_series"))),
        ("override", serialize(g("override", False))),
        ("labels", serialize(g("labels"))),
        ("size", serialize(g("size", "md"))),
        ("help", serialize(g("help"))),
        ("disabled", serialize(g("disabled", False))),
    ]


def linked_child(block: dict[str, Any], next_block: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Return `next_block` if it declares itself the cascade child of `block`."""
    if (
        next_block is not None
        and next_block.get("type") == "input"
        and next_block.get(".linked_parent_id") is not None
        and next_block.get(".linked_parent_id") == block.get("input_id")
        and next_block.get(".options_by_parent") is not None
    ):
        return next_block
    return None


def render_input(
    block: dict[str, Any],
    ctx: CompileContext,
    next_block: Optional[dict[str, Any]] = None,
) -> list[str]:
    input_type = validate_input(block)
    args = _input_args(block, input_type)

    child = linked_child(block, next_block)
    if child is not None:
        args += [
            ("linked_child_id", serialize(child.get("input_id"))),
            ("options_by_parent", serialize(child.get(".options_by_parent"))),
        ]

    call = format_call(f"{ctx.r_package}::render_input", args)
    return _chunk(call, ["#| echo: false", "#| results: 'asis'"])


def render_input_row(block: dict[str, Any], ctx: CompileContext) -> list[str]:
    inputs = block.get("inputs") or []
    lines = [f"{ctx.r_package}::render_input_row(list("]
    for i, item in enumerate(inputs):
        input_type = validate_input(item)
        args = _input_args(item, input_type)
        args += [(m, serialize(item.get(m))) for m in ("mt", "mr", "mb", "ml")]
        call = format_call("list", args, indent="  ")
        if i < len(inputs) - 1:
            call[-1] += ","
        lines += call
    style = block.get("style") or "boxed"
    align = block.get("align") or "center"
    lines.append(f"), style = {serialize(style)}, align = {serialize(align)})")
    return _chunk(lines, ["#| echo: false", "#| results: 'asis'"])


# ---------------- manual layouts ---------------------------------------------


def layout_children(block: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Children of a layout_row / layout_column in authoring order.

    Raises ValueError for children that need page-level structure
    (pagination breaks, tabgroups); those cannot live inside a manual layout.
    """
    items = [item for item in (block.get("items") or []) if isinstance(item, dict)]
    children = sorted(items, key=insertion_key)
    for position, child in enumerate(children, start=1):
        if child.get("pagination_break") or child.get("type") == "pagination":
            raise ValueError(
                f"{block.get('type')} item {position}: pagination breaks are not "
                "supported inside manual layouts"
            )
        if child.get("tabgroup"):
            raise ValueError(
                f"{block.get('type')} item {position}: tabgroup "
                f"{child.get('tabgroup')!r} is not supported inside manual layouts"
            )
    return children


def render_layout(
    block: dict[str, Any],
    ctx: CompileContext,
    render_child: RenderChild,
) -> list[str]:
    children = layout_children(block)
    is_row = block.get("type") == "layout_row"
    lines: list[str] = []

    if ctx.dashboard:
        if is_row:
            attrs = f" {{height={block['height']}}}" if block.get("height") else ""
            lines += ["", f"### Row{attrs}", ""]
        else:
            attrs = f" {{width={block['width']}}}" if block.get("width") else ""
            lines += ["", f"## Column{attrs}", ""]
        for child in children:
            lines += render_child(child, ctx)
        return lines

    if is_row:
        ncol = block.get("ncol") or max(len(children), 1)
        lines += ["", f":::: {{layout-ncol={ncol}}}", ""]
        for child in children:
            lines += ["::: {}", *render_child(child, ctx), ":::", ""]
        lines += ["::::", ""]
    else:
        lines += ["", ":::: {.layout-column}", ""]
        for child in children:
            lines += render_child(child, ctx)
        lines += ["::::", ""]
    return lines


# ---------------- dispatch ---------------------------------------------------

BLOCK_RENDERERS: dict[str, Callable[[dict[str, Any], CompileContext], list[str]]] = {
    "text": render_text,
    "image": render_image,
    "callout": render_callout,
    "divider": render_divider,
    "code": render_code,
    "card": render_card,
    "accordion": render_accordion,
    "iframe": render_iframe,
    "video": render_video,
    "table": render_table,
    "gt": render_gt,
    "reactable": render_widget_object,
    "DT": render_widget_object,
    "widget": render_widget_object,
    "hc": render_hc,
    "ggplot": render_ggplot,
    "spacer": render_spacer,
    "html": render_html,
    "quote": render_quote,
    "badge": render_badge,
    "metric": render_metric,
    "value_box": render_value_box,
    "value_box_row": render_value_box_row,
    "sparkline_card": render_sparkline_card,
    "sparkline_card_row": render_sparkline_card_row,
    "input_row": render_input_row,
    "modal": render_modal,
}


def show_when_wrap(lines: list[str], condition: str) -> list[str]:
    """Same markup the R-side show_when_open() writes around charts."""
    attr = html.escape(condition, quote=True)
    return ["", f'<div class="viz-show-when" data-show-when="{attr}">', "", *lines, "", "</div>", ""]


CONTENT_BLOCK_TYPES = set(BLOCK_RENDERERS) | {"input"} | LAYOUT_TYPES


def is_content_block(item: Any) -> bool:
    return isinstance(item, dict) and item.get("type") in CONTENT_BLOCK_TYPES


def render_block(
    block: dict[str, Any],
    ctx: CompileContext,
    *,
    next_block: Optional[dict[str, Any]] = None,
    render_child: Optional[RenderChild] = None,
    where: str = "content block",
) -> Optional[list[str]]:
    """
    Render one content block, or return None for an unknown block type.
    """
    block_type = block.get("type")
    validate_required_fields(block, where)
    condition = show_when_json(block["show_when"]) if block.get("show_when") is not None else None

    if block_type == "input":
        lines = render_input(block, ctx, next_block)
    elif block_type in LAYOUT_TYPES:
        if render_child is None:
            raise ValueError(f"{block_type} needs a child renderer")
        lines = render_layout(block, ctx, render_child)
    else:
        renderer = BLOCK_RENDERERS.get(block_type)
        if renderer is None:
            return None
        lines = renderer(block, ctx)

    if condition is None:
        return lines
    return show_when_wrap(lines, condition)
