#!/usr/bin/env python3
from __future__ import annotations
from pathlib import Path, PurePosixPath
from typing import Optional

from dataclasses import dataclass, field
from urllib.parse import quote
import html as _html

import yaml
from flask import Flask, Response, abort, render_template_string

from config_loader import CompilerConfig, DEFAULT_CONFIG, load_config
from page_compiler import compile_page
from spec_reader import load_page_spec

SPEC_SUFFIXES = (".yml", ".yaml")


LAYOUT_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ page_title }}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    body { margin: 0; font-family: sans-serif; }
    .layout { display: flex; min-height: 100vh; }
    .sidebar { width: 260px; padding: 1rem; background: #f4f4f4; }
    .content { flex: 1; padding: 1rem 2rem; }
    .spec-file.active a { font-weight: bold; }
    .spec-children { margin-left: 1rem; }
    pre.qmd { background: #fafafa; padding: 1rem; overflow-x: auto; }
    .error { color: #a00; }
  </style>
</head>
<body>
  <div class="layout">
    <aside class="sidebar">
      <div class="sidebar-title"><a href="/">Page Preview</a></div>
      <div class="sidebar-section">
        <div class="sidebar-label">pages/</div>
        {{ file_tree|safe }}
      </div>
    </aside>

    <main class="content">
    {{ content|safe }}
    </main>
  </div>
</body>
</html>
"""


@dataclass
class SpecDir:
    """One directory under pages/: sub-directories by name and spec file names."""

    subdirs: dict[str, "SpecDir"] = field(default_factory=dict)
    specs: list[str] = field(default_factory=list)

    def add(self, rel: PurePosixPath) -> None:
        node = self
        for name in rel.parent.parts:
            node = node.subdirs.setdefault(name, SpecDir())
        node.specs.append(rel.name)


def build_spec_tree(pages_dir: Path) -> SpecDir:
    tree = SpecDir()
    if not pages_dir.is_dir():
        return tree
    for path in sorted(pages_dir.rglob("*")):
        rel = PurePosixPath(path.relative_to(pages_dir).as_posix())
        if path.suffix.lower() in SPEC_SUFFIXES and path.is_file() and not is_hidden(rel):
            tree.add(rel)
    return tree


def is_hidden(rel: PurePosixPath) -> bool:
    return any(name.startswith(".") for name in rel.parts)


def open_dirs_for(current_rel: str) -> set[str]:
    """
    Directories to expand so the current spec is visible.

    'survey/2024/intro.yml' opens 'survey' and 'survey/2024'.
    """
    if not current_rel.strip("/"):
        return set()
    return {str(parent) for parent in PurePosixPath(current_rel.strip("/")).parents if str(parent) != "."}


def _spec_link(rel: str, current_file: str) -> str:
    css = "spec-file active" if rel == current_file else "spec-file"
    name = rel.rsplit("/", 1)[-1]
    return f'<div class="{css}"><a href="/view/{quote(rel)}">{_html.escape(name)}</a></div>'


def render_tree_html(node: SpecDir, *, prefix: str, open_dirs: set[str], current_file: str) -> str:
    """
    Nested <details> list of the specs in `node`, directories first.

    prefix is the path of `node` inside pages/; current_file is highlighted.
    """
    parts: list[str] = []
    for name, child in sorted(node.subdirs.items()):
        rel_dir = f"{prefix}/{name}" if prefix else name
        opened = " open" if rel_dir in open_dirs else ""
        inner = render_tree_html(child, prefix=rel_dir, open_dirs=open_dirs, current_file=current_file)
        parts.append(
            f'<details class="spec-dir"{opened}><summary>{_html.escape(name)}/</summary>'
            f'<div class="spec-children">{inner}</div></details>'
        )
    for name in sorted(node.specs):
        parts.append(_spec_link(f"{prefix}/{name}" if prefix else name, current_file))
    return "".join(parts)


def create_app(base_dir: Optional[Path] = None, cfg: Optional[CompilerConfig] = None) -> Flask:
    """
    Build the preview app for the specs under `<base_dir>/pages`.

    Without an explicit cfg, `<base_dir>/config.yml` is used when present.
    """
    base_dir = (base_dir or Path.cwd()).resolve()
    pages_dir = base_dir / "pages"
    if cfg is None:
        config_path = base_dir / "config.yml"
        cfg = load_config(config_path) if config_path.is_file() else DEFAULT_CONFIG

    app = Flask(__name__)

    def spec_path(filename: str) -> Path:
        path = (pages_dir / filename).resolve()
        try:
            path.relative_to(pages_dir.resolve())
        except ValueError:
            abort(404)
        if not path.is_file() or path.suffix.lower() not in SPEC_SUFFIXES:
            abort(404)
        return path

    def page(title: str, content: str, current_file: str = "", status: int = 200):
        tree_html = render_tree_html(
            build_spec_tree(pages_dir),
            prefix="",
            open_dirs=open_dirs_for(current_file),
            current_file=current_file,
        )
        body = render_template_string(
            LAYOUT_TEMPLATE,
            page_title=title,
            file_tree=tree_html,
            content=content,
        )
        return body, status

    def compile_spec(path: Path) -> str:
        return compile_page(load_page_spec(path, root=base_dir), cfg)

    @app.route("/")
    def index():
        return page("Page Preview", "<h1>Page Preview</h1>\n<p>Pick a page spec on the left.</p>")

    @app.route("/view/<path:filename>")
    def view_spec(filename: str):
        path = spec_path(filename)
        rel = path.relative_to(pages_dir.resolve()).as_posix()
        try:
            qmd = compile_spec(path)
        except (ValueError, TypeError, yaml.YAMLError) as e:
            content = f'<h1>{_html.escape(rel)}</h1>\n<pre class="error">{_html.escape(str(e))}</pre>'
            return page(rel, content, rel, status=500)

        content = (
            f'<h1>{_html.escape(rel)}</h1>\n'
            f'<p><a href="/raw/{quote(rel)}">Download .qmd</a></p>\n'
            f'<pre class="qmd">{_html.escape(qmd)}</pre>'
        )
        return page(rel, content, rel)

    @app.route("/raw/<path:filename>")
    def raw_qmd(filename: str):
        path = spec_path(filename)
        try:
            qmd = compile_spec(path)
        except (ValueError, TypeError, yaml.YAMLError) as e:
            return Response(str(e) + "\n", status=500, mimetype="text/plain")
        return Response(
            qmd,
            mimetype="text/plain",
            headers={"Content-Disposition": f'attachment; filename="{path.with_suffix(".qmd").name}"'},
        )

    return app


if __name__ == "__main__":
    # Run in dev mode
    create_app().run(debug=False)
