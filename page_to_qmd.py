#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml

from config_loader import CompilerConfig, DEFAULT_CONFIG, load_config
from helper import print_event_gray
from page_compiler import compile_page
from spec_reader import load_page_spec, safe_input_path


def output_path_for(input_path: Path, output: str | None) -> Path | None:
    """
    Where to write the compiled page: `output` when given ('-' means
    stdout, returned as None), else the input path with a .qmd suffix.
    """
    if output == "-":
        return None
    if output:
        return Path(output).expanduser()
    return input_path.with_suffix(".qmd")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="page_to_qmd.py",
        description="Compile YAML page specs into Quarto (.qmd) documents.",
    )
    parser.add_argument(
        "inputs",
        nargs="+",
        help="Page spec file(s) (.yml)",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output file for a single input; '-' writes to stdout "
             "(default: <input>.qmd next to each input)",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to a compiler config YAML (default: built-in settings)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Optional root directory: inputs and includes must be within it.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print one trace line per compile stage.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    cfg: CompilerConfig = DEFAULT_CONFIG
    if args.config:
        try:
            cfg = load_config(safe_input_path(args.config))
        except Exception as e:
            print(f"[page_to_qmd] Failed to load config: {e}", file=sys.stderr)
            return 2

    root_dir: Path | None = None
    if args.root:
        try:
            root_dir = Path(args.root).expanduser().resolve(strict=True)
        except Exception as e:
            print(f"[page_to_qmd] Invalid --root: {e}", file=sys.stderr)
            return 2

    if args.output and len(args.inputs) > 1:
        print("[page_to_qmd] --output needs exactly one input", file=sys.stderr)
        return 2

    try:
        input_paths = [safe_input_path(raw, root=root_dir) for raw in args.inputs]
    except (ValueError, OSError) as e:
        print(f"[page_to_qmd] Invalid input path: {e}", file=sys.stderr)
        return 2

    for input_path in input_paths:
        try:
            page = load_page_spec(input_path, root=root_dir)
            text = compile_page(page, cfg, debug=args.debug)
        except (ValueError, TypeError, OSError, yaml.YAMLError) as e:
            print(f"[page_to_qmd] {input_path.name}: {e}", file=sys.stderr)
            return 1

        target = output_path_for(input_path, args.output)
        if target is None:
            sys.stdout.write(text)
            continue
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            print(f"[page_to_qmd] Cannot write {target}: {e}", file=sys.stderr)
            return 2
        if args.debug:
            print_event_gray(f"wrote {target}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
