from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from r_serializer import SpecLoader


def safe_input_path(raw: str, *, root: Path | None = None) -> Path:
    """
    Check a spec path given by the user and return it resolved.

    ValueError: empty, contains NUL, has a '..' segment, or leaves `root`.
    FileNotFoundError / IsADirectoryError: nothing readable at the path.
    """
    text = "" if raw is None else str(raw)
    if not text.strip():
        raise ValueError("Empty input path.")
    if "\x00" in text:
        raise ValueError("Input path contains a NUL byte.")

    candidate = Path(text).expanduser()
    if ".." in candidate.parts:
        raise ValueError(f"Path traversal ('..') is not allowed: {text}")
    resolved = candidate.resolve()

    if root is not None:
        base = root.resolve(strict=True)
        if resolved != base and base not in resolved.parents:
            raise ValueError(f"Input path must be within root: {base}")

    if resolved.is_dir():
        raise IsADirectoryError(f"Not a file: {resolved}")
    if not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    return resolved


def read_yaml(path: Path) -> Any:
    """Load one YAML file with support for the !r and !formula tags."""
    with path.open(encoding="utf-8") as f:
        return yaml.load(f, Loader=SpecLoader)


def is_include(item: Any) -> bool:
    return isinstance(item, dict) and set(item) == {"include"}


def resolve_include(target: Any, path: Path, root: Path | None) -> Path:
    """
    Resolve an `include:` target relative to the file that names it.
    """
    if not isinstance(target, str):
        raise ValueError(f"{path}: include target must be a string, got {type(target).__name__}")
    included = Path(target).expanduser()
    if not included.is_absolute():
        included = path.parent / included
    return safe_input_path(str(included), root=root)


def _expand(value: Any, path: Path, root: Path | None, stack: tuple[Path, ...]) -> Any:
    if isinstance(value, dict):
        return {k: _expand(v, path, root, stack) for k, v in value.items()}
    if not isinstance(value, list):
        return value

    out: list[Any] = []
    for item in value:
        if not is_include(item):
            out.append(_expand(item, path, root, stack))
            continue

        target = resolve_include(item["include"], path, root)
        if target in stack:
            chain = " -> ".join(str(p) for p in (*stack, target))
            raise ValueError(f"Include cycle: {chain}")

        loaded = _expand(read_yaml(target), target, root, (*stack, target))
        if isinstance(loaded, list):
            out.extend(loaded)
        elif loaded is not None:
            out.append(loaded)
    return out


def load_page_spec(path: Path, *, root: Path | None = None) -> dict[str, Any]:
    """
    Load a page spec from YAML, expanding `- include: other.yml` list entries
    depth-first.

    An included file holding a list is spliced into the including list; a
    mapping is inserted as a single entry. Includes obey the same path
    rules as the top-level file.
    """
    path = Path(path).resolve()
    spec = _expand(read_yaml(path), path, root, (path,))
    if spec is None:
        spec = {}
    if not isinstance(spec, dict):
        raise ValueError(f"{path}: page spec root must be a mapping")
    return spec
