#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from config_loader import CompilerConfig, DEFAULT_CONFIG


@dataclass
class CompileContext:
    """
    State for one page compilation.

    A fresh context is built for every compile_page() call, so chunk labels
    restart at their base names on every page and nothing leaks between
    pages compiled side by side.

    Tracks:
    - layout mode (flat document vs dashboard grid)
    - page-wide flags the generators read (lazy loading, data present)
    - the chunk-label usage counter
    """
    cfg: CompilerConfig = field(default_factory=lambda: DEFAULT_CONFIG)

    # Layout
    dashboard: bool = False

    # Page-wide flags
    has_data: bool = False
    lazy_load_charts: bool = False
    lazy_load_tabs: bool = False
    backend: Optional[str] = None

    # Label usage counter: base label -> times used
    label_counts: dict[str, int] = field(default_factory=dict)

    @property
    def heading_level(self) -> int:
        return self.cfg.heading_level(self.dashboard)

    @property
    def r_package(self) -> str:
        return self.cfg.r_package

    def claim_label(self, base: str) -> str:
        """
        Reserve a chunk label.

        The first claim of `base` returns it unchanged, later claims return
        `base-2`, `base-3`, ...
        """
        count = self.label_counts.get(base, 0) + 1
        self.label_counts[base] = count
        return base if count == 1 else f"{base}-{count}"
