"""Links command - show the wiki-link candidates completion would offer."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..completion import link_root, scan_markdown_files
from ..errors import InternalError


def run_links(note_path: Path, *, output_json: bool = False) -> int:
    """List markdown files reachable as `[[...]]` targets from `note_path`."""
    err = Console(stderr=True)

    try:
        root = link_root(note_path.resolve().as_uri())
    except InternalError as e:
        err.print(str(e), style="bold red")
        return 1

    if not root.is_dir():
        err.print(f"Directory not found: {root}", style="bold red")
        return 1

    candidates = scan_markdown_files(root)

    if output_json:
        print(
            json.dumps(
                [{"label": c.label, "path": str(c.path), "depth": c.depth} for c in candidates],
                indent=2,
            )
        )
        return 0

    console = Console()
    table = Table(title=f"Link candidates: {root}")
    table.add_column("Label", style="cyan")
    table.add_column("Depth", justify="right", style="dim")
    for c in candidates:
        table.add_row(c.label, str(c.depth))

    console.print(table)
    console.print(f"Files: {len(candidates)} total")
    return 0
