"""Output formatting utilities for the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)
err_console = Console(theme=_THEME, stderr=True)


def configure_logging(verbose: bool) -> None:
    """Route library log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        console.print(f"[warn]⚠[/] {escape(msg)}")

    def error(self, msg: str) -> None:
        console.print(f"[err]✗[/] {escape(msg)}", highlight=False)

    def header(self, title: str) -> None:
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def sections_table(
        self, sections: Mapping[str, int | None], title: str = "Rule sections"
    ) -> None:
        """
        Render rule counts per section.

        Absent sections (None) are shown as unrestricted, since the engine
        allows everything in a resource class without rules.
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Section", style="ok")
        t.add_column("Rules", justify="right")
        t.add_column("Default", style="meta")

        for name, count in sections.items():
            if count is None:
                t.add_row(name, "-", "[warn]unrestricted[/]")
            else:
                t.add_row(name, str(count), "deny unless matched")

        console.print(t)

    def names_table(self, names: Iterable[str], title: str, column: str = "Name") -> None:
        """Render a single-column table of names, sorted."""
        t = Table(title=title, show_lines=False)
        t.add_column(column, style="ok")
        for name in sorted(names):
            t.add_row(name)
        console.print(t)

    def catalogs_table(self, catalogs: Iterable[Any], title: str = "Catalogs") -> None:
        """Expects objects with `.name` and optional `.owner` (like UCCatalog)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Catalog", style="ok")
        t.add_column("Owner", style="meta")
        for c in catalogs:
            t.add_row(c.name, str(getattr(c, "owner", "") or ""))
        console.print(t)

    def schemas_table(self, schemas: Iterable[Any], title: str = "Schemas") -> None:
        """Expects objects with `.full_name` and optional `.owner` (like UCSchema)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Schema", style="ok")
        t.add_column("Owner", style="meta")
        for s in schemas:
            t.add_row(s.full_name, str(getattr(s, "owner", "") or ""))
        console.print(t)

    def tables_table(self, tables: Iterable[Any], title: str = "Tables") -> None:
        """
        Render a table preview of Unity Catalog tables.

        Expects objects with `.full_name`, optional `.owner`, optional `.table_type`.
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Full name", style="ok")
        t.add_column("Type", style="meta")
        t.add_column("Owner", style="meta")

        for item in tables:
            t.add_row(
                item.full_name,
                str(getattr(item, "table_type", "") or ""),
                str(getattr(item, "owner", "") or ""),
            )

        console.print(t)


out = Out()
