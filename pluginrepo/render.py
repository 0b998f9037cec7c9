"""
Rendering functions for pluginrepo output.

Tables for the CLI, printed with rich. Commands fetch data through
PluginRepo and hand it here; nothing in this module touches state.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from rich.markup import escape
from typing import Any, Dict, List, Optional

from .domain import OperationStatus, OperationSummary

console = Console()

_STATUS_STYLES = {
    OperationStatus.SUCCESS: "green",
    OperationStatus.SKIPPED: "dim",
    OperationStatus.FAILED: "red",
}


def _table(title: Optional[str]) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )


def render_tags_table(tags: List[Dict[str, Any]]) -> None:
    """
    Render release tags as a table.

    Args:
        tags: Tag documents as returned by PluginRepo.get_tag()
    """
    if not tags:
        console.print("[yellow]No tags found.[/yellow]")
        return

    table = _table("Release Tags")
    table.add_column("Tag", style="cyan")
    table.add_column("Name")
    table.add_column("Published", style="dim")
    table.add_column("Assets", justify="right")
    table.add_column("Packages", justify="right", style="green")

    for tag in tags:
        packages = tag.get('plugin_packages') or {}
        table.add_row(
            tag.get('tag_name', ''),
            tag.get('name', ''),
            tag.get('published_at', ''),
            str(len(tag.get('assets') or [])),
            str(len(packages)) if packages else "[yellow]-[/yellow]",
        )

    console.print(table)


def render_plugins_table(plugins: Dict[str, Dict[str, Any]]) -> None:
    """Render the plugin index."""
    if not plugins:
        console.print("[yellow]No plugins built yet.[/yellow]")
        return

    table = _table("Plugins")
    table.add_column("Id", style="cyan")
    table.add_column("Version")
    table.add_column("Tag")
    table.add_column("Platform", style="blue")
    table.add_column("Tools", justify="right")
    table.add_column("Package", style="dim")

    for plugin_id, entry in sorted(plugins.items()):
        path = str(entry.get('local_path', ''))
        table.add_row(
            plugin_id,
            str(entry.get('version', '')),
            str(entry.get('tag_name', '')),
            str(entry.get('platform', '')),
            str(len(entry.get('tools') or [])),
            path.replace('\\', '/').rsplit('/', 1)[-1],
        )

    console.print(table)


def render_summary(summary: OperationSummary) -> None:
    """Render the per-tag outcome of a processing pass."""
    if not summary.details:
        console.print("[yellow]No tags to process.[/yellow]")
        return

    table = _table("Processing Summary")
    table.add_column("Tag", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    for detail in summary.details:
        style = _STATUS_STYLES.get(detail.status, "")
        text = detail.error or detail.message or detail.action
        table.add_row(escape(detail.tag_name), f"[{style}]{detail.status.value}[/{style}]", escape(text))

    console.print(table)
    console.print(
        f"{summary.successful} built, {summary.skipped} already done, "
        f"{summary.failed} failed"
    )
