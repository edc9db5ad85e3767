"""CLI interface for the case hierarchy explorer."""

import json
from pathlib import Path
from typing import Any, List, Optional, Tuple

import typer
from pydantic import TypeAdapter
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from case_hierarchy import __version__

app = typer.Typer(
    name="case-hierarchy",
    help="Case hierarchy explorer: render a case tree with configurable columns",
    add_completion=False
)
console = Console()
console_err = Console(stderr=True)


def _parse_columns(value: str) -> List[Tuple[Optional[str], str]]:
    """Split ``"Label=field,field"`` into ``(label, field)`` pairs."""
    columns = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        if "=" in item:
            label, field_name = item.split("=", 1)
            columns.append((label.strip(), field_name.strip()))
        else:
            columns.append((None, item))
    return columns


def _read_payload(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"{path} is not valid JSON: {e}") from e


@app.command()
def show(
    payload_path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file with a raw case tree, or a {\"data\": ...} / {\"error\": ...} fetch payload"
    ),
    columns: Optional[str] = typer.Option(
        None,
        "--columns",
        help="Comma-separated fields, optionally labelled (e.g. \"Case=caseNumber,status\")"
    ),
    collapse: bool = typer.Option(
        False,
        "--collapse",
        help="Show root rows only"
    ),
    record_id: Optional[str] = typer.Option(
        None,
        "--record-id",
        "-r",
        help="Record whose hierarchy is shown (added to log lines)"
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (defaults to config/defaults/config.yaml)"
    ),
    output_format: str = typer.Option(
        "table",
        "--output",
        "-o",
        help="Output format: table or json"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output"
    ),
):
    """Render a case hierarchy.

    Examples:
        case-hierarchy show hierarchy.json
        case-hierarchy show hierarchy.json --columns "Case=caseNumber,status,createdDate"
        case-hierarchy show hierarchy.json --collapse --output json
    """
    try:
        # Import here to avoid slow startup
        from case_hierarchy.config.manager import ConfigManager
        from case_hierarchy.core.state import DisplayState
        from case_hierarchy.logging_config import configure_from_config
        from case_hierarchy.rendering import TreeRenderer

        config = ConfigManager().load_config(config_path=config_path)
        if verbose:
            config.logging.level = "DEBUG"
        configure_from_config(config.logging)

        state = DisplayState(config=config, record_id=record_id)
        payload = _read_payload(payload_path)
        if isinstance(payload, dict) and ("data" in payload or "error" in payload):
            state.receive_payload(payload)
        else:
            state.load(payload)

        if columns is not None:
            state.open_column_config()
            for column_id in reversed(state.editor.session.column_ids):
                state.editor.remove(column_id)
            for label, field_name in _parse_columns(columns):
                column_id = state.editor.add(field_name)
                if label:
                    state.editor.edit_cell(column_id, label=label)
            result = state.save_column_config()
            for draft in result.discarded:
                console_err.print(f"[yellow]Dropped column:[/yellow] {draft.label or draft.field_name}")

        if collapse:
            state.set_expanded_rows([])

        view = state.view()
        if output_format == "json":
            output_data = {
                "columns": state.column_definitions(),
                "rows": state.rows(),
                "expandedRows": list(view.expanded_rows),
                "noData": view.no_data,
                "error": view.error_message or None,
            }
            console.print_json(json.dumps(output_data, default=str))
        else:
            console.print(TreeRenderer().render(view))
            if verbose and view.normalization_warnings:
                console_err.print(f"[dim]{len(view.normalization_warnings)} normalization warnings[/dim]")

        if view.has_error:
            raise typer.Exit(code=1)

    except (typer.Exit, typer.BadParameter):
        raise
    except Exception as e:
        console_err.print(f"[bold red]Error:[/bold red] {e}")
        if verbose:
            import traceback
            console_err.print(traceback.format_exc())
        raise typer.Exit(code=1)


@app.command()
def fields():
    """List the fields that can be picked for a column."""
    from case_hierarchy.catalog import CATALOG

    table = Table(title="Column fields")
    table.add_column("Field")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Bound as")
    for definition in CATALOG.selectable_fields():
        table.add_row(
            definition.field_name,
            definition.label,
            CATALOG.build_column(definition.label, definition.field_name).cell_type.value,
            definition.alias_of or "",
        )
    console.print(table)


@app.command()
def config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file"
    ),
    output_format: str = typer.Option(
        "tree",
        "--output",
        "-o",
        help="Output format: tree or json"
    ),
):
    """Display current configuration.

    Examples:
        case-hierarchy config
        case-hierarchy config --output json
    """
    try:
        from case_hierarchy.config.manager import ConfigManager
        from case_hierarchy.config.schemas.root import ExplorerConfig

        config = ConfigManager().load_config(config_path=config_path)

        if output_format == "json":
            console.print_json(TypeAdapter(ExplorerConfig).dump_json(config, indent=2).decode())
        else:  # tree
            tree = Tree(f"[bold]{config.project}[/bold] ({config.environment})")

            normalizer_tree = tree.add("[cyan]Normalizer")
            normalizer_tree.add(f"Id Lengths: {config.normalizer.id_lengths}")
            normalizer_tree.add(f"No-Data Sentinel: {config.normalizer.no_data_sentinel}")
            normalizer_tree.add(f"Link Prefix: {config.normalizer.link_prefix}")

            columns_tree = tree.add("[cyan]Columns")
            columns_tree.add(f"Default Fields: {', '.join(config.columns.default_fields)}")
            columns_tree.add(f"New Column Field: {config.columns.new_column_field}")

            display_tree = tree.add("[cyan]Display")
            display_tree.add(f"Expansion Policy: {config.display.expansion_policy.value}")

            logging_tree = tree.add("[cyan]Logging")
            logging_tree.add(f"Level: {config.logging.level}")
            logging_tree.add(f"Log Dir: {config.logging.log_dir or 'console only'}")

            console.print(tree)

    except Exception as e:
        from case_hierarchy.utils.errors import ErrorHandler

        console_err.print(f"[bold red]Error:[/bold red] {ErrorHandler.handle_validation_error(e, 'configuration')}")
        raise typer.Exit(code=1)


@app.command()
def version():
    """Show the explorer version."""
    console.print(f"[bold]case-hierarchy-explorer[/bold] v{__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
