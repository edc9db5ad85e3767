"""Text rendering of a display view.

Builds a rich Table from a DisplayView: the first column carries the tree
guides and expand/collapse icon, collapsed nodes hide their descendants.
"""

from __future__ import annotations

from typing import List, Tuple

from loguru import logger
from rich.console import RenderableType
from rich.table import Table
from rich.text import Text

from case_hierarchy.core.state import DisplayView
from case_hierarchy.models import ColumnSpec, DisplayNode
from case_hierarchy.rendering.formatters import Formatters

INDENT = "    "


class TreeRenderer:
    """Render a DisplayView as a rich table."""

    def __init__(self, max_cell_width: int = 60) -> None:
        self.formatters = Formatters()
        self.max_cell_width = max_cell_width

    def visible_rows(self, view: DisplayView) -> List[Tuple[DisplayNode, int]]:
        """Rows in display order as ``(node, depth)``, skipping collapsed subtrees."""
        expanded = set(view.expanded_rows)
        rows: List[Tuple[DisplayNode, int]] = []
        stack = [(node, 0) for node in reversed(view.tree)]
        while stack:
            node, depth = stack.pop()
            rows.append((node, depth))
            if node.children and node.id in expanded:
                stack.extend((child, depth + 1) for child in reversed(node.children))
        return rows

    def render(self, view: DisplayView) -> RenderableType:
        """Table for the view, or a status line when there is nothing to show."""
        if view.has_error:
            return Text(f"Error: {view.error_message}", style="bold red")
        if view.is_loading:
            return Text("Loading case hierarchy…", style="dim")
        if view.no_data:
            return Text("No cases found for this record.", style="yellow")
        if not view.columns:
            return Text("No columns selected. Open the column configuration to add some.", style="yellow")

        table = Table(show_header=True, header_style="bold", show_lines=False)
        for column in view.columns:
            table.add_column(column.label, no_wrap=not column.render_options.get("wrapText", False))

        rows = self.visible_rows(view)
        for node, depth in rows:
            cells = [self._cell(node, column) for column in view.columns]
            cells[0] = self._tree_prefix(node, depth, view) + cells[0]
            table.add_row(*cells)

        logger.debug(f"Rendered {len(rows)} rows x {len(view.columns)} columns")
        return table

    def _cell(self, node: DisplayNode, column: ColumnSpec) -> str:
        return self.formatters.truncate(self.formatters.format_cell(node, column), self.max_cell_width)

    @staticmethod
    def _tree_prefix(node: DisplayNode, depth: int, view: DisplayView) -> str:
        if node.children:
            icon = "⊟ " if node.id in view.expanded_rows else "⊞ "
        else:
            icon = "  "
        return INDENT * depth + icon
