"""Cell formatting for text rendering.

Turns display values into cell text according to the column's cell type and
type attributes.
"""

from __future__ import annotations

from typing import Any, Mapping

from rich.markup import escape

from case_hierarchy.models import CellType, ColumnSpec, DisplayNode
from case_hierarchy.normalizer import parse_datetime

_MONTH_FORMATS = {"short": "%b", "long": "%B", "numeric": "%m", "2-digit": "%m"}


class Formatters:
    """Formatting utilities."""

    @staticmethod
    def escape_markup(value: Any) -> str:
        """Escape Rich markup in text."""
        if value is None:
            return ""
        return escape(str(value))

    @staticmethod
    def truncate(text: str, max_length: int) -> str:
        """Truncate text to ``max_length`` characters with an ellipsis."""
        if max_length <= 0:
            return ""
        if len(text) <= max_length:
            return text
        if max_length == 1:
            return "…"
        return text[: max_length - 1] + "…"

    @staticmethod
    def format_date(value: Any, type_attributes: Mapping[str, Any]) -> str:
        """Format an ISO date the way the grid's date cell would.

        Without type attributes the plain ``YYYY-MM-DD`` form is used.
        """
        parsed = parse_datetime(value)
        if parsed is None:
            return "" if value is None else str(value)
        if not type_attributes:
            return parsed.strftime("%Y-%m-%d")
        month = _MONTH_FORMATS.get(type_attributes.get("month", "short"), "%b")
        day = parsed.strftime("%d") if type_attributes.get("day") == "2-digit" else str(parsed.day)
        year = parsed.strftime("%Y")
        return f"{parsed.strftime(month)} {day}, {year}"

    @staticmethod
    def format_number(value: Any) -> str:
        if value is None or isinstance(value, bool):
            return ""
        if isinstance(value, int):
            return f"{value:,}"
        try:
            number = float(value)
        except (TypeError, ValueError):
            return str(value)
        return f"{number:,.0f}" if number.is_integer() else f"{number:,.2f}"

    @staticmethod
    def format_boolean(value: Any) -> str:
        if value is None:
            return ""
        return "✓" if value is True or str(value).lower() == "true" else "✗"

    def format_cell(self, node: DisplayNode, column: ColumnSpec) -> str:
        """Text for one cell of ``node`` in ``column``."""
        value = node.get(column.field_name)
        type_attributes = column.render_options.get("typeAttributes") or {}

        if column.cell_type is CellType.URL:
            label_field = (type_attributes.get("label") or {}).get("fieldName")
            text = node.get(label_field) if label_field else value
            return self.escape_markup(text if text not in (None, "") else value)
        if column.cell_type is CellType.DATE:
            return self.escape_markup(self.format_date(value, type_attributes))
        if column.cell_type is CellType.NUMBER:
            return self.format_number(value)
        if column.cell_type is CellType.BOOLEAN:
            return self.format_boolean(value)
        return self.escape_markup(value)
