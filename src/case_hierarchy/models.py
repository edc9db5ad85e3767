"""View models for the case hierarchy explorer.

These models sit between the fetch boundary (raw record trees), the shaping
engine (normalizer, column editor) and the rendering collaborator. Raw records
stay plain mappings; everything produced by this package is a dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Key under which the renderer expects child rows
CHILDREN_KEY = "_children"
# Key under which the backend ships child records
SOURCE_CHILDREN_KEY = "children"


class CellType(Enum):
    """Cell rendering type understood by the tree grid."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    URL = "url"
    ENUM_SELECT = "enum-select"


class EditorMode(Enum):
    """Column configuration editor state."""

    VIEW = "view"
    EDITING = "editing"


class ExpansionPolicy(Enum):
    """What happens to expanded rows when the display tree is rebuilt."""

    RESET = "reset"  # expand every node of the fresh tree
    PRESERVE = "preserve"  # keep previously expanded ids that still exist


@dataclass
class DisplayNode:
    """Render-ready record.

    ``fields`` holds display values with defaults already applied, ``links``
    holds synthesized navigation links (``caseUrl`` is the primary one) and
    ``children`` is never None.
    """

    id: str
    links: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, Any] = field(default_factory=dict)
    children: List[DisplayNode] = field(default_factory=list)
    child_count: int = 0

    @property
    def url(self) -> str:
        """Primary navigation link (empty when the id is not a record id)."""
        return self.links.get("caseUrl", "")

    def get(self, name: str, default: Any = None) -> Any:
        """Look up a display value or link by field name."""
        if name == "id":
            return self.id
        if name in self.links:
            return self.links[name]
        return self.fields.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into the renderer row contract.

        Children land under ``_children``. Built with an explicit stack so
        arbitrarily deep trees do not exhaust the interpreter stack.
        """
        root_row: Dict[str, Any] = {}
        stack: List[Tuple[DisplayNode, Dict[str, Any]]] = [(self, root_row)]
        while stack:
            node, row = stack.pop()
            row.update(node.fields)
            row.update(node.links)
            row["id"] = node.id
            row["childCount"] = node.child_count
            child_rows: List[Dict[str, Any]] = []
            for child in node.children:
                child_row: Dict[str, Any] = {}
                child_rows.append(child_row)
                stack.append((child, child_row))
            row[CHILDREN_KEY] = child_rows
        return root_row


@dataclass(frozen=True)
class ColumnSpec:
    """Committed, render-ready column definition."""

    id: int
    label: str
    field_name: str
    cell_type: CellType = CellType.TEXT
    render_options: Mapping[str, Any] = field(default_factory=dict)

    def to_definition(self) -> Dict[str, Any]:
        """Shape the column the way the tree grid's column contract expects."""
        definition: Dict[str, Any] = {
            "label": self.label,
            "fieldName": self.field_name,
            "type": self.cell_type.value,
        }
        for key, value in self.render_options.items():
            definition[key] = _copy_option(value)
        return definition


@dataclass(frozen=True)
class FieldChoice:
    """One candidate in a draft column's field picker."""

    label: str
    value: str
    is_selected: bool = False

    def to_option(self) -> Dict[str, Any]:
        return {"label": self.label, "value": self.value, "isSelected": self.is_selected}


@dataclass
class DraftColumnSpec:
    """Editable column definition, only valid inside an edit session."""

    id: int
    label: str
    field_name: str
    cell_type: CellType = CellType.TEXT
    render_options: Mapping[str, Any] = field(default_factory=dict)
    choices: List[FieldChoice] = field(default_factory=list)

    @property
    def selected_field(self) -> Optional[str]:
        for choice in self.choices:
            if choice.is_selected:
                return choice.value
        return None


@dataclass
class EditSession:
    """Complete in-flight state of one column configuration episode."""

    draft_columns: List[DraftColumnSpec] = field(default_factory=list)
    pending_edits: Dict[int, Dict[str, str]] = field(default_factory=dict)

    @property
    def column_ids(self) -> List[int]:
        return [draft.id for draft in self.draft_columns]

    def find(self, column_id: int) -> Optional[DraftColumnSpec]:
        for draft in self.draft_columns:
            if draft.id == column_id:
                return draft
        return None


@dataclass(frozen=True)
class CellEditEvent:
    """Value change emitted by the editable configuration grid."""

    row_id: Any
    field_name: str
    new_value: Any


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one backend fetch: data, error, or neither while in flight."""

    data: Optional[Mapping[str, Any]] = None
    error: Any = None

    def __post_init__(self) -> None:
        if self.data is not None and self.error is not None:
            raise ValueError("FetchResult carries either data or error, never both")

    @property
    def in_flight(self) -> bool:
        return self.data is None and self.error is None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> FetchResult:
        """Build from a ``{"data": ...}`` / ``{"error": ...}`` payload."""
        if not payload:
            return cls()
        data = payload.get("data")
        error = payload.get("error")
        if error is not None:
            # An error wins when a misbehaving backend sends both
            return cls(error=error)
        return cls(data=data)


def _copy_option(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _copy_option(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_copy_option(v) for v in value]
    return value
