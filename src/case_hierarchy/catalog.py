"""Static column catalog.

One data-driven table maps every known field to its label, cell type, layout
attributes and, for human-readable identifier fields, the link field that is
bound in its place. Adding a field is a table entry, not new branch code.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from case_hierarchy.models import CellType, ColumnSpec, FieldChoice

LINK_TARGET = "_blank"
DATE_TYPE_ATTRIBUTES = {"year": "numeric", "month": "short", "day": "2-digit"}


@dataclass(frozen=True)
class FieldDefinition:
    """Catalog entry for one field.

    Attributes:
        field_name: Name of the field on a display row
        label: Default column header
        cell_type: Cell rendering type
        render_options: Per-type attributes (typeAttributes, wrapText, initialWidth)
        alias_of: Link field bound instead of this one when a column is built
        logical_field: For link fields, the human-readable field shown in pickers
        source_field: For link fields, the raw id field the link is derived from
    """

    field_name: str
    label: str
    cell_type: CellType = CellType.TEXT
    render_options: Mapping[str, Any] = field(default_factory=dict)
    alias_of: Optional[str] = None
    logical_field: Optional[str] = None
    source_field: Optional[str] = None


def _link(field_name: str, label: str, text_field: str, source_field: str, width: Optional[int] = None) -> FieldDefinition:
    options: Dict[str, Any] = {"typeAttributes": {"label": {"fieldName": text_field}, "target": LINK_TARGET}}
    if width:
        options["initialWidth"] = width
    return FieldDefinition(
        field_name=field_name,
        label=label,
        cell_type=CellType.URL,
        render_options=options,
        logical_field=text_field,
        source_field=source_field,
    )


_DEFINITIONS: Tuple[FieldDefinition, ...] = (
    # Identifier: picked as caseNumber, rendered as a link to the record
    FieldDefinition("caseNumber", "Case #", alias_of="caseUrl"),
    _link("caseUrl", "Case #", "caseNumber", "id", width=110),
    # Long text
    FieldDefinition("subject", "Subject", render_options={"wrapText": True, "initialWidth": 300}),
    FieldDefinition("description", "Description", render_options={"wrapText": True, "initialWidth": 400}),
    # Short text
    FieldDefinition("status", "Status", render_options={"initialWidth": 120}),
    FieldDefinition("priority", "Priority", render_options={"initialWidth": 100}),
    FieldDefinition("caseType", "Type", render_options={"initialWidth": 120}),
    FieldDefinition("origin", "Origin"),
    FieldDefinition("ownerName", "Owner"),
    # Counts
    FieldDefinition("childCount", "Child Count", CellType.NUMBER, {"initialWidth": 110}),
    # Related records
    FieldDefinition("aeAm", "AE/AM", alias_of="aeAmUrl"),
    _link("aeAmUrl", "AE/AM", "aeAm", "aeAmId"),
    FieldDefinition("workGroup", "Work Group", alias_of="workGroupUrl"),
    _link("workGroupUrl", "Work Group", "workGroup", "workGroupId"),
    # Dates
    FieldDefinition(
        "createdDate", "Created", CellType.DATE,
        {"typeAttributes": DATE_TYPE_ATTRIBUTES, "initialWidth": 130},
    ),
    FieldDefinition("lastModifiedDate", "Last Modified", CellType.DATE, {"initialWidth": 130}),
    FieldDefinition("closedDate", "Closed", CellType.DATE, {"initialWidth": 130}),
    # Flags
    FieldDefinition("isEscalated", "Escalated", CellType.BOOLEAN, {"initialWidth": 90}),
    FieldDefinition("isClosed", "Closed?", CellType.BOOLEAN, {"initialWidth": 90}),
)

# First-time view, in display order (logical names)
DEFAULT_FIELD_NAMES: Tuple[str, ...] = (
    "caseNumber",
    "subject",
    "status",
    "priority",
    "caseType",
    "childCount",
    "aeAm",
    "workGroup",
)

# Field given to a column added during an edit session
DEFAULT_NEW_FIELD = "subject"

# Constant display defaults substituted for missing/null source values
PLACEHOLDER = "—"
FIELD_DEFAULTS: Mapping[str, Any] = MappingProxyType({
    "caseNumber": PLACEHOLDER,
    "subject": PLACEHOLDER,
    "status": PLACEHOLDER,
    "priority": PLACEHOLDER,
    "caseType": PLACEHOLDER,
    "ownerName": PLACEHOLDER,
    "origin": PLACEHOLDER,
    "aeAm": PLACEHOLDER,
    "workGroup": PLACEHOLDER,
    "isEscalated": False,
    "isClosed": False,
})


class ColumnCatalog:
    """Registry of known fields and the column specs built from them."""

    def __init__(self, definitions: Iterable[FieldDefinition] = _DEFINITIONS) -> None:
        self._definitions: Dict[str, FieldDefinition] = {d.field_name: d for d in definitions}

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._definitions

    def get(self, field_name: str) -> Optional[FieldDefinition]:
        return self._definitions.get(field_name)

    def definition_for(self, field_name: str) -> FieldDefinition:
        """Return the catalog entry, defaulting unknown names to plain text."""
        definition = self._definitions.get(field_name)
        if definition is None:
            return FieldDefinition(field_name=field_name, label=field_name)
        return definition

    def resolves(self, field_name: Optional[str]) -> bool:
        """True when the name is a known, bindable field."""
        return bool(field_name) and field_name in self._definitions

    @property
    def field_names(self) -> List[str]:
        return list(self._definitions)

    def date_fields(self) -> List[str]:
        return [d.field_name for d in self._definitions.values() if d.cell_type == CellType.DATE]

    def link_fields(self) -> List[FieldDefinition]:
        """Link fields that are synthesized from a raw id field."""
        return [d for d in self._definitions.values() if d.cell_type == CellType.URL and d.source_field]

    def selectable_fields(self) -> List[FieldDefinition]:
        """Fields offered in the column picker (link fields show as their logical field)."""
        return [d for d in self._definitions.values() if d.logical_field is None]

    def logical_field(self, field_name: str) -> str:
        """Reverse the alias rule: ``caseUrl`` is presented as ``caseNumber``."""
        definition = self._definitions.get(field_name)
        if definition is not None and definition.logical_field:
            return definition.logical_field
        return field_name

    def choices(self, selected: Optional[str]) -> List[FieldChoice]:
        """Field picker candidates with the logical form of ``selected`` flagged."""
        logical = self.logical_field(selected) if selected else None
        return [
            FieldChoice(label=d.label, value=d.field_name, is_selected=d.field_name == logical)
            for d in self.selectable_fields()
        ]

    def build_column(self, label: str, field_name: str, column_id: int = 0) -> ColumnSpec:
        """Resolve a (label, field) pair into a render-ready column.

        A field with an alias binds the aliased link field as data while the
        link text keeps coming from the chosen field. Unknown fields become
        plain text columns.
        """
        definition = self.definition_for(field_name)
        if definition.alias_of:
            bound = self.definition_for(definition.alias_of)
            logger.debug(f"Column '{label}': {field_name} bound through {bound.field_name}")
            definition = bound
        return ColumnSpec(
            id=column_id,
            label=label,
            field_name=definition.field_name,
            cell_type=definition.cell_type,
            render_options=MappingProxyType(copy.deepcopy(dict(definition.render_options))),
        )

    def default_columns(self, field_names: Iterable[str] = DEFAULT_FIELD_NAMES) -> Tuple[ColumnSpec, ...]:
        """Columns of the first-time view."""
        columns = []
        for name in field_names:
            if not self.resolves(name):
                logger.warning(f"Skipping unknown default column field: {name}")
                continue
            definition = self.definition_for(self.logical_field(name))
            columns.append(self.build_column(definition.label, definition.field_name, len(columns) + 1))
        return tuple(columns)


# Shared read-only instance
CATALOG = ColumnCatalog()
