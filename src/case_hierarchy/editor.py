"""Column configuration editor.

A two-state machine (VIEW -> EDITING -> VIEW) over the active column set. All
transitions go through the pure reducer ``reduce(state, action)``; the
ColumnConfigEditor class only holds the current state and notifies
subscribers when a commit lands.

Inside an edit session:
- drafts carry session-local ids that are always 1..N
- edits are buffered per draft id and folded in on commit
- commit swaps the active columns in one step; cancel leaves them untouched
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from case_hierarchy.catalog import CATALOG, DEFAULT_NEW_FIELD, ColumnCatalog
from case_hierarchy.models import (
    CellEditEvent,
    CellType,
    ColumnSpec,
    DraftColumnSpec,
    EditorMode,
    EditSession,
)
from case_hierarchy.utils.errors import ConfigurationWarning, ErrorHandler

# Grid column names of the configuration surface
LABEL_COLUMN = "label"
FIELD_COLUMN = "fieldName"


# ════════════════════════════════════════════════════════════
# Actions
# ════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Enter:
    """Open the configuration surface (snapshot of the active columns)."""

    columns: Optional[Tuple[ColumnSpec, ...]] = None


@dataclass(frozen=True)
class AddColumn:
    field_name: Optional[str] = None


@dataclass(frozen=True)
class RemoveColumn:
    column_id: int


@dataclass(frozen=True)
class EditCell:
    """Partial edit of one draft. None means "not part of this edit"."""

    column_id: int
    label: Optional[str] = None
    field_name: Optional[str] = None


@dataclass(frozen=True)
class Commit:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


Action = Union[Enter, AddColumn, RemoveColumn, EditCell, Commit, Cancel]


# ════════════════════════════════════════════════════════════
# State
# ════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CommitResult:
    """Outcome of folding an edit session into the active columns."""

    columns: Tuple[ColumnSpec, ...]
    discarded: Tuple[DraftColumnSpec, ...] = ()
    warnings: Tuple[ConfigurationWarning, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.columns


@dataclass(frozen=True)
class EditorState:
    mode: EditorMode = EditorMode.VIEW
    active_columns: Tuple[ColumnSpec, ...] = ()
    session: Optional[EditSession] = None
    last_commit: Optional[CommitResult] = None


def reduce(
    state: EditorState,
    action: Action,
    catalog: ColumnCatalog = CATALOG,
    new_column_field: str = DEFAULT_NEW_FIELD,
) -> EditorState:
    """Apply one action and return the next state.

    The input state is never mutated. Actions that make no sense in the
    current mode are logged and ignored.

    Args:
        state: Current editor state
        action: Action to apply
        catalog: Column catalog used to resolve fields
        new_column_field: Field given to columns created by AddColumn

    Returns:
        Next editor state (``state`` itself when the action was ignored)
    """
    if isinstance(action, Enter):
        if state.mode is EditorMode.EDITING:
            logger.debug("Column configuration already open, keeping current session")
            return state
        columns = state.active_columns if action.columns is None else tuple(action.columns)
        return replace(
            state,
            mode=EditorMode.EDITING,
            active_columns=columns,
            session=_open_session(columns, catalog),
            last_commit=None,
        )

    if state.mode is not EditorMode.EDITING or state.session is None:
        logger.warning(f"Ignoring {type(action).__name__}: column configuration is not open")
        return state

    session = state.session
    if isinstance(action, AddColumn):
        return replace(state, session=_add(session, action.field_name or new_column_field, catalog))
    if isinstance(action, RemoveColumn):
        return replace(state, session=_remove(session, action.column_id))
    if isinstance(action, EditCell):
        return replace(state, session=_edit(session, action, catalog))
    if isinstance(action, Commit):
        result = _commit(session, catalog)
        return EditorState(mode=EditorMode.VIEW, active_columns=result.columns, session=None, last_commit=result)
    if isinstance(action, Cancel):
        logger.debug("Column configuration cancelled")
        return replace(state, mode=EditorMode.VIEW, session=None)

    logger.warning(f"Unknown editor action: {action!r}")
    return state


def _open_session(columns: Sequence[ColumnSpec], catalog: ColumnCatalog) -> EditSession:
    drafts = []
    for index, column in enumerate(columns, start=1):
        logical = catalog.logical_field(column.field_name)
        drafts.append(DraftColumnSpec(
            id=index,
            label=column.label,
            field_name=logical,
            cell_type=column.cell_type,
            render_options=dict(column.render_options),
            choices=catalog.choices(logical),
        ))
    logger.debug(f"Opened column configuration with {len(drafts)} drafts")
    return EditSession(draft_columns=drafts, pending_edits={})


def _add(session: EditSession, field_name: str, catalog: ColumnCatalog) -> EditSession:
    definition = catalog.definition_for(field_name)
    column = catalog.build_column(definition.label, field_name)
    draft = DraftColumnSpec(
        id=len(session.draft_columns) + 1,
        label=definition.label,
        field_name=field_name,
        cell_type=column.cell_type,
        render_options=dict(column.render_options),
        choices=catalog.choices(field_name),
    )
    return EditSession(
        draft_columns=[*session.draft_columns, draft],
        pending_edits=_copy_edits(session.pending_edits),
    )


def _remove(session: EditSession, column_id: int) -> EditSession:
    if session.find(column_id) is None:
        logger.warning(f"Cannot remove column {column_id}: no such draft")
        return session

    drafts: List[DraftColumnSpec] = []
    edits: Dict[int, Dict[str, str]] = {}
    for draft in session.draft_columns:
        if draft.id == column_id:
            continue
        new_id = len(drafts) + 1
        drafts.append(replace(draft, id=new_id))
        if draft.id in session.pending_edits:
            edits[new_id] = dict(session.pending_edits[draft.id])
    return EditSession(draft_columns=drafts, pending_edits=edits)


def _edit(session: EditSession, action: EditCell, catalog: ColumnCatalog) -> EditSession:
    if session.find(action.column_id) is None:
        logger.warning(f"Ignoring edit for column {action.column_id}: no such draft")
        return session

    partial: Dict[str, str] = {}
    if action.label is not None:
        partial["label"] = str(action.label)
    if action.field_name is not None:
        partial["field_name"] = str(action.field_name)
    if not partial:
        return session

    edits = _copy_edits(session.pending_edits)
    edits.setdefault(action.column_id, {}).update(partial)

    drafts = session.draft_columns
    if "field_name" in partial:
        drafts = [
            replace(draft, choices=catalog.choices(partial["field_name"])) if draft.id == action.column_id else draft
            for draft in drafts
        ]
    return EditSession(draft_columns=list(drafts), pending_edits=edits)


def _commit(session: EditSession, catalog: ColumnCatalog) -> CommitResult:
    columns: List[ColumnSpec] = []
    discarded: List[DraftColumnSpec] = []
    for draft in session.draft_columns:
        edits = session.pending_edits.get(draft.id, {})
        label = edits.get("label", draft.label) or ""
        field_name = edits.get("field_name", draft.field_name)
        if not label.strip():
            logger.info(f"Dropping column {draft.id}: empty label")
            discarded.append(draft)
            continue
        if not catalog.resolves(field_name):
            logger.info(f"Dropping column {draft.id}: unknown field {field_name!r}")
            discarded.append(draft)
            continue
        columns.append(catalog.build_column(label.strip(), field_name, len(columns) + 1))

    warnings: Tuple[ConfigurationWarning, ...] = ()
    if not columns:
        warnings = (ErrorHandler.record_configuration_warning(
            ConfigurationWarning(kind="no_columns", message="No columns left after saving the configuration")
        ),)
    logger.info(f"Column configuration saved: {len(columns)} columns, {len(discarded)} dropped")
    return CommitResult(columns=tuple(columns), discarded=tuple(discarded), warnings=warnings)


def _copy_edits(edits: Dict[int, Dict[str, str]]) -> Dict[int, Dict[str, str]]:
    return {column_id: dict(partial) for column_id, partial in edits.items()}


# ════════════════════════════════════════════════════════════
# Stateful wrapper
# ════════════════════════════════════════════════════════════


class ColumnConfigEditor:
    """Holds the editor state and exposes the configuration operations."""

    def __init__(
        self,
        columns: Optional[Sequence[ColumnSpec]] = None,
        catalog: ColumnCatalog = CATALOG,
        new_column_field: str = DEFAULT_NEW_FIELD,
    ) -> None:
        self.catalog = catalog
        self.new_column_field = new_column_field
        active = tuple(columns) if columns is not None else catalog.default_columns()
        self.state = EditorState(active_columns=active)
        self._subscribers: List[Callable[[CommitResult], None]] = []

    # -- read-only views -------------------------------------------------

    @property
    def mode(self) -> EditorMode:
        return self.state.mode

    @property
    def is_editing(self) -> bool:
        return self.state.mode is EditorMode.EDITING

    @property
    def active_columns(self) -> Tuple[ColumnSpec, ...]:
        return self.state.active_columns

    @property
    def session(self) -> Optional[EditSession]:
        return self.state.session

    def subscribe(self, callback: Callable[[CommitResult], None]) -> None:
        """Call ``callback`` after every successful commit."""
        self._subscribers.append(callback)

    # -- operations ------------------------------------------------------

    def dispatch(self, action: Action) -> EditorState:
        """Apply ``action``; subscribers hear about every commit it produces."""
        previous = self.state
        self.state = reduce(previous, action, self.catalog, self.new_column_field)
        result = self.state.last_commit
        if result is not None and result is not previous.last_commit:
            for callback in self._subscribers:
                callback(result)
        return self.state

    def enter(self, columns: Optional[Sequence[ColumnSpec]] = None) -> EditSession:
        """Open the configuration surface and return the new session."""
        self.dispatch(Enter(tuple(columns) if columns is not None else None))
        return self.state.session

    def add(self, field_name: Optional[str] = None) -> Optional[int]:
        """Append a draft column. Returns its id, or None when not editing."""
        self.dispatch(AddColumn(field_name))
        if self.state.session is None:
            return None
        return len(self.state.session.draft_columns)

    def remove(self, column_id: int) -> None:
        self.dispatch(RemoveColumn(column_id))

    def edit_cell(self, column_id: int, label: Optional[str] = None, field_name: Optional[str] = None) -> None:
        self.dispatch(EditCell(column_id, label=label, field_name=field_name))

    def apply_cell_edit(self, event: CellEditEvent) -> bool:
        """Route a value change from the configuration grid into ``edit_cell``.

        Returns:
            True if the event was understood and applied
        """
        try:
            column_id = int(event.row_id)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring cell edit with invalid row id {event.row_id!r}")
            return False

        if event.field_name == LABEL_COLUMN:
            value = "" if event.new_value is None else str(event.new_value)
            self.edit_cell(column_id, label=value)
        elif event.field_name in (FIELD_COLUMN, "field_name"):
            if not event.new_value:
                logger.warning(f"Ignoring empty field selection for column {column_id}")
                return False
            self.edit_cell(column_id, field_name=str(event.new_value))
        else:
            logger.warning(f"Ignoring cell edit on unknown grid column {event.field_name!r}")
            return False
        return True

    def commit(self) -> Optional[CommitResult]:
        """Save the session. Returns None when the editor was not open."""
        if not self.is_editing:
            logger.warning("Ignoring save: column configuration is not open")
            return None
        self.dispatch(Commit())
        return self.state.last_commit

    def cancel(self) -> None:
        self.dispatch(Cancel())

    # -- configuration surface ------------------------------------------

    def draft_rows(self) -> List[Dict[str, Any]]:
        """Rows of the configuration grid with pending edits applied."""
        session = self.state.session
        if session is None:
            return []
        rows = []
        for draft in session.draft_columns:
            edits = session.pending_edits.get(draft.id, {})
            rows.append({
                "id": draft.id,
                LABEL_COLUMN: edits.get("label", draft.label),
                FIELD_COLUMN: edits.get("field_name", draft.field_name),
                "options": [choice.to_option() for choice in draft.choices],
            })
        return rows

    def configuration_columns(self) -> Tuple[ColumnSpec, ...]:
        """Columns of the configuration grid itself."""
        options = [{"label": d.label, "value": d.field_name} for d in self.catalog.selectable_fields()]
        return (
            ColumnSpec(id=1, label="Column Label", field_name=LABEL_COLUMN, cell_type=CellType.TEXT,
                       render_options={"editable": True}),
            ColumnSpec(id=2, label="Field", field_name=FIELD_COLUMN, cell_type=CellType.ENUM_SELECT,
                       render_options={
                           "typeAttributes": {
                               "options": options,
                               "value": {"fieldName": FIELD_COLUMN},
                               "placeholder": "Choose a field",
                               "context": {"fieldName": "id"},
                           },
                           "editable": True,
                       }),
        )
