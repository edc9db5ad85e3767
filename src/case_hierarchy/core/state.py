"""Display state for the case hierarchy explorer.

Single owner of the retained raw tree, the active columns, the derived display
tree and the expand/collapse set. The display tree is always rebuilt from the
retained original, never patched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from case_hierarchy.catalog import CATALOG, ColumnCatalog
from case_hierarchy.config.schemas.root import ExplorerConfig
from case_hierarchy.editor import ColumnConfigEditor, CommitResult
from case_hierarchy.logging_config import record_context_manager
from case_hierarchy.models import ColumnSpec, DisplayNode, EditSession, ExpansionPolicy, FetchResult
from case_hierarchy.normalizer import NormalizationResult, TreeNormalizer
from case_hierarchy.utils.errors import ConfigurationWarning, ErrorHandler, FetchError, NormalizationWarning
from case_hierarchy.utils.helpers import copy_tree


def collect_node_ids(nodes: Iterable[DisplayNode]) -> List[str]:
    """Pre-order ids of every node (iterative)."""
    ids: List[str] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        ids.append(node.id)
        stack.extend(reversed(node.children))
    return ids


@dataclass(frozen=True)
class DisplayView:
    """Read-only snapshot handed to the rendering collaborator."""

    tree: Tuple[DisplayNode, ...]
    columns: Tuple[ColumnSpec, ...]
    expanded_rows: Tuple[str, ...]
    is_loading: bool
    has_error: bool
    error_message: str
    no_data: bool
    is_editing: bool
    revision: int
    normalization_warnings: Tuple[NormalizationWarning, ...] = ()
    configuration_warnings: Tuple[ConfigurationWarning, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.tree


class DisplayState:
    """Manages explorer state centrally."""

    def __init__(
        self,
        config: Optional[ExplorerConfig] = None,
        catalog: ColumnCatalog = CATALOG,
        normalizer: Optional[TreeNormalizer] = None,
        record_id: Optional[str] = None,
    ) -> None:
        """Initialize display state.

        Args:
            config: Explorer configuration (defaults when None)
            catalog: Column catalog
            normalizer: Pre-built normalizer, e.g. with a custom id predicate
            record_id: Context record whose hierarchy is shown (used for logging)
        """
        self.config = config or ExplorerConfig()
        self.catalog = catalog
        self.record_id = record_id
        self.normalizer = normalizer or TreeNormalizer.from_config(self.config.normalizer, catalog)
        self.expansion_policy = ExpansionPolicy(self.config.display.expansion_policy)

        self.editor = ColumnConfigEditor(
            columns=catalog.default_columns(self.config.columns.default_fields),
            catalog=catalog,
            new_column_field=self.config.columns.new_column_field,
        )
        self.editor.subscribe(self._on_commit)
        self._pending_expansion: Optional[ExpansionPolicy] = None

        self._original: Optional[Mapping[str, Any]] = None
        self._tree: Tuple[DisplayNode, ...] = ()
        self._expanded: List[str] = []

        self.is_loading = True
        self.has_error = False
        self.error_message = ""
        self.no_data = False
        self.revision = 0
        self.normalization_warnings: Tuple[NormalizationWarning, ...] = ()
        self.configuration_warnings: Tuple[ConfigurationWarning, ...] = ()

        logger.debug("DisplayState initialized")

    # ════════════════════════════════════════════════════════════
    # Fetch boundary
    # ════════════════════════════════════════════════════════════

    def receive(self, result: FetchResult) -> None:
        """Handle one fetch outcome (data, error, or still in flight)."""
        if result.in_flight:
            self.is_loading = True
            return

        self.is_loading = False
        if result.error is not None:
            error = ErrorHandler.handle_fetch_error(result.error)
            self.has_error = True
            self.error_message = error.message
            return

        self.load(result.data)

    def receive_payload(self, payload: Optional[Mapping[str, Any]]) -> None:
        """Handle a raw ``{"data": ...}`` / ``{"error": ...}`` payload."""
        self.receive(FetchResult.from_payload(payload))

    def fail(self, error: Any) -> FetchError:
        """Record a fetch failure raised by the collaborator itself."""
        fetch_error = ErrorHandler.handle_fetch_error(error)
        self.is_loading = False
        self.has_error = True
        self.error_message = fetch_error.message
        return fetch_error

    def load(self, raw_tree: Any) -> None:
        """Retain a freshly fetched raw tree and derive the display tree."""
        self._original = copy_tree(raw_tree)
        self.is_loading = False
        self.has_error = False
        self.error_message = ""
        self._rebuild(ExpansionPolicy.RESET)

    @property
    def original(self) -> Optional[Mapping[str, Any]]:
        """Deep copy of the retained raw tree."""
        return copy_tree(self._original)

    # ════════════════════════════════════════════════════════════
    # Column configuration
    # ════════════════════════════════════════════════════════════

    def open_column_config(self) -> EditSession:
        return self.editor.enter()

    def save_column_config(self, expansion: Optional[ExpansionPolicy] = None) -> Optional[CommitResult]:
        """Commit the open edit session and rebuild the display tree.

        Args:
            expansion: Override of the configured expansion policy for this rebuild

        Returns:
            Commit result, or None when no session was open
        """
        self._pending_expansion = expansion
        try:
            return self.editor.commit()
        finally:
            self._pending_expansion = None

    def cancel_column_config(self) -> None:
        self.editor.cancel()

    def _on_commit(self, result: CommitResult) -> None:
        self.configuration_warnings = result.warnings
        policy = self._pending_expansion or self.expansion_policy
        logger.info(f"Columns replaced ({len(result.columns)}), rebuilding display tree [{policy.value}]")
        self._rebuild(policy)

    # ════════════════════════════════════════════════════════════
    # Expand / collapse
    # ════════════════════════════════════════════════════════════

    def toggle_row(self, row_id: str, expanded: bool) -> None:
        if expanded and row_id not in self._expanded:
            self._expanded.append(row_id)
        elif not expanded and row_id in self._expanded:
            self._expanded.remove(row_id)

    def set_expanded_rows(self, row_ids: Sequence[str]) -> None:
        """Replace the expanded set with what the renderer reports."""
        self._expanded = list(dict.fromkeys(row_ids))

    def is_expanded(self, row_id: str) -> bool:
        return row_id in self._expanded

    # ════════════════════════════════════════════════════════════
    # Snapshots
    # ════════════════════════════════════════════════════════════

    @property
    def display_tree(self) -> Tuple[DisplayNode, ...]:
        return self._tree

    @property
    def columns(self) -> Tuple[ColumnSpec, ...]:
        return self.editor.active_columns

    @property
    def expanded_rows(self) -> Tuple[str, ...]:
        return tuple(self._expanded)

    def column_definitions(self) -> List[Dict[str, Any]]:
        return [column.to_definition() for column in self.columns]

    def rows(self) -> List[Dict[str, Any]]:
        return [node.to_dict() for node in self._tree]

    def view(self) -> DisplayView:
        return DisplayView(
            tree=self._tree,
            columns=self.columns,
            expanded_rows=self.expanded_rows,
            is_loading=self.is_loading,
            has_error=self.has_error,
            error_message=self.error_message,
            no_data=self.no_data,
            is_editing=self.editor.is_editing,
            revision=self.revision,
            normalization_warnings=self.normalization_warnings,
            configuration_warnings=self.configuration_warnings,
        )

    # ════════════════════════════════════════════════════════════
    # Rebuild
    # ════════════════════════════════════════════════════════════

    def _rebuild(self, policy: ExpansionPolicy) -> None:
        if self._original is None:
            logger.debug("No raw tree retained yet, nothing to rebuild")
            return

        with record_context_manager(self.record_id):
            # The normalizer never mutates its input, the original stays verbatim
            result: NormalizationResult = self.normalizer.run(self._original)

        previous = set(self._expanded)
        self._tree = tuple(result.nodes)
        self.no_data = result.no_data
        self.normalization_warnings = tuple(result.warnings)

        all_ids = collect_node_ids(self._tree)
        if policy is ExpansionPolicy.PRESERVE:
            self._expanded = [node_id for node_id in all_ids if node_id in previous]
        else:
            self._expanded = all_ids

        self.revision += 1
        logger.debug(
            f"Display tree rebuilt (revision {self.revision}): {len(all_ids)} nodes, "
            f"{len(self._expanded)} expanded, no_data={self.no_data}"
        )
