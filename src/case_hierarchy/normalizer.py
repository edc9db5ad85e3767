"""Tree normalizer.

Turns a raw record tree, as handed over by the fetch boundary, into a tree of
DisplayNode objects the grid can render without further checks:

1. Root sentinel: a ``no-cases`` root short-circuits to an explicit no-data result
2. Links: ``caseUrl`` and related-record links built only for well-formed ids
3. Defaults: constant placeholders for null/missing fields
4. Dates: reserialized as ISO-8601 UTC with millisecond precision
5. Children: always an explicit list, descendant count from source or length

The transform is pure and total. Malformed input degrades to defaults and is
reported as NormalizationWarning; nothing is raised. Nodes are visited through
a FIFO work-list over an index arena, so depth is bounded only by memory.
Re-normalizing a normalized tree changes nothing.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from case_hierarchy.catalog import CATALOG, FIELD_DEFAULTS, ColumnCatalog
from case_hierarchy.models import CHILDREN_KEY, SOURCE_CHILDREN_KEY, DisplayNode
from case_hierarchy.utils.errors import ErrorHandler, NormalizationWarning

NO_DATA_SENTINEL = "no-cases"
RECORD_ID_LENGTHS = (15, 18)
LINK_PREFIX = "/"

# Source keys that are structure, not display fields
STRUCTURAL_KEYS = frozenset({"id", "label", SOURCE_CHILDREN_KEY, CHILDREN_KEY})

_DATETIME = TypeAdapter(datetime)

IdPredicate = Callable[[Any], bool]


def is_record_id(value: Any, lengths: Sequence[int] = RECORD_ID_LENGTHS) -> bool:
    """Shape check for platform record ids (15 or 18 characters)."""
    return isinstance(value, str) and len(value) in lengths


def format_iso_datetime(value: datetime) -> str:
    """Serialize as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO string, date, datetime or unix timestamp; None if unparsable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, (str, int, float)):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        return _DATETIME.validate_python(value)
    except (ValidationError, ValueError, OverflowError):
        return None


@dataclass
class NormalizationResult:
    """Display tree plus what was noticed while building it."""

    nodes: List[DisplayNode] = field(default_factory=list)
    warnings: List[NormalizationWarning] = field(default_factory=list)
    no_data: bool = False

    @property
    def node_count(self) -> int:
        count = 0
        stack = list(self.nodes)
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children)
        return count


@dataclass
class _ArenaSlot:
    """Work-list entry: raw source plus the arena index of its parent."""

    source: Mapping[str, Any]
    parent: Optional[int]


class TreeNormalizer:
    """Normalizes raw record trees into display trees."""

    def __init__(
        self,
        catalog: ColumnCatalog = CATALOG,
        id_predicate: Optional[IdPredicate] = None,
        id_lengths: Sequence[int] = RECORD_ID_LENGTHS,
        no_data_sentinel: str = NO_DATA_SENTINEL,
        link_prefix: str = LINK_PREFIX,
        report_unrecognized_fields: bool = True,
    ) -> None:
        """Initialize normalizer.

        Args:
            catalog: Column catalog (known fields, date fields, link fields)
            id_predicate: Custom id validity check; defaults to the length rule
            id_lengths: Accepted record id widths for the default check
            no_data_sentinel: Root id that means "nothing to show"
            link_prefix: Prefix prepended to ids when building links
            report_unrecognized_fields: Emit warnings for fields not in the catalog
        """
        self.catalog = catalog
        lengths = tuple(id_lengths)
        self.is_valid_id: IdPredicate = id_predicate or (lambda value: is_record_id(value, lengths))
        self.no_data_sentinel = no_data_sentinel
        self.link_prefix = link_prefix
        self.report_unrecognized_fields = report_unrecognized_fields

        self._date_fields = frozenset(catalog.date_fields())
        self._link_fields = catalog.link_fields()
        self._known_keys = (
            STRUCTURAL_KEYS
            | frozenset(catalog.field_names)
            | frozenset(d.source_field for d in self._link_fields if d.source_field)
            | frozenset(FIELD_DEFAULTS)
        )

    @classmethod
    def from_config(cls, config: Any, catalog: ColumnCatalog = CATALOG) -> TreeNormalizer:
        """Build from a NormalizerConfig."""
        return cls(
            catalog=catalog,
            id_lengths=config.id_lengths,
            no_data_sentinel=config.no_data_sentinel,
            link_prefix=config.link_prefix,
            report_unrecognized_fields=config.report_unrecognized_fields,
        )

    def normalize(self, raw_nodes: Any) -> List[DisplayNode]:
        """Normalize and return only the display nodes."""
        return self.run(raw_nodes).nodes

    def run(self, raw_nodes: Any) -> NormalizationResult:
        """Normalize a raw tree (a root mapping or a sequence of roots).

        Args:
            raw_nodes: Root record, list of root records, or previously
                normalized DisplayNodes

        Returns:
            NormalizationResult with display roots, warnings and the no-data flag
        """
        result = NormalizationResult()
        roots = self._coerce_roots(raw_nodes, result)

        saw_sentinel = False
        regular_roots: List[Mapping[str, Any]] = []
        for root in roots:
            if root.get("id") == self.no_data_sentinel:
                saw_sentinel = True
                logger.debug("Root is the no-data sentinel, skipping normalization")
                continue
            regular_roots.append(root)

        if saw_sentinel and not regular_roots:
            result.no_data = True
            logger.info("No case hierarchy data for this record")
            return result

        arena: List[DisplayNode] = []
        queue: Deque[_ArenaSlot] = deque(_ArenaSlot(root, None) for root in regular_roots)
        # Sources stay referenced here so their ids are never reused mid-run
        seen: Dict[int, Mapping[str, Any]] = {}

        while queue:
            slot = queue.popleft()
            source = slot.source
            if id(source) in seen:
                self._warn(result, str(source.get("id", "")), None, "repeated_node",
                           "record appears more than once in the tree, skipped")
                continue
            seen[id(source)] = source

            node, children = self._transform(source, result)
            index = len(arena)
            arena.append(node)
            if slot.parent is None:
                result.nodes.append(node)
            else:
                arena[slot.parent].children.append(node)

            for child in children:
                queue.append(_ArenaSlot(child, index))

        logger.debug(f"Normalized {len(arena)} nodes ({len(result.warnings)} warnings)")
        return result

    # ════════════════════════════════════════════════════════════
    # Per-node transform
    # ════════════════════════════════════════════════════════════

    def _transform(self, source: Mapping[str, Any], result: NormalizationResult) -> tuple[DisplayNode, List[Mapping[str, Any]]]:
        raw_id = source.get("id")
        node_id = "" if raw_id is None else str(raw_id)
        # Checked on the stored string form so a re-run sees the same id
        valid = raw_id is not None and self.is_valid_id(node_id)

        links = {"caseUrl": self._link_for(node_id) if valid else ""}
        for definition in self._link_fields:
            if definition.source_field == "id":
                continue
            links[definition.field_name] = self._link_for(source.get(definition.source_field))

        fields: Dict[str, Any] = {}
        for key, value in source.items():
            if key in STRUCTURAL_KEYS or key in links:
                continue
            if key not in self._known_keys and self.report_unrecognized_fields:
                self._warn(result, node_id, key, "unrecognized_field", "field is not in the column catalog")
            fields[key] = self._display_value(node_id, key, value, result)

        # Synthetic rows (grouping roots) surface their label as the case number
        if not valid and source.get("label") and fields.get("caseNumber") is None:
            fields["caseNumber"] = str(source["label"])

        for key, default in FIELD_DEFAULTS.items():
            if fields.get(key) is None:
                fields[key] = default

        for key in self._date_fields:
            if fields.get(key) is not None:
                fields[key] = self._normalize_date(node_id, key, fields[key], result)

        children = self._children_of(node_id, source, result)
        child_count = self._child_count(node_id, fields.get("childCount"), len(children), result)
        fields["childCount"] = child_count

        node = DisplayNode(id=node_id, links=links, fields=fields, children=[], child_count=child_count)
        return node, children

    def _link_for(self, value: Any) -> str:
        if value is None or isinstance(value, (bool, Mapping, list, tuple)):
            return ""
        text = str(value)
        if self.is_valid_id(text):
            return f"{self.link_prefix}{text}"
        return ""

    def _display_value(self, node_id: str, key: str, value: Any, result: NormalizationResult) -> Any:
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        if isinstance(value, (datetime, date)):
            formatted = self._normalize_date(node_id, key, value, result)
            return formatted if isinstance(formatted, str) else value.isoformat()
        try:
            encoded = json.dumps(value, default=str, sort_keys=True)
        except (TypeError, ValueError):
            encoded = str(value)
        self._warn(result, node_id, key, "non_scalar_field", "non-scalar value flattened to text")
        return encoded

    def _normalize_date(self, node_id: str, key: str, value: Any, result: NormalizationResult) -> Any:
        parsed = parse_datetime(value)
        if parsed is None:
            self._warn(result, node_id, key, "unparsable_date", f"cannot parse date {value!r}, left as is")
            return value
        try:
            return format_iso_datetime(parsed)
        except (OverflowError, ValueError):
            self._warn(result, node_id, key, "unparsable_date", f"date {value!r} out of range, left as is")
            return value

    def _children_of(self, node_id: str, source: Mapping[str, Any], result: NormalizationResult) -> List[Mapping[str, Any]]:
        raw_children = source.get(SOURCE_CHILDREN_KEY)
        if raw_children is None:
            raw_children = source.get(CHILDREN_KEY)
        if raw_children is None:
            return []
        if isinstance(raw_children, (str, bytes)) or not isinstance(raw_children, Iterable) or isinstance(raw_children, Mapping):
            self._warn(result, node_id, SOURCE_CHILDREN_KEY, "invalid_children", "children is not a sequence, ignored")
            return []

        children: List[Mapping[str, Any]] = []
        for child in raw_children:
            if isinstance(child, DisplayNode):
                child = child.to_dict()
            if not isinstance(child, Mapping):
                self._warn(result, node_id, SOURCE_CHILDREN_KEY, "invalid_child",
                           f"child of type {type(child).__name__} replaced by an empty record")
                child = {}
            children.append(child)
        return children

    def _child_count(self, node_id: str, explicit: Any, actual: int, result: NormalizationResult) -> int:
        if explicit is None or isinstance(explicit, bool):
            return actual
        try:
            return int(explicit)
        except (TypeError, ValueError, OverflowError):
            self._warn(result, node_id, "childCount", "invalid_count",
                       f"childCount {explicit!r} is not a number, using {actual}")
            return actual

    def _coerce_roots(self, raw_nodes: Any, result: NormalizationResult) -> List[Mapping[str, Any]]:
        if raw_nodes is None:
            return []
        if isinstance(raw_nodes, DisplayNode):
            return [raw_nodes.to_dict()]
        if isinstance(raw_nodes, Mapping):
            return [raw_nodes]
        if isinstance(raw_nodes, (str, bytes)) or not isinstance(raw_nodes, Iterable):
            self._warn(result, "", None, "invalid_input", f"cannot normalize {type(raw_nodes).__name__}")
            return []

        roots: List[Mapping[str, Any]] = []
        for item in raw_nodes:
            if isinstance(item, DisplayNode):
                roots.append(item.to_dict())
            elif isinstance(item, Mapping):
                roots.append(item)
            else:
                self._warn(result, "", None, "invalid_input", f"root of type {type(item).__name__} ignored")
        return roots

    @staticmethod
    def _warn(result: NormalizationResult, node_id: str, field_name: Optional[str], kind: str, message: str) -> None:
        result.warnings.append(
            ErrorHandler.record_normalization_warning(
                NormalizationWarning(node_id=node_id, field=field_name, kind=kind, message=message)
            )
        )


def normalize(raw_nodes: Any, id_predicate: Optional[IdPredicate] = None) -> List[DisplayNode]:
    """Normalize a raw tree with the default catalog and settings."""
    return TreeNormalizer(id_predicate=id_predicate).normalize(raw_nodes)
