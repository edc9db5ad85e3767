"""Case hierarchy explorer: shaping engine for a hierarchical case tree grid."""

__version__ = "0.1.0"

from case_hierarchy.catalog import CATALOG, ColumnCatalog, FieldDefinition
from case_hierarchy.core.state import DisplayState, DisplayView
from case_hierarchy.editor import ColumnConfigEditor, CommitResult, reduce
from case_hierarchy.models import (
    CellEditEvent,
    CellType,
    ColumnSpec,
    DisplayNode,
    DraftColumnSpec,
    EditorMode,
    EditSession,
    ExpansionPolicy,
    FetchResult,
    FieldChoice,
)
from case_hierarchy.normalizer import NormalizationResult, TreeNormalizer, normalize

__all__ = [
    "__version__",
    "CATALOG",
    "CellEditEvent",
    "CellType",
    "ColumnCatalog",
    "ColumnConfigEditor",
    "ColumnSpec",
    "CommitResult",
    "DisplayNode",
    "DisplayState",
    "DisplayView",
    "DraftColumnSpec",
    "EditSession",
    "EditorMode",
    "ExpansionPolicy",
    "FetchResult",
    "FieldChoice",
    "FieldDefinition",
    "NormalizationResult",
    "TreeNormalizer",
    "normalize",
    "reduce",
]
