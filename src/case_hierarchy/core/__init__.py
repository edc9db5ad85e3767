"""Display state orchestration."""

from case_hierarchy.core.state import DisplayState, DisplayView, collect_node_ids

__all__ = ["DisplayState", "DisplayView", "collect_node_ids"]
