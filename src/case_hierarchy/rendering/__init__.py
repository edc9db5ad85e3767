"""Text rendering of display views."""

from case_hierarchy.rendering.formatters import Formatters
from case_hierarchy.rendering.tree_renderer import TreeRenderer

__all__ = ["Formatters", "TreeRenderer"]
