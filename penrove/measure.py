"""Label width measurement with cairo.

Used in place of a live rendering surface to supply `measured_width` values.
"""

from typing import Dict

import cairo

from penrove.model import Snapshot, TreeNode


class LabelMeasurer:
    """Measures node labels on an off-screen cairo surface."""

    NODE_PADDING = 16
    NODE_MIN_WIDTH = 120
    NODE_MAX_WIDTH = 300
    FONT_FAMILY = "Sans"
    FONT_SIZE = 12

    def __init__(self, font_family: str = FONT_FAMILY, font_size: float = FONT_SIZE,
                 padding: float = NODE_PADDING, min_width: float = NODE_MIN_WIDTH,
                 max_width: float = NODE_MAX_WIDTH):
        self.padding = padding
        self.min_width = min_width
        self.max_width = max_width

        self._surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, 1, 1)
        self._cr = cairo.Context(self._surface)
        self._cr.select_font_face(
            font_family, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_NORMAL
        )
        self._cr.set_font_size(font_size)

    def text_width(self, text: str) -> float:
        """Advance width of `text` in the configured font."""
        if not text:
            return 0.0
        return self._cr.text_extents(text).x_advance

    def measure(self, node: TreeNode) -> float:
        """Rendered node width: label plus padding, clamped."""
        width = self.text_width(node.label) + self.padding * 2
        return max(self.min_width, min(self.max_width, width))

    def measure_snapshot(self, snapshot: Snapshot) -> Dict[int, float]:
        """Widths for every node, keyed by id."""
        return {node.id: self.measure(node) for node in snapshot.nodes}
