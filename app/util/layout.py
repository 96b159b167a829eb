"""
Layout helpers (pure geometry for citation overlays).

- clamp_bbox(b): keep a normalized box inside the [0,1] page square.
  Backends occasionally return boxes that spill slightly past the edge.
- to_pixels(b, width, height): normalized box -> (x0, y0, x1, y1) in the
  coordinate space of a rendered page image.

Stored citations are never modified; clamping is display-only.
"""

from typing import Tuple

from app.models.schemas import BoundingBox


def _clamp01(v: float) -> float:
    return min(max(v, 0.0), 1.0)


def clamp_bbox(b: BoundingBox) -> BoundingBox:
    left = _clamp01(b.left)
    top = _clamp01(b.top)
    right = _clamp01(b.left + b.width)
    bottom = _clamp01(b.top + b.height)
    return b.model_copy(update={
        "left": left,
        "top": top,
        "width": max(right - left, 0.0),
        "height": max(bottom - top, 0.0),
    })


def to_pixels(b: BoundingBox, width: float, height: float) -> Tuple[float, float, float, float]:
    c = clamp_bbox(b)
    return (
        c.left * width,
        c.top * height,
        (c.left + c.width) * width,
        (c.top + c.height) * height,
    )
