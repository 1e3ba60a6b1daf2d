"""Pairwise distances and alignment between inspected elements.

Every unordered pair is computed, so n elements yield n*(n-1)/2
relationships. The element count is bounded by the request limit.
"""

from __future__ import annotations

from ot_inspect.geometry import distance_between
from ot_inspect.models import Alignment, BoxModel, Distance, Rect, Relationship

DEFAULT_TOLERANCE = 1.0


def _gap(a_start: float, a_end: float, b_start: float, b_end: float) -> float:
    """Separation between two 1-D spans, 0 when they overlap."""
    if a_end < b_start:
        return b_start - a_end
    if b_end < a_start:
        return a_start - b_end
    return 0.0


def compute_distance(a: Rect, b: Rect) -> Distance:
    return Distance(
        horizontal=round(_gap(a.x, a.right, b.x, b.right)),
        vertical=round(_gap(a.y, a.bottom, b.y, b.bottom)),
        center_to_center=round(distance_between(a.center_x, a.center_y, b.center_x, b.center_y)),
    )


def compute_alignment(a: Rect, b: Rect, tolerance: float = DEFAULT_TOLERANCE) -> Alignment:
    def near(p: float, q: float) -> bool:
        return abs(p - q) <= tolerance

    return Alignment(
        top=near(a.y, b.y),
        bottom=near(a.bottom, b.bottom),
        left=near(a.x, b.x),
        right=near(a.right, b.right),
        vertical_center=near(a.center_y, b.center_y),
        horizontal_center=near(a.center_x, b.center_x),
    )


def compute_relationships(
    elements: list[tuple[str, BoxModel]], tolerance: float = DEFAULT_TOLERANCE
) -> list[Relationship]:
    """Compute relationships for all pairs i<j using border boxes.

    Args:
        elements: (selector, box model) per element, in inspection order
        tolerance: Pixel tolerance for alignment flags

    Returns:
        One Relationship per unordered pair
    """
    relationships: list[Relationship] = []
    for i in range(len(elements)):
        from_selector, from_box = elements[i]
        for j in range(i + 1, len(elements)):
            to_selector, to_box = elements[j]
            relationships.append(
                Relationship(
                    from_selector=from_selector,
                    to_selector=to_selector,
                    distance=compute_distance(from_box.border, to_box.border),
                    alignment=compute_alignment(from_box.border, to_box.border, tolerance),
                )
            )
    return relationships
