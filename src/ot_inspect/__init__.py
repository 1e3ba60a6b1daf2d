"""OneTool Inspect - box model measurement and annotated screenshots over CDP.

Features:
- Measure content, padding, border and margin boxes of matched elements
- Computed styles and matched CSS rules per element
- Pairwise distances and edge alignment between elements
- Annotated PNG with box highlights, rulers and center crosshairs
- Auto-center and auto-zoom before capture
- Click and scroll a single element

Usage:
    ot-inspect inspect https://example.com "nav a" -o nav.png
    ot-inspect click https://example.com "button[1]"
"""

from importlib.metadata import version
from typing import Any

__version__ = version("onetool-inspect")

__all__ = ["BrowserManager", "InspectRequest", "Inspector", "__version__"]


def __getattr__(name: str) -> Any:
    """Lazy imports so the CLI can start without loading the browser stack."""
    if name == "Inspector":
        from ot_inspect.inspector import Inspector

        return Inspector
    if name == "BrowserManager":
        from ot_inspect.browser import BrowserManager

        return BrowserManager
    if name == "InspectRequest":
        from ot_inspect.models import InspectRequest

        return InspectRequest
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
