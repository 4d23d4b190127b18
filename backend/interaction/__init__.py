from .highlight import HighlightController, matches_region
from .zoom import TouchState, ZoomCoordinator, ZoomState

__all__ = [
    "HighlightController",
    "TouchState",
    "ZoomCoordinator",
    "ZoomState",
    "matches_region",
]
