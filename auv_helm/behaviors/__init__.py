"""Built-in helm behaviors and the behavior registry."""

from .depth_tracking import DepthTracking
from .registry import create_behavior, list_behaviors, BEHAVIOR_REGISTRY, ENTRY_POINT_GROUP

__all__ = [
    "DepthTracking",
    "create_behavior",
    "list_behaviors",
    "BEHAVIOR_REGISTRY",
    "ENTRY_POINT_GROUP",
]
