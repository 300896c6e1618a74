#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# Author: Puneet Tiwari
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.



"""
Behavior registry for creating helm behaviors by name.

Built-in behaviors are listed in BEHAVIOR_REGISTRY. Other packages add
behaviors through the ``auv_helm.behaviors`` entry-point group:

    entry_points={
        'auv_helm.behaviors': [
            'my_behavior = my_pkg.my_module:MyBehavior',
        ],
    }
"""

from __future__ import annotations
from importlib.metadata import EntryPoint, entry_points
from typing import Callable, Dict, List

from ..core.behavior import BehaviorBase
from ..core.errors import ConfigurationError
from .depth_tracking import DepthTracking

ENTRY_POINT_GROUP = "auv_helm.behaviors"

BEHAVIOR_REGISTRY: Dict[str, Callable[[], BehaviorBase]] = {
    "depth_tracking": DepthTracking,
}


def _discovered() -> Dict[str, EntryPoint]:
    return {ep.name: ep for ep in entry_points(group=ENTRY_POINT_GROUP)}


def create_behavior(type_name: str) -> BehaviorBase:
    """
    Factory function for creating behaviors.

    Args:
        type_name: Name from BEHAVIOR_REGISTRY or the entry-point group.

    Returns:
        A fresh, uninitialized behavior instance.

    Raises:
        ConfigurationError: If type_name is unknown or cannot be loaded.
    """
    if type_name in BEHAVIOR_REGISTRY:
        return BEHAVIOR_REGISTRY[type_name]()

    discovered = _discovered()
    if type_name not in discovered:
        available = ", ".join(list_behaviors())
        raise ConfigurationError(
            f"Unknown behavior plugin: '{type_name}'. "
            f"Available: {available}"
        )
    try:
        behavior_class = discovered[type_name].load()
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to load behavior plugin '{type_name}': {e}") from e
    return behavior_class()


def list_behaviors() -> List[str]:
    """Names of all available behaviors, built-ins first."""
    names = list(BEHAVIOR_REGISTRY.keys())
    names += sorted(n for n in _discovered() if n not in BEHAVIOR_REGISTRY)
    return names
