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
Behavior contract and the container that binds a behavior to its options.

Every behavior plugin derives from BehaviorBase. Per tick the helm calls,
in this order: set_active_dofs(), register_process_values(),
request_set_point(), get_dofs().
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .dof import ControlProcess, Dof, parse_dofs
from .errors import ConfigurationError


class BehaviorBase(ABC):
    """
    Base class for helm behaviors.

    Subclasses implement initialize() (declare DOFs, read parameters) and
    request_set_point(). The remaining hooks store what the helm pushes in,
    under the attribute names subclasses read from.
    """

    def __init__(self) -> None:
        self._name = ""
        self._parameters: Dict[str, Any] = {}
        self._dofs: Tuple[Dof, ...] = ()
        self._active_dofs: Tuple[Dof, ...] = ()
        self._process_values = ControlProcess()
        self._helm_frequency = 0.0

    # ------- Configuration (startup) ------- #

    def set_name(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def set_parameters(self, parameters: Mapping[str, Any]) -> None:
        self._parameters = dict(parameters)

    def param(self, key: str, default: Any) -> Any:
        """Mission parameter value, or default if not given."""
        return self._parameters.get(key, default)

    def set_dofs(self, dofs: Iterable) -> None:
        self._dofs = parse_dofs(dofs)

    def set_helm_frequency(self, hz: float) -> None:
        self._helm_frequency = float(hz)

    @abstractmethod
    def initialize(self) -> None:
        """Declare DOFs and read parameters. Called once by the container."""

    def inputs(self) -> Mapping[str, Callable[[float], None]]:
        """
        Runtime scalar inputs offered by the behavior, by name.

        The node subscribes a std_msgs/Float64 topic
        ``~/<behavior name>/<input name>`` for each and calls the handler
        with every value received.
        """
        return {}

    # ------- Per tick ------- #

    def set_active_dofs(self, dofs: Iterable[Dof]) -> None:
        self._active_dofs = tuple(dofs)

    def register_process_values(self, feedback: ControlProcess) -> None:
        self._process_values = feedback

    def get_dofs(self) -> Tuple[Dof, ...]:
        return self._dofs

    @abstractmethod
    def request_set_point(self) -> Optional[ControlProcess]:
        """
        Compute this tick's proposal.

        Returns:
            The proposed ControlProcess (only the DOFs from get_dofs() are
            read), or None if the behavior has no usable proposal.
        """


@dataclass(frozen=True)
class BehaviorOptions:
    """
    Per-state priorities of a behavior.

    Attributes:
        states: state name -> priority. A state missing from the mapping
            means the behavior is not allowed to act in it.
    """
    states: Mapping[str, int] = field(default_factory=dict)

    def priority(self, state_name: str) -> Optional[int]:
        return self.states.get(state_name)


@dataclass(frozen=True)
class BehaviorComponent:
    """
    A behavior as declared by the mission.

    Attributes:
        name: Mission-unique behavior name.
        plugin: Registry name of the implementation.
        options: Per-state priorities.
        dofs: Optional override of the DOFs the behavior claims.
        parameters: Free-form parameters for the behavior.
    """
    name: str
    plugin: str
    options: BehaviorOptions = field(default_factory=BehaviorOptions)
    dofs: Tuple[Dof, ...] = ()
    parameters: Mapping[str, Any] = field(default_factory=dict)


BehaviorFactory = Callable[[str], BehaviorBase]


class BehaviorContainer:
    """
    Owns one behavior instance plus its declared options.

    The instance is created by initialize() through the given factory
    (normally registry.create_behavior) and lives as long as the container.
    """

    def __init__(self, component: BehaviorComponent) -> None:
        self._component = component
        self._behavior: Optional[BehaviorBase] = None

    @property
    def name(self) -> str:
        return self._component.name

    def get_opts(self) -> BehaviorOptions:
        return self._component.options

    def get_behavior(self) -> BehaviorBase:
        if self._behavior is None:
            raise RuntimeError(f"Behavior '{self.name}' is not initialized")
        return self._behavior

    def initialize(self, factory: BehaviorFactory) -> BehaviorBase:
        """
        Instantiate and initialize the behavior.

        Raises:
            ConfigurationError: if the plugin cannot be created.
        """
        behavior = factory(self._component.plugin)
        if not isinstance(behavior, BehaviorBase):
            raise ConfigurationError(
                f"Plugin '{self._component.plugin}' for behavior '{self.name}' "
                f"does not implement BehaviorBase"
            )
        behavior.set_name(self._component.name)
        behavior.set_parameters(self._component.parameters)
        behavior.initialize()
        if self._component.dofs:
            behavior.set_dofs(self._component.dofs)
        self._behavior = behavior
        return behavior
