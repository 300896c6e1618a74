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
YAML mission parser.

A mission declares the helm configuration, the state machine states and
the behaviors. The parser validates the document and hands each piece to
the callback registered for it, in declaration order: helm configuration
first, then every state, then every behavior.

Example:

    helm:
      frequency: 10.0
    states:
      - name: start
        mode: idle
        initial: true
        transitions: [survey]
    behaviors:
      - name: depth
        plugin: depth_tracking
        dofs: [z, pitch]
        states: {survey: 10}
        parameters: {initialize_depth: 5.0}
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import yaml

from .behavior import BehaviorComponent, BehaviorOptions
from .dof import parse_dofs
from .errors import ConfigurationError
from .state_machine import State


@dataclass(frozen=True)
class HelmConfiguration:
    """Global helm settings. frequency is the tick rate in Hz."""
    frequency: float


BehaviorCallback = Callable[[BehaviorComponent], None]
StateCallback = Callable[[State], None]
HelmConfCallback = Callable[[HelmConfiguration], None]


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigurationError(msg)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


class MissionParser:
    """
    Parses a mission document and dispatches its parts to callbacks.

    Unset callbacks are simply not called, so a caller interested only in
    the states can register just on_state.
    """

    def __init__(
        self,
        on_behavior: Optional[BehaviorCallback] = None,
        on_state: Optional[StateCallback] = None,
        on_helm_config: Optional[HelmConfCallback] = None,
    ) -> None:
        self._on_behavior = on_behavior
        self._on_state = on_state
        self._on_helm_config = on_helm_config

    # ------- Public API ------- #

    def parse_file(self, path: str) -> None:
        try:
            with open(path, "r") as f:
                text = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read mission file '{path}': {e}") from e
        self.parse_text(text)

    def parse_text(self, text: str) -> None:
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Mission is not valid YAML: {e}") from e
        self.parse(doc)

    def parse(self, doc: Any) -> None:
        """Validate an already-loaded mission document and dispatch it."""
        _require(isinstance(doc, Mapping), "Mission must be a mapping")

        conf = self._parse_helm(doc.get("helm"))
        states = [self._parse_state(i, s) for i, s in enumerate(doc.get("states") or [])]
        behaviors = [self._parse_behavior(i, b) for i, b in enumerate(doc.get("behaviors") or [])]

        names = [b.name for b in behaviors]
        dup = sorted({n for n in names if names.count(n) > 1})
        _require(not dup, f"Duplicate behavior names: {', '.join(dup)}")

        # dispatch only once the whole document is valid
        if self._on_helm_config:
            self._on_helm_config(conf)
        if self._on_state:
            for s in states:
                self._on_state(s)
        if self._on_behavior:
            for b in behaviors:
                self._on_behavior(b)

    # ------- Internal ------- #

    def _parse_helm(self, node: Any) -> HelmConfiguration:
        _require(isinstance(node, Mapping), "Mission needs a 'helm' section")
        freq = node.get("frequency")
        _require(_is_number(freq) and freq > 0, "helm.frequency must be a number > 0")
        return HelmConfiguration(frequency=float(freq))

    def _parse_state(self, idx: int, node: Any) -> State:
        where = f"states[{idx}]"
        _require(isinstance(node, Mapping), f"{where} must be a mapping")
        name = node.get("name")
        mode = node.get("mode")
        _require(isinstance(name, str) and name != "", f"{where}.name must be a non-empty string")
        _require(isinstance(mode, str) and mode != "", f"{where} ('{name}'): mode must be a non-empty string")
        initial = node.get("initial", False)
        _require(isinstance(initial, bool), f"{where} ('{name}'): initial must be a boolean")
        transitions = node.get("transitions") or []
        _require(
            isinstance(transitions, list) and all(isinstance(t, str) for t in transitions),
            f"{where} ('{name}'): transitions must be a list of state names",
        )
        return State.create(name, mode, initial=initial, transitions=transitions)

    def _parse_behavior(self, idx: int, node: Any) -> BehaviorComponent:
        where = f"behaviors[{idx}]"
        _require(isinstance(node, Mapping), f"{where} must be a mapping")
        name = node.get("name")
        plugin = node.get("plugin")
        _require(isinstance(name, str) and name != "", f"{where}.name must be a non-empty string")
        _require(isinstance(plugin, str) and plugin != "", f"{where} ('{name}'): plugin must be a non-empty string")

        states = node.get("states") or {}
        _require(isinstance(states, Mapping), f"{where} ('{name}'): states must map state name to priority")
        for state_name, priority in states.items():
            _require(
                _is_int(priority),
                f"{where} ('{name}'): priority for state '{state_name}' must be an integer",
            )

        dofs = node.get("dofs") or []
        _require(isinstance(dofs, list), f"{where} ('{name}'): dofs must be a list")
        try:
            dofs = parse_dofs(dofs)
        except ValueError as e:
            raise ConfigurationError(f"{where} ('{name}'): {e}") from e

        parameters = node.get("parameters") or {}
        _require(isinstance(parameters, Mapping), f"{where} ('{name}'): parameters must be a mapping")

        return BehaviorComponent(
            name=name,
            plugin=plugin,
            options=BehaviorOptions(states={str(k): int(v) for k, v in states.items()}),
            dofs=dofs,
            parameters=dict(parameters),
        )
