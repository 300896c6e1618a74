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
Helm arbitration engine.

- Pure Python (no ROS imports); the ROS node drives it from a timer and
  feeds it controller feedback and control modes.
- Each tick every behavior is asked for a proposal, in declaration order,
  and the proposals are merged DOF by DOF: a behavior takes a DOF only with
  a priority strictly greater than the one already holding it, so the first
  declared behavior wins ties.
- The latest feedback is an immutable ControlProcess swapped by reference;
  iterate() reads it once at the start of the tick.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import time

from .behavior import BehaviorComponent, BehaviorContainer, BehaviorFactory
from .dof import DOF_COUNT, ControlModes, ControlProcess, Dof, parse_dofs
from .errors import ConfigurationError
from .parser import HelmConfiguration, MissionParser
from .state_machine import State, StateMachine


class TickOutcome(Enum):
    """What a single tick did."""
    PUBLISHED = auto()
    NO_FEEDBACK = auto()        # no controller feedback received yet
    NO_CONTROL_MODES = auto()   # control modes not fetched yet
    UNKNOWN_MODE = auto()       # active state's mode not offered by the controller


@dataclass(frozen=True)
class TickResult:
    """
    Result of Helm.iterate().

    Attributes:
        outcome: What the tick did.
        state: Active state the tick ran in (None if it bailed out before).
        command: Merged command, only when outcome is PUBLISHED.
        winners: DOF -> name of the behavior whose value was taken.
        failed: Behavior name -> exception it raised this tick; those
            behaviors were skipped as if they had no proposal.
    """
    outcome: TickOutcome
    state: Optional[State] = None
    command: Optional[ControlProcess] = None
    winners: Mapping[Dof, str] = field(default_factory=dict)
    failed: Mapping[str, Exception] = field(default_factory=dict)

    @property
    def published(self) -> bool:
        return self.outcome is TickOutcome.PUBLISHED


class Helm:
    """
    Owns the state machine and the behavior containers, and runs the tick.

    Args:
        factory: Creates a behavior from its plugin name
            (normally auv_helm.behaviors.create_behavior).
        clock: Returns the current time in float seconds; used to stamp
            commands when iterate() is not given a time.
    """

    def __init__(self, factory: BehaviorFactory, clock: Callable[[], float] = time.time) -> None:
        self._factory = factory
        self._clock = clock
        self._state_machine = StateMachine()
        self._containers: List[BehaviorContainer] = []
        self._frequency: Optional[float] = None
        self._control_modes: Optional[Dict[str, Tuple[Dof, ...]]] = None
        self._feedback: Optional[ControlProcess] = None
        self._initialized = False

    # ------- Startup ------- #

    def initialize(self, mission: Union[str, Mapping]) -> State:
        """
        Parse the mission and bring up the state machine and the behaviors.

        Args:
            mission: Path of a YAML mission file, or an already-loaded
                mission mapping.

        Returns:
            The initial active state.

        Raises:
            ConfigurationError: On any mission or plugin problem.
        """
        if self._initialized:
            raise RuntimeError("Helm is already initialized")

        parser = MissionParser(
            on_behavior=self._generate_behavior,
            on_state=self._state_machine.append_state,
            on_helm_config=self._configure_helm,
        )
        if isinstance(mission, Mapping):
            parser.parse(mission)
        else:
            parser.parse_file(mission)

        dup = self._state_machine.duplicate_names()
        if dup:
            raise ConfigurationError(f"Duplicate state names: {', '.join(dup)}")

        initial = self._state_machine.initialize()
        self._initialize_behaviors()
        self._initialized = True
        return initial

    def _generate_behavior(self, component: BehaviorComponent) -> None:
        self._containers.append(BehaviorContainer(component))

    def _configure_helm(self, conf: HelmConfiguration) -> None:
        self._frequency = conf.frequency

    def _initialize_behaviors(self) -> None:
        for c in self._containers:
            c.initialize(self._factory)
            c.get_behavior().set_helm_frequency(self._frequency)

    def set_control_modes(self, modes: Mapping[str, Iterable]) -> None:
        """
        Cache the controller's mode table (mode name -> ordered DOFs).

        Raises:
            ConfigurationError: If a mode lists an unknown DOF.
        """
        table = {}
        for name, dofs in modes.items():
            try:
                table[str(name)] = parse_dofs(dofs)
            except ValueError as e:
                raise ConfigurationError(f"Control mode '{name}': {e}") from e
        self._control_modes = table

    # ------- Accessors ------- #

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def frequency(self) -> Optional[float]:
        """Tick rate in Hz from the mission."""
        return self._frequency

    @property
    def state_machine(self) -> StateMachine:
        return self._state_machine

    @property
    def containers(self) -> Tuple[BehaviorContainer, ...]:
        return tuple(self._containers)

    @property
    def control_modes(self) -> Optional[ControlModes]:
        return self._control_modes

    # ------- Feedback & administrative requests ------- #

    def register_process_values(self, feedback: ControlProcess) -> None:
        """Store the latest controller feedback (last value wins)."""
        self._feedback = feedback

    @property
    def process_values(self) -> Optional[ControlProcess]:
        return self._feedback

    def get_active_state(self) -> State:
        return self._state_machine.get_active_state()

    def get_state(self, name: str) -> Optional[State]:
        return self._state_machine.get_state(name)

    def get_states(self) -> List[State]:
        return self._state_machine.states

    def change_state(self, name: str) -> bool:
        return self._state_machine.translate_to(name)

    # ------- Tick ------- #

    def iterate(self, now: Optional[float] = None) -> TickResult:
        """
        Run one arbitration tick.

        Args:
            now: Stamp for the command; defaults to the helm clock.

        Returns:
            TickResult; the command is set only if the tick published.
        """
        feedback = self._feedback
        if feedback is None:
            return TickResult(TickOutcome.NO_FEEDBACK)

        active_state = self._state_machine.get_active_state()

        if self._control_modes is None:
            return TickResult(TickOutcome.NO_CONTROL_MODES, state=active_state)

        active_dofs = self._control_modes.get(active_state.mode)
        if active_dofs is None:
            return TickResult(TickOutcome.UNKNOWN_MODE, state=active_state)

        dof_ctrl = [0.0] * DOF_COUNT
        dof_priority = [0] * DOF_COUNT
        winners: Dict[Dof, str] = {}
        failed: Dict[str, Exception] = {}

        for c in self._containers:
            behavior = c.get_behavior()
            # a faulty behavior loses this tick, the others still publish
            try:
                behavior.set_active_dofs(active_dofs)
                behavior.register_process_values(feedback)
                set_point = behavior.request_set_point()
            except Exception as e:
                failed[c.name] = e
                continue
            if set_point is None:
                continue

            priority = c.get_opts().priority(active_state.name)
            if priority is None:
                continue

            # side-effect-only behavior
            dofs = behavior.get_dofs()
            if not dofs:
                continue

            values = set_point.to_array()
            for dof in dofs:
                if priority > dof_priority[dof]:
                    dof_ctrl[dof] = values[dof]
                    dof_priority[dof] = priority
                    winners[dof] = c.name

        command = ControlProcess.from_array(
            dof_ctrl,
            control_mode=active_state.mode,
            stamp=self._clock() if now is None else now,
        )
        return TickResult(TickOutcome.PUBLISHED, state=active_state, command=command, winners=winners,
                          failed=failed)
