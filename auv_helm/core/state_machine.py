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
Mission state machine for the helm.

- Pure Python (no ROS imports) for easy unit testing.
- States are declared by the mission: name, controller mode, initial flag
  and the names of the states it may move to.
- Transition legality is decided by the *active* state's own outgoing set;
  there is no global adjacency table.
- Fallback on initialize(): if no state is flagged initial, the first
  declared state becomes active. The fallback is reported via used_fallback
  so the caller can warn about it.

Also records a ring-buffer of recent transition requests for traceability.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from collections import Counter, deque
from typing import Deque, FrozenSet, Iterable, List, Optional
import threading
import time

from .errors import ConfigurationError


# -------------------------- Public dataclasses -------------------------- #

@dataclass(frozen=True)
class State:
    """
    A declared mission state.

    Attributes:
        name: Unique state name.
        mode: Controller mode the low-level controller runs in this state.
        initial: True for the state the helm starts in.
        transitions: Names of the states reachable from this one.
    """
    name: str
    mode: str
    initial: bool = False
    transitions: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def create(
        cls,
        name: str,
        mode: str,
        initial: bool = False,
        transitions: Iterable[str] = (),
    ) -> "State":
        return cls(name=name, mode=mode, initial=bool(initial), transitions=frozenset(transitions))


@dataclass(frozen=True)
class TransitionRec:
    """
    A single transition request captured in the ring buffer.

    Attributes:
        t: Unix timestamp of the request.
        frm: Active state name before the request.
        to: Requested state name.
        accepted: Whether the request changed the active state.
    """
    t: float
    frm: str
    to: str
    accepted: bool


# ------------------------------- State machine --------------------------------- #

class StateMachine:
    """
    Declared states plus exactly one active state.

    Semantics:
        - append_state() only appends; duplicates are caught by the owner
          through duplicate_names() before initialize().
        - initialize() selects the initial state (or the first declared one).
        - translate_to(name) succeeds only if name is listed in the active
          state's transitions AND a state with that name is declared.

    Notes:
        - The active state is an immutable State swapped by reference, so a
          reader on another thread sees either the old or the new state.
        - initialize() and translate_to() are serialized by a lock.
    """

    def __init__(self, history_size: int = 64) -> None:
        self._states: List[State] = []
        self._active: Optional[State] = None
        self._used_fallback = False
        self._lock = threading.Lock()
        self._hist: Deque[TransitionRec] = deque(maxlen=max(1, history_size))

    # ------- Public API ------- #

    def append_state(self, state: State) -> None:
        self._states.append(state)

    @property
    def states(self) -> List[State]:
        """Declared states in declaration order."""
        return list(self._states)

    @property
    def used_fallback(self) -> bool:
        """True if initialize() had to fall back to the first declared state."""
        return self._used_fallback

    def duplicate_names(self) -> List[str]:
        counts = Counter(s.name for s in self._states)
        return sorted(n for n, c in counts.items() if c > 1)

    def initialize(self) -> State:
        """
        Select the active state.

        Returns:
            The newly active state.

        Raises:
            ConfigurationError: if no state was declared.
        """
        with self._lock:
            if not self._states:
                raise ConfigurationError("State machine has no states declared")
            initial = next((s for s in self._states if s.initial), None)
            self._used_fallback = initial is None
            self._active = initial if initial is not None else self._states[0]
            return self._active

    def get_active_state(self) -> State:
        """Return the active state (an immutable value)."""
        if self._active is None:
            raise RuntimeError("State machine is not initialized")
        return self._active

    def get_state(self, name: str) -> Optional[State]:
        """Return the declared state called name, or None."""
        return next((s for s in self._states if s.name == name), None)

    def translate_to(self, name: str) -> bool:
        """
        Move the active state to the declared state called name.

        Returns:
            True if the active state changed, False if the transition is
            not allowed from the active state or the target is undeclared.
        """
        with self._lock:
            before = self.get_active_state()
            target = self.get_state(name) if name in before.transitions else None
            if target is not None:
                self._active = target
            self._hist.append(
                TransitionRec(t=time.time(), frm=before.name, to=name, accepted=target is not None)
            )
            return target is not None

    def history(self) -> List[TransitionRec]:
        """Return a copy of the transition history (most-recent last)."""
        return list(self._hist)

    def last_transition(self) -> Optional[TransitionRec]:
        """Return the most recent transition record, or None if empty."""
        try:
            return self._hist[-1]
        except IndexError:
            return None

    def clear_history(self) -> None:
        """Erase the transition ring buffer."""
        self._hist.clear()
