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
Degree-of-freedom index and the control process record.

- Pure Python (no ROS imports).
- Dof doubles as array index (IntEnum) and as a named identifier.
- ControlProcess is immutable; feedback snapshots and commands are swapped
  by reference, never mutated in place.

Array layout (Dof order):
    X, Y, Z            position
    ROLL, PITCH, YAW   orientation
    U, V, W            linear velocity
    P, Q, R            angular rate
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Mapping, Sequence, Tuple


class Dof(IntEnum):
    """Controllable degrees of freedom."""
    X = 0
    Y = 1
    Z = 2
    ROLL = 3
    PITCH = 4
    YAW = 5
    U = 6
    V = 7
    W = 8
    P = 9
    Q = 10
    R = 11

    @classmethod
    def parse(cls, value) -> "Dof":
        """
        Resolve a Dof from its name (case-insensitive), its index or itself.

        Raises:
            ValueError: if the value does not name a Dof.
        """
        if isinstance(value, Dof):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown degree of freedom: {value!r}")


DOF_COUNT = len(Dof)

Vector3 = Tuple[float, float, float]

# name -> ordered Dofs controlled by that mode
ControlModes = Mapping[str, Tuple[Dof, ...]]


def parse_dofs(values: Iterable) -> Tuple[Dof, ...]:
    """Parse an iterable of DOF names/indices, preserving order, dropping repeats."""
    out: List[Dof] = []
    for v in values:
        d = Dof.parse(v)
        if d not in out:
            out.append(d)
    return tuple(out)


def _vec(values: Sequence[float]) -> Vector3:
    x, y, z = values
    return (float(x), float(y), float(z))


@dataclass(frozen=True)
class ControlProcess:
    """
    Snapshot of the controlled process, used both as feedback and as command.

    Attributes:
        position: x, y, z.
        orientation: roll, pitch, yaw.
        velocity: u, v, w (body linear velocity).
        angular_rate: p, q, r.
        control_mode: Name of the controller mode this record refers to.
        stamp: Time in float seconds.
    """
    position: Vector3 = (0.0, 0.0, 0.0)
    orientation: Vector3 = (0.0, 0.0, 0.0)
    velocity: Vector3 = (0.0, 0.0, 0.0)
    angular_rate: Vector3 = (0.0, 0.0, 0.0)
    control_mode: str = ""
    stamp: float = 0.0

    def to_array(self) -> List[float]:
        """Flatten into a DOF_COUNT-long list in Dof order."""
        return [
            *self.position,
            *self.orientation,
            *self.velocity,
            *self.angular_rate,
        ]

    def value(self, dof: Dof) -> float:
        return self.to_array()[int(dof)]

    @classmethod
    def from_array(
        cls,
        values: Sequence[float],
        control_mode: str = "",
        stamp: float = 0.0,
    ) -> "ControlProcess":
        """Inverse of to_array()."""
        if len(values) != DOF_COUNT:
            raise ValueError(f"Expected {DOF_COUNT} values, got {len(values)}")
        return cls(
            position=_vec(values[0:3]),
            orientation=_vec(values[3:6]),
            velocity=_vec(values[6:9]),
            angular_rate=_vec(values[9:12]),
            control_mode=control_mode,
            stamp=float(stamp),
        )

    @classmethod
    def from_mapping(
        cls,
        values: Mapping,
        control_mode: str = "",
        stamp: float = 0.0,
    ) -> "ControlProcess":
        """Build from {dof: value}; unspecified DOFs are zero."""
        arr = [0.0] * DOF_COUNT
        for k, v in values.items():
            arr[int(Dof.parse(k))] = float(v)
        return cls.from_array(arr, control_mode=control_mode, stamp=stamp)
