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
Depth tracking behavior.

Steers the vehicle to a requested depth by commanding pitch. The pitch
points the vehicle at the requested depth fwd_distance ahead, corrected by
the current flight-path angle, and is clipped to +/- max_pitch.

Parameters:
    initialize_depth: Requested depth until a value arrives on the
        desired_depth input (~/<behavior name>/desired_depth).
    max_pitch: Pitch limit in radians.
    fwd_distance: Look-ahead distance in meters.
"""

from __future__ import annotations
from math import atan, pi
from typing import Callable, Mapping, Optional

from ..core.behavior import BehaviorBase
from ..core.dof import ControlProcess, Dof
from ..core.errors import ConfigurationError


class DepthTracking(BehaviorBase):

    def __init__(self) -> None:
        super().__init__()
        self._requested_depth = 0.0
        self._max_pitch = pi / 2
        self._fwd_distance = 3.0

    def initialize(self) -> None:
        self.set_dofs([Dof.PITCH, Dof.Z])
        self._requested_depth = float(self.param("initialize_depth", 0.0))
        self._max_pitch = abs(float(self.param("max_pitch", pi / 2)))
        self._fwd_distance = float(self.param("fwd_distance", 3.0))
        if self._fwd_distance <= 0.0:
            raise ConfigurationError(f"{self.name}: fwd_distance must be > 0")

    def set_desired_depth(self, depth: float) -> None:
        self._requested_depth = float(depth)

    def inputs(self) -> Mapping[str, Callable[[float], None]]:
        return {"desired_depth": self.set_desired_depth}

    @property
    def desired_depth(self) -> float:
        return self._requested_depth

    def request_set_point(self) -> Optional[ControlProcess]:
        pv = self._process_values
        # positive error means the vehicle is below the requested depth
        error = pv.position[2] - self._requested_depth

        pitch = atan(error / self._fwd_distance)
        u, _, w = pv.velocity
        if u != 0.0:
            pitch += atan(w / u)

        pitch = max(-self._max_pitch, min(self._max_pitch, pitch))

        x, y, _ = pv.position
        roll, _, yaw = pv.orientation
        return ControlProcess(
            position=(x, y, self._requested_depth),
            orientation=(roll, pitch, yaw),
        )
