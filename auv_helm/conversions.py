#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Conversions between ROS 2 messages and the core helm types.

Wire format of a ControlProcess (sensor_msgs/JointState):
    name[]           DOF names (x, y, z, roll, pitch, yaw, u, v, w, p, q, r)
    position[]       DOF values, same order as name[]
    header.stamp     time of the sample / command
    header.frame_id  control mode
"""
from __future__ import annotations
from math import floor
from typing import Dict, List, Sequence

from builtin_interfaces.msg import Time
from rcl_interfaces.msg import ParameterType, ParameterValue
from sensor_msgs.msg import JointState

from .core.dof import ControlProcess, Dof
from .core.errors import ConfigurationError
from .core.state_machine import State, TransitionRec

DOF_NAMES = tuple(d.name.lower() for d in Dof)
CONTROL_MODES_PREFIX = 'control_modes'


def to_time_msg(t: float) -> Time:
    sec = int(floor(t))
    nanosec = min(int(round((t - sec) * 1e9)), 999_999_999)
    return Time(sec=sec, nanosec=nanosec)


def from_time_msg(stamp: Time) -> float:
    return stamp.sec + stamp.nanosec * 1e-9


def joint_state_to_control_process(msg: JointState) -> ControlProcess:
    """Feedback message -> ControlProcess. Unknown joint names are ignored."""
    values: Dict[Dof, float] = {}
    for name, pos in zip(msg.name, msg.position):
        try:
            values[Dof.parse(name)] = pos
        except ValueError:
            continue
    return ControlProcess.from_mapping(
        values,
        control_mode=msg.header.frame_id,
        stamp=from_time_msg(msg.header.stamp),
    )


def control_process_to_joint_state(cp: ControlProcess) -> JointState:
    msg = JointState()
    msg.header.stamp = to_time_msg(cp.stamp)
    msg.header.frame_id = cp.control_mode
    msg.name = list(DOF_NAMES)
    msg.position = [float(v) for v in cp.to_array()]
    return msg


def control_modes_from_parameters(
    names: Sequence[str],
    values: Sequence[ParameterValue],
    prefix: str = CONTROL_MODES_PREFIX,
) -> Dict[str, List[str]]:
    """
    Build the control mode table from the controller's parameters.

    Each ``<prefix>.<mode>`` parameter must be a string array of DOF names.
    """
    if len(names) != len(values):
        raise ConfigurationError('Controller returned mismatched parameter names and values')
    modes: Dict[str, List[str]] = {}
    for name, value in zip(names, values):
        if not name.startswith(prefix + '.'):
            continue
        if value.type != ParameterType.PARAMETER_STRING_ARRAY:
            raise ConfigurationError(f"Controller parameter '{name}' must be a string array of DOF names")
        modes[name[len(prefix) + 1:]] = list(value.string_array_value)
    return modes


def state_to_dict(state: State) -> dict:
    return {
        'name': state.name,
        'mode': state.mode,
        'initial': state.initial,
        'transitions': sorted(state.transitions),
    }


def transition_to_dict(rec: TransitionRec) -> dict:
    return {'t': rec.t, 'from': rec.frm, 'to': rec.to, 'accepted': rec.accepted}
