#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# auv_helm/core/__init__.py
"""
Core, ROS-agnostic logic for auv_helm.
Exports the DOF model, the mission state machine, the behavior contract,
the mission parser and the arbitration engine.
"""
from .dof import Dof, DOF_COUNT, ControlModes, ControlProcess, parse_dofs
from .errors import ConfigurationError
from .state_machine import State, StateMachine, TransitionRec
from .behavior import BehaviorBase, BehaviorComponent, BehaviorContainer, BehaviorOptions
from .parser import HelmConfiguration, MissionParser
from .helm import Helm, TickOutcome, TickResult
from .retry import wait_until

__all__ = [
    "Dof",
    "DOF_COUNT",
    "ControlModes",
    "ControlProcess",
    "parse_dofs",
    "ConfigurationError",
    "State",
    "StateMachine",
    "TransitionRec",
    "BehaviorBase",
    "BehaviorComponent",
    "BehaviorContainer",
    "BehaviorOptions",
    "HelmConfiguration",
    "MissionParser",
    "Helm",
    "TickOutcome",
    "TickResult",
    "wait_until",
]
