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


import pytest

from auv_helm.behaviors import create_behavior
from auv_helm.core.behavior import BehaviorBase
from auv_helm.core.dof import ControlProcess, Dof
from auv_helm.core.errors import ConfigurationError
from auv_helm.core.helm import Helm, TickOutcome


class FixedBehavior(BehaviorBase):
    """Proposes the 'values' parameter, claiming exactly its keys."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def initialize(self):
        self.set_dofs(self.param('values', {}).keys())

    def request_set_point(self):
        self.calls += 1
        if self.param('raise', False):
            raise ZeroDivisionError('broken plugin')
        if self.param('fail', False):
            return None
        return ControlProcess.from_mapping(self.param('values', {}))


DEFAULT_STATES = [
    {'name': 'S', 'mode': 'flight', 'initial': True, 'transitions': ['T']},
    {'name': 'T', 'mode': 'idle', 'transitions': ['S']},
]

def _factory(name):
    return {'fixed': FixedBehavior}[name]()

def bhv(name, priority, values, state='S', fail=False):
    return {
        'name': name,
        'plugin': 'fixed',
        'states': {state: priority},
        'parameters': {'values': values, 'fail': fail},
    }

def make_helm(*behaviors, states=None, feedback=True):
    helm = Helm(_factory, clock=lambda: 42.0)
    helm.initialize({
        'helm': {'frequency': 20.0},
        'states': states if states is not None else DEFAULT_STATES,
        'behaviors': list(behaviors),
    })
    helm.set_control_modes({
        'flight': ['x', 'y', 'z', 'roll', 'pitch', 'yaw', 'u'],
        'idle': [],
    })
    if feedback:
        helm.register_process_values(ControlProcess(position=(1.0, 2.0, 3.0)))
    return helm

def behavior(helm, name):
    return next(c for c in helm.containers if c.name == name).get_behavior()


# -------- arbitration --------

def test_higher_priority_wins_pitch():
    helm = make_helm(bhv('p1', 1, {'pitch': 0.1}), bhv('p2', 5, {'pitch': 0.5}))
    res = helm.iterate()
    assert res.outcome is TickOutcome.PUBLISHED
    assert res.command.value(Dof.PITCH) == 0.5
    assert res.winners[Dof.PITCH] == 'p2'

@pytest.mark.parametrize('order', [('lo', 'hi'), ('hi', 'lo')])
def test_strict_priority_regardless_of_order(order):
    decl = {'lo': bhv('lo', 5, {'z': 1.0}), 'hi': bhv('hi', 10, {'z': 2.0})}
    helm = make_helm(*(decl[n] for n in order))
    assert helm.iterate().command.value(Dof.Z) == 2.0

def test_tie_goes_to_first_declared():
    a, b = bhv('a', 3, {'yaw': 1.0}), bhv('b', 3, {'yaw': 2.0})
    assert make_helm(a, b).iterate().command.value(Dof.YAW) == 1.0
    assert make_helm(b, a).iterate().command.value(Dof.YAW) == 2.0

def test_disjoint_dofs_both_present():
    helm = make_helm(bhv('depth', 1, {'z': 7.0}), bhv('heading', 1, {'yaw': 0.3}))
    res = helm.iterate()
    assert res.command.value(Dof.Z) == 7.0
    assert res.command.value(Dof.YAW) == 0.3
    assert res.winners == {Dof.Z: 'depth', Dof.YAW: 'heading'}

def test_arbitration_is_per_dof():
    helm = make_helm(
        bhv('a', 5, {'z': 1.0, 'pitch': 1.0}),
        bhv('b', 7, {'pitch': 2.0}),
    )
    res = helm.iterate()
    assert res.command.value(Dof.Z) == 1.0
    assert res.command.value(Dof.PITCH) == 2.0

def test_behavior_not_in_active_state_contributes_nothing():
    helm = make_helm(bhv('other', 100, {'pitch': 0.9}, state='T'))
    res = helm.iterate()
    assert res.published
    assert res.command.value(Dof.PITCH) == 0.0
    assert res.winners == {}
    assert behavior(helm, 'other').calls == 1

def test_failed_proposal_is_skipped_for_the_tick():
    helm = make_helm(bhv('broken', 10, {'pitch': 0.9}, fail=True), bhv('ok', 1, {'pitch': 0.2}))
    res = helm.iterate()
    assert res.command.value(Dof.PITCH) == 0.2
    helm.iterate()
    assert behavior(helm, 'broken').calls == 2

def test_raising_behavior_does_not_stop_the_tick():
    raising = bhv('raising', 10, {'z': 9.0})
    raising['parameters']['raise'] = True
    helm = make_helm(raising, bhv('ok', 1, {'z': 4.0}))
    res = helm.iterate()
    assert res.published
    assert res.command.value(Dof.Z) == 4.0
    assert res.winners == {Dof.Z: 'ok'}
    assert isinstance(res.failed['raising'], ZeroDivisionError)
    assert helm.iterate().published
    assert behavior(helm, 'raising').calls == 2

def test_side_effect_behavior_claims_nothing():
    helm = make_helm(bhv('watchdog', 50, {}), bhv('ok', 1, {'x': 4.0}))
    res = helm.iterate()
    assert behavior(helm, 'watchdog').calls == 1
    assert res.command.value(Dof.X) == 4.0
    assert 'watchdog' not in res.winners.values()

def test_non_positive_priority_never_wins():
    helm = make_helm(bhv('zero', 0, {'pitch': 0.9}))
    res = helm.iterate()
    assert res.command.value(Dof.PITCH) == 0.0
    assert res.winners == {}

def test_command_is_stamped_with_mode_and_time():
    helm = make_helm(bhv('a', 1, {'x': 1.0}))
    assert helm.iterate(now=12.5).command.stamp == 12.5
    cmd = helm.iterate().command
    assert cmd.stamp == 42.0
    assert cmd.control_mode == 'flight'

def test_priorities_follow_active_state():
    helm = make_helm(
        {'name': 'a', 'plugin': 'fixed', 'states': {'S': 1, 'T': 9}, 'parameters': {'values': {'z': 1.0}}},
        {'name': 'b', 'plugin': 'fixed', 'states': {'S': 5, 'T': 2}, 'parameters': {'values': {'z': 2.0}}},
    )
    helm.set_control_modes({'flight': ['z'], 'idle': ['z']})
    assert helm.iterate().command.value(Dof.Z) == 2.0
    assert helm.change_state('T')
    res = helm.iterate()
    assert res.command.value(Dof.Z) == 1.0
    assert res.command.control_mode == 'idle'

def test_behaviors_receive_tick_inputs():
    helm = make_helm(bhv('a', 1, {'x': 1.0}))
    helm.iterate()
    b = behavior(helm, 'a')
    assert b._helm_frequency == 20.0
    assert b._active_dofs == (Dof.X, Dof.Y, Dof.Z, Dof.ROLL, Dof.PITCH, Dof.YAW, Dof.U)
    assert b._process_values.position == (1.0, 2.0, 3.0)
    assert b.inputs() == {}


# -------- skipped ticks --------

def test_no_feedback_is_a_silent_no_op():
    helm = make_helm(bhv('a', 1, {'x': 1.0}), feedback=False)
    res = helm.iterate()
    assert res.outcome is TickOutcome.NO_FEEDBACK
    assert res.command is None
    assert behavior(helm, 'a').calls == 0

def test_unknown_mode_skips_tick():
    helm = make_helm(bhv('a', 1, {'x': 1.0}))
    helm.set_control_modes({'something_else': ['x']})
    res = helm.iterate()
    assert res.outcome is TickOutcome.UNKNOWN_MODE
    assert res.state.mode == 'flight'
    assert res.command is None

def test_no_control_modes_skips_tick():
    helm = Helm(_factory)
    helm.initialize({'helm': {'frequency': 1.0}, 'states': [{'name': 'S', 'mode': 'm'}]})
    helm.register_process_values(ControlProcess())
    assert helm.iterate().outcome is TickOutcome.NO_CONTROL_MODES


# -------- startup --------

def test_duplicate_state_names_are_fatal():
    with pytest.raises(ConfigurationError, match='Duplicate state'):
        make_helm(states=[{'name': 'S', 'mode': 'a'}, {'name': 'S', 'mode': 'b'}])

def test_empty_state_list_is_fatal():
    with pytest.raises(ConfigurationError):
        make_helm(states=[])

def test_unknown_plugin_is_fatal():
    helm = Helm(create_behavior)
    with pytest.raises(ConfigurationError, match='Unknown behavior plugin'):
        helm.initialize({
            'helm': {'frequency': 1.0},
            'states': [{'name': 'S', 'mode': 'm'}],
            'behaviors': [{'name': 'x', 'plugin': 'does_not_exist', 'states': {'S': 1}}],
        })

def test_initialize_twice_raises():
    helm = make_helm()
    with pytest.raises(RuntimeError):
        helm.initialize({'helm': {'frequency': 1.0}, 'states': [{'name': 'S', 'mode': 'm'}]})

def test_bad_control_mode_dof_rejected():
    helm = make_helm()
    with pytest.raises(ConfigurationError):
        helm.set_control_modes({'flight': ['x', 'warp']})

def test_initialize_from_mission_file(tmp_path):
    path = tmp_path / 'mission.yaml'
    path.write_text(
        'helm: {frequency: 5}\n'
        'states:\n'
        '  - {name: start, mode: idle, initial: true, transitions: [dive]}\n'
        '  - {name: dive, mode: flight, transitions: [start]}\n'
        'behaviors:\n'
        '  - name: depth\n'
        '    plugin: depth_tracking\n'
        '    states: {dive: 10}\n'
        '    parameters: {initialize_depth: 3.0}\n'
    )
    helm = Helm(create_behavior)
    assert helm.initialize(str(path)).name == 'start'
    assert helm.frequency == 5.0
    helm.set_control_modes({'idle': [], 'flight': ['z', 'pitch']})
    helm.register_process_values(ControlProcess(position=(0.0, 0.0, 3.0)))

    res = helm.iterate()
    assert res.winners == {}
    assert helm.change_state('dive')
    res = helm.iterate()
    assert res.command.value(Dof.Z) == 3.0
    assert res.command.value(Dof.PITCH) == pytest.approx(0.0)
    assert set(res.winners) == {Dof.Z, Dof.PITCH}
