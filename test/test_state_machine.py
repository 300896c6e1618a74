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

from auv_helm.core.errors import ConfigurationError
from auv_helm.core.state_machine import State, StateMachine


def _sm(*states):
    sm = StateMachine()
    for s in states:
        sm.append_state(s)
    return sm


def test_initialize_selects_initial_state():
    sm = _sm(
        State.create('a', 'idle'),
        State.create('b', 'flight', initial=True),
    )
    assert sm.initialize().name == 'b'
    assert sm.get_active_state().name == 'b'
    assert not sm.used_fallback

def test_initialize_falls_back_to_first_declared():
    sm = _sm(State.create('a', 'idle'), State.create('b', 'flight'))
    assert sm.initialize().name == 'a'
    assert sm.used_fallback

def test_initialize_without_states_is_fatal():
    with pytest.raises(ConfigurationError):
        StateMachine().initialize()

def test_active_state_before_initialize_raises():
    with pytest.raises(RuntimeError):
        StateMachine().get_active_state()

def test_a_b_scenario():
    sm = _sm(
        State.create('A', 'idle', initial=True, transitions=['B']),
        State.create('B', 'flight', transitions=['A']),
    )
    sm.initialize()
    assert sm.translate_to('B')
    assert sm.get_active_state().name == 'B'
    assert not sm.translate_to('B')  # B only allows A
    assert sm.get_active_state().name == 'B'
    assert sm.translate_to('A')
    assert sm.get_active_state().name == 'A'

def test_declared_but_unreachable_target_rejected():
    sm = _sm(
        State.create('A', 'idle', initial=True, transitions=['B']),
        State.create('B', 'flight'),
        State.create('C', 'flight'),
    )
    sm.initialize()
    before = sm.get_active_state()
    assert not sm.translate_to('C')
    assert sm.get_active_state() == before

def test_reachable_but_undeclared_target_rejected():
    sm = _sm(State.create('A', 'idle', initial=True, transitions=['ghost']))
    sm.initialize()
    assert not sm.translate_to('ghost')
    assert sm.get_active_state().name == 'A'

def test_active_state_is_a_declared_value():
    b = State.create('B', 'flight', transitions=['A'])
    sm = _sm(State.create('A', 'idle', initial=True, transitions=['B']), b)
    sm.initialize()
    sm.translate_to('B')
    assert sm.get_active_state() == b
    assert sm.get_active_state() in sm.states

def test_get_state_lookup():
    sm = _sm(State.create('A', 'idle'), State.create('B', 'flight'))
    assert sm.get_state('B').mode == 'flight'
    assert sm.get_state('nope') is None

def test_append_does_not_dedupe_but_duplicates_are_reported():
    sm = _sm(State.create('A', 'idle'), State.create('A', 'flight'), State.create('B', 'idle'))
    assert len(sm.states) == 3
    assert sm.duplicate_names() == ['A']

def test_transition_history():
    sm = _sm(
        State.create('A', 'idle', initial=True, transitions=['B']),
        State.create('B', 'flight'),
    )
    sm.initialize()
    assert sm.last_transition() is None
    sm.translate_to('C')
    sm.translate_to('B')
    hist = sm.history()
    assert [(r.frm, r.to, r.accepted) for r in hist] == [('A', 'C', False), ('A', 'B', True)]
    assert sm.last_transition().accepted
    sm.clear_history()
    assert sm.history() == []
