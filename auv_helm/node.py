#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Dict, List, Optional
import time

import rclpy
import yaml
from rclpy.executors import MultiThreadedExecutor
from rclpy.lifecycle import LifecycleNode, State as LifecycleState, TransitionCallbackReturn
from rclpy.qos import QoSProfile, ReliabilityPolicy, HistoryPolicy, DurabilityPolicy
from rclpy.callback_groups import ReentrantCallbackGroup
from rclpy.parameter import Parameter
from rcl_interfaces.msg import (
    ParameterType,
    ParameterValue,
    SetParametersResult,
    ParameterDescriptor,
    FloatingPointRange,
    IntegerRange,
)
from rcl_interfaces.srv import GetParameters, ListParameters

from sensor_msgs.msg import JointState
from std_msgs.msg import Float64
from std_srvs.srv import Trigger

from .behaviors import create_behavior
from .conversions import (
    CONTROL_MODES_PREFIX,
    control_modes_from_parameters,
    control_process_to_joint_state,
    joint_state_to_control_process,
    state_to_dict,
    transition_to_dict,
)
from .core.errors import ConfigurationError
from .core.helm import Helm, TickOutcome
from .core.retry import wait_until

TOPIC_PROCESS_VALUE = 'controller/process/value'
TOPIC_PROCESS_SET_POINT = 'controller/process/set_point'


class HelmNode(LifecycleNode):
    """Lifecycle-aware helm: arbitrates behaviors and drives the low level controller."""

    def __init__(self, **kwargs) -> None:
        super().__init__('helm', **kwargs)
        self._cbg = ReentrantCallbackGroup()

        # ----- Core, ROS-agnostic (built in on_configure) -----
        self._helm: Optional[Helm] = None
        self._is_active = False

        # ----- ROS interfaces (created in on_configure) -----
        self._pub: Optional['rclpy.lifecycle.Publisher'] = None
        self._process_sub = None
        self._input_subs: list = []
        self._timer = None
        self._srv_get_state = None
        self._srv_get_states = None
        self._srv_describe_states = None
        self._srv_get_transitions = None

        # ---------------- Parameters (declare with descriptors in __init__) ----------------
        self.declare_parameter(
            'mission_file',
            '',
            descriptor=ParameterDescriptor(
                description='Path of the YAML mission (states, behaviors, helm frequency).',
                read_only=True,
            ),
        )
        self.declare_parameter(
            'controller_node',
            'controller',
            descriptor=ParameterDescriptor(
                description='Name of the low level controller node publishing control_modes.* parameters.',
                read_only=True,
            ),
        )
        self.declare_parameter(
            'control_modes_retry_period',
            5.0,
            descriptor=ParameterDescriptor(
                description='Seconds to wait for the controller per attempt.',
                floating_point_range=[FloatingPointRange(from_value=0.1, to_value=3600.0, step=0.0)],
            ),
        )
        self.declare_parameter(
            'control_modes_retry_backoff',
            1.0,
            descriptor=ParameterDescriptor(
                description='Factor applied to the wait after every attempt (1.0 = fixed interval).',
                floating_point_range=[FloatingPointRange(from_value=1.0, to_value=10.0, step=0.0)],
            ),
        )
        self.declare_parameter(
            'control_modes_max_retry_period',
            30.0,
            descriptor=ParameterDescriptor(
                description='Upper bound of the per-attempt wait in seconds.',
                floating_point_range=[FloatingPointRange(from_value=0.1, to_value=3600.0, step=0.0)],
            ),
        )
        self.declare_parameter(
            'control_modes_max_attempts',
            0,
            descriptor=ParameterDescriptor(
                description='Give up waiting for the controller after this many attempts (0 = never).',
                integer_range=[IntegerRange(from_value=0, to_value=1000000, step=1)],
            ),
        )
        self.declare_parameter(
            'active_state',
            '',
            descriptor=ParameterDescriptor(
                description='Set to request a state machine transition; rejected if not allowed.',
            ),
        )
        # Dynamic updates
        self._param_cb = self.add_on_set_parameters_callback(self._on_param_update)

        self.get_logger().info('Constructed (UNCONFIGURED)')

    # ---------------- Lifecycle hooks ----------------
    def on_configure(self, state: LifecycleState) -> TransitionCallbackReturn:
        self.get_logger().info('on_configure()')
        try:
            mission_file = str(self.get_parameter('mission_file').value)
            if not mission_file:
                raise ConfigurationError("Parameter 'mission_file' is not set")

            helm = Helm(create_behavior, clock=self._now)
            initial = helm.initialize(mission_file)
            if helm.state_machine.used_fallback:
                self.get_logger().warning(
                    f"No state is marked initial, falling back to the first declared state '{initial.name}'"
                )
            self._helm = helm
            self.get_logger().info(
                f'Mission loaded: {len(helm.get_states())} states, {len(helm.containers)} behaviors, '
                f'{helm.frequency} Hz, initial state {initial.name}'
            )

            qos = QoSProfile(
                depth=100,
                reliability=ReliabilityPolicy.RELIABLE,
                durability=DurabilityPolicy.VOLATILE,
                history=HistoryPolicy.KEEP_LAST,
            )

            # Pub/Sub
            self._pub = self.create_lifecycle_publisher(JointState, TOPIC_PROCESS_SET_POINT, qos)
            self._process_sub = self.create_subscription(
                JointState, TOPIC_PROCESS_VALUE, self._on_process_values, qos, callback_group=self._cbg
            )
            for c in helm.containers:
                for input_name, handler in c.get_behavior().inputs().items():
                    topic = f'~/{c.name}/{input_name}'
                    self._input_subs.append(self.create_subscription(
                        Float64, topic, self._make_input_cb(handler), qos, callback_group=self._cbg
                    ))
                    self.get_logger().info(f'Behavior input {c.name}.{input_name} on {topic}')

            # Services
            self._srv_get_state = self.create_service(
                Trigger, '~/get_state', self._on_get_state, callback_group=self._cbg
            )
            self._srv_get_states = self.create_service(
                Trigger, '~/get_states', self._on_get_states, callback_group=self._cbg
            )
            self._srv_describe_states = self.create_service(
                GetParameters, '~/describe_states', self._on_describe_states, callback_group=self._cbg
            )
            self._srv_get_transitions = self.create_service(
                Trigger, '~/get_transitions', self._on_get_transitions, callback_group=self._cbg
            )

            # Blocks until the low level controller answers
            helm.set_control_modes(self._fetch_control_modes())
            self.get_logger().info(f'Control modes: {", ".join(sorted(helm.control_modes))}')

            # Timer (created but stopped until ACTIVE)
            self._timer = self.create_timer(1.0 / helm.frequency, self._on_timer, callback_group=self._cbg)
            self._timer.cancel()

            self.get_logger().info('Configured resources (INACTIVE)')
            return TransitionCallbackReturn.SUCCESS
        except Exception as e:
            self.get_logger().error(f'Configure failed: {e}')
            self._destroy_interfaces()
            return TransitionCallbackReturn.FAILURE

    def on_activate(self, state: LifecycleState) -> TransitionCallbackReturn:
        self.get_logger().info('on_activate()')
        try:
            if self._pub is None or self._timer is None or self._helm is None:
                self.get_logger().error('Missing resources in activate')
                return TransitionCallbackReturn.FAILURE
            self._pub.on_activate(state)
            self._is_active = True
            self._timer.reset()
            self.get_logger().info(f'Activated, state={self._helm.get_active_state().name}')
            return TransitionCallbackReturn.SUCCESS
        except Exception as e:
            self.get_logger().error(f'Activate failed: {e}')
            return TransitionCallbackReturn.FAILURE

    def on_deactivate(self, state: LifecycleState) -> TransitionCallbackReturn:
        self.get_logger().info('on_deactivate()')
        try:
            self._is_active = False
            if self._timer:
                self._timer.cancel()
            if self._pub:
                self._pub.on_deactivate(state)
            self.get_logger().info('Deactivated (timer stopped, publisher inactive)')
            return TransitionCallbackReturn.SUCCESS
        except Exception as e:
            self.get_logger().error(f'Deactivate failed: {e}')
            return TransitionCallbackReturn.FAILURE

    def on_cleanup(self, state: LifecycleState) -> TransitionCallbackReturn:
        self.get_logger().info('on_cleanup()')
        try:
            self._destroy_interfaces()
            self.get_logger().info('Cleaned up (UNCONFIGURED)')
            return TransitionCallbackReturn.SUCCESS
        except Exception as e:
            self.get_logger().error(f'Cleanup failed: {e}')
            return TransitionCallbackReturn.FAILURE

    def on_shutdown(self, state: LifecycleState) -> TransitionCallbackReturn:
        self.get_logger().info('on_shutdown()')
        self._is_active = False
        if self._timer:
            self._timer.cancel()
        return TransitionCallbackReturn.SUCCESS

    def _destroy_interfaces(self) -> None:
        self._is_active = False

        # Destroy timer first
        if self._timer:
            self._timer.cancel()
            self.destroy_timer(self._timer)
            self._timer = None

        if self._process_sub:
            self.destroy_subscription(self._process_sub); self._process_sub = None
        for sub in self._input_subs:
            self.destroy_subscription(sub)
        self._input_subs = []
        if self._srv_get_state:
            self.destroy_service(self._srv_get_state); self._srv_get_state = None
        if self._srv_get_states:
            self.destroy_service(self._srv_get_states); self._srv_get_states = None
        if self._srv_describe_states:
            self.destroy_service(self._srv_describe_states); self._srv_describe_states = None
        if self._srv_get_transitions:
            self.destroy_service(self._srv_get_transitions); self._srv_get_transitions = None
        if self._pub:
            self.destroy_publisher(self._pub); self._pub = None

        self._helm = None

    # ---------------- Control modes (one-time blocking query) ----------------
    def _fetch_control_modes(self) -> Dict[str, List[str]]:
        controller = str(self.get_parameter('controller_node').value)
        list_cli = self.create_client(ListParameters, f'{controller}/list_parameters', callback_group=self._cbg)
        get_cli = self.create_client(GetParameters, f'{controller}/get_parameters', callback_group=self._cbg)
        try:
            wait_until(
                lambda t: list_cli.wait_for_service(timeout_sec=t) and get_cli.wait_for_service(timeout_sec=t),
                period=float(self.get_parameter('control_modes_retry_period').value),
                backoff=float(self.get_parameter('control_modes_retry_backoff').value),
                max_period=float(self.get_parameter('control_modes_max_retry_period').value),
                max_attempts=int(self.get_parameter('control_modes_max_attempts').value),
                on_wait=lambda n, t: self.get_logger().warning(
                    f'Waiting for service: {list_cli.srv_name} (attempt {n}, waited {t:.1f}s)'
                ),
            )

            req = ListParameters.Request()
            req.prefixes = [CONTROL_MODES_PREFIX]
            req.depth = ListParameters.Request.DEPTH_RECURSIVE
            names = list(self._call(list_cli, req).result.names)

            values = list(self._call(get_cli, GetParameters.Request(names=names)).values)
        finally:
            self.destroy_client(list_cli)
            self.destroy_client(get_cli)

        modes = control_modes_from_parameters(names, values)
        if not modes:
            raise ConfigurationError(f"Controller '{controller}' declares no {CONTROL_MODES_PREFIX}.* parameters")
        return modes

    def _call(self, client, request):
        future = client.call_async(request)
        # spin_until_future_complete leaves the node attached to the idle global executor
        if self.executor is None or self.executor is rclpy.get_global_executor():
            rclpy.spin_until_future_complete(self, future)
        else:
            # an executor thread is already spinning this node and delivers the response
            while rclpy.ok() and not future.done():
                time.sleep(0.01)
        if future.result() is None:
            raise RuntimeError(f'Call to {client.srv_name} failed: {future.exception()}')
        return future.result()

    # ---------------- Parameter handling (change-state requests) ----------------
    def _on_param_update(self, params: list[Parameter]) -> SetParametersResult:
        for p in params:
            if p.name != 'active_state':
                continue
            if p.type_ != Parameter.Type.STRING:
                return SetParametersResult(successful=False, reason='active_state must be a string')
            if self._helm is None:
                return SetParametersResult(successful=False, reason='Helm not configured')
            current = self._helm.get_active_state().name
            if not self._helm.change_state(p.value):
                return SetParametersResult(
                    successful=False,
                    reason=f"Transition '{current}' -> '{p.value}' is not allowed",
                )
            self.get_logger().info(f'State {current} -> {p.value}')
        return SetParametersResult(successful=True)

    # ---------------- Helpers & ROS Callbacks ----------------
    def _now(self) -> float:
        return self.get_clock().now().nanoseconds * 1e-9

    @staticmethod
    def _make_input_cb(handler):
        def cb(msg: Float64) -> None:
            handler(msg.data)
        return cb

    def _on_process_values(self, msg: JointState) -> None:
        helm = self._helm
        if helm is not None:
            helm.register_process_values(joint_state_to_control_process(msg))

    def _on_timer(self) -> None:
        helm = self._helm
        if not self._is_active or self._pub is None or helm is None:
            return
        result = helm.iterate(self._now())
        for name, err in result.failed.items():
            self.get_logger().error(
                f"Behavior '{name}' raised {type(err).__name__}: {err}; skipped this tick",
                throttle_duration_sec=10.0,
            )
        if result.outcome is TickOutcome.UNKNOWN_MODE:
            self.get_logger().warning(
                f"Active mode '{result.state.mode}' can not be found in low level controller "
                f"configuration! Helm is skipping.",
                throttle_duration_sec=10.0,
            )
            return
        if not result.published:
            return
        self._pub.publish(control_process_to_joint_state(result.command))

    # ---------------- Services ----------------
    def _on_get_state(self, req: Trigger.Request, res: Trigger.Response) -> Trigger.Response:
        if self._helm is None:
            res.success = False; res.message = 'Helm not configured'; return res
        res.success = True
        res.message = yaml.safe_dump(state_to_dict(self._helm.get_active_state()), sort_keys=False)
        return res

    def _on_get_states(self, req: Trigger.Request, res: Trigger.Response) -> Trigger.Response:
        if self._helm is None:
            res.success = False; res.message = 'Helm not configured'; return res
        res.success = True
        res.message = yaml.safe_dump([state_to_dict(s) for s in self._helm.get_states()], sort_keys=False)
        return res

    def _on_describe_states(self, req: GetParameters.Request, res: GetParameters.Response) -> GetParameters.Response:
        # one value per requested name: the state as YAML, NOT_SET if unknown; '' is the active state
        helm = self._helm
        for name in req.names:
            state = None
            if helm is not None:
                state = helm.get_active_state() if name == '' else helm.get_state(name)
            if state is None:
                res.values.append(ParameterValue(type=ParameterType.PARAMETER_NOT_SET))
            else:
                res.values.append(ParameterValue(
                    type=ParameterType.PARAMETER_STRING,
                    string_value=yaml.safe_dump(state_to_dict(state), sort_keys=False),
                ))
        return res

    def _on_get_transitions(self, req: Trigger.Request, res: Trigger.Response) -> Trigger.Response:
        if self._helm is None:
            res.success = False; res.message = 'Helm not configured'; return res
        res.success = True
        res.message = yaml.safe_dump(
            [transition_to_dict(r) for r in self._helm.state_machine.history()], sort_keys=False
        )
        return res


def main() -> None:
    rclpy.init()
    node = HelmNode()
    exe = MultiThreadedExecutor(num_threads=2)
    try:
        # configure before spinning: it blocks until the controller answers
        if node.trigger_configure() != TransitionCallbackReturn.SUCCESS:
            raise SystemExit(1)
        node.trigger_activate()
        exe.add_node(node)
        exe.spin()
    except KeyboardInterrupt:
        pass
    finally:
        exe.shutdown()
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()
