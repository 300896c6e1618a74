#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os

from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import LifecycleNode

def generate_launch_description():
    default_mission = os.path.join(
        get_package_share_directory('auv_helm'), 'config', 'mission.yaml'
    )

    mission = DeclareLaunchArgument(
        'mission_file',
        default_value=default_mission,
        description='YAML mission for the helm',
    )
    controller = DeclareLaunchArgument(
        'controller_node',
        default_value='controller',
        description='Low level controller node exposing control_modes.* parameters',
    )

    helm = LifecycleNode(
        package='auv_helm',
        executable='helm',
        name='helm',
        namespace='',
        output='screen',
        parameters=[{
            'mission_file': LaunchConfiguration('mission_file'),
            'controller_node': LaunchConfiguration('controller_node'),
            'control_modes_retry_period': 5.0,
        }]
    )

    return LaunchDescription([mission, controller, helm])
