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



"""Blocking startup wait with optional backoff and attempt limit."""

from __future__ import annotations
from typing import Callable, Optional


def wait_until(
    ready: Callable[[float], bool],
    period: float = 5.0,
    backoff: float = 1.0,
    max_period: Optional[float] = None,
    max_attempts: int = 0,
    on_wait: Optional[Callable[[int, float], None]] = None,
) -> int:
    """
    Call ready(timeout) until it returns True.

    ready is expected to block for up to timeout seconds itself, the way
    rclpy's Client.wait_for_service(timeout_sec=...) does.

    Args:
        ready: Readiness check taking the timeout of this attempt.
        period: Timeout of the first attempt in seconds.
        backoff: Factor applied to the timeout after every failed attempt
            (1.0 keeps a fixed interval).
        max_period: Upper bound on the timeout, if any.
        max_attempts: Give up after this many attempts; 0 waits forever.
        on_wait: Called with (attempt, timeout) after every failed attempt.

    Returns:
        The number of attempts it took.

    Raises:
        ValueError: On a non-positive period or a backoff below 1.
        TimeoutError: If max_attempts is exhausted.
    """
    if period <= 0.0:
        raise ValueError("period must be > 0")
    if backoff < 1.0:
        raise ValueError("backoff must be >= 1")

    attempt = 0
    timeout = period
    while True:
        attempt += 1
        if ready(timeout):
            return attempt
        if on_wait:
            on_wait(attempt, timeout)
        if max_attempts and attempt >= max_attempts:
            raise TimeoutError(f"Still not ready after {attempt} attempts")
        timeout *= backoff
        if max_period is not None:
            timeout = min(timeout, max_period)
