# Copyright 2024, NVIDIA CORPORATION & AFFILIATES. All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions
# are met:
#  * Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
#  * Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#  * Neither the name of NVIDIA CORPORATION nor the names of its
#    contributors may be used to endorse or promote products derived
#    from this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS ``AS IS'' AND ANY
# EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR
# PURPOSE ARE DISCLAIMED.  IN NO EVENT SHALL THE COPYRIGHT OWNER OR
# CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL,
# EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR
# PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY
# OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT
# (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.

"""Synchronization between completion handlers and the threads that consume
their results.

Completion handlers run on transport threads, so every piece of state they
share with a waiting thread is guarded by one lock, and every wait re-checks
its predicate after waking.
"""

import logging
import threading

from tritonharness._errors import (
    CompletionCountError,
    CompletionTimeoutError,
    HandOffError,
)

logger = logging.getLogger(__name__)


class CompletionBarrier:
    """Releases a waiting thread once ``expected`` completions have arrived.

    ``arrive`` can be passed directly as the completion handler of
    ``Client.async_infer``. Results are kept in arrival order.
    """

    def __init__(self, expected):
        if expected < 0:
            raise ValueError("expected completion count must be non-negative")
        self._expected = expected
        self._cv = threading.Condition(threading.Lock())
        self._completed_count = 0
        self._results = []

    @property
    def expected(self):
        return self._expected

    @property
    def completed_count(self):
        with self._cv:
            return self._completed_count

    def arrive(self, result=None):
        with self._cv:
            self._results.append(result)
            self._completed_count += 1
            count = self._completed_count
            # notify while holding the lock: the waiter cannot observe the new
            # count before the result is stored
            self._cv.notify_all()
        logger.debug("completion %d of %d arrived", count, self._expected)

    def wait(self, timeout=None):
        """Block until ``expected`` completions arrived and return their results.

        Raises CompletionTimeoutError if ``timeout`` seconds elapse first and
        CompletionCountError if more completions than expected were recorded.
        """
        with self._cv:
            if not self._cv.wait_for(
                lambda: self._completed_count >= self._expected, timeout
            ):
                raise CompletionTimeoutError(
                    "timed out after {} of {} completions".format(
                        self._completed_count, self._expected
                    )
                )
            if self._completed_count != self._expected:
                raise CompletionCountError(
                    "completed count {} does not match expected count {}".format(
                        self._completed_count, self._expected
                    )
                )
            return list(self._results)


class ResultSlot:
    """Single-slot hand-off of one result from a handler to a consumer thread."""

    def __init__(self):
        self._cv = threading.Condition(threading.Lock())
        self._ready = False
        self._taken = False
        self._result = None

    @property
    def ready(self):
        with self._cv:
            return self._ready

    def put(self, result):
        with self._cv:
            if self._ready:
                raise HandOffError("result slot already holds a result")
            self._result = result
            self._ready = True
            self._cv.notify_all()

    def take(self, timeout=None):
        with self._cv:
            if not self._cv.wait_for(lambda: self._ready, timeout):
                raise CompletionTimeoutError("timed out waiting for the result")
            if self._taken:
                raise HandOffError("result was already taken from the slot")
            result, self._result = self._result, None
            self._taken = True
            return result
