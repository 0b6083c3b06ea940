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

import random
import threading
import time
import unittest

from tritonharness import (
    CompletionBarrier,
    CompletionCountError,
    CompletionTimeoutError,
    HandOffError,
    ResultSlot,
)


class CompletionBarrierTest(unittest.TestCase):
    def test_concurrent_completions(self):
        # Handlers complete in random order on their own threads
        n = 16
        barrier = CompletionBarrier(n)

        def handler(i):
            time.sleep(random.uniform(0, 0.02))
            barrier.arrive(i)

        threads = [threading.Thread(target=handler, args=(i,)) for i in range(n)]
        for thread in threads:
            thread.start()
        results = barrier.wait(timeout=10)
        for thread in threads:
            thread.join()

        self.assertEqual(barrier.completed_count, n)
        self.assertEqual(sorted(results), list(range(n)))

    def test_completion_before_wait(self):
        # A handler that ran before the wait began must not be lost
        barrier = CompletionBarrier(1)
        barrier.arrive("done")
        self.assertEqual(barrier.wait(timeout=0), ["done"])

    def test_zero_expected(self):
        self.assertEqual(CompletionBarrier(0).wait(timeout=0), [])

    def test_negative_expected(self):
        with self.assertRaises(ValueError):
            CompletionBarrier(-1)

    def test_timeout(self):
        barrier = CompletionBarrier(2)
        barrier.arrive()
        with self.assertRaises(CompletionTimeoutError) as cm:
            barrier.wait(timeout=0.05)
        self.assertIn("1 of 2", str(cm.exception))

    def test_count_mismatch(self):
        # A duplicated completion is an integrity error, not a success
        barrier = CompletionBarrier(1)
        barrier.arrive()
        barrier.arrive()
        with self.assertRaises(CompletionCountError):
            barrier.wait(timeout=0)

    def test_wait_wakes_on_last_arrival(self):
        barrier = CompletionBarrier(2)
        barrier.arrive("first")
        timer = threading.Timer(0.05, barrier.arrive, args=("second",))
        timer.start()
        self.assertEqual(barrier.wait(timeout=10), ["first", "second"])
        timer.join()


class ResultSlotTest(unittest.TestCase):
    def test_hand_off_identity(self):
        slot = ResultSlot()
        produced = object()
        thread = threading.Thread(target=slot.put, args=(produced,))
        thread.start()
        taken = slot.take(timeout=10)
        thread.join()
        self.assertIs(taken, produced)

    def test_put_before_take(self):
        slot = ResultSlot()
        slot.put("result")
        self.assertTrue(slot.ready)
        self.assertEqual(slot.take(timeout=0), "result")

    def test_single_owner(self):
        slot = ResultSlot()
        slot.put("result")
        slot.take()
        with self.assertRaises(HandOffError):
            slot.take(timeout=0)

    def test_second_put(self):
        slot = ResultSlot()
        slot.put("first")
        with self.assertRaises(HandOffError):
            slot.put("second")
        self.assertEqual(slot.take(), "first")

    def test_take_timeout(self):
        slot = ResultSlot()
        self.assertFalse(slot.ready)
        with self.assertRaises(CompletionTimeoutError):
            slot.take(timeout=0.05)


if __name__ == "__main__":
    unittest.main()
