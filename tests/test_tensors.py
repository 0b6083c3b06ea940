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

import unittest

import numpy as np

from tritonharness import InferenceRequest, InvalidRequestError
from tritonharness.tensors import element_count, element_size


class InferenceRequestTest(unittest.TestCase):
    def setUp(self):
        self.request_ = InferenceRequest("simple", request_id="1")

    def test_datatype_from_numpy(self):
        self.request_.add_input("INPUT0", np.zeros((1, 16), dtype=np.int32))
        self.request_.add_input("INPUT1", np.zeros((2,), dtype=np.float32))
        self.assertEqual(
            [(t.name, t.shape, t.datatype) for t in self.request_.inputs],
            [("INPUT0", (1, 16), "INT32"), ("INPUT1", (2,), "FP32")],
        )

    def test_datatype_mismatch(self):
        with self.assertRaises(InvalidRequestError):
            self.request_.add_input(
                "INPUT0", np.zeros((1, 16), dtype=np.int32), "INT16"
            )

    def test_raw_input(self):
        payload = np.arange(16, dtype=np.int32).tobytes()
        self.request_.add_raw_input("INPUT0", [1, 16], "INT32", payload)
        tensor = self.request_.inputs[0]
        self.assertEqual(tensor.data.tobytes(), payload)
        self.assertEqual(tensor.data.shape, (1, 16))

    def test_raw_input_size(self):
        with self.assertRaises(InvalidRequestError):
            self.request_.add_raw_input("INPUT0", [1, 16], "INT32", bytes(60))

    def test_raw_input_variable_size(self):
        with self.assertRaises(InvalidRequestError):
            self.request_.add_raw_input("INPUT0", [1], "BYTES", b"abc")

    def test_duplicate_names(self):
        self.request_.add_input("INPUT0", np.zeros(1, dtype=np.int32))
        with self.assertRaises(InvalidRequestError):
            self.request_.add_input("INPUT0", np.zeros(1, dtype=np.int32))
        self.request_.add_output("OUTPUT0")
        with self.assertRaises(InvalidRequestError):
            self.request_.add_output("OUTPUT0")

    def test_frozen_after_submit(self):
        self.request_.add_input("INPUT0", np.zeros(1, dtype=np.int32))
        self.request_.freeze()
        self.assertTrue(self.request_.submitted)
        with self.assertRaises(InvalidRequestError):
            self.request_.add_input("INPUT1", np.zeros(1, dtype=np.int32))
        with self.assertRaises(InvalidRequestError):
            self.request_.add_output("OUTPUT0")

    def test_empty_model_name(self):
        with self.assertRaises(InvalidRequestError):
            InferenceRequest("")

    def test_to_triton(self):
        data = np.arange(16, dtype=np.int32).reshape(1, 16)
        self.request_.add_input("INPUT0", data).add_output("OUTPUT0", class_count=3)
        inputs, outputs = self.request_.to_triton()
        self.assertEqual(inputs[0].name(), "INPUT0")
        self.assertEqual(inputs[0].datatype(), "INT32")
        self.assertEqual(list(inputs[0].shape()), [1, 16])
        self.assertEqual(inputs[0]._get_content(), data.tobytes())
        self.assertEqual(outputs[0].name(), "OUTPUT0")


class DatatypeSizeTest(unittest.TestCase):
    def test_element_size(self):
        self.assertEqual(element_size("INT32"), 4)
        self.assertEqual(element_size("FP16"), 2)
        self.assertEqual(element_size("BF16"), 2)
        self.assertEqual(element_size("UINT64"), 8)
        self.assertIsNone(element_size("BYTES"))
        with self.assertRaises(InvalidRequestError):
            element_size("INT3")

    def test_element_count(self):
        self.assertEqual(element_count([1, 16]), 16)
        self.assertEqual(element_count([]), 1)
        self.assertEqual(element_count([4, 0]), 0)


if __name__ == "__main__":
    unittest.main()
