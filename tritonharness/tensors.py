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

import functools
import logging
import operator
from collections import namedtuple

import numpy as np
import tritonclient.grpc as grpcclient
from tritonclient.utils import (
    deserialize_bytes_tensor,
    np_to_triton_dtype,
    triton_to_np_dtype,
)

from tritonharness._errors import InvalidRequestError, ResultReleasedError

logger = logging.getLogger(__name__)

# Byte size of one element for every fixed-size KServe datatype. BYTES is
# length-prefixed and has no fixed element size.
_ELEMENT_SIZES = {
    "BOOL": 1,
    "INT8": 1,
    "UINT8": 1,
    "INT16": 2,
    "UINT16": 2,
    "FP16": 2,
    "BF16": 2,
    "INT32": 4,
    "UINT32": 4,
    "FP32": 4,
    "INT64": 8,
    "UINT64": 8,
    "FP64": 8,
}


def element_count(shape):
    return functools.reduce(operator.mul, (int(d) for d in shape), 1)


def element_size(datatype):
    """Return the element size in bytes, or None for variable-size datatypes."""
    if datatype == "BYTES":
        return None
    if datatype not in _ELEMENT_SIZES:
        raise InvalidRequestError("unknown datatype '{}'".format(datatype))
    return _ELEMENT_SIZES[datatype]


def _bf16_to_fp32(buffer):
    widened = np.frombuffer(buffer, dtype=np.uint16).astype(np.uint32) << 16
    return widened.view(np.float32)


def _from_buffer(buffer, shape, datatype):
    if datatype == "BYTES":
        array = deserialize_bytes_tensor(bytes(buffer))
    elif datatype == "BF16":
        array = _bf16_to_fp32(buffer)
    else:
        array = np.frombuffer(buffer, dtype=triton_to_np_dtype(datatype))
    return array.reshape(shape)


Tensor = namedtuple("Tensor", ["name", "shape", "datatype", "data"])
RequestedOutput = namedtuple("RequestedOutput", ["name", "class_count"])


class InferenceRequest:
    """Named input tensors, requested outputs and per-request options.

    The request is frozen once a client submits it; adding tensors after that
    raises InvalidRequestError.
    """

    def __init__(self, model_name, model_version="", request_id="", client_timeout=None):
        if not model_name:
            raise InvalidRequestError("model name must not be empty")
        self.model_name = model_name
        self.model_version = model_version
        self.request_id = request_id
        self.client_timeout = client_timeout
        self._inputs = []
        self._outputs = []
        self._submitted = False

    @property
    def inputs(self):
        return tuple(self._inputs)

    @property
    def outputs(self):
        return tuple(self._outputs)

    @property
    def submitted(self):
        return self._submitted

    def _check_mutable(self, name, existing):
        if self._submitted:
            raise InvalidRequestError(
                "request for '{}' was already submitted".format(self.model_name)
            )
        if any(t.name == name for t in existing):
            raise InvalidRequestError("duplicate tensor name '{}'".format(name))

    def add_input(self, name, data, datatype=None):
        self._check_mutable(name, self._inputs)
        data = np.asarray(data)
        actual = np_to_triton_dtype(data.dtype)
        if datatype is None:
            datatype = actual
        elif datatype != actual and not (datatype == "BF16" and actual == "FP32"):
            raise InvalidRequestError(
                "input '{}' got unexpected datatype {} from numpy array, expected {}".format(
                    name, actual, datatype
                )
            )
        self._inputs.append(Tensor(name, tuple(data.shape), datatype, data))
        return self

    def add_raw_input(self, name, shape, datatype, payload):
        """Add an input from its raw little-endian byte payload."""
        self._check_mutable(name, self._inputs)
        size = element_size(datatype)
        if size is None:
            raise InvalidRequestError(
                "raw payload for '{}' requires a fixed-size datatype".format(name)
            )
        expected = element_count(shape) * size
        if len(payload) != expected:
            raise InvalidRequestError(
                "input '{}' payload is {} bytes, expected {}".format(
                    name, len(payload), expected
                )
            )
        data = _from_buffer(payload, tuple(shape), datatype)
        self._inputs.append(Tensor(name, tuple(shape), datatype, data))
        return self

    def add_output(self, name, class_count=0):
        self._check_mutable(name, self._outputs)
        self._outputs.append(RequestedOutput(name, class_count))
        return self

    def freeze(self):
        self._submitted = True

    def to_triton(self):
        inputs = []
        for tensor in self._inputs:
            infer_input = grpcclient.InferInput(
                tensor.name, list(tensor.shape), tensor.datatype
            )
            infer_input.set_data_from_numpy(tensor.data)
            inputs.append(infer_input)
        outputs = [
            grpcclient.InferRequestedOutput(o.name, class_count=o.class_count)
            for o in self._outputs
        ]
        return inputs, outputs

    def __repr__(self):
        return "InferenceRequest(model_name={!r}, inputs={}, outputs={})".format(
            self.model_name,
            [t.name for t in self._inputs],
            [o.name for o in self._outputs],
        )


class TensorView:
    """Bounds-checked typed view over one output of an InferenceResult.

    The view reads the owning result's buffer and becomes unusable once the
    result is released.
    """

    def __init__(self, name, shape, datatype, buffer, owner):
        self.name = name
        self.shape = tuple(shape)
        self.datatype = datatype
        self._buffer = buffer
        self._owner = owner
        self._array = None

    def _check_owner(self):
        if self._owner.released:
            raise ResultReleasedError(
                "result owning output '{}' was released".format(self.name)
            )

    @property
    def element_count(self):
        return element_count(self.shape)

    @property
    def byte_size(self):
        self._check_owner()
        return len(self._buffer)

    def __len__(self):
        self._check_owner()
        return self.element_count

    def __getitem__(self, index):
        index = operator.index(index)
        count = self.element_count
        if index < 0:
            index += count
        if not 0 <= index < count:
            raise IndexError(
                "index out of range for '{}' with {} elements".format(self.name, count)
            )
        return self.as_numpy().reshape(-1)[index]

    def __iter__(self):
        for i in range(self.element_count):
            yield self[i]

    def as_numpy(self):
        self._check_owner()
        if self._array is None:
            self._array = _from_buffer(self._buffer, self.shape, self.datatype)
        return self._array

    def tobytes(self):
        self._check_owner()
        return bytes(self._buffer)

    def __repr__(self):
        return "TensorView(name={!r}, shape={}, datatype={})".format(
            self.name, list(self.shape), self.datatype
        )
