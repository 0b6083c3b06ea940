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

import logging
import struct

import numpy as np
from tritonclient.utils import triton_to_np_dtype

from tritonharness._errors import (
    OutputNotFoundError,
    RequestStatusError,
    ResultReleasedError,
    ValidationError,
)
from tritonharness.tensors import TensorView

logger = logging.getLogger(__name__)

# InferTensorContents field holding each datatype when the server does not
# use raw_output_contents
_CONTENTS_FIELDS = {
    "BOOL": "bool_contents",
    "INT8": "int_contents",
    "INT16": "int_contents",
    "INT32": "int_contents",
    "INT64": "int64_contents",
    "UINT8": "uint_contents",
    "UINT16": "uint_contents",
    "UINT32": "uint_contents",
    "UINT64": "uint64_contents",
    "FP32": "fp32_contents",
    "FP64": "fp64_contents",
    "BYTES": "bytes_contents",
}


def _typed_contents(output):
    field = _CONTENTS_FIELDS.get(output.datatype)
    if field is None:
        raise ValidationError(
            "output '{}' of datatype {} has no typed contents".format(
                output.name, output.datatype
            ),
            name=output.name,
        )
    values = list(getattr(output.contents, field))
    return np.array(values, dtype=triton_to_np_dtype(output.datatype))


def _serialize_bytes(array):
    # 4-byte little-endian length prefix per element, as on the wire
    chunks = []
    for item in array.reshape(-1):
        if isinstance(item, str):
            item = item.encode("utf-8")
        chunks.append(struct.pack("<I", len(item)))
        chunks.append(item)
    return b"".join(chunks)


class RequestStatus:
    """Overall status of a request: ok, or failed with a message."""

    def __init__(self, error=None):
        self._error = error

    def is_ok(self):
        return self._error is None

    @property
    def message(self):
        return "" if self._error is None else str(self._error)

    def __bool__(self):
        return self.is_ok()

    def __str__(self):
        return "OK" if self.is_ok() else self.message

    def __repr__(self):
        return "RequestStatus({})".format(str(self))


class InferenceResult:
    """Owns the response of one inference request.

    A result is either successful, wrapping a ``tritonclient.grpc.InferResult``,
    or failed, carrying the error that ended the request. Payload accessors
    refuse to run on a failed result and after ``release()``.
    """

    def __init__(self, result=None, error=None, request_id=""):
        if (result is None) == (error is None):
            raise ValueError("exactly one of result and error must be given")
        self._result = result
        self._error = error
        self._request_id = request_id
        self._released = False

    @classmethod
    def from_error(cls, error, request_id=""):
        return cls(error=error, request_id=request_id)

    @property
    def request_id(self):
        return self._request_id

    @property
    def error(self):
        return self._error

    @property
    def released(self):
        return self._released

    def status(self):
        return RequestStatus(self._error)

    def raise_for_status(self):
        if self._error is not None:
            raise self._error

    def release(self):
        """Drop the response buffers; every later payload access fails."""
        self._released = True
        self._result = None
        logger.debug("released result for request '%s'", self._request_id)

    def _response(self):
        if self._released:
            raise ResultReleasedError("result was released")
        if self._error is not None:
            if isinstance(self._error, RequestStatusError):
                raise self._error
            raise RequestStatusError(
                "request failed: {}".format(self._error)
            ) from self._error
        return self._result

    def _find_output(self, name):
        response = self._response().get_response()
        for index, output in enumerate(response.outputs):
            if output.name == name:
                return index, output, response
        raise OutputNotFoundError("output '{}' is not in the response".format(name))

    def output_names(self):
        response = self._response().get_response()
        return [output.name for output in response.outputs]

    def shape(self, name):
        _, output, _ = self._find_output(name)
        return [int(d) for d in output.shape]

    def datatype(self, name):
        _, output, _ = self._find_output(name)
        return output.datatype

    def raw_bytes(self, name):
        index, output, response = self._find_output(name)
        if index < len(response.raw_output_contents):
            return memoryview(response.raw_output_contents[index])
        array = _typed_contents(output)
        if output.datatype == "BYTES":
            return memoryview(_serialize_bytes(array))
        return memoryview(array.tobytes())

    def output(self, name):
        _, output, _ = self._find_output(name)
        return TensorView(
            name,
            [int(d) for d in output.shape],
            output.datatype,
            self.raw_bytes(name),
            self,
        )

    def as_numpy(self, name):
        index, output, response = self._find_output(name)
        if index < len(response.raw_output_contents):
            return self._result.as_numpy(name)
        return _typed_contents(output).reshape([int(d) for d in output.shape])

    def debug_string(self):
        if self._released:
            return "<released>"
        if self._error is not None:
            return "error: {}".format(self._error)
        return str(self._result.get_response())

    def __repr__(self):
        return "InferenceResult(request_id={!r}, status={})".format(
            self._request_id, self.status()
        )
