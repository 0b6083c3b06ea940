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

from tritonclient.utils import InferenceServerException


class HarnessError(Exception):
    """Base class of every error raised by tritonharness."""

    def __init__(self, msg, status=None, debug_details=None):
        super().__init__(msg)
        self._msg = msg
        self._status = status
        self._debug_details = debug_details

    def message(self):
        return self._msg

    def status(self):
        """The gRPC status code string, when the error came from the server."""
        return self._status

    def debug_details(self):
        return self._debug_details

    def __str__(self):
        msg = super().__str__() if self._msg is None else self._msg
        if self._status is not None:
            msg = "[" + self._status + "] " + msg
        return msg


class InferenceConnectionError(HarnessError, ConnectionError):
    pass


class RequestStatusError(HarnessError):
    pass


class RequestTimeoutError(RequestStatusError):
    pass


class RequestCancelledError(RequestStatusError):
    pass


class InvalidRequestError(HarnessError, ValueError):
    pass


class OutputNotFoundError(HarnessError, KeyError):
    def __str__(self):
        return HarnessError.__str__(self)


class ResultReleasedError(HarnessError):
    pass


class ValidationError(HarnessError, ValueError):
    """A response did not match what the caller expected.

    ``field`` names the property that mismatched, ``name`` the output tensor.
    """

    field = None

    def __init__(self, msg, name=None, expected=None, actual=None):
        super().__init__(msg)
        self.name = name
        self.expected = expected
        self.actual = actual


class ShapeMismatchError(ValidationError):
    field = "shape"


class DatatypeMismatchError(ValidationError):
    field = "datatype"


class ByteSizeMismatchError(ValidationError):
    field = "byte_size"


class ValueMismatchError(ValidationError):
    field = "value"


class CompletionError(HarnessError):
    pass


class CompletionCountError(CompletionError):
    pass


class CompletionTimeoutError(CompletionError, TimeoutError):
    pass


class HandOffError(CompletionError):
    pass


# gRPC status code reported by InferenceServerException -> tritonharness error
ERROR_MAPPING = {
    "StatusCode.UNAVAILABLE": InferenceConnectionError,
    "StatusCode.DEADLINE_EXCEEDED": RequestTimeoutError,
    "StatusCode.CANCELLED": RequestCancelledError,
}


def from_server_exception(ex):
    """Translate an InferenceServerException into the matching HarnessError."""
    status = ex.status()
    error_type = ERROR_MAPPING.get(status, RequestStatusError)
    return error_type(ex.message(), status=status, debug_details=ex.debug_details())


def handle_server_error(func):
    @functools.wraps(func)
    def error_handling_wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InferenceServerException as ex:
            # raise ... from None masks the tritonclient error from the traceback
            raise from_server_exception(ex) from None

    return error_handling_wrapper
