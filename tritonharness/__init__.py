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

from tritonharness._errors import (
    ByteSizeMismatchError,
    CompletionCountError,
    CompletionError,
    CompletionTimeoutError,
    DatatypeMismatchError,
    HandOffError,
    HarnessError,
    InferenceConnectionError,
    InvalidRequestError,
    OutputNotFoundError,
    RequestCancelledError,
    RequestStatusError,
    RequestTimeoutError,
    ResultReleasedError,
    ShapeMismatchError,
    ValidationError,
    ValueMismatchError,
)
from tritonharness._options import (
    ClientOptions,
    KeepAliveOptions,
    TlsOptions,
    parse_header,
)
from tritonharness.check import (
    validate_output,
    validate_shape_and_datatype,
    validate_sum_and_difference,
)
from tritonharness.client import AsyncRequest, Client, InferStat
from tritonharness.completion import CompletionBarrier, ResultSlot
from tritonharness.result import InferenceResult, RequestStatus
from tritonharness.tensors import InferenceRequest, TensorView

__version__ = "0.1.0"
