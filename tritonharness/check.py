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

"""Checks of an inference response against caller expectations.

Every check raises a subclass of ValidationError naming the mismatched
property; none of them terminate the process.
"""

import numpy as np

from tritonharness._errors import (
    ByteSizeMismatchError,
    DatatypeMismatchError,
    ShapeMismatchError,
    ValidationError,
    ValueMismatchError,
)
from tritonharness.tensors import element_count, element_size


def validate_shape_and_datatype(result, name, shape, datatype):
    result.raise_for_status()
    actual_shape = result.shape(name)
    if actual_shape != [int(d) for d in shape]:
        raise ShapeMismatchError(
            "received incorrect shape for '{}': {}, expected {}".format(
                name, actual_shape, list(shape)
            ),
            name=name,
            expected=list(shape),
            actual=actual_shape,
        )
    actual_datatype = result.datatype(name)
    if actual_datatype != datatype:
        raise DatatypeMismatchError(
            "received incorrect datatype for '{}': {}, expected {}".format(
                name, actual_datatype, datatype
            ),
            name=name,
            expected=datatype,
            actual=actual_datatype,
        )


def validate_output(result, name, shape, datatype):
    """Validate shape, datatype and payload byte size of one output.

    Returns a TensorView over the validated output.
    """
    validate_shape_and_datatype(result, name, shape, datatype)
    size = element_size(datatype)
    if size is None:
        raise ValidationError(
            "datatype {} of '{}' has no fixed byte size".format(datatype, name),
            name=name,
        )
    expected_byte_size = element_count(shape) * size
    byte_size = len(result.raw_bytes(name))
    if byte_size != expected_byte_size:
        raise ByteSizeMismatchError(
            "received incorrect byte size for '{}': {}, expected {}".format(
                name, byte_size, expected_byte_size
            ),
            name=name,
            expected=expected_byte_size,
            actual=byte_size,
        )
    return result.output(name)


def validate_sum_and_difference(
    result, input0, input1, sum_output="OUTPUT0", difference_output="OUTPUT1"
):
    """Check the element-wise sum and difference computed by an add/sub model."""
    input0 = np.asarray(input0).reshape(-1)
    input1 = np.asarray(input1).reshape(-1)
    output0 = result.as_numpy(sum_output).reshape(-1)
    output1 = result.as_numpy(difference_output).reshape(-1)
    for name, output in ((sum_output, output0), (difference_output, output1)):
        if len(output) != len(input0):
            raise ShapeMismatchError(
                "'{}' has {} elements, expected {}".format(
                    name, len(output), len(input0)
                ),
                name=name,
                expected=len(input0),
                actual=len(output),
            )
    for i in range(len(input0)):
        if input0[i] + input1[i] != output0[i]:
            raise ValueMismatchError(
                "incorrect sum at index {}: {} + {} != {}".format(
                    i, input0[i], input1[i], output0[i]
                ),
                name=sum_output,
                expected=input0[i] + input1[i],
                actual=output0[i],
            )
        if input0[i] - input1[i] != output1[i]:
            raise ValueMismatchError(
                "incorrect difference at index {}: {} - {} != {}".format(
                    i, input0[i], input1[i], output1[i]
                ),
                name=difference_output,
                expected=input0[i] - input1[i],
                actual=output1[i],
            )
