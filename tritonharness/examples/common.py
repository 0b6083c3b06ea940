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

import argparse
import json
import logging
import sys

import numpy as np

from tritonharness._errors import InvalidRequestError
from tritonharness._options import DEFAULT_URL, parse_header
from tritonharness.check import validate_output, validate_sum_and_difference
from tritonharness.tensors import InferenceRequest

# The 'simple' model takes 2 input tensors of 16 integers each and returns
# 2 output tensors of 16 integers each. One output tensor is the
# element-wise sum of the inputs and one output is the element-wise
# difference.
SIMPLE_MODEL_NAME = "simple"
SIMPLE_SHAPE = [1, 16]


def header_arg(value):
    try:
        return parse_header(value)
    except InvalidRequestError as e:
        raise argparse.ArgumentTypeError(str(e))


def add_common_arguments(parser):
    parser.add_argument('-v',
                        '--verbose',
                        action="store_true",
                        required=False,
                        default=False,
                        help='Enable verbose output')
    parser.add_argument('-u',
                        '--url',
                        type=str,
                        required=False,
                        default=DEFAULT_URL,
                        help='Inference server URL. Default is localhost:8001.')
    parser.add_argument('-m',
                        '--model-name',
                        type=str,
                        required=False,
                        default=SIMPLE_MODEL_NAME,
                        help='Name of model. Default is simple.')
    parser.add_argument('-x',
                        '--model-version',
                        type=str,
                        required=False,
                        default="",
                        help='Version of model. Default is to use latest version.')
    parser.add_argument('-i',
                        '--request-id',
                        type=str,
                        required=False,
                        default="1",
                        help='Id of the inference request. Default is 1.')
    parser.add_argument('-t',
                        '--client-timeout',
                        type=float,
                        required=False,
                        default=None,
                        help='Client timeout in seconds. Default is None.')
    parser.add_argument(
        '-H',
        '--header',
        dest='headers',
        type=header_arg,
        action='append',
        required=False,
        default=[],
        help="HTTP header, must be 'Header:Value'. May be given multiple times.")


def configure_logging(verbose):
    logging.basicConfig(stream=sys.stderr,
                        level=logging.DEBUG if verbose else logging.WARNING)


def simple_input_data():
    # Initialize the first input to unique integers and the second to all ones.
    input0_data = np.arange(start=0, stop=16, dtype=np.int32)
    input0_data = np.expand_dims(input0_data, axis=0)
    input1_data = np.ones(shape=SIMPLE_SHAPE, dtype=np.int32)
    return input0_data, input1_data


def build_simple_request(FLAGS, input0_data, input1_data):
    request = InferenceRequest(FLAGS.model_name,
                               model_version=FLAGS.model_version,
                               request_id=FLAGS.request_id,
                               client_timeout=FLAGS.client_timeout)
    request.add_input('INPUT0', input0_data, "INT32")
    request.add_input('INPUT1', input1_data, "INT32")
    request.add_output('OUTPUT0')
    request.add_output('OUTPUT1')
    return request


def validate_simple_result(result, input0_data, input1_data, out=None):
    """Validate both outputs of the 'simple' model and print the arithmetic."""
    output0 = validate_output(result, 'OUTPUT0', SIMPLE_SHAPE, "INT32")
    output1 = validate_output(result, 'OUTPUT1', SIMPLE_SHAPE, "INT32")
    validate_sum_and_difference(result, input0_data, input1_data)
    for i in range(16):
        print(str(input0_data[0][i]) + " + " + str(input1_data[0][i]) + " = " +
              str(output0[i]),
              file=out)
        print(str(input0_data[0][i]) + " - " + str(input1_data[0][i]) + " = " +
              str(output1[i]),
              file=out)


def print_client_stat(infer_stat, out=None):
    print("======Client Statistics======", file=out)
    print("completed_request_count " + str(infer_stat.completed_request_count),
          file=out)
    print("cumulative_total_request_time_ns " +
          str(infer_stat.cumulative_total_request_time_ns),
          file=out)
    print("cumulative_send_time_ns " + str(infer_stat.cumulative_send_time_ns),
          file=out)
    print("cumulative_receive_time_ns " +
          str(infer_stat.cumulative_receive_time_ns),
          file=out)


def print_model_stat(model_stat, out=None):
    print("======Model Statistics======", file=out)
    print(json.dumps(model_stat, indent=2), file=out)
