#!/usr/bin/env python
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
import sys

from tritonharness._errors import HarnessError
from tritonharness._options import ClientOptions
from tritonharness.client import Client
from tritonharness.completion import CompletionBarrier, ResultSlot
from tritonharness.examples.common import (
    add_common_arguments,
    build_simple_request,
    configure_logging,
    print_client_stat,
    simple_input_data,
    validate_simple_result,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser()
    add_common_arguments(parser)
    parser.add_argument('-n',
                        '--repeat',
                        type=int,
                        required=False,
                        default=1,
                        help='Number of async requests to wait for together. '
                        'Default is 1.')
    parser.add_argument('-w',
                        '--wait-timeout',
                        type=float,
                        required=False,
                        default=None,
                        help='Seconds to wait for the callbacks. Default is to '
                        'wait forever.')
    FLAGS = parser.parse_args(argv)
    if FLAGS.repeat < 1:
        parser.error("--repeat must be at least 1")
    return FLAGS


def check_result(result, input0_data, input1_data):
    if not result.status().is_ok():
        print("error: Inference failed: " + str(result.status()))
        return False
    try:
        validate_simple_result(result, input0_data, input1_data)
    except HarnessError as e:
        print("error: " + str(e))
        return False
    return True


def main(argv=None):
    FLAGS = parse_args(argv)
    configure_logging(FLAGS.verbose)

    options = ClientOptions(url=FLAGS.url,
                            verbose=FLAGS.verbose,
                            client_timeout=FLAGS.client_timeout,
                            headers=dict(FLAGS.headers))
    try:
        triton_client = Client.create(options=options)
    except HarnessError as e:
        print("context creation failed: " + str(e))
        return 1

    with triton_client:
        input0_data, input1_data = simple_input_data()

        # Send the requests and wait until every callback is invoked
        barrier = CompletionBarrier(FLAGS.repeat)

        def callback(i, result):
            print("Callback no." + str(i) + " is called")
            barrier.arrive(result)

        for i in range(FLAGS.repeat):
            request = build_simple_request(FLAGS, input0_data, input1_data)
            triton_client.async_infer(request,
                                      lambda result, i=i: callback(i, result))

        try:
            results = barrier.wait(timeout=FLAGS.wait_timeout)
        except HarnessError as e:
            print("error: " + str(e))
            return 1
        for result in results:
            if not check_result(result, input0_data, input1_data):
                return 1
        print("All done")

        # Send another request whose callback defers the completed request
        # to the main thread to handle
        slot = ResultSlot()
        request = build_simple_request(FLAGS, input0_data, input1_data)
        triton_client.async_infer(request, slot.put)
        try:
            result = slot.take(timeout=FLAGS.wait_timeout)
        except HarnessError as e:
            print("error: " + str(e))
            return 1

        print("Getting results from deferred response")
        if not check_result(result, input0_data, input1_data):
            return 1

        print_client_stat(triton_client.client_infer_stat())

    print("PASS : Async Infer")
    return 0


if __name__ == '__main__':
    sys.exit(main())
