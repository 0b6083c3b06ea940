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
from tritonharness._options import (
    COMPRESSION_ALGORITHMS,
    ClientOptions,
    TlsOptions,
    str_to_bool,
)
from tritonharness.client import Client
from tritonharness.examples.common import (
    add_common_arguments,
    build_simple_request,
    configure_logging,
    print_client_stat,
    print_model_stat,
    simple_input_data,
    validate_simple_result,
)


def cached_channel_arg(value):
    try:
        return str_to_bool(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            "need to specify true or false for use_cached_channel")


def parse_args(argv=None):
    parser = argparse.ArgumentParser()
    add_common_arguments(parser)
    parser.add_argument('-s',
                        '--ssl',
                        action="store_true",
                        required=False,
                        default=False,
                        help='Enable SSL encrypted channel to the server')
    parser.add_argument(
        '-r',
        '--root-certificates',
        type=str,
        required=False,
        default="",
        help='File holding PEM-encoded root certificates. Default is None.')
    parser.add_argument(
        '-p',
        '--private-key',
        type=str,
        required=False,
        default="",
        help='File holding PEM-encoded private key. Default is None.')
    parser.add_argument(
        '--certificate-chain',
        type=str,
        required=False,
        default="",
        help='File holding PEM-encoded certicate chain. Default is None.')
    parser.add_argument(
        '-C',
        '--grpc-compression-algorithm',
        type=str,
        choices=COMPRESSION_ALGORITHMS,
        required=False,
        default="none",
        help=
        'The compression algorithm to be used when sending request to server. Default is none.'
    )
    parser.add_argument(
        '-c',
        '--use-cached-channel',
        type=cached_channel_arg,
        required=False,
        default=None,
        help='Use cached channel when creating new client. Specify true or '
        'false. When given, the inference is run twice with a new client each '
        'time.')
    return parser.parse_args(argv)


def main(argv=None):
    FLAGS = parse_args(argv)
    configure_logging(FLAGS.verbose)

    test_use_cached_channel = FLAGS.use_cached_channel is not None
    options = ClientOptions(
        url=FLAGS.url,
        verbose=FLAGS.verbose,
        use_tls=FLAGS.ssl,
        tls=TlsOptions(root_certificates=FLAGS.root_certificates,
                       private_key=FLAGS.private_key,
                       certificate_chain=FLAGS.certificate_chain),
        use_cached_channel=(FLAGS.use_cached_channel
                            if test_use_cached_channel else True),
        client_timeout=FLAGS.client_timeout,
        headers=dict(FLAGS.headers),
        compression_algorithm=FLAGS.grpc_compression_algorithm)

    # Run with the same target twice to exercise the channel cache
    num_runs = 2 if test_use_cached_channel else 1
    for _ in range(num_runs):
        try:
            triton_client = Client.create(options=options)
        except HarnessError as e:
            print("context creation failed: " + str(e))
            return 1

        with triton_client:
            input0_data, input1_data = simple_input_data()
            request = build_simple_request(FLAGS, input0_data, input1_data)
            try:
                result = triton_client.infer(request)
            except HarnessError as e:
                print("error: unable to run model: " + str(e))
                return 1
            if not result.status().is_ok():
                print("error: Inference failed: " + str(result.status()))
                return 1

            try:
                validate_simple_result(result, input0_data, input1_data)
            except HarnessError as e:
                print("error: " + str(e))
                return 1

            # Get full response
            print(result.debug_string())

            print_client_stat(triton_client.client_infer_stat())
            try:
                model_stat = triton_client.model_inference_statistics(
                    FLAGS.model_name, FLAGS.model_version)
            except HarnessError as e:
                print("error: unable to get model statistics: " + str(e))
                return 1
            print_model_stat(model_stat)

        print("PASS : Infer")
    return 0


if __name__ == '__main__':
    sys.exit(main())
