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

import threading
from collections import defaultdict

import numpy as np
import tritonclient.grpc as grpcclient
from tritonclient.grpc import service_pb2
from tritonclient.utils import InferenceServerException


def make_infer_result(outputs, model_name="simple", request_id=""):
    """Build a tritonclient InferResult carrying raw output contents.

    ``outputs`` is a list of (name, datatype, shape, payload) tuples where
    payload is either a numpy array or raw bytes.
    """
    response = service_pb2.ModelInferResponse(model_name=model_name, id=request_id)
    for name, datatype, shape, payload in outputs:
        tensor = response.outputs.add()
        tensor.name = name
        tensor.datatype = datatype
        tensor.shape.extend([int(d) for d in shape])
        if isinstance(payload, np.ndarray):
            payload = payload.tobytes()
        response.raw_output_contents.append(payload)
    return grpcclient.InferResult(response)


def simple_add_sub_result(input0=None, input1=None, request_id=""):
    if input0 is None:
        input0 = np.arange(16, dtype=np.int32).reshape(1, 16)
    if input1 is None:
        input1 = np.ones((1, 16), dtype=np.int32)
    return make_infer_result(
        [
            ("OUTPUT0", "INT32", [1, 16], input0 + input1),
            ("OUTPUT1", "INT32", [1, 16], input0 - input1),
        ],
        request_id=request_id,
    )


class FakeCall:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeServer:
    """In-process stand-in for a server running the 'simple' add/sub model.

    ``client_factory`` replaces tritonclient.grpc.InferenceServerClient.
    Async completions run on their own threads unless ``synchronous_callbacks``
    is set; ``hold`` delays them until the event is set.
    """

    MODELS = ("simple",)

    def __init__(self):
        self.clients = []
        self.requests = []
        self.inference_count = defaultdict(int)
        self.synchronous_callbacks = False
        self.hold = None
        self.threads = []
        self._lock = threading.Lock()

    def client_factory(self, url, **kwargs):
        client = FakeTritonClient(self, url, **kwargs)
        self.clients.append(client)
        return client

    def join(self):
        for thread in self.threads:
            thread.join(timeout=5)

    def run(self, client, model_name, inputs, outputs, request_id, **kwargs):
        with self._lock:
            self.requests.append(
                dict(
                    model_name=model_name,
                    request_id=request_id,
                    outputs=[o.name() for o in outputs] if outputs else None,
                    **kwargs
                )
            )
        if client.url.startswith("unreachable"):
            raise InferenceServerException(
                msg="failed to connect to all addresses",
                status="StatusCode.UNAVAILABLE",
            )
        if model_name not in self.MODELS:
            raise InferenceServerException(
                msg="Request for unknown model: '{}' is not found".format(model_name),
                status="StatusCode.NOT_FOUND",
            )
        data = {}
        for infer_input in inputs:
            tensor = infer_input._get_tensor()
            data[tensor.name] = np.frombuffer(
                infer_input._get_content(), dtype=np.int32
            ).reshape([int(d) for d in tensor.shape])
        results = {
            "OUTPUT0": data["INPUT0"] + data["INPUT1"],
            "OUTPUT1": data["INPUT0"] - data["INPUT1"],
        }
        names = [o.name() for o in outputs] if outputs else sorted(results)
        with self._lock:
            self.inference_count[model_name] += 1
        return make_infer_result(
            [(n, "INT32", results[n].shape, results[n]) for n in names],
            model_name=model_name,
            request_id=request_id,
        )


class FakeTritonClient:
    def __init__(
        self,
        server,
        url,
        verbose=False,
        ssl=False,
        root_certificates=None,
        private_key=None,
        certificate_chain=None,
        creds=None,
        keepalive_options=None,
        channel_args=None,
    ):
        self.server = server
        self.url = url
        self.verbose = verbose
        self.ssl = ssl
        self.keepalive_options = keepalive_options
        self.channel_args = channel_args
        self.closed = False

    def close(self):
        self.closed = True

    def is_server_live(self, headers=None, client_timeout=None):
        return not self.url.startswith("unreachable")

    def is_model_ready(
        self, model_name, model_version="", headers=None, client_timeout=None
    ):
        return model_name in self.server.MODELS

    def get_inference_statistics(
        self,
        model_name="",
        model_version="",
        headers=None,
        as_json=False,
        client_timeout=None,
    ):
        if model_name not in self.server.MODELS:
            raise InferenceServerException(
                msg="requested model '{}' is not available".format(model_name),
                status="StatusCode.NOT_FOUND",
            )
        count = self.server.inference_count[model_name]
        return {
            "model_stats": [
                {
                    "name": model_name,
                    "version": model_version or "1",
                    "inference_count": str(count),
                    "execution_count": str(count),
                }
            ]
        }

    def infer(self, model_name, inputs, model_version="", outputs=None, request_id="",
              **kwargs):
        return self.server.run(
            self,
            model_name,
            inputs,
            outputs,
            request_id,
            model_version=model_version,
            **kwargs
        )

    def async_infer(self, model_name, inputs, callback, model_version="",
                    outputs=None, request_id="", **kwargs):
        call = FakeCall()

        def complete():
            if self.server.hold is not None:
                self.server.hold.wait(timeout=5)
            if call.cancelled:
                callback(
                    result=None,
                    error=InferenceServerException(
                        msg="Locally cancelled by application!",
                        status="StatusCode.CANCELLED",
                    ),
                )
                return
            try:
                result = self.server.run(
                    self,
                    model_name,
                    inputs,
                    outputs,
                    request_id,
                    model_version=model_version,
                    **kwargs
                )
            except InferenceServerException as e:
                callback(result=None, error=e)
                return
            callback(result=result, error=None)

        if self.server.synchronous_callbacks:
            complete()
        else:
            thread = threading.Thread(target=complete, daemon=True)
            self.server.threads.append(thread)
            thread.start()
        return call
