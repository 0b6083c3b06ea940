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

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass

from tritonclient.utils import InferenceServerException

from tritonharness._channel import default_cache
from tritonharness._errors import (
    HarnessError,
    InferenceConnectionError,
    RequestCancelledError,
    from_server_exception,
    handle_server_error,
)
from tritonharness._options import ClientOptions, triton_compression
from tritonharness.result import InferenceResult

logger = logging.getLogger(__name__)


@dataclass
class InferStat:
    completed_request_count: int = 0
    cumulative_total_request_time_ns: int = 0
    cumulative_send_time_ns: int = 0
    cumulative_receive_time_ns: int = 0


class AsyncRequest:
    """Handle of one in-flight asynchronous request.

    The completion handler runs exactly once: with the response, with the
    error that ended the request, or with a RequestCancelledError if
    ``cancel()`` won the race against the transport.
    """

    def __init__(self, request_id, on_done):
        self._request_id = request_id
        self._on_done = on_done
        self._lock = threading.Lock()
        self._call = None
        self._cancelled = False
        self._delivered = False

    @property
    def request_id(self):
        return self._request_id

    @property
    def cancelled(self):
        with self._lock:
            return self._cancelled

    @property
    def done(self):
        with self._lock:
            return self._delivered

    def _bind(self, call):
        with self._lock:
            self._call = call
            cancelled = self._cancelled
        # cancel() ran before the transport returned its call context
        if cancelled:
            call.cancel()

    def cancel(self):
        """Cancel the request. Returns False if it had already completed."""
        with self._lock:
            if self._delivered:
                return False
            self._cancelled = True
            call = self._call
        if call is not None:
            call.cancel()
        # the transport may never call back for a locally cancelled call
        self._deliver(None, self._cancelled_error())
        return True

    def _cancelled_error(self):
        return RequestCancelledError(
            "request '{}' was cancelled".format(self._request_id),
            status="StatusCode.CANCELLED",
        )

    def _complete(self, result, error):
        if isinstance(error, InferenceServerException):
            error = from_server_exception(error)
        self._deliver(result, error)

    def _deliver(self, result, error):
        with self._lock:
            if self._delivered:
                logger.debug(
                    "ignoring late completion of request '%s'", self._request_id
                )
                return False
            self._delivered = True
            if self._cancelled and not isinstance(error, RequestCancelledError):
                if error is None:
                    logger.warning(
                        "request '%s' completed after it was cancelled",
                        self._request_id,
                    )
                result, error = None, self._cancelled_error()
        self._on_done(result, error)
        return True


class Client:
    """Inference client over a (possibly shared) gRPC channel.

    Use ``Client.create`` to obtain one. Requests are built with
    ``InferenceRequest`` and return ``InferenceResult`` objects whose status
    must be checked before reading outputs.
    """

    def __init__(self, channel, options, cache=None):
        self._channel = channel
        self._triton_client = channel.triton_client
        self._options = options
        self._cache = cache
        self._stat = InferStat()
        self._stat_lock = threading.Lock()
        self._closed = False

    @classmethod
    def create(
        cls,
        url=None,
        verbose=None,
        use_tls=None,
        tls_options=None,
        keepalive_options=None,
        use_cached_channel=None,
        options=None,
        cache=None,
    ):
        overrides = {
            "url": url,
            "verbose": verbose,
            "use_tls": use_tls,
            "tls": tls_options,
            "keepalive": keepalive_options,
            "use_cached_channel": use_cached_channel,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        try:
            if options is None:
                options = ClientOptions(**overrides)
            elif overrides:
                options = dataclasses.replace(options, **overrides)
        except (TypeError, ValueError) as e:
            raise InferenceConnectionError(
                "unable to create grpc client: {}".format(e)
            ) from e
        cache = default_cache if cache is None else cache
        channel = cache.acquire(options)
        return cls(channel, options, cache)

    @property
    def options(self):
        return self._options

    @property
    def channel(self):
        return self._channel

    def close(self):
        if self._closed:
            return
        self._closed = True
        if self._cache is not None and self._channel.cached:
            self._cache.release(self._channel)
        else:
            self._triton_client.close()

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.close()

    def _check_open(self):
        if self._closed:
            raise HarnessError("client is closed")

    def _call_kwargs(self, request, headers, compression_algorithm):
        merged = dict(self._options.headers)
        if headers:
            merged.update(headers)
        if compression_algorithm is None:
            compression_algorithm = self._options.compression_algorithm
        client_timeout = request.client_timeout
        if client_timeout is None:
            client_timeout = self._options.client_timeout
        return dict(
            model_name=request.model_name,
            model_version=request.model_version,
            request_id=request.request_id,
            client_timeout=client_timeout,
            headers=merged or None,
            compression_algorithm=triton_compression(compression_algorithm),
        )

    def _record(self, start_ns, send_end_ns, receive_start_ns, end_ns):
        with self._stat_lock:
            self._stat.completed_request_count += 1
            self._stat.cumulative_total_request_time_ns += end_ns - start_ns
            self._stat.cumulative_send_time_ns += send_end_ns - start_ns
            self._stat.cumulative_receive_time_ns += end_ns - receive_start_ns

    @staticmethod
    def _wrap(request, result, error):
        if error is not None:
            return InferenceResult.from_error(error, request_id=request.request_id)
        return InferenceResult(result=result, request_id=request.request_id)

    def _encode(self, request, headers, compression_algorithm):
        request.freeze()
        inputs, outputs = request.to_triton()
        kwargs = self._call_kwargs(request, headers, compression_algorithm)
        kwargs["inputs"] = inputs
        kwargs["outputs"] = outputs or None
        return kwargs

    def infer(self, request, headers=None, compression_algorithm=None):
        """Run ``request`` and block until its result is available.

        Server-side failures are reported through the returned result's
        status; an unreachable server raises InferenceConnectionError.
        """
        self._check_open()
        start_ns = time.monotonic_ns()
        kwargs = self._encode(request, headers, compression_algorithm)
        send_end_ns = time.monotonic_ns()
        logger.debug("infer %r", request)
        result = error = None
        try:
            result = self._triton_client.infer(**kwargs)
        except InferenceServerException as ex:
            error = from_server_exception(ex)
        receive_start_ns = time.monotonic_ns()
        if isinstance(error, InferenceConnectionError):
            self._record(start_ns, send_end_ns, receive_start_ns, receive_start_ns)
            raise error
        wrapped = self._wrap(request, result, error)
        self._record(start_ns, send_end_ns, receive_start_ns, time.monotonic_ns())
        logger.debug("request '%s' finished: %s", request.request_id, wrapped.status())
        return wrapped

    def async_infer(self, request, handler, headers=None, compression_algorithm=None):
        """Submit ``request`` without blocking.

        ``handler(result)`` is called exactly once, on a transport thread or,
        for failures detected at submission, on the calling thread before
        this method returns.
        """
        self._check_open()
        start_ns = time.monotonic_ns()
        kwargs = self._encode(request, headers, compression_algorithm)
        send_end_ns = time.monotonic_ns()

        def on_done(result, error):
            receive_start_ns = time.monotonic_ns()
            wrapped = self._wrap(request, result, error)
            self._record(start_ns, send_end_ns, receive_start_ns, time.monotonic_ns())
            logger.debug(
                "request '%s' completed: %s", request.request_id, wrapped.status()
            )
            handler(wrapped)

        async_request = AsyncRequest(request.request_id, on_done)
        logger.debug("async_infer %r", request)
        try:
            call = self._triton_client.async_infer(
                callback=async_request._complete, **kwargs
            )
        except InferenceServerException as ex:
            async_request._complete(None, ex)
            return async_request
        async_request._bind(call)
        return async_request

    def client_infer_stat(self):
        with self._stat_lock:
            return dataclasses.replace(self._stat)

    @handle_server_error
    def model_inference_statistics(self, model_name, model_version="", headers=None):
        self._check_open()
        return self._triton_client.get_inference_statistics(
            model_name=model_name,
            model_version=model_version,
            headers=headers,
            as_json=True,
            client_timeout=self._options.client_timeout,
        )

    @handle_server_error
    def is_server_live(self, headers=None):
        self._check_open()
        return self._triton_client.is_server_live(
            headers=headers, client_timeout=self._options.client_timeout
        )

    @handle_server_error
    def is_model_ready(self, model_name, model_version="", headers=None):
        self._check_open()
        return self._triton_client.is_model_ready(
            model_name,
            model_version=model_version,
            headers=headers,
            client_timeout=self._options.client_timeout,
        )
