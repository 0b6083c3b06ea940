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

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

import tritonclient.grpc as grpcclient

from tritonharness._errors import InvalidRequestError
from tritonharness._validation import Validation

COMPRESSION_ALGORITHMS = ("deflate", "gzip", "none")

DEFAULT_URL = "localhost:8001"


def parse_header(arg):
    """Split a 'Header:Value' string into its name and value."""
    header, sep, value = arg.partition(":")
    if not sep or not header:
        raise InvalidRequestError(
            "HTTP header specified incorrectly. Must be formatted as 'Header:Value'"
        )
    return header, value


def str_to_bool(value):
    lowered = value.lower()
    if "false" in lowered:
        return False
    if "true" in lowered:
        return True
    raise ValueError("need to specify true or false, got '{}'".format(value))


@dataclass
class TlsOptions(Validation):
    # PEM-encoded file paths, empty means unset
    root_certificates: str = ""
    private_key: str = ""
    certificate_chain: str = ""

    def __post_init__(self):
        self.validate()

    def key(self):
        return (self.root_certificates, self.private_key, self.certificate_chain)


@dataclass
class KeepAliveOptions(Validation):
    keepalive_time_ms: int = 2**31 - 1
    keepalive_timeout_ms: int = 20_000
    keepalive_permit_without_calls: bool = False
    http2_max_pings_without_data: int = 2

    def __post_init__(self):
        self.validate()
        self.validate_range(self.keepalive_time_ms, 0, None, "keepalive_time_ms")
        self.validate_range(self.keepalive_timeout_ms, 0, None, "keepalive_timeout_ms")
        self.validate_range(
            self.http2_max_pings_without_data, 0, None, "http2_max_pings_without_data"
        )

    def key(self):
        return (
            self.keepalive_time_ms,
            self.keepalive_timeout_ms,
            self.keepalive_permit_without_calls,
            self.http2_max_pings_without_data,
        )

    def to_triton(self):
        return grpcclient.KeepAliveOptions(
            keepalive_time_ms=self.keepalive_time_ms,
            keepalive_timeout_ms=self.keepalive_timeout_ms,
            keepalive_permit_without_calls=self.keepalive_permit_without_calls,
            http2_max_pings_without_data=self.http2_max_pings_without_data,
        )


@dataclass
class ClientOptions(Validation):
    url: str = DEFAULT_URL
    verbose: bool = False
    use_tls: bool = False
    tls: TlsOptions = field(default_factory=TlsOptions)
    keepalive: KeepAliveOptions = field(default_factory=KeepAliveOptions)
    use_cached_channel: bool = True
    # seconds, None disables the client side deadline
    client_timeout: Optional[float] = None
    headers: Dict[str, str] = field(default_factory=dict)
    compression_algorithm: str = "none"

    def __post_init__(self):
        if isinstance(self.client_timeout, int) and not isinstance(
            self.client_timeout, bool
        ):
            self.client_timeout = float(self.client_timeout)
        self.validate()
        if not self.url:
            raise ValueError("url must not be empty")
        if self.client_timeout is not None:
            self.validate_range(self.client_timeout, 0, None, "client_timeout")
        if self.compression_algorithm not in COMPRESSION_ALGORITHMS:
            raise ValueError(
                "unsupported compression algorithm '{}'... only {} are supported".format(
                    self.compression_algorithm,
                    ", ".join("'" + a + "'" for a in COMPRESSION_ALGORITHMS),
                )
            )

    @property
    def grpc_compression_algorithm(self):
        """The value tritonclient expects: None disables compression."""
        return triton_compression(self.compression_algorithm)

    @classmethod
    def from_env(cls, environ=None, **overrides):
        environ = os.environ if environ is None else environ
        kwargs = {}
        if environ.get("TRITON_URL"):
            kwargs["url"] = environ["TRITON_URL"]
        if environ.get("TRITON_CLIENT_TIMEOUT"):
            kwargs["client_timeout"] = float(environ["TRITON_CLIENT_TIMEOUT"])
        if environ.get("TRITON_GRPC_COMPRESSION"):
            kwargs["compression_algorithm"] = environ["TRITON_GRPC_COMPRESSION"]
        if environ.get("TRITON_USE_CACHED_CHANNEL"):
            kwargs["use_cached_channel"] = str_to_bool(
                environ["TRITON_USE_CACHED_CHANNEL"]
            )
        kwargs.update(overrides)
        return cls(**kwargs)


def triton_compression(algorithm):
    if algorithm is None or algorithm == "none":
        return None
    if algorithm not in COMPRESSION_ALGORITHMS:
        raise ValueError("unsupported compression algorithm '{}'".format(algorithm))
    return algorithm
