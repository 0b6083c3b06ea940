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
import os
import threading

import tritonclient.grpc as grpcclient

from tritonharness._errors import InferenceConnectionError

logger = logging.getLogger(__name__)

MAX_SHARE_COUNT_ENV = "TRITON_CLIENT_GRPC_CHANNEL_MAX_SHARE_COUNT"
DEFAULT_MAX_SHARE_COUNT = 6

# Matches the limits tritonclient applies when no channel_args are given
_MAX_MESSAGE_LENGTH = 2**31 - 1


def _private_channel_args(keepalive):
    # A local subchannel pool keeps grpc from sharing the connection with
    # any other channel to the same target.
    return [
        ("grpc.max_send_message_length", _MAX_MESSAGE_LENGTH),
        ("grpc.max_receive_message_length", _MAX_MESSAGE_LENGTH),
        ("grpc.keepalive_time_ms", keepalive.keepalive_time_ms),
        ("grpc.keepalive_timeout_ms", keepalive.keepalive_timeout_ms),
        (
            "grpc.keepalive_permit_without_calls",
            int(keepalive.keepalive_permit_without_calls),
        ),
        ("grpc.http2.max_pings_without_data", keepalive.http2_max_pings_without_data),
        ("grpc.use_local_subchannel_pool", 1),
    ]


def create_triton_client(options, private=False):
    """Create the tritonclient gRPC client for ``options``."""
    tls = options.tls
    try:
        return grpcclient.InferenceServerClient(
            url=options.url,
            verbose=options.verbose,
            ssl=options.use_tls,
            root_certificates=tls.root_certificates or None,
            private_key=tls.private_key or None,
            certificate_chain=tls.certificate_chain or None,
            keepalive_options=options.keepalive.to_triton(),
            channel_args=_private_channel_args(options.keepalive) if private else None,
        )
    except Exception as e:
        if options.use_tls:
            msg = "unable to create secure grpc client"
        else:
            msg = "unable to create grpc client"
        raise InferenceConnectionError("{}: {}".format(msg, e)) from e


def channel_key(options):
    return (
        options.url,
        options.verbose,
        options.use_tls,
        options.tls.key(),
        options.keepalive.key(),
    )


class Channel:
    """A tritonclient client shared by every Client created on the same key."""

    def __init__(self, key, triton_client, cached):
        self.key = key
        self.triton_client = triton_client
        self.cached = cached
        self.share_count = 0
        self.ref_count = 0


class ChannelCache:
    def __init__(self, max_share_count=None):
        self._lock = threading.Lock()
        self._channels = {}
        self._max_share_count = max_share_count

    @property
    def max_share_count(self):
        if self._max_share_count is not None:
            return self._max_share_count
        return int(os.environ.get(MAX_SHARE_COUNT_ENV, DEFAULT_MAX_SHARE_COUNT))

    def __len__(self):
        with self._lock:
            return len(self._channels)

    def acquire(self, options):
        key = channel_key(options)
        if not options.use_cached_channel:
            channel = Channel(key, create_triton_client(options, private=True), False)
            channel.share_count = channel.ref_count = 1
            logger.info("created private channel to %s", options.url)
            return channel

        with self._lock:
            channel = self._channels.get(key)
            if channel is None or channel.share_count >= self.max_share_count:
                replaced = channel
                channel = Channel(key, create_triton_client(options), True)
                self._channels[key] = channel
                logger.info("created cached channel to %s", options.url)
            else:
                replaced = None
                logger.info(
                    "reusing cached channel to %s (shared by %d clients)",
                    options.url,
                    channel.share_count,
                )
            channel.share_count += 1
            channel.ref_count += 1
            # an idle replaced channel has no client left to close it
            if replaced is not None and replaced.ref_count > 0:
                replaced = None
        if replaced is not None:
            self._close(replaced)
        return channel

    def release(self, channel):
        """Drop one client's reference to ``channel``.

        A cached channel stays open while it is the cache entry for its key,
        so a client created later on the same key reuses it. Private and
        replaced channels are closed with their last client.
        """
        with self._lock:
            channel.ref_count -= 1
            close = channel.ref_count <= 0 and (
                self._channels.get(channel.key) is not channel
            )
        if close:
            self._close(channel)

    @staticmethod
    def _close(channel):
        logger.debug("closing channel to %s", channel.key[0])
        channel.triton_client.close()

    def clear(self):
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
        for channel in channels:
            channel.triton_client.close()


default_cache = ChannelCache()
