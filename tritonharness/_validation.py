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

import typing
from typing import Any


class Validation:
    def validate_type(self, value: Any, expected_type: Any, param_name: str):
        origin = typing.get_origin(expected_type)
        if origin is typing.Union:
            allowed = tuple(
                typing.get_origin(arg) or arg for arg in typing.get_args(expected_type)
            )
        else:
            allowed = origin or expected_type
        # bool is an int subclass; only accept it where bool is allowed
        if isinstance(value, bool) and not self._allows_bool(allowed):
            raise TypeError(
                f"Incorrect Type for {param_name}. Expected {expected_type}, got {type(value)}"
            )
        if not isinstance(value, allowed):
            raise TypeError(
                f"Incorrect Type for {param_name}. Expected {expected_type}, got {type(value)}"
            )

    @staticmethod
    def _allows_bool(allowed):
        if isinstance(allowed, tuple):
            return bool in allowed
        return allowed is bool

    def validate_range(self, value, lb, ub, param_name):
        if (lb is not None and value < lb) or (ub is not None and value > ub):
            raise ValueError(
                f"{param_name} must be within [{lb}, {ub}], got {value}"
            )

    def validate(self):
        for param_name, param_type in typing.get_type_hints(type(self)).items():
            value = getattr(self, param_name)
            self.validate_type(value, param_type, param_name)
