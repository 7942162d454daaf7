# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Protocol, TypeAlias

Buffer: TypeAlias = bytes | bytearray | memoryview


class ByteSink(Protocol):
    """Anything that bytes can be written to, like a file opened with 'wb'."""

    def write(self, data: bytes, /) -> object:
        ...


class ByteSource(Protocol):
    """Anything that bytes can be read from, like a file opened with 'rb'.

    `read(n)` may return less than `n` bytes, an empty result means the source is exhausted.
    """

    def read(self, n: int, /) -> bytes:
        ...
