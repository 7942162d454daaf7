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

from typing_extensions import override

from .deserializer import Deserializer
from .exceptions import OutOfDataError
from .types import ByteSource


class StreamDeserializer(Deserializer):
    """Implementation of Deserializer that pulls bytes from a byte source on demand.

    A small look-ahead buffer holds bytes that were peeked but not consumed yet. Nothing beyond what a read or peek
    asks for is pulled from the source, so the source can be left positioned right after the parsed data.
    """

    def __init__(self, source: ByteSource) -> None:
        self._source = source
        self._buffer = bytearray()
        self._eof = False

    def _fill(self, n: int) -> None:
        while len(self._buffer) < n and not self._eof:
            chunk = self._source.read(n - len(self._buffer))
            if not chunk:
                self._eof = True
                break
            self._buffer.extend(chunk)

    @override
    def finalize(self) -> None:
        if not self.is_empty():
            raise ValueError('trailing data')

    @override
    def is_empty(self) -> bool:
        self._fill(1)
        return not self._buffer

    @override
    def peek_byte(self) -> int:
        self._fill(1)
        if not self._buffer:
            raise OutOfDataError('not enough bytes to read')
        return self._buffer[0]

    @override
    def read_byte(self) -> int:
        b = self.peek_byte()
        del self._buffer[0]
        return b

    @override
    def read_bytes(self, n: int) -> bytes:
        if n < 0:
            raise ValueError('value cannot be negative')
        self._fill(n)
        if len(self._buffer) < n:
            raise OutOfDataError('not enough bytes to read')
        b = bytes(self._buffer[:n])
        del self._buffer[:n]
        return b
