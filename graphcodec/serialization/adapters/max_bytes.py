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

from typing import TypeVar

from typing_extensions import override

from graphcodec.serialization.deserializer import Deserializer
from graphcodec.serialization.exceptions import SerializationError
from graphcodec.serialization.serializer import Serializer

from ..types import Buffer
from .generic_adapter import GenericDeserializerAdapter, GenericSerializerAdapter

S = TypeVar('S', bound=Serializer)
D = TypeVar('D', bound=Deserializer)


class MaxBytesExceededError(SerializationError):
    """ Raised when a write or read would go past the byte budget of a MaxBytes adapter.

    The budget is charged before the inner (de)serializer is touched, so an oversized length never turns into a large
    allocation. Once raised, the adapter and whatever it wrapped hold a partial stream and must be discarded.
    """
    pass


class MaxBytesSerializer(GenericSerializerAdapter[S]):
    """Serializer adapter that fails once more than `max_bytes` were written through it."""

    def __init__(self, serializer: S, max_bytes: int) -> None:
        super().__init__(serializer)
        self._max_bytes = max_bytes
        self._bytes_left = max_bytes

    def _charge(self, size: int) -> None:
        self._bytes_left -= size
        if self._bytes_left < 0:
            raise MaxBytesExceededError(f'more than {self._max_bytes} bytes written')

    @override
    def write_byte(self, data: int) -> None:
        self._charge(1)
        super().write_byte(data)

    @override
    def write_bytes(self, data: Buffer) -> None:
        view = memoryview(data)
        self._charge(view.nbytes)
        super().write_bytes(view)


class MaxBytesDeserializer(GenericDeserializerAdapter[D]):
    """Deserializer adapter that fails once more than `max_bytes` were read through it, peeks are free."""

    def __init__(self, deserializer: D, max_bytes: int) -> None:
        super().__init__(deserializer)
        self._max_bytes = max_bytes
        self._bytes_left = max_bytes

    def _charge(self, size: int) -> None:
        self._bytes_left -= size
        if self._bytes_left < 0:
            raise MaxBytesExceededError(f'more than {self._max_bytes} bytes read')

    @override
    def read_byte(self) -> int:
        self._charge(1)
        return super().read_byte()

    @override
    def read_bytes(self, n: int) -> Buffer:
        self._charge(n)
        return super().read_bytes(n)
