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

"""
Wire format of an encoded object graph.

A stream is a header followed by a flat sequence of records, every fixed-size integer is big-endian:

    header:         MAGIC (4 bytes) | FORMAT_VERSION (u32)
    TYPE_DEF:       0x01 | type_index (u32) | type_id (utf8) | version (u32)
    OBJECT:         0x02 | object_id (u32) | type_id (utf8) | version (u32) | one value per descriptor field
    END_OF_STREAM:  0x0f

Values that follow an OBJECT header:

    REFERENCE:      0x10 | object_id (u32) | type_index (u32)
    PRIMITIVE:      0x11 | primitive tag (1 byte) | payload
    NULL:           0x12
    SEQUENCE:       0x13 | count (u32) | count values | 0x14

Record tags and value tags never overlap, so the values of an OBJECT record end where the next record tag starts.
This lets a stream be walked without knowing any descriptor (see `graphcodec.graph.inspector`).

A `type_index` names one TYPE_DEF of the same stream. A reference carries the runtime type of its target so the
decoder can allocate the right class before the target's own record shows up.

>>> from graphcodec.serialization import Serializer
>>> se = Serializer.build_bytes_serializer()
>>> writer = RecordWriter(se)
>>> writer.write_header()
>>> writer.write_type_def(0, 'node', 1)
>>> writer.write_object_header(0, 'node', 1)
>>> writer.write_reference(0, 0)
>>> writer.write_end()
>>> bytes(se.finalize()).hex(' ')
'4f 47 43 00 00 00 00 01 01 00 00 00 00 04 6e 6f 64 65 00 00 00 01 02 00 00 00 00 04 6e 6f 64 65 00 00 00 01 10 00 \
00 00 00 00 00 00 00 0f'
"""

from contextlib import contextmanager
from datetime import datetime
from enum import IntEnum
from typing import Any, Final, Iterator

from graphcodec.exception import FormatError, LimitExceededError, StreamIOError, TruncatedStreamError
from graphcodec.serialization import Deserializer, OutOfDataError, SerializationError, Serializer, TooLongError
from graphcodec.serialization.adapters import MaxBytesExceededError
from graphcodec.serialization.encoding.bool import decode_bool, encode_bool
from graphcodec.serialization.encoding.bytes import decode_bytes, encode_bytes
from graphcodec.serialization.encoding.float import decode_float, encode_float
from graphcodec.serialization.encoding.int import decode_u32, encode_u32
from graphcodec.serialization.encoding.leb128 import decode_leb128, encode_leb128
from graphcodec.serialization.encoding.timestamp import decode_timestamp, encode_timestamp
from graphcodec.serialization.encoding.utf8 import decode_utf8, encode_utf8
from graphcodec.serialization.types import Buffer

MAGIC: Final[bytes] = b'OGC\x00'
FORMAT_VERSION: Final[int] = 1
U32_MAX: Final[int] = 2**32 - 1


class RecordTag(IntEnum):
    TYPE_DEF = 0x01
    OBJECT = 0x02
    END_OF_STREAM = 0x0f


class ValueTag(IntEnum):
    REFERENCE = 0x10
    PRIMITIVE = 0x11
    NULL = 0x12
    SEQUENCE_START = 0x13
    SEQUENCE_END = 0x14


class PrimitiveTag(IntEnum):
    BOOL = 0x01
    INT = 0x02
    FLOAT = 0x03
    TEXT = 0x04
    BYTES = 0x05
    TIMESTAMP = 0x06


def is_record_tag(tag: int) -> bool:
    return tag in RecordTag._value2member_map_


class RecordWriter:
    """Writes records and values, it doesn't check that the values match any descriptor."""

    __slots__ = ('serializer',)

    def __init__(self, serializer: Serializer) -> None:
        self.serializer = serializer

    def write_header(self) -> None:
        self.serializer.write_bytes(MAGIC)
        encode_u32(self.serializer, FORMAT_VERSION)

    def write_type_def(self, type_index: int, type_id: str, version: int) -> None:
        self.serializer.write_byte(RecordTag.TYPE_DEF)
        encode_u32(self.serializer, type_index)
        encode_utf8(self.serializer, type_id)
        encode_u32(self.serializer, version)

    def write_object_header(self, object_id: int, type_id: str, version: int) -> None:
        self.serializer.write_byte(RecordTag.OBJECT)
        encode_u32(self.serializer, object_id)
        encode_utf8(self.serializer, type_id)
        encode_u32(self.serializer, version)

    def write_end(self) -> None:
        self.serializer.write_byte(RecordTag.END_OF_STREAM)

    def write_reference(self, object_id: int, type_index: int) -> None:
        self.serializer.write_byte(ValueTag.REFERENCE)
        encode_u32(self.serializer, object_id)
        encode_u32(self.serializer, type_index)

    def write_null(self) -> None:
        self.serializer.write_byte(ValueTag.NULL)

    def write_primitive(self, tag: PrimitiveTag, value: Any) -> None:
        self.serializer.write_byte(ValueTag.PRIMITIVE)
        self.serializer.write_byte(tag)
        match tag:
            case PrimitiveTag.BOOL:
                encode_bool(self.serializer, value)
            case PrimitiveTag.INT:
                encode_leb128(self.serializer, value, signed=True)
            case PrimitiveTag.FLOAT:
                encode_float(self.serializer, value)
            case PrimitiveTag.TEXT:
                encode_utf8(self.serializer, value)
            case PrimitiveTag.BYTES:
                encode_bytes(self.serializer, value)
            case PrimitiveTag.TIMESTAMP:
                encode_timestamp(self.serializer, value)
            case _:
                raise NotImplementedError(f'unknown primitive tag {tag!r}')

    def write_sequence_start(self, count: int) -> None:
        self.serializer.write_byte(ValueTag.SEQUENCE_START)
        encode_u32(self.serializer, count)

    def write_sequence_end(self) -> None:
        self.serializer.write_byte(ValueTag.SEQUENCE_END)

    def write_raw(self, data: Buffer) -> None:
        """Copy bytes that were already encoded by another RecordWriter."""
        self.serializer.write_bytes(data)


class RecordReader:
    """Reads records and values, checking only what can be checked without descriptors.

    Length prefixes are checked against `max_bytes_length` and sequence counts against `max_sequence_length` before
    the data they announce is read.
    """

    __slots__ = ('deserializer', '_max_bytes_length', '_max_sequence_length')

    def __init__(
        self,
        deserializer: Deserializer,
        *,
        max_bytes_length: int | None = None,
        max_sequence_length: int | None = None,
    ) -> None:
        self.deserializer = deserializer
        self._max_bytes_length = max_bytes_length
        self._max_sequence_length = max_sequence_length

    def read_header(self) -> int:
        magic = bytes(self.deserializer.read_bytes(len(MAGIC)))
        if magic != MAGIC:
            raise FormatError(f'bad magic {magic!r}, this is not an object graph stream')
        format_version = decode_u32(self.deserializer)
        if format_version != FORMAT_VERSION:
            raise FormatError(f'unsupported format version {format_version}, expected {FORMAT_VERSION}')
        return format_version

    def peek_tag(self) -> int:
        return self.deserializer.peek_byte()

    def read_record_tag(self) -> RecordTag:
        tag = self.deserializer.read_byte()
        if not is_record_tag(tag):
            raise FormatError(f'expected a record tag, got 0x{tag:02x}')
        return RecordTag(tag)

    def read_value_tag(self) -> ValueTag:
        tag = self.deserializer.read_byte()
        if tag not in ValueTag._value2member_map_:
            raise FormatError(f'expected a value tag, got 0x{tag:02x}')
        return ValueTag(tag)

    def read_type_def(self) -> tuple[int, str, int]:
        """Read the body of a TYPE_DEF, the tag must have been consumed already."""
        type_index = decode_u32(self.deserializer)
        type_id = self._read_text()
        version = decode_u32(self.deserializer)
        return type_index, type_id, version

    def read_object_header(self) -> tuple[int, str, int]:
        """Read the header of an OBJECT, the tag must have been consumed already."""
        object_id = decode_u32(self.deserializer)
        type_id = self._read_text()
        version = decode_u32(self.deserializer)
        return object_id, type_id, version

    def read_reference(self) -> tuple[int, int]:
        object_id = decode_u32(self.deserializer)
        type_index = decode_u32(self.deserializer)
        return object_id, type_index

    def read_primitive(self) -> tuple[PrimitiveTag, Any]:
        raw_tag = self.deserializer.read_byte()
        if raw_tag not in PrimitiveTag._value2member_map_:
            raise FormatError(f'unknown primitive tag 0x{raw_tag:02x}')
        tag = PrimitiveTag(raw_tag)
        value: bool | int | float | str | bytes | datetime
        try:
            match tag:
                case PrimitiveTag.BOOL:
                    value = decode_bool(self.deserializer)
                case PrimitiveTag.INT:
                    value = decode_leb128(self.deserializer, signed=True)
                case PrimitiveTag.FLOAT:
                    value = decode_float(self.deserializer)
                case PrimitiveTag.TEXT:
                    value = self._read_text()
                case PrimitiveTag.BYTES:
                    value = decode_bytes(self.deserializer, max_length=self._max_bytes_length)
                case PrimitiveTag.TIMESTAMP:
                    value = decode_timestamp(self.deserializer)
        except ValueError as e:
            raise FormatError(f'invalid {tag.name} value: {e}') from e
        return tag, value

    def read_sequence_count(self) -> int:
        """Read the count of a sequence, the SEQUENCE_START tag must have been consumed already."""
        count = decode_u32(self.deserializer)
        if self._max_sequence_length is not None and count > self._max_sequence_length:
            raise LimitExceededError(f'sequence of {count} elements exceeds MAX_SEQUENCE_LENGTH')
        return count

    def read_sequence_end(self) -> None:
        tag = self.read_value_tag()
        if tag != ValueTag.SEQUENCE_END:
            raise FormatError(f'expected end of sequence, got {tag.name}')

    def _read_text(self) -> str:
        try:
            return decode_utf8(self.deserializer, max_length=self._max_bytes_length)
        except UnicodeDecodeError as e:
            raise FormatError(f'invalid utf-8 text: {e}') from e


@contextmanager
def translate_encode_errors() -> Iterator[None]:
    """Turn byte level errors raised while encoding into the codec's error types."""
    try:
        yield
    except MaxBytesExceededError as e:
        raise LimitExceededError('stream is larger than MAX_STREAM_BYTES') from e
    except OSError as e:
        raise StreamIOError(f'failed to write to sink: {e}') from e


@contextmanager
def translate_decode_errors() -> Iterator[None]:
    """Turn byte level errors raised while decoding into the codec's error types."""
    try:
        yield
    except MaxBytesExceededError as e:
        raise LimitExceededError('stream is larger than MAX_STREAM_BYTES') from e
    except TooLongError as e:
        raise LimitExceededError(f'{e}, see MAX_BYTES_LENGTH') from e
    except OutOfDataError as e:
        raise TruncatedStreamError('stream ended in the middle of a record') from e
    except SerializationError as e:
        raise FormatError(str(e)) from e
    except OSError as e:
        raise StreamIOError(f'failed to read from source: {e}') from e
