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
Walks a stream record by record without needing any registered descriptor.

This is meant for debugging and tooling (the `dump` command uses it), the values are returned exactly as they are in
the stream: references are not resolved and sequences are plain tuples.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, TypeAlias

from graphcodec.conf.get_settings import get_global_settings
from graphcodec.conf.settings import CodecSettings
from graphcodec.exception import FormatError
from graphcodec.graph.wire import RecordReader, RecordTag, ValueTag, is_record_tag, translate_decode_errors
from graphcodec.serialization import Deserializer


@dataclass(frozen=True, slots=True)
class Reference:
    object_id: int
    type_index: int


@dataclass(frozen=True, slots=True)
class TypeDefRecord:
    type_index: int
    type_id: str
    version: int


@dataclass(frozen=True, slots=True)
class ObjectRecord:
    object_id: int
    type_id: str
    version: int
    field_values: tuple[Any, ...]


Record: TypeAlias = TypeDefRecord | ObjectRecord


def iter_records(deserializer: Deserializer, *, settings: Optional[CodecSettings] = None) -> Iterator[Record]:
    """ Yield every record of the stream, after checking its header, and stop at the end marker.

    Errors are the same as in `decode` (FormatError, TruncatedStreamError, LimitExceededError), except that nothing
    about types or references is checked.
    """
    settings = settings if settings is not None else get_global_settings()
    reader = RecordReader(
        deserializer,
        max_bytes_length=settings.MAX_BYTES_LENGTH,
        max_sequence_length=settings.MAX_SEQUENCE_LENGTH,
    )
    with translate_decode_errors():
        reader.read_header()
        while True:
            tag = reader.read_record_tag()
            match tag:
                case RecordTag.TYPE_DEF:
                    yield TypeDefRecord(*reader.read_type_def())
                case RecordTag.OBJECT:
                    object_id, type_id, version = reader.read_object_header()
                    values = []
                    while not is_record_tag(reader.peek_tag()):
                        values.append(_read_value(reader))
                    yield ObjectRecord(object_id, type_id, version, tuple(values))
                case RecordTag.END_OF_STREAM:
                    return


def _read_value(reader: RecordReader) -> Any:
    """Read one value, sequences are walked with an explicit stack so nesting depth is only bounded by the stream."""
    # (element count, elements read so far) of each open sequence
    open_sequences: list[tuple[int, list[Any]]] = []
    while True:
        tag = reader.read_value_tag()
        match tag:
            case ValueTag.NULL:
                value = None
            case ValueTag.PRIMITIVE:
                _, value = reader.read_primitive()
            case ValueTag.REFERENCE:
                value = Reference(*reader.read_reference())
            case ValueTag.SEQUENCE_START:
                count = reader.read_sequence_count()
                if count > 0:
                    open_sequences.append((count, []))
                    continue
                reader.read_sequence_end()
                value = ()
            case ValueTag.SEQUENCE_END:
                raise FormatError('unexpected end of sequence')

        while open_sequences:
            count, elements = open_sequences[-1]
            elements.append(value)
            if len(elements) < count:
                break
            open_sequences.pop()
            reader.read_sequence_end()
            value = tuple(elements)
        else:
            return value
