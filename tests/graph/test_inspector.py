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

from datetime import datetime, timezone

import pytest

from graphcodec.exception import FormatError, LimitExceededError, TruncatedStreamError
from graphcodec.graph.inspector import ObjectRecord, Reference, TypeDefRecord, iter_records
from graphcodec.graph.kinds import BOOL, BYTES, FLOAT, INT, REFERENCE, TEXT, TIMESTAMP, ArrayKind, SequenceKind
from graphcodec.graph.wire import MAGIC, PrimitiveTag, RecordWriter, is_record_tag
from graphcodec.serialization import Deserializer, Serializer


def _stream(write) -> Deserializer:
    se = Serializer.build_bytes_serializer()
    writer = RecordWriter(se)
    writer.write_header()
    write(writer)
    return Deserializer.build_bytes_deserializer(bytes(se.finalize()))


def test_records_without_descriptors(settings):
    when = datetime(2001, 2, 3, 4, 5, 6, tzinfo=timezone.utc)

    def write(writer):
        writer.write_type_def(0, 'unknown.Thing', 9)
        writer.write_object_header(0, 'unknown.Thing', 9)
        writer.write_primitive(PrimitiveTag.INT, -5)
        writer.write_primitive(PrimitiveTag.BYTES, b'\x01\x02')
        writer.write_primitive(PrimitiveTag.TIMESTAMP, when)
        writer.write_sequence_start(2)
        writer.write_null()
        writer.write_sequence_start(1)
        writer.write_reference(1, 0)
        writer.write_sequence_end()
        writer.write_sequence_end()
        writer.write_object_header(1, 'unknown.Thing', 9)
        writer.write_end()

    assert list(iter_records(_stream(write), settings=settings)) == [
        TypeDefRecord(0, 'unknown.Thing', 9),
        ObjectRecord(0, 'unknown.Thing', 9, (-5, b'\x01\x02', when, (None, (Reference(1, 0),)))),
        ObjectRecord(1, 'unknown.Thing', 9, ()),
    ]


def test_stops_at_end_marker(settings):
    def write(writer):
        writer.write_end()
        writer.write_raw(b'garbage')

    deserializer = _stream(write)
    assert list(iter_records(deserializer, settings=settings)) == []
    assert bytes(deserializer.read_bytes(7)) == b'garbage'
    deserializer.finalize()


def test_errors(settings):
    with pytest.raises(FormatError):
        list(iter_records(Deserializer.build_bytes_deserializer(b'\x00' * 8), settings=settings))

    with pytest.raises(TruncatedStreamError):
        list(iter_records(_stream(lambda writer: writer.write_object_header(0, 'a', 1)), settings=settings))

    with pytest.raises(FormatError, match='unexpected end of sequence'):
        list(iter_records(_stream(lambda writer: (
            writer.write_object_header(0, 'a', 1),
            writer.write_sequence_end(),
        )), settings=settings))

    limited = settings.model_copy(update=dict(MAX_SEQUENCE_LENGTH=1))
    with pytest.raises(LimitExceededError):
        list(iter_records(_stream(lambda writer: (
            writer.write_object_header(0, 'a', 1),
            writer.write_sequence_start(2),
        )), settings=limited))


def test_deeply_nested_sequences(settings):
    depth = 100_000

    def write(writer):
        writer.write_object_header(0, 'a', 1)
        for _ in range(depth):
            writer.write_sequence_start(1)
        writer.write_null()
        for _ in range(depth):
            writer.write_sequence_end()
        writer.write_sequence_start(0)
        writer.write_sequence_end()
        writer.write_end()

    [record] = list(iter_records(_stream(write), settings=settings))
    nested, empty = record.field_values
    assert empty == ()
    for _ in range(depth):
        assert isinstance(nested, tuple) and len(nested) == 1
        nested, = nested
    assert nested is None


def test_deeply_nested_sequences_without_end(settings):
    def write(writer):
        writer.write_object_header(0, 'a', 1)
        for _ in range(100_000):
            writer.write_sequence_start(1)

    with pytest.raises(TruncatedStreamError):
        list(iter_records(_stream(write), settings=settings))


def test_record_and_value_tags_are_disjoint():
    from graphcodec.graph.wire import RecordTag, ValueTag
    assert not {int(tag) for tag in RecordTag} & {int(tag) for tag in ValueTag}
    assert all(is_record_tag(tag) for tag in RecordTag)
    assert not any(is_record_tag(tag) for tag in ValueTag)


def test_header_layout():
    se = Serializer.build_bytes_serializer()
    RecordWriter(se).write_header()
    assert bytes(se.finalize()) == MAGIC + b'\x00\x00\x00\x01'


def test_nullable_kinds():
    assert TEXT.nullable and BYTES.nullable and TIMESTAMP.nullable
    assert not (BOOL.nullable or INT.nullable or FLOAT.nullable)
    assert REFERENCE.nullable
    assert ArrayKind(INT).nullable
    assert SequenceKind(INT).nullable


def test_normalize():
    assert FLOAT.normalize(2) == 2.0
    assert BYTES.normalize(memoryview(b'ab')) == b'ab'
    with pytest.raises(TypeError):
        INT.normalize(False)
    with pytest.raises(TypeError):
        FLOAT.normalize(True)
    with pytest.raises(TypeError):
        TIMESTAMP.normalize('2020-01-01')


def test_sequence_builder():
    assert SequenceKind(INT, builder=set).build([1, 2, 2]) == {1, 2}
    assert ArrayKind(INT).build([1, 2]) == [1, 2]
    # builders don't take part in equality
    assert SequenceKind(INT, builder=set) == SequenceKind(INT)
