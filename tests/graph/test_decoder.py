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

import io

import pytest

from graphcodec.exception import (
    DecodeError,
    FormatError,
    LimitExceededError,
    StreamIOError,
    TruncatedStreamError,
    UnknownReferenceError,
    UnsupportedTypeError,
    VersionMismatchError,
)
from graphcodec.graph import FLOAT, TEXT, TypeRegistry, decode, decode_from_bytes, encode_to_bytes
from graphcodec.graph.wire import PrimitiveTag, RecordWriter
from graphcodec.serialization import Deserializer, Serializer
from tests.graph.sample_types import NODE_FIELDS, Circle, Drawing, Node, Record, Square


def _build_stream(write) -> bytes:
    se = Serializer.build_bytes_serializer()
    writer = RecordWriter(se)
    writer.write_header()
    write(writer)
    return bytes(se.finalize())


def _write_node(writer: RecordWriter, object_id: int, *, array=(), parent=None) -> None:
    """Write a tests.Node record, references are (object_id, type_index) pairs."""
    writer.write_object_header(object_id, 'tests.Node', 1)
    writer.write_primitive(PrimitiveTag.FLOAT, 0.0)
    writer.write_primitive(PrimitiveTag.BOOL, False)
    writer.write_null()
    writer.write_null()
    writer.write_sequence_start(len(array))
    for reference in array:
        writer.write_reference(*reference)
    writer.write_sequence_end()
    writer.write_sequence_start(0)
    writer.write_sequence_end()
    if parent is None:
        writer.write_null()
    else:
        writer.write_reference(*parent)


def _sample_stream(registry, settings) -> bytes:
    drawing = Drawing()
    drawing.main = Circle(1.0)
    drawing.shapes = [Square(2.0), drawing.main]
    return encode_to_bytes(drawing, registry=registry, settings=settings)


def test_hand_written_stream(registry, settings):
    def write(writer):
        writer.write_type_def(0, 'tests.Node', 1)
        # a forward reference to an object whose record comes later
        _write_node(writer, 0, parent=(1, 0))
        _write_node(writer, 1, array=[(0, 0), (1, 0)])
        writer.write_end()

    root = decode_from_bytes(_build_stream(write), registry=registry, settings=settings)
    assert root.parent.array == [root, root.parent]


def test_dangling_reference(registry, settings):
    def write(writer):
        writer.write_type_def(0, 'tests.Node', 1)
        _write_node(writer, 0, array=[(5, 0), (3, 0)])
        writer.write_end()

    with pytest.raises(UnknownReferenceError) as e:
        decode_from_bytes(_build_stream(write), registry=registry, settings=settings)
    assert e.value.object_ids == (3, 5)


def test_decode_returns_err_instead_of_raising(registry, settings):
    result = decode(Deserializer.build_bytes_deserializer(b'nope'), registry=registry, settings=settings)
    assert result.is_err()
    assert isinstance(result.unwrap_err(), DecodeError)


def test_version_mismatch(registry, settings):
    data = encode_to_bytes(Node(), registry=registry, settings=settings)
    registry.register('tests.Node', 2, NODE_FIELDS + [('extra', FLOAT)], cls=Node, transient=['secret', 'output'])

    with pytest.raises(VersionMismatchError) as e:
        decode_from_bytes(data, registry=registry, settings=settings)
    assert e.value.type_id == 'tests.Node'
    assert e.value.stream_version == 1
    assert e.value.local_version == 2


def test_unknown_type(registry, settings):
    data = _sample_stream(registry, settings)
    other_without_square = TypeRegistry()
    for descriptor in registry:
        if descriptor.type_id != 'tests.Square':
            other_without_square.register(descriptor.type_id, descriptor.version, descriptor.fields,
                                          cls=descriptor.cls, transient=descriptor.transient)

    with pytest.raises(UnsupportedTypeError, match='tests.Square'):
        decode_from_bytes(data, registry=other_without_square, settings=settings)


@pytest.mark.parametrize('cut', [0, 3, 7, 8, 12, 25, -2, -1])
def test_truncated_stream(registry, settings, cut):
    data = _sample_stream(registry, settings)
    with pytest.raises(TruncatedStreamError):
        decode_from_bytes(data[:cut], registry=registry, settings=settings)


def test_every_truncation_is_detected(registry, settings):
    data = _sample_stream(registry, settings)
    for length in range(len(data)):
        result = decode(Deserializer.build_bytes_deserializer(data[:length]), registry=registry, settings=settings)
        assert isinstance(result.unwrap_err(), TruncatedStreamError), length


def test_bad_magic(registry, settings):
    data = _sample_stream(registry, settings)
    with pytest.raises(FormatError) as e:
        decode_from_bytes(b'GOC\x00' + data[4:], registry=registry, settings=settings)
    assert not isinstance(e.value, TruncatedStreamError)


def test_unsupported_format_version(registry, settings):
    data = _sample_stream(registry, settings)
    with pytest.raises(FormatError, match='format version 2'):
        decode_from_bytes(data[:4] + b'\x00\x00\x00\x02' + data[8:], registry=registry, settings=settings)


def test_trailing_bytes(registry, settings):
    data = _sample_stream(registry, settings)
    with pytest.raises(FormatError, match='after the end'):
        decode_from_bytes(data + b'\x00', registry=registry, settings=settings)


@pytest.mark.parametrize('name, write', [
    ('no records', lambda w: w.write_end()),
    ('unknown record tag', lambda w: w.write_raw(b'\x07')),
    ('value tag where a record is expected', lambda w: w.write_null()),
    ('type index out of order', lambda w: w.write_type_def(1, 'tests.Circle', 1)),
    ('root is not object 0', lambda w: (
        w.write_type_def(0, 'tests.Circle', 1),
        w.write_object_header(1, 'tests.Circle', 1),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_end(),
    )),
    ('object defined twice', lambda w: (
        w.write_type_def(0, 'tests.Circle', 1),
        w.write_object_header(0, 'tests.Circle', 1),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_object_header(0, 'tests.Circle', 1),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_end(),
    )),
    ('primitive of the wrong kind', lambda w: (
        w.write_type_def(0, 'tests.Circle', 1),
        w.write_object_header(0, 'tests.Circle', 1),
        w.write_primitive(PrimitiveTag.INT, 1),
        w.write_end(),
    )),
    ('null for a non-nullable kind', lambda w: (
        w.write_type_def(0, 'tests.Circle', 1),
        w.write_object_header(0, 'tests.Circle', 1),
        w.write_null(),
        w.write_end(),
    )),
    ('unknown primitive tag', lambda w: (
        w.write_type_def(0, 'tests.Circle', 1),
        w.write_object_header(0, 'tests.Circle', 1),
        w.write_raw(b'\x11\x09'),
        w.write_end(),
    )),
    ('invalid bool byte', lambda w: (
        w.write_type_def(0, 'tests.Node', 1),
        w.write_object_header(0, 'tests.Node', 1),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_raw(b'\x11\x01\x07'),
    )),
    ('invalid utf-8', lambda w: (
        w.write_type_def(0, 'tests.Node', 1),
        w.write_object_header(0, 'tests.Node', 1),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_primitive(PrimitiveTag.BOOL, True),
        w.write_raw(b'\x11\x04\x01\xff'),
    )),
    ('sequence where a reference is expected', lambda w: (
        w.write_type_def(0, 'tests.Drawing', 1),
        w.write_object_header(0, 'tests.Drawing', 1),
        w.write_null(),
        w.write_sequence_start(0),
        w.write_sequence_end(),
    )),
    ('sequence not closed', lambda w: (
        w.write_type_def(0, 'tests.Drawing', 1),
        w.write_object_header(0, 'tests.Drawing', 1),
        w.write_null(),
        w.write_null(),
        w.write_sequence_start(0),
        w.write_end(),
    )),
    ('reference to an undefined type index', lambda w: (
        w.write_type_def(0, 'tests.Drawing', 1),
        w.write_object_header(0, 'tests.Drawing', 1),
        w.write_null(),
        w.write_reference(1, 3),
    )),
    ('reference outside of the declared base', lambda w: (
        w.write_type_def(0, 'tests.Drawing', 1),
        w.write_object_header(0, 'tests.Drawing', 1),
        w.write_null(),
        w.write_reference(0, 0),
    )),
    ('object used with two types', lambda w: (
        w.write_type_def(0, 'tests.Drawing', 1),
        w.write_type_def(1, 'tests.Circle', 1),
        w.write_type_def(2, 'tests.Square', 2),
        w.write_object_header(0, 'tests.Drawing', 1),
        w.write_null(),
        w.write_reference(1, 1),
        w.write_sequence_start(0),
        w.write_sequence_end(),
        w.write_object_header(1, 'tests.Square', 2),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_end(),
    )),
    ('fixed-length array of the wrong length', lambda w: (
        w.write_type_def(0, 'tests.Record', 1),
        w.write_object_header(0, 'tests.Record', 1),
        w.write_primitive(PrimitiveTag.BOOL, True),
        w.write_primitive(PrimitiveTag.INT, 1),
        w.write_primitive(PrimitiveTag.FLOAT, 1.0),
        w.write_null(),
        w.write_null(),
        w.write_null(),
        w.write_sequence_start(0),
        w.write_sequence_end(),
        w.write_sequence_start(3),
    )),
])
def test_malformed_stream(registry, settings, name, write):
    data = _build_stream(write)
    with pytest.raises(FormatError) as e:
        decode_from_bytes(data, registry=registry, settings=settings)
    assert not isinstance(e.value, TruncatedStreamError), name


def test_max_objects(registry, settings):
    node = Node()
    node.array = [Node(), Node()]
    data = encode_to_bytes(node, registry=registry, settings=settings)
    with pytest.raises(LimitExceededError):
        decode_from_bytes(data, registry=registry, settings=settings.model_copy(update=dict(MAX_OBJECTS=2)))


def test_max_objects_counts_placeholders(registry, settings):
    def write(writer):
        writer.write_type_def(0, 'tests.Node', 1)
        _write_node(writer, 0, array=[(1, 0), (2, 0), (3, 0)])

    data = _build_stream(write)
    limited = settings.model_copy(update=dict(MAX_OBJECTS=3))
    with pytest.raises(LimitExceededError):
        decode_from_bytes(data, registry=registry, settings=limited)


def test_max_sequence_length_is_checked_before_reading_elements(registry, settings):
    def write(writer):
        writer.write_type_def(0, 'tests.Node', 1)
        writer.write_object_header(0, 'tests.Node', 1)
        writer.write_primitive(PrimitiveTag.FLOAT, 0.0)
        writer.write_primitive(PrimitiveTag.BOOL, False)
        writer.write_null()
        writer.write_null()
        writer.write_sequence_start(2**32 - 1)

    with pytest.raises(LimitExceededError):
        decode_from_bytes(_build_stream(write), registry=registry, settings=settings)


def test_max_bytes_length(registry, settings):
    record = Record()
    record.blob = b'x' * 100
    data = encode_to_bytes(record, registry=registry, settings=settings)
    with pytest.raises(LimitExceededError):
        decode_from_bytes(data, registry=registry, settings=settings.model_copy(update=dict(MAX_BYTES_LENGTH=99)))


def test_max_stream_bytes(registry, settings):
    data = _sample_stream(registry, settings)
    exact = settings.model_copy(update=dict(MAX_STREAM_BYTES=len(data)))
    decode_from_bytes(data, registry=registry, settings=exact)
    too_small = settings.model_copy(update=dict(MAX_STREAM_BYTES=len(data) - 1))
    with pytest.raises(LimitExceededError):
        decode_from_bytes(data, registry=registry, settings=too_small)


def test_source_failure(registry, settings):
    class FailingSource:
        def __init__(self, data: bytes) -> None:
            self._inner = io.BytesIO(data)

        def read(self, n: int) -> bytes:
            if self._inner.tell() >= 10:
                raise OSError('connection reset')
            return self._inner.read(n)

    result = decode(FailingSource(_sample_stream(registry, settings)), registry=registry, settings=settings)
    error = result.unwrap_err()
    assert isinstance(error, StreamIOError)
    assert isinstance(error.__cause__, OSError)


def test_source_returning_short_reads(registry, settings):
    class TrickleSource:
        def __init__(self, data: bytes) -> None:
            self._inner = io.BytesIO(data)

        def read(self, n: int) -> bytes:
            return self._inner.read(min(n, 1))

    drawing = decode(TrickleSource(_sample_stream(registry, settings)), registry=registry, settings=settings).unwrap()
    assert drawing.shapes[1] is drawing.main


def test_factory_is_used_and_init_is_not_rerun(registry, settings):
    created = []

    class Counter:
        def __init__(self) -> None:
            created.append(self)
            self.value = 0.0

    registry.register('tests.Counter', 1, [('value', FLOAT)], cls=Counter, factory=lambda: Counter())
    counter = Counter()
    counter.value = 7.0
    data = encode_to_bytes(counter, registry=registry, settings=settings)

    created.clear()
    counter2 = decode_from_bytes(data, registry=registry, settings=settings)
    assert created == [counter2]
    assert counter2.value == 7.0


def test_class_that_cannot_be_allocated(registry, settings):
    class NeedsLabel:
        def __init__(self, label):
            self.label = label

    registry.register('tests.NeedsLabel', 1, [('label', TEXT)], cls=NeedsLabel)
    data = encode_to_bytes(NeedsLabel('x'), registry=registry, settings=settings)

    result = decode(io.BytesIO(data), registry=registry, settings=settings)
    assert result.is_err()
    error = result.unwrap_err()
    assert isinstance(error, UnsupportedTypeError)
    assert 'tests.NeedsLabel' in str(error)
    assert isinstance(error.__cause__, TypeError)


def test_factory_returning_another_class(registry, settings):
    class Label:
        def __init__(self) -> None:
            self.text = ''

    registry.register('tests.Label', 1, [('text', TEXT)], cls=Label, factory=Node)
    data = encode_to_bytes(Label(), registry=registry, settings=settings)

    result = decode(io.BytesIO(data), registry=registry, settings=settings)
    assert isinstance(result.unwrap_err(), UnsupportedTypeError)
    with pytest.raises(UnsupportedTypeError, match='factory returned Node'):
        decode_from_bytes(data, registry=registry, settings=settings)
