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

from __future__ import annotations

from typing import Any, Optional

from structlog import get_logger

from graphcodec.conf.get_settings import get_global_settings
from graphcodec.conf.settings import CodecSettings
from graphcodec.exception import (
    DecodeError,
    FormatError,
    LimitExceededError,
    UnknownReferenceError,
    VersionMismatchError,
)
from graphcodec.graph.descriptor import TypeDescriptor
from graphcodec.graph.kinds import ArrayKind, FieldKind, PrimitiveKind, ReferenceKind, SequenceKind
from graphcodec.graph.reference_table import DecodeReferenceTable
from graphcodec.graph.registry import TypeRegistry, get_global_registry
from graphcodec.graph.wire import RecordReader, RecordTag, ValueTag, translate_decode_errors
from graphcodec.serialization import Deserializer
from graphcodec.serialization.types import Buffer, ByteSource
from graphcodec.utils.result import as_result

logger = get_logger()


class GraphDecoder:
    """ Rebuilds an object graph from a stream of records.

    Decoding happens in two phases. While the records are read, an instance is allocated the first time its id shows
    up (as a reference or as its own record) and every later reference gets that same instance, populated or not.
    Once the end marker is read every referenced id must have had its record, otherwise the stream is rejected.

    Instances are allocated with the descriptor's factory and populated with `setattr`, no `__init__` is re-run with
    the decoded values.
    """

    def __init__(
        self,
        deserializer: Deserializer,
        *,
        registry: Optional[TypeRegistry] = None,
        settings: Optional[CodecSettings] = None,
    ) -> None:
        self.log = logger.new()
        self._registry = registry if registry is not None else get_global_registry()
        self._settings = settings if settings is not None else get_global_settings()
        self._reader = RecordReader(
            deserializer,
            max_bytes_length=self._settings.MAX_BYTES_LENGTH,
            max_sequence_length=self._settings.MAX_SEQUENCE_LENGTH,
        )
        self._references = DecodeReferenceTable()
        self._type_defs: list[TypeDescriptor] = []

    def decode(self) -> Any:
        self._reader.read_header()
        while True:
            tag = self._reader.read_record_tag()
            match tag:
                case RecordTag.TYPE_DEF:
                    self._read_type_def()
                case RecordTag.OBJECT:
                    self._read_object()
                case RecordTag.END_OF_STREAM:
                    return self._finish()

    def _read_type_def(self) -> None:
        type_index, type_id, version = self._reader.read_type_def()
        if type_index != len(self._type_defs):
            raise FormatError(f'type index {type_index} out of order, expected {len(self._type_defs)}')
        self._type_defs.append(self._check_type(type_id, version))

    def _read_object(self) -> None:
        object_id, type_id, version = self._reader.read_object_header()
        descriptor = self._check_type(type_id, version)
        instance = self._references.define(object_id, descriptor)
        self._check_object_count()
        for spec in descriptor.fields:
            value = self._read_value(spec.kind, f'{type_id}#{object_id}.{spec.name}')
            setattr(instance, spec.name, value)

    def _finish(self) -> Any:
        undefined = self._references.undefined_ids()
        if undefined:
            raise UnknownReferenceError(undefined)
        if not self._references.is_defined(0):
            raise FormatError('stream has no root object')
        self.log.debug('graph decoded', objects=len(self._references), types=len(self._type_defs))
        return self._references.get(0)

    def _check_type(self, type_id: str, version: int) -> TypeDescriptor:
        descriptor = self._registry.get(type_id)
        if descriptor.version != version:
            raise VersionMismatchError(type_id, stream_version=version, local_version=descriptor.version)
        return descriptor

    def _check_object_count(self) -> None:
        if len(self._references) > self._settings.MAX_OBJECTS:
            raise LimitExceededError(f'stream has more than MAX_OBJECTS={self._settings.MAX_OBJECTS} objects')

    def _read_value(self, kind: FieldKind, path: str) -> Any:
        tag = self._reader.read_value_tag()
        if tag == ValueTag.NULL:
            if not kind.nullable:
                raise FormatError(f'{path}: {kind!r} cannot be null')
            return None

        match kind:
            case PrimitiveKind():
                if tag != ValueTag.PRIMITIVE:
                    raise FormatError(f'{path}: expected {kind!r}, got {tag.name}')
                primitive_tag, value = self._reader.read_primitive()
                if primitive_tag != kind.tag:
                    raise FormatError(f'{path}: expected {kind!r}, got {primitive_tag.name}')
                return value
            case ReferenceKind():
                if tag != ValueTag.REFERENCE:
                    raise FormatError(f'{path}: expected {kind!r}, got {tag.name}')
                return self._read_reference(kind, path)
            case ArrayKind() | SequenceKind():
                if tag != ValueTag.SEQUENCE_START:
                    raise FormatError(f'{path}: expected a sequence, got {tag.name}')
                return self._read_sequence(kind, path)
            case _:
                raise NotImplementedError(f'unknown field kind {kind!r}')

    def _read_reference(self, kind: ReferenceKind, path: str) -> Any:
        object_id, type_index = self._reader.read_reference()
        if type_index >= len(self._type_defs):
            raise FormatError(f'{path}: reference to undefined type index {type_index}')
        descriptor = self._type_defs[type_index]
        if not kind.accepts(descriptor.cls):
            raise FormatError(f'{path}: {descriptor.type_id!r} is not a {kind!r}')
        instance = self._references.resolve(object_id, descriptor)
        self._check_object_count()
        return instance

    def _read_sequence(self, kind: ArrayKind | SequenceKind, path: str) -> Any:
        count = self._reader.read_sequence_count()
        if isinstance(kind, ArrayKind) and kind.length is not None and count != kind.length:
            raise FormatError(f'{path}: expected {kind.length} elements, got {count}')
        elements = [self._read_value(kind.element, f'{path}[{i}]') for i in range(count)]
        self._reader.read_sequence_end()
        return kind.build(elements)


@as_result(DecodeError)
def decode(
    source: Deserializer | ByteSource,
    *,
    registry: Optional[TypeRegistry] = None,
    settings: Optional[CodecSettings] = None,
) -> Any:
    """ Decode one graph from `source` and return its root.

    The source is either a Deserializer or anything with a `read(n)` method (like a file opened in binary mode).
    Reading stops right after the end marker, so several streams can be decoded one after the other from the same
    source. Returns `Ok(root)` or `Err` with a DecodeError.
    """
    settings = settings if settings is not None else get_global_settings()
    deserializer = source if isinstance(source, Deserializer) else Deserializer.build_stream_deserializer(source)
    with translate_decode_errors():
        decoder = GraphDecoder(
            deserializer.with_optional_max_bytes(settings.MAX_STREAM_BYTES),
            registry=registry,
            settings=settings,
        )
        return decoder.decode()


def decode_from_bytes(
    data: Buffer,
    *,
    registry: Optional[TypeRegistry] = None,
    settings: Optional[CodecSettings] = None,
) -> Any:
    """Decode a graph from a complete stream, raises DecodeError on failure or if there are bytes after it."""
    deserializer = Deserializer.build_bytes_deserializer(data)
    root = decode(deserializer, registry=registry, settings=settings).unwrap_or_raise()
    try:
        deserializer.finalize()
    except ValueError as e:
        raise FormatError('unexpected bytes after the end of the stream') from e
    return root
