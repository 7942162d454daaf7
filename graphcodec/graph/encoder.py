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

from collections import deque
from collections.abc import Collection
from typing import Any, Optional

from structlog import get_logger

from graphcodec.conf.get_settings import get_global_settings
from graphcodec.conf.settings import CodecSettings
from graphcodec.exception import EncodeError, InvalidFieldValueError, LimitExceededError, UnsupportedTypeError
from graphcodec.graph.descriptor import TypeDescriptor
from graphcodec.graph.kinds import ArrayKind, FieldKind, PrimitiveKind, ReferenceKind, SequenceKind
from graphcodec.graph.reference_table import EncodeReferenceTable
from graphcodec.graph.registry import TypeRegistry, get_global_registry
from graphcodec.graph.wire import U32_MAX, RecordWriter, translate_encode_errors
from graphcodec.serialization import Serializer
from graphcodec.serialization.types import ByteSink
from graphcodec.utils.result import as_result

logger = get_logger()


class GraphEncoder:
    """ Walks the graph reachable from a root object and writes it as a stream of records.

    Objects get an id the first time they are reached and are queued, each queued object then has its record written
    in the order they were reached. A field that points to an object only needs that object's id, never its record, so
    an object that is reached again (shared, or part of a cycle) is written as a reference to the id it already has.

    Each record's values are first written to a scratch buffer: referencing an object of a new type assigns that type
    an index, and its TYPE_DEF has to be in the stream before the record that uses the index.

    An encoder is meant for a single call to `encode`.
    """

    def __init__(
        self,
        serializer: Serializer,
        *,
        registry: Optional[TypeRegistry] = None,
        settings: Optional[CodecSettings] = None,
    ) -> None:
        self.log = logger.new()
        self._writer = RecordWriter(serializer)
        self._registry = registry if registry is not None else get_global_registry()
        self._settings = settings if settings is not None else get_global_settings()
        self._references = EncodeReferenceTable()
        self._worklist: deque[tuple[int, Any, TypeDescriptor]] = deque()
        self._type_indexes: dict[str, int] = {}
        self._pending_type_defs: list[tuple[int, TypeDescriptor]] = []

    def encode(self, root: Any) -> None:
        if root is None:
            raise InvalidFieldValueError('the root of a graph cannot be None')
        self._writer.write_header()
        self._reserve(root, 'root')
        while self._worklist:
            object_id, obj, descriptor = self._worklist.popleft()
            self._write_object(object_id, obj, descriptor)
        self._writer.write_end()
        self.log.debug('graph encoded', objects=len(self._references), types=len(self._type_indexes))

    def _reserve(self, obj: Any, path: str) -> tuple[int, int]:
        """Get the object id and type index for `obj`, queueing it for writing if it wasn't seen before."""
        try:
            descriptor = self._registry.get_for_class(type(obj))
        except UnsupportedTypeError as e:
            raise UnsupportedTypeError(f'{path}: {e}') from e
        object_id, is_new = self._references.reserve(obj)
        if is_new:
            if len(self._references) > self._settings.MAX_OBJECTS:
                raise LimitExceededError(f'graph has more than MAX_OBJECTS={self._settings.MAX_OBJECTS} objects')
            self._worklist.append((object_id, obj, descriptor))
        return object_id, self._get_type_index(descriptor)

    def _get_type_index(self, descriptor: TypeDescriptor) -> int:
        type_index = self._type_indexes.get(descriptor.type_id)
        if type_index is None:
            type_index = len(self._type_indexes)
            self._type_indexes[descriptor.type_id] = type_index
            self._pending_type_defs.append((type_index, descriptor))
        return type_index

    def _write_object(self, object_id: int, obj: Any, descriptor: TypeDescriptor) -> None:
        scratch = Serializer.build_bytes_serializer()
        body = RecordWriter(scratch)
        for spec in descriptor.fields:
            path = f'{descriptor.type_id}#{object_id}.{spec.name}'
            try:
                value = getattr(obj, spec.name)
            except AttributeError as e:
                raise InvalidFieldValueError(f'{path}: attribute is not set') from e
            self._write_value(body, spec.kind, value, path)

        for type_index, type_descriptor in self._pending_type_defs:
            self._writer.write_type_def(type_index, type_descriptor.type_id, type_descriptor.version)
        self._pending_type_defs.clear()

        self._writer.write_object_header(object_id, descriptor.type_id, descriptor.version)
        self._writer.write_raw(scratch.finalize())

    def _write_value(self, writer: RecordWriter, kind: FieldKind, value: Any, path: str) -> None:
        if value is None:
            if not kind.nullable:
                raise InvalidFieldValueError(f'{path}: {kind!r} cannot be None')
            writer.write_null()
            return

        match kind:
            case PrimitiveKind():
                self._write_primitive(writer, kind, value, path)
            case ReferenceKind():
                if not kind.accepts(type(value)):
                    raise InvalidFieldValueError(f'{path}: {type(value).__qualname__} is not a {kind!r}')
                object_id, type_index = self._reserve(value, path)
                writer.write_reference(object_id, type_index)
            case ArrayKind() | SequenceKind():
                self._write_sequence(writer, kind, value, path)
            case _:
                raise NotImplementedError(f'unknown field kind {kind!r}')

    def _write_primitive(self, writer: RecordWriter, kind: PrimitiveKind, value: Any, path: str) -> None:
        try:
            normalized = kind.normalize(value)
        except TypeError as e:
            raise InvalidFieldValueError(f'{path}: {e}') from e
        if isinstance(normalized, (str, bytes)):
            length = len(normalized.encode('utf-8')) if isinstance(normalized, str) else len(normalized)
            if length > self._settings.MAX_BYTES_LENGTH:
                raise LimitExceededError(f'{path}: {length} bytes exceeds MAX_BYTES_LENGTH')
        try:
            writer.write_primitive(kind.tag, normalized)
        except ValueError as e:
            # naive datetimes
            raise InvalidFieldValueError(f'{path}: {e}') from e

    def _write_sequence(self, writer: RecordWriter, kind: ArrayKind | SequenceKind, value: Any, path: str) -> None:
        if isinstance(value, (str, bytes, bytearray, memoryview)) or not isinstance(value, Collection):
            raise InvalidFieldValueError(f'{path}: expected a collection, got {type(value).__name__}')
        count = len(value)
        if isinstance(kind, ArrayKind) and kind.length is not None and count != kind.length:
            raise InvalidFieldValueError(f'{path}: expected {kind.length} elements, got {count}')
        if count > self._settings.MAX_SEQUENCE_LENGTH or count > U32_MAX:
            raise LimitExceededError(f'{path}: {count} elements exceeds MAX_SEQUENCE_LENGTH')
        writer.write_sequence_start(count)
        for i, element in enumerate(value):
            self._write_value(writer, kind.element, element, f'{path}[{i}]')
        writer.write_sequence_end()


@as_result(EncodeError)
def encode(
    root: Any,
    sink: Serializer | ByteSink,
    *,
    registry: Optional[TypeRegistry] = None,
    settings: Optional[CodecSettings] = None,
) -> None:
    """ Encode the graph reachable from `root` into `sink`.

    The sink is either a Serializer or anything with a `write(bytes)` method (like a file opened in binary mode), which
    is flushed once the stream is complete. Returns `Ok(None)` or `Err` with an EncodeError, in which case whatever
    was written to the sink is an incomplete stream that must be discarded.
    """
    settings = settings if settings is not None else get_global_settings()
    serializer = sink if isinstance(sink, Serializer) else Serializer.build_stream_serializer(sink)
    with translate_encode_errors():
        encoder = GraphEncoder(
            serializer.with_optional_max_bytes(settings.MAX_STREAM_BYTES),
            registry=registry,
            settings=settings,
        )
        encoder.encode(root)
        serializer.flush()


def encode_to_bytes(
    root: Any,
    *,
    registry: Optional[TypeRegistry] = None,
    settings: Optional[CodecSettings] = None,
) -> bytes:
    """Encode the graph reachable from `root` and return the stream, raises EncodeError on failure."""
    serializer = Serializer.build_bytes_serializer()
    encode(root, serializer, registry=registry, settings=settings).unwrap_or_raise()
    return bytes(serializer.finalize())
