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

from typing import Any, Optional

from graphcodec.exception import FormatError
from graphcodec.graph.descriptor import TypeDescriptor


class EncodeReferenceTable:
    """ Assigns object ids by identity, in first-seen order starting at 0.

    Objects are keyed by `id()`, so two equal but distinct objects get distinct ids. The table holds a reference to
    every object it has seen, which keeps their `id()` from being reused by a new object during the encode call.
    """

    __slots__ = ('_ids', '_objects')

    def __init__(self) -> None:
        self._ids: dict[int, int] = {}
        self._objects: list[Any] = []

    def reserve(self, obj: Any) -> tuple[int, bool]:
        """Return the id of `obj` and whether it was assigned just now."""
        key = id(obj)
        object_id = self._ids.get(key)
        if object_id is not None:
            return object_id, False
        object_id = len(self._objects)
        self._ids[key] = object_id
        self._objects.append(obj)
        return object_id, True

    def get_id(self, obj: Any) -> Optional[int]:
        return self._ids.get(id(obj))

    def __len__(self) -> int:
        return len(self._objects)


class DecodeReferenceTable:
    """ Maps object ids to instances while a stream is decoded.

    An instance is allocated and registered the first time its id shows up, either as a reference or as its own
    record, and before any of its fields are populated. Later references to the same id get the same instance, even
    when it is still a placeholder. An id is "defined" once its record was read.
    """

    __slots__ = ('_objects', '_descriptors', '_defined')

    def __init__(self) -> None:
        self._objects: dict[int, Any] = {}
        self._descriptors: dict[int, TypeDescriptor] = {}
        self._defined: set[int] = set()

    def resolve(self, object_id: int, descriptor: TypeDescriptor) -> Any:
        """Get the instance for `object_id`, allocating a placeholder of the descriptor's class if it's new."""
        known = self._descriptors.get(object_id)
        if known is None:
            instance = descriptor.allocate()
            self._objects[object_id] = instance
            self._descriptors[object_id] = descriptor
            return instance
        if known.type_id != descriptor.type_id:
            raise FormatError(f'object {object_id} is used both as {known.type_id!r} and {descriptor.type_id!r}')
        return self._objects[object_id]

    def define(self, object_id: int, descriptor: TypeDescriptor) -> Any:
        """Like `resolve` but for the object's own record, which can only appear once."""
        if object_id in self._defined:
            raise FormatError(f'object {object_id} is defined more than once')
        instance = self.resolve(object_id, descriptor)
        self._defined.add(object_id)
        return instance

    def get(self, object_id: int) -> Optional[Any]:
        return self._objects.get(object_id)

    def is_defined(self, object_id: int) -> bool:
        return object_id in self._defined

    def undefined_ids(self) -> set[int]:
        """Ids that were referenced but never got a record."""
        return self._objects.keys() - self._defined

    def __len__(self) -> int:
        return len(self._objects)
