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
The registry maps type ids and classes to their descriptors.

Types are registered explicitly, nothing is discovered by looking at classes. Registration is expected to happen once
at process start (module import time with the `serializable` decorator is fine), after that the registry is only read.
There is no locking: concurrent reads are safe, registrations must not run concurrently with anything else. Calling
`freeze()` at the end of the initialization makes any later registration fail loudly.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

from structlog import get_logger

from graphcodec.exception import RegistryFrozenError, UnsupportedTypeError
from graphcodec.graph.descriptor import FieldDeclaration, TypeDescriptor

logger = get_logger()

C = TypeVar('C', bound=type)


class TypeRegistry:
    def __init__(self) -> None:
        self.log = logger.new()
        self._by_type_id: dict[str, TypeDescriptor] = {}
        self._by_class: dict[type, TypeDescriptor] = {}
        self._frozen = False

    def register(
        self,
        type_id: str,
        version: int,
        fields: Iterable[FieldDeclaration],
        *,
        cls: type,
        factory: Callable[[], Any] | None = None,
        transient: Iterable[str] = (),
    ) -> TypeDescriptor:
        """ Register the descriptor of `cls` under `type_id` and return it.

        Registering a type id again replaces its descriptor (last write wins), which is how a new version is put in
        place. A class can only be registered under one type id at a time.
        """
        if self._frozen:
            raise RegistryFrozenError(f'cannot register {type_id!r}: registry is frozen')

        descriptor = TypeDescriptor.build(type_id, version, fields, target=cls, factory=factory, transient=transient)

        other = self._by_class.get(cls)
        if other is not None and other.type_id != type_id:
            raise ValueError(f'{cls.__qualname__} is already registered as {other.type_id!r}')

        previous = self._by_type_id.get(type_id)
        if previous is not None:
            self.log.warn('replacing type descriptor', type_id=type_id, old_version=previous.version,
                          new_version=version)
            del self._by_class[previous.cls]

        self._by_type_id[type_id] = descriptor
        self._by_class[cls] = descriptor
        self.log.debug('type registered', type_id=type_id, version=version, fields=descriptor.field_names())
        return descriptor

    def lookup(self, type_id: str) -> Optional[TypeDescriptor]:
        return self._by_type_id.get(type_id)

    def lookup_class(self, cls: type) -> Optional[TypeDescriptor]:
        """Find the descriptor of exactly `cls`, descriptors are not inherited by subclasses."""
        return self._by_class.get(cls)

    def get(self, type_id: str) -> TypeDescriptor:
        descriptor = self._by_type_id.get(type_id)
        if descriptor is None:
            raise UnsupportedTypeError(f'type {type_id!r} is not registered')
        return descriptor

    def get_for_class(self, cls: type) -> TypeDescriptor:
        descriptor = self._by_class.get(cls)
        if descriptor is None:
            raise UnsupportedTypeError(f'{cls.__module__}.{cls.__qualname__} is not registered')
        return descriptor

    def freeze(self) -> None:
        """Forbid further registrations."""
        self._frozen = True
        self.log.debug('registry frozen', types=len(self._by_type_id))

    def is_frozen(self) -> bool:
        return self._frozen

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._by_type_id

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(list(self._by_type_id.values()))

    def __len__(self) -> int:
        return len(self._by_type_id)


_registry_singleton: Optional[TypeRegistry] = None


def get_global_registry() -> TypeRegistry:
    """Returns the process-wide registry, used by encode/decode when no registry is given."""
    global _registry_singleton
    if _registry_singleton is None:
        _registry_singleton = TypeRegistry()
    return _registry_singleton


def serializable(
    type_id: str,
    version: int,
    fields: Iterable[FieldDeclaration],
    *,
    transient: Iterable[str] = (),
    factory: Callable[[], Any] | None = None,
    registry: TypeRegistry | None = None,
) -> Callable[[C], C]:
    """ Class decorator that registers the decorated class, on the global registry unless one is given.

        @serializable('shapes.Circle', 1, [('radius', FLOAT), ('tags', SequenceKind(TEXT))], transient=['cache'])
        class Circle:
            ...
    """
    def decorator(cls: C) -> C:
        target_registry = registry if registry is not None else get_global_registry()
        target_registry.register(type_id, version, fields, cls=cls, factory=factory, transient=transient)
        return cls

    return decorator
