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

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from graphcodec.exception import UnsupportedTypeError
from graphcodec.graph.kinds import FieldKind
from graphcodec.graph.wire import U32_MAX


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    kind: FieldKind


FieldDeclaration = FieldSpec | tuple[str, FieldKind]


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """ The schema of one serializable class: which fields are persistent, in which order, and under which version.

    Descriptors are immutable, registering a new version means registering a new descriptor. The order of `fields` is
    the order the values are written in, so it is part of the format for a given version.

    `factory` allocates an empty instance (by default `cls()` is called with no arguments), fields that are not
    persistent are left with whatever value the factory gives them.
    """

    type_id: str
    version: int
    fields: tuple[FieldSpec, ...]
    cls: type
    factory: Callable[[], Any]
    transient: frozenset[str]

    @classmethod
    def build(
        cls,
        type_id: str,
        version: int,
        fields: Iterable[FieldDeclaration],
        *,
        target: type,
        factory: Callable[[], Any] | None = None,
        transient: Iterable[str] = (),
    ) -> TypeDescriptor:
        """Validate the declaration and build a descriptor, raises ValueError or TypeError for bad declarations."""
        if not isinstance(type_id, str) or not type_id:
            raise ValueError('type_id must be a non-empty string')
        if isinstance(version, bool) or not isinstance(version, int) or not 0 <= version <= U32_MAX:
            raise ValueError(f'version must be an int in [0, {U32_MAX}], got {version!r}')
        if not isinstance(target, type):
            raise TypeError(f'cls must be a class, got {target!r}')

        field_specs = tuple(_as_field_spec(declaration) for declaration in fields)
        transient_names = frozenset(transient)

        seen: set[str] = set()
        for spec in field_specs:
            if spec.name in seen:
                raise ValueError(f'{type_id}: field {spec.name!r} declared more than once')
            seen.add(spec.name)

        overlap = seen & transient_names
        if overlap:
            raise ValueError(f'{type_id}: fields marked transient cannot be persistent: {sorted(overlap)}')

        return cls(
            type_id=type_id,
            version=version,
            fields=field_specs,
            cls=target,
            factory=factory if factory is not None else target,
            transient=transient_names,
        )

    def allocate(self) -> Any:
        """Create an empty instance to be populated later, raises UnsupportedTypeError if the factory can't."""
        try:
            instance = self.factory()
        except TypeError as e:
            raise UnsupportedTypeError(f'{self.type_id}: cannot allocate an instance: {e}') from e
        if type(instance) is not self.cls:
            raise UnsupportedTypeError(f'{self.type_id}: factory returned {type(instance).__qualname__}, '
                                       f'expected {self.cls.__qualname__}')
        return instance

    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)


def _as_field_spec(declaration: FieldDeclaration) -> FieldSpec:
    if isinstance(declaration, FieldSpec):
        spec = declaration
    else:
        name, kind = declaration
        spec = FieldSpec(name, kind)
    if not isinstance(spec.name, str) or not spec.name.isidentifier():
        raise ValueError(f'invalid field name {spec.name!r}')
    if not isinstance(spec.kind, FieldKind):
        raise TypeError(f'field {spec.name!r}: kind must be a FieldKind, got {spec.kind!r}')
    return spec
