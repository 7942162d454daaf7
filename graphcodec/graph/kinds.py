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
Field kinds describe what a persistent field holds and so how its value is written.

    PrimitiveKind  -- a bool, int, float, str, bytes or timezone-aware datetime, written inline
    ReferenceKind  -- another registered object, written as a reference to its record
    ArrayKind      -- a list of values of a single element kind, optionally of a fixed length
    SequenceKind   -- a growable collection of values of a single element kind, rebuilt with `builder`

Kinds nest: `ArrayKind(SequenceKind(REFERENCE))` is a list of sequences of references.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable

from graphcodec.graph.wire import PrimitiveTag

_NULLABLE_PRIMITIVES = frozenset({PrimitiveTag.TEXT, PrimitiveTag.BYTES, PrimitiveTag.TIMESTAMP})


class FieldKind(ABC):
    __slots__ = ()

    @property
    @abstractmethod
    def nullable(self) -> bool:
        """Whether `None` is an acceptable value, written as NULL."""
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class PrimitiveKind(FieldKind):
    tag: PrimitiveTag

    @property
    def nullable(self) -> bool:
        return self.tag in _NULLABLE_PRIMITIVES

    def normalize(self, value: Any) -> Any:
        """Check that `value` fits this kind and return it in the exact type that will be written.

        Raises TypeError when it doesn't fit. Ints are accepted for FLOAT and buffers for BYTES, bools are never
        accepted as numbers.
        """
        match self.tag:
            case PrimitiveTag.BOOL:
                if isinstance(value, bool):
                    return value
            case PrimitiveTag.INT:
                if isinstance(value, int) and not isinstance(value, bool):
                    return value
            case PrimitiveTag.FLOAT:
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    return float(value)
            case PrimitiveTag.TEXT:
                if isinstance(value, str):
                    return value
            case PrimitiveTag.BYTES:
                if isinstance(value, (bytes, bytearray, memoryview)):
                    return bytes(value)
            case PrimitiveTag.TIMESTAMP:
                if isinstance(value, datetime):
                    return value
        raise TypeError(f'expected {self.tag.name}, got {type(value).__name__}')

    def __repr__(self) -> str:
        return self.tag.name


BOOL = PrimitiveKind(PrimitiveTag.BOOL)
INT = PrimitiveKind(PrimitiveTag.INT)
FLOAT = PrimitiveKind(PrimitiveTag.FLOAT)
TEXT = PrimitiveKind(PrimitiveTag.TEXT)
BYTES = PrimitiveKind(PrimitiveTag.BYTES)
TIMESTAMP = PrimitiveKind(PrimitiveTag.TIMESTAMP)


@dataclass(frozen=True, slots=True)
class ReferenceKind(FieldKind):
    """A reference to another registered object.

    `base` only restricts which classes are accepted, the class actually written is always the runtime class of the
    value, so a field declared with an abstract base decodes to the concrete subclass that was encoded.
    """
    base: type | None = None

    @property
    def nullable(self) -> bool:
        return True

    def accepts(self, cls: type) -> bool:
        return self.base is None or issubclass(cls, self.base)

    def __repr__(self) -> str:
        if self.base is None:
            return 'REFERENCE'
        return f'REFERENCE[{self.base.__qualname__}]'


REFERENCE = ReferenceKind()


@dataclass(frozen=True, slots=True)
class ArrayKind(FieldKind):
    element: FieldKind
    length: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.element, FieldKind):
            raise TypeError(f'element must be a FieldKind, got {self.element!r}')
        if self.length is not None and self.length < 0:
            raise ValueError('length cannot be negative')

    @property
    def nullable(self) -> bool:
        return True

    def build(self, elements: list[Any]) -> list[Any]:
        return elements


@dataclass(frozen=True, slots=True)
class SequenceKind(FieldKind):
    element: FieldKind
    builder: Callable[[Iterable[Any]], Any] = field(default=list, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.element, FieldKind):
            raise TypeError(f'element must be a FieldKind, got {self.element!r}')

    @property
    def nullable(self) -> bool:
        return True

    def build(self, elements: list[Any]) -> Any:
        return self.builder(elements)
