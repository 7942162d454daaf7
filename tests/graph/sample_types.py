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

"""Classes used across the graph tests, registered on a fresh registry by `build_registry`."""

from typing import Any

from graphcodec.graph import (
    BOOL,
    BYTES,
    FLOAT,
    INT,
    REFERENCE,
    TEXT,
    TIMESTAMP,
    ArrayKind,
    ReferenceKind,
    SequenceKind,
    TypeRegistry,
)


class Node:
    def __init__(self) -> None:
        self.value: float = 0.0
        self.mark: bool = False
        self.name: str | None = None
        self.date: Any = None
        self.array: list[Any] = []
        self.items: list[Any] = []
        self.parent: Any = None
        # transient
        self.secret: str = ''
        self.output: Any = None


NODE_FIELDS = [
    ('value', FLOAT),
    ('mark', BOOL),
    ('name', TEXT),
    ('date', TIMESTAMP),
    ('array', ArrayKind(REFERENCE)),
    ('items', SequenceKind(REFERENCE)),
    ('parent', REFERENCE),
]


class Shape:
    pass


class Circle(Shape):
    def __init__(self, radius: float = 0.0) -> None:
        self.radius = radius


class Square(Shape):
    def __init__(self, side: float = 0.0) -> None:
        self.side = side


class Drawing:
    def __init__(self) -> None:
        self.title: str | None = None
        self.main: Shape | None = None
        self.shapes: list[Shape] = []


class Record:
    """Holds one field of every primitive kind, plus nested and custom-built sequences."""

    def __init__(self) -> None:
        self.flag = False
        self.count = 0
        self.ratio = 0.0
        self.label: str | None = None
        self.blob: bytes | None = None
        self.when: Any = None
        self.tags: tuple[str, ...] = ()
        self.matrix: list[list[int]] = [[0, 0], [0, 0]]


RECORD_FIELDS = [
    ('flag', BOOL),
    ('count', INT),
    ('ratio', FLOAT),
    ('label', TEXT),
    ('blob', BYTES),
    ('when', TIMESTAMP),
    ('tags', SequenceKind(TEXT, builder=tuple)),
    ('matrix', ArrayKind(ArrayKind(INT, length=2), length=2)),
]


def build_registry() -> TypeRegistry:
    registry = TypeRegistry()
    registry.register('tests.Node', 1, NODE_FIELDS, cls=Node, transient=['secret', 'output'])
    registry.register('tests.Circle', 1, [('radius', FLOAT)], cls=Circle)
    registry.register('tests.Square', 2, [('side', FLOAT)], cls=Square)
    registry.register('tests.Drawing', 1, [
        ('title', TEXT),
        ('main', ReferenceKind(Shape)),
        ('shapes', ArrayKind(ReferenceKind(Shape))),
    ], cls=Drawing)
    registry.register('tests.Record', 1, RECORD_FIELDS, cls=Record)
    return registry
