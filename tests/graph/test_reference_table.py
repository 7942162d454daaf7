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

import pytest

from graphcodec.exception import FormatError
from graphcodec.graph.reference_table import DecodeReferenceTable, EncodeReferenceTable
from tests.graph.sample_types import Circle, Node, Square


def test_encode_ids_are_by_identity():
    table = EncodeReferenceTable()
    a, b = Circle(1.0), Circle(1.0)

    assert table.reserve(a) == (0, True)
    assert table.reserve(b) == (1, True)
    assert table.reserve(a) == (0, False)
    assert table.get_id(b) == 1
    assert table.get_id(Circle()) is None
    assert len(table) == 2


def test_encode_table_keeps_objects_alive():
    table = EncodeReferenceTable()
    for _ in range(100):
        # without a strong reference the same id() could be handed to the next temporary
        _, is_new = table.reserve(Circle())
        assert is_new
    assert len(table) == 100


def test_decode_placeholder_is_reused(registry):
    table = DecodeReferenceTable()
    descriptor = registry.get('tests.Node')

    placeholder = table.resolve(4, descriptor)
    assert type(placeholder) is Node
    assert table.resolve(4, descriptor) is placeholder
    assert table.undefined_ids() == {4}
    assert not table.is_defined(4)

    assert table.define(4, descriptor) is placeholder
    assert table.is_defined(4)
    assert table.undefined_ids() == set()
    assert table.get(4) is placeholder
    assert table.get(5) is None
    assert len(table) == 1


def test_decode_define_twice(registry):
    table = DecodeReferenceTable()
    table.define(0, registry.get('tests.Circle'))
    with pytest.raises(FormatError):
        table.define(0, registry.get('tests.Circle'))


def test_decode_conflicting_types(registry):
    table = DecodeReferenceTable()
    table.resolve(1, registry.get('tests.Circle'))
    with pytest.raises(FormatError):
        table.define(1, registry.get('tests.Square'))
    assert type(table.get(1)) is not Square
