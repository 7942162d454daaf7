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

from pathlib import Path

import pytest

from graphcodec.utils.yaml import dict_from_extended_yaml, dict_from_yaml

FIXTURES = Path(__file__).parent / 'fixtures'


def test_dict_from_yaml_invalid_filepath():
    with pytest.raises(ValueError) as e:
        dict_from_yaml(filepath='fake_file.yml')

    assert str(e.value) == "'fake_file.yml' is not a file"


def test_dict_from_yaml_empty():
    assert dict_from_yaml(filepath=FIXTURES / 'empty.yml') == {}


def test_dict_from_yaml_invalid_contents():
    filepath = FIXTURES / 'number.yml'

    with pytest.raises(ValueError) as e:
        dict_from_yaml(filepath=filepath)

    assert str(e.value) == f"'{filepath}' cannot be parsed as a dictionary"


def test_dict_from_yaml_valid():
    assert dict_from_yaml(filepath=FIXTURES / 'valid.yml') == dict(a=1, b=dict(c=2, d=3))


def test_dict_from_extended_yaml_without_extends():
    assert dict_from_extended_yaml(filepath=FIXTURES / 'valid.yml') == dict(a=1, b=dict(c=2, d=3))


def test_dict_from_extended_yaml_invalid_extends():
    with pytest.raises(ValueError) as e:
        dict_from_extended_yaml(filepath=FIXTURES / 'invalid_extends.yml')

    assert "/fixtures/unknown_file.yml' is not a file" in str(e.value)


def test_dict_from_extended_yaml_self_extends():
    with pytest.raises(ValueError, match='recursive extensions'):
        dict_from_extended_yaml(filepath=FIXTURES / 'self_extends.yml')


def test_dict_from_extended_yaml_valid_extends():
    result = dict_from_extended_yaml(filepath=FIXTURES / 'valid_extends.yml')

    assert result == dict(a='aa', b=dict(c=2, d='dd', e='ee'))


def test_dict_from_extended_yaml_custom_root(tmp_path):
    filepath = tmp_path / 'extends_from_root.yml'
    filepath.write_text('extends: valid.yml\na: 5\n')

    result = dict_from_extended_yaml(filepath=filepath, custom_root=FIXTURES)

    assert result == dict(a=5, b=dict(c=2, d=3))
