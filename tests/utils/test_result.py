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

from graphcodec.utils.result import Err, Ok, UnwrapError, as_result, is_err, is_ok


@as_result(KeyError)
def _get(mapping: dict[str, int], key: str) -> int:
    return mapping[key]


def test_as_result_catches_only_the_given_exceptions():
    assert _get({'a': 1}, 'a') == Ok(1)

    result = _get({}, 'b')
    assert is_err(result)
    assert isinstance(result.unwrap_err(), KeyError)
    assert result.traceback is not None
    assert 'KeyError' in result.traceback

    with pytest.raises(TypeError):
        _get(None, 'a')  # type: ignore[arg-type]


def test_as_result_requires_exception_types():
    with pytest.raises(TypeError):
        as_result()
    with pytest.raises(TypeError):
        as_result(int)  # type: ignore[type-var]


def test_ok():
    ok = Ok(3)
    assert is_ok(ok)
    assert ok.ok() == 3
    assert ok.err() is None
    assert ok.unwrap() == 3
    assert ok.unwrap_or(0) == 3
    assert ok.unwrap_or_raise() == 3
    assert ok.map(lambda x: x * 2) == Ok(6)
    assert ok.map_err(str) is ok
    with pytest.raises(UnwrapError):
        ok.unwrap_err()


def test_err():
    error = ValueError('boom')
    err = Err(error)
    assert not err.is_ok()
    assert err.ok() is None
    assert err.err() is error
    assert err.unwrap_or(0) == 0
    assert err.map(lambda x: x * 2) is err
    assert err.map_err(lambda e: str(e)) == Err('boom')
    with pytest.raises(UnwrapError) as e:
        err.unwrap()
    assert e.value.result is err
    with pytest.raises(ValueError, match='boom'):
        err.unwrap_or_raise()
