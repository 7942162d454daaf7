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
This module implements encoding of timezone-aware datetimes as the signed number of microseconds since the Unix epoch,
using signed LEB128.

The timezone itself is not kept: values are decoded as UTC datetimes representing the same instant.

>>> from datetime import datetime, timedelta, timezone
>>> se = Serializer.build_bytes_serializer()
>>> encode_timestamp(se, datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc))  # writes c0843d
>>> bytes(se.finalize()).hex()
'c0843d'

>>> de = Deserializer.build_bytes_deserializer(bytes.fromhex('c0843d'))
>>> decode_timestamp(de)
datetime.datetime(1970, 1, 1, 0, 0, 1, tzinfo=datetime.timezone.utc)

>>> se = Serializer.build_bytes_serializer()
>>> try:
...     encode_timestamp(se, datetime(2020, 1, 1))
... except ValueError as e:
...     print(*e.args)
naive datetimes are not supported, set a tzinfo
"""

from datetime import datetime, timedelta, timezone

from graphcodec.serialization import Deserializer, Serializer

from .leb128 import decode_leb128, encode_leb128

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def encode_timestamp(serializer: Serializer, value: datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError('naive datetimes are not supported, set a tzinfo')
    encode_leb128(serializer, (value - _EPOCH) // _MICROSECOND, signed=True)


def decode_timestamp(deserializer: Deserializer) -> datetime:
    micros = decode_leb128(deserializer, signed=True)
    try:
        return _EPOCH + micros * _MICROSECOND
    except OverflowError as e:
        raise ValueError('timestamp out of range') from e
