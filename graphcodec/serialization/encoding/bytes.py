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

r"""
This modules implements encoding of byte sequence by prefixing it with the length of the sequence encoded as a LEB128
unsigned integer.

>>> se = Serializer.build_bytes_serializer()
>>> encode_bytes(se, b'test')  # will prepend b'\x04' before writing b'test'
>>> bytes(se.finalize()).hex()
'0474657374'

>>> se = Serializer.build_bytes_serializer()
>>> raw_data = b'test' * 32
>>> encode_bytes(se, raw_data)  # prepends b'\x80\x01' before raw_data
>>> encoded_data = bytes(se.finalize())
>>> len(encoded_data)
130

>>> de = Deserializer.build_bytes_deserializer(encoded_data)
>>> decode_bytes(de) == raw_data
True
>>> de.finalize()

>>> de = Deserializer.build_bytes_deserializer(encoded_data)
>>> try:
...     decode_bytes(de, max_length=100)
... except TooLongError as e:
...     print(*e.args)
length 128 exceeds the maximum of 100
"""

from graphcodec.serialization import Deserializer, Serializer, TooLongError

from .leb128 import decode_leb128, encode_leb128


def encode_bytes(serializer: Serializer, data: bytes) -> None:
    """ Encodes a byte-sequence adding a length prefix.

    This modules's docstring has more details and examples.
    """
    assert isinstance(data, bytes)
    encode_leb128(serializer, len(data), signed=False)
    serializer.write_bytes(data)


def decode_bytes(deserializer: Deserializer, *, max_length: int | None = None) -> bytes:
    """ Decodes a byte-sequence with a length prefix.

    The length prefix is checked against `max_length` before anything else is read, so a corrupt prefix can't make
    the deserializer try to pull an absurd amount of data.
    """
    size = decode_leb128(deserializer, signed=False)
    if max_length is not None and size > max_length:
        raise TooLongError(f'length {size} exceeds the maximum of {max_length}')
    return bytes(deserializer.read_bytes(size))
