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

from graphcodec.exception import (
    DecodeError,
    EncodeError,
    FormatError,
    GraphCodecError,
    InvalidFieldValueError,
    LimitExceededError,
    RegistryFrozenError,
    StreamIOError,
    TruncatedStreamError,
    UnknownReferenceError,
    UnsupportedTypeError,
    VersionMismatchError,
)
from graphcodec.graph import (
    BOOL,
    BYTES,
    FLOAT,
    INT,
    REFERENCE,
    TEXT,
    TIMESTAMP,
    ArrayKind,
    FieldSpec,
    ReferenceKind,
    SequenceKind,
    TypeDescriptor,
    TypeRegistry,
    decode,
    decode_from_bytes,
    encode,
    encode_to_bytes,
    get_global_registry,
    serializable,
)
from graphcodec.version import __version__

__all__ = [
    'DecodeError',
    'EncodeError',
    'FormatError',
    'GraphCodecError',
    'InvalidFieldValueError',
    'LimitExceededError',
    'RegistryFrozenError',
    'StreamIOError',
    'TruncatedStreamError',
    'UnknownReferenceError',
    'UnsupportedTypeError',
    'VersionMismatchError',
    'BOOL',
    'BYTES',
    'FLOAT',
    'INT',
    'REFERENCE',
    'TEXT',
    'TIMESTAMP',
    'ArrayKind',
    'FieldSpec',
    'ReferenceKind',
    'SequenceKind',
    'TypeDescriptor',
    'TypeRegistry',
    'decode',
    'decode_from_bytes',
    'encode',
    'encode_to_bytes',
    'get_global_registry',
    'serializable',
    '__version__',
]
