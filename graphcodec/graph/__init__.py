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
Identity-preserving encoding of object graphs.

Registered objects are encoded with every object that is reachable from them through persistent fields. Shared
objects are written once and cycles are allowed, decoding rebuilds the exact same shape. See `graphcodec.graph.wire`
for the format.
"""

from graphcodec.graph.decoder import GraphDecoder, decode, decode_from_bytes
from graphcodec.graph.descriptor import FieldSpec, TypeDescriptor
from graphcodec.graph.encoder import GraphEncoder, encode, encode_to_bytes
from graphcodec.graph.kinds import (
    BOOL,
    BYTES,
    FLOAT,
    INT,
    REFERENCE,
    TEXT,
    TIMESTAMP,
    ArrayKind,
    FieldKind,
    PrimitiveKind,
    ReferenceKind,
    SequenceKind,
)
from graphcodec.graph.registry import TypeRegistry, get_global_registry, serializable

__all__ = [
    'GraphDecoder',
    'decode',
    'decode_from_bytes',
    'FieldSpec',
    'TypeDescriptor',
    'GraphEncoder',
    'encode',
    'encode_to_bytes',
    'BOOL',
    'BYTES',
    'FLOAT',
    'INT',
    'REFERENCE',
    'TEXT',
    'TIMESTAMP',
    'ArrayKind',
    'FieldKind',
    'PrimitiveKind',
    'ReferenceKind',
    'SequenceKind',
    'TypeRegistry',
    'get_global_registry',
    'serializable',
]
