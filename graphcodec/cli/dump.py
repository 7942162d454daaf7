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

import importlib
import sys
from argparse import ArgumentParser, Namespace
from datetime import datetime
from typing import Any, TextIO

from structlog import get_logger

logger = get_logger()


def create_parser() -> ArgumentParser:
    from graphcodec.cli.util import create_parser
    parser = create_parser()
    parser.add_argument('file', help='Encoded object graph to read, "-" for stdin')
    parser.add_argument('--import', dest='imports', action='append', default=[], metavar='MODULE',
                        help='Import a module that registers types, so fields can be shown by name')
    return parser


class _Token(str):
    """Literal output text, told apart from text values that are rendered with repr."""


def format_value(value: Any) -> str:
    """ Render a value from `iter_records` in a compact form.

    >>> from graphcodec.graph.inspector import Reference
    >>> format_value((Reference(3, 0), None, 1.5))
    '[@3, null, 1.5]'
    >>> format_value(('a', (), ((b'\\x00\\xff',),)))
    "['a', [], [[bytes:00ff]]]"
    """
    from graphcodec.graph.inspector import Reference
    parts: list[str] = []
    pending: list[Any] = [value]
    while pending:
        item = pending.pop()
        match item:
            case _Token():
                parts.append(item)
            case None:
                parts.append('null')
            case Reference(object_id=object_id):
                parts.append(f'@{object_id}')
            case tuple():
                pending.append(_Token(']'))
                for i in reversed(range(len(item))):
                    pending.append(item[i])
                    if i:
                        pending.append(_Token(', '))
                pending.append(_Token('['))
            case bytes():
                parts.append(f'bytes:{item.hex()}')
            case datetime():
                parts.append(item.isoformat())
            case _:
                parts.append(repr(item))
    return ''.join(parts)


def execute(args: Namespace, out: TextIO) -> int:
    from graphcodec.exception import DecodeError
    from graphcodec.graph.inspector import ObjectRecord, TypeDefRecord, iter_records
    from graphcodec.graph.registry import get_global_registry
    from graphcodec.serialization import Deserializer

    log = logger.new(file=args.file)

    for module_name in args.imports:
        importlib.import_module(module_name)
    registry = get_global_registry()

    def field_labels(record: ObjectRecord) -> list[str]:
        descriptor = registry.lookup(record.type_id)
        if descriptor is None or descriptor.version != record.version:
            return [f'[{i}]' for i in range(len(record.field_values))]
        return list(descriptor.field_names())

    source = sys.stdin.buffer if args.file == '-' else open(args.file, 'rb')
    count = 0
    try:
        for record in iter_records(Deserializer.build_stream_deserializer(source)):
            count += 1
            match record:
                case TypeDefRecord():
                    print(f'TYPE_DEF #{record.type_index} {record.type_id} v{record.version}', file=out)
                case ObjectRecord():
                    print(f'OBJECT @{record.object_id} {record.type_id} v{record.version}', file=out)
                    for label, value in zip(field_labels(record), record.field_values):
                        print(f'    {label} = {format_value(value)}', file=out)
    except DecodeError as e:
        log.error('invalid stream', records=count, error=str(e))
        return 1
    finally:
        if source is not sys.stdin.buffer:
            source.close()

    log.debug('stream dumped', records=count)
    return 0


def main() -> int:
    parser = create_parser()
    args = parser.parse_args()
    return execute(args, sys.stdout)
