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

from typing_extensions import override

from .serializer import Serializer
from .types import Buffer, ByteSink


class StreamSerializer(Serializer):
    """Implementation of Serializer that writes straight through to a byte sink (a file, a socket wrapper, ...).

    Writes are forwarded as they come, so a failure in the sink is raised at the write that caused it. Sinks that may
    accept only part of a write (raw unbuffered files) are written to until the whole chunk is accepted.
    """

    def __init__(self, sink: ByteSink) -> None:
        self._sink = sink

    @override
    def flush(self) -> None:
        flush = getattr(self._sink, 'flush', None)
        if flush is not None:
            flush()

    @override
    def write_byte(self, data: int) -> None:
        self.write_bytes(int.to_bytes(data, length=1, byteorder='big'))

    @override
    def write_bytes(self, data: Buffer) -> None:
        view = memoryview(data)
        while view:
            written = self._sink.write(bytes(view))
            # XXX: sinks like io.BytesIO or buffered files return the full length, others may return None
            if not isinstance(written, int):
                written = len(view)
            if written <= 0:
                raise OSError('sink did not accept any bytes')
            view = view[written:]
