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

from typing import Iterable


class GraphCodecError(Exception):
    """Base class for exceptions in graphcodec."""
    pass


class EncodeError(GraphCodecError):
    """Base class for errors that abort an encode call."""
    pass


class DecodeError(GraphCodecError):
    """Base class for errors that abort a decode call."""
    pass


class UnsupportedTypeError(EncodeError, DecodeError):
    """Raised when a runtime class (when encoding) or a type id (when decoding) has no registered descriptor."""
    pass


class InvalidFieldValueError(EncodeError):
    """Raised when a field holds a value that its declared kind cannot represent.
    """
    pass


class VersionMismatchError(DecodeError):
    """Raised when the stream was written with a different descriptor version than the one registered locally.

    The data has to be migrated out-of-band, the decoder never fills in defaults for a different version.
    """

    def __init__(self, type_id: str, *, stream_version: int, local_version: int) -> None:
        super().__init__(
            f'type {type_id!r} was encoded with version {stream_version} but version {local_version} is registered'
        )
        self.type_id = type_id
        self.stream_version = stream_version
        self.local_version = local_version


class FormatError(DecodeError):
    """Raised when the bytes are not a valid stream."""
    pass


class TruncatedStreamError(FormatError):
    """Raised when the stream ends in the middle of a record."""
    pass


class UnknownReferenceError(DecodeError):
    """Raised when the stream ends with references to objects that no record defined."""

    def __init__(self, object_ids: Iterable[int]) -> None:
        self.object_ids = tuple(sorted(object_ids))
        ids = ', '.join(map(str, self.object_ids))
        super().__init__(f'stream references undefined objects: {ids}')


class LimitExceededError(EncodeError, DecodeError):
    """Raised when a stream goes over one of the limits set in CodecSettings."""
    pass


class StreamIOError(EncodeError, DecodeError):
    """Raised when the underlying sink or source fails, the original OSError is chained as the cause.

    When encoding, whatever was written to the sink before the failure must be discarded.
    """
    pass


class RegistryFrozenError(GraphCodecError):
    """Raised when registering a type on a registry after it was frozen."""
    pass
