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
from typing import Optional, Union

from pydantic import NonNegativeInt, PositiveInt

from graphcodec.utils import pydantic


class CodecSettings(pydantic.BaseModel):
    """Limits that protect encode/decode calls against runaway graphs and hostile streams."""

    # Maximum number of objects (records) in a single stream.
    MAX_OBJECTS: PositiveInt = 1_000_000

    # Maximum number of elements in a single array or sequence value.
    MAX_SEQUENCE_LENGTH: NonNegativeInt = 1_000_000

    # Maximum length in bytes of a single text or bytes value.
    MAX_BYTES_LENGTH: NonNegativeInt = 16 * 1024 * 1024

    # Maximum size of a whole stream, None means unlimited.
    MAX_STREAM_BYTES: Optional[PositiveInt] = None

    @classmethod
    def from_yaml(cls, *, filepath: Union[Path, str]) -> 'CodecSettings':
        """Takes a filepath to a yaml file and returns a validated CodecSettings instance."""
        from graphcodec.conf import DEFAULT_SETTINGS_FILEPATH
        from graphcodec.utils.yaml import model_from_extended_yaml
        return model_from_extended_yaml(cls, filepath=filepath, custom_root=Path(DEFAULT_SETTINGS_FILEPATH).parent)
