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

import sys
from typing import TextIO


def execute(out: TextIO) -> int:
    from graphcodec.conf.get_settings import get_global_settings, get_settings_source

    settings = get_global_settings()
    print(f'# loaded from {get_settings_source()}', file=out)
    for name, value in settings.model_dump().items():
        print(f'{name}: {"null" if value is None else value}', file=out)
    return 0


def main() -> int:
    from graphcodec.cli.util import create_parser

    parser = create_parser()
    parser.parse_args()
    return execute(sys.stdout)
