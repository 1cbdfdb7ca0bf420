# Copyright 2016 The GOE Authors. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# Standard Library
from typing import Any, Optional, Union

# Third Party Libraries
import orjson


def serialize_object(obj) -> str:
    """
    Encodes json with the optimized ORJSON package

    orjson.dumps returns bytes, so you can't pass it directly as json_serializer
    """
    return orjson.dumps(obj, option=orjson.OPT_NAIVE_UTC).decode()


def deserialize_object(obj: Union[bytes, bytearray, memoryview, str]) -> Any:
    """
    Decodes to an object with the optimized ORJSON package
    """
    return orjson.loads(obj)


def try_deserialize_object(obj: Union[bytes, str]) -> Optional[Any]:
    """Decode obj if it is valid JSON, otherwise return None.
    Backend error text is often, but not always, a JSON document.
    """
    if not obj:
        return None
    try:
        return orjson.loads(obj)
    except orjson.JSONDecodeError:
        return None


def convert_field_to_camel_case(string: str) -> str:
    """
    Camelize field name

    Command and response payloads use camel case field names, e.g. tableName.
    """
    return "".join(
        word if index == 0 else word.capitalize()
        for index, word in enumerate(string.split("_"))
    )
