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

""" Import option enums and the options object that drives import execution.
"""

from enum import Enum
from typing import Optional

from bqdriver.bigquery.bigquery_column import TIMESTAMP_COLUMN_NAME
from bqdriver.util.misc_functions import str_summary_of_self


###########################################################################
# CONSTANTS
###########################################################################


class ImportType(str, Enum):
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"
    VIEW = "VIEW"
    CLONE = "CLONE"


class DedupType(str, Enum):
    INSERT_DUPLICATES = "INSERT_DUPLICATES"
    UPDATE_DUPLICATES = "UPDATE_DUPLICATES"


class CreateMode(str, Enum):
    CREATE = "CREATE"
    REPLACE = "REPLACE"


class ImportStrategy(str, Enum):
    USER_DEFINED_TABLE = "USER_DEFINED_TABLE"
    STRING_TABLE = "STRING_TABLE"


class TimestampMode(str, Enum):
    CURRENT_TIME = "CURRENT_TIME"
    FROM_SOURCE = "FROM_SOURCE"
    NONE = "NONE"


USING_TYPES_STRING = "string"
USING_TYPES_USER = "user"


###########################################################################
# BigQueryImportOptions
###########################################################################


class BigQueryImportOptions(object):
    """Options consumed by the staging and final table importers.
    Built from the options of a command by create_import_options().
    """

    def __init__(
        self,
        convert_empty_values_to_null: Optional[list] = None,
        is_incremental: bool = False,
        use_timestamp: bool = False,
        number_of_ignored_lines: int = 0,
        using_types: str = USING_TYPES_STRING,
        session_id: Optional[str] = None,
        import_as_null: Optional[list] = None,
        features: Optional[list] = None,
        timestamp_mode: TimestampMode = TimestampMode.CURRENT_TIME,
    ):
        assert using_types in (USING_TYPES_STRING, USING_TYPES_USER)
        self.convert_empty_values_to_null = list(convert_empty_values_to_null or [])
        self.is_incremental = is_incremental
        self.use_timestamp = use_timestamp
        self.number_of_ignored_lines = number_of_ignored_lines or 0
        self.using_types = using_types
        self.session_id = session_id
        self.import_as_null = list(import_as_null or [])
        self.features = list(features or [])
        self.timestamp_mode = timestamp_mode

    def __str__(self):
        return str_summary_of_self(self)

    def is_using_string_types(self) -> bool:
        return bool(self.using_types == USING_TYPES_STRING)

    def is_using_user_types(self) -> bool:
        return bool(self.using_types == USING_TYPES_USER)

    def is_feature_allowed(self, feature: str) -> bool:
        return bool(feature in self.features)


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def create_import_options(options, features: Optional[list] = None) -> BigQueryImportOptions:
    """Translate the import options of a command, unknown strategy or timestamp mode raises ValueError."""
    import_strategy = options.import_strategy
    if import_strategy == ImportStrategy.STRING_TABLE:
        using_types = USING_TYPES_STRING
    elif import_strategy == ImportStrategy.USER_DEFINED_TABLE:
        using_types = USING_TYPES_USER
    else:
        raise ValueError("Unknown import strategy %s" % import_strategy)

    try:
        timestamp_mode = TimestampMode(options.timestamp_mode)
    except ValueError as exc:
        raise ValueError("Unknown timestamp mode %s" % options.timestamp_mode) from exc

    return BigQueryImportOptions(
        convert_empty_values_to_null=options.convert_empty_values_to_null_on_columns,
        is_incremental=bool(options.import_type == ImportType.INCREMENTAL),
        use_timestamp=bool(options.timestamp_column == TIMESTAMP_COLUMN_NAME),
        number_of_ignored_lines=options.number_of_ignored_lines,
        using_types=using_types,
        import_as_null=options.import_as_null,
        features=features,
        timestamp_mode=timestamp_mode,
    )
