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

""" BigQueryTableDefinition: a reflected or synthesized BigQuery table.
"""

from typing import Iterable, Optional

from bqdriver.column_metadata import ColumnCollection, get_column_names
from bqdriver.util.misc_functions import str_summary_of_self


class BigQueryTableDefinitionException(Exception):
    pass


class BigQueryTableDefinition(object):
    """Schema (dataset) name, table name, ordered columns and primary keys of a table.

    Definitions are values: reflected definitions are read fresh for each operation
    and synthesized definitions (e.g. staging tables) exist before the table does.
    """

    def __init__(
        self,
        schema_name: str,
        table_name: str,
        columns: Iterable,
        primary_keys: Optional[list] = None,
        is_temporary: bool = False,
        row_count: Optional[int] = None,
        size_bytes: Optional[int] = None,
    ):
        assert schema_name
        assert table_name
        self.schema_name = schema_name
        self.table_name = table_name
        self.columns = (
            columns if isinstance(columns, ColumnCollection) else ColumnCollection(columns)
        )
        self.primary_keys = list(primary_keys or [])
        self.is_temporary = is_temporary
        self.row_count = row_count
        self.size_bytes = size_bytes
        missing_keys = self.columns.name_index.missing(self.primary_keys)
        if missing_keys:
            raise BigQueryTableDefinitionException(
                "Primary key columns not in table %s: %s"
                % (self.full_name, ", ".join(missing_keys))
            )

    def __str__(self):
        return str_summary_of_self(self)

    def __repr__(self):
        return "BigQueryTableDefinition(%s, %s)" % (
            self.full_name,
            ", ".join(self.column_names),
        )

    @property
    def full_name(self) -> str:
        return "%s.%s" % (self.schema_name, self.table_name)

    @property
    def column_names(self) -> list:
        return get_column_names(self.columns)

    def get_column(self, column_name: str):
        return self.columns.get(column_name)

    def with_columns(self, columns: Iterable, primary_keys: Optional[list] = None):
        """Copy of this definition with different columns, row stats are not carried over."""
        return BigQueryTableDefinition(
            self.schema_name,
            self.table_name,
            columns,
            primary_keys=self.primary_keys if primary_keys is None else primary_keys,
            is_temporary=self.is_temporary,
        )

    def with_primary_keys(self, primary_keys: list):
        return BigQueryTableDefinition(
            self.schema_name,
            self.table_name,
            self.columns,
            primary_keys=primary_keys,
            is_temporary=self.is_temporary,
            row_count=self.row_count,
            size_bytes=self.size_bytes,
        )
