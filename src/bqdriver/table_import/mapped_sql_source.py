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

""" MappedSqlSource: a SELECT projecting source columns under their destination names.
"""

from typing import Optional

from bqdriver.bigquery.bigquery_query_builder import (
    quote_identifier,
    quote_table_reference,
)
from bqdriver.table_import.import_source_factory import SOURCE_KIND_GENERATED_QUERY


###########################################################################
# CONSTANTS
###########################################################################

BASE_QUERY_ALIAS = "src"


class MappedSqlSourceException(Exception):
    pass


###########################################################################
# MappedSqlSource
###########################################################################


class MappedSqlSource(object):
    """Source for a staging load reading from a table or from a base query.

    column_mappings: objects with source_column_name and destination_column_name, an empty
                     list selects every column unchanged.
    bindings: named bindings of the base query, {name: (type, value)}.
    """

    kind = SOURCE_KIND_GENERATED_QUERY

    def __init__(
        self,
        column_mappings: list,
        schema_name: Optional[str] = None,
        table_name: Optional[str] = None,
        base_query: Optional[str] = None,
        bindings: Optional[dict] = None,
        primary_keys: Optional[list] = None,
    ):
        if not base_query and not (schema_name and table_name):
            raise MappedSqlSourceException(
                "Either a base query or a schema and table name are required"
            )
        if bindings is not None and not isinstance(bindings, dict):
            raise MappedSqlSourceException(
                "Query bindings must be named, not %s" % type(bindings).__name__
            )
        self.column_mappings = list(column_mappings or [])
        self.schema_name = schema_name
        self.table_name = table_name
        self.base_query = base_query
        self.bindings = bindings or {}
        self.primary_keys = list(primary_keys or [])

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _from_clause(self):
        if self.base_query:
            return "(%s) AS %s" % (self.base_query, quote_identifier(BASE_QUERY_ALIAS))
        return quote_table_reference(self.schema_name, self.table_name)

    def _source_alias(self):
        return quote_identifier(BASE_QUERY_ALIAS if self.base_query else self.table_name)

    def _build_select(self, cast_to_string: bool) -> str:
        alias = self._source_alias()
        select_parts = []
        for mapping in self.column_mappings:
            source_column = "%s.%s" % (alias, quote_identifier(mapping.source_column_name))
            if cast_to_string:
                source_column = "CAST(%s AS STRING)" % source_column
            select_parts.append(
                "%s AS %s"
                % (source_column, quote_identifier(mapping.destination_column_name))
            )
        return "SELECT %s FROM %s" % (", ".join(select_parts), self._from_clause())

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    @property
    def column_names(self) -> list:
        return [_.destination_column_name for _ in self.column_mappings]

    def from_statement(self) -> str:
        if not self.column_mappings:
            if self.base_query:
                return self.base_query
            return "SELECT * FROM %s" % self._from_clause()
        return self._build_select(False)

    def from_statement_with_string_casting(self) -> str:
        if not self.column_mappings:
            return self.from_statement()
        return self._build_select(True)

    def select_sql(self, cast_to_string=False) -> str:
        if cast_to_string:
            return self.from_statement_with_string_casting()
        return self.from_statement()

    def from_sql(self) -> str:
        return "(%s)" % self.from_statement()
