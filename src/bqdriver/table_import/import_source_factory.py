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

""" ImportSourceFactory: decides how the source of a table to table import is read.

    A source is read directly as a table when every column is imported in table order
    with no filtering, otherwise it is read through a generated SELECT.
"""

import logging
from typing import Optional

from bqdriver.bigquery.bigquery_filter_query_builder import build_select_source_sql
from bqdriver.bigquery.bigquery_query_builder import (
    quote_column_list,
    quote_table_reference,
)
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import (
    CaseInsensitiveNameIndex,
    get_column_names,
    is_full_column_set,
)
from bqdriver.driver_exceptions import (
    ColumnsMismatchException,
    ObjectNotFoundException,
)
from bqdriver.util.misc_functions import str_summary_of_self


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


###########################################################################
# CONSTANTS
###########################################################################

SOURCE_KIND_DIRECT_TABLE = "DIRECT_TABLE"
SOURCE_KIND_GENERATED_QUERY = "GENERATED_QUERY"


###########################################################################
# CLASSES
###########################################################################


class TableSource(object):
    """Source read directly from a table."""

    kind = SOURCE_KIND_DIRECT_TABLE

    def __init__(
        self,
        schema_name: str,
        table_name: str,
        column_names: list,
        primary_keys: Optional[list] = None,
    ):
        assert schema_name and table_name
        self.schema_name = schema_name
        self.table_name = table_name
        self.column_names = list(column_names)
        self.primary_keys = list(primary_keys or [])
        self.bindings = {}

    def __str__(self):
        return str_summary_of_self(self)

    def from_sql(self) -> str:
        return quote_table_reference(self.schema_name, self.table_name)

    def select_sql(self) -> str:
        return "SELECT %s FROM %s" % (
            quote_column_list(self.column_names),
            self.from_sql(),
        )


class SelectSource(object):
    """Source read through a generated query with named bindings."""

    kind = SOURCE_KIND_GENERATED_QUERY

    def __init__(
        self,
        query: str,
        bindings: dict,
        column_names: list,
        primary_keys: Optional[list] = None,
    ):
        assert query
        assert isinstance(bindings, dict), "Query bindings must be named"
        self.query = query
        self.bindings = bindings
        self.column_names = list(column_names)
        self.primary_keys = list(primary_keys or [])

    def __str__(self):
        return str_summary_of_self(self)

    def from_sql(self) -> str:
        return "(%s)" % self.query

    def select_sql(self) -> str:
        return self.query


class SourceContext(object):
    """The source of one import: how to read it, the selected columns and both source definitions.

    effective_definition: the source restricted to selected_columns, in selected order.
    full_definition: the source table as reflected.
    """

    def __init__(
        self,
        source,
        effective_definition: BigQueryTableDefinition,
        full_definition: BigQueryTableDefinition,
        selected_columns: list,
    ):
        self.source = source
        self.effective_definition = effective_definition
        self.full_definition = full_definition
        self.selected_columns = list(selected_columns)

    def __str__(self):
        return str_summary_of_self(self)

    @property
    def kind(self) -> str:
        return self.source.kind

    def is_direct_table(self) -> bool:
        return bool(self.kind == SOURCE_KIND_DIRECT_TABLE)


class ImportSourceFactory(object):
    def __init__(self, api, select_sql_fn=None):
        """select_sql_fn: renders (sql, bindings) for a generated source, build_select_source_sql by default."""
        assert api
        self._api = api
        self._select_sql_fn = select_sql_fn or build_select_source_sql

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _get_source_table_definition(self, source_mapping) -> BigQueryTableDefinition:
        definition = self._api.get_table_definition(
            source_mapping.schema_name, source_mapping.table_name
        )
        if definition is None:
            raise ObjectNotFoundException(
                'Table "%s"."%s" not found.'
                % (source_mapping.schema_name, source_mapping.table_name)
            )
        return definition

    def _extract_source_columns(
        self, source_mapping, source_definition: BigQueryTableDefinition
    ) -> list:
        columns = [_.source_column_name for _ in source_mapping.column_mappings or []]
        if columns:
            return columns
        return source_definition.column_names

    def _extract_where_filter_columns(self, source_mapping) -> list:
        return [_.column_name for _ in source_mapping.where_filters or []]

    def _should_use_select_source(self, source_mapping, full_column_set: bool) -> bool:
        return bool(
            not full_column_set
            or (source_mapping.seconds or 0) > 0
            or (source_mapping.limit or 0) > 0
            or source_mapping.where_filters
        )

    def _create_select_source(
        self,
        source_mapping,
        full_definition: BigQueryTableDefinition,
        effective_definition: BigQueryTableDefinition,
        source_columns: list,
    ) -> SelectSource:
        # Filter columns must exist but are not projected.
        where_filter_columns = self._extract_where_filter_columns(source_mapping)
        validation_index = CaseInsensitiveNameIndex(source_columns, name_fn=lambda x: x)
        for column_name in where_filter_columns:
            validation_index.add(column_name)
        definition_for_query = self.filter_source_definition(
            full_definition, list(validation_index)
        )
        query, bindings = self._select_sql_fn(
            definition_for_query.schema_name,
            definition_for_query.table_name,
            source_columns,
            where_filters=source_mapping.where_filters,
            seconds=source_mapping.seconds or 0,
            limit=source_mapping.limit or 0,
        )
        return SelectSource(
            query,
            bindings,
            source_columns,
            primary_keys=effective_definition.primary_keys,
        )

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    def filter_source_definition(
        self, source_definition: BigQueryTableDefinition, column_names: list
    ) -> BigQueryTableDefinition:
        """source_definition restricted to column_names, in column_names order.
        A name repeated in column_names, e.g. one source column mapped to two destination
        columns, is kept once. Raises ColumnsMismatchException naming every column not in the source.
        """
        if not column_names:
            return source_definition
        source_index = source_definition.columns.name_index
        missing_names = source_index.missing(column_names)
        if missing_names:
            raise ColumnsMismatchException.columns_not_found(
                source_definition.schema_name,
                source_definition.table_name,
                missing_names,
            )
        columns = list(
            CaseInsensitiveNameIndex(source_index.get(_) for _ in column_names)
        )
        column_index = get_column_names(columns, conv_fn=str.lower)
        primary_keys = [
            _ for _ in source_definition.primary_keys if _.lower() in column_index
        ]
        return source_definition.with_columns(columns, primary_keys=primary_keys)

    def create_from_command(self, command) -> SourceContext:
        source_mapping = command.source
        assert source_mapping

        full_definition = self._get_source_table_definition(source_mapping)
        source_columns = self._extract_source_columns(source_mapping, full_definition)
        effective_definition = self.filter_source_definition(
            full_definition, source_columns
        )

        full_column_set = is_full_column_set(source_columns, full_definition.columns)
        if self._should_use_select_source(source_mapping, full_column_set):
            source = self._create_select_source(
                source_mapping, full_definition, effective_definition, source_columns
            )
        else:
            source = TableSource(
                effective_definition.schema_name,
                effective_definition.table_name,
                source_columns,
                primary_keys=effective_definition.primary_keys,
            )
        logger.info("Import source for %s: %s", full_definition.full_name, source.kind)
        return SourceContext(
            source,
            effective_definition,
            full_definition,
            source_columns,
        )
