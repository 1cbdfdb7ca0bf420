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

""" Final table importers: move staged rows into the destination table.

    FullImporter replaces the destination contents inside one multi-statement transaction.
    IncrementalImporter appends to the destination. Row level upsert of existing keys is not supported.
    Both deduplicate staged rows on the destination primary keys, if it has any.
"""

import logging
from typing import Optional

from bqdriver.bigquery.bigquery_column import TIMESTAMP_COLUMN_NAME
from bqdriver.bigquery.bigquery_query_builder import (
    quote_column_list,
    quote_identifier,
    quote_table_reference,
)
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import CaseInsensitiveNameIndex
from bqdriver.driver_exceptions import ImportNotImplementedException
from bqdriver.table_import.import_options import BigQueryImportOptions, DedupType
from bqdriver.table_import.import_state import ImportResult, ImportState


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


###########################################################################
# CONSTANTS
###########################################################################

TIMER_DEDUP = "dedup"
TIMER_COPY_FROM_STAGING_TO_TARGET = "copyFromStagingToTarget"

DEDUP_TABLE_SUFFIX = "_dedup"
ROW_NUMBER_COLUMN = "_row_number_"


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def dedup_table_sql(
    schema_name: str,
    dedup_table_name: str,
    staging_table_name: str,
    column_names: list,
    primary_keys: list,
) -> str:
    """CTAS keeping one row per primary key value from the staging table."""
    assert column_names and primary_keys
    return """CREATE TABLE %(dedup)s AS
SELECT %(columns)s
FROM   (
       SELECT %(columns)s
       ,      ROW_NUMBER() OVER (PARTITION BY %(keys)s ORDER BY %(keys)s) AS %(row_number)s
       FROM   %(staging)s
       )
WHERE  %(row_number)s = 1""" % {
        "dedup": quote_table_reference(schema_name, dedup_table_name),
        "staging": quote_table_reference(schema_name, staging_table_name),
        "columns": quote_column_list(column_names),
        "keys": quote_column_list(primary_keys),
        "row_number": quote_identifier(ROW_NUMBER_COLUMN),
    }


###########################################################################
# ToFinalTableImporter
###########################################################################


class ToFinalTableImporter(object):
    """Common code for the final table importers, not used directly."""

    def __init__(self, api, messages=None):
        assert api
        self._api = api
        self._messages = messages

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _staged_column_names(self, staging_definition: BigQueryTableDefinition) -> list:
        return [
            _
            for _ in staging_definition.column_names
            if _.lower() != TIMESTAMP_COLUMN_NAME
        ]

    def _select_expressions(self, column_names: list, options: BigQueryImportOptions) -> list:
        convert_index = CaseInsensitiveNameIndex(
            options.convert_empty_values_to_null, name_fn=lambda x: x
        )
        expressions = []
        for name in column_names:
            if options.is_using_string_types() and name in convert_index:
                expressions.append("NULLIF(%s, '')" % quote_identifier(name))
            else:
                expressions.append(quote_identifier(name))
        return expressions

    def _insert_from_staging_sql(
        self,
        destination: BigQueryTableDefinition,
        source_table_name: str,
        column_names: list,
        options: BigQueryImportOptions,
    ) -> str:
        target_columns = list(column_names)
        expressions = self._select_expressions(column_names, options)
        if options.use_timestamp:
            target_columns.append(TIMESTAMP_COLUMN_NAME)
            expressions.append("CURRENT_TIMESTAMP()")
        return """INSERT INTO %(destination)s (%(target_columns)s)
SELECT %(expressions)s
FROM   %(source)s""" % {
            "destination": quote_table_reference(
                destination.schema_name, destination.table_name
            ),
            "target_columns": quote_column_list(target_columns),
            "expressions": ", ".join(expressions),
            "source": quote_table_reference(destination.schema_name, source_table_name),
        }

    def _dedup_keys(
        self, staging_definition: BigQueryTableDefinition, destination: BigQueryTableDefinition
    ) -> list:
        staging_index = staging_definition.columns.name_index
        return [_ for _ in destination.primary_keys if _ in staging_index]

    def _deduplicate(
        self,
        staging_definition: BigQueryTableDefinition,
        column_names: list,
        primary_keys: list,
        state: ImportState,
    ) -> str:
        """Create the dedup table and return its name."""
        dedup_table_name = staging_definition.table_name + DEDUP_TABLE_SUFFIX
        state.start_timer(TIMER_DEDUP)
        self._api.execute_ddl(
            dedup_table_sql(
                staging_definition.schema_name,
                dedup_table_name,
                staging_definition.table_name,
                column_names,
                primary_keys,
            )
        )
        state.stop_timer(TIMER_DEDUP)
        return dedup_table_name

    def _drop_dedup_table(self, schema_name: str, dedup_table_name: Optional[str]):
        if dedup_table_name:
            self._api.drop_table(schema_name, dedup_table_name)

    def _copy_to_target_sql(self, insert_sql: str, destination: BigQueryTableDefinition) -> str:
        raise NotImplementedError

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    def import_to_table(
        self,
        staging_definition: BigQueryTableDefinition,
        destination: BigQueryTableDefinition,
        options: BigQueryImportOptions,
        state: ImportState,
    ) -> ImportResult:
        column_names = self._staged_column_names(staging_definition)
        primary_keys = self._dedup_keys(staging_definition, destination)
        dedup_table_name = None
        try:
            if primary_keys:
                dedup_table_name = self._deduplicate(
                    staging_definition, column_names, primary_keys, state
                )
            insert_sql = self._insert_from_staging_sql(
                destination,
                dedup_table_name or staging_definition.table_name,
                column_names,
                options,
            )
            state.start_timer(TIMER_COPY_FROM_STAGING_TO_TARGET)
            self._api.execute_dml(self._copy_to_target_sql(insert_sql, destination))
            state.stop_timer(TIMER_COPY_FROM_STAGING_TO_TARGET)
        finally:
            self._drop_dedup_table(staging_definition.schema_name, dedup_table_name)
        state.set_imported_columns(column_names)
        return state.get_result()


class FullImporter(ToFinalTableImporter):
    def _copy_to_target_sql(self, insert_sql: str, destination: BigQueryTableDefinition) -> str:
        return """BEGIN TRANSACTION;
DELETE FROM %(destination)s WHERE TRUE;
%(insert_sql)s;
COMMIT TRANSACTION;""" % {
            "destination": quote_table_reference(
                destination.schema_name, destination.table_name
            ),
            "insert_sql": insert_sql,
        }


class IncrementalImporter(ToFinalTableImporter):
    def __init__(self, api, messages=None, dedup_type=DedupType.INSERT_DUPLICATES):
        super().__init__(api, messages=messages)
        self._dedup_type = dedup_type

    def _copy_to_target_sql(self, insert_sql: str, destination: BigQueryTableDefinition) -> str:
        return insert_sql

    def check_supported(self, destination: BigQueryTableDefinition):
        """Raise ImportNotImplementedException if rows would have to be updated in place."""
        if self._dedup_type == DedupType.UPDATE_DUPLICATES and destination.primary_keys:
            raise ImportNotImplementedException(
                "Incremental import updating duplicates on %s is not implemented."
                % ",".join(destination.primary_keys)
            )

    def import_to_table(
        self,
        staging_definition: BigQueryTableDefinition,
        destination: BigQueryTableDefinition,
        options: BigQueryImportOptions,
        state: ImportState,
    ) -> ImportResult:
        self.check_supported(destination)
        return super().import_to_table(staging_definition, destination, options, state)
