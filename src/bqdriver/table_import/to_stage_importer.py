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

""" ToStageImporter: moves source data into a staging table, or straight into a destination.

    Three ways in:
        INSERT ... SELECT from a table or generated query source (timer toStaging)
        CREATE TABLE ... COPY when the source is a plain table matching the staging layout (timer copyToStaging)
        a BigQuery load job reading CSV files from GCS (timer toStaging)
"""

import logging
from typing import Optional

import fsspec

from bqdriver.bigquery.bigquery_column import TIMESTAMP_COLUMN_NAME
from bqdriver.bigquery.bigquery_query_builder import copy_table_sql, insert_select_sql
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import CaseInsensitiveNameIndex
from bqdriver.table_import.import_commands import ColumnMapping, CsvSourceType
from bqdriver.table_import.import_options import BigQueryImportOptions
from bqdriver.table_import.import_source_factory import SelectSource, TableSource
from bqdriver.table_import.import_state import ImportState
from bqdriver.table_import.mapped_sql_source import MappedSqlSource
from bqdriver.util.json_tools import deserialize_object


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


###########################################################################
# CONSTANTS
###########################################################################

TIMER_TO_STAGING = "toStaging"
TIMER_COPY_TO_STAGING = "copyToStaging"


class ToStageImporterException(Exception):
    pass


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def same_columns_ordered(
    source_columns, staging_columns, ignore_column_names: Optional[list] = None
) -> bool:
    """True if both column lists have the same names and data types in the same order.
    Columns named in ignore_column_names are left out on both sides.
    """
    ignore_index = CaseInsensitiveNameIndex(
        ignore_column_names or [], name_fn=lambda x: x
    )
    left = [_ for _ in source_columns if _.name not in ignore_index]
    right = [_ for _ in staging_columns if _.name not in ignore_index]
    if len(left) != len(right):
        return False
    for left_col, right_col in zip(left, right):
        if left_col.name.lower() != right_col.name.lower():
            return False
        if left_col.format_data_type() != right_col.format_data_type():
            return False
    return True


def manifest_uris(manifest_uri: str, token=None) -> list:
    """Read a sliced file manifest, {"entries": [{"url": "gs://..."}, ...]}, returning the slice uris."""
    logger.debug("Reading manifest: %s", manifest_uri)
    with fsspec.open(manifest_uri, "rb", token=token) as f:
        manifest = deserialize_object(f.read())
    entries = manifest.get("entries") if isinstance(manifest, dict) else None
    if not entries:
        raise ToStageImporterException("Manifest has no entries: %s" % manifest_uri)
    return [_["url"] for _ in entries]


def positional_mappings(source_column_names: list, target_column_names: list) -> list:
    if len(source_column_names) != len(target_column_names):
        raise ToStageImporterException(
            "Source and target column counts differ: %s != %s"
            % (len(source_column_names), len(target_column_names))
        )
    return [
        ColumnMapping(source_column_name=src, destination_column_name=dst)
        for src, dst in zip(source_column_names, target_column_names)
    ]


###########################################################################
# ToStageImporter
###########################################################################


class ToStageImporter(object):
    def __init__(self, api, messages=None):
        assert api
        self._api = api
        self._messages = messages

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _new_state(self, state, table_name):
        return state or ImportState(table_name, messages=self._messages)

    def _mapped_source(self, source, target_column_names: list) -> MappedSqlSource:
        mappings = positional_mappings(source.column_names, target_column_names)
        if isinstance(source, TableSource):
            return MappedSqlSource(
                mappings,
                schema_name=source.schema_name,
                table_name=source.table_name,
                primary_keys=source.primary_keys,
            )
        elif isinstance(source, SelectSource):
            return MappedSqlSource(
                mappings,
                base_query=source.query,
                bindings=source.bindings,
                primary_keys=source.primary_keys,
            )
        raise ToStageImporterException("Unsupported source type: %s" % type(source))

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    def import_to_table(
        self,
        source,
        schema_name: str,
        table_name: str,
        target_column_names: list,
        options: BigQueryImportOptions,
        state: Optional[ImportState] = None,
    ) -> ImportState:
        """Insert every source row into an existing table, source columns land in target_column_names by position."""
        state = self._new_state(state, table_name)
        mapped_source = self._mapped_source(source, target_column_names)
        sql = insert_select_sql(
            schema_name,
            table_name,
            mapped_source.column_names,
            mapped_source.select_sql(cast_to_string=options.is_using_string_types()),
        )
        state.start_timer(TIMER_TO_STAGING)
        rows = self._api.execute_dml(sql, query_params=mapped_source.bindings)
        state.stop_timer(TIMER_TO_STAGING)
        state.add_imported_rows_count(rows)
        state.set_imported_columns(mapped_source.column_names)
        return state

    def import_to_staging_table(
        self,
        source,
        staging_definition: BigQueryTableDefinition,
        options: BigQueryImportOptions,
        state: Optional[ImportState] = None,
    ) -> ImportState:
        """The staging table must already exist."""
        return self.import_to_table(
            source,
            staging_definition.schema_name,
            staging_definition.table_name,
            staging_definition.column_names,
            options,
            state=state,
        )

    def copy_to_staging_table(
        self,
        source: TableSource,
        staging_definition: BigQueryTableDefinition,
        state: Optional[ImportState] = None,
    ) -> ImportState:
        """Create the staging table as a copy of the source table, the staging table must not exist."""
        assert isinstance(source, TableSource)
        state = self._new_state(state, staging_definition.table_name)
        state.start_timer(TIMER_COPY_TO_STAGING)
        self._api.execute_ddl(
            copy_table_sql(
                staging_definition.schema_name,
                staging_definition.table_name,
                source.schema_name,
                source.table_name,
            )
        )
        state.stop_timer(TIMER_COPY_TO_STAGING)
        state.add_imported_rows_count(
            self._api.get_table_row_count(
                staging_definition.schema_name, staging_definition.table_name
            )
        )
        state.set_imported_columns(
            [_ for _ in staging_definition.column_names if _ != TIMESTAMP_COLUMN_NAME]
        )
        return state

    def load_files_to_staging_table(
        self,
        file_path,
        csv_options,
        staging_definition: BigQueryTableDefinition,
        options: BigQueryImportOptions,
        token=None,
        state: Optional[ImportState] = None,
    ) -> ImportState:
        """Load CSV files from GCS into an existing staging table.
        For a sliced file file_path is the manifest listing the slices.
        """
        state = self._new_state(state, staging_definition.table_name)
        if csv_options.source_type == CsvSourceType.SLICED_FILE:
            source_uris = manifest_uris(file_path.uri, token=token)
        else:
            source_uris = [file_path.uri]
        null_marker = options.import_as_null[0] if len(options.import_as_null) == 1 else None
        state.start_timer(TIMER_TO_STAGING)
        rows = self._api.load_table_from_uri(
            staging_definition.schema_name,
            staging_definition.table_name,
            source_uris,
            field_delimiter=csv_options.delimiter,
            quote_character=csv_options.enclosure,
            skip_leading_rows=options.number_of_ignored_lines,
            null_marker=null_marker,
        )
        state.stop_timer(TIMER_TO_STAGING)
        state.add_imported_rows_count(rows)
        state.set_imported_columns(staging_definition.column_names)
        return state
