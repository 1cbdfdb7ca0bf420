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

""" ImportTableFromTableHandler: imports one BigQuery table into another.

    The import type picks the strategy:
        VIEW        CREATE VIEW over the source, no data is moved.
        CLONE       native CLONE, falling back to CTAS when BigQuery cannot clone the source.
        FULL        insert straight into the destination when there is nothing to deduplicate
                    or timestamp, otherwise load a staging table and replace the destination contents.
        INCREMENTAL not supported for table sources.
"""

import logging

from google.api_core.exceptions import BadRequest, Conflict, GoogleAPICallError

from bqdriver.bigquery.bigquery_column import TIMESTAMP_COLUMN_NAME
from bqdriver.bigquery.bigquery_driver_api import BigQueryInputDataException
from bqdriver.bigquery.bigquery_query_builder import (
    clone_table_sql,
    create_view_sql,
    ctas_sql,
)
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.driver_exceptions import (
    BadFilterParametersException,
    ImportNotImplementedException,
    ImportValidationException,
    MaximumLengthOverflowException,
    ObjectAlreadyExistsException,
    raw_error_text,
)
from bqdriver.table_import.column_mapping_service import ColumnMappingService
from bqdriver.table_import.import_commands import (
    ColumnMapping,
    TableImportFromTableCommand,
    TableImportResponse,
)
from bqdriver.table_import.import_destination_manager import ImportDestinationManager
from bqdriver.table_import.import_handler_base import ImportHandlerBase
from bqdriver.table_import.import_options import (
    BigQueryImportOptions,
    DedupType,
    ImportType,
    create_import_options,
)
from bqdriver.table_import.import_source_factory import (
    ImportSourceFactory,
    SourceContext,
)
from bqdriver.table_import.import_state import ImportResult, ImportState
from bqdriver.table_import.staging_table_factory import StagingTableFactory
from bqdriver.table_import.to_final_table_importer import FullImporter
from bqdriver.table_import.to_stage_importer import (
    ToStageImporter,
    same_columns_ordered,
)


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


CLONE_NOT_SUPPORTED_TEXT = "Cannot clone tables"


class ImportTableFromTableHandler(ImportHandlerBase):
    log_name = "import_table_from_table"

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _create_view(self, api, command: TableImportFromTableCommand) -> ImportResult:
        source, destination = command.source, command.destination
        try:
            api.execute_ddl(
                create_view_sql(
                    destination.schema_name,
                    destination.table_name,
                    source.schema_name,
                    source.table_name,
                )
            )
        except Conflict as exc:
            ObjectAlreadyExistsException.handle_conflict_exception(exc)
        return ImportResult()

    def _clone(self, api, command: TableImportFromTableCommand) -> ImportResult:
        """A native clone reports no imported rows, the CTAS fallback reports the rows it copied."""
        source, destination = command.source, command.destination
        try:
            api.execute_ddl(
                clone_table_sql(
                    destination.schema_name,
                    destination.table_name,
                    source.schema_name,
                    source.table_name,
                )
            )
            return ImportResult()
        except Conflict as exc:
            ObjectAlreadyExistsException.handle_conflict_exception(exc)
        except BadRequest as exc:
            if CLONE_NOT_SUPPORTED_TEXT not in raw_error_text(exc):
                raise
            self._messages.notice(
                "Clone of %s.%s not possible, copying with CTAS"
                % (source.schema_name, source.table_name)
            )

        try:
            api.execute_ddl(
                ctas_sql(
                    destination.schema_name,
                    destination.table_name,
                    source.schema_name,
                    source.table_name,
                )
            )
        except Conflict as exc:
            ObjectAlreadyExistsException.handle_conflict_exception(exc)
        destination_definition = api.get_table_definition(
            destination.schema_name, destination.table_name
        )
        return ImportResult(
            imported_rows_count=api.get_table_row_count(
                destination.schema_name, destination.table_name
            ),
            imported_columns=destination_definition.column_names
            if destination_definition
            else [],
        )

    def _staging_mappings(self, command, source_context: SourceContext) -> list:
        if command.source.column_mappings:
            return list(command.source.column_mappings)
        return [
            ColumnMapping(source_column_name=_, destination_column_name=_)
            for _ in source_context.selected_columns
        ]

    def _insert_into_destination(
        self,
        api,
        source_context: SourceContext,
        destination_definition: BigQueryTableDefinition,
        expected_columns,
        options: BigQueryImportOptions,
    ) -> ImportResult:
        """Rows go straight to the destination, no column level work is reported."""
        state = ImportState(destination_definition.table_name, messages=self._messages)
        ToStageImporter(api, messages=self._messages).import_to_table(
            source_context.source,
            destination_definition.schema_name,
            destination_definition.table_name,
            expected_columns.names,
            options,
            state=state,
        )
        return ImportResult(timers=state.timers())

    def _import_via_staging(
        self,
        api,
        command: TableImportFromTableCommand,
        source_context: SourceContext,
        destination_definition: BigQueryTableDefinition,
        options: BigQueryImportOptions,
    ) -> ImportResult:
        staging_definition = StagingTableFactory(
            self._config.staging_table_prefix
        ).from_column_mappings(
            destination_definition, self._staging_mappings(command, source_context)
        )
        state = ImportState(staging_definition.table_name, messages=self._messages)
        stage_importer = ToStageImporter(api, messages=self._messages)
        try:
            if source_context.is_direct_table() and same_columns_ordered(
                source_context.effective_definition.columns,
                staging_definition.columns,
                [TIMESTAMP_COLUMN_NAME],
            ):
                stage_importer.copy_to_staging_table(
                    source_context.source, staging_definition, state=state
                )
            else:
                api.create_table(staging_definition)
                stage_importer.import_to_staging_table(
                    source_context.source, staging_definition, options, state=state
                )
            return FullImporter(api, messages=self._messages).import_to_table(
                staging_definition, destination_definition, options, state
            )
        finally:
            self._drop_staging_table(api, staging_definition)

    def _import_by_table_copy(
        self,
        api,
        command: TableImportFromTableCommand,
        source_context: SourceContext,
        destination_definition: BigQueryTableDefinition,
        expected_columns,
        options: BigQueryImportOptions,
    ) -> ImportResult:
        import_options = command.import_options
        if (
            import_options.dedup_type == DedupType.UPDATE_DUPLICATES
            and import_options.dedup_columns_names
        ):
            # BigQuery does not enforce keys, the dedup columns act as the keys for this import.
            destination_definition = destination_definition.with_primary_keys(
                import_options.dedup_columns_names
            )

        try:
            if (
                import_options.import_type == ImportType.FULL
                and import_options.dedup_type == DedupType.INSERT_DUPLICATES
                and not options.use_timestamp
            ):
                return self._insert_into_destination(
                    api, source_context, destination_definition, expected_columns, options
                )
            return self._import_via_staging(
                api, command, source_context, destination_definition, options
            )
        except GoogleAPICallError as exc:
            BadFilterParametersException.handle_wrong_type_in_filters(exc)
            raise MaximumLengthOverflowException.handle_exception(exc)
        except BigQueryInputDataException as exc:
            raise ImportValidationException(str(exc)) from exc

    def _import(
        self, api, credentials, command, features, runtime_options
    ) -> TableImportResponse:
        assert isinstance(command, TableImportFromTableCommand)
        import_options = command.import_options
        destination = command.destination
        options = create_import_options(import_options, features)
        self._messages.log(
            "Import %s.%s into %s.%s (%s)"
            % (
                command.source.schema_name,
                command.source.table_name,
                destination.schema_name,
                destination.table_name,
                import_options.import_type.value,
            )
        )

        source_context = self._messages.step(
            "resolveSource",
            lambda: ImportSourceFactory(api).create_from_command(command),
            record_timer=False,
        )
        expected_columns = ColumnMappingService().build_destination_columns(
            source_context.effective_definition, command.source.column_mappings
        )

        manager = ImportDestinationManager(api)
        existing = manager.reflect(destination.schema_name, destination.table_name)
        existing = manager.apply_create_mode(
            destination.schema_name, destination.table_name, import_options, existing
        )

        if import_options.import_type == ImportType.INCREMENTAL:
            if existing and import_options.dedup_type == DedupType.UPDATE_DUPLICATES:
                manager.validate_incremental(
                    existing, expected_columns, source_context.full_definition
                )
            raise ImportNotImplementedException(
                "Incremental import from a table is not implemented."
            )

        if import_options.import_type == ImportType.VIEW:
            result = self._messages.step(
                "createView", lambda: self._create_view(api, command), record_timer=False
            )
        elif import_options.import_type == ImportType.CLONE:
            result = self._messages.step(
                "cloneTable", lambda: self._clone(api, command), record_timer=False
            )
        else:
            if (
                existing is None
                or import_options.dedup_type == DedupType.UPDATE_DUPLICATES
            ):
                manager.validate_dedup_columns(
                    destination.schema_name,
                    destination.table_name,
                    import_options.dedup_columns_names,
                    existing.columns if existing else expected_columns,
                )
            destination_definition = manager.resolve_destination(
                destination.schema_name,
                destination.table_name,
                import_options,
                expected_columns,
                use_timestamp=options.use_timestamp,
                existing=existing,
            )
            result = self._import_by_table_copy(
                api,
                command,
                source_context,
                destination_definition,
                expected_columns,
                options,
            )

        return self._build_response(
            api, destination.schema_name, destination.table_name, result
        )
