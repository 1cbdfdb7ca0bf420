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

""" ImportTableFromFileHandler: loads CSV files from GCS into an existing BigQuery table.
"""

import logging

from bqdriver.bigquery.bigquery_client import credentials_info
from bqdriver.bigquery.bigquery_driver_api import BigQueryInputDataException
from bqdriver.driver_exceptions import (
    ImportValidationException,
    ObjectNotFoundException,
)
from bqdriver.table_import.import_commands import (
    CsvSourceType,
    FileFormat,
    FileProvider,
    TableImportFromFileCommand,
    TableImportResponse,
)
from bqdriver.table_import.import_destination_manager import ImportDestinationManager
from bqdriver.table_import.import_handler_base import ImportHandlerBase
from bqdriver.table_import.import_options import DedupType, create_import_options
from bqdriver.table_import.import_state import ImportState
from bqdriver.table_import.staging_table_factory import StagingTableFactory
from bqdriver.table_import.to_final_table_importer import (
    FullImporter,
    IncrementalImporter,
)
from bqdriver.table_import.to_stage_importer import ToStageImporter


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class ImportTableFromFileHandler(ImportHandlerBase):
    log_name = "import_table_from_file"

    def _import(
        self, api, credentials, command, features, runtime_options
    ) -> TableImportResponse:
        assert isinstance(command, TableImportFromFileCommand)
        assert command.file_provider == FileProvider.GCS, "Only GCS is supported as file provider"
        assert command.file_format == FileFormat.CSV, "Only CSV is supported as file format"
        csv_options = command.format_type_options
        assert (
            csv_options.source_type != CsvSourceType.DIRECTORY
        ), "Directory source type is not supported"

        import_options = command.import_options
        destination = command.destination
        options = create_import_options(import_options)
        self._messages.log(
            "Import %s into %s.%s"
            % (command.file_path.uri, destination.schema_name, destination.table_name)
        )

        destination_definition = api.get_table_definition(
            destination.schema_name, destination.table_name
        )
        if destination_definition is None:
            raise ObjectNotFoundException(
                'Table "%s"."%s" not found.'
                % (destination.schema_name, destination.table_name)
            )
        if (
            import_options.dedup_type == DedupType.UPDATE_DUPLICATES
            and import_options.dedup_columns_names
        ):
            ImportDestinationManager(api).validate_dedup_columns(
                destination.schema_name,
                destination.table_name,
                import_options.dedup_columns_names,
                destination_definition.columns,
            )
            destination_definition = destination_definition.with_primary_keys(
                import_options.dedup_columns_names
            )

        if options.is_incremental:
            final_importer = IncrementalImporter(
                api, messages=self._messages, dedup_type=import_options.dedup_type
            )
            final_importer.check_supported(destination_definition)
        else:
            final_importer = FullImporter(api, messages=self._messages)

        staging_definition = StagingTableFactory(
            self._config.staging_table_prefix
        ).from_source_column_names(destination_definition, csv_options.columns_names)
        state = ImportState(staging_definition.table_name, messages=self._messages)
        token = (
            credentials_info(credentials)
            if csv_options.source_type == CsvSourceType.SLICED_FILE
            else None
        )
        try:
            api.create_table(staging_definition)
            ToStageImporter(api, messages=self._messages).load_files_to_staging_table(
                command.file_path,
                csv_options,
                staging_definition,
                options,
                token=token,
                state=state,
            )
            result = final_importer.import_to_table(
                staging_definition, destination_definition, options, state
            )
        except BigQueryInputDataException as exc:
            raise ImportValidationException(str(exc)) from exc
        finally:
            self._drop_staging_table(api, staging_definition)

        return self._build_response(
            api, destination.schema_name, destination.table_name, result
        )
