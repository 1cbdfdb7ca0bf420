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

""" ImportDestinationManager: resolves, creates, replaces and validates import destinations.
"""

import logging
from typing import Optional

from bqdriver.bigquery.bigquery_column import (
    BIGQUERY_TYPE_TIMESTAMP,
    TIMESTAMP_COLUMN_NAME,
    BigQueryColumn,
)
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import CaseInsensitiveNameIndex
from bqdriver.driver_exceptions import (
    ColumnsMismatchException,
    ObjectAlreadyExistsException,
)
from bqdriver.table_import.import_options import CreateMode, ImportType
from bqdriver.table_import.schema_reconciler import SchemaReconciler


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


# Import types creating the destination with their own DDL
SELF_CREATING_IMPORT_TYPES = (ImportType.VIEW, ImportType.CLONE)


class ImportDestinationManager(object):
    def __init__(self, api, reconciler: Optional[SchemaReconciler] = None):
        assert api
        self._api = api
        self._reconciler = reconciler or SchemaReconciler()

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _already_exists(self, schema_name: str, table_name: str):
        return ObjectAlreadyExistsException(
            'Table "%s"."%s" already exists.' % (schema_name, table_name)
        )

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    def reflect(self, schema_name: str, table_name: str) -> Optional[BigQueryTableDefinition]:
        return self._api.get_table_definition(schema_name, table_name)

    def apply_create_mode(
        self,
        schema_name: str,
        table_name: str,
        import_options,
        existing: Optional[BigQueryTableDefinition],
    ) -> Optional[BigQueryTableDefinition]:
        """Enforce the create mode against an existing destination, returns the destination still in place.

        CREATE fails on any existing destination.
        REPLACE drops an existing destination for VIEW and CLONE imports, for other import types it is CREATE.
        """
        create_mode = import_options.create_mode
        if existing is None or create_mode is None:
            return existing
        if (
            create_mode == CreateMode.REPLACE
            and import_options.import_type in SELF_CREATING_IMPORT_TYPES
        ):
            logger.info("Dropping %s before replacing it", existing.full_name)
            self._api.drop_object(schema_name, table_name)
            return None
        raise self._already_exists(schema_name, table_name)

    def destination_definition(
        self,
        schema_name: str,
        table_name: str,
        expected_columns,
        dedup_columns: Optional[list] = None,
        use_timestamp: bool = False,
    ) -> BigQueryTableDefinition:
        columns = list(expected_columns)
        if use_timestamp and TIMESTAMP_COLUMN_NAME not in expected_columns:
            columns.append(BigQueryColumn(TIMESTAMP_COLUMN_NAME, BIGQUERY_TYPE_TIMESTAMP))
        return BigQueryTableDefinition(
            schema_name,
            table_name,
            columns,
            primary_keys=dedup_columns or [],
        )

    def create_table(self, table_definition: BigQueryTableDefinition):
        logger.info("Creating destination %s", table_definition.full_name)
        self._api.create_table(table_definition)

    def resolve_destination(
        self,
        schema_name: str,
        table_name: str,
        import_options,
        expected_columns,
        use_timestamp: bool = False,
        existing: Optional[BigQueryTableDefinition] = None,
    ) -> BigQueryTableDefinition:
        """Return the destination definition, creating the table when it does not exist.
        VIEW and CLONE destinations are left for the import itself to create.
        """
        if existing is not None:
            return existing
        definition = self.destination_definition(
            schema_name,
            table_name,
            expected_columns,
            dedup_columns=import_options.dedup_columns_names,
            use_timestamp=use_timestamp,
        )
        if import_options.import_type not in SELF_CREATING_IMPORT_TYPES:
            self.create_table(definition)
        return definition

    def validate_dedup_columns(
        self, schema_name: str, table_name: str, dedup_columns: list, columns
    ):
        """Raise ColumnsMismatchException naming every dedup column that is not one of columns."""
        missing = CaseInsensitiveNameIndex(columns).missing(dedup_columns or [])
        if missing:
            raise ColumnsMismatchException.missing_columns(
                "destination", schema_name, table_name, missing
            )

    def validate_incremental(
        self,
        destination_definition: BigQueryTableDefinition,
        expected_columns,
        source_definition: BigQueryTableDefinition,
    ):
        self._reconciler.validate_incremental(
            destination_definition, expected_columns, source_definition
        )
