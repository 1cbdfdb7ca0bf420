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

""" SchemaReconciler: validates the columns an import will write against an existing destination.

    Matching rules, all name matching is case insensitive:
      - The driver managed _timestamp column is never expected from the source.
      - A STRING destination column accepts any source type and length.
      - Otherwise types must match after alias normalisation (INT/INTEGER/INT64 etc)
        and lengths must be identical.
      - Nullability is not compared. Views drop NOT NULL and BigQuery enforces
        NOT NULL when rows are written, a Table -> View -> Table round trip must validate.
"""

import logging

from bqdriver.bigquery.bigquery_column import (
    BIGQUERY_TYPE_STRING,
    TIMESTAMP_COLUMN_NAME,
    normalize_type,
)
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import (
    CaseInsensitiveNameIndex,
    ColumnMetadataInterface,
)
from bqdriver.driver_exceptions import ColumnsMismatchException


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())

SYSTEM_COLUMN_NAMES = [TIMESTAMP_COLUMN_NAME]


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def columns_match(
    expected: ColumnMetadataInterface, actual: ColumnMetadataInterface
) -> bool:
    """Does actual (destination) accept data described by expected (source)."""
    if actual.data_type.upper() == BIGQUERY_TYPE_STRING:
        return True
    if normalize_type(expected.data_type) != normalize_type(actual.data_type):
        return False
    return bool((expected.data_length or "") == (actual.data_length or ""))


###########################################################################
# CLASSES
###########################################################################


class MismatchReport(object):
    """Discrepancies found in one reconciliation pass."""

    def __init__(self):
        self.missing_in_source = []
        self.missing_in_destination = []
        self.definition_mismatches = []
        self._messages = []

    def add_missing_in_source(self, source_definition, column_names: list):
        self.missing_in_source.extend(column_names)
        self._messages.append(
            ColumnsMismatchException.missing_columns_message(
                "source",
                source_definition.schema_name,
                source_definition.table_name,
                column_names,
                quoted=True,
            )
        )

    def add_missing_in_destination(self, destination_definition, column_names: list):
        self.missing_in_destination.extend(column_names)
        self._messages.append(
            ColumnsMismatchException.missing_columns_message(
                "workspace",
                destination_definition.schema_name,
                destination_definition.table_name,
                column_names,
                quoted=True,
            )
        )

    def add_definition_mismatches(self, mismatches: list):
        self.definition_mismatches.extend(mismatches)
        self._messages.append(
            ColumnsMismatchException.definitions_mismatch_message(mismatches)
        )

    def is_empty(self) -> bool:
        return not self._messages

    @property
    def messages(self) -> list:
        return list(self._messages)

    def raise_if_any(self):
        if not self.is_empty():
            exc = ColumnsMismatchException("; ".join(self._messages))
            exc.report = self
            raise exc


class SchemaReconciler(object):
    def validate_incremental(
        self,
        destination_definition: BigQueryTableDefinition,
        expected_columns,
        source_definition: BigQueryTableDefinition,
    ):
        """Raise ColumnsMismatchException listing every discrepancy between expected_columns and the destination.
        Every check runs before raising so one fix and retry cycle surfaces every problem.
        """
        report = self.reconcile(
            destination_definition, expected_columns, source_definition
        )
        report.raise_if_any()

    def reconcile(
        self,
        destination_definition: BigQueryTableDefinition,
        expected_columns,
        source_definition: BigQueryTableDefinition,
    ) -> MismatchReport:
        report = MismatchReport()
        actual_index = destination_definition.columns.name_index
        expected_index = CaseInsensitiveNameIndex(expected_columns)
        system_index = CaseInsensitiveNameIndex(
            SYSTEM_COLUMN_NAMES, name_fn=lambda x: x
        )

        missing_in_source = [
            _.name
            for _ in destination_definition.columns
            if _.name not in system_index and _.name not in expected_index
        ]
        if missing_in_source:
            report.add_missing_in_source(source_definition, missing_in_source)

        missing_in_destination = actual_index.missing(
            [_.name for _ in expected_columns]
        )
        if missing_in_destination:
            report.add_missing_in_destination(
                destination_definition, missing_in_destination
            )

        mismatches = []
        for expected in expected_columns:
            actual = actual_index.get(expected.name)
            if actual is None:
                continue
            if not columns_match(expected, actual):
                mismatches.append(
                    (actual.name, expected.sql_definition(), actual.sql_definition())
                )
        if mismatches:
            report.add_definition_mismatches(mismatches)

        if not report.is_empty():
            logger.info(
                "Destination %s does not match: %s",
                destination_definition.full_name,
                report.messages,
            )
        return report
