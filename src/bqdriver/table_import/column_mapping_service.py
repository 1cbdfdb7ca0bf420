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

""" ColumnMappingService: destination columns for a source table and a list of column mappings.
"""

import logging

from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import ColumnCollection
from bqdriver.driver_exceptions import ColumnsMismatchException


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class ColumnMappingService(object):
    """Builds the columns a destination is expected to have.

    With no mappings every source column is expected under its own name, in source order.
    Otherwise one column per mapping, in mapping order, with the definition of the mapped
    source column and the destination column name. Mappings therefore express both renames
    and reordering.
    """

    def build_destination_columns(
        self, source_definition: BigQueryTableDefinition, column_mappings: list
    ) -> ColumnCollection:
        assert source_definition
        if not column_mappings:
            return self._build_identity_mapping(source_definition)
        return self._build_mapped_columns(source_definition, column_mappings)

    def _build_identity_mapping(
        self, source_definition: BigQueryTableDefinition
    ) -> ColumnCollection:
        return ColumnCollection([_.clone() for _ in source_definition.columns])

    def _build_mapped_columns(
        self, source_definition: BigQueryTableDefinition, column_mappings: list
    ) -> ColumnCollection:
        source_index = source_definition.columns.name_index
        missing_source_names = source_index.missing(
            [_.source_column_name for _ in column_mappings]
        )
        if missing_source_names:
            raise ColumnsMismatchException.missing_columns(
                "source",
                source_definition.schema_name,
                source_definition.table_name,
                missing_source_names,
            )
        columns = [
            source_index.get(_.source_column_name).clone(name=_.destination_column_name)
            for _ in column_mappings
        ]
        logger.debug(
            "Mapped columns for %s: %s",
            source_definition.full_name,
            ", ".join(_.name for _ in columns),
        )
        return ColumnCollection(columns)


def resolve(source_definition: BigQueryTableDefinition, column_mappings: list) -> ColumnCollection:
    return ColumnMappingService().build_destination_columns(
        source_definition, column_mappings
    )
