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

""" StagingTableFactory: definitions of the short lived tables data is loaded into before the destination.

    Staging columns follow the source order and borrow type, length and default from the
    destination column of the same name. Columns with no destination counterpart are
    maximum length STRING columns.
"""

import logging
from typing import Optional

from bqdriver.bigquery.bigquery_column import gen_generic_string_column
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.column_metadata import CaseInsensitiveNameIndex
from bqdriver.config.driver_defaults import DEFAULT_STAGING_TABLE_PREFIX
from bqdriver.util.misc_functions import unique_object_name


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class StagingTableFactory(object):
    def __init__(self, staging_table_prefix: Optional[str] = None):
        self._staging_table_prefix = staging_table_prefix or DEFAULT_STAGING_TABLE_PREFIX

    def _staging_definition(
        self, destination: BigQueryTableDefinition, columns: list, primary_keys: list
    ) -> BigQueryTableDefinition:
        definition = BigQueryTableDefinition(
            destination.schema_name,
            unique_object_name(self._staging_table_prefix),
            columns,
            primary_keys=primary_keys,
            is_temporary=True,
        )
        logger.debug("Staging table definition: %r", definition)
        return definition

    def from_column_mappings(
        self, destination: BigQueryTableDefinition, column_mappings: list
    ) -> BigQueryTableDefinition:
        """Staging table for a table to table import, in mapping order.
        Destination primary key columns stay NOT NULL and the primary keys are carried over,
        later deduplication relies on them. Keys the mapping does not carry are dropped on purpose,
        BigQueryTableDefinition rejects primary keys that are not columns of the table.
        """
        destination_index = destination.columns.name_index
        primary_key_index = CaseInsensitiveNameIndex(
            destination.primary_keys, name_fn=lambda x: x
        )
        columns = []
        for mapping in column_mappings:
            name = mapping.destination_column_name
            destination_column = destination_index.get(name)
            if destination_column:
                columns.append(
                    destination_column.clone(
                        name=name, nullable=name not in primary_key_index
                    )
                )
            else:
                columns.append(gen_generic_string_column(name))
        staging_index = CaseInsensitiveNameIndex(columns)
        primary_keys = [_ for _ in destination.primary_keys if _ in staging_index]
        return self._staging_definition(destination, columns, primary_keys)

    def from_source_column_names(
        self, destination: BigQueryTableDefinition, source_column_names: list
    ) -> BigQueryTableDefinition:
        """Staging table for a file import, in source column order.
        Every column is nullable and there are no primary keys.
        """
        destination_index = destination.columns.name_index
        columns = []
        for name in source_column_names:
            destination_column = destination_index.get(name)
            if destination_column:
                columns.append(destination_column.clone(name=name, nullable=True))
            else:
                columns.append(gen_generic_string_column(name))
        return self._staging_definition(destination, columns, [])
