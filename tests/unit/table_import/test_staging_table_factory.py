# Copyright 2016 The GOE Authors. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import pytest

from bqdriver.bigquery.bigquery_column import BIGQUERY_MAX_STRING_LENGTH
from bqdriver.table_import.staging_table_factory import StagingTableFactory

from tests.unit.test_functions import column_mappings, table_definition


@pytest.fixture
def destination():
    return table_definition(
        "w",
        "dst",
        [("id", "INT64", None, False), ("name", "STRING", 10), ("_timestamp", "TIMESTAMP")],
        primary_keys=["id"],
    )


def test_from_column_mappings(destination):
    staging = StagingTableFactory().from_column_mappings(
        destination, column_mappings([("a", "name"), ("b", "ID"), ("c", "extra")])
    )
    assert staging.schema_name == "w"
    assert staging.table_name.startswith("__temp_")
    assert staging.is_temporary
    assert staging.column_names == ["name", "ID", "extra"]
    assert staging.get_column("name").format_data_type() == "STRING(10)"
    assert staging.get_column("name").nullable
    assert staging.get_column("ID").data_type == "INT64"
    assert not staging.get_column("ID").nullable
    extra = staging.get_column("extra")
    assert extra.data_type == "STRING"
    assert extra.data_length == BIGQUERY_MAX_STRING_LENGTH
    assert staging.primary_keys == ["id"]
    # Destination untouched
    assert destination.column_names == ["id", "name", "_timestamp"]


def test_from_column_mappings_without_key_column(destination):
    staging = StagingTableFactory().from_column_mappings(
        destination, column_mappings([("a", "name")])
    )
    assert staging.primary_keys == []


def test_staging_names_are_unique(destination):
    factory = StagingTableFactory("stg_")
    mappings = column_mappings([("a", "name")])
    name1 = factory.from_column_mappings(destination, mappings).table_name
    name2 = factory.from_column_mappings(destination, mappings).table_name
    assert name1.startswith("stg_")
    assert name1 != name2


def test_from_source_column_names(destination):
    staging = StagingTableFactory().from_source_column_names(
        destination, ["name", "id", "other"]
    )
    assert staging.column_names == ["name", "id", "other"]
    assert all(_.nullable for _ in staging.columns)
    assert staging.get_column("id").data_type == "INT64"
    assert staging.get_column("other").data_length == BIGQUERY_MAX_STRING_LENGTH
    assert staging.primary_keys == []
    assert staging.is_temporary
