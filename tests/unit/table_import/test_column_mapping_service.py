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

from bqdriver.column_metadata import ColumnCollection, ColumnMetadataException
from bqdriver.driver_exceptions import ColumnsMismatchException
from bqdriver.table_import.column_mapping_service import ColumnMappingService, resolve

from tests.unit.test_functions import column_mappings, table_definition


@pytest.fixture
def source_def():
    return table_definition(
        "s",
        "src",
        [("id", "INT64", None, False), ("name", "STRING", 20), ("amount", "NUMERIC", "10,2")],
    )


def test_identity_mapping(source_def):
    columns = ColumnMappingService().build_destination_columns(source_def, [])
    assert isinstance(columns, ColumnCollection)
    assert columns.names == ["id", "name", "amount"]
    assert columns.get("name").format_data_type() == "STRING(20)"
    assert not columns.get("id").nullable
    # Copies, not the source objects
    assert columns[0] is not source_def.columns[0]


def test_mapped_columns(source_def):
    columns = resolve(source_def, column_mappings([("AMOUNT", "total"), ("id", "key")]))
    assert columns.names == ["total", "key"]
    assert columns.get("total").format_data_type() == "NUMERIC(10,2)"
    assert columns.get("key").data_type == "INT64"
    assert source_def.column_names == ["id", "name", "amount"]


def test_missing_source_columns(source_def):
    with pytest.raises(ColumnsMismatchException) as exc_info:
        resolve(source_def, column_mappings([("id", "id"), ("x", "x"), ("y", "y")]))
    assert str(exc_info.value) == (
        "Some columns are missing in source table s.src. Missing columns: x,y"
    )
    assert exc_info.value.code == 2001


def test_duplicate_destination_names(source_def):
    with pytest.raises(ColumnMetadataException):
        resolve(source_def, column_mappings([("id", "a"), ("name", "A")]))
