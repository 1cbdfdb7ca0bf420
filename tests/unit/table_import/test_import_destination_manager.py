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

from unittest import mock

import pytest

from bqdriver.column_metadata import ColumnCollection
from bqdriver.driver_exceptions import (
    ColumnsMismatchException,
    ObjectAlreadyExistsException,
)
from bqdriver.table_import.import_commands import ImportOptions
from bqdriver.table_import.import_destination_manager import ImportDestinationManager
from bqdriver.table_import.import_options import CreateMode, ImportType

from tests.unit.test_functions import FakeDriverApi, table_definition


@pytest.fixture
def api():
    api = FakeDriverApi()
    api.add_table(table_definition("w", "dst", [("a", "INT64")]))
    return api


def expected_columns():
    return table_definition("w", "x", [("a", "INT64"), ("b", "STRING")]).columns


def test_apply_create_mode_no_mode(api):
    manager = ImportDestinationManager(api)
    existing = manager.reflect("w", "dst")
    assert manager.apply_create_mode("w", "dst", ImportOptions(), existing) is existing
    assert manager.apply_create_mode("w", "new", ImportOptions(), None) is None


@pytest.mark.parametrize(
    "import_type", [ImportType.FULL, ImportType.INCREMENTAL, ImportType.VIEW, ImportType.CLONE]
)
def test_apply_create_mode_create(api, import_type):
    manager = ImportDestinationManager(api)
    options = ImportOptions(create_mode=CreateMode.CREATE, import_type=import_type)
    with pytest.raises(ObjectAlreadyExistsException) as exc_info:
        manager.apply_create_mode("w", "dst", options, manager.reflect("w", "dst"))
    assert str(exc_info.value) == 'Table "w"."dst" already exists.'
    assert exc_info.value.code == 2006
    # A missing destination is fine
    assert manager.apply_create_mode("w", "new", options, None) is None


@pytest.mark.parametrize("import_type", [ImportType.VIEW, ImportType.CLONE])
def test_apply_create_mode_replace_drops(api, import_type):
    manager = ImportDestinationManager(api)
    options = ImportOptions(create_mode=CreateMode.REPLACE, import_type=import_type)
    assert manager.apply_create_mode("w", "dst", options, manager.reflect("w", "dst")) is None
    assert api.dropped == [("w", "dst")]
    assert not api.table_exists("w", "dst")


def test_apply_create_mode_replace_table_import(api):
    manager = ImportDestinationManager(api)
    options = ImportOptions(create_mode=CreateMode.REPLACE, import_type=ImportType.FULL)
    with pytest.raises(ObjectAlreadyExistsException):
        manager.apply_create_mode("w", "dst", options, manager.reflect("w", "dst"))
    assert api.dropped == []


def test_destination_definition():
    manager = ImportDestinationManager(FakeDriverApi())
    definition = manager.destination_definition(
        "w", "new", expected_columns(), dedup_columns=["a"], use_timestamp=True
    )
    assert definition.full_name == "w.new"
    assert definition.column_names == ["a", "b", "_timestamp"]
    assert definition.get_column("_timestamp").data_type == "TIMESTAMP"
    assert definition.primary_keys == ["a"]
    assert not definition.is_temporary


def test_destination_definition_timestamp_present():
    columns = table_definition("w", "x", [("a", "INT64"), ("_timestamp", "TIMESTAMP")]).columns
    definition = ImportDestinationManager(FakeDriverApi()).destination_definition(
        "w", "new", columns, use_timestamp=True
    )
    assert definition.column_names == ["a", "_timestamp"]
    definition = ImportDestinationManager(FakeDriverApi()).destination_definition(
        "w", "new", expected_columns()
    )
    assert definition.column_names == ["a", "b"]


def test_resolve_destination_existing(api):
    manager = ImportDestinationManager(api)
    existing = manager.reflect("w", "dst")
    assert (
        manager.resolve_destination("w", "dst", ImportOptions(), expected_columns(), existing=existing)
        is existing
    )
    assert api.created_tables == []


def test_resolve_destination_creates_table(api):
    manager = ImportDestinationManager(api)
    options = ImportOptions(dedup_columns_names=["b"])
    definition = manager.resolve_destination("w", "new", options, expected_columns())
    assert api.created_tables == [definition]
    assert definition.primary_keys == ["b"]
    assert api.sql_containing("CREATE TABLE `w`.`new`")


@pytest.mark.parametrize("import_type", [ImportType.VIEW, ImportType.CLONE])
def test_resolve_destination_self_creating(api, import_type):
    manager = ImportDestinationManager(api)
    definition = manager.resolve_destination(
        "w", "new", ImportOptions(import_type=import_type), expected_columns()
    )
    assert definition.column_names == ["a", "b"]
    assert api.created_tables == []


def test_validate_incremental_delegates():
    reconciler = mock.Mock()
    manager = ImportDestinationManager(FakeDriverApi(), reconciler=reconciler)
    destination = table_definition("w", "dst", [("a", "INT64")])
    source = table_definition("s", "src", [("a", "INT64")])
    columns = ColumnCollection(source.columns)
    manager.validate_incremental(destination, columns, source)
    reconciler.validate_incremental.assert_called_once_with(destination, columns, source)


def test_validate_dedup_columns(api):
    manager = ImportDestinationManager(api)
    manager.validate_dedup_columns("w", "dst", ["A", "b"], expected_columns())
    manager.validate_dedup_columns("w", "dst", [], expected_columns())
    with pytest.raises(ColumnsMismatchException) as exc_info:
        manager.validate_dedup_columns("w", "dst", ["nope", "a", "other"], expected_columns())
    assert str(exc_info.value) == (
        "Some columns are missing in destination table w.dst. Missing columns: nope,other"
    )
    assert exc_info.value.code == 2001
