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

from bqdriver.bigquery.bigquery_driver_api import BigQueryInputDataException
from bqdriver.driver_exceptions import (
    ColumnsMismatchException,
    ImportNotImplementedException,
    ImportValidationException,
    ObjectNotFoundException,
)
from bqdriver.table_import.import_commands import CsvSourceType
from bqdriver.table_import.import_options import DedupType, ImportType
from bqdriver.table_import.import_table_from_file_handler import (
    ImportTableFromFileHandler,
)

from tests.unit.test_functions import (
    FAKE_SERVICE_ACCOUNT,
    FakeDriverApi,
    build_config,
    build_messages,
    fake_credentials,
    file_command,
    table_definition,
)


def run_import(api, command):
    handler = ImportTableFromFileHandler(
        config=build_config(), messages=build_messages(), api_factory=lambda *a: api
    )
    return handler(fake_credentials(), command)


@pytest.fixture
def api():
    api = FakeDriverApi(dml_rows=7, load_rows=7)
    api.add_table(
        table_definition("w", "dst", [("id", "INT64"), ("name", "STRING", 20)]), rows=2
    )
    return api


def test_missing_destination(api):
    with pytest.raises(ObjectNotFoundException) as exc_info:
        run_import(api, file_command(["id", "name"], destination_table="nope"))
    assert str(exc_info.value) == 'Table "w"."nope" not found.'
    assert api.created_tables == []


def test_single_file(api):
    command = file_command(
        ["id", "name"], delimiter="|", number_of_ignored_lines=1, import_as_null=["\\N"]
    )
    response = run_import(api, command)

    [staging] = api.created_tables
    assert staging.is_temporary
    assert staging.column_names == ["id", "name"]
    assert all(_.nullable for _ in staging.columns)
    assert api.loads == [
        {
            "db_name": "w",
            "table_name": staging.table_name,
            "source_uris": ["gs://bucket/exports/2024/data.csv"],
            "field_delimiter": "|",
            "quote_character": '"',
            "skip_leading_rows": 1,
            "null_marker": "\\N",
        }
    ]
    [final_sql] = api.sql_containing("BEGIN TRANSACTION")
    assert "FROM   `w`.`%s`;" % staging.table_name in final_sql
    assert api.dropped == [("w", staging.table_name)]
    assert response.table_rows_count == 7
    assert response.imported_rows_count == 7
    assert response.imported_columns == ["id", "name"]
    assert [_.name for _ in response.timers] == ["toStaging", "copyFromStagingToTarget"]


def test_sliced_file(api):
    manifest = b'{"entries": [{"url": "gs://bucket/exports/2024/part_0.csv"}]}'
    command = file_command(
        ["id", "name"], source_type=CsvSourceType.SLICED_FILE, file_name="manifest.json"
    )
    with mock.patch(
        "bqdriver.table_import.to_stage_importer.fsspec.open",
        mock.mock_open(read_data=manifest),
    ) as fake_open:
        run_import(api, command)
    uri, mode = fake_open.call_args[0]
    assert uri == "gs://bucket/exports/2024/manifest.json"
    assert mode == "rb"
    token = fake_open.call_args[1]["token"]
    assert token["client_email"] == FAKE_SERVICE_ACCOUNT["client_email"]
    assert "private_key" in token
    assert api.loads[0]["source_uris"] == ["gs://bucket/exports/2024/part_0.csv"]


def test_directory_not_supported(api):
    with pytest.raises(AssertionError):
        run_import(api, file_command(["id"], source_type=CsvSourceType.DIRECTORY))
    assert api.created_tables == []


def test_load_error(api):
    api.load_error = BigQueryInputDataException("Could not parse 'x' as INT64 for field id")
    with pytest.raises(ImportValidationException) as exc_info:
        run_import(api, file_command(["id", "name"]))
    assert exc_info.value.code == 2001
    assert "Could not parse" in str(exc_info.value)
    assert len(api.dropped) == 1
    assert api.sql_containing("BEGIN TRANSACTION") == []


def test_dedup_columns(api):
    command = file_command(
        ["id", "name"],
        dedup_type=DedupType.UPDATE_DUPLICATES,
        dedup_columns_names=["id"],
    )
    response = run_import(api, command)
    [staging] = api.created_tables
    assert api.sql_containing("PARTITION BY `id`")
    assert api.dropped == [("w", staging.table_name + "_dedup"), ("w", staging.table_name)]
    assert [_.name for _ in response.timers] == [
        "toStaging",
        "dedup",
        "copyFromStagingToTarget",
    ]


def test_incremental_insert(api):
    command = file_command(["id", "name"], import_type=ImportType.INCREMENTAL)
    response = run_import(api, command)
    [staging] = api.created_tables
    assert api.sql_containing("BEGIN TRANSACTION") == []
    [insert_sql] = api.sql_containing("INSERT INTO `w`.`dst`")
    assert insert_sql.startswith("INSERT INTO `w`.`dst` (`id`, `name`)")
    # Existing rows are kept
    assert response.table_rows_count == 9
    assert response.imported_rows_count == 7


def test_incremental_update_duplicates(api):
    command = file_command(
        ["id", "name"],
        import_type=ImportType.INCREMENTAL,
        dedup_type=DedupType.UPDATE_DUPLICATES,
        dedup_columns_names=["id"],
    )
    with pytest.raises(ImportNotImplementedException) as exc_info:
        run_import(api, command)
    assert exc_info.value.code == 2002
    assert api.created_tables == []
    assert api.loads == []


def test_dedup_columns_not_in_destination(api):
    command = file_command(
        ["id", "name"],
        dedup_type=DedupType.UPDATE_DUPLICATES,
        dedup_columns_names=["ID", "nope"],
    )
    with pytest.raises(ColumnsMismatchException) as exc_info:
        run_import(api, command)
    assert str(exc_info.value) == (
        "Some columns are missing in destination table w.dst. Missing columns: nope"
    )
    assert api.created_tables == []
    assert api.loads == []
