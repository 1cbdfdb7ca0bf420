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
from pydantic import ValidationError

from bqdriver.table_import.import_commands import (
    BackendCredentials,
    CsvSourceType,
    FilePath,
    RuntimeOptions,
    TableImportFromFileCommand,
    TableImportFromTableCommand,
    TableImportResponse,
    Timer,
)
from bqdriver.table_import.import_options import (
    CreateMode,
    DedupType,
    ImportStrategy,
    ImportType,
)
from bqdriver.bigquery.bigquery_filter_query_builder import (
    FilterDataType,
    FilterOperator,
)

from tests.unit.test_functions import file_command


TABLE_COMMAND_JSON = """{
    "source": {
        "schemaName": "s",
        "tableName": "src",
        "columnMappings": [{"sourceColumnName": "a", "destinationColumnName": "b"}],
        "whereFilters": [{"columnName": "a", "operator": "gt", "values": ["1"], "dataType": "INTEGER"}],
        "limit": 10
    },
    "destination": {"schemaName": "w", "tableName": "dst"},
    "importOptions": {
        "importType": "FULL",
        "dedupType": "UPDATE_DUPLICATES",
        "dedupColumnsNames": ["b"],
        "createMode": "REPLACE",
        "importStrategy": "STRING_TABLE",
        "timestampColumn": "_timestamp"
    }
}"""


def test_table_command_from_json():
    command = TableImportFromTableCommand.from_json(TABLE_COMMAND_JSON)
    assert command.source.schema_name == "s"
    assert command.source.column_mappings[0].destination_column_name == "b"
    where_filter = command.source.where_filters[0]
    assert where_filter.operator == FilterOperator.GT
    assert where_filter.data_type == FilterDataType.INTEGER
    assert command.source.limit == 10
    assert command.source.seconds == 0
    options = command.import_options
    assert options.import_type == ImportType.FULL
    assert options.dedup_type == DedupType.UPDATE_DUPLICATES
    assert options.create_mode == CreateMode.REPLACE
    assert options.import_strategy == ImportStrategy.STRING_TABLE
    assert options.timestamp_column == "_timestamp"


def test_table_command_defaults():
    command = TableImportFromTableCommand.from_json(
        '{"source": {"schemaName": "s", "tableName": "t"},'
        ' "destination": {"schemaName": "w", "tableName": "d"}}'
    )
    assert command.source.column_mappings == []
    assert command.source.where_filters == []
    assert command.import_options.import_type == ImportType.FULL
    assert command.import_options.dedup_type == DedupType.INSERT_DUPLICATES
    assert command.import_options.create_mode is None
    assert command.import_options.import_strategy == ImportStrategy.USER_DEFINED_TABLE


@pytest.mark.parametrize("field", ["limit", "seconds"])
def test_negative_limit_and_seconds(field):
    with pytest.raises(ValidationError):
        TableImportFromTableCommand.model_validate(
            {
                "source": {"schemaName": "s", "tableName": "t", field: -1},
                "destination": {"schemaName": "w", "tableName": "d"},
            }
        )


def test_unknown_enum_value():
    with pytest.raises(ValidationError):
        TableImportFromTableCommand.model_validate(
            {
                "source": {"schemaName": "s", "tableName": "t"},
                "destination": {"schemaName": "w", "tableName": "d"},
                "importOptions": {"importType": "MERGE"},
            }
        )


@pytest.mark.parametrize(
    "root,path,file_name,expected",
    [
        ("bucket", "a/b", "f.csv", "gs://bucket/a/b/f.csv"),
        ("bucket/", "/a/b/", "f.csv", "gs://bucket/a/b/f.csv"),
        ("bucket", "", "f.csv", "gs://bucket/f.csv"),
    ],
)
def test_file_path_uri(root, path, file_name, expected):
    assert FilePath(root=root, path=path, file_name=file_name).uri == expected


def test_file_command_round_trip():
    command = file_command(["a", "b"], source_type=CsvSourceType.SLICED_FILE)
    payload = command.to_json()
    assert '"formatTypeOptions"' in payload
    assert '"columnsNames":["a","b"]' in payload
    assert TableImportFromFileCommand.from_json(payload) == command


def test_credentials_secret_hidden():
    credentials = BackendCredentials(principal="{}", secret="private", region="EU")
    assert "private" not in repr(credentials)
    assert credentials.secret.get_secret_value() == "private"


def test_runtime_options():
    options = RuntimeOptions.from_json('{"runId": "r1", "queryTags": {"team": "x"}}')
    assert options.run_id == "r1"
    assert options.query_tags == {"team": "x"}
    assert RuntimeOptions().query_tags == {}


def test_response_to_json():
    response = TableImportResponse(
        table_rows_count=10,
        table_size_bytes=80,
        imported_columns=["a"],
        imported_rows_count=10,
        timers=[Timer(name="toStaging", duration=1.5)],
    )
    assert response.to_json() == (
        '{"tableRowsCount":10,"tableSizeBytes":80,"importedColumns":["a"],'
        '"importedRowsCount":10,"timers":[{"name":"toStaging","duration":1.5}]}'
    )
