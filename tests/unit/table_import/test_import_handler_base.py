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

import os
from unittest import mock

import pytest

from bqdriver.bigquery.bigquery_driver_api import BigQueryDriverApi
from bqdriver.table_import.import_commands import RuntimeOptions, TableImportResponse
from bqdriver.table_import.import_handler_base import (
    ImportHandlerBase,
    default_api_factory,
)
from bqdriver.table_import.import_state import ImportResult

from tests.unit.test_functions import (
    FAKE_ENV,
    FakeDriverApi,
    build_config,
    build_messages,
    fake_credentials,
    table_definition,
)


class EchoHandler(ImportHandlerBase):
    log_name = "echo_import"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def _import(self, api, credentials, command, features, runtime_options):
        self.calls.append((api, credentials, command, features, runtime_options))
        self._messages.log("Importing %s" % command)
        self._messages.notice("Echoed %s" % command)
        return self._build_response(
            api, "w", "dst", ImportResult(imported_rows_count=2, imported_columns=["a"])
        )


@pytest.fixture
def api():
    api = FakeDriverApi()
    api.add_table(table_definition("w", "dst", [("a", "INT64")]), rows=3)
    return api


def test_call(api):
    api_factory = mock.Mock(return_value=api)
    config = build_config()
    messages = build_messages()
    handler = EchoHandler(config=config, messages=messages, api_factory=api_factory)
    credentials = fake_credentials()
    runtime_options = RuntimeOptions(run_id="r1")
    response = handler(credentials, "cmd", runtime_options=runtime_options)
    assert isinstance(response, TableImportResponse)
    assert response.table_rows_count == 3
    assert response.table_size_bytes == 24
    assert response.imported_rows_count == 2
    assert response.imported_columns == ["a"]
    api_factory.assert_called_once_with(credentials, config, messages, runtime_options)
    assert handler.calls == [(api, credentials, "cmd", [], runtime_options)]


def test_call_with_features(api):
    handler = EchoHandler(
        config=build_config(), messages=build_messages(), api_factory=lambda *a: api
    )
    handler(fake_credentials(), "cmd", features=["f1"])
    assert handler.calls[0][3] == ["f1"]


def test_config_overrides():
    handler = EchoHandler(config=build_config(), staging_table_prefix="stg_", quiet=True)
    assert handler._config.staging_table_prefix == "stg_"
    assert handler._config.quiet


def test_default_config():
    with mock.patch.dict(os.environ, FAKE_ENV, clear=True):
        handler = EchoHandler(messages=build_messages())
    assert handler._config.staging_table_prefix == "__temp_"


def test_not_implemented(api):
    handler = ImportHandlerBase(
        config=build_config(), messages=build_messages(), api_factory=lambda *a: api
    )
    with pytest.raises(NotImplementedError):
        handler(fake_credentials(), "cmd")


def test_log_file(api, tmp_path):
    handler = EchoHandler(
        config=build_config(log_path=str(tmp_path)),
        messages=build_messages(),
        api_factory=lambda *a: api,
    )
    handler(fake_credentials(), "cmd")
    log_files = list(tmp_path.glob("echo_import_*.log"))
    assert len(log_files) == 1
    log_text = log_files[0].read_text()
    assert "Importing cmd" in log_text
    assert "Notices:\nEchoed cmd\n" in log_text
    assert handler._messages._log_fh.closed


def test_log_file_closed_on_failure(tmp_path):
    failing_api = FakeDriverApi()
    handler = EchoHandler(
        config=build_config(log_path=str(tmp_path)),
        messages=build_messages(),
        api_factory=lambda *a: failing_api,
    )
    with mock.patch.object(
        EchoHandler, "_import", side_effect=RuntimeError("boom")
    ), pytest.raises(RuntimeError):
        handler(fake_credentials(), "cmd")
    assert handler._messages._log_fh.closed


def test_drop_staging_table_failure_is_logged():
    api = FakeDriverApi()
    api.drop_error = RuntimeError("not allowed")
    messages = mock.Mock()
    handler = EchoHandler(config=build_config(), messages=messages)
    staging = table_definition("w", "__temp_1", [("a", "INT64")])
    handler._drop_staging_table(api, staging)
    assert api.dropped == [("w", "__temp_1")]
    assert "not allowed" in messages.log.call_args[0][0]


def test_default_api_factory():
    client = mock.Mock()
    config = build_config(query_timeout_s=30)
    credentials = fake_credentials()
    with mock.patch(
        "bqdriver.table_import.import_handler_base.get_bigquery_client",
        return_value=client,
    ) as get_client:
        api = default_api_factory(
            credentials,
            config,
            build_messages(),
            RuntimeOptions(run_id="r1", query_tags={"team": "data"}),
        )
    assert isinstance(api, BigQueryDriverApi)
    get_client.assert_called_once_with(
        credentials, config, run_id="r1", query_tags={"team": "data"}
    )


def test_default_api_factory_without_runtime_options():
    with mock.patch(
        "bqdriver.table_import.import_handler_base.get_bigquery_client",
        return_value=mock.Mock(),
    ) as get_client:
        default_api_factory(fake_credentials(), build_config(), build_messages())
    assert get_client.call_args[1] == {"run_id": None, "query_tags": {}}
