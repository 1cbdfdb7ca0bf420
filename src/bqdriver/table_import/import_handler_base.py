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

""" ImportHandlerBase: code shared by the table import entry points.
"""

import logging
from typing import Callable, Optional

from bqdriver.bigquery.bigquery_client import get_bigquery_client
from bqdriver.bigquery.bigquery_driver_api import BigQueryDriverApi
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.config.driver_config import DriverConfig
from bqdriver.driver_messages import VVERBOSE, DriverMessages
from bqdriver.table_import.import_commands import (
    RuntimeOptions,
    TableImportResponse,
    Timer,
)
from bqdriver.table_import.import_state import ImportResult


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


def default_api_factory(credentials, config, messages, runtime_options=None):
    runtime_options = runtime_options or RuntimeOptions()
    client = get_bigquery_client(
        credentials,
        config,
        run_id=runtime_options.run_id,
        query_tags=runtime_options.query_tags,
    )
    return BigQueryDriverApi(client, messages, query_timeout_s=config.query_timeout_s)


class ImportHandlerBase(object):
    """Base class for import handlers, subclasses implement _import().

    api_factory: callable(credentials, config, messages, runtime_options) returning the driver api
                 for one operation, default_api_factory unless supplied.
    config_overrides: DriverConfig values replaced for this handler only.
    """

    log_name = "import_table"

    def __init__(
        self,
        config: Optional[DriverConfig] = None,
        messages: Optional[DriverMessages] = None,
        api_factory: Optional[Callable] = None,
        **config_overrides
    ):
        config = config or DriverConfig.as_defaults()
        if config_overrides:
            config = config.override(**config_overrides)
        self._config = config
        self._messages = messages or DriverMessages.from_options(config)
        self._api_factory = api_factory or default_api_factory

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _get_api(self, credentials, runtime_options=None):
        return self._api_factory(
            credentials, self._config, self._messages, runtime_options
        )

    def _import(self, api, credentials, command, features, runtime_options):
        raise NotImplementedError

    def _drop_staging_table(self, api, staging_definition: BigQueryTableDefinition):
        """Failures are logged and discarded, they must never replace the outcome of the import."""
        try:
            api.drop_table(staging_definition.schema_name, staging_definition.table_name)
        except Exception as exc:
            self._messages.log(
                "Failed to drop staging table %s: %s"
                % (staging_definition.full_name, str(exc)),
                detail=VVERBOSE,
            )

    def _build_response(
        self, api, schema_name: str, table_name: str, result: ImportResult
    ) -> TableImportResponse:
        rows, size_bytes = api.get_table_stats(schema_name, table_name)
        return TableImportResponse(
            table_rows_count=rows,
            table_size_bytes=size_bytes,
            imported_columns=result.imported_columns,
            imported_rows_count=result.imported_rows_count,
            timers=[
                Timer(name=_["name"], duration=_["durationSeconds"])
                for _ in result.timers
            ],
        )

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    def __call__(
        self,
        credentials,
        command,
        features: Optional[list] = None,
        runtime_options: Optional[RuntimeOptions] = None,
    ) -> TableImportResponse:
        if self._config.log_path:
            self._messages.init_log(self._config.log_path, self.log_name)
        try:
            api = self._get_api(credentials, runtime_options)
            response = self._import(
                api, credentials, command, features or [], runtime_options
            )
            self._messages.log_step_deltas()
            self._messages.log_messages()
            return response
        finally:
            self._messages.close_log()
