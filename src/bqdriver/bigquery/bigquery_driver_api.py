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

""" BigQueryDriverApi: Library for interaction with BigQuery on behalf of driver operations.
    All SQL and API calls made by table import pass through this class, which makes it
    the single point for job configuration, logging of SQL and reflection of table definitions.
"""

from datetime import datetime
import logging
from typing import Optional

from google.api_core.exceptions import BadRequest
from google.cloud import bigquery
from google.cloud.exceptions import NotFound

from bqdriver.bigquery.bigquery_column import column_from_schema_field
from bqdriver.bigquery.bigquery_query_builder import (
    count_rows_sql,
    create_table_sql,
    drop_table_sql,
    drop_view_sql,
)
from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition
from bqdriver.driver_exceptions import get_direct_error_message
from bqdriver.driver_messages import VERBOSE, VVERBOSE
from bqdriver.util.json_tools import serialize_object


###############################################################################
# CONSTANTS
###############################################################################

TABLE_TYPE_TABLE = "TABLE"
TABLE_TYPE_VIEW = "VIEW"

logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class BigQueryDriverApiException(Exception):
    pass


class BigQueryInputDataException(Exception):
    """Data being loaded does not fit the target table, e.g. a malformed CSV row."""

    pass


###########################################################################
# BigQueryDriverApi
###########################################################################


class BigQueryDriverApi(object):
    """BigQuery implementation of the calls table import makes on the warehouse.

    The client is created by the caller (see bigquery_client.get_bigquery_client) and
    is scoped to a single driver operation, nothing is cached between calls.
    """

    def __init__(
        self,
        client: bigquery.Client,
        messages,
        dry_run=False,
        query_timeout_s: Optional[int] = None,
    ):
        """CONSTRUCTOR"""
        assert client
        assert messages
        logger.info("BigQueryDriverApi")
        if dry_run:
            logger.info("* Dry run *")
        self._client = client
        self._messages = messages
        self._dry_run = dry_run
        self._query_timeout_s = query_timeout_s
        self._sql_engine_name = "BigQuery"
        self._log_query_id_tag = "BigQuery Job ID"

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _log(self, msg, detail=None):
        self._messages.log(msg, detail=detail)
        if detail == VVERBOSE:
            logger.debug(msg)
        else:
            logger.info(msg)

    def _add_query_params_to_job_config(self, query_params, job_config):
        """Convert query_params dict of name: (type, value) to QueryJobConfig parameters.
        List values are bound as arrays of the given type.
        """
        if query_params:
            assert isinstance(query_params, dict), "Query parameters must be named"
            param_list = []
            for param_name, (param_type, param_value) in query_params.items():
                if isinstance(param_value, (list, tuple)):
                    param_list.append(
                        bigquery.ArrayQueryParameter(
                            param_name, param_type, list(param_value)
                        )
                    )
                else:
                    param_list.append(
                        bigquery.ScalarQueryParameter(
                            param_name, param_type, param_value
                        )
                    )
            job_config.query_parameters = param_list

    def _bq_table_id(self, db_name: str, table_name: str) -> str:
        assert db_name and table_name
        return "%s.%s.%s" % (self._client.project, db_name, table_name)

    def _default_job_config(self) -> bigquery.QueryJobConfig:
        """All connections are normalized to UTC."""
        return bigquery.QueryJobConfig(
            connection_properties=[bigquery.ConnectionProperty("time_zone", "UTC")]
        )

    def _get_bq_table(self, db_name, table_name) -> Optional[bigquery.Table]:
        try:
            return self._client.get_table(self._bq_table_id(db_name, table_name))
        except NotFound:
            return None

    def _log_sql(self, sql, query_params=None, log_level=VERBOSE):
        self._log("%s SQL: %s" % (self._sql_engine_name, sql), detail=log_level)
        if query_params:
            self._log(
                "Query parameters: %s" % serialize_object(query_params),
                detail=log_level,
            )

    def _run_query_job(self, sql, query_params=None):
        job_config = self._default_job_config()
        self._add_query_params_to_job_config(query_params, job_config)
        query_job = self._client.query(sql, job_config=job_config)
        self._log("%s: %s" % (self._log_query_id_tag, query_job.job_id), detail=VVERBOSE)
        results = query_job.result(timeout=self._query_timeout_s)
        if query_job.state != "DONE":
            raise BigQueryDriverApiException(
                "Unexpected BigQuery job state: %s" % query_job.state
            )
        return query_job, results

    def _execute_ddl_or_dml(self, sql, query_params=None, log_level=VERBOSE):
        """Run one or more statements, returns the number of rows affected by DML (0 for DDL)."""
        assert sql
        assert isinstance(sql, (str, list))
        affected_rows = 0
        sqls = [sql] if isinstance(sql, str) else sql
        for run_sql in sqls:
            self._log_sql(run_sql, query_params=query_params, log_level=log_level)
            if not self._dry_run:
                query_job, _ = self._run_query_job(run_sql, query_params=query_params)
                affected_rows += query_job.num_dml_affected_rows or 0
        return affected_rows

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    def execute_ddl(self, sql, log_level=VERBOSE):
        return self._execute_ddl_or_dml(sql, log_level=log_level)

    def execute_dml(self, sql, query_params=None, log_level=VERBOSE) -> int:
        return self._execute_ddl_or_dml(
            sql, query_params=query_params, log_level=log_level
        )

    def execute_query_fetch_one(
        self, sql, query_params=None, log_level=VVERBOSE, time_sql=False
    ) -> Optional[tuple]:
        """Run a query and return its first row, None when there are no rows.
        query_params: dict of name: (type, value) matching @name params in sql
        time_sql: If logging then log SQL elapsed time
        """
        assert sql
        self._log_sql(sql, query_params=query_params, log_level=log_level)
        t1 = datetime.now().replace(microsecond=0)

        _, results = self._run_query_job(sql, query_params=query_params)
        rows = [tuple(_) for _ in results]

        if time_sql:
            t2 = datetime.now().replace(microsecond=0)
            self._log("Elapsed time: %s" % (t2 - t1), detail=VVERBOSE)

        return rows[0] if rows else None

    def create_table(self, table_definition: BigQueryTableDefinition):
        return self.execute_ddl(create_table_sql(table_definition))

    def drop_table(self, db_name, table_name, if_exists=True):
        """Drop a BigQuery table."""
        sql = drop_table_sql(db_name, table_name, if_exists=False)
        if if_exists:
            try:
                return self.execute_ddl(sql)
            except NotFound:
                self._log("Ignoring NotFound exception", detail=VVERBOSE)
                return 0
        return self.execute_ddl(sql)

    def drop_view(self, db_name, view_name, if_exists=True):
        """Drop a BigQuery view."""
        sql = drop_view_sql(db_name, view_name, if_exists=False)
        if if_exists:
            try:
                return self.execute_ddl(sql)
            except NotFound:
                self._log("Ignoring NotFound exception", detail=VVERBOSE)
                return 0
        return self.execute_ddl(sql)

    def drop_object(self, db_name, object_name):
        """Drop a table or view, whichever object_name is. Does nothing if there is no such object."""
        table = self._get_bq_table(db_name, object_name)
        if table is None:
            return 0
        if (table.table_type or "").upper() == TABLE_TYPE_VIEW:
            return self.drop_view(db_name, object_name)
        return self.drop_table(db_name, object_name)

    def get_table_definition(
        self, db_name: str, table_name: str
    ) -> Optional[BigQueryTableDefinition]:
        """Reflect a table or view. Returns None if the object does not exist.
        Definitions are read fresh on every call, nothing is cached.
        """
        assert db_name and table_name
        table = self._get_bq_table(db_name, table_name)
        if table is None:
            return None
        primary_keys = []
        constraints = getattr(table, "table_constraints", None)
        if constraints and constraints.primary_key:
            primary_keys = list(constraints.primary_key.columns)
        return BigQueryTableDefinition(
            db_name,
            table_name,
            [column_from_schema_field(_) for _ in table.schema],
            primary_keys=primary_keys,
            row_count=table.num_rows,
            size_bytes=table.num_bytes,
        )

    def get_table_row_count(self, db_name, table_name, log_level=VVERBOSE) -> int:
        table = self._get_bq_table(db_name, table_name)
        if table is None:
            raise BigQueryDriverApiException(
                "Table does not exist: %s.%s" % (db_name, table_name)
            )
        if (table.table_type or "").upper() == TABLE_TYPE_VIEW or table.num_rows is None:
            row = self.execute_query_fetch_one(
                count_rows_sql(db_name, table_name), log_level=log_level, time_sql=True
            )
            return row[0] if row else 0
        self._log(
            "%s call: %s.num_rows"
            % (self._sql_engine_name, self._bq_table_id(db_name, table_name)),
            detail=log_level,
        )
        return table.num_rows

    def get_table_stats(self, db_name, table_name) -> tuple:
        """Return (row count, size in bytes), (0, 0) for a missing table."""
        assert db_name and table_name
        table = self._get_bq_table(db_name, table_name)
        if table is None:
            return 0, 0
        return table.num_rows or 0, table.num_bytes or 0

    def load_table_from_uri(
        self,
        db_name: str,
        table_name: str,
        source_uris: list,
        field_delimiter=",",
        quote_character='"',
        skip_leading_rows=0,
        null_marker=None,
    ) -> int:
        """Append CSV files into an existing table, returns the number of rows loaded.
        Errors caused by the data raise BigQueryInputDataException.
        """
        assert source_uris
        table_id = self._bq_table_id(db_name, table_name)
        job_config = bigquery.LoadJobConfig(
            source_format=bigquery.SourceFormat.CSV,
            field_delimiter=field_delimiter,
            quote_character=quote_character,
            skip_leading_rows=skip_leading_rows,
            allow_quoted_newlines=True,
            write_disposition=bigquery.WriteDisposition.WRITE_APPEND,
        )
        if null_marker is not None:
            job_config.null_marker = null_marker
        self._log(
            "%s load: %s <- %s" % (self._sql_engine_name, table_id, ", ".join(source_uris)),
            detail=VERBOSE,
        )
        if self._dry_run:
            return 0
        load_job = self._client.load_table_from_uri(
            source_uris, table_id, job_config=job_config
        )
        self._log("%s: %s" % (self._log_query_id_tag, load_job.job_id), detail=VVERBOSE)
        try:
            load_job.result(timeout=self._query_timeout_s)
        except BadRequest as exc:
            raise BigQueryInputDataException(get_direct_error_message(exc)) from exc
        return load_job.output_rows or 0
