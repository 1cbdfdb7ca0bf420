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

""" SQL text for BigQuery DDL and DML issued by the driver.
    Functions only format SQL, execution is the responsibility of BigQueryDriverApi.
"""

from textwrap import dedent
from typing import Optional

from bqdriver.bigquery.bigquery_table_definition import BigQueryTableDefinition


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def quote_identifier(identifier: str) -> str:
    """Enclose an identifier in backticks, escaping any backslash or backtick within it."""
    assert identifier is not None
    return "`%s`" % identifier.replace("\\", "\\\\").replace("`", "\\`")


def quote_table_reference(schema_name: str, table_name: str) -> str:
    assert schema_name and table_name
    return "%s.%s" % (quote_identifier(schema_name), quote_identifier(table_name))


def quote_column_list(column_names: list) -> str:
    return ", ".join(quote_identifier(_) for _ in column_names)


def _create_table_columns_clause(table_definition: BigQueryTableDefinition) -> str:
    sql_cols = [
        (quote_identifier(_.name), _.sql_definition()) for _ in table_definition.columns
    ]
    max_name = max(len(_[0]) for _ in sql_cols)
    col_template = f"%-{max_name}s %s"
    clauses = [col_template % _ for _ in sql_cols]
    if table_definition.primary_keys:
        clauses.append(
            "PRIMARY KEY (%s) NOT ENFORCED"
            % quote_column_list(table_definition.primary_keys)
        )
    return "    " + "\n,   ".join(clauses)


def create_table_sql(table_definition: BigQueryTableDefinition) -> str:
    """Build a CREATE TABLE SQL statement from a table definition, primary keys are NOT ENFORCED."""
    assert table_definition
    assert len(table_definition.columns), "Table definition has no columns: %s" % (
        table_definition.full_name
    )
    return """CREATE TABLE %(db_table)s (
%(col_projection)s
)""" % {
        "db_table": quote_table_reference(
            table_definition.schema_name, table_definition.table_name
        ),
        "col_projection": _create_table_columns_clause(table_definition),
    }


def drop_table_sql(schema_name: str, table_name: str, if_exists=True) -> str:
    return "DROP TABLE %s%s" % (
        "IF EXISTS " if if_exists else "",
        quote_table_reference(schema_name, table_name),
    )


def drop_view_sql(schema_name: str, view_name: str, if_exists=True) -> str:
    return "DROP VIEW %s%s" % (
        "IF EXISTS " if if_exists else "",
        quote_table_reference(schema_name, view_name),
    )


def create_view_sql(
    schema_name: str, view_name: str, source_schema_name: str, source_table_name: str
) -> str:
    """CREATE VIEW selecting every column of the source, the view follows later changes to the source shape."""
    return dedent(
        """\
        CREATE VIEW %(db_view)s AS (
          SELECT
            *
          FROM
            %(source)s
        );"""
    ) % {
        "db_view": quote_table_reference(schema_name, view_name),
        "source": quote_table_reference(source_schema_name, source_table_name),
    }


def clone_table_sql(
    schema_name: str, table_name: str, source_schema_name: str, source_table_name: str
) -> str:
    return "CREATE TABLE %s CLONE %s;" % (
        quote_table_reference(schema_name, table_name),
        quote_table_reference(source_schema_name, source_table_name),
    )


def ctas_sql(
    schema_name: str,
    table_name: str,
    source_schema_name: str,
    source_table_name: str,
) -> str:
    return "CREATE TABLE %s AS (SELECT * FROM %s)" % (
        quote_table_reference(schema_name, table_name),
        quote_table_reference(source_schema_name, source_table_name),
    )


def copy_table_sql(
    schema_name: str, table_name: str, source_schema_name: str, source_table_name: str
) -> str:
    return "CREATE TABLE %s COPY %s" % (
        quote_table_reference(schema_name, table_name),
        quote_table_reference(source_schema_name, source_table_name),
    )


def insert_select_sql(
    schema_name: str, table_name: str, column_names: list, select_sql: str
) -> str:
    """INSERT INTO a table from any SELECT, column_names list the insert target columns in select order."""
    assert column_names
    assert select_sql
    return """INSERT INTO %(db_table)s (%(columns)s)
%(select_sql)s""" % {
        "db_table": quote_table_reference(schema_name, table_name),
        "columns": quote_column_list(column_names),
        "select_sql": select_sql,
    }


def count_rows_sql(
    schema_name: str, table_name: str, filter_clause: Optional[str] = None
) -> str:
    return "SELECT COUNT(*) AS cnt FROM %s%s" % (
        quote_table_reference(schema_name, table_name),
        ("\nWHERE %s" % filter_clause) if filter_clause else "",
    )
