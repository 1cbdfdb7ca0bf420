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

""" SELECT statements over a source table with WHERE filters, time travel and LIMIT.

    Filter values are never inlined, they are returned as named bindings
    referenced in the SQL as @dcValue1, @dcValue2, ...
"""

from enum import Enum
import logging
from typing import Optional, Tuple

from bqdriver.bigquery.bigquery_column import (
    BIGQUERY_TYPE_FLOAT64,
    BIGQUERY_TYPE_INT64,
    BIGQUERY_TYPE_NUMERIC,
    BIGQUERY_TYPE_STRING,
    TIMESTAMP_COLUMN_NAME,
)
from bqdriver.bigquery.bigquery_query_builder import (
    quote_identifier,
    quote_table_reference,
)
from bqdriver.driver_exceptions import (
    BadFilterParametersException,
    QueryBuilderException,
)


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


###########################################################################
# CONSTANTS
###########################################################################

PARAMETER_PREFIX = "dcValue"


class FilterOperator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"


class FilterDataType(str, Enum):
    STRING = "STRING"
    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE"
    BIGINT = "BIGINT"
    REAL = "REAL"
    DECIMAL = "DECIMAL"


OPERATOR_SINGLE_VALUE = {
    FilterOperator.EQ: "=",
    FilterOperator.NE: "<>",
    FilterOperator.GT: ">",
    FilterOperator.GE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LE: "<=",
}
OPERATOR_MULTI_VALUE = {
    FilterOperator.EQ: "IN",
    FilterOperator.NE: "NOT IN",
}

# BigQuery names of filter data types, used in messages.
DATA_TYPES_MAP = {
    FilterDataType.STRING: BIGQUERY_TYPE_STRING,
    FilterDataType.INTEGER: BIGQUERY_TYPE_INT64,
    FilterDataType.DOUBLE: BIGQUERY_TYPE_NUMERIC,
    FilterDataType.BIGINT: "BIGINT",
    FilterDataType.REAL: BIGQUERY_TYPE_NUMERIC,
    FilterDataType.DECIMAL: "DECIMAL",
}

INTEGER_FILTER_TYPES = [FilterDataType.INTEGER, FilterDataType.BIGINT]
REAL_FILTER_TYPES = [FilterDataType.REAL, FilterDataType.DECIMAL, FilterDataType.DOUBLE]


###########################################################################
# CLASSES
###########################################################################


class ColumnConverter(object):
    """Casts a column for comparison with non-string filter values."""

    DATA_TYPES_OPTIONS = [FilterDataType.INTEGER, FilterDataType.REAL]

    def convert_column_by_data_type(
        self, column_sql: str, data_type: FilterDataType
    ) -> str:
        if data_type not in self.DATA_TYPES_OPTIONS:
            raise QueryBuilderException(
                "Data type %s not recognized. Possible datatypes are [%s]"
                % (
                    DATA_TYPES_MAP[data_type],
                    "|".join(DATA_TYPES_MAP[_] for _ in self.DATA_TYPES_OPTIONS),
                )
            )
        if data_type == FilterDataType.INTEGER:
            return "SAFE_CAST(%s AS INTEGER)" % column_sql
        return "SAFE_CAST(%s AS NUMERIC)" % column_sql


class FilterQueryBuilder(object):
    """Renders the SELECT for one source table, accumulating named bindings as filters are added."""

    def __init__(self, schema_name: str, table_name: str, column_converter=None):
        assert schema_name and table_name
        self._schema_name = schema_name
        self._table_name = table_name
        self._column_converter = column_converter or ColumnConverter()
        self._where_clauses = []
        self._bindings = {}

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _qualified_column(self, column_name: str) -> str:
        return "%s.%s" % (
            quote_identifier(self._table_name),
            quote_identifier(column_name),
        )

    def _add_binding(self, bq_type: str, value) -> str:
        name = "%s%s" % (PARAMETER_PREFIX, len(self._bindings) + 1)
        self._bindings[name] = (bq_type, value)
        return "@%s" % name

    def _convert_value(self, column_name: str, data_type: FilterDataType, value: str):
        try:
            if data_type in INTEGER_FILTER_TYPES:
                return int(value)
            elif data_type in REAL_FILTER_TYPES:
                return float(value)
        except (TypeError, ValueError) as exc:
            raise BadFilterParametersException.invalid_filter_value(
                column_name, DATA_TYPES_MAP[data_type], value
            ) from exc
        return value

    def _binding_type(self, data_type: FilterDataType) -> str:
        if data_type in INTEGER_FILTER_TYPES:
            return BIGQUERY_TYPE_INT64
        elif data_type in REAL_FILTER_TYPES:
            return BIGQUERY_TYPE_FLOAT64
        return BIGQUERY_TYPE_STRING

    def _column_expression(self, column_name: str, data_type: FilterDataType) -> str:
        column_sql = self._qualified_column(column_name)
        if data_type == FilterDataType.STRING:
            return column_sql
        return self._column_converter.convert_column_by_data_type(column_sql, data_type)

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    @property
    def bindings(self) -> dict:
        return dict(self._bindings)

    def add_time_travel(self, seconds: int):
        """Only rows imported in the last "seconds" seconds."""
        if seconds and seconds > 0:
            self._where_clauses.append(
                "%s >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL %d SECOND)"
                % (self._qualified_column(TIMESTAMP_COLUMN_NAME), int(seconds))
            )

    def add_where_filter(
        self,
        column_name: str,
        operator: FilterOperator,
        values: list,
        data_type: FilterDataType = FilterDataType.STRING,
    ):
        assert column_name
        assert values, "Filter on %s has no values" % column_name
        operator = FilterOperator(operator)
        data_type = FilterDataType(data_type)
        if len(values) == 1:
            column_sql = self._column_expression(column_name, data_type)
            param = self._add_binding(
                self._binding_type(data_type),
                self._convert_value(column_name, data_type, values[0]),
            )
            self._where_clauses.append(
                "%s %s %s" % (column_sql, OPERATOR_SINGLE_VALUE[operator], param)
            )
        else:
            if operator not in OPERATOR_MULTI_VALUE:
                raise QueryBuilderException(
                    'whereFilter with multiple values can be used only with "eq", "ne" operators'
                )
            column_sql = self._column_expression(column_name, data_type)
            param = self._add_binding(
                self._binding_type(data_type),
                [self._convert_value(column_name, data_type, _) for _ in values],
            )
            self._where_clauses.append(
                "%s %s UNNEST(%s)" % (column_sql, OPERATOR_MULTI_VALUE[operator], param)
            )

    def select_sql(self, select_columns: list, limit: Optional[int] = None) -> str:
        if select_columns:
            projection = ", ".join(self._qualified_column(_) for _ in select_columns)
        else:
            projection = "%s.*" % quote_identifier(self._table_name)
        where_clause = ""
        if self._where_clauses:
            where_clause = "\nWHERE  " + "\nAND    ".join(self._where_clauses)
        limit_clause = ("\nLIMIT  %d" % int(limit)) if limit and limit > 0 else ""
        return "SELECT %(projection)s\nFROM   %(from)s%(where)s%(limit)s" % {
            "projection": projection,
            "from": quote_table_reference(self._schema_name, self._table_name),
            "where": where_clause,
            "limit": limit_clause,
        }


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def build_select_source_sql(
    schema_name: str,
    table_name: str,
    select_columns: list,
    where_filters: Optional[list] = None,
    seconds: int = 0,
    limit: int = 0,
) -> Tuple[str, dict]:
    """Return (sql, bindings) selecting select_columns (all columns when empty) from a source table.

    where_filters: objects with column_name, operator, values and data_type attributes.
    bindings: dict of parameter name to (BigQuery type, value), value is a list for IN/NOT IN filters.
    """
    builder = FilterQueryBuilder(schema_name, table_name)
    builder.add_time_travel(seconds)
    for where_filter in where_filters or []:
        builder.add_where_filter(
            where_filter.column_name,
            where_filter.operator,
            where_filter.values,
            data_type=where_filter.data_type,
        )
    sql = builder.select_sql(select_columns, limit=limit)
    logger.debug("build_select_source_sql: %s", sql)
    return sql, builder.bindings
