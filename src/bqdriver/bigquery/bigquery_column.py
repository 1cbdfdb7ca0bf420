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

""" BigQueryColumn: BigQuery implementation of ColumnMetadataInterface
"""

from typing import Optional

from google.cloud import bigquery

from bqdriver.column_metadata import ColumnMetadataInterface

###############################################################################
# CONSTANTS
###############################################################################

BIGQUERY_TYPE_ARRAY = "ARRAY"
BIGQUERY_TYPE_BIGNUMERIC = "BIGNUMERIC"
BIGQUERY_TYPE_BOOLEAN = "BOOLEAN"
BIGQUERY_TYPE_BYTES = "BYTES"
BIGQUERY_TYPE_DATE = "DATE"
BIGQUERY_TYPE_DATETIME = "DATETIME"
# BIGQUERY_TYPE_FLOAT for translation purposes only, not a supported type
BIGQUERY_TYPE_FLOAT = "FLOAT"
BIGQUERY_TYPE_FLOAT64 = "FLOAT64"
BIGQUERY_TYPE_GEOGRAPHY = "GEOGRAPHY"
BIGQUERY_TYPE_INT64 = "INT64"
# BIGQUERY_TYPE_INTEGER for translation purposes only, not a supported type
BIGQUERY_TYPE_INTEGER = "INTEGER"
BIGQUERY_TYPE_INTERVAL = "INTERVAL"
BIGQUERY_TYPE_JSON = "JSON"
BIGQUERY_TYPE_NUMERIC = "NUMERIC"
BIGQUERY_TYPE_STRING = "STRING"
BIGQUERY_TYPE_STRUCT = "STRUCT"
BIGQUERY_TYPE_TIME = "TIME"
BIGQUERY_TYPE_TIMESTAMP = "TIMESTAMP"

# Maximum length of a STRING column, used for columns with no typed counterpart.
BIGQUERY_MAX_STRING_LENGTH = "2097152"

# Driver managed column holding the time a row was last imported.
TIMESTAMP_COLUMN_NAME = "_timestamp"

# Aliases accepted by BigQuery SQL/REST which describe the same storage type.
BIGQUERY_TYPE_ALIASES = {
    "BIGDECIMAL": BIGQUERY_TYPE_BIGNUMERIC,
    "BIGINT": BIGQUERY_TYPE_INT64,
    "BOOL": BIGQUERY_TYPE_BOOLEAN,
    "BYTEINT": BIGQUERY_TYPE_INT64,
    "DECIMAL": BIGQUERY_TYPE_NUMERIC,
    BIGQUERY_TYPE_FLOAT: BIGQUERY_TYPE_FLOAT64,
    "INT": BIGQUERY_TYPE_INT64,
    BIGQUERY_TYPE_INTEGER: BIGQUERY_TYPE_INT64,
    "RECORD": BIGQUERY_TYPE_STRUCT,
    "SMALLINT": BIGQUERY_TYPE_INT64,
    "TINYINT": BIGQUERY_TYPE_INT64,
}

# Types where data_length is rendered as TYPE(length).
LENGTH_TYPES = [
    BIGQUERY_TYPE_BIGNUMERIC,
    BIGQUERY_TYPE_BYTES,
    BIGQUERY_TYPE_NUMERIC,
    BIGQUERY_TYPE_STRING,
]
# Types where data_length holds nested field syntax, rendered as TYPE<length>.
NESTED_TYPES = [BIGQUERY_TYPE_ARRAY, BIGQUERY_TYPE_STRUCT]


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def normalize_type(data_type: str) -> str:
    """Collapse BigQuery type aliases to a single canonical name, e.g. INT, INTEGER and BIGINT to INT64."""
    assert data_type
    upper_type = data_type.upper()
    return BIGQUERY_TYPE_ALIASES.get(upper_type, upper_type)


def gen_generic_string_column(name: str, nullable=True) -> "BigQueryColumn":
    """A maximum length STRING column, used where a column has no typed definition to inherit."""
    return BigQueryColumn(
        name,
        BIGQUERY_TYPE_STRING,
        data_length=BIGQUERY_MAX_STRING_LENGTH,
        nullable=nullable,
    )


def _nested_field_definition(field: bigquery.SchemaField) -> str:
    """Render a schema field as used inside STRUCT<...>, e.g. "a INT64" or "b ARRAY<STRING>"."""
    column = column_from_schema_field(field)
    return "%s %s" % (field.name, column.format_data_type())


def column_from_schema_field(field: bigquery.SchemaField) -> "BigQueryColumn":
    """Build a BigQueryColumn from a field of a reflected table schema."""
    data_type = field.field_type.upper()
    data_length = None
    if data_type in (BIGQUERY_TYPE_STRUCT, "RECORD"):
        data_type = BIGQUERY_TYPE_STRUCT
        data_length = ", ".join(_nested_field_definition(_) for _ in field.fields)
    elif field.max_length:
        data_length = str(field.max_length)
    elif field.precision:
        if field.scale is not None:
            data_length = "%s,%s" % (field.precision, field.scale)
        else:
            data_length = str(field.precision)

    field_as_array = None
    if field.mode == "REPEATED":
        # Repeated fields are ARRAY<element>, the element definition is kept on field_as_array.
        field_as_array = field.to_api_repr()
        element = BigQueryColumn(field.name, data_type, data_length=data_length)
        data_type = BIGQUERY_TYPE_ARRAY
        data_length = element.format_data_type()

    return BigQueryColumn(
        field.name,
        data_type,
        data_length=data_length,
        nullable=bool(field.mode != "REQUIRED"),
        data_default=field.default_value_expression,
        field_as_array=field_as_array,
    )


###########################################################################
# CLASSES
###########################################################################


class BigQueryColumn(ColumnMetadataInterface):
    """Holds details for a single table column
    Table definitions hold a ColumnCollection of objects of this class

    field_as_array: the API representation of a REPEATED field, only present on array columns.
    """

    def __init__(
        self,
        name,
        data_type,
        data_length=None,
        nullable=True,
        data_default=None,
        field_as_array: Optional[dict] = None,
    ):
        # Confusingly the API uses BIGQUERY_TYPE_FLOAT/BIGQUERY_TYPE_INTEGER but SQL uses the *64 names.
        # We have standardised on the SQL names.
        if data_type == BIGQUERY_TYPE_FLOAT:
            data_type = BIGQUERY_TYPE_FLOAT64
        elif data_type == BIGQUERY_TYPE_INTEGER:
            data_type = BIGQUERY_TYPE_INT64
        super(BigQueryColumn, self).__init__(
            name,
            data_type,
            data_length=data_length,
            nullable=nullable,
            data_default=data_default,
        )
        self.field_as_array = field_as_array

    def format_data_type(self):
        if self.data_length and self.data_type in NESTED_TYPES:
            return "%s<%s>" % (self.data_type, self.data_length)
        elif self.data_length and self.data_type in LENGTH_TYPES:
            return "%s(%s)" % (self.data_type, self.data_length)
        else:
            return self.data_type

    def sql_definition(self):
        sql = self.format_data_type()
        if self.data_default is not None:
            sql += " DEFAULT %s" % self.data_default
        if not self.nullable:
            sql += " NOT NULL"
        return sql

    def is_array(self):
        return bool(self.data_type == BIGQUERY_TYPE_ARRAY)

    def is_number_based(self):
        """Is the column numeric in class"""
        return bool(
            normalize_type(self.data_type)
            in (
                BIGQUERY_TYPE_BIGNUMERIC,
                BIGQUERY_TYPE_FLOAT64,
                BIGQUERY_TYPE_INT64,
                BIGQUERY_TYPE_NUMERIC,
            )
        )

    def is_string_based(self):
        """Is the column string based in class"""
        return bool(self.data_type.upper() == BIGQUERY_TYPE_STRING)

    def is_time_zone_based(self):
        """Does the column contain time zone data"""
        return bool(self.data_type == BIGQUERY_TYPE_TIMESTAMP)
