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

""" Command and response schemas for table import operations.
    Payloads use camel case field names, e.g. {"tableName": ...}, and are (de)serialised with orjson.
"""

# Standard Library
from enum import Enum
from typing import Dict, List, Optional

# Third Party Libraries
from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field, SecretStr, field_validator

# BQDRIVER
from bqdriver.bigquery.bigquery_filter_query_builder import (
    FilterDataType,
    FilterOperator,
)
from bqdriver.table_import.import_options import (
    CreateMode,
    DedupType,
    ImportStrategy,
    ImportType,
    TimestampMode,
)
from bqdriver.util.json_tools import (
    convert_field_to_camel_case,
    deserialize_object,
    serialize_object,
)


class BaseSchema(PydanticBaseModel):
    """Base pydantic schema"""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        from_attributes=True,
    )


class CamelizedBaseSchema(BaseSchema):
    """Camelized Base pydantic schema"""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        from_attributes=True,
        populate_by_name=True,
        alias_generator=convert_field_to_camel_case,
    )

    @classmethod
    def from_json(cls, payload):
        return cls.model_validate(deserialize_object(payload))

    def to_json(self) -> str:
        return serialize_object(self.model_dump(mode="json", by_alias=True))


###########################################################################
# Commands
###########################################################################


class BackendCredentials(CamelizedBaseSchema):
    """Service account credentials.

    Attributes:
        principal: service account JSON, without the private key.
        secret: the private key.
        region: BigQuery location for jobs.
    """

    principal: str
    secret: SecretStr
    region: Optional[str] = None


class RuntimeOptions(CamelizedBaseSchema):
    run_id: Optional[str] = None
    query_tags: Dict[str, str] = Field(default_factory=dict)


class ColumnMapping(CamelizedBaseSchema):
    source_column_name: str
    destination_column_name: str


class WhereFilter(CamelizedBaseSchema):
    column_name: str
    operator: FilterOperator = FilterOperator.EQ
    values: List[str]
    data_type: FilterDataType = FilterDataType.STRING


class SourceTableMapping(CamelizedBaseSchema):
    """Source table of a table to table import.
    seconds > 0 only imports rows with _timestamp in the last "seconds" seconds.
    """

    schema_name: str
    table_name: str
    column_mappings: List[ColumnMapping] = Field(default_factory=list)
    where_filters: List[WhereFilter] = Field(default_factory=list)
    limit: int = 0
    seconds: int = 0

    @field_validator("limit", "seconds")
    @classmethod
    def not_negative(cls, v: int):
        if v < 0:
            raise ValueError("must not be negative")
        return v


class DestinationTable(CamelizedBaseSchema):
    schema_name: str
    table_name: str


class ImportOptions(CamelizedBaseSchema):
    """Import options of a command.
    create_mode None writes into an existing destination, CREATE requires that there is none.
    """

    import_type: ImportType = ImportType.FULL
    dedup_type: DedupType = DedupType.INSERT_DUPLICATES
    dedup_columns_names: List[str] = Field(default_factory=list)
    convert_empty_values_to_null_on_columns: List[str] = Field(default_factory=list)
    number_of_ignored_lines: int = 0
    timestamp_column: Optional[str] = None
    timestamp_mode: TimestampMode = TimestampMode.CURRENT_TIME
    create_mode: Optional[CreateMode] = None
    import_strategy: ImportStrategy = ImportStrategy.USER_DEFINED_TABLE
    import_as_null: List[str] = Field(default_factory=list)


class TableImportFromTableCommand(CamelizedBaseSchema):
    source: SourceTableMapping
    destination: DestinationTable
    import_options: ImportOptions = Field(default_factory=ImportOptions)


class FileProvider(str, Enum):
    GCS = "GCS"


class FileFormat(str, Enum):
    CSV = "CSV"


class CsvSourceType(str, Enum):
    SINGLE_FILE = "SINGLE_FILE"
    SLICED_FILE = "SLICED_FILE"
    DIRECTORY = "DIRECTORY"


class FilePath(CamelizedBaseSchema):
    """gs://root/path/file_name"""

    root: str
    path: str = ""
    file_name: str

    @property
    def uri(self) -> str:
        parts = [self.root.strip("/"), self.path.strip("/"), self.file_name]
        return "gs://" + "/".join(_ for _ in parts if _)


class CsvTypeOptions(CamelizedBaseSchema):
    columns_names: List[str]
    delimiter: str = ","
    enclosure: str = '"'
    escaped_by: str = ""
    source_type: CsvSourceType = CsvSourceType.SINGLE_FILE


class TableImportFromFileCommand(CamelizedBaseSchema):
    file_provider: FileProvider = FileProvider.GCS
    file_format: FileFormat = FileFormat.CSV
    format_type_options: CsvTypeOptions
    file_path: FilePath
    destination: DestinationTable
    import_options: ImportOptions = Field(default_factory=ImportOptions)


###########################################################################
# Responses
###########################################################################


class Timer(CamelizedBaseSchema):
    name: str
    duration: float


class TableImportResponse(CamelizedBaseSchema):
    """OperationResponse

    Attributes:
        table_rows_count: rows in the destination after the import.
        table_size_bytes: size of the destination after the import.
        imported_columns: columns written by the import, empty when no column level work was done.
        imported_rows_count: rows written by the import.
        timers: named step durations in seconds.
    """

    table_rows_count: int = 0
    table_size_bytes: int = 0
    imported_columns: List[str] = Field(default_factory=list)
    imported_rows_count: int = 0
    timers: List[Timer] = Field(default_factory=list)
