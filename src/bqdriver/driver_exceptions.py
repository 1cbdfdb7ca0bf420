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

""" Exceptions raised back to callers of driver operations.

    Every exception carries a stable numeric code and a message that lists every
    offending item found, so a caller can fix its input in one pass.
    Backend errors that do not match one of the translations below are propagated unchanged.
"""

import logging
import re
from typing import Optional, Union

from google.api_core.exceptions import Conflict, GoogleAPICallError

from bqdriver.util.json_tools import try_deserialize_object


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


###########################################################################
# CONSTANTS
###########################################################################

ERR_UNKNOWN = 2000
ERR_VALIDATION = 2001
ERR_NOT_IMPLEMENTED = 2002
ERR_NOT_FOUND = 2004
ERR_OBJECT_ALREADY_EXISTS = 2006

MAXIMUM_LENGTH_PATTERN = re.compile(
    r"Field (?P<field_name>.+?): (?P<field_type>\w+)\((?P<max_length>\d+)\) has maximum length \d+ "
    r"but got a value with length (?P<actual_length>\d+)"
)
FILTER_TYPES_PATTERN = re.compile(r"types:\s(.*?)\.")
DIRECT_ERROR_PATTERN = re.compile(r"(.+)error message: (.+)", flags=re.DOTALL)


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def _message_from_error_dict(error_dict: dict, default: str) -> str:
    if "message" in error_dict:
        return error_dict["message"]
    if "error" not in error_dict:
        return default
    error = error_dict["error"]
    if not isinstance(error, dict):
        return error if isinstance(error, str) else default
    errors = error.get("errors")
    if not errors or not isinstance(errors, list):
        return error.get("message", default)
    if len(errors) == 1:
        return errors[0].get("message", default)
    return "Errors: " + "\n".join(_.get("message", "") for _ in errors)


def get_error_message(exc: Union[Exception, str]) -> str:
    """Return the most specific human readable message from a backend error.

    BigQuery errors arrive either as API call errors with a list of error dicts or
    as text containing a JSON document, e.g. {"error": {"message": ..., "errors": [...]}}.
    Text that is not JSON is returned unchanged.
    """
    if isinstance(exc, GoogleAPICallError):
        if exc.errors:
            return _message_from_error_dict(
                {"error": {"message": exc.message, "errors": list(exc.errors)}},
                exc.message,
            )
        decoded = try_deserialize_object(exc.message)
        if isinstance(decoded, dict):
            return _message_from_error_dict(decoded, exc.message)
        return exc.message
    text = exc if isinstance(exc, str) else str(exc)
    decoded = try_deserialize_object(text)
    if not isinstance(decoded, dict):
        return text
    return _message_from_error_dict(decoded, text)


def get_direct_error_message(exc: Union[Exception, str]) -> str:
    """Strip the "Error while reading table: ..., error message: " preamble BigQuery adds to load errors."""
    message = get_error_message(exc)
    m = DIRECT_ERROR_PATTERN.match(message)
    if m:
        return m.group(2)
    return message


def raw_error_text(exc: Exception) -> str:
    return exc.message if isinstance(exc, GoogleAPICallError) else str(exc)


###########################################################################
# CLASSES
###########################################################################


class DriverException(Exception):
    """Base class for errors reported back to the caller of a driver operation."""

    code = ERR_UNKNOWN
    retryable = False

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __repr__(self):
        kwargs = []
        for key, value in self.__dict__.items():
            if not key.startswith("_"):
                kwargs.append("{key}={value}".format(key=key, value=repr(value)))
        return "{name}({kwargs})".format(
            name=self.__class__.__name__,
            kwargs=", ".join(kwargs),
        )

    def __str__(self):
        return self.message


class ColumnsMismatchException(DriverException):
    code = ERR_VALIDATION

    @staticmethod
    def missing_columns(
        table_description: str,
        schema_name: str,
        table_name: str,
        column_names: list,
        quoted: bool = False,
    ):
        return ColumnsMismatchException(
            ColumnsMismatchException.missing_columns_message(
                table_description, schema_name, table_name, column_names, quoted=quoted
            )
        )

    @staticmethod
    def missing_columns_message(
        table_description: str,
        schema_name: str,
        table_name: str,
        column_names: list,
        quoted: bool = False,
    ) -> str:
        template = (
            'Some columns are missing in {} table "{}"."{}". Missing columns: "{}"'
            if quoted
            else "Some columns are missing in {} table {}.{}. Missing columns: {}"
        )
        return template.format(
            table_description, schema_name, table_name, ",".join(column_names)
        )

    @staticmethod
    def columns_not_found(schema_name: str, table_name: str, column_names: list):
        return ColumnsMismatchException(
            "; ".join(
                'Column "{}" not found in source table {}.{}.'.format(
                    _, schema_name, table_name
                )
                for _ in column_names
            )
        )

    @staticmethod
    def definitions_mismatch_message(mismatches: list) -> str:
        return "Column definitions mismatch. Details: {}".format(
            "; ".join(
                "'{}' mapping '{}' / '{}'".format(name, expected, actual)
                for name, expected, actual in mismatches
            )
        )


class ObjectAlreadyExistsException(DriverException):
    code = ERR_OBJECT_ALREADY_EXISTS

    @staticmethod
    def handle_conflict_exception(exc: Conflict):
        """Translate a 409 from the backend, anything else is re-raised as is."""
        if exc.code == 409:
            raise ObjectAlreadyExistsException("Object already exists.") from exc
        raise exc


class ObjectNotFoundException(DriverException):
    code = ERR_NOT_FOUND


class ImportValidationException(DriverException):
    code = ERR_VALIDATION


class ImportNotImplementedException(DriverException):
    code = ERR_NOT_IMPLEMENTED


class QueryBuilderException(DriverException):
    code = ERR_VALIDATION


class MaximumLengthOverflowException(DriverException):
    """A value longer than the target column's maximum length.
    Field details are extracted from messages like:
        Field <X>: <Type>(<Length>) has maximum length <Length> but got a value with length <Length>
    """

    code = ERR_VALIDATION

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message, code=code)
        self.field_name = None
        self.field_type = None
        self.max_length = None
        self.actual_length = None
        m = MAXIMUM_LENGTH_PATTERN.search(message)
        if m:
            self.field_name = m.group("field_name")
            self.field_type = m.group("field_type")
            self.max_length = int(m.group("max_length"))
            self.actual_length = int(m.group("actual_length"))

    @staticmethod
    def handle_exception(exc: Exception) -> Exception:
        """Return a MaximumLengthOverflowException for length errors, otherwise exc itself."""
        message = get_error_message(exc)
        if "has maximum length" in message:
            new_exc = MaximumLengthOverflowException(message)
            new_exc.__cause__ = exc
            return new_exc
        return exc


class BadFilterParametersException(DriverException):
    code = ERR_VALIDATION

    @staticmethod
    def handle_wrong_type_in_filters(exc: Exception):
        """Raise BadFilterParametersException when exc is caused by filter values of the wrong type.
        Returns without raising for any other error so the caller can propagate it.
        """
        text = raw_error_text(exc)
        if "No matching signature for operator " in text:
            m = FILTER_TYPES_PATTERN.search(text)
            assert m, f"Unexpected error text: {text}"
            expected_actual = m.group(1).split(",")
            raise BadFilterParametersException(
                'Invalid filter value, expected:"{}", actual:"{}".'.format(
                    expected_actual[0].strip(), expected_actual[1].strip()
                )
            ) from exc
        if "Invalid" in text or "can be used for partition elimination" in text:
            raise BadFilterParametersException(get_error_message(exc)) from exc

    @staticmethod
    def invalid_filter_value(column_name: str, data_type: str, value):
        return BadFilterParametersException(
            'Invalid filter value "{}" for column "{}" of type "{}".'.format(
                value, column_name, data_type
            )
        )
