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

""" ColumnMetadataInterface: Base interface for driver column metadata.
    Other classes will build upon this basic model.
"""

from abc import ABCMeta, abstractmethod
from copy import copy
import logging
from typing import Callable, Iterable, Optional

from bqdriver.util.misc_functions import str_summary_of_self


class ColumnMetadataException(Exception):
    pass


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())  # Disabling logging by default


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def get_column_names(column_list, conv_fn=None):
    """Simple helper function to get column names from a list of column objects.
    conv_fn can be used to upper/lower the names, e.g.:
        get_column_names(table.columns, conv_fn=str.lower)
    """
    if conv_fn:
        return [conv_fn(_.name) for _ in column_list or []]
    else:
        return [_.name for _ in column_list or []]


def match_table_column_position(search_name, column_list):
    """Looks for a column with name search_name in a list of table columns and returns the position."""
    assert search_name
    match_cols = [
        i for i, _ in enumerate(column_list) if _.name.lower() == search_name.lower()
    ]
    if match_cols:
        return match_cols[0]
    return None


def is_full_column_set(column_names: list, column_list) -> bool:
    """True if column_names are exactly the names of column_list, in the same order.

    Case insensitive matching. Any reordering, renaming or subsetting returns False."""
    table_names = get_column_names(column_list, conv_fn=str.lower)
    if len(column_names) != len(table_names):
        return False
    return all(
        name.lower() == table_name
        for name, table_name in zip(column_names, table_names)
    )


###########################################################################
# CaseInsensitiveNameIndex
###########################################################################


class CaseInsensitiveNameIndex:
    """Lookup of named items by lower cased name, keeping the order items were added.

    The first item wins if two items share a name, use ColumnCollection where
    duplicates must be rejected.
    """

    def __init__(self, items: Iterable = None, name_fn: Callable = None):
        self._name_fn = name_fn or (lambda x: x.name)
        self._index = {}
        for item in items or []:
            self.add(item)

    def __contains__(self, name):
        return bool(name is not None and name.lower() in self._index)

    def __iter__(self):
        return iter(self._index.values())

    def __len__(self):
        return len(self._index)

    def add(self, item):
        key = self._name_fn(item).lower()
        if key not in self._index:
            self._index[key] = item

    def get(self, name: str, default=None):
        if name is None:
            return default
        return self._index.get(name.lower(), default)

    def keys(self) -> list:
        return list(self._index.keys())

    def missing(self, names: Iterable) -> list:
        """Names, as supplied and in supplied order, that are not in the index."""
        return [_ for _ in names if _ not in self]


###########################################################################
# ColumnMetadataInterface
###########################################################################


class ColumnMetadataInterface(metaclass=ABCMeta):
    """Abstract base class which acts as an interface for backend specific sub-classes.
    Holds details for a single table column.
    Table definitions hold a ColumnCollection of objects of this class.
    """

    def __init__(
        self,
        name,
        data_type,
        data_length=None,
        nullable=True,
        data_default=None,
    ):
        self.name = self._required_string(name)
        self.data_type = self._required_string(data_type)
        # Length is opaque, it may hold precision/scale such as "10,2" or nested field syntax.
        self.data_length = self._optional_string(data_length)
        self.nullable = self._required_boolean(nullable)
        self.data_default = data_default

    def __str__(self):
        return str_summary_of_self(self)

    def __repr__(self):
        return str_summary_of_self(self)

    def __eq__(self, other):
        if not isinstance(other, ColumnMetadataInterface):
            return NotImplemented
        return vars(self) == vars(other)

    def __hash__(self):
        return hash((self.name.lower(), self.data_type))

    ###########################################################################
    # PRIVATE METHODS
    ###########################################################################

    def _required_string(self, column_attribute):
        assert column_attribute
        assert isinstance(column_attribute, str), "{} is not str".format(
            type(column_attribute)
        )
        return column_attribute

    def _optional_string(self, column_attribute):
        if column_attribute is None or column_attribute == "":
            return None
        if isinstance(column_attribute, int) and not isinstance(column_attribute, bool):
            return str(column_attribute)
        assert isinstance(column_attribute, str), "{} is not str".format(
            type(column_attribute)
        )
        return column_attribute

    def _required_boolean(self, column_attribute):
        if isinstance(column_attribute, str):
            if column_attribute.upper() in ("Y", "YES", "TRUE"):
                return True
            elif column_attribute.upper() in ("N", "NO", "FALSE"):
                return False
            else:
                raise ColumnMetadataException(
                    "Invalid boolean value: %s" % column_attribute
                )
        assert isinstance(column_attribute, bool)
        return column_attribute

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    @abstractmethod
    def format_data_type(self):
        """Take the attributes of the column and format a data type spec for use in SQL"""
        pass

    @abstractmethod
    def sql_definition(self):
        """Full column definition for use in SQL, excluding the column name"""
        pass

    @abstractmethod
    def is_string_based(self):
        """Is the column string based in class"""
        pass

    def is_nullable(self):
        return self.nullable

    def clone(self, name=None, nullable=None, data_default=None):
        """Makes a copy of the current column, optionally with a new name and/or nullability."""
        clone_col = copy(self)
        if name:
            clone_col.name = name
        if nullable is not None:
            clone_col.nullable = nullable
        if data_default is not None:
            clone_col.data_default = data_default
        return clone_col


###########################################################################
# ColumnCollection
###########################################################################


class ColumnCollection:
    """Ordered collection of columns with names unique regardless of case."""

    def __init__(self, columns: Iterable = None):
        self._columns = []
        self._index = CaseInsensitiveNameIndex()
        duplicates = []
        for column in columns or []:
            assert isinstance(
                column, ColumnMetadataInterface
            ), "Type %s is not instance of column" % type(column)
            if column.name in self._index:
                duplicates.append(column.name)
                continue
            self._columns.append(column)
            self._index.add(column)
        if duplicates:
            raise ColumnMetadataException(
                "Duplicate column names: %s" % ", ".join(duplicates)
            )

    def __iter__(self):
        return iter(self._columns)

    def __len__(self):
        return len(self._columns)

    def __getitem__(self, position):
        return self._columns[position]

    def __contains__(self, name):
        return name in self._index

    def __eq__(self, other):
        if not isinstance(other, ColumnCollection):
            return NotImplemented
        return self._columns == other._columns

    def __repr__(self):
        return "ColumnCollection(%s)" % ", ".join(self.names)

    @property
    def names(self) -> list:
        return get_column_names(self._columns)

    @property
    def name_index(self) -> CaseInsensitiveNameIndex:
        return self._index

    def get(self, name: str) -> Optional[ColumnMetadataInterface]:
        return self._index.get(name)

    def position(self, name: str) -> Optional[int]:
        return match_table_column_position(name, self._columns)
