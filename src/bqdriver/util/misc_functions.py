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

""" Miscellaneous useful functions that do not fit anywhere else
"""

import datetime
import inspect
import re
import uuid


def is_pos_int(val, allow_zero=False):
    """Is val a positive integer, or a string containing one."""
    if isinstance(val, bool):
        return False
    if isinstance(val, int):
        return bool(val >= 0) if allow_zero else bool(val > 0)
    if isinstance(val, str) and re.match(r"^\d+$", val.strip()):
        return is_pos_int(int(val.strip()), allow_zero=allow_zero)
    return False


def unique_object_name(prefix: str) -> str:
    """Generate a name that is unique per call, e.g. for a throwaway staging table.
    Hyphens from the uuid are dropped because they are not valid in unquoted identifiers.
    """
    return "%s%s" % (prefix, uuid.uuid4().hex)


def str_summary_of_self(other_self):
    """Helper function to create a string representation of an object, to be used in __str__ methods"""
    assert other_self
    return "({})".format(
        ", ".join(
            "{}={}".format(k, v)
            for k, v in inspect.getmembers(other_self)
            if not inspect.ismethod(v) and not inspect.isfunction(v) and k[0] != "_"
        )
    )


def standard_log_name(log_prefix: str) -> str:
    """Log file name with a date/time suffix, e.g. import_table_20240101_120000_000000.log"""
    assert log_prefix
    assert "/" not in log_prefix
    return "%s_%s.log" % (log_prefix, datetime.datetime.now().strftime("%Y%m%d_%H%M%S_%f"))
