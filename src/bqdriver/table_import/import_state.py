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

""" ImportState: rows, columns and step timers gathered while an import runs.
"""

from typing import Optional

from bqdriver.util.misc_functions import str_summary_of_self
from bqdriver.util.simple_timer import SimpleTimer


class ImportStateException(Exception):
    pass


class ImportResult(object):
    def __init__(
        self,
        imported_rows_count: int = 0,
        imported_columns: Optional[list] = None,
        timers: Optional[list] = None,
        warnings: Optional[list] = None,
    ):
        self.imported_rows_count = imported_rows_count
        self.imported_columns = list(imported_columns or [])
        # List of {"name": ..., "durationSeconds": ...}
        self.timers = list(timers or [])
        self.warnings = list(warnings or [])

    def __str__(self):
        return str_summary_of_self(self)


class ImportState(object):
    """Shared by the staging and final table importers of one import.
    Finished timers are also recorded on messages, when supplied, for the step summary.
    """

    def __init__(self, staging_table_name: str, messages=None):
        self.staging_table_name = staging_table_name
        self.imported_rows_count = 0
        self.imported_columns = []
        self.warnings = []
        self._messages = messages
        self._timers = {}

    def __str__(self):
        return str_summary_of_self(self)

    def start_timer(self, name: str):
        if name in self._timers and self._timers[name].is_running:
            raise ImportStateException("Timer already running: %s" % name)
        self._timers[name] = SimpleTimer(name)

    def stop_timer(self, name: str):
        if name not in self._timers:
            raise ImportStateException("Timer not started: %s" % name)
        timer = self._timers[name]
        timer.stop()
        if self._messages:
            self._messages.add_timer(timer)

    def add_imported_rows_count(self, rows: int):
        self.imported_rows_count += rows or 0

    def set_imported_columns(self, column_names: list):
        self.imported_columns = list(column_names)

    def timers(self) -> list:
        return [_.as_dict() for _ in self._timers.values() if not _.is_running]

    def get_result(self) -> ImportResult:
        return ImportResult(
            imported_rows_count=self.imported_rows_count,
            imported_columns=self.imported_columns,
            timers=self.timers(),
            warnings=self.warnings,
        )
