# Copyright 2016 The GOE Authors. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os

from bqdriver.util.driver_log_fh import (
    DriverLogFileHandle,
    is_gcs_path,
    is_valid_path_for_logs,
)


def test_is_gcs_path():
    assert is_gcs_path("gs://bucket/logs")
    assert not is_gcs_path("/tmp/logs")


def test_is_valid_path_for_logs():
    assert is_valid_path_for_logs("/tmp/logs")
    assert is_valid_path_for_logs("gs://bucket/logs")


def test_driver_log_fh_local(tmp_path):
    path = os.path.join(str(tmp_path), "import.log")
    fh = DriverLogFileHandle(path)
    fh.write("line 1\n")
    fh.flush()
    assert not fh.closed
    fh.close()
    assert fh.closed
    # A second close is a no-op
    fh.close()
    with open(path) as f:
        assert f.read() == "line 1\n"
