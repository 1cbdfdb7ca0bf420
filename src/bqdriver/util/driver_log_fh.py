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

import fsspec
from gcsfs.core import GCS_MIN_BLOCK_SIZE


def is_gcs_path(path: str):
    return bool(path and path.startswith("gs://"))


def is_valid_path_for_logs(path: str):
    return bool(path and (path.startswith("/") or is_gcs_path(path)))


class DriverLogFileHandle:
    """File handle for a driver log, either on local disk or in a GCS bucket."""

    name: str = None

    def __init__(self, path: str, mode="w"):
        self._fs = self._get_fs(path)
        self.name = path
        self._fh = self._fs.open(path, mode=mode)

    def __enter__(self):
        return self._fh

    def __exit__(self, type, value, traceback):
        self.close()

    def _get_fs(self, path: str) -> fsspec.AbstractFileSystem:
        if is_gcs_path(path):
            # No token so gcsfs picks up application default credentials.
            return fsspec.filesystem("gs", block_size=GCS_MIN_BLOCK_SIZE)
        return fsspec.filesystem("file")

    @property
    def closed(self):
        return self._fh.closed

    def close(self):
        if not self._fh.closed:
            return self._fh.close()

    def flush(self):
        # GCS buffers until the block size is reached regardless of flush().
        self._fh.flush()

    def write(self, *args, **kwargs):
        return self._fh.write(*args, **kwargs)
