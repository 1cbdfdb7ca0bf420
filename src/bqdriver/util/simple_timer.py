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

""" SimpleTimer: Named elapsed-time measurement used for import step timers.
"""

import time


class SimpleTimer(object):
    """Measures elapsed seconds for a named import step.
    A timer runs from construction (or reset()) until stop() freezes the duration.
    """

    def __init__(self, name="timer"):
        self.name = name
        self.start = None
        self.duration = None
        self.reset()

    @property
    def elapsed(self) -> float:
        if self.duration is not None:
            return self.duration
        return time.time() - self.start

    @property
    def is_running(self) -> bool:
        return self.duration is None

    def reset(self):
        self.start = time.time()
        self.duration = None

    def show(self):
        return "{desc} elapsed: {elapsed:5.3f} seconds".format(
            desc=self.name, elapsed=self.elapsed
        )

    def stop(self):
        if self.duration is None:
            self.duration = time.time() - self.start
        return "{desc} elapsed: {elapsed:5.3f} seconds".format(
            desc=self.name, elapsed=self.duration
        )

    def as_dict(self) -> dict:
        """Timer in the shape reported back to callers: {name, durationSeconds}."""
        return {"name": self.name, "durationSeconds": self.elapsed}
