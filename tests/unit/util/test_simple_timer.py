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

""" TestSimpleTimer: Unit test library to test SimpleTimer
"""
import time
from unittest import TestCase, main

from bqdriver.util.simple_timer import SimpleTimer


class TestSimpleTimer(TestCase):
    def test_simple_timer(self):
        t = SimpleTimer()
        self.assertTrue(t.is_running)
        time.sleep(0.2)
        self.assertGreater(t.elapsed, 0.1)
        self.assertIsInstance(t.show(), str)
        t.reset()
        self.assertLess(t.elapsed, 0.1)
        t.stop()
        self.assertFalse(t.is_running)
        t1 = t.elapsed
        time.sleep(0.2)
        # Stopped so elapsed should not be incrementing
        self.assertEqual(t.elapsed, t1)
        # A second stop does not move the duration
        t.stop()
        self.assertEqual(t.elapsed, t1)

        # Named timer
        t = SimpleTimer("toStaging")
        self.assertIn("toStaging", t.show())

    def test_as_dict(self):
        t = SimpleTimer("copyToStaging")
        t.stop()
        d = t.as_dict()
        self.assertEqual(d["name"], "copyToStaging")
        self.assertEqual(d["durationSeconds"], t.duration)
        self.assertGreaterEqual(d["durationSeconds"], 0)


if __name__ == "__main__":
    main()
