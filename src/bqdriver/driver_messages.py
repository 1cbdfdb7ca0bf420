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

""" DriverMessages: Library for handling messages and step timers of driver operations
"""

# Standard Library
import logging
import os
import sys
import traceback
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

# BQDRIVER
from bqdriver.util.driver_log_fh import DriverLogFileHandle
from bqdriver.util.misc_functions import standard_log_name
from bqdriver.util.simple_timer import SimpleTimer


class DriverMessagesException(Exception):
    pass


QUIET, NORMAL, VERBOSE, VVERBOSE, SUPPRESS_STDOUT = list(range(-1, 4))

COLORS = {
    "none": "\033[0m",
    "cyan": "\033[96m",
    "magenta": "\033[95m",
    "blue": "\033[94m",
    "yellow": "\033[93m",
    "green": "\033[92m",
    "red": "\033[91m",
    "grey": "\033[90m",
    "white": "\033[37m",
    "bold": "\033[1m",
    "underline": "\033[4m",
}

logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class DriverMessages(object):
    """Class for logging, storing & reporting messages and step timers of a driver operation"""

    def __init__(self, detail=NORMAL, log_fh=None, ansi=True):
        """
        log_fh: Allows init of the log using an existing file handle.
                For stand-alone use the init_log method makes more sense.
        """
        logger.info("DriverMessages setup")
        self.messages = {"notices": [], "warnings": []}
        self.steps = {}
        self._log_fh = log_fh
        self._detail = detail
        self._ansi = ansi
        self._stdout_in_error = False

    ###########################################################################
    # PUBLIC METHODS
    ###########################################################################

    @staticmethod
    def from_options(opts, log_fh=None):
        assert hasattr(opts, "quiet")
        assert hasattr(opts, "verbose")
        assert hasattr(opts, "vverbose")
        assert hasattr(opts, "ansi")
        if opts.quiet:
            detail = QUIET
        elif opts.vverbose:
            detail = VVERBOSE
        elif opts.verbose:
            detail = VERBOSE
        elif opts.suppress_stdout:
            detail = SUPPRESS_STDOUT
        else:
            detail = NORMAL
        return DriverMessages(detail=detail, log_fh=log_fh, ansi=opts.ansi)

    @staticmethod
    def ansi_wrap(txt, color_name, ansi):
        if ansi and color_name:
            if type(color_name) not in (list, tuple):
                color_name = [color_name]
            return (
                "".join([COLORS.get(cn, "") for cn in color_name])
                + str(txt)  # noqa: W503
                + COLORS.get("none")  # noqa: W503
            )
        else:
            return txt

    def init_log(self, log_dir, log_name):
        assert log_dir and log_name
        logger.debug("init_log(%s, %s)" % (log_dir, log_name))
        log_path = os.path.join(log_dir, standard_log_name(log_name))
        logger.debug("log_path: %s" % log_path)
        self._log_fh = DriverLogFileHandle(log_path)

    def close_log(self):
        if self._log_fh:
            self._log_fh.close()

    def log(self, line, detail=NORMAL, ansi_code=None):
        """Write line to the log file, if any, and to stdout when detail is within the session verbosity."""

        def fh_log(line):
            self._log_fh.write((line or "") + "\n")
            self._log_fh.flush()

        def stdout_log(line):
            if not self._stdout_in_error:
                try:
                    sys.stdout.write((line or "") + "\n")
                    sys.stdout.flush()
                except OSError as exc:
                    # Writing to screen is non-essential, if we lost stdout we are still logging to file.
                    if self._log_fh:
                        fh_log("Disabling STDOUT logging due to: {}".format(str(exc)))
                    self._stdout_in_error = True

        if self._log_fh:
            fh_log(line)
        if self._detail == QUIET:
            stdout_log(".")
        elif (detail is None or detail <= self._detail) and (
            self._detail != SUPPRESS_STDOUT
        ):
            stdout_log(self.ansi_wrap(line, ansi_code, self._ansi))

    def notice(self, msg, detail=VERBOSE):
        if msg not in self.messages["notices"]:
            self.messages["notices"].append(msg)
        self.log(msg, detail)

    def warning(self, msg, detail=NORMAL, ansi_code=None):
        if msg not in self.messages["warnings"]:
            self.messages["warnings"].append(msg)
        self.log("WARNING:" + msg, detail, ansi_code)

    def log_timestamp(self, ansi_code="grey", detail=VERBOSE):
        ts = datetime.now().replace(microsecond=0)
        self.log(ts.strftime("%c"), detail=detail, ansi_code=ansi_code)
        return ts

    def step(
        self,
        step_name: str,
        step_fn: Callable,
        optional=False,
        record_timer=True,
    ) -> Any:
        """
        Produce formatted step output with elapsed time and return the value of step_fn().

        step_name: The timer name reported back to the caller, e.g. toStaging.
        step_fn: The function to call for the step. No arguments are passed in,
                 the callable should capture any arguments itself.
        optional: Log and continue if the step fails rather than re-raising.
        record_timer: Some steps contain inner steps, the outer step should not
                      record a timer when its inner steps already do.
        """
        assert step_name
        assert callable(step_fn)

        self.log("")
        self.log(step_name, ansi_code="underline", detail=VERBOSE)
        ts = self.log_timestamp()
        timer = SimpleTimer(step_name)
        try:
            step_results = step_fn()
            timer.stop()
            self.log(
                "Step time: %s" % (datetime.now().replace(microsecond=0) - ts),
                detail=VERBOSE,
                ansi_code="grey",
            )
            self.log("Done", detail=VERBOSE, ansi_code="green")
            if record_timer:
                self.add_timer(timer)
            return step_results
        except Exception as exc:
            timer.stop()
            self.log(timer.show(), detail=VERBOSE, ansi_code="grey")
            if optional:
                self.log(traceback.format_exc(), detail=VVERBOSE)
                self.warning('Error in "%s": %s' % (step_name, str(exc)), ansi_code="red")
                self.log("Optional step, continuing", ansi_code="green")
            else:
                raise

    def add_timer(self, timer: SimpleTimer):
        """Record a finished timer in the step summary."""
        timer.stop()
        self.step_delta(timer.name, timedelta(seconds=timer.elapsed))

    def get_notices(self):
        return self.messages["notices"]

    def get_warnings(self):
        return self.messages["warnings"]

    def log_messages(self):
        logger.info("log_messages()")
        if self.get_warnings():
            self.log("Warnings:", ansi_code="red")
            for msg in self.get_warnings():
                self.log(msg)
        if self.get_notices():
            self.log("Notices:", ansi_code="green")
            for msg in self.get_notices():
                self.log(msg)

    def step_delta(self, step, time_delta: Optional[timedelta]):
        if time_delta is None:
            return
        if step in self.steps:
            self.steps[step]["seconds"] = (
                self.steps[step]["seconds"] + time_delta.total_seconds()
            )
            self.steps[step]["count"] += 1
        else:
            self.steps[step] = {"seconds": time_delta.total_seconds(), "count": 1}

    def log_step_deltas(self, topn=10, detail=VVERBOSE):
        logger.info("log_step_deltas()")
        if not self.steps:
            return
        logged_seconds = sum(_["seconds"] for _ in list(self.steps.values()))
        step_width = max([len(step) for step in self.steps])
        step_format = "{0: <" + str(step_width) + "} {1: >9} {2: >7}"
        self.log(step_format.format("Step", "Seconds", "Percent"), detail=detail)
        for i, (step_key, step_dict) in enumerate(
            sorted(
                iter(self.steps.items()), key=lambda x: x[1]["seconds"], reverse=True
            )
        ):
            if i >= topn:
                break
            ratio = (step_dict["seconds"] / logged_seconds) if logged_seconds > 0 else 0
            self.log(
                step_format.format(
                    step_key,
                    "{:9.3f}".format(step_dict["seconds"]),
                    "{:5.1%}".format(ratio),
                ),
                detail=detail,
            )
        if logged_seconds:
            self.log(
                "Total time logged: %s" % str(timedelta(seconds=logged_seconds)),
                detail=VVERBOSE,
            )

    @property
    def verbosity(self):
        return self._detail
