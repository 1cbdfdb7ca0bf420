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

""" DriverDefaults: Library of functions providing default values for driver configuration.
    Each function reads the matching environment variable, which may have been populated
    from the driver environment file by config_file.load_env().
"""

# Standard Library
import logging
import os
from typing import Optional

from bqdriver.util.misc_functions import is_pos_int

logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class DriverDefaultsException(Exception):
    pass


###############################################################################
# CONSTANTS
###############################################################################

DEFAULT_STAGING_TABLE_PREFIX = "__temp_"

###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def bool_option_from_string(opt_name, opt_val):
    if isinstance(opt_val, bool):
        return opt_val
    if opt_val.strip().lower() not in ("true", "false"):
        raise DriverDefaultsException(f"Invalid value for {opt_name}: {opt_val}")
    return bool(opt_val.strip().lower() == "true")


def posint_option_from_string(opt_name, opt_val, allow_zero=False):
    if opt_val is None:
        return None
    if is_pos_int(opt_val, allow_zero=allow_zero):
        return int(opt_val)
    raise DriverDefaultsException(f"Invalid value for {opt_name}: {opt_val}")


def ansi_default() -> bool:
    return bool_option_from_string("ANSI", os.environ.get("ANSI", "true"))


def backend_session_parameters_default() -> Optional[str]:
    return os.environ.get("BACKEND_SESSION_PARAMETERS")


def bigquery_dataset_location_default() -> Optional[str]:
    return os.environ.get("BIGQUERY_DATASET_LOCATION")


def bigquery_dataset_project_default() -> Optional[str]:
    return os.environ.get("BIGQUERY_DATASET_PROJECT")


def log_level_default():
    log_level = os.environ.get("LOG_LEVEL")
    return log_level.lower() if log_level else log_level


def log_path_default() -> Optional[str]:
    return os.environ.get("BQDRIVER_LOGDIR")


def query_timeout_s_default() -> Optional[int]:
    return posint_option_from_string(
        "QUERY_TIMEOUT_S", os.environ.get("QUERY_TIMEOUT_S")
    )


def quiet_default() -> bool:
    return False


def staging_table_prefix_default() -> str:
    return os.environ.get("BQDRIVER_STAGING_TABLE_PREFIX", DEFAULT_STAGING_TABLE_PREFIX)


def suppress_stdout_default() -> bool:
    return False


def verbose_default() -> bool:
    return False


def vverbose_default() -> bool:
    return False
