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

""" config_validation_functions: Library of functions used to check and normalise DriverConfig values
"""

from bqdriver.config import driver_defaults
from bqdriver.util.json_tools import deserialize_object


class DriverConfigException(Exception):
    pass


###########################################################################
# CONSTANTS
###########################################################################

# Session parameters that are applied to the default query job config, anything else is rejected.
VALID_BACKEND_SESSION_PARAMETERS = ["maximum_bytes_billed", "use_query_cache"]

VALID_LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def verify_json_option(option_name, option_value):
    if option_value:
        try:
            properties = deserialize_object(option_value)
        except ValueError as ve:
            raise DriverConfigException(
                "Invalid JSON value for %s: %s" % (option_name, str(ve))
            ) from ve

        if not isinstance(properties, dict):
            raise DriverConfigException(
                "Invalid JSON value for %s: expected an object" % option_name
            )
        invalid_props = [
            k for k, v in properties.items() if type(v) not in (str, int, float, bool)
        ]
        if invalid_props:
            prop_details = "\n".join(
                f"Invalid property value for key/value pair: {k}: {properties[k]}"
                for k in invalid_props
            )
            raise DriverConfigException(
                "Invalid property value in {} for keys: {}\n{}".format(
                    option_name, str(invalid_props), prop_details
                )
            )


###########################################################################
# NORMALISATION FUNCTIONS
###########################################################################


def normalise_backend_session_parameters(opts):
    if not opts.backend_session_parameters:
        opts.backend_session_parameters = {}
    elif isinstance(opts.backend_session_parameters, str):
        verify_json_option(
            "BACKEND_SESSION_PARAMETERS", opts.backend_session_parameters
        )
        opts.backend_session_parameters = deserialize_object(
            opts.backend_session_parameters
        )
    unsupported = [
        k
        for k in opts.backend_session_parameters
        if k not in VALID_BACKEND_SESSION_PARAMETERS
    ]
    if unsupported:
        raise DriverConfigException(
            "Unsupported BACKEND_SESSION_PARAMETERS keys: %s" % unsupported
        )


def normalise_boolean_options(opts):
    for opt_name in ["ansi", "quiet", "suppress_stdout", "verbose", "vverbose"]:
        opt_val = getattr(opts, opt_name)
        if isinstance(opt_val, str):
            try:
                setattr(
                    opts,
                    opt_name,
                    driver_defaults.bool_option_from_string(opt_name.upper(), opt_val),
                )
            except driver_defaults.DriverDefaultsException as exc:
                raise DriverConfigException(str(exc)) from exc


def normalise_log_level(opts):
    if not opts.log_level:
        opts.log_level = None
        return
    opts.log_level = opts.log_level.lower()
    if opts.log_level not in VALID_LOG_LEVELS:
        raise DriverConfigException(
            "Invalid value for LOG_LEVEL, valid values are: %s"
            % ", ".join(VALID_LOG_LEVELS)
        )


def normalise_query_timeout(opts):
    if opts.query_timeout_s is None:
        return
    try:
        opts.query_timeout_s = driver_defaults.posint_option_from_string(
            "QUERY_TIMEOUT_S", opts.query_timeout_s
        )
    except driver_defaults.DriverDefaultsException as exc:
        raise DriverConfigException(str(exc)) from exc
