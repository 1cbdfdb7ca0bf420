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

""" DriverConfig: Class of configuration attributes for driver commands.
    These are not attributes we expect a caller to change/provide on a command by command basis,
    it is config coming from the environment or a configuration file.
"""

import logging
from typing import Optional

from bqdriver.config import config_file, driver_defaults
from bqdriver.config.config_validation_functions import (
    DriverConfigException,
    normalise_backend_session_parameters,
    normalise_boolean_options,
    normalise_log_level,
    normalise_query_timeout,
)


logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


###########################################################################
# CONSTANTS
###########################################################################

EXPECTED_CONFIG_ARGS = [
    "ansi",
    "backend_session_parameters",
    "bigquery_dataset_location",
    "bigquery_dataset_project",
    "log_level",
    "log_path",
    "query_timeout_s",
    "quiet",
    "staging_table_prefix",
    "suppress_stdout",
    "verbose",
    "vverbose",
]


###########################################################################
# DriverConfig
###########################################################################


class DriverConfig:
    """DriverConfig: Class of configuration attributes for driver commands."""

    ansi: bool
    backend_session_parameters: dict
    bigquery_dataset_location: Optional[str]
    bigquery_dataset_project: Optional[str]
    log_level: Optional[str]
    log_path: Optional[str]
    query_timeout_s: Optional[int]
    quiet: bool
    staging_table_prefix: str
    suppress_stdout: bool
    verbose: bool
    vverbose: bool

    def __init__(self, **kwargs):
        """Do not expect to construct directly via __init__.
        Expected route is via from_dict() or as_defaults().
        """
        unexpected_keys = [k for k in kwargs if k not in EXPECTED_CONFIG_ARGS]
        assert not unexpected_keys, "Unexpected DriverConfig keys: %s" % unexpected_keys
        vars(self).update(kwargs)

        normalise_backend_session_parameters(self)
        normalise_boolean_options(self)
        normalise_log_level(self)
        normalise_query_timeout(self)
        if not self.staging_table_prefix:
            raise DriverConfigException("BQDRIVER_STAGING_TABLE_PREFIX cannot be blank")

    @staticmethod
    def as_defaults():
        return DriverConfig.from_dict({})

    @staticmethod
    def from_dict(config_dict: dict):
        assert isinstance(config_dict, dict)
        unexpected_keys = [k for k in config_dict if k not in EXPECTED_CONFIG_ARGS]
        assert not unexpected_keys, "Unexpected DriverConfig keys: %s" % unexpected_keys
        # Load environment for defaults.
        config_file.load_env()
        # Build config from config_dict.
        return DriverConfig(
            ansi=config_dict.get("ansi", driver_defaults.ansi_default()),
            backend_session_parameters=config_dict.get(
                "backend_session_parameters",
                driver_defaults.backend_session_parameters_default(),
            ),
            bigquery_dataset_location=config_dict.get(
                "bigquery_dataset_location",
                driver_defaults.bigquery_dataset_location_default(),
            ),
            bigquery_dataset_project=config_dict.get(
                "bigquery_dataset_project",
                driver_defaults.bigquery_dataset_project_default(),
            ),
            log_level=config_dict.get("log_level", driver_defaults.log_level_default()),
            log_path=config_dict.get("log_path", driver_defaults.log_path_default()),
            query_timeout_s=config_dict.get(
                "query_timeout_s", driver_defaults.query_timeout_s_default()
            ),
            quiet=config_dict.get("quiet", driver_defaults.quiet_default()),
            staging_table_prefix=config_dict.get(
                "staging_table_prefix", driver_defaults.staging_table_prefix_default()
            ),
            suppress_stdout=config_dict.get(
                "suppress_stdout", driver_defaults.suppress_stdout_default()
            ),
            verbose=config_dict.get("verbose", driver_defaults.verbose_default()),
            vverbose=config_dict.get("vverbose", driver_defaults.vverbose_default()),
        )

    def override(self, **kwargs):
        """Return a copy of this config with some values replaced, used for per-command runtime options."""
        unexpected_keys = [k for k in kwargs if k not in EXPECTED_CONFIG_ARGS]
        assert not unexpected_keys, "Unexpected DriverConfig keys: %s" % unexpected_keys
        new_values = {k: getattr(self, k) for k in EXPECTED_CONFIG_ARGS}
        new_values.update(kwargs)
        return DriverConfig(**new_values)
