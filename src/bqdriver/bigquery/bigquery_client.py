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

""" Factory for the BigQuery client used by a single driver operation.
"""

import logging
import re
from typing import Optional

from google.cloud import bigquery
from google.oauth2 import service_account

from bqdriver.config.config_validation_functions import (
    VALID_BACKEND_SESSION_PARAMETERS,
)
from bqdriver.util.json_tools import deserialize_object


###############################################################################
# CONSTANTS
###############################################################################

SCOPES_CLOUD_PLATFORM = ["https://www.googleapis.com/auth/cloud-platform"]
RUN_ID_LABEL = "run_id"
# Label values: lowercase letters, digits, underscores and dashes, at most 63 characters.
INVALID_LABEL_CHARS_RE = re.compile(r"[^a-z0-9_-]")
MAX_LABEL_LENGTH = 63

logger = logging.getLogger(__name__)
# Disabling logging by default
logger.addHandler(logging.NullHandler())


class BigQueryClientException(Exception):
    pass


###########################################################################
# GLOBAL FUNCTIONS
###########################################################################


def _label_text(text: str) -> str:
    return INVALID_LABEL_CHARS_RE.sub("_", str(text).lower())[:MAX_LABEL_LENGTH]


def job_labels(run_id: Optional[str] = None, query_tags: Optional[dict] = None) -> dict:
    """Labels attached to every job of an operation, query tags plus the run id of the operation."""
    labels = {_label_text(k): _label_text(v) for k, v in (query_tags or {}).items()}
    if run_id:
        labels[RUN_ID_LABEL] = _label_text(run_id)
    return labels


def credentials_info(credentials) -> dict:
    """Service account info from driver credentials.
    credentials.principal is the service account JSON without its key, credentials.secret is the private key.
    """
    assert credentials
    try:
        info = deserialize_object(credentials.principal)
    except ValueError as exc:
        raise BigQueryClientException("Credentials principal is not valid JSON") from exc
    if not isinstance(info, dict):
        raise BigQueryClientException("Credentials principal is not a JSON object")
    secret = credentials.secret
    if hasattr(secret, "get_secret_value"):
        secret = secret.get_secret_value()
    if secret:
        info["private_key"] = secret
    return info


def default_query_job_config(
    config, run_id: Optional[str] = None, query_tags: Optional[dict] = None
) -> Optional[bigquery.QueryJobConfig]:
    """Build a default QueryJobConfig from global session parameters and job labels.
    As per docs:
        default_query_job_config: (Optional) Will be merged into job configs passed into the query method.
    """
    session_parameters = config.backend_session_parameters or {}
    labels = job_labels(run_id=run_id, query_tags=query_tags)
    if not session_parameters and not labels:
        return None
    job_config = bigquery.QueryJobConfig()
    for k, v in [(str(k).lower(), v) for k, v in session_parameters.items()]:
        if k not in VALID_BACKEND_SESSION_PARAMETERS:
            raise BigQueryClientException(
                "Modification of job configuration %s is not permitted, valid values: %s"
                % (k, ", ".join(VALID_BACKEND_SESSION_PARAMETERS))
            )
        logger.debug("Setting global session option: %s: %s", k, v)
        setattr(job_config, k, v)
    if labels:
        job_config.labels = labels
    return job_config


def get_bigquery_client(
    credentials,
    config,
    run_id: Optional[str] = None,
    query_tags: Optional[dict] = None,
) -> bigquery.Client:
    """Return a BigQuery client for one driver operation.
    Project comes from config when set, otherwise from the service account.
    Location comes from the credentials region when set, otherwise from config.
    """
    info = credentials_info(credentials)
    sa_credentials = service_account.Credentials.from_service_account_info(
        info, scopes=SCOPES_CLOUD_PLATFORM
    )
    project = config.bigquery_dataset_project or info.get("project_id")
    location = getattr(credentials, "region", None) or config.bigquery_dataset_location
    logger.info("BigQuery client for project %s, location %s", project, location)
    return bigquery.Client(
        project=project,
        credentials=sa_credentials,
        location=location,
        default_query_job_config=default_query_job_config(
            config, run_id=run_id, query_tags=query_tags
        ),
    )
