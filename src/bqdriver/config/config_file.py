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

import os
from typing import Optional

from dotenv import load_dotenv


CONFIG_FILE_NAME = "bqdriver.env"
HOME_ENV_VAR = "BQDRIVER_HOME"


def get_environment_file_path() -> Optional[str]:
    if not os.environ.get(HOME_ENV_VAR):
        return None
    return os.path.join(os.environ.get(HOME_ENV_VAR), "conf", CONFIG_FILE_NAME)


def load_env(path: str = None) -> bool:
    """Load driver environment from a configuration file.

    By default this is a fixed location: $BQDRIVER_HOME/conf/bqdriver.env.
    A driver embedded in another process may have no home directory, in which case
    nothing is loaded and configuration comes from the process environment alone.
    Values already present in the environment are not overridden.
    """
    if not path:
        path = get_environment_file_path()
    if not path or not os.path.isfile(path):
        return False
    return load_dotenv(path)
