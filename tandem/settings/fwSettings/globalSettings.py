# Copyright 2019 TerraPower, LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Framework-wide settings definitions and constants.

These are general-purpose settings not related to the coupling algorithm or to any
particular driver: logging and bookkeeping.
"""
from typing import List

import voluptuous as vol

from tandem.settings import setting

CONF_BRANCH_VERBOSITY = "branchVerbosity"
CONF_COMMENT = "comment"
CONF_MODULE_VERBOSITY = "moduleVerbosity"
CONF_VERBOSITY = "verbosity"
CONF_VERSIONS = "versions"

LOG_LEVELS = ["debug", "extra", "info", "important", "prompt", "warning", "error"]


def defineSettings() -> List[setting.Setting]:
    """Return a list of global framework settings."""
    settings = [
        setting.Setting(
            CONF_VERBOSITY,
            default="info",
            label="Primary Log Verbosity",
            description="How verbose the output of the primary process will be",
            options=list(LOG_LEVELS),
            enforcedOptions=True,
            isEnvironment=True,
        ),
        setting.Setting(
            CONF_BRANCH_VERBOSITY,
            default="error",
            label="Worker Log Verbosity",
            description="Verbosity of the non-primary MPI processes",
            options=list(LOG_LEVELS),
            enforcedOptions=True,
            isEnvironment=True,
        ),
        setting.Setting(
            CONF_MODULE_VERBOSITY,
            default={},
            label="Module-Level Verbosity",
            description="Verbosity of any module-specific loggers that are set",
            schema=vol.Schema({str: vol.Coerce(str)}),
            isEnvironment=True,
        ),
        setting.Setting(
            CONF_VERSIONS,
            default={},
            label="Versions of Code Used",
            description="Versions of TANDEM, and any Apps or Plugins that register a "
            "version here.",
            schema=vol.Schema({str: vol.Coerce(str)}),
        ),
        setting.Setting(
            CONF_COMMENT,
            default="",
            label="Case Comments",
            description="A comment describing this case",
        ),
    ]
    return settings
