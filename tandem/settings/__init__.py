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
Settings are various key-value pairs that determine a bunch of modeling and simulation
behaviors.

They are one of the key inputs to a TANDEM run, along with the models of the coupled
solvers themselves.
"""
import glob
import os

from tandem import runLog
from tandem.settings.caseSettings import Settings
from tandem.settings.setting import Setting
from tandem.settings.setting import Option
from tandem.settings.setting import Default


def isBoolSetting(setting: Setting) -> bool:
    """Return whether the passed setting represents a boolean value."""
    return isinstance(setting.default, bool)


def promptForSettingsFile(choice=None):
    """
    Allows the user to select a settings file from the YAML files in the directory.

    Parameters
    ----------
    choice : int, optional
        The item in the list of valid YAML files to load
    """
    runLog.info("Scanning for TANDEM settings files...")
    files = sorted(glob.glob("*.yaml"))
    if not files:
        runLog.info("No eligible settings files found. Creating settings without choice")
        return None

    if choice is None:
        for i, pathToFile in enumerate(files):
            runLog.info("[{0}] - {1}".format(i, os.path.split(pathToFile)[-1]))
        choice = int(input("Enter choice: "))

    return files[choice]
