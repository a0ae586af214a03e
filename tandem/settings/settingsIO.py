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
Reading and writing of :py:class:`~tandem.settings.caseSettings.Settings` as YAML.

A settings file holds a single ``settings:`` mapping of setting names to values::

    settings:
      power: 65000.0
      maxPicardIter: 10
      alpha: robbins-monro
      versions:
        tandem: 0.2.0
"""
import collections
import sys

import ruamel.yaml.comments
from ruamel.yaml import YAML

from tandem import context, runLog
from tandem.meta import __version__ as version
from tandem.utils.customExceptions import (
    InvalidSettingsFileError,
    InvalidSettingsStopProcess,
)

# Constants defining valid output styles
WRITE_SHORT = "short"
WRITE_MEDIUM = "medium"
WRITE_FULL = "full"


class Roots:
    """YAML tree root node common strings."""

    CUSTOM = "settings"
    VERSION = "version"


class SettingsReader:
    """
    Reads settings files into a Settings object, using ``ruamel.yaml``.

    Parameters
    ----------
    cs : Settings
        The settings object to read into
    """

    def __init__(self, cs):
        self.cs = cs
        self.inputPath = "<stream>"
        self.invalidSettings = set()

        # overwritten if the input file states its version
        self.inputVersion = version
        self.liveVersion = version

    def __getitem__(self, key):
        return self.cs[key]

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.inputPath}>"

    def readFromFile(self, path, handleInvalids=True):
        """Load file and read it."""
        with open(path, "r") as f:
            self.inputPath = path
            try:
                self.readFromStream(f, handleInvalids)
            except InvalidSettingsStopProcess:
                raise
            except Exception as ee:
                raise InvalidSettingsFileError(path, str(ee))

    def readFromStream(self, stream, handleInvalids=True):
        """Read from a file-like stream."""
        self._readYaml(stream)
        if handleInvalids:
            self._checkInvalidSettings()

    def _readYaml(self, stream):
        """Read settings from a YAML stream."""
        from tandem.settings.fwSettings.globalSettings import CONF_VERSIONS

        yaml = YAML(typ="rt")
        yaml.allow_duplicate_keys = False
        tree = yaml.load(stream)
        if not isinstance(tree, dict) or Roots.CUSTOM not in tree:
            raise InvalidSettingsFileError(
                self.inputPath,
                "Missing the `settings:` header required in YAML settings",
            )

        caseSettings = tree[Roots.CUSTOM] or {}
        if CONF_VERSIONS in caseSettings and "tandem" in caseSettings[CONF_VERSIONS]:
            self.inputVersion = caseSettings[CONF_VERSIONS]["tandem"]
        else:
            runLog.warning(
                "Versions setting section not found. Continuing with uncontrolled versions.",
                single=True,
            )
            self.inputVersion = "uncontrolled"

        for settingName, settingVal in caseSettings.items():
            self._applySettings(settingName, settingVal)

    def _checkInvalidSettings(self):
        if not self.invalidSettings:
            return
        invalidNames = "\n\t".join(sorted(self.invalidSettings))
        try:
            proceed = prompt(
                "Found {} invalid settings in {}.\n\n {} \n\t".format(
                    len(self.invalidSettings), self.inputPath, invalidNames
                ),
                "Invalid settings will be ignored. Continue running the case?",
                "YES_NO",
            )
        except RunLogPromptUnresolvable:
            # batch runs proceed, ignoring the invalid settings
            proceed = True
        if not proceed:
            raise InvalidSettingsStopProcess(self)
        runLog.warning(f"Ignoring invalid settings: {invalidNames}")

    def _applySettings(self, name, val):
        """Add a setting, if it is valid. Capture invalid settings."""
        if name not in self.cs:
            self.invalidSettings.add(name)
        else:
            # coerced into the expected type by the setting's schema
            self.cs[name] = _plain(val)


def _plain(val):
    """Convert ruamel round-trip containers to plain python containers."""
    if isinstance(val, dict):
        return {k: _plain(v) for k, v in val.items()}
    if isinstance(val, list):
        return [_plain(v) for v in val]
    return val


class SettingsWriter:
    """
    Writes settings out to files.

    This can write in three styles:

    short
        setting values that are not their defaults only
    medium
        preserves all settings originally in file even if they match the default value
    full
        all setting values regardless of default status
    """

    def __init__(self, settings_instance, style="short", settingsSetByUser=None):
        self.cs = settings_instance
        self.style = style
        if style not in {WRITE_SHORT, WRITE_MEDIUM, WRITE_FULL}:
            raise ValueError(f"Invalid supplied setting writing style {style}")
        self.settingsSetByUser = settingsSetByUser or []

    def writeYaml(self, stream):
        """Write settings to YAML file."""
        settingData = self._preprocessYaml(self._getSettingDataToWrite())
        yaml = YAML()
        yaml.default_flow_style = False
        yaml.indent(mapping=2, sequence=4, offset=2)
        yaml.dump(settingData, stream)

    def _preprocessYaml(self, settingData):
        """Flatten the setting data and stamp the TANDEM version."""
        from tandem.settings.fwSettings.globalSettings import CONF_VERSIONS

        cleanedData = collections.OrderedDict()
        for settingObj in settingData:
            cleanedData[settingObj.name] = settingObj.dump()

        versions = dict(cleanedData.get(CONF_VERSIONS) or {})
        versions["tandem"] = version
        cleanedData[CONF_VERSIONS] = versions

        # CommentedMap avoids the !!omap tag of ordered dicts
        return {Roots.CUSTOM: ruamel.yaml.comments.CommentedMap(cleanedData)}

    def _getSettingDataToWrite(self):
        """Return the setting objects slated for being written, sorted by name."""
        toWrite = []
        for settingName, settingObject in sorted(
            self.cs.items(), key=lambda item: item[0].lower()
        ):
            if self.style == WRITE_SHORT and not settingObject.offDefault:
                continue

            if (
                self.style == WRITE_MEDIUM
                and not settingObject.offDefault
                and settingName not in self.settingsSetByUser
            ):
                continue

            toWrite.append(settingObject)

        return toWrite


def prompt(statement, question, *options):
    """Prompt the user for some information on the terminal."""
    if context.CURRENT_MODE == context.Mode.INTERACTIVE:
        response = ""
        responses = [
            opt for opt in options if opt in ["YES_NO", "YES", "NO", "CANCEL", "OK"]
        ]

        if "YES_NO" in responses:
            index = responses.index("YES_NO")
            responses[index] = "NO"
            responses.insert(index, "YES")

        if not any(responses):
            raise RuntimeError(f"No suitable responses in {responses}")

        # shorthand responses
        if "YES" in responses:
            responses.append("Y")
        if "NO" in responses:
            responses.append("N")

        while response not in responses:
            runLog.LOG.log("prompt", statement)
            runLog.LOG.log("prompt", "{} ({}): ".format(question, ", ".join(responses)))
            response = sys.stdin.readline().strip().upper()

        if response == "CANCEL":
            raise RunLogPromptCancel("Manual cancellation of interactive prompt")

        return response in ["YES", "Y", "OK"]

    raise RunLogPromptUnresolvable(
        f"Incorrect CURRENT_MODE for prompting user: {context.CURRENT_MODE}"
    )


class RunLogPromptCancel(Exception):
    """The user submitted a cancel on a prompt which allows for cancellation."""


class RunLogPromptUnresolvable(Exception):
    """The current mode suggests the user cannot be communicated with from this process."""
