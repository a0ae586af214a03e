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
This defines a Settings object that acts mostly like a dictionary. Each TANDEM run has
one-and-only-one Settings object. It records user settings like the total power, the
number of timesteps and Picard iterations, the relaxation schemes, the drivers to couple
and how the processes are split between them.

A Settings object can be saved as or loaded from a YAML file.
"""
import io
import logging
import os
from copy import copy, deepcopy

from ruamel.yaml import YAML

from tandem import context, runLog
from tandem.settings import settingsIO
from tandem.settings.setting import Setting
from tandem.utils import pathTools
from tandem.utils.customExceptions import (
    NonexistentSetting,
    NonexistentSettingsFileError,
)


class Settings:
    """
    A container for run settings, such as case title, power level, and many more.

    Notes
    -----
    While it is possible to modify settings during the course of a run, there will be no
    record of this in the written settings file. Every rank of a coupled run reads the
    same file and must hold the same settings.
    """

    defaultCaseTitle = "tandem"

    def __init__(self, fName=None):
        """
        Instantiate a Settings object.

        Parameters
        ----------
        fName : str, optional
            Path to a valid yaml settings file that will be loaded
        """
        from tandem import getApp

        # The command line can override values of the settings file, but only if the
        # file is read first. _failOnLoad prevents reading it afterwards.
        self._failOnLoad = False
        self.path = ""

        app = getApp()
        assert app is not None, "Settings cannot be built before tandem.configure()"
        self.__settings = app.getSettings()

        if fName:
            self.loadFromInputFile(fName)

    @property
    def inputDirectory(self):
        """Getter for settings file path."""
        if not self.path:
            return os.getcwd()
        return os.path.dirname(self.path)

    @property
    def caseTitle(self):
        """
        The name of the case, which names log and output files.

        It is the settings file name without its extension.
        """
        if not self.path:
            return self.defaultCaseTitle
        return os.path.splitext(os.path.basename(self.path))[0]

    @caseTitle.setter
    def caseTitle(self, value):
        self.path = os.path.join(self.inputDirectory, value + ".yaml")

    @property
    def environmentSettings(self):
        return [s.name for s in self.__settings.values() if s.isEnvironment]

    def __contains__(self, key):
        return key in self.__settings

    def __repr__(self):
        total = len(self.__settings.keys())
        altered = sum(1 for s in self.__settings.values() if s.offDefault)

        return "<{} name:{} total:{} altered:{}>".format(
            self.__class__.__name__, self.caseTitle, total, altered
        )

    def __getitem__(self, key):
        if key not in self.__settings:
            raise NonexistentSetting(key)
        return self.__settings[key].value

    def getSetting(self, key, default=None):
        """
        Return a copy of an actual Setting object, instead of just its value.

        Notes
        -----
        This is used very rarely, try to organize your code to only need a Setting value.
        """
        if key in self.__settings:
            return copy(self.__settings[key])
        elif default is not None:
            return default
        raise NonexistentSetting(key)

    def __setitem__(self, key, val):
        if key in self.__settings:
            self.__settings[key].setValue(val)
        else:
            raise NonexistentSetting(key)

    def __setstate__(self, state):
        """
        Rebuild schema upon unpickling since schema is unpickleable.

        See Also
        --------
        tandem.settings.setting.Setting.__getstate__ : removes schema
        """
        from tandem import getApp

        self.__settings = getApp().getSettings()

        for key, val in state.items():
            if key != "_Settings__settings":
                setattr(self, key, val)

        for name, settingState in state["_Settings__settings"].items():
            if name in self.__settings:
                self.__settings[name]._value = settingState.value
            elif isinstance(settingState, Setting):
                # not registered by a plugin; the schema is derived again from the default
                restored = copy(settingState)
                restored._setSchema(None)
                self.__settings[name] = restored
            else:
                raise NonexistentSetting(name)

    def keys(self):
        return self.__settings.keys()

    def values(self):
        return self.__settings.values()

    def items(self):
        return self.__settings.items()

    def duplicate(self):
        """Return a duplicate copy of this settings object, independent of the command line."""
        cs = deepcopy(self)
        cs._failOnLoad = False
        return cs

    def revertToDefaults(self):
        """Sets every setting back to its default value."""
        for s in self.__settings.values():
            s.revertToDefault()

    def failOnLoad(self):
        """Force loading a file to fail, once command line processing of settings has begun."""
        self._failOnLoad = True

    def loadFromInputFile(self, fName, handleInvalids=True, setPath=True):
        """
        Read in settings from an input YAML file.

        Passes the reader back out in case you want to know something about how the
        reading went, like which settings were invalid.
        """
        if self._failOnLoad:
            raise RuntimeError(
                "Cannot load settings file after processing of command line options begins.\n"
                "You may be able to fix this by reordering the command line arguments, and "
                f"making sure the settings file `{fName}` comes before any modified settings."
            )
        path = pathTools.absPath(fName)
        if not os.path.exists(path):
            raise NonexistentSettingsFileError(path)

        reader = settingsIO.SettingsReader(self)
        reader.readFromFile(path, handleInvalids)
        self.initLogVerbosity()
        if setPath:
            self.path = path

        return reader

    def loadFromString(self, string, handleInvalids=True):
        """Read in settings from a YAML string."""
        if self._failOnLoad:
            raise RuntimeError(
                "Cannot load settings after processing of command line options begins.\n"
                "You may be able to fix this by reordering the command line arguments."
            )

        reader = settingsIO.SettingsReader(self)
        reader.readFromStream(io.StringIO(string), handleInvalids=handleInvalids)
        self.initLogVerbosity()

        return reader

    def initLogVerbosity(self):
        """
        Central location to init logging verbosity.

        Notes
        -----
        Creating a Settings object from a file sets the global logging level of the
        entire code base.
        """
        if context.MPI_RANK == 0:
            runLog.setVerbosity(self["verbosity"])
        else:
            runLog.setVerbosity(self["branchVerbosity"])

        self.setModuleVerbosities(force=True)

    def writeToYamlFile(self, fName, style="short", fromFile=None):
        """
        Write settings to a yaml file.

        Notes
        -----
        This resets the current path to the newly written absolute path.

        Parameters
        ----------
        fName : str
            the file to write to
        style : str (optional)
            short, medium, or full; see :py:class:`tandem.settings.settingsIO.SettingsWriter`
        fromFile : str (optional)
            the source file when cloning with the ``medium`` style
        """
        self.path = pathTools.absPath(fName)
        if style == settingsIO.WRITE_MEDIUM:
            getSettingsPath = self.path if fromFile is None else pathTools.absPath(fromFile)
            settingsSetByUser = self.getSettingsSetByUser(getSettingsPath)
        else:
            settingsSetByUser = []
        with open(self.path, "w") as stream:
            writer = self.writeToYamlStream(stream, style, settingsSetByUser)

        return writer

    def getSettingsSetByUser(self, fPath):
        """Return the names of the settings present in a settings file."""
        with open(fPath, "r") as stream:
            yaml = YAML()
            yaml.allow_duplicate_keys = False
            tree = yaml.load(stream)

        return list(tree[settingsIO.Roots.CUSTOM].keys())

    def writeToYamlStream(self, stream, style="short", settingsSetByUser=None):
        """Write settings in yaml format to an arbitrary stream."""
        writer = settingsIO.SettingsWriter(
            self, style=style, settingsSetByUser=settingsSetByUser or []
        )
        writer.writeYaml(stream)
        return writer

    def modified(self, caseTitle=None, newSettings=None):
        """Return a new Settings object containing the provided modifications."""
        settings = self.duplicate()

        if caseTitle:
            settings.caseTitle = caseTitle

        if newSettings:
            for key, val in newSettings.items():
                if isinstance(val, Setting):
                    settings.__settings[key] = copy(val)
                elif key in settings.__settings:
                    settings.__settings[key].setValue(val)
                else:
                    raise NonexistentSetting(key)

        return settings

    def setModuleVerbosities(self, force=False):
        """
        Set the log levels of the module-level loggers named in ``moduleVerbosity``.

        Parameters
        ----------
        force : bool, optional
            If False, don't overwrite the verbosity of loggers that already exist.
        """
        for mName, mLvl in self["moduleVerbosity"].items():
            if force or mName not in logging.Logger.manager.loggerDict:
                lvl = int(mLvl) if mLvl.isnumeric() else runLog.LOG.logLevels[mLvl][0]
                logging.getLogger(mName).setVerbosity(lvl)
