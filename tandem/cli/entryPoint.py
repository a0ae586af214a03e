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
Base class of the command line entry points.

An entry point owns its own argument parser and a :py:class:`~tandem.settings.Settings`
object. Settings given on the command line, with options created from settings by
:py:meth:`EntryPoint.createOptionFromSetting`, override those of the settings file.
"""
import argparse
from typing import Optional, Union

from tandem import context, runLog, settings


class _EntryPointEnforcer(type):
    """
    Simple metaclass used for the EntryPoint abstract base class to enforce class
    attributes.
    """

    def __new__(mcs, name, bases, attrs):
        if "name" not in attrs:
            raise AttributeError(
                "Subclasses of EntryPoint must define a `name` class attribute."
            )

        # basic input validation. Will throw a KeyError if argument is incorrect
        clsSettings = {"optional": "optional", "required": "required", None: None}[
            attrs.get("settingsArgument", None)
        ]
        attrs["settingsArgument"] = clsSettings

        return type.__new__(mcs, name, bases, attrs)


class EntryPoint(metaclass=_EntryPointEnforcer):
    """
    Generic command line entry point.

    A valid subclass must provide at least a ``name`` class attribute, and may also
    specify the other class attributes described below.
    """

    #: The <command-name> that is used to call the command from the command line
    name: Optional[str] = None

    description: Optional[str] = None
    """A string summarizing the command's actions. This is summary that is printed when
    you run `python -m tandem --list-commands` or `python -m tandem <command-name>
    --help`. If not provided, the docstring of the class is used instead."""

    settingsArgument: Union[str, None] = None
    """
    One of {'optional', 'required', None}, or unspecified.
    Specifies whether a settings file argument is to be added to the
    command's argument parser."""

    splash = True
    """
    Whether running the entry point should produce a splash text upon executing.
    """

    #: One of {tandem.Mode.BATCH, tandem.Mode.INTERACTIVE}, optional.
    mode: Optional[int] = None

    def __init__(self):
        if self.name is None:
            raise AttributeError(
                "Subclasses of EntryPoint must define a `name` class attribute"
            )

        self.cs = self._initSettings()

        self.parser = argparse.ArgumentParser(
            prog="{} {}".format(context.APP_NAME, self.name),
            description=self.description or self.__doc__,
        )
        if self.settingsArgument == "optional":
            self.parser.add_argument(
                "settings_file",
                nargs="?",
                action=loadSettings(self.cs),
                help="path to the settings file to load.",
            )
        elif self.settingsArgument == "required":
            self.parser.add_argument(
                "settings_file",
                action=loadSettings(self.cs),
                help="path to the settings file to load.",
            )

        # optional arguments
        self.parser.add_argument(
            "--caseTitle",
            type=str,
            nargs=None,
            action=setCaseTitle(self.cs),
            help="update the case title of the run.",
        )
        self.parser.add_argument(
            "--batch",
            action="store_true",
            default=False,
            help="Run in batch mode even on TTY, silencing all queries.",
        )
        self.createOptionFromSetting("verbosity", "-v")
        self.createOptionFromSetting("branchVerbosity", "-V")

        self.args = argparse.Namespace()
        self.settingsProvidedOnCommandLine = []

    @staticmethod
    def _initSettings():
        """
        Initialize settings for this entry point.

        Settings given on command line will update this data structure.
        """
        return settings.Settings()

    def addOptions(self):
        """
        Add additional command line options.

        Values of options added to ``self.parser`` will be available on ``self.args``.
        Values added with ``createOptionFromSetting`` will override the setting values
        in the settings input file.
        """

    def parse_args(self, args):
        self.parser.parse_args(args, namespace=self.args)
        runLog.setVerbosity(self.cs["verbosity"])

    def parse(self, args):
        """Parse the command line arguments, with the command specific arguments."""
        self.addOptions()
        self.parse_args(args)

    def invoke(self) -> Optional[int]:
        """
        Body of the entry point.

        Returns
        -------
        exitcode : int or None
            Implementations should return an exit code, or ``None``, which is
            interpreted the same as zero (successful completion).
        """
        raise NotImplementedError(
            "Subclasses of EntryPoint must override the .invoke() method"
        )

    def createOptionFromSetting(
        self, settingName: str, additionalAlias: str = None, suppressHelp: bool = False
    ):
        """
        Create a CLI option from a setting.

        This will override whatever is in the settings file.

        Parameters
        ----------
        settingName : str
            the setting name
        additionalAlias : str
            additional alias for the command line option, be careful and make sure they
            are all distinct!
        suppressHelp : bool
            option to suppress the help message when using the command line
            :code:`--help` function.
        """
        settingsInstance = self.cs.getSetting(settingName)

        if settings.isBoolSetting(settingsInstance):
            helpMessage = (
                argparse.SUPPRESS if suppressHelp else settingsInstance.description
            )
            self._createToggleFromSetting(settingName, helpMessage, additionalAlias)

        else:
            if suppressHelp:
                helpMessage = argparse.SUPPRESS
            else:
                helpMessage = settingsInstance.description.replace("%", "%%")

            aliases = ["--" + settingName]
            if additionalAlias is not None:
                aliases.append(additionalAlias)

            isListType = settingsInstance.underlyingType is list

            try:
                self.parser.add_argument(
                    *aliases,
                    type=str,  # types are properly converted by _SetSettingAction
                    nargs="*" if isListType else None,
                    action=setSetting(self),
                    default=settingsInstance.default,
                    help=helpMessage,
                )
            # a duplicate option is left alone
            except argparse.ArgumentError:
                pass

    def _createToggleFromSetting(self, settingName, helpMessage, additionalAlias=None):
        aliases = ["--" + settingName]
        if additionalAlias is not None:
            aliases.append(additionalAlias)

        group = self.parser.add_mutually_exclusive_group()

        group.add_argument(*aliases, action=storeBool(True, self), help=helpMessage)

        if helpMessage is not argparse.SUPPRESS:
            helpMessage = ""

        group.add_argument(
            "--no-" + settingName,
            action=storeBool(False, self),
            dest=settingName,
            help=helpMessage,
        )


def storeBool(boolDefault, ep):
    class _StoreBoolAction(argparse.Action):
        def __init__(self, option_strings, dest, help=None):
            super(_StoreBoolAction, self).__init__(
                option_strings=option_strings,
                dest=dest,
                nargs=0,
                const=boolDefault,
                default=False,
                required=False,
                help=help,
            )

        def __call__(self, parser, namespace, values, option_string=None):
            ep.cs[self.dest] = self.const
            ep.settingsProvidedOnCommandLine.append(self.dest)
            ep.cs.failOnLoad()

    return _StoreBoolAction


def setSetting(ep):
    class _SetSettingAction(argparse.Action):
        """Load a setting value given on the command line into the entry point settings."""

        def __call__(self, parser, namespace, values, option_string=None):
            # correctly converts type
            ep.cs[self.dest] = values
            ep.settingsProvidedOnCommandLine.append(self.dest)
            ep.cs.failOnLoad()

    return _SetSettingAction


# caseTitle is an attribute of the settings, not a setting
def setCaseTitle(cs):
    class _SetCaseTitleAction(argparse.Action):
        """Set the case title of the entry point settings."""

        def __call__(self, parser, namespace, value, option_string=None):
            cs.caseTitle = value

    return _SetCaseTitleAction


def loadSettings(cs):
    class LoadSettingsAction(argparse.Action):
        """Load the settings file given on the command line into the entry point settings."""

        def __call__(self, parser, namespace, values, option_string=None):
            # since this is a positional argument, it can be called with values is
            # None (i.e. default)
            if values is not None:
                cs.loadFromInputFile(values)

    return LoadSettingsAction
