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
This package provides the operations users can ask TANDEM to do with their inputs.

An Entry Point might run a coupled calculation or validate inputs. There are built-in
entry points, and additional ones may be specified by custom plugins through the
``defineEntryPoints`` hook.

See Also
--------
tandem.operators : The coupled driver created by the ``run`` entry point.

tandem : Fundamental entry point that calls this package.
"""
import argparse
import re
import textwrap
from typing import Optional

from tandem import context
from tandem import meta
from tandem import plugins
from tandem import runLog


class EntryPointsPlugin(plugins.TandemPlugin):
    @staticmethod
    @plugins.HOOKIMPL
    def defineEntryPoints():
        from tandem.cli import checkInputs, run

        entryPoints = []
        entryPoints.append(checkInputs.CheckInputEntryPoint)
        entryPoints.append(run.RunEntryPoint)

        return entryPoints


class TandemParser(argparse.ArgumentParser):
    """
    Subclass of default ArgumentParser to better handle application splash text.
    """

    def print_help(self, file=None):
        splash()
        argparse.ArgumentParser.print_help(self, file)


class TandemCLI:
    """
    TANDEM CLI -- The main entry point into TANDEM. There are various commands
    available, to get help for the individual commands, run again with
    `<command> --help`.
    """

    def __init__(self):
        from tandem import getPluginManager

        self._entryPoints = dict()
        for pluginEntryPoints in getPluginManager().hook.defineEntryPoints():
            for entryPoint in pluginEntryPoints:
                if entryPoint.name in self._entryPoints:
                    raise KeyError(
                        "Duplicate entry points defined for `{}`: {} and {}".format(
                            entryPoint.name,
                            self._entryPoints[entryPoint.name],
                            entryPoint,
                        )
                    )
                self._entryPoints[entryPoint.name] = entryPoint

        parser = TandemParser(
            prog=context.APP_NAME,
            description=self.__doc__,
            usage="%(prog)s [-h] [-l | command [args]]",
        )

        group = parser.add_mutually_exclusive_group()

        group.add_argument(
            "-v", "--version", action="store_true", help="display the version"
        )

        group.add_argument(
            "-l", "--list-commands", action="store_true", help="list commands"
        )
        group.add_argument("command", nargs="?", default="help", help=argparse.SUPPRESS)
        parser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)

        self.parser = parser

    @property
    def entryPoints(self):
        return dict(self._entryPoints)

    def showVersion(self):
        """Print the App name and version on the command line."""
        from tandem import getApp

        prog = context.APP_NAME
        app = getApp()
        if app is None or prog == "tandem":
            print("{0} {1}".format(prog, meta.__version__))
        else:
            print("{0} {1}".format(prog, app.version))

    def listCommands(self):
        """List commands with a short description."""
        splash()

        indent = 22
        initial_indent = "  "
        subsequent_indent = initial_indent + " " * indent
        wrapper = textwrap.TextWrapper(
            initial_indent=initial_indent, subsequent_indent=subsequent_indent, width=79
        )

        sub = re.compile(r"\s+").sub

        def condense(text):
            return sub(" ", text.strip())

        formatter = "{name:<{width}}{desc}".format
        print("\ncommands:")
        for cmd in sorted(self._entryPoints.values(), key=lambda cmd: cmd.name):
            # the description attribute wins over the docstring
            desc = condense(cmd.description or cmd.__doc__ or "")
            print(wrapper.fill(formatter(width=indent, name=cmd.name, desc=desc)))

    def run(self, argv=None) -> Optional[int]:
        args = self.parser.parse_args(argv)

        if args.list_commands:
            self.listCommands()
            return 0
        elif args.version:
            self.showVersion()
            return 0
        elif args.command == "help":
            self.parser.print_help()
            return 0

        return self.executeCommand(args.command, args.args)

    def executeCommand(self, command, args) -> Optional[int]:
        """Execute `command` with arguments `args`, return optional exit code."""
        command = command.lower()
        if command not in self._entryPoints:
            print(
                'Unrecognized command "{}". Valid commands are listed below.'.format(
                    command
                )
            )
            self.listCommands()

            return 1

        commandClass = self._entryPoints[command]
        cmd = commandClass()
        if cmd.splash:
            splash()

        # parse the arguments... command can have their own
        cmd.parse(args)

        if cmd.args.batch:
            context.Mode.setMode(context.Mode.BATCH)
        elif cmd.mode is not None:
            context.Mode.setMode(cmd.mode)

        return cmd.invoke()


def splash():
    """Emit the active App's splash text to the runLog for the primary process."""
    from tandem import getApp

    app = getApp()
    assert app is not None
    if context.MPI_RANK == 0:
        runLog.raw(app.splashText)
