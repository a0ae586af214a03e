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

r"""
Plugins allow for extending the functionality of TANDEM.

TANDEM uses the ``pluggy`` library to extend its settings, its command line entry
points, and the physics drivers that can be coupled. A plugin is a class with
``@staticmethod`` hook implementations, marked with :py:data:`HOOKIMPL`. It is
registered (as a class object, not an instance) with the
:py:class:`tandem.pluginManager.TandemPluginManager` of an :py:class:`tandem.apps.App`.

Don't forget to use the keyword argument form for all arguments to hooks; ``pluggy``
requires them to enforce hook specifications.

A typical plugin providing a new neutronics solver looks like::

    class MyTransportPlugin(plugins.TandemPlugin):
        @staticmethod
        @plugins.HOOKIMPL
        def defineDrivers():
            return [MyTransportDriver]

        @staticmethod
        @plugins.HOOKIMPL
        def defineSettings():
            return [setting.Option("mytransport", "neutronicsDriver")]

The driver is then selected at run time through the ``neutronicsDriver`` setting.
"""
from typing import List

import pluggy

from tandem import pluginManager

HOOKSPEC = pluggy.HookspecMarker("tandem")
HOOKIMPL = pluggy.HookimplMarker("tandem")


class TandemPlugin:
    """
    A TandemPlugin exposes a collection of hooks that allow users to add a variety of
    things to their TANDEM application: settings, CLI entry points, and physics drivers.
    """

    @staticmethod
    @HOOKSPEC
    def defineSettings() -> List:
        """
        Define configuration settings for this plugin.

        Plugins may provide entirely new settings, as well as new options or default
        values for existing settings. For instance, the framework provides a
        ``neutronicsDriver`` setting, and a plugin providing a new transport code
        should add an ``Option`` naming its driver.

        Returns
        -------
        list
            A list of Settings, Options, or Defaults to be registered.

        See Also
        --------
        tandem.settings.setting.Setting
        tandem.settings.setting.Option
        tandem.settings.setting.Default
        """
        return []

    @staticmethod
    @HOOKSPEC
    def defineEntryPoints() -> List:
        """
        Return new entry points for the TANDEM CLI.

        Returns
        -------
        list
            class objects which derive from the base EntryPoint class.
        """

    @staticmethod
    @HOOKSPEC
    def defineDrivers() -> List:
        """
        Return physics driver classes that can take part in a coupled run.

        Each class must derive from :py:class:`tandem.interfaces.NeutronicsDriver` or
        :py:class:`tandem.interfaces.HeatFluidsDriver` and carry a unique ``name``
        class attribute, which is what the ``neutronicsDriver`` and
        ``heatFluidsDriver`` settings refer to.

        Returns
        -------
        list
            Driver classes, constructed later as ``driverClass(cs, comm)``.
        """


class PluginError(RuntimeError):
    """
    Special exception class for use when a plugin appears to be non-conformant.

    These should always come from some form of programmer error, and indicates
    conditions such as:

    - A plugin improperly implementing a hook, when possible to detect.
    - A collision between components provided by plugins (e.g. two plugins providing
      a driver of the same name).
    """


def getNewPluginManager() -> pluginManager.TandemPluginManager:
    """Return a new plugin manager with all of the hookspecs pre-registered."""
    pm = pluginManager.TandemPluginManager("tandem")
    pm.add_hookspecs(TandemPlugin)
    return pm
