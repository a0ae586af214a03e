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
The base TANDEM App class.

An :py:class:`App` configures TANDEM for a specific application: it owns the plugin
manager and merges what the plugins provide (settings, entry points, drivers) into the
forms the rest of the code consumes.
"""
from typing import Dict, List, Optional, Tuple
import collections

from tandem import context, plugins, pluginManager, meta
from tandem import interfaces
from tandem.settings import setting
from tandem.settings import fwSettings


class App:
    """
    The main point of customization for TANDEM.

    Subclasses register more plugins in ``__init__()`` (a new transport code, a CFD
    solver) or start from an empty plugin manager. Calling the ``pluggy`` hooks
    directly is a pain, since the results of the individual plugins need to be merged
    and checked for collisions; that logic lives here.
    """

    name = "tandem"
    """
    The program name of the app. This should be the name of the python entry point
    or module that loads the app, e.g. ``"myapp"`` for ``python -m myapp``.
    """

    def __init__(self):
        from tandem import cli
        from tandem.physics import neutronics
        from tandem.physics import thermalHydraulics

        self._pm = plugins.getNewPluginManager()
        for plugin in (
            cli.EntryPointsPlugin,
            neutronics.NeutronicsPlugin,
            thermalHydraulics.ThermalHydraulicsPlugin,
        ):
            self._pm.register(plugin)

        self._drivers: Optional[Tuple[Dict[str, Dict[str, type]], int]] = None

    @property
    def version(self) -> str:
        """Grab the version of this app (defaults to the TANDEM version)."""
        return meta.__version__

    @property
    def pluginManager(self) -> pluginManager.TandemPluginManager:
        """Return the App's PluginManager."""
        return self._pm

    def getSettings(self) -> Dict[str, setting.Setting]:
        """
        Return a dictionary containing all Settings defined by the framework and all plugins.
        """
        settingDefs = {s.name: s for s in fwSettings.getFrameworkSettings()}

        # Options and Defaults may come from a plugin before the setting they modify.
        # They wait in these caches until the setting arrives; leftovers are an error.
        optionsCache: Dict[str, List[setting.Option]] = collections.defaultdict(list)
        defaultsCache: Dict[str, setting.Default] = {}

        for pluginSettings in self._pm.hook.defineSettings():
            for pluginSetting in pluginSettings:
                if isinstance(pluginSetting, setting.Setting):
                    name = pluginSetting.name
                    if name in settingDefs:
                        raise ValueError(
                            f"The setting {name} already exists and cannot be redefined."
                        )
                    settingDefs[name] = pluginSetting
                    if name in optionsCache:
                        settingDefs[name].addOptions(optionsCache.pop(name))
                    if name in defaultsCache:
                        settingDefs[name].changeDefault(defaultsCache.pop(name))
                elif isinstance(pluginSetting, setting.Option):
                    if pluginSetting.settingName in settingDefs:
                        settingDefs[pluginSetting.settingName].addOption(pluginSetting)
                    else:
                        optionsCache[pluginSetting.settingName].append(pluginSetting)
                elif isinstance(pluginSetting, setting.Default):
                    if pluginSetting.settingName in settingDefs:
                        settingDefs[pluginSetting.settingName].changeDefault(
                            pluginSetting
                        )
                    else:
                        defaultsCache[pluginSetting.settingName] = pluginSetting
                else:
                    raise TypeError(
                        "Invalid setting definition found: {} ({})".format(
                            pluginSetting, type(pluginSetting)
                        )
                    )

        if optionsCache:
            raise ValueError(
                "The following options were provided for settings that do not exist. "
                "Make sure that the set of active plugins is consistent.\n{}".format(
                    dict(optionsCache)
                )
            )

        if defaultsCache:
            raise ValueError(
                "The following defaults were provided for settings that do not exist. "
                "Make sure that the set of active plugins is consistent.\n{}".format(
                    defaultsCache
                )
            )

        return settingDefs

    def _getDriverRegistry(self) -> Dict[str, Dict[str, type]]:
        """
        Merge the driver classes of all plugins into one registry per driver kind.

        The result is cached against the plugin manager counter.
        """
        if self._drivers is not None:
            registry, counter = self._drivers
            if counter == self._pm.counter:
                return registry

        registry = {"neutronics": {}, "heatFluids": {}}
        for pluginDrivers in self._pm.hook.defineDrivers():
            for driverClass in pluginDrivers or []:
                if issubclass(driverClass, interfaces.NeutronicsDriver):
                    kind = "neutronics"
                elif issubclass(driverClass, interfaces.HeatFluidsDriver):
                    kind = "heatFluids"
                else:
                    raise plugins.PluginError(
                        "{} is neither a neutronics nor a heat/fluids driver".format(
                            driverClass
                        )
                    )
                if driverClass.name in registry[kind]:
                    raise plugins.PluginError(
                        "Two plugins provide a {} driver named `{}`: {} and {}".format(
                            kind,
                            driverClass.name,
                            registry[kind][driverClass.name],
                            driverClass,
                        )
                    )
                registry[kind][driverClass.name] = driverClass

        self._drivers = registry, self._pm.counter
        return registry

    def getNeutronicsDrivers(self) -> Dict[str, type]:
        """Return the neutronics driver classes of all plugins, keyed by name."""
        return dict(self._getDriverRegistry()["neutronics"])

    def getHeatFluidsDrivers(self) -> Dict[str, type]:
        """Return the heat/fluids driver classes of all plugins, keyed by name."""
        return dict(self._getDriverRegistry()["heatFluids"])

    @property
    def splashText(self):
        """
        Return a textual splash screen.

        Specific applications will want to customize this; by default the TANDEM one is
        produced, with the App name and version if it is not the default App.
        """
        splash = r"""
+===================================================+
|     _____   _    _   _ ____  _____ __  __         |
|    |_   _| / \  | \ | |  _ \| ____|  \/  |        |
|      | |  / _ \ |  \| | | | |  _| | |\/| |        |
|      | | / ___ \| |\  | |_| | |___| |  | |        |
|      |_|/_/   \_\_| \_|____/|_____|_|  |_|        |
|     Coupled Neutronics / Thermal-Hydraulics       |
|                                                   |
|                    version {0:10s}             |
|                                                   |""".format(
            meta.__version__
        )

        if context.APP_NAME != "tandem":
            from tandem import getApp

            splash += r"""
|---------------------------------------------------|
|   {0:>17s} app version {1:10s}        |""".format(
                context.APP_NAME, getApp().version
            )

        splash += r"""
+===================================================+
"""
        return splash
