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
Welcome to TANDEM, a driver for coupled neutronics / thermal-hydraulics calculations.

TANDEM runs a neutron transport solver and a heat/fluids solver side by side, each on
its own subset of the MPI processes, and iterates the exchange of the heat source,
temperatures and densities between them (a Picard iteration) until the temperatures
stop changing. An optional criticality search adjusts the soluble boron concentration
within the same iteration.

The package initializes in a few phases:

* Investigate the environment: MPI, TTY or batch (:py:mod:`tandem.context`)
* Set up logging (:py:mod:`tandem.runLog`)
* Configure an :py:class:`tandem.apps.App`, which registers the built-in
  :py:mod:`plugins <tandem.plugins>` (settings, entry points, drivers)
* Choose an entry point from the command line (:py:mod:`tandem.cli`)

If using the ``run`` entry point, the coupled driver is built from the settings and
its timestep and Picard loops are executed
(:py:class:`tandem.operators.coupledDriver.CoupledDriver`).
"""
import atexit
import traceback
from typing import Optional

from tandem import context
from tandem.context import (
    ROOT,
    USER,
    START_TIME,
    MPI_COMM,
    MPI_RANK,
    MPI_NODENAME,
    MPI_NODENAMES,
    MPI_DISTRIBUTABLE,
    MPI_SIZE,
    APP_DATA,
)
from tandem.context import Mode
from tandem.meta import __version__
from tandem import apps
from tandem import pluginManager
from tandem import runLog

# TANDEM does not configure its own application by default. An application should call
# `configure()` with its App class before settings or drivers are requested.
_app: Optional[apps.App] = None

_TANDEM_CONFIGURE_CONTEXT: Optional[str] = None


def isConfigured():
    """Returns whether TANDEM has been configured with an App."""
    return _app is not None


def getPluginManager() -> Optional[pluginManager.TandemPluginManager]:
    """Return the plugin manager, if there is one."""
    if _app is None:
        return None
    return _app.pluginManager


def getPluginManagerOrFail() -> pluginManager.TandemPluginManager:
    """Return the plugin manager. Raise an error if there is none."""
    assert _app is not None, (
        "The TANDEM plugin manager was requested, no App has been configured. Ensure "
        "that `tandem.configure()` has been called before attempting to interact with "
        "the plugin manager."
    )
    return _app.pluginManager


def getApp() -> Optional[apps.App]:
    return _app


def configure(app: Optional[apps.App] = None, permissive=False):
    """
    Set the App, and with it the plugin manager, for the framework.

    Parameters
    ----------
    app :
        An :py:class:`tandem.apps.App` instance. If it is not provided, the default
        TANDEM App will be used.
    permissive :
        Whether or not an error should be produced if ``configure`` is called more than
        once. This should only be set to ``True`` under testing, where otherwise
        independent scripts run in the same python instance.
    """
    global _app
    global _TANDEM_CONFIGURE_CONTEXT

    app = app or apps.App()

    if _app is not None:
        if permissive and isinstance(app, apps.App):
            return
        raise RuntimeError(
            "Multiple calls to tandem.configure() are not allowed. "
            "Previous call from:\n{}".format(_TANDEM_CONFIGURE_CONTEXT)
        )

    _TANDEM_CONFIGURE_CONTEXT = "".join(traceback.format_stack())

    _app = app
    context.APP_NAME = app.name


# The ``atexit`` handler is like putting it in a finally after everything.
atexit.register(context.cleanTempDirs)
