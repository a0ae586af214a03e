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

"""Entry point into TANDEM to check the inputs of a coupled case."""
import tabulate

from tandem import context
from tandem import runLog
from tandem.cli.entryPoint import EntryPoint
from tandem.physics import pinCell
from tandem.physics.neutronics import settings as nSettings
from tandem.physics.thermalHydraulics import settings as thSettings
from tandem.settings.fwSettings import couplingSettings as cSettings


def getProcessLayout(cs, nProcs):
    """
    Return whether each of ``nProcs`` processes runs the neutronics and the heat/fluids
    driver, as the coupled driver would split them.
    """
    nNeutronics = cs[cSettings.CONF_N_NEUTRONICS_PROCS] or nProcs
    nHeat = cs[cSettings.CONF_N_HEAT_FLUIDS_PROCS] or nProcs
    return [(rank < nNeutronics, rank >= nProcs - nHeat) for rank in range(nProcs)]


def checkSettings(cs, nProcs):
    """
    Return the problems that would stop a coupled run with ``nProcs`` processes.

    Only problems visible from the settings are found; the mapping itself is checked
    when the run starts.
    """
    from tandem import getApp

    app = getApp()
    issues = []
    for settingName, registry in (
        (cSettings.CONF_NEUTRONICS_DRIVER, app.getNeutronicsDrivers()),
        (cSettings.CONF_HEAT_FLUIDS_DRIVER, app.getHeatFluidsDrivers()),
    ):
        if cs[settingName] not in registry:
            issues.append(
                "`{}` is set to `{}`, which is not a registered driver ({})".format(
                    settingName, cs[settingName], ", ".join(sorted(registry))
                )
            )

    for settingName in (cSettings.CONF_N_NEUTRONICS_PROCS, cSettings.CONF_N_HEAT_FLUIDS_PROCS):
        if cs[settingName] > nProcs:
            issues.append(
                "`{}` is {} but only {} processes are available".format(
                    settingName, cs[settingName], nProcs
                )
            )

    if (
        cs[cSettings.CONF_NEUTRONICS_DRIVER] == "surrogate"
        and cs[cSettings.CONF_HEAT_FLUIDS_DRIVER] == "surrogate"
        and cs[thSettings.CONF_N_AXIAL_ELEMENTS] % cs[nSettings.CONF_N_AXIAL_ZONES]
    ):
        issues.append(
            "`{}` ({}) is not a multiple of `{}` ({}); the surrogate cell volumes will "
            "not be conserved".format(
                thSettings.CONF_N_AXIAL_ELEMENTS,
                cs[thSettings.CONF_N_AXIAL_ELEMENTS],
                nSettings.CONF_N_AXIAL_ZONES,
                cs[nSettings.CONF_N_AXIAL_ZONES],
            )
        )

    if 2.0 * cs[pinCell.CONF_ROD_RADIUS] >= cs[pinCell.CONF_PIN_PITCH]:
        issues.append("The rod does not fit in the pin cell")

    return issues


class CheckInputEntryPoint(EntryPoint):
    """
    Check the settings of a coupled case for errors and show how the processes would be
    split between the drivers.
    """

    name = "check-input"
    settingsArgument = "required"

    def addOptions(self):
        self.parser.add_argument(
            "--nProcs",
            "-n",
            type=int,
            default=context.MPI_SIZE,
            help="Number of processes the case would run on.",
        )

    def invoke(self):
        nProcs = self.args.nProcs
        if nProcs < 1:
            runLog.error("A run needs at least one process, got {}".format(nProcs))
            return 1

        issues = checkSettings(self.cs, nProcs)
        if not issues:
            runLog.important(
                tabulate.tabulate(
                    [
                        (rank, "yes" if n else "-", "yes" if h else "-")
                        for rank, (n, h) in enumerate(getProcessLayout(self.cs, nProcs))
                    ],
                    headers=["Rank", "Neutronics", "Heat/Fluids"],
                    tablefmt="simple",
                )
            )
            runLog.important("The case `{}` is self consistent".format(self.cs.caseTitle))
            return 0

        for issue in issues:
            runLog.error(issue)
        runLog.error("The case `{}` is not self consistent".format(self.cs.caseTitle))
        return 1
