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

"""Run a coupled case."""
from tandem import mpiComm
from tandem import runLog
from tandem.cli.entryPoint import EntryPoint
from tandem.settings.fwSettings import couplingSettings


class RunEntryPoint(EntryPoint):
    """
    Run a coupled neutronics / thermal-hydraulics case.

    Invoke with ``mpirun`` or ``mpiexec`` to split the processes between the drivers.
    """

    name = "run"
    settingsArgument = "required"

    def addOptions(self):
        self.createOptionFromSetting(couplingSettings.CONF_N_TIMESTEPS)
        self.createOptionFromSetting(couplingSettings.CONF_MAX_PICARD_ITER)
        self.createOptionFromSetting(couplingSettings.CONF_BORON_SEARCH)

    def invoke(self):
        from tandem.operators.coupledDriver import CoupledDriver

        runLog.LOG.startLog(self.cs.caseTitle)
        comm = mpiComm.Communicator.world()
        try:
            with CoupledDriver(self.cs, comm) as driver:
                driver.execute()
            runLog.warningReport()
        finally:
            runLog.close()
