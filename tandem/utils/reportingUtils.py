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
Tables written to the run log at the start and end of a coupled run.
"""
import tabulate

from tandem import runLog

COMM_REPORT_HEADERS = ["Node", "Rank", "Neutronics", "Heat/Fluids"]


def writeCommReport(rows):
    """
    Print which processes run which driver.

    Parameters
    ----------
    rows : list of tuple
        ``(nodename, rank, neutronicsActive, heatActive)`` for every rank of the
        coupling communicator, in rank order.
    """
    runLog.info("Coupled driver process layout")
    runLog.info(
        tabulate.tabulate(
            [
                (node, rank, "yes" if nActive else "-", "yes" if hActive else "-")
                for node, rank, nActive, hActive in rows
            ],
            headers=COMM_REPORT_HEADERS,
            tablefmt="simple",
        )
    )


def writeCouplingConvergenceSummary(convergenceSummary):
    """
    Print the convergence history of the Picard iterations of a run.

    Parameters
    ----------
    convergenceSummary : list of dict
        One row per Picard iteration, all with the same keys.
    """
    runLog.info("Coupling Convergence Summary")
    if not convergenceSummary:
        runLog.info("  no iterations were run")
        return
    runLog.info(
        tabulate.tabulate(
            convergenceSummary,
            headers="keys",
            showindex=True,
            tablefmt="simple",
            floatfmt=".6g",
        )
    )
