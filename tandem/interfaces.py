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
Interfaces between the coupled driver and the physics solvers.

A coupled run holds exactly one :py:class:`NeutronicsDriver` and one
:py:class:`HeatFluidsDriver`. Both expose the same step lifecycle, called once per
Picard iteration in this order::

    initStep -> solveStep -> writeStep(timestep, iteration) -> finalizeStep

and are closed once at the end of the run. Each driver runs on its own
sub-communicator; on a rank that is not part of it, the driver is constructed with
``comm=None`` and is inactive. Only active drivers are stepped or asked for fields.

Concrete drivers are provided by plugins through the ``defineDrivers`` hook and
selected by name with the ``neutronicsDriver`` and ``heatFluidsDriver`` settings.

See Also
--------
tandem.operators.coupledDriver : Drives the Picard iteration between the two
tandem.plugins : Register drivers
"""
from typing import List, Optional, Union

import numpy

from tandem import runLog


class Driver:
    """
    Common lifecycle of the coupled physics solvers.

    Parameters
    ----------
    cs : Settings
        The case settings
    comm : tandem.mpiComm.Communicator or None
        The processes running this solver, or None on processes that do not.
    """

    name: Union[str, None] = None
    """
    The name of the driver, as referred to by the settings. This is undefined for the
    base class and must be overridden by any concrete driver.
    """

    def __init__(self, cs, comm):
        if self.name is None:
            raise RuntimeError(
                "Drivers derived from Driver must define their name ({}).".format(
                    type(self).__name__
                )
            )
        self.cs = cs
        self.comm = comm

    def __repr__(self):
        return "<{} {} {}>".format(
            self.__class__.__name__, self.name, "active" if self.active() else "inactive"
        )

    def active(self):
        """Whether this process runs the solver."""
        return self.comm is not None

    def initStep(self):
        """Prepare the solver for a solve of the current Picard iteration."""
        pass

    def solveStep(self):
        """Solve with the current fields."""
        raise NotImplementedError()

    def writeStep(self, timestep, iteration):
        """Write the state of the solver for this timestep and Picard iteration."""
        pass

    def finalizeStep(self):
        """Wrap up the current solve."""
        pass

    def close(self):
        """Release the solver at the end of the run."""
        runLog.debug("Closing {}".format(self))


class NeutronicsDriver(Driver):
    """
    A neutron transport solver.

    Cells are addressed by opaque integer handles returned by :py:meth:`find`. Handles
    are unique over the whole problem and stable for the run. Per-cell arrays (the heat
    source) are ordered like :py:attr:`cells`, which is in ascending handle order.
    """

    def __init__(self, cs, comm):
        Driver.__init__(self, cs, comm)
        self.keff = None

    @property
    def cells(self) -> List[int]:
        """The handles of all cells found so far, in ascending order."""
        raise NotImplementedError()

    @property
    def numFissionableCells(self) -> int:
        """Number of fissionable cells in the whole model, mapped or not."""
        raise NotImplementedError()

    def solveStep(self):
        """Run the transport calculation and return the new k-eff."""
        raise NotImplementedError()

    def find(self, positions) -> List[Optional[int]]:
        """
        Return the handle of the cell containing each position.

        A position that is in no cell maps to None. Called collectively by every rank
        of the driver's communicator, with the same positions.

        Parameters
        ----------
        positions : numpy.ndarray
            (n, 3) coordinates in cm
        """
        raise NotImplementedError()

    def heatSource(self, power) -> numpy.ndarray:
        """
        Return the volumetric heat source [W/cm^3] of every cell, ordered like :py:attr:`cells`.

        The source is normalized so that its volume integral over the found cells
        equals ``power`` [W]. It is only required to be valid on the root of the
        driver's communicator.
        """
        raise NotImplementedError()

    def getTemperature(self, cell) -> float:
        raise NotImplementedError()

    def setTemperature(self, cell, value):
        raise NotImplementedError()

    def getDensity(self, cell) -> float:
        raise NotImplementedError()

    def setDensity(self, cell, value):
        raise NotImplementedError()

    def getVolume(self, cell) -> float:
        raise NotImplementedError()

    def isFissionable(self, cell) -> bool:
        raise NotImplementedError()

    def cellLabel(self, cell) -> str:
        """A human-readable name of the cell for messages."""
        return str(cell)

    def setBoronPpm(self, cell, ppm, b10Abundance):
        """Set the soluble boron concentration [ppm by number] of a fluid cell."""
        raise NotImplementedError()


class HeatFluidsDriver(Driver):
    """
    A heat conduction and fluid flow solver.

    All arrays are over the elements local to this rank, in a fixed order for the run.
    """

    def centroids(self) -> numpy.ndarray:
        """(n, 3) element centroids in cm."""
        raise NotImplementedError()

    def volumes(self) -> numpy.ndarray:
        """Element volumes in cm^3."""
        raise NotImplementedError()

    def fluidMask(self) -> numpy.ndarray:
        """1 for fluid elements, 0 for solid ones."""
        raise NotImplementedError()

    def temperature(self) -> numpy.ndarray:
        """Element temperatures in K."""
        raise NotImplementedError()

    def density(self) -> numpy.ndarray:
        """Element densities in g/cm^3; only meaningful on fluid elements."""
        raise NotImplementedError()

    def setHeatSource(self, values):
        """Set the volumetric heat source [W/cm^3] of the local elements."""
        raise NotImplementedError()

    @property
    def nLocalElements(self) -> int:
        return len(self.volumes())
