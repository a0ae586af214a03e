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
A surrogate neutronics driver for a single pin cell.

The model stands in for a transport code where only the coupling matters. Its cells
are the axial zones of the rod and of the coolant of a
:py:class:`~tandem.physics.pinCell.PinCell`. The eigenvalue responds linearly to the
feedback fields:

.. math::

    k = k_{ref} + a_D (\bar{T}_f - T_{ref}) + a_M (\bar{\rho}_c - \rho_{ref}) - a_B \bar{c}_B

where :math:`\bar{T}_f` is the average rod temperature, :math:`\bar{\rho}_c` the
average coolant density and :math:`\bar{c}_B` the average boron concentration of the
coolant, scaled to natural boron by its B-10 abundance.

The fission power of rod zone :math:`i` follows a chopped cosine in z, scaled by the
local Doppler and moderator feedback, :math:`t_i`. It is normalized as

.. math::

    q_i = \frac{P \, t_i}{V_i \sum_j t_j}

so that the volume integral of the heat source :math:`q` [W/cm^3] is the power
:math:`P`. Coolant cells produce no heat.
"""
import math

import h5py
import numpy

from tandem import interfaces
from tandem import runLog
from tandem.physics import pinCell
from tandem.physics.neutronics import settings as nSettings
from tandem.utils import pathTools
from tandem.utils.customExceptions import DriverError

NATURAL_B10_ABUNDANCE = 0.1982

# ratio of the extrapolated to the active height of the cosine power shape
AXIAL_EXTRAPOLATION = 1.2


class SurrogateNeutronicsDriver(interfaces.NeutronicsDriver):
    """Point-kinetics-like pin cell with linear reactivity feedback."""

    name = "surrogate"

    def __init__(self, cs, comm):
        interfaces.NeutronicsDriver.__init__(self, cs, comm)
        self.pin = pinCell.PinCell.fromSettings(cs, cs[nSettings.CONF_N_AXIAL_ZONES])
        self.kReference = cs[nSettings.CONF_K_REFERENCE]
        self.referenceFuelTemperature = cs[nSettings.CONF_REFERENCE_FUEL_TEMPERATURE]
        self.dopplerCoefficient = cs[nSettings.CONF_DOPPLER_COEFFICIENT]
        self.referenceCoolantDensity = cs[nSettings.CONF_REFERENCE_COOLANT_DENSITY]
        self.moderatorCoefficient = cs[nSettings.CONF_MODERATOR_COEFFICIENT]
        self.boronWorth = cs[nSettings.CONF_BORON_WORTH]

        nRegions = self.pin.nRegions
        self._isRod = numpy.array([self.pin.isRod(r) for r in range(nRegions)])
        self._volumes = numpy.array([self.pin.regionVolume(r) for r in range(nRegions)])
        self._temperature = numpy.full(nRegions, cs[nSettings.CONF_INITIAL_TEMPERATURE])
        self._density = numpy.where(
            self._isRod, cs[pinCell.CONF_FUEL_DENSITY], self.referenceCoolantDensity
        )
        self._ppm = numpy.zeros(nRegions)
        self._b10Abundance = numpy.full(nRegions, NATURAL_B10_ABUNDANCE)
        self._found = set()

    @property
    def cells(self):
        return sorted(self._found)

    @property
    def numFissionableCells(self):
        return int(self._isRod.sum())

    def _region(self, cell):
        if not 0 <= cell < self.pin.nRegions:
            raise DriverError("{} has no cell {}".format(self, cell))
        return cell

    def find(self, positions):
        handles = []
        for x, y, z in numpy.asarray(positions, dtype=float).reshape(-1, 3):
            region = self.pin.findRegion(x, y, z)
            if region is not None:
                self._found.add(region)
            handles.append(region)
        return handles

    def _averages(self):
        """Average rod temperature, coolant density and natural boron concentration."""
        rods, coolant = self._isRod, ~self._isRod
        fuelTemperature = numpy.average(self._temperature[rods], weights=self._volumes[rods])
        coolantDensity = numpy.average(self._density[coolant], weights=self._volumes[coolant])
        naturalPpm = self._ppm * self._b10Abundance / NATURAL_B10_ABUNDANCE
        boron = numpy.average(naturalPpm[coolant], weights=self._volumes[coolant])
        return fuelTemperature, coolantDensity, boron

    def solveStep(self):
        fuelTemperature, coolantDensity, boron = self._averages()
        self.keff = (
            self.kReference
            + self.dopplerCoefficient
            * (fuelTemperature - self.referenceFuelTemperature)
            + self.moderatorCoefficient * (coolantDensity - self.referenceCoolantDensity)
            - self.boronWorth * boron
        )
        runLog.extra(
            "Surrogate neutronics: rod {:.2f} K, coolant {:.4f} g/cc, {:.1f} ppm -> "
            "k-eff {:.6f}".format(fuelTemperature, coolantDensity, boron, self.keff)
        )
        return self.keff

    def _shape(self, cell):
        if not self._isRod[cell]:
            return 0.0
        zone = cell // 2
        height = self.pin.height
        axial = math.cos(
            math.pi * (self.pin.sliceCenter(zone) - 0.5 * height) / (AXIAL_EXTRAPOLATION * height)
        )
        feedback = (
            1.0
            + self.dopplerCoefficient
            * (self._temperature[cell] - self.referenceFuelTemperature)
            + self.moderatorCoefficient
            * (self._density[cell + 1] - self.referenceCoolantDensity)
        )
        return axial * max(feedback, 0.0)

    def heatSource(self, power):
        cells = self.cells
        shape = numpy.array([self._shape(c) for c in cells])
        total = shape.sum()
        if not total > 0.0:
            raise DriverError("{} has no fission power in the mapped cells".format(self))
        return power * shape / (total * self._volumes[cells])

    def getTemperature(self, cell):
        return float(self._temperature[self._region(cell)])

    def setTemperature(self, cell, value):
        self._temperature[self._region(cell)] = value

    def getDensity(self, cell):
        return float(self._density[self._region(cell)])

    def setDensity(self, cell, value):
        self._density[self._region(cell)] = value

    def getVolume(self, cell):
        return float(self._volumes[self._region(cell)])

    def isFissionable(self, cell):
        return bool(self._isRod[self._region(cell)])

    def cellLabel(self, cell):
        zone, kind = divmod(self._region(cell), 2)
        return "{} zone {}".format("rod" if kind == pinCell.ROD else "coolant", zone)

    def setBoronPpm(self, cell, ppm, b10Abundance):
        region = self._region(cell)
        self._ppm[region] = ppm
        self._b10Abundance[region] = b10Abundance

    def writeStep(self, timestep, iteration):
        if self.comm.rank != 0:
            return
        fName = pathTools.statePointName("neutronics", timestep, iteration)
        with h5py.File(fName, "w") as h5:
            h5.attrs["keff"] = numpy.nan if self.keff is None else self.keff
            h5.attrs["timestep"] = timestep
            h5.attrs["iteration"] = iteration
            h5.create_dataset("cells", data=numpy.array(self.cells, dtype=int))
            h5.create_dataset("temperature", data=self._temperature)
            h5.create_dataset("density", data=self._density)
            h5.create_dataset("ppm", data=self._ppm)
        runLog.debug("Wrote {}".format(fName))
