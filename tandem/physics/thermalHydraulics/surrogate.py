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
A surrogate heat/fluids driver for a single pin cell with one coolant channel.

The elements are the axial levels of the rod and of the coolant of a
:py:class:`~tandem.physics.pinCell.PinCell`, split over the processes of the driver.
Every process solves the whole (tiny) problem after gathering the heat source.

The coolant of level :math:`j` is at the temperature of the enthalpy rise up to the
middle of the level,

.. math::

    T_{c,j} = T_{in} + \frac{\sum_{m<j} Q_m + Q_j / 2}{\dot{m} c_p}

with :math:`Q_j` the power of level :math:`j`. The rod is hotter by the film and the
average conduction temperature drops of its linear power :math:`q'_j`,

.. math::

    T_{f,j} = T_{c,j} + \frac{q'_j}{2 \pi R h} + \frac{q'_j}{8 \pi k}

The coolant density falls linearly with temperature.
"""
import math

import h5py
import numpy

from tandem import interfaces
from tandem import runLog
from tandem.physics import pinCell
from tandem.physics.thermalHydraulics import settings as thSettings
from tandem.utils import pathTools
from tandem.utils.customExceptions import DriverError


class SurrogateHeatDriver(interfaces.HeatFluidsDriver):
    """Single channel, single rod heat balance."""

    name = "surrogate"

    def __init__(self, cs, comm):
        interfaces.HeatFluidsDriver.__init__(self, cs, comm)
        self.pin = pinCell.PinCell.fromSettings(cs, cs[thSettings.CONF_N_AXIAL_ELEMENTS])
        self.inletTemperature = cs[thSettings.CONF_INLET_TEMPERATURE]
        self.massFlowRate = cs[thSettings.CONF_MASS_FLOW_RATE]
        self.heatCapacity = cs[thSettings.CONF_HEAT_CAPACITY]
        self.rodConductivity = cs[thSettings.CONF_FUEL_CONDUCTIVITY]
        self.filmCoefficient = cs[thSettings.CONF_FILM_COEFFICIENT]
        self.referenceDensity = cs[thSettings.CONF_COOLANT_REFERENCE_DENSITY]
        self.referenceTemperature = cs[thSettings.CONF_COOLANT_REFERENCE_TEMPERATURE]
        self.densitySlope = cs[thSettings.CONF_COOLANT_DENSITY_SLOPE]

        nRegions = self.pin.nRegions
        self._elements = (
            numpy.array(self.comm.localRange(nRegions), dtype=int)
            if self.active()
            else numpy.array([], dtype=int)
        )
        self._isRod = numpy.array([self.pin.isRod(r) for r in range(nRegions)])
        self._volumes = numpy.array([self.pin.regionVolume(r) for r in range(nRegions)])
        self._heatSource = numpy.zeros(nRegions)
        self._temperature = numpy.full(nRegions, self.inletTemperature)
        self._density = numpy.where(
            self._isRod,
            cs[pinCell.CONF_FUEL_DENSITY],
            self.coolantDensity(self.inletTemperature),
        )

    def coolantDensity(self, temperature):
        """Coolant density [g/cc] at ``temperature`` [K]."""
        density = self.referenceDensity - self.densitySlope * (
            numpy.asarray(temperature, dtype=float) - self.referenceTemperature
        )
        if numpy.any(density <= 0.0):
            raise DriverError(
                "Coolant density is no longer positive at {} K; the surrogate coolant "
                "law does not hold".format(numpy.max(temperature))
            )
        return density

    def centroids(self):
        return numpy.array([self.pin.regionCentroid(r) for r in self._elements]).reshape(
            -1, 3
        )

    def volumes(self):
        return self._volumes[self._elements]

    def fluidMask(self):
        return (~self._isRod[self._elements]).astype(int)

    def temperature(self):
        return self._temperature[self._elements]

    def density(self):
        return self._density[self._elements]

    def setHeatSource(self, values):
        values = numpy.asarray(values, dtype=float)
        if len(values) != len(self._elements):
            raise DriverError(
                "Got a heat source for {} elements, {} are local".format(
                    len(values), len(self._elements)
                )
            )
        self._heatSource[:] = 0.0
        for elements, localValues in self.comm.allgather((self._elements, values)):
            self._heatSource[elements] = localValues

    def solveStep(self):
        power = self._heatSource * self._volumes
        rodPower = power[0::2]
        levelPower = rodPower + power[1::2]
        below = numpy.cumsum(levelPower) - levelPower
        coolantT = self.inletTemperature + (below + 0.5 * levelPower) / (
            self.massFlowRate * self.heatCapacity
        )
        linearPower = rodPower / self.pin.dz
        rodT = (
            coolantT
            + linearPower / (2.0 * math.pi * self.pin.rodRadius * self.filmCoefficient)
            + linearPower / (8.0 * math.pi * self.rodConductivity)
        )

        self._temperature[0::2] = rodT
        self._temperature[1::2] = coolantT
        self._density[1::2] = self.coolantDensity(coolantT)
        outletT = self.inletTemperature + levelPower.sum() / (
            self.massFlowRate * self.heatCapacity
        )
        runLog.extra(
            "Surrogate heat/fluids: {:.1f} W, outlet {:.2f} K, peak rod {:.2f} K".format(
                power.sum(), outletT, rodT.max()
            )
        )

    def writeStep(self, timestep, iteration):
        if self.comm.rank != 0:
            return
        fName = pathTools.statePointName("heat", timestep, iteration)
        with h5py.File(fName, "w") as h5:
            h5.attrs["timestep"] = timestep
            h5.attrs["iteration"] = iteration
            h5.create_dataset("heatSource", data=self._heatSource)
            h5.create_dataset("temperature", data=self._temperature)
            h5.create_dataset("density", data=self._density)
            h5.create_dataset("fluidMask", data=(~self._isRod).astype(int))
        runLog.debug("Wrote {}".format(fName))
