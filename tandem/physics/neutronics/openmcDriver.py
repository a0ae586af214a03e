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
Neutronics driver running OpenMC in memory through ``openmc.lib``.

OpenMC reads its model from the XML files in the working directory when the driver is
created, and is finalized when the driver is closed. A cell handle stands for one
instance of an OpenMC cell, the unit a temperature can be set on; densities and boron
are set on the material filling it, so every instance must have its own material
(distribmats) for the feedback to be local.

The heat source comes from a ``kappa-fission`` tally over the mapped cell instances,
converted from eV per source particle to W/cm^3 with the material volumes, which must
be set in the model.

The ``openmc`` package is only imported when the driver is created, so TANDEM runs
without it as long as this driver is not selected.
"""
import numpy

from tandem import interfaces
from tandem import runLog
from tandem.physics.neutronics import settings as nSettings
from tandem.utils import pathTools
from tandem.utils import units
from tandem.utils.customExceptions import DriverError

ACTINIDES = ("Th", "Pa", "U", "Np", "Pu", "Am", "Cm", "Bk", "Cf", "Es")
HYDROGEN = ("H1", "H2")


def _element(nuclide):
    return nuclide.rstrip("0123456789_m")


def isFissionableMaterial(material):
    """Whether an ``openmc.lib.Material`` holds actinides."""
    return any(_element(nuc) in ACTINIDES for nuc in material.nuclides)


class OpenmcDriver(interfaces.NeutronicsDriver):
    """Couples OpenMC as the neutronics solver."""

    name = "openmc"

    def __init__(self, cs, comm):
        interfaces.NeutronicsDriver.__init__(self, cs, comm)
        from openmc import lib as openmcLib

        self.lib = openmcLib
        self._instances = []
        self._handles = {}
        self._tally = None
        self._numFissionable = 0
        self.writeStatepoints = cs[nSettings.CONF_OPENMC_STATEPOINTS]

        if self.active():
            self.lib.init(intracomm=self.comm.comm)
            self._numFissionable = self._countFissionableCells()

    def _countFissionableCells(self):
        count = 0
        for cell in self.lib.cells.values():
            fill = cell.fill
            materials = fill if isinstance(fill, (list, tuple)) else [fill]
            for material in materials:
                if isinstance(material, self.lib.Material) and isFissionableMaterial(
                    material
                ):
                    count += 1
        return count

    @property
    def cells(self):
        return sorted(self._handles.values())

    @property
    def numFissionableCells(self):
        return self._numFissionable

    def find(self, positions):
        from openmc.exceptions import GeometryError

        handles = []
        for xyz in numpy.asarray(positions, dtype=float).reshape(-1, 3):
            try:
                cell, instance = self.lib.find_cell(xyz)
            except GeometryError:
                handles.append(None)
                continue
            key = (cell.id, instance)
            if key not in self._handles:
                self._handles[key] = len(self._instances)
                self._instances.append((cell, instance))
            handles.append(self._handles[key])
        self._createTally()
        return handles

    def _createTally(self):
        instances = [self._instances[h] for h in self.cells]
        cellFilter = self.lib.CellInstanceFilter(instances)
        if self._tally is None:
            self._tally = self.lib.Tally()
            self._tally.scores = ["kappa-fission"]
        self._tally.filters = [cellFilter]
        self._tally.active = True

    def _instance(self, cell):
        if not 0 <= cell < len(self._instances):
            raise DriverError("{} has no cell instance {}".format(self, cell))
        return self._instances[cell]

    def _material(self, cell):
        ompCell, instance = self._instance(cell)
        material = ompCell.fill
        if isinstance(material, (list, tuple)):
            material = material[instance]
        if material is None:
            raise DriverError("Cell {} is void".format(self.cellLabel(cell)))
        return material

    def initStep(self):
        self.lib.simulation_init()

    def solveStep(self):
        self.lib.run()
        self.keff = float(self.lib.keff()[0])
        return self.keff

    def writeStep(self, timestep, iteration):
        if self.writeStatepoints:
            self.lib.statepoint_write(
                pathTools.statePointName("openmc", timestep, iteration)
            )

    def finalizeStep(self):
        self.lib.simulation_finalize()

    def heatSource(self, power):
        # results are in eV per source particle, ordered like self.cells
        heat = numpy.asarray(self._tally.mean, dtype=float).ravel() * units.JOULE_PER_EV
        total = heat.sum()
        if not total > 0.0:
            raise DriverError("OpenMC tallied no fission energy in the mapped cells")
        volumes = numpy.array([self.getVolume(h) for h in self.cells])
        return power * heat / (total * volumes)

    def getTemperature(self, cell):
        ompCell, instance = self._instance(cell)
        return float(ompCell.get_temperature(instance))

    def setTemperature(self, cell, value):
        ompCell, instance = self._instance(cell)
        ompCell.set_temperature(value, instance)

    def getDensity(self, cell):
        return float(self._material(cell).get_density(units.G_PER_CM3))

    def setDensity(self, cell, value):
        self._material(cell).set_density(value, units.G_PER_CM3)

    def getVolume(self, cell):
        volume = self._material(cell).volume
        if volume is None:
            raise DriverError(
                "The material of cell {} has no volume".format(self.cellLabel(cell))
            )
        return float(volume)

    def isFissionable(self, cell):
        return isFissionableMaterial(self._material(cell))

    def cellLabel(self, cell):
        ompCell, instance = self._instance(cell)
        return "{} ({})".format(ompCell.id, instance)

    def setBoronPpm(self, cell, ppm, b10Abundance):
        """
        Set the boron of a coolant material as ppm of boron atoms per water molecule.

        The water molecule density is half the hydrogen density of the material.
        """
        material = self._material(cell)
        densities = dict(zip(material.nuclides, material.densities))
        water = 0.5 * sum(densities.get(nuc, 0.0) for nuc in HYDROGEN)
        if not water > 0.0:
            raise DriverError(
                "Cannot add boron to cell {}, it holds no water".format(
                    self.cellLabel(cell)
                )
            )
        boron = ppm * units.PPM_TO_FRACTION * water
        densities["B10"] = boron * b10Abundance
        densities["B11"] = boron * (1.0 - b10Abundance)
        material.set_densities(list(densities), list(densities.values()))

    def close(self):
        interfaces.NeutronicsDriver.close(self)
        if self.active():
            runLog.extra("Finalizing OpenMC")
            self.lib.finalize()
