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
In-memory drivers for testing the coupling without physics.

The neutronics model is a stack of axial cells and the heat/fluids model a list of
elements, distributed over the heat/fluids ranks like the surrogate driver does. Both
record the calls they get so tests can check what the coupled driver did.
"""
import collections
import functools

import numpy

from tandem import interfaces

MockCell = collections.namedtuple(
    "MockCell", "handle zMin zMax volume temperature density fissionable fluid"
)
MockElement = collections.namedtuple(
    "MockElement", "centroid volume fluid temperature density"
)


def buildStack(
    nCells,
    elementsPerCell,
    cellVolume=1.0,
    temperature=600.0,
    density=0.7,
    fluid=True,
    firstHandle=10,
):
    """
    Return matching cells and elements for a column of unit-height cells.

    Each cell is split evenly between its elements, which start at the cell's
    temperature and density.
    """
    cells, elements = [], []
    for i in range(nCells):
        cells.append(
            MockCell(
                firstHandle + i,
                float(i),
                float(i + 1),
                cellVolume,
                temperature,
                density,
                not fluid,
                fluid,
            )
        )
        for j in range(elementsPerCell):
            elements.append(
                MockElement(
                    (0.0, 0.0, i + (j + 0.5) / elementsPerCell),
                    cellVolume / elementsPerCell,
                    int(fluid),
                    temperature,
                    density,
                )
            )
    return cells, elements


class MockNeutronicsDriver(interfaces.NeutronicsDriver):
    """
    Neutronics driver over axial cells.

    Parameters
    ----------
    cells : list of MockCell
    keffs : sequence of float
        k-eff returned by the successive solves; the last one repeats.
    heatShape : sequence of float, optional
        Relative power of each found cell; flat if omitted.
    boronWorth : float, optional
        If given, k-eff drops by this much per ppm of boron in the first fluid cell.
    """

    name = "mock"

    def __init__(self, cs, comm, cells=(), keffs=(1.0,), heatShape=None, boronWorth=None):
        interfaces.NeutronicsDriver.__init__(self, cs, comm)
        self.model = {c.handle: c for c in cells}
        self.keffs = list(keffs)
        self.heatShape = heatShape
        self.boronWorth = boronWorth
        self.temperatures = {c.handle: c.temperature for c in cells}
        self.densities = {c.handle: c.density for c in cells}
        self.boron = {}
        self.found = set()
        self.calls = []
        self.temperatureHistory = []
        self.nSolves = 0
        self.closed = False

    @property
    def cells(self):
        return sorted(self.found)

    @property
    def numFissionableCells(self):
        return sum(1 for c in self.model.values() if c.fissionable)

    def find(self, positions):
        handles = []
        for position in numpy.asarray(positions, dtype=float).reshape(-1, 3):
            z = position[2]
            match = None
            for cell in self.model.values():
                if cell.zMin <= z < cell.zMax:
                    match = cell.handle
                    break
            if match is not None:
                self.found.add(match)
            handles.append(match)
        return handles

    def initStep(self):
        self.calls.append("initStep")

    def solveStep(self):
        self.calls.append("solveStep")
        keff = self.keffs[min(self.nSolves, len(self.keffs) - 1)]
        if self.boronWorth is not None and self.boron:
            keff -= self.boronWorth * next(iter(self.boron.values()))
        self.nSolves += 1
        self.keff = keff
        return keff

    def writeStep(self, timestep, iteration):
        self.calls.append(("writeStep", timestep, iteration))

    def finalizeStep(self):
        self.calls.append("finalizeStep")

    def heatSource(self, power):
        cells = self.cells
        shape = (
            numpy.ones(len(cells))
            if self.heatShape is None
            else numpy.asarray(self.heatShape, dtype=float)
        )
        volumes = numpy.array([self.model[h].volume for h in cells])
        return power * shape / (shape.sum() * volumes)

    def getTemperature(self, cell):
        return self.temperatures[cell]

    def setTemperature(self, cell, value):
        self.temperatureHistory.append((cell, value))
        self.temperatures[cell] = value

    def getDensity(self, cell):
        return self.densities[cell]

    def setDensity(self, cell, value):
        self.densities[cell] = value

    def getVolume(self, cell):
        return self.model[cell].volume

    def isFissionable(self, cell):
        return self.model[cell].fissionable

    def cellLabel(self, cell):
        return "mock cell {}".format(cell)

    def setBoronPpm(self, cell, ppm, b10Abundance):
        self.boron[cell] = ppm

    def close(self):
        interfaces.NeutronicsDriver.close(self)
        self.closed = True


class MockHeatDriver(interfaces.HeatFluidsDriver):
    """
    Heat/fluids driver over fixed elements, split evenly over its ranks.

    Parameters
    ----------
    elements : list of MockElement
        All elements of the problem.
    solvedTemperature : float or callable, optional
        Temperature of every local element after a solve. A callable gets the driver
        and returns the local temperatures. Left unchanged if omitted.
    solvedDensity : float or callable, optional
        The same for the density.
    """

    name = "mock"

    def __init__(self, cs, comm, elements=(), solvedTemperature=None, solvedDensity=None):
        interfaces.HeatFluidsDriver.__init__(self, cs, comm)
        local = [elements[i] for i in comm.localRange(len(elements))] if comm is not None else []
        self.elements = local
        self._temperature = numpy.array([e.temperature for e in local], dtype=float)
        self._density = numpy.array([e.density for e in local], dtype=float)
        self.solvedTemperature = solvedTemperature
        self.solvedDensity = solvedDensity
        self.heatSources = []
        self.calls = []
        self.closed = False

    def centroids(self):
        return numpy.array([e.centroid for e in self.elements], dtype=float).reshape(-1, 3)

    def volumes(self):
        return numpy.array([e.volume for e in self.elements], dtype=float)

    def fluidMask(self):
        return numpy.array([e.fluid for e in self.elements], dtype=int)

    def temperature(self):
        return self._temperature

    def density(self):
        return self._density

    def setHeatSource(self, values):
        self.heatSources.append(numpy.array(values, dtype=float))

    def initStep(self):
        self.calls.append("initStep")

    def solveStep(self):
        self.calls.append("solveStep")
        if self.solvedTemperature is not None:
            self._temperature[:] = _evaluate(self.solvedTemperature, self)
        if self.solvedDensity is not None:
            self._density[:] = _evaluate(self.solvedDensity, self)

    def writeStep(self, timestep, iteration):
        self.calls.append(("writeStep", timestep, iteration))

    def finalizeStep(self):
        self.calls.append("finalizeStep")

    def close(self):
        interfaces.HeatFluidsDriver.close(self)
        self.closed = True


def _evaluate(value, driver):
    return value(driver) if callable(value) else value


def factory(driverClass, **kwargs):
    """A driver factory for the coupled driver that passes fixed keyword arguments."""
    return functools.partial(driverClass, **kwargs)
