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
Tests for the OpenMC driver against a stand-in for ``openmc.lib``.

The stand-in holds a fuel cell below z = 1 and a water cell from z = 1 to 2. It is
only installed in ``sys.modules`` for the duration of each test.
"""
import sys
import types
import unittest
from unittest import mock

import numpy

from tandem import mpiComm
from tandem import settings
from tandem.physics.neutronics import openmcDriver
from tandem.physics.neutronics import settings as nSettings
from tandem.utils import units
from tandem.utils.customExceptions import DriverError


class GeometryError(Exception):
    pass


class FakeMaterial:
    def __init__(self, nuclides, densities, volume):
        self.nuclides = list(nuclides)
        self.densities = numpy.array(densities, dtype=float)
        self.volume = volume
        self.density = 1.0

    def get_density(self, units):
        return self.density

    def set_density(self, density, units):
        self.density = density

    def set_densities(self, nuclides, densities):
        self.nuclides = list(nuclides)
        self.densities = numpy.array(densities, dtype=float)


class FakeCell:
    def __init__(self, cellId, fill):
        self.id = cellId
        self.fill = fill
        self.temperatures = {}

    def get_temperature(self, instance=None):
        return self.temperatures.get(instance, 293.6)

    def set_temperature(self, T, instance=None):
        self.temperatures[instance] = T


class FakeTally:
    def __init__(self):
        self.scores = []
        self.filters = []
        self.active = False
        self.mean = None


class FakeLib:
    Material = FakeMaterial

    def __init__(self):
        self.fuel = FakeMaterial(["U235", "U238", "O16"], [1e-3, 2e-2, 4.2e-2], 2.0)
        self.water = FakeMaterial(["H1", "O16"], [6.6e-2, 3.3e-2], 3.0)
        self.cells = {
            1: FakeCell(1, self.fuel),
            2: FakeCell(2, self.water),
            3: FakeCell(3, None),
        }
        self.calls = []
        self.tallies = []

    def init(self, intracomm=None):
        self.calls.append(("init", intracomm))

    def finalize(self):
        self.calls.append("finalize")

    def find_cell(self, xyz):
        if 0.0 <= xyz[2] < 1.0:
            return self.cells[1], 0
        if 1.0 <= xyz[2] < 2.0:
            return self.cells[2], 0
        raise GeometryError("No cell at {}".format(xyz))

    def CellInstanceFilter(self, instances):
        return list(instances)

    def Tally(self):
        tally = FakeTally()
        self.tallies.append(tally)
        return tally

    def simulation_init(self):
        self.calls.append("simulation_init")

    def run(self):
        self.calls.append("run")
        # eV per source particle in the water and fuel instances, the order they were found
        for tally in self.tallies:
            tally.mean = numpy.array([[[0.0]], [[2.0e8]]])

    def keff(self):
        return (1.02, 0.001)

    def statepoint_write(self, filename):
        self.calls.append(("statepoint_write", filename))

    def simulation_finalize(self):
        self.calls.append("simulation_finalize")


class TestOpenmcDriver(unittest.TestCase):
    def setUp(self):
        self.lib = FakeLib()
        openmc = types.ModuleType("openmc")
        openmc.lib = self.lib
        exceptions = types.ModuleType("openmc.exceptions")
        exceptions.GeometryError = GeometryError
        openmc.exceptions = exceptions
        patcher = mock.patch.dict(
            sys.modules,
            {"openmc": openmc, "openmc.lib": self.lib, "openmc.exceptions": exceptions},
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        self.cs = settings.Settings()
        self.driver = openmcDriver.OpenmcDriver(self.cs, mpiComm.Communicator())
        self.handles = self.driver.find([(0, 0, 1.5), (0, 0, 0.5), (0, 0, 0.2), (0, 0, 5.0)])

    def test_initialized(self):
        self.assertEqual(self.lib.calls[0], ("init", None))
        self.assertEqual(self.driver.numFissionableCells, 1)

    def test_find(self):
        self.assertEqual(self.handles, [0, 1, 1, None])
        self.assertEqual(self.driver.cells, [0, 1])
        tally = self.lib.tallies[0]
        self.assertEqual(tally.scores, ["kappa-fission"])
        self.assertEqual(tally.filters, [[(self.lib.cells[2], 0), (self.lib.cells[1], 0)]])
        self.assertTrue(tally.active)
        self.assertEqual(self.driver.cellLabel(1), "1 (0)")

    def test_stepAndHeatSource(self):
        self.driver.initStep()
        self.assertEqual(self.driver.solveStep(), 1.02)
        self.driver.writeStep(0, 2)
        self.driver.finalizeStep()
        self.assertEqual(
            self.lib.calls[1:],
            [
                "simulation_init",
                "run",
                ("statepoint_write", "openmc_t0_i2.h5"),
                "simulation_finalize",
            ],
        )
        source = self.driver.heatSource(500.0)
        numpy.testing.assert_allclose(source, [0.0, 250.0])

    def test_noStatepoints(self):
        cs = self.cs.modified(newSettings={nSettings.CONF_OPENMC_STATEPOINTS: False})
        driver = openmcDriver.OpenmcDriver(cs, mpiComm.Communicator())
        driver.writeStep(0, 0)
        written = [c for c in self.lib.calls if c[0] == "statepoint_write"]
        self.assertEqual(written, [])

    def test_fields(self):
        self.driver.setTemperature(1, 900.0)
        self.assertEqual(self.driver.getTemperature(1), 900.0)
        self.assertEqual(self.lib.cells[1].temperatures, {0: 900.0})
        self.driver.setDensity(0, 0.7)
        self.assertEqual(self.driver.getDensity(0), 0.7)
        self.assertEqual(self.driver.getVolume(0), 3.0)
        self.assertTrue(self.driver.isFissionable(1))
        self.assertFalse(self.driver.isFissionable(0))
        with self.assertRaises(DriverError):
            self.driver.getVolume(7)

    def test_boron(self):
        self.driver.setBoronPpm(0, 1000.0, 0.2)
        densities = dict(zip(self.lib.water.nuclides, self.lib.water.densities))
        boron = 1000.0 * units.PPM_TO_FRACTION * 0.5 * 6.6e-2
        self.assertAlmostEqual(densities["B10"], 0.2 * boron)
        self.assertAlmostEqual(densities["B11"], 0.8 * boron)
        self.assertAlmostEqual(densities["H1"], 6.6e-2)
        with self.assertRaises(DriverError):
            self.driver.setBoronPpm(1, 1000.0, 0.2)

    def test_close(self):
        self.driver.close()
        self.assertEqual(self.lib.calls[-1], "finalize")

    def test_isFissionableMaterial(self):
        self.assertTrue(openmcDriver.isFissionableMaterial(self.lib.fuel))
        self.assertFalse(openmcDriver.isFissionableMaterial(self.lib.water))
