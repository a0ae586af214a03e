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

"""Tests for the driver base classes."""
import unittest

import numpy

from tandem import interfaces
from tandem import mpiComm
from tandem.tests import mockDrivers


class NamelessDriver(interfaces.HeatFluidsDriver):
    pass


class MinimalNeutronics(interfaces.NeutronicsDriver):
    name = "minimal"


class TestDrivers(unittest.TestCase):
    def test_nameRequired(self):
        with self.assertRaises(RuntimeError):
            NamelessDriver(None, mpiComm.Communicator())

    def test_active(self):
        active = MinimalNeutronics(None, mpiComm.Communicator())
        inactive = MinimalNeutronics(None, None)
        self.assertTrue(active.active())
        self.assertFalse(inactive.active())
        self.assertIn("inactive", repr(inactive))
        self.assertIsNone(active.keff)

    def test_abstractMethods(self):
        driver = MinimalNeutronics(None, None)
        with self.assertRaises(NotImplementedError):
            driver.solveStep()
        with self.assertRaises(NotImplementedError):
            driver.find(numpy.zeros((1, 3)))
        with self.assertRaises(NotImplementedError):
            driver.heatSource(1.0)
        with self.assertRaises(NotImplementedError):
            driver.cells
        self.assertEqual(driver.cellLabel(4), "4")
        # the default step hooks do nothing
        driver.initStep()
        driver.writeStep(0, 0)
        driver.finalizeStep()

    def test_heatLocalElements(self):
        _cells, elements = mockDrivers.buildStack(2, 3)
        driver = mockDrivers.MockHeatDriver(None, mpiComm.Communicator(), elements=elements)
        self.assertEqual(driver.nLocalElements, 6)
        inactive = mockDrivers.MockHeatDriver(None, None, elements=elements)
        self.assertEqual(inactive.nLocalElements, 0)
