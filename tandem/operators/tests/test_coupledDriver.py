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

"""Tests for the Picard iteration of the coupled driver."""
import unittest

import numpy

from tandem import mpiComm
from tandem import settings
from tandem.operators.coupledDriver import CoupledDriver, CouplingState
from tandem.settings.fwSettings import couplingSettings as cSettings
from tandem.tests import mockDrivers
from tandem.tests import mockRunLogs
from tandem.tests import threadComm
from tandem.utils.customExceptions import InputError, VolumeConservationError


def makeSettings(**kwargs):
    return settings.Settings().modified(newSettings=kwargs)


def makeDriver(cs, cells, elements, comm=None, keffs=(1.0,), **heatKwargs):
    return CoupledDriver(
        cs,
        comm or mpiComm.Communicator(),
        neutronicsDriver=mockDrivers.factory(
            mockDrivers.MockNeutronicsDriver, cells=cells, keffs=keffs
        ),
        heatFluidsDriver=mockDrivers.factory(
            mockDrivers.MockHeatDriver, elements=elements, **heatKwargs
        ),
    )


class TestSingleIteration(unittest.TestCase):
    """One fluid cell of four elements, relaxed halfway from 600 K towards 620 K."""

    def setUp(self):
        self.cs = makeSettings(
            **{
                cSettings.CONF_MAX_PICARD_ITER: 1,
                cSettings.CONF_N_TIMESTEPS: 1,
                cSettings.CONF_ALPHA: 0.5,
            }
        )
        self.cells, self.elements = mockDrivers.buildStack(1, 4, temperature=600.0)

    def test_relaxedTemperature(self):
        with mockRunLogs.BufferLog():
            with makeDriver(
                self.cs, self.cells, self.elements, solvedTemperature=620.0
            ) as coupled:
                coupled.execute()
                neutronics = coupled.getNeutronicsDriver()
                self.assertAlmostEqual(neutronics.getTemperature(10), 610.0)
                numpy.testing.assert_allclose(coupled.globalTemperature, [610.0])
                numpy.testing.assert_allclose(coupled.temperaturePrev, [600.0])
                self.assertAlmostEqual(coupled.lastNorm, 10.0)
                self.assertEqual(coupled.state, CouplingState.DONE)
        self.assertTrue(neutronics.closed)
        self.assertTrue(coupled.getHeatDriver().closed)

    def test_firstHeatSourceUnrelaxed(self):
        with mockRunLogs.BufferLog():
            coupled = makeDriver(self.cs, self.cells, self.elements)
            coupled.execute()
        power = self.cs[cSettings.CONF_POWER]
        sources = coupled.getHeatDriver().heatSources
        self.assertEqual(len(sources), 1)
        numpy.testing.assert_allclose(sources[0], [power] * 4)
        # 4 elements of 0.25 cm^3 carry the full power
        self.assertAlmostEqual(numpy.dot(sources[0], [0.25] * 4), power)

    def test_relaxedHeatSource(self):
        with mockRunLogs.BufferLog():
            coupled = makeDriver(self.cs, self.cells, self.elements)
            coupled.updateHeatSource(relax=True)
        numpy.testing.assert_allclose(coupled.heatSource, [0.5 * self.cs[cSettings.CONF_POWER]])

    def test_stepOrder(self):
        with mockRunLogs.BufferLog():
            coupled = makeDriver(self.cs, self.cells, self.elements)
            coupled.execute()
        expected = ["initStep", "solveStep", ("writeStep", 0, 0), "finalizeStep"]
        self.assertEqual(coupled.getNeutronicsDriver().calls, expected)
        self.assertEqual(coupled.getHeatDriver().calls, expected)

    def test_heatTemperatureIC(self):
        cs = self.cs.modified(newSettings={cSettings.CONF_TEMPERATURE_IC: cSettings.IC_HEAT})
        cells, elements = mockDrivers.buildStack(1, 4, temperature=650.0)
        cells = [cells[0]._replace(temperature=500.0)]
        with mockRunLogs.BufferLog():
            coupled = makeDriver(cs, cells, elements)
        numpy.testing.assert_allclose(coupled.globalTemperature, [650.0])
        self.assertEqual(coupled.getNeutronicsDriver().temperatureHistory, [(10, 650.0)])

    def test_neutronicsTemperatureIC(self):
        cells = [self.cells[0]._replace(temperature=500.0)]
        with mockRunLogs.BufferLog():
            coupled = makeDriver(self.cs, cells, self.elements)
        numpy.testing.assert_allclose(coupled.globalTemperature, [500.0])
        self.assertEqual(coupled.getNeutronicsDriver().temperatureHistory, [])


class TestIteration(unittest.TestCase):
    def test_convergence(self):
        cs = makeSettings(**{cSettings.CONF_MAX_PICARD_ITER: 5, cSettings.CONF_ALPHA: 1.0})
        cells, elements = mockDrivers.buildStack(2, 3)
        with mockRunLogs.BufferLog() as mock:
            coupled = makeDriver(
                cs, cells, elements, keffs=(1.1, 1.05), solvedTemperature=620.0
            )
            coupled.execute()
        self.assertEqual(len(coupled.convergenceSummary), 2)
        first, last = coupled.convergenceSummary
        self.assertFalse(first["converged"])
        self.assertAlmostEqual(first["norm"], 20.0)
        self.assertAlmostEqual(first["keff"], 1.1)
        self.assertTrue(last["converged"])
        self.assertEqual(last["norm"], 0.0)
        self.assertIn("converged after 2 Picard iterations", mock.getStdout())
        self.assertIn("Coupling Convergence Summary", mock.getStdout())

    def test_nonConvergenceMovesOn(self):
        cs = makeSettings(
            **{
                cSettings.CONF_MAX_PICARD_ITER: 2,
                cSettings.CONF_N_TIMESTEPS: 2,
                cSettings.CONF_ALPHA: 0.5,
            }
        )
        cells, elements = mockDrivers.buildStack(1, 2)
        with mockRunLogs.BufferLog() as mock:
            coupled = makeDriver(cs, cells, elements, solvedTemperature=620.0)
            coupled.execute()
        self.assertEqual(mock.getStdout().count("did not converge"), 2)
        self.assertEqual(len(coupled.convergenceSummary), 4)
        self.assertEqual(coupled.getTimestepIndex(), 1)
        self.assertEqual(coupled.getPicardIndex(), 1)
        self.assertIn(("writeStep", 1, 1), coupled.getHeatDriver().calls)

    def test_robbinsMonroDensity(self):
        cs = makeSettings(
            **{
                cSettings.CONF_MAX_PICARD_ITER: 2,
                cSettings.CONF_ALPHA_DENSITY: "robbins-monro",
            }
        )
        cells, elements = mockDrivers.buildStack(1, 2, density=0.7)

        def solvedDensity(driver):
            return 0.5 if driver.calls.count("solveStep") == 1 else 0.3

        with mockRunLogs.BufferLog():
            coupled = makeDriver(
                cs, cells, elements, solvedTemperature=620.0, solvedDensity=solvedDensity
            )
            coupled.execute()
        # iteration 0 takes the new density, iteration 1 averages it with the last one
        numpy.testing.assert_allclose(coupled.globalDensity, [0.4])
        self.assertAlmostEqual(coupled.getNeutronicsDriver().getDensity(10), 0.4)
        numpy.testing.assert_allclose(coupled.globalTemperature, [620.0])

    def test_solidTemperatureIgnored(self):
        """With fluid-only temperatures, a solid cell keeps its temperature."""
        cs = makeSettings(**{cSettings.CONF_MAX_PICARD_ITER: 1})
        cells, elements = mockDrivers.buildStack(1, 2, fluid=False)
        with mockRunLogs.BufferLog():
            coupled = makeDriver(cs, cells, elements, solvedTemperature=900.0)
            coupled.execute()
        numpy.testing.assert_allclose(coupled.globalTemperature, [600.0])

        cs = cs.modified(newSettings={cSettings.CONF_FLUID_ONLY_TEMPERATURE: False})
        with mockRunLogs.BufferLog():
            coupled = makeDriver(cs, cells, elements, solvedTemperature=900.0)
            coupled.execute()
        numpy.testing.assert_allclose(coupled.globalTemperature, [900.0])


class TestBoronSearch(unittest.TestCase):
    def test_criticalBoron(self):
        cs = makeSettings(
            **{
                cSettings.CONF_MAX_PICARD_ITER: 6,
                cSettings.CONF_BORON_SEARCH: True,
                cSettings.CONF_BORON_EPSILON: 1e-4,
                cSettings.CONF_BORON_INITIAL_STEP: 100.0,
            }
        )
        cells, elements = mockDrivers.buildStack(1, 2)
        with mockRunLogs.BufferLog():
            coupled = CoupledDriver(
                cs,
                mpiComm.Communicator(),
                neutronicsDriver=mockDrivers.factory(
                    mockDrivers.MockNeutronicsDriver,
                    cells=cells,
                    keffs=(1.05,),
                    boronWorth=1e-4,
                ),
                heatFluidsDriver=mockDrivers.factory(
                    mockDrivers.MockHeatDriver, elements=elements
                ),
            )
            coupled.execute()
        summary = coupled.convergenceSummary
        self.assertEqual([row["converged"] for row in summary], [False, False, True])
        self.assertAlmostEqual(summary[-1]["ppm"], 500.0)
        self.assertAlmostEqual(coupled.getNeutronicsDriver().boron[10], 500.0)
        self.assertAlmostEqual(coupled.keff, 1.0)


class TestSetupErrors(unittest.TestCase):
    def test_tooManyProcesses(self):
        cs = makeSettings(**{cSettings.CONF_N_NEUTRONICS_PROCS: 3})
        cells, elements = mockDrivers.buildStack(1, 2)
        with mockRunLogs.BufferLog():
            with self.assertRaises(InputError):
                makeDriver(cs, cells, elements)

    def test_volumeMismatch(self):
        cs = makeSettings()
        cells, elements = mockDrivers.buildStack(2, 2)
        cells[1] = cells[1]._replace(volume=1.5)
        with mockRunLogs.BufferLog() as mock:
            with self.assertRaises(VolumeConservationError):
                makeDriver(cs, cells, elements)
        self.assertIn("mock cell 11", mock.getStdout())

    def test_failedSetupClosesDrivers(self):
        cs = makeSettings()
        cells, elements = mockDrivers.buildStack(2, 2)
        cells[1] = cells[1]._replace(volume=1.5)
        created = []

        def recording(driverClass, **kwargs):
            def build(cs, comm):
                driver = driverClass(cs, comm, **kwargs)
                created.append(driver)
                return driver

            return build

        with mockRunLogs.BufferLog():
            with self.assertRaises(VolumeConservationError):
                CoupledDriver(
                    cs,
                    mpiComm.Communicator(),
                    neutronicsDriver=recording(
                        mockDrivers.MockNeutronicsDriver, cells=cells
                    ),
                    heatFluidsDriver=recording(
                        mockDrivers.MockHeatDriver, elements=elements
                    ),
                )
        self.assertEqual(len(created), 2)
        self.assertTrue(all(driver.closed for driver in created))

    def test_failedHeatDriverClosesNeutronics(self):
        cs = makeSettings()
        cells, _elements = mockDrivers.buildStack(1, 2)
        created = []

        def neutronics(cs, comm):
            driver = mockDrivers.MockNeutronicsDriver(cs, comm, cells=cells)
            created.append(driver)
            return driver

        def brokenHeat(cs, comm):
            raise RuntimeError("heat/fluids input missing")

        with mockRunLogs.BufferLog():
            with self.assertRaises(RuntimeError):
                CoupledDriver(
                    cs,
                    mpiComm.Communicator(),
                    neutronicsDriver=neutronics,
                    heatFluidsDriver=brokenHeat,
                )
        self.assertTrue(created[0].closed)

    def test_exceptionInContextClosesDrivers(self):
        cs = makeSettings()
        cells, elements = mockDrivers.buildStack(1, 2)
        with mockRunLogs.BufferLog() as mock:
            with self.assertRaises(RuntimeError):
                with makeDriver(cs, cells, elements) as coupled:
                    raise RuntimeError("solver crashed")
        self.assertTrue(coupled.getNeutronicsDriver().closed)
        self.assertIn("Coupled run failed in state INIT", mock.getStdout())
        coupled.close()


class TestDistributed(unittest.TestCase):
    def test_disjointDrivers(self):
        """Neutronics on rank 0, heat/fluids on rank 2, and rank 1 only exchanges."""
        cs = makeSettings(
            **{
                cSettings.CONF_MAX_PICARD_ITER: 1,
                cSettings.CONF_ALPHA: 0.5,
                cSettings.CONF_N_NEUTRONICS_PROCS: 1,
                cSettings.CONF_N_HEAT_FLUIDS_PROCS: 1,
            }
        )
        cells, elements = mockDrivers.buildStack(2, 2)

        def run(comm):
            coupled = makeDriver(cs, cells, elements, comm=comm, solvedTemperature=620.0)
            coupled.execute()
            coupled.close()
            return coupled

        with mockRunLogs.BufferLog() as mock:
            results = threadComm.runOnThreads(3, run)

        self.assertIn("run neither driver", mock.getStdout())
        for coupled in results:
            self.assertEqual((coupled.neutronicsRoot, coupled.heatRoot), (0, 2))
            numpy.testing.assert_allclose(coupled.globalTemperature, [610.0, 610.0])
            self.assertAlmostEqual(coupled.keff, 1.0)
        self.assertEqual(results[0].getNeutronicsDriver().temperatures, {10: 610.0, 11: 610.0})
        self.assertFalse(results[2].getNeutronicsDriver().active())
        self.assertEqual(results[2].getHeatDriver().nLocalElements, 4)
        self.assertEqual(results[1].fieldMap.nLocalElements, 0)

    def test_sharedDrivers(self):
        """Both drivers on both ranks, each with half the elements of every cell."""
        cs = makeSettings(**{cSettings.CONF_MAX_PICARD_ITER: 1})
        cells, elements = mockDrivers.buildStack(1, 4)

        def run(comm):
            def rankTemperature(driver):
                return 600.0 + 40.0 * comm.rank

            coupled = makeDriver(
                cs, cells, elements, comm=comm, solvedTemperature=rankTemperature
            )
            coupled.execute()
            return coupled.globalTemperature

        with mockRunLogs.BufferLog():
            for temperature in threadComm.runOnThreads(2, run):
                numpy.testing.assert_allclose(temperature, [620.0])
