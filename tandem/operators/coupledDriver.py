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
The coupled driver runs a Picard iteration between a neutronics and a heat/fluids solver.

Each timestep iterates::

    neutronics solve -> heat source -> heat/fluids solve -> temperature, density

until the change of the cell temperatures between two iterations is below the
tolerance, or the maximum number of iterations is reached. The exchanged fields are
under-relaxed (see :py:mod:`tandem.coupling.relaxation`).

Every process of the coupling communicator runs the same sequence of states in
lockstep. The neutronics driver runs on the first ``nNeutronicsProcs`` processes and
the heat/fluids driver on the last ``nHeatFluidsProcs``; the two groups may overlap or
not. Drivers are constructed on every process, with ``comm=None`` where they are
inactive, and fields are moved between the groups with collectives of the coupling
communicator only.

Fields are stored twice on every process: for every cell of the problem (the
``global`` arrays, identical on all processes) and for the local cells, the cells of
the local heat/fluids elements. Previous-iteration copies are taken only at the start
of a Picard iteration.
"""
import enum

import numpy

import tandem
from tandem import context
from tandem import runLog
from tandem.coupling import convergence
from tandem.coupling import relaxation
from tandem.coupling import transfer
from tandem.coupling.boron import BoronDriver
from tandem.coupling.fieldMap import FieldMap
from tandem.settings.fwSettings import couplingSettings as cSettings
from tandem.utils import reportingUtils
from tandem.utils.customExceptions import DriverError, InputError, MappingError


class CouplingState(enum.Enum):
    """Where a coupled driver is in its iteration."""

    INIT = 0
    TIMESTEP_BEGIN = 1
    PICARD_BEGIN = 2
    NEUTRONICS_SOLVE = 3
    TRANSFER_HEAT_SOURCE = 4
    HEAT_SOLVE = 5
    TRANSFER_TEMP_DENSITY = 6
    CHECK_CONVERGENCE = 7
    TIMESTEP_END = 8
    DONE = 9


class CoupledDriver:
    """
    Drive the coupled iteration of a neutronics and a heat/fluids driver.

    Parameters
    ----------
    cs : Settings
        The case settings.
    comm : tandem.mpiComm.Communicator
        The coupling communicator, holding every process of both drivers.
    neutronicsDriver : callable, optional
        Called as ``neutronicsDriver(cs, comm)`` to create the neutronics driver. By
        default, the registered driver named by the ``neutronicsDriver`` setting.
    heatFluidsDriver : callable, optional
        The same for the heat/fluids driver.

    Raises
    ------
    InputError
        For an unknown driver name or a process count larger than the communicator.
    MappingError
        If the heat/fluids elements cannot be consistently mapped onto the cells.
    """

    def __init__(self, cs, comm, neutronicsDriver=None, heatFluidsDriver=None):
        self.cs = cs
        self.comm = comm
        self.state = CouplingState.INIT

        self.power = cs[cSettings.CONF_POWER]
        self.nTimesteps = cs[cSettings.CONF_N_TIMESTEPS]
        self.maxPicardIter = cs[cSettings.CONF_MAX_PICARD_ITER]
        self.convergence = convergence.ConvergenceChecker(
            cs[cSettings.CONF_CONVERGENCE_NORM], cs[cSettings.CONF_EPSILON]
        )
        self.alpha = relaxation.fromSetting(cs[cSettings.CONF_ALPHA])
        self.alphaTemperature = (
            relaxation.fromSetting(cs[cSettings.CONF_ALPHA_TEMPERATURE]) or self.alpha
        )
        self.alphaDensity = (
            relaxation.fromSetting(cs[cSettings.CONF_ALPHA_DENSITY]) or self.alpha
        )
        self.fluidOnlyTemperature = cs[cSettings.CONF_FLUID_ONLY_TEMPERATURE]

        self._timestepIndex = 0
        self._picardIndex = 0
        self._closed = False
        self.keff = None
        self.lastNorm = None
        self.convergenceSummary = []

        self._neutronics = None
        self._heat = None
        self.boron = None
        self._splitComm()
        try:
            self._setup(neutronicsDriver, heatFluidsDriver)
        except Exception:
            self.close()
            raise

    def _setup(self, neutronicsDriver, heatFluidsDriver):
        """Build the drivers, the field map and the initial conditions."""
        self._neutronics = self._createDriver(
            neutronicsDriver,
            cSettings.CONF_NEUTRONICS_DRIVER,
            lambda app: app.getNeutronicsDrivers(),
            self._neutronicsComm,
        )
        self._heat = self._createDriver(
            heatFluidsDriver,
            cSettings.CONF_HEAT_FLUIDS_DRIVER,
            lambda app: app.getHeatFluidsDrivers(),
            self._heatComm,
        )
        self.comm.barrier()
        self.commReport()

        self.fieldMap = FieldMap.build(
            self.comm, self._neutronics, self._heat, self.neutronicsRoot
        )
        runLog.info("Mapped heat/fluids elements: {}".format(self.fieldMap))
        neutronicsModel = self._queryNeutronicsModel()
        self._checkMapping(neutronicsModel)

        if self.cs[cSettings.CONF_BORON_SEARCH]:
            self.boron = BoronDriver.fromSettings(self.cs)
            self.boron.setFluidCells(self.fieldMap.fluidCells())
            self._applyBoron()

        self._initTemperature(neutronicsModel["temperatures"])
        self._initDensity(neutronicsModel["densities"])
        self._initHeatSource()

    def __repr__(self):
        return "<{} {} / {} on {}>".format(
            self.__class__.__name__, self._neutronics, self._heat, self.comm
        )

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, stacktrace):
        if exception_type is not None:
            runLog.error(
                "Coupled run failed in state {} at timestep {}, Picard iteration {}:\n"
                "{}: {}".format(
                    self.state.name,
                    self._timestepIndex,
                    self._picardIndex,
                    exception_type.__name__,
                    exception_value,
                )
            )
        self.close()

    # ------------------------------------------------------------------
    # setup

    def _splitComm(self):
        """Split the coupling communicator between the two drivers."""
        size, rank = self.comm.size, self.comm.rank
        nNeutronics = self.cs[cSettings.CONF_N_NEUTRONICS_PROCS] or size
        nHeat = self.cs[cSettings.CONF_N_HEAT_FLUIDS_PROCS] or size
        for label, nProcs in (("neutronics", nNeutronics), ("heat/fluids", nHeat)):
            if nProcs > size:
                raise InputError(
                    "Cannot run the {} driver on {} processes, only {} are "
                    "available".format(label, nProcs, size)
                )

        self._neutronicsComm = self.comm.split(0 if rank < nNeutronics else None)
        self._heatComm = self.comm.split(0 if rank >= size - nHeat else None)

        self._layout = self.comm.allgather(
            (
                context.MPI_NODENAME,
                self._neutronicsComm is not None,
                self._heatComm is not None,
            )
        )
        self.neutronicsRoot = min(r for r, row in enumerate(self._layout) if row[1])
        self.heatRoot = min(r for r, row in enumerate(self._layout) if row[2])
        idle = [r for r, row in enumerate(self._layout) if not (row[1] or row[2])]
        if idle:
            runLog.warning(
                "Processes {} run neither driver and only take part in the "
                "exchanges".format(idle)
            )

    def _createDriver(self, factory, settingName, getRegistry, comm):
        if factory is None:
            registry = getRegistry(tandem.getApp())
            name = self.cs[settingName]
            if name not in registry:
                raise InputError(
                    "No driver named `{}` is registered for `{}`; available: {}".format(
                        name, settingName, sorted(registry)
                    )
                )
            factory = registry[name]
        driver = factory(self.cs, comm)
        runLog.extra("Created {}".format(driver))
        return driver

    def _queryNeutronicsModel(self):
        """Read the properties of the mapped cells from the neutronics root."""
        model = None
        if self.comm.rank == self.neutronicsRoot:
            n = self._neutronics
            cells = self.fieldMap.globalCells
            model = {
                "cells": [int(h) for h in n.cells],
                "volumes": [n.getVolume(int(h)) for h in cells],
                "labels": [n.cellLabel(int(h)) for h in cells],
                "temperatures": [n.getTemperature(int(h)) for h in cells],
                "densities": [n.getDensity(int(h)) for h in cells],
                "nFissionableMapped": sum(bool(n.isFissionable(int(h))) for h in cells),
                "nFissionable": n.numFissionableCells,
            }
        return self.comm.bcast(model, root=self.neutronicsRoot)

    def _checkMapping(self, model):
        if model["cells"] != [int(h) for h in self.fieldMap.globalCells]:
            raise MappingError(
                "The neutronics driver holds {} cells but {} were mapped; the heat "
                "source cannot be ordered consistently".format(
                    len(model["cells"]), self.fieldMap.nGlobalCells
                )
            )
        self.cellLabels = model["labels"]
        self.fieldMap.checkVolumes(
            model["volumes"],
            self.cs[cSettings.CONF_VOLUME_TOLERANCE],
            labels=self.cellLabels,
        )
        if model["nFissionableMapped"] != model["nFissionable"]:
            runLog.warning(
                "Only {} of the {} fissionable cells of the neutronics model are mapped "
                "to heat/fluids elements".format(
                    model["nFissionableMapped"], model["nFissionable"]
                )
            )

    def _heatElementValues(self, getter):
        """Values of the local heat/fluids elements, empty where the driver is inactive."""
        if not self._heat.active():
            return numpy.empty(0)
        return numpy.asarray(getter(), dtype=float)

    def _initTemperature(self, neutronicsTemperatures):
        values = numpy.asarray(neutronicsTemperatures, dtype=float)
        if self.cs[cSettings.CONF_TEMPERATURE_IC] == cSettings.IC_HEAT:
            values, contributed = transfer.elementsToCells(
                self.comm,
                self.fieldMap,
                self._heatElementValues(self._heat.temperature),
                values,
                self._temperatureMask(),
            )
            self._pushToNeutronics(self._neutronics.setTemperature, values, contributed)
        self._storeTemperature(values)
        self.globalTemperaturePrev = self.globalTemperature.copy()
        self.temperaturePrev = self.temperature.copy()

    def _initDensity(self, neutronicsDensities):
        values = numpy.asarray(neutronicsDensities, dtype=float)
        if self.cs[cSettings.CONF_DENSITY_IC] == cSettings.IC_HEAT:
            values, contributed = transfer.elementsToCells(
                self.comm,
                self.fieldMap,
                self._heatElementValues(self._heat.density),
                values,
                self.fieldMap.localElemFluidMask,
            )
            self._pushToNeutronics(self._neutronics.setDensity, values, contributed)
        self._storeDensity(values)
        self.globalDensityPrev = self.globalDensity.copy()
        self.densityPrev = self.density.copy()

    def _initHeatSource(self):
        # neutronics runs first, so the heat source needs no initial value
        self.heatSource = numpy.zeros(self.fieldMap.nGlobalCells)
        self.heatSourcePrev = numpy.zeros(self.fieldMap.nGlobalCells)

    # ------------------------------------------------------------------
    # field exchange

    def _temperatureMask(self):
        return self.fieldMap.localElemFluidMask if self.fluidOnlyTemperature else None

    def _storeTemperature(self, globalValues):
        self.globalTemperature = globalValues
        self.temperature = globalValues[self.fieldMap.localCellGlobalIndex]

    def _storeDensity(self, globalValues):
        self.globalDensity = globalValues
        self.density = globalValues[self.fieldMap.localCellGlobalIndex]

    def _pushToNeutronics(self, setter, globalValues, contributed):
        """Set the cells that got a new value on the neutronics processes."""
        if not self._neutronics.active():
            return
        for handle, value, isNew in zip(
            self.fieldMap.globalCells, globalValues, contributed
        ):
            if isNew:
                setter(int(handle), float(value))

    def _applyBoron(self):
        if self._neutronics.active():
            for handle in self.boron.fluidCells:
                self._neutronics.setBoronPpm(
                    handle, self.boron.ppm, self.boron.b10Abundance
                )

    def updateHeatSource(self, relax):
        """
        Get the heat source from neutronics and give it to the heat/fluids elements.

        Parameters
        ----------
        relax : bool
            Relax against the heat source of the previous iteration. Otherwise the raw
            source is used.
        """
        values = None
        if self._neutronics.active():
            values = self._neutronics.heatSource(self.power)
        values = self.comm.bcast(values, root=self.neutronicsRoot)
        values = numpy.asarray(values, dtype=float)
        if len(values) != self.fieldMap.nGlobalCells:
            raise DriverError(
                "The neutronics driver returned a heat source for {} cells, expected "
                "{}".format(len(values), self.fieldMap.nGlobalCells)
            )
        if relax:
            values = relaxation.relax(
                values, self.heatSourcePrev, self.alpha, self._picardIndex
            )
        self.heatSource = values
        if self._heat.active():
            self._heat.setHeatSource(transfer.cellsToElements(self.fieldMap, values))

    def updateTemperature(self, relax):
        """
        Get the temperatures of the heat/fluids elements and give them to the cells.

        Cells without contributing elements keep their temperature.
        """
        raw, contributed = transfer.elementsToCells(
            self.comm,
            self.fieldMap,
            self._heatElementValues(self._heat.temperature),
            self.globalTemperaturePrev,
            self._temperatureMask(),
        )
        if relax:
            raw = relaxation.relax(
                raw, self.globalTemperaturePrev, self.alphaTemperature, self._picardIndex
            )
        self._storeTemperature(raw)
        self._pushToNeutronics(self._neutronics.setTemperature, raw, contributed)

    def updateDensity(self, relax):
        """Get the densities of the fluid elements and give them to the fluid cells."""
        raw, contributed = transfer.elementsToCells(
            self.comm,
            self.fieldMap,
            self._heatElementValues(self._heat.density),
            self.globalDensityPrev,
            self.fieldMap.localElemFluidMask,
        )
        if relax:
            raw = relaxation.relax(
                raw, self.globalDensityPrev, self.alphaDensity, self._picardIndex
            )
        self._storeDensity(raw)
        self._pushToNeutronics(self._neutronics.setDensity, raw, contributed)

    # ------------------------------------------------------------------
    # iteration

    def execute(self):
        """Run all timesteps."""
        runLog.header("=========== Coupled Iteration ===========")
        for timestep in range(self.nTimesteps):
            self._timestepIndex = timestep
            self._setState(CouplingState.TIMESTEP_BEGIN)
            runLog.header("=========== Timestep {} ===========".format(timestep))
            converged = self._picardLoop()
            if not converged:
                runLog.warning(
                    "Timestep {} did not converge in {} Picard iterations; the last "
                    "{} temperature change was {:.6e} K (tolerance {}). Moving on.".format(
                        timestep,
                        self.maxPicardIter,
                        self.convergence.norm.name,
                        self.lastNorm,
                        self.convergence.epsilon,
                    ),
                    single=False,
                )
            self._setState(CouplingState.TIMESTEP_END)

        self._setState(CouplingState.DONE)
        reportingUtils.writeCouplingConvergenceSummary(self.convergenceSummary)

    def _picardLoop(self):
        converged = False
        for picard in range(self.maxPicardIter):
            self._picardIndex = picard
            self._setState(CouplingState.PICARD_BEGIN)
            self._storePrevious()
            runLog.important(
                "Timestep {}, Picard iteration {}".format(self._timestepIndex, picard)
            )

            self._setState(CouplingState.NEUTRONICS_SOLVE)
            self._solveNeutronics()

            self._setState(CouplingState.TRANSFER_HEAT_SOURCE)
            self.updateHeatSource(relax=not self.isFirstIteration())

            self._setState(CouplingState.HEAT_SOLVE)
            self._runStep(self._heat)

            self._setState(CouplingState.TRANSFER_TEMP_DENSITY)
            self.updateTemperature(relax=True)
            self.updateDensity(relax=True)

            self._setState(CouplingState.CHECK_CONVERGENCE)
            converged = self.isConverged()
            self._recordIteration(converged)
            if converged:
                runLog.important(
                    "Timestep {} converged after {} Picard iterations".format(
                        self._timestepIndex, picard + 1
                    )
                )
                break
        return converged

    def _setState(self, state):
        runLog.debug("Coupled driver state {} -> {}".format(self.state.name, state.name))
        self.state = state

    def _storePrevious(self):
        self.temperaturePrev = self.temperature.copy()
        self.globalTemperaturePrev = self.globalTemperature.copy()
        self.densityPrev = self.density.copy()
        self.globalDensityPrev = self.globalDensity.copy()
        self.heatSourcePrev = self.heatSource.copy()

    def _runStep(self, driver):
        """Run a step of ``driver`` where it is active; return what ``solveStep`` returns."""
        result = None
        if driver.active():
            driver.initStep()
            result = driver.solveStep()
            driver.writeStep(self._timestepIndex, self._picardIndex)
            driver.finalizeStep()
        self.comm.barrier()
        return result

    def _solveNeutronics(self):
        keff = self._runStep(self._neutronics)
        if keff is None and self._neutronics.active():
            keff = self._neutronics.keff
        self.keff = self.comm.bcast(keff, root=self.neutronicsRoot)
        if self.keff is not None:
            runLog.info("k-eff = {:.6f}".format(self.keff))
        if self.boron is not None:
            self.boron.search(self.keff)
            self.boron.printBoron()
            self._applyBoron()

    def temperatureNorm(self, norm=None):
        """Collective norm of the change of the cell temperatures in this iteration."""
        return convergence.computeNorm(
            self.comm,
            self.temperature,
            self.temperaturePrev,
            norm or self.convergence.norm,
        )

    def isConverged(self):
        """
        Whether the temperatures stopped changing, and k-eff is on target when the boron
        search is active. Collective.
        """
        self.lastNorm = self.temperatureNorm()
        converged = self.convergence.isConverged(self.lastNorm)
        runLog.info(
            "{} norm of the temperature change: {:.6e} K".format(
                self.convergence.norm.name, self.lastNorm
            )
        )
        if self.boron is not None:
            converged = converged and self.boron.isConverged()
        return converged

    def _recordIteration(self, converged):
        row = {
            "timestep": self._timestepIndex,
            "picard": self._picardIndex,
            "norm": self.lastNorm,
            "keff": self.keff,
        }
        if self.boron is not None:
            row["ppm"] = self.boron.ppm
        row["converged"] = converged
        self.convergenceSummary.append(row)

    # ------------------------------------------------------------------
    # accessors

    def getNeutronicsDriver(self):
        return self._neutronics

    def getHeatDriver(self):
        return self._heat

    def getTimestepIndex(self):
        return self._timestepIndex

    def getPicardIndex(self):
        return self._picardIndex

    def isFirstIteration(self):
        """Whether this is the first Picard iteration of the first timestep."""
        return self._timestepIndex == 0 and self._picardIndex == 0

    def commReport(self):
        """Log which process runs which driver."""
        reportingUtils.writeCommReport(
            [
                (node, rank, nActive, hActive)
                for rank, (node, nActive, hActive) in enumerate(self._layout)
            ]
        )

    def close(self):
        """Close both drivers. Further calls do nothing."""
        if self._closed:
            return
        self._closed = True
        for driver in (self._neutronics, self._heat):
            if driver is not None:
                driver.close()
