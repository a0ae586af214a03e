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
Settings of the coupled Picard iteration.

These control the outer timestep loop and the inner Picard loop, the relaxation of the
exchanged fields, how processes are split between the drivers, and the boron
criticality search.

The relaxation settings are compound settings: their value is a
:py:class:`tandem.coupling.relaxation.Relaxation` object, while the settings file holds
either a number or the keyword ``robbins-monro``.
"""
from typing import List

import voluptuous as vol

from tandem.coupling import relaxation
from tandem.settings import setting

CONF_POWER = "power"
CONF_N_TIMESTEPS = "nTimesteps"
CONF_MAX_PICARD_ITER = "maxPicardIter"
CONF_EPSILON = "epsilon"
CONF_CONVERGENCE_NORM = "convergenceNorm"
CONF_ALPHA = "alpha"
CONF_ALPHA_TEMPERATURE = "alphaTemperature"
CONF_ALPHA_DENSITY = "alphaDensity"
CONF_TEMPERATURE_IC = "temperatureIC"
CONF_DENSITY_IC = "densityIC"
CONF_FLUID_ONLY_TEMPERATURE = "fluidOnlyTemperature"
CONF_VOLUME_TOLERANCE = "volumeTolerance"
CONF_NEUTRONICS_DRIVER = "neutronicsDriver"
CONF_HEAT_FLUIDS_DRIVER = "heatFluidsDriver"
CONF_N_NEUTRONICS_PROCS = "nNeutronicsProcs"
CONF_N_HEAT_FLUIDS_PROCS = "nHeatFluidsProcs"
CONF_BORON_SEARCH = "boronSearch"
CONF_BORON_INITIAL_PPM = "boronInitialPpm"
CONF_BORON_INITIAL_STEP = "boronInitialStep"
CONF_TARGET_KEFF = "targetKeff"
CONF_BORON_EPSILON = "boronEpsilon"
CONF_B10_ABUNDANCE = "b10Abundance"

IC_NEUTRONICS = "neutronics"
IC_HEAT = "heat"

_RELAXATION_SCHEMA = vol.Any(
    None,
    vol.All(vol.Coerce(float), vol.Range(min=0.0, max=1.0, min_included=False)),
    vol.All(str, vol.Lower, vol.Strip, vol.In([relaxation.ROBBINS_MONRO])),
)


def relaxationValidator(value):
    """Validate a relaxation settings value and return the scheme, or None."""
    if isinstance(value, relaxation.Relaxation):
        value = value.dump()
    return relaxation.fromSetting(_RELAXATION_SCHEMA(value))


class RelaxationSetting(setting.Setting):
    """
    Setting holding a relaxation scheme.

    Notes
    -----
    The value is validated by :py:func:`relaxationValidator`, which coerces it into a
    :py:class:`~tandem.coupling.relaxation.Relaxation`. A default of ``None`` means the
    scheme is inherited from the ``alpha`` setting.
    """

    def __init__(self, name, default, description, label):
        setting.Setting.__init__(
            self,
            name,
            relaxation.fromSetting(default),
            description=description,
            label=label,
            schema=relaxationValidator,
        )

    def dump(self):
        return None if self._value is None else self._value.dump()

    def isDefault(self):
        default = None if self.default is None else self.default.dump()
        return self.dump() == default


def defineSettings() -> List[setting.Setting]:
    """Return the settings of the coupled iteration."""
    settings = [
        setting.Setting(
            CONF_POWER,
            default=6.5e4,
            label="Total Power (W)",
            description="Total power the neutronics heat source is normalized to.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_N_TIMESTEPS,
            default=1,
            label="Number of Timesteps",
            description="Number of timesteps of the outer loop.",
            schema=vol.All(vol.Coerce(int), vol.Range(min=1)),
        ),
        setting.Setting(
            CONF_MAX_PICARD_ITER,
            default=5,
            label="Max Picard Iterations",
            description="Maximum number of Picard iterations in a timestep. A timestep "
            "that reaches it without converging is reported and the run moves on.",
            schema=vol.All(vol.Coerce(int), vol.Range(min=1)),
        ),
        setting.Setting(
            CONF_EPSILON,
            default=1e-3,
            label="Picard Tolerance",
            description="The Picard iteration is converged when the norm of the "
            "temperature change between iterations is below this value.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_CONVERGENCE_NORM,
            default="LINF",
            label="Convergence Norm",
            description="Norm of the temperature change: L1 (mean absolute), L2 (root "
            "mean square) or LINF (maximum absolute).",
            schema=vol.All(str, vol.Upper, vol.In(["L1", "L2", "LINF"])),
        ),
        RelaxationSetting(
            CONF_ALPHA,
            default=1.0,
            label="Heat Source Relaxation",
            description="Relaxation of the heat source: a factor in (0, 1] or "
            "`robbins-monro`. Also used for temperature and density unless they set "
            "their own.",
        ),
        RelaxationSetting(
            CONF_ALPHA_TEMPERATURE,
            default=None,
            label="Temperature Relaxation",
            description="Relaxation of the temperature. Empty means same as `alpha`.",
        ),
        RelaxationSetting(
            CONF_ALPHA_DENSITY,
            default=None,
            label="Density Relaxation",
            description="Relaxation of the density. Empty means same as `alpha`.",
        ),
        setting.Setting(
            CONF_TEMPERATURE_IC,
            default=IC_NEUTRONICS,
            label="Temperature Initial Condition",
            description="Take the initial temperatures from the neutronics model or "
            "from the heat/fluids initial state.",
            options=[IC_NEUTRONICS, IC_HEAT],
            enforcedOptions=True,
        ),
        setting.Setting(
            CONF_DENSITY_IC,
            default=IC_NEUTRONICS,
            label="Density Initial Condition",
            description="Take the initial densities from the neutronics model or from "
            "the heat/fluids initial state.",
            options=[IC_NEUTRONICS, IC_HEAT],
            enforcedOptions=True,
        ),
        setting.Setting(
            CONF_FLUID_ONLY_TEMPERATURE,
            default=True,
            label="Fluid-Only Temperature Feedback",
            description="Only fluid elements feed temperatures back to the neutronics "
            "cells. When False, solid cells (fuel, cladding) get temperatures too.",
        ),
        setting.Setting(
            CONF_VOLUME_TOLERANCE,
            default=1e-6,
            label="Volume Tolerance",
            description="Allowed relative difference between the volume of a neutronics "
            "cell and the summed volume of the heat/fluids elements mapped into it.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0)),
        ),
        setting.Setting(
            CONF_NEUTRONICS_DRIVER,
            default="surrogate",
            label="Neutronics Driver",
            description="Name of the registered neutronics driver to couple.",
            options=[],
            enforcedOptions=True,
        ),
        setting.Setting(
            CONF_HEAT_FLUIDS_DRIVER,
            default="surrogate",
            label="Heat/Fluids Driver",
            description="Name of the registered heat/fluids driver to couple.",
            options=[],
            enforcedOptions=True,
        ),
        setting.Setting(
            CONF_N_NEUTRONICS_PROCS,
            default=0,
            label="Neutronics Processes",
            description="Number of processes running the neutronics driver, taken from "
            "the first ranks. 0 means all processes.",
            schema=vol.All(vol.Coerce(int), vol.Range(min=0)),
        ),
        setting.Setting(
            CONF_N_HEAT_FLUIDS_PROCS,
            default=0,
            label="Heat/Fluids Processes",
            description="Number of processes running the heat/fluids driver, taken from "
            "the last ranks. 0 means all processes.",
            schema=vol.All(vol.Coerce(int), vol.Range(min=0)),
        ),
        setting.Setting(
            CONF_BORON_SEARCH,
            default=False,
            label="Boron Criticality Search",
            description="Adjust the soluble boron concentration of the fluid cells "
            "every Picard iteration so that k-eff converges to the target.",
        ),
        setting.Setting(
            CONF_BORON_INITIAL_PPM,
            default=0.0,
            label="Initial Boron (ppm)",
            description="Boron concentration at the start of the search.",
            schema=vol.Coerce(float),
        ),
        setting.Setting(
            CONF_BORON_INITIAL_STEP,
            default=100.0,
            label="Initial Boron Step (ppm)",
            description="Size of the first change of the boron concentration, before "
            "two k-eff values are available for the secant update.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_TARGET_KEFF,
            default=1.0,
            label="Target k-eff",
            description="Eigenvalue the boron search converges to.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_BORON_EPSILON,
            default=1e-3,
            label="Boron Search Tolerance",
            description="The search is converged when |k-eff - target| is at most "
            "this value.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0)),
        ),
        setting.Setting(
            CONF_B10_ABUNDANCE,
            default=0.1982,
            label="B-10 Abundance",
            description="Atom fraction of B-10 in the soluble boron.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, max=1)),
        ),
    ]
    return settings
