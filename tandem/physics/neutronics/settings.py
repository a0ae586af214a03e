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

"""Settings of the neutronics drivers."""
import voluptuous as vol

from tandem.settings import setting
from tandem.settings.fwSettings import couplingSettings

CONF_N_AXIAL_ZONES = "nAxialZones"
CONF_K_REFERENCE = "kReference"
CONF_REFERENCE_FUEL_TEMPERATURE = "referenceFuelTemperature"
CONF_DOPPLER_COEFFICIENT = "dopplerCoefficient"
CONF_REFERENCE_COOLANT_DENSITY = "referenceCoolantDensity"
CONF_MODERATOR_COEFFICIENT = "moderatorDensityCoefficient"
CONF_BORON_WORTH = "boronWorth"
CONF_INITIAL_TEMPERATURE = "initialTemperature"
CONF_OPENMC_STATEPOINTS = "openmcStatepoints"

_POSITIVE = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))


def defineSettings():
    settings = [
        setting.Option("surrogate", couplingSettings.CONF_NEUTRONICS_DRIVER),
        setting.Option("openmc", couplingSettings.CONF_NEUTRONICS_DRIVER),
        setting.Setting(
            CONF_N_AXIAL_ZONES,
            default=4,
            label="Axial Neutronics Zones",
            description="Number of axial zones of the surrogate neutronics model, each "
            "with a rod and a coolant cell.",
            schema=vol.All(vol.Coerce(int), vol.Range(min=1)),
        ),
        setting.Setting(
            CONF_K_REFERENCE,
            default=1.05,
            label="Reference k-eff",
            description="Eigenvalue of the surrogate model at the reference state "
            "without boron.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_REFERENCE_FUEL_TEMPERATURE,
            default=900.0,
            label="Reference Rod Temperature (K)",
            description="Rod temperature of the reference state.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_DOPPLER_COEFFICIENT,
            default=-2.5e-5,
            label="Doppler Coefficient (1/K)",
            description="Change of k-eff per K of average rod temperature.",
            schema=vol.Coerce(float),
        ),
        setting.Setting(
            CONF_REFERENCE_COOLANT_DENSITY,
            default=0.74,
            label="Reference Coolant Density (g/cc)",
            description="Coolant density of the reference state, also the initial "
            "coolant density of the surrogate model.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_MODERATOR_COEFFICIENT,
            default=0.25,
            label="Moderator Density Coefficient (cc/g)",
            description="Change of k-eff per g/cc of average coolant density.",
            schema=vol.Coerce(float),
        ),
        setting.Setting(
            CONF_BORON_WORTH,
            default=1.0e-4,
            label="Boron Worth (1/ppm)",
            description="Decrease of k-eff per ppm of natural boron in the coolant.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0)),
        ),
        setting.Setting(
            CONF_INITIAL_TEMPERATURE,
            default=565.0,
            label="Initial Temperature (K)",
            description="Temperature of all cells of the surrogate model before any "
            "feedback.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_OPENMC_STATEPOINTS,
            default=True,
            label="Write OpenMC Statepoints",
            description="Write an OpenMC statepoint file for every Picard iteration.",
        ),
    ]
    return settings
