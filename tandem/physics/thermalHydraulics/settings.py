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

"""Settings related to the thermal/hydraulics drivers."""
import voluptuous as vol

from tandem.physics import pinCell
from tandem.settings import setting
from tandem.settings.fwSettings import couplingSettings

CONF_N_AXIAL_ELEMENTS = "nAxialElements"
CONF_INLET_TEMPERATURE = "inletTemperature"
CONF_MASS_FLOW_RATE = "massFlowRate"
CONF_HEAT_CAPACITY = "coolantHeatCapacity"
CONF_FUEL_CONDUCTIVITY = "rodConductivity"
CONF_FILM_COEFFICIENT = "filmCoefficient"
CONF_COOLANT_REFERENCE_DENSITY = "coolantReferenceDensity"
CONF_COOLANT_REFERENCE_TEMPERATURE = "coolantReferenceTemperature"
CONF_COOLANT_DENSITY_SLOPE = "coolantDensitySlope"

_POSITIVE = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))


def defineSettings():
    """Define the settings of the surrogate heat/fluids driver and the pin geometry."""
    settings = pinCell.defineSettings() + [
        setting.Option("surrogate", couplingSettings.CONF_HEAT_FLUIDS_DRIVER),
        setting.Setting(
            CONF_N_AXIAL_ELEMENTS,
            default=8,
            label="Axial Heat/Fluids Levels",
            description="Number of axial levels of the surrogate heat/fluids model, "
            "each with a rod and a coolant element. Use a multiple of the number of "
            "axial neutronics zones.",
            schema=vol.All(vol.Coerce(int), vol.Range(min=1)),
        ),
        setting.Setting(
            CONF_INLET_TEMPERATURE,
            default=565.0,
            label="Inlet Temperature (K)",
            description="Coolant temperature at the bottom of the pin, also the "
            "initial temperature of every element.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_MASS_FLOW_RATE,
            default=0.3,
            label="Mass Flow Rate (kg/s)",
            description="Coolant mass flow rate through the pin cell.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_HEAT_CAPACITY,
            default=5500.0,
            label="Coolant Heat Capacity (J/kg-K)",
            description="Specific heat of the coolant.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_FUEL_CONDUCTIVITY,
            default=0.03,
            label="Rod Conductivity (W/cm-K)",
            description="Thermal conductivity of the homogenized rod.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_FILM_COEFFICIENT,
            default=3.0,
            label="Film Coefficient (W/cm^2-K)",
            description="Heat transfer coefficient between the rod surface and the "
            "coolant.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_COOLANT_REFERENCE_DENSITY,
            default=0.74,
            label="Coolant Reference Density (g/cc)",
            description="Coolant density at the reference temperature.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_COOLANT_REFERENCE_TEMPERATURE,
            default=565.0,
            label="Coolant Reference Temperature (K)",
            description="Temperature of the coolant reference density.",
            schema=_POSITIVE,
        ),
        setting.Setting(
            CONF_COOLANT_DENSITY_SLOPE,
            default=0.0027,
            label="Coolant Density Slope (g/cc-K)",
            description="Decrease of the coolant density per K above the reference "
            "temperature.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0)),
        ),
    ]
    return settings
