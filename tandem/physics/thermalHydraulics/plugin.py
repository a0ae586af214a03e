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
Generic Thermal/Hydraulics Plugin.

Thermal/hydraulics is concerned with temperatures, flows, and heat transfer.
"""
from tandem import plugins
from tandem.physics.thermalHydraulics import settings


class ThermalHydraulicsPlugin(plugins.TandemPlugin):
    """Plugin for thermal/hydraulics."""

    @staticmethod
    @plugins.HOOKIMPL
    def defineSettings():
        """Define settings for T/H."""
        return settings.defineSettings()

    @staticmethod
    @plugins.HOOKIMPL
    def defineDrivers():
        """Expose the surrogate T/H driver."""
        from tandem.physics.thermalHydraulics.surrogate import SurrogateHeatDriver

        return [SurrogateHeatDriver]
