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

"""Plugin registering the neutronics drivers and their settings."""
from tandem import plugins


class NeutronicsPlugin(plugins.TandemPlugin):
    """Plugin for the built-in neutronics drivers."""

    @staticmethod
    @plugins.HOOKIMPL
    def defineSettings():
        """Define settings for the neutronics drivers."""
        from tandem.physics.neutronics import settings

        return settings.defineSettings()

    @staticmethod
    @plugins.HOOKIMPL
    def defineDrivers():
        """Expose the surrogate and OpenMC drivers."""
        from tandem.physics.neutronics.openmcDriver import OpenmcDriver
        from tandem.physics.neutronics.surrogate import SurrogateNeutronicsDriver

        return [SurrogateNeutronicsDriver, OpenmcDriver]
