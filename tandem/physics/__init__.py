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
The physics packages provide the drivers that a coupled run couples.

neutronics
    Neutron transport solvers: a surrogate pin-cell model, and a wrapper of the OpenMC
    library.

thermalHydraulics
    Heat conduction and coolant flow solvers: a surrogate single-channel pin model.

Each package registers its drivers and settings through a plugin (see
:py:mod:`tandem.plugins`). The surrogate drivers share the pin-cell geometry of
:py:mod:`tandem.physics.pinCell`, so they map onto each other out of the box and are
used for demonstration and testing of the coupling.
"""
