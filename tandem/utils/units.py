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
"""The units module contains unit names and conversion constants used by the drivers."""

# Units (density)
G_PER_CM3 = "g/cm3"

# Unit conversions
JOULE_PER_EV = 1.602176634e-19
PPM_TO_FRACTION = 1.0e-6
