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
Operators schedule the physics drivers of a coupled run.

The :py:class:`~tandem.operators.coupledDriver.CoupledDriver` owns one neutronics and
one heat/fluids driver, maps their discretizations onto each other, and iterates
between them within each timestep until the exchanged fields stop changing.

See Also
--------
tandem.interfaces : The driver interfaces the operator schedules
tandem.coupling : Mapping, transfer, relaxation and convergence of the exchanged fields
"""
