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
The numerics shared by the coupled iteration: field mapping and transfer between the
two drivers, under-relaxation, convergence norms, and the boron criticality search.

None of these modules know about specific solvers. They operate on numpy arrays, the
:py:class:`tandem.interfaces` driver capabilities, and a
:py:class:`tandem.mpiComm.Communicator`.
"""
