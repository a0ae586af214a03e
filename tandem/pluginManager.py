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

"""Slightly customized version of the stock pluggy ``PluginManager``."""
import pluggy


class TandemPluginManager(pluggy.PluginManager):
    """
    PluginManager that counts registrations.

    Results derived from calling plugin hooks (the merged settings, the driver
    registry) are cached together with :py:attr:`counter`; a changed counter means the
    set of plugins changed and the cache is stale.
    """

    def __init__(self, *args, **kwargs):
        pluggy.PluginManager.__init__(self, *args, **kwargs)
        self._counter = 0

    @property
    def counter(self):
        return self._counter

    def register(self, *args, **kwargs):
        self._counter += 1
        return pluggy.PluginManager.register(self, *args, **kwargs)

    def unregister(self, *args, **kwargs):
        self._counter += 1
        return pluggy.PluginManager.unregister(self, *args, **kwargs)
