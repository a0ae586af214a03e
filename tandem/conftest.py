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
Per-directory pytest plugin configuration used only during development/testing.

Tests must be invoked via pytest for this to have any affect, for example::

    $ pytest -n 4 tandem

"""
import os

from tandem import apps, configure, context


def pytest_sessionstart(session):
    print("Initializing generic tandem application")
    configure(apps.App())
    bootstrapTandemTestEnv()


def bootstrapTandemTestEnv():
    """
    Perform tandem config appropriate for running unit tests.

    .. tip:: This can be imported and run from other tandem applications
        for test support.
    """
    context.Mode.setMode(context.Mode.BATCH)

    # tests that write files do it in temporary directories under a test-specific
    # FAST_PATH, deleted by the atexit hook
    context.activateLocalFastPath()
    if not os.path.exists(context.getFastPath()):
        os.makedirs(context.getFastPath())
