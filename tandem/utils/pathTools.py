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
Functions relating to directories, files and path manipulations.
"""
import os
import shutil
from time import sleep

from tandem import context, runLog


def absPath(*pathParts):
    """Convert a list of path components to an absolute path."""
    return os.path.abspath(os.path.join(*pathParts))


def cleanPath(path, tries=3):
    """
    Recursively delete a path, retrying when a shared file system is slow to release it.

    Only paths inside ``context.APP_DATA`` or the current working directory may be
    removed.

    Returns
    -------
    bool
        Whether the path is gone.
    """
    path = absPath(path)
    if not (path.startswith(context.APP_DATA) or path.startswith(os.getcwd())):
        raise ValueError("Refusing to delete {}, it is not a temporary path".format(path))

    for _ in range(tries):
        if not os.path.exists(path):
            return True
        try:
            if os.path.isdir(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as ee:
            runLog.extra("Failed to delete {}: {}".format(path, ee))
            sleep(0.5)

    return not os.path.exists(path)


def statePointName(prefix, timestep, iteration, ext="h5"):
    """Name of the state-point file a driver writes for one coupled iteration."""
    return "{}_t{}_i{}.{}".format(prefix, timestep, iteration, ext)
