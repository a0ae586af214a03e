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

import os
import pathlib
import random
import shutil
import string

from tandem import context
from tandem import runLog
from tandem.utils import pathTools


def _changeDirectory(destination):
    if os.path.exists(destination):
        os.chdir(destination)
    else:
        raise IOError(
            "Cannot change directory to non-existent location: {}".format(destination)
        )


class DirectoryChanger:
    """
    Utility to change directory.

    Use with 'with' statements to execute code in a different dir, guaranteeing a clean
    return to the original directory

    >>> with DirectoryChanger('runs/case1'):
    ...     pass

    Parameters
    ----------
    destination : str
        Path of directory to change into
    dumpOnException : bool, optional
        Copy the whole destination back next to the initial directory if an exception
        is raised within the context manager.
    """

    def __init__(self, destination, dumpOnException=True):
        self.initial = pathTools.absPath(os.getcwd())
        self.destination = None
        if destination is not None:
            self.destination = pathTools.absPath(destination)
        self._dumpOnException = dumpOnException

    def __enter__(self):
        runLog.debug("Changing directory to {}".format(self.destination))
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        runLog.debug("Returning to directory {}".format(self.initial))
        if exc_type is not None and self._dumpOnException and self.destination:
            runLog.info(
                "An exception was raised within a DirectoryChanger. "
                "Retrieving entire folder for debugging."
            )
            self._retrieveEntireFolder()
        self.close()

    def __repr__(self):
        return "<{} {} to {}>".format(
            self.__class__.__name__, self.initial, self.destination
        )

    def open(self):
        if self.destination:
            _changeDirectory(self.destination)

    def close(self):
        if self.initial != os.getcwd():
            _changeDirectory(self.initial)

    def _retrieveEntireFolder(self):
        """Copy all files of the destination to a ``dump-`` folder in the initial directory."""
        folderName = os.path.split(self.destination)[1]
        recoveryPath = os.path.join(self.initial, f"dump-{folderName}")
        shutil.copytree(self.destination, recoveryPath, dirs_exist_ok=True)


class TemporaryDirectoryChanger(DirectoryChanger):
    """
    Create a temporary directory and change into it. It is deleted on exit.

    Notes
    -----
    If an exception is raised inside the :code:`with` statement, the contents are first
    copied back next to the original directory.
    """

    def __init__(self, root=None, dumpOnException=True):
        DirectoryChanger.__init__(self, root, dumpOnException)

        if root is None:
            root = context.getFastPath()
            # TANDEM temp dirs live in context.APP_DATA; anything else is not safe to delete
            if pathlib.Path(context.APP_DATA) not in pathlib.Path(root).parents:
                raise ValueError(
                    "Temporary directory not in a safe location for deletion."
                )

        os.makedirs(root, exist_ok=True)

        self.initial = os.path.abspath(os.getcwd())
        self.destination = TemporaryDirectoryChanger.GetRandomDirectory(root)
        while os.path.exists(self.destination):
            self.destination = TemporaryDirectoryChanger.GetRandomDirectory(root)

    @classmethod
    def GetRandomDirectory(cls, root):
        return os.path.join(
            root,
            "temp-"
            + "".join(
                random.choice(string.ascii_letters + string.digits) for _ in range(10)
            ),
        )

    def __enter__(self):
        os.mkdir(self.destination)
        return DirectoryChanger.__enter__(self)

    def __exit__(self, exc_type, exc_value, traceback):
        DirectoryChanger.__exit__(self, exc_type, exc_value, traceback)
        pathTools.cleanPath(self.destination)
