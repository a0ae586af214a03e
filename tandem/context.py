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
Module containing global constants that reflect the executing context of TANDEM.

This is where the MPI world is discovered, the run mode (interactive or batch) is
detected, and scratch locations are chosen. Nothing in here depends on the rest of
the package so that it can be imported first.

Note that the coupling code itself never reaches for ``MPI_COMM`` directly; it is
handed a :py:class:`tandem.mpiComm.Communicator` built from it by the entry point.
"""

import datetime
import enum
import getpass
import os
import shutil
import sys
import time

# App name is used when reporting on and naming the files of a run. Applications built
# on top of TANDEM change it through ``tandem.configure()``.
APP_NAME = "tandem"


class Mode(enum.Enum):
    """
    Mode represents different run types possible in TANDEM.

    Mode is auto-detected from the terminal. Entry points take a ``--batch`` argument
    that can force Batch mode, which suppresses interactive prompts.
    """

    BATCH = 1
    INTERACTIVE = 2

    @classmethod
    def setMode(cls, mode):
        """Set the run mode of the current TANDEM case."""
        global CURRENT_MODE
        assert isinstance(mode, cls), "Invalid mode {}".format(mode)
        CURRENT_MODE = mode


ROOT = os.path.abspath(os.path.dirname(__file__))
USER = getpass.getuser()
START_TIME = time.ctime()

IS_WINDOWS = ("win" in sys.platform) and ("darwin" not in sys.platform)
isatty = sys.stdout.isatty() if IS_WINDOWS else sys.stdin.isatty()
CURRENT_MODE = Mode.INTERACTIVE if isatty else Mode.BATCH
Mode.setMode(CURRENT_MODE)

MPI_COMM = None
# MPI_RANK is the index of this process in the world communicator; 0 is the primary.
MPI_RANK = 0
# MPI_SIZE is the total number of processes.
MPI_SIZE = 1
LOCAL = "local"
MPI_NODENAME = LOCAL
MPI_NODENAMES = [LOCAL]

try:
    from mpi4py import MPI

    MPI_COMM = MPI.COMM_WORLD
    MPI_RANK = MPI_COMM.Get_rank()
    MPI_SIZE = MPI_COMM.Get_size()
    MPI_NODENAME = MPI.Get_processor_name()
    MPI_NODENAMES = MPI_COMM.allgather(MPI_NODENAME)
except ImportError:
    # stick with defaults
    pass

if IS_WINDOWS:
    APP_DATA = os.path.join(os.environ["APPDATA"], "tandem")
elif os.access("/tmp/", os.W_OK):
    APP_DATA = "/tmp/.tandem"
else:
    APP_DATA = os.path.expanduser("~/.tandem")

if MPI_NODENAMES.index(MPI_NODENAME) == MPI_RANK:
    if not os.path.isdir(APP_DATA):
        try:
            os.makedirs(APP_DATA)
            os.chmod(APP_DATA, 0o0777)
        except OSError:
            pass
    if not os.path.isdir(APP_DATA):
        raise OSError("Directory doesn't exist {0}".format(APP_DATA))

if MPI_COMM is not None:
    # Make sure app data exists before workers proceed.
    MPI_COMM.barrier()

MPI_DISTRIBUTABLE = MPI_SIZE > 1

_FAST_PATH = os.path.join(os.getcwd())
"""
A directory available for high-performance I/O.

.. warning:: This is not a constant and can change at runtime.
"""

_FAST_PATH_IS_TEMPORARY = False


def activateLocalFastPath() -> None:
    """
    Specify a rank-specific temp directory under ``APP_DATA`` to be the fast path.

    The directory is removed by :py:func:`cleanTempDirs` when the job ends.
    """
    global _FAST_PATH, _FAST_PATH_IS_TEMPORARY

    _FAST_PATH = os.path.join(
        APP_DATA,
        "{}{}-{}".format(
            MPI_RANK,
            os.environ.get("PYTEST_XDIST_WORKER", ""),
            datetime.datetime.now().strftime("%Y%m%d%H%M%S%f"),
        ),
    )
    _FAST_PATH_IS_TEMPORARY = True


def getFastPath() -> str:
    """Callable to get the current FAST_PATH, which can change between import and runtime."""
    return _FAST_PATH


def cleanTempDirs():
    """Remove the temporary fast path, if one was activated."""
    if _FAST_PATH_IS_TEMPORARY and os.path.exists(_FAST_PATH):
        try:
            shutil.rmtree(_FAST_PATH)
        except OSError as error:
            print(
                "Failed to delete temporary files in: {}\n    error: {}".format(
                    _FAST_PATH, error
                ),
                file=sys.stderr,
            )
