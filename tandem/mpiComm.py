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
A thin wrapper around an mpi4py communicator that the coupling code is handed explicitly.

The coupled driver, the field mapping and the drivers never look up ``MPI.COMM_WORLD``
themselves: they receive a :py:class:`Communicator`. This makes the sub-communicators of
the neutronics and heat/fluids drivers ordinary values, and lets the same code run in
serial (no mpi4py, or one process) where every collective degenerates to returning the
local contribution.

Notes
-----
Only the handful of collectives the coupling needs are exposed. All of them are blocking
and must be called by every process of the communicator in the same order.
"""
import numpy

from tandem import context

REDUCTIONS = ("sum", "max", "min")


class Communicator:
    """
    Collective operations over a group of processes.

    Parameters
    ----------
    comm : mpi4py.MPI.Comm, optional
        The wrapped communicator. ``None`` means a serial, single-process group.
    """

    def __init__(self, comm=None):
        self.comm = comm
        if comm is None:
            self._rank, self._size = 0, 1
        else:
            self._rank, self._size = comm.Get_rank(), comm.Get_size()

    def __repr__(self):
        return "<{} rank {} of {}>".format(self.__class__.__name__, self.rank, self.size)

    @classmethod
    def world(cls):
        """Wrap the world communicator discovered in :py:mod:`tandem.context`."""
        return cls(context.MPI_COMM)

    @property
    def rank(self):
        return self._rank

    @property
    def size(self):
        return self._size

    @property
    def isParallel(self):
        return self.size > 1

    def barrier(self):
        if self.isParallel:
            self.comm.Barrier()

    def bcast(self, obj, root=0):
        """Broadcast a picklable object from ``root``; every rank returns the root's object."""
        if not self.isParallel:
            return obj
        return self.comm.bcast(obj, root=root)

    def allgather(self, obj):
        """Return the list of every rank's ``obj``, in rank order."""
        if not self.isParallel:
            return [obj]
        return self.comm.allgather(obj)

    def allreduce(self, value, op="sum"):
        """
        Reduce a scalar or a numpy array element-wise over all ranks.

        Arrays must have the same shape and dtype on every rank; they are reduced with
        the buffer interface. The input is never modified.
        """
        if op not in REDUCTIONS:
            raise ValueError("Unknown reduction `{}`, expected one of {}".format(op, REDUCTIONS))

        if isinstance(value, numpy.ndarray):
            if not self.isParallel:
                return value.copy()
            from mpi4py import MPI

            sendBuf = numpy.ascontiguousarray(value)
            result = numpy.empty_like(sendBuf)
            self.comm.Allreduce(sendBuf, result, op=_mpiOp(MPI, op))
            return result

        if not self.isParallel:
            return value
        from mpi4py import MPI

        return self.comm.allreduce(value, op=_mpiOp(MPI, op))

    def split(self, color):
        """
        Create a sub-communicator of the ranks that passed the same ``color``.

        Ranks that pass ``None`` do not join any group and get ``None`` back. Ranks keep
        their relative order in the new group.
        """
        if not self.isParallel:
            return None if color is None else Communicator(None)

        from mpi4py import MPI

        newComm = self.comm.Split(MPI.UNDEFINED if color is None else color, self.rank)
        if newComm == MPI.COMM_NULL:
            return None
        return Communicator(newComm)

    def abort(self, errorcode=1):
        if self.comm is not None:
            self.comm.Abort(errorcode)

    def localRange(self, nItems):
        """
        The contiguous range of ``nItems`` this rank is responsible for.

        Each rank gets a similar number of items: with 12 items on 5 ranks, the first
        2 ranks get 3 items and the last 3 ranks get 2.
        """
        return divideWork(nItems, self.size, self.rank)


def divideWork(nItems, size, rank):
    """The range of items owned by ``rank`` when ``nItems`` are split over ``size`` ranks."""
    numLocal, deficit = divmod(nItems, size)
    if rank < deficit:
        numLocal += 1
        first = rank * numLocal
    else:
        first = rank * numLocal + deficit
    return range(first, first + numLocal)


def _mpiOp(MPI, op):
    return {"sum": MPI.SUM, "max": MPI.MAX, "min": MPI.MIN}[op]
