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
A communicator whose ranks are threads of the test process.

It lets the tests run the collective coupling code on several ranks without MPI. Every
collective is an all-gather through a shared slot list guarded by a barrier; objects
are deep-copied on the way, like a pickled MPI message, so ranks never share arrays.
"""
import copy
import functools
import threading

import numpy

from tandem import mpiComm

TIMEOUT = 30.0


class _Group:
    """State shared by the threads of one communicator."""

    def __init__(self, size, timeout=TIMEOUT):
        self.size = size
        self.timeout = timeout
        self.barrier = threading.Barrier(size, timeout=timeout)
        self.slots = [None] * size
        self.children = None


class ThreadCommunicator(mpiComm.Communicator):
    """One rank of a group of threads that exchange data in memory."""

    def __init__(self, group, rank):
        mpiComm.Communicator.__init__(self, None)
        self._group = group
        self._rank = rank
        self._size = group.size

    def barrier(self):
        self._group.barrier.wait()

    def allgather(self, obj):
        group = self._group
        group.slots[self.rank] = obj
        group.barrier.wait()
        result = copy.deepcopy(group.slots)
        group.barrier.wait()
        return result

    def bcast(self, obj, root=0):
        return self.allgather(obj if self.rank == root else None)[root]

    def allreduce(self, value, op="sum"):
        if op not in mpiComm.REDUCTIONS:
            raise ValueError("Unknown reduction `{}`".format(op))
        values = self.allgather(value)
        if isinstance(value, numpy.ndarray):
            ufunc = {"sum": numpy.add, "max": numpy.maximum, "min": numpy.minimum}[op]
            return functools.reduce(ufunc, values)
        return {"sum": sum, "max": max, "min": min}[op](values)

    def split(self, color):
        colors = self.allgather(color)
        group = self._group
        if self.rank == 0:
            group.children = {
                c: _Group(colors.count(c), group.timeout)
                for c in set(colors)
                if c is not None
            }
        group.barrier.wait()
        children = group.children
        group.barrier.wait()
        if color is None:
            return None
        members = [r for r, c in enumerate(colors) if c == color]
        return ThreadCommunicator(children[color], members.index(self.rank))

    def abort(self, errorcode=1):
        self._group.barrier.abort()


def runOnThreads(size, func, timeout=TIMEOUT):
    """
    Call ``func(comm)`` on ``size`` threads forming one communicator.

    Returns the results in rank order. If any rank raises, the barrier is broken so
    the other ranks stop waiting, and the first error that is not a broken barrier is
    raised again.
    """
    group = _Group(size, timeout)
    results = [None] * size
    errors = [None] * size

    def target(rank):
        try:
            results[rank] = func(ThreadCommunicator(group, rank))
        except Exception as ee:
            errors[rank] = ee
            group.barrier.abort()

    threads = [threading.Thread(target=target, args=(r,)) for r in range(size)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout * 4)

    raised = [ee for ee in errors if ee is not None]
    if raised:
        primary = [
            ee for ee in raised if not isinstance(ee, threading.BrokenBarrierError)
        ]
        raise (primary or raised)[0]
    return results
