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
Convergence norms of the Picard iteration.

The norms measure the change of the temperature between two successive iterates. Each
rank only holds the cells it shares with its heat/fluids elements, so every norm is
computed from local partial terms that are reduced over the coupling communicator:

* ``L1``: mean absolute difference, from the summed absolute differences and counts.
* ``L2``: root-mean-square difference, from the summed squares and counts.
* ``LINF``: maximum absolute difference, from the local maxima.

An empty set of values has a norm of zero.
"""
import enum

import numpy


class Norm(enum.Enum):
    L1 = "l1"
    L2 = "l2"
    LINF = "linf"

    @classmethod
    def fromSetting(cls, value):
        """Accept a Norm, its name or its value, in any case."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ValueError(
            "Unknown convergence norm `{}`, expected one of {}".format(
                value, [m.name for m in cls]
            )
        )


def localNormTerms(current, previous, norm):
    """
    Return the partial terms of ``norm`` over the local values.

    Returns
    -------
    tuple
        ``(sum, count)`` for L1 and L2, ``(max, count)`` for LINF.
    """
    diff = numpy.abs(
        numpy.asarray(current, dtype=float) - numpy.asarray(previous, dtype=float)
    )
    count = float(diff.size)
    if norm == Norm.L1:
        return float(diff.sum()), count
    if norm == Norm.L2:
        return float(numpy.dot(diff, diff)), count
    return (float(diff.max()) if diff.size else 0.0), count


def computeNorm(comm, current, previous, norm):
    """
    Collective computation of ``norm`` of ``current - previous`` over all ranks of ``comm``.

    Every rank gets the same value.
    """
    norm = Norm.fromSetting(norm)
    value, count = localNormTerms(current, previous, norm)
    if norm == Norm.LINF:
        return comm.allreduce(value, op="max")

    total, count = comm.allreduce(numpy.array([value, count]), op="sum")
    if count == 0:
        return 0.0
    if norm == Norm.L1:
        return total / count
    return float(numpy.sqrt(total / count))


class ConvergenceChecker:
    """Compares a norm against the Picard tolerance."""

    def __init__(self, norm, epsilon):
        self.norm = Norm.fromSetting(norm)
        self.epsilon = float(epsilon)

    def __repr__(self):
        return "<{} {} < {}>".format(self.__class__.__name__, self.norm.name, self.epsilon)

    def isConverged(self, value):
        return value < self.epsilon

    def compute(self, comm, current, previous):
        return computeNorm(comm, current, previous, self.norm)
