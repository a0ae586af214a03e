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
Transfer of fields between heat/fluids elements and neutronics cells.

Temperatures and densities go from elements to cells as volume-weighted averages over
the elements of each cell. A mask restricts the average to some elements (the fluid
ones); a cell with no contributing element anywhere keeps its previous value.

The heat source goes from cells to elements: each element takes the value of its cell.

All transfers use a :py:class:`~tandem.coupling.fieldMap.FieldMap`. Only
:py:func:`localCellsToGlobalCells` and :py:func:`elementsToCells` communicate.
"""
import numpy

from tandem.utils.customExceptions import DriverError


def _checkLength(name, values, expected):
    if len(values) != expected:
        raise DriverError(
            "Expected {} values of {}, got {}".format(expected, name, len(values))
        )


def elementsToLocalCells(fieldMap, elemValues, previous, mask=None):
    """
    Average element values over the local cells.

    Parameters
    ----------
    fieldMap : FieldMap
    elemValues : array-like
        A value per local element.
    previous : array-like
        A value per local cell, kept for cells without contributing elements.
    mask : array-like, optional
        1 for elements that contribute. All elements contribute if omitted.

    Returns
    -------
    values : numpy.ndarray
        The average of each local cell.
    weights : numpy.ndarray
        The contributing volume of each local cell.
    """
    elemValues = numpy.asarray(elemValues, dtype=float)
    _checkLength("element values", elemValues, fieldMap.nLocalElements)
    weights = fieldMap.localElemVolumes.copy()
    if mask is not None:
        _checkLength("element mask", mask, fieldMap.nLocalElements)
        weights *= numpy.asarray(mask, dtype=bool)

    cellWeights = numpy.zeros(fieldMap.nLocalCells)
    cellSums = numpy.zeros(fieldMap.nLocalCells)
    numpy.add.at(cellWeights, fieldMap.localElemLocalCell, weights)
    numpy.add.at(cellSums, fieldMap.localElemLocalCell, weights * elemValues)

    values = numpy.array(previous, dtype=float)
    _checkLength("previous cell values", values, fieldMap.nLocalCells)
    contributed = cellWeights > 0.0
    values[contributed] = cellSums[contributed] / cellWeights[contributed]
    return values, cellWeights


def localCellsToGlobalCells(comm, fieldMap, values, weights, previousGlobal):
    """
    Combine the local cell averages of every rank into global cell averages.

    Collective over ``comm``. A cell shared by several ranks gets the average weighted
    by the volume each rank contributed.

    Returns
    -------
    values : numpy.ndarray
        A value per global cell, the previous one where nothing contributed.
    contributed : numpy.ndarray
        True for the cells that got a new value.
    """
    n = fieldMap.nGlobalCells
    weights = numpy.asarray(weights, dtype=float)
    partial = numpy.zeros(2 * n)
    partial[fieldMap.localCellGlobalIndex] = numpy.asarray(values, dtype=float) * weights
    partial[n + fieldMap.localCellGlobalIndex] = weights
    total = comm.allreduce(partial, op="sum")
    sums, totalWeights = total[:n], total[n:]

    result = numpy.array(previousGlobal, dtype=float)
    _checkLength("previous global cell values", result, n)
    contributed = totalWeights > 0.0
    result[contributed] = sums[contributed] / totalWeights[contributed]
    return result, contributed


def elementsToCells(comm, fieldMap, elemValues, previousGlobal, mask=None):
    """
    Volume-average element values into every global cell. Collective over ``comm``.

    Ranks without elements pass empty arrays and still take part.
    """
    previousGlobal = numpy.asarray(previousGlobal, dtype=float)
    localValues, weights = elementsToLocalCells(
        fieldMap, elemValues, previousGlobal[fieldMap.localCellGlobalIndex], mask
    )
    return localCellsToGlobalCells(comm, fieldMap, localValues, weights, previousGlobal)


def cellsToElements(fieldMap, globalValues, previousElems=None, mask=None):
    """
    Give each local element the value of its cell.

    Parameters
    ----------
    globalValues : array-like
        A value per global cell.
    previousElems : array-like, optional
        Current element values, kept outside ``mask``. Required with a mask.
    mask : array-like, optional
        1 for the elements to update.
    """
    globalValues = numpy.asarray(globalValues, dtype=float)
    _checkLength("cell values", globalValues, fieldMap.nGlobalCells)
    values = globalValues[fieldMap.localElemGlobalIndex]
    if mask is None:
        return values
    if previousElems is None:
        raise ValueError("Previous element values are needed to transfer through a mask")
    mask = numpy.asarray(mask, dtype=bool)
    result = numpy.array(previousElems, dtype=float)
    result[mask] = values[mask]
    return result
