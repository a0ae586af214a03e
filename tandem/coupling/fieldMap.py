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
Mapping between heat/fluids elements and neutronics cells.

The heat/fluids solver discretizes the problem into elements distributed over its
ranks; the neutronics solver into cells. Every element lies in exactly one cell, found
by looking up the element centroid in the neutronics geometry. A cell usually holds
many elements, possibly spread over several ranks.

The mapping is built once, collectively, by :py:meth:`FieldMap.build`:

1. Every heat/fluids rank contributes the centroids, volumes and fluid flags of its
   local elements. These are all-gathered over the coupling communicator, so the global
   element order is rank order, then local order.
2. The neutronics ranks locate all gathered centroids.
3. The neutronics root broadcasts the cell handles to every rank.

Each rank then derives the same global tables, and the local ones for its own
elements, with no further communication. Ranks without heat/fluids elements get empty
local tables.

Local cells are the cells that hold at least one local element. They are numbered in
ascending handle order, the iteration order of :py:attr:`FieldMap.globalCellToLocalElems`,
and every per-local-cell array follows that order.
"""
import collections

import numpy

from tandem import runLog
from tandem.utils.customExceptions import MappingError, VolumeConservationError


class FieldMap:
    """
    Element to cell mapping tables of one rank.

    Global arrays (``globalCells``, ``globalCellVolumes``, ``cellFluidMask``) are the
    same on every rank and ordered by ascending cell handle. Local arrays cover the
    elements of this rank and the cells they fall in.
    """

    def __init__(self):
        self.globalCells = numpy.array([], dtype=int)
        self.globalCellIndex = {}
        self.globalCellVolumes = numpy.array([])
        self.cellFluidMask = numpy.array([], dtype=int)

        self.localElemToGlobalCell = numpy.array([], dtype=int)
        self.localElemGlobalIndex = numpy.array([], dtype=int)
        self.localElemLocalCell = numpy.array([], dtype=int)
        self.localElemVolumes = numpy.array([])
        self.localElemFluidMask = numpy.array([], dtype=int)

        self.globalCellToLocalElems = collections.OrderedDict()
        self.localCellToGlobalCell = numpy.array([], dtype=int)
        self.globalCellToLocalCell = {}
        self.localCellGlobalIndex = numpy.array([], dtype=int)
        self.localCellVolumes = numpy.array([])
        self.localCellFluidMask = numpy.array([], dtype=int)

    def __repr__(self):
        return "<{} {} local elements in {} of {} cells>".format(
            self.__class__.__name__,
            self.nLocalElements,
            self.nLocalCells,
            self.nGlobalCells,
        )

    @property
    def nLocalElements(self):
        return len(self.localElemToGlobalCell)

    @property
    def nLocalCells(self):
        return len(self.localCellToGlobalCell)

    @property
    def nGlobalCells(self):
        return len(self.globalCells)

    @classmethod
    def build(cls, comm, neutronics, heat, neutronicsRoot):
        """
        Collectively build the mapping over ``comm``.

        Parameters
        ----------
        comm : tandem.mpiComm.Communicator
            The coupling communicator, holding every rank of both drivers.
        neutronics : tandem.interfaces.NeutronicsDriver
            The neutronics driver of this rank, active or not.
        heat : tandem.interfaces.HeatFluidsDriver
            The heat/fluids driver of this rank, active or not.
        neutronicsRoot : int
            Rank in ``comm`` of the root of the neutronics communicator.
        """
        if heat.active():
            local = (
                numpy.asarray(heat.centroids(), dtype=float).reshape(-1, 3),
                numpy.asarray(heat.volumes(), dtype=float),
                numpy.asarray(heat.fluidMask(), dtype=int),
            )
        else:
            local = (numpy.empty((0, 3)), numpy.empty(0), numpy.empty(0, dtype=int))

        gathered = comm.allgather(local)
        positions = numpy.concatenate([centroids for centroids, _v, _f in gathered])
        runLog.extra(
            "Locating {} heat/fluids elements in the neutronics geometry".format(
                len(positions)
            )
        )

        handles = None
        if neutronics.active():
            handles = [None if h is None else int(h) for h in neutronics.find(positions)]
        handles = comm.bcast(handles, root=neutronicsRoot)
        return cls.fromGathered(gathered, handles, comm.rank)

    @classmethod
    def fromGathered(cls, gathered, handles, rank):
        """
        Build the mapping of ``rank`` from the gathered element data and cell handles.

        Parameters
        ----------
        gathered : list of tuple
            ``(centroids, volumes, fluidMask)`` of the elements of every rank, in rank
            order.
        handles : list
            Cell handle of every gathered element, None where no cell was found.
        rank : int
            The rank to build local tables for.
        """
        centroids = numpy.concatenate(
            [numpy.asarray(c, dtype=float).reshape(-1, 3) for c, _v, _f in gathered]
        )
        volumes = numpy.concatenate([numpy.asarray(v, dtype=float) for _c, v, _f in gathered])
        fluid = numpy.concatenate([numpy.asarray(f, dtype=int) for _c, _v, f in gathered])

        if handles is None or len(handles) != len(volumes):
            raise MappingError(
                "Expected a cell for each of the {} heat/fluids elements, got {}".format(
                    len(volumes), None if handles is None else len(handles)
                )
            )
        for elem, (handle, volume) in enumerate(zip(handles, volumes)):
            if handle is None:
                raise MappingError(
                    "Heat/fluids element {} at {} is not in any neutronics cell".format(
                        elem, centroids[elem]
                    )
                )
            if not volume > 0.0:
                raise MappingError(
                    "Heat/fluids element {} at {} has a non-positive volume {}".format(
                        elem, centroids[elem], volume
                    )
                )

        counts = [len(v) for _c, v, _f in gathered]
        offset = sum(counts[:rank])
        localSlice = slice(offset, offset + counts[rank])

        fieldMap = cls()
        elemCells = numpy.array(handles, dtype=int)
        fieldMap.globalCells = numpy.unique(elemCells)
        fieldMap.globalCellIndex = {
            int(handle): i for i, handle in enumerate(fieldMap.globalCells)
        }
        elemGlobalIndex = numpy.searchsorted(fieldMap.globalCells, elemCells)
        nGlobal = len(fieldMap.globalCells)
        fieldMap.globalCellVolumes = numpy.bincount(
            elemGlobalIndex, weights=volumes, minlength=nGlobal
        )
        fieldMap.cellFluidMask = (
            numpy.bincount(elemGlobalIndex, weights=fluid, minlength=nGlobal) > 0
        ).astype(int)

        fieldMap.localElemToGlobalCell = elemCells[localSlice]
        fieldMap.localElemGlobalIndex = elemGlobalIndex[localSlice]
        fieldMap.localElemVolumes = volumes[localSlice]
        fieldMap.localElemFluidMask = fluid[localSlice]

        cellToElems = {}
        for elem, handle in enumerate(fieldMap.localElemToGlobalCell):
            cellToElems.setdefault(int(handle), []).append(elem)
        fieldMap.globalCellToLocalElems = collections.OrderedDict(
            (handle, cellToElems[handle]) for handle in sorted(cellToElems)
        )

        fieldMap.localCellToGlobalCell = numpy.array(
            list(fieldMap.globalCellToLocalElems), dtype=int
        )
        fieldMap.globalCellToLocalCell = {
            handle: i for i, handle in enumerate(fieldMap.globalCellToLocalElems)
        }
        fieldMap.localCellGlobalIndex = numpy.searchsorted(
            fieldMap.globalCells, fieldMap.localCellToGlobalCell
        )
        fieldMap.localElemLocalCell = numpy.searchsorted(
            fieldMap.localCellToGlobalCell, fieldMap.localElemToGlobalCell
        )
        fieldMap.localCellVolumes = numpy.bincount(
            fieldMap.localElemLocalCell,
            weights=fieldMap.localElemVolumes,
            minlength=fieldMap.nLocalCells,
        )
        fieldMap.localCellFluidMask = fieldMap.cellFluidMask[fieldMap.localCellGlobalIndex]
        return fieldMap

    def checkVolumes(self, transportVolumes, relTol, labels=None):
        """
        Check that the elements mapped into each cell add up to the cell volume.

        Every mismatch is logged before the first one is raised, so one run shows all
        of them.

        Parameters
        ----------
        transportVolumes : array-like
            Neutronics volume of each cell, ordered like :py:attr:`globalCells`.
        relTol : float
            Allowed relative difference.
        labels : list of str, optional
            Names of the cells for the messages, ordered like :py:attr:`globalCells`.

        Raises
        ------
        MappingError
            If a cell has no volume in the neutronics model.
        VolumeConservationError
            If any mapped volume differs from the cell volume by more than ``relTol``.
        """
        transportVolumes = numpy.asarray(transportVolumes, dtype=float)
        if len(transportVolumes) != self.nGlobalCells:
            raise MappingError(
                "Got {} neutronics volumes for {} mapped cells".format(
                    len(transportVolumes), self.nGlobalCells
                )
            )
        if labels is None:
            labels = [str(handle) for handle in self.globalCells]

        mismatches = []
        for label, mapped, cellVolume in zip(
            labels, self.globalCellVolumes, transportVolumes
        ):
            if not cellVolume > 0.0:
                raise MappingError(
                    "Cell {} has a non-positive volume {} in the neutronics model".format(
                        label, cellVolume
                    )
                )
            if abs(mapped - cellVolume) > relTol * cellVolume:
                mismatches.append((label, mapped, cellVolume))

        for label, mapped, cellVolume in mismatches:
            runLog.error(
                "Cell {}: mapped volume {:.6e} cm^3, neutronics volume {:.6e} cm^3".format(
                    label, mapped, cellVolume
                )
            )
        if mismatches:
            label, mapped, cellVolume = mismatches[0]
            raise VolumeConservationError(label, mapped, cellVolume, relTol)

    def fluidCells(self):
        """Handles of the cells holding at least one fluid element."""
        return [int(h) for h in self.globalCells[self.cellFluidMask.astype(bool)]]
