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

r"""
Boron criticality search.

The soluble boron concentration of the coolant is adjusted every Picard iteration so
that the eigenvalue converges to a target, usually 1. The concentration is found with
secant updates on the pairs of concentration and eigenvalue of successive iterations:

.. math::

    ppm_{n+1} = ppm_n - (k_n - k_{target}) \frac{ppm_n - ppm_{n-1}}{k_n - k_{n-1}}

The first update has only one pair, so it steps the concentration by a fixed amount in
the direction that moves k-eff toward the target. Concentrations are parts per million
on a number density basis.
"""
from tandem import runLog
from tandem.settings.fwSettings import couplingSettings
from tandem.utils.customExceptions import BoronSearchStalledError


class BoronDriver:
    """
    State of the boron criticality search.

    Parameters
    ----------
    targetKeff : float
        Eigenvalue to reach.
    epsilon : float
        The search is converged when k-eff is within this of the target.
    initialPpm : float
        Concentration before the first update.
    initialStep : float
        Size of the first update, in ppm.
    b10Abundance : float
        Atom fraction of B-10 in the boron. The default is the natural abundance.
    """

    def __init__(
        self,
        targetKeff=1.0,
        epsilon=1e-3,
        initialPpm=0.0,
        initialStep=100.0,
        b10Abundance=0.1982,
    ):
        self.targetKeff = targetKeff
        self.epsilon = epsilon
        self.initialStep = initialStep
        self.b10Abundance = b10Abundance
        self.ppm = initialPpm
        self.ppmPrev = initialPpm
        self.kEff = None
        self.fluidCells = []
        # k-eff observed at ppmPrev
        self._kEffAtPrev = None

    def __repr__(self):
        return "<{} {:.3f} ppm>".format(self.__class__.__name__, self.ppm)

    @classmethod
    def fromSettings(cls, cs):
        return cls(
            targetKeff=cs[couplingSettings.CONF_TARGET_KEFF],
            epsilon=cs[couplingSettings.CONF_BORON_EPSILON],
            initialPpm=cs[couplingSettings.CONF_BORON_INITIAL_PPM],
            initialStep=cs[couplingSettings.CONF_BORON_INITIAL_STEP],
            b10Abundance=cs[couplingSettings.CONF_B10_ABUNDANCE],
        )

    def setFluidCells(self, handles):
        """Set the handles of the cells that get the boron concentration."""
        self.fluidCells = list(handles)

    def solvePpm(self, firstPass, kEff, kEffPrev=None):
        """
        Propose the next boron concentration.

        Parameters
        ----------
        firstPass : bool
            Whether this is the first update of the search.
        kEff : float
            Eigenvalue obtained with the current concentration, :py:attr:`ppm`.
        kEffPrev : float
            Eigenvalue obtained with the previous concentration, :py:attr:`ppmPrev`.
            Ignored on the first pass.

        Returns
        -------
        float
            The new concentration, also stored as :py:attr:`ppm`.

        Raises
        ------
        BoronSearchStalledError
            If the eigenvalue did not change, so the secant has no slope.
        """
        self.kEff = kEff
        if firstPass:
            step = self.initialStep if kEff >= self.targetKeff else -self.initialStep
            newPpm = self.ppm + step
        else:
            if kEff == kEffPrev:
                raise BoronSearchStalledError(kEff, self.ppm, self.ppmPrev)
            newPpm = self.ppm - (kEff - self.targetKeff) * (self.ppm - self.ppmPrev) / (
                kEff - kEffPrev
            )

        if newPpm < 0.0:
            runLog.warning(
                "Boron search proposes a negative concentration of {:.3f} ppm; the "
                "target k-eff of {} may not be reachable with boron".format(
                    newPpm, self.targetKeff
                ),
                single=True,
                label="Negative boron concentration",
            )

        self.ppmPrev, self.ppm = self.ppm, newPpm
        self._kEffAtPrev = kEff
        return self.ppm

    def search(self, kEff):
        """
        Update the concentration from the eigenvalue of the latest neutronics solve.

        The first call steps the concentration. Later calls keep it once k-eff is
        within tolerance and make a secant update otherwise.
        """
        if self._kEffAtPrev is None:
            return self.solvePpm(True, kEff)
        if abs(kEff - self.targetKeff) <= self.epsilon:
            self.kEff = kEff
            return self.ppm
        return self.solvePpm(False, kEff, self._kEffAtPrev)

    def isConverged(self):
        """Whether the last k-eff seen is within tolerance of the target."""
        if self.kEff is None:
            return False
        return abs(self.kEff - self.targetKeff) <= self.epsilon

    def printBoron(self):
        runLog.info(
            "Boron search: k-eff {} (target {} +/- {}), {:.3f} ppm (previous "
            "{:.3f} ppm), {}".format(
                "n/a" if self.kEff is None else "{:.6f}".format(self.kEff),
                self.targetKeff,
                self.epsilon,
                self.ppm,
                self.ppmPrev,
                "converged" if self.isConverged() else "not converged",
            )
        )
