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
Under-relaxation of the fields exchanged in a Picard iteration.

Given the raw field :math:`x_{new}` produced by a solve and the previous relaxed iterate
:math:`x_{old}`, the relaxed field is

.. math::

    x = \alpha x_{new} + (1 - \alpha) x_{old}

The factor is fixed (:py:class:`Constant`) or decays with the Picard iteration index
:math:`n` as :math:`\alpha_n = 1/(n+1)` (:py:class:`RobbinsMonro`). A scheme is chosen
per field through the ``alpha``, ``alphaTemperature`` and ``alphaDensity`` settings,
where a number selects a constant factor and ``robbins-monro`` the decaying one.
"""
import numpy

ROBBINS_MONRO = "robbins-monro"


class Relaxation:
    """Base class of the relaxation schemes."""

    def factor(self, iteration):
        """Return the relaxation factor for a 0-based Picard iteration index."""
        raise NotImplementedError()

    def dump(self):
        """Return the settings-file form of this scheme."""
        raise NotImplementedError()

    def apply(self, new, old, iteration):
        """
        Relax ``new`` against ``old``.

        A factor of exactly one returns a copy of ``new`` bit-for-bit, without
        arithmetic on ``old``.
        """
        alpha = self.factor(iteration)
        new = numpy.array(new, dtype=float)
        if alpha == 1.0:
            return new
        return alpha * new + (1.0 - alpha) * numpy.asarray(old, dtype=float)

    def __eq__(self, other):
        return isinstance(other, Relaxation) and self.dump() == other.dump()

    def __hash__(self):
        return hash(self.dump())


class Constant(Relaxation):
    """A fixed relaxation factor in (0, 1]."""

    def __init__(self, alpha=1.0):
        alpha = float(alpha)
        if not 0.0 < alpha <= 1.0:
            raise ValueError(
                "Relaxation factor must be in (0, 1], got {}".format(alpha)
            )
        self.alpha = alpha

    def __repr__(self):
        return "<Constant relaxation {}>".format(self.alpha)

    def factor(self, iteration):
        return self.alpha

    def dump(self):
        return self.alpha


class RobbinsMonro(Relaxation):
    """A factor of 1/(n+1) on Picard iteration n, which averages all iterates so far."""

    def __repr__(self):
        return "<Robbins-Monro relaxation>"

    def factor(self, iteration):
        return 1.0 / (iteration + 1)

    def dump(self):
        return ROBBINS_MONRO


def fromSetting(value):
    """
    Build a relaxation scheme from a settings value.

    ``None`` stays ``None`` so a field-specific setting can inherit a general one.
    """
    if value is None or isinstance(value, Relaxation):
        return value
    if isinstance(value, str) and value.strip().lower() == ROBBINS_MONRO:
        return RobbinsMonro()
    return Constant(value)


def relax(new, old, scheme, iteration):
    """Relax ``new`` against ``old`` with ``scheme`` on Picard iteration ``iteration``."""
    return scheme.apply(new, old, iteration)
