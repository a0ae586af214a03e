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
Geometry of a single square pin cell, shared by the surrogate drivers.

The pin cell is a square of side ``pinPitch`` centered on the z axis, from ``z = 0``
to ``z = pinHeight``. A solid rod (fuel and cladding, homogenized) of radius
``rodRadius`` sits in the middle and coolant fills the rest. Both regions are cut into
the same number of equal axial slices::

          +-----------+  z = pinHeight
          |   |   |   |
          |...|...|...|
          |   |rod|   |  coolant around the rod
          +-----------+  z = 0

The neutronics surrogate slices coarsely (zones) and the heat/fluids surrogate finely
(levels). The volumes of the two agree as long as the number of levels is a multiple
of the number of zones.
"""
import math

import voluptuous as vol

from tandem.settings import setting

CONF_PIN_PITCH = "pinPitch"
CONF_ROD_RADIUS = "rodRadius"
CONF_PIN_HEIGHT = "pinHeight"
CONF_FUEL_DENSITY = "fuelDensity"

ROD = 0
COOLANT = 1


def defineSettings():
    return [
        setting.Setting(
            CONF_PIN_PITCH,
            default=1.26,
            label="Pin Pitch (cm)",
            description="Side of the square pin cell.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_ROD_RADIUS,
            default=0.475,
            label="Rod Radius (cm)",
            description="Outer radius of the solid rod, cladding included.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_PIN_HEIGHT,
            default=100.0,
            label="Pin Height (cm)",
            description="Active height of the pin.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
        setting.Setting(
            CONF_FUEL_DENSITY,
            default=10.4,
            label="Rod Density (g/cc)",
            description="Density of the solid rod, which does not change.",
            schema=vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        ),
    ]


class PinCell:
    """
    A pin cell cut into ``nAxial`` slices.

    Regions are numbered ``2 * slice + ROD`` and ``2 * slice + COOLANT``.
    """

    def __init__(self, pitch, rodRadius, height, nAxial):
        if not 2.0 * rodRadius < pitch:
            raise ValueError(
                "A rod of radius {} cm does not fit in a pitch of {} cm".format(
                    rodRadius, pitch
                )
            )
        self.pitch = pitch
        self.rodRadius = rodRadius
        self.height = height
        self.nAxial = nAxial
        self.dz = height / nAxial

    def __repr__(self):
        return "<{} pitch {} cm, rod radius {} cm, {} x {} cm>".format(
            self.__class__.__name__, self.pitch, self.rodRadius, self.nAxial, self.dz
        )

    @classmethod
    def fromSettings(cls, cs, nAxial):
        return cls(
            cs[CONF_PIN_PITCH], cs[CONF_ROD_RADIUS], cs[CONF_PIN_HEIGHT], nAxial
        )

    @property
    def nRegions(self):
        return 2 * self.nAxial

    @property
    def rodArea(self):
        return math.pi * self.rodRadius ** 2

    @property
    def coolantArea(self):
        return self.pitch ** 2 - self.rodArea

    def sliceCenter(self, index):
        return (index + 0.5) * self.dz

    def regionVolume(self, region):
        kind = region % 2
        return (self.rodArea if kind == ROD else self.coolantArea) * self.dz

    def isRod(self, region):
        return region % 2 == ROD

    def regionCentroid(self, region):
        """A point inside the region. The coolant point sits halfway out from the rod."""
        index, kind = divmod(region, 2)
        x = 0.0 if kind == ROD else 0.5 * (self.rodRadius + 0.5 * self.pitch)
        return (x, 0.0, self.sliceCenter(index))

    def findRegion(self, x, y, z):
        """Return the region holding a point, or None outside the pin cell."""
        half = 0.5 * self.pitch
        if abs(x) > half or abs(y) > half or z < 0.0 or z > self.height:
            return None
        index = min(int(z / self.dz), self.nAxial - 1)
        kind = ROD if math.hypot(x, y) < self.rodRadius else COOLANT
        return 2 * index + kind
