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
Globally accessible exception definitions for better granularity on exception behavior
and exception handling behavior.

Every error raised during setup of a coupled run (bad process split, a position that
no neutronics cell claims, volumes that do not agree) reaches every rank with the same
data, so every rank raises the same exception and nothing is left hanging in a
collective.
"""
from inspect import stack, getframeinfo


class InputError(Exception):
    """An error found in a TANDEM input file."""

    def __init__(self, msg):
        self.msg = msg
        self.caller = getframeinfo(stack()[1][0])

    def __str__(self):
        # cython wraps the fake stack filename in <>
        callSiteIsFake = self.caller.filename.startswith(
            "<"
        ) and self.caller.filename.endswith(">")
        if callSiteIsFake:
            return self.msg
        return self.caller.filename + ":" + str(self.caller.lineno) + " - " + self.msg


# ---------------------------------------------------


class SettingException(Exception):
    """Standardize behavior of setting-family errors."""

    def __init__(self, msg):
        Exception.__init__(self, msg)


class InvalidSettingsStopProcess(SettingException):
    """Raised when a settings file contains invalid settings and the user aborts."""

    def __init__(self, reader):
        msg = "Input settings file {}".format(reader.inputPath)
        if reader.liveVersion != reader.inputVersion:
            msg += (
                '\n\twas made with version "{0}" which differs from the current version "{1}."'
                "".format(reader.inputVersion, reader.liveVersion)
            )
        if reader.invalidSettings:
            msg += "\n\tcontains the following {} invalid settings:\n\t\t{}".format(
                len(reader.invalidSettings), "\n\t\t".join(reader.invalidSettings)
            )
        SettingException.__init__(self, msg)


class NonexistentSetting(SettingException):
    """Raised when a non existent setting is asked for."""

    def __init__(self, setting):
        SettingException.__init__(
            self, "Attempted to locate non-existent setting {}.".format(setting)
        )


class InvalidSettingsFileError(SettingException):
    """Not a valid settings file."""

    def __init__(self, path, customMsgEnd=""):
        msg = "Attempted to load an invalid settings file from: {}. ".format(path)
        msg += customMsgEnd
        SettingException.__init__(self, msg)


class NonexistentSettingsFileError(SettingException):
    """Settings file does not exist."""

    def __init__(self, path):
        SettingException.__init__(
            self, "Attempted to load settings file, cannot locate file: {}".format(path)
        )


# ---------------------------------------------------


class CouplingError(Exception):
    """Base class of failures in the coupled iteration."""


class MappingError(CouplingError):
    """The heat/fluids elements could not be mapped onto neutronics cells."""


class VolumeConservationError(MappingError):
    """Mapped element volumes disagree with the neutronics cell volumes."""

    def __init__(self, label, mappedVolume, cellVolume, tolerance):
        self.label = label
        self.mappedVolume = mappedVolume
        self.cellVolume = cellVolume
        self.tolerance = tolerance
        MappingError.__init__(
            self,
            "Volume of cell {} is {:.6e} cm^3 in the neutronics model but the heat/fluids "
            "elements mapped into it sum to {:.6e} cm^3 (relative tolerance {:.1e})".format(
                label, cellVolume, mappedVolume, tolerance
            ),
        )


class BoronSearchStalledError(CouplingError):
    """The secant update of the boron search has a zero denominator."""

    def __init__(self, kEff, ppm, ppmPrev):
        CouplingError.__init__(
            self,
            "Boron search cannot continue: k-eff did not change ({:.6f}) between "
            "{:.3f} ppm and {:.3f} ppm".format(kEff, ppmPrev, ppm),
        )


class DriverError(CouplingError):
    """A physics driver failed to initialize, solve, or exchange a field."""
