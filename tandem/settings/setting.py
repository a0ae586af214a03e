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
System to handle basic configuration settings.

Settings are instantiated in code, by the framework or through the ``defineSettings``
plugin hook. Rather than having a subclass for each setting type, the type is derived
from the type of the default and enforced with voluptuous schema validation. Compound
settings (the relaxation schemes, for instance) bring their own schema and
serialization by subclassing :py:class:`Setting`.
"""

import copy
from collections import namedtuple
from typing import List

import voluptuous as vol

from tandem import runLog


# Options imbue existing settings with new options. This allows a setting like
# `neutronicsDriver` to strictly enforce its options, even though the plugin that
# defines it does not know all possible drivers, which may be provided by other plugins.
Option = namedtuple("Option", ["option", "settingName"])
Default = namedtuple("Default", ["value", "settingName"])


class Setting:
    """
    A particular setting.

    Setting objects hold all associated information of a setting and should typically be
    accessed through the :py:class:`tandem.settings.caseSettings.Settings` methods rather
    than directly.

    Setting subclasses can implement custom ``_load`` and ``dump`` methods to serialize
    custom objects. When you set a setting's value, it is loaded into the custom object;
    ``dump`` returns the serializable form.
    """

    def __init__(
        self,
        name,
        default,
        description=None,
        label=None,
        options=None,
        schema=None,
        enforcedOptions=False,
        isEnvironment=False,
    ):
        """
        Initialize a Setting object.

        Parameters
        ----------
        name : str
            the setting's name
        default : object
            The setting's default value
        description : str, optional
            The description of the setting
        label : str, optional
            the shorter description used in reports
        options : list, optional
            Legal values
        schema : callable, optional
            A function that gets called with the value. It will either raise an
            exception, safely modify/update, or leave unchanged the value. If left
            blank, the value is coerced to the type of the default.
        enforcedOptions : bool, optional
            Require that the value be one of the valid options.
        isEnvironment : bool, optional
            Whether this should be considered an "environment" setting, which may be
            propagated through command-line flags.
        """
        self.name = name
        self.description = description or name
        self.label = label or name
        self.options = options
        self.enforcedOptions = enforcedOptions
        self.isEnvironment = isEnvironment

        self._default = default
        # retained so that addOptions() does not stomp on a custom schema
        self._customSchema = schema
        self._setSchema(schema)
        self._value = copy.deepcopy(default)

    @property
    def underlyingType(self):
        return type(self._default)

    def _setSchema(self, schema):
        """Apply or auto-derive schema of the value."""
        if schema:
            self.schema = schema
        elif self.options and self.enforcedOptions:
            self.schema = vol.Schema(vol.In(self.options))
        elif isinstance(self.default, list) and self.default:
            # coerce all values to the type of the first entry so mixed floats and ints work
            self.schema = vol.Schema([vol.Coerce(type(self.default[0]))])
        else:
            self.schema = vol.Schema(vol.Coerce(type(self.default)))

    @property
    def default(self):
        return self._default

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, val):
        self.setValue(val)

    def setValue(self, val):
        """
        Set value of a setting.

        This validates it against its value schema on the way in.
        """
        try:
            val = self.schema(val)
        except vol.Invalid:
            runLog.error(f"Error in setting {self.name}, val: {val}.")
            raise

        self._value = self._load(val)

    def addOptions(self, options: List[Option]):
        """Extend this Setting's options with extra options."""
        self.options.extend([o.option for o in options])
        self._setSchema(self._customSchema)

    def addOption(self, option: Option):
        """Extend this Setting's options with an extra option."""
        self.addOptions([option])

    def changeDefault(self, newDefault: Default):
        """Change the default of a setting, and also the current value."""
        self._default = newDefault.value
        self.value = newDefault.value

    def _load(self, inputVal):
        """
        Create setting value from input value.

        In some custom settings, this can return a custom object rather than just the
        input value.
        """
        return inputVal

    def dump(self):
        """Return a serializable version of this setting's value."""
        return self._value

    def __repr__(self):
        return "<{} {} value:{} default:{}>".format(
            self.__class__.__name__, self.name, self.value, self.default
        )

    def __copy__(self):
        """Shallow copy that keeps the schema, unlike pickling."""
        setting = self.__class__.__new__(self.__class__)
        setting.__dict__.update(self.__dict__)
        setting._value = copy.deepcopy(self._value)
        return setting

    def __getstate__(self):
        """
        Remove schema during pickling because it is often unpickleable.

        See Also
        --------
        tandem.settings.caseSettings.Settings.__setstate__ : regenerates the schema upon load
        """
        state = copy.deepcopy(self.__dict__)
        for trouble in ("schema", "_customSchema"):
            state.pop(trouble, None)
        return state

    def revertToDefault(self):
        """Revert a setting back to its default, skipping the already-validated schema."""
        self._value = copy.deepcopy(self.default)

    def isDefault(self):
        """Whether or not the setting equals its default value."""
        return self.value == self.default

    @property
    def offDefault(self):
        """Return True if the setting is not the default value for that setting."""
        return not self.isDefault()
