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

"""Unit tests for Settings and the Setting objects they hold."""
import copy
import unittest

import voluptuous as vol

from tandem import getApp
from tandem import plugins
from tandem import settings
from tandem.coupling import relaxation
from tandem.settings import caseSettings
from tandem.settings import setting
from tandem.settings.fwSettings import couplingSettings
from tandem.utils.customExceptions import NonexistentSetting


class DummyPlugin1(plugins.TandemPlugin):
    @staticmethod
    @plugins.HOOKIMPL
    def defineSettings():
        return [
            setting.Setting(
                "extendableOption",
                default="DEFAULT",
                label="Neutronics Kernel",
                description="The neutronics / depletion solver for global flux solve.",
                options=["DEFAULT"],
                enforcedOptions=True,
            )
        ]


class DummyPlugin2(plugins.TandemPlugin):
    @staticmethod
    @plugins.HOOKIMPL
    def defineSettings():
        return [
            setting.Option("PLUGIN", "extendableOption"),
            setting.Default("PLUGIN", "extendableOption"),
        ]


class TestCaseSettings(unittest.TestCase):
    def setUp(self):
        self.cs = caseSettings.Settings()

    def test_defaults(self):
        self.assertEqual(self.cs["nTimesteps"], 1)
        self.assertEqual(self.cs["neutronicsDriver"], "surrogate")
        self.assertEqual(self.cs["heatFluidsDriver"], "surrogate")
        self.assertTrue(self.cs["fluidOnlyTemperature"])
        self.assertEqual(self.cs["alpha"], relaxation.Constant(1.0))
        self.assertIsNone(self.cs["alphaTemperature"])
        self.assertEqual(self.cs.caseTitle, caseSettings.Settings.defaultCaseTitle)

    def test_modified(self):
        cs2 = self.cs.modified(
            caseTitle="hotChannel",
            newSettings={"power": 1000.0, "maxPicardIter": "7"},
        )
        self.assertEqual(cs2["power"], 1000.0)
        self.assertEqual(cs2["maxPicardIter"], 7)
        self.assertEqual(cs2.caseTitle, "hotChannel")

        # the original is untouched
        self.assertEqual(self.cs["power"], 6.5e4)
        self.assertEqual(self.cs["maxPicardIter"], 5)

        with self.assertRaises(NonexistentSetting):
            self.cs.modified(newSettings={"fakeTimesteps": 3})

    def test_modifiedWithSettingObject(self):
        newSetting = setting.Setting("power", default=12.0)
        cs2 = self.cs.modified(newSettings={"power": newSetting})
        self.assertEqual(cs2["power"], 12.0)
        self.assertEqual(cs2.getSetting("power").default, 12.0)

        cs2["power"] = 20.0
        self.assertEqual(cs2["power"], 20.0)
        self.assertEqual(newSetting.value, 12.0)

    def test_unregisteredSettingSurvivesDuplicate(self):
        cs2 = self.cs.modified(
            newSettings={"extraSetting": setting.Setting("extraSetting", default=3)}
        )
        cs3 = cs2.duplicate()
        cs3["extraSetting"] = "4"
        self.assertEqual(cs3["extraSetting"], 4)
        self.assertEqual(cs2["extraSetting"], 3)
        with self.assertRaises(vol.Invalid):
            cs3["extraSetting"] = "four"

    def test_duplicateIsIndependent(self):
        cs2 = self.cs.duplicate()
        cs2["nTimesteps"] = 4
        self.assertEqual(cs2["nTimesteps"], 4)
        self.assertEqual(self.cs["nTimesteps"], 1)

        # the schema survives the copy
        with self.assertRaises(vol.Invalid):
            cs2["nTimesteps"] = 0

        cs3 = copy.deepcopy(self.cs)
        cs3["alpha"] = 0.25
        self.assertEqual(cs3["alpha"], relaxation.Constant(0.25))
        self.assertEqual(self.cs["alpha"], relaxation.Constant(1.0))

    def test_nonexistentSetting(self):
        with self.assertRaises(NonexistentSetting):
            self.cs["idontexist"]
        with self.assertRaises(NonexistentSetting):
            self.cs["idontexist"] = 1.0
        with self.assertRaises(NonexistentSetting):
            self.cs.getSetting("idontexist")

        default = setting.Setting("idontexist", default=2)
        self.assertIs(self.cs.getSetting("idontexist", default), default)

    def test_getSettingReturnsCopy(self):
        powerSetting = self.cs.getSetting("power")
        powerSetting.value = 5.0
        self.assertEqual(self.cs["power"], 6.5e4)
        self.assertEqual(powerSetting.value, 5.0)
        with self.assertRaises(vol.Invalid):
            powerSetting.value = -1.0

        alpha = self.cs.getSetting("alpha")
        alpha.value = "robbins-monro"
        self.assertIsInstance(alpha.value, relaxation.RobbinsMonro)
        self.assertEqual(self.cs["alpha"], relaxation.Constant(1.0))

    def test_coercion(self):
        self.cs["convergenceNorm"] = "l2"
        self.assertEqual(self.cs["convergenceNorm"], "L2")
        self.cs["boronInitialPpm"] = 10
        self.assertIsInstance(self.cs["boronInitialPpm"], float)

        with self.assertRaises(vol.Invalid):
            self.cs["convergenceNorm"] = "L3"
        with self.assertRaises(vol.Invalid):
            self.cs["power"] = -1.0
        with self.assertRaises(vol.Invalid):
            self.cs["b10Abundance"] = 1.5
        with self.assertRaises(vol.Invalid):
            self.cs["nNeutronicsProcs"] = -2

    def test_initialConditionOptions(self):
        self.cs[couplingSettings.CONF_TEMPERATURE_IC] = couplingSettings.IC_HEAT
        self.assertEqual(self.cs["temperatureIC"], "heat")
        with self.assertRaises(vol.Invalid):
            self.cs[couplingSettings.CONF_DENSITY_IC] = "average"

    def test_driverOptionsAreEnforced(self):
        self.assertIn("openmc", self.cs.getSetting("neutronicsDriver").options)
        self.cs["neutronicsDriver"] = "openmc"
        self.assertEqual(self.cs["neutronicsDriver"], "openmc")
        with self.assertRaises(vol.Invalid):
            self.cs["neutronicsDriver"] = "mcnp"
        with self.assertRaises(vol.Invalid):
            self.cs["heatFluidsDriver"] = "openmc"

    def test_revertToDefaults(self):
        self.cs["power"] = 10.0
        self.cs["alpha"] = "robbins-monro"
        self.cs.revertToDefaults()
        self.assertEqual(self.cs["power"], 6.5e4)
        self.assertEqual(self.cs["alpha"], relaxation.Constant(1.0))

    def test_repr(self):
        self.cs["power"] = 10.0
        self.assertIn("altered:1", repr(self.cs))
        self.assertIn("name:tandem", repr(self.cs))

    def test_environmentSettings(self):
        env = self.cs.environmentSettings
        self.assertIn("verbosity", env)
        self.assertIn("branchVerbosity", env)
        self.assertNotIn("power", env)

    def test_failOnLoad(self):
        cs = self.cs.duplicate()
        cs.failOnLoad()
        with self.assertRaises(RuntimeError):
            cs.loadFromString("settings:\n  power: 10.0\n")

        # duplicates are independent of the command line
        cs2 = cs.duplicate()
        cs2.loadFromString("settings:\n  power: 10.0\n")
        self.assertEqual(cs2["power"], 10.0)

    def test_isBoolSetting(self):
        self.assertTrue(settings.isBoolSetting(self.cs.getSetting("boronSearch")))
        self.assertFalse(settings.isBoolSetting(self.cs.getSetting("power")))


class TestRelaxationSetting(unittest.TestCase):
    def setUp(self):
        self.alpha = couplingSettings.RelaxationSetting(
            "alphaTest", None, "A test relaxation", "Test"
        )

    def test_inheritsByDefault(self):
        self.assertIsNone(self.alpha.value)
        self.assertIsNone(self.alpha.dump())
        self.assertTrue(self.alpha.isDefault())

    def test_constant(self):
        self.alpha.setValue("0.5")
        self.assertEqual(self.alpha.value, relaxation.Constant(0.5))
        self.assertEqual(self.alpha.dump(), 0.5)
        self.assertTrue(self.alpha.offDefault)

        self.alpha.setValue(1)
        self.assertEqual(self.alpha.value.factor(3), 1.0)

    def test_robbinsMonro(self):
        self.alpha.setValue(" Robbins-Monro")
        self.assertIsInstance(self.alpha.value, relaxation.RobbinsMonro)
        self.assertEqual(self.alpha.dump(), relaxation.ROBBINS_MONRO)
        self.assertAlmostEqual(self.alpha.value.factor(3), 0.25)

        # an existing scheme is accepted as is
        self.alpha.setValue(relaxation.RobbinsMonro())
        self.assertEqual(self.alpha.dump(), relaxation.ROBBINS_MONRO)

    def test_invalidValues(self):
        for bad in (0.0, -0.2, 1.5, "averaging", [0.5]):
            with self.assertRaises(vol.Invalid):
                self.alpha.setValue(bad)
        self.assertIsNone(self.alpha.value)

    def test_defaultFromNumber(self):
        alpha = couplingSettings.RelaxationSetting("alphaTest", 0.7, "d", "l")
        self.assertEqual(alpha.default, relaxation.Constant(0.7))
        self.assertTrue(alpha.isDefault())
        alpha.setValue("robbins-monro")
        self.assertFalse(alpha.isDefault())
        alpha.revertToDefault()
        self.assertEqual(alpha.value, relaxation.Constant(0.7))


class TestAddingOptions(unittest.TestCase):
    def tearDown(self):
        pm = getApp().pluginManager
        for plugin in (DummyPlugin1, DummyPlugin2):
            if pm.is_registered(plugin):
                pm.unregister(plugin)

    def test_addingOptions(self):
        pm = getApp().pluginManager
        pm.register(DummyPlugin1)
        pm.register(DummyPlugin2)

        cs = caseSettings.Settings()
        self.assertIn("PLUGIN", cs.getSetting("extendableOption").options)
        self.assertEqual(cs["extendableOption"], "PLUGIN")
        cs["extendableOption"] = "DEFAULT"
        with self.assertRaises(vol.Invalid):
            cs["extendableOption"] = "NOTANOPTION"

        pm.unregister(DummyPlugin2)
        cs = caseSettings.Settings()
        self.assertEqual(cs["extendableOption"], "DEFAULT")
