import unittest

from show_validation.constants import DEFAULT_VALIDATION_SETTINGS, EnvironmentType
from show_validation.thresholds import (
    ValidationSettings, default_validation_settings, is_legacy_shape, resolve_validation_settings
)

OUTDOOR = DEFAULT_VALIDATION_SETTINGS["outdoor"]
INDOOR = DEFAULT_VALIDATION_SETTINGS["indoor"]


class TestResolveValidationSettings(unittest.TestCase):
    def test_defaults_per_environment(self):
        self.assertEqual(resolve_validation_settings("outdoor").to_dict(), OUTDOOR)
        self.assertEqual(resolve_validation_settings("indoor").to_dict(), INDOOR)
        self.assertEqual(resolve_validation_settings(EnvironmentType.INDOOR).to_dict(), INDOOR)

    def test_unknown_environment_falls_back_to_outdoor(self):
        with self.assertLogs("show_validation.thresholds", level="WARNING"):
            s = resolve_validation_settings("underwater")
        self.assertEqual(s.to_dict(), OUTDOOR)
        with self.assertLogs("show_validation.thresholds", level="WARNING"):
            self.assertEqual(resolve_validation_settings(None).to_dict(), OUTDOOR)

    def test_legacy_shape_overrides_all(self):
        raw = {"max_altitude": 50, "max_velocity_xy": 5, "max_velocity_z": 3, "min_distance": 2}
        s = resolve_validation_settings("outdoor", raw)
        self.assertEqual(s.to_dict(), {"maxAltitude": 50.0, "maxVelocityXY": 5.0, "maxVelocityZ": 3.0, "minDistance": 2.0})
        self.assertEqual(s, ValidationSettings(max_altitude=50.0, max_velocity_xy=5.0, max_velocity_z=3.0, min_distance=2.0))

    def test_canonical_partial_merge(self):
        s = resolve_validation_settings("outdoor", {"maxAltitude": 80})
        self.assertEqual(s.max_altitude, 80.0)
        self.assertEqual(s.max_velocity_xy, OUTDOOR["maxVelocityXY"])
        self.assertEqual(s.max_velocity_z, OUTDOOR["maxVelocityZ"])
        self.assertEqual(s.min_distance, OUTDOOR["minDistance"])

    def test_legacy_detection_wins_over_mixed_shape(self):
        raw = {"max_altitude": 40, "maxVelocityXY": 1.0, "minDistance": 9.0}
        s = resolve_validation_settings("indoor", raw)
        self.assertEqual(s.max_altitude, 40.0)
        # canonical keys are ignored for legacy-shaped input
        self.assertEqual(s.max_velocity_xy, INDOOR["maxVelocityXY"])
        self.assertEqual(s.min_distance, INDOOR["minDistance"])

    def test_partial_legacy_without_altitude_key_is_read_as_canonical(self):
        raw = {"max_velocity_xy": 1.0, "min_distance": 9.0}
        self.assertFalse(is_legacy_shape(raw))
        s = resolve_validation_settings("outdoor", raw)
        self.assertEqual(s.to_dict(), OUTDOOR)

    def test_unset_and_invalid_values_keep_defaults(self):
        s = resolve_validation_settings("outdoor", {"maxAltitude": None, "minDistance": 1.0})
        self.assertEqual(s.max_altitude, OUTDOOR["maxAltitude"])
        self.assertEqual(s.min_distance, 1.0)

        with self.assertLogs("show_validation.thresholds", level="WARNING"):
            s = resolve_validation_settings("outdoor", {"maxAltitude": -5, "maxVelocityZ": "fast"})
        self.assertEqual(s.max_altitude, OUTDOOR["maxAltitude"])
        self.assertEqual(s.max_velocity_z, OUTDOOR["maxVelocityZ"])

    def test_legacy_with_null_altitude(self):
        raw = {"max_altitude": None, "max_velocity_xy": 4, "max_velocity_z": None, "min_distance": 1.5}
        self.assertTrue(is_legacy_shape(raw))
        s = resolve_validation_settings("outdoor", raw)
        self.assertEqual(s.max_altitude, OUTDOOR["maxAltitude"])
        self.assertEqual(s.max_velocity_xy, 4.0)
        self.assertEqual(s.max_velocity_z, OUTDOOR["maxVelocityZ"])
        self.assertEqual(s.min_distance, 1.5)

    def test_does_not_mutate_defaults(self):
        resolve_validation_settings("outdoor", {"maxAltitude": 12})
        self.assertEqual(default_validation_settings("outdoor").max_altitude, OUTDOOR["maxAltitude"])

    def test_from_dict_is_strict(self):
        with self.assertRaises(ValueError):
            ValidationSettings.from_dict({"maxAltitude": 10})
        with self.assertRaises(ValueError):
            ValidationSettings.from_dict({**OUTDOOR, "minDistance": 0})


if __name__ == "__main__":
    unittest.main()
