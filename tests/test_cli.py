import contextlib
import io
import json
import os
import tempfile
import unittest

from show_validation.cli import load_show_description, main
from show_validation.trajectories import PiecewiseLinearTrajectory, SplineTrajectory

SHOW = {
    "duration": 4.0,
    "environment": "indoor",
    "validation": {"max_altitude": 6, "max_velocity_xy": 2, "max_velocity_z": 1, "min_distance": 0.5},
    "drones": [
        {"keyframes": [[0.0, 0.0, 0.0, 0.0], [4.0, 2.0, 0.0, 3.0]]},
        {"keyframes": [[0.0, 0.0, 0.3, 0.0], [2.0, 1.0, 0.3, 1.5], [4.0, 2.0, 0.3, 3.0]], "interpolation": "spline"},
    ],
}


class TestCli(unittest.TestCase):
    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(SHOW, f)

    def tearDown(self):
        os.remove(self.path)

    def test_load_show_description(self):
        show = load_show_description(self.path)
        self.assertEqual(show["duration"], 4.0)
        self.assertEqual(show["environment"], "indoor")
        self.assertIsInstance(show["players"][0], PiecewiseLinearTrajectory)
        self.assertIsInstance(show["players"][1], SplineTrajectory)

    def test_main_json_output(self):
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            code = main([self.path, "--json"])
        self.assertEqual(code, 0)
        out = json.loads(buf.getvalue())
        self.assertEqual(out["num_drones"], 2)
        self.assertEqual(out["num_samples"], 17)
        self.assertAlmostEqual(out["min_distance"], 0.3, places=9)
        self.assertEqual(out["settings"]["minDistance"], 0.5)

    def test_main_text_output(self):
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            main([self.path])
        text = buf.getvalue()
        self.assertIn("min_distance_pair: (0, 1)", text)
        self.assertIn("frames closer than 0.5 m:", text)

    def test_missing_keyframes(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"drones": [{"keyframes": []}]}, f)
        with self.assertRaises(ValueError):
            load_show_description(self.path)

    def test_drone_entry_must_be_object(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"drones": [SHOW["drones"][0], [0.0, 1.0]]}, f)
        with self.assertRaisesRegex(ValueError, "drone 1 must be an object"):
            load_show_description(self.path)


if __name__ == "__main__":
    unittest.main()
