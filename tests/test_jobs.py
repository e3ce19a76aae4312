import threading
import unittest

import numpy as np

from show_validation.cache import AnalysisCache
from show_validation.errors import AnalysisCancelled
from show_validation.jobs import ValidationRunner
from show_validation.trajectories import PiecewiseLinearTrajectory

TIMEOUT = 10.0


def hover(x):
    return PiecewiseLinearTrajectory([0.0], [[x, 0.0, 5.0]])


class GatedPlayer:
    """Hovers, but blocks on its first evaluation until the gate opens."""

    def __init__(self, gate: threading.Event, started: threading.Event):
        self.gate = gate
        self.started = started

    def position_at(self, t):
        self.started.set()
        self.gate.wait(TIMEOUT)
        return np.array([0.0, 0.0, 5.0])

    def velocity_at(self, t):
        return np.zeros(3)


class TestValidationRunner(unittest.TestCase):
    def test_single_run(self):
        results = []
        with ValidationRunner(on_result=lambda run_id, res: results.append(run_id)) as runner:
            handle = runner.submit(players=[hover(0.0), hover(3.0)], duration=2.0)
            run = handle.future.result(TIMEOUT)
        self.assertEqual(handle.run_id, 1)
        self.assertAlmostEqual(run["metrics"]["min_distance"], 3.0)
        self.assertIs(runner.latest_result(), run)
        self.assertEqual(runner.latest_result_run_id(), 1)
        self.assertEqual(results, [1])

    def test_superseded_run_never_publishes(self):
        gate, started = threading.Event(), threading.Event()
        with ValidationRunner() as runner:
            old = runner.submit(players=[GatedPlayer(gate, started), hover(1.0)], duration=1.0)
            self.assertTrue(started.wait(TIMEOUT))
            new = runner.submit(players=[hover(0.0), hover(2.0)], duration=1.0)
            gate.set()

            with self.assertRaises(AnalysisCancelled):
                old.future.result(TIMEOUT)
            fresh = new.future.result(TIMEOUT)

        self.assertFalse(runner.is_current(old.run_id))
        self.assertEqual(runner.latest_result_run_id(), new.run_id)
        self.assertIs(runner.latest_result(), fresh)
        self.assertAlmostEqual(fresh["metrics"]["min_distance"], 2.0)

    def test_queued_run_is_cancelled(self):
        gate, started = threading.Event(), threading.Event()
        with ValidationRunner() as runner:
            first = runner.submit(players=[GatedPlayer(gate, started)], duration=1.0)
            self.assertTrue(started.wait(TIMEOUT))
            queued = runner.submit(players=[hover(0.0)], duration=1.0)
            last = runner.submit(players=[hover(0.0), hover(1.0)], duration=1.0)
            self.assertTrue(queued.future.cancelled())
            gate.set()
            last.future.result(TIMEOUT)

        self.assertEqual(runner.latest_result_run_id(), last.run_id)

    def test_errors_propagate_to_future(self):
        with ValidationRunner() as runner:
            # the failure can be logged before submit() returns
            with self.assertLogs("show_validation.jobs", level="ERROR") as cm:
                handle = runner.submit(players=[hover(0.0)], duration=-1.0)
                with self.assertRaises(ValueError):
                    handle.future.result(TIMEOUT)
                runner.shutdown(wait=True)
        self.assertIsNone(runner.latest_result())
        errors = [r for r in cm.records if r.levelname == "ERROR"]
        self.assertEqual(len(errors), 1)
        self.assertIsNotNone(errors[0].exc_info)
        self.assertIsInstance(errors[0].exc_info[1], ValueError)

    def test_cache_is_used(self):
        cache = AnalysisCache()
        with ValidationRunner(cache=cache) as runner:
            a = runner.submit(players=[hover(0.0), hover(4.0)], duration=1.0, cache_key="k").future.result(TIMEOUT)
            b = runner.submit(players=[hover(0.0), hover(4.0)], duration=1.0, cache_key="k").future.result(TIMEOUT)
        self.assertIs(a, b)
        self.assertIn("k", cache)


if __name__ == "__main__":
    unittest.main()
