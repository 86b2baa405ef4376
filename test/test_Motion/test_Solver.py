import math
import os
import tempfile
import time
import unittest
from test.testUtilities import assertArraysClose

import numpy as np

from ARBOR.Errors import NonFiniteState, SimulationTimeout, StepSizeUnderflow
from ARBOR.IO import FileResult, MemoryResult, NoResult, loadResultFile
from ARBOR.Motion import (ArrayState, ElementaryStepController, EventManager,
                          FunctionModel, OdeProblem, PIDStepController,
                          integratorFactory)


def harmonicOscillator():
    return FunctionModel(lambda t, y: np.array([ y[1], -y[0] ]))

def constantVelocity():
    return FunctionModel(lambda t, y: np.array([ y[1], 0.0 ]))

class TestFixedStepSolver(unittest.TestCase):
    def setUp(self):
        self.initialState = ArrayState([ 1.0, 0.0 ], [ "x", "v" ])

    def test_statistics(self):
        problem = OdeProblem(harmonicOscillator())
        result = problem.solveFixed(self.initialState, (0, 1), 0.1)

        self.assertEqual(problem.statistics.acceptedSteps, 10)
        self.assertEqual(problem.statistics.rejectedSteps, 0)
        self.assertEqual(problem.statistics.functionEvaluations, 40)
        self.assertEqual(len(result), 11)
        self.assertEqual(result.t[0], 0.0)
        self.assertEqual(result.t[-1], 1.0)

    def test_initialStateNotModified(self):
        OdeProblem(harmonicOscillator()).solveFixed(self.initialState, (0, 1), 0.1)
        assertArraysClose(self, self.initialState.values, [ 1.0, 0.0 ])

    def test_convergenceOrder(self):
        def finalError(dt):
            result = OdeProblem(harmonicOscillator()).solveFixed(self.initialState, (0, 2), dt)
            return np.linalg.norm(result.y[-1] - [ math.cos(2), -math.sin(2) ])

        ratio = finalError(0.1) / finalError(0.05)
        self.assertGreater(ratio, 14)
        self.assertLess(ratio, 18)

    def test_endsExactlyOnFinalTime(self):
        # 0.3 doesn't divide 1: the last step is shortened
        result = OdeProblem(harmonicOscillator()).solveFixed(self.initialState, (0, 1), 0.3)
        assertArraysClose(self, result.t, [ 0, 0.3, 0.6, 0.9, 1.0 ], atol=1e-15)

    def test_invalidInputs(self):
        problem = OdeProblem(harmonicOscillator())
        with self.assertRaises(ValueError):
            problem.solveFixed(self.initialState, (1, 0), 0.1)
        with self.assertRaises(ValueError):
            problem.solveFixed(self.initialState, (0, 1), 0.1, method="RK45Adaptive")
        with self.assertRaises(ValueError):
            problem.solveAdaptive(self.initialState, (0, 1), method="RK4")
        with self.assertRaises(ValueError):
            problem.solve(self.initialState, (0, 1), integrator=integratorFactory("RK4", self.initialState))

    def test_fileOutput(self):
        with tempfile.TemporaryDirectory() as folder:
            path = os.path.join(folder, "results.csv")
            sink = FileResult(path, self.initialState.componentNames(), numberFormat="scientific", precision=12)
            OdeProblem(harmonicOscillator()).solveFixed(self.initialState, (0, 1), 0.25, resultSink=sink)
            self.assertTrue(sink.finalized)

            data = loadResultFile(path)
            self.assertEqual(list(data.columns), [ "t", "x", "v" ])
            self.assertEqual(len(data), 5)
            self.assertAlmostEqual(data["x"].iloc[-1], math.cos(1), 3)

    def test_noOutput(self):
        sink = NoResult()
        OdeProblem(harmonicOscillator()).solveFixed(self.initialState, (0, 1), 0.1, resultSink=sink)
        self.assertEqual(len(sink), 11)

class TestAdaptiveSolver(unittest.TestCase):
    def setUp(self):
        self.initialState = ArrayState([ 1.0, 0.0 ], [ "x", "v" ])

    def test_accuracy(self):
        controller = PIDStepController(relTol=1e-9, absTol=1e-12)
        result = OdeProblem(harmonicOscillator()).solveAdaptive(self.initialState, (0, 10), controller=controller)
        assertArraysClose(self, result.y[-1], [ math.cos(10), -math.sin(10) ], atol=1e-6)
        self.assertEqual(result.t[-1], 10.0)

    def test_stepAcceptance(self):
        problem = OdeProblem(harmonicOscillator())
        controller = PIDStepController(relTol=1e-8, absTol=1e-10)
        problem.solveAdaptive(self.initialState, (0, 10), controller=controller, dt=1.0, recordSteps=True)

        stats = problem.statistics
        self.assertGreater(stats.rejectedSteps, 0)
        self.assertEqual(len(stats.records), stats.attemptedSteps)

        for i, (t, dt, errorRatio, accepted) in enumerate(stats.records):
            if accepted:
                self.assertLessEqual(errorRatio, 1.0)
            else:
                # A rejected step is retried from the same time with a smaller step
                tNext, dtNext, _, _ = stats.records[i+1]
                self.assertEqual(tNext, t)
                self.assertLess(dtNext, dt)

    def test_tighterTolerancesTakeMoreSteps(self):
        def nSteps(relTol):
            problem = OdeProblem(harmonicOscillator())
            problem.solveAdaptive(self.initialState, (0, 5), controller=ElementaryStepController(relTol=relTol, absTol=relTol*1e-3))
            return problem.statistics.acceptedSteps

        self.assertGreater(nSteps(1e-9), nSteps(1e-4))

    def test_firstSameAsLastSavesEvaluations(self):
        problem = OdeProblem(harmonicOscillator())
        problem.solveAdaptive(self.initialState, (0, 5), method="RK45Adaptive")
        stats = problem.statistics
        self.assertLess(stats.functionEvaluations, 7*stats.attemptedSteps)

    def test_stepSizeUnderflow(self):
        controller = ElementaryStepController(relTol=1e-14, absTol=1e-14, minTimeStep=0.1, maxTimeStep=1.0)
        with self.assertRaises(StepSizeUnderflow):
            OdeProblem(harmonicOscillator()).solveAdaptive(self.initialState, (0, 10), controller=controller, dt=0.1)

class TestSolverEvents(unittest.TestCase):
    def setUp(self):
        self.initialState = ArrayState([ 0.0, 1.0 ], [ "x", "v" ])

    def test_bouncing(self):
        bounceTimes = []
        def bounce(t, state):
            bounceTimes.append(t)
            state[1] *= -1

        problem = OdeProblem(constantVelocity(), EventManager(rootTolerance=1e-12))
        problem.withContinuousEvent(lambda t, s: s[0] - 1, bounce, direction=1, name="rightWall")
        problem.withContinuousEvent(lambda t, s: s[0] + 1, bounce, direction=-1, name="leftWall")
        result = problem.solveFixed(self.initialState, (0, 6), 0.1)

        assertArraysClose(self, bounceTimes, [ 1, 3, 5 ], atol=1e-9)
        self.assertEqual(problem.statistics.eventsFired, 3)
        self.assertEqual(result.t[-1], 6.0)
        self.assertAlmostEqual(result.y[-1, 0], 0.0, 9)
        self.assertEqual(result.y[-1, 1], -1.0)

        # Position never leaves the walls by more than the root finding tolerance
        self.assertLess(np.max(np.abs(result.getComponent("x"))), 1 + 1e-9)

    def test_adaptiveBouncing(self):
        bounceTimes = []
        def bounce(t, state):
            bounceTimes.append(t)
            state[1] *= -1

        problem = OdeProblem(constantVelocity(), EventManager(rootTolerance=1e-12))
        problem.withContinuousEvent(lambda t, s: s[0] - 1, bounce, direction=1)
        problem.solveAdaptive(self.initialState, (0, 2), dt=0.3)
        assertArraysClose(self, bounceTimes, [ 1 ], atol=1e-9)

    def test_terminalEvent(self):
        problem = OdeProblem(constantVelocity()).withContinuousEvent(lambda t, s: s[0] - 0.5, terminal=True)
        result = problem.solveFixed(self.initialState, (0, 6), 0.1)
        self.assertAlmostEqual(result.t[-1], 0.5, 9)
        self.assertAlmostEqual(result.y[-1, 0], 0.5, 9)

    def test_periodicEventsLandOnSchedule(self):
        eventTimes = []
        problem = OdeProblem(constantVelocity()).withPeriodicEvent(0.25, callback=lambda t, s: eventTimes.append(t))
        result = problem.solveFixed(self.initialState, (0, 1), 0.3)

        self.assertEqual(eventTimes, [ 0, 0.25, 0.5, 0.75, 1.0 ])
        self.assertEqual(list(result.t), [ 0, 0.25, 0.5, 0.75, 1.0 ])

    def test_periodicEventModifiesState(self):
        def kick(t, state):
            state[1] += 1

        problem = OdeProblem(constantVelocity()).withPeriodicEvent(1.0, phase=0.5, callback=kick)
        result = problem.solveAdaptive(self.initialState, (0, 2))
        # v = 1 until 0.5, 2 until 1.5, 3 afterwards
        self.assertAlmostEqual(result.y[-1, 0], 0.5 + 2 + 1.5, 9)
        self.assertEqual(result.y[-1, 1], 3.0)

    def test_stateCommittedAfterEventCallbacks(self):
        committed = []
        class RecordingModel(FunctionModel):
            def onStepAccepted(self, t, state):
                committed.append((t, state[1]))

        def bounce(t, state):
            state[1] *= -1

        problem = OdeProblem(RecordingModel(lambda t, y: np.array([ y[1], 0.0 ])), EventManager(rootTolerance=1e-12))
        problem.withContinuousEvent(lambda t, s: s[0] - 1, bounce, direction=1)
        problem.withPeriodicEvent(0.5, phase=0.25, callback=bounce)
        result = problem.solveFixed(self.initialState, (0, 1.5), 0.1)

        # Every committed state matches the saved (post-callback) state
        self.assertEqual(len(committed), len(result))
        for (t, v), savedTime, savedV in zip(committed, result.t, result.getComponent("v")):
            self.assertEqual(t, savedTime)
            self.assertEqual(v, savedV)

    def test_preAndPostSimEvents(self):
        calls = []
        problem = OdeProblem(constantVelocity())
        problem.withPreSimEvent(lambda t, s: calls.append(("pre", t, s[0])))
        problem.withPostSimEvent(lambda t, s: calls.append(("post", t, s[0])))
        problem.solveFixed(self.initialState, (0, 2), 0.5)

        self.assertEqual(len(calls), 2)
        self.assertEqual(calls[0], ("pre", 0.0, 0.0))
        self.assertEqual(calls[1][:2], ("post", 2.0))
        self.assertAlmostEqual(calls[1][2], 2.0, 12)

class TestSolverFailures(unittest.TestCase):
    def setUp(self):
        self.initialState = ArrayState([ 1.0, 0.0 ], [ "x", "v" ])

    def test_nonFiniteInitialState(self):
        with self.assertRaises(NonFiniteState):
            OdeProblem(harmonicOscillator()).solveFixed(ArrayState([ float("nan"), 0.0 ]), (0, 1), 0.1)

    def test_nonFiniteAfterEvent(self):
        def corrupt(t, state):
            state[0] = float("nan")

        problem = OdeProblem(harmonicOscillator()).withPeriodicEvent(1.0, phase=0.5, callback=corrupt)
        sink = MemoryResult(self.initialState.componentNames())
        with self.assertRaises(NonFiniteState):
            problem.solveFixed(self.initialState, (0, 1), 0.1, resultSink=sink)
        self.assertTrue(sink.finalized)

    def test_nonFiniteDerivative(self):
        problem = OdeProblem(FunctionModel(lambda t, y: np.array([ np.inf, 0.0 ])))
        with self.assertRaises(NonFiniteState):
            problem.solveFixed(self.initialState, (0, 1), 0.1)

    def test_maxSteps(self):
        sink = MemoryResult(self.initialState.componentNames())
        with self.assertRaises(SimulationTimeout):
            OdeProblem(harmonicOscillator()).solveFixed(self.initialState, (0, 1), 0.1, maxSteps=5, resultSink=sink)

        # Results up to the failure are kept
        self.assertTrue(sink.finalized)
        self.assertEqual(len(sink), 6)

    def test_wallClockLimit(self):
        def slowDerivative(t, y):
            time.sleep(0.001)
            return np.array([ y[1], -y[0] ])

        with self.assertRaises(SimulationTimeout):
            OdeProblem(FunctionModel(slowDerivative)).solveFixed(self.initialState, (0, 100), 0.1, wallClockLimit=1e-4)

if __name__ == '__main__':
    unittest.main()
