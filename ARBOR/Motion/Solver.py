'''
Main time integration loop: `OdeProblem` couples an `ARBOR.Motion.odeState.OdeModel` with a set of events and integrates it
from an initial state over a time span, saving every accepted step to a result sink (see `ARBOR.IO.ResultSinks`)

Example:
    problem = OdeProblem(model).withPeriodicEvent(0.1, callback=printState)
    result = problem.solveAdaptive(initialState, (0, 10))
'''
import math
import time

from ARBOR.Errors import NonFiniteState, SimulationTimeout
from ARBOR.IO.ResultSinks import MemoryResult

from .Events import (ContinuousEvent, EventManager, PeriodicEvent, PostSimEvent,
                     PreSimEvent)
from .Integration import integratorFactory
from .StepControl import PIDStepController

__all__ = [ "OdeProblem", "StepStatistics" ]

class StepStatistics():
    __slots__ = [ "acceptedSteps", "rejectedSteps", "functionEvaluations", "eventsFired", "records", "recordSteps" ]

    def __init__(self, recordSteps=False):
        self.acceptedSteps = 0
        self.rejectedSteps = 0
        self.functionEvaluations = 0
        self.eventsFired = 0
        self.recordSteps = recordSteps
        self.records = []
        ''' If recordSteps: list of (t, dt, errorRatio, accepted) for every attempted step, t being the time at the start of the step '''

    def record(self, t, dt, errorRatio, accepted):
        if accepted:
            self.acceptedSteps += 1
        else:
            self.rejectedSteps += 1

        if self.recordSteps:
            self.records.append((t, dt, errorRatio, accepted))

    @property
    def attemptedSteps(self) -> int:
        return self.acceptedSteps + self.rejectedSteps

    def __str__(self):
        return "{} accepted steps, {} rejected steps, {} derivative evaluations, {} events fired".format(self.acceptedSteps, self.rejectedSteps, self.functionEvaluations, self.eventsFired)

class OdeProblem():

    def __init__(self, model, eventManager=None):
        '''
            Inputs:
                * model:        (`ARBOR.Motion.odeState.OdeModel`)
                * eventManager: (`ARBOR.Motion.Events.EventManager`) Optional, a default one is created if not provided
        '''
        self.model = model
        self.events = EventManager() if eventManager is None else eventManager
        self.statistics = None
        ''' `StepStatistics` from the most recent call to solve() '''

    #### Events ####
    def withPeriodicEvent(self, period, phase=0.0, callback=None, name=None):
        self.events.addEvent(PeriodicEvent(period, phase, callback, name))
        return self

    def withContinuousEvent(self, zeroCrossingFunction, callback=None, direction=0, terminal=False, name=None):
        self.events.addEvent(ContinuousEvent(zeroCrossingFunction, callback, direction, terminal, name))
        return self

    def withPreSimEvent(self, callback, name=None):
        self.events.addEvent(PreSimEvent(callback, name))
        return self

    def withPostSimEvent(self, callback, name=None):
        self.events.addEvent(PostSimEvent(callback, name))
        return self

    #### Solving ####
    def solveFixed(self, initialState, timeSpan, dt, method="RK4", **kwargs):
        integrator = integratorFactory(method, initialState)
        if integrator.isAdaptive:
            raise ValueError("solveFixed requires a fixed-step method, got: {}".format(method))
        return self.solve(initialState, timeSpan, integrator=integrator, dt=dt, **kwargs)

    def solveAdaptive(self, initialState, timeSpan, method="RK45Adaptive", controller=None, dt=1e-3, **kwargs):
        integrator = integratorFactory(method, initialState)
        if not integrator.isAdaptive:
            raise ValueError("solveAdaptive requires an adaptive method, got: {}".format(method))
        if controller is None:
            controller = PIDStepController()
        return self.solve(initialState, timeSpan, integrator=integrator, controller=controller, dt=dt, **kwargs)

    def solve(self, initialState, timeSpan, integrator=None, controller=None, resultSink=None, dt=None, maxSteps=None, wallClockLimit=None,
            recordSteps=False, progressBar=None, silent=True):
        '''
            Integrates self.model from initialState over timeSpan = (t0, tf). initialState is not modified.

            Inputs:
                * integrator:       (`ARBOR.Motion.Integration.RungeKuttaIntegrator`) defaults to RK45Adaptive
                * controller:       (`ARBOR.Motion.StepControl.StepSizeController`) required for adaptive integrators, defaults to a PID controller
                * resultSink:       (`ARBOR.IO.ResultSinks.MemoryResult`/`FileResult`/`NoResult`) defaults to a new MemoryResult. Finalized before returning, including on error.
                * dt:               (float) (initial) time step. Required for fixed-step integrators, defaults to 1e-3 for adaptive ones
                * maxSteps:         (int) max number of attempted (accepted + rejected) steps
                * wallClockLimit:   (float) max run time in seconds
                * recordSteps:      (bool) record (t, dt, errorRatio, accepted) for every attempted step in self.statistics.records
                * progressBar:      (tqdm-like object) update(dt) is called after every accepted step
                * silent:           (bool) if False, prints a summary after integration

            Returns:
                resultSink
        '''
        t0, tf = float(timeSpan[0]), float(timeSpan[1])
        if not tf > t0:
            raise ValueError("Time span end ({}) must be greater than its start ({})".format(tf, t0))

        x = initialState.zeros()
        x.copyFrom(initialState)
        if not x.isFinite():
            raise NonFiniteState("Initial state contains non-finite values: {}".format(x))

        if integrator is None:
            integrator = integratorFactory("RK45Adaptive", x)
        adaptive = integrator.isAdaptive

        if adaptive:
            if controller is None:
                controller = PIDStepController()
            controller.reset()
            integrator.setTolerances(controller.relTol, controller.absTol)
            h = controller.limitTimeStep(1e-3 if dt is None else dt)
        elif dt is None or not dt > 0:
            raise ValueError("A positive time step is required for fixed-step integration, got: {}".format(dt))
        else:
            h = dt

        if resultSink is None:
            resultSink = MemoryResult(x.componentNames())

        events = self.events
        model = self.model
        stats = StepStatistics(recordSteps)
        self.statistics = stats
        candidate = x.zeros() # Result of the current step, before events are located
        integrator.invalidateCache()
        evaluationsAtStart = integrator.functionEvaluations
        startWallTime = time.time()
        endTolerance = 1e-12*max(1.0, abs(tf))

        try:
            t = t0
            events.reset(t0)
            if events.firePreSimEvents(t, x) + events.firePeriodicEvents(t, x) > 0:
                self._checkFinite(x, t)
            model.onStepAccepted(t, x)
            resultSink.save(t, x)
            gPrevious = events.evaluateCrossingFunctions(t, x)

            terminated = False
            while tf - t > endTolerance and not terminated:
                if maxSteps is not None and stats.attemptedSteps >= maxSteps:
                    raise SimulationTimeout("Max number of steps ({}) reached at t = {}".format(maxSteps, t))
                if wallClockLimit is not None and time.time() - startWallTime > wallClockLimit:
                    raise SimulationTimeout("Wall clock limit ({} s) reached at t = {}".format(wallClockLimit, t))

                # Land exactly on the end time / next periodic event
                target = min(tf, events.nextPeriodicEventTime())
                if t + h >= target - endTolerance:
                    dtTry = target - t
                    newTime = target
                else:
                    dtTry = h
                    newTime = t + h

                result = integrator.step(model, t, x, dtTry)

                if adaptive:
                    errorRatio = result.errorRatio
                    accepted = controller.acceptStep(errorRatio)
                    hNext = controller.nextTimeStep(dtTry, errorRatio, accepted)
                    if not accepted:
                        stats.record(t, dtTry, errorRatio, False)
                        h = hNext
                        continue
                else:
                    errorRatio = 0.0
                    hNext = h

                candidate.copyFrom(result.newValue)

                # Continuous events
                crossing = None
                if len(events.continuousEvents) > 0:
                    gNew = events.evaluateCrossingFunctions(newTime, candidate)
                    evaluationsBefore = integrator.functionEvaluations
                    crossing = events.locateCrossing(model, integrator, t, x, dtTry, gPrevious, gNew)
                    restepped = integrator.functionEvaluations != evaluationsBefore
                else:
                    restepped = False

                if crossing is not None:
                    event, dtBefore, _ = crossing
                    if dtBefore > 0:
                        x.copyFrom(integrator.step(model, t, x, dtBefore).newValue)
                    stats.record(t, dtBefore, errorRatio, True)
                    if progressBar is not None:
                        progressBar.update(dtBefore)
                    t = t + dtBefore
                    integrator.invalidateCache()
                    terminated = events.fireContinuousEvent(event, t, x)
                    events.firePeriodicEvents(t, x)
                    model.onStepAccepted(t, x)
                else:
                    x.copyFrom(candidate)
                    stats.record(t, dtTry, errorRatio, True)
                    if progressBar is not None:
                        progressBar.update(dtTry)
                    t = newTime
                    if restepped:
                        integrator.invalidateCache()
                    else:
                        integrator.acceptStep(t)
                    if events.firePeriodicEvents(t, x) > 0:
                        integrator.invalidateCache()
                    model.onStepAccepted(t, x)

                self._checkFinite(x, t)
                resultSink.save(t, x)
                gPrevious = events.evaluateCrossingFunctions(t, x)
                h = hNext

            events.firePostSimEvents(t, x)

        finally:
            stats.functionEvaluations = integrator.functionEvaluations - evaluationsAtStart
            stats.eventsFired = events.eventsFired
            resultSink.finalize()

        if not silent:
            print("Integration complete at t = {}: {}".format(t, stats))

        return resultSink

    def _checkFinite(self, x, t):
        if not x.isFinite():
            raise NonFiniteState("State became non-finite at t = {} (after event callbacks)".format(t))
