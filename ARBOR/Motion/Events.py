'''
Events that interrupt time integration to run user callbacks.

* `PeriodicEvent`: fires at times phase + k*period. The solver shortens steps so that they land exactly on these times.
* `ContinuousEvent`: fires when a zero-crossing function g(t, state) changes sign across an accepted step.
    The crossing time is refined by bisection (re-stepping from the start of the step), the step is truncated to end just before the crossing,
    the callback runs, and integration restarts from there.
* `PreSimEvent` / `PostSimEvent`: run once before the first step / after the last step

All callbacks are called as callback(t, state) and may modify state in place.
Events never influence whether a step is accepted by the step size controller.
'''
import math

from ARBOR.Errors import AmbiguousEventCrossing, EventBracketError

__all__ = [ "PeriodicEvent", "ContinuousEvent", "PreSimEvent", "PostSimEvent", "EventManager" ]

class PeriodicEvent():
    def __init__(self, period: float, phase: float = 0.0, callback=None, name=None):
        if not period > 0 or not math.isfinite(period):
            raise ValueError("Periodic event period must be positive and finite, got: {}".format(period))
        self.period = float(period)
        self.phase = float(phase)
        self.callback = callback
        self.name = "PeriodicEvent" if name is None else name
        self.timesFired = 0
        self.reset(self.phase)

    def reset(self, t0: float):
        ''' Schedules the first firing at the earliest time phase + k*period >= t0 '''
        self.timesFired = 0
        self._k = max(0, math.ceil((t0 - self.phase) / self.period - 1e-9))
        self.nextTime = self.phase + self._k*self.period

    def isDue(self, t: float) -> bool:
        return t >= self.nextTime - 1e-12*max(1.0, abs(self.nextTime))

    def fire(self, t, state):
        if self.callback is not None:
            self.callback(t, state)
        self.timesFired += 1
        # Recompute from the phase each time to avoid accumulating round-off
        self._k += 1
        self.nextTime = self.phase + self._k*self.period

class ContinuousEvent():
    def __init__(self, zeroCrossingFunction, callback=None, direction=0, terminal=False, name=None):
        '''
            Inputs:
                * zeroCrossingFunction: g(t, state) -> float
                * callback:             callback(t, state), may modify state
                * direction:            0 = any sign change, +1 = only negative -> positive, -1 = only positive -> negative
                * terminal:             if True, the simulation ends after this event fires
        '''
        if direction not in (-1, 0, 1):
            raise ValueError("Event direction must be -1, 0, or 1, got: {}".format(direction))
        self.g = zeroCrossingFunction
        self.callback = callback
        self.direction = direction
        self.terminal = terminal
        self.name = "ContinuousEvent" if name is None else name
        self.lastFiredTime = None
        self.timesFired = 0

    def reset(self):
        self.lastFiredTime = None
        self.timesFired = 0

    def crosses(self, g0: float, g1: float) -> bool:
        ''' Whether the change from g0 to g1 counts as a zero-crossing for this event '''
        if self.direction >= 0 and g0 < 0 and g1 >= 0:
            return True
        if self.direction <= 0 and g0 > 0 and g1 <= 0:
            return True
        return False

    def fire(self, t, state):
        if self.callback is not None:
            self.callback(t, state)
        self.lastFiredTime = t
        self.timesFired += 1

class _OneTimeEvent():
    def __init__(self, callback, name=None):
        self.callback = callback
        self.name = type(self).__name__ if name is None else name

    def fire(self, t, state):
        self.callback(t, state)

class PreSimEvent(_OneTimeEvent):
    pass

class PostSimEvent(_OneTimeEvent):
    pass

class EventManager():
    '''
        Owns all of the events attached to an `ARBOR.Motion.Solver.OdeProblem`, locates zero-crossings

        Inputs:
            * rootTolerance:            (float) width of the time bracket at which bisection stops
            * multipleCrossingPolicy:   (str) "earliest" - if several continuous events cross in a single step, handle the one that happens first
                                              "raise" - raise `ARBOR.Errors.AmbiguousEventCrossing`
            * missedEventPolicy:        (str) what to do if a crossing function can't be evaluated to a finite value while refining a crossing: "raise" or "ignore" (prints a warning)
            * interiorSamples:          (int) number of additional evenly-spaced points inside each step at which crossing functions are sampled. Allows detection of double crossings within a single step
    '''
    def __init__(self, rootTolerance=1e-10, multipleCrossingPolicy="earliest", missedEventPolicy="raise", interiorSamples=0):
        if multipleCrossingPolicy not in ("earliest", "raise"):
            raise ValueError("multipleCrossingPolicy must be 'earliest' or 'raise', got: {}".format(multipleCrossingPolicy))
        if missedEventPolicy not in ("raise", "ignore"):
            raise ValueError("missedEventPolicy must be 'raise' or 'ignore', got: {}".format(missedEventPolicy))
        if not rootTolerance > 0:
            raise ValueError("rootTolerance must be positive, got: {}".format(rootTolerance))

        self.rootTolerance = rootTolerance
        self.multipleCrossingPolicy = multipleCrossingPolicy
        self.missedEventPolicy = missedEventPolicy
        self.interiorSamples = int(interiorSamples)

        self.periodicEvents = []
        self.continuousEvents = []
        self.preSimEvents = []
        self.postSimEvents = []
        self.eventsFired = 0

    @classmethod
    def fromSimDefinition(cls, simDefinition):
        from ARBOR.IO import SubDictReader
        reader = SubDictReader("SimControl.Events", simDefinition)
        return cls(
            rootTolerance=reader.getFloat("rootTolerance"),
            multipleCrossingPolicy=reader.getString("multipleCrossingPolicy"),
            missedEventPolicy=reader.getString("missedEventPolicy"),
            interiorSamples=reader.getInt("interiorSamples")
        )

    #### Registration ####
    def addEvent(self, event):
        if isinstance(event, PeriodicEvent):
            self.periodicEvents.append(event)
        elif isinstance(event, ContinuousEvent):
            self.continuousEvents.append(event)
        elif isinstance(event, PreSimEvent):
            self.preSimEvents.append(event)
        elif isinstance(event, PostSimEvent):
            self.postSimEvents.append(event)
        else:
            raise TypeError("Unknown event type: {}".format(type(event).__name__))
        return event

    def reset(self, t0: float):
        self.eventsFired = 0
        for event in self.periodicEvents:
            event.reset(t0)
        for event in self.continuousEvents:
            event.reset()

    #### Periodic events ####
    def nextPeriodicEventTime(self) -> float:
        if len(self.periodicEvents) == 0:
            return math.inf
        return min(event.nextTime for event in self.periodicEvents)

    def firePeriodicEvents(self, t, state) -> int:
        ''' Fires all periodic events due at time t (in registration order). Returns the number of events fired '''
        nFired = 0
        for event in self.periodicEvents:
            while event.isDue(t):
                event.fire(t, state)
                nFired += 1
        self.eventsFired += nFired
        return nFired

    #### One-time events ####
    def firePreSimEvents(self, t, state):
        for event in self.preSimEvents:
            event.fire(t, state)
        self.eventsFired += len(self.preSimEvents)
        return len(self.preSimEvents)

    def firePostSimEvents(self, t, state):
        for event in self.postSimEvents:
            event.fire(t, state)
        self.eventsFired += len(self.postSimEvents)
        return len(self.postSimEvents)

    #### Continuous events ####
    def evaluateCrossingFunctions(self, t, state) -> list:
        return [ float(event.g(t, state)) for event in self.continuousEvents ]

    def fireContinuousEvent(self, event, t, state) -> bool:
        ''' Returns True if the event is terminal '''
        event.fire(t, state)
        self.eventsFired += 1
        return event.terminal

    def locateCrossing(self, model, integrator, t, x, dt, gStart, gEnd):
        '''
            Checks whether any continuous event's crossing function changes sign over the step of size dt from (t, x)
            If so, refines the crossing by bisection (re-stepping from (t, x) with shorter step sizes).

            Returns:
                None if no crossing was found, otherwise (event, dtBefore, dtAfter):
                    * dtBefore: length of the step from t which ends just before the crossing (g has not yet crossed)
                    * dtAfter:  dtBefore + width of the final bracket (<= rootTolerance)
        '''
        if len(self.continuousEvents) == 0:
            return None

        sampleDts, sampleGs = self._sampleCrossingFunctions(model, integrator, t, x, dt, gStart, gEnd)

        crossings = []
        for i, event in enumerate(self.continuousEvents):
            for s in range(len(sampleDts) - 1):
                g0, g1 = sampleGs[s][i], sampleGs[s+1][i]
                if event.crosses(g0, g1):
                    refined = self._bisect(event, i, model, integrator, t, x, sampleDts[s], sampleDts[s+1], g0, g1)
                    if refined is not None and not self._isRepeatCrossing(event, t + refined[1]):
                        crossings.append((event, refined[0], refined[1]))
                        break

        if len(crossings) == 0:
            return None

        if len(crossings) > 1 and self.multipleCrossingPolicy == "raise":
            names = ", ".join(c[0].name for c in crossings)
            raise AmbiguousEventCrossing("Events: {} all crossed zero in the step from t = {} to t = {}".format(names, t, t + dt))

        return min(crossings, key=lambda c: c[2])

    def _isRepeatCrossing(self, event, crossingTime) -> bool:
        ''' A crossing within rootTolerance of the last time this event fired is the same crossing seen again after restarting '''
        if event.lastFiredTime is None:
            return False
        return crossingTime - event.lastFiredTime <= 2*self.rootTolerance

    def _sampleCrossingFunctions(self, model, integrator, t, x, dt, gStart, gEnd):
        sampleDts = [ 0.0 ]
        sampleGs = [ gStart ]
        for j in range(1, self.interiorSamples + 1):
            dtSample = dt * j / (self.interiorSamples + 1)
            result = integrator.step(model, t, x, dtSample)
            sampleDts.append(dtSample)
            sampleGs.append(self.evaluateCrossingFunctions(t + dtSample, result.newValue))
        sampleDts.append(dt)
        sampleGs.append(gEnd)
        return sampleDts, sampleGs

    def _bisect(self, event, eventIndex, model, integrator, t, x, dtLow, dtHigh, gLow, gHigh):
        while dtHigh - dtLow > self.rootTolerance:
            dtMid = 0.5*(dtLow + dtHigh)
            if dtMid <= dtLow or dtMid >= dtHigh:
                break # Reached floating point resolution

            result = integrator.step(model, t, x, dtMid)
            gMid = float(event.g(t + dtMid, result.newValue))

            if not math.isfinite(gMid):
                message = "Crossing function of event {} returned {} at t = {} while refining a zero-crossing".format(event.name, gMid, t + dtMid)
                if self.missedEventPolicy == "raise":
                    raise EventBracketError(message)
                print("WARNING: {}, ignoring the crossing".format(message))
                return None

            if event.crosses(gLow, gMid):
                dtHigh, gHigh = dtMid, gMid
            else:
                dtLow, gLow = dtMid, gMid

        if not event.crosses(gLow, gHigh):
            message = "Lost the sign change of event {} while refining a zero-crossing between t = {} and t = {}".format(event.name, t + dtLow, t + dtHigh)
            if self.missedEventPolicy == "raise":
                raise EventBracketError(message)
            print("WARNING: {}, ignoring the crossing".format(message))
            return None

        return dtLow, dtHigh
