'''
Time step size controllers for adaptive integration.

A step is accepted if its error ratio (see `ARBOR.Motion.odeState.OdeState.errorRatio`) is <= 1.
After every attempted step, the controller proposes the size of the next one.
Rejected steps are always retried from the same time with a strictly smaller step size.
'''
from abc import ABC, abstractmethod

from ARBOR.Errors import StepSizeUnderflow

__all__ = [ "StepSizeController", "PIDStepController", "ElementaryStepController", "stepControllerFactory" ]

EPS = 1e-14

class StepSizeController(ABC):
    maxRejectionFactor = 0.9
    ''' Upper limit on the adaptation factor after a rejected step '''

    def __init__(self, relTol=1e-3, absTol=1e-6, minGrowth=0.1, maxGrowth=5.0, minTimeStep=1e-10, maxTimeStep=float("inf")):
        if minGrowth <= 0 or minGrowth >= 1 or maxGrowth <= 1:
            raise ValueError("Step size growth limits must satisfy 0 < minGrowth < 1 < maxGrowth, got: {}, {}".format(minGrowth, maxGrowth))
        if minTimeStep <= 0 or maxTimeStep <= minTimeStep:
            raise ValueError("Time step limits must satisfy 0 < minTimeStep < maxTimeStep, got: {}, {}".format(minTimeStep, maxTimeStep))

        self.relTol = relTol
        self.absTol = absTol
        self.minGrowth = minGrowth
        self.maxGrowth = maxGrowth
        self.minTimeStep = minTimeStep
        self.maxTimeStep = maxTimeStep

    def acceptStep(self, errorRatio: float) -> bool:
        return errorRatio <= 1.0

    def nextTimeStep(self, dt: float, errorRatio: float, accepted: bool) -> float:
        '''
            Returns the size of the next time step to attempt
            Raises `ARBOR.Errors.StepSizeUnderflow` if a rejected step can't be retried with a smaller step size
        '''
        factor = self._getAdaptationFactor(errorRatio)
        factor = min(max(factor, self.minGrowth), self.maxGrowth)

        if accepted:
            return min(max(dt*factor, self.minTimeStep), self.maxTimeStep)

        if dt <= self.minTimeStep:
            raise StepSizeUnderflow("Step of size {} rejected (error ratio: {}), already at or below the minimum time step: {}".format(dt, errorRatio, self.minTimeStep))

        factor = min(factor, self.maxRejectionFactor)
        return min(max(dt*factor, self.minTimeStep), self.maxTimeStep)

    def limitTimeStep(self, dt: float) -> float:
        return min(max(dt, self.minTimeStep), self.maxTimeStep)

    def reset(self):
        pass

    @abstractmethod
    def _getAdaptationFactor(self, errorRatio: float) -> float:
        pass

class ElementaryStepController(StepSizeController):
    ''' factor = safetyFactor * e^(-1/(q+1)), q being the order of the error estimate '''

    def __init__(self, errorOrder=4, safetyFactor=0.9, **kwargs):
        StepSizeController.__init__(self, **kwargs)
        self.exponent = -1.0 / (errorOrder + 1)
        self.safetyFactor = safetyFactor

    def _getAdaptationFactor(self, errorRatio):
        return self.safetyFactor * max(errorRatio, EPS)**self.exponent

class PIDStepController(StepSizeController):
    '''
        Uses the current and previous two error ratios (e0, e1, e2):
            factor = e0^-kp * (e0/e1)^-kd * (e1/e2)^ki
        Error history starts at 1.0 and is updated after every attempted step (accepted or rejected)
    '''

    def __init__(self, kp=0.075, ki=0.01, kd=0.175, **kwargs):
        StepSizeController.__init__(self, **kwargs)
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.reset()

    def reset(self):
        self.errorHistory = [ 1.0, 1.0 ] # e1, e2

    def _getAdaptationFactor(self, errorRatio):
        e0 = max(errorRatio, EPS)
        e1, e2 = self.errorHistory
        factor = e0**(-self.kp) * (e0/e1)**(-self.kd) * (e1/e2)**self.ki
        self.errorHistory = [ e0, e1 ]
        return factor

def stepControllerFactory(simDefinition=None, errorOrder=4):
    '''
        Creates a step size controller from the SimControl.TimeStepAdaptation dictionary of a simulation definition
        If no simDefinition is provided, returns a PID controller with default settings
    '''
    if simDefinition is None:
        return PIDStepController()

    from ARBOR.IO import SubDictReader
    adaptDictReader = SubDictReader("SimControl.TimeStepAdaptation", simDefinition)

    limits = {
        "relTol":       adaptDictReader.getFloat("relTol"),
        "absTol":       adaptDictReader.getFloat("absTol"),
        "minGrowth":    adaptDictReader.getFloat("minGrowthFactor"),
        "maxGrowth":    adaptDictReader.getFloat("maxGrowthFactor"),
        "minTimeStep":  adaptDictReader.getFloat("minTimeStep"),
        "maxTimeStep":  adaptDictReader.getFloat("maxTimeStep"),
    }

    controller = adaptDictReader.getString("controller")
    if controller == "PID":
        kp, ki, kd = [ float(x) for x in adaptDictReader.getString("PID.coefficients").split() ]
        return PIDStepController(kp, ki, kd, **limits)
    elif controller == "elementary":
        safetyFactor = adaptDictReader.getFloat("Elementary.safetyFactor")
        return ElementaryStepController(errorOrder, safetyFactor, **limits)
    else:
        raise ValueError("Time step controller: {} not implemented. Try 'PID' or 'elementary'".format(controller))
