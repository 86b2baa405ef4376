'''
Contract between the time integrators and the things they integrate.

The integrators in `ARBOR.Motion.Integration` never create new state objects while stepping.
Instead, they allocate all of the buffers they need once (using `OdeState.zeros` and `OdeState.newDerivative`)
and then operate on them in place through the vector-space operations defined by `OdeState`.

`OdeModel.f(t, state, derivative)` fills a caller-owned derivative buffer.
'''
from abc import ABC, abstractmethod
from typing import Callable, List

import numpy as np

__all__ = [ "OdeState", "ArrayState", "OdeModel", "FunctionModel" ]

class OdeState(ABC):
    Derivative = None
    ''' Type of object produced by differentiating this state. Must support the same in-place operations '''

    @abstractmethod
    def zeros(self) -> "OdeState":
        ''' Returns a new, zeroed state with the same shape/structure as self '''

    def newDerivative(self):
        ''' Returns a new, zeroed instance of self.Derivative with a structure matching self '''
        return self.zeros()

    @abstractmethod
    def setZero(self) -> None:
        pass

    @abstractmethod
    def copyFrom(self, other) -> None:
        pass

    @abstractmethod
    def scaleInPlace(self, factor: float) -> None:
        pass

    @abstractmethod
    def addScaled(self, derivative, h: float) -> None:
        ''' self += h * derivative '''

    @abstractmethod
    def isFinite(self) -> bool:
        pass

    @abstractmethod
    def toArray(self) -> np.ndarray:
        ''' Flat array of all state components, in the same order as componentNames() '''

    @abstractmethod
    def componentNames(self) -> List[str]:
        pass

    def errorRatio(self, previous: "OdeState", errorEstimate, relTol: float, absTol: float) -> float:
        '''
            Scaled RMS error norm of errorEstimate, where self is the newly computed state and previous is the state at the start of the step
                sc_i = absTol + relTol * max(|y_i|, |yPrevious_i|)
                e = sqrt( mean( (err_i / sc_i)^2 ) )
            A step is acceptable if e <= 1
        '''
        y = np.abs(self.toArray())
        yPrev = np.abs(previous.toArray())
        scale = absTol + relTol*np.maximum(y, yPrev)
        scaledError = errorEstimate.toArray() / scale
        if len(scaledError) == 0:
            return 0.0
        return float(np.sqrt(np.mean(scaledError*scaledError)))

class ArrayState(OdeState):
    '''
        General-purpose state backed by a flat numpy array. Also serves as its own derivative type.
        Supports +, -, *, / operators for convenience (these allocate, the in-place methods do not)
    '''
    __slots__ = [ "values", "names" ]

    def __init__(self, values, names=None):
        self.values = np.array(values, dtype=float).reshape(-1)
        if names is None:
            self.names = [ "y{}".format(i) for i in range(len(self.values)) ]
        else:
            self.names = list(names)
            if len(self.names) != len(self.values):
                raise ValueError("Got {} component names for a state with {} components".format(len(self.names), len(self.values)))

    def zeros(self):
        return ArrayState(np.zeros_like(self.values), self.names)

    def setZero(self):
        self.values.fill(0.0)

    def copyFrom(self, other):
        self.values[:] = other.values

    def scaleInPlace(self, factor):
        self.values *= factor

    def addScaled(self, derivative, h):
        self.values += h*derivative.values

    def isFinite(self):
        return bool(np.all(np.isfinite(self.values)))

    def toArray(self):
        return self.values

    def componentNames(self):
        return self.names

    def copy(self):
        return ArrayState(self.values.copy(), self.names)

    #### Operators ####
    def __add__(self, other):
        return ArrayState(self.values + other.values, self.names)

    def __sub__(self, other):
        return ArrayState(self.values - other.values, self.names)

    def __mul__(self, scalar):
        return ArrayState(self.values * scalar, self.names)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        return ArrayState(self.values / scalar, self.names)

    def __neg__(self):
        return ArrayState(-self.values, self.names)

    def __len__(self):
        return len(self.values)

    def __getitem__(self, index):
        return self.values[index]

    def __setitem__(self, index, value):
        self.values[index] = value

    def __repr__(self):
        return "ArrayState({})".format(", ".join("{}={}".format(n, v) for n, v in zip(self.names, self.values)))

ArrayState.Derivative = ArrayState

class OdeModel(ABC):
    @abstractmethod
    def f(self, t: float, state: OdeState, derivative) -> None:
        ''' Computes d(state)/dt at time t, writes the result into derivative (overwriting its contents) '''

    def onStepAccepted(self, t: float, state: OdeState) -> None:
        ''' Called by the solver after every accepted step (and once for the initial state). Override to commit state to external objects '''
        pass

class FunctionModel(OdeModel):
    ''' Wraps a plain function: func(t, y) -> dy/dt, where y and dy/dt are numpy arrays '''

    def __init__(self, func: Callable):
        self.func = func

    def f(self, t, state, derivative):
        derivative.values[:] = self.func(t, state.values)
