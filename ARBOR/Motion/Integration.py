'''
Explicit Runge-Kutta integration, driven by Butcher tableaus. Used by `ARBOR.Motion.Solver.OdeProblem` to advance `ARBOR.Motion.odeState.OdeState` objects in time.

Tableaus are written out below as lists of lists, as follows:
    Expected Format (Example is RK4 - 3/8 method, see conventional Butcher tableau here: https://en.wikipedia.org/wiki/List_of_Runge%E2%80%93Kutta_methods#3/8-rule_fourth-order_method):
        [                                   # Top 0 row ommitted
            [ 1/3, 1/3 ],                   # Row 1: all coefficients sequentially, first column is current time (c_i), remainder are a_{i1} to a_{in} (derivative coefficients)
            [ 2/3, -1/3, 1.0 ],             # Row 2: ''
            [ 1.0, 1.0, -1.0, 1.0 ],        # Row 3: ''
            [ 1/8, 3/8, 3/8, 1/8 ]          # Row 4: (result calculation row) - empty space on left ignored, just enter all coefficients
        ]

    For adaptive methods, the bottom two rows are 'result calculation rows'
        The second last row is expected to represent the higher-accuracy method
        The last row is expected to represent the lower-accuracy method
        The difference between the results obtained from the two methods becomes the error estimate

    These are converted to `ButcherTableau` objects (a, b, c, b2 arrays) when an integrator is created

The integrator allocates all of its stage buffers once, when it is created, and afterwards only modifies them in place.
Learn about Butcher Tableaus here: https://en.wikipedia.org/wiki/Runge%E2%80%93Kutta_methods
'''
import math

import numpy as np

from ARBOR.Errors import NonFiniteState

__all__ = [ "ButcherTableau", "checkButcherTableau", "getButcherTableau", "butcherTableaus", "RungeKuttaIntegrator", "IntegrationResult", "integratorFactory" ]

#### Tableau library ####
# name: (rows, order, errorOrder)
butcherTableaus = {
    "Euler": ([
            [ 1.0 ]
        ], 1, None),
    "RK2Midpoint": ([
            [ 0.5, 0.5 ],
            [ 0,   1   ]
        ], 2, None),
    "RK2Heun": ([
            [ 1, 1 ],
            [ 0.5, 0.5 ]
        ], 2, None),
    "RK4": ([
            [ 0.5, 0.5 ],
            [ 0.5, 0, 0.5 ],
            [ 1, 0, 0, 1 ],
            [ 1/6, 1/3, 1/3, 1/6 ]
        ], 4, None),
    "RK4_3/8": ([
            [ 1/3, 1/3 ],
            [ 2/3, -1/3, 1.0 ],
            [ 1.0, 1.0, -1.0, 1.0 ],
            [ 1/8, 3/8, 3/8, 1/8 ]
        ], 4, None),
    "RK12Adaptive": ([
            [ 0.5, 0.5 ],
            [ 0.0, 1.0 ],
            [ 1.0, 0.0 ]
        ], 2, 1),
    # Bogacki-Shampine method
    "RK23Adaptive": ([
            [ 0.5, 0.5 ],
            [ 3/4, 0.0, 3/4 ],
            [ 1.0, 2/9, 1/3, 4/9 ],
            [ 2/9, 1/3, 4/9, 0.0 ],
            [ 7/24, 1/4, 1/3, 1/8 ]
        ], 3, 2),
    # Dormand-Prince RK5(4)7FM method
    "RK45Adaptive": ([
            [ 1/5, 1/5 ],
            [ 3/10, 3/40, 9/40 ],
            [ 4/5, 44/45, -56/15, 32/9 ],
            [ 8/9, 19372/6561, -25360/2187, 64448/6561, -212/729 ],
            [ 1.0, 9017/3168, -355/33, 46732/5247, 49/176, -5103/18656 ],
            [ 1.0, 35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84 ],
            [ 35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84, 0.0 ], # 5th order
            [ 5179/57600, 0.0, 7571/16695, 393/640, -92097/339200, 187/2100, 1/40 ] # 4th order
        ], 5, 4),
    # Dormand-Prince RK8(7)13M method (rational approximation)
    "RK78Adaptive": ([
            [ 1/18, 1/18 ],
            [ 1/12, 1/48, 1/16 ],
            [ 1/8, 1/32, 0, 3/32 ],
            [ 5/16, 5/16, 0, -75/64, 75/64 ],
            [ 3/8, 3/80, 0, 0, 3/16, 3/20 ],
            [ 59/400, 29443841/614563906, 0, 0, 77736538/692538347, -28693883/1125000000, 23124283/1800000000 ],
            [ 93/200, 16016141/946692911, 0, 0, 61564180/158732637, 22789713/633445777, 545815736/2771057229, -180193667/1043307555 ],
            [ 5490023248/9719169821, 39632708/573591083, 0, 0, -433636366/683701615, -421739975/2616292301, 100302831/723423059, 790204164/839813087, 800635310/3783071287 ],
            [ 13/20, 246121993/1340847787, 0, 0, -37695042795/15268766246, -309121744/1061227803, -12992083/490766935, 6005943493/2108947869, 393006217/1396673457, 123872331/1001029789 ],
            [ 1201146811/1299019798, -1028468189/846180014, 0, 0, 8478235783/508512852, 1311729495/1432422823, -10304129995/1701304382, -48777925059/3047939560, 15336726248/1032824649, -45442868181/3398467696, 3065993473/597172653 ],
            [ 1, 185892177/718116043, 0, 0, -3185094517/667107341, -477755414/1098053517, -703635378/230739211, 5731566787/1027545527, 5232866602/850066563, -4093664535/808688257, 3962137247/1805957418, 65686358/487910083 ],
            [ 1, 403863854/491063109, 0, 0, -5068492393/434740067, -411421997/543043805, 652783627/914296604, 11173962825/925320556, -13158990841/6184727034, 3936647629/1978049680, -160528059/685178525, 248638103/1413531060, 0 ],
            [ 14005451/335480064, 0, 0, 0, 0, -59238493/1068277825, 181606767/758867731,   561292985/797845732,   -1041891430/1371343529,  760417239/1151165299, 118820643/751138087, -528747749/2220607170,  1/4], # 8th order
            [ 13451932/455176623, 0, 0, 0, 0, -808719846/976000145, 1757004468/5645159321, 656045339/265891186,   -3867574721/1518517206,   465885868/322736535,  53011238/667516719,                  2/45,    0] # 7th order
        ], 8, 7),
}

class ButcherTableau():
    '''
        Explicit Runge-Kutta method coefficients:
            * a: (s x s) strictly lower-triangular stage coefficients
            * b: (s) result weights
            * c: (s) stage times (fractions of the time step)
            * b2: (s) weights of the embedded (lower-order) result, None for fixed-step methods
            * order / errorOrder: order of the main / embedded result
    '''
    def __init__(self, a, b, c, b2=None, order=1, errorOrder=None, name=""):
        self.a = np.array(a, dtype=float)
        self.b = np.array(b, dtype=float)
        self.c = np.array(c, dtype=float)
        self.b2 = None if b2 is None else np.array(b2, dtype=float)
        self.order = order
        self.errorOrder = errorOrder
        self.name = name

        self.nStages = len(self.b)
        self.firstSameAsLast = self.nStages > 1 and self.c[-1] == 1.0 and np.array_equal(self.a[-1, :], self.b)
        ''' If true, the last stage derivative of an accepted step equals the first stage derivative of the next step '''

        checkButcherTableau(self)

    @classmethod
    def fromRows(cls, rows, order, errorOrder=None, name=""):
        ''' Creates a ButcherTableau from the row format defined at the top of this file '''
        nResultRows = 1 if errorOrder is None else 2
        stageRows = rows[:-nResultRows]
        nStages = len(stageRows) + 1

        a = np.zeros((nStages, nStages))
        c = np.zeros(nStages)
        for i, row in enumerate(stageRows):
            c[i+1] = row[0]
            a[i+1, :len(row)-1] = row[1:]

        def padded(row):
            result = np.zeros(nStages)
            result[:len(row)] = row
            return result

        b = padded(rows[-nResultRows])
        b2 = padded(rows[-1]) if errorOrder is not None else None
        return cls(a, b, c, b2, order, errorOrder, name)

    @property
    def isAdaptive(self) -> bool:
        return self.b2 is not None

def checkButcherTableau(tableau):
    ''' Checks that the Butcher tableau passed in represents a consistent, explicit R-K method. Raises ValueError if it doesn't '''
    s = tableau.nStages
    if tableau.a.shape != (s, s) or tableau.c.shape != (s,):
        raise ValueError("Inconsistent Butcher tableau dimensions: a{}, b{}, c{}".format(tableau.a.shape, tableau.b.shape, tableau.c.shape))

    if np.any(np.triu(tableau.a) != 0):
        raise ValueError("Butcher tableau 'a' coefficients must be strictly lower triangular for an explicit method")

    sumB = sum(tableau.b)
    if not math.isclose(sumB, 1.0):
        raise ValueError("Sum of 'b' coefficients ({}) of butcher tableau don't = 1".format(sumB))

    if tableau.b2 is not None:
        sumB2 = sum(tableau.b2)
        if not math.isclose(sumB2, 1.0):
            raise ValueError("Sum of embedded 'b' coefficients ({}) of butcher tableau don't = 1".format(sumB2))

    for i in range(s):
        # The c coefficient should be equal to the sum of all the a coefficients in its row
        sumA = sum(tableau.a[i, :])
        if not math.isclose(tableau.c[i], sumA, abs_tol=1e-12):
            raise ValueError("Sum of 'a' coefficients ({}) of butcher tableau row {} don't = 'c' coefficient from the same row {}".format(sumA, i, tableau.c[i]))

def getButcherTableau(integrationMethod: str) -> ButcherTableau:
    try:
        rows, order, errorOrder = butcherTableaus[integrationMethod]
    except KeyError:
        raise ValueError("Integration method: {} not implemented. Options are: {}".format(integrationMethod, ", ".join(butcherTableaus.keys())))
    return ButcherTableau.fromRows(rows, order, errorOrder, name=integrationMethod)

def integratorFactory(integrationMethod="RK45Adaptive", stateTemplate=None):
    '''
        Returns a `RungeKuttaIntegrator`

        Inputs:
            * integrationMethod: (str) Name of integration method: Examples = "Euler", "RK4", "RK23Adaptive", and "RK45Adaptive"
            * stateTemplate: (`ARBOR.Motion.odeState.OdeState`) state with the same structure as the ones that will be integrated, used to allocate stage buffers
    '''
    if stateTemplate is None:
        raise ValueError("A state template is required to allocate integrator buffers")
    return RungeKuttaIntegrator(getButcherTableau(integrationMethod), stateTemplate)

class IntegrationResult():
    __slots__ = [ 'newValue', 'dt', 'errorRatio' ]

    def __init__(self, newValue, dt, errorRatio=0.0):
        '''
            newValue:       Value of the integrated state at time initTime+dt. This is one of the integrator's buffers, copy it before stepping again.
            dt:             The size of the time step taken
            errorRatio:     For adaptive methods, scaled error estimate (acceptable if <= 1). Otherwise 0
        '''
        self.newValue = newValue
        self.dt = dt
        self.errorRatio = errorRatio

class RungeKuttaIntegrator():
    '''
        Integrates any `OdeState` using an explicit R-K method.
        For adaptive tableaus, the error estimate is h*sum((b_j - b2_j)*k_j), measured with `OdeState.errorRatio`
    '''

    def __init__(self, tableau: ButcherTableau, stateTemplate, relTol=1e-3, absTol=1e-6):
        self.tableau = tableau
        self.method = tableau.name
        self.relTol = relTol
        self.absTol = absTol

        # Preallocated buffers
        self.k = [ stateTemplate.newDerivative() for _ in range(tableau.nStages) ]
        self.stageState = stateTemplate.zeros()
        self.newState = stateTemplate.zeros()
        self.errorEstimate = stateTemplate.zeros() if tableau.isAdaptive else None

        self.functionEvaluations = 0
        self._firstStageTime = None # Time at which self.k[0] holds a valid derivative, None if invalid

    @property
    def isAdaptive(self) -> bool:
        return self.tableau.isAdaptive

    def setTolerances(self, relTol, absTol):
        self.relTol = relTol
        self.absTol = absTol

    def invalidateCache(self):
        ''' Must be called whenever the state to be integrated is modified outside of the integrator (ex. by an event) '''
        self._firstStageTime = None

    def step(self, model, t: float, x, h: float) -> IntegrationResult:
        '''
            Computes a single step of size h from (t, x), without modifying x.
            k[0] is reused if it was computed for the same (t, x) by a previous call (rejected step / FSAL)

            Then for stage i, k_i = f(t + c_i*h, x + h*(a_i1*k_1 + a_i2*k_2 + ...))
            Final result is x + h*(b_1*k_1 + b_2*k_2 + ...)
        '''
        tab = self.tableau
        k = self.k

        if self._firstStageTime != t:
            self._evaluate(model, t, x, k[0], 0)
            self._firstStageTime = t

        stage = self.stageState
        for i in range(1, tab.nStages):
            stage.copyFrom(x)
            for j in range(i):
                if tab.a[i,j] != 0:
                    stage.addScaled(k[j], h*tab.a[i,j])
            self._evaluate(model, t + tab.c[i]*h, stage, k[i], i)

        newState = self.newState
        newState.copyFrom(x)
        for j in range(tab.nStages):
            if tab.b[j] != 0:
                newState.addScaled(k[j], h*tab.b[j])

        if not newState.isFinite():
            raise NonFiniteState("Non-finite state computed by {} step from t = {} with dt = {}".format(self.method, t, h))

        if tab.isAdaptive:
            errorEstimate = self.errorEstimate
            errorEstimate.setZero()
            for j in range(tab.nStages):
                weight = tab.b[j] - tab.b2[j]
                if weight != 0:
                    errorEstimate.addScaled(k[j], h*weight)
            errorRatio = newState.errorRatio(x, errorEstimate, self.relTol, self.absTol)
        else:
            errorRatio = 0.0

        return IntegrationResult(newState, h, errorRatio)

    def acceptStep(self, newTime: float):
        '''
            Called after the result of the last step has been copied into the solution state at newTime.
            For FSAL methods, the last stage derivative becomes the first stage derivative of the next step
        '''
        if self.tableau.firstSameAsLast:
            self.k[0], self.k[-1] = self.k[-1], self.k[0]
            self._firstStageTime = newTime
        else:
            self._firstStageTime = None

    def _evaluate(self, model, t, state, derivative, stageIndex):
        model.f(t, state, derivative)
        self.functionEvaluations += 1
        if not derivative.isFinite():
            raise NonFiniteState("Non-finite derivative computed at t = {} ({} stage {})".format(t, self.method, stageIndex+1))
