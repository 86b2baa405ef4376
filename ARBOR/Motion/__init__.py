'''
Generalized time integration and rigid body kinematics.

Fundamental data types used throughout the simulator are defined in:

* `SpatialAlgebra` - 6D motion/force vectors, spatial transforms and spatial inertias
* `Rotations` - quaternion / rotation matrix utilities

State-type-agnostic integration is built up from:

* `odeState` - `OdeState`, the vector space contract for integrable states, `OdeModel` - derivative functions
* `Integration` - Butcher tableaus and the Runge-Kutta stepper
* `StepControl` - adaptive time step controllers
* `Events` - periodic and zero-crossing events
* `Solver` - `OdeProblem`, the main time integration loop
'''
# Make the classes in all submodules importable directly from ARBOR.Motion
from .SpatialAlgebra import *
from .Rotations import *
from .odeState import *
from .Integration import *
from .StepControl import *
from .Events import *
from .Solver import *

subModules = [ SpatialAlgebra, Rotations, odeState, Integration, StepControl, Events, Solver ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
