'''
Environmental modelling: main class is `ARBOR.ENV.Environment`.
`ARBOR.ENV.Environment` wraps the gravity models, magnetic field models and ephemeris models, and computes gravity-gradient torques.
'''
# Make the classes in all submodules importable directly from ARBOR.ENV
from .GravityModelling import *
from .MagneticFieldModelling import *
from .EphemerisModelling import *
from .environment import *

subModules = [ environment, GravityModelling, MagneticFieldModelling, EphemerisModelling ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
