'''
Input/Output functionality:

* Reading/Writing Simulation Definition Files
* Storing simulation results in memory or in csv files
* Logging simulations (`ARBOR.IO.Logging`)
'''
# Make the classes in all submodules importable directly from ARBOR.IO
from .simDefinition import *
from .subDictReader import *
from .ResultSinks import *

subModules = [ simDefinition, subDictReader, ResultSinks ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
