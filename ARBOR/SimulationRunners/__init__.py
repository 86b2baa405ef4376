'''
Defines functions and classes that manage simulations.
Includes `Simulation`, which runs a single simulation, and `runMonteCarloSimulation`, which runs many samples of a probabilistic one.
'''

# Make the classes in all submodules importable directly from ARBOR.SimulationRunners
from .SingleSimulations import *
from .MonteCarlo import *

subModules = [ SingleSimulations, MonteCarlo ]

__all__ = [ ]

for subModule in subModules:
    __all__ += subModule.__all__
