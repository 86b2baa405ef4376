'''
ARBOR - Articulated Rigid-BOdy Runner

Simulation entry point: `ARBOR.Main.main`.  
`ARBOR.Main.main` initializes one of the runners in `ARBOR.SimulationRunners` to drive/manage the simulation.
The simulation runner then builds an `ARBOR.Multibody.multibodySystem.MultibodySystem` from a simulation definition file and integrates it
with the Runge-Kutta framework in `ARBOR.Motion`.

See README.md for info about:  

* Installation/setup  
* Running simulations  
* Running the unit tests

See `ARBOR.IO.simDefinition.defaultConfigValues` for details about all available options
'''

__version__ = "0.1.0"

__pdoc__ = {
    'Examples': False
}
