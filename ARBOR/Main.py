'''
Script to run multibody simulations from the command line
If ARBOR has been installed with pip, this script is accessible through the 'arbor' command
'''

import argparse
import os
import sys
import time
from pathlib import Path

import ARBOR.IO.Logging as Logging
from ARBOR.IO import SimDefinition
from ARBOR.SimulationRunners import Simulation, runMonteCarloSimulation


def buildParser() -> argparse.ArgumentParser:
    ''' Builds the command-line argument parser using argparse '''
    parser = argparse.ArgumentParser(formatter_class=argparse.RawTextHelpFormatter, description="""
    Run individual ARBOR simulations, or Monte Carlo batches of them.
    Expects simulations to be defined by simulation definition files like those in ./ARBOR/Examples/Simulations
    See ARBOR.IO.simDefinition.defaultConfigValues for all available options and their default values
    """)

    parser.add_argument(
        "--parallel",
        action='store_true',
        help="Use to run Monte Carlo studies in parallel using ray."
    )
    parser.add_argument(
        "--silent",
        action='store_true',
        help="If present, does not output to console"
    )
    parser.add_argument(
        "simDefinitionFile",
        nargs='?',
        default="DoublePendulum.arbor",
        help="Path to a simulation definition (.arbor) file, or the name of one of the example cases"
    )

    return parser

def findSimDefinitionFile(providedPath):
    # It is already a path, just return it
    if os.path.isfile(providedPath):
        return providedPath

    # Track if it is a relative path, relative to a different location than the current terminal (example/default cases)
    installationLocation = Path(__file__).parent.parent
    alternateLocations = [
        installationLocation / "ARBOR/Examples/Simulations/",
    ]

    possibleRelativePaths = [ providedPath ]

    if len(providedPath) < 6 or providedPath[-6:] != ".arbor":
        # If it's just the case name (ex: 'DoublePendulum') try also adding the file extension
        possibleRelativePaths = [ providedPath, providedPath + ".arbor" ]

    for path in possibleRelativePaths:
        for alternateLocation in alternateLocations:
            absPath = str(alternateLocation / path)

            if os.path.isfile(absPath):
                # We've located the file!
                return absPath

    raise FileNotFoundError("Unable to locate simulation definition file: {}! Checked whether the path was relative to the current command line location, the ARBOR installation directory, or one of the example cases. To be sure that your file will be found, try using an absolute path.".format(providedPath))

def isMonteCarloSimulation(simDefinition) -> bool:
    try:
        nRuns = float(simDefinition.getValue("MonteCarlo.numberRuns"))
        if nRuns > 1:
            return True
    except (KeyError, ValueError):
        pass

    return False

def main(argv=None) -> int:
    '''
        Main function to run an ARBOR simulation.
        Expects to be called from the command line, usually using the `arbor` command

        For testing purposes, can also pass a list of command line arguments into the argv parameter
    '''
    startTime = time.time()

    # Parse command line call, check for errors
    parser = buildParser()
    args = parser.parse_args(argv)

    # Load simulation definition file
    simDefPath = findSimDefinitionFile(args.simDefinitionFile)
    simDef = SimDefinition(simDefPath, silent=args.silent)

    #### Run simulation(s) ####
    if isMonteCarloSimulation(simDef):
        if not args.parallel:
            nCores = 1
        else:
            import multiprocessing
            nCores = multiprocessing.cpu_count()

        runMonteCarloSimulation(simDefinition=simDef, silent=args.silent, nCores=nCores)

    elif args.parallel:
        raise ValueError("ERROR: Can only run Monte Carlo simulations in parallel. Set MonteCarlo.numberRuns > 1 or run without --parallel")

    else:
        # Run a regular, single simulation
        sim = Simulation(simDefinition=simDef, silent=args.silent)
        sim.run()

    Logging.removeLogger()

    if not args.silent:
        print("Run time: {:1.2f} seconds".format(time.time() - startTime))
        print("Exiting")

    return 0

if __name__ == "__main__":
    sys.exit(main())
