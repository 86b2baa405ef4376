import random
from copy import deepcopy

import numpy as np

from ARBOR.Errors import AlgebraError, EventError, IntegrationError, ModelError
from ARBOR.IO import Logging

from .SingleSimulations import Simulation, loadSimDefinition

__all__ = [ "runMonteCarloSimulation", "MonteCarloRunResult", "runSingleMonteCarloRun" ]

recordedErrors = (IntegrationError, AlgebraError, EventError, ModelError)
''' Errors that end a single Monte Carlo run without aborting the others '''

class MonteCarloRunResult():
    '''
        Outcome of a single Monte Carlo run

        * runIndex:     (int)
        * seed:         (int) random seed used to sample this run's parameters
        * success:      (bool)
        * errorType:    (str) name of the error class that ended the run, None if successful
        * message:      (str) error message, None if successful
        * finalTime:    (float) time of the last accepted step
        * finalState:   (np.ndarray) state values at finalTime, None if the run failed
        * componentNames: (list[str])
    '''
    __slots__ = [ "runIndex", "seed", "success", "errorType", "message", "finalTime", "finalState", "componentNames" ]

    def __init__(self, runIndex, seed, success, errorType=None, message=None, finalTime=None, finalState=None, componentNames=None):
        self.runIndex = runIndex
        self.seed = seed
        self.success = success
        self.errorType = errorType
        self.message = message
        self.finalTime = finalTime
        self.finalState = finalState
        self.componentNames = componentNames

    def __repr__(self):
        if self.success:
            return "MonteCarloRunResult(run {}, seed {}, success, finalTime={})".format(self.runIndex, self.seed, self.finalTime)
        return "MonteCarloRunResult(run {}, seed {}, failed with {}: {}, finalTime={})".format(self.runIndex, self.seed, self.errorType, self.message, self.finalTime)

def _getMasterSeed(simDefinition):
    try:
        return int(simDefinition.getValue("MonteCarlo.randomSeed"))
    except KeyError:
        return random.randrange(1000000)

def _createRunDefinition(simDefinition, seed):
    ''' Independent copy of the (read-only) template simulation definition, sampling with its own seed '''
    monteCarloLogger = simDefinition.monteCarloLogger
    simDefinition.monteCarloLogger = None # Loggers stay with the parent process
    try:
        runDefinition = deepcopy(simDefinition)
    finally:
        simDefinition.monteCarloLogger = monteCarloLogger

    runDefinition.setRandomSeed(seed)
    runDefinition.setValue("SimControl.loggingLevel", "0")
    return runDefinition

def runSingleMonteCarloRun(simDefinition, runIndex, seed, monteCarloLogger=None) -> MonteCarloRunResult:
    ''' Runs one sample of a Monte Carlo simulation. Recorded error types end the run and are returned in the result, all others propagate '''
    runDefinition = _createRunDefinition(simDefinition, seed)
    runDefinition.monteCarloLogger = monteCarloLogger
    simRunner = Simulation(simDefinition=runDefinition, silent=True)

    try:
        simRunner.run()
    except recordedErrors as e:
        return MonteCarloRunResult(runIndex, seed, False, type(e).__name__, str(e), simRunner.finalTime)

    finalState = simRunner.finalState
    return MonteCarloRunResult(runIndex, seed, True, finalTime=simRunner.finalTime, finalState=np.array(finalState.toArray()), componentNames=list(finalState.componentNames()))

def runMonteCarloSimulation(simDefinitionFilePath=None, simDefinition=None, silent=False, nCores=1):
    '''
        Runs MonteCarlo.numberRuns copies of a simulation, each sampling the probabilistic (_stdDev) parameters with seed = MonteCarlo.randomSeed + runIndex
        The template simulation definition is never modified.
        Returns a list of `MonteCarloRunResult`, ordered by run index
    '''
    simDefinition = loadSimDefinition(simDefinitionFilePath, simDefinition, silent)

    nRuns, masterSeed, mCLogger = _prepSim(simDefinition, silent)

    if nCores > 1:
        results = _runSimulations_Parallel(simDefinition, nRuns, masterSeed, mCLogger, nCores)
    else:
        results = _runSimulations_SingleThreaded(simDefinition, nRuns, masterSeed, mCLogger)

    _showResults(simDefinition, results, mCLogger)
    return results

def _prepSim(simDefinition, silent=False):
    # Get # Runs
    nRuns = int(simDefinition.getValue("MonteCarlo.numberRuns"))
    masterSeed = _getMasterSeed(simDefinition)

    # Set up Logging
    mCLogger = Logging.MonteCarloLogger(printToConsole=not silent)
    mCLogger.log("")
    mCLogger.log("Running Monte Carlo Simulation: {} runs, random seed: {}".format(nRuns, masterSeed))

    return nRuns, masterSeed, mCLogger

def _runSimulations_SingleThreaded(simDefinition, nRuns, masterSeed, mCLogger):
    results = []

    ### Run simulations ###
    for i in range(nRuns):
        # Start monte carlo log entry for this sim
        mCLogger.log("\nMonte Carlo Run #{}".format(i+1))

        result = runSingleMonteCarloRun(simDefinition, i, masterSeed + i, mCLogger)
        mCLogger.logRunResult(result)
        results.append(result)

    return results

def _runSimulations_Parallel(simDefinition, nRuns, masterSeed, mCLogger, nProcesses=1):
    '''
        Runs a probabilistic simulation several times
        Parallelized using [ray](https://github.com/ray-project/ray)
    '''
    import ray
    runRemoteSimulation = ray.remote(runSingleMonteCarloRun)

    results = []

    def postProcess(rayObject):
        ''' Gets sim results from worker, logs them '''
        result = ray.get(rayObject)
        mCLogger.logRunResult(result)
        results.append(result)

    # Reminder that ray must be initialized separately on a cluster, before running ray.init()
        # https://docs.ray.io/en/latest/cluster/index.html
    ray.init()

    try:
        template = _createRunDefinition(simDefinition, masterSeed)

        # Start simulations
        runningJobs = []
        for i in range(nRuns):
            # Don't start more sims than there are processes available
            if i >= nProcesses:
                completedJobs, runningJobs = ray.wait(runningJobs)
                for completedJob in completedJobs:
                    postProcess(completedJob)

            runningJobs.append(runRemoteSimulation.remote(template, i, masterSeed + i))

        # Wait for remaining sims to complete
        for remainingJob in runningJobs:
            postProcess(remainingJob)

    finally:
        ray.shutdown()

    results.sort(key=lambda r: r.runIndex)
    return results

def _showResults(simDefinition, results, mCLogger):
    nFailed = sum(1 for r in results if not r.success)

    mCLogger.log("")
    mCLogger.log("Monte Carlo results:")
    mCLogger.log("{} runs, {} successful, {} failed".format(len(results), len(results) - nFailed, nFailed))

    failureCounts = {}
    for result in results:
        if not result.success:
            failureCounts[result.errorType] = failureCounts.get(result.errorType, 0) + 1
    for errorType, count in sorted(failureCounts.items()):
        mCLogger.log("    {}: {}".format(errorType, count))

    successes = [ r for r in results if r.success ]
    if len(successes) > 0:
        mCLogger.logFinalStateStatistics(successes[0].componentNames, [ r.finalState for r in successes ])

    if simDefinition.fileName != None and int(simDefinition.getValue("SimControl.loggingLevel")) > 0:
        dotIndex = simDefinition.fileName.rfind('.')
        extensionFreeSimDefFileName = simDefinition.fileName[0:dotIndex]
        logFilePath = extensionFreeSimDefFileName + "_monteCarloLog_run"

        logPath = mCLogger.writeToFile(fileBaseName=logFilePath)
        print("Wrote Monte Carlo Log to: {}".format(logPath))
