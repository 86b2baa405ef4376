import os
import sys
import traceback

from ARBOR.ENV import environmentFactory
from ARBOR.IO import Logging, SimDefinition, SubDictReader, resultSinkFactory
from ARBOR.Motion import (ContinuousEvent, EventManager, OdeProblem,
                          PeriodicEvent, integratorFactory,
                          stepControllerFactory)
from ARBOR.Multibody import MultibodySystem
from tqdm import tqdm

__all__ = [ "Simulation", "runSimulation", "loadSimDefinition", "eventFactory" ]

def loadSimDefinition(simDefinitionFilePath=None, simDefinition=None, silent=False):
    ''' Loads a simulation definition file into a `ARBOR.IO.SimDefinition` object - accepts either a file path or a `ARBOR.IO.SimDefinition` object as input '''
    if simDefinition == None and simDefinitionFilePath != None:
        return SimDefinition(simDefinitionFilePath, silent=silent) # Parse simulation definition file

    elif simDefinition != None:
        return simDefinition # Use the SimDefinition that was passed in

    else:
        raise ValueError(""" Insufficient information to initialize a Simulation.
            Please provide either simDefinitionFilePath (string) or simDefinition (SimDefinition), which has been created from the desired Sim Definition file.
            If both are provided, the SimDefinition is used.""")

def _printState(t, state):
    if isinstance(sys.stdout, Logging.Logger):
        sys.stdout.logState(t, state)
    else:
        print(Logging.formatStateLine(t, state))

def eventFactory(eventDictReader, componentNames):
    '''
        Creates an event from a sub-dictionary of the Events dictionary:

            PeriodicEvent:  period, phase, action (printState / none)
            ThresholdEvent: component, value, direction, action (terminate / reverse / none)
                            Fires when state[component] - value crosses zero.
                            'reverse' multiplies state[velocityComponent] by -restitution

        Inputs:
            * eventDictReader:  (`ARBOR.IO.SubDictReader`)
            * componentNames:   (list[str]) names of the state components, in order
    '''
    name = eventDictReader.getDictName()
    eventClass = eventDictReader.getString("class")

    def componentIndex(key):
        component = eventDictReader.getString(key)
        try:
            return componentNames.index(component)
        except ValueError:
            raise ValueError("Event {}: state has no component: {}. Available components: {}".format(name, component, ", ".join(componentNames)))

    if eventClass == "PeriodicEvent":
        action = eventDictReader.getString("action")
        if action == "printState":
            callback = _printState
        elif action == "none":
            callback = None
        else:
            raise ValueError("Periodic event {}: action: {} not recognized. Options are: printState, none".format(name, action))
        return PeriodicEvent(eventDictReader.getFloat("period"), eventDictReader.getFloat("phase"), callback, name)

    elif eventClass == "ThresholdEvent":
        index = componentIndex("component")
        threshold = eventDictReader.getFloat("value")
        direction = eventDictReader.getInt("direction")
        action = eventDictReader.getString("action")

        def crossingFunction(t, state):
            return state.toArray()[index] - threshold

        terminal = False
        if action == "terminate":
            terminal = True
            def callback(t, state):
                print("Event {}: {} reached {} at t = {}, terminating".format(name, componentNames[index], threshold, t))

        elif action == "reverse":
            velocityIndex = componentIndex("velocityComponent")
            restitution = eventDictReader.getFloat("restitution")
            def callback(t, state):
                state.toArray()[velocityIndex] *= -restitution

        elif action == "none":
            callback = None

        else:
            raise ValueError("Threshold event {}: action: {} not recognized. Options are: terminate, reverse, none".format(name, action))

        return ContinuousEvent(crossingFunction, callback, direction, terminal, name)

    else:
        raise ValueError("Event {}: class: {} not recognized. Options are: PeriodicEvent, ThresholdEvent".format(name, eventClass))

class Simulation():

    def __init__(self, simDefinitionFilePath=None, simDefinition=None, silent=False):
        '''
            Inputs:

                * simDefinitionFilePath:  (string) path to simulation definition file
                * simDefinition:          (`ARBOR.IO.SimDefinition`) object that's already loaded and parsed the desired sim definition file
                * silent:                 (bool) toggles optional outputs to the console
        '''
        self.simDefinition = loadSimDefinition(simDefinitionFilePath, simDefinition, silent)
        ''' Instance of `ARBOR.IO.SimDefinition`. Defines the current simulation '''

        self.silent = silent
        ''' (bool) '''

        self.loggingLevel = int(self.simDefinition.getValue("SimControl.loggingLevel"))

        self.system = None
        ''' `ARBOR.Multibody.multibodySystem.MultibodySystem`, set in `Simulation.createSystem` '''
        self.statistics = None
        ''' `ARBOR.Motion.Solver.StepStatistics` of the last run '''
        self.finalTime = None
        self.finalState = None
        ''' Copy of the last state integrated (`ARBOR.Motion.odeState.ArrayState`) '''
        self.resultsFolder = None
        self.consoleOutputLog = []
        self._loggerInstalled = False

    def run(self, system=None):
        '''
            Runs simulation defined by self.simDefinition (which has parsed a simulation definition file)

            Returns:
                * result:       The result sink the simulation wrote to (`ARBOR.IO.ResultSinks.MemoryResult` / `FileResult` / `NoResult`)
                * logFilePaths: (list[string]) list of paths to all log files created by this simulation, None if SimControl.loggingLevel is 0
        '''
        simDefinition = self.simDefinition

        try:
            self._setUpConsoleLogging()
            if self.loggingLevel > 0:
                self.resultsFolder = self._createResultsFolder()

            if system == None:
                system = self.createSystem()
            self.system = system

            simControl = SubDictReader("SimControl", simDefinition)
            startTime = simControl.getFloat("startTime")
            endTime = simControl.getFloat("endTime")
            maxSteps = simControl.getInt("maxSteps")
            wallClockLimit = simControl.getFloat("wallClockLimit")
            initialState = system.initialState()

            problem = OdeProblem(system, self.createEvents(initialState.componentNames()))
            problem.withPostSimEvent(self._recordFinalState, name="recordFinalState")
            integrator = integratorFactory(simControl.getString("timeDiscretization"), initialState)
            controller = stepControllerFactory(simDefinition, integrator.tableau.errorOrder) if integrator.isAdaptive else None
            result = resultSinkFactory(simDefinition, initialState.componentNames(), self.resultsFolder)

            # Create progress bar
            progressBar = tqdm(total=endTime - startTime, disable=self.silent)
            if self._loggerInstalled:
                sys.stdout.continueWritingToTerminal = False

            print("Starting Simulation:")
            print("{:<12}{}".format("Time(s)", "  ".join("{:>12}".format(n) for n in initialState.componentNames())))

            try:
                result = problem.solve(
                    initialState,
                    (startTime, endTime),
                    integrator=integrator,
                    controller=controller,
                    resultSink=result,
                    dt=simControl.getFloat("timeStep"),
                    maxSteps=maxSteps,
                    wallClockLimit=wallClockLimit,
                    progressBar=progressBar,
                )
            except Exception:
                self.statistics = problem.statistics
                self.finalTime = system.lastCommitTime
                self._handleSimulationCrash()
                raise
            finally:
                progressBar.close()
                if self._loggerInstalled:
                    sys.stdout.continueWritingToTerminal = not self.silent

            self.statistics = problem.statistics
            print("Simulation Complete at t = {}: {}".format(self.finalTime, self.statistics))

            logFilePaths = self._postProcess(simDefinition)

        finally:
            if self._loggerInstalled:
                Logging.removeLogger()
                self._loggerInstalled = False

        return result, logFilePaths

    #### Pre-sim ####
    def createSystem(self) -> MultibodySystem:
        '''
            Builds the multibody system (and its `ARBOR.ENV.Environment`) described by the simulation definition.
            Can be called by external classes to obtain a system without running a simulation (used a lot this way in test cases).
        '''
        self.environment = environmentFactory(self.simDefinition)
        return MultibodySystem.fromSimDefinition(self.simDefinition, self.environment)

    def createEvents(self, componentNames) -> EventManager:
        ''' Creates an `ARBOR.Motion.Events.EventManager` holding every event defined in the Events dictionary '''
        eventManager = EventManager.fromSimDefinition(self.simDefinition)
        for eventDict in sorted(self.simDefinition.getImmediateSubDicts("Events")):
            eventManager.addEvent(eventFactory(SubDictReader(eventDict, self.simDefinition), list(componentNames)))
        return eventManager

    def _setUpConsoleLogging(self):
        if self.loggingLevel > 0:
            # Set up logging so that the output of any print calls after this point is captured in consoleOutputLog
            self.consoleOutputLog = []
            self.logger = Logging.Logger(self.consoleOutputLog, continueWritingToTerminal=not self.silent)
            sys.stdout = self.logger
            self._loggerInstalled = True

            # Output system info to console and to log
            Logging.getSystemInfo(printToConsole=True)
            # Output sim definition file and default value dict to the log only
            self.consoleOutputLog += Logging.getSimDefinitionAndDefaultValueDictsForOutput(simDefinition=self.simDefinition, printToConsole=False)

        elif self.silent:
            # No intention of writing things to a log file, just prevent them from being printed to the terminal
            self.logger = Logging.Logger([], continueWritingToTerminal=False)
            sys.stdout = self.logger
            self._loggerInstalled = True

    def _createResultsFolder(self):
        ''' Creates a new numbered folder for the results of the current simulation '''
        if self.simDefinition.fileName != None:
            periodIndex = self.simDefinition.fileName.rfind('.')
            resultsFolderBaseName = self.simDefinition.fileName[:periodIndex] + "_Run"
        else:
            resultsFolderBaseName = "ARBORSimulation_Run"

        def tryCreateResultsFolder(resultsFolderBaseName):
            resultsFolderName = Logging.findNextAvailableNumberedFileName(fileBaseName=resultsFolderBaseName, extension="")

            try:
                os.mkdir(resultsFolderName)
                return resultsFolderName

            except FileExistsError:
                # End up here if another process created the same results folder
                    # (other process runs os.mkdir b/w when this one runs findNextAvailableNumberedFileName and os.mkdir)
                    # Should only happen during parallel runs
                return ""

        createdResultsFolder = tryCreateResultsFolder(resultsFolderBaseName)
        iterations = 0
        while createdResultsFolder == "" and iterations < 50:
            createdResultsFolder = tryCreateResultsFolder(resultsFolderBaseName)
            iterations += 1

        if createdResultsFolder == "":
            raise ValueError("Repeated error (50x): unable to create a results folder: {}.".format(resultsFolderBaseName))

        return createdResultsFolder

    #### During sim ####
    def _recordFinalState(self, t, state):
        self.finalTime = t
        self.finalState = state.copy()

    def _handleSimulationCrash(self):
        ''' After a simulation crashes, tries to create log files anyways and prints a stack trace. The caller re-raises the error '''
        print("ERROR: Simulation Crashed at t = {}, Aborting".format(self.finalTime))
        print("Attempting to save log files")
        try:
            self._postProcess(self.simDefinition)
        except OSError as e:
            print("Unable to save log files: {}".format(e))

        print(traceback.format_exc())

    #### Post-sim ####
    def _postProcess(self, simDefinition):
        if not self.silent:
            simDefinition.printDefaultValuesUsed() # Print these out before logging, to include them in the log

        simDefinition.printUnusedKeys()

        return self._logSimulationResults()

    def _logSimulationResults(self):
        ''' Writes the console output to the results folder (if SimControl.loggingLevel > 0) '''
        if self.loggingLevel > 0 and self.resultsFolder != None:
            logFilePaths = []

            outputType = self.simDefinition.getValue("SimControl.Output.type")
            if outputType == "File":
                logFilePaths.append(os.path.join(self.resultsFolder, self.simDefinition.getValue("SimControl.Output.fileName")))

            consoleOutputPath = os.path.join(self.resultsFolder, "consoleOutput.txt")
            print("Writing log file: {}".format(consoleOutputPath))
            with open(consoleOutputPath, 'w+') as file:
                file.writelines(self.consoleOutputLog)
            logFilePaths.append(consoleOutputPath)

            return logFilePaths

        return None

def runSimulation(simDefinitionFilePath=None, simDefinition=None, silent=False):
    sim = Simulation(simDefinitionFilePath, simDefinition, silent)
    return sim.run()
