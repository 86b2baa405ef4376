'''
Classes and functions for creating simulation logs for regular simulations (Logger) and Monte Carlo simulations (MonteCarloLogger)

State lines (see `formatStateLine`) are fixed-width: time in the first column, then one column per state component, in the order given by `ARBOR.Motion.odeState.OdeState.componentNames`
'''

import os
import subprocess
import sys

import numpy as np

__all__ = [ "Logger", "MonteCarloLogger", "removeLogger", "findNextAvailableNumberedFileName", "getSystemInfo", "getSimDefinitionAndDefaultValueDictsForOutput",
    "formatStateHeader", "formatStateLine" ]

STATE_COLUMN_WIDTH = 14

def formatStateHeader(componentNames) -> str:
    ''' Column titles matching `formatStateLine`. Names longer than a column are truncated from the left, to keep the component name '''
    columns = [ "t" ] + [ name[-(STATE_COLUMN_WIDTH-1):] for name in componentNames ]
    return "".join("{:>{w}}".format(column, w=STATE_COLUMN_WIDTH) for column in columns)

def formatStateLine(t, state) -> str:
    values = state.toArray() if hasattr(state, "toArray") else np.asarray(state)
    return "{:>{w}.6f}".format(t, w=STATE_COLUMN_WIDTH) + "".join("{:>{w}.6g}".format(v, w=STATE_COLUMN_WIDTH) for v in values)

class Logger():
    '''
        Class intended to capture calls to print() and copy their contents to a list of strings, while still (optionally) printing them to the console

        Ex:
            logger = Logger(stringResultList)
            sys.stdout = logger

        Now anything passed into print() will be printed to the console and stored in stringResultArray
    '''

    def __init__(self, stringListToCopyTo, continueWritingToTerminal=True):
        self.terminal = sys.__stdout__
        self.log = stringListToCopyTo
        self.currentMessage = ""
        self.continueWritingToTerminal = continueWritingToTerminal
        self.stateColumns = None

    def write(self, msg):
        if self.continueWritingToTerminal:
            self.terminal.write(msg)
        self.log.append(msg)

    def flush(self):
        self.terminal.flush()

    def writeLine(self, msg=None):
        if msg == None:
            msg = self.currentMessage + "\n"
            self.currentMessage = ""

        if self.continueWritingToTerminal:
            self.terminal.write(msg)
        self.log.append(msg)

    def addToLine(self, msg):
        self.currentMessage += msg

    def logState(self, t, state):
        ''' Writes a `formatStateLine` line. Prints the column titles first if the state's components differ from the previous call '''
        names = list(state.componentNames())
        if names != self.stateColumns:
            self.stateColumns = names
            self.writeLine(formatStateHeader(names) + "\n")
        self.writeLine(formatStateLine(t, state) + "\n")

    def changeLoggingTarget(self, newTarget):
        self.log = newTarget

    def writeLogToFile(self, filePath, overwrite=False):
        if overwrite or not os.path.exists(filePath):
            with open(filePath, 'w+') as file:
                file.writelines(self.log)

class MonteCarloLogger():
    '''    log function write lines to the console/mainSimulation Log, and to the monteCarloLog    '''
    def __init__(self, monteCarloLog=None, printToConsole=True):
        if monteCarloLog == None:
            self.monteCarloLog = []
        else:
            self.monteCarloLog = monteCarloLog
        self.printToConsole = printToConsole
        self.monteCarloLog += getSystemInfo()

    def log(self, string):
        self.monteCarloLog.append(string)
        if self.printToConsole:
            print(string)

    def logRunResult(self, result):
        ''' Logs an `ARBOR.SimulationRunners.MonteCarlo.MonteCarloRunResult`, 1-based run numbers '''
        if result.success:
            self.log("Run #{} (seed {}) completed at t = {}".format(result.runIndex+1, result.seed, result.finalTime))
        else:
            self.log("Run #{} (seed {}) failed at t = {}: {}: {}".format(result.runIndex+1, result.seed, result.finalTime, result.errorType, result.message))

    def logFinalStateStatistics(self, componentNames, finalStates):
        ''' Logs the mean and (population) standard deviation of each state component over all successful runs '''
        finalStates = np.asarray(finalStates, dtype=float)
        means = np.mean(finalStates, axis=0)
        stdDevs = np.std(finalStates, axis=0)
        self.log("Final state (mean, standard deviation):")
        for name, mean, stdDev in zip(componentNames, means, stdDevs):
            self.log("    {:<20} {:>14.6g} {:>14.6g}".format(name, mean, stdDev))
        return means, stdDevs

    def writeToFile(self, fileBaseName="monteCarloLog", filePath=None):
        '''
            Pass in fileBaseName OR filePath.
            If a filePath is provided, the file will be written to that path. Anything already there will be overwritten.
            If a fileBaseName is provided and no filePath is provided, the log will be written to a fileName found by calling findNextAvailableFileName(), no files will be overwritten.
        '''
        if filePath == None:
            filePath = findNextAvailableNumberedFileName(fileBaseName=fileBaseName)

        with open(filePath, 'w+') as file:
            for line in self.monteCarloLog:
                if len(line) == 0 or line[-1] != "\n":
                    line = line + "\n"
                file.write(line)

        return filePath

def removeLogger():
    sys.stdout = sys.__stdout__

def findNextAvailableNumberedFileName(fileBaseName="monteCarloLog", extension=".txt"):
    '''
        If fileBaseName is simLog, returns the first of: simLog1, simLog2, simLog3, etc... that isn't already a file.
        Returns a string of the form fileBaseName + Number + extension
    '''
    fileNumber = 0
    filePath = None
    while filePath == None or os.path.exists(filePath):
        fileNumber += 1
        filePath = fileBaseName + str(fileNumber) + extension

    return filePath

def getSystemInfo(printToConsole=False):
    ''' Returns string array containing info about git status, library versions, machine type, date, etc... '''

    from datetime import datetime
    from platform import platform, python_version

    import ARBOR

    result = []
    result.append("# ARBOR {}, Python {}, numpy {}".format(ARBOR.__version__, python_version(), np.__version__))

    try:
        # Add current git status
        currentCommit = subprocess.check_output(['git', 'rev-parse', 'HEAD'], stderr=subprocess.DEVNULL).decode()[:-1]
        currentBranch = subprocess.check_output(['git', 'rev-parse', '--abbrev-ref', 'HEAD'], stderr=subprocess.DEVNULL).decode()[:-1]
        result.append("# Git branch: {}, latest commit: {}".format(currentBranch, currentCommit))
    except (OSError, subprocess.CalledProcessError):
        result.append("# Could not obtain current branch/commit info from git")

    # Add date/time
    now = datetime.now().strftime("%d/%m/%Y %H:%M:%S")
    result.append("# {}".format(now))

    # Platform info
    try:
        user = os.getlogin()
        result.append("# User: {}".format(user))
        operatingsystem = platform()
        result.append("# OS: {}".format(operatingsystem))
    except OSError:
        result.append("# Unable to obtain user/platform info") # Happens on CI machines without a login terminal

    if printToConsole:
        for line in result:
            print(line)

    return result

def getSimDefinitionAndDefaultValueDictsForOutput(simDefinition, printToConsole=True):
    ''' Returns a string array '''

    stringResultArray = []

    # Add config file path
    print("# Using sim definition file: {}".format(simDefinition.fileName))

    # Add config file
    stringResultArray.append("\n---- Start Sim Definition File ----\n")
    stringResultArray.append(str(simDefinition))
    stringResultArray.append("\n---- End Sim Definition File ----\n\n")

    # Add default value dict
    from pprint import pformat
    from ARBOR.IO.simDefinition import defaultConfigValues

    stringResultArray.append("\n---- Start Default Value Dictionary ----\n")
    stringResultArray.append(pformat(defaultConfigValues))
    stringResultArray.append("\n---- End Default Value Dictionary ----\n\n")

    if printToConsole:
        for line in stringResultArray:
            print(line)

    return stringResultArray
