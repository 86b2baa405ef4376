'''
Destinations for simulation results. `ARBOR.Motion.Solver.OdeProblem.solve` calls save(t, state) once for the initial state and once after every accepted step,
then calls finalize() once (also when the simulation crashes).

* `MemoryResult`: numpy buffers, capacity doubles when full, truncated to the number of saved rows on finalize()
* `FileResult`: csv file with a header row (t, component names...) followed by one row per saved state. Rows are buffered and flushed periodically
* `NoResult`: discards everything
'''
import csv
import os

import numpy as np

__all__ = [ "MemoryResult", "FileResult", "NoResult", "resultSinkFactory", "loadResultFile" ]

class MemoryResult():

    def __init__(self, componentNames, initialCapacity=64):
        if initialCapacity < 1:
            raise ValueError("initialCapacity must be >= 1, got: {}".format(initialCapacity))
        self.componentNames = list(componentNames)
        self.capacity = int(initialCapacity)
        self.count = 0
        self.finalized = False
        self._times = np.zeros(self.capacity)
        self._values = np.zeros((self.capacity, len(self.componentNames)))

    def save(self, t, state):
        if self.finalized:
            raise ValueError("Can't save to a finalized MemoryResult")

        if self.count == self.capacity:
            self._grow()

        self._times[self.count] = t
        self._values[self.count, :] = state.toArray()
        self.count += 1

    def _grow(self):
        newCapacity = 2*self.capacity
        newTimes = np.zeros(newCapacity)
        newTimes[:self.count] = self._times[:self.count]
        newValues = np.zeros((newCapacity, self._values.shape[1]))
        newValues[:self.count, :] = self._values[:self.count, :]
        self._times, self._values = newTimes, newValues
        self.capacity = newCapacity

    def finalize(self):
        ''' Releases unused capacity. Safe to call more than once '''
        if not self.finalized:
            self._times = self._times[:self.count].copy()
            self._values = self._values[:self.count, :].copy()
            self.capacity = self.count
            self.finalized = True

    #### Access ####
    @property
    def t(self) -> np.ndarray:
        return self._times[:self.count]

    @property
    def y(self) -> np.ndarray:
        ''' 2D array, one row per saved state '''
        return self._values[:self.count, :]

    def __len__(self):
        return self.count

    def getState(self, index):
        from ARBOR.Motion.odeState import ArrayState
        return ArrayState(self.y[index, :].copy(), self.componentNames)

    def getComponent(self, name: str) -> np.ndarray:
        try:
            return self.y[:, self.componentNames.index(name)]
        except ValueError:
            raise KeyError("Component: {} not found. Available components: {}".format(name, self.componentNames))

    def toDataFrame(self):
        import pandas as pd
        dataFrame = pd.DataFrame(self.y, columns=self.componentNames)
        dataFrame.insert(0, "t", self.t)
        return dataFrame

class FileResult():
    '''
        Writes results to a csv file:
            t,joint1.angle,joint1.rate
            0.000000,0.100000,0.000000
            ...

        Inputs:
            * filePath:         (str)
            * componentNames:   (list[str]) column headers after 't'
            * numberFormat:     (str) "fixed" or "scientific"
            * precision:        (int) number of digits after the decimal point
            * flushInterval:    (int) buffered rows are written to disk every flushInterval rows

        Can be used as a context manager, which finalizes the file on exit
    '''
    def __init__(self, filePath, componentNames, numberFormat="fixed", precision=6, flushInterval=100):
        if numberFormat == "fixed":
            self.formatString = "{:." + str(int(precision)) + "f}"
        elif numberFormat == "scientific":
            self.formatString = "{:." + str(int(precision)) + "e}"
        else:
            raise ValueError("Number format: {} not recognized. Try 'fixed' or 'scientific'".format(numberFormat))

        if flushInterval < 1:
            raise ValueError("flushInterval must be >= 1, got: {}".format(flushInterval))

        self.filePath = filePath
        self.componentNames = list(componentNames)
        self.flushInterval = int(flushInterval)
        self.count = 0
        self.finalized = False
        self._buffer = []

        self._file = open(filePath, 'w', newline='')
        self._writer = csv.writer(self._file)
        self._writer.writerow([ "t" ] + self.componentNames)

    def save(self, t, state):
        if self.finalized:
            raise ValueError("Can't save to a finalized FileResult: {}".format(self.filePath))

        fmt = self.formatString
        self._buffer.append([ fmt.format(t) ] + [ fmt.format(x) for x in state.toArray() ])
        self.count += 1

        if len(self._buffer) >= self.flushInterval:
            self.flush()

    def flush(self):
        if len(self._buffer) > 0:
            self._writer.writerows(self._buffer)
            self._buffer = []
        self._file.flush()

    def finalize(self):
        ''' Writes any buffered rows and closes the file. Safe to call more than once '''
        if not self.finalized:
            try:
                self.flush()
            finally:
                self._file.close()
                self.finalized = True

    def __len__(self):
        return self.count

    def __enter__(self):
        return self

    def __exit__(self, excType, excValue, traceback):
        self.finalize()
        return False

class NoResult():
    def __init__(self, componentNames=None):
        self.componentNames = [] if componentNames is None else list(componentNames)
        self.count = 0

    def save(self, t, state):
        self.count += 1

    def finalize(self):
        pass

    def __len__(self):
        return self.count

def resultSinkFactory(simDefinition, componentNames, resultsFolder=None):
    '''
        Creates a result sink according to the SimControl.Output dictionary of a simulation definition
        File outputs are written to resultsFolder (or the current directory if it is None)
    '''
    from ARBOR.IO import SubDictReader
    outputReader = SubDictReader("SimControl.Output", simDefinition)
    outputType = outputReader.getString("type")

    if outputType == "Memory":
        return MemoryResult(componentNames, initialCapacity=outputReader.getInt("initialCapacity"))

    elif outputType == "File":
        fileName = outputReader.getString("fileName")
        filePath = fileName if resultsFolder is None else os.path.join(resultsFolder, fileName)
        return FileResult(
            filePath,
            componentNames,
            numberFormat=outputReader.getString("format"),
            precision=outputReader.getInt("precision"),
            flushInterval=outputReader.getInt("flushInterval")
        )

    elif outputType == "None":
        return NoResult(componentNames)

    else:
        raise ValueError("Output type: {} not recognized. Options are: Memory, File, None".format(outputType))

def loadResultFile(filePath):
    ''' Loads a csv file written by `FileResult` into a pandas DataFrame '''
    import pandas as pd
    return pd.read_csv(filePath)
