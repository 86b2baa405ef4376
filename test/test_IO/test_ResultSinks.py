import os
import tempfile
import unittest
from test.testUtilities import assertArraysClose

import numpy as np

from ARBOR.IO import (FileResult, MemoryResult, NoResult, SimDefinition,
                      loadResultFile, resultSinkFactory)
from ARBOR.Motion import ArrayState


class TestMemoryResult(unittest.TestCase):
    def setUp(self):
        self.names = [ "x", "v" ]
        self.result = MemoryResult(self.names, initialCapacity=2)

    def test_growth(self):
        for i in range(5):
            self.result.save(0.1*i, ArrayState([ i, -i ], self.names))

        self.assertEqual(len(self.result), 5)
        self.assertEqual(self.result.capacity, 8)
        assertArraysClose(self, self.result.t, [ 0, 0.1, 0.2, 0.3, 0.4 ])
        assertArraysClose(self, self.result.getComponent("v"), [ 0, -1, -2, -3, -4 ])

        self.result.finalize()
        self.assertEqual(self.result.capacity, 5)
        self.assertEqual(self.result.y.shape, (5, 2))
        # Finalizing twice is harmless
        self.result.finalize()
        self.assertEqual(len(self.result), 5)

    def test_savedValuesAreCopies(self):
        state = ArrayState([ 1, 2 ], self.names)
        self.result.save(0, state)
        state.values[0] = 10
        self.assertEqual(self.result.y[0, 0], 1)

    def test_getState(self):
        self.result.save(0.5, ArrayState([ 3, 4 ], self.names))
        state = self.result.getState(0)
        assertArraysClose(self, state.toArray(), [ 3, 4 ])
        self.assertEqual(state.componentNames(), self.names)

    def test_saveAfterFinalize(self):
        self.result.finalize()
        with self.assertRaises(ValueError):
            self.result.save(0, ArrayState([ 0, 0 ], self.names))

    def test_invalidInputs(self):
        with self.assertRaises(ValueError):
            MemoryResult(self.names, initialCapacity=0)
        with self.assertRaises(KeyError):
            self.result.getComponent("a")

    def test_toDataFrame(self):
        self.result.save(0, ArrayState([ 1, 2 ], self.names))
        self.result.save(1, ArrayState([ 3, 4 ], self.names))
        dataFrame = self.result.toDataFrame()
        self.assertEqual(list(dataFrame.columns), [ "t", "x", "v" ])
        assertArraysClose(self, dataFrame["x"].to_numpy(), [ 1, 3 ])

class TestFileResult(unittest.TestCase):
    def setUp(self):
        self.folder = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.folder.name, "results.csv")
        self.names = [ "joint.angle", "joint.rate" ]

    def tearDown(self):
        self.folder.cleanup()

    def test_fixedFormat(self):
        with FileResult(self.path, self.names, precision=3, flushInterval=2) as result:
            result.save(0.0, ArrayState([ 0.1, -2 ], self.names))
            result.save(0.5, ArrayState([ 1/3, 0 ], self.names))
            result.save(1.0, ArrayState([ 2, 1e-6 ], self.names))
            self.assertEqual(len(result), 3)
        self.assertTrue(result.finalized)

        with open(self.path, 'r') as file:
            lines = file.read().splitlines()
        self.assertEqual(lines, [
            "t,joint.angle,joint.rate",
            "0.000,0.100,-2.000",
            "0.500,0.333,0.000",
            "1.000,2.000,0.000",
        ])

    def test_scientificFormat(self):
        result = FileResult(self.path, self.names, numberFormat="scientific", precision=2)
        result.save(1234.5, ArrayState([ 0.5, -0.00125 ], self.names))
        result.finalize()
        result.finalize()

        dataFrame = loadResultFile(self.path)
        self.assertEqual(list(dataFrame.columns), [ "t" ] + self.names)
        assertArraysClose(self, dataFrame.iloc[0].to_numpy(), [ 1230, 0.5, -0.00125 ])

    def test_periodicFlush(self):
        result = FileResult(self.path, self.names, flushInterval=2)
        for i in range(3):
            result.save(i, ArrayState([ i, i ], self.names))

        # Two rows flushed, one still buffered
        with open(self.path, 'r') as file:
            self.assertEqual(len(file.read().splitlines()), 3)

        result.finalize()
        with open(self.path, 'r') as file:
            self.assertEqual(len(file.read().splitlines()), 4)

        with self.assertRaises(ValueError):
            result.save(3, ArrayState([ 3, 3 ], self.names))

    def test_invalidInputs(self):
        with self.assertRaises(ValueError):
            FileResult(self.path, self.names, numberFormat="hex")
        with self.assertRaises(ValueError):
            FileResult(self.path, self.names, flushInterval=0)

class TestResultSinkFactory(unittest.TestCase):
    def setUp(self):
        self.simDef = SimDefinition(dictionary={}, disableDistributionSampling=True, silent=True)

    def test_memory(self):
        self.simDef.setValue("SimControl.Output.initialCapacity", "16")
        sink = resultSinkFactory(self.simDef, [ "x" ])
        self.assertIsInstance(sink, MemoryResult)
        self.assertEqual(sink.capacity, 16)

    def test_file(self):
        self.simDef.setValue("SimControl.Output.type", "File")
        self.simDef.setValue("SimControl.Output.fileName", "out.csv")
        with tempfile.TemporaryDirectory() as folder:
            sink = resultSinkFactory(self.simDef, [ "x" ], resultsFolder=folder)
            self.assertIsInstance(sink, FileResult)
            self.assertEqual(sink.filePath, os.path.join(folder, "out.csv"))
            sink.finalize()

    def test_none(self):
        self.simDef.setValue("SimControl.Output.type", "None")
        sink = resultSinkFactory(self.simDef, [ "x" ])
        self.assertIsInstance(sink, NoResult)
        sink.save(0, ArrayState([ 1 ]))
        sink.finalize()
        self.assertEqual(len(sink), 1)

    def test_unknownType(self):
        self.simDef.setValue("SimControl.Output.type", "HDF5")
        with self.assertRaises(ValueError):
            resultSinkFactory(self.simDef, [ "x" ])

if __name__ == '__main__':
    unittest.main()
