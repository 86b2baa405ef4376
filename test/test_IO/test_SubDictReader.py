import unittest
from test.testUtilities import assertArraysClose

import numpy as np

from ARBOR.IO import SimDefinition, SubDictReader


class TestSubDictReader(unittest.TestCase):
    def setUp(self):
        self.simDef = SimDefinition(dictionary={
            "Joints.elbow.class": "Revolute",
            "Joints.elbow.axis": "(0 1 0)",
            "Joints.elbow.damping": "0.25",
            "Joints.elbow.innerTransform.rotation": "(0 1 0 -1 0 0 0 0 1)",
            "Joints.elbow.innerTransform.translation": "(0 0 -1)",
            "Joints.elbow.locked": "false",
            "Joints.shoulder.class": "Floating",
            "SimControl.endTime": "5",
        }, disableDistributionSampling=True, silent=True)
        self.reader = SubDictReader("Joints.elbow", self.simDef)

    def test_relativeAndAbsoluteKeys(self):
        self.assertEqual(self.reader.getString("class"), "Revolute")
        self.assertEqual(self.reader.getString("Joints.shoulder.class"), "Floating")
        self.assertEqual(self.reader.getFloat("SimControl.endTime"), 5.0)

    def test_parsedValues(self):
        self.assertEqual(self.reader.getFloat("damping"), 0.25)
        assertArraysClose(self, self.reader.getVector("axis"), [ 0, 1, 0 ])
        self.assertFalse(self.reader.getBool("locked"))
        self.assertEqual(self.reader.getInt("SimControl.Output.precision"), 6)

        rotation = self.reader.getMatrix("innerTransform.rotation")
        self.assertEqual(rotation.shape, (3,3))
        assertArraysClose(self, rotation @ [ 1, 0, 0 ], [ 0, -1, 0 ])

    def test_classBasedDefaults(self):
        self.assertEqual(self.reader.getFloat("springConstant"), 0.0)
        assertArraysClose(self, self.reader.getMatrix("outerTransform.rotation"), np.eye(3))

    def test_getMatrixWrongSize(self):
        with self.assertRaises(ValueError):
            self.reader.getMatrix("axis")

    def test_missingKeys(self):
        with self.assertRaises(KeyError):
            self.reader.getString("color")

        self.assertIsNone(self.reader.tryGetString("color"))
        self.assertEqual(self.reader.tryGetFloat("color", 1.5), 1.5)
        self.assertEqual(self.reader.tryGetInt("color", 3), 3)
        self.assertTrue(self.reader.tryGetBool("color", True))
        self.assertIsNone(self.reader.tryGetVector("color"))
        self.assertIsNone(self.reader.tryGetMatrix("color"))
        assertArraysClose(self, self.reader.tryGetVector("axis"), [ 0, 1, 0 ])

    def test_introspection(self):
        self.assertEqual(self.reader.getDictName(), "elbow")
        self.assertEqual(sorted(self.reader.getImmediateSubDicts()), [ "Joints.elbow.innerTransform" ])
        self.assertEqual(len(self.reader.getSubKeys()), 6)
        self.assertEqual(sorted(self.reader.getImmediateSubKeys("Joints")), [ "Joints.elbow", "Joints.shoulder" ])

if __name__ == '__main__':
    unittest.main()
