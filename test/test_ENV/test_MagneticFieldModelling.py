import unittest
from test.testUtilities import assertArraysClose

import numpy as np

from ARBOR.ENV import (ConstantMagneticField, DipoleMagneticField,
                       NoMagneticField, magneticFieldModelFactory)
from ARBOR.IO import SimDefinition, SubDictReader


class TestMagneticFieldModels(unittest.TestCase):
    def test_noField(self):
        assertArraysClose(self, NoMagneticField().getMagneticField([ 1, 2, 3 ], 0), [ 0, 0, 0 ])

    def test_constantField(self):
        field = ConstantMagneticField((1, 2, 3))
        assertArraysClose(self, field([ 7e6, 0, 0 ], 100.0), [ 1, 2, 3 ])

    def test_dipoleFromGaussCoefficients(self):
        dipole = DipoleMagneticField.fromGaussCoefficients(6.3712e6, -29554.63, -1669.05, 5077.99)
        B = dipole.getMagneticField([ 7e6, 0, 0 ], 0)
        assertArraysClose(self, B, [ -2516.9172529558114, -3828.7890240966663, 22284.101180829042 ], rtol=1e-10)

    def test_dipoleFieldShape(self):
        # Moment along z: field at the equator is antiparallel to the moment, twice as strong at the pole
        dipole = DipoleMagneticField((0, 0, 1e15))
        equator = dipole.getMagneticField([ 7e6, 0, 0 ], 0)
        pole = dipole.getMagneticField([ 0, 0, 7e6 ], 0)
        assertArraysClose(self, equator[:2], [ 0, 0 ], atol=1e-12)
        self.assertLess(equator[2], 0)
        self.assertAlmostEqual(pole[2] / -equator[2], 2.0, 12)

        # Inverse cube law
        far = dipole.getMagneticField([ 14e6, 0, 0 ], 0)
        self.assertAlmostEqual(equator[2] / far[2], 8.0, 12)

    def test_dipoleAtOrigin(self):
        with self.assertRaises(ValueError):
            DipoleMagneticField((0, 0, 1)).getMagneticField([ 0, 0, 0 ], 0)

    def test_factory(self):
        self.assertIsInstance(magneticFieldModelFactory(), NoMagneticField)

        simDef = SimDefinition(dictionary={ "Environment.MagneticField.model": "Dipole" }, disableDistributionSampling=True, silent=True)
        model = magneticFieldModelFactory(SubDictReader("Environment", simDef))
        self.assertIsInstance(model, DipoleMagneticField)
        expected = DipoleMagneticField.fromGaussCoefficients(6.3712e6, -29554.63, -1669.05, 5077.99)
        assertArraysClose(self, model.dipoleMoment, expected.dipoleMoment)

        simDef.setValue("Environment.MagneticField.model", "Constant")
        simDef.setValue("Environment.MagneticField.vector", "(1 0 0)")
        model = magneticFieldModelFactory(SubDictReader("Environment", simDef))
        assertArraysClose(self, model.getMagneticField(np.zeros(3), 0), [ 1, 0, 0 ])

        simDef.setValue("Environment.MagneticField.model", "IGRF")
        with self.assertRaises(ValueError):
            magneticFieldModelFactory(SubDictReader("Environment", simDef))

if __name__ == '__main__':
    unittest.main()
