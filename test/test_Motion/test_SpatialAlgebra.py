import unittest
from test.testUtilities import (assertArraysClose, assertTransformsAlmostEqual,
                                randomInertia, randomTransform)

import numpy as np

from ARBOR.Errors import AlgebraError, InvalidInertia
from ARBOR.Motion import (ForceVector, MotionVector, SpatialInertia,
                          SpatialTransform, crossForceMatrix,
                          crossMotionMatrix, rotationMatrix, skew)


class TestSpatialVectors(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(1)

    def test_skew(self):
        a = np.array([ 1.0, -2.0, 3.0 ])
        b = np.array([ 0.5, 4.0, -1.0 ])
        assertArraysClose(self, skew(a) @ b, np.cross(a, b))

    def test_crossMatrices(self):
        m = self.rng.normal(size=6)
        n = self.rng.normal(size=6)
        f = self.rng.normal(size=6)

        assertArraysClose(self, crossForceMatrix(m), -crossMotionMatrix(m).T)
        assertArraysClose(self, MotionVector.fromArray(m).crossMotion(MotionVector.fromArray(n)).vector, crossMotionMatrix(m) @ n)
        assertArraysClose(self, MotionVector.fromArray(m).crossForce(ForceVector.fromArray(f)).vector, crossForceMatrix(m) @ f)

    def test_motionCrossSelfIsZero(self):
        m = MotionVector.fromArray(self.rng.normal(size=6))
        assertArraysClose(self, m.crossMotion(m).vector, np.zeros(6), atol=1e-15)

    def test_vectorArithmetic(self):
        m1 = MotionVector((1, 2, 3), (4, 5, 6))
        m2 = MotionVector((1, 1, 1), (1, 1, 1))

        self.assertEqual(m1 + m2, MotionVector((2, 3, 4), (5, 6, 7)))
        self.assertEqual(m1 - m2, MotionVector((0, 1, 2), (3, 4, 5)))
        self.assertEqual(2*m2, MotionVector((2, 2, 2), (2, 2, 2)))
        self.assertEqual(m2*2, MotionVector((2, 2, 2), (2, 2, 2)))
        self.assertEqual(m1 / 2, MotionVector((0.5, 1, 1.5), (2, 2.5, 3)))
        self.assertEqual(-m2, MotionVector((-1, -1, -1), (-1, -1, -1)))
        assertArraysClose(self, m1.angular, [ 1, 2, 3 ])
        assertArraysClose(self, m1.linear, [ 4, 5, 6 ])

    def test_motionAndForceDontMix(self):
        with self.assertRaises(TypeError):
            MotionVector() + ForceVector()
        self.assertNotEqual(MotionVector(), ForceVector())

    def test_fromArrayChecksSize(self):
        with self.assertRaises(ValueError):
            MotionVector.fromArray([ 1, 2, 3 ])

    def test_dot(self):
        m = MotionVector((1, 0, 0), (0, 2, 0))
        f = ForceVector((3, 0, 0), (0, 4, 0))
        self.assertAlmostEqual(m.dot(f), 11)
        self.assertAlmostEqual(f.dot(m), 11)

class TestSpatialTransform(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(2)

    def test_identity(self):
        X = SpatialTransform.identity()
        assertArraysClose(self, X.motionMatrix(), np.eye(6))
        m = self.rng.normal(size=6)
        assertArraysClose(self, X.applyMotion(m), m)

    def test_pureTranslation(self):
        # Frame B is 1 m along x from A. A rotation about z at A gives B's origin a velocity along y
        X = SpatialTransform(translation=(1, 0, 0))
        v = X.transformMotion(MotionVector((0, 0, 1), (0, 0, 0)))
        assertArraysClose(self, v.angular, [ 0, 0, 1 ])
        assertArraysClose(self, v.linear, [ 0, 1, 0 ])

    def test_pureRotation(self):
        # B rotated 90 degrees about z relative to A: A's x-axis is B's -y axis
        X = SpatialTransform(rotationMatrix((0, 0, 1), np.pi/2).T)
        v = X.transformMotion(MotionVector((1, 0, 0), (1, 0, 0)))
        assertArraysClose(self, v.angular, [ 0, -1, 0 ], atol=1e-15)
        assertArraysClose(self, v.linear, [ 0, -1, 0 ], atol=1e-15)

    def test_composition(self):
        X1 = randomTransform(self.rng)
        X2 = randomTransform(self.rng)
        assertArraysClose(self, (X2*X1).motionMatrix(), X2.motionMatrix() @ X1.motionMatrix(), atol=1e-14)

        m = MotionVector.fromArray(self.rng.normal(size=6))
        assertArraysClose(self, ((X2*X1)*m).vector, (X2*(X1*m)).vector, atol=1e-14)

    def test_inverse(self):
        X = randomTransform(self.rng)
        assertTransformsAlmostEqual(self, X*X.inverse(), SpatialTransform.identity(), 12)
        assertTransformsAlmostEqual(self, X.inverse()*X, SpatialTransform.identity(), 12)

        m = self.rng.normal(size=6)
        f = self.rng.normal(size=6)
        assertArraysClose(self, X.applyInverseMotion(m), X.inverse().applyMotion(m), atol=1e-14)
        assertArraysClose(self, X.applyTransposeForce(f), X.inverse().applyForce(f), atol=1e-14)

    def test_forceMatrixIsInverseTranspose(self):
        X = randomTransform(self.rng)
        assertArraysClose(self, X.forceMatrix(), np.linalg.inv(X.motionMatrix()).T, atol=1e-13)
        f = self.rng.normal(size=6)
        assertArraysClose(self, X.applyForce(f), X.forceMatrix() @ f, atol=1e-14)
        assertArraysClose(self, X.applyTransposeForce(f), X.motionMatrix().T @ f, atol=1e-14)

    def test_powerIsInvariant(self):
        X = randomTransform(self.rng)
        m = MotionVector.fromArray(self.rng.normal(size=6))
        f = ForceVector.fromArray(self.rng.normal(size=6))
        self.assertAlmostEqual((X*m).dot(X*f), m.dot(f), 12)

    def test_fromMotionMatrix(self):
        X = randomTransform(self.rng)
        assertTransformsAlmostEqual(self, SpatialTransform.fromMotionMatrix(X.motionMatrix()), X, 12)

    def test_rejectsImproperRotations(self):
        with self.assertRaises(AlgebraError):
            SpatialTransform(np.diag([ 1.0, 1.0, 2.0 ]))
        with self.assertRaises(AlgebraError):
            SpatialTransform(np.diag([ 1.0, 1.0, -1.0 ]))

        # Unchecked transforms are allowed through
        SpatialTransform(np.diag([ 1.0, 1.0, 2.0 ]), checkRotation=False)

    def test_isclose(self):
        X = randomTransform(self.rng)
        self.assertTrue(X.isclose(SpatialTransform(X.rotation, X.translation + 1e-12)))
        self.assertFalse(X.isclose(SpatialTransform(X.rotation, X.translation + 1e-3)))

class TestSpatialInertia(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(3)

    def test_invalidMass(self):
        with self.assertRaises(InvalidInertia):
            SpatialInertia(0.0)
        with self.assertRaises(InvalidInertia):
            SpatialInertia(-1.0)
        with self.assertRaises(InvalidInertia):
            SpatialInertia(float("nan"))

    def test_invalidInertiaTensor(self):
        with self.assertRaises(InvalidInertia):
            SpatialInertia(1.0, inertia=[[ 1, 0.5, 0 ], [ 0, 1, 0 ], [ 0, 0, 1 ]])
        with self.assertRaises(InvalidInertia):
            SpatialInertia(1.0, inertia=np.diag([ 1.0, 1.0, 0.0 ]))
        with self.assertRaises(InvalidInertia):
            SpatialInertia(1.0, inertia=np.diag([ 1.0, -1.0, 1.0 ]))

    def test_matrixIsSymmetricPositiveDefinite(self):
        I = SpatialInertia(2.0, self.rng.normal(size=3), randomInertia(self.rng)).matrix()
        assertArraysClose(self, I, I.T, atol=1e-15)
        self.assertGreater(np.min(np.linalg.eigvalsh(I)), 0)

    def test_matrixIsCached(self):
        inertia = SpatialInertia(1.0)
        self.assertIs(inertia.matrix(), inertia.matrix())

    def test_parallelAxisTheorem(self):
        # An inertia about the center of mass, moved into a frame whose origin is offset from the CoM
        mass = 3.0
        com = np.array([ 0.1, -0.4, 0.7 ])
        Ic = randomInertia(self.rng)

        offsetInertia = SpatialInertia(mass, com, Ic).matrix()
        bodyFromCoM = SpatialTransform(translation=-com)
        assertArraysClose(self, bodyFromCoM.transformInertia(SpatialInertia(mass, (0, 0, 0), Ic)), offsetInertia, atol=1e-13)

    def test_kineticEnergy(self):
        # Pure translation: 1/2 m v^2
        inertia = SpatialInertia(2.0, (0.3, 0.2, 0.1), randomInertia(self.rng))
        v = MotionVector((0, 0, 0), (1, 2, 3))
        self.assertAlmostEqual(0.5 * v.dot(inertia * v), 0.5 * 2.0 * 14, 12)

    def test_transformInertiaPreservesEnergy(self):
        X = randomTransform(self.rng)
        inertia = SpatialInertia(1.5, self.rng.normal(size=3), randomInertia(self.rng))
        v = MotionVector.fromArray(self.rng.normal(size=6))

        energyA = 0.5 * v.vector @ inertia.matrix() @ v.vector
        vB = X.applyMotion(v.vector)
        energyB = 0.5 * vB @ X.transformInertia(inertia) @ vB
        self.assertAlmostEqual(energyA, energyB, 12)

if __name__ == '__main__':
    unittest.main()
