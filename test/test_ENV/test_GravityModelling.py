import math
import unittest
from test.testUtilities import assertArraysClose

import numpy as np

from ARBOR.ENV import (EARTH_MU, ConstantGravity, NewtonianGravity, NoGravity,
                       gravityGradientTorque, gravityGradientTorqueFromMatrix,
                       gravityModelFactory)
from ARBOR.IO import SimDefinition, SubDictReader
from ARBOR.Motion import rotationMatrix


class TestGravityModels(unittest.TestCase):
    def test_noGravity(self):
        assertArraysClose(self, NoGravity().getGravity([ 1, 2, 3 ]), [ 0, 0, 0 ])

    def test_constantGravity(self):
        gravity = ConstantGravity()
        assertArraysClose(self, gravity.getGravity([ 1e6, 0, 0 ]), [ 0, 0, -9.80665 ])
        # Models are callable
        assertArraysClose(self, gravity([ 0, 0, 0 ]), [ 0, 0, -9.80665 ])

        # Returned arrays can be modified without affecting the model
        g = gravity.getGravity([ 0, 0, 0 ])
        g[2] = 0
        assertArraysClose(self, gravity.getGravity([ 0, 0, 0 ]), [ 0, 0, -9.80665 ])

    def test_newtonianGravity(self):
        gravity = NewtonianGravity()
        r = 7e6
        assertArraysClose(self, gravity.getGravity([ r, 0, 0 ]), [ -EARTH_MU/r**2, 0, 0 ])

        # Inverse square law
        g1 = np.linalg.norm(gravity.getGravity([ 0, r, 0 ]))
        g2 = np.linalg.norm(gravity.getGravity([ 0, 0, 2*r ]))
        self.assertAlmostEqual(g1/g2, 4.0, 12)

    def test_newtonianGravityErrors(self):
        with self.assertRaises(ValueError):
            NewtonianGravity(mu=0)
        with self.assertRaises(ValueError):
            NewtonianGravity().getGravity([ 0, 0, 0 ])

    def test_factory(self):
        self.assertIsInstance(gravityModelFactory(), ConstantGravity)

        simDef = SimDefinition(dictionary={ "Environment.Gravity.model": "Newtonian", "Environment.Gravity.mu": "1e10" }, disableDistributionSampling=True, silent=True)
        model = gravityModelFactory(SubDictReader("Environment", simDef))
        self.assertIsInstance(model, NewtonianGravity)
        self.assertEqual(model.mu, 1e10)

        simDef.setValue("Environment.Gravity.model", "None")
        self.assertIsInstance(gravityModelFactory(SubDictReader("Environment", simDef)), NoGravity)

        simDef.setValue("Environment.Gravity.model", "J2")
        with self.assertRaises(ValueError):
            gravityModelFactory(SubDictReader("Environment", simDef))

class TestGravityGradientTorque(unittest.TestCase):
    def setUp(self):
        self.inertia = np.diag([ 1.0, 2.0, 3.0 ])
        self.position = np.array([ -7e6, 0, 0 ]) # Nadir along +x
        self.n2 = EARTH_MU / 7e6**3

    def test_principalAxisAlongNadir(self):
        torque = gravityGradientTorqueFromMatrix(self.position, np.eye(3), self.inertia)
        assertArraysClose(self, torque, [ 0, 0, 0 ], atol=1e-20)

    def test_tiltedBody(self):
        # Nadir at 45 degrees between body x and y: a x Ja = (0, 0, 0.5)
        bodyFromFrame = rotationMatrix((0, 0, 1), math.pi/4)
        torque = gravityGradientTorqueFromMatrix(self.position, bodyFromFrame, self.inertia)
        assertArraysClose(self, torque, [ 0, 0, 1.5*self.n2 ], atol=1e-20)

    def test_quaternionAttitude(self):
        # attitudeMatrix(q) = rotationMatrix(z, pi/4) for a -pi/4 rotation about z
        q = [ 0, 0, math.sin(-math.pi/8), math.cos(math.pi/8) ]
        torque = gravityGradientTorque(self.position, q, np.eye(3), self.inertia)
        assertArraysClose(self, torque, [ 0, 0, 1.5*self.n2 ], rtol=1e-12, atol=1e-20)

        # Quaternion is normalized before use
        torque2 = gravityGradientTorque(self.position, 2*np.array(q), np.eye(3), self.inertia)
        assertArraysClose(self, torque2, torque, rtol=1e-12)

    def test_sphericalBody(self):
        bodyFromFrame = rotationMatrix((1, 2, 3), 0.7)
        torque = gravityGradientTorqueFromMatrix([ 1e6, 2e6, 6e6 ], bodyFromFrame, 5*np.eye(3))
        assertArraysClose(self, torque, [ 0, 0, 0 ], atol=1e-18)

    def test_satellite(self):
        q = [ -0.053748871, -0.067546444, -0.994337304, -0.061982758 ]
        position = [ -821562.9892, -906648.2064, -6954665.433 ]
        frameRotation = [
            [ -0.80724874, -0.590206523, 0.002394065 ],
            [ 0.590208289, -0.807250998, 3.88e-05 ],
            [ 0.001909682, 0.001444358, 0.999997133 ],
        ]
        moi = [
            [ 461.650, -128.09, -5.624 ],
            [ -128.09, 586.3, -34.628 ],
            [ -5.624, -34.628, 583.5 ],
        ]
        torque = gravityGradientTorque(position, q, frameRotation, moi)
        assertArraysClose(self, torque, [ 2.044773229215835e-04, -1.903078805698539e-04, -1.690151497220719e-05 ], rtol=0, atol=1e-9)

    def test_closedForm(self):
        # T = 3 mu / |r|^5 * (r_b x J r_b), with r_b the position in body coordinates
        mu = 4.2e13
        position = np.array([ 3e6, -4e6, 12e6 ])
        bodyFromFrame = rotationMatrix((1, -1, 2), 1.1)
        inertia = np.array([ [ 10.0, 0.5, -1.0 ], [ 0.5, 12.0, 0.3 ], [ -1.0, 0.3, 7.0 ] ])
        rBody = bodyFromFrame @ position
        expected = 3*mu / 13e6**5 * np.cross(rBody, inertia @ rBody)

        torque = gravityGradientTorqueFromMatrix(position, bodyFromFrame, inertia, mu=mu)
        assertArraysClose(self, torque, expected, rtol=1e-12, atol=1e-22)

        # Pitch tilt only: a x Ja = (0, 2 sin cos, 0)
        tilt = 0.3
        torque = gravityGradientTorqueFromMatrix(self.position, rotationMatrix((0, 1, 0), tilt), self.inertia)
        self.assertAlmostEqual(torque[0], 0.0, 20)
        self.assertAlmostEqual(torque[2], 0.0, 20)
        self.assertAlmostEqual(torque[1], 3*self.n2*(3.0 - 1.0)*math.sin(tilt)*math.cos(tilt), 18)

    def test_atOrigin(self):
        with self.assertRaises(ValueError):
            gravityGradientTorqueFromMatrix([ 0, 0, 0 ], np.eye(3), self.inertia)

if __name__ == '__main__':
    unittest.main()
