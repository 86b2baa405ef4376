'''
Rigid bodies and the base of a kinematic tree.
Body kinematic states are only updated when the integrator accepts a step (see `ARBOR.Multibody.multibodySystem.MultibodySystem.commitState`)
'''
import numpy as np

from ARBOR.Motion.Rotations import IDENTITY_QUATERNION
from ARBOR.Motion.SpatialAlgebra import SpatialInertia

__all__ = [ "Body", "BodyState", "Base" ]

class BodyState():
    '''
        Kinematic state of a body and the environment it sees

        * position:             (3) body frame origin, base coordinates
        * velocity:             (3) velocity of the body frame origin, base coordinates
        * attitude:             (4) scalar-last quaternion, base -> body passive rotation
        * angularVelocity:      (3) body coordinates
        * spatialVelocity:      (6) [ angular; linear ] body coordinates
        * spatialAcceleration:  (6) [ angular; linear ] body coordinates
        * gravity:              (3) gravitational acceleration at the center of mass, base coordinates
        * magneticField:        (3) nT, at the center of mass, base coordinates
        * time:                 (float) simulation time at which this state was committed
    '''
    __slots__ = [ "position", "velocity", "attitude", "angularVelocity", "spatialVelocity", "spatialAcceleration", "gravity", "magneticField", "time" ]

    def __init__(self):
        self.position = np.zeros(3)
        self.velocity = np.zeros(3)
        self.attitude = IDENTITY_QUATERNION.copy()
        self.angularVelocity = np.zeros(3)
        self.spatialVelocity = np.zeros(6)
        self.spatialAcceleration = np.zeros(6)
        self.gravity = np.zeros(3)
        self.magneticField = np.zeros(3)
        self.time = None

    def __repr__(self):
        return "BodyState(t={}, position={}, attitude={}, angularVelocity={})".format(self.time, self.position.tolist(), self.attitude.tolist(), self.angularVelocity.tolist())

class Body():
    '''
        Rigid body with mass properties defined in its own body frame

        Inputs:
            * name:         (str) unique within a kinematic tree
            * mass:         (float) kg, > 0
            * centerOfMass: (3-vector) m, body frame
            * inertia:      (3x3) kg*m^2, about the center of mass, body frame. Symmetric positive definite
    '''

    def __init__(self, name, mass, centerOfMass=(0.0, 0.0, 0.0), inertia=None):
        self.name = name
        self.spatialInertia = SpatialInertia(mass, centerOfMass, inertia)
        self.state = BodyState()

    @property
    def mass(self) -> float:
        return self.spatialInertia.mass

    @property
    def centerOfMass(self) -> np.ndarray:
        return self.spatialInertia.centerOfMass

    @property
    def inertia(self) -> np.ndarray:
        return self.spatialInertia.inertia

    def __repr__(self):
        return "Body({}, mass={})".format(self.name, self.mass)

class Base():
    ''' Fixed root of a kinematic tree. Carries the `ARBOR.ENV.Environment` '''

    def __init__(self, name="base", environment=None):
        if environment is None:
            from ARBOR.ENV import Environment
            environment = Environment()
        self.name = name
        self.environment = environment

    def __repr__(self):
        return "Base({})".format(self.name)
