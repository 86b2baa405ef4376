'''
Gravity models and the gravity-gradient torque.
Gravity models map a position (m, in the inertial frame) to a gravitational acceleration (m/s^2, in the same frame).
'''
from abc import ABC, abstractmethod

import numpy as np

from ARBOR.Motion.Rotations import attitudeMatrix, normalizeQuaternion

__all__ = [ "EARTH_MU", "GravityModel", "NoGravity", "ConstantGravity", "NewtonianGravity", "gravityModelFactory", "gravityGradientTorque", "gravityGradientTorqueFromMatrix" ]

EARTH_MU = 3.986004418e14 # m^3/s^2

class GravityModel(ABC):
    @abstractmethod
    def getGravity(self, position) -> np.ndarray:
        ''' Returns the gravitational acceleration at position '''

    def __call__(self, position):
        return self.getGravity(position)

class NoGravity(GravityModel):
    def getGravity(self, position):
        return np.zeros(3)

class ConstantGravity(GravityModel):
    ''' Uniform gravitational field, independent of position '''

    def __init__(self, gravity=(0.0, 0.0, -9.80665)):
        self.gravity = np.array(gravity, dtype=float).reshape(3)

    def getGravity(self, position):
        return self.gravity.copy()

class NewtonianGravity(GravityModel):
    ''' Point-mass gravity: g = -mu * r / |r|^3, centered at the inertial frame origin '''

    def __init__(self, mu=EARTH_MU):
        if not mu > 0:
            raise ValueError("Gravitational parameter must be positive, got: {}".format(mu))
        self.mu = mu

    def getGravity(self, position):
        position = np.asarray(position, dtype=float)
        r = np.linalg.norm(position)
        if r == 0:
            raise ValueError("Newtonian gravity is undefined at the center of the attracting body")
        return -self.mu * position / r**3

def gravityModelFactory(envDictReader=None) -> GravityModel:
    ''' Provide an envDictReader (`ARBOR.IO.SubDictReader` for the Environment dictionary). If none is provided, returns a ConstantGravity model '''
    if envDictReader == None:
        return ConstantGravity()

    gravityModel = envDictReader.getString("Gravity.model")

    if gravityModel == "Constant":
        return ConstantGravity(envDictReader.getVector("Gravity.vector"))
    elif gravityModel == "Newtonian":
        return NewtonianGravity(envDictReader.getFloat("Gravity.mu"))
    elif gravityModel == "None":
        return NoGravity()
    else:
        raise ValueError("Gravity model: {} not found. Try 'Constant', 'Newtonian' or 'None'".format(gravityModel))

def gravityGradientTorqueFromMatrix(position, bodyFromFrame, momentOfInertia, mu=EARTH_MU) -> np.ndarray:
    '''
        Gravity-gradient torque about the center of mass, in body coordinates:
            T = 3 * n^2 * ( a x (J * a) )
        Where n^2 = mu / |r|^3 and a is the unit nadir vector (-r / |r|) expressed in body coordinates

        Inputs:
            * position:         (3-vector) center of mass position relative to the attracting body, in some frame F
            * bodyFromFrame:    (3x3) passive rotation matrix from F coordinates to body coordinates
            * momentOfInertia:  (3x3) inertia tensor about the center of mass, body coordinates
            * mu:               (float) gravitational parameter of the attracting body
    '''
    position = np.asarray(position, dtype=float)
    r = np.linalg.norm(position)
    if r == 0:
        raise ValueError("Gravity-gradient torque is undefined at the center of the attracting body")

    n2 = mu / r**3
    nadir = np.asarray(bodyFromFrame) @ (-position / r)
    return 3*n2*np.cross(nadir, np.asarray(momentOfInertia) @ nadir)

def gravityGradientTorque(position, attitude, frameRotation, momentOfInertia, mu=EARTH_MU) -> np.ndarray:
    '''
        Gravity-gradient torque for a body whose attitude is given as a quaternion.

        Inputs:
            * position:         (3-vector) position in frame F (ex. Earth-fixed)
            * attitude:         (4-vector, scalar-last) quaternion of the body relative to a reference frame R (ex. inertial), normalized before use
            * frameRotation:    (3x3) passive rotation matrix, F coordinates -> R coordinates
            * momentOfInertia:  (3x3) body-frame inertia tensor about the center of mass
            * mu:               (float)

        The nadir vector is taken from F to body coordinates with A(attitude) * frameRotation
    '''
    bodyFromFrame = attitudeMatrix(normalizeQuaternion(attitude)) @ np.asarray(frameRotation, dtype=float)
    return gravityGradientTorqueFromMatrix(position, bodyFromFrame, momentOfInertia, mu)
