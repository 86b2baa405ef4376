'''
Ephemeris models locate the simulation's base frame in the inertial frame.
`getBaseFrame(epoch)` returns (position, rotation):

* position: (3-vector) base frame origin, inertial coordinates
* rotation: (3x3) passive rotation matrix from base coordinates to inertial coordinates (v_inertial = rotation @ v_base)

The base frame is treated as inertial by the dynamics; the ephemeris only determines where the environment models are evaluated
'''
from abc import ABC, abstractmethod

import numpy as np

from ARBOR.Motion.Rotations import rotationMatrix

__all__ = [ "Ephemeris", "FixedEphemeris", "ConstantRateEphemeris", "ephemerisModelFactory" ]

class Ephemeris(ABC):
    @abstractmethod
    def getBaseFrame(self, epoch):
        pass

    def __call__(self, epoch):
        return self.getBaseFrame(epoch)

class FixedEphemeris(Ephemeris):
    def __init__(self, position=(0.0, 0.0, 0.0), rotation=None):
        self.position = np.array(position, dtype=float).reshape(3)
        self.rotation = np.eye(3) if rotation is None else np.array(rotation, dtype=float).reshape((3,3))

    def getBaseFrame(self, epoch):
        return self.position.copy(), self.rotation.copy()

class ConstantRateEphemeris(Ephemeris):
    '''
        Base frame rotating at a constant rate about an inertially-fixed axis through its origin, ex. an Earth-fixed frame.
        Base and inertial frames are aligned at epoch 0
    '''
    def __init__(self, position=(0.0, 0.0, 0.0), rotationAxis=(0.0, 0.0, 1.0), rotationRate=7.2921159e-5):
        self.position = np.array(position, dtype=float).reshape(3)
        self.rotationAxis = np.array(rotationAxis, dtype=float).reshape(3)
        self.rotationRate = rotationRate
        rotationMatrix(self.rotationAxis, 0.0) # Checks for a zero-length axis

    def getBaseFrame(self, epoch):
        return self.position.copy(), rotationMatrix(self.rotationAxis, self.rotationRate*epoch)

def ephemerisModelFactory(envDictReader=None) -> Ephemeris:
    if envDictReader == None:
        return FixedEphemeris()

    ephemerisModel = envDictReader.getString("Ephemeris.model")
    position = envDictReader.getVector("Ephemeris.position")

    if ephemerisModel == "Fixed":
        return FixedEphemeris(position)
    elif ephemerisModel == "ConstantRate":
        return ConstantRateEphemeris(position, envDictReader.getVector("Ephemeris.rotationAxis"), envDictReader.getFloat("Ephemeris.rotationRate"))
    else:
        raise ValueError("Ephemeris model: {} not found. Try 'Fixed' or 'ConstantRate'".format(ephemerisModel))
