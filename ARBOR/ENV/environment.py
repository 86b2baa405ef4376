''' Main wrapper class that ties together the gravity, magnetic field and ephemeris models. Owned by the base of a kinematic tree '''

from collections import namedtuple

import numpy as np

from ARBOR.ENV.EphemerisModelling import FixedEphemeris, ephemerisModelFactory
from ARBOR.ENV.GravityModelling import (EARTH_MU, NoGravity,
                                        gravityGradientTorqueFromMatrix,
                                        gravityModelFactory)
from ARBOR.ENV.MagneticFieldModelling import (NoMagneticField,
                                              magneticFieldModelFactory)

__all__ = [ "EnvironmentalConditions", "Environment", "environmentFactory" ]

# Environment values at a single point, expressed in base frame coordinates
EnvironmentalConditions = namedtuple(
    "EnvironmentalConditions",
    [
        "gravity",
        "magneticField",
        "inertialPosition",
    ],
)

class Environment():
    '''
        Wraps gravity, magnetic field and ephemeris models, presenting a single interface to `ARBOR.Multibody.multibodySystem.MultibodySystem`
        Positions passed in are base frame coordinates, results are returned in base frame coordinates.

        Model failures propagate to the caller, they are never retried.
    '''

    def __init__(self, gravityModel=None, magneticFieldModel=None, ephemeris=None, epoch=0.0, gravityGradient=False, gravitationalParameter=EARTH_MU):
        '''
            Inputs:
                * gravityModel:             (`ARBOR.ENV.GravityModelling.GravityModel`) defaults to NoGravity
                * magneticFieldModel:       (`ARBOR.ENV.MagneticFieldModelling.MagneticFieldModel`) defaults to NoMagneticField
                * ephemeris:                (`ARBOR.ENV.EphemerisModelling.Ephemeris`) defaults to a FixedEphemeris coincident with the inertial frame
                * epoch:                    (float) epoch (s) corresponding to simulation time 0
                * gravityGradient:          (bool) whether to apply gravity-gradient torques to all bodies
                * gravitationalParameter:   (float) mu used for gravity-gradient torques
        '''
        self.gravityModel = NoGravity() if gravityModel is None else gravityModel
        self.magneticFieldModel = NoMagneticField() if magneticFieldModel is None else magneticFieldModel
        self.ephemeris = FixedEphemeris() if ephemeris is None else ephemeris
        self.epoch = epoch
        self.gravityGradient = gravityGradient
        self.gravitationalParameter = gravitationalParameter

    def getBaseFrame(self, time):
        return self.ephemeris.getBaseFrame(self.epoch + time)

    def getConditions(self, time, position, baseFrame=None) -> EnvironmentalConditions:
        '''
            Evaluates gravity and the magnetic field at a base-frame position
            Pass in baseFrame (from getBaseFrame) when evaluating several positions at the same time
        '''
        if baseFrame is None:
            baseFrame = self.getBaseFrame(time)
        origin, inertialFromBase = baseFrame

        inertialPosition = origin + inertialFromBase @ position
        gravity = inertialFromBase.T @ self.gravityModel.getGravity(inertialPosition)
        magneticField = inertialFromBase.T @ self.magneticFieldModel.getMagneticField(inertialPosition, self.epoch + time)

        return EnvironmentalConditions(gravity, magneticField, inertialPosition)

    def getGravityGradientTorque(self, inertialPosition, bodyFromBase, momentOfInertia, baseFrame) -> np.ndarray:
        ''' Body-frame gravity-gradient torque about the center of mass. Returns zeros if gravity-gradient torques are disabled '''
        if not self.gravityGradient:
            return np.zeros(3)
        _, inertialFromBase = baseFrame
        bodyFromInertial = bodyFromBase @ inertialFromBase.T
        return gravityGradientTorqueFromMatrix(inertialPosition, bodyFromInertial, momentOfInertia, self.gravitationalParameter)

def environmentFactory(simDefinition=None) -> Environment:
    ''' Sets up the gravity, magnetic field and ephemeris models requested in the Environment dictionary of a sim definition '''
    if simDefinition is None:
        return Environment()

    from ARBOR.IO import SubDictReader
    envDictReader = SubDictReader("Environment", simDefinition)

    return Environment(
        gravityModel=gravityModelFactory(envDictReader),
        magneticFieldModel=magneticFieldModelFactory(envDictReader),
        ephemeris=ephemerisModelFactory(envDictReader),
        epoch=envDictReader.getFloat("epoch"),
        gravityGradient=envDictReader.getBool("gravityGradient"),
        gravitationalParameter=envDictReader.getFloat("Gravity.mu")
    )
