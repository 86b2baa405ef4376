'''
Joints connect an inner body (or the base) to an outer body. The set of joint types is closed:

* `RevoluteJoint`: 1 dof, rotation by an angle about a fixed unit axis
* `PrismaticJoint`: 1 dof, translation along a fixed unit axis
* `FloatingJoint`: 6 dof, position coordinates [ qx, qy, qz, qw, x, y, z ] (quaternion + translation), velocity coordinates [ wx, wy, wz, vx, vy, vz ]

All joint quantities are expressed in the joint outer frame (jof). `jointTransform(q)` returns the transform jof_from_jif (joint inner frame -> joint outer frame).
Every joint carries a spring/damper/constant force element:
    tau = -springConstant * (q - equilibrium) - damping * qDot + constantForce
'''
from abc import ABC, abstractmethod

import numpy as np

from ARBOR.Errors import ZeroNormAxis
from ARBOR.Motion.Rotations import (IDENTITY_QUATERNION, attitudeMatrix,
                                    normalizeQuaternion, quaternionDerivative,
                                    rotationMatrix, rotationVector)
from ARBOR.Motion.SpatialAlgebra import SpatialTransform

__all__ = [ "JointParameters", "Joint", "RevoluteJoint", "PrismaticJoint", "FloatingJoint", "jointClasses" ]

class JointParameters():
    '''
        Spring / damper / constant force acting along a joint's degrees of freedom.
        Scalars for 1-dof joints, scalars or 6-vectors ([ angular; linear ]) for floating joints
    '''
    __slots__ = [ "springConstant", "damping", "equilibrium", "constantForce" ]

    def __init__(self, springConstant=0.0, damping=0.0, equilibrium=0.0, constantForce=0.0):
        self.springConstant = springConstant
        self.damping = damping
        self.equilibrium = equilibrium
        self.constantForce = constantForce

    def asArrays(self, nDof):
        ''' Returns (springConstant, damping, equilibrium, constantForce) as arrays of length nDof '''
        result = []
        for value in (self.springConstant, self.damping, self.equilibrium, self.constantForce):
            array = np.array(value, dtype=float).reshape(-1)
            if len(array) == 1:
                array = np.full(nDof, array[0])
            elif len(array) != nDof:
                raise ValueError("Joint parameter {} has {} components, expected 1 or {}".format(value, len(array), nDof))
            result.append(array)
        return tuple(result)

    def __repr__(self):
        return "JointParameters(springConstant={}, damping={}, equilibrium={}, constantForce={})".format(self.springConstant, self.damping, self.equilibrium, self.constantForce)

def _unitAxis(axis):
    axis = np.array(axis, dtype=float).reshape(3)
    norm = np.linalg.norm(axis)
    if not norm > 0:
        raise ZeroNormAxis("Joint axis must have a non-zero length, got: {}".format(axis))
    return axis / norm

class Joint(ABC):
    nPositions = 1
    ''' Number of position coordinates '''
    nDof = 1
    ''' Number of velocity coordinates (degrees of freedom) '''
    className = None
    ''' Name used for this joint type in simulation definition files '''
    positionNames = []
    velocityNames = []

    def __init__(self, name, parameters=None, position=None, velocity=None):
        self.name = name
        self.parameters = JointParameters() if parameters is None else parameters
        self._k, self._c, self._equilibrium, self._f = self.parameters.asArrays(self.nDof)
        self.position = self._defaultPosition() if position is None else self._checkSize(position, self.nPositions, "position")
        ''' Initial position coordinates '''
        self.velocity = np.zeros(self.nDof) if velocity is None else self._checkSize(velocity, self.nDof, "velocity")
        ''' Initial velocity coordinates '''
        self._subspace = self._computeMotionSubspace()

    def _checkSize(self, values, n, description):
        values = np.array(values, dtype=float).reshape(-1)
        if len(values) != n:
            raise ValueError("{} joint {} {} must have {} components, got {}".format(self.className, self.name, description, n, len(values)))
        return values

    def _defaultPosition(self):
        return np.zeros(self.nPositions)

    def motionSubspace(self) -> np.ndarray:
        ''' (6 x nDof) matrix S mapping joint velocities to the spatial velocity of the jof relative to the jif, jof coordinates '''
        return self._subspace

    def biasAcceleration(self, q, qDot) -> np.ndarray:
        ''' Velocity-product acceleration term cJ = dS/dt * qDot. Zero for all joints whose S is constant in jof coordinates '''
        return np.zeros(6)

    def coordinateNames(self):
        return [ "{}.{}".format(self.name, c) for c in self.positionNames + self.velocityNames ]

    @abstractmethod
    def _computeMotionSubspace(self) -> np.ndarray:
        pass

    @abstractmethod
    def jointTransform(self, q) -> SpatialTransform:
        pass

    @abstractmethod
    def generalizedForce(self, q, qDot) -> np.ndarray:
        pass

    def positionDerivative(self, q, qDot) -> np.ndarray:
        return qDot

    def __repr__(self):
        return "{}Joint({})".format(self.className, self.name)

class _SingleAxisJoint(Joint):
    def __init__(self, name, axis=(0.0, 0.0, 1.0), parameters=None, position=None, velocity=None):
        self.axis = _unitAxis(axis)
        Joint.__init__(self, name, parameters, position, velocity)

    def generalizedForce(self, q, qDot):
        return -self._k*(q - self._equilibrium) - self._c*qDot + self._f

class RevoluteJoint(_SingleAxisJoint):
    className = "Revolute"
    positionNames = [ "angle" ]
    velocityNames = [ "rate" ]

    def _computeMotionSubspace(self):
        return np.concatenate((self.axis, np.zeros(3))).reshape((6,1))

    def jointTransform(self, q):
        # Passive rotation: transpose of the active rotation about the axis
        return SpatialTransform(rotationMatrix(self.axis, q[0]).T, None, checkRotation=False)

class PrismaticJoint(_SingleAxisJoint):
    className = "Prismatic"
    positionNames = [ "displacement" ]
    velocityNames = [ "rate" ]

    def _computeMotionSubspace(self):
        return np.concatenate((np.zeros(3), self.axis)).reshape((6,1))

    def jointTransform(self, q):
        return SpatialTransform(None, self.axis*q[0], checkRotation=False)

class FloatingJoint(Joint):
    '''
        6 dof joint. Position coordinates are the jif -> jof attitude quaternion (scalar-last) and the position of the jof origin in jif coordinates.
        Velocity coordinates are the angular and linear velocity of the jof relative to the jif, in jof coordinates.

        The spring acts on the rotation vector of the attitude quaternion (minus equilibrium[:3]) and on
        the translation (minus equilibrium[3:]) expressed in jof coordinates
    '''
    className = "Floating"
    nPositions = 7
    nDof = 6
    positionNames = [ "qx", "qy", "qz", "qw", "x", "y", "z" ]
    velocityNames = [ "wx", "wy", "wz", "vx", "vy", "vz" ]

    def __init__(self, name, parameters=None, position=None, velocity=None, normalize=True):
        ''' normalize=False keeps the quaternion in position as given, used when restoring a saved (possibly drifted) state '''
        Joint.__init__(self, name, parameters, position, velocity)
        if normalize:
            self.position[:4] = normalizeQuaternion(self.position[:4])

    def _defaultPosition(self):
        return np.concatenate((IDENTITY_QUATERNION, np.zeros(3)))

    def _computeMotionSubspace(self):
        return np.eye(6)

    def jointTransform(self, q):
        return SpatialTransform(attitudeMatrix(normalizeQuaternion(q[:4])), q[4:7], checkRotation=False)

    def generalizedForce(self, q, qDot):
        attitude = normalizeQuaternion(q[:4])
        A = attitudeMatrix(attitude)
        displacement = np.concatenate((rotationVector(attitude) - self._equilibrium[:3], A @ (q[4:7] - self._equilibrium[3:])))
        return -self._k*displacement - self._c*qDot + self._f

    def positionDerivative(self, q, qDot):
        A = attitudeMatrix(normalizeQuaternion(q[:4]))
        # Unnormalized q in the quaternion kinematics: preserves |q| exactly in continuous time
        return np.concatenate((quaternionDerivative(q[:4], qDot[:3]), A.T @ qDot[3:]))

jointClasses = { jointClass.className: jointClass for jointClass in [ RevoluteJoint, PrismaticJoint, FloatingJoint ] }
''' Joint types by the class name used in simulation definition files '''
