'''
Six-dimensional spatial vector algebra (Featherstone notation).

Spatial vectors are stored as numpy arrays laid out as [ angular; linear ]:

* `MotionVector`: [ angular velocity; linear velocity of the frame origin ]
* `ForceVector`: [ moment about the frame origin; force ]

`SpatialTransform` represents a change of coordinates from frame A to frame B (B_X_A), defined by:

* rotation: (3x3) passive rotation matrix E, so that v_B = E * v_A
* translation: (3-vector) position of B's origin, expressed in A coordinates

Motion vectors transform as [ E, 0; -E*skew(r), E ], force vectors as the dual [ E, -E*skew(r); 0, E ]

Learn more about spatial algebra: R. Featherstone, Rigid Body Dynamics Algorithms (2008), Ch. 2
'''
import numpy as np

from ARBOR.Errors import AlgebraError, InvalidInertia

__all__ = [ "skew", "crossMotionMatrix", "crossForceMatrix", "MotionVector", "ForceVector", "SpatialTransform", "SpatialInertia" ]

def skew(v) -> np.ndarray:
    ''' Returns the 3x3 matrix [v x], such that skew(v) @ u == np.cross(v, u) '''
    return np.array([
        [ 0.0,   -v[2],  v[1] ],
        [ v[2],   0.0,  -v[0] ],
        [ -v[1],  v[0],  0.0  ]
    ])

def crossMotionMatrix(m) -> np.ndarray:
    ''' 6x6 matrix of the motion cross product (v x) for a motion vector stored as a 6-element array '''
    wx = skew(m[:3])
    result = np.zeros((6,6))
    result[:3, :3] = wx
    result[3:, 3:] = wx
    result[3:, :3] = skew(m[3:])
    return result

def crossForceMatrix(m) -> np.ndarray:
    ''' 6x6 matrix of the force cross product (v x*), equal to -crossMotionMatrix(m).T '''
    return -crossMotionMatrix(m).T

def _crossMotion(m, n) -> np.ndarray:
    wm, vm = m[:3], m[3:]
    wn, vn = n[:3], n[3:]
    return np.concatenate((np.cross(wm, wn), np.cross(wm, vn) + np.cross(vm, wn)))

def _crossForce(m, f) -> np.ndarray:
    wm, vm = m[:3], m[3:]
    nf, ff = f[:3], f[3:]
    return np.concatenate((np.cross(wm, nf) + np.cross(vm, ff), np.cross(wm, ff)))

class _SpatialVector():
    __slots__ = [ "vector" ]

    def __init__(self, angular=(0.0, 0.0, 0.0), linear=(0.0, 0.0, 0.0)):
        self.vector = np.concatenate((np.asarray(angular, dtype=float), np.asarray(linear, dtype=float)))

    @classmethod
    def fromArray(cls, array):
        result = cls.__new__(cls)
        result.vector = np.array(array, dtype=float)
        if result.vector.shape != (6,):
            raise ValueError("Spatial vectors require 6 components, got shape: {}".format(result.vector.shape))
        return result

    @property
    def angular(self) -> np.ndarray:
        return self.vector[:3]

    @property
    def linear(self) -> np.ndarray:
        return self.vector[3:]

    def __add__(self, other):
        if type(other) != type(self):
            raise TypeError("Can't add {} to {}".format(type(other).__name__, type(self).__name__))
        return type(self).fromArray(self.vector + other.vector)

    def __sub__(self, other):
        if type(other) != type(self):
            raise TypeError("Can't subtract {} from {}".format(type(other).__name__, type(self).__name__))
        return type(self).fromArray(self.vector - other.vector)

    def __mul__(self, scalar):
        return type(self).fromArray(self.vector * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        return type(self).fromArray(self.vector / scalar)

    def __neg__(self):
        return type(self).fromArray(-self.vector)

    def __eq__(self, other):
        return type(other) == type(self) and np.array_equal(self.vector, other.vector)

    def __repr__(self):
        return "{}({}, {})".format(type(self).__name__, list(self.angular), list(self.linear))

    def isclose(self, other, rtol=1e-9, atol=1e-12) -> bool:
        return np.allclose(self.vector, other.vector, rtol=rtol, atol=atol)

class MotionVector(_SpatialVector):
    ''' Spatial velocity / acceleration / motion subspace column '''
    __slots__ = []

    def crossMotion(self, other: "MotionVector") -> "MotionVector":
        ''' Motion cross product (self x other) '''
        return MotionVector.fromArray(_crossMotion(self.vector, other.vector))

    def crossForce(self, force: "ForceVector") -> "ForceVector":
        ''' Force cross product (self x* force) '''
        return ForceVector.fromArray(_crossForce(self.vector, force.vector))

    def dot(self, force: "ForceVector") -> float:
        ''' Power delivered by force through this motion '''
        return float(np.dot(self.vector, force.vector))

class ForceVector(_SpatialVector):
    ''' Spatial force / momentum '''
    __slots__ = []

    def dot(self, motion: MotionVector) -> float:
        return float(np.dot(self.vector, motion.vector))

class SpatialTransform():
    __slots__ = [ "rotation", "translation" ]

    def __init__(self, rotation=None, translation=None, checkRotation=True):
        '''
            Inputs:
                * rotation:         (3x3 array-like) passive rotation matrix, A coordinates -> B coordinates. Defaults to the identity
                * translation:      (3 array-like) position of B's origin relative to A's origin, in A coordinates. Defaults to zero
                * checkRotation:    (bool) check that rotation is orthonormal with det = +1 (tolerance 1e-9)
        '''
        if rotation is None:
            self.rotation = np.eye(3)
        else:
            self.rotation = np.array(rotation, dtype=float).reshape((3,3))

        if translation is None:
            self.translation = np.zeros(3)
        else:
            self.translation = np.array(translation, dtype=float).reshape(3)

        if checkRotation:
            orthoError = np.max(np.abs(self.rotation @ self.rotation.T - np.eye(3)))
            if orthoError > 1e-9 or np.linalg.det(self.rotation) < 0:
                raise AlgebraError("Rotation matrix is not a proper orthonormal matrix (max |E*E^T - I| = {}):\n{}".format(orthoError, self.rotation))

    @classmethod
    def identity(cls):
        return cls()

    @classmethod
    def fromMotionMatrix(cls, X):
        ''' Recovers a transform from its 6x6 motion-transform matrix '''
        X = np.asarray(X, dtype=float)
        E = X[:3, :3]
        # lower left block is -E*skew(r) -> skew(r) = -E^T * X21
        rx = -E.T @ X[3:, :3]
        return cls(E, [ rx[2,1], rx[0,2], rx[1,0] ])

    #### Composition ####
    def __mul__(self, other):
        '''
            X2 * X1 applies X1 first, then X2 (C_X_A = C_X_B * B_X_A).
            Also applies the transform to MotionVector/ForceVector objects.
        '''
        if isinstance(other, SpatialTransform):
            E = self.rotation @ other.rotation
            r = other.translation + other.rotation.T @ self.translation
            return SpatialTransform(E, r, checkRotation=False)
        elif isinstance(other, MotionVector):
            return self.transformMotion(other)
        elif isinstance(other, ForceVector):
            return self.transformForce(other)
        else:
            return NotImplemented

    def inverse(self) -> "SpatialTransform":
        return SpatialTransform(self.rotation.T, -self.rotation @ self.translation, checkRotation=False)

    #### Application ####
    def applyMotion(self, m: np.ndarray) -> np.ndarray:
        ''' Transforms a motion vector stored as a 6-element array '''
        E = self.rotation
        w = m[:3]
        return np.concatenate((E @ w, E @ (m[3:] - np.cross(self.translation, w))))

    def applyForce(self, f: np.ndarray) -> np.ndarray:
        E = self.rotation
        force = f[3:]
        return np.concatenate((E @ (f[:3] - np.cross(self.translation, force)), E @ force))

    def applyInverseMotion(self, m: np.ndarray) -> np.ndarray:
        ''' Equivalent to self.inverse().applyMotion(m) '''
        Et = self.rotation.T
        w = Et @ m[:3]
        return np.concatenate((w, Et @ m[3:] + np.cross(self.translation, w)))

    def applyTransposeForce(self, f: np.ndarray) -> np.ndarray:
        '''
            Applies X^T to a force vector, which maps a force expressed in B coordinates back to A coordinates
            Equivalent to self.inverse().applyForce(f)
        '''
        Et = self.rotation.T
        force = Et @ f[3:]
        return np.concatenate((Et @ f[:3] + np.cross(self.translation, force), force))

    def transformMotion(self, motion: MotionVector) -> MotionVector:
        return MotionVector.fromArray(self.applyMotion(motion.vector))

    def transformForce(self, force: ForceVector) -> ForceVector:
        return ForceVector.fromArray(self.applyForce(force.vector))

    def transformInertia(self, inertia) -> np.ndarray:
        '''
            Expresses a (6x6) spatial inertia given in A coordinates in B coordinates: I_B = X* I_A X^-1
            Accepts a `SpatialInertia` or a 6x6 array
        '''
        if isinstance(inertia, SpatialInertia):
            inertia = inertia.matrix()
        F = self.forceMatrix()
        return F @ inertia @ F.T

    #### Matrix forms ####
    def motionMatrix(self) -> np.ndarray:
        E = self.rotation
        X = np.zeros((6,6))
        X[:3, :3] = E
        X[3:, 3:] = E
        X[3:, :3] = -E @ skew(self.translation)
        return X

    def forceMatrix(self) -> np.ndarray:
        E = self.rotation
        X = np.zeros((6,6))
        X[:3, :3] = E
        X[3:, 3:] = E
        X[:3, 3:] = -E @ skew(self.translation)
        return X

    def isclose(self, other, atol=1e-9) -> bool:
        return np.allclose(self.rotation, other.rotation, atol=atol) and np.allclose(self.translation, other.translation, atol=atol)

    def __repr__(self):
        return "SpatialTransform(rotation={}, translation={})".format(self.rotation.tolist(), self.translation.tolist())

class SpatialInertia():
    '''
        Rigid body spatial inertia, expressed in the body frame:
            [ Ic + m*cx*cx^T,   m*cx ]
            [ m*cx^T,           m*1  ]
        Where cx = skew(centerOfMass), Ic is the 3x3 inertia tensor about the center of mass
    '''
    __slots__ = [ "mass", "centerOfMass", "inertia", "_matrix" ]

    def __init__(self, mass, centerOfMass=(0.0, 0.0, 0.0), inertia=None):
        self.mass = float(mass)
        self.centerOfMass = np.array(centerOfMass, dtype=float).reshape(3)
        self.inertia = np.eye(3) if inertia is None else np.array(inertia, dtype=float).reshape((3,3))
        self._matrix = None

        if not np.isfinite(self.mass) or self.mass <= 0:
            raise InvalidInertia("Mass must be positive and finite, got: {}".format(self.mass))

        scale = max(1.0, np.max(np.abs(self.inertia)))
        if np.max(np.abs(self.inertia - self.inertia.T)) > 1e-9*scale:
            raise InvalidInertia("Inertia tensor must be symmetric:\n{}".format(self.inertia))

        if not np.all(np.isfinite(self.inertia)) or np.min(np.linalg.eigvalsh(self.inertia)) <= 0:
            raise InvalidInertia("Inertia tensor must be positive definite:\n{}".format(self.inertia))

    def matrix(self) -> np.ndarray:
        ''' 6x6 matrix form, computed once '''
        if self._matrix is None:
            cx = skew(self.centerOfMass)
            m = self.mass
            I = np.zeros((6,6))
            I[:3, :3] = self.inertia + m * cx @ cx.T
            I[:3, 3:] = m * cx
            I[3:, :3] = m * cx.T
            I[3:, 3:] = m * np.eye(3)
            self._matrix = I
        return self._matrix

    def __mul__(self, motion):
        ''' Inertia * MotionVector -> ForceVector (momentum) '''
        if isinstance(motion, MotionVector):
            return ForceVector.fromArray(self.matrix() @ motion.vector)
        return NotImplemented

    def __repr__(self):
        return "SpatialInertia(mass={}, centerOfMass={}, inertia={})".format(self.mass, self.centerOfMass.tolist(), self.inertia.tolist())
