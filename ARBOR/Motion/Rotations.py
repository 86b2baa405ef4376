'''
Rotation utilities for quaternions stored as numpy arrays in scalar-last order: q = [ x, y, z, w ]

Attitude convention: a quaternion describes the orientation of a body frame relative to a reference (base) frame.
`attitudeMatrix(q)` returns the passive rotation matrix A such that v_body = A * v_reference
    A(q) = (w^2 - |v|^2) * I + 2*v*v^T - 2*w*skew(v)

Quaternion kinematics (body-frame angular velocity omega): dq/dt = 0.5 * Xi(q) * omega

See: F. L. Markley, J. L. Crassidis, Fundamentals of Spacecraft Attitude Determination and Control (2014), Ch. 2-3
'''
import math

import numpy as np

from ARBOR.Errors import ZeroNormAxis

__all__ = [ "normalizeQuaternion", "attitudeMatrix", "quaternionFromAttitudeMatrix", "quaternionDerivative", "rotationMatrix", "rotationVector", "eulerAnglesFromQuaternion", "quaternionFromEulerAngles", "IDENTITY_QUATERNION" ]

IDENTITY_QUATERNION = np.array([ 0.0, 0.0, 0.0, 1.0 ])

def normalizeQuaternion(q) -> np.ndarray:
    q = np.asarray(q, dtype=float)
    norm = np.linalg.norm(q)
    if norm == 0 or not np.isfinite(norm):
        raise ValueError("Can't normalize quaternion: {}".format(q))
    return q / norm

def attitudeMatrix(q) -> np.ndarray:
    x, y, z, w = q
    v = np.array([ x, y, z ])
    return (w*w - v.dot(v))*np.eye(3) + 2*np.outer(v, v) - 2*w*np.array([
        [ 0.0, -z,    y   ],
        [ z,    0.0, -x   ],
        [ -y,   x,    0.0 ]
    ])

def quaternionFromAttitudeMatrix(A) -> np.ndarray:
    '''
        Inverse of `attitudeMatrix` (Shepperd's method). Always returns the quaternion with w >= 0
    '''
    A = np.asarray(A, dtype=float)
    trace = A[0,0] + A[1,1] + A[2,2]
    largest = max(trace, A[0,0], A[1,1], A[2,2])

    if largest == trace:
        w = 0.5*math.sqrt(max(0.0, 1 + trace))
        x = (A[1,2] - A[2,1]) / (4*w)
        y = (A[2,0] - A[0,2]) / (4*w)
        z = (A[0,1] - A[1,0]) / (4*w)
    elif largest == A[0,0]:
        x = 0.5*math.sqrt(max(0.0, 1 + A[0,0] - A[1,1] - A[2,2]))
        w = (A[1,2] - A[2,1]) / (4*x)
        y = (A[0,1] + A[1,0]) / (4*x)
        z = (A[0,2] + A[2,0]) / (4*x)
    elif largest == A[1,1]:
        y = 0.5*math.sqrt(max(0.0, 1 - A[0,0] + A[1,1] - A[2,2]))
        w = (A[2,0] - A[0,2]) / (4*y)
        x = (A[0,1] + A[1,0]) / (4*y)
        z = (A[1,2] + A[2,1]) / (4*y)
    else:
        z = 0.5*math.sqrt(max(0.0, 1 - A[0,0] - A[1,1] + A[2,2]))
        w = (A[0,1] - A[1,0]) / (4*z)
        x = (A[0,2] + A[2,0]) / (4*z)
        y = (A[1,2] + A[2,1]) / (4*z)

    q = np.array([ x, y, z, w ])
    if w < 0:
        q = -q
    return normalizeQuaternion(q)

def quaternionDerivative(q, omega) -> np.ndarray:
    ''' Returns dq/dt for body-frame angular velocity omega '''
    x, y, z, w = q
    wx, wy, wz = omega
    return 0.5*np.array([
        w*wx - z*wy + y*wz,
        z*wx + w*wy - x*wz,
        -y*wx + x*wy + w*wz,
        -x*wx - y*wy - z*wz
    ])

def rotationMatrix(axis, angle) -> np.ndarray:
    '''
        Active rotation matrix (Rodrigues' formula) rotating vectors by angle (radians) about axis.
        The passive matrix, re-expressing vectors in the rotated frame, is its transpose.
    '''
    axis = np.asarray(axis, dtype=float)
    norm = np.linalg.norm(axis)
    if norm == 0:
        raise ZeroNormAxis("Can't rotate about a zero-length axis")
    u = axis / norm
    K = np.array([
        [ 0.0,  -u[2],  u[1] ],
        [ u[2],  0.0,  -u[0] ],
        [ -u[1], u[0],  0.0  ]
    ])
    return np.eye(3) + math.sin(angle)*K + (1 - math.cos(angle))*(K @ K)

def rotationVector(q) -> np.ndarray:
    ''' Axis * angle (radians, in [0, pi]) of the rotation represented by q '''
    v = np.asarray(q[:3], dtype=float)
    w = q[3]
    if w < 0:
        v, w = -v, -w
    sinHalfAngle = np.linalg.norm(v)
    if sinHalfAngle < 1e-12:
        return 2*v # Small-angle limit
    angle = 2*math.atan2(sinHalfAngle, w)
    return v * (angle / sinHalfAngle)

def eulerAnglesFromQuaternion(q) -> np.ndarray:
    '''
        Returns ZYX (yaw-pitch-roll) Euler angles [ roll, pitch, yaw ] in radians
        A(q) = R_x(roll) * R_y(pitch) * R_z(yaw), each factor being a passive elementary rotation
    '''
    A = attitudeMatrix(q)
    yaw = math.atan2(A[0,1], A[0,0])
    pitch = -math.asin(min(1.0, max(-1.0, A[0,2])))
    roll = math.atan2(A[1,2], A[2,2])
    return np.array([ roll, pitch, yaw ])

def quaternionFromEulerAngles(roll, pitch, yaw) -> np.ndarray:
    ''' Inverse of `eulerAnglesFromQuaternion` '''
    A = rotationMatrix([1,0,0], roll).T @ rotationMatrix([0,1,0], pitch).T @ rotationMatrix([0,0,1], yaw).T
    return quaternionFromAttitudeMatrix(A)
