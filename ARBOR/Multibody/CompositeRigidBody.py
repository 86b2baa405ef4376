'''
Forward dynamics with the Composite-Rigid-Body Algorithm (Featherstone, Rigid Body Dynamics Algorithms (2008), Ch. 6):

1. Bias forces C(q, qDot, f_ext): Recursive Newton-Euler inverse dynamics with qDDot = 0
2. Joint-space inertia matrix H from composite rigid body inertias
3. Solve H * qDDot = tau - C

Slower than `ARBOR.Multibody.ArticulatedBody.articulatedBodyAlgorithm` for long chains, used to cross-check it.
'''
import numpy as np
import scipy.linalg

from ARBOR.Errors import SingularJointInertia
from ARBOR.Motion.SpatialAlgebra import crossForceMatrix

from .ArticulatedBody import ArticulatedState

__all__ = [ "recursiveNewtonEulerBias", "jointSpaceInertia", "compositeRigidBodyAlgorithm" ]

def recursiveNewtonEulerBias(workspace: ArticulatedState) -> np.ndarray:
    ''' Returns C, the generalized forces required to produce qDDot = 0. Call workspace.updateVelocities() first '''
    ws = workspace
    n = ws.nLinks
    forces = [ None ]*n
    accelerations = [ None ]*n

    for i in range(n):
        parent = ws.parents[i]
        aParent = np.zeros(6) if parent == -1 else ws.transforms[i].applyMotion(accelerations[parent])
        accelerations[i] = aParent + ws.biasAccelerations[i]
        v = ws.velocities[i]
        I = ws.inertias[i]
        forces[i] = I @ accelerations[i] + crossForceMatrix(v) @ (I @ v) - ws.externalForces[i]

    C = np.zeros(ws.totalDof)
    for i in range(n-1, -1, -1):
        offset = ws.dofOffsets[i]
        C[offset:offset+ws.nDofs[i]] = ws.motionSubspaces[i].T @ forces[i]
        parent = ws.parents[i]
        if parent != -1:
            forces[parent] = forces[parent] + ws.transforms[i].applyTransposeForce(forces[i])

    return C

def jointSpaceInertia(workspace: ArticulatedState) -> np.ndarray:
    ''' Joint-space inertia matrix H (symmetric positive definite for a valid tree) '''
    ws = workspace
    n = ws.nLinks
    IC = [ I.copy() for I in ws.inertias ]
    H = np.zeros((ws.totalDof, ws.totalDof))

    for i in range(n-1, -1, -1):
        parent = ws.parents[i]
        if parent != -1:
            Xm = ws.transforms[i].motionMatrix()
            IC[parent] += Xm.T @ IC[i] @ Xm

    for i in range(n):
        Si = ws.motionSubspaces[i]
        oi, ni = ws.dofOffsets[i], ws.nDofs[i]
        F = IC[i] @ Si
        H[oi:oi+ni, oi:oi+ni] = Si.T @ F

        j = i
        while ws.parents[j] != -1:
            F = ws.transforms[j].motionMatrix().T @ F
            j = ws.parents[j]
            oj, nj = ws.dofOffsets[j], ws.nDofs[j]
            block = F.T @ ws.motionSubspaces[j]
            H[oi:oi+ni, oj:oj+nj] = block
            H[oj:oj+nj, oi:oi+ni] = block.T

    return H

def compositeRigidBodyAlgorithm(workspace: ArticulatedState):
    '''
        Same inputs/outputs as `ARBOR.Multibody.ArticulatedBody.articulatedBodyAlgorithm`
        Raises `ARBOR.Errors.SingularJointInertia` if H is not positive definite
    '''
    ws = workspace
    if ws.totalDof == 0:
        return

    C = recursiveNewtonEulerBias(ws)
    H = jointSpaceInertia(ws)
    tau = np.concatenate(ws.taus) if ws.nLinks > 0 else np.zeros(0)

    try:
        qDDot = scipy.linalg.solve(H, tau - C, assume_a="pos")
    except (scipy.linalg.LinAlgError, ValueError) as e:
        raise SingularJointInertia("Joint-space inertia matrix is not positive definite: {}".format(e))

    ws.setJointAccelerationVector(qDDot)
    ws.updateAccelerations()
