'''
Forward dynamics of a kinematic tree with the Articulated-Body Algorithm (Featherstone, Rigid Body Dynamics Algorithms (2008), Ch. 7)

All link quantities are expressed in each joint's outer frame (jof). The transform from a link's parent to the link is:
    X_i = jof_from_jif(q_i) * jif_from_ib * ib_from_parentJof
where ib_from_parentJof is the inverse of the parent joint's outer connection transform (omitted when the parent is the base).

`ArticulatedState` is a preallocated workspace shared with `ARBOR.Multibody.CompositeRigidBody`,
so that both algorithms consume exactly the same transforms, velocities and external forces.
'''
import numpy as np

from ARBOR.Errors import SingularJointInertia
from ARBOR.Motion.SpatialAlgebra import crossForceMatrix, crossMotionMatrix

__all__ = [ "ArticulatedState", "articulatedBodyAlgorithm" ]

class ArticulatedState():
    '''
        Per-link workspace, indexed by position in the tree's topological order (0 = first body after the base)

        Inputs (filled by `update`):
            * transforms:       parent link -> link `SpatialTransform` X_i
            * jointRates:       joint velocity coordinates
            * taus:             joint generalized forces
            * externalForces:   (6) external spatial forces acting on each link, link coordinates

        Outputs:
            * velocities, biasAccelerations (c_i) - computed by updateVelocities()
            * accelerations:        spatial accelerations of each link
            * jointAccelerations:   qDDot of each joint
    '''

    def __init__(self, parents, motionSubspaces, inertias):
        '''
            Inputs:
                * parents:          (list[int]) index of each link's parent link, -1 for the base
                * motionSubspaces:  (list[6 x nDof arrays])
                * inertias:         (list[6x6 arrays]) link spatial inertias, link coordinates
        '''
        n = len(parents)
        for i, parent in enumerate(parents):
            if parent >= i:
                raise ValueError("Links must be ordered so that every parent precedes its children: link {} has parent {}".format(i, parent))

        self.nLinks = n
        self.parents = list(parents)
        self.children = [ [ j for j in range(n) if parents[j] == i ] for i in range(n) ]
        self.motionSubspaces = [ np.asarray(S, dtype=float) for S in motionSubspaces ]
        self.inertias = [ np.asarray(I, dtype=float) for I in inertias ]
        self.nDofs = [ S.shape[1] for S in self.motionSubspaces ]

        self.dofOffsets = []
        offset = 0
        for nDof in self.nDofs:
            self.dofOffsets.append(offset)
            offset += nDof
        self.totalDof = offset

        self.transforms = [ None ]*n
        self.jointRates = [ np.zeros(nDof) for nDof in self.nDofs ]
        self.taus = [ np.zeros(nDof) for nDof in self.nDofs ]
        self.externalForces = [ np.zeros(6) for _ in range(n) ]

        self.velocities = [ np.zeros(6) for _ in range(n) ]
        self.biasAccelerations = [ np.zeros(6) for _ in range(n) ]
        self.jointBiasAccelerations = [ np.zeros(6) for _ in range(n) ]
        self.accelerations = [ np.zeros(6) for _ in range(n) ]
        self.jointAccelerations = [ np.zeros(nDof) for nDof in self.nDofs ]

        # ABA intermediates
        self._IA = [ np.zeros((6,6)) for _ in range(n) ]
        self._pA = [ np.zeros(6) for _ in range(n) ]
        self._U = [ None ]*n
        self._Dinv = [ None ]*n
        self._u = [ None ]*n

    def updateVelocities(self):
        ''' Root -> leaf: v_i = X_i * v_parent + S_i * qDot_i, c_i = v_i x vJ + cJ '''
        for i in range(self.nLinks):
            vJ = self.motionSubspaces[i] @ self.jointRates[i]
            parent = self.parents[i]
            if parent == -1:
                v = vJ.copy()
            else:
                v = self.transforms[i].applyMotion(self.velocities[parent]) + vJ
            self.velocities[i] = v
            self.biasAccelerations[i] = crossMotionMatrix(v) @ vJ + self.jointBiasAccelerations[i]

    def getJointAccelerationVector(self) -> np.ndarray:
        return np.concatenate(self.jointAccelerations) if self.nLinks > 0 else np.zeros(0)

    def setJointAccelerationVector(self, qDDot):
        for i in range(self.nLinks):
            offset = self.dofOffsets[i]
            self.jointAccelerations[i] = np.array(qDDot[offset:offset+self.nDofs[i]])

    def updateAccelerations(self):
        ''' Root -> leaf: a_i = X_i * a_parent + c_i + S_i * qDDot_i, from the current jointAccelerations '''
        for i in range(self.nLinks):
            parent = self.parents[i]
            aParent = np.zeros(6) if parent == -1 else self.transforms[i].applyMotion(self.accelerations[parent])
            self.accelerations[i] = aParent + self.biasAccelerations[i] + self.motionSubspaces[i] @ self.jointAccelerations[i]

def articulatedBodyAlgorithm(workspace: ArticulatedState):
    '''
        Computes joint accelerations from the joint transforms, rates, generalized forces and external forces in the workspace.
        Call workspace.updateVelocities() first.
        Results are stored in workspace.jointAccelerations and workspace.accelerations

        Raises `ARBOR.Errors.SingularJointInertia` if a joint's articulated inertia S^T*IA*S is not invertible
    '''
    ws = workspace
    n = ws.nLinks
    IA, pA = ws._IA, ws._pA

    # Pass 1 (velocities done in updateVelocities): articulated inertias and bias forces start as the link's own
    for i in range(n):
        v = ws.velocities[i]
        I = ws.inertias[i]
        IA[i] = I.copy()
        pA[i] = crossForceMatrix(v) @ (I @ v) - ws.externalForces[i]

    # Pass 2: leaf -> root. Reverse topological order handles every child before its parent
    for i in range(n-1, -1, -1):
        S = ws.motionSubspaces[i]
        U = IA[i] @ S
        D = S.T @ U
        try:
            if np.linalg.cond(D) > 1e14:
                raise np.linalg.LinAlgError("Ill-conditioned")
            Dinv = np.linalg.inv(D)
        except np.linalg.LinAlgError:
            raise SingularJointInertia("Articulated joint inertia of link {} is singular:\n{}".format(i, D))
        u = ws.taus[i] - S.T @ pA[i]

        ws._U[i], ws._Dinv[i], ws._u[i] = U, Dinv, u

        parent = ws.parents[i]
        if parent != -1:
            UDinv = U @ Dinv
            Ia = IA[i] - UDinv @ U.T
            pa = pA[i] + Ia @ ws.biasAccelerations[i] + UDinv @ u
            Xm = ws.transforms[i].motionMatrix()
            IA[parent] += Xm.T @ Ia @ Xm
            pA[parent] += ws.transforms[i].applyTransposeForce(pa)

    # Pass 3: root -> leaf
    for i in range(n):
        parent = ws.parents[i]
        aParent = np.zeros(6) if parent == -1 else ws.transforms[i].applyMotion(ws.accelerations[parent])
        aPrime = aParent + ws.biasAccelerations[i]
        qDDot = ws._Dinv[i] @ (ws._u[i] - ws._U[i].T @ aPrime)
        ws.jointAccelerations[i] = qDDot
        ws.accelerations[i] = aPrime + ws.motionSubspaces[i] @ qDDot
