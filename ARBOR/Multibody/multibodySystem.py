'''
`MultibodySystem` turns a `ARBOR.Multibody.kinematicTree.KinematicTree` into an `ARBOR.Motion.odeState.OdeModel`.

State layout: joints in topological order, each contributing [ position coordinates, velocity coordinates ]
Each derivative evaluation:

1. Computes joint transforms, link velocities, body positions/attitudes (forward kinematics)
2. Evaluates the environment (gravity, magnetic field, gravity-gradient torque) once per body, and any registered external force models
3. Computes joint generalized forces (springs/dampers/constant forces)
4. Solves for joint accelerations with the ABA (default) or the CRB algorithm

Body states (`ARBOR.Multibody.Bodies.BodyState`) are only updated in commitState(), which the solver calls after every accepted step.
'''
import numpy as np

from ARBOR.Motion.odeState import ArrayState, OdeModel
from ARBOR.Motion.Rotations import quaternionFromAttitudeMatrix
from ARBOR.Motion.SpatialAlgebra import ForceVector

from .ArticulatedBody import ArticulatedState, articulatedBodyAlgorithm
from .Bodies import BodyState
from .CompositeRigidBody import compositeRigidBodyAlgorithm
from .Serialization import systemFromSimDefinition

__all__ = [ "MultibodySystem", "dynamicsAlgorithms" ]

dynamicsAlgorithms = {
    "ABA": articulatedBodyAlgorithm,
    "CRB": compositeRigidBodyAlgorithm,
}

class _Link():
    ''' Constant data for one body + its inner joint '''
    __slots__ = [ "body", "joint", "parentIndex", "fixedTransform", "jofFromOb", "obFromJof", "qSlice", "vSlice", "externalForceModels" ]

class MultibodySystem(OdeModel):

    def __init__(self, tree, algorithm="ABA", environment=None):
        '''
            Inputs:
                * tree:         (`ARBOR.Multibody.kinematicTree.KinematicTree`)
                * algorithm:    (str) "ABA" or "CRB"
                * environment:  (`ARBOR.ENV.Environment`) defaults to the environment of the tree's base
        '''
        if algorithm not in dynamicsAlgorithms:
            raise ValueError("Dynamics algorithm: {} not implemented. Options are: {}".format(algorithm, ", ".join(dynamicsAlgorithms.keys())))

        self.tree = tree
        self.algorithm = algorithm
        self._solveDynamics = dynamicsAlgorithms[algorithm]
        self.environment = tree.base.environment if environment is None else environment

        self.links = []
        indexOf = {}
        offset = 0
        for bodyId in tree.bodyIds:
            jointId = tree.innerJointOf(bodyId)
            parentId = tree.parentOf(bodyId)

            link = _Link()
            link.body = tree.getComponent(bodyId)
            link.joint = tree.getComponent(jointId)
            link.parentIndex = -1 if parentId == tree.baseId else indexOf[parentId]
            link.jofFromOb = tree.outerConnection(jointId).transform
            link.obFromJof = link.jofFromOb.inverse()

            jifFromIb = tree.innerConnection(jointId).transform
            if link.parentIndex == -1:
                link.fixedTransform = jifFromIb
            else:
                link.fixedTransform = jifFromIb * self.links[link.parentIndex].obFromJof

            nq, nv = link.joint.nPositions, link.joint.nDof
            link.qSlice = slice(offset, offset + nq)
            link.vSlice = slice(offset + nq, offset + nq + nv)
            offset += nq + nv
            link.externalForceModels = []

            indexOf[bodyId] = len(self.links)
            self.links.append(link)

        self.nStates = offset
        self._linkIndexByBodyName = { link.body.name: i for i, link in enumerate(self.links) }
        self._names = [ name for link in self.links for name in link.joint.coordinateNames() ]

        self.workspace = ArticulatedState(
            [ link.parentIndex for link in self.links ],
            [ link.joint.motionSubspace() for link in self.links ],
            [ link.jofFromOb.transformInertia(link.body.spatialInertia) for link in self.links ]
        )

        n = len(self.links)
        self._jofFromBase = [ None ]*n
        self._obFromBase = [ None ]*n
        self._conditions = [ None ]*n
        self.lastCommitTime = None

    @classmethod
    def fromSimDefinition(cls, simDefinition, environment=None):
        ''' Builds the tree described by the Base, Bodies and Joints dictionaries, solved with SimControl.algorithm '''
        tree = systemFromSimDefinition(simDefinition, environment)
        return cls(tree, simDefinition.getValue("SimControl.algorithm"))

    #### State ####
    def componentNames(self):
        return list(self._names)

    def initialState(self) -> ArrayState:
        ''' State built from each joint's initial position/velocity '''
        values = np.zeros(self.nStates)
        for link in self.links:
            values[link.qSlice] = link.joint.position
            values[link.vSlice] = link.joint.velocity
        return ArrayState(values, self._names)

    def _getLink(self, jointName):
        for link in self.links:
            if link.joint.name == jointName:
                return link
        raise KeyError("No joint named: {}".format(jointName))

    def getJointPosition(self, state, jointName) -> np.ndarray:
        return state.values[self._getLink(jointName).qSlice].copy()

    def getJointVelocity(self, state, jointName) -> np.ndarray:
        return state.values[self._getLink(jointName).vSlice].copy()

    def setJointState(self, state, jointName, position=None, velocity=None):
        link = self._getLink(jointName)
        if position is not None:
            state.values[link.qSlice] = position
        if velocity is not None:
            state.values[link.vSlice] = velocity

    #### External forces ####
    def addExternalForce(self, bodyName, forceModel):
        '''
            Registers forceModel(t, bodyState) -> spatial force ([ moment about the body origin; force ], body coordinates) acting on a body.
            bodyState is an `ARBOR.Multibody.Bodies.BodyState` for the stage being evaluated (accelerations not filled in).
            May return a `ARBOR.Motion.SpatialAlgebra.ForceVector` or a 6-element array
        '''
        try:
            link = self.links[self._linkIndexByBodyName[bodyName]]
        except KeyError:
            raise KeyError("No body named: {}".format(bodyName))
        link.externalForceModels.append(forceModel)

    #### Dynamics ####
    def _updateKinematicsAndForces(self, t, values):
        ws = self.workspace
        links = self.links

        for i, link in enumerate(links):
            q = values[link.qSlice]
            qDot = values[link.vSlice]
            X = link.joint.jointTransform(q) * link.fixedTransform
            ws.transforms[i] = X
            ws.jointRates[i] = qDot
            ws.taus[i] = link.joint.generalizedForce(q, qDot)
            ws.jointBiasAccelerations[i] = link.joint.biasAcceleration(q, qDot)
            self._jofFromBase[i] = X if link.parentIndex == -1 else X * self._jofFromBase[link.parentIndex]
            self._obFromBase[i] = link.obFromJof * self._jofFromBase[i]

        ws.updateVelocities()

        environment = self.environment
        baseFrame = environment.getBaseFrame(t)
        for i, link in enumerate(links):
            body = link.body
            bodyFromBase = self._obFromBase[i].rotation
            origin = self._obFromBase[i].translation
            com = body.centerOfMass
            comPosition = origin + bodyFromBase.T @ com

            conditions = environment.getConditions(t, comPosition, baseFrame)
            self._conditions[i] = conditions

            gravityForce = body.mass * (bodyFromBase @ conditions.gravity)
            bodyForce = np.concatenate((np.cross(com, gravityForce), gravityForce))
            bodyForce[:3] += environment.getGravityGradientTorque(conditions.inertialPosition, bodyFromBase, body.inertia, baseFrame)

            if len(link.externalForceModels) > 0:
                stageState = self._getBodyState(i, t)
                for forceModel in link.externalForceModels:
                    force = forceModel(t, stageState)
                    if isinstance(force, ForceVector):
                        force = force.vector
                    bodyForce += force

            ws.externalForces[i] = link.jofFromOb.applyForce(bodyForce)

    def _getBodyState(self, i, t, state=None) -> BodyState:
        ''' Kinematic state of body i from the current workspace contents '''
        state = BodyState() if state is None else state
        obFromBase = self._obFromBase[i]
        bodyFromBase = obFromBase.rotation
        spatialVelocity = self.links[i].obFromJof.applyMotion(self.workspace.velocities[i])

        state.time = t
        state.position = obFromBase.translation.copy()
        state.attitude = quaternionFromAttitudeMatrix(bodyFromBase)
        state.spatialVelocity = spatialVelocity
        state.angularVelocity = spatialVelocity[:3].copy()
        state.velocity = bodyFromBase.T @ spatialVelocity[3:]
        conditions = self._conditions[i]
        if conditions is not None:
            state.gravity = conditions.gravity.copy()
            state.magneticField = conditions.magneticField.copy()
        return state

    def _computeAccelerations(self, t, values):
        self._updateKinematicsAndForces(t, values)
        self._solveDynamics(self.workspace)

    def f(self, t, state, derivative):
        values = state.values
        self._computeAccelerations(t, values)

        out = derivative.values
        ws = self.workspace
        for i, link in enumerate(self.links):
            out[link.qSlice] = link.joint.positionDerivative(values[link.qSlice], values[link.vSlice])
            out[link.vSlice] = ws.jointAccelerations[i]

    def commitState(self, t, state):
        ''' Updates the kinematic state of every body. Called after accepted steps only '''
        self._computeAccelerations(t, state.values)
        for i, link in enumerate(self.links):
            bodyState = self._getBodyState(i, t, link.body.state)
            bodyState.spatialAcceleration = link.obFromJof.applyMotion(self.workspace.accelerations[i])
        self.lastCommitTime = t

    def onStepAccepted(self, t, state):
        self.commitState(t, state)

    #### Energy ####
    def kineticEnergy(self, t, state) -> float:
        self._updateKinematicsAndForces(t, state.values)
        ws = self.workspace
        return sum(0.5 * v @ I @ v for v, I in zip(ws.velocities, ws.inertias))

    def gravitationalPotentialEnergy(self, t, state) -> float:
        ''' -sum(m * g . r_com), exact for uniform gravity fields only '''
        self._updateKinematicsAndForces(t, state.values)
        energy = 0.0
        for i, link in enumerate(self.links):
            body = link.body
            obFromBase = self._obFromBase[i]
            comPosition = obFromBase.translation + obFromBase.rotation.T @ body.centerOfMass
            energy -= body.mass * self._conditions[i].gravity @ comPosition
        return energy

    def __repr__(self):
        return "MultibodySystem({}, algorithm={})".format(self.tree, self.algorithm)
