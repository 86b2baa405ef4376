'''
Building and validating kinematic trees.

`TreeBuilder` issues integer ids for the base, bodies and joints added to it, records connections, and produces an immutable `KinematicTree` through build().
Connection transforms:

* inner connection (joint <- inner body or base): jif_from_ib, the joint inner frame relative to the inner body frame
* outer connection (joint -> outer body): jof_from_ob, the joint outer frame relative to the outer body frame

Example:
    builder = TreeBuilder()
    base = builder.addBase("base")
    link = builder.addBody(Body("link", 1.0, inertia=np.eye(3)))
    hinge = builder.addJoint(RevoluteJoint("hinge", axis=(0,0,1)))
    builder.connectInnerJoint(hinge, base)
    builder.connectOuterJoint(hinge, link, SpatialTransform(translation=(-1,0,0)))
    tree = builder.build()
'''
from types import MappingProxyType

from ARBOR.Errors import (ConnectivityError, CyclicGraph, DanglingJoint,
                          DisconnectedBody, DuplicateConnection, DuplicateName,
                          InvalidConnection, MissingBase)
from ARBOR.Motion.SpatialAlgebra import SpatialTransform

from .Bodies import Base, Body
from .Joints import Joint

__all__ = [ "TreeBuilder", "KinematicTree", "Connection" ]

class Connection():
    __slots__ = [ "target", "transform" ]

    def __init__(self, target: int, transform: SpatialTransform):
        self.target = target
        self.transform = transform

class TreeBuilder():
    def __init__(self):
        self.components = {}
        ''' id -> Base, Body or Joint '''
        self.baseId = None
        self.innerConnections = {}
        ''' joint id -> `Connection` to the inner body/base '''
        self.outerConnections = {}
        ''' joint id -> `Connection` to the outer body '''
        self._nextId = 0

    #### Adding components ####
    def _add(self, component) -> int:
        componentId = self._nextId
        self._nextId += 1
        self.components[componentId] = component
        return componentId

    def addBase(self, name="base", environment=None) -> int:
        '''
            Adds the root of the tree and returns its id
            Pass in an existing `ARBOR.Multibody.Bodies.Base` as name to add it directly
        '''
        if self.baseId is not None:
            raise ConnectivityError("A kinematic tree can only have one base, already have: {}".format(self.components[self.baseId].name))
        base = name if isinstance(name, Base) else Base(name, environment)
        self.baseId = self._add(base)
        return self.baseId

    def addBody(self, body: Body) -> int:
        if not isinstance(body, Body):
            raise TypeError("Expected a Body, got: {}".format(type(body).__name__))
        return self._add(body)

    def addJoint(self, joint: Joint) -> int:
        if not isinstance(joint, Joint):
            raise TypeError("Expected a Joint, got: {}".format(type(joint).__name__))
        return self._add(joint)

    #### Connections ####
    def _getJoint(self, jointId):
        if jointId not in self.components:
            raise DanglingJoint("Joint id {} does not exist".format(jointId))
        if not isinstance(self.components[jointId], Joint):
            raise InvalidConnection("Component {} ({}) is not a joint".format(jointId, self.components[jointId]))
        return self.components[jointId]

    def connectInner(self, jointId: int, targetId: int, transform: SpatialTransform = None):
        '''
            Connects a joint to its inner body (or the base)
            transform: jif_from_ib, defaults to the identity
        '''
        joint = self._getJoint(jointId)
        if targetId not in self.components:
            raise DanglingJoint("Joint {} references a non-existent inner component: {}".format(joint.name, targetId))
        if isinstance(self.components[targetId], Joint):
            raise InvalidConnection("Can't connect joint {} to another joint ({})".format(joint.name, self.components[targetId].name))
        if jointId in self.innerConnections:
            raise DuplicateConnection("Joint {} already has an inner connection".format(joint.name))

        self.innerConnections[jointId] = Connection(targetId, SpatialTransform() if transform is None else transform)

    def connectOuter(self, jointId: int, targetId: int, transform: SpatialTransform = None):
        '''
            Connects a joint to its outer body
            transform: jof_from_ob, defaults to the identity
        '''
        joint = self._getJoint(jointId)
        if targetId not in self.components:
            raise DanglingJoint("Joint {} references a non-existent outer component: {}".format(joint.name, targetId))
        target = self.components[targetId]
        if isinstance(target, Base):
            raise InvalidConnection("The base can't be the outer connection of a joint ({})".format(joint.name))
        if isinstance(target, Joint):
            raise InvalidConnection("Can't connect joint {} to another joint ({})".format(joint.name, target.name))
        if jointId in self.outerConnections:
            raise DuplicateConnection("Joint {} already has an outer connection".format(joint.name))

        self.outerConnections[jointId] = Connection(targetId, SpatialTransform() if transform is None else transform)

    connectInnerJoint = connectInner
    connectOuterJoint = connectOuter

    #### Validation ####
    def validate(self):
        '''
            Raises a subclass of `ARBOR.Errors.ConnectivityError` if the tree is malformed. Checks, in order:

            1. `MissingBase`: no base
            2. `DuplicateName`: two components share a name
            3. `DanglingJoint`: a joint is missing its inner or outer connection
            4. `DuplicateConnection`: a body is the outer connection of more than one joint
            5. `DisconnectedBody`: a body is not the outer connection of any joint
            6. `CyclicGraph`: a body can't be reached from the base (its chain of inner joints loops)
        '''
        if self.baseId is None:
            raise MissingBase("Kinematic tree has no base")

        names = set()
        for component in self.components.values():
            if component.name in names:
                raise DuplicateName("Name: {} is used by more than one component".format(component.name))
            names.add(component.name)

        for jointId, joint in self._joints():
            if jointId not in self.innerConnections:
                raise DanglingJoint("Joint {} has no inner connection".format(joint.name))
            if jointId not in self.outerConnections:
                raise DanglingJoint("Joint {} has no outer connection".format(joint.name))

        innerJoints = self._getInnerJoints()
        for bodyId, body in self._bodies():
            if len(innerJoints.get(bodyId, [])) > 1:
                jointNames = ", ".join(self.components[j].name for j in innerJoints[bodyId])
                raise DuplicateConnection("Body {} is connected to more than one inner joint: {}".format(body.name, jointNames))
        for bodyId, body in self._bodies():
            if bodyId not in innerJoints:
                raise DisconnectedBody("Body {} is not connected to an inner joint".format(body.name))

        order = self._traverse()
        unreached = [ body.name for bodyId, body in self._bodies() if bodyId not in order ]
        if len(unreached) > 0:
            raise CyclicGraph("Bodies: {} form a loop that is not connected to the base".format(", ".join(sorted(unreached))))

    def _joints(self):
        return [ (i, c) for i, c in self.components.items() if isinstance(c, Joint) ]

    def _bodies(self):
        return [ (i, c) for i, c in self.components.items() if isinstance(c, Body) ]

    def _getInnerJoints(self):
        ''' body id -> list of joint ids whose outer connection is that body '''
        innerJoints = {}
        for jointId, connection in self.outerConnections.items():
            innerJoints.setdefault(connection.target, []).append(jointId)
        return innerJoints

    def _getChildJoints(self):
        ''' body/base id -> list of joint ids whose inner connection is that body/base, sorted by outer body name '''
        childJoints = {}
        for jointId, connection in self.innerConnections.items():
            childJoints.setdefault(connection.target, []).append(jointId)
        for joints in childJoints.values():
            joints.sort(key=lambda j: self.components[self.outerConnections[j].target].name)
        return childJoints

    def _traverse(self):
        ''' Depth-first traversal from the base, children visited in name order. Returns the list of visited body ids (base first) '''
        childJoints = self._getChildJoints()
        order = []
        visited = set()
        stack = [ self.baseId ]
        while len(stack) > 0:
            nodeId = stack.pop()
            if nodeId in visited:
                raise CyclicGraph("Component {} is reachable from the base along more than one path".format(self.components[nodeId].name))
            visited.add(nodeId)
            order.append(nodeId)
            # Reversed so that the alphabetically first child is popped first
            for jointId in reversed(childJoints.get(nodeId, [])):
                stack.append(self.outerConnections[jointId].target)
        return order

    #### Build ####
    def build(self) -> "KinematicTree":
        ''' Validates the tree and returns an immutable `KinematicTree`. Nothing is returned if validation fails '''
        self.validate()
        order = self._traverse()
        innerJoints = self._getInnerJoints()

        parents = {}
        bodyJoints = {}
        for bodyId in order[1:]:
            jointId = innerJoints[bodyId][0]
            bodyJoints[bodyId] = jointId
            parents[bodyId] = self.innerConnections[jointId].target

        return KinematicTree(
            dict(self.components),
            self.baseId,
            tuple(order),
            parents,
            bodyJoints,
            { j: c for j, c in self.innerConnections.items() },
            { j: c for j, c in self.outerConnections.items() },
        )

class KinematicTree():
    '''
        Immutable, validated kinematic tree. Produced by `TreeBuilder.build`.
        Components are addressed by the integer ids issued by the builder.
    '''

    def __init__(self, components, baseId, order, parents, bodyJoints, innerConnections, outerConnections):
        self._components = MappingProxyType(components)
        self._baseId = baseId
        self._order = order
        self._parents = MappingProxyType(parents)
        self._bodyJoints = MappingProxyType(bodyJoints)
        self._innerConnections = MappingProxyType(innerConnections)
        self._outerConnections = MappingProxyType(outerConnections)
        self._ids = MappingProxyType({ c.name: i for i, c in components.items() })

    def __setattr__(self, name, value):
        if hasattr(self, "_ids"):
            raise AttributeError("KinematicTree is immutable, can't set: {}".format(name))
        object.__setattr__(self, name, value)

    #### Topology ####
    def topologicalOrder(self):
        ''' (tuple) base id, then every body id exactly once, each after its parent. Children are visited in name order '''
        return self._order

    @property
    def baseId(self) -> int:
        return self._baseId

    @property
    def base(self) -> Base:
        return self._components[self._baseId]

    @property
    def bodyIds(self):
        ''' Body ids in topological order '''
        return self._order[1:]

    @property
    def bodies(self):
        ''' Bodies in topological order '''
        return [ self._components[i] for i in self._order[1:] ]

    @property
    def joints(self):
        ''' Joints in topological order (each body's inner joint) '''
        return [ self._components[self._bodyJoints[i]] for i in self._order[1:] ]

    def getComponent(self, componentId):
        return self._components[componentId]

    def getId(self, name) -> int:
        try:
            return self._ids[name]
        except KeyError:
            raise KeyError("No component named: {} in kinematic tree".format(name))

    def getBody(self, name) -> Body:
        body = self._components[self.getId(name)]
        if not isinstance(body, Body):
            raise KeyError("{} is not a body".format(name))
        return body

    def getJoint(self, name) -> Joint:
        joint = self._components[self.getId(name)]
        if not isinstance(joint, Joint):
            raise KeyError("{} is not a joint".format(name))
        return joint

    def parentOf(self, bodyId) -> int:
        ''' Id of the body (or base) on the inner side of a body's inner joint '''
        return self._parents[bodyId]

    def innerJointOf(self, bodyId) -> int:
        return self._bodyJoints[bodyId]

    def innerConnection(self, jointId) -> Connection:
        return self._innerConnections[jointId]

    def outerConnection(self, jointId) -> Connection:
        return self._outerConnections[jointId]

    def childrenOf(self, componentId):
        ''' Ids of the bodies directly outboard of a body or the base, in topological order '''
        return [ i for i in self._order[1:] if self._parents[i] == componentId ]

    def __len__(self):
        ''' Number of bodies '''
        return len(self._order) - 1

    def __repr__(self):
        return "KinematicTree({})".format(" -> ".join(self._components[i].name for i in self._order))
