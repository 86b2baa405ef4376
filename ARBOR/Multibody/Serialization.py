'''
Reading and writing kinematic trees as simulation definitions.

Layout:

    Base{
        name            base
    }
    Bodies{
        upperArm{
            mass            1.0
            centerOfMass    (0.0 0.0 -0.5)
            inertia         (1.0 0.0 0.0 0.0 1.0 0.0 0.0 0.0 1.0)
        }
    }
    Joints{
        shoulder{
            class           Revolute
            inner           base
            outer           upperArm
            axis            (0.0 1.0 0.0)
            innerTransform{
                rotation        (1.0 0.0 0.0 0.0 1.0 0.0 0.0 0.0 1.0)
                translation     (0.0 0.0 0.0)
            }
            springConstant  0.0
            position        0.3
            velocity        0.0
        }
    }

Rotation matrices are written row major. Numbers are written with repr(), so a save/load round trip reproduces every value exactly.
'''
import numpy as np

from ARBOR.ENV import environmentFactory
from ARBOR.IO import SimDefinition, SubDictReader, formatVector
from ARBOR.Motion.SpatialAlgebra import SpatialTransform

from .Bodies import Body
from .Joints import FloatingJoint, JointParameters, jointClasses
from .kinematicTree import TreeBuilder

__all__ = [ "systemToSimDefinition", "systemFromSimDefinition", "saveSystem", "loadSystem" ]

def _formatValue(value) -> str:
    array = np.array(value, dtype=float)
    if array.ndim == 0:
        return repr(float(array))
    return formatVector(array.reshape(-1))

def _checkName(name):
    if len(name) == 0 or any(c in name for c in ".{}#; \t\n"):
        raise ValueError("Name: '{}' can't be written to a simulation definition. Names must be non-empty and can't contain whitespace or any of: . {{ }} # ;".format(name))

def _jointValuesFromState(joint, state):
    ''' Returns (position, velocity) of a joint, read by component name from an `ARBOR.Motion.odeState.ArrayState` '''
    indices = { name: i for i, name in enumerate(state.componentNames()) }
    values = state.toArray()
    try:
        coordinates = [ values[indices[name]] for name in joint.coordinateNames() ]
    except KeyError as e:
        raise KeyError("State has no component: {} for joint {}".format(e, joint.name))
    return np.array(coordinates[:joint.nPositions]), np.array(coordinates[joint.nPositions:])

def systemToSimDefinition(tree, state=None):
    '''
        Writes the bodies, joints and connections of a `ARBOR.Multibody.kinematicTree.KinematicTree` into a new `ARBOR.IO.SimDefinition`

        Inputs:
            * tree:     (`ARBOR.Multibody.kinematicTree.KinematicTree`)
            * state:    (`ARBOR.Motion.odeState.ArrayState`) joint positions/velocities to write, named like `ARBOR.Multibody.multibodySystem.MultibodySystem.componentNames`.
                            If None, the initial position/velocity of each joint is written
    '''
    dictionary = {}
    _checkName(tree.base.name)
    dictionary["Base.name"] = tree.base.name

    for bodyId in tree.bodyIds:
        body = tree.getComponent(bodyId)
        _checkName(body.name)
        prefix = "Bodies." + body.name
        dictionary[prefix + ".mass"] = repr(float(body.mass))
        dictionary[prefix + ".centerOfMass"] = _formatValue(body.centerOfMass)
        dictionary[prefix + ".inertia"] = _formatValue(body.inertia)

    for bodyId in tree.bodyIds:
        jointId = tree.innerJointOf(bodyId)
        joint = tree.getComponent(jointId)
        _checkName(joint.name)
        prefix = "Joints." + joint.name

        dictionary[prefix + ".class"] = joint.className
        dictionary[prefix + ".inner"] = tree.getComponent(tree.parentOf(bodyId)).name
        dictionary[prefix + ".outer"] = tree.getComponent(bodyId).name
        if not isinstance(joint, FloatingJoint):
            dictionary[prefix + ".axis"] = _formatValue(joint.axis)

        for side, connection in [ ("innerTransform", tree.innerConnection(jointId)), ("outerTransform", tree.outerConnection(jointId)) ]:
            dictionary["{}.{}.rotation".format(prefix, side)] = _formatValue(connection.transform.rotation)
            dictionary["{}.{}.translation".format(prefix, side)] = _formatValue(connection.transform.translation)

        parameters = joint.parameters
        dictionary[prefix + ".springConstant"] = _formatValue(parameters.springConstant)
        dictionary[prefix + ".damping"] = _formatValue(parameters.damping)
        dictionary[prefix + ".equilibrium"] = _formatValue(parameters.equilibrium)
        dictionary[prefix + ".constantForce"] = _formatValue(parameters.constantForce)

        if state is None:
            position, velocity = joint.position, joint.velocity
        else:
            position, velocity = _jointValuesFromState(joint, state)
        dictionary[prefix + ".position"] = _formatValue(position)
        dictionary[prefix + ".velocity"] = _formatValue(velocity)

    return SimDefinition(dictionary=dictionary, disableDistributionSampling=True, silent=True)

def _readParameter(reader, key):
    value = reader.getVector(key)
    return float(value[0]) if len(value) == 1 else value

def _readTransform(reader, side):
    return SpatialTransform(reader.getMatrix(side + ".rotation"), reader.getVector(side + ".translation"))

def systemFromSimDefinition(simDefinition, environment=None):
    '''
        Builds a `ARBOR.Multibody.kinematicTree.KinematicTree` from the Base, Bodies and Joints dictionaries of a simulation definition.
        Joint position/velocity values become the initial values of each joint (see `ARBOR.Multibody.multibodySystem.MultibodySystem.initialState`).

        Inputs:
            * simDefinition:    (`ARBOR.IO.SimDefinition`)
            * environment:      (`ARBOR.ENV.Environment`) if None, created from the simulation definition's Environment dictionary

        Raises a subclass of `ARBOR.Errors.ConnectivityError` if the tree is invalid, ValueError for unknown joint classes
    '''
    if environment is None:
        environment = environmentFactory(simDefinition)

    builder = TreeBuilder()
    baseName = simDefinition.getValue("Base.name")
    ids = { baseName: builder.addBase(baseName, environment) }

    for bodyDict in sorted(simDefinition.getImmediateSubDicts("Bodies")):
        reader = SubDictReader(bodyDict, simDefinition)
        name = reader.getDictName()
        body = Body(name, reader.getFloat("mass"), reader.getVector("centerOfMass"), reader.getMatrix("inertia"))
        ids[name] = builder.addBody(body)

    for jointDict in sorted(simDefinition.getImmediateSubDicts("Joints")):
        reader = SubDictReader(jointDict, simDefinition)
        name = reader.getDictName()
        className = reader.getString("class")
        try:
            jointClass = jointClasses[className]
        except KeyError:
            raise ValueError("Joint class: {} (joint {}) not implemented. Options are: {}".format(className, name, ", ".join(jointClasses.keys())))

        parameters = JointParameters(
            springConstant=_readParameter(reader, "springConstant"),
            damping=_readParameter(reader, "damping"),
            equilibrium=_readParameter(reader, "equilibrium"),
            constantForce=_readParameter(reader, "constantForce")
        )
        position = reader.getVector("position")
        velocity = reader.getVector("velocity")

        if jointClass is FloatingJoint:
            joint = FloatingJoint(name, parameters, position, velocity, normalize=False)
        else:
            joint = jointClass(name, reader.getVector("axis"), parameters, position, velocity)
        jointId = builder.addJoint(joint)

        innerName = reader.getString("inner")
        outerName = reader.getString("outer")
        for connectedName in (innerName, outerName):
            if connectedName not in ids:
                raise KeyError("Joint {} is connected to {}, which is not defined in the Base or Bodies dictionaries".format(name, connectedName))

        builder.connectInnerJoint(jointId, ids[innerName], _readTransform(reader, "innerTransform"))
        builder.connectOuterJoint(jointId, ids[outerName], _readTransform(reader, "outerTransform"))

    return builder.build()

def saveSystem(path, tree, state=None, writeHeader=True):
    ''' Writes a tree (and optionally a state to use as its initial state) to a simulation definition file. Returns the `ARBOR.IO.SimDefinition` written '''
    simDefinition = systemToSimDefinition(tree, state)
    simDefinition.writeToFile(str(path), writeHeader=writeHeader)
    return simDefinition

def loadSystem(path, environment=None, silent=True):
    ''' Inverse of `saveSystem`. Returns a `ARBOR.Multibody.kinematicTree.KinematicTree` '''
    simDefinition = SimDefinition(str(path), disableDistributionSampling=True, silent=silent)
    return systemFromSimDefinition(simDefinition, environment)
