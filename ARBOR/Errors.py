'''
Exception hierarchy used throughout ARBOR.

Four families of errors can be raised while building or simulating a multibody system:

* `ConnectivityError`: the kinematic tree is malformed. Only raised while building/validating a tree, never mid-simulation.
* `AlgebraError`: a numerical operation can't be carried out (singular articulated inertia, zero-length joint axis, invalid mass properties)
* `IntegrationError`: the time integration can't continue (non-finite state, step size underflow, step/wall-clock limits exceeded)
* `EventError`: an event zero-crossing couldn't be located unambiguously

Configuration problems (bad simulation definition values) are reported as plain ValueError / KeyError, like the rest of the IO code.
'''

__all__ = [
    "ArborError",
    "ConnectivityError", "DuplicateConnection", "MissingBase", "CyclicGraph", "DanglingJoint", "DisconnectedBody", "DuplicateName", "InvalidConnection",
    "AlgebraError", "SingularJointInertia", "ZeroNormAxis", "InvalidInertia",
    "IntegrationError", "NonFiniteState", "StepSizeUnderflow", "SimulationTimeout",
    "EventError", "EventBracketError", "AmbiguousEventCrossing",
    "ModelError",
]

class ArborError(Exception):
    ''' Base class for all errors raised by ARBOR '''
    pass

#### Connectivity ####
class ConnectivityError(ArborError, ValueError):
    pass

class DuplicateConnection(ConnectivityError):
    ''' A joint side was connected twice, or a body has more than one inner joint '''
    pass

class MissingBase(ConnectivityError):
    pass

class CyclicGraph(ConnectivityError):
    pass

class DanglingJoint(ConnectivityError):
    ''' A joint is missing its inner or outer connection, or references an object that doesn't exist '''
    pass

class DisconnectedBody(ConnectivityError):
    ''' A body can't be reached from the base '''
    pass

class DuplicateName(ConnectivityError):
    pass

class InvalidConnection(ConnectivityError):
    ''' Ex. connecting the outer side of a joint to the base '''
    pass

#### Algebra ####
class AlgebraError(ArborError, ArithmeticError):
    pass

class SingularJointInertia(AlgebraError):
    ''' The articulated inertia projected onto a joint's motion subspace (D = S^T * IA * S) is not invertible '''
    pass

class ZeroNormAxis(AlgebraError):
    pass

class InvalidInertia(AlgebraError):
    ''' Non-positive mass, or an inertia tensor that isn't symmetric positive definite '''
    pass

#### Integration ####
class IntegrationError(ArborError, RuntimeError):
    pass

class NonFiniteState(IntegrationError):
    pass

class StepSizeUnderflow(IntegrationError):
    pass

class SimulationTimeout(IntegrationError):
    ''' Max step count or wall clock limit exceeded '''
    pass

#### Events ####
class EventError(ArborError, RuntimeError):
    pass

class EventBracketError(EventError):
    ''' Zero-crossing refinement lost its sign change '''
    pass

class AmbiguousEventCrossing(EventError):
    pass

#### User models ####
class ModelError(ArborError, RuntimeError):
    ''' Raised by (or on behalf of) user-supplied models/collaborators that fail during a derivative evaluation '''
    pass
