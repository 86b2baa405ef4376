'''
Articulated rigid body dynamics. Main class is `ARBOR.Multibody.multibodySystem.MultibodySystem`.

* `Bodies` - rigid bodies, their kinematic states, and the base
* `Joints` - revolute, prismatic and floating joints
* `kinematicTree` - `TreeBuilder` assembles and validates bodies/joints into an immutable `KinematicTree`
* `ArticulatedBody` - forward dynamics with the Articulated-Body Algorithm
* `CompositeRigidBody` - forward dynamics with the Composite-Rigid-Body Algorithm
* `multibodySystem` - the ODE model integrated by `ARBOR.Motion`
* `Serialization` - reading/writing trees as simulation definitions

ARBOR.Multibody relies on `ARBOR.Motion`, `ARBOR.ENV` and `ARBOR.IO`
'''
# Make the classes in all submodules importable directly from ARBOR.Multibody
from .Bodies import *
from .Joints import *
from .kinematicTree import *
from .ArticulatedBody import *
from .CompositeRigidBody import *
from .Serialization import *
from .multibodySystem import *

subModules = [ Bodies, Joints, kinematicTree, ArticulatedBody, CompositeRigidBody, Serialization, multibodySystem ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
