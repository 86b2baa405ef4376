import sys
from contextlib import contextmanager

import numpy as np

from ARBOR.Motion import SpatialTransform, rotationMatrix
from ARBOR.Multibody import FloatingJoint, PrismaticJoint, RevoluteJoint

#### Functions to assess near-equality for custom types ####

def assertIterablesAlmostEqual(TestCaseObject, x1, x2, n=7):
    if len(x1) != len(x2):
        raise ValueError("Iterables x1 (length: {}) and x2 (length: {}) must have the same length!".format(len(x1), len(x2)))
    for i in range(len(x1)):
        TestCaseObject.assertAlmostEqual(x1[i], x2[i], n)

def assertArraysClose(TestCaseObject, x1, x2, rtol=1e-9, atol=0.0):
    ''' Element-wise |x1 - x2| <= atol + rtol*|x2|, reports the largest difference on failure '''
    x1 = np.asarray(x1, dtype=float)
    x2 = np.asarray(x2, dtype=float)
    TestCaseObject.assertEqual(x1.shape, x2.shape)
    if not np.allclose(x1, x2, rtol=rtol, atol=atol):
        TestCaseObject.fail("Arrays differ (max abs difference: {}):\n{}\n{}".format(np.max(np.abs(x1 - x2)), x1, x2))

def assertTransformsAlmostEqual(TestCaseObject, X1, X2, n=9):
    assertIterablesAlmostEqual(TestCaseObject, X1.rotation.reshape(-1), X2.rotation.reshape(-1), n)
    assertIterablesAlmostEqual(TestCaseObject, X1.translation, X2.translation, n)

#### Functions to manipulate sim definitions pre-simulation ####
def setUpSimDefForMinimalRunCheck(simDef):
    ''' Pass in a SimDefinition - it will be modified in place '''

    # Set the simulation to only take a few time steps
    simDef.setValue("SimControl.endTime", "0.05")
    simDef.setValue("SimControl.timeStep", "0.01")

    # Using Euler time stepping
    simDef.setValue("SimControl.timeDiscretization", "Euler")

    # And producing no logs/files
    simDef.setValue("SimControl.loggingLevel", "0")
    simDef.setValue("SimControl.Output.type", "Memory")

def setUpSimDefForMinimalRunCheck_MonteCarlo(mCsimDef):
    ''' Pass in a SimDefinition - it will be modified in place '''
    setUpSimDefForMinimalRunCheck(mCsimDef)
    mCsimDef.setValue("MonteCarlo.numberRuns", "2")

#### Random test systems ####
def randomRotation(rng):
    return rotationMatrix(rng.normal(size=3), rng.uniform(-np.pi, np.pi))

def randomInertia(rng):
    ''' Random symmetric positive definite inertia tensor '''
    principalMoments = rng.uniform(0.5, 2.0, size=3)
    R = randomRotation(rng)
    return R @ np.diag(principalMoments) @ R.T

def randomJoint(rng, name, jointType, parameters=None):
    if jointType == "Revolute":
        return RevoluteJoint(name, axis=rng.normal(size=3), parameters=parameters)
    elif jointType == "Prismatic":
        return PrismaticJoint(name, axis=rng.normal(size=3), parameters=parameters)
    else:
        return FloatingJoint(name, parameters)

def randomTransform(rng):
    return SpatialTransform(randomRotation(rng).T, rng.uniform(-1, 1, size=3))

#### Context Managers for testing functions that interact with the command line ####

@contextmanager
def captureOutput():
    '''
        Captures print statements

        Based on answer by Rob Kennedy: https://stackoverflow.com/questions/4219717/how-to-assert-output-with-nosetest-unittest-in-python
    '''
    from io import StringIO

    newOut, newErr = StringIO(), StringIO()
    oldOut, oldErr = sys.stdout, sys.stderr
    try:
        sys.stdout, sys.stderr = newOut, newErr
        yield sys.stdout, sys.stderr
    finally:
        sys.stdout, sys.stderr = oldOut, oldErr
