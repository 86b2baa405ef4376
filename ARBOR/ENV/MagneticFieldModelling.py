'''
Magnetic field models. Each maps a position (m, inertial frame) and an epoch (s) to a magnetic field vector (nT, inertial frame)
'''
from abc import ABC, abstractmethod

import numpy as np

__all__ = [ "MagneticFieldModel", "NoMagneticField", "ConstantMagneticField", "DipoleMagneticField", "magneticFieldModelFactory" ]

class MagneticFieldModel(ABC):
    @abstractmethod
    def getMagneticField(self, position, epoch) -> np.ndarray:
        pass

    def __call__(self, position, epoch):
        return self.getMagneticField(position, epoch)

class NoMagneticField(MagneticFieldModel):
    def getMagneticField(self, position, epoch):
        return np.zeros(3)

class ConstantMagneticField(MagneticFieldModel):
    def __init__(self, field):
        self.field = np.array(field, dtype=float).reshape(3)

    def getMagneticField(self, position, epoch):
        return self.field.copy()

class DipoleMagneticField(MagneticFieldModel):
    '''
        Centered dipole model:
            B = ( 3*(m.r)*r - |r|^2*m ) / |r|^5

        Create with `DipoleMagneticField.fromGaussCoefficients` to use the first three IGRF coefficients
    '''
    def __init__(self, dipoleMoment):
        ''' dipoleMoment: (3-vector) in T*m^3 '''
        self.dipoleMoment = np.array(dipoleMoment, dtype=float).reshape(3)

    @classmethod
    def fromGaussCoefficients(cls, referenceRadius, g10, g11, h11):
        '''
            Inputs:
                * referenceRadius:  (float) m, ex. 6.3712e6 for the Earth
                * g10, g11, h11:    (float) nT, first order Gauss coefficients
        '''
        scale = 1e-9 * referenceRadius**3
        return cls(scale * np.array([ g11, h11, g10 ]))

    def getMagneticField(self, position, epoch):
        r = np.asarray(position, dtype=float)
        rMag = np.linalg.norm(r)
        if rMag == 0:
            raise ValueError("Dipole magnetic field is undefined at the dipole's center")
        m = self.dipoleMoment
        B = (3*m.dot(r)*r - rMag**2*m) / rMag**5
        return B * 1e9 # T -> nT

def magneticFieldModelFactory(envDictReader=None) -> MagneticFieldModel:
    if envDictReader == None:
        return NoMagneticField()

    fieldModel = envDictReader.getString("MagneticField.model")

    if fieldModel == "None":
        return NoMagneticField()
    elif fieldModel == "Constant":
        return ConstantMagneticField(envDictReader.getVector("MagneticField.vector"))
    elif fieldModel == "Dipole":
        g10, g11, h11 = envDictReader.getVector("MagneticField.gaussCoefficients")
        return DipoleMagneticField.fromGaussCoefficients(envDictReader.getFloat("MagneticField.referenceRadius"), g10, g11, h11)
    else:
        raise ValueError("Magnetic field model: {} not found. Try 'None', 'Constant' or 'Dipole'".format(fieldModel))
