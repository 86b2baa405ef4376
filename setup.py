import setuptools
from setuptools import setup

import ARBOR


#### Get/Set info to be passed into setup() ####
with open("README.md", "r") as fh:
    long_description = fh.read()

with open("requirements.txt") as reqFile:
    install_reqs = [ line.strip() for line in reqFile if line.strip() != "" and not line.strip().startswith("#") ]

#### Optional packages ####
# ray often causes issues on windows, without it Monte Carlo simulations run single-threaded
extras_require = { "parallel": [ "ray" ] }

setup(
    name='ARBOR',
    version=ARBOR.__version__,
    description="Articulated Rigid-BOdy Runner: tree-structured multibody dynamics with adaptive Runge-Kutta time integration",
    install_requires=install_reqs,
    extras_require=extras_require,
    license='MIT',
    long_description = long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=[ "test", "test.*", ]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "Natural Language :: English",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    include_package_data=True,
    package_data={ "ARBOR": [ "Examples/Simulations/*.arbor" ] },

    python_requires='>=3.8',

    zip_safe=False,

    entry_points={
        'console_scripts': [
            'arbor = ARBOR.Main:main' ]
    }
)
