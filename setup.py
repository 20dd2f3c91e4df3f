import os
from setuptools import setup

# Utility function to read the README file.
# Used for the long_description.
def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()

setup(
    name="naturalbreaks",
    version="0.1.0",
    description=("Jenks natural breaks: optimal classification of one-dimensional data."),
    license="BSD",
    keywords="jenks natural breaks classification choropleth",
    packages=['naturalbreaks'],
    long_description=read('README'),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Topic :: Scientific/Engineering :: GIS",
        "License :: OSI Approved :: BSD License",
    ],
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'pandas',
        'numba',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
