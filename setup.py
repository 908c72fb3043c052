#!/usr/bin/env python

from os.path import exists

from setuptools import setup

install_requires = ["numpy >= 1.20", "pyyaml", "toolz"]

extras_require = {
    "sparse": ["sparse"],
    "test": ["pytest"],
}

setup(
    name="ndassemble",
    version="0.1.0",
    description="Assemble dense N-dimensional arrays from nested blocks",
    long_description=(open("README.rst").read() if exists("README.rst") else ""),
    license="BSD",
    packages=["ndassemble", "ndassemble.tests"],
    package_data={"ndassemble": ["ndassemble.yaml"]},
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require=extras_require,
    zip_safe=False,
)
