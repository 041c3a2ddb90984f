"""
This script configures the installation of the 'ryebox' Python package using setuptools.
Defines the package metadata and dependencies. ryebox runs commands on remote
machines over SSH as if they were local method calls.

Run 'pip install -e .' to install the package in editable mode for development purposes.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="ryebox",
    version="0.4.0",
    description="Run commands on remote machines as method calls",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
    ],
    python_requires=">=3.8",
    install_requires=[
        "paramiko",
        "omegaconf",
        "click",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
