# setup.py - Build the tulcea package
from setuptools import setup, find_packages

setup(
    name="tulcea",
    version="0.1.0",
    description="Ionescu-Tulcea path measures from history-dependent transition kernels",
    packages=find_packages(include=["tulcea", "tulcea.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
)
