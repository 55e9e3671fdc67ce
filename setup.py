"""
Polarization Stream Processing Engine - Package Setup
"""

from setuptools import find_packages, setup

setup(
    name="polstream",
    version="0.3.0",
    description="Streaming Stokes-vector processing: online PCA, causal highpass, STFT and UDP egress",
    author="PM1000 Signal Processing Team",
    packages=find_packages("src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.11.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "polstream=polstream.pipeline.orchestrator:main",
            "polstream-simulate=polstream.simulate:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Physics",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
