from setuptools import setup, find_packages

setup(
    name="turbprep",
    version="0.1.0",
    packages=find_packages(exclude=["test", "test.*"]),
    install_requires=[
        "numpy",
        "scipy",
        "pandas",
        "h5py",
        "plotly",
        "ezdxf",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "turbprep=turbprep.cli:main",
        ],
    },
    description="Wind turbine aerodynamic pre-processor: airfoil interpolation, blade sections and TurbSim wind fields",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)
