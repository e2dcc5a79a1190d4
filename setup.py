"""
Strikelogic Option Analytics
Setup configuration for package installation
"""

from setuptools import setup, find_packages

setup(
    name="strikelogic",
    version="0.1.0",
    description="Option pricing, multi-leg strategy analytics and profit-matrix simulation",
    author="",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*", "scripts", "configs"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pyarrow>=12.0.0",
        "python-dateutil>=2.8.2",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
        ]
    },
)
