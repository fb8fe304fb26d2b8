"""
Modus Valuation
Setup configuration for package installation
"""

from setuptools import setup, find_packages

setup(
    name="modus-valuation",
    version="0.1.0",
    description="Portfolio time-weighted returns and option valuation (Black-Scholes, Monte Carlo, Kelly sizing)",
    author="",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*", "scripts", "notebook"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pyarrow>=12.0.0",
        "python-dateutil>=2.8.2",
        "yfinance>=0.2.30",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
            "ipython>=8.14.0",
        ]
    },
)
