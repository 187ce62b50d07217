import re
from pathlib import Path

from setuptools import find_packages, setup

HERE = Path(__file__).parent

# the version is read from the source so that setup doesn't need the dependencies installed
version = re.search(
    r'^__version__ = "(.+)"', (HERE / "pypicket" / "version.py").read_text(), re.M
).group(1)

with open(HERE / "requirements.txt") as f:
    required = [line for line in f.read().splitlines() if line and not line.startswith("#")]


setup(
    name="pypicket",
    version=version,
    packages=find_packages(exclude=("tests_basic", "tests_basic.*")),
    keywords="medical physics picket fence MLC leaf junction linac Varian Millennium HD120 QA",
    description="Find the MLC leaf-pair boundaries of picket fence images from the junction contours",
    long_description=(HERE / "README.rst").read_text(),
    long_description_content_type="text/x-rst",
    install_requires=required,
    extras_require={
        "developer": ["pytest", "pytest-xdist", "parameterized", "nox", "build"],
    },
    python_requires=">=3.10",
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Healthcare Industry",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
        "Topic :: Scientific/Engineering :: Image Recognition",
        "Topic :: Scientific/Engineering :: Physics",
        "Topic :: Software Development :: Libraries",
    ],
)
