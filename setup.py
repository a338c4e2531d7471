from setuptools import setup, find_packages


setup(
    name="fo2dat",
    version="0.1",
    packages=find_packages(include=["fo2dat", "fo2dat.*"]),
    description="Reader and writer for DAT2 (Fallout 2 style) archive files.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "fo2dat=fo2dat.cli:main",
        ]
    },
)
