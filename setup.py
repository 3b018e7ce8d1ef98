from setuptools import find_packages, setup

from app.__version__ import __title__, __version_string__

setup(
    name=__title__,
    version=__version_string__,
    description="A CHIP-8 virtual machine",
    packages=find_packages(where="app", include=["pychip8", "pychip8.*"]),
    package_dir={"": "app"},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "numpy",
        "bitarray",
        "returns",
        "rich",
        "pygame",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["pychip8=pychip8.__main__:main"],
    },
    zip_safe=False,
)
