#!/usr/bin/python3

import os, setuptools, json

HERE = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(HERE, "README.md"), "r") as fh:
    long_description = fh.read()

with open(os.path.join(HERE, "setup_config.json")) as rf:
    config = json.load(rf)

setuptools.setup(
    name="privbroker",
    version=config.get("version", ""),
    author="Jonas Møller",
    author_email="sanoj@nimda.no",
    description="Run commands as root through polkit, falling back to sudo with a password.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests"]),
    include_package_data=True,
    package_data={
        "privbroker": [
            "resources/*.ui"
        ],
    },
    python_requires=">=3.8",
    install_requires=[
        "dill",
        "pydantic>=2",
        "pydantic-settings>=2",
    ],
    extras_require={
        "gtk": ["PyGObject"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "privbroker = privbroker.cli:main",
        ],
        "gui_scripts": [
            "privbroker-gtk = privbroker.window:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: BSD License",
        "Operating System :: POSIX :: Linux",
    ],
)
