from setuptools import setup, find_packages
from pathlib import Path

here = Path(__file__).resolve().parent
long_description = (here / "README.md").read_text(encoding="utf-8")
requirements = (here / "requirements.txt").read_text(encoding="utf-8").splitlines()
requirements_test = (here / "requirements-test.txt").read_text(encoding="utf-8").splitlines()

setup(
    name="repotide",
    version="0.1.0",
    author="RepoTide contributors",
    description="RepoTide is an async engine that clones remote repositories into isolated namespaces, assembles prompt-ready context from them and drives resilient LLM workflows that propose code changes.",
    packages=find_packages(exclude=["tests", "tests.*"]),
    long_description=long_description,
    long_description_content_type="text/markdown",
    install_requires=requirements,
    include_package_data=True,
    extras_require={
        "test": requirements_test
    },
    entry_points={
        "console_scripts": [
            "repotide=repotide.cli:main"
        ]
    },
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
)
