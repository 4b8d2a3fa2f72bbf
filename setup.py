import setuptools
from setuptools import find_packages

with open("readme.md", "r") as fh:
    long_description = fh.read()


vars2find = ["__author__", "__version__", "__url__"]
vars2readme = {}
with open("./skyplanner_backup/__init__.py") as f:
    for line in f.readlines():
        for v in vars2find:
            if line.startswith(v):
                line = line.replace(" ", "").replace('"', "").replace("'", "").strip()
                vars2readme[v] = line.split("=")[1]

# Core dependencies
core_deps = [
    "httpx",
    "aioboto3",
    "tenacity",
    "cryptography>=41.0.0",
    "pydantic>=2.0",
]

setuptools.setup(
    name="skyplanner-backup",
    url=vars2readme["__url__"],
    version=vars2readme["__version__"],
    author=vars2readme["__author__"],
    description="Encrypted, verified backups and per-organization restore for the SkyPlanner database",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=core_deps,
    entry_points={
        "console_scripts": [
            "skyplanner-backup=skyplanner_backup.cli:main",
        ],
    },
    extras_require={
        "api": [
            "fastapi",
            "pydantic-settings",
            "uvicorn",
        ],
        "test": [
            "pytest",
            "pytest-asyncio",
            "fastapi",
            "pydantic-settings",
            "httpx",
        ],
        "all": [
            "fastapi",
            "pydantic-settings",
            "uvicorn",
        ],
    },
)
