import setuptools
from setuptools import find_packages

with open("readme.md", "r") as fh:
    long_description = fh.read()


vars2find = ["__author__", "__version__"]
vars2readme = {}
with open("./zfs_mysql_backup/__init__.py") as f:
    for line in f.readlines():
        for v in vars2find:
            if line.startswith(v):
                line = line.replace(" ", "").replace('"', "").replace("'", "").strip()
                vars2readme[v] = line.split("=")[1]

core_deps = [
    "pydantic>=2.0",
    "PyYAML>=6.0",
    "python-dotenv",
    "SQLAlchemy[asyncio]>=2.0",
    "aiomysql",
    "aioboto3",
    "botocore",
    "tenacity",
]

setuptools.setup(
    name="zfs-mysql-backup",
    version=vars2readme["__version__"],
    author=vars2readme["__author__"],
    description="Lock MySQL, snapshot ZFS, export and push backups to S3",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
    ],
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "zfs-mysql-backup=zfs_mysql_backup.cli:main",
        ],
    },
)
