from setuptools import setup, find_packages
import os

# Read version
with open(os.path.join('schemaflow', 'VERSION'), 'r') as f:
    version = f.read().strip()

setup(
    name='schemaflow',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    python_requires='>=3.8',
    install_requires=[
        'sqlparse>=0.4.4',
        'sqlglot>=25.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    entry_points={
        'console_scripts': [
            'schemaflow=schemaflow.main:main',
        ],
    },
    package_data={
        '': ['VERSION'],
    },
)
