# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

from setuptools import setup, find_packages

setup(
    name='argon-layout',
    version='0.1.0',
    description='Constraint-based compiler for parameterized IC layout cells',
    license='Apache-2.0',
    python_requires='>=3.11',
    packages=find_packages(include=['argon', 'argon.*']),
    package_data={
        'argon.lang': ['*.lark'],
    },
    install_requires=[
        'atpublic',
        'numpy',
        'scipy',
        'lark',
        'python-gdsii',
        'pyrsistent',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'argon = argon.cli:main',
        ],
    },
)
