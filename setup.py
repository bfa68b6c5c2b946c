from setuptools import setup, find_packages
from version import get_git_version
import os

def get_requirements():
    thelibFolder = os.path.dirname(os.path.realpath(__file__))
    requirementPath = thelibFolder + '/requirements.txt'
    if os.path.isfile(requirementPath):
        with open(requirementPath) as f:
            return [line for line in f.read().splitlines() if line and not line.startswith('#')]
    return []

setup(
    name='helm-schema',
    version=get_git_version(),
    description='Generate JSON schemas for Helm chart values, including chart dependencies',
    license='MIT',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    install_requires=get_requirements(),
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
    ],
    entry_points={
        'console_scripts': [
            'helm-schema=helm_schema.cli.main:entrypoint',
        ]
    },
)
