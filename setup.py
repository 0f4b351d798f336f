# type: ignore
from setuptools import find_packages, setup

# Get VERSION constant from flagger.version - we can't simply import that module because
# flagger/__init__.py imports modules that may require dependencies we have not loaded yet.
# Based on https://packaging.python.org/guides/single-sourcing-package-version/
version_module_globals = {}
with open('./flagger/version.py') as f:
    exec(f.read(), version_module_globals)
flagger_version = version_module_globals['VERSION']


def parse_requirements(filename):
    """ load requirements from a pip requirements file """
    lineiter = (line.strip() for line in open(filename))
    return [line for line in lineiter if line and not line.startswith("#")]


install_reqs = parse_requirements('requirements.txt')
test_reqs = parse_requirements('test-requirements.txt')
redis_reqs = parse_requirements('redis-requirements.txt')

setup(
    name='flagger',
    version=flagger_version,
    packages=find_packages(include=['flagger', 'flagger.*']),
    description='Feature flag evaluation with in-memory and Redis storage adapters',
    long_description='Feature flag evaluation with in-memory and Redis storage adapters',
    install_requires=install_reqs,
    python_requires='>=3.8',
    classifiers=[
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development',
        'Topic :: Software Development :: Libraries',
    ],
    extras_require={
        "redis": redis_reqs,
        "test": test_reqs + redis_reqs,
    },
)
