#!/usr/bin/env python

import os
import setuptools

with open(os.path.join(os.path.dirname(__file__), 'README.md')) as readme:
    README = readme.read()

# Allow `setup.py` to be run from any path.
os.chdir(os.path.normpath(os.path.join(os.path.abspath(__file__), os.pardir)))

setuptools.setup(
    # Main information.
    name='servicestarter',
    description=('Starts services from their artifacts for integration '
                 'tests and waits them to register in the discovery.'),
    long_description=README,
    long_description_content_type='text/markdown',
    version='0.1.0',

    # Author details.
    author='DATADVANCE',
    author_email='info@datadvance.net',
    license='MIT License',

    # PyPI classifiers: https://pypi.python.org/pypi?%3Aaction=list_classifiers
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: MacOS',
        'Operating System :: Microsoft :: Windows',
        'Operating System :: POSIX',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development :: Testing',
    ],

    # Dependencies required to make package function properly.
    packages=setuptools.find_packages(exclude=['test', 'doc']),
    python_requires='>=3.7',
    install_requires=[
        'psutil',
        'aiohttp',
        'cryptography',
    ],

    # Test dependencies, install with `pip install -e .[test]`.
    extras_require={
        'test': [
            'pytest',
        ],
    },
)
