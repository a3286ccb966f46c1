from setuptools import setup
import re
import os
import sys

ver_info = sys.version_info
if ver_info < (3,8,0):
    raise RuntimeError("synsigrun requires at least python 3.8.0")

with open(os.path.join(os.path.dirname(__file__), 'synsigrun', '__init__.py')) as r:
    version = re.search(r'__version__ = \'(\d+\.\d+\.\d+[-_a-zA-Z0-9]*)\'', r.read()).group(1)

setup(
    name = 'synsigrun',
    version = version,
    long_description = open("README.md", encoding="utf-8").read(),
    long_description_content_type = 'text/markdown',
    description = 'Run mutational signature attribution & extraction engines (deconstructSigs, sigfit, signeR, YAPSA, EMu) on ICAMS catalogs.',
    packages = [
        'synsigrun',
        'synsigrun.plotting'
    ],
    install_requires = [
        "rpy2>=3.4.0",
        "seaborn>=0.9.0",
        "pandas>=0.25.0",
        "pyarrow>=0.14.1",
        "scikit-learn>=0.21.3",
        "tqdm>=4.33.0",
        "tables>=3.6.1",
        "numpy",
        "matplotlib",
        "scipy"
    ],
    extras_require = {
        "test": ["pytest"]
    },
    entry_points = {
        'console_scripts': [
            'synsigrun = synsigrun.__main__:main'
        ]
    },
    classifiers = [
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
    license="MIT"
)
