from setuptools import setup, find_packages
from codecs import open
from os import path

VERSION = '0.1.0'

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='local-git-hub',
    version=VERSION,
    description='Manage a directory of bare git repositories as a local backup hub',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='BSD',
    classifiers=[
      'Development Status :: 3 - Alpha',
      'Intended Audience :: Developers',
      'Programming Language :: Python :: 3',
    ],
    keywords='git backup bare repository remote',
    packages=find_packages(exclude=['tests*', 'examples*']),
    include_package_data=True,
    python_requires='>=3.10',
    install_requires=[
        'gitpython>=3.1.0',
        'pandas>=2.0.0',
        'click>=8.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'local-git-hub=localhub.cli:main',
        ],
    },
)
