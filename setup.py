#!/usr/bin/env python
# -*- coding: utf-8 -*-
import re
from setuptools import setup, find_packages

pkgname = 'pouchy'

# gather the package information
main_py = open('pouchy/core/__init__.py').read()
metadata = dict(re.findall("__([a-z]+)__ = '([^']+)'", main_py))

setup(
  name=pkgname,
  version=metadata['version'],
  description='simple, opinionated interface to CouchDB-like document databases',
  author=metadata['author'],
  author_email=metadata['email'],
  keywords=[
    'couchdb',
    'pouchdb',
    'document store',
    'database',
  ],
  packages=find_packages(include=['pouchy', 'pouchy.*']),
  python_requires='>=3.11',
  install_requires=[
    'trio>=0.25',
  ],
  extras_require={
    'test': ['pytest'],
  },
  license='MIT License',
  classifiers=[
    'Topic :: Database',
    'Topic :: Database :: Front-Ends',
    'Framework :: Trio',
  ],
  include_package_data=True,
)
