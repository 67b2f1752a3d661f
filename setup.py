##############################################################################
#
# Copyright (c) 2006 Zope Corporation and Contributors.
# All Rights Reserved.
#
# This software is subject to the provisions of the Zope Public License,
# Version 2.1 (ZPL).  A copy of the ZPL should accompany this distribution.
# THIS SOFTWARE IS PROVIDED "AS IS" AND ANY AND ALL EXPRESS OR IMPLIED
# WARRANTIES ARE DISCLAIMED, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF TITLE, MERCHANTABILITY, AGAINST INFRINGEMENT, AND FITNESS
# FOR A PARTICULAR PURPOSE.
#
##############################################################################
import os
from setuptools import setup, find_packages

testing_extras = ['pytest', 'coverage']

requires = ['setuptools',
            'zope.interface>=3.6.0',
            'transaction']

here = os.path.abspath(os.path.dirname(__file__))
def _read_file(filename):
    try:
        with open(os.path.join(here, filename)) as f:
            return f.read()
    except IOError:
        return ''

README = _read_file('README.rst')
CHANGES = _read_file('CHANGES.rst')

setup(name='repoze.sysmail',
      version = '0.1.0',
      url='http://www.repoze.org',
      license='ZPL 2.1',
      description='Compose MIME messages and send them with the system tools',
      author='Repoze Developers',
      author_email='repoze-dev@lists.repoze.org',
      long_description='\n\n'.join([README, CHANGES]),
      classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Communications :: Email",
        ],
      packages=find_packages(),
      python_requires='>=3.7',
      tests_require = requires,
      install_requires=requires,
      include_package_data = True,
      zip_safe = False,
      extras_require = {
        'testing': requires + testing_extras,
      },
)
