# Copyright 2026, Pulumi Corporation.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Pulumi backend migration and AWS helper tools."""

from setuptools import find_packages, setup

VERSION = "0.1.0"


def readme():
    try:
        with open('README.md', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError:
        return "infratools - Development Version"


setup(name='infratools',
      version=VERSION,
      description='Pulumi backend migration and AWS helper tools',
      long_description=readme(),
      long_description_content_type='text/markdown',
      license='Apache 2.0',
      packages=find_packages(exclude=("test*",)),
      python_requires='>=3.9',
      install_requires=[
          'semver~=2.13',
          'pyyaml~=6.0',
          'python-dotenv>=1.0',
          'requests>=2.28',
      ],
      extras_require={
          'test': [
              'pytest',
          ],
      },
      entry_points={
          'console_scripts': [
              'infratools=infratools.cli:main',
          ],
      },
      zip_safe=False)
