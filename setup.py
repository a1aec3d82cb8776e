from setuptools import setup
from os import path

here = path.abspath(path.dirname(__file__))

# Get the long description from the README.md file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

PACKAGE_NAME = 'verivaultsdk'

init_vars = {}
package_dir = path.join(here, PACKAGE_NAME)
with open(path.join(package_dir, '__init__.py'), encoding='utf-8', mode='r') as f_init:
    for line in f_init:
        if not line.startswith('__'):
            continue
        for var in {'version', 'license', 'author'}:
            key = '__{0}__'.format(var)
            if line.startswith(key):
                init_vars[var] = line[len(key):].strip(' =\'\"\r\n')

install_requires = [
    'requests',
    'cryptography',
    'keyring',
    'fido2>=1.1.0',
]

setup(name=PACKAGE_NAME,
      version=init_vars['version'],
      author=init_vars.get('author') or 'VeriVault',
      license=init_vars.get('license') or 'MIT',
      description='VeriVault biometric authentication SDK',
      long_description=long_description,
      long_description_content_type='text/markdown',
      classifiers=['Development Status :: 4 - Beta',
                   'License :: OSI Approved :: MIT License',
                   'Operating System :: OS Independent',
                   'Programming Language :: Python :: 3.8',
                   'Topic :: Security'],
      keywords='verivault biometric authentication',
      packages=[PACKAGE_NAME, PACKAGE_NAME + '.biometric', PACKAGE_NAME + '.account'],
      python_requires='>=3.8',
      install_requires=install_requires,
      extras_require={'test': ['pytest']}
      )
