import re
from setuptools import setup


def find_version(filename):
    _version_re = re.compile(r"__version__ = ['\"](.*)['\"]")
    last = None  # match python semantics
    for line in open(filename):
        version_match = _version_re.match(line)
        if version_match:
            last = version_match.group(1)

    return last


__version__ = find_version('mxpyr/mxpyr.py')

with open('README.org', 'rt') as f:
    long_description = f.read()

cli_requires = ['clifn']
tests_require = ['pytest'] + cli_requires

setup(name='mxpyr',
      version=__version__,
      description='A staged macro expander: reader, procedural, annotation and pattern macros.',
      long_description=long_description,
      long_description_content_type='text/plain',
      url='https://github.com/tgbugs/mxpyr',
      author='Tom Gillespie',
      author_email='tgbugs@gmail.com',
      license='MIT',
      classifiers=[
          'Development Status :: 3 - Alpha',
          'License :: OSI Approved :: MIT License',
          'Programming Language :: Python :: 3.7',
          'Programming Language :: Python :: 3.8',
          'Programming Language :: Python :: 3.9',
          'Programming Language :: Python :: 3.10',
          'Programming Language :: Python :: 3.11',
          'Programming Language :: Python :: 3.12',
          'Programming Language :: Python :: Implementation :: CPython',
          'Programming Language :: Python :: Implementation :: PyPy',
          'Operating System :: POSIX :: Linux',
          'Operating System :: MacOS :: MacOS X',
          'Operating System :: Microsoft :: Windows',
      ],
      keywords=('macro macros reader readtable hygiene quasiquote '
                'gensym lexer parser expansion'),
      packages=[
          'mxpyr',
      ],
      python_requires='>=3.7',
      install_requires=[
          'attrs>=20.1.0',
      ],
      tests_require=tests_require,
      extras_require={'test': tests_require,
                      'cli': cli_requires,
                     },
      entry_points={'console_scripts': ['mxpyr=mxpyr.cli:main']},
     )
