"""
Packaging for tcpcomm. Install with `pip install -e .`, or `pip install -e .[test]` to run the tests:

- unit tests and doctests live beside the code under src/
- integration tests that use real sockets live under integrate/
"""

from setuptools import setup


setup(
    name='tcpcomm-py',
    version='0.1.0',
    description='Self-healing point-to-point TCP connections with event notification.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['tcpcomm', 'tcpcomm.config', 'tcpcomm.support', 'tcpcomm.transport'],
    python_requires='>=3.6',
    install_requires=[
        'configobj>=5.0.8',
    ],
    extras_require={
        'test': [
            'pytest',
            'PyHamcrest',
            'timeout-decorator',
        ],
    },
    zip_safe=False,
)
