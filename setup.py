#
# Installation script for the airrecord package.
#

""" Installation script for the airrecord package.
"""

from setuptools import setup, find_packages
import re
import io

__version__ = re.search(
    r'__version__\s*=\s*[\'"]([^\'"]*)[\'"]',
    io.open('airrecord/__init__.py', encoding='utf_8_sig').read()
    ).group(1)


setup(
    name='airrecord',
    description='Record mapping layer and CLI for Airtable tables.',
    version=__version__,
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires='>=3.8, <4',
    entry_points={
        'console_scripts': [
            'airrecord-cli = airrecord.table_cli:main',
        ]
    },
    install_requires=[
        'requests',
        'urllib3>=1.26,<3',
        'portalocker>=1.2.1',
        'python-dateutil>=2.8'
    ],
    license='MIT',
    classifiers=[
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX',
        'Operating System :: MacOS :: MacOS X',
        'Operating System :: Microsoft :: Windows',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12'
    ]
)
