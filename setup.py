from setuptools import setup, find_packages

setup(
    name             = 'sbr-collect',
    version          = '2.0.0',
    description      = 'sbr-collect: incremental, deduplicating JSON store for SMS Backup & Restore exports',
    packages         = find_packages(exclude=['tests*']),
    install_requires = open('requirements.txt').read().splitlines(),
    extras_require   = {
        'test': ['pytest>=7'],
    },
    entry_points     = {
        'console_scripts': [
            'sbr-collect = sbrcollect.cli:main',
            'sbr-query   = sbrcollect.query:main',
        ],
    },
    python_requires  = '>=3.10',
    classifiers      = [
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
)
