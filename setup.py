from setuptools import setup, find_packages
import re

# Read version from payroll_engine/__init__.py
with open('payroll_engine/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='payroll-engine',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'payroll_engine': ['tax_rules/*.yaml'],
    },
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'payroll-engine=payroll_engine.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Monthly payroll and progressive income tax calculation engine.',
    python_requires='>=3.10',
)
