from setuptools import setup, find_packages
from pathlib import Path

package_name = 'operator-collection-sdk-tools'
description = (
    'Command-line tooling for developing IBM z/OS Cloud Broker Operator '
    'Collections on OpenShift.'
)
license = 'Apache-2.0'
pypi_classifiers = [
    'Development Status :: 4 - Beta',
    'License :: OSI Approved :: Apache Software License',
    'Programming Language :: Python :: 3.9',
]
keywords = ['openshift', 'ansible', 'zos']
readme = Path(__file__).parent / 'README.md'

# Core dependencies
install_requires = [
    'httpx>=0.24',
    'kubernetes>=24.2.0',
    'PyYAML>=6.0',
    'structlog>=22.1.0',
    'typer>=0.9.0',
]

# Test dependencies
tests_require = [
    'pytest>=7.0',
]
tests_require += install_requires

# Optional dependencies (like for dev)
extras_require = {
    # For development environments
    'dev': tests_require,
}

setup(
    name=package_name,
    version='1.0.0',
    description=description,
    long_description=readme.read_text(),
    long_description_content_type='text/markdown',
    license=license,
    classifiers=pypi_classifiers,
    keywords=keywords,
    python_requires='>=3.9',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    install_requires=install_requires,
    tests_require=tests_require,
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'ocsdk=operatorcollectionsdk.cli:app',
        ],
    },
    include_package_data=True,
)
