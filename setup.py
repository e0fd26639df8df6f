#!/usr/bin/env python3
"""
Setup script for OJ Test Suite Downloader

This script handles the installation and distribution of the OJ Test Suite Downloader package.
It provides the command-line entry point and reads the dependencies from requirements.txt.

Usage:
    pip install -e .                    # Install in development mode
    pip install .                       # Install normally
    python setup.py sdist bdist_wheel    # Build distribution packages
    python setup.py develop             # Install in development mode (legacy)
"""

import sys
from pathlib import Path
from setuptools import setup, find_packages

# Ensure we're running on Python 3.8+
if sys.version_info < (3, 8):
    sys.exit("ERROR: Python 3.8 or higher is required")

# Get the directory containing this script
here = Path(__file__).parent.absolute()

# Read the README file for long description
def read_readme():
    """Read and return the contents of README.md"""
    readme_path = here / "README.md"
    if readme_path.exists():
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "Download sample and full test suites from online judges."

# Read requirements from requirements.txt
def read_requirements():
    """Read and return the list of requirements from requirements.txt"""
    requirements_path = here / "requirements.txt"
    requirements = []
    
    if requirements_path.exists():
        with open(requirements_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                # Skip empty lines and comments
                if line and not line.startswith('#'):
                    # Handle version specifications
                    requirements.append(line)
    
    return requirements

# Get version from main module
def get_version():
    """Extract version from the main module"""
    version_file = here / "main.py"
    if version_file.exists():
        with open(version_file, 'r', encoding='utf-8') as f:
            for line in f:
                if line.strip().startswith('__version__'):
                    return line.split('=')[1].strip().strip('"').strip("'")
    return "1.0.0"

# Package metadata
PACKAGE_NAME = "oj-testsuite-downloader"
PACKAGE_VERSION = get_version()
PACKAGE_DESCRIPTION = "Download sample and full test suites from online judges"
PACKAGE_LONG_DESCRIPTION = read_readme()
PACKAGE_URL = "https://github.com/your-username/OJ-Test-Suite-Downloader"
AUTHOR_NAME = "Your Name"
AUTHOR_EMAIL = "your.email@example.com"

# Package requirements
INSTALL_REQUIRES = read_requirements()

# Development dependencies
EXTRAS_REQUIRE = {
    'dev': [
        'pytest>=7.0.0',
        'pytest-cov>=4.0.0',
        'flake8>=5.0.0',
        'black>=22.0.0',
        'mypy>=1.0.0',
        'types-requests>=2.28.0',
        'types-PyYAML>=6.0.0',
    ],
    'test': [
        'pytest>=7.0.0',
        'pytest-cov>=4.0.0',
        'responses>=0.21.0',
    ]
}

# All extra dependencies combined
EXTRAS_REQUIRE['all'] = sorted({
    dep for deps in EXTRAS_REQUIRE.values() for dep in deps
})

# Entry points for command-line usage
ENTRY_POINTS = {
    'console_scripts': [
        'oj-testsuite=main:main',
    ],
}

# Classifiers for PyPI
CLASSIFIERS = [
    'Development Status :: 4 - Beta',
    'Environment :: Console',
    'Intended Audience :: Developers',
    'Intended Audience :: Education',
    'License :: OSI Approved :: MIT License',
    'Operating System :: OS Independent',
    'Programming Language :: Python :: 3',
    'Programming Language :: Python :: 3.8',
    'Programming Language :: Python :: 3.9',
    'Programming Language :: Python :: 3.10',
    'Programming Language :: Python :: 3.11',
    'Programming Language :: Python :: 3.12',
    'Topic :: Education',
    'Topic :: Software Development :: Testing',
    'Topic :: Utilities',
]

# Keywords for PyPI search
KEYWORDS = [
    'competitive-programming',
    'online-judge',
    'test-cases',
    'yukicoder',
    'automation',
    'educational-tools'
]

# Packages to install
PACKAGES = find_packages(include=['scraper', 'scraper.*', 'service', 'service.*',
                                  'testsuite', 'testsuite.*', 'utils', 'utils.*'])

def main():
    """Main setup function"""
    
    # Verify that all required files exist
    required_files = ['main.py', 'requirements.txt', 'README.md']
    missing_files = [f for f in required_files if not (here / f).exists()]
    
    if missing_files:
        print(f"ERROR: Missing required files: {missing_files}")
        sys.exit(1)
    
    # Setup configuration
    setup(
        # Basic package information
        name=PACKAGE_NAME,
        version=PACKAGE_VERSION,
        description=PACKAGE_DESCRIPTION,
        long_description=PACKAGE_LONG_DESCRIPTION,
        long_description_content_type='text/markdown',
        url=PACKAGE_URL,
        
        # Author information
        author=AUTHOR_NAME,
        author_email=AUTHOR_EMAIL,
        
        # Package discovery
        packages=PACKAGES,
        py_modules=['main'],
        
        # Python version requirement
        python_requires='>=3.8',
        
        # Dependencies
        install_requires=INSTALL_REQUIRES,
        extras_require=EXTRAS_REQUIRE,
        
        
        # Entry points
        entry_points=ENTRY_POINTS,
        
        # PyPI metadata
        classifiers=CLASSIFIERS,
        keywords=' '.join(KEYWORDS),
        
        # Project URLs
        project_urls={
            'Bug Reports': f'{PACKAGE_URL}/issues',
            'Source': PACKAGE_URL,
            'Documentation': f'{PACKAGE_URL}/blob/main/README.md',
            'Download': f'{PACKAGE_URL}/releases',
        },
        
        # Additional options
        zip_safe=False,  # For compatibility with some tools
        platforms=['any'],
        
        # License
        license='MIT',
        
        # Options for building wheels
        options={
            'bdist_wheel': {
                'universal': False,
            },
        },
    )

if __name__ == '__main__':
    main()
