from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="suspension-analytics",
    version="1.0.0",
    author="Project Contributor",
    author_email="contributor@example.com",
    description="Telemetry analytics, predictive maintenance and optimization for energy-harvesting suspensions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/project-owner/suspension-analytics",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Manufacturing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "pandas>=1.3.0",
        "scipy>=1.6.0",
        "scikit-learn>=0.24.0",
        "PyYAML>=5.4.1",
        "pydantic>=2.6.0",
    ],
    extras_require={
        'dev': [
            'pytest>=6.0.0',
            'pytest-cov>=2.12.0',
            'black>=21.5b2',
            'flake8>=3.9.0',
            'mypy>=0.910',
        ],
    },
)
