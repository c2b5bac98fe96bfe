from setuptools import setup, find_packages

setup(
    name="tmlda",
    version="0.1.0",
    packages=find_packages(include=["tmlda", "tmlda.*"]),
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "pandas>=1.3.0",
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': ['tmlda=tmlda.cli:main'],
    },
    python_requires='>=3.8',
    description="Latent Dirichlet Allocation topic models fitted by variational EM or Gibbs sampling",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
