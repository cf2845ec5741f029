from setuptools import setup

setup(
    name="blast_index",
    version="0.0",
    author="FID-Judaica, Goethe Universität",
    license="MLP 2.0/EUPL 1.1",
    author_email="a.christianson@ub.uni-frankfurt.de",
    description="Byte-offset index and random access for "
    "plain-text BLAST reports.",
    long_description=open("README.rst").read(),
    packages=["blast_index"],
    install_requires=["SQLAlchemy>=1.4"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["blastdex=blast_index.cli:main"]},
)
