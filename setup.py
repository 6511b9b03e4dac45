#!/usr/bin/env python
import re

from setuptools import find_packages, setup

_TRANSPORT_PLUGIN_PATTERN = re.compile(r"\bethrpc_\w+(?!\S)")
_PACKAGES = find_packages("src")
_MODULES = {p for p in _PACKAGES if re.match(_TRANSPORT_PLUGIN_PATTERN, p)}
_MODULES.add("ethrpc")

extras_require = {
    "test": [
        "pytest>=8.0,<9.0",  # Test runner
        "pytest-mock",  # For creating mocks
        "pytest-timeout>=2.2.0,<3",  # For avoiding timing out during tests
        "hypothesis>=6.2.0,<7.0",  # Strategy-based fuzzer
        "requests-mock>=1.11,<2",  # Fake HTTP node for transport tests
    ],
    "lint": [
        "black>=24.10.0,<25",  # Auto-formatter and linter
        "mypy>=1.13.0,<2",  # Static type analyzer
        "types-PyYAML",  # Needed due to mypy typeshed
        "types-requests",  # Needed due to mypy typeshed
        "types-setuptools",  # Needed due to mypy typeshed
        "flake8>=7.1.1,<8",  # Style linter
        "flake8-breakpoint>=1.1.0,<2",  # Detect breakpoints left in code
        "flake8-print>=4.0.1,<5",  # Detect print statements left in code
        "flake8-pydantic",  # For detecting issues with Pydantic models
        "isort>=5.13.2,<6",  # Import sorting linter
    ],
    "release": [
        "setuptools",  # Installation tool
        "wheel",  # Packaging tool
        "twine==3.8.0",  # Package upload tool
    ],
    "dev": [
        "pre-commit",  # Ensure that linters are run prior to committing
        "pytest-watch",  # `ptw` test watcher/runner
        "ipdb",  # Debugger (Must use `export PYTHONBREAKPOINT=ipdb.set_trace`)
    ],
}

# NOTE: `pip install -e .[dev]` to install package
extras_require["dev"] = (
    extras_require["test"]
    + extras_require["lint"]
    + extras_require["release"]
    + extras_require["dev"]
)


setup(
    name="ethrpc",
    version="0.1.0",
    description="Ethereum JSON-RPC client with polling filters and an ABI codec",
    author="ethrpc developers",
    include_package_data=True,
    install_requires=[
        "click>=8.1.6,<9",
        "pydantic>=2.6.4,<3",
        "pydantic-settings>=2.5.2,<3",
        "PyYAML>=5.0,<7",
        "requests>=2.28.1,<3",
        "yarl>=1.9,<2",
        # ** Dependencies maintained by Ethereum Foundation **
        "eth-abi>=5.1.0,<7",
        "eth-hash[pycryptodome]",
        "eth-typing>=5,<7",
        "eth-utils>=5,<7",
        "hexbytes>=1.2.0,<3",
        "web3>=7,<9",
    ],
    python_requires=">=3.9,<4",
    extras_require=extras_require,
    py_modules=list(_MODULES),
    license="Apache-2.0",
    zip_safe=False,
    keywords="ethereum",
    packages=_PACKAGES,
    package_dir={"": "src"},
    package_data={p: ["py.typed"] for p in _MODULES},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Natural Language :: English",
        "Operating System :: MacOS",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
