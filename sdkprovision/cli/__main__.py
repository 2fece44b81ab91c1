"""
Entry point for running the SDKProvision CLI as a module.

Usage: python -m sdkprovision.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
