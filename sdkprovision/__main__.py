"""
Entry point for running SDKProvision as a module.

Usage: python -m sdkprovision [command] [options]
"""

from sdkprovision.cli.parser import main

if __name__ == "__main__":
    main()
