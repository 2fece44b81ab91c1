"""Packaged data files for SDKProvision."""
