"""
SDKProvision - SDK acquisition and provisioning.

Downloads, verifies, installs and configures third-party SDKs through a
resumable download -> install -> update-variables -> post-install lifecycle.
"""

__version__ = "0.1.0"
