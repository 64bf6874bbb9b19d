"""
CloudVault

Per-owner cloud file storage: namespace provisioning, direct-to-storage
transfers with quota accounting, and expiring public share links.
"""

__version__ = "1.0.0"
