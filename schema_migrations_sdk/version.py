# schema-migrations-sdk/schema_migrations_sdk/version.py
"""
Version management for Schema Migrations SDK.

The product version is also written into the migration history ledger so a
row can be traced back to the tool release that applied it.
"""

from typing import Dict, Any

# Current SDK version
__version__ = "0.1.0"

# Version components for programmatic access
VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0
VERSION_PRE_RELEASE = None  # None, "alpha", "beta", "rc"

# Value recorded in the ProductVersion history column
PRODUCT_VERSION = f"schema-migrations-sdk/{__version__}"


def get_version() -> str:
    """
    Get the full version string.

    Returns:
        Version string in semver format (e.g., "0.1.0", "0.1.0-alpha")
    """
    version = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
    if VERSION_PRE_RELEASE:
        version += f"-{VERSION_PRE_RELEASE}"
    return version


def get_version_info() -> Dict[str, Any]:
    """Get detailed version information."""
    return {
        "version": get_version(),
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "pre_release": VERSION_PRE_RELEASE,
        "product_version": PRODUCT_VERSION,
    }
