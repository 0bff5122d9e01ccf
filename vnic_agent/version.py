"""Version information for the agent.

Read from the VERSION file shipped next to this module.
"""

from pathlib import Path


def get_version() -> str:
    """Get the agent version.

    Returns:
        Version string (e.g., "0.1.0"), or "0.0.0" if the VERSION file
        is missing or empty.
    """
    version_file = Path(__file__).parent / "VERSION"
    try:
        version = version_file.read_text().strip()
    except OSError:
        return "0.0.0"
    return version or "0.0.0"


# Cache the version at import time
__version__ = get_version()
