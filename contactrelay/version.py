"""
Version information for contactrelay
"""
from importlib import metadata
from pathlib import Path
import tomllib


def get_version() -> str:
    """Read the version from pyproject.toml, falling back to installed metadata

    Returns:
        Version string
    """
    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        pass

    try:
        return metadata.version("contactrelay")
    except metadata.PackageNotFoundError:
        return "unknown"


__version__ = get_version()
