"""
Session Information
===================

Record the interpreter, platform and package versions a document was
rendered with, so a reader can reproduce its numbers.
"""
from __future__ import annotations

import platform
import sys
from datetime import datetime
from importlib import metadata
from typing import Any, Dict, Optional, Sequence

PACKAGES = (
    "numpy",
    "pandas",
    "scipy",
    "statsmodels",
    "patsy",
    "matplotlib",
    "seaborn",
    "tabulate",
    "jinja2",
    "nbformat",
    "nbconvert",
    "ipykernel",
)


def _version(package: str) -> Optional[str]:
    try:
        return metadata.version(package)
    except metadata.PackageNotFoundError:
        return None


def session_info(packages: Sequence[str] = PACKAGES) -> Dict[str, Any]:
    """
    Collect environment metadata.

    :param packages: Distribution names to report
    :returns: Dict with python, platform, timestamp and a package -> version map
        (None for packages that are not installed)
    """
    return {
        "python": sys.version.split()[0],
        "implementation": platform.python_implementation(),
        "platform": platform.platform(),
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "packages": {name: _version(name) for name in packages},
    }


def format_session_info(info: Dict[str, Any]) -> str:
    lines = [
        f"Python {info['python']} ({info['implementation']})",
        f"Platform: {info['platform']}",
        f"Rendered: {info['timestamp']}",
        "",
        "Packages:",
    ]
    for name, version in info["packages"].items():
        lines.append(f"  {name:<12} {version or 'not installed'}")
    return "\n".join(lines)
