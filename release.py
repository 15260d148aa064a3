"""
Keeps the notifier package's version constants in step with pyproject.toml.

    python release.py           rewrite notifier/__init__.py from the toml
    python release.py --check   exit 1 if the two disagree
"""

import argparse
import re
import sys
from pathlib import Path


ROOT = Path(__file__).parent
TOML_PATH = Path(ROOT, "pyproject.toml")
PACKAGE_PATH = Path(ROOT, "notifier/__init__.py")

VERSION = tuple[int, int, int]
_PARTS = ("major", "minor", "patch")


def parse_version(version_str: str) -> VERSION:
    """Parse a version string into major, minor, patch tuple."""
    match = re.match(r"^(\d+)\.(\d+)\.(\d+)$", version_str.strip("\"'"))
    if not match:
        raise ValueError(f"Invalid version format: {version_str}")
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def read_toml_version(toml_path: Path = TOML_PATH) -> VERSION:
    """Extract the [project] version from a pyproject file."""
    content = toml_path.read_text(encoding="utf-8")
    match = re.search(r'^version\s*=\s*["\'](\d+\.\d+\.\d+)["\']', content, re.M)

    if not match:
        raise ValueError(f"No version field found in {toml_path}")

    return parse_version(match.group(1))


def read_package_version(package_path: Path = PACKAGE_PATH) -> VERSION:
    """Read version_major/minor/patch from the package's __init__."""
    content = package_path.read_text(encoding="utf-8")
    values = []
    for part in _PARTS:
        match = re.search(rf"^version_{part}\s*=\s*(\d+)", content, re.M)
        if not match:
            raise ValueError(f"version_{part} not found in {package_path}")
        values.append(int(match.group(1)))

    return values[0], values[1], values[2]


def write_package_version(
    new_version: VERSION, package_path: Path = PACKAGE_PATH
) -> None:
    """Rewrite the version constants in the package's __init__."""
    new_content = package_path.read_text(encoding="utf-8")

    for part, value in zip(_PARTS, new_version):
        pattern = rf"^version_{part}\s*=\s*\d+"
        new_content, count = re.subn(pattern, f"version_{part} = {value}", new_content, flags=re.M)
        if count == 0:
            raise ValueError(f"Pattern not found: {pattern}")

    package_path.write_text(new_content, encoding="utf-8")


def main(argv: list[str] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--check",
        action="store_true",
        help="only verify that the package and pyproject versions agree",
    )
    args = parser.parse_args(argv)

    toml_version = read_toml_version()
    package_version = read_package_version()
    version_str = ".".join(str(v) for v in toml_version)

    if args.check:
        if toml_version != package_version:
            print(
                f"Version mismatch: pyproject.toml has {version_str}, "
                f"{PACKAGE_PATH.name} has {'.'.join(str(v) for v in package_version)}"
            )
            return 1
        print(f"Versions agree: {version_str}")
        return 0

    write_package_version(toml_version)
    print(f"Updated {PACKAGE_PATH} to {version_str}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
