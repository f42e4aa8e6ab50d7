"""Catalogue des versions supportées et résolution d'une version demandée.

Une plage de versions est décrite de façon compacte (major, bornes des minors,
bornes des updates) puis dépliée en table explicite :

    >>> generate_supported_version(8, 0, 0, 11, 12)
    {'8.0.11': '8.0.11', '8.0.12': '8.0.12', '8.0': '8.0.12', '8': '8.0.12'}

Les exclusions (versions connues comme non supportées dans une plage) se font
après coup, par l'appelant, en retirant les clés concernées.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from core.errors import UnsupportedVersionError


@dataclass(frozen=True)
class VersionNumber:
    # Pas du SemVer strict : certaines offres exposent "6.x"
    major: str
    minor: Optional[str] = None
    patch: Optional[str] = None


def parse_version(database_name: str, version: str) -> VersionNumber:
    parts = version.split(".") if version else []
    if not parts or not parts[0]:
        raise UnsupportedVersionError(database_name, version)

    return VersionNumber(
        major=parts[0],
        minor=parts[1] if len(parts) > 1 else None,
        patch=parts[2] if len(parts) > 2 else None,
    )


def generate_supported_version(
    major: int,
    minor_min: int,
    minor_max: int,
    update_min: Optional[int] = None,
    update_max: Optional[int] = None,
    suffix: Optional[str] = None,
) -> Dict[str, str]:
    suffix = suffix or ""
    versions: Dict[str, str] = {}

    if update_min is not None:
        if update_max is None:
            update_max = update_min
        for minor in range(minor_min, minor_max + 1):
            for update in range(update_min, update_max + 1):
                version = f"{major}.{minor}.{update}"
                versions[version] = f"{version}{suffix}"
            versions[f"{major}.{minor}"] = f"{major}.{minor}.{update_max}{suffix}"
        latest = f"{major}.{minor_max}.{update_max}{suffix}"
    else:
        for minor in range(minor_min, minor_max + 1):
            version = f"{major}.{minor}"
            versions[version] = f"{version}{suffix}"
        latest = f"{major}.{minor_max}{suffix}"

    versions[str(major)] = latest
    return versions


def get_supported_version_to_use(
    database_name: str,
    all_supported_versions: Mapping[str, str],
    version_to_check: str,
) -> str:
    """Résout `version_to_check` au niveau de précision demandé, sans repli.

    Raises:
        UnsupportedVersionError: version vide ou absente du catalogue.
    """

    version = parse_version(database_name, version_to_check)

    if version.patch is not None:
        key = f"{version.major}.{version.minor}.{version.patch}"
    elif version.minor is not None:
        key = f"{version.major}.{version.minor}"
    else:
        key = version.major

    try:
        return all_supported_versions[key]
    except KeyError:
        raise UnsupportedVersionError(database_name, version_to_check) from None
