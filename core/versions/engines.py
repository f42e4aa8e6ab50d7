from __future__ import annotations

from typing import Callable, Dict, Tuple

from core.errors import UnsupportedVersionError
from core.models import DatabaseKind
from core.versions.catalog import generate_supported_version, get_supported_version_to_use

DISPLAY_NAMES: Dict[Tuple[DatabaseKind, bool], str] = {
    (DatabaseKind.MYSQL, True): "RDS MySQL",
    (DatabaseKind.MYSQL, False): "MySQL",
    (DatabaseKind.POSTGRESQL, True): "RDS PostgreSQL",
    (DatabaseKind.POSTGRESQL, False): "Postgresql",
    (DatabaseKind.MONGODB, True): "DocumentDB",
    (DatabaseKind.MONGODB, False): "MongoDB",
    (DatabaseKind.REDIS, True): "Elasticache",
    (DatabaseKind.REDIS, False): "Redis",
}


def display_name(kind: DatabaseKind, is_managed_service: bool) -> str:
    return DISPLAY_NAMES[(kind, is_managed_service)]


def managed_mysql_versions() -> Dict[str, str]:
    # https://docs.aws.amazon.com/AmazonRDS/latest/UserGuide/CHAP_MySQL.html#MySQL.Concepts.VersionMgmt
    versions: Dict[str, str] = {}

    v56 = generate_supported_version(5, 6, 6, 34, 49)
    for unsupported in ("5.6.47", "5.6.45", "5.6.42", "5.6.38", "5.6.36"):
        del v56[unsupported]
    versions.update(v56)

    v57 = generate_supported_version(5, 7, 7, 16, 31)
    for unsupported in ("5.7.29", "5.7.27", "5.7.20", "5.7.18"):
        del v57[unsupported]
    versions.update(v57)

    v8 = generate_supported_version(8, 0, 0, 11, 21)
    for unsupported in ("8.0.18", "8.0.14", "8.0.12"):
        del v8[unsupported]
    versions.update(v8)

    return versions


def self_hosted_mysql_versions() -> Dict[str, str]:
    # https://hub.docker.com/r/bitnami/mysql/tags
    versions: Dict[str, str] = {}
    versions.update(generate_supported_version(5, 6, 6, 34, 49))
    versions.update(generate_supported_version(5, 7, 7, 16, 31))
    versions.update(generate_supported_version(8, 0, 0, 11, 21))
    return versions


def self_hosted_postgresql_versions() -> Dict[str, str]:
    # https://hub.docker.com/r/bitnami/postgresql/tags
    versions: Dict[str, str] = {}
    versions.update(generate_supported_version(10, 1, 14, 0, 0))
    versions.update(generate_supported_version(11, 1, 9, 0, 0))
    versions.update(generate_supported_version(12, 2, 4, 0, 0))
    return versions


def self_hosted_mongodb_versions() -> Dict[str, str]:
    # https://hub.docker.com/r/bitnami/mongodb/tags
    versions: Dict[str, str] = {}
    versions.update(generate_supported_version(3, 6, 6, 0, 21))
    versions.update(generate_supported_version(4, 0, 0, 0, 21))
    versions.update(generate_supported_version(4, 2, 2, 0, 11))
    versions.update(generate_supported_version(4, 4, 4, 0, 2))
    return versions


def self_hosted_redis_versions() -> Dict[str, str]:
    # https://hub.docker.com/r/bitnami/redis/tags
    return {
        "6": "6.0.9",
        "6.0": "6.0.9",
        "5": "5.0.10",
        "5.0": "5.0.10",
    }


CATALOGS: Dict[Tuple[DatabaseKind, bool], Callable[[], Dict[str, str]]] = {
    (DatabaseKind.MYSQL, True): managed_mysql_versions,
    (DatabaseKind.MYSQL, False): self_hosted_mysql_versions,
    (DatabaseKind.POSTGRESQL, False): self_hosted_postgresql_versions,
    (DatabaseKind.MONGODB, False): self_hosted_mongodb_versions,
    (DatabaseKind.REDIS, False): self_hosted_redis_versions,
}


def has_catalog(kind: DatabaseKind, is_managed_service: bool) -> bool:
    return (kind, is_managed_service) in CATALOGS


def get_database_version(kind: DatabaseKind, requested_version: str, is_managed_service: bool) -> str:
    """Résout la version concrète à déployer pour un moteur et un mode donnés.

    Le catalogue est reconstruit à chaque appel : aucune table partagée n'est
    modifiée entre deux résolutions.
    """

    name = display_name(kind, is_managed_service)
    builder = CATALOGS.get((kind, is_managed_service))
    if builder is None:
        raise UnsupportedVersionError(name, requested_version)

    return get_supported_version_to_use(name, builder(), requested_version)
