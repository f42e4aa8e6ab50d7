from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union


class Action(str, Enum):
    CREATE = "create"
    PAUSE = "pause"
    DELETE = "delete"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    BACKUP = "backup"
    RESTORE = "restore"
    CLONE = "clone"
    NOTHING = "nothing"


class DatabaseKind(str, Enum):
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    MONGODB = "mongodb"
    REDIS = "redis"


@dataclass(frozen=True)
class DatabaseOptions:
    login: str
    password: str
    host: str
    port: int
    disk_size_in_gib: int
    database_disk_type: str = "gp2"


@dataclass(frozen=True)
class Cluster:
    """Référence vers le cluster Kubernetes cible (non possédée)."""

    id: str
    name: str
    region: str
    kubeconfig_path: str


@dataclass(frozen=True)
class Environment:
    id: str
    organization_id: str
    namespace: str


@dataclass(frozen=True)
class ManagedService:
    """Service provisionné par le control plane du cloud (Terraform)."""

    cluster: Cluster
    environment: Environment


@dataclass(frozen=True)
class SelfHosted:
    """Workload déployé dans le cluster (Helm)."""

    cluster: Cluster
    environment: Environment


DeploymentTarget = Union[ManagedService, SelfHosted]


@dataclass(frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AwsCredentials":
        env = os.environ if env is None else env
        return cls(
            access_key_id=env.get("AWS_ACCESS_KEY_ID", ""),
            secret_access_key=env.get("AWS_SECRET_ACCESS_KEY", ""),
        )

    def access_key(self) -> str:
        return self.access_key_id

    def secret_key(self) -> str:
        return self.secret_access_key


# --- Progression ---
class ProgressLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class EnvironmentScope:
    id: str


@dataclass(frozen=True)
class RouterScope:
    id: str


ProgressScope = Union[EnvironmentScope, RouterScope]


@dataclass(frozen=True)
class ProgressEvent:
    scope: ProgressScope
    level: ProgressLevel
    message: Optional[str]
    context_id: str
