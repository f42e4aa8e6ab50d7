from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config import Context
from core.deploy.interfaces import CredentialProvider
from core.deploy.provisioner import Provisioner, get_tfstate_name, get_tfstate_suffix
from core.errors import EngineErrorCause, EngineErrorScope, UnsupportedVersionError
from core.models import Action, DatabaseKind, DatabaseOptions, DeploymentTarget, ManagedService, SelfHosted
from core.services.lifecycle import Service
from core.versions.engines import display_name, get_database_version

logger = logging.getLogger(__name__)

RELEASE_NAME_MAX_LENGTH = 50


def cut(value: str, max_length: int) -> str:
    return value[:max_length]


class Database(Service):
    """Base de données déployable en service managé ou dans le cluster.

    La version demandée (ex. "8", "8.0" ou "8.0.16") est résolue dès la
    construction ; `version` contient toujours une version concrète.
    """

    def __init__(
        self,
        context: Context,
        kind: DatabaseKind,
        id: str,
        action: Action,
        name: str,
        requested_version: str,
        fqdn: str,
        fqdn_id: str,
        total_cpus: str,
        total_ram_in_mib: int,
        database_instance_type: str,
        options: DatabaseOptions,
        is_managed_service: bool,
        provisioner: Provisioner,
    ) -> None:
        self.context = context
        self.kind = kind
        self.id = id
        self.action = action
        self.name = name
        self.fqdn = fqdn
        self.fqdn_id = fqdn_id
        self.total_cpus = total_cpus
        self.total_ram_in_mib = total_ram_in_mib
        self.database_instance_type = database_instance_type
        self.options = options
        self.is_managed_service = is_managed_service
        self.provisioner = provisioner

        try:
            self.version = get_database_version(kind, requested_version, is_managed_service)
        except UnsupportedVersionError as exc:
            raise self.engine_error(EngineErrorCause.USER, str(exc)) from exc

    @property
    def display_name(self) -> str:
        return display_name(self.kind, self.is_managed_service)

    @property
    def template_name(self) -> str:
        return self.kind.value

    @property
    def private_port(self) -> Optional[int]:
        return self.options.port

    def engine_error_scope(self) -> EngineErrorScope:
        return EngineErrorScope.database(self.id, self.name)

    def helm_release_name(self) -> str:
        return cut(f"{self.kind.value}-{self.id}", RELEASE_NAME_MAX_LENGTH)

    def workspace_directory(self) -> Path:
        return self.context.workspace_directory("databases", self.id)

    def tera_context(self, target: DeploymentTarget, credentials: CredentialProvider) -> Dict[str, Any]:
        cluster, environment = target.cluster, target.environment
        context: Dict[str, Any] = {
            "namespace": environment.namespace,
            "kubeconfig_path": cluster.kubeconfig_path,
            "aws_access_key": credentials.access_key(),
            "aws_secret_key": credentials.secret_key(),
            "eks_cluster_id": cluster.id,
            "eks_cluster_name": cluster.name,
            "region": cluster.region,
            "database_name": self.name,
            "version": self.version,
            "fqdn_id": self.fqdn_id,
            "fqdn": self.fqdn,
            "database_login": self.options.login,
            "database_password": self.options.password,
            "database_port": self.private_port,
            "database_disk_size_in_gib": self.options.disk_size_in_gib,
            "database_instance_type": self.database_instance_type,
            "database_disk_type": self.options.database_disk_type,
            "database_ram_size_in_mib": self.total_ram_in_mib,
            "database_total_cpus": self.total_cpus,
            "database_fqdn": self.options.host,
            "database_id": self.id,
            "tfstate_suffix_name": get_tfstate_suffix(self.id),
            "tfstate_name": get_tfstate_name(self.id),
            "delete_automated_backups": self.context.test_cluster,
        }
        if self.context.resource_expiration_in_seconds is not None:
            context["resource_expiration_in_seconds"] = self.context.resource_expiration_in_seconds
        return context

    def debug_logs(self, target: DeploymentTarget) -> List[str]:
        mode = "managed" if isinstance(target, ManagedService) else "self-hosted"
        return [
            f"{self.display_name} {self.name_with_id()} version={self.version} mode={mode}",
            f"namespace={target.environment.namespace} cluster={target.cluster.name} ({target.cluster.id})",
            f"release={self.helm_release_name()} workspace={self.workspace_directory()}",
        ]

    def _check_target(self, target: DeploymentTarget) -> None:
        expected = ManagedService if self.is_managed_service else SelfHosted
        if not isinstance(target, expected):
            raise self.engine_error(
                EngineErrorCause.USER,
                f"{self.display_name} {self.name_with_id()} cannot be deployed on a "
                f"{type(target).__name__} target",
            )

    def on_create(self, target: DeploymentTarget) -> None:
        self._check_target(target)
        self.provisioner.create(self, target)

    def on_delete(self, target: DeploymentTarget) -> None:
        self._check_target(target)
        logger.info("%s.on_delete() appelé pour %s", self.display_name, self.name)
        self.provisioner.delete(self, target)


def build_database(
    context: Context,
    kind: DatabaseKind,
    payload: Dict[str, Any],
    provisioner: Provisioner,
) -> Database:
    """Construit une `Database` depuis un dict (corps JSON du runner).

    Raises:
        EngineError: version non supportée (cause `USER`).
        KeyError: champ obligatoire absent.
    """

    options = payload["options"]
    return Database(
        context=context,
        kind=kind,
        id=payload["id"],
        action=Action(payload.get("action", Action.CREATE.value)),
        name=payload["name"],
        requested_version=str(payload["version"]),
        fqdn=payload.get("fqdn", ""),
        fqdn_id=payload.get("fqdn_id", ""),
        total_cpus=str(payload.get("total_cpus", "1")),
        total_ram_in_mib=int(payload.get("total_ram_in_mib", 512)),
        database_instance_type=payload.get("database_instance_type", ""),
        options=DatabaseOptions(
            login=options["login"],
            password=options["password"],
            host=options.get("host", ""),
            port=int(options["port"]),
            disk_size_in_gib=int(options.get("disk_size_in_gib", 10)),
            database_disk_type=options.get("database_disk_type", "gp2"),
        ),
        is_managed_service=bool(payload.get("managed", False)),
        provisioner=provisioner,
    )

