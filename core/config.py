"""Chemins et paramètres d'exécution lus depuis l'environnement.

Variables reconnues :
- ENGINE_LIB_ROOT_DIR : racine des templates (Terraform, charts Helm)
- ENGINE_WORKSPACE_ROOT : dossier où sont générés les workspaces par service
- ENGINE_EXECUTION_ID : identifiant d'exécution (sinon généré)
- ENGINE_DRY_RUN : "1"/"true" pour s'arrêter au `terraform plan`
- ENGINE_TEST_CLUSTER : "1"/"true" pour supprimer les backups automatiques
- ENGINE_RESOURCE_TTL_SECONDS : durée de vie des namespaces (label `ttl`)
- ENGINE_CLUSTER_ID / _NAME / _REGION / ENGINE_KUBECONFIG : cluster cible du runner
"""
from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from core.models import Cluster

ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = ROOT_DIR / "data"
LOGS_DIR = DATA_DIR / "logs"
WORKSPACES_DIR = DATA_DIR / "workspaces"
DB_PATH = DATA_DIR / "state.sqlite"
LIB_ROOT_DIR = ROOT_DIR / "lib"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Context:
    """Contexte d'une exécution du moteur (une requête de déploiement)."""

    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    lib_root_dir: Path = LIB_ROOT_DIR
    workspace_root: Path = WORKSPACES_DIR
    dry_run_deploy: bool = False
    test_cluster: bool = False
    resource_expiration_in_seconds: Optional[int] = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Context":
        env = os.environ if env is None else env
        ttl = (env.get("ENGINE_RESOURCE_TTL_SECONDS") or "").strip()
        if ttl and not ttl.isdigit():
            raise ValueError(f"ENGINE_RESOURCE_TTL_SECONDS doit être un entier positif: {ttl}")

        return cls(
            execution_id=env.get("ENGINE_EXECUTION_ID") or str(uuid.uuid4()),
            lib_root_dir=Path(env.get("ENGINE_LIB_ROOT_DIR") or LIB_ROOT_DIR).expanduser(),
            workspace_root=Path(env.get("ENGINE_WORKSPACE_ROOT") or WORKSPACES_DIR).expanduser(),
            dry_run_deploy=_flag(env.get("ENGINE_DRY_RUN")),
            test_cluster=_flag(env.get("ENGINE_TEST_CLUSTER")),
            resource_expiration_in_seconds=int(ttl) if ttl else None,
        )

    def workspace_directory(self, kind: str, service_id: str) -> Path:
        return self.workspace_root / self.execution_id / kind / service_id


def cluster_from_env(env: Mapping[str, str] | None = None) -> Cluster:
    env = os.environ if env is None else env
    return Cluster(
        id=env.get("ENGINE_CLUSTER_ID", "local"),
        name=env.get("ENGINE_CLUSTER_NAME", "local"),
        region=env.get("ENGINE_CLUSTER_REGION", "eu-west-3"),
        kubeconfig_path=env.get("ENGINE_KUBECONFIG", str(Path("~/.kube/config").expanduser())),
    )
