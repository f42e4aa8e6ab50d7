"""Contrats des collaborateurs externes utilisés par le moteur.

Les implémentations concrètes (Jinja2, terraform, helm, kubectl) vivent dans
les modules voisins ; les tests fournissent leurs propres doublures.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple

from core.deploy.helm import HelmHistoryRow, HelmTimeout
from core.models import Cluster, Environment, ProgressEvent, ProgressLevel

EnvVars = Sequence[Tuple[str, str]]


class Renderer(Protocol):
    def render(self, template_dir: Path, output_dir: Path, context: Mapping[str, Any]) -> None: ...


class InfraTool(Protocol):
    def apply(self, working_dir: Path, dry_run: bool = False) -> None: ...

    def destroy(self, working_dir: Path) -> None: ...


class PackageManager(Protocol):
    def upgrade_with_history(
        self,
        kubeconfig_path: str,
        namespace: str,
        release_name: str,
        chart_dir: Path,
        timeout: HelmTimeout,
        envs: EnvVars,
    ) -> Optional[HelmHistoryRow]: ...

    def cleanup(self, kubeconfig_path: str, namespace: str, release_name: str, envs: EnvVars = ()) -> None: ...


class ClusterCli(Protocol):
    def create_namespace(
        self,
        kubeconfig_path: str,
        namespace: str,
        labels: Optional[Mapping[str, str]],
        envs: EnvVars,
    ) -> None: ...

    def wait_pod_ready(
        self, kubeconfig_path: str, namespace: str, selector: str, envs: EnvVars
    ) -> Optional[bool]: ...


class StateSecretStore(Protocol):
    def delete_tfstate_secret(
        self, cluster: Cluster, environment: Environment, state_name: str, workspace_dir: Path
    ) -> None: ...


class CredentialProvider(Protocol):
    def access_key(self) -> str: ...

    def secret_key(self) -> str: ...


class ProgressSink(Protocol):
    def emit(self, event: ProgressEvent) -> None: ...


class LoggingProgressSink:
    """Écrit chaque événement de progression dans un logger."""

    _LEVELS = {
        ProgressLevel.INFO: logging.INFO,
        ProgressLevel.WARN: logging.WARNING,
        ProgressLevel.ERROR: logging.ERROR,
    }

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("core.progress")

    def emit(self, event: ProgressEvent) -> None:
        self.logger.log(
            self._LEVELS[event.level],
            "[%s] %s",
            event.context_id,
            event.message or "",
        )
