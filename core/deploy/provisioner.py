"""Aiguillage d'une action vers le bon chemin de provisionnement.

- `ManagedService` : templates Terraform + chart `external-name-svc`, puis
  `terraform apply` / `terraform destroy`.
- `SelfHosted` : chart Helm par défaut surchargé par nos valeurs, namespace,
  `helm upgrade --install`, puis attente des pods.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from core.config import Context
from core.deploy.helm import HelmTimeout
from core.deploy.interfaces import (
    ClusterCli,
    CredentialProvider,
    InfraTool,
    PackageManager,
    Renderer,
    StateSecretStore,
)
from core.errors import EngineError, EngineErrorCause, EngineErrorScope, cast_to_engine_error
from core.models import DeploymentTarget, ManagedService, SelfHosted

logger = logging.getLogger(__name__)

AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
EXTERNAL_NAME_CHART = "external-name-svc"


class ProvisionedService(Protocol):
    context: Context
    id: str
    name: str

    @property
    def template_name(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    def helm_release_name(self) -> str: ...

    def workspace_directory(self) -> Path: ...

    def engine_error_scope(self) -> EngineErrorScope: ...

    def tera_context(self, target: DeploymentTarget, credentials: CredentialProvider) -> Dict[str, Any]: ...


def credential_envs(credentials: CredentialProvider) -> List[Tuple[str, str]]:
    return [
        (AWS_ACCESS_KEY_ID, credentials.access_key()),
        (AWS_SECRET_ACCESS_KEY, credentials.secret_key()),
    ]


class Provisioner:
    def __init__(
        self,
        renderer: Renderer,
        infra: InfraTool,
        helm: PackageManager,
        kubectl: ClusterCli,
        state_store: StateSecretStore,
        credentials: CredentialProvider,
        helm_timeout: HelmTimeout = HelmTimeout.default(),
    ) -> None:
        self.renderer = renderer
        self.infra = infra
        self.helm = helm
        self.kubectl = kubectl
        self.state_store = state_store
        self.credentials = credentials
        self.helm_timeout = helm_timeout

    # --- Points d'entrée ---
    def create(self, service: ProvisionedService, target: DeploymentTarget) -> None:
        if isinstance(target, ManagedService):
            logger.info("Déploiement %s managé pour %s", service.display_name, service.name)
            workspace_dir = self._render_managed(service, target)
            self._guard(
                service,
                lambda: self.infra.apply(workspace_dir, dry_run=service.context.dry_run_deploy),
            )
        elif isinstance(target, SelfHosted):
            logger.info("Déploiement %s sur Kubernetes pour %s", service.display_name, service.name)
            self._create_self_hosted(service, target)
        else:
            raise self._error(service, f"Unknown deployment target: {type(target).__name__}")

    def delete(self, service: ProvisionedService, target: DeploymentTarget) -> None:
        if isinstance(target, ManagedService):
            workspace_dir = self._render_managed(service, target)
            try:
                self._guard(service, lambda: self.infra.destroy(workspace_dir))
            except EngineError as exc:
                message = f"Error while destroying infrastructure {exc.message or ''}"
                logger.error(message)
                raise exc.with_message(message) from exc

            logger.info("Suppression des secrets contenant les tfstates")
            try:
                self.state_store.delete_tfstate_secret(
                    target.cluster,
                    target.environment,
                    get_tfstate_name(service.id),
                    workspace_dir,
                )
            except Exception as exc:  # noqa: BLE001 - l'infra est déjà détruite
                logger.warning("Impossible de supprimer le secret tfstate de %s: %s", service.id, exc)
        elif isinstance(target, SelfHosted):
            self._guard(
                service,
                lambda: self.helm.cleanup(
                    target.cluster.kubeconfig_path,
                    target.environment.namespace,
                    service.helm_release_name(),
                    credential_envs(self.credentials),
                ),
            )
        else:
            raise self._error(service, f"Unknown deployment target: {type(target).__name__}")

    # --- Chemins ---
    def _render_managed(self, service: ProvisionedService, target: ManagedService) -> Path:
        context = service.tera_context(target, self.credentials)
        workspace_dir = service.workspace_directory()
        lib_root = service.context.lib_root_dir

        self._render(service, lib_root / "aws" / "services" / "common", workspace_dir, context)
        self._render(service, lib_root / "aws" / "services" / service.template_name, workspace_dir, context)
        # terraform et les manifests ne lisent pas le chart au même endroit
        chart = lib_root / "aws" / "charts" / EXTERNAL_NAME_CHART
        self._render(service, chart, workspace_dir / EXTERNAL_NAME_CHART, context)
        self._render(service, chart, workspace_dir, context)
        return workspace_dir

    def _create_self_hosted(self, service: ProvisionedService, target: SelfHosted) -> None:
        context = service.tera_context(target, self.credentials)
        workspace_dir = service.workspace_directory()
        lib_root = service.context.lib_root_dir
        kubeconfig = target.cluster.kubeconfig_path
        namespace = target.environment.namespace
        envs = credential_envs(self.credentials)

        # chart par défaut, puis nos valeurs par-dessus
        self._render(service, lib_root / "common" / "services" / service.template_name, workspace_dir, context)
        self._render(service, lib_root / "common" / "chart_values" / service.template_name, workspace_dir, context)

        labels: Optional[Dict[str, str]] = None
        ttl = service.context.resource_expiration_in_seconds
        if ttl is not None:
            labels = {"ttl": str(ttl)}
        self._guard(service, lambda: self.kubectl.create_namespace(kubeconfig, namespace, labels, envs))

        history_row = self._guard(
            service,
            lambda: self.helm.upgrade_with_history(
                kubeconfig,
                namespace,
                service.helm_release_name(),
                workspace_dir,
                self.helm_timeout,
                envs,
            ),
        )
        if history_row is None or not history_row.is_successfully_deployed():
            raise self._error(service, f"{service.display_name} database fails to be deployed (before start)")

        selector = f"app={service.name}"
        ready = self._guard(service, lambda: self.kubectl.wait_pod_ready(kubeconfig, namespace, selector, envs))
        if ready is not True:
            raise self._error(
                service,
                f"{service.display_name} database {service.name} with id {service.id} "
                "failed to start after several retries",
            )

    # --- Helpers ---
    def _render(self, service: ProvisionedService, template_dir: Path, output_dir: Path, context: Dict[str, Any]) -> None:
        self._guard(service, lambda: self.renderer.render(template_dir, output_dir, context))

    def _guard(self, service: ProvisionedService, call):
        return cast_to_engine_error(service.engine_error_scope(), service.context.execution_id, call)

    def _error(self, service: ProvisionedService, message: str) -> EngineError:
        logger.error(message)
        return EngineError(
            EngineErrorCause.INTERNAL,
            service.engine_error_scope(),
            service.context.execution_id,
            message,
        )


def get_tfstate_suffix(service_id: str) -> str:
    return service_id


def get_tfstate_name(service_id: str) -> str:
    return f"tfstate-default-{get_tfstate_suffix(service_id)}"
