from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

from tenacity import RetryError

from core.deploy.retry import POD_READY_RETRY_POLICY, RetryPolicy
from core.errors import CommandError, ToolOutputError
from core.logging.logger import parse_json_output, run_command
from core.models import Cluster, Environment

logger = logging.getLogger(__name__)

TFSTATE_NAMESPACE = "default"


class PodsNotReady(Exception):
    pass


def pods_ready(payload: Mapping[str, object]) -> bool:
    """Vrai si la liste `kubectl get pods -o json` contient au moins un pod, tous `Ready`."""

    items = payload.get("items") or []
    if not items:
        return False

    for pod in items:
        conditions = (pod.get("status") or {}).get("conditions") or []
        if not any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions):
            return False
    return True


class KubectlCli:
    def __init__(
        self,
        kubectl_binary: str = "kubectl",
        ready_policy: RetryPolicy = POD_READY_RETRY_POLICY,
        command_logger: logging.Logger | None = None,
    ) -> None:
        self.kubectl_binary = kubectl_binary
        self.ready_policy = ready_policy
        self.logger = command_logger or logger

    def _kubectl(self, kubeconfig_path: str, *args: str) -> list[str]:
        return [self.kubectl_binary, "--kubeconfig", kubeconfig_path, *args]

    def create_namespace(
        self,
        kubeconfig_path: str,
        namespace: str,
        labels: Optional[Mapping[str, str]],
        envs: Sequence[Tuple[str, str]],
    ) -> None:
        """Crée le namespace s'il n'existe pas, puis applique les labels."""

        try:
            run_command(self._kubectl(kubeconfig_path, "create", "namespace", namespace), logger=self.logger, envs=envs)
        except CommandError as exc:
            if "AlreadyExists" not in exc.output:
                raise
            self.logger.info("Namespace %s déjà présent", namespace)

        if labels:
            pairs = [f"{key}={value}" for key, value in labels.items()]
            run_command(
                self._kubectl(kubeconfig_path, "label", "namespace", namespace, "--overwrite", *pairs),
                logger=self.logger,
                envs=envs,
            )

    def is_pod_ready(self, kubeconfig_path: str, namespace: str, selector: str, envs: Sequence[Tuple[str, str]]) -> bool:
        output = run_command(
            self._kubectl(kubeconfig_path, "get", "pods", "-n", namespace, "-l", selector, "-o", "json"),
            logger=self.logger,
            envs=envs,
        )
        payload = parse_json_output("kubectl get pods", output, "{")
        if payload is None:
            return False
        try:
            return pods_ready(payload)
        except (AttributeError, TypeError) as exc:
            raise ToolOutputError("kubectl get pods", output) from exc

    def wait_pod_ready(
        self, kubeconfig_path: str, namespace: str, selector: str, envs: Sequence[Tuple[str, str]]
    ) -> Optional[bool]:
        """Attend que les pods du sélecteur soient prêts ; `False` après épuisement des tentatives."""

        def _check() -> bool:
            if not self.is_pod_ready(kubeconfig_path, namespace, selector, envs):
                raise PodsNotReady(selector)
            return True

        def _log_retry(attempt: int, exc: BaseException) -> None:
            self.logger.info("Pods %s pas encore prêts (tentative %s): %s", selector, attempt, exc)

        policy = RetryPolicy(
            max_attempts=self.ready_policy.max_attempts,
            delay_ms=self.ready_policy.delay_ms,
            retry_on=(PodsNotReady, CommandError),
            sleep=self.ready_policy.sleep,
        )
        try:
            return policy.run(_check, on_retry=_log_retry)
        except RetryError:
            return False


class KubectlStateSecretStore:
    """Supprime les secrets Kubernetes portant l'état Terraform d'un service managé."""

    def __init__(self, kubectl: KubectlCli | None = None) -> None:
        self.kubectl = kubectl or KubectlCli()

    def delete_tfstate_secret(
        self, cluster: Cluster, environment: Environment, state_name: str, workspace_dir: Path
    ) -> None:
        run_command(
            self.kubectl._kubectl(
                cluster.kubeconfig_path,
                "delete",
                "secret",
                state_name,
                "-n",
                TFSTATE_NAMESPACE,
                "--ignore-not-found",
            ),
            cwd=workspace_dir,
            logger=self.kubectl.logger,
        )
