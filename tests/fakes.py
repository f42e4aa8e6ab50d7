"""Doublures des collaborateurs externes (rendu, terraform, helm, kubectl)."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from core.deploy.helm import HelmHistoryRow
from core.errors import CommandError, RenderError


class Calls(list):
    """Journal partagé des appels faits aux doublures, dans l'ordre."""


class FakeRenderer:
    def __init__(self, calls: Calls, fail_on: Optional[str] = None) -> None:
        self.calls = calls
        self.fail_on = fail_on
        self.contexts: List[Dict[str, Any]] = []

    def render(self, template_dir: Path, output_dir: Path, context: Dict[str, Any]) -> None:
        if self.fail_on and str(template_dir).endswith(self.fail_on):
            raise RenderError(f"boom {template_dir}")
        self.calls.append(("render", str(template_dir), str(output_dir)))
        self.contexts.append(dict(context))


class FakeInfra:
    def __init__(self, calls: Calls, fail: bool = False) -> None:
        self.calls = calls
        self.fail = fail

    def apply(self, working_dir: Path, dry_run: bool = False) -> None:
        self.calls.append(("terraform_apply", str(working_dir), dry_run))
        if self.fail:
            raise CommandError(["terraform", "apply"], 1, "apply failed")

    def destroy(self, working_dir: Path) -> None:
        self.calls.append(("terraform_destroy", str(working_dir)))
        if self.fail:
            raise CommandError(["terraform", "destroy"], 1, "destroy failed")


class FakeHelm:
    def __init__(self, calls: Calls, row: Optional[HelmHistoryRow] = HelmHistoryRow(1, "deployed", "mysql-8.0.21")) -> None:
        self.calls = calls
        self.row = row

    def upgrade_with_history(self, kubeconfig_path, namespace, release_name, chart_dir, timeout, envs):
        self.calls.append(("helm_upgrade", namespace, release_name, str(chart_dir)))
        self.envs = list(envs)
        return self.row

    def cleanup(self, kubeconfig_path, namespace, release_name, envs=()):
        self.calls.append(("helm_cleanup", namespace, release_name))


class FakeKubectl:
    def __init__(self, calls: Calls, ready: Optional[bool] = True) -> None:
        self.calls = calls
        self.ready = ready
        self.labels = None

    def create_namespace(self, kubeconfig_path, namespace, labels, envs):
        self.calls.append(("create_namespace", namespace))
        self.labels = labels

    def wait_pod_ready(self, kubeconfig_path, namespace, selector, envs):
        self.calls.append(("wait_pod_ready", namespace, selector))
        return self.ready


class FakeStateStore:
    def __init__(self, calls: Calls) -> None:
        self.calls = calls

    def delete_tfstate_secret(self, cluster, environment, state_name, workspace_dir):
        self.calls.append(("delete_tfstate_secret", state_name))


class RecordingSink:
    def __init__(self) -> None:
        self.events = []

    def emit(self, event) -> None:
        self.events.append(event)


