from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from core.errors import ToolOutputError
from core.logging.logger import parse_json_output, run_command

logger = logging.getLogger(__name__)

DEFAULT_HELM_TIMEOUT = 300  # secondes
HELM_HISTORY_MAX = 50


@dataclass(frozen=True)
class HelmTimeout:
    seconds: int = DEFAULT_HELM_TIMEOUT

    @classmethod
    def default(cls) -> "HelmTimeout":
        return cls()

    def __str__(self) -> str:
        return f"{self.seconds}s"


@dataclass(frozen=True)
class HelmHistoryRow:
    revision: int
    status: str
    chart: str
    app_version: str = ""

    def is_successfully_deployed(self) -> bool:
        return self.status == "deployed"


def parse_history(output: str) -> List[HelmHistoryRow]:
    """Lit la sortie de `helm history -o json` (les lignes d'avertissement en tête sont ignorées)."""

    payload = parse_json_output("helm history", output, "[")
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ToolOutputError("helm history", output)

    try:
        rows = [
            HelmHistoryRow(
                revision=int(item.get("revision", 0)),
                status=str(item.get("status", "")),
                chart=str(item.get("chart", "")),
                app_version=str(item.get("app_version", "")),
            )
            for item in payload
        ]
    except (AttributeError, TypeError, ValueError) as exc:
        raise ToolOutputError("helm history", output) from exc
    return sorted(rows, key=lambda row: row.revision)


class HelmCli:
    """Pilote le binaire `helm` via `run_command`."""

    def __init__(self, helm_binary: str = "helm", command_logger: logging.Logger | None = None) -> None:
        self.helm_binary = helm_binary
        self.logger = command_logger or logger

    def upgrade_with_history(
        self,
        kubeconfig_path: str,
        namespace: str,
        release_name: str,
        chart_dir: Path,
        timeout: HelmTimeout,
        envs: Sequence[Tuple[str, str]],
    ) -> Optional[HelmHistoryRow]:
        """`helm upgrade --install` puis renvoie la dernière entrée d'historique."""

        run_command(
            [
                self.helm_binary,
                "upgrade",
                "--install",
                "--kubeconfig",
                kubeconfig_path,
                "--namespace",
                namespace,
                "--history-max",
                str(HELM_HISTORY_MAX),
                "--timeout",
                str(timeout),
                "--wait",
                release_name,
                str(chart_dir),
            ],
            logger=self.logger,
            envs=envs,
        )
        return self.last_history_row(kubeconfig_path, namespace, release_name, envs)

    def last_history_row(
        self,
        kubeconfig_path: str,
        namespace: str,
        release_name: str,
        envs: Sequence[Tuple[str, str]] = (),
    ) -> Optional[HelmHistoryRow]:
        output = run_command(
            [
                self.helm_binary,
                "history",
                "--kubeconfig",
                kubeconfig_path,
                "--namespace",
                namespace,
                "--max",
                "1",
                "-o",
                "json",
                release_name,
            ],
            logger=self.logger,
            envs=envs,
        )
        rows = parse_history(output)
        return rows[-1] if rows else None

    def cleanup(
        self,
        kubeconfig_path: str,
        namespace: str,
        release_name: str,
        envs: Sequence[Tuple[str, str]] = (),
    ) -> None:
        run_command(
            [
                self.helm_binary,
                "uninstall",
                "--kubeconfig",
                kubeconfig_path,
                "--namespace",
                namespace,
                release_name,
            ],
            logger=self.logger,
            envs=envs,
        )
