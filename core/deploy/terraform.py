from __future__ import annotations

import logging
from pathlib import Path

from core.logging.logger import run_command

logger = logging.getLogger(__name__)


class TerraformCli:
    """Séquences terraform utilisées pour les services managés."""

    def __init__(self, terraform_binary: str = "terraform", command_logger: logging.Logger | None = None) -> None:
        self.terraform_binary = terraform_binary
        self.logger = command_logger or logger

    def _run(self, working_dir: Path, *args: str) -> None:
        run_command([self.terraform_binary, *args], cwd=working_dir, logger=self.logger)

    def apply(self, working_dir: Path, dry_run: bool = False) -> None:
        """init → validate → plan → apply (apply sauté en dry run)."""

        self._run(working_dir, "init", "-input=false")
        self._run(working_dir, "validate")
        self._run(working_dir, "plan", "-input=false", "-out=tf_plan")
        if dry_run:
            self.logger.info("Dry run : terraform apply non exécuté dans %s", working_dir)
            return
        self._run(working_dir, "apply", "-input=false", "-auto-approve", "tf_plan")

    def destroy(self, working_dir: Path) -> None:
        """init → plan → apply → destroy."""

        self._run(working_dir, "init", "-input=false")
        self._run(working_dir, "plan", "-input=false", "-out=tf_plan")
        self._run(working_dir, "apply", "-input=false", "-auto-approve", "tf_plan")
        self._run(working_dir, "destroy", "-input=false", "-auto-approve")
