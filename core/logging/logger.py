from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from core.errors import CommandError, ToolOutputError

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def build_logger(service_id: str, logs_dir: Path, log_filename: str = "create.log") -> logging.Logger:
    """Logger dédié à un service : `<logs_dir>/<service_id>/<log_filename>` + console."""

    service_log_dir = logs_dir / service_id
    service_log_dir.mkdir(parents=True, exist_ok=True)
    log_file = service_log_dir / log_filename

    logger = logging.getLogger(f"engine.{service_id}.{Path(log_filename).stem}")
    logger.setLevel(logging.INFO)

    if not any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_file)
        for handler in logger.handlers
    ):
        formatter = logging.Formatter(LOG_FORMAT)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    return logger


def run_command(
    command: List[str],
    logger: logging.Logger,
    cwd: Optional[Path] = None,
    envs: Sequence[Tuple[str, str]] = (),
) -> str:
    """Exécute une commande bloquante et renvoie sa sortie (stdout + stderr).

    Raises:
        CommandError: code de retour non nul.
    """

    logger.info("$ %s", " ".join(command))
    env = None
    if envs:
        env = dict(os.environ)
        env.update(dict(envs))

    result = subprocess.run(
        command,
        cwd=cwd,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )
    output = result.stdout or ""
    if output:
        logger.info(output.strip())

    if result.returncode != 0:
        logger.error("Commande échouée (%s): %s", result.returncode, " ".join(command))
        raise CommandError(command, result.returncode, output)

    return output


def parse_json_output(tool: str, output: str, opener: str) -> Optional[Any]:
    """Lit le document JSON d'une sortie d'outil, en ignorant les lignes d'avertissement en tête.

    Le document commence à une ligne qui débute par `opener` (`[` ou `{`) ;
    chaque candidate est essayée dans l'ordre. Renvoie `None` si aucune ligne
    ne correspond.

    Raises:
        ToolOutputError: aucune candidate n'est un JSON valide.
    """

    lines = output.splitlines()
    error: Optional[ValueError] = None
    for index, line in enumerate(lines):
        if not line.lstrip().startswith(opener):
            continue
        try:
            return json.loads("\n".join(lines[index:]))
        except ValueError as exc:
            error = exc
    if error is not None:
        raise ToolOutputError(tool, output) from error
    return None
