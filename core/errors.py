"""Taxonomie d'erreurs du moteur de déploiement."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class EngineErrorCause(str, Enum):
    INTERNAL = "internal"
    USER = "user"
    CANCELED = "canceled"
    NOT_IMPLEMENTED = "not_implemented"


@dataclass(frozen=True)
class EngineErrorScope:
    """Sous-système ou entité à l'origine d'une erreur."""

    kind: str
    id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def engine(cls) -> "EngineErrorScope":
        return cls("engine")

    @classmethod
    def database(cls, id: str, name: str) -> "EngineErrorScope":
        return cls("database", id, name)

    def __str__(self) -> str:
        if self.id is None:
            return self.kind
        return f"{self.kind}:{self.name} ({self.id})"


class EngineError(Exception):
    """Erreur remontée par toutes les étapes d'une action de cycle de vie."""

    def __init__(
        self,
        cause: EngineErrorCause,
        scope: EngineErrorScope,
        execution_id: str,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(message or cause.value)
        self.cause = cause
        self.scope = scope
        self.execution_id = execution_id
        self.message = message

    def with_message(self, message: str) -> "EngineError":
        return EngineError(self.cause, self.scope, self.execution_id, message)

    def __repr__(self) -> str:
        return (
            f"EngineError(cause={self.cause.value!r}, scope={str(self.scope)!r}, "
            f"execution_id={self.execution_id!r}, message={self.message!r})"
        )


class CommandError(Exception):
    """Échec d'une commande externe (terraform, helm, kubectl...)."""

    def __init__(self, command: list[str], returncode: int, output: str = "") -> None:
        super().__init__(f"Command failed ({returncode}): {' '.join(command)}")
        self.command = command
        self.returncode = returncode
        self.output = output


class RenderError(Exception):
    """Échec du rendu d'un jeu de templates."""


class ToolOutputError(Exception):
    """Sortie d'un outil externe illisible (JSON attendu)."""

    def __init__(self, tool: str, output: str = "") -> None:
        super().__init__(f"Unable to parse {tool} output")
        self.tool = tool
        self.output = output


class UnsupportedVersionError(ValueError):
    def __init__(self, database_name: str, requested: str) -> None:
        super().__init__(f"this {database_name} {requested} version is not supported")
        self.database_name = database_name
        self.requested = requested


def cast_to_engine_error(scope: EngineErrorScope, execution_id: str, call: Callable[[], T]) -> T:
    """Exécute `call` et convertit les erreurs d'outillage en `EngineError` interne."""

    try:
        return call()
    except (CommandError, RenderError, ToolOutputError) as exc:
        message = str(exc)
        if isinstance(exc, (CommandError, ToolOutputError)) and exc.output:
            message = f"{message}\n{exc.output.strip()}"
        raise EngineError(EngineErrorCause.INTERNAL, scope, execution_id, message) from exc
