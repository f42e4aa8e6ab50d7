"""Contrat de cycle de vie commun à tous les services gérés par le moteur.

Chaque action (create, pause, delete, upgrade, downgrade, backup, restore,
clone) est découpée en trois phases appelées dans cet ordre par
`run_action` :

1. `on_<action>(target)` : effets de bord (rendu, outils externes) ;
2. `on_<action>_check()` : vérification a posteriori ;
3. `on_<action>_error(target)` : uniquement si 1. ou 2. a échoué.

Le hook d'erreur est purement observationnel (logs) : ce n'est pas un
rollback. L'erreur d'origine est toujours relancée après lui.

Les actions non supportées par un service lèvent une `EngineError` de cause
`NOT_IMPLEMENTED` au lieu d'interrompre le processus.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from core.config import Context
from core.errors import EngineError, EngineErrorCause, EngineErrorScope
from core.models import Action, DeploymentTarget

logger = logging.getLogger(__name__)


class Service:
    context: Context
    id: str
    name: str
    action: Action

    def engine_error_scope(self) -> EngineErrorScope:
        return EngineErrorScope(type(self).__name__.lower(), self.id, self.name)

    def engine_error(self, cause: EngineErrorCause, message: str) -> EngineError:
        return EngineError(cause, self.engine_error_scope(), self.context.execution_id, message)

    def name_with_id(self) -> str:
        return f"{self.name} ({self.id})"

    def debug_logs(self, target: DeploymentTarget) -> List[str]:
        return []

    def _not_implemented(self, hook: str) -> EngineError:
        return self.engine_error(
            EngineErrorCause.NOT_IMPLEMENTED,
            f"{hook} is not implemented for {type(self).__name__} {self.name_with_id()}",
        )

    def _log_error_hook(self, hook: str, target: DeploymentTarget) -> None:
        logger.warning("%s.%s() appelé pour %s", type(self).__name__, hook, self.name)
        for line in self.debug_logs(target):
            logger.warning(line)

    # create
    def on_create(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_create")

    def on_create_check(self) -> None:
        pass

    def on_create_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_create_error", target)

    # pause
    def on_pause(self, target: DeploymentTarget) -> None:
        # Sémantique produit non définie (prod vs dev) : rien de destructif.
        logger.info("%s.on_pause() appelé pour %s", type(self).__name__, self.name)

    def on_pause_check(self) -> None:
        pass

    def on_pause_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_pause_error", target)

    # delete
    def on_delete(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_delete")

    def on_delete_check(self) -> None:
        pass

    def on_delete_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_delete_error", target)

    # upgrade
    def on_upgrade(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_upgrade")

    def on_upgrade_check(self) -> None:
        raise self._not_implemented("on_upgrade_check")

    def on_upgrade_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_upgrade_error", target)

    # downgrade
    def on_downgrade(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_downgrade")

    def on_downgrade_check(self) -> None:
        raise self._not_implemented("on_downgrade_check")

    def on_downgrade_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_downgrade_error", target)

    # backup
    def on_backup(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_backup")

    def on_backup_check(self) -> None:
        raise self._not_implemented("on_backup_check")

    def on_backup_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_backup_error", target)

    # restore
    def on_restore(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_restore")

    def on_restore_check(self) -> None:
        raise self._not_implemented("on_restore_check")

    def on_restore_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_restore_error", target)

    # clone
    def on_clone(self, target: DeploymentTarget) -> None:
        raise self._not_implemented("on_clone")

    def on_clone_check(self) -> None:
        raise self._not_implemented("on_clone_check")

    def on_clone_error(self, target: DeploymentTarget) -> None:
        self._log_error_hook("on_clone_error", target)

    def hooks(self, action: Action) -> Optional[Tuple[Callable, Callable, Callable]]:
        table: Dict[Action, Tuple[Callable, Callable, Callable]] = {
            Action.CREATE: (self.on_create, self.on_create_check, self.on_create_error),
            Action.PAUSE: (self.on_pause, self.on_pause_check, self.on_pause_error),
            Action.DELETE: (self.on_delete, self.on_delete_check, self.on_delete_error),
            Action.UPGRADE: (self.on_upgrade, self.on_upgrade_check, self.on_upgrade_error),
            Action.DOWNGRADE: (self.on_downgrade, self.on_downgrade_check, self.on_downgrade_error),
            Action.BACKUP: (self.on_backup, self.on_backup_check, self.on_backup_error),
            Action.RESTORE: (self.on_restore, self.on_restore_check, self.on_restore_error),
            Action.CLONE: (self.on_clone, self.on_clone_check, self.on_clone_error),
        }
        return table.get(action)


def run_action(service: Service, target: DeploymentTarget, action: Optional[Action] = None) -> None:
    """Exécute une action complète sur `service` (par défaut `service.action`).

    Raises:
        EngineError: échec de l'action ou de sa vérification, après appel du hook d'erreur.
    """

    action = action or service.action
    hooks = service.hooks(action)
    if hooks is None:
        logger.info("Aucune action à exécuter pour %s (%s)", service.name_with_id(), action.value)
        return

    on_action, on_check, on_error = hooks
    logger.info("Action %s démarrée pour %s", action.value, service.name_with_id())
    try:
        on_action(target)
        on_check()
    except EngineError as exc:
        logger.error("Action %s échouée pour %s: %s", action.value, service.name_with_id(), exc)
        try:
            on_error(target)
        except EngineError as hook_exc:
            logger.warning("Hook d'erreur %s échoué: %s", action.value, hook_exc)
        raise

    logger.info("Action %s terminée pour %s", action.value, service.name_with_id())
