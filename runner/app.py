from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from core.config import DB_PATH, LOGS_DIR, Context, cluster_from_env
from core.deploy.domains import DomainResolver, build_resolver, check_domain_for
from core.deploy.helm import HelmCli
from core.deploy.interfaces import LoggingProgressSink
from core.deploy.kubectl import KubectlCli, KubectlStateSecretStore
from core.deploy.provisioner import Provisioner
from core.deploy.templates import JinjaRenderer
from core.deploy.terraform import TerraformCli
from core.errors import EngineError, UnsupportedVersionError
from core.logging.logger import build_logger
from core.models import Action, AwsCredentials, DatabaseKind, Environment, ManagedService, SelfHosted
from core.services.database import Database, build_database
from core.services.lifecycle import run_action
from core.store.sqlite_store import FAILED, RUNNING, SUCCEEDED, DeploymentState
from core.versions.engines import get_database_version

app = FastAPI(title="Service Engine Runner", version="0.1.0")

_running: set[str] = set()
_running_lock = threading.Lock()

ProvisionerFactory = Callable[[logging.Logger], Provisioner]


class DatabaseOptionsBody(BaseModel):
    login: str
    password: str
    host: str = ""
    port: int
    disk_size_in_gib: int = 10
    database_disk_type: str = "gp2"


class DatabaseRequest(BaseModel):
    id: str
    name: str
    version: str
    managed: bool = False
    fqdn: str = ""
    fqdn_id: str = ""
    total_cpus: str = "1"
    total_ram_in_mib: int = 512
    database_instance_type: str = ""
    options: DatabaseOptionsBody
    environment_id: str
    organization_id: str
    namespace: str


class DomainCheckRequest(BaseModel):
    router_id: str
    name: str
    domains: List[str] = Field(min_length=1)
    context_id: Optional[str] = None


# --- Dépendances ---
def get_context() -> Context:
    return Context.from_env()


def build_provisioner(command_logger: logging.Logger) -> Provisioner:
    """Provisioner dont les commandes (terraform, helm, kubectl) écrivent dans le journal de l'action."""

    kubectl = KubectlCli(command_logger=command_logger)
    return Provisioner(
        renderer=JinjaRenderer(),
        infra=TerraformCli(command_logger=command_logger),
        helm=HelmCli(command_logger=command_logger),
        kubectl=kubectl,
        state_store=KubectlStateSecretStore(kubectl),
        credentials=AwsCredentials.from_env(),
    )


def get_provisioner_factory() -> ProvisionerFactory:
    return build_provisioner


def get_resolver_factory() -> Callable[[], DomainResolver]:
    return build_resolver


def get_state() -> DeploymentState:
    state = DeploymentState(DB_PATH)
    state.ensure_schema()
    return state


# --- Helpers ---
def _start_thread(target: Any, *, args: tuple) -> None:
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()


def _parse_kind(kind: str) -> DatabaseKind:
    try:
        return DatabaseKind(kind)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown database kind: {kind}") from None


def _run(database: Database, target: Any, action: Action, state: DeploymentState, logger: logging.Logger) -> None:
    logger.info("=== %s %s (%s) démarré ===", action.value, database.name_with_id(), database.version)
    try:
        run_action(database, target, action)
    except Exception as exc:  # noqa: BLE001 - capture volontaire pour tracer l'échec
        message = exc.message if isinstance(exc, EngineError) and exc.message else str(exc)
        logger.exception("%s échoué: %s", action.value, message)
        state.upsert_status(
            database.id, database.kind.value, action.value, database.version, FAILED,
            database.context.execution_id, message,
        )
    else:
        state.upsert_status(
            database.id, database.kind.value, action.value, database.version, SUCCEEDED,
            database.context.execution_id, f"{action.value} terminé",
        )
        logger.info("=== %s %s terminé avec succès ===", action.value, database.name_with_id())
    finally:
        with _running_lock:
            _running.discard(database.id)


def _check_domains(
    body: DomainCheckRequest,
    execution_id: str,
    context_id: str,
    resolver_factory: Callable[[], DomainResolver],
    logger: logging.Logger,
) -> None:
    try:
        check_domain_for(
            LoggingProgressSink(logger),
            f"{body.name} ({body.router_id})",
            body.domains,
            execution_id,
            context_id,
            resolver_factory=resolver_factory,
        )
    except EngineError as exc:
        logger.error("Vérification DNS impossible pour %s: %s", body.router_id, exc.message)


# --- Routes ---
@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/versions/{kind}")
def resolve_version(kind: str, requested: str, managed: bool = False) -> dict[str, str]:
    database_kind = _parse_kind(kind)
    try:
        version = get_database_version(database_kind, requested, managed)
    except UnsupportedVersionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"kind": database_kind.value, "requested": requested, "version": version}


@app.post("/databases/{kind}/{action}", status_code=202)
def trigger_action(
    kind: str,
    action: str,
    body: DatabaseRequest,
    context: Context = Depends(get_context),
    provisioner_factory: ProvisionerFactory = Depends(get_provisioner_factory),
    state: DeploymentState = Depends(get_state),
) -> Dict[str, Optional[str]]:
    database_kind = _parse_kind(kind)
    try:
        chosen_action = Action(action)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}") from None

    payload = body.model_dump()
    payload["action"] = chosen_action.value
    logger = build_logger(body.id, LOGS_DIR, log_filename=f"{chosen_action.value}.log")
    try:
        database = build_database(context, database_kind, payload, provisioner_factory(logger))
    except EngineError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc

    environment = Environment(body.environment_id, body.organization_id, body.namespace)
    cluster = cluster_from_env()
    target = ManagedService(cluster, environment) if body.managed else SelfHosted(cluster, environment)

    with _running_lock:
        if database.id in _running:
            raise HTTPException(status_code=409, detail=f"An action is already running for {database.id}")
        _running.add(database.id)

    try:
        state.upsert_status(
            database.id, database_kind.value, chosen_action.value, database.version, RUNNING,
            context.execution_id, f"{chosen_action.value} lancé",
        )
        _start_thread(_run, args=(database, target, chosen_action, state, logger))
    except Exception:
        with _running_lock:
            _running.discard(database.id)
        raise
    return {
        "id": database.id,
        "action": chosen_action.value,
        "version": database.version,
        "execution_id": context.execution_id,
    }


@app.post("/domains/check", status_code=202)
def check_domains(
    body: DomainCheckRequest,
    context: Context = Depends(get_context),
    resolver_factory: Callable[[], DomainResolver] = Depends(get_resolver_factory),
) -> Dict[str, Any]:
    logger = build_logger(body.router_id, LOGS_DIR, log_filename="domains.log")
    context_id = body.context_id or context.execution_id
    _start_thread(
        _check_domains,
        args=(body, context.execution_id, context_id, resolver_factory, logger),
    )
    return {"router_id": body.router_id, "domains": body.domains, "execution_id": context.execution_id}


@app.get("/databases/{service_id}")
def service_status(service_id: str, state: DeploymentState = Depends(get_state)) -> Dict[str, Any]:
    status = state.get(service_id)
    if not status:
        raise HTTPException(status_code=404, detail="Unknown service")
    return status
