"""Vérification de la résolution DNS des domaines exposés par un routeur.

La propagation DNS peut prendre plusieurs minutes et ne dépend pas du moteur :
un domaine qui ne résout pas à temps produit un avertissement, jamais une
erreur de déploiement.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol

import dns.exception
import dns.resolver
from tenacity import RetryError

from core.deploy.interfaces import ProgressSink
from core.deploy.retry import DNS_RETRY_POLICY, RetryPolicy
from core.errors import EngineError, EngineErrorCause, EngineErrorScope
from core.models import EnvironmentScope, ProgressEvent, ProgressLevel, RouterScope

logger = logging.getLogger(__name__)

PUBLIC_NAMESERVERS = ["8.8.8.8", "8.8.4.4"]


class DomainResolver(Protocol):
    def resolve(self, domain: str) -> object: ...


class DnsPythonResolver:
    """Résolveur sans cache ni fichier hosts, interrogeant des DNS publics."""

    def __init__(self, nameservers: list[str] | None = None, lifetime: float = 5.0) -> None:
        self._resolver = dns.resolver.Resolver(configure=False)
        self._resolver.nameservers = list(nameservers or PUBLIC_NAMESERVERS)
        self._resolver.cache = None
        self._resolver.lifetime = lifetime

    def resolve(self, domain: str) -> dns.resolver.Answer:
        return self._resolver.resolve(domain, "A")


def build_resolver() -> DomainResolver:
    return DnsPythonResolver()


def check_domain_for(
    sink: ProgressSink,
    name_with_id: str,
    domains_to_check: Iterable[str],
    execution_id: str,
    context_id: str,
    resolver_factory: Callable[[], DomainResolver] = build_resolver,
    policy: RetryPolicy = DNS_RETRY_POLICY,
) -> None:
    """Attend la résolution de chaque domaine, en émettant la progression.

    Raises:
        EngineError: uniquement si le résolveur ne peut pas être construit.
    """

    domains = list(domains_to_check)
    try:
        resolver = resolver_factory()
    except Exception as exc:  # noqa: BLE001 - toute erreur de construction est interne
        logger.error("Impossible de construire le résolveur DNS: %s", exc)
        raise EngineError(
            EngineErrorCause.INTERNAL,
            EngineErrorScope.engine(),
            execution_id,
            f"Unable to build a DNS resolver to check domains '{','.join(domains)}' for {name_with_id}",
        ) from exc

    env_scope = EnvironmentScope(execution_id)
    retry_policy = RetryPolicy(
        max_attempts=policy.max_attempts,
        delay_ms=policy.delay_ms,
        retry_on=(dns.exception.DNSException, OSError),
        sleep=policy.sleep,
    )

    for domain in domains:
        sink.emit(
            ProgressEvent(
                env_scope,
                ProgressLevel.INFO,
                f"Let's check domain resolution for '{domain}'. Please wait, it can take some time...",
                execution_id,
            )
        )

        def _still_in_progress(attempt: int, _exc: BaseException, domain: str = domain) -> None:
            message = f"Domain resolution check for '{domain}' is still in progress..."
            logger.info("%s (tentative %s)", message, attempt)
            sink.emit(ProgressEvent(env_scope, ProgressLevel.INFO, message, execution_id))

        try:
            retry_policy.run(lambda: resolver.resolve(domain), on_retry=_still_in_progress)
        except RetryError:
            message = (
                f"Unable to check domain availability for '{domain}'. It can be due to a "
                "too long domain propagation. Note: this is not critical."
            )
            logger.warning(message)
            sink.emit(ProgressEvent(env_scope, ProgressLevel.WARN, message, context_id))
            continue

        message = f"Domain {domain} is ready! ⚡️"
        logger.info(message)
        sink.emit(ProgressEvent(RouterScope(domain), ProgressLevel.INFO, message, context_id))
