"""Dependency classification.

Splits what a repository talks to into external parties (third-party hosts,
vendor SDKs, databases, queues) and same-organization parties (scoped
packages, internal hosts and endpoint variables).

Host classification is a plain substring heuristic over the configured token
list: a host is internal iff it contains any token.
"""

import logging
import re
from collections.abc import Callable
from typing import NamedTuple
from urllib.parse import urlsplit

from repointel.config import DependencyConfig
from repointel.models.facts import (
    DependenciesExternal,
    DependenciesInternal,
    EnvVarSummary,
    Interaction,
    InteractionKind,
    OutboundCall,
    PackageSummary,
)
from repointel.utils.fs import RepoSurvey
from repointel.utils.text import unique_sorted

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s'\"`]+")

DEFAULT_PORTS = {"http": 80, "https": 443}

# Dependency name prefixes of vendor SDKs
SDK_PREFIXES = (
    "@aws-sdk/",
    "aws-sdk",
    "@google-cloud/",
    "stripe",
    "twilio",
    "firebase-admin",
    "boto3",
    "google-cloud-",
)

# Substrings of database driver/ORM dependency names
DATABASE_KEYWORDS = (
    "postgres",
    "pg",
    "mysql",
    "mariadb",
    "mongodb",
    "mongoose",
    "redis",
    "dynamodb",
    "prisma",
    "pymongo",
    "sqlalchemy",
)

# Substrings of queue/event dependency names
QUEUE_KEYWORDS = ("kafka", "bull", "amq", "rabbit", "sqs", "sns", "celery", "pika")

# Endpoint variables naming an internal service contain one of these
INTERNAL_ENV_MARKERS = ("internal", "svc")


class DependencyFacts(NamedTuple):
    """The three fact domains produced from one dependency pass."""

    outbound_calls: list[OutboundCall]
    external: DependenciesExternal
    internal: DependenciesInternal


def host_from_url(url: str) -> str:
    """Host (hostname plus non-default port) of a URL literal.

    Args:
        url: URL as found in source

    Returns:
        Host string, or "" if the URL cannot be parsed

    Examples:
        >>> host_from_url("https://api.stripe.com/v1/charges")
        'api.stripe.com'
        >>> host_from_url("http://orders.internal:8080/health")
        'orders.internal:8080'
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return ""

    if not hostname:
        return ""
    if port is None or DEFAULT_PORTS.get(parts.scheme) == port:
        return hostname
    return f"{hostname}:{port}"


def is_internal_host(host: str, tokens: tuple[str, ...]) -> bool:
    """Check whether a host contains any internal marker token."""
    return any(token in host for token in tokens)


def find_outbound_calls(survey: RepoSurvey) -> list[OutboundCall]:
    """URL literals in source, in file then position order; unparsable hosts dropped."""
    calls: list[OutboundCall] = []
    for rel_path, code in survey.iter_sources():
        for match in URL_PATTERN.finditer(code):
            url = match.group(0)
            host = host_from_url(url)
            if not host:
                continue
            protocol = "https" if url.startswith("https://") else "http"
            calls.append(OutboundCall(host=host, protocol=protocol, file=rel_path))
    return calls


def _matching(dependencies: list[str], predicate: Callable[[str], bool]) -> list[str]:
    return unique_sorted(dep for dep in dependencies if predicate(dep))


def extract_dependencies(
    survey: RepoSurvey,
    package_summary: PackageSummary,
    env_vars: EnvVarSummary,
    config: DependencyConfig,
) -> DependencyFacts:
    """Classify a repository's outbound hosts and packages.

    Args:
        survey: Repository listing with source text
        package_summary: Manifest facts
        env_vars: Environment variables (endpoint-like names are used)
        config: Internal host tokens and package prefixes

    Returns:
        DependencyFacts with outbound calls and both classifications
    """
    outbound_calls = find_outbound_calls(survey)
    hosts = unique_sorted(call.host for call in outbound_calls)
    tokens = config.internal_host_tokens
    internal_hosts = [host for host in hosts if is_internal_host(host, tokens)]
    external_hosts = [host for host in hosts if not is_internal_host(host, tokens)]

    all_dependencies = package_summary.all_dependencies
    external = DependenciesExternal(
        outbound_hosts=external_hosts,
        sdk_usages=_matching(all_dependencies, lambda dep: dep.startswith(SDK_PREFIXES)),
        databases=_matching(
            all_dependencies, lambda dep: any(key in dep for key in DATABASE_KEYWORDS)
        ),
        queues=_matching(all_dependencies, lambda dep: any(key in dep for key in QUEUE_KEYWORDS)),
        third_parties=list(external_hosts),
    )

    package_prefixes = ("@", *config.internal_package_prefixes)
    internal_packages = _matching(all_dependencies, lambda dep: dep.startswith(package_prefixes))
    internal_host_env_vars = [
        name
        for name in env_vars.endpoint_like
        if any(marker in name.lower() for marker in INTERNAL_ENV_MARKERS)
    ]

    interactions = [
        Interaction(target=name, kind=InteractionKind.PKG, evidence="package dependency")
        for name in internal_packages
    ]
    interactions.extend(
        Interaction(target=name, kind=InteractionKind.HTTP, evidence="internal endpoint env var")
        for name in internal_host_env_vars
    )

    internal = DependenciesInternal(
        internal_packages=internal_packages,
        internal_hosts=internal_hosts,
        internal_host_env_vars=internal_host_env_vars,
        interactions=interactions,
    )

    logger.debug(
        "Dependencies for %s: %d external hosts, %d internal packages",
        package_summary.name,
        len(external_hosts),
        len(internal_packages),
    )
    return DependencyFacts(outbound_calls=outbound_calls, external=external, internal=internal)
