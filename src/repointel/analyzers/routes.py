"""API surface detection.

Detects what a repository exposes or listens to:
- HTTP routes (Express/Fastify/Koa-style calls, NestJS, FastAPI and Flask decorators)
- Frontend pages (Next.js pages/ and app/ conventions)
- Message consumers (Kafka, RabbitMQ, SQS, NestJS microservices)
- Cron jobs
- CLI entrypoints declared in manifests
- API client libraries and authentication signals
"""

import logging
import re
from pathlib import PurePosixPath
from typing import NamedTuple

from repointel.analyzers.base import (
    JS_SUFFIXES,
    PY_SUFFIXES,
    PatternRule,
    dedupe_sorted,
    matching_labels,
    rule,
)
from repointel.models.facts import (
    ApiSurface,
    CliEntrypoint,
    CronJob,
    MessageConsumer,
    PackageSummary,
    RouteDescriptor,
)
from repointel.utils.fs import RepoSurvey
from repointel.utils.text import unique_sorted

logger = logging.getLogger(__name__)

_METHODS = "get|post|put|patch|delete|options|head|all"
_QUOTE = "['\"`]"
_NOT_QUOTE = "[^'\"`]"


class RouteRule(NamedTuple):
    """Declarative route detector.

    The pattern captures (method, path). A rule with ``fixed_method`` captures
    only the path and optionally a ``methods=[...]`` list.
    """

    style: str
    pattern: re.Pattern[str]
    suffixes: frozenset[str]
    fixed_method: str | None = None


class ApiSurfaceExtractor:
    """Extracts an ``ApiSurface`` from a surveyed repository."""

    ROUTE_RULES: list[RouteRule] = [
        RouteRule(
            "express-like",
            re.compile(
                rf"\b(?:app|router|fastify)\.({_METHODS})\(\s*{_QUOTE}({_NOT_QUOTE}+){_QUOTE}",
                re.IGNORECASE,
            ),
            JS_SUFFIXES,
        ),
        RouteRule(
            "fastapi",
            re.compile(
                r"@(?:app|router|api|bp|blueprint)\.(get|post|put|patch|delete|options|head)"
                r"\s*\(\s*[\"']([^\"']*)[\"']"
            ),
            PY_SUFFIXES,
        ),
        RouteRule(
            "flask",
            re.compile(
                r"@(?:app|bp|blueprint|\w+_bp)\.route\s*\(\s*[\"']([^\"']*)[\"']"
                r"(?:[^)]*?methods\s*=\s*[\[(]([^\])]*)[\])])?"
            ),
            PY_SUFFIXES,
            fixed_method="GET",
        ),
    ]

    NEST_CONTROLLER = re.compile(rf"@Controller\(\s*{_QUOTE}({_NOT_QUOTE}*){_QUOTE}?\s*\)")
    NEST_METHOD = re.compile(
        rf"@(Get|Post|Put|Patch|Delete|Options|Head|All)\(\s*(?:{_QUOTE}({_NOT_QUOTE}*){_QUOTE})?\s*\)"
    )

    # (transport, pattern capturing topic or queue)
    CONSUMER_RULES: list[PatternRule] = [
        rule("kafka", rf"(?:subscribe|topic)\s*[:(]\s*{_QUOTE}({_NOT_QUOTE}+){_QUOTE}", re.IGNORECASE),
        rule("kafka", r"KafkaConsumer\(\s*[\"']([^\"']+)[\"']"),
        rule("nestjs-message", rf"@MessagePattern\(\s*{_QUOTE}({_NOT_QUOTE}+){_QUOTE}", re.IGNORECASE),
        rule("rabbitmq", rf"\.consume\(\s*{_QUOTE}({_NOT_QUOTE}+){_QUOTE}", re.IGNORECASE),
        rule("sqs", rf"queueUrl\s*[:=]\s*{_QUOTE}({_NOT_QUOTE}+){_QUOTE}", re.IGNORECASE),
    ]

    CRON_PATTERN = re.compile(
        rf"(?:cron\.schedule|new\s+CronJob|@Cron)\(\s*{_QUOTE}({_NOT_QUOTE}+){_QUOTE}",
        re.IGNORECASE,
    )

    API_CLIENT_RULES: list[PatternRule] = [
        rule("fetch", r"\bfetch\s*\("),
        rule("axios", r"\baxios\."),
        rule("apollo-client", r"@apollo/client"),
        rule("swr", r"\bswr\b", re.IGNORECASE),
        rule("react-query", r"@tanstack/react-query"),
        rule("requests", r"\brequests\.(?:get|post|put|patch|delete|Session)\b"),
        rule("httpx", r"\bhttpx\.(?:get|post|put|patch|delete|Client|AsyncClient)\b"),
    ]

    # Plain substring markers in source code -> auth signal
    AUTH_CODE_MARKERS: list[tuple[str, str]] = [
        ("next-auth", "next-auth"),
        ("passport", "passport"),
        ("jwt", "jwt"),
        ("Auth0", "auth0"),
        ("OAuth2PasswordBearer", "oauth2"),
    ]
    AUTH_DEPENDENCY_TOKENS = ("auth", "passport", "jwt")

    CLI_SCRIPT_TOKENS = ("cli", "migrate", "seed")

    PAGE_FILE = re.compile(r"\.(t|j)sx?$")
    APP_ROUTE_FILE = re.compile(r"^(page|route)\.(t|j)sx?$")
    DYNAMIC_SEGMENT = re.compile(r"\[(.+?)\]")

    def __init__(self, survey: RepoSurvey, package_summary: PackageSummary) -> None:
        """Initialize the extractor.

        Args:
            survey: Repository listing with source text
            package_summary: Manifest facts (scripts, dependencies)
        """
        self.survey = survey
        self.package_summary = package_summary

    def extract(self) -> ApiSurface:
        """Run every detector.

        Returns:
            ApiSurface with all lists in canonical order
        """
        routes: list[RouteDescriptor] = []
        consumers: list[MessageConsumer] = []
        cron_jobs: list[CronJob] = []

        for rel_path, code in self.survey.iter_sources():
            routes.extend(self._detect_routes(rel_path, code))
            routes.extend(self._detect_nest_routes(rel_path, code))
            consumers.extend(self._detect_consumers(rel_path, code))
            cron_jobs.extend(
                CronJob(schedule=match.group(1), file=rel_path)
                for match in self.CRON_PATTERN.finditer(code)
            )

        pages = [
            page
            for rel_path in self.survey.source_files
            if (page := self.frontend_route(rel_path)) is not None
        ]

        surface = ApiSurface(
            routes=dedupe_routes(routes),
            message_consumers=dedupe_sorted(
                consumers, lambda c: (c.transport, c.topic_or_queue, c.file)
            ),
            cron_jobs=dedupe_sorted(cron_jobs, lambda job: (job.schedule, job.file)),
            cli_entrypoints=self._cli_entrypoints(),
            frontend_pages=unique_sorted(pages),
            api_clients=self._api_clients(),
            auth_signals=self._auth_signals(),
        )
        logger.debug(
            "API surface for %s: %d routes, %d consumers, %d pages",
            self.package_summary.name,
            len(surface.routes),
            len(surface.message_consumers),
            len(surface.frontend_pages),
        )
        return surface

    # =========================================================================
    # Routes
    # =========================================================================

    def _detect_routes(self, rel_path: str, code: str) -> list[RouteDescriptor]:
        suffix = PurePosixPath(rel_path).suffix
        routes: list[RouteDescriptor] = []

        for route_rule in self.ROUTE_RULES:
            if suffix not in route_rule.suffixes:
                continue
            for match in route_rule.pattern.finditer(code):
                if route_rule.fixed_method is None:
                    methods = [match.group(1)]
                    path = match.group(2)
                else:
                    path = match.group(1)
                    declared = re.findall(r"[A-Za-z]+", match.group(2) or "")
                    methods = declared or [route_rule.fixed_method]
                routes.extend(
                    RouteDescriptor(
                        method=method.upper(),
                        path=normalize_route_path(path),
                        file=rel_path,
                        style=route_rule.style,
                    )
                    for method in methods
                )
        return routes

    def _detect_nest_routes(self, rel_path: str, code: str) -> list[RouteDescriptor]:
        if "@Controller" not in code and not self.NEST_METHOD.search(code):
            return []

        controller = self.NEST_CONTROLLER.search(code)
        prefix = normalize_route_path(controller.group(1)) if controller else "/"

        routes: list[RouteDescriptor] = []
        for match in self.NEST_METHOD.finditer(code):
            combined = re.sub(r"/+", "/", f"{prefix}/{match.group(2) or ''}").rstrip("/")
            routes.append(
                RouteDescriptor(
                    method=match.group(1).upper(),
                    path=normalize_route_path(combined),
                    file=rel_path,
                    style="nestjs",
                )
            )
        return routes

    @classmethod
    def frontend_route(cls, rel_path: str) -> str | None:
        """Page route for a file under a pages/ or app/ directory.

        Args:
            rel_path: Repo-relative posix path

        Returns:
            Route such as "/users/:id", or None if the file is not a page

        Examples:
            >>> ApiSurfaceExtractor.frontend_route("src/pages/users/[id].tsx")
            '/users/:id'
            >>> ApiSurfaceExtractor.frontend_route("app/orders/page.tsx")
            '/orders'
        """
        if not cls.PAGE_FILE.search(rel_path):
            return None

        parts = rel_path.split("/")
        directories, filename = parts[:-1], parts[-1]

        if "pages" in directories:
            segments = parts[directories.index("pages") + 1 :]
            stem = cls.PAGE_FILE.sub("", segments[-1])
            if stem.startswith("_"):
                return None
            segments = segments[:-1] if stem == "index" else [*segments[:-1], stem]
        elif "app" in directories and cls.APP_ROUTE_FILE.match(filename):
            segments = parts[directories.index("app") + 1 : -1]
        else:
            return None

        route = cls.DYNAMIC_SEGMENT.sub(r":\1", "/".join(segments))
        return normalize_route_path(route)

    # =========================================================================
    # Consumers, clients, auth, CLI
    # =========================================================================

    def _detect_consumers(self, rel_path: str, code: str) -> list[MessageConsumer]:
        return [
            MessageConsumer(transport=consumer_rule.label, topic_or_queue=match.group(1), file=rel_path)
            for consumer_rule in self.CONSUMER_RULES
            for match in consumer_rule.pattern.finditer(code)
            if match.group(1)
        ]

    def _api_clients(self) -> list[str]:
        detected: set[str] = set()
        for _, code in self.survey.iter_sources():
            detected.update(matching_labels(self.API_CLIENT_RULES, code))
        return sorted(detected)

    def _auth_signals(self) -> list[str]:
        signals = [
            dep
            for dep in self.package_summary.dependencies
            if any(token in dep for token in self.AUTH_DEPENDENCY_TOKENS)
        ]
        for _, code in self.survey.iter_sources():
            signals.extend(label for marker, label in self.AUTH_CODE_MARKERS if marker in code)
        return unique_sorted(signals)

    def _cli_entrypoints(self) -> list[CliEntrypoint]:
        entries = [
            CliEntrypoint(name=name, command=command)
            for name, command in self.package_summary.scripts.items()
            if any(token in name for token in self.CLI_SCRIPT_TOKENS)
        ]
        entries.extend(
            CliEntrypoint(name=name, command=target)
            for name, target in self.package_summary.console_scripts.items()
        )
        return dedupe_sorted(entries, lambda entry: (entry.name, entry.command))


def normalize_route_path(value: str) -> str:
    """Trim a route path and force a leading slash ("" becomes "/")."""
    trimmed = value.strip()
    if not trimmed:
        return "/"
    if trimmed.startswith("/"):
        return trimmed
    return f"/{trimmed}"


def dedupe_routes(routes: list[RouteDescriptor]) -> list[RouteDescriptor]:
    """Collapse routes with the same (method, path, file) and sort by that key.

    The first detection wins, so the style of the earliest matching rule is
    kept when two rules find the same route.
    """
    unique: dict[tuple[str, str, str], RouteDescriptor] = {}
    for route in routes:
        unique.setdefault(route.sort_key, route)
    return [unique[key] for key in sorted(unique)]


def extract_api_surface(survey: RepoSurvey, package_summary: PackageSummary) -> ApiSurface:
    """Convenience function to extract the API surface of a repository.

    Args:
        survey: Repository listing with source text
        package_summary: Manifest facts

    Returns:
        ApiSurface
    """
    return ApiSurfaceExtractor(survey, package_summary).extract()
