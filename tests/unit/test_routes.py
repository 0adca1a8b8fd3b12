"""Unit tests for API surface detection."""

from collections.abc import Callable

import pytest

from repointel.analyzers.routes import (
    ApiSurfaceExtractor,
    dedupe_routes,
    extract_api_surface,
    normalize_route_path,
)
from repointel.models.facts import PackageSummary, RouteDescriptor
from repointel.utils.fs import RepoSurvey

SurveyFactory = Callable[[dict[str, str]], RepoSurvey]


@pytest.fixture
def summary() -> PackageSummary:
    """Return an empty package summary."""
    return PackageSummary(name="svc")


class TestRouteDetection:
    """Tests for HTTP route detection."""

    def test_express_routes(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test Express-style calls."""
        survey = source_survey(
            {
                "src/app.js": (
                    "app.get('/orders', list);\n"
                    'router.post("/orders/:id/items", add);\n'
                    "fastify.delete(`/orders/:id`, remove);\n"
                )
            }
        )

        surface = extract_api_surface(survey, summary)

        assert [(r.method, r.path, r.style) for r in surface.routes] == [
            ("DELETE", "/orders/:id", "express-like"),
            ("GET", "/orders", "express-like"),
            ("POST", "/orders/:id/items", "express-like"),
        ]

    def test_duplicate_routes_collapse(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test the same route twice in one file is reported once."""
        survey = source_survey({"a.ts": "app.get('/x', a);\napp.get('/x', b);\n"})

        surface = extract_api_surface(survey, summary)

        assert len(surface.routes) == 1

    def test_same_route_in_two_files(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test identity includes the file."""
        survey = source_survey({"a.ts": "app.get('/x', a);", "b.ts": "app.get('/x', b);"})

        surface = extract_api_surface(survey, summary)

        assert [r.file for r in surface.routes] == ["a.ts", "b.ts"]

    def test_nestjs_controller_prefix(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test NestJS method decorators are joined with the controller prefix."""
        survey = source_survey(
            {
                "src/orders.controller.ts": (
                    "@Controller('orders')\n"
                    "export class OrdersController {\n"
                    "  @Get()\n  list() {}\n"
                    "  @Post(':id/cancel')\n  cancel() {}\n"
                    "}\n"
                )
            }
        )

        surface = extract_api_surface(survey, summary)

        assert [(r.method, r.path, r.style) for r in surface.routes] == [
            ("GET", "/orders", "nestjs"),
            ("POST", "/orders/:id/cancel", "nestjs"),
        ]

    def test_python_decorators(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test FastAPI and Flask decorators."""
        survey = source_survey(
            {
                "api.py": (
                    '@app.get("/invoices")\ndef list_invoices(): ...\n'
                    '@bp.route("/refunds", methods=["POST", "PUT"])\ndef refund(): ...\n'
                    '@app.route("/health")\ndef health(): ...\n'
                )
            }
        )

        surface = extract_api_surface(survey, summary)

        assert [(r.method, r.path, r.style) for r in surface.routes] == [
            ("GET", "/health", "flask"),
            ("GET", "/invoices", "fastapi"),
            ("POST", "/refunds", "flask"),
            ("PUT", "/refunds", "flask"),
        ]

    def test_js_patterns_ignored_in_python(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test rules only apply to their own languages."""
        survey = source_survey({"client.py": "app.get('/not-a-route')\n"})

        assert extract_api_surface(survey, summary).routes == []


class TestRouteHelpers:
    """Tests for path normalization and deduplication."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("orders", "/orders"), ("  /orders ", "/orders"), ("", "/"), ("   ", "/")],
    )
    def test_normalize_route_path(self, raw: str, expected: str) -> None:
        """Test leading slash and trimming."""
        assert normalize_route_path(raw) == expected

    def test_dedupe_keeps_first_style(self) -> None:
        """Test the earliest detection wins on identical identity."""
        routes = [
            RouteDescriptor("GET", "/a", "x.ts", "nestjs"),
            RouteDescriptor("GET", "/a", "x.ts", "express-like"),
            RouteDescriptor("DELETE", "/a", "x.ts", "nestjs"),
        ]

        result = dedupe_routes(routes)

        assert [(r.method, r.style) for r in result] == [("DELETE", "nestjs"), ("GET", "nestjs")]


class TestFrontendPages:
    """Tests for page route inference."""

    @pytest.mark.parametrize(
        ("rel_path", "expected"),
        [
            ("src/pages/users/[id].tsx", "/users/:id"),
            ("pages/index.tsx", "/"),
            ("pages/orders/index.js", "/orders"),
            ("pages/_app.tsx", None),
            ("app/orders/page.tsx", "/orders"),
            ("app/page.tsx", "/"),
            ("app/orders/layout.tsx", None),
            ("src/components/Button.tsx", None),
        ],
    )
    def test_frontend_route(self, rel_path: str, expected: str | None) -> None:
        """Test pages/ and app/ conventions."""
        assert ApiSurfaceExtractor.frontend_route(rel_path) == expected


class TestOtherSurfaces:
    """Tests for consumers, cron jobs, clients, auth and CLI entries."""

    def test_consumers_and_cron(self, source_survey: SurveyFactory, summary: PackageSummary) -> None:
        """Test message consumers and scheduled jobs."""
        survey = source_survey(
            {
                "worker.ts": (
                    "await consumer.subscribe({ topic: 'order-created' });\n"
                    "channel.consume('billing-queue', handler);\n"
                    "cron.schedule('*/5 * * * *', tick);\n"
                )
            }
        )

        surface = extract_api_surface(survey, summary)

        assert [(c.transport, c.topic_or_queue) for c in surface.message_consumers] == [
            ("kafka", "order-created"),
            ("rabbitmq", "billing-queue"),
        ]
        assert [job.schedule for job in surface.cron_jobs] == ["*/5 * * * *"]

    def test_clients_auth_and_cli(self, source_survey: SurveyFactory) -> None:
        """Test client libraries, auth markers and manifest CLI entries."""
        survey = source_survey(
            {"client.ts": "import passport from 'passport';\nawait axios.get(url);\nfetch(url);\n"}
        )
        summary = PackageSummary(
            name="svc",
            scripts={"db:migrate": "prisma migrate deploy", "start": "node ."},
            dependencies=["jsonwebtoken", "next-auth"],
            console_scripts={"svc": "bin/svc.js"},
        )

        surface = extract_api_surface(survey, summary)

        assert surface.api_clients == ["axios", "fetch"]
        assert surface.auth_signals == ["next-auth", "passport"]
        assert [(e.name, e.command) for e in surface.cli_entrypoints] == [
            ("db:migrate", "prisma migrate deploy"),
            ("svc", "bin/svc.js"),
        ]
