"""Test fixtures for repointel.

Workspaces are built on the fly under pytest's tmp_path instead of being
checked in, because a checked-in ``.git`` marker would collide with the
enclosing repository.

Sample repositories:
- ORDERS_SERVICE: Express service with a route, env vars and a Prisma schema
- CATALOG_SERVICE: Scoped package consumed by the orders service
"""

import json
from pathlib import Path

from repointel.models.facts import ApiSurface, PackageSummary, RouteDescriptor
from repointel.models.inventory import Inventory, RepoFacts, RepoMetadata, ScanResult

# Relative path -> file content
RepoFiles = dict[str, str]

ORDERS_SERVICE: RepoFiles = {
    "package.json": json.dumps(
        {
            "name": "orders-service",
            "scripts": {"start": "node src/index.js", "test": "jest"},
            "dependencies": {
                "express": "^4.18.0",
                "@catalog-service/client": "^1.0.0",
                "pg": "^8.11.0",
            },
            "devDependencies": {"jest": "^29.0.0"},
        },
        indent=2,
    ),
    "src/index.js": (
        "const express = require('express');\n"
        "const app = express();\n"
        "const catalog = process.env.CATALOG_INTERNAL_URL;\n"
        "app.get('/orders', (req, res) => res.json([]));\n"
        "fetch('https://api.stripe.com/v1/charges');\n"
        "app.listen(process.env.PORT);\n"
    ),
    "prisma/schema.prisma": (
        "model Order {\n"
        "  id Int @id\n"
        "  customer Customer @relation(fields: [customerId], references: [id])\n"
        "}\n"
        "model Customer {\n"
        "  id Int @id\n"
        "}\n"
    ),
    "src/orders.test.js": "test('noop', () => {});\n",
    "package-lock.json": "{}",
}

CATALOG_SERVICE: RepoFiles = {
    "package.json": json.dumps(
        {
            "name": "catalog-service",
            "scripts": {"start": "node index.js"},
            "dependencies": {"fastify": "^4.0.0"},
        },
        indent=2,
    ),
    "index.js": "fastify.get('/products', async () => []);\n",
}


def write_repo(root: Path, files: RepoFiles, git: bool = True) -> Path:
    """Write a repository under ``root``.

    Args:
        root: Repository directory (created if needed)
        files: Relative path to content
        git: Whether to add a ``.git`` directory marker

    Returns:
        The repository root
    """
    root.mkdir(parents=True, exist_ok=True)
    if git:
        (root / ".git").mkdir(exist_ok=True)
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def make_scan_result(snapshot_id: str, names: list[str]) -> ScanResult:
    """Build an in-memory scan result with one GET route per repository.

    Args:
        snapshot_id: Snapshot the result is stored under
        names: Repository names, in inventory order

    Returns:
        ScanResult ready for ``SnapshotStore.write_scan``
    """
    repos = [
        RepoFacts(
            metadata=RepoMetadata(name=name, root_path=f"/ws/{name}", relative_path=name),
            package_summary=PackageSummary(name=name),
            api_surface=ApiSurface(routes=[RouteDescriptor("GET", f"/{name}", "a.ts")]),
        )
        for name in names
    ]
    inventory = Inventory(
        generated_at="2024-05-01T09:30:00.000Z",
        scan_root="/ws",
        snapshot_id=snapshot_id,
        repos=[repo.metadata for repo in repos],
    )
    return ScanResult(inventory=inventory, repos=repos)
