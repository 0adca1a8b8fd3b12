"""Data model detection.

Collects persisted entities and their relationships from:
- Prisma schemas (``model X { ... }`` with ``@relation`` fields)
- SQL DDL (``CREATE TABLE`` statements and ``REFERENCES`` foreign keys)
- ORM declarations (TypeORM ``@Entity('name')``, SQLAlchemy ``__tablename__``)
"""

import logging
import re

from repointel.analyzers.base import JS_SUFFIXES, PY_SUFFIXES, dedupe_sorted
from repointel.models.facts import DataEntity, DataRelationship, DbModelSummary
from repointel.utils.fs import RepoSurvey

logger = logging.getLogger(__name__)

PRISMA_MODEL = re.compile(r"model\s+(\w+)\s*\{([\s\S]*?)\}")
PRISMA_RELATION_FIELD = re.compile(r"^\s*\w+\s+(\w+)\s+@relation", re.MULTILINE)

SQL_CREATE_TABLE = re.compile(
    r"create\s+table\s+(?:if\s+not\s+exists\s+)?\"?([a-zA-Z0-9_]+)\"?", re.IGNORECASE
)
SQL_REFERENCES = re.compile(r"references\s+\"?([a-zA-Z0-9_]+)\"?", re.IGNORECASE)

TYPEORM_ENTITY = re.compile(r"@Entity\(\s*['\"`]([^'\"`]+)['\"`]?\s*\)")
SQLALCHEMY_TABLE = re.compile(r"__tablename__\s*=\s*['\"]([^'\"]+)['\"]")


def parse_prisma_schema(
    schema: str, source: str
) -> tuple[list[DataEntity], list[DataRelationship]]:
    """Parse Prisma models and their relation fields.

    Args:
        schema: Schema file content
        source: Repo-relative schema path recorded on every fact

    Returns:
        Tuple of (entities, relationships) in declaration order
    """
    entities: list[DataEntity] = []
    relationships: list[DataRelationship] = []

    for model in PRISMA_MODEL.finditer(schema):
        name, body = model.group(1), model.group(2)
        entities.append(DataEntity(name=name, source=source))
        relationships.extend(
            DataRelationship(
                from_entity=name,
                to_entity=relation.group(1),
                relation="relation",
                source=source,
            )
            for relation in PRISMA_RELATION_FIELD.finditer(body)
        )

    return entities, relationships


def parse_sql_ddl(content: str, source: str) -> tuple[list[DataEntity], list[DataRelationship]]:
    """Parse CREATE TABLE statements and their foreign keys.

    A ``REFERENCES`` clause belongs to the closest preceding CREATE TABLE.
    """
    entities: list[DataEntity] = []
    relationships: list[DataRelationship] = []
    tables = list(SQL_CREATE_TABLE.finditer(content))

    for index, table in enumerate(tables):
        name = table.group(1)
        entities.append(DataEntity(name=name, source=source))

        end = tables[index + 1].start() if index + 1 < len(tables) else len(content)
        relationships.extend(
            DataRelationship(
                from_entity=name,
                to_entity=reference.group(1),
                relation="foreign-key",
                source=source,
            )
            for reference in SQL_REFERENCES.finditer(content, table.end(), end)
        )

    return entities, relationships


def extract_db_models(survey: RepoSurvey) -> DbModelSummary:
    """Extract the data model of a repository.

    Args:
        survey: Repository listing with source text

    Returns:
        DbModelSummary with entities and relationships deduplicated and sorted
    """
    entities: list[DataEntity] = []
    relationships: list[DataRelationship] = []

    for rel_path in survey.all_files:
        if rel_path.endswith(".prisma"):
            found, related = parse_prisma_schema(survey.read(rel_path), rel_path)
        elif rel_path.lower().endswith(".sql"):
            found, related = parse_sql_ddl(survey.read(rel_path), rel_path)
        else:
            continue
        entities.extend(found)
        relationships.extend(related)

    for rel_path, code in survey.iter_sources(JS_SUFFIXES):
        entities.extend(
            DataEntity(name=match.group(1), source=rel_path)
            for match in TYPEORM_ENTITY.finditer(code)
        )
    for rel_path, code in survey.iter_sources(PY_SUFFIXES):
        entities.extend(
            DataEntity(name=match.group(1), source=rel_path)
            for match in SQLALCHEMY_TABLE.finditer(code)
        )

    logger.debug(
        "Data model for %s: %d entities, %d relationships",
        survey.root.name,
        len(entities),
        len(relationships),
    )

    return DbModelSummary(
        entities=dedupe_sorted(entities, lambda e: (e.name, e.source)),
        relationships=dedupe_sorted(
            relationships,
            lambda r: (r.from_entity, r.to_entity, r.relation, r.source),
        ),
    )
