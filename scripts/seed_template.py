#!/usr/bin/env python3
"""Seed a questionnaire template from a YAML file into the database.

The YAML layout is the one read by ``questionnaire_engine.load_catalog_yaml``.
Authored question ids (``q_name``, ...) are replaced with UUIDs and every
conditional-logic reference is rewritten to match, so the seeded catalog is
self-consistent.

Usage::

    # Check the file without touching the database
    uv run python scripts/seed_template.py tests/fixtures/dental_intake.yaml --dry-run

    # Seed (DATABASE_URL or PG_* env vars select the database)
    uv run python scripts/seed_template.py tests/fixtures/dental_intake.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import copy
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

from rich.console import Console

from questionnaire_engine.catalog import load_catalog_yaml, load_yaml

console = Console()


def assign_question_ids(pages: list[dict[str, Any]]) -> dict[str, uuid.UUID]:
    """Give every question a UUID and rewrite conditional references in place.

    Returns the authored-id → UUID mapping.
    """
    id_map: dict[str, uuid.UUID] = {}
    for page in pages:
        for q in page.get("questions") or []:
            authored = str(q.get("id") or f"q{len(id_map) + 1}")
            id_map[authored] = uuid.uuid4()
            q["id"] = id_map[authored]

    for page in pages:
        for q in page.get("questions") or []:
            logic = q.get("conditional_logic")
            if not isinstance(logic, dict):
                continue
            for key in ("show_if", "hide_if"):
                for cond in logic.get(key) or []:
                    if isinstance(cond, dict) and cond.get("question_id") in id_map:
                        cond["question_id"] = str(id_map[cond["question_id"]])
    return id_map


async def seed(path: Path) -> uuid.UUID:
    from questionnaire_db.engine import dispose_engine, get_session_factory
    from questionnaire_db.repository import CatalogRepository

    raw = load_yaml(path)
    pages = copy.deepcopy(raw.get("pages") or [])
    assign_question_ids(pages)

    factory = get_session_factory()
    try:
        async with factory() as db:
            row = await CatalogRepository().create_template(
                db, template=raw["template"], pages=pages,
            )
            await db.commit()
            return row.id
    finally:
        await dispose_engine()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed a questionnaire template from YAML")
    parser.add_argument("path", type=Path, help="YAML template file")
    parser.add_argument("--dry-run", action="store_true", help="Validate only")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    catalog = load_catalog_yaml(args.path)
    issues = catalog.validate()
    console.print(
        f"[bold]{catalog.template.name}[/]: {catalog.total_pages} pages, "
        f"{sum(1 for _ in catalog.all_questions())} questions"
    )
    for issue in issues:
        console.print(f"  [yellow]![/] {issue}")
    if issues:
        console.print("[red]Catalog has issues; not seeding.[/]")
        sys.exit(1)
    if args.dry_run:
        console.print("[green]Catalog is valid[/] (dry run)")
        return

    template_id = asyncio.run(seed(args.path))
    console.print(f"[green]Seeded template[/] {template_id}")


if __name__ == "__main__":
    main()
