#!/usr/bin/env python3
"""Drive complete questionnaire sessions against a live server.

Each run starts a session through ``QuestionnaireFlow`` backed by
``HttpQuestionnaireClient``, answers every visible question with a random
valid value, walks the pages (exercising validation, conditional logic,
autosave and completion) and reports the outcome in a rich table.

Usage::

    # One run against the first active template
    uv run python scripts/simulate_questionnaire.py -n 1 -v

    # Five runs of a specific template, reproducible
    uv run python scripts/simulate_questionnaire.py --template <uuid> -n 5 --seed 42
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
import time
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.table import Table

from questionnaire_engine import (
    HttpQuestionnaireClient,
    NetworkError,
    QuestionnaireError,
    QuestionnaireFlow,
    QuestionnaireSession,
)
from questionnaire_engine.models import Question

console = Console()

FREE_TEXT_POOL = [
    "No allergies",
    "Sensitive on the lower left side",
    "Prefer morning appointments",
    "First visit in several years",
]


# ---------------------------------------------------------------------------
# AnswerGenerator: random valid answers per question_type
# ---------------------------------------------------------------------------

class AnswerGenerator:
    """Produces a value that passes validation for a given question."""

    def __init__(self, rng: random.Random) -> None:
        self.rng = rng

    def answer(self, q: Question) -> Any:
        rules = q.validation_rules
        qt = q.question_type
        if qt == "email":
            return f"patient{self.rng.randint(1, 9999)}@example.com"
        if qt == "phone":
            return f"555-{self.rng.randint(100, 999)}-{self.rng.randint(1000, 9999)}"
        if qt in ("number", "rating", "slider", "pain_scale", "budget_range"):
            lo = int(rules.min) if rules and rules.min is not None else 0
            hi = int(rules.max) if rules and rules.max is not None else 10
            return self.rng.randint(lo, max(lo, hi))
        if qt in ("date", "date_picker"):
            return f"2026-{self.rng.randint(1, 12):02d}-{self.rng.randint(1, 28):02d}"
        if qt == "single_choice" and q.options:
            return self.rng.choice(q.options).value
        if qt in ("multiple_choice", "checkbox", "tooth_chart") and q.options:
            upper = len(q.options)
            if rules and rules.max_files:
                upper = min(upper, int(rules.max_files))
            count = self.rng.randint(1, max(1, upper))
            return [o.value for o in self.rng.sample(q.options, count)]
        if qt in ("file_upload", "photo_upload", "photo_grid"):
            return [f"upload_{self.rng.randint(1, 999)}.jpg"]
        text = self.rng.choice(FREE_TEXT_POOL)
        if rules and rules.max_length:
            text = text[: int(rules.max_length)]
        return text


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

@dataclass
class RunResult:
    run: int
    status: str = "pending"
    pages: int = 0
    answers: int = 0
    submission_id: str = ""
    error: str = ""
    duration: float = 0.0


async def run_once(
    api: HttpQuestionnaireClient, template_id: str, gen: AnswerGenerator, run: int,
) -> RunResult:
    result = RunResult(run=run)
    started = time.monotonic()
    session = QuestionnaireSession(api)
    flow = QuestionnaireFlow(api, session, analytics=api)
    try:
        await flow.start(template_id)
        while True:
            for q in flow.visible_questions:
                if q.is_required or gen.rng.random() < 0.7:
                    flow.answer(q.id, gen.answer(q))
            result.pages += 1
            nav = await flow.next_page()
            if nav.errors:
                raise QuestionnaireError(f"validation blocked page {nav.page}: {nav.errors}")
            if nav.at_end:
                break
        submission = await flow.finish()
        result.status = "completed"
        result.submission_id = submission.id
        result.answers = len(session.state.answers)
    except NetworkError as exc:
        result.status = "network"
        result.error = str(exc)
    except QuestionnaireError as exc:
        result.status = "error"
        result.error = str(exc)
    finally:
        session.dispose()
    result.duration = time.monotonic() - started
    return result


def print_summary(results: list[RunResult]) -> None:
    table = Table(title="Simulated sessions", show_lines=True)
    table.add_column("#", style="dim", width=4)
    table.add_column("Status", width=10)
    table.add_column("Pages", width=6)
    table.add_column("Answers", width=8)
    table.add_column("Submission", min_width=36)
    table.add_column("Time", width=8)
    table.add_column("Error")
    for r in results:
        style = "green" if r.status == "completed" else "red"
        table.add_row(
            str(r.run),
            f"[{style}]{r.status}[/]",
            str(r.pages),
            str(r.answers),
            r.submission_id,
            f"{r.duration:.2f}s",
            r.error,
        )
    console.print(table)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate questionnaire sessions against a live server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--template", default=None, help="Template id (default: first active)")
    parser.add_argument("-n", "--runs", type=int, default=3)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    seed = args.seed if args.seed is not None else int(time.time())
    console.print(f"[dim]RNG seed: {seed}[/]")
    gen = AnswerGenerator(random.Random(seed))

    async with HttpQuestionnaireClient(args.base_url, timeout=args.timeout) as api:
        template_id = args.template
        if template_id is None:
            try:
                templates = await api.list_templates()
            except NetworkError as exc:
                console.print(f"[red]Server at {args.base_url} is not reachable:[/] {exc}")
                sys.exit(1)
            if not templates:
                console.print("[red]No active templates. Seed one with scripts/seed_template.py[/]")
                sys.exit(1)
            template_id = templates[0].id
            console.print(f"Using template [bold]{templates[0].name}[/] ({template_id})")

        results = [await run_once(api, template_id, gen, i + 1) for i in range(args.runs)]

    print_summary(results)
    failed = sum(1 for r in results if r.status != "completed")
    if failed:
        console.print(f"[red]{failed} of {len(results)} runs failed[/]")
        sys.exit(1)
    console.print(f"[green]All {len(results)} runs completed[/]")


if __name__ == "__main__":
    asyncio.run(main())
