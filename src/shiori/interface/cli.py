"""shiori CLI — diagnostics over JSON inventory exports."""

import asyncio
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from shiori.application.config import AppConfig, resolve_config
from shiori.domain.errors import ShioriError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="shiori: spaced repetition, mastery and curriculum diagnostics.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

config_app = typer.Typer(help="Inspect shiori configuration.")
app.add_typer(config_app, name="config")

corpus_app = typer.Typer(help="Reference corpus diagnostics.", no_args_is_help=True)
app.add_typer(corpus_app, name="corpus")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for shiori."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

InventoryArg = Annotated[
    Path, typer.Argument(help="Inventory export: JSON with 'items' and optional 'profile'.")
]
CorpusOpt = Annotated[
    Path | None,
    typer.Option("--corpus", help="Reference corpus (JSON/YAML). Defaults to config."),
]
NowOpt = Annotated[
    str | None, typer.Option("--now", help="ISO-8601 evaluation time. Defaults to now.")
]


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except (ShioriError, ValidationError) as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _now(value: str | None) -> datetime:
    from shiori.domain.models import parse_timestamp

    return parse_timestamp(value) if value else datetime.now(timezone.utc)


def _corpus_source(config: AppConfig, corpus: Path | None):
    from shiori.infrastructure.corpus import FileCorpusSource

    return FileCorpusSource(corpus or config.corpus_path, scale=config.scale)


def _snapshot_service(config: AppConfig, inventory: Path, corpus: Path | None):
    from shiori.application.snapshot_service import SnapshotService
    from shiori.infrastructure.inventory import JsonInventorySource

    return SnapshotService(
        JsonInventorySource(inventory),
        _corpus_source(config, corpus),
        scale=config.scale,
        daily_new_item_limit=config.daily_new_item_limit,
    )


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command("queue")
def queue(
    inventory: InventoryArg,
    limit: Annotated[
        int | None, typer.Option(help="Maximum entries. Defaults to 'max_queue_size'.")
    ] = None,
    now: NowOpt = None,
):
    """List due reviews, most overdue first. Unseen items are skipped."""
    from shiori.application.scheduler import compute_review_queue
    from shiori.domain.models import MasteryStage
    from shiori.infrastructure.inventory import JsonInventorySource

    with _handle_errors():
        config = resolve_config({"max_queue_size": limit})
        at = _now(now)
        items = asyncio.run(JsonInventorySource(inventory).get_items())
        seen = [i for i in items if i.stage != MasteryStage.UNSEEN]
        entries = compute_review_queue(seen, at, limit=config.max_queue_size)
        _echo_json([e.to_dict() for e in entries])


@app.command("bubble")
def bubble(
    inventory: InventoryArg,
    corpus: CorpusOpt = None,
    detailed: Annotated[
        bool, typer.Option("--detailed", help="Classify gaps by severity across all items.")
    ] = False,
):
    """Show per-level coverage, the current and frontier level, and gaps."""
    from shiori.application.curriculum import compute_knowledge_bubble, identify_gaps
    from shiori.infrastructure.inventory import JsonInventorySource

    with _handle_errors():
        config = resolve_config()
        items = asyncio.run(JsonInventorySource(inventory).get_items())
        result = compute_knowledge_bubble(
            items, _corpus_source(config, corpus).load(), scale=config.scale
        )
        data = result.to_dict()
        if detailed:
            data["classified_gaps"] = [g.to_dict() for g in identify_gaps(result, items)]
        _echo_json(data)


@app.command("recommend")
def recommend(
    inventory: InventoryArg,
    corpus: CorpusOpt = None,
    limit: Annotated[
        int | None, typer.Option(help="Daily new-item cap. Defaults to the profile/config.")
    ] = None,
    regressed: Annotated[
        list[int] | None, typer.Option("--regressed", help="Item id with an active regression.")
    ] = None,
    avoided: Annotated[
        list[int] | None, typer.Option("--avoided", help="Item id the learner avoids.")
    ] = None,
):
    """Rank new items to introduce from the current and frontier levels."""
    from shiori.application.curriculum import (
        BehavioralSignals,
        compute_knowledge_bubble,
        generate_recommendations,
    )
    from shiori.application.snapshot_service import known_forms
    from shiori.infrastructure.inventory import JsonInventorySource

    with _handle_errors():
        config = resolve_config()
        source = JsonInventorySource(inventory)
        items = asyncio.run(source.get_items())
        profile = asyncio.run(source.get_learner_profile())
        reference = _corpus_source(config, corpus).load()

        cap = limit
        if cap is None:
            cap = profile.daily_new_item_limit
        if cap is None:
            cap = config.daily_new_item_limit

        result = compute_knowledge_bubble(items, reference, scale=config.scale)
        surfaces, patterns = known_forms(items)
        recommendations = generate_recommendations(
            result,
            reference,
            surfaces,
            patterns,
            cap,
            signals=BehavioralSignals.of(regressed or (), avoided or ()),
        )
        _echo_json([r.to_dict() for r in recommendations])


@app.command("profile")
def profile(
    inventory: InventoryArg,
    corpus: CorpusOpt = None,
    now: NowOpt = None,
):
    """Recompute the full learner snapshot: ceilings, streak, bubble, recommendations."""
    with _handle_errors():
        config = resolve_config()
        service = _snapshot_service(config, inventory, corpus)
        snapshot = asyncio.run(service.refresh(_now(now)))
        _echo_json(snapshot.to_dict())


@app.command("review")
def review(
    inventory: InventoryArg,
    item_id: Annotated[int, typer.Argument(help="Inventory item id.")],
    grades: Annotated[
        list[str], typer.Argument(help="Grades applied in order: again, hard, good, easy (or 1-4).")
    ],
    kind: Annotated[str, typer.Option(help="lexical or grammar.")] = "lexical",
    skill: Annotated[str, typer.Option(help="recognition, production or cloze.")] = "recognition",
    context_type: Annotated[
        str | None, typer.Option(help="Interaction context. Defaults to srs_review.")
    ] = None,
    corpus: CorpusOpt = None,
    now: NowOpt = None,
):
    """Replay graded reviews of one item. The inventory file is not rewritten."""
    from shiori.application.review_service import ReviewService
    from shiori.domain.errors import InvalidInputError
    from shiori.domain.models import Grade, ItemKind, ReviewSubmission, Skill
    from shiori.infrastructure.inventory import JsonInventorySource

    with _handle_errors():
        config = resolve_config()
        at = _now(now)
        parsed_kind = ItemKind.parse(kind)
        submissions = [
            ReviewSubmission(
                item_id=item_id,
                kind=parsed_kind,
                grade=Grade.parse(int(g) if g.isdigit() else g),
                skill=Skill.parse(skill),
                context_type=context_type,
            )
            for g in grades
        ]

        items = asyncio.run(JsonInventorySource(inventory).get_items())
        item = next((i for i in items if i.id == item_id and i.kind == parsed_kind), None)
        if item is None:
            raise InvalidInputError(f"No {parsed_kind.value} item with id {item_id}")

        snapshots = _snapshot_service(config, inventory, corpus)
        service = ReviewService.from_config(config, snapshots)
        outcomes = asyncio.run(_replay(service, item, submissions, at))

        last = snapshots.last_snapshot
        _echo_json(
            {
                "outcomes": [o.to_dict() for o in outcomes],
                "snapshot": last.to_dict() if last else None,
            }
        )


async def _replay(service, item, submissions, at):
    outcomes = []
    for submission in submissions:
        outcome = await service.submit(item, submission, at)
        outcomes.append(outcome)
        item = outcome.item
    return outcomes


@app.command("advance")
def advance_cmd(
    stage: Annotated[str, typer.Argument(help="Current mastery stage, e.g. apprentice_4.")],
    grade: Annotated[str, typer.Argument(help="again, hard, good, easy (or 1-4).")],
    kind: Annotated[str, typer.Option(help="lexical or grammar.")] = "lexical",
    production_weight: Annotated[float, typer.Option(help="Accumulated production weight.")] = 0.0,
    context_count: Annotated[int, typer.Option(help="Distinct contexts seen.")] = 0,
    novel_context_count: Annotated[int, typer.Option(help="Novel-context successes.")] = 0,
):
    """Show the mastery transition for one review outcome."""
    from shiori.application.mastery import advance
    from shiori.domain.models import Grade, ItemKind, MasteryEvidence, MasteryStage

    with _handle_errors():
        current = MasteryStage.parse(stage)
        parsed_grade = Grade.parse(int(grade) if grade.isdigit() else grade)
        evidence = MasteryEvidence(
            production_weight=production_weight,
            context_count=context_count,
            novel_context_count=novel_context_count,
            kind=ItemKind.parse(kind),
        )
        result = advance(current, parsed_grade, evidence)
        _echo_json(
            {
                "from": current.value,
                "grade": parsed_grade.name.lower(),
                "to": result.value,
                "changed": result != current,
            }
        )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    with _handle_errors():
        config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    _echo_json(d)


# ---------------------------------------------------------------------------
# Corpus subgroup
# ---------------------------------------------------------------------------


@corpus_app.command("stats")
def corpus_stats(corpus: CorpusOpt = None):
    """Count reference items per level."""
    with _handle_errors():
        config = resolve_config()
        source = _corpus_source(config, corpus)
        reference = source.load()
        counts = reference.count_by_level(config.scale)
        _echo_json(
            {
                "path": str(source.path),
                "vocabulary": len(reference.vocabulary),
                "grammar": len(reference.grammar),
                "by_level": counts,
            }
        )
