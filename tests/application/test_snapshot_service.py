from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from shiori.application.curriculum import BehavioralSignals
from shiori.application.snapshot_service import SnapshotService, known_forms
from shiori.domain.models import ItemKind, LearnerProfile, MasteryStage
from shiori.domain.ports import CorpusSource
from shiori.infrastructure.inventory import InMemoryInventorySource

from conftest import NOW, make_item, make_state


@pytest.fixture
def corpus_source(small_corpus):
    source = MagicMock(spec=CorpusSource)
    source.load.return_value = small_corpus
    return source


@pytest.fixture
def inventory():
    fresh = make_state(reps=3, stability=10.0, due_in_days=5, scheduled_days=10)
    return InMemoryInventorySource(
        [
            make_item(1, stage=MasteryStage.APPRENTICE_3, surface_form="水", recognition=fresh),
            make_item(2, stage=MasteryStage.UNSEEN, surface_form="本"),
            make_item(3, kind=ItemKind.GRAMMAR, pattern_id="masu", recognition=fresh),
        ],
        LearnerProfile(current_streak=2, longest_streak=5, last_active_date=NOW - timedelta(days=1)),
    )


def test_known_forms_include_every_stage(inventory):
    surfaces, patterns = known_forms(inventory.items)
    assert surfaces == {"水", "本"}
    assert patterns == {"masu"}


@pytest.mark.asyncio
async def test_refresh_builds_full_snapshot(inventory, corpus_source):
    service = SnapshotService(inventory, corpus_source, daily_new_item_limit=2)

    snapshot = await service.refresh(NOW)

    assert snapshot.profile.computed_level == "A1"
    assert snapshot.profile.current_streak == 3
    assert snapshot.bubble.current_level == "A1"
    assert snapshot.bubble.breakdown("A1").known_items == 2
    # Inventory items are never recommended, Unseen ones included
    assert [r.surface_form or r.pattern_id for r in snapshot.recommendations] == ["te_form", "天気"]
    assert service.last_snapshot is snapshot
    corpus_source.load.assert_called_once()


@pytest.mark.asyncio
async def test_profile_limit_overrides_default(inventory, corpus_source):
    inventory.profile.daily_new_item_limit = 1
    service = SnapshotService(inventory, corpus_source, daily_new_item_limit=10)
    snapshot = await service.refresh(NOW)
    assert len(snapshot.recommendations) == 1


@pytest.mark.asyncio
async def test_refresh_passes_signals(inventory, corpus_source):
    service = SnapshotService(inventory, corpus_source)
    snapshot = await service.refresh(NOW, signals=BehavioralSignals.of(regressed=[1]))
    assert all("caution discount" in r.reason for r in snapshot.recommendations)


@pytest.mark.asyncio
async def test_refresh_best_effort_swallows_errors(inventory, caplog):
    broken = MagicMock(spec=CorpusSource)
    broken.load.side_effect = FileNotFoundError("corpus.yaml")
    service = SnapshotService(inventory, broken)

    assert await service.refresh_best_effort(NOW) is None
    assert service.last_snapshot is None
    assert "Snapshot refresh failed" in caplog.text


@pytest.mark.asyncio
async def test_snapshot_to_dict(inventory, corpus_source):
    snapshot = await SnapshotService(inventory, corpus_source).refresh(NOW)
    data = snapshot.to_dict()
    assert set(data) == {"profile", "bubble", "recommendations"}
    assert data["bubble"]["current_level"] == "A1"
