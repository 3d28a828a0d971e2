import pytest

from shiori.application.profile.ceiling import CeilingCalculator
from shiori.domain.models import LevelScale, MasteryStage

from conftest import NOW, make_item, make_state


def fresh():
    """Reviewed and not yet due: retrievability 1."""
    return make_state(reps=3, stability=10.0, due_in_days=5, scheduled_days=10)


def forgotten():
    """Never reviewed: retrievability 0."""
    return make_state(reps=0, due_in_days=-5)


def item(item_id, level, recognition, production=None, **kwargs):
    return make_item(
        item_id,
        level=level,
        recognition=recognition,
        production=production or forgotten(),
        **kwargs,
    )


@pytest.fixture
def calculator():
    return CeilingCalculator()


class TestComprehensionCeiling:
    def test_stops_at_first_failing_level(self, calculator):
        items = [
            item(1, "A1", fresh()),
            item(2, "A2", fresh()),
            item(3, "B1", forgotten()),
            item(4, "B2", fresh()),
        ]
        result = calculator.compute(items, NOW)
        assert result.comprehension_ceiling == "A2"
        assert result.computed_level == "A2"

    def test_skips_levels_without_items(self, calculator):
        items = [item(1, "A1", fresh()), item(2, "B1", fresh())]
        assert calculator.compute(items, NOW).comprehension_ceiling == "B1"

    def test_threshold_is_strict(self, calculator):
        items = [item(1, "A1", fresh())]
        items += [item(10 + i, "A2", fresh()) for i in range(4)]
        items.append(item(20, "A2", forgotten()))
        # A2 mean is exactly 0.80
        assert calculator.compute(items, NOW).comprehension_ceiling == "A1"

    def test_unseen_items_are_ignored(self, calculator):
        items = [
            item(1, "A1", fresh()),
            item(2, "A2", fresh()),
            item(3, "A2", forgotten(), stage=MasteryStage.UNSEEN),
        ]
        assert calculator.compute(items, NOW).comprehension_ceiling == "A2"

    def test_empty_inventory_defaults_to_weakest(self, calculator):
        result = calculator.compute([], NOW)
        assert result.comprehension_ceiling == "A1"
        assert result.production_ceiling == "A1"
        assert result.reading_level == 0.0
        assert result.writing_level == 0.0


class TestProductionCeiling:
    def test_uses_lower_threshold(self, calculator):
        # 2 of 3 fresh = 0.67: passes production (0.60) but not comprehension (0.80)
        items = [
            item(1, "A1", fresh(), fresh()),
            item(2, "A1", fresh(), fresh()),
            item(3, "A1", fresh(), forgotten()),
            item(4, "A2", forgotten(), fresh()),
            item(5, "A2", forgotten(), fresh()),
            item(6, "A2", forgotten(), forgotten()),
        ]
        result = calculator.compute(items, NOW)
        assert result.comprehension_ceiling == "A1"
        assert result.production_ceiling == "A2"
        assert result.computed_level == "A2"

    def test_tie_favors_comprehension(self, calculator):
        items = [item(1, "A1", fresh(), fresh())]
        result = calculator.compute(items, NOW)
        assert result.comprehension_ceiling == result.production_ceiling == "A1"
        assert result.computed_level == result.comprehension_ceiling


def test_modality_levels(calculator):
    overdue = make_state(reps=5, stability=14.0, due_in_days=-5, scheduled_days=14)
    items = [
        item(1, "A1", fresh(), fresh(), writing_productions=2),
        item(2, "A1", overdue, fresh()),
        item(3, "A1", forgotten()),
    ]
    result = calculator.compute(items, NOW)
    # Only reviewed recognition states count: (1.0 + 0.869) / 2
    assert result.reading_level == pytest.approx(0.93)
    # Only items with writing productions count
    assert result.writing_level == 1.0
    assert result.listening_level == 0.0
    assert result.speaking_level == 0.0


def test_custom_scale_and_unknown_tags():
    calc = CeilingCalculator(LevelScale(("N5", "N4", "N3")))
    items = [item(1, "N5", fresh()), item(2, "N4", fresh()), item(3, "A1", fresh())]
    result = calc.compute(items, NOW)
    assert result.comprehension_ceiling == "N4"
