from decimal import Decimal

import pytest

from biomarker_ingest.extraction.models import Tier
from biomarker_ingest.extraction.patterns import (
    CATEGORIES,
    COVERAGE_CHECKLIST,
    DEFAULT_LIBRARY,
    DEFAULT_RULES,
    PatternLibrary,
    PatternRule,
    hba1c_ifcc_to_ngsp,
    labelled,
    scale,
)


def _make_rule(name: str = "glucose", tier: Tier = Tier.HIGH, **kwargs: object) -> PatternRule:
    defaults: dict[str, object] = {
        "expression": labelled("Glucose"),
        "category": "metabolic",
        "allowed_units": ("mg/dL", "mmol/L"),
    }
    defaults.update(kwargs)
    return PatternRule(name=name, tier=tier, **defaults)  # type: ignore[arg-type]


class TestLabelledExpression:
    def test_matches_label_value_and_unit(self) -> None:
        match = labelled("Glucose").search("Glucose: 95 mg/dL")
        assert match is not None
        assert match.group("value") == "95"
        assert match.group("unit") == "mg/dL"

    def test_matches_without_separator_or_unit(self) -> None:
        match = labelled("Glucose").search("Glucose 95")
        assert match is not None
        assert match.group("value") == "95"
        assert match.group("unit") is None

    def test_captures_trailing_flag(self) -> None:
        match = labelled("Total Cholesterol").search("Total Cholesterol: 210 mg/dL H")
        assert match is not None
        assert match.group("unit") == "mg/dL"
        assert match.group("flag") == "H"

    def test_flag_word_is_not_taken_as_unit(self) -> None:
        match = labelled("Glucose").search("Glucose: 95 High")
        assert match is not None
        assert match.group("unit") is None
        assert match.group("flag") == "High"

    def test_matches_table_row(self) -> None:
        match = labelled("Glucose").search("Glucose | 95 | mg/dL | 70-99")
        assert match is not None
        assert match.group("value") == "95"
        assert match.group("unit") == "mg/dL"

    def test_label_must_start_a_result(self) -> None:
        assert labelled("Cholesterol").search("HDL Cholesterol: 55 mg/dL") is None
        assert labelled("Cholesterol").search("Results: HDL Cholesterol: 55") is None

    def test_label_after_comma(self) -> None:
        match = labelled("Cholesterol").search("Glucose: 95 mg/dL, Cholesterol: 180 mg/dL")
        assert match is not None
        assert match.group("value") == "180"
        assert match.group("unit") == "mg/dL"

    def test_label_after_prefix(self) -> None:
        match = labelled("Ferritin").search("Results: Ferritin: 40 ng/mL")
        assert match is not None
        assert match.group("value") == "40"

    def test_is_case_insensitive(self) -> None:
        match = labelled("Glucose").search("GLUCOSE: 95 MG/DL")
        assert match is not None
        assert match.group("unit") == "MG/DL"

    def test_qualifier_after_label(self) -> None:
        match = labelled("Glucose").search("Glucose, Fasting: 88 mg/dL")
        assert match is not None
        assert match.group("value") == "88"


class TestTransforms:
    def test_scale_rounds_to_two_places(self) -> None:
        assert scale("18")(Decimal("5.5")) == Decimal("99.00")

    def test_scale_custom_places(self) -> None:
        assert scale("0.01131", places=3)(Decimal("88")) == Decimal("0.995")

    def test_hba1c_ifcc_to_ngsp(self) -> None:
        assert hba1c_ifcc_to_ngsp(Decimal("48")) == Decimal("6.5")


class TestPatternRule:
    def test_base_confidence_follows_tier(self) -> None:
        assert _make_rule(tier=Tier.HIGH).base_confidence == 0.95
        assert _make_rule(tier=Tier.MEDIUM).base_confidence == 0.85
        assert _make_rule(tier=Tier.LOW).base_confidence == 0.75

    def test_explicit_confidence_overrides_tier(self) -> None:
        assert _make_rule(confidence=0.5).base_confidence == 0.5

    def test_standard_unit_is_first_allowed(self) -> None:
        assert _make_rule().standard_unit == "mg/dL"


class TestPatternLibrary:
    def test_rejects_duplicate_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            PatternLibrary([_make_rule(), _make_rule()])

    def test_find_is_case_insensitive(self) -> None:
        library = PatternLibrary([_make_rule(name="hemoglobinA1c")])
        rule = library.find("HEMOGLOBINA1C")
        assert rule is not None
        assert rule.name == "hemoglobinA1c"
        assert "hemoglobina1c" in library

    def test_find_unknown_returns_none(self) -> None:
        assert PatternLibrary([_make_rule()]).find("zinc") is None

    def test_iterates_in_declaration_order(self) -> None:
        library = PatternLibrary([_make_rule(name="b"), _make_rule(name="a")])
        assert [rule.name for rule in library] == ["b", "a"]
        assert library.names() == ["b", "a"]
        assert len(library) == 2


class TestDefaultLibrary:
    def test_contains_every_default_rule(self) -> None:
        assert len(DEFAULT_LIBRARY) == len(DEFAULT_RULES)

    def test_categories_are_known(self) -> None:
        assert {rule.category for rule in DEFAULT_LIBRARY} <= set(CATEGORIES)

    def test_bounds_are_ordered(self) -> None:
        for rule in DEFAULT_LIBRARY:
            if rule.min_value is not None and rule.max_value is not None:
                assert rule.min_value < rule.max_value, rule.name

    def test_conversions_target_standard_unit(self) -> None:
        for rule in DEFAULT_LIBRARY:
            for conversion in rule.conversions.values():
                assert conversion.target == rule.standard_unit, rule.name

    def test_checklist_covers_every_rule(self) -> None:
        for rule in DEFAULT_LIBRARY:
            assert COVERAGE_CHECKLIST[rule.name] == rule.category

    def test_checklist_has_model_only_entries(self) -> None:
        model_only = set(COVERAGE_CHECKLIST) - set(DEFAULT_LIBRARY.names())
        assert {"wbc", "calcium", "albumin"} <= model_only
