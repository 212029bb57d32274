"""Declarative biomarker pattern library.

Every biomarker is a single ``PatternRule`` record: how to find it in text,
which category and tier it belongs to, which units are acceptable, the
plausible value bounds (in the rule's standard unit) and how to convert
alternative units. Extraction and merge logic never branch on a biomarker
name, so adding or tuning a biomarker only touches the table below.
"""

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from biomarker_ingest.extraction.models import Tier

Transform = Callable[[Decimal], Decimal]

TIER_CONFIDENCE: Mapping[Tier, float] = MappingProxyType(
    {Tier.HIGH: 0.95, Tier.MEDIUM: 0.85, Tier.LOW: 0.75}
)

CATEGORIES = (
    "lipid",
    "metabolic",
    "thyroid",
    "vitamin",
    "mineral",
    "blood",
    "liver",
    "kidney",
    "hormone",
    "other",
)

_LINE_START = (
    r"(?:^|(?<=[|;\t,])|(?<=:[^\S\n]))[^\S\n]*(?:[-*•][^\S\n]*)?"
)
_QUALIFIER = r"(?:[^\S\n]*,?[^\S\n]*(?:Fasting|Serum|Plasma|Total|Free))?"
_SEPARATOR = r"[^\S\n]*(?:Result|Value|Level)?[^\S\n]*[:=|]?[^\S\n]*"
_VALUE = r"(?P<value>\d+(?:\.\d+)?)"
_UNIT = (
    r"(?:[^\S\n]*\|?[^\S\n]*(?!(?:High|Low|Normal|Ref|Reference|Range|H|L|N)\b)"
    r"(?P<unit>(?:x?10\^?[³⁹\d]*/)?[^\s\d(),;:|\[\]][^\s(),;|\[\]]*))?"
)
_FLAG = r"(?:[^\S\n]*\|?[^\S\n]*\(?(?P<flag>High|Low|Normal|H|L|N)\b\)?)?"


def labelled(*labels: str) -> re.Pattern[str]:
    """Compile the standard ``<label>: <value> <unit> [flag]`` expression.

    Labels are regex fragments tried in order, so longer aliases must come
    before their prefixes (``Free T4`` before ``T4``).
    """
    alternatives = "|".join(labels)
    return re.compile(
        rf"{_LINE_START}(?:{alternatives})\b{_QUALIFIER}{_SEPARATOR}{_VALUE}{_UNIT}{_FLAG}",
        re.IGNORECASE | re.MULTILINE,
    )


def scale(factor: str, places: int = 2) -> Transform:
    """Value transform multiplying by a fixed factor, rounded to ``places``."""
    multiplier = Decimal(factor)
    quantum = Decimal(1).scaleb(-places)

    def transform(value: Decimal) -> Decimal:
        return (value * multiplier).quantize(quantum)

    return transform


def hba1c_ifcc_to_ngsp(value: Decimal) -> Decimal:
    """Convert HbA1c mmol/mol (IFCC) to percent (NGSP)."""
    return (value / Decimal("10.929") + Decimal("2.15")).quantize(Decimal("0.1"))


@dataclass(frozen=True)
class UnitConversion:
    """Maps a matched unit onto the standard unit.

    Without a transform the units are equivalent and only the label changes.
    """

    target: str
    transform: Transform | None = None


@dataclass(frozen=True)
class PatternRule:
    name: str
    expression: re.Pattern[str]
    category: str
    tier: Tier
    allowed_units: tuple[str, ...]
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    conversions: Mapping[str, UnitConversion] = field(default_factory=dict)
    confidence: float | None = None

    @property
    def base_confidence(self) -> float:
        if self.confidence is not None:
            return self.confidence
        return TIER_CONFIDENCE[self.tier]

    @property
    def standard_unit(self) -> str:
        return self.allowed_units[0]


class PatternLibrary:
    """Read-only registry of pattern rules keyed by biomarker name."""

    def __init__(self, rules: list[PatternRule]) -> None:
        table: dict[str, PatternRule] = {}
        for rule in rules:
            if rule.name in table:
                raise ValueError(f"Duplicate pattern rule: {rule.name}")
            table[rule.name] = rule
        self._rules: Mapping[str, PatternRule] = MappingProxyType(table)
        self._by_lower = MappingProxyType({name.lower(): rule for name, rule in table.items()})

    def __iter__(self) -> Iterator[PatternRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._by_lower

    def __getitem__(self, name: str) -> PatternRule:
        return self._rules[name]

    def find(self, name: str) -> PatternRule | None:
        """Case-insensitive lookup, used for model-provided names."""
        return self._by_lower.get(name.lower())

    def names(self) -> list[str]:
        return list(self._rules)


def _rule(
    name: str,
    labels: tuple[str, ...],
    category: str,
    tier: Tier,
    units: tuple[str, ...],
    bounds: tuple[str, str] | None = None,
    conversions: dict[str, UnitConversion] | None = None,
) -> PatternRule:
    return PatternRule(
        name=name,
        expression=labelled(*labels),
        category=category,
        tier=tier,
        allowed_units=units,
        min_value=Decimal(bounds[0]) if bounds else None,
        max_value=Decimal(bounds[1]) if bounds else None,
        conversions=MappingProxyType(conversions or {}),
    )


_CHOLESTEROL_CONVERSIONS = {
    "mmol/L": UnitConversion("mg/dL", scale("38.67")),
    "g/L": UnitConversion("mg/dL", scale("100")),
}

DEFAULT_RULES: list[PatternRule] = [
    # Metabolic
    _rule(
        "glucose",
        ("Blood Glucose", "Fasting Glucose", "Glucose", "FBG"),
        "metabolic",
        Tier.HIGH,
        ("mg/dL", "mmol/L", "g/L", "mg/100mL"),
        bounds=("20", "1000"),
        conversions={
            "mmol/L": UnitConversion("mg/dL", scale("18")),
            "g/L": UnitConversion("mg/dL", scale("100")),
            "mg/100mL": UnitConversion("mg/dL"),
        },
    ),
    _rule(
        "hemoglobinA1c",
        ("Hemoglobin A1c", "Haemoglobin A1c", "HbA1c", "A1C"),
        "metabolic",
        Tier.HIGH,
        ("%", "mmol/mol"),
        bounds=("3", "20"),
        conversions={"mmol/mol": UnitConversion("%", hba1c_ifcc_to_ngsp)},
    ),
    _rule(
        "insulin",
        ("Fasting Insulin", "Insulin"),
        "metabolic",
        Tier.MEDIUM,
        ("µIU/mL", "pmol/L", "mIU/L"),
        bounds=("0.5", "300"),
        conversions={
            "pmol/L": UnitConversion("µIU/mL", scale("0.1667")),
            "mIU/L": UnitConversion("µIU/mL"),
        },
    ),
    # Lipids
    _rule(
        "cholesterol",
        ("Total Cholesterol", "Cholesterol, Total", "Cholesterol"),
        "lipid",
        Tier.HIGH,
        ("mg/dL", "mmol/L", "g/L"),
        bounds=("50", "600"),
        conversions=_CHOLESTEROL_CONVERSIONS,
    ),
    _rule(
        "hdl",
        ("HDL Cholesterol", "HDL-C", "HDL", "High-Density Lipoprotein"),
        "lipid",
        Tier.MEDIUM,
        ("mg/dL", "mmol/L"),
        bounds=("10", "200"),
        conversions=_CHOLESTEROL_CONVERSIONS,
    ),
    _rule(
        "ldl",
        ("LDL Cholesterol", "LDL-C", "LDL", "Low-Density Lipoprotein"),
        "lipid",
        Tier.HIGH,
        ("mg/dL", "mmol/L"),
        bounds=("10", "400"),
        conversions=_CHOLESTEROL_CONVERSIONS,
    ),
    _rule(
        "vldl",
        ("VLDL Cholesterol", "VLDL-C", "VLDL", "Very Low-Density Lipoprotein"),
        "lipid",
        Tier.MEDIUM,
        ("mg/dL", "mmol/L"),
        bounds=("2", "100"),
        conversions=_CHOLESTEROL_CONVERSIONS,
    ),
    _rule(
        "triglycerides",
        ("Triglycerides", "TG"),
        "lipid",
        Tier.HIGH,
        ("mg/dL", "mmol/L"),
        bounds=("10", "2000"),
        conversions={"mmol/L": UnitConversion("mg/dL", scale("88.57"))},
    ),
    # Thyroid
    _rule(
        "tsh",
        ("Thyroid Stimulating Hormone", "TSH"),
        "thyroid",
        Tier.HIGH,
        ("mIU/L", "µIU/mL"),
        bounds=("0.01", "100"),
        conversions={"µIU/mL": UnitConversion("mIU/L")},
    ),
    _rule(
        "t4",
        ("Free T4", "FT4", "T4", "Thyroxine"),
        "thyroid",
        Tier.MEDIUM,
        ("ng/dL", "pmol/L"),
        bounds=("0.1", "10"),
        conversions={"pmol/L": UnitConversion("ng/dL", scale("0.0777"))},
    ),
    _rule(
        "t3",
        ("Free T3", "FT3", "T3", "Triiodothyronine"),
        "thyroid",
        Tier.MEDIUM,
        ("pg/mL", "pmol/L"),
        bounds=("0.5", "20"),
        conversions={"pmol/L": UnitConversion("pg/mL", scale("0.651"))},
    ),
    # Vitamins
    _rule(
        "vitaminD",
        (
            r"25-?OH[^\S\n]*Vitamin[^\S\n]*D",
            r"25-?Hydroxy[^\S\n]*vitamin[^\S\n]*D",
            r"25\(OH\)D",
            r"Vitamin[^\S\n]*D",
        ),
        "vitamin",
        Tier.LOW,
        ("ng/mL", "nmol/L"),
        bounds=("5", "200"),
        conversions={"nmol/L": UnitConversion("ng/mL", scale("0.4006"))},
    ),
    _rule(
        "vitaminB12",
        ("Vitamin B12", "B12", "Cobalamin"),
        "vitamin",
        Tier.MEDIUM,
        ("pg/mL", "pmol/L"),
        bounds=("50", "3000"),
        conversions={"pmol/L": UnitConversion("pg/mL", scale("1.355"))},
    ),
    _rule(
        "folate",
        ("Folic Acid", "Vitamin B9", "Folate"),
        "vitamin",
        Tier.MEDIUM,
        ("ng/mL", "nmol/L"),
        bounds=("1", "50"),
        conversions={"nmol/L": UnitConversion("ng/mL", scale("0.4413"))},
    ),
    # Minerals
    _rule(
        "ferritin",
        ("Ferritin",),
        "mineral",
        Tier.HIGH,
        ("ng/mL", "µg/L"),
        bounds=("1", "5000"),
        conversions={"µg/L": UnitConversion("ng/mL")},
    ),
    _rule(
        "iron",
        ("Serum Iron", "Iron"),
        "mineral",
        Tier.MEDIUM,
        ("µg/dL", "µmol/L"),
        bounds=("10", "500"),
        conversions={"µmol/L": UnitConversion("µg/dL", scale("5.585"))},
    ),
    _rule(
        "magnesium",
        ("Magnesium", "Mg"),
        "mineral",
        Tier.LOW,
        ("mg/dL", "mmol/L"),
        bounds=("0.5", "10"),
        conversions={"mmol/L": UnitConversion("mg/dL", scale("2.43"))},
    ),
    _rule(
        "sodium",
        ("Sodium", "Na"),
        "mineral",
        Tier.MEDIUM,
        ("mmol/L", "mEq/L"),
        bounds=("100", "180"),
        conversions={"mEq/L": UnitConversion("mmol/L")},
    ),
    _rule(
        "potassium",
        ("Potassium", "K"),
        "mineral",
        Tier.MEDIUM,
        ("mmol/L", "mEq/L"),
        bounds=("1.5", "9"),
        conversions={"mEq/L": UnitConversion("mmol/L")},
    ),
    # Blood count
    _rule(
        "hemoglobin",
        ("Hemoglobin", "Haemoglobin", "Hgb", "Hb"),
        "blood",
        Tier.HIGH,
        ("g/dL", "g/L"),
        bounds=("3", "25"),
        conversions={"g/L": UnitConversion("g/dL", scale("0.1"))},
    ),
    _rule(
        "hematocrit",
        ("Hematocrit", "Haematocrit", "Hct"),
        "blood",
        Tier.MEDIUM,
        ("%",),
        bounds=("10", "70"),
    ),
    _rule(
        "platelets",
        ("Platelet Count", "Platelets", "PLT"),
        "blood",
        Tier.HIGH,
        ("K/µL", "10³/µL", "10^3/µL", "10^9/L"),
        bounds=("10", "1500"),
        conversions={
            "10³/µL": UnitConversion("K/µL"),
            "10^3/µL": UnitConversion("K/µL"),
            "10^9/L": UnitConversion("K/µL"),
        },
    ),
    # Liver
    _rule(
        "alt",
        ("Alanine Transaminase", "Alanine Aminotransferase", "ALT", "SGPT"),
        "liver",
        Tier.HIGH,
        ("U/L", "IU/L"),
        bounds=("1", "5000"),
        conversions={"IU/L": UnitConversion("U/L")},
    ),
    _rule(
        "ast",
        ("Aspartate Transaminase", "Aspartate Aminotransferase", "AST", "SGOT"),
        "liver",
        Tier.HIGH,
        ("U/L", "IU/L"),
        bounds=("1", "5000"),
        conversions={"IU/L": UnitConversion("U/L")},
    ),
    _rule(
        "alkalinePhosphatase",
        ("Alkaline Phosphatase", "ALP"),
        "liver",
        Tier.MEDIUM,
        ("U/L", "IU/L"),
        bounds=("5", "3000"),
        conversions={"IU/L": UnitConversion("U/L")},
    ),
    # Kidney
    _rule(
        "creatinine",
        ("Creatinine", "Cr"),
        "kidney",
        Tier.HIGH,
        ("mg/dL", "µmol/L"),
        bounds=("0.1", "20"),
        conversions={"µmol/L": UnitConversion("mg/dL", scale("0.01131", places=3))},
    ),
    _rule(
        "bun",
        ("Blood Urea Nitrogen", "BUN", "Urea"),
        "kidney",
        Tier.MEDIUM,
        ("mg/dL", "mmol/L"),
        bounds=("1", "200"),
        conversions={"mmol/L": UnitConversion("mg/dL", scale("2.8"))},
    ),
    _rule(
        "egfr",
        ("Glomerular Filtration Rate", "Estimated GFR", "eGFR"),
        "kidney",
        Tier.HIGH,
        ("mL/min/1.73m²", "mL/min/1.73m2", "mL/min"),
        bounds=("1", "200"),
        conversions={
            "mL/min/1.73m2": UnitConversion("mL/min/1.73m²"),
            "mL/min": UnitConversion("mL/min/1.73m²"),
        },
    ),
    # Hormones
    _rule(
        "cortisol",
        ("Cortisol",),
        "hormone",
        Tier.MEDIUM,
        ("µg/dL", "nmol/L"),
        bounds=("0.5", "100"),
        conversions={"nmol/L": UnitConversion("µg/dL", scale("0.03625", places=3))},
    ),
    _rule(
        "testosterone",
        ("Total Testosterone", "Testosterone"),
        "hormone",
        Tier.MEDIUM,
        ("ng/dL", "nmol/L"),
        bounds=("1", "2000"),
        conversions={"nmol/L": UnitConversion("ng/dL", scale("28.84"))},
    ),
    _rule(
        "estradiol",
        ("Estradiol", "Oestradiol", "E2"),
        "hormone",
        Tier.LOW,
        ("pg/mL", "pmol/L"),
        bounds=("1", "5000"),
        conversions={"pmol/L": UnitConversion("pg/mL", scale("0.2724"))},
    ),
    # Other
    _rule(
        "crp",
        ("High-Sensitivity C-Reactive Protein", "C-Reactive Protein", "hs-CRP", "CRP"),
        "other",
        Tier.MEDIUM,
        ("mg/L", "mg/dL"),
        bounds=("0.01", "500"),
        conversions={"mg/dL": UnitConversion("mg/L", scale("10"))},
    ),
]

DEFAULT_LIBRARY = PatternLibrary(DEFAULT_RULES)

# Biomarkers a complete report is expected to cover. Names without a pattern
# rule can only be found by the model extractor.
COVERAGE_CHECKLIST: Mapping[str, str] = MappingProxyType(
    {
        **{rule.name: rule.category for rule in DEFAULT_RULES},
        "wbc": "blood",
        "rbc": "blood",
        "mcv": "blood",
        "calcium": "mineral",
        "zinc": "mineral",
        "albumin": "liver",
        "bilirubin": "liver",
        "ggt": "liver",
        "uricAcid": "kidney",
        "dheaS": "hormone",
        "progesterone": "hormone",
        "shbg": "hormone",
        "homocysteine": "other",
    }
)
