"""
Machine type normalization.

Billing records name instance types differently from the compute API
("BASIC.A2" vs "Basic_A2") and price whole groups of sizes with a single meter
(premium storage and constrained core sizes share the price of the base size).
The normalizer canonicalizes billing names and expands a canonical name into
the sizes that share its price.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Pattern, Sequence, Tuple


def add_suffix(machine_type: str, *suffixes: str) -> List[str]:
    """
    Insert each suffix after the size part of a machine type.

    The size part is the second '_' separated part; any version or promo parts
    after it are kept in place, e.g. 'Standard_D2_v2' + 's' -> 'Standard_D2s_v2'.

    Args:
        machine_type: Canonical machine type
        suffixes: Suffixes to insert, one result per suffix

    Returns:
        List of machine types, in suffix order
    """
    parts = machine_type.split("_")
    if len(parts) < 2:
        return [machine_type + s for s in suffixes]
    tail = "".join("_" + p for p in parts[2:])
    return [f"{parts[0]}_{parts[1]}{s}{tail}" for s in suffixes]


def _title_basic(machine_type: str) -> str:
    tier, size = machine_type.split(".", 1)
    return tier.lower().title() + "_" + size


def _standard_prefix(machine_type: str) -> str:
    return "Standard_" + machine_type


def _b_variants(mt: str) -> List[str]:
    return [mt + "s"]


def _d_variants(mt: str) -> List[str]:
    ds_type = mt.replace("Standard_D", "Standard_DS")
    return add_suffix(mt, "s") + [ds_type] + add_suffix(ds_type, "-1", "-2", "-4", "-8")


def _e_variants(mt: str) -> List[str]:
    return add_suffix(mt, "s", "-2s", "-4s", "-8s", "-16s", "-32s")


def _s_variant(mt: str) -> List[str]:
    return add_suffix(mt, "s")


def _g_variants(mt: str) -> List[str]:
    gs_type = mt.replace("Standard_G", "Standard_GS")
    return [gs_type] + add_suffix(gs_type, "-4", "-8", "-16")


def _m_variants(mt: str) -> List[str]:
    if mt.endswith("ms"):
        return add_suffix(mt[:-len("ms")], "-2ms", "-4ms", "-8ms", "-16ms", "-32ms")
    if mt.endswith("ls") or mt.endswith("ts"):
        return []
    if mt.endswith("s"):
        return add_suffix(mt[:-len("s")], "", "m")
    return []


@dataclass(frozen=True)
class MachineTypeRule:
    """A named family pattern and the function applied to its members."""
    name: str
    pattern: Pattern[str]
    apply: Callable[[str], object]

    def matches(self, machine_type: str) -> bool:
        return self.pattern.match(machine_type) is not None


def _rule(name: str, pattern: str, apply: Callable[[str], object]) -> MachineTypeRule:
    return MachineTypeRule(name, re.compile(pattern), apply)


# Billing name -> canonical name, first match wins
DEFAULT_CLASSIFICATION_RULES: Tuple[MachineTypeRule, ...] = (
    _rule("basic", r"^BASIC\.A\d+[_Promo]*$", _title_basic),
    _rule("standard-a", r"^A\d+[_Promo]*$", _standard_prefix),
)

# Canonical name -> same-priced sizes, the first matching family owns the name
DEFAULT_VARIANT_RULES: Tuple[MachineTypeRule, ...] = (
    _rule("B", r"^Standard_B\d+m?[_v\d]*[_Promo]*$", _b_variants),
    _rule("D", r"^Standard_D\d[_v\d]*[_Promo]*$", _d_variants),
    _rule("E", r"^Standard_E\d+i?[_v\d]*[_Promo]*$", _e_variants),
    _rule("F", r"^Standard_F\d+[_v\d]*[_Promo]*$", _s_variant),
    _rule("G", r"^Standard_G\d+[_v\d]*[_Promo]*$", _g_variants),
    _rule("L", r"^Standard_L\d+[_v\d]*[_Promo]*$", _s_variant),
    _rule("M", r"^Standard_M\d+[mtl]*s[_v\d]*[_Promo]*$", _m_variants),
    _rule("N", r"^Standard_N[CDV]\d+r?[_v\d]*[_Promo]*$", _s_variant),
)


class MachineTypeNormalizer:
    """Canonicalizes billing machine type names and expands them into variants."""

    def __init__(
        self,
        classification_rules: Sequence[MachineTypeRule] = DEFAULT_CLASSIFICATION_RULES,
        variant_rules: Sequence[MachineTypeRule] = DEFAULT_VARIANT_RULES,
    ):
        self.classification_rules = tuple(classification_rules)
        self.variant_rules = tuple(variant_rules)

    def family(self, machine_type: str) -> str:
        """Name of the variant family owning a canonical machine type, '' if none."""
        for rule in self.variant_rules:
            if rule.matches(machine_type):
                return rule.name
        return ""

    def classify(self, machine_type: str) -> str:
        """
        Canonicalize a billing machine type name.

        Args:
            machine_type: Name as it appears in the billing record (e.g., 'BASIC.A2')

        Returns:
            Canonical name (e.g., 'Basic_A2'); unmatched names are returned unchanged
        """
        for rule in self.classification_rules:
            if rule.matches(machine_type):
                return rule.apply(machine_type)
        return machine_type

    def variants(self, machine_type: str) -> List[str]:
        """
        Machine types priced identically to a canonical machine type.

        Args:
            machine_type: Canonical name (e.g., 'Standard_D2')

        Returns:
            Variant names, without the canonical name itself; empty for unknown families
        """
        for rule in self.variant_rules:
            if rule.matches(machine_type):
                return list(rule.apply(machine_type))
        return []
