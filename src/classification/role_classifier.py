import re
from typing import Callable, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Tuple

from loguru import logger

from src.models.enums import CanonicalRole
from src.models.signup import RawSignupEntry
from src.models.summary import CanonicalCounts

# Raid-Helper's special buckets: people who are not playing in the raid
IGNORED_CLASSES: FrozenSet[str] = frozenset({"late", "bench", "tentative", "absence"})

DEFAULT_EXCLUDED_STATUSES: FrozenSet[str] = frozenset(
    {"declined", "cancelled", "canceled", "absence", "absent", "bench", "late", "tentative"}
)

DEFAULT_MELEE_HEALER_SPECS: FrozenSet[str] = frozenset({"mistweaver", "holy1", "holy"})

GENERIC_DPS_KEYS: FrozenSet[str] = frozenset({"dps", "damage"})


def _tokens(key: str) -> List[str]:
    return [token for token in re.split(r"[^a-z0-9]+", key) if token]


RolePredicate = Callable[[str], bool]

# Evaluated top to bottom, first match wins. "Tank Healer" is a tank and
# "Healer (Ranged)" is a healer because of this ordering.
ROLE_RULES: Tuple[Tuple[str, RolePredicate, CanonicalRole], ...] = (
    ("contains 'tank'", lambda key: "tank" in key, CanonicalRole.TANK),
    ("contains 'heal'", lambda key: "heal" in key, CanonicalRole.HEALER),
    (
        "contains 'ranged' or token 'range'/'rdps'",
        lambda key: "ranged" in key or bool({"range", "rdps"} & set(_tokens(key))),
        CanonicalRole.RANGED_DPS,
    ),
    (
        "contains 'melee' or token 'mdps'",
        lambda key: "melee" in key or "mdps" in _tokens(key),
        CanonicalRole.MELEE_DPS,
    ),
    # Undifferentiated DPS would otherwise vanish from the counts
    ("equals 'dps'/'damage'", lambda key: key in GENERIC_DPS_KEYS, CanonicalRole.RANGED_DPS),
)


class Classification(NamedTuple):
    role: CanonicalRole
    melee_healer: bool = False


def _clean(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def match_role(key: str) -> Optional[CanonicalRole]:
    """Applies ROLE_RULES to an already-normalized classification key."""
    for _description, predicate, role in ROLE_RULES:
        if predicate(key):
            return role
    return None


class RoleClassifier:
    """Maps raw Raid-Helper signups onto the four canonical role buckets."""

    def __init__(
        self,
        melee_healer_specs: Iterable[str] = DEFAULT_MELEE_HEALER_SPECS,
        excluded_statuses: Iterable[str] = DEFAULT_EXCLUDED_STATUSES,
    ):
        self.melee_healer_specs = frozenset(_clean(s) for s in melee_healer_specs)
        self.excluded_statuses = frozenset(_clean(s) for s in excluded_statuses)

    def classify(self, entry: RawSignupEntry) -> Optional[Classification]:
        """Returns the entry's bucket, or None when it must not be counted."""
        class_name = _clean(entry.class_name)
        if class_name in IGNORED_CLASSES:
            return None

        # A missing or unknown status counts as a normal signup
        status = _clean(entry.status)
        if status and status in self.excluded_statuses:
            return None

        key = _clean(entry.role_name) or class_name
        role = match_role(key)
        if role is None:
            return None

        if role is CanonicalRole.HEALER:
            return Classification(role, _clean(entry.spec_name) in self.melee_healer_specs)
        return Classification(role)

    def count(self, entries: Iterable[RawSignupEntry]) -> CanonicalCounts:
        tally: Dict[str, int] = {
            "tanks": 0,
            "healers": 0,
            "melee_dps": 0,
            "ranged_dps": 0,
            "melee_healers": 0,
            "ranged_healers": 0,
        }
        discarded = 0
        for entry in entries:
            result = self.classify(entry)
            if result is None:
                discarded += 1
                logger.debug(
                    f"Not counting {entry.name or 'unnamed signup'}: "
                    f"role={entry.role_name!r} class={entry.class_name!r} status={entry.status!r}"
                )
                continue
            if result.role is CanonicalRole.TANK:
                tally["tanks"] += 1
            elif result.role is CanonicalRole.HEALER:
                tally["healers"] += 1
                tally["melee_healers" if result.melee_healer else "ranged_healers"] += 1
            elif result.role is CanonicalRole.MELEE_DPS:
                tally["melee_dps"] += 1
            else:
                tally["ranged_dps"] += 1

        if discarded:
            logger.debug(f"Discarded {discarded} signup(s) with no countable role")
        return CanonicalCounts(**tally)
