"""Tests for mapping raw Raid-Helper signups onto canonical roles."""
import pytest

from src.classification.role_classifier import ROLE_RULES, RoleClassifier, match_role
from src.models.enums import CanonicalRole
from src.models.signup import RawSignupEntry


def entry(role=None, cls=None, status=None, spec=None) -> RawSignupEntry:
    return RawSignupEntry(roleName=role, className=cls, status=status, specName=spec)


@pytest.fixture
def classifier():
    return RoleClassifier()


class TestRuleOrder:
    """The rule table order is part of the contract."""

    def test_table_order(self):
        assert [role for _, _, role in ROLE_RULES] == [
            CanonicalRole.TANK,
            CanonicalRole.HEALER,
            CanonicalRole.RANGED_DPS,
            CanonicalRole.MELEE_DPS,
            CanonicalRole.RANGED_DPS,
        ]

    @pytest.mark.parametrize(
        "key, expected",
        [
            ("tanks", CanonicalRole.TANK),
            ("tank healer", CanonicalRole.TANK),
            ("healers", CanonicalRole.HEALER),
            ("healer (ranged)", CanonicalRole.HEALER),
            ("melee healer", CanonicalRole.HEALER),
            ("ranged", CanonicalRole.RANGED_DPS),
            ("ranged / melee flex", CanonicalRole.RANGED_DPS),
            ("rdps", CanonicalRole.RANGED_DPS),
            ("range", CanonicalRole.RANGED_DPS),
            ("melee", CanonicalRole.MELEE_DPS),
            ("mdps", CanonicalRole.MELEE_DPS),
            ("dps", CanonicalRole.RANGED_DPS),
            ("damage", CanonicalRole.RANGED_DPS),
        ],
    )
    def test_first_match_wins(self, key, expected):
        assert match_role(key) is expected

    @pytest.mark.parametrize("key", ["", "support", "dps main", "orange", "rogue"])
    def test_unrecognized_keys(self, key):
        assert match_role(key) is None


class TestClassify:
    def test_role_field_is_preferred(self, classifier):
        result = classifier.classify(entry(role="Tanks", cls="Ranged"))
        assert result.role is CanonicalRole.TANK

    def test_blank_role_falls_back_to_class_field(self, classifier):
        result = classifier.classify(entry(role="   ", cls="Melee"))
        assert result.role is CanonicalRole.MELEE_DPS

    def test_class_melee_without_status_is_melee_dps(self, classifier):
        result = classifier.classify(entry(cls="Melee"))
        assert result is not None
        assert result.role is CanonicalRole.MELEE_DPS

    @pytest.mark.parametrize("cls", ["Bench", "bench", " Late ", "Tentative", "ABSENCE"])
    def test_ignored_classes_are_discarded_whatever_the_role(self, classifier, cls):
        assert classifier.classify(entry(role="Tanks", cls=cls, status="primary")) is None

    @pytest.mark.parametrize("status", ["declined", "Cancelled", "canceled", "tentative"])
    def test_non_participating_status_is_discarded(self, classifier, status):
        assert classifier.classify(entry(role="Healers", status=status)) is None

    @pytest.mark.parametrize("status", [None, "", "primary", "queued", "something new"])
    def test_missing_or_unknown_status_counts(self, classifier, status):
        assert classifier.classify(entry(role="Ranged", status=status)) is not None

    def test_melee_healer_split_uses_spec(self, classifier):
        assert classifier.classify(entry(role="Healers", spec="Mistweaver")).melee_healer
        assert classifier.classify(entry(role="Healers", spec=" holy ")).melee_healer
        assert not classifier.classify(entry(role="Healers", spec="Restoration")).melee_healer
        assert not classifier.classify(entry(role="Healers")).melee_healer

    def test_custom_melee_healer_specs(self):
        classifier = RoleClassifier(melee_healer_specs={"Restoration"})
        assert classifier.classify(entry(role="Healers", spec="restoration")).melee_healer
        assert not classifier.classify(entry(role="Healers", spec="Mistweaver")).melee_healer

    def test_custom_excluded_statuses(self):
        classifier = RoleClassifier(excluded_statuses={"Queued"})
        assert classifier.classify(entry(role="Tanks", status="queued")) is None
        assert classifier.classify(entry(role="Tanks", status="declined")) is not None

    def test_unrecognized_role_is_discarded(self, classifier):
        assert classifier.classify(entry(role="Support", cls="Evoker")) is None


class TestCount:
    def test_full_roster(self, classifier, full_roster_signups):
        entries = [RawSignupEntry.model_validate(s) for s in full_roster_signups]
        counts = classifier.count(entries)
        assert (counts.tanks, counts.healers, counts.melee_dps, counts.ranged_dps) == (2, 4, 5, 5)
        assert (counts.melee_healers, counts.ranged_healers) == (1, 3)

    def test_classification_is_a_partition(self, classifier):
        entries = [
            entry(role="Tanks"),
            entry(role="Tank Healer"),
            entry(role="Healers", spec="Holy"),
            entry(role="Healers", status="declined"),
            entry(cls="Melee"),
            entry(cls="Ranged"),
            entry(role="DPS"),
            entry(role="Melee", cls="Bench"),
            entry(role="Flex"),
            entry(),
        ]
        counts = classifier.count(entries)
        counted = counts.tanks + counts.healers + counts.melee_dps + counts.ranged_dps
        discarded = sum(1 for e in entries if classifier.classify(e) is None)
        assert counted + discarded == len(entries)
        assert (counts.tanks, counts.healers, counts.melee_dps, counts.ranged_dps) == (2, 1, 1, 2)

    def test_healer_split_always_adds_up(self, classifier):
        specs = ["Holy", "Discipline", "Mistweaver", None, "Restoration", "Holy1"]
        counts = classifier.count(entry(role="Healers", spec=s) for s in specs)
        assert counts.healers == 6
        assert counts.melee_healers + counts.ranged_healers == counts.healers

    def test_empty_signups(self, classifier):
        counts = classifier.count([])
        assert counts.healers == 0 and counts.dps == 0

    def test_raw_payload_aliases_and_extra_keys(self):
        raw = RawSignupEntry.model_validate(
            {"name": "Zug", "roleName": "Melee", "className": "Warrior", "position": 3, "userId": "1"}
        )
        assert raw.role_name == "Melee"
        assert raw.class_name == "Warrior"
        assert raw.status is None


class TestLogging:
    def test_discarded_signups_are_logged_by_name(self, classifier):
        from loguru import logger

        messages = []
        sink_id = logger.add(messages.append, level="DEBUG", format="{message}")
        try:
            classifier.count([RawSignupEntry(name="Benchwarmer", roleName="Tanks", className="Bench")])
        finally:
            logger.remove(sink_id)

        assert any("Benchwarmer" in m for m in messages)
