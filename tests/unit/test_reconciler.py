"""Unit tests for the stat reconciler.

CRITICAL TESTS:
- A failed fetch never regresses stored data to unknown
- Unreleased movies are reset without any fetch
- An award override always beats the nomination source
"""

from datetime import date

import pytest

from bigpicture.config.award_overrides import AwardOverride
from bigpicture.services.reconciliation import MovieRecord, ReconcileStatus, StatsSnapshot
from bigpicture.services.scoring import CriterionStatus, ScoringEngine
from bigpicture.services.sources import BoxOfficeFigures
from conftest import FakeStatsStore, StubSource


def movie(movie_id: int, title: str, released: date | None = None, anticipated: date | None = None):
    return MovieRecord(
        id=movie_id,
        title=title,
        actual_release_date=released,
        anticipated_release_date=anticipated,
    )


class TestScenarios:
    """The reference scenarios."""

    @pytest.mark.asyncio
    async def test_alpha_released_last_year_all_sources_succeed(self, make_reconciler):
        store = FakeStatsStore()
        reconciler = make_reconciler(
            store,
            critic=StubSource(90),
            box_office=StubSource(BoxOfficeFigures(domestic=150_000_000)),
            awards=StubSource(3),
        )

        result = await reconciler.reconcile(movie(1, "Alpha", released=date(2025, 7, 4)))

        assert result.status == ReconcileStatus.SUCCESS
        assert result.errors == []
        stats = store.stats[1]
        assert stats.metacritic_score == 90
        assert stats.domestic_box_office == 150_000_000
        assert stats.oscar_nominations == 3
        assert result.updates == {
            "metacritic": 90,
            "boxOffice": "$150.0M",
            "oscars": "3 nominations",
        }

        score = ScoringEngine().score_stats(stats)
        assert score.box_office.status == CriterionStatus.ACHIEVED
        assert score.metacritic.status == CriterionStatus.ACHIEVED
        assert score.oscar.status == CriterionStatus.ACHIEVED
        assert score.points == 3

    @pytest.mark.asyncio
    async def test_beta_critic_error_keeps_previous_score(self, make_reconciler):
        store = FakeStatsStore(
            stats={
                2: StatsSnapshot(
                    metacritic_score=70,
                    domestic_box_office=50_000_000,
                    oscar_nominations=None,
                )
            }
        )
        reconciler = make_reconciler(
            store,
            critic=StubSource(RuntimeError("HTTP 503")),
            box_office=StubSource(None),
            awards=StubSource(0),
        )

        result = await reconciler.reconcile(movie(2, "Beta", released=date(2025, 3, 1)))

        assert result.status == ReconcileStatus.PARTIAL
        assert result.errors == ["Metacritic: HTTP 503"]
        stats = store.stats[2]
        assert stats.metacritic_score == 70, "Failed critic fetch must keep the stored score"
        assert stats.domestic_box_office == 0
        assert stats.oscar_nominations == 0
        # 50M -> 0 is a move to "absent", not a reportable change
        assert result.changes == {}

        score = ScoringEngine().score_stats(stats)
        assert score.box_office.status == CriterionStatus.PENDING
        assert score.oscar.status == CriterionStatus.FAILED
        assert score.metacritic.status == CriterionStatus.FAILED
        assert score.display_points is None

    @pytest.mark.asyncio
    async def test_gamma_unreleased_is_skipped_without_fetching(self, make_reconciler):
        critic, box, awards = StubSource(90), StubSource(None), StubSource(4)
        store = FakeStatsStore()
        reconciler = make_reconciler(store, critic, box, awards)

        result = await reconciler.reconcile(
            movie(3, "Gamma", anticipated=date(2027, 4, 17))
        )

        assert result.status == ReconcileStatus.SKIPPED
        assert result.reason == "Not released yet"
        assert store.stats[3] == StatsSnapshot()
        assert critic.calls == box.calls == awards.calls == []


class TestEligibility:
    @pytest.mark.asyncio
    async def test_unreleased_reset_overwrites_stale_values_but_keeps_wins(self, make_reconciler):
        store = FakeStatsStore(
            stats={
                4: StatsSnapshot(
                    metacritic_score=88,
                    domestic_box_office=200_000_000,
                    international_box_office=300_000_000,
                    oscar_nominations=5,
                    oscar_wins=2,
                )
            }
        )
        reconciler = make_reconciler(store)

        result = await reconciler.reconcile(movie(4, "Delta", anticipated=date(2026, 12, 25)))

        assert result.status == ReconcileStatus.SKIPPED
        assert store.stats[4] == StatsSnapshot(oscar_wins=2)

    @pytest.mark.asyncio
    async def test_unreleased_reconciliation_is_idempotent(self, make_reconciler):
        critic, box, awards = StubSource(90), StubSource(None), StubSource(4)
        store = FakeStatsStore()
        reconciler = make_reconciler(store, critic, box, awards)
        gamma = movie(3, "Gamma", anticipated=date(2027, 4, 17))

        await reconciler.reconcile(gamma)
        first = store.stats[3]
        await reconciler.reconcile(gamma)

        assert store.stats[3] == first
        assert critic.calls == box.calls == awards.calls == []

    @pytest.mark.asyncio
    async def test_release_today_counts_as_released(self, make_reconciler):
        critic = StubSource(75)
        store = FakeStatsStore()
        reconciler = make_reconciler(store, critic=critic)

        result = await reconciler.reconcile(movie(5, "Opening Day", released=date(2026, 10, 17)))

        assert result.status == ReconcileStatus.SUCCESS
        assert critic.calls == [("Opening Day", 2026)]

    @pytest.mark.asyncio
    async def test_nominations_pending_before_ceremony_year(self, make_reconciler):
        awards = StubSource(6)
        store = FakeStatsStore(stats={6: StatsSnapshot(oscar_nominations=2)})
        reconciler = make_reconciler(store, critic=StubSource(81), awards=awards)

        result = await reconciler.reconcile(movie(6, "This Year", released=date(2026, 3, 1)))

        assert awards.calls == [], "Nomination source must not be called before the ceremony year"
        assert store.stats[6].oscar_nominations is None
        assert result.updates["oscars"] == "pending"
        assert result.status == ReconcileStatus.SUCCESS
        assert result.errors == []


class TestNeverRegress:
    @pytest.mark.asyncio
    async def test_all_sources_failing_keeps_every_field(self, make_reconciler):
        previous = StatsSnapshot(
            metacritic_score=91,
            domestic_box_office=120_000_000,
            international_box_office=80_000_000,
            oscar_nominations=4,
            oscar_wins=1,
        )
        store = FakeStatsStore(stats={7: previous})
        reconciler = make_reconciler(
            store,
            critic=StubSource(RuntimeError("boom")),
            box_office=StubSource(ConnectionError("reset by peer")),
            awards=StubSource(ValueError("bad payload")),
        )

        result = await reconciler.reconcile(movie(7, "Epsilon", released=date(2024, 11, 1)))

        assert store.stats[7] == previous
        assert result.status == ReconcileStatus.PARTIAL
        assert result.errors == [
            "Metacritic: boom",
            "Box Office: reset by peer",
            "Oscars: bad payload",
        ]
        assert result.changes == {}

    @pytest.mark.asyncio
    async def test_errors_without_previous_use_neutral_defaults(self, make_reconciler):
        store = FakeStatsStore()
        reconciler = make_reconciler(
            store,
            critic=StubSource(RuntimeError("down")),
            box_office=StubSource(RuntimeError("down")),
            awards=StubSource(RuntimeError("down")),
        )

        result = await reconciler.reconcile(movie(8, "Zeta", released=date(2024, 5, 5)))

        assert result.status == ReconcileStatus.PARTIAL
        assert store.stats[8] == StatsSnapshot()

    @pytest.mark.asyncio
    async def test_timeout_is_an_error_not_absence(self, make_reconciler):
        store = FakeStatsStore(stats={9: StatsSnapshot(metacritic_score=66)})
        slow = StubSource(10, delay=0.5, timeout_seconds=0.05)
        reconciler = make_reconciler(store, critic=slow)

        result = await reconciler.reconcile(movie(9, "Eta", released=date(2024, 5, 5)))

        assert store.stats[9].metacritic_score == 66
        assert result.errors == ["Metacritic: timed out after 0.05s"]

    @pytest.mark.asyncio
    async def test_one_failing_source_does_not_block_the_others(self, make_reconciler):
        box = StubSource(BoxOfficeFigures(domestic=101_000_000, international=5_000_000))
        awards = StubSource(2)
        store = FakeStatsStore()
        reconciler = make_reconciler(
            store, critic=StubSource(RuntimeError("nope")), box_office=box, awards=awards
        )

        await reconciler.reconcile(movie(10, "Theta", released=date(2024, 5, 5)))

        assert box.calls and awards.calls
        assert store.stats[10].domestic_box_office == 101_000_000
        assert store.stats[10].international_box_office == 5_000_000
        assert store.stats[10].oscar_nominations == 2


class TestOverrides:
    @pytest.mark.asyncio
    async def test_override_replaces_nomination_source(self, make_reconciler):
        awards = StubSource(2)
        store = FakeStatsStore()
        overrides = {("Sinners", 2025): AwardOverride("Sinners", 2025, 16)}
        reconciler = make_reconciler(store, awards=awards, overrides=overrides)

        result = await reconciler.reconcile(movie(11, "Sinners", released=date(2025, 4, 18)))

        assert awards.calls == []
        assert store.stats[11].oscar_nominations == 16
        assert result.updates["oscars"] == "16 nominations (override)"

    @pytest.mark.asyncio
    async def test_override_applies_even_while_nominations_are_pending(self, make_reconciler):
        awards = StubSource(0)
        store = FakeStatsStore()
        overrides = {("Early Bird", 2026): AwardOverride("Early Bird", 2026, 3)}
        reconciler = make_reconciler(store, awards=awards, overrides=overrides)

        await reconciler.reconcile(movie(12, "Early Bird", released=date(2026, 2, 1)))

        assert awards.calls == []
        assert store.stats[12].oscar_nominations == 3

    @pytest.mark.asyncio
    async def test_override_requires_matching_year(self, make_reconciler):
        awards = StubSource(1)
        store = FakeStatsStore()
        overrides = {("Sinners", 2025): AwardOverride("Sinners", 2025, 16)}
        reconciler = make_reconciler(store, awards=awards, overrides=overrides)

        await reconciler.reconcile(movie(13, "Sinners", released=date(2024, 4, 18)))

        assert awards.calls == [("Sinners", 2024)]
        assert store.stats[13].oscar_nominations == 1


class TestChangesAndPersistence:
    @pytest.mark.asyncio
    async def test_changes_recorded_between_present_values(self, make_reconciler):
        store = FakeStatsStore(
            stats={
                14: StatsSnapshot(
                    metacritic_score=80,
                    domestic_box_office=90_000_000,
                    international_box_office=10_000_000,
                    oscar_nominations=2,
                )
            }
        )
        reconciler = make_reconciler(
            store,
            critic=StubSource(86),
            box_office=StubSource(
                BoxOfficeFigures(domestic=120_000_000, international=10_000_000)
            ),
            awards=StubSource(3),
        )

        result = await reconciler.reconcile(movie(14, "Iota", released=date(2025, 1, 10)))

        assert result.changes == {
            "Metacritic Score": {"old": 80, "new": 86},
            "Domestic Box Office": {"old": 90_000_000, "new": 120_000_000},
            "Oscar Nominations": {"old": 2, "new": 3},
        }

    @pytest.mark.asyncio
    async def test_database_failure_marks_movie_failed(self, make_reconciler):
        store = FakeStatsStore(fail_upsert_for={15})
        reconciler = make_reconciler(store, critic=StubSource(90), awards=StubSource(1))

        result = await reconciler.reconcile(movie(15, "Kappa", released=date(2025, 1, 10)))

        assert result.status == ReconcileStatus.FAILED
        assert result.errors == ["Database: connection refused"]
        assert not result.wrote_stats
        assert 15 not in store.stats

    @pytest.mark.asyncio
    async def test_failed_reset_of_unreleased_movie_is_failed(self, make_reconciler):
        store = FakeStatsStore(fail_upsert_for={16})
        reconciler = make_reconciler(store)

        result = await reconciler.reconcile(movie(16, "Lambda", anticipated=date(2027, 1, 1)))

        assert result.status == ReconcileStatus.FAILED
        assert result.errors == ["Database: connection refused"]

    @pytest.mark.asyncio
    async def test_result_dict_shape(self, make_reconciler):
        store = FakeStatsStore()
        reconciler = make_reconciler(store)

        skipped = await reconciler.reconcile(movie(17, "Mu", anticipated=date(2027, 1, 1)))
        done = await reconciler.reconcile(movie(18, "Nu", released=date(2024, 1, 1)))

        assert skipped.to_dict() == {
            "title": "Mu",
            "status": "skipped",
            "errors": [],
            "updates": {},
            "changes": {},
            "reason": "Not released yet",
        }
        assert "reason" not in done.to_dict()
        assert done.to_dict()["status"] == "success"


class TestInternationalGross:
    @pytest.mark.asyncio
    async def test_unknown_international_keeps_stored_figure(self, make_reconciler):
        store = FakeStatsStore(
            stats={
                19: StatsSnapshot(
                    domestic_box_office=140_000_000,
                    international_box_office=260_000_000,
                )
            }
        )
        reconciler = make_reconciler(
            store,
            box_office=StubSource(BoxOfficeFigures(domestic=150_000_000, international=None)),
        )

        result = await reconciler.reconcile(movie(19, "Xi", released=date(2025, 2, 2)))

        assert store.stats[19].domestic_box_office == 150_000_000
        assert store.stats[19].international_box_office == 260_000_000
        assert result.status == ReconcileStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_unknown_international_without_history_is_zero(self, make_reconciler):
        store = FakeStatsStore()
        reconciler = make_reconciler(
            store,
            box_office=StubSource(BoxOfficeFigures(domestic=150_000_000, international=None)),
        )

        await reconciler.reconcile(movie(20, "Omicron", released=date(2025, 2, 2)))

        assert store.stats[20].international_box_office == 0
        assert store.stats[20].domestic_box_office == 150_000_000
