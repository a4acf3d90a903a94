"""Tests for the pioneer counter."""

from taumine.pioneers.service import PioneerStatsService


class TestPioneerStats:
    """Test counter maintenance and reporting."""

    def test_row_created_on_demand(self, session):
        row = PioneerStatsService(session).ensure_row()

        assert row.id == 1
        assert (row.total_pioneers, row.genesis_pioneers) == (0, 0)

    def test_increment(self, session):
        service = PioneerStatsService(session)

        service.increment_pioneer_stats(is_genesis=True)
        row = service.increment_pioneer_stats(is_genesis=False)

        assert (row.total_pioneers, row.genesis_pioneers) == (2, 1)

    def test_refresh_recounts_profiles(self, session, make_profile):
        make_profile()
        make_profile(is_genesis_pioneer=False)
        service = PioneerStatsService(session)
        service.increment_pioneer_stats(is_genesis=True)

        row = service.refresh_pioneer_stats()

        assert (row.total_pioneers, row.genesis_pioneers) == (2, 1)

    def test_next_pioneer_number(self, session, make_profile):
        make_profile()
        make_profile()

        assert PioneerStatsService(session).next_pioneer_number() == 3

    def test_extended_stats(self, session):
        service = PioneerStatsService(session, genesis_limit=4)
        service.increment_pioneer_stats(is_genesis=True)

        stats = service.get_extended_pioneer_stats()

        assert stats.genesis_limit == 4
        assert stats.genesis_remaining == 3
        assert stats.genesis_percentage == 25.0
        assert service.api_get_pioneer_stats() == {
            "total_pioneers": 1,
            "genesis_pioneers": 1,
            "genesis_limit": 4,
            "genesis_remaining": 3,
        }

    def test_status_message(self, session, make_profile):
        service = PioneerStatsService(session, genesis_limit=10_000)

        genesis = make_profile(pioneer_number=42)
        late = make_profile(pioneer_number=10_001, is_genesis_pioneer=False)
        unnumbered = make_profile(pioneer_number=None)

        assert service.get_pioneer_status_message(genesis) == "You are Genesis Pioneer #42 of 10,000."
        assert "Pioneer #10,001" in service.get_pioneer_status_message(late)
        assert "not been assigned" in service.get_pioneer_status_message(unnumbered)
