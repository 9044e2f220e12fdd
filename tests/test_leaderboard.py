"""
Tests for the leaderboard cache and the read-time overlay of the
current user's live standing.
"""
from uuid import uuid4

import pytest

from models import GroupMember
from services.leaderboard import (
    ANONYMOUS_MEMBER_NAME,
    CURRENT_USER_FALLBACK_NAME,
    compute_standing,
    fetch_group_members,
    get_member,
    ordinal_rank,
    overlay_current_user,
    sync_member_score,
    upsert_member,
)


def _member(username, score, badges=None, user_id=None):
    return GroupMember(
        user_id=user_id or uuid4(),
        group_id="global",
        username=username,
        score=score,
        badges=badges or [],
    )


class TestOrdinalRank:
    @pytest.mark.parametrize("rank,expected", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
        (11, "11th"), (12, "12th"), (13, "13th"),
        (21, "21st"), (22, "22nd"), (23, "23rd"), (101, "101st"), (111, "111th"),
    ])
    def test_suffixes(self, rank, expected):
        assert ordinal_rank(rank) == expected


class TestOverlayCurrentUser:
    def test_current_user_row_uses_live_values(self):
        me = uuid4()
        members = [_member("rival", 10.0), _member("me", 3.0, user_id=me)]

        standings = overlay_current_user(members, me, score=12.0, badges=["Best Striker"], username="me")

        assert [s.name for s in standings] == ["me", "rival"]
        top = standings[0]
        assert top.is_current_user
        assert top.score == 12.0
        assert top.badges == ["Best Striker"]
        assert (top.rank, top.ordinal) == (1, "1st")
        assert (standings[1].rank, standings[1].ordinal) == (2, "2nd")

    def test_cached_rows_are_not_modified(self):
        me = uuid4()
        cached = _member("me", 3.0, user_id=me)
        overlay_current_user([cached], me, score=9.0, badges=[], username="me")
        assert cached.score == 3.0

    def test_missing_current_user_is_appended(self):
        me = uuid4()
        standings = overlay_current_user([_member("rival", 1.0)], me, score=0.0, badges=[], username=None)

        assert len(standings) == 2
        mine = standings[-1]
        assert mine.is_current_user
        assert mine.name == CURRENT_USER_FALLBACK_NAME

    def test_anonymous_members_hidden(self):
        me = uuid4()
        members = [_member(None, 50.0), _member("named", 2.0)]
        standings = overlay_current_user(members, me, score=1.0, badges=[], username="me")
        assert ANONYMOUS_MEMBER_NAME not in [s.name for s in standings]
        assert [s.name for s in standings] == ["named", "me"]

    def test_ties_keep_cache_order(self):
        me = uuid4()
        members = [_member("first", 5.0), _member("second", 5.0)]
        standings = overlay_current_user(members, me, score=0.0, badges=[], username="me")
        assert [s.name for s in standings] == ["first", "second", "me"]


class TestMemberPersistence:
    def test_compute_standing(self, db_session, test_user, add_sessions):
        add_sessions(test_user, [
            ("2025-01-06", "Wrestling", 1.0),
            ("2025-01-07", "Wrestling", 1.5),
            ("2025-01-08", "Wrestling", 2.0),
        ])
        score, badges = compute_standing(db_session, test_user.id)
        assert score == 4.5
        assert badges == ["Best Wrestler"]

    def test_upsert_member_last_write_wins(self, db_session, test_user):
        upsert_member(db_session, test_user.id, "global", "fighter", 1.0, [])
        upsert_member(db_session, test_user.id, "global", "fighter", 7.5, ["Best Wrestler"])
        db_session.commit()

        rows = fetch_group_members(db_session, "global")
        assert len(rows) == 1
        assert rows[0].score == 7.5
        assert rows[0].badges == ["Best Wrestler"]

    def test_fetch_sorted_by_score(self, db_session, make_user, add_member):
        add_member(make_user(), "low", score=1.0)
        add_member(make_user(), "high", score=9.0)
        add_member(make_user(), "mid", score=4.0)
        assert [m.username for m in fetch_group_members(db_session, "global")] == ["high", "mid", "low"]

    def test_sync_skipped_without_username(self, db_session, test_user, add_sessions):
        add_sessions(test_user, [("2025-01-06", "Boxing", 1.0)])

        assert sync_member_score(db_session, test_user.id, "global") is False
        assert get_member(db_session, test_user.id, "global") is None

    def test_sync_recomputes_from_sessions(self, db_session, test_user, add_sessions, add_member):
        add_member(test_user, "fighter", score=0.0)
        add_sessions(test_user, [("2025-01-06", "Boxing", 2.0), ("2025-01-07", "BJJ", 1.5)])

        assert sync_member_score(db_session, test_user.id, "global") is True
        db_session.commit()

        member = get_member(db_session, test_user.id, "global")
        assert member.username == "fighter"
        assert member.score == 3.5
