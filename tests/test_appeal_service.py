import pytest
from sqlalchemy.exc import SQLAlchemyError

from movie_poll.models.appeal import Appeal
from movie_poll.services.appeal_service import AppealService


def add_group_night_votes(add_vote, movie):
    add_vote(movie, "Ann", seen=True, vibe=2)
    add_vote(movie, "Ben", seen=True, vibe=3)
    add_vote(movie, "Cat", seen=True, vibe=2)
    add_vote(movie, "Dan", seen=True, vibe=1)
    add_vote(movie, "Eve", seen=False, vibe=3)


def test_recompute_scores_movie_from_votes(db_session, make_movie, add_vote):
    movie = make_movie("Heat")
    add_group_night_votes(add_vote, movie)

    scored = AppealService(participation_threshold=3).recompute(db_session)

    assert scored == 1
    appeal = db_session.query(Appeal).filter(Appeal.movie_id == movie.id).one()
    assert appeal.appeal_score == pytest.approx(7.1)
    assert appeal.total_votes == 5
    assert appeal.unique_voters == 5
    assert appeal.seen_count == 4
    assert appeal.visibility_ratio == pytest.approx(0.8)


def test_recompute_is_idempotent(db_session, make_movie, add_vote):
    movie = make_movie("Heat")
    add_group_night_votes(add_vote, movie)
    service = AppealService()

    service.recompute(db_session)
    first = db_session.query(Appeal.appeal_score).filter(Appeal.movie_id == movie.id).scalar()
    service.recompute(db_session)

    rows = db_session.query(Appeal).all()
    assert len(rows) == 1
    assert rows[0].appeal_score == pytest.approx(first)


def test_movies_without_votes_get_no_appeal_row(db_session, make_movie, add_vote):
    voted = make_movie("Heat")
    make_movie("Ronin")
    add_vote(voted, "Ann", seen=False, vibe=4)

    AppealService().recompute(db_session)

    assert [row.movie_id for row in db_session.query(Appeal).all()] == [voted.id]


def test_participation_threshold_is_configurable(db_session, make_movie, add_vote):
    movie = make_movie("Heat")
    add_vote(movie, "Ann", seen=False, vibe=4)
    add_vote(movie, "Ben", seen=False, vibe=4)

    AppealService(participation_threshold=3).recompute(db_session)
    assert db_session.query(Appeal.appeal_score).scalar() == 0.0

    AppealService(participation_threshold=2).recompute(db_session)
    assert db_session.query(Appeal.appeal_score).scalar() > 0.0


def test_concentration_counts_votes_per_name_across_devices(db_session, make_movie, add_vote):
    movie = make_movie("Heat")
    for device in ("phone", "laptop", "tablet", "tv"):
        add_vote(movie, "Sam", seen=False, vibe=1, device_id=device)
    add_vote(movie, "Kim", seen=False, vibe=1)

    aggregate = AppealService.aggregate_votes(db_session)[0]
    assert aggregate.unique_voters == 2
    assert aggregate.top_user_concentration == pytest.approx(0.8)

    AppealService().recompute(db_session)
    assert db_session.query(Appeal.appeal_score).scalar() == pytest.approx(1.85)


def test_failed_recompute_keeps_previous_snapshot(db_session, make_movie, add_vote, monkeypatch):
    movie = make_movie("Heat")
    add_group_night_votes(add_vote, movie)
    service = AppealService()
    service.recompute(db_session)

    def broken_aggregate(db):
        raise SQLAlchemyError("aggregate query failed")

    monkeypatch.setattr(AppealService, "aggregate_votes", staticmethod(broken_aggregate))
    add_vote(movie, "Fay", seen=False, vibe=6)

    with pytest.raises(SQLAlchemyError):
        service.recompute(db_session)

    db_session.expire_all()
    rows = db_session.query(Appeal).all()
    assert len(rows) == 1
    assert rows[0].total_votes == 5
    assert rows[0].appeal_score == pytest.approx(7.1)


def test_results_summary_ordering(db_session, make_movie, add_vote):
    able = make_movie("Able")
    zulu = make_movie("Zulu")
    echo = make_movie("Echo")
    alpha = make_movie("Alpha")
    make_movie("Unvoted")

    for name in ("Ann", "Ben", "Cat"):
        add_vote(alpha, name, seen=False, vibe=6)
    for name in ("Ann", "Ben"):
        add_vote(zulu, name, seen=False, vibe=5)
        add_vote(echo, name, seen=True, vibe=5)
    add_vote(able, "Ann", seen=False, vibe=6)

    service = AppealService(participation_threshold=3)
    service.recompute(db_session)
    results = service.get_results_summary(db_session)

    # Score desc, then total votes desc, then title asc
    assert [r["title"] for r in results] == ["Alpha", "Echo", "Zulu", "Able"]
    assert results[0]["appeal_score"] == pytest.approx(9.5)
    assert results[1]["seen_count"] == 2
    assert results[1]["not_seen_count"] == 0
    assert results[2]["not_seen_count"] == 2
    assert all(r["appeal_score"] == 0.0 for r in results[1:])


def test_results_summary_reports_zeros_before_first_recompute(db_session, make_movie, add_vote):
    movie = make_movie("Heat")
    add_vote(movie, "Ann", seen=False, vibe=4)

    results = AppealService.get_results_summary(db_session)

    assert len(results) == 1
    assert results[0]["appeal_score"] == 0.0
    assert results[0]["calculated_at"] is None


def test_voting_stats(db_session, make_movie, add_vote):
    heat = make_movie("Heat")
    ronin = make_movie("Ronin")
    make_movie("Unvoted")
    add_group_night_votes(add_vote, heat)
    add_vote(ronin, "Ann", seen=False, vibe=2)

    AppealService().recompute(db_session)
    stats = AppealService.get_voting_stats(db_session)

    assert stats["total_movies"] == 3
    assert stats["total_votes"] == 6
    assert stats["unique_voters"] == 5
    assert stats["movies_with_votes"] == 2
    assert stats["most_voted_movie"] == "Heat"
    assert stats["most_voted_count"] == 5
    # (7.1 + 0.0) / 2
    assert stats["average_appeal_score"] == pytest.approx(3.55)


def test_voting_stats_on_empty_poll(db_session):
    stats = AppealService.get_voting_stats(db_session)

    assert stats["total_votes"] == 0
    assert stats["average_appeal_score"] == 0.0
    assert stats["most_voted_movie"] == "None"
    assert stats["most_voted_count"] == 0
