import sqlite3

import pytest

from brewbot.db import Database


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "bot.db"))
    yield database
    database.close()


def _brew_in_channel(db, guild="g1", channel="c1", brewer="u1", name="Alice", date="March 15"):
    brew_id = db.create_brew(guild, brewer, name, date)
    db.set_brew_channel(brew_id, channel)
    return brew_id


def test_reopening_existing_database_migrates_cleanly(tmp_path):
    path = str(tmp_path / "bot.db")
    with Database(path) as first:
        first.set_config("g1", "k", "v")
    with Database(path) as second:
        assert second.get_config("g1", "k") == "v"


def test_context_manager_closes_connection(tmp_path):
    with Database(str(tmp_path / "bot.db")) as database:
        database.set_config("g1", "k", "v")
    with pytest.raises(sqlite3.ProgrammingError):
        database.get_config("g1", "k")


def test_config_missing_is_empty_string(db):
    assert db.get_config("g1", "blackboard_channel_id") == ""


def test_config_round_trip_and_overwrite(db):
    db.set_config("g1", "blackboard_channel_id", "ch1")
    db.set_config("g1", "blackboard_channel_id", "ch2")
    db.set_config("g2", "blackboard_channel_id", "other")
    assert db.get_config("g1", "blackboard_channel_id") == "ch2"
    assert db.get_config("g2", "blackboard_channel_id") == "other"


def test_rotation_order_and_next_brewer(db):
    db.add_rotation_member("g1", "u1", "alice")
    db.add_rotation_member("g1", "u2", "bob")
    members = db.get_rotation("g1")
    assert [m.user_id for m in members] == ["u1", "u2"]
    assert all(m.active for m in members)
    assert members[0].position < members[1].position
    assert db.next_brewer("g1").user_id == "u1"


def test_next_brewer_empty_rotation(db):
    assert db.next_brewer("g1") is None
    assert db.get_rotation("g1") == []


def test_skip_moves_member_to_end(db):
    for uid in ("u1", "u2", "u3"):
        db.add_rotation_member("g1", uid, uid.upper())
    db.skip_brewer("g1", "u1")
    assert [m.user_id for m in db.get_rotation("g1")] == ["u2", "u3", "u1"]
    assert db.next_brewer("g1").user_id == "u2"


def test_readding_member_updates_name_keeps_position(db):
    db.add_rotation_member("g1", "u1", "alice")
    db.add_rotation_member("g1", "u2", "bob")
    db.add_rotation_member("g1", "u1", "alice2")
    members = db.get_rotation("g1")
    assert [(m.user_id, m.username) for m in members] == [("u1", "alice2"), ("u2", "bob")]


def test_rotation_is_per_guild(db):
    db.add_rotation_member("g1", "u1", "alice")
    db.add_rotation_member("g2", "u2", "bob")
    assert [m.user_id for m in db.get_rotation("g2")] == ["u2"]


def test_proposed_dates_order_and_clear(db):
    db.add_proposed_dates("g1", "alice", ["March 15", "March 22"])
    db.add_proposed_dates("g1", "bob", ["March 15"])
    db.add_proposed_dates("g2", "carol", ["April 1"])
    got = db.get_proposed_dates("g1")
    assert [(p.date, p.proposed_by) for p in got] == [
        ("March 15", "alice"),
        ("March 22", "alice"),
        ("March 15", "bob"),
    ]
    db.clear_proposed_dates("g1")
    assert db.get_proposed_dates("g1") == []
    assert len(db.get_proposed_dates("g2")) == 1


def test_poll_lifecycle(db):
    poll_id = db.create_poll("g1", "chan")
    poll = db.get_open_poll("g1")
    assert poll.id == poll_id
    assert poll.status == "open"
    assert poll.message_id == ""
    assert poll.winning_date == ""

    db.set_poll_message(poll_id, "msg1")
    db.add_poll_option(poll_id, "1️⃣", "March 15")
    db.add_poll_option(poll_id, "2️⃣", "March 22")

    found, options = db.get_poll_by_message("msg1")
    assert found.id == poll_id
    assert found.channel_id == "chan"
    assert [(o.emoji, o.date) for o in options] == [("1️⃣", "March 15"), ("2️⃣", "March 22")]

    db.close_poll(poll_id, "March 22")
    assert db.get_open_poll("g1") is None
    closed, _ = db.get_poll_by_message("msg1")
    assert closed.status == "closed"
    assert closed.winning_date == "March 22"


def test_get_poll_by_unknown_message(db):
    assert db.get_poll_by_message("missing") == (None, [])


def test_open_poll_returns_latest(db):
    db.create_poll("g1", "a")
    latest = db.create_poll("g1", "b")
    assert db.get_open_poll("g1").id == latest


def test_brew_channel_and_fields(db):
    brew_id = db.create_brew("g1", "u1", "alice", "March 15")
    assert db.get_brew_by_channel("c1") is None
    db.set_brew_channel(brew_id, "c1")
    brew = db.get_brew_by_channel("c1")
    assert brew.id == brew_id
    assert brew.status == "active"
    assert brew.name == ""
    assert brew.stats_message_id == ""
    assert brew.date == "March 15"

    db.set_brew_name(brew_id, "Hazy IPA")
    db.set_brew_stats_message(brew_id, "m9")
    db.complete_brew(brew_id)
    brew = db.get_brew_by_channel("c1")
    assert (brew.name, brew.stats_message_id, brew.status) == ("Hazy IPA", "m9", "complete")


def test_recipe_upsert_replaces(db):
    brew_id = _brew_in_channel(db)
    assert db.get_recipe(brew_id) is None
    db.upsert_recipe(brew_id, "IPA", 1.065, 0, 0, "hops", "notes")
    db.upsert_recipe(brew_id, "Stout", 1.070, 0, 0, "", "")
    recipe = db.get_recipe(brew_id)
    assert recipe.style == "Stout"
    assert recipe.og == pytest.approx(1.070)
    assert recipe.fg == 0.0
    assert recipe.ingredients == ""


def test_set_final_gravity_computes_abv(db):
    brew_id = _brew_in_channel(db)
    db.upsert_recipe(brew_id, "IPA", 1.060, 0, 0, "", "")
    abv = db.set_final_gravity(brew_id, 1.010)
    assert abv == pytest.approx(6.5625)
    recipe = db.get_recipe(brew_id)
    assert recipe.fg == pytest.approx(1.010)
    assert recipe.abv == pytest.approx(abv)


def test_set_final_gravity_not_below_og_gives_zero(db):
    brew_id = _brew_in_channel(db)
    db.upsert_recipe(brew_id, "", 1.010, 0, 0, "", "")
    assert db.set_final_gravity(brew_id, 1.020) == 0.0


def test_set_final_gravity_without_recipe_raises(db):
    brew_id = _brew_in_channel(db)
    with pytest.raises(LookupError):
        db.set_final_gravity(brew_id, 1.010)


def test_rating_upsert_updates_existing(db):
    brew_id = _brew_in_channel(db)
    db.upsert_rating(brew_id, "u1", "alice", 3, "ok")
    db.upsert_rating(brew_id, "u2", "bob", 5, "")
    db.upsert_rating(brew_id, "u1", "alice", 4, "better")
    ratings = db.get_ratings(brew_id)
    assert [(r.user_id, r.rating, r.notes) for r in ratings] == [
        ("u1", 4, "better"),
        ("u2", 5, ""),
    ]


@pytest.mark.parametrize("bad", [0, 6])
def test_rating_out_of_range_rejected(db, bad):
    brew_id = _brew_in_channel(db)
    with pytest.raises(sqlite3.IntegrityError):
        db.upsert_rating(brew_id, "u1", "alice", bad, "")


def test_blackboard_lists_completed_brews_newest_first(db):
    old = _brew_in_channel(db, channel="c1")
    active = _brew_in_channel(db, channel="c2")
    new = _brew_in_channel(db, channel="c3")
    db.set_brew_name(new, "Porter")
    db.upsert_recipe(new, "Porter", 1.050, 1.010, 5.25, "", "")
    db.upsert_rating(new, "u1", "alice", 4, "")
    db.upsert_rating(new, "u2", "bob", 5, "")
    db.complete_brew(old)
    db.complete_brew(new)

    entries = db.get_blackboard("g1")
    assert [e.brew.id for e in entries] == [new, old]
    assert active not in [e.brew.id for e in entries]

    first, second = entries
    assert first.brew.name == "Porter"
    assert first.avg_rating == pytest.approx(4.5)
    assert len(first.ratings) == 2
    assert first.recipe.style == "Porter"

    assert second.brew.name == "Unnamed"
    assert second.avg_rating == 0.0
    assert second.recipe is None
    assert second.ratings == []


def test_blackboard_empty_for_other_guild(db):
    brew_id = _brew_in_channel(db)
    db.complete_brew(brew_id)
    assert db.get_blackboard("g2") == []