"""SQLite persistence for rotation, polls, brews, recipes and ratings."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass, field

ABV_FACTOR = 131.25

_SCHEMA = [
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    """CREATE TABLE IF NOT EXISTS guild_config (
        guild_id TEXT NOT NULL,
        key      TEXT NOT NULL,
        value    TEXT NOT NULL,
        PRIMARY KEY(guild_id, key)
    )""",
    """CREATE TABLE IF NOT EXISTS rotation (
        id       INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id TEXT NOT NULL,
        user_id  TEXT NOT NULL,
        username TEXT NOT NULL,
        position INTEGER NOT NULL,
        active   INTEGER NOT NULL DEFAULT 1,
        UNIQUE(guild_id, user_id)
    )""",
    """CREATE TABLE IF NOT EXISTS proposed_dates (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id    TEXT NOT NULL,
        date        TEXT NOT NULL,
        proposed_by TEXT NOT NULL,
        created_at  DATETIME DEFAULT CURRENT_TIMESTAMP
    )""",
    """CREATE TABLE IF NOT EXISTS polls (
        id           INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id     TEXT NOT NULL,
        message_id   TEXT,
        channel_id   TEXT NOT NULL,
        status       TEXT NOT NULL DEFAULT 'open',
        winning_date TEXT,
        created_at   DATETIME DEFAULT CURRENT_TIMESTAMP
    )""",
    """CREATE TABLE IF NOT EXISTS poll_options (
        id      INTEGER PRIMARY KEY AUTOINCREMENT,
        poll_id INTEGER NOT NULL REFERENCES polls(id),
        emoji   TEXT NOT NULL,
        date    TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS brews (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        guild_id         TEXT NOT NULL,
        name             TEXT,
        brewer_id        TEXT NOT NULL,
        brewer_name      TEXT NOT NULL,
        date             TEXT,
        channel_id       TEXT,
        stats_message_id TEXT,
        status           TEXT NOT NULL DEFAULT 'scheduled',
        created_at       DATETIME DEFAULT CURRENT_TIMESTAMP
    )""",
    # Adds the column to databases created before it existed.
    "ALTER TABLE brews ADD COLUMN stats_message_id TEXT",
    """CREATE TABLE IF NOT EXISTS recipes (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        brew_id     INTEGER NOT NULL UNIQUE REFERENCES brews(id),
        style       TEXT,
        og          REAL,
        fg          REAL,
        abv         REAL,
        ingredients TEXT,
        notes       TEXT,
        created_at  DATETIME DEFAULT CURRENT_TIMESTAMP
    )""",
    """CREATE TABLE IF NOT EXISTS ratings (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        brew_id    INTEGER NOT NULL REFERENCES brews(id),
        user_id    TEXT NOT NULL,
        username   TEXT NOT NULL,
        rating     INTEGER NOT NULL CHECK(rating >= 1 AND rating <= 5),
        notes      TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(brew_id, user_id)
    )""",
]

_POLL_COLUMNS = (
    "id,guild_id,COALESCE(message_id,''),channel_id,status,COALESCE(winning_date,'')"
)
_ROTATION_COLUMNS = "id,guild_id,user_id,username,position,active"


@dataclass
class RotationMember:
    id: int
    guild_id: str
    user_id: str
    username: str
    position: int
    active: bool


@dataclass
class ProposedDate:
    id: int
    guild_id: str
    date: str
    proposed_by: str


@dataclass
class Poll:
    id: int
    guild_id: str
    message_id: str
    channel_id: str
    status: str
    winning_date: str


@dataclass
class PollOption:
    id: int
    poll_id: int
    emoji: str
    date: str


@dataclass
class Brew:
    id: int
    guild_id: str
    name: str
    brewer_id: str
    brewer_name: str
    date: str
    channel_id: str
    stats_message_id: str
    status: str


@dataclass
class Recipe:
    id: int
    brew_id: int
    style: str
    og: float
    fg: float
    abv: float
    ingredients: str
    notes: str


@dataclass
class Rating:
    id: int
    brew_id: int
    user_id: str
    username: str
    rating: int
    notes: str


@dataclass
class BlackboardEntry:
    brew: Brew
    recipe: Recipe | None = None
    avg_rating: float = 0.0
    ratings: list[Rating] = field(default_factory=list)


def _member(row) -> RotationMember:
    mid, guild_id, user_id, username, position, active = row
    return RotationMember(mid, guild_id, user_id, username, position, active == 1)


class Database:
    """A single SQLite connection holding all bot state."""

    def __init__(self, path: str):
        self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self._lock = threading.RLock()
        try:
            self._migrate()
        except sqlite3.Error:
            self._conn.close()
            raise

    def _migrate(self) -> None:
        for stmt in _SCHEMA:
            try:
                self._conn.execute(stmt)
            except sqlite3.OperationalError:
                # ALTER fails when the column already exists.
                if stmt.startswith("ALTER"):
                    continue
                raise

    def _exec(self, sql: str, *params) -> sqlite3.Cursor:
        with self._lock:
            return self._conn.execute(sql, params)

    def _one(self, sql: str, *params):
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _all(self, sql: str, *params) -> list:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # --- guild config ---

    def set_config(self, guild_id: str, key: str, value: str) -> None:
        self._exec(
            "INSERT INTO guild_config(guild_id,key,value) VALUES(?,?,?) "
            "ON CONFLICT(guild_id,key) DO UPDATE SET value=excluded.value",
            guild_id, key, value,
        )

    def get_config(self, guild_id: str, key: str) -> str:
        """Return the stored value, or an empty string if none is set."""
        row = self._one(
            "SELECT value FROM guild_config WHERE guild_id=? AND key=?", guild_id, key
        )
        return row[0] if row else ""

    # --- rotation ---

    def get_rotation(self, guild_id: str) -> list[RotationMember]:
        rows = self._all(
            f"SELECT {_ROTATION_COLUMNS} FROM rotation WHERE guild_id=? ORDER BY position",
            guild_id,
        )
        return [_member(r) for r in rows]

    def _max_position(self, guild_id: str) -> int:
        row = self._one(
            "SELECT COALESCE(MAX(position),0) FROM rotation WHERE guild_id=?", guild_id
        )
        return row[0]

    def add_rotation_member(self, guild_id: str, user_id: str, username: str) -> None:
        with self._lock:
            position = self._max_position(guild_id) + 1
            self._exec(
                "INSERT INTO rotation(guild_id,user_id,username,position) VALUES(?,?,?,?) "
                "ON CONFLICT(guild_id,user_id) DO UPDATE SET "
                "username=excluded.username, active=1",
                guild_id, user_id, username, position,
            )

    def next_brewer(self, guild_id: str) -> RotationMember | None:
        row = self._one(
            f"SELECT {_ROTATION_COLUMNS} FROM rotation WHERE guild_id=? AND active=1 "
            "ORDER BY position LIMIT 1",
            guild_id,
        )
        return _member(row) if row else None

    def skip_brewer(self, guild_id: str, user_id: str) -> None:
        """Move a member to the end of the rotation."""
        with self._lock:
            position = self._max_position(guild_id) + 1
            self._exec(
                "UPDATE rotation SET position=? WHERE guild_id=? AND user_id=?",
                position, guild_id, user_id,
            )

    # --- proposed dates ---

    def add_proposed_dates(self, guild_id: str, proposed_by: str, dates) -> None:
        with self._lock:
            for date in dates:
                self._exec(
                    "INSERT INTO proposed_dates(guild_id,date,proposed_by) VALUES(?,?,?)",
                    guild_id, date, proposed_by,
                )

    def get_proposed_dates(self, guild_id: str) -> list[ProposedDate]:
        rows = self._all(
            "SELECT id,guild_id,date,proposed_by FROM proposed_dates WHERE guild_id=? "
            "ORDER BY created_at, id",
            guild_id,
        )
        return [ProposedDate(*r) for r in rows]

    def clear_proposed_dates(self, guild_id: str) -> None:
        self._exec("DELETE FROM proposed_dates WHERE guild_id=?", guild_id)

    # --- polls ---

    def create_poll(self, guild_id: str, channel_id: str) -> int:
        cur = self._exec(
            "INSERT INTO polls(guild_id,channel_id) VALUES(?,?)", guild_id, channel_id
        )
        return cur.lastrowid

    def set_poll_message(self, poll_id: int, message_id: str) -> None:
        self._exec("UPDATE polls SET message_id=? WHERE id=?", message_id, poll_id)

    def add_poll_option(self, poll_id: int, emoji: str, date: str) -> None:
        self._exec(
            "INSERT INTO poll_options(poll_id,emoji,date) VALUES(?,?,?)",
            poll_id, emoji, date,
        )

    def get_open_poll(self, guild_id: str) -> Poll | None:
        row = self._one(
            f"SELECT {_POLL_COLUMNS} FROM polls WHERE guild_id=? AND status='open' "
            "ORDER BY id DESC LIMIT 1",
            guild_id,
        )
        return Poll(*row) if row else None

    def get_poll_options(self, poll_id: int) -> list[PollOption]:
        rows = self._all(
            "SELECT id,poll_id,emoji,date FROM poll_options WHERE poll_id=?", poll_id
        )
        return [PollOption(*r) for r in rows]

    def close_poll(self, poll_id: int, winning_date: str) -> None:
        self._exec(
            "UPDATE polls SET status='closed',winning_date=? WHERE id=?",
            winning_date, poll_id,
        )

    def get_poll_by_message(self, message_id: str) -> tuple[Poll | None, list[PollOption]]:
        """Return the poll posted as ``message_id`` and its options."""
        row = self._one(
            f"SELECT {_POLL_COLUMNS} FROM polls WHERE message_id=?", message_id
        )
        if row is None:
            return None, []
        poll = Poll(*row)
        return poll, self.get_poll_options(poll.id)

    # --- brews ---

    def create_brew(self, guild_id: str, brewer_id: str, brewer_name: str, date: str) -> int:
        cur = self._exec(
            "INSERT INTO brews(guild_id,brewer_id,brewer_name,date) VALUES(?,?,?,?)",
            guild_id, brewer_id, brewer_name, date,
        )
        return cur.lastrowid

    def set_brew_channel(self, brew_id: int, channel_id: str) -> None:
        self._exec(
            "UPDATE brews SET channel_id=?,status='active' WHERE id=?", channel_id, brew_id
        )

    def set_brew_name(self, brew_id: int, name: str) -> None:
        self._exec("UPDATE brews SET name=? WHERE id=?", name, brew_id)

    def get_brew_by_channel(self, channel_id: str) -> Brew | None:
        row = self._one(
            "SELECT id,guild_id,COALESCE(name,''),brewer_id,brewer_name,COALESCE(date,''),"
            "COALESCE(channel_id,''),COALESCE(stats_message_id,''),status "
            "FROM brews WHERE channel_id=?",
            channel_id,
        )
        return Brew(*row) if row else None

    def set_brew_stats_message(self, brew_id: int, message_id: str) -> None:
        self._exec("UPDATE brews SET stats_message_id=? WHERE id=?", message_id, brew_id)

    def complete_brew(self, brew_id: int) -> None:
        self._exec("UPDATE brews SET status='complete' WHERE id=?", brew_id)

    # --- recipes ---

    def upsert_recipe(
        self,
        brew_id: int,
        style: str,
        og: float,
        fg: float,
        abv: float,
        ingredients: str,
        notes: str,
    ) -> None:
        with self._lock:
            self._exec("DELETE FROM recipes WHERE brew_id=?", brew_id)
            self._exec(
                "INSERT INTO recipes(brew_id,style,og,fg,abv,ingredients,notes) "
                "VALUES(?,?,?,?,?,?,?)",
                brew_id, style, og, fg, abv, ingredients, notes,
            )

    def set_final_gravity(self, brew_id: int, fg: float) -> float:
        """Store FG, recalculate ABV from the recorded OG and return it."""
        with self._lock:
            row = self._one("SELECT COALESCE(og,0) FROM recipes WHERE brew_id=?", brew_id)
            if row is None:
                raise LookupError(f"no recipe for brew {brew_id}")
            og = float(row[0])
            abv = (og - fg) * ABV_FACTOR if og > fg else 0.0
            self._exec(
                "UPDATE recipes SET fg=?,abv=? WHERE brew_id=?", fg, abv, brew_id
            )
            return abv

    def get_recipe(self, brew_id: int) -> Recipe | None:
        row = self._one(
            "SELECT id,brew_id,COALESCE(style,''),COALESCE(og,0),COALESCE(fg,0),"
            "COALESCE(abv,0),COALESCE(ingredients,''),COALESCE(notes,'') "
            "FROM recipes WHERE brew_id=?",
            brew_id,
        )
        if row is None:
            return None
        rid, bid, style, og, fg, abv, ingredients, notes = row
        return Recipe(rid, bid, style, float(og), float(fg), float(abv), ingredients, notes)

    # --- ratings ---

    def upsert_rating(
        self, brew_id: int, user_id: str, username: str, rating: int, notes: str
    ) -> None:
        self._exec(
            "INSERT INTO ratings(brew_id,user_id,username,rating,notes) VALUES(?,?,?,?,?) "
            "ON CONFLICT(brew_id,user_id) DO UPDATE SET rating=excluded.rating,"
            "notes=excluded.notes,username=excluded.username",
            brew_id, user_id, username, rating, notes,
        )

    def get_ratings(self, brew_id: int) -> list[Rating]:
        rows = self._all(
            "SELECT id,brew_id,user_id,username,rating,COALESCE(notes,'') "
            "FROM ratings WHERE brew_id=? ORDER BY created_at, id",
            brew_id,
        )
        return [Rating(*r) for r in rows]

    # --- blackboard ---

    def get_blackboard(self, guild_id: str) -> list[BlackboardEntry]:
        """Completed brews of a guild, newest first, with recipe and ratings."""
        rows = self._all(
            """SELECT b.id,b.guild_id,COALESCE(b.name,'Unnamed'),b.brewer_id,b.brewer_name,
                      COALESCE(b.date,''),COALESCE(b.channel_id,''),b.status,
                      COALESCE(AVG(r.rating),0)
               FROM brews b
               LEFT JOIN ratings r ON r.brew_id=b.id
               WHERE b.guild_id=? AND b.status='complete'
               GROUP BY b.id
               ORDER BY b.created_at DESC, b.id DESC""",
            guild_id,
        )
        entries = []
        for bid, gid, name, brewer_id, brewer_name, date, channel_id, status, avg in rows:
            brew = Brew(bid, gid, name, brewer_id, brewer_name, date, channel_id, "", status)
            entries.append(
                BlackboardEntry(
                    brew=brew,
                    recipe=self.get_recipe(bid),
                    avg_rating=float(avg),
                    ratings=self.get_ratings(bid),
                )
            )
        return entries