# brewbot

A Discord bot for a homebrew club. It keeps track of who brews next, runs
reaction polls to pick a brew day, opens a channel for each brew, collects
recipes and ratings, and keeps a pinned "blackboard" of finished brews up to
date.

## Installing

```
pip install .
```

## Configuration

The bot reads its settings from the environment. A `.env` file, looked for
from the working directory upwards, is loaded first if there is one.

| Variable         | Meaning                                   | Default      |
|------------------|-------------------------------------------|--------------|
| `DISCORD_TOKEN`  | Bot token (required)                      | none         |
| `DISCORD_APP_ID` | Application id used to register commands  | empty        |
| `DB_PATH`        | Path of the SQLite database               | `brewbot.db` |

Example `.env`:

```
DISCORD_TOKEN=token
DISCORD_APP_ID=123456789012345678
DB_PATH=brewbot.db
```

## Running

```
brewbot
```

The bot registers its slash commands, connects to the gateway and, once
ready, refreshes the blackboard in every guild it belongs to. It reconnects
when the gateway asks for a new session. Stop it with Ctrl+C (or SIGTERM).
It exits with status 1 if `DISCORD_TOKEN` is not set or the database cannot
be opened.

## Slash commands

- `/propose dates:` — propose brew dates, comma separated (`March 15, March 22`).
- `/startpoll` — start a reaction vote over the proposed dates (duplicates
  dropped, at most ten). The first date to reach a majority of the active
  rotation wins; with no active rotation two voters are assumed.
- `/closepoll` — close the open poll and take the most-voted date
  (`TBD` if none can be found).
- `/rotation list | add | skip | next` — show the rotation, add a brewer,
  move a brewer to the end of the queue, or show who brews next.
- `/recipe submit | fg | view` — record the recipe in a brew channel, lock in
  the final gravity at kegging, or show the recipe with its ratings.
- `/rate rating: notes:` — rate the brew of the current channel from 1 to 5.
- `/complete` — mark the brew complete and put it on the blackboard.
- `/abv og: fg:` — work out ABV and apparent attenuation from two gravities
  (reply visible only to you).

When a poll closes, the next brewer in the rotation gets a new
`brew-<name>` channel and moves to the end of the rotation; submitting a
recipe renames the channel after the brew. Each brew channel gets a pinned
stats card that is updated on every recipe change and rating. The
blackboard lives in a `#blackboard` channel the bot creates when needed.

## Using the pieces

The formatting helpers in `brewbot.cards` have no network dependencies:

```python
from brewbot.cards import abv_from_gravity, build_abv_report

abv_from_gravity(1.065, 1.012)       # about 6.96
print(build_abv_report(1.065, 1.012))
```

`brewbot.db.Database` is a context manager over the SQLite store:

```python
from brewbot.db import Database

with Database("brewbot.db") as db:
    db.add_rotation_member("guild", "42", "alice")
    print(db.next_brewer("guild"))
```

`brewbot.commands.command_payloads()` returns the slash-command definitions
as plain dictionaries, and `brewbot.client.DiscordClient` is the small
asynchronous REST and gateway client the bot runs on.

## What it does not do

The bot does not create or post a command-reference channel; the command
list above is the reference.

## Tests

```
pip install .[test]
pytest
```