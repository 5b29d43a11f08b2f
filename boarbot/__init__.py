"""
BoarBot — A Boar-Collecting Discord Bot
=========================================
Keeps per-user, per-guild and global state as flat JSON records, serializes
every read-modify-write through a keyed task queue, and runs the periodic
jobs that keep the game moving (daily notifications, config reloads,
update-feed announcements, quest rotation, powerup spawns).

Package layout::

    boarbot/
    ├── config.py          # YAML → typed Python config + fingerprint
    ├── constants.py       # Global record names, time constants
    ├── context.py         # Process context (live config, queue, store)
    ├── database/
    │   ├── queue.py       # KeyedTaskQueue, FIFO per key
    │   ├── records.py     # Record identities + default shapes
    │   └── store.py       # File-backed JSON record store
    ├── engine/
    │   ├── items.py       # Items catalog ordering
    │   ├── quests.py      # Weekly quest window rotation
    │   └── templates.py   # Notification templating
    ├── services/
    │   ├── embeds.py                 # Embed builders
    │   ├── error_reporter.py         # Console + log-channel reporting
    │   ├── notification_service.py   # Daily DM notifications
    │   ├── powerup_spawner.py        # Self-rescheduling powerup timer
    │   ├── quest_service.py          # Quest rotation on the poller
    │   ├── reconciliation_service.py # Boot-time data reconciliation
    │   └── update_feed.py            # GitHub pull-request announcements
    └── bot/
        ├── __main__.py    # python -m boarbot.bot
        ├── core.py        # Bot subclass + lifecycle
        └── cogs/
            ├── tasks.py   # Scheduler (cron, poller, powerup timer)
            ├── general.py # /boar help, /boar notify
            └── events.py  # DM reports, app-command errors
"""

__version__ = "0.1.0"
