"""
Feed Relay - Relay new syndication feed entries to Slack.

A Python application that polls a single RSS/Atom feed on a fixed interval,
records every entry it sees in SQLite and posts newly published entries
to a Slack channel.
"""

__version__ = "1.0.0"
