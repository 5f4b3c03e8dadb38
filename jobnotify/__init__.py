"""Civil-service job listing notifier.

Scrapes the public job feed, matches new listings against subscriber filters
and pushes them to subscribers through LINE Notify.
"""

__version__ = "0.1.0"
