#!/usr/bin/env python3
"""Main entry point for the Japanese holiday calendar."""

from holiday_calendar.cli import cli

if __name__ == '__main__':
    cli()
