"""State probes and verdicts for monitoring plugins.

This package parses the text listings of systemd and mount, checks them
against user expectations and folds the findings into one plugin verdict.
"""

__version__ = "1.0.0"
