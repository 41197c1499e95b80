"""Command-line entry points: check_systemd and check_mount."""
