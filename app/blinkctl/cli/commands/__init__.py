"""CLI subcommands for blinkctl."""
