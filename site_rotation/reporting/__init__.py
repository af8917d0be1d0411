"""
site_rotation.reporting: CLI formatting and history file helpers.

Modules:
  formatters — ASCII terminal formatters for Typer CLI commands.
  export     — Export file naming/writing and import file reading.
"""
