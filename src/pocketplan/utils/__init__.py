"""Parsing and text helpers shared by the CLI and the insight engine."""
