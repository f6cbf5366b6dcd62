"""Analyzer stages. Each module exposes a `check` returning a list of Issues."""
