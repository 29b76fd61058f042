"""Command-line interface for diagcollect."""
