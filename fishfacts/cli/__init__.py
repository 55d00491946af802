"""
CLI tools for fact extraction.

Modules:
    extract_facts: Extract facts for unprocessed episodes
    retry_facts: Re-extract facts for specific standard episodes

Usage:
    python -m fishfacts.cli.extract_facts --help
"""

# Don't import modules here to avoid conflicts when running as -m
__all__ = []
