"""Store-backed services."""
