"""Configuration, logging, errors, health and dependency wiring."""
