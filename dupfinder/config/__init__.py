"""Configuration, logging and exceptions for dupfinder."""
