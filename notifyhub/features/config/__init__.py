"""Destination config files (YAML and text)."""

from notifyhub.features.config.loader import ConfigEntry, find_default_config, load_config, parse_config

__all__ = ["ConfigEntry", "find_default_config", "load_config", "parse_config"]
