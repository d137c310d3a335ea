"""Snapshot intake: key classification and whitelist/blacklist filtering."""
