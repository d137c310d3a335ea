"""
Whitelist / blacklist filtering for metric keys.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class FilterConfig:
    """Key filters for one export destination.

    ``whitelist`` holds exact keys, ``blacklist`` holds substrings.
    """
    whitelist: Tuple[str, ...] = ()
    blacklist: Tuple[str, ...] = ()

    @classmethod
    def from_lists(cls, whitelist: Optional[Iterable[str]] = None,
                   blacklist: Optional[Iterable[str]] = None) -> "FilterConfig":
        return cls(tuple(whitelist or ()), tuple(blacklist or ()))


def is_whitelisted(key: str, config: FilterConfig) -> bool:
    """True when ``key`` is listed verbatim in a non-empty whitelist."""
    return bool(config.whitelist) and key in config.whitelist


def active_blacklist(config: FilterConfig) -> Tuple[str, ...]:
    """The blacklist actually applied.

    A configured blacklist is used as-is. A whitelist without a blacklist
    blacklists everything (the empty string is a substring of every key).
    """
    if config.blacklist:
        return config.blacklist
    if config.whitelist:
        return ("",)
    return ()


def is_eligible(key: str, config: FilterConfig) -> bool:
    """Decide whether ``key`` should be exported.

    Explicit whitelist entries win over any overlapping blacklist entry.
    """
    if is_whitelisted(key, config):
        return True

    return not any(entry in key for entry in active_blacklist(config))
