"""
Routing Module

Components:
- CountryResolver: country name -> catalog CountryRecord
- MatchResolver: intent -> Exact / CloseMatch / NoMatch over the plans table
"""

from .country_resolver import CountryResolver
from .match_resolver import MatchResolver

__all__ = [
    "CountryResolver",
    "MatchResolver",
]
