"""Pluggable source fetchers (price, generic REST, interpretive) and concurrent fan-out."""

from predresolve.fetchers.base import SourceFetcher
from predresolve.fetchers.fanout import FetcherSet, fan_out
from predresolve.fetchers.interpreter import HttpInterpreter, SourceSuggester, TextInterpreter
from predresolve.fetchers.interpretive import InterpretiveFetcher
from predresolve.fetchers.price import PriceFetcher
from predresolve.fetchers.rest import GenericRestFetcher

__all__ = [
    "SourceFetcher",
    "PriceFetcher",
    "GenericRestFetcher",
    "InterpretiveFetcher",
    "TextInterpreter",
    "SourceSuggester",
    "HttpInterpreter",
    "FetcherSet",
    "fan_out",
]
