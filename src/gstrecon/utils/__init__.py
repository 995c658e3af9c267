"""Utility functions for gstrecon."""

from gstrecon.utils.date_parser import parse_date, parse_document_date
from gstrecon.utils.amount_parser import parse_amount, to_decimal
from gstrecon.utils.period import ReturnPeriod, parse_return_period

__all__ = [
    "parse_date",
    "parse_document_date",
    "parse_amount",
    "to_decimal",
    "ReturnPeriod",
    "parse_return_period",
]
