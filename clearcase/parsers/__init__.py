"""
clearcase/parsers: people, dates, times, case numbers,
fast scan and the structured parse.

Privacy: parsers never log note bodies.
"""

from clearcase.parsers.adapter import adapt_api_incident
from clearcase.parsers.case_number import case_chip_text, extract_case_number, normalize_case_value
from clearcase.parsers.dates import extract_date_text, resolve_date
from clearcase.parsers.fast_scan import quick_scan
from clearcase.parsers.people import format_who_list, parse_names, partition_who
from clearcase.parsers.structured import parse_notes_to_structured
from clearcase.parsers.times import resolve_time

__all__ = [
    "adapt_api_incident",
    "case_chip_text",
    "extract_case_number",
    "extract_date_text",
    "format_who_list",
    "normalize_case_value",
    "parse_names",
    "parse_notes_to_structured",
    "partition_who",
    "quick_scan",
    "resolve_date",
    "resolve_time",
]
