"""
clearcase/parsers/fast_scan.py
Keystroke-time header scan: first time hint and case number only.
A few precompiled regex passes, no I/O. Everything else waits for the
structured parse.
"""

from clearcase.models.record import FastScanResult
from clearcase.parsers.case_number import extract_case_number
from clearcase.parsers.times import extract_first_time_from_notes

MAX_SCAN_CHARS = 10000


def quick_scan(text: str) -> FastScanResult:
    if not isinstance(text, str) or not text:
        return FastScanResult()
    text  = text[:MAX_SCAN_CHARS]
    found = extract_first_time_from_notes(text)
    return FastScanResult(
        time        = found.display if found else None,
        case_number = extract_case_number(text),
    )
