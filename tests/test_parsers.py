"""
tests/test_parsers.py
Unit tests for the text helpers, people, date, time and case-number parsers
and the keystroke fast scan. Synthetic note text only.
"""

from datetime import date

from clearcase.models.record import CaseChip, FastScanResult
from clearcase.parsers.case_number import (
    case_chip_text,
    extract_case_number,
    matches_case_number,
    normalize_case_value,
)
from clearcase.parsers.dates import extract_date_text, format_display_date, resolve_date
from clearcase.parsers.fast_scan import quick_scan
from clearcase.parsers.people import format_who_list, parse_names, partition_who
from clearcase.parsers.times import (
    extract_first_time_from_notes,
    resolve_time,
    split_leading_time,
    to_24h,
)
from clearcase.text import collapse_whitespace, prepare_notes, to_str

REF = date(2024, 8, 1)   # a Thursday


# ── TEXT HELPERS ─────────────────────────────────────────────

class TestText:

    def test_to_str_handles_none_and_numbers(self):
        assert to_str(None) == ''
        assert to_str(42)   == '42'

    def test_prepare_notes_normalizes_and_caps(self):
        assert prepare_notes('a\r\nb\tc\rd') == 'a\nb c\nd'
        assert len(prepare_notes('x' * 20000)) == 10000

    def test_collapse_whitespace(self):
        assert collapse_whitespace('  a \n\n b  ') == 'a b'


# ── PEOPLE ───────────────────────────────────────────────────

class TestPeople:

    def test_string_split_on_commas_and_and(self):
        assert parse_names('Alice, Bob and Carol') == ['Alice', 'Bob', 'Carol']

    def test_list_is_deduplicated_in_order(self):
        assert parse_names(['Alice', 'Bob', 'Alice']) == ['Alice', 'Bob']

    def test_list_of_name_dicts(self):
        assert parse_names([{'name': 'Alice, Bob'}]) == ['Alice', 'Bob']

    def test_plain_dict_values(self):
        assert parse_names({'a': 'Alice', 'b': 'Bob'}) == ['Alice', 'Bob']

    def test_others_prefix_and_trailing_punct(self):
        assert parse_names('Others: Dan.') == ['Dan']

    def test_unsupported_input_returns_empty(self):
        assert parse_names(None) == []
        assert parse_names(42)   == []

    def test_format_who_list_capitalizes_and_dedupes(self):
        assert format_who_list('jane DOE, Jane Doe') == ['Jane Doe']

    def test_partition_by_role_keyword(self):
        groups = partition_who(['Manager Jane', 'Steward Bob', 'Security Guard Al', 'Tom'])
        assert groups.managers       == ['Manager Jane']
        assert groups.union_stewards == ['Steward Bob']
        assert groups.security       == ['Security Guard Al']
        assert groups.others         == ['Tom']

    def test_manager_bucket_wins_over_security(self):
        groups = partition_who('Security Manager Jane')
        assert groups.managers == ['Security Manager Jane']
        assert groups.security == []


# ── DATES ────────────────────────────────────────────────────

class TestDates:

    def test_short_date_current_year(self):
        r = resolve_date('7/22', REF)
        assert r.canonical_event_date == '2024-07-22'
        assert r.confidence == 'medium'

    def test_short_date_in_future_moves_back_a_year(self):
        assert resolve_date('12/25', REF).canonical_event_date == '2023-12-25'

    def test_full_dates(self):
        assert resolve_date('7/22/2024', REF).canonical_event_date == '2024-07-22'
        assert resolve_date('7/22/24', REF).canonical_event_date   == '2024-07-22'
        assert resolve_date('2024-07-22', REF).canonical_event_date == '2024-07-22'

    def test_relative_dates(self):
        assert resolve_date('yesterday', REF).canonical_event_date   == '2024-07-31'
        assert resolve_date('today', REF).canonical_event_date       == '2024-08-01'
        assert resolve_date('last Friday', REF).canonical_event_date == '2024-07-26'
        # same weekday as the reference goes a full week back
        assert resolve_date('last Thursday', REF).canonical_event_date == '2024-07-25'

    def test_month_names(self):
        assert resolve_date('July 22', REF).canonical_event_date      == '2024-07-22'
        assert resolve_date('Dec 25', REF).canonical_event_date       == '2023-12-25'
        assert resolve_date('Jul 22, 2024', REF).canonical_event_date == '2024-07-22'

    def test_month_and_year_only_is_low_confidence(self):
        r = resolve_date('March 2024', REF)
        assert r.canonical_event_date == '2024-03-01'
        assert r.confidence == 'low'

    def test_original_text_kept(self):
        assert resolve_date('  last   Friday ', REF).original_text == 'last Friday'

    def test_unrecognized_and_invalid(self):
        assert resolve_date('sometime soon', REF) is None
        assert resolve_date('', REF) is None
        assert resolve_date('2/30', REF) is None

    def test_extract_date_text(self):
        assert extract_date_text('Met on 7/22 at 9am') == '7/22'
        assert extract_date_text('it happened yesterday around noon') == 'yesterday'
        assert extract_date_text('no date in here') is None

    def test_format_display_date(self):
        assert format_display_date('2024-07-22') == 'Jul 22, 2024'
        assert format_display_date('garbage')    == 'garbage'


# ── TIMES ────────────────────────────────────────────────────

class TestTimes:

    def test_meridiem_forms(self):
        assert resolve_time('2:30pm').display    == '2:30 PM'
        assert resolve_time('2:30 P.M.').display == '2:30 PM'
        assert resolve_time('9am').display       == '9:00 AM'

    def test_24h_input(self):
        r = resolve_time('at 14:30 sharp')
        assert r.display == '2:30 PM'
        assert r.value   == '14:30'

    def test_midnight_and_noon(self):
        assert resolve_time('12am').value == '00:00'
        assert resolve_time('12pm').value == '12:00'

    def test_display_form_is_stable(self):
        assert resolve_time('2:30 PM').display == '2:30 PM'

    def test_non_times_ignored(self):
        assert resolve_time('25:00') is None
        assert resolve_time('call 555-1234') is None
        assert resolve_time('on 7/22') is None

    def test_invalid_match_skipped_for_next(self):
        assert resolve_time('13pm then 4pm').display == '4:00 PM'

    def test_split_leading_time(self):
        assert split_leading_time('9:00 AM - accused me') == ('9:00 AM', 'accused me')
        assert split_leading_time('accused me at 9am')    == (None, 'accused me at 9am')

    def test_timeline_block_preferred(self):
        notes = 'Arrived 8am.\nTimeline:\n9:15 AM - meeting started\nNotes: left at 5pm'
        assert extract_first_time_from_notes(notes).display == '9:15 AM'

    def test_first_time_anywhere_without_timeline(self):
        assert extract_first_time_from_notes('Arrived 8am, left 5pm').display == '8:00 AM'
        assert extract_first_time_from_notes('') is None

    def test_to_24h(self):
        assert to_24h('2:30 PM') == '14:30'
        assert to_24h('')        == ''


# ── CASE NUMBERS ─────────────────────────────────────────────

class TestCaseNumber:

    def test_inline_hash(self):
        assert extract_case_number('Jane yelled. Case #4521. Then left.') == '4521'

    def test_trailing_words_dropped(self):
        assert extract_case_number('Case 1234 was opened') == '1234'

    def test_reference_label(self):
        assert extract_case_number('Ref: AB-1234') == 'AB-1234'

    def test_ticket_bullet(self):
        assert extract_case_number('notes\n- Ticket No. 77-B\nmore') == '77-B'

    def test_in_case_is_not_a_label(self):
        assert extract_case_number('just in case 5 people come') is None

    def test_value_needs_a_digit(self):
        assert extract_case_number('the case was bad') is None
        assert extract_case_number('') is None

    def test_normalize_case_value(self):
        assert normalize_case_value('Case #4521.') == '4521'
        assert normalize_case_value('#77')         == '77'
        assert normalize_case_value(None)          == ''

    def test_case_chip_text(self):
        assert case_chip_text('4521')      == CaseChip(bare='4521', prefixed='Case 4521')
        assert case_chip_text('Case 4521') == CaseChip(bare='4521', prefixed='Case 4521')
        assert case_chip_text('')          == CaseChip(bare='', prefixed='')

    def test_search_matching(self):
        assert matches_case_number('AB-1234', 'ab1234')
        assert matches_case_number('AB-1234', '12')
        assert not matches_case_number('AB-1234', '99')
        assert not matches_case_number(None, '1')


# ── FAST SCAN ────────────────────────────────────────────────

class TestFastScan:

    def test_time_and_case(self):
        result = quick_scan('Case #4521. Timeline: 9:00 AM - arrived')
        assert result.time        == '9:00 AM'
        assert result.case_number == '4521'

    def test_empty_and_non_string(self):
        assert quick_scan('')   == FastScanResult()
        assert quick_scan(None) == FastScanResult()

    def test_nothing_found(self):
        assert quick_scan('my manager was rude') == FastScanResult()
