from __future__ import annotations

import pytest

from ledger_import.errors import EmptyFileError, FileParseError, NoDataRowsError
from ledger_import.ingest import tokenize
from ledger_import.ingest.tokenizer import MAX_FIELD_SIZE


def test_quoted_fields_keep_commas_and_newlines():
    data = 'Date,Payee,Memo\r\n2024-01-05,"Smith, J","line one\nline two"\r\n'
    out = tokenize(data)
    assert out.headers == ("Date", "Payee", "Memo")
    assert out.rows == [("2024-01-05", "Smith, J", "line one\nline two")]


def test_escaped_quotes_and_trimmed_cells():
    out = tokenize('Date , Payee\n 2024-01-05 ,"Say ""hi"""\n')
    assert out.headers == ("Date", "Payee")
    assert out.rows == [("2024-01-05", 'Say "hi"')]


def test_bom_is_stripped_and_bytes_are_decoded():
    data = "\ufeffDate,Payee\n2024-01-05,Café\n".encode("utf-8")
    out = tokenize(data)
    assert out.headers[0] == "Date"
    assert out.rows[0][1] == "Café"


def test_blank_lines_are_dropped_including_leading_ones():
    out = tokenize("\n\nDate,Payee\n\n2024-01-05,Tesco\n ,  \n2024-01-06,Aldi\n")
    assert out.headers == ("Date", "Payee")
    assert [r[1] for r in out.rows] == ["Tesco", "Aldi"]


@pytest.mark.parametrize("data", ["", "\n\n", b"", "  ,  \n"])
def test_empty_file_is_rejected(data):
    with pytest.raises(EmptyFileError):
        tokenize(data)


def test_header_only_file_is_rejected():
    with pytest.raises(NoDataRowsError) as excinfo:
        tokenize("Date,Payee,Amount\n\n")
    # File-level errors are also ValueErrors for callers that only catch those.
    assert isinstance(excinfo.value, FileParseError)
    assert isinstance(excinfo.value, ValueError)


def test_bare_cr_terminators_and_missing_final_newline():
    out = tokenize("Date,Payee,Amount\r2024-01-05,Tesco,-1.00\r2024-01-06,Aldi,-2.00")
    assert out.headers == ("Date", "Payee", "Amount")
    assert out.rows == [("2024-01-05", "Tesco", "-1.00"), ("2024-01-06", "Aldi", "-2.00")]


def test_cr_inside_quoted_field_is_kept():
    out = tokenize('Date,Memo\r2024-01-05,"first\rsecond"\r2024-01-06,plain')
    assert out.rows == [("2024-01-05", "first\rsecond"), ("2024-01-06", "plain")]


def test_long_cell_above_csv_default_limit_is_read():
    memo = "x" * 200_000
    out = tokenize(f'Date,Payee,Memo,Amount\n2024-01-01,Tesco,"{memo}",1.00\n')
    assert out.rows[0][2] == memo
    assert out.rows[0][3] == "1.00"


def test_cell_over_max_field_size_is_a_parse_error():
    data = f'Date,Memo\n2024-01-01,"{"x" * (MAX_FIELD_SIZE + 1)}"\n'
    with pytest.raises(FileParseError, match="Failed to parse CSV"):
        tokenize(data)
