# tests/test_parser.py
import pytest

from scout_engine.exceptions import EmptyInputError
from scout_engine.models.schemas import InputFormat
from scout_engine.stages.stage1_parser import RecordParserStage, split_csv_line


@pytest.fixture
def parser():
    return RecordParserStage()


def test_csv_single_row(parser):
    raw = 'name,snippet\nJuan Dela Cruz,"need extra income asap"'
    candidates = parser.process(raw, InputFormat.CSV)

    assert len(candidates) == 1
    assert candidates[0].name == "Juan Dela Cruz"
    assert candidates[0].snippet == "need extra income asap"
    assert candidates[0].source_line == 1


def test_csv_quoted_commas_and_context_columns(parser):
    raw = (
        "Full Name,Comment,Context\n"
        '"Ana Reyes","Hi, interested po","from the FB group"\n'
    )
    candidates = parser.process(raw, InputFormat.CSV)

    assert candidates[0].name == "Ana Reyes"
    assert candidates[0].snippet == "Hi, interested po from the FB group"


def test_csv_short_names_and_repeated_header_skipped(parser):
    raw = "name,snippet\nname,snippet\nJo,hello there\nMark Lim,wants a business\n"
    candidates = parser.process(raw, InputFormat.CSV)

    assert [c.name for c in candidates] == ["Mark Lim"]


def test_csv_empty_snippet_gets_placeholder(parser):
    candidates = parser.process("name,snippet\nLiza Cruz,\n", InputFormat.CSV)
    assert candidates[0].snippet == "Prospect from CSV: Liza Cruz"


def test_csv_header_only_fails(parser):
    with pytest.raises(EmptyInputError) as exc:
        parser.process("name,snippet\n", InputFormat.CSV)
    assert "No data found" in str(exc.value)


def test_csv_without_name_column_fails(parser):
    with pytest.raises(EmptyInputError):
        parser.process("email,comment\na@b.com,hello there\n", InputFormat.CSV)


def test_text_dash_lines(parser):
    raw = (
        "Maria Santos — Looking for extra income, pagod na sa work\n"
        "Pedro - need a sideline ngayon\n"
        "random chatter without a name\n"
    )
    candidates = parser.process(raw, InputFormat.TEXT)

    assert [c.name for c in candidates] == ["Maria Santos", "Pedro"]
    assert candidates[0].snippet == "Looking for extra income, pagod na sa work"
    assert candidates[1].source_line == 1


def test_text_name_only_line_uses_window(parser):
    raw = "great post!\nJose Rizal\nI want to start a business\nhow to join?\nthanks\n"
    candidates = parser.process(raw, InputFormat.TEXT)

    assert len(candidates) == 1
    assert candidates[0].name == "Jose Rizal"
    assert candidates[0].snippet == "great post! Jose Rizal I want to start a business how to join?"


def test_text_global_fallback(parser):
    raw = "comments: Carlo Mendoza — sobrang hirap ng bills ngayon, need help and more"
    candidates = parser.process(raw, InputFormat.TEXT)

    assert len(candidates) == 1
    assert candidates[0].name == "Carlo Mendoza"
    assert candidates[0].snippet.startswith("sobrang hirap")
    assert len(candidates[0].snippet) <= 200


def test_empty_input_fails(parser):
    with pytest.raises(EmptyInputError):
        parser.process("", InputFormat.AUTO)
    with pytest.raises(EmptyInputError):
        parser.process("   \n\n  ", InputFormat.TEXT)


def test_no_candidates_fails(parser):
    with pytest.raises(EmptyInputError):
        parser.process("just some lowercase text here", InputFormat.TEXT)


def test_auto_detects_csv_and_text(parser):
    assert parser.detect_format("name,snippet") == InputFormat.CSV
    assert parser.detect_format("a,b,c") == InputFormat.CSV
    assert parser.detect_format("Maria Santos — hello, po") == InputFormat.TEXT


def test_parsing_is_idempotent(parser, csv_input):
    first = parser.process(csv_input, InputFormat.AUTO)
    second = parser.process(csv_input, InputFormat.AUTO)
    assert first == second


def test_split_csv_line_respects_quotes():
    assert split_csv_line('a,"b, c",d') == ["a", "b, c", "d"]
    assert split_csv_line("single") == ["single"]
    assert split_csv_line("x,,y") == ["x", "", "y"]


def test_auto_comma_heavy_text_keeps_first_prospect(parser):
    raw = "Juan Dela Cruz - need money, bills, asap\nAna Reyes - interested"
    candidates = parser.process(raw, InputFormat.AUTO)

    assert [c.name for c in candidates] == ["Juan Dela Cruz", "Ana Reyes"]
    assert candidates[0].snippet == "need money, bills, asap"


def test_auto_single_comma_heavy_line_is_text(parser):
    candidates = parser.process("Juan Dela Cruz - need money, bills, asap", InputFormat.AUTO)
    assert [c.name for c in candidates] == ["Juan Dela Cruz"]
