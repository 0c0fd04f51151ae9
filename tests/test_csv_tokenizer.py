"""Tests for the single-line CSV tokenizer."""

from __future__ import annotations

from perfboard.csv_tokenizer import split_lines, tokenize_line


class TestTokenizeLine:
    def test_quoted_comma(self):
        assert tokenize_line('a,"b,c",d') == ["a", "b,c", "d"]

    def test_escaped_quotes(self):
        assert tokenize_line('a,"he said ""hi""",c') == ["a", 'he said "hi"', "c"]

    def test_fields_are_trimmed(self):
        assert tokenize_line("  a , b ,c  ") == ["a", "b", "c"]

    def test_quoted_last_field(self):
        assert tokenize_line('01/03/2024,"R$ 1.234,56"') == ["01/03/2024", "R$ 1.234,56"]

    def test_empty_fields_kept(self):
        assert tokenize_line("a,,c,") == ["a", "", "c", ""]

    def test_whitespace_inside_quotes_is_trimmed_after_unquoting(self):
        assert tokenize_line('" x ",y') == ["x", "y"]

    def test_carriage_return_is_stripped(self):
        assert tokenize_line("a,b\r") == ["a", "b"]


class TestSplitLines:
    def test_drops_blank_lines(self):
        text = "h1,h2\r\n\r\n1,2\n   \n3,4\n"
        assert split_lines(text) == ["h1,h2", "1,2", "3,4"]

    def test_empty_text(self):
        assert split_lines("") == []
