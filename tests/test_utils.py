"""Tests for query validation and text helpers."""

import pytest

from quick_search.exceptions import InvalidQueryError
from quick_search.utils import decode_html_entities, encode_query, excerpt, join_snippet, validate_query, web_search_url


class TestValidateQuery:
    def test_trims_whitespace(self):
        assert validate_query("  rust async  ") == "rust async"

    def test_accepts_exactly_max_length(self):
        assert len(validate_query("a" * 2000, max_length=2000)) == 2000

    def test_rejects_one_over_max_length(self):
        with pytest.raises(InvalidQueryError):
            validate_query("a" * 2001, max_length=2000)

    def test_length_is_measured_after_trimming(self):
        assert validate_query("  " + "a" * 2000 + "  ", max_length=2000) == "a" * 2000

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_rejects_blank(self, query):
        with pytest.raises(InvalidQueryError):
            validate_query(query)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidQueryError):
            validate_query(None)

    def test_invalid_query_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_query("")


class TestEncodeQuery:
    def test_matches_uri_component_encoding(self):
        assert encode_query("c++ & rust") == "c%2B%2B%20%26%20rust"
        assert encode_query("it's (fine)!") == "it's%20(fine)!"

    def test_encodes_unicode(self):
        assert encode_query("日本") == "%E6%97%A5%E6%9C%AC"


class TestDecodeHtmlEntities:
    def test_decodes_common_entities(self):
        assert decode_html_entities("A &amp; B &lt;test&gt;") == "A & B <test>"

    def test_decodes_quotes_and_slash(self):
        assert decode_html_entities("&quot;x&quot; &#39;y&#39; &#x27;z&#x27; a&#x2F;b") == "\"x\" 'y' 'z' a/b"

    def test_double_escaped_text_is_fully_decoded(self):
        assert decode_html_entities("&amp;lt;script&amp;gt;") == "<script>"


class TestSnippets:
    def test_excerpt_truncates_and_flattens_newlines(self):
        text = "line one\nline two\r\n" + "x" * 300
        result = excerpt(text)
        assert len(result) <= 200
        assert "\n" not in result

    def test_excerpt_of_nothing_is_empty(self):
        assert excerpt(None) == ""

    def test_join_skips_empty_fragments(self):
        assert join_snippet("a", "", None, "b") == "a · b"


class TestWebSearchUrl:
    def test_fills_template(self):
        assert web_search_url(" hello world ", template="https://duckduckgo.com/?q=%s") == "https://duckduckgo.com/?q=hello%20world"

    def test_rejects_blank(self):
        with pytest.raises(InvalidQueryError):
            web_search_url("  ")
