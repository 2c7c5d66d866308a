import pytest

from shared.validators import parse_origin_list


class TestParseOriginList:
    def test_json_array_string(self):
        result = parse_origin_list('["http://a.com","http://b.com"]')
        assert result == ["http://a.com", "http://b.com"]

    def test_comma_separated_string(self):
        result = parse_origin_list("http://a.com,http://b.com")
        assert result == ["http://a.com", "http://b.com"]

    def test_strips_whitespace_everywhere(self):
        assert parse_origin_list("  http://a.com , http://b.com ") == ["http://a.com", "http://b.com"]
        assert parse_origin_list(' [" http://a.com "] ') == ["http://a.com"]
        assert parse_origin_list([" http://a.com", "  "]) == ["http://a.com"]

    def test_passthrough_list(self):
        origins = ["http://a.com", "http://b.com"]
        assert parse_origin_list(origins) == origins

    @pytest.mark.parametrize("value", ["", "   ", ",", ",,,,", "[]", '["  "]', []])
    def test_empty_raises(self, value):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_origin_list(value)

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON array"):
            parse_origin_list("[not valid json")

    def test_json_mixed_types_array_raises(self):
        with pytest.raises(ValueError, match="must be an array of strings"):
            parse_origin_list('["http://a.com", 123]')

    def test_comma_separated_skips_empty_segments(self):
        result = parse_origin_list("http://a.com,,http://b.com,")
        assert result == ["http://a.com", "http://b.com"]
