import pytest

from jp_address_api.validators import validate_address


def test_valid_addresses():
    assert validate_address("東京都渋谷区神宮前1-1-1") is None
    assert validate_address("Tokyo") is None
    assert validate_address("123 Main St") is None
    assert validate_address("  大阪府大阪市北区  ") is None


@pytest.mark.parametrize("text", ["", "   ", "\t\n", None])
def test_empty_addresses(text):
    assert validate_address(text) == "Address cannot be empty"


def test_too_long_regardless_of_content():
    assert "too long" in validate_address("a" * 501)
    assert "too long" in validate_address("東" * 501)
    # Non-matching characters still lose to the length rule.
    assert "too long" in validate_address("é" * 501)


def test_length_counts_code_points_not_bytes():
    # 500 kanji are 1500 UTF-8 bytes but still within the limit.
    assert validate_address("東" * 500) is None


def test_length_measured_after_trimming():
    assert validate_address("  " + "a" * 500 + "  ") is None


def test_custom_max_length():
    assert validate_address("abcdef", max_length=5) == "Address too long (max 5 characters)"


def test_invalid_characters():
    assert validate_address("éèê") == "Invalid address format"
    assert validate_address("한국어") == "Invalid address format"


def test_one_acceptable_character_is_enough():
    assert validate_address("éè1") is None
    assert validate_address("한국東") is None


def test_empty_wins_over_other_rules():
    assert validate_address(" " * 600) == "Address cannot be empty"
