from annosync.signature import SEPARATOR, compute_signature, rolling_hash


def test_rolling_hash_known_values():
    assert rolling_hash("") == "0"
    assert rolling_hash("a") == "61"
    assert rolling_hash("ab") == "c21"


def test_rolling_hash_iterates_utf16_code_units():
    # U+1F600 is the surrogate pair D83D DE00
    assert rolling_hash("\U0001F600") == "1b0d63"


def test_rolling_hash_wraps_to_32_bits():
    value = int(rolling_hash("annotation " * 500), 16)
    assert 0 <= value < 2**32


def test_signature_is_pure():
    first = compute_signature("1:2", "cat-qa", "Padding is off")
    for _ in range(5):
        assert compute_signature("1:2", "cat-qa", "Padding is off") == first


def test_signature_joins_fields_with_separator():
    assert compute_signature("1:2", "cat-qa", "body") == rolling_hash(
        SEPARATOR.join(("1:2", "cat-qa", "body"))
    )


def test_signature_accepts_empty_fields():
    assert compute_signature("1:2", None, None) == rolling_hash("1:2||")
    assert compute_signature("1:2", "", "") == compute_signature("1:2", None, None)


def test_signature_changes_with_body_text():
    assert compute_signature("1:2", "cat-qa", "Padding is off") != compute_signature(
        "1:2", "cat-qa", "Padding is wrong"
    )


def test_signature_is_lowercase_hex():
    sig = compute_signature("10:42", "cat-qa", "Some *markdown* text")
    assert sig == sig.lower()
    int(sig, 16)
