from app.services.fingerprint import request_fingerprint


def test_same_request_same_fingerprint():
    assert request_fingerprint(2500, "gbp") == request_fingerprint(2500, "gbp")


def test_currency_is_case_and_whitespace_insensitive():
    assert request_fingerprint(2500, "GBP") == request_fingerprint(2500, " gbp ")


def test_amount_changes_fingerprint():
    assert request_fingerprint(2500, "gbp") != request_fingerprint(9999, "gbp")


def test_currency_changes_fingerprint():
    assert request_fingerprint(2500, "gbp") != request_fingerprint(2500, "eur")


def test_fingerprint_is_hex_digest():
    digest = request_fingerprint(1, "usd")
    assert len(digest) == 64
    int(digest, 16)
