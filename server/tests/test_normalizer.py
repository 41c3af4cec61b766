from water_meter.ocr.normalizer import normalize_text


def test_letter_confusions_become_digits():
    assert normalize_text("O12I5") == "01215"


def test_full_table():
    assert normalize_text("OoDIlSsZB") == "000115528"


def test_mapping_is_case_sensitive():
    # Only the listed forms are mapped
    assert normalize_text("dizb") == "dizb"
    assert normalize_text("L") == "L"


def test_length_is_preserved():
    raw = "Model: ZB-2019\nOO1234 m3"
    assert len(normalize_text(raw)) == len(raw)


def test_digits_and_empty_text_untouched():
    assert normalize_text("012345") == "012345"
    assert normalize_text("") == ""
