from water_meter.ocr.extractor import extract_reading, find_candidates, pick_candidate


def test_reading_beside_unit_marker():
    assert extract_reading("Reading: 012345 m3") == "012345"


def test_unit_marker_is_case_insensitive_and_accepts_superscript():
    assert [c.text for c in find_candidates("VOL 0123 M3")] == ["0123", "3"]
    assert [c.text for c in find_candidates("total 456789 m³")] == ["456789"]


def test_lines_with_letters_are_skipped():
    text = "Model WX-2019\n12345\nSN 998877"
    assert [c.text for c in find_candidates(text)] == ["12345"]


def test_candidates_keep_offsets_and_lines():
    text = "111\n22 3333"
    candidates = find_candidates(text, variant="original")

    assert [(c.text, c.start, c.line_index) for c in candidates] == [
        ("111", 0, 0),
        ("22", 4, 1),
        ("3333", 7, 1),
    ]
    assert all(c.variant == "original" for c in candidates)
    for c in candidates:
        assert text[c.start:c.end] == c.text


def test_five_digits_preferred_over_four():
    assert extract_reading("1234\n98765\n4321") == "98765"


def test_first_four_digit_run_when_no_five():
    assert extract_reading("12\n4321 8765") == "4321"


def test_falls_through_to_scoring():
    # No 4- or 5-digit run: the full-line 7-digit counter outscores "123"
    assert extract_reading("123\n0002541") == "0002541"


def test_look_alikes_corrected_before_extraction():
    assert extract_reading("O12I5") == "01215"


def test_empty_inputs():
    assert extract_reading("") == ""
    assert extract_reading("no digits here") == ""
    assert find_candidates("") == []
    assert pick_candidate([], "") is None
