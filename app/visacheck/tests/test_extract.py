from __future__ import annotations

from visacheck.pipeline.extract import detect_document_type, extract_structured_fields


def test_labelled_fields_from_text_passport(text_passport) -> None:
    fields = extract_structured_fields(text_passport)

    assert fields["passport_number"].value == "L898902C"
    assert fields["passport_number"].confidence == 65
    assert fields["nationality"].value == "UTOPIAN"
    assert fields["nationality"].confidence == 60
    assert fields["date_of_birth"].value == "1974-08-12"
    assert fields["expiry_date"].value == "2045-04-15"
    assert fields["surname"].value == "ERIKSSON"
    assert fields["given_names"].value == "ANNA MARIA"
    assert fields["full_name"].value == "ERIKSSON ANNA MARIA"
    assert fields["full_name"].confidence == 55
    assert all(field.source == "text" for field in fields.values())


def test_labelled_values_stay_on_their_line() -> None:
    fields = extract_structured_fields("Surname:\nGiven Names: JOHN")
    assert "surname" not in fields
    assert fields["given_names"].value == "JOHN"
    assert "full_name" not in fields


def test_passport_number_requires_a_digit() -> None:
    fields = extract_structured_fields("PASSPORT NUMBER\nPassport No: ABCDEF")
    assert "passport_number" not in fields

    fields = extract_structured_fields("Document Number - x1234 56")
    assert fields["passport_number"].value == "x1234"


def test_date_aliases_and_unparsable_dates() -> None:
    fields = extract_structured_fields("DOB 1980-02-29\nExpiry Date: 31/02/2030")
    assert fields["date_of_birth"].value == "1980-02-29"
    assert "expiry_date" not in fields


def test_generic_key_value_lines_are_low_confidence() -> None:
    fields = extract_structured_fields("Place of Birth: Utopia City\nAuthority - Ministry")
    assert fields["place_of_birth"].value == "Utopia City"
    assert fields["place_of_birth"].confidence == 40
    assert fields["authority"].value == "Ministry"


def test_generic_lines_do_not_displace_labelled_values(text_passport) -> None:
    # "Surname: ERIKSSON" also matches the generic pattern at a lower confidence.
    fields = extract_structured_fields(text_passport)
    assert fields["surname"].confidence == 55


def test_empty_text_yields_no_fields() -> None:
    assert extract_structured_fields("") == {}
    assert extract_structured_fields("   \n\n") == {}


def test_document_type_keyword_priority() -> None:
    assert detect_document_type("Residence PERMIT / Passport holder") == "passport"
    assert detect_document_type("uk driving licence") == "driving_licence"
    assert detect_document_type("NATIONAL ID card") == "national_id"
    assert detect_document_type("Schengen visa sticker") == "visa"
    assert detect_document_type("work permit") == "permit"
    assert detect_document_type("bank statement") is None
    assert detect_document_type("") is None


def test_generic_lines_never_fill_canonical_fields() -> None:
    fields = extract_structured_fields("Passport Number: ABCDEF\nExpiry Date: 2030/01/01\nSex: F X")
    assert "passport_number" not in fields
    assert "expiry_date" not in fields
    assert "sex" not in fields


def test_non_ascii_digits_are_not_dates() -> None:
    fields = extract_structured_fields("Date of Birth: ١٢/٠٨/١٩٧٤\nPassport No: L٨٩٨٩٠")
    assert "date_of_birth" not in fields
    assert "passport_number" not in fields
