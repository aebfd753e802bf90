from __future__ import annotations

import functools

import anyio

from visacheck.pipeline.analyze import verify_documents
from visacheck.pipeline.ocr import EMPTY_RESULT, run_ocr
from visacheck.pipeline.policy import DEFAULT_POLICY


def _verify(documents, applicant, ocr, today, policy=DEFAULT_POLICY):
    return anyio.run(functools.partial(verify_documents, documents, applicant, policy, ocr=ocr, today=today))


def _ids(document):
    return [validation.id for validation in document.validations]


def test_mrz_passport_with_century_ambiguity(td3_lines, applicant, fake_ocr, today) -> None:
    applicant = applicant.model_copy(update={"date_of_birth": "1969-08-06"})
    ocr = fake_ocr({"scan": "\n".join(["PASSPORT", *td3_lines])})

    result = _verify([b"scan"], applicant, ocr, today)
    document = result.documents[0]

    assert document.detected_type == "passport"
    assert document.mrz is not None and document.mrz.format == "TD3"
    assert document.fields["date_of_birth"].value == "2069-08-06"
    assert document.fields["expiry_date"].value == "1994-06-23"
    assert _ids(document) == [
        "expiry_past",
        "dob_mismatch",
        "name_match",
        "passport_match",
        "mrz_checksum_pass",
        "mrz_composite_mismatch",
    ]
    assert result.eligibility.decision == "ineligible"
    assert result.eligibility.score == 50
    assert [action.priority for action in result.recommended_actions] == ["high", "medium"]
    assert 0 <= document.overall_confidence <= 100


def test_text_only_passport_is_eligible(text_passport, applicant, fake_ocr, today) -> None:
    result = _verify([b"front"], applicant, fake_ocr({"front": text_passport}), today)
    document = result.documents[0]

    assert document.mrz is None
    assert document.detected_type == "passport"
    assert _ids(document) == ["expiry_valid", "dob_match", "name_match", "passport_match"]
    assert result.eligibility.decision == "eligible"
    assert result.summary == "Processed 1 document(s); eligibility decision: ELIGIBLE."
    assert [action.action for action in result.recommended_actions] == [
        "Proceed with visa application submission"
    ]
    assert result.validations == []
    assert result.overall_confidence == document.overall_confidence


def test_first_mrz_window_wins_even_for_td1_cards(applicant, fake_ocr, today) -> None:
    lines = [
        "I<UTOD231458907<<<<<<<<<<<<<<<",
        "7408122F1204159UTO<<<<<<<<<<<6",
        "ERIKSSON<<ANNA<MARIA<<<<<<<<<<",
    ]
    # The two-line prefix is emitted before the full three-line block and is the one decoded.
    text = "\n".join(lines)
    result = _verify([b"card"], applicant, fake_ocr({"card": text}), today)
    document = result.documents[0]
    assert document.mrz.format == "UNKNOWN"
    assert document.detected_type is None
    assert "Missing required document types: passport" in result.eligibility.reasons


def test_documents_are_analysed_in_order(text_passport, applicant, fake_ocr, today) -> None:
    ocr = fake_ocr({"a": text_passport, "b": "Schengen VISA\nValid until 2027"})
    result = _verify([b"a", b"b"], applicant, ocr, today)
    assert [doc.index for doc in result.documents] == [0, 1]
    assert [doc.detected_type for doc in result.documents] == ["passport", "visa"]
    assert result.summary.startswith("Processed 2 document(s)")


def test_ocr_failure_degrades_to_empty_analysis(applicant, today) -> None:
    def broken_ocr(document: bytes):
        raise RuntimeError("tesseract missing")

    result = _verify([b"scan"], applicant, broken_ocr, today)
    document = result.documents[0]
    assert document.raw_text == ""
    assert document.fields == {}
    assert document.mrz is None
    assert document.validations == []
    assert document.overall_confidence == 0
    assert result.eligibility.decision == "ineligible"


def test_run_ocr_swallows_unreadable_input() -> None:
    assert run_ocr(b"not an image") == EMPTY_RESULT
    assert run_ocr(b"") == EMPTY_RESULT


def test_zero_documents(applicant, fake_ocr, today) -> None:
    result = _verify([], applicant, fake_ocr({}), today)
    assert result.documents == []
    assert [(v.id, v.status, v.confidence) for v in result.validations] == [("documents_missing", "fail", 30)]
    assert result.overall_confidence == 30
    assert result.eligibility.decision == "ineligible"
    assert result.summary == "Processed 0 document(s); eligibility decision: INELIGIBLE."


def test_unlabelled_passport_number_does_not_drive_checks(applicant, fake_ocr, today) -> None:
    ocr = fake_ocr({"scan": "PASSPORT\nPassport Number: ABCDEF"})
    result = _verify([b"scan"], applicant, ocr, today)
    document = result.documents[0]
    assert "passport_number" not in document.fields
    assert "passport_mismatch" not in _ids(document)
    assert [action.priority for action in result.recommended_actions] == ["low"]


def test_document_type_text_line_is_not_a_detected_type(applicant, fake_ocr, today) -> None:
    ocr = fake_ocr({"card": "Document Type: Residence Card\nHolder: Anna Eriksson"})
    result = _verify([b"card"], applicant, ocr, today)
    assert result.documents[0].detected_type is None
    assert "document_type" not in result.documents[0].fields
