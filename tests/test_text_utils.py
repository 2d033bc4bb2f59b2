from langchain_core.documents import Document

from ledgerlens.src.utils.text_utils import clean_text, extract_period, format_scored_records


def test_clean_text_collapses_spaces_and_strips_bom():
    raw = "\ufeffdate:   2024-01-05 \namount:\t 12.50  \n"
    assert clean_text(raw) == "date: 2024-01-05\namount: 12.50"


def test_format_scored_records_numbers_records_with_relevance():
    matches = [
        (Document(page_content="amount: 10"), 0.875),
        (Document(page_content="amount: 20"), 0.5),
    ]
    rendered = format_scored_records(matches, "\n---\n")
    assert rendered == "Record 1 (Relevance: 87.5%):\namount: 10\n---\nRecord 2 (Relevance: 50.0%):\namount: 20"


def test_extract_period_orders_mixed_formats_chronologically():
    period = extract_period([
        "date: 2024-03-05\namount: 1",
        "date: 01/02/2024\namount: 2",
        "date: 15-01-2024\namount: 3",
    ])
    assert period["startDate"] == "15-01-2024"
    assert period["endDate"] == "2024-03-05"
    assert period["description"] == "Analysis covers transactions from 15-01-2024 to 2024-03-05"


def test_extract_period_uses_first_date_of_each_record():
    period = extract_period(["posted 2024-05-01 value 2024-06-30"])
    assert period["startDate"] == period["endDate"] == "2024-05-01"


def test_extract_period_without_dates_is_unknown():
    period = extract_period(["no dates here", "99/99/2024 is not a date"])
    assert period == {
        "startDate": "Unknown",
        "endDate": "Unknown",
        "description": "Transaction period could not be determined",
    }
