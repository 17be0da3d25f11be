"""Tests for the remote classifier client."""

import json
from datetime import date, datetime

import httpx
import pytest

from kakeibo.domain.entities import Category, TransactionKind
from kakeibo.importing.drafts import DraftRow, RowStatus
from kakeibo.importing.session import WizardStep
from kakeibo.integration.remote_classifier import RemoteClassifier

CATEGORIES = [
    Category(id=1, name="外食", parent_id=None, created_at=datetime(2025, 1, 1)),
    Category(id=2, name="給与", parent_id=None, created_at=datetime(2025, 1, 1), kind=TransactionKind.INCOME),
]


def draft(row_index, description, kind=TransactionKind.EXPENSE):
    return DraftRow(
        row_index=row_index,
        raw_cells=(description,),
        status=RowStatus.UNRESOLVED,
        occurred_on=date(2025, 8, 1),
        amount=1000,
        kind=kind,
        description=description,
    )


def make_classifier(handler, **kwargs):
    return RemoteClassifier("http://classifier.test/", transport=httpx.MockTransport(handler), **kwargs)


def test_confident_suggestions_returned():
    """Results above the confidence floor come back keyed by row index."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"row_index": 3, "category_id": 1, "confidence": 0.93},
                    {"row_index": 5, "category_id": 2, "confidence": 0.81},
                ]
            },
        )

    with make_classifier(handler) as classifier:
        result = classifier.suggest([draft(3, "居酒屋たぬき"), draft(5, "Salary ACME", TransactionKind.INCOME)], CATEGORIES)

    assert result == {3: 1, 5: 2}
    [request] = requests
    assert request.method == "POST"
    assert request.url == "http://classifier.test/classify"
    body = json.loads(request.content)
    assert body["rows"][0] == {
        "row_index": 3,
        "description": "居酒屋たぬき",
        "kind": "expense",
        "amount": 1000,
        "raw_category": None,
    }
    assert {"id": 2, "name": "給与", "kind": "income"} in body["categories"]


def test_low_confidence_and_unknown_ids_dropped():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "results": [
                    {"row_index": 1, "category_id": 1, "confidence": 0.5},
                    {"row_index": 2, "category_id": 99, "confidence": 0.99},
                    {"row_index": 42, "category_id": 1, "confidence": 0.99},
                    {"row_index": 3, "category_id": 1, "confidence": 0.8},
                ]
            },
        )

    classifier = make_classifier(handler)
    result = classifier.suggest([draft(1, "a shop"), draft(2, "b shop"), draft(3, "c shop")], CATEGORIES)
    classifier.close()

    assert result == {3: 1}


def test_malformed_results_skipped():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "results": [
                    "nonsense",
                    {"row_index": 1},
                    {"row_index": "x", "category_id": 1, "confidence": 1.0},
                    {"row_index": 2, "category_id": 1, "confidence": 0.9},
                ]
            },
        )

    classifier = make_classifier(handler)
    assert classifier.suggest([draft(1, "a"), draft(2, "b")], CATEGORIES) == {2: 1}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
def test_failures_mean_no_suggestions(response):
    classifier = make_classifier(lambda request: response)
    assert classifier.suggest([draft(1, "a")], CATEGORIES) == {}


def test_transport_errors_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"results": [{"row_index": 1, "category_id": 1, "confidence": 1.0}]})

    classifier = make_classifier(handler)
    assert classifier.suggest([draft(1, "a")], CATEGORIES) == {1: 1}
    assert len(calls) == 3


def test_unreachable_service_gives_up():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    classifier = make_classifier(handler)
    assert classifier.suggest([draft(1, "a")], CATEGORIES) == {}
    assert len(calls) == 3


def test_rows_sent_in_batches():
    sizes = []

    def handler(request):
        sizes.append(len(json.loads(request.content)["rows"]))
        return httpx.Response(200, json={"results": []})

    classifier = make_classifier(handler, batch_size=2)
    classifier.suggest([draft(i, f"shop {i}") for i in range(5)], CATEGORIES)
    assert sizes == [2, 2, 1]


def test_enriches_import_session(make_session, default_rules, sample_categories):
    """Suggestions from the service make unresolved import rows valid."""

    def handler(request):
        rows = json.loads(request.content)["rows"]
        return httpx.Response(
            200,
            json={
                "results": [
                    {"row_index": row["row_index"], "category_id": sample_categories["コンビニ"], "confidence": 0.9}
                    for row in rows
                    if row["description"].startswith("SEVEN")
                ]
            },
        )

    session = make_session("bank_generic.csv")
    session.advance()
    with make_classifier(handler) as classifier:
        assert session.enrich_with(classifier) == 1

    session.advance()
    session.advance()
    assert session.step == WizardStep.SUMMARY
    assert session.summary().valid == 1
