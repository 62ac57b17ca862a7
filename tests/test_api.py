import pytest

LOAN = {
    "name": "Car loan",
    "principal": 10000,
    "interestRate": 12,
    "termMonths": 12,
    "startDate": "2024-01-15",
}

SAVINGS = {
    "name": "Emergency fund",
    "initialAmount": 1000,
    "monthlyContribution": 100,
    "termMonths": 12,
    "annualRate": 6,
}


@pytest.fixture
def loan_id(client):
    response = client.post("/api/loan-scenarios", json=LOAN)
    assert response.status_code == 201
    return response.get_json()["id"]


@pytest.fixture
def savings_id(client):
    response = client.post("/api/invest-scenarios", json=SAVINGS)
    assert response.status_code == 201
    return response.get_json()["id"]


def test_create_and_fetch_loan_scenario(client, loan_id):
    body = client.get(f"/api/loan-scenarios/{loan_id}").get_json()
    assert body["name"] == "Car loan"
    assert body["principal"] == 10000
    assert body["interestRate"] == 12
    assert body["startDate"] == "2024-01-15"
    assert body["currency"] == "USD"

    listing = client.get("/api/loan-scenarios").get_json()
    assert listing["totalCount"] == 1
    assert listing["scenarios"][0]["extraPaymentsCount"] == 0


def test_duplicate_loan_name_conflicts(client, loan_id):
    response = client.post("/api/loan-scenarios", json=LOAN)
    assert response.status_code == 409
    assert response.get_json()["code"] == "DUPLICATE"


@pytest.mark.parametrize(
    "changes",
    [
        {"principal": -5},
        {"interestRate": 101},
        {"termMonths": 0},
        {"termMonths": 12.5},
        {"startDate": "soon"},
        {"name": ""},
        {"currency": "XYZ"},
    ],
)
def test_invalid_loan_payload(client, changes):
    response = client.post("/api/loan-scenarios", json=dict(LOAN, **changes))
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_SCENARIO"


def test_missing_body_is_rejected(client):
    response = client.post("/api/loan-scenarios", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_unknown_scenario_is_not_found(client):
    response = client.get("/api/loan-scenarios/missing/schedule")
    assert response.status_code == 404
    assert response.get_json()["code"] == "NOT_FOUND"


def test_loan_schedule(client, loan_id):
    body = client.get(f"/api/loan-scenarios/{loan_id}/schedule").get_json()
    assert body["summary"]["monthlyPayment"] == 888.49
    assert body["summary"]["termMonths"] == 12
    assert len(body["payments"]) == 12
    assert body["payments"][0]["paymentNumber"] == 1
    assert body["payments"][0]["interestPortion"] == 100.0
    assert body["payments"][-1]["remainingBalance"] == 0
    assert body["monthsSaved"] == 0
    assert body["extraPayments"] == []


def test_extra_payment_changes_schedule(client, loan_id):
    response = client.post(
        f"/api/loan-scenarios/{loan_id}/extra-payments",
        json={"paymentNumber": 6, "amount": 2000, "description": "Bonus"},
    )
    assert response.status_code == 201

    body = client.get(f"/api/loan-scenarios/{loan_id}/schedule").get_json()
    assert len(body["payments"]) == 10
    assert body["payments"][5]["isExtraPayment"] is True
    assert body["payments"][5]["extraAmount"] == 2000
    assert body["monthsSaved"] == 2
    assert body["interestSaved"] > 0
    assert body["extraPayments"][0]["description"] == "Bonus"

    plain = client.get(f"/api/loan-scenarios/{loan_id}/schedule?includeExtraPayments=false").get_json()
    assert len(plain["payments"]) == 12
    assert plain["extraPayments"] == []


def test_extra_payment_validation(client, loan_id):
    url = f"/api/loan-scenarios/{loan_id}/extra-payments"
    beyond = client.post(url, json={"paymentNumber": 13, "amount": 100})
    assert beyond.status_code == 400
    assert beyond.get_json()["code"] == "INVALID_EXTRA_PAYMENT"
    assert client.post(url, json={"paymentNumber": 3, "amount": 0}).status_code == 400

    assert client.post(url, json={"paymentNumber": 3, "amount": 100}).status_code == 201
    assert client.post(url, json={"paymentNumber": 3, "amount": 50}).status_code == 409


def test_shrinking_term_below_extra_payment_is_rejected(client, loan_id):
    client.post(f"/api/loan-scenarios/{loan_id}/extra-payments", json={"paymentNumber": 10, "amount": 100})
    response = client.patch(f"/api/loan-scenarios/{loan_id}", json={"termMonths": 6})
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_EXTRA_PAYMENT"

    response = client.patch(f"/api/loan-scenarios/{loan_id}", json={"termMonths": 24})
    assert response.status_code == 200
    assert response.get_json()["termMonths"] == 24


def test_delete_extra_payment(client, loan_id):
    url = f"/api/loan-scenarios/{loan_id}/extra-payments"
    extra_id = client.post(url, json={"paymentNumber": 2, "amount": 300}).get_json()["id"]
    assert client.delete(f"{url}/{extra_id}").status_code == 200
    assert client.get(url).get_json()["extraPayments"] == []
    assert client.delete(f"{url}/{extra_id}").status_code == 404


def test_deleting_loan_removes_extra_payments(client, loan_id):
    client.post(f"/api/loan-scenarios/{loan_id}/extra-payments", json={"paymentNumber": 2, "amount": 300})
    response = client.delete(f"/api/loan-scenarios/{loan_id}")
    assert response.get_json() == {"deleted": True, "id": loan_id}
    assert client.get(f"/api/loan-scenarios/{loan_id}").status_code == 404

    recreated = client.post("/api/loan-scenarios", json=LOAN).get_json()["id"]
    assert client.get(f"/api/loan-scenarios/{recreated}/extra-payments").get_json()["extraPayments"] == []


def test_investment_defaults(client, savings_id):
    body = client.get(f"/api/invest-scenarios/{savings_id}").get_json()
    assert body["compoundingFrequency"] == "monthly"
    assert body["currency"] == "COP"

    listing = client.get("/api/invest-scenarios").get_json()
    assert listing["scenarios"][0]["projectedFinalBalance"] == 2295.23


def test_investment_projection(client, savings_id):
    body = client.get(f"/api/invest-scenarios/{savings_id}/projection").get_json()
    summary = body["summary"]
    assert summary["finalBalance"] == 2295.23
    assert summary["totalContributions"] == 1200
    assert len(body["schedule"]) == 12
    assert body["schedule"][-1]["closingBalance"] == 2295.23
    assert "rateComparisons" not in body


def test_daily_projection_views(client, savings_id):
    client.patch(f"/api/invest-scenarios/{savings_id}", json={"compoundingFrequency": "daily"})
    url = f"/api/invest-scenarios/{savings_id}/projection"
    assert len(client.get(url).get_json()["schedule"]) == 12
    assert len(client.get(f"{url}?view=detailed").get_json()["schedule"]) == 365

    response = client.get(f"{url}?view=weekly")
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_PARAMETER"


def test_invalid_compounding_frequency(client):
    response = client.post("/api/invest-scenarios", json=dict(SAVINGS, compoundingFrequency="weekly"))
    assert response.status_code == 400


def test_rate_comparisons_in_projection(client, savings_id):
    url = f"/api/invest-scenarios/{savings_id}/rate-comparisons"
    assert client.post(url, json={"rate": 8, "label": "Bank B"}).status_code == 201
    assert client.post(url, json={"rate": 4}).status_code == 201
    assert client.post(url, json={"rate": 4}).status_code == 409

    projection = f"/api/invest-scenarios/{savings_id}/projection"
    comparisons = client.get(projection).get_json()["rateComparisons"]
    assert [c["rate"] for c in comparisons] == [4, 6, 8]
    base = comparisons[1]
    assert base["isBaseRate"] is True
    assert base["label"] == "Base rate"
    assert base["differenceFromBase"] == 0
    assert comparisons[0]["differenceFromBase"] < 0 < comparisons[2]["differenceFromBase"]

    body = client.get(f"{projection}?includeComparisons=false").get_json()
    assert "rateComparisons" not in body


def test_deleting_investment_removes_comparisons(client, savings_id):
    url = f"/api/invest-scenarios/{savings_id}/rate-comparisons"
    comparison_id = client.post(url, json={"rate": 8}).get_json()["id"]
    assert client.delete(f"{url}/{comparison_id}").status_code == 200
    assert client.get(url).get_json()["rateComparisons"] == []

    assert client.delete(f"/api/invest-scenarios/{savings_id}").status_code == 200
    assert client.get(url).status_code == 404


def test_convert_rate_endpoint(client):
    body = client.post("/api/interest-rates/convert", json={"value": 12, "from": "EA", "to": "EM"}).get_json()
    assert body["from"] == "EA"
    assert body["to"] == "EM"
    assert abs(body["rate"] - 0.948879) < 1e-5

    every = client.post("/api/interest-rates/convert", json={"value": 12}).get_json()
    assert set(every["rates"]) == {"EA", "EM", "ED", "NM", "NA"}

    assert client.post("/api/interest-rates/convert", json={"value": -1}).status_code == 400
    assert client.post("/api/interest-rates/convert", json={}).status_code == 400


def test_unknown_route_returns_json_error(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json()["code"] == "NOT_FOUND"


def test_sub_cent_amounts_are_rejected(client, loan_id):
    response = client.post("/api/loan-scenarios", json=dict(LOAN, name="Tiny", principal=0.004))
    assert response.status_code == 400

    url = f"/api/loan-scenarios/{loan_id}/extra-payments"
    response = client.post(url, json={"paymentNumber": 3, "amount": 0.004})
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_EXTRA_PAYMENT"
    assert client.get(f"/api/loan-scenarios/{loan_id}/schedule").status_code == 200


def test_amounts_are_rounded_to_cents(client, loan_id):
    created = client.post("/api/loan-scenarios", json=dict(LOAN, name="Rounded", principal=100.005)).get_json()
    assert created["principal"] == 100.01

    url = f"/api/loan-scenarios/{loan_id}/extra-payments"
    extra = client.post(url, json={"paymentNumber": 3, "amount": 250.456}).get_json()
    assert extra["amount"] == 250.46


def test_schedule_is_built_once_per_variant(client, loan_id, monkeypatch):
    import finsim.amortization as amortization

    calls = []
    original_rows = amortization._schedule_rows

    def counting_rows(scenario, extras):
        calls.append(dict(extras))
        return original_rows(scenario, extras)

    monkeypatch.setattr(amortization, "_schedule_rows", counting_rows)
    client.post(f"/api/loan-scenarios/{loan_id}/extra-payments", json={"paymentNumber": 6, "amount": 2000})

    body = client.get(f"/api/loan-scenarios/{loan_id}/schedule").get_json()
    assert body["monthsSaved"] == 2
    assert len(calls) == 2
    assert sorted(len(extras) for extras in calls) == [0, 1]

    calls.clear()
    client.get(f"/api/loan-scenarios/{loan_id}/schedule?includeExtraPayments=false")
    assert len(calls) == 1


RATE_SCENARIO = {"name": "Card statement", "inputRate": 1.5, "inputRateType": "NM"}


def test_interest_rate_scenario_crud(client):
    response = client.post("/api/interest-rate-scenarios", json=RATE_SCENARIO)
    assert response.status_code == 201
    created = response.get_json()
    assert created["inputRateType"] == "NM"
    assert set(created["conversions"]) == {"EA", "EM", "ED", "NM", "NA"}
    assert created["conversions"]["EM"] == 1.5
    assert abs(created["conversions"]["EA"] - 19.561817) < 1e-4

    url = f"/api/interest-rate-scenarios/{created['id']}"
    updated = client.patch(url, json={"inputRate": 12, "inputRateType": "ea", "notes": "Bank offer"}).get_json()
    assert updated["inputRateType"] == "EA"
    assert updated["notes"] == "Bank offer"
    assert updated["conversions"]["EA"] == 12

    listing = client.get("/api/interest-rate-scenarios").get_json()
    assert listing["totalCount"] == 1
    assert listing["scenarios"][0]["conversions"]["NA"] == updated["conversions"]["NA"]

    assert client.delete(url).get_json() == {"deleted": True, "id": created["id"]}
    assert client.get(url).status_code == 404


@pytest.mark.parametrize(
    "changes",
    [{"inputRate": -1}, {"inputRate": 1001}, {"inputRateType": "XX"}, {"name": ""}],
)
def test_invalid_interest_rate_scenario(client, changes):
    response = client.post("/api/interest-rate-scenarios", json=dict(RATE_SCENARIO, **changes))
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_SCENARIO"


def test_duplicate_interest_rate_scenario(client):
    assert client.post("/api/interest-rate-scenarios", json=RATE_SCENARIO).status_code == 201
    assert client.post("/api/interest-rate-scenarios", json=RATE_SCENARIO).status_code == 409
