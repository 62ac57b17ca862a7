"""Flask JSON API for loan and investment scenarios and saved rate conversions.

Scenarios are stored through ``ScenarioStore``; schedules, summaries and rate
comparisons are recomputed by the ``finsim`` engines on every request.

Configuration comes from the environment (``FINSIM_DATABASE_URL``,
``FINSIM_LOG_LEVEL``) and can be overridden by the mapping passed to
``create_app``.
"""

import os

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from finsim.amortization import (
    calculate_loan_summary,
    compare_summaries,
    generate_amortization_schedule,
    summarize_schedule,
)
from finsim.data_models import RateComparison
from finsim.errors import InvalidExtraPayment, InvalidScenario
from finsim.investment import (
    calculate_investment_summary,
    compare_rates,
    generate_monthly_summary_schedule,
    generate_projection_schedule,
)
from finsim.rates import convert_all, convert_rate
from finsim_web.options import InvalidQueryParameter, ScheduleOptions
from finsim_web.payloads import (
    parse_extra_payment_payload,
    parse_interest_rate_payload,
    parse_investment_payload,
    parse_loan_payload,
    parse_rate_comparison_payload,
)
from finsim_web.serializers import (
    amortization_entry_json,
    extra_payment_from_record,
    extra_payment_json,
    interest_rate_scenario_json,
    investment_scenario_from_record,
    investment_scenario_json,
    investment_summary_json,
    loan_scenario_from_record,
    loan_scenario_json,
    loan_summary_json,
    projection_entry_json,
    rate_comparison_from_record,
    rate_comparison_json,
    rate_comparison_result_json,
    rate_conversions_json,
)
from finsim_web.store import DuplicateRecord, RecordNotFound, ScenarioStore, create_store_from_env

api = Blueprint("api", __name__, url_prefix="/api")

BASE_RATE_LABEL = "Base rate"


def _store() -> ScenarioStore:
    return current_app.extensions["finsim_store"]


def _body():
    return request.get_json(silent=True)


# -- loan scenarios ------------------------------------------------------


@api.get("/loan-scenarios")
def list_loan_scenarios():
    scenarios = _store().list_loan_scenarios(
        sort=request.args.get("sort", "created_at"), order=request.args.get("order", "desc")
    )
    return jsonify(
        {"scenarios": [loan_scenario_json(s) for s in scenarios], "totalCount": len(scenarios)}
    )


@api.post("/loan-scenarios")
def create_loan_scenario():
    record = _store().add_loan_scenario(parse_loan_payload(_body()))
    return jsonify(loan_scenario_json(record)), 201


@api.get("/loan-scenarios/<scenario_id>")
def get_loan_scenario(scenario_id):
    return jsonify(loan_scenario_json(_store().get_loan_scenario(scenario_id)))


@api.patch("/loan-scenarios/<scenario_id>")
def update_loan_scenario(scenario_id):
    store = _store()
    fields = parse_loan_payload(_body(), partial=True)
    if "term_months" in fields:
        numbers = [ep["payment_number"] for ep in store.list_extra_payments(scenario_id)]
        if numbers and max(numbers) > fields["term_months"]:
            raise InvalidExtraPayment(
                f"An extra payment is scheduled for payment {max(numbers)}, "
                f"beyond the new term of {fields['term_months']} months"
            )
    return jsonify(loan_scenario_json(store.update_loan_scenario(scenario_id, fields)))


@api.delete("/loan-scenarios/<scenario_id>")
def delete_loan_scenario(scenario_id):
    _store().delete_loan_scenario(scenario_id)
    return jsonify({"deleted": True, "id": scenario_id})


@api.get("/loan-scenarios/<scenario_id>/extra-payments")
def list_extra_payments(scenario_id):
    records = _store().list_extra_payments(scenario_id)
    return jsonify({"extraPayments": [extra_payment_json(r) for r in records]})


@api.post("/loan-scenarios/<scenario_id>/extra-payments")
def create_extra_payment(scenario_id):
    store = _store()
    scenario = store.get_loan_scenario(scenario_id)
    fields = parse_extra_payment_payload(_body(), scenario["term_months"])
    record = store.add_extra_payment(scenario_id, **fields)
    return jsonify(extra_payment_json(record)), 201


@api.delete("/loan-scenarios/<scenario_id>/extra-payments/<extra_payment_id>")
def delete_extra_payment(scenario_id, extra_payment_id):
    _store().delete_extra_payment(scenario_id, extra_payment_id)
    return jsonify({"deleted": True, "id": extra_payment_id})


@api.get("/loan-scenarios/<scenario_id>/schedule")
def loan_schedule(scenario_id):
    """Payment schedule of a stored loan.

    ``includeExtraPayments=false`` computes the plain schedule even when
    extra payments are stored.
    """
    options = ScheduleOptions.from_query(request.args)
    store = _store()
    scenario = loan_scenario_from_record(store.get_loan_scenario(scenario_id))
    extra_records = store.list_extra_payments(scenario_id) if options.include_extra_payments else []
    extra_payments = [extra_payment_from_record(r) for r in extra_records]

    payments = generate_amortization_schedule(scenario, extra_payments)
    with_extras = summarize_schedule(scenario, payments)
    original = calculate_loan_summary(scenario) if extra_payments else with_extras
    impact = compare_summaries(original, with_extras)
    return jsonify(
        {
            "loanScenarioId": scenario_id,
            "summary": loan_summary_json(impact.new_summary),
            "payments": [amortization_entry_json(p) for p in payments],
            "extraPayments": [extra_payment_json(r) for r in extra_records],
            "originalSummary": loan_summary_json(impact.original_summary),
            "monthsSaved": impact.months_saved,
            "interestSaved": float(impact.interest_saved),
        }
    )


# -- investment scenarios ------------------------------------------------


@api.get("/invest-scenarios")
def list_investment_scenarios():
    records = _store().list_investment_scenarios(
        sort=request.args.get("sort", "created_at"), order=request.args.get("order", "desc")
    )
    scenarios = []
    for record in records:
        payload = investment_scenario_json(record)
        summary = calculate_investment_summary(investment_scenario_from_record(record))
        payload["projectedFinalBalance"] = float(summary.final_balance)
        scenarios.append(payload)
    return jsonify({"scenarios": scenarios, "totalCount": len(scenarios)})


@api.post("/invest-scenarios")
def create_investment_scenario():
    record = _store().add_investment_scenario(parse_investment_payload(_body()))
    return jsonify(investment_scenario_json(record)), 201


@api.get("/invest-scenarios/<scenario_id>")
def get_investment_scenario(scenario_id):
    return jsonify(investment_scenario_json(_store().get_investment_scenario(scenario_id)))


@api.patch("/invest-scenarios/<scenario_id>")
def update_investment_scenario(scenario_id):
    fields = parse_investment_payload(_body(), partial=True)
    return jsonify(investment_scenario_json(_store().update_investment_scenario(scenario_id, fields)))


@api.delete("/invest-scenarios/<scenario_id>")
def delete_investment_scenario(scenario_id):
    _store().delete_investment_scenario(scenario_id)
    return jsonify({"deleted": True, "id": scenario_id})


@api.get("/invest-scenarios/<scenario_id>/rate-comparisons")
def list_rate_comparisons(scenario_id):
    records = _store().list_rate_comparisons(scenario_id)
    return jsonify({"rateComparisons": [rate_comparison_json(r) for r in records]})


@api.post("/invest-scenarios/<scenario_id>/rate-comparisons")
def create_rate_comparison(scenario_id):
    fields = parse_rate_comparison_payload(_body())
    record = _store().add_rate_comparison(scenario_id, **fields)
    return jsonify(rate_comparison_json(record)), 201


@api.delete("/invest-scenarios/<scenario_id>/rate-comparisons/<comparison_id>")
def delete_rate_comparison(scenario_id, comparison_id):
    _store().delete_rate_comparison(scenario_id, comparison_id)
    return jsonify({"deleted": True, "id": comparison_id})


@api.get("/invest-scenarios/<scenario_id>/projection")
def investment_projection(scenario_id):
    """Summary and schedule of a stored investment.

    ``view=detailed`` returns one row per compounding period, ``view=monthly``
    (the default) one row per month. Stored rate comparisons are added,
    together with the scenario's own rate, unless ``includeComparisons=false``.
    """
    options = ScheduleOptions.from_query(request.args)
    store = _store()
    scenario = investment_scenario_from_record(store.get_investment_scenario(scenario_id))

    summary = calculate_investment_summary(scenario)
    if options.view == "detailed":
        schedule = generate_projection_schedule(scenario)
    else:
        schedule = generate_monthly_summary_schedule(scenario)
    response = {
        "investmentScenarioId": scenario_id,
        "summary": investment_summary_json(summary),
        "schedule": [projection_entry_json(e) for e in schedule],
    }

    if options.include_comparisons:
        stored = [rate_comparison_from_record(r) for r in store.list_rate_comparisons(scenario_id)]
        if stored:
            rates = [RateComparison(rate=scenario.annual_rate, label=BASE_RATE_LABEL)]
            rates += [c for c in stored if c.rate != scenario.annual_rate]
            rates.sort(key=lambda c: c.rate)
            response["rateComparisons"] = [
                rate_comparison_result_json(r) for r in compare_rates(scenario, rates)
            ]
    return jsonify(response)


# -- rate conversion -----------------------------------------------------


@api.post("/interest-rates/convert")
def convert_interest_rate():
    body = _body()
    if not isinstance(body, dict) or body.get("value") is None:
        raise InvalidScenario("value is required")
    source = body.get("from", "EA")
    if body.get("to"):
        result = convert_rate(body["value"], source, body["to"])
        return jsonify({"from": str(source).upper(), "to": str(body["to"]).upper(), "rate": float(result)})
    rates = convert_all(body["value"], source)
    return jsonify({"from": str(source).upper(), "rates": rate_conversions_json(rates)})


# -- interest rate scenarios ---------------------------------------------


def _with_conversions(record):
    payload = interest_rate_scenario_json(record)
    payload["conversions"] = rate_conversions_json(
        convert_all(record["input_rate"], record["input_rate_type"])
    )
    return payload


@api.get("/interest-rate-scenarios")
def list_interest_rate_scenarios():
    scenarios = [_with_conversions(r) for r in _store().list_interest_rate_scenarios()]
    return jsonify({"scenarios": scenarios, "totalCount": len(scenarios)})


@api.post("/interest-rate-scenarios")
def create_interest_rate_scenario():
    record = _store().add_interest_rate_scenario(parse_interest_rate_payload(_body()))
    return jsonify(_with_conversions(record)), 201


@api.get("/interest-rate-scenarios/<scenario_id>")
def get_interest_rate_scenario(scenario_id):
    return jsonify(_with_conversions(_store().get_interest_rate_scenario(scenario_id)))


@api.patch("/interest-rate-scenarios/<scenario_id>")
def update_interest_rate_scenario(scenario_id):
    fields = parse_interest_rate_payload(_body(), partial=True)
    return jsonify(_with_conversions(_store().update_interest_rate_scenario(scenario_id, fields)))


@api.delete("/interest-rate-scenarios/<scenario_id>")
def delete_interest_rate_scenario(scenario_id):
    _store().delete_interest_rate_scenario(scenario_id)
    return jsonify({"deleted": True, "id": scenario_id})


# -- application ---------------------------------------------------------


def _error(message: str, code: str, status: int):
    return jsonify({"error": message, "code": code}), status


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(InvalidScenario)
    def handle_invalid_scenario(exc):
        return _error(str(exc), "INVALID_SCENARIO", 400)

    @app.errorhandler(InvalidExtraPayment)
    def handle_invalid_extra_payment(exc):
        return _error(str(exc), "INVALID_EXTRA_PAYMENT", 400)

    @app.errorhandler(InvalidQueryParameter)
    def handle_invalid_query(exc):
        return _error(str(exc), "INVALID_PARAMETER", 400)

    @app.errorhandler(RecordNotFound)
    def handle_not_found(exc):
        return _error(str(exc), "NOT_FOUND", 404)

    @app.errorhandler(DuplicateRecord)
    def handle_duplicate(exc):
        return _error(str(exc), "DUPLICATE", 409)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc):
        app.logger.exception("Database error while handling %s %s", request.method, request.path)
        return _error("Internal database error", "DATABASE_ERROR", 500)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return _error(exc.description, exc.name.upper().replace(" ", "_"), exc.code)


def create_app(config=None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(
        DATABASE_URL=os.environ.get("FINSIM_DATABASE_URL"),
        LOG_LEVEL=os.environ.get("FINSIM_LOG_LEVEL", "INFO"),
    )
    if config:
        app.config.update(config)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    store = create_store_from_env(app.config["DATABASE_URL"])
    app.extensions["finsim_store"] = store
    app.logger.info("Scenario store ready at %s", make_url(store.url).render_as_string(hide_password=True))

    app.register_blueprint(api)
    _register_error_handlers(app)
    return app


if __name__ == "__main__":
    print("Starting finsim API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
