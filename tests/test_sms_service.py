import json
from types import SimpleNamespace

import httpx
import pytest

from services.sms_service import SMSService, build_result_message, format_phone_number
from services.template_service import DEFAULT_SCORE_COLUMNS


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("08031234567", "2348031234567"),
        ("+234 803 123 4567", "2348031234567"),
        ("8031234567", "2348031234567"),
        ("0803-123-4567", "2348031234567"),
    ],
)
def test_format_phone_number(raw, expected):
    assert format_phone_number(raw) == expected


def _service(handler):
    service = SMSService(client=httpx.Client(transport=httpx.MockTransport(handler)))
    service.url = "https://sms.test/api/sms/send"
    service.api_key = "termii-key"
    service.bulk_delay = 0
    return service


def test_send_posts_termii_payload():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"code": "ok", "message_id": "abc"})

    outcome = _service(handler).send("08031234567", "hello")

    assert outcome.success is True
    assert outcome.to == "2348031234567"
    assert seen == [{
        "api_key": "termii-key",
        "to": "2348031234567",
        "from": "Scoolynk",
        "sms": "hello",
        "type": "plain",
        "channel": "generic",
    }]


def test_send_reports_gateway_rejection():
    outcome = _service(lambda request: httpx.Response(200, json={"code": "error", "message": "Insufficient balance"})).send(
        "08031234567", "hello"
    )
    assert outcome.success is False
    assert outcome.error == "Insufficient balance"


def test_send_reports_http_errors():
    outcome = _service(lambda request: httpx.Response(500, text="boom")).send("08031234567", "hello")
    assert outcome.success is False
    assert outcome.error


def test_send_bulk_keeps_going_after_failure():
    def handler(request):
        to = json.loads(request.content)["to"]
        if to == "2348030000001":
            return httpx.Response(400, json={"message": "invalid number"})
        return httpx.Response(200, json={"code": "ok"})

    outcomes = _service(handler).send_bulk([
        {"to": "08030000001", "message": "a"},
        {"to": "08030000002", "message": "b"},
    ])
    assert [o.success for o in outcomes] == [False, True]


def test_build_result_message():
    result = SimpleNamespace(
        term="First Term",
        subjects=[{"total": 83}, {"total": 62}],
        score_columns=DEFAULT_SCORE_COLUMNS,
        overall_total=145.0,
        overall_average=73,
        overall_grade="A",
        overall_position=2,
        comments={"teacher": "Excellent work."},
    )
    student = SimpleNamespace(name="Ada Obi", parent_name="Mrs Obi")
    school = SimpleNamespace(name="Bright Future Academy", phone="08030000000")

    message = build_result_message(result, student, "JSS 1A", school)

    assert message == (
        "Dear Mrs Obi,\n\n"
        "First Term result for Ada Obi (JSS 1A) is ready.\n\n"
        "Overall: 145/200 (73%) - A\n"
        "Position: 2\n\n"
        "Teacher's Comment: Excellent work.\n\n"
        "Visit school for full result.\n\n"
        "Bright Future Academy\n08030000000"
    )
