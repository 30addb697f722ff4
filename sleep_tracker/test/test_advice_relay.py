import json
from datetime import datetime, timedelta, timezone

import pytest

from sleep_tracker.services.advice_relay import (
    LOW_DATA_MESSAGE,
    AdviceConfigurationError,
    AdviceRelay,
    AdviceUpstreamError,
    build_advice_prompt,
)
from sleep_tracker.services.gemini_llm import GeminiLLM


class _Night:
    def __init__(self, sleep_time, wake_time, quality=None, notes=None):
        self.sleep_time = sleep_time
        self.wake_time = wake_time
        self.duration = (wake_time - sleep_time).total_seconds() / 3600
        self.quality = quality
        self.notes = notes


class _FakeRepository:
    def __init__(self, records):
        self.records = records
        self.limits = []

    def recent(self, limit=30):
        self.limits.append(limit)
        return self.records[:limit]


def _nights(count):
    start = datetime(2024, 3, 1, 23, 0, tzinfo=timezone.utc)
    nights = [
        _Night(start + timedelta(days=i), start + timedelta(days=i, hours=7, minutes=30),
               quality=(i % 10) + 1, notes=f"night {i}")
        for i in range(count)
    ]
    return list(reversed(nights))


def _prompt_records(prompt):
    return json.loads(prompt[prompt.index("["):prompt.rindex("]") + 1])


def test_low_data_returns_message_without_calling_upstream(fake_generator):
    relay = AdviceRelay(_FakeRepository(_nights(4)), fake_generator)

    result = relay.request_advice()

    assert not result.is_stream
    assert result.message == LOW_DATA_MESSAGE
    assert fake_generator.prompts == []


def test_enough_data_makes_exactly_one_upstream_call(fake_generator):
    repository = _FakeRepository(_nights(35))
    relay = AdviceRelay(repository, fake_generator)

    result = relay.request_advice()
    "".join(result.chunks)

    assert repository.limits == [30]
    assert len(fake_generator.prompts) == 1
    entries = _prompt_records(fake_generator.prompts[0])
    assert len(entries) == 30
    assert entries[0] == {
        "date": "2024-04-04",
        "sleepTime": "23:00",
        "wakeTime": "06:30",
        "duration": 7.5,
        "quality": 5,
        "notes": "night 34",
    }


def test_chunks_forwarded_in_order_without_merging(fake_generator_class):
    source = ["# Advice\n", "", "Go to bed ", "earlier.", "\n- tip"]
    generator = fake_generator_class(chunks=source)
    relay = AdviceRelay(_FakeRepository(_nights(5)), generator)

    forwarded = list(relay.request_advice().chunks)

    assert forwarded == source
    assert "".join(forwarded) == "".join(source)
    assert generator.closed


def test_prompt_lists_every_record_once():
    prompt = build_advice_prompt(_nights(6))
    entries = _prompt_records(prompt)
    assert [e["notes"] for e in entries] == [f"night {i}" for i in range(5, -1, -1)]


def test_prompt_keeps_missing_notes_distinct_from_empty_notes():
    nights = _nights(2)
    nights[0].notes = None
    nights[1].notes = ""

    entries = _prompt_records(build_advice_prompt(nights))

    assert entries[0]["notes"] is None
    assert entries[1]["notes"] == ""


def test_missing_credential_is_configuration_error():
    relay = AdviceRelay(_FakeRepository(_nights(5)), GeminiLLM(api_key=None))
    with pytest.raises(AdviceConfigurationError):
        relay.request_advice()


def test_missing_credential_does_not_block_low_data_message():
    relay = AdviceRelay(_FakeRepository(_nights(2)), GeminiLLM(api_key=None))
    assert relay.request_advice().message == LOW_DATA_MESSAGE


def test_upstream_failure_before_first_chunk(fake_generator_class):
    generator = fake_generator_class(chunks=["never sent"], fail_at=0)
    relay = AdviceRelay(_FakeRepository(_nights(5)), generator)

    with pytest.raises(AdviceUpstreamError):
        relay.request_advice()
    assert len(generator.prompts) == 1


def test_mid_stream_failure_keeps_already_sent_chunks(fake_generator_class):
    generator = fake_generator_class(chunks=["one ", "two ", "three"], fail_at=2)
    relay = AdviceRelay(_FakeRepository(_nights(5)), generator)
    chunks = relay.request_advice().chunks

    received = []
    with pytest.raises(AdviceUpstreamError):
        for chunk in chunks:
            received.append(chunk)

    assert received == ["one ", "two "]


def test_client_disconnect_closes_upstream(fake_generator_class):
    generator = fake_generator_class(chunks=["a", "b", "c"])
    relay = AdviceRelay(_FakeRepository(_nights(5)), generator)
    chunks = relay.request_advice().chunks

    assert next(chunks) == "a"
    chunks.close()

    assert generator.closed


def test_closing_unstarted_stream_closes_upstream(fake_generator_class):
    generator = fake_generator_class(chunks=["a", "b", "c"])
    relay = AdviceRelay(_FakeRepository(_nights(5)), generator)
    chunks = relay.request_advice().chunks

    chunks.close()

    assert generator.closed
    with pytest.raises(StopIteration):
        next(chunks)


# =========================================================================
# /api/sleep/advice
# =========================================================================

def _seed(create_record, count):
    for i in range(count):
        create_record(f"2024-02-{i + 1:02d}T23:00", f"2024-02-{i + 2:02d}T07:00", quality=7)


def test_advice_endpoint_low_data_is_json(client, create_record, fake_generator):
    _seed(create_record, 3)

    response = client.get("/api/sleep/advice")

    assert response.status_code == 200
    assert response.mimetype == "application/json"
    assert response.get_json() == LOW_DATA_MESSAGE
    assert fake_generator.prompts == []


def test_advice_endpoint_streams_plain_text(client, create_record, fake_generator):
    _seed(create_record, 5)

    response = client.get("/api/sleep/advice")

    assert response.status_code == 200
    assert response.mimetype == "text/plain"
    assert response.get_data(as_text=True) == "".join(fake_generator.chunks)
    assert len(fake_generator.prompts) == 1
    assert len(_prompt_records(fake_generator.prompts[0])) == 5


def test_advice_endpoint_without_key_is_500(make_app):
    app = make_app()
    client = app.test_client()
    for i in range(5):
        client.post("/api/sleep", json={
            "sleepTime": f"2024-02-{i + 1:02d}T23:00",
            "wakeTime": f"2024-02-{i + 2:02d}T07:00",
        })

    response = client.get("/api/sleep/advice")

    assert response.status_code == 500
    assert response.get_json() == {"error": "AI advice is not configured."}
    # The rest of the API keeps working
    assert client.get("/api/sleep").status_code == 200


def test_advice_endpoint_upstream_failure_is_500(make_app, fake_generator_class):
    app = make_app(text_generator=fake_generator_class(chunks=["x"], fail_at=0))
    client = app.test_client()
    for i in range(5):
        client.post("/api/sleep", json={
            "sleepTime": f"2024-02-{i + 1:02d}T23:00",
            "wakeTime": f"2024-02-{i + 2:02d}T07:00",
        })

    response = client.get("/api/sleep/advice")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to generate AI advice."}


def test_advice_response_closed_before_reading_closes_upstream(app, create_record, fake_generator):
    _seed(create_record, 5)

    with app.test_request_context("/api/sleep/advice"):
        response = app.full_dispatch_request()
        assert response.mimetype == "text/plain"
        response.close()

    assert fake_generator.closed
