"""Unit tests for log correlation: request and learner ids on records."""

import json
import logging

import pytest

from masterygate.api.middleware.request_id import resolve_request_id
from masterygate.logging_config import (
    JsonFormatter,
    LogContextFilter,
    bound_learner,
    request_id_var,
)
from masterygate.orchestration.locks import LearnerLockRegistry


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("masterygate.test", logging.INFO, __file__, 1, "Attempt scored", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    LogContextFilter().filter(record)
    return record


class TestLogContext:
    """Correlation ids come from context, not from each call site."""

    def test_defaults_outside_any_scope(self):
        record = _record()
        assert record.request_id == "-"
        assert record.learner_id == "-"

    def test_bound_learner_tags_records(self):
        with bound_learner("learner-7"):
            assert _record().learner_id == "learner-7"
        assert _record().learner_id == "-"

    def test_explicit_extra_survives_empty_context(self):
        assert _record(learner_id="learner-3").learner_id == "learner-3"

    @pytest.mark.asyncio
    async def test_lock_binds_learner_while_held(self):
        locks = LearnerLockRegistry()
        async with locks.hold("learner-1"):
            assert _record().learner_id == "learner-1"
        assert _record().learner_id == "-"

    def test_json_output_carries_context_and_extra(self):
        token = request_id_var.set("req-42")
        try:
            with bound_learner("learner-1"):
                record = _record(concept_id="c1")
        finally:
            request_id_var.reset(token)

        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "Attempt scored"
        assert payload["request_id"] == "req-42"
        assert payload["learner_id"] == "learner-1"
        assert payload["concept_id"] == "c1"
        assert "msg" not in payload


class TestRequestIdResolution:
    """Client-supplied request ids are echoed only when well formed."""

    def test_well_formed_id_kept(self):
        assert resolve_request_id("req-blank") == "req-blank"

    @pytest.mark.parametrize("incoming", [None, "", "has space", "x" * 129])
    def test_other_ids_replaced(self, incoming):
        generated = resolve_request_id(incoming)
        assert generated != incoming
        assert len(generated) == 36
