"""StructuredResponder tests.

Drives the primary attempt, the adjusted fallback attempt and the final
fallback through a scripted generator, and checks the telemetry recorded at
each terminal transition.
"""

import asyncio
from unittest.mock import patch

import pytest

from salvage.core.responder import DEFAULT_TIMEOUT, GenerationOptions, StructuredResponder
from salvage.core.telemetry import Telemetry


class TestPrimaryAttempt:
    def test_valid_reply_is_returned(self, responder_factory, mood_schema, telemetry):
        """Test that a valid reply is extracted on the first attempt."""
        responder, generator = responder_factory('{"mood": "calm", "score": 3}')
        record = asyncio.run(responder.generate_structured("How is the user?", mood_schema))
        assert record == {"mood": "calm", "score": 3}
        assert len(generator.calls) == 1
        assert telemetry.successful_parses == 1
        assert telemetry.fallbacks_used == 0
        assert telemetry.strategy_usage == {"direct": 1}

    def test_default_sampling_options(self, responder_factory):
        """Test that temperature 0.1 and max_tokens 1500 are sent."""
        responder, generator = responder_factory('{"a": 1}')
        asyncio.run(responder.generate_structured("prompt"))
        assert generator.calls[0]["options"] == {"temperature": 0.1, "max_tokens": 1500}

    def test_prompt_is_augmented_with_schema(self, responder_factory, mood_schema):
        """Test that JSON instructions and field requirements are appended."""
        responder, generator = responder_factory('{"mood": "calm"}')
        asyncio.run(responder.generate_structured("How is the user?", mood_schema))
        prompt = generator.calls[0]["prompt"]
        assert prompt.startswith("How is the user?")
        assert "=== CRITICAL JSON REQUIREMENTS ===" in prompt
        assert "=== REQUIRED SCHEMA ===" in prompt
        assert "- mood: string (REQUIRED) - Overall mood" in prompt
        assert "- score: number (optional)" in prompt

    def test_bare_type_descriptors_still_reach_the_collaborator(self, responder_factory):
        """Test that a property given as a bare type string does not break prompt building."""
        responder, generator = responder_factory('{"x": 4}')
        record = asyncio.run(responder.generate_structured("prompt", {"properties": {"x": "number"}}))
        assert record == {"x": 4}
        assert len(generator.calls) == 1
        assert "- x: any (optional)" in generator.calls[0]["prompt"]

    def test_context_is_forwarded(self, responder_factory):
        """Test that conversation context reaches the generator."""
        responder, generator = responder_factory('{"a": 1}')
        context = [{"sender": "user", "content": "hi"}]
        asyncio.run(responder.generate_structured("prompt", options=GenerationOptions(context=context)))
        assert generator.calls[0]["context"] == context


class TestFallbackAttempt:
    def test_second_attempt_uses_adjusted_options(self, responder_factory, mood_schema, telemetry):
        """Test that a failed first call is retried once, warmer and longer."""
        responder, generator = responder_factory(RuntimeError("connection reset"), '{"mood": "ok"}')
        record = asyncio.run(responder.generate_structured("How is the user?", mood_schema))
        assert record == {"mood": "ok"}
        assert generator.calls[1]["options"] == {"temperature": 0.3, "max_tokens": 1700}
        assert telemetry.successful_parses == 1
        assert telemetry.fallbacks_used == 1

    def test_only_one_fallback_attempt_regardless_of_retries(self, responder_factory, mood_schema):
        """Test that retries does not add attempts."""
        responder, generator = responder_factory(RuntimeError("down"))
        options = GenerationOptions(retries=5)
        asyncio.run(responder.generate_structured("prompt", mood_schema, options))
        assert len(generator.calls) == 2

    def test_fallback_attempt_can_be_disabled(self, responder_factory, mood_schema, telemetry):
        """Test that fallback_to_conversational=False goes straight to the fallback record."""
        responder, generator = responder_factory(RuntimeError("down"))
        options = GenerationOptions(fallback_to_conversational=False)
        record = asyncio.run(responder.generate_structured("prompt", mood_schema, options))
        assert record == {"mood": "", "score": 0}
        assert len(generator.calls) == 1
        assert telemetry.fallbacks_used == 1

    def test_empty_reply_is_a_failure(self, responder_factory, telemetry):
        """Test that blank content triggers the fallback path."""
        responder, generator = responder_factory("   ", '{"a": 1}')
        assert asyncio.run(responder.generate_structured("prompt")) == {"a": 1}
        assert telemetry.fallbacks_used == 1

    def test_unparseable_replies_reach_final_fallback(self, responder_factory, telemetry):
        """Test that an exhausted cascade on both attempts yields the error record."""
        responder, generator = responder_factory("I cannot answer that.")
        record = asyncio.run(responder.generate_structured("prompt"))
        assert record["error"] == "JSON parsing failed"
        assert "strategies failed" in record["message"]
        assert telemetry.successful_parses == 0
        assert telemetry.fallbacks_used == 1


class TestFinalFallback:
    def test_absent_collaborator(self, mood_schema):
        """Test that no collaborator means one fallback and a record."""
        telemetry = Telemetry()
        responder = StructuredResponder(None, telemetry=telemetry)
        before = telemetry.fallbacks_used
        record = asyncio.run(responder.generate_structured("prompt", mood_schema))
        assert record == {"mood": "", "score": 0}
        assert telemetry.fallbacks_used == before + 1
        assert telemetry.total_requests == 1

    def test_collaborator_without_generate(self):
        """Test that an object without a callable generate is treated as absent."""
        responder = StructuredResponder(object())
        record = asyncio.run(responder.generate_structured("how is their energy?"))
        assert record == {"energy_level": 5.0}
        assert responder.status()["collaborator"] == "disconnected"

    def test_timeout_counts_as_failure(self, responder_factory):
        """Test that a slow collaborator is cancelled and the fallback used."""
        responder, generator = responder_factory('{"a": 1}', delay=0.5)
        options = GenerationOptions(timeout=0.01)
        record = asyncio.run(responder.generate_structured("prompt", options=options))
        assert record == {"error": "JSON parsing failed", "message": "Collaborator timed out after 0.01s"}
        assert len(generator.calls) == 2

    def test_hanging_collaborator_is_bounded_by_default(self, responder_factory, mood_schema):
        """Test that default options still put a deadline on a collaborator that never replies."""
        responder, generator = responder_factory('{"mood": "calm"}', delay=3600)
        real_timeout = asyncio.timeout
        deadlines = []

        def short_timeout(delay):
            deadlines.append(delay)
            return real_timeout(0.01)

        with patch("salvage.core.responder.asyncio.timeout", side_effect=short_timeout):
            record = asyncio.run(responder.generate_structured("How is the user?", mood_schema))
        assert deadlines == [DEFAULT_TIMEOUT, DEFAULT_TIMEOUT]
        assert record == {"mood": "", "score": 0}
        assert len(generator.calls) == 2

    def test_follow_up_request_gets_engagement_record(self, responder_factory):
        """Test that a follow-up prompt falls back to the engagement record."""
        responder, _ = responder_factory(RuntimeError("down"))
        record = asyncio.run(responder.generate_structured("send me another message in 2 minutes"))
        assert record["should_engage_proactively"] is True


class TestConcurrency:
    def test_concurrent_calls_are_counted_exactly(self, responder_factory, telemetry):
        """Test that 100 interleaved calls give exactly 100 requests."""
        responder, _ = responder_factory('{"a": 1}', delay=0.001)

        async def run_all():
            return await asyncio.gather(*(responder.generate_structured(f"prompt {i}") for i in range(100)))

        records = asyncio.run(run_all())
        assert len(records) == 100
        assert all(record == {"a": 1} for record in records)
        assert telemetry.total_requests == 100
        assert telemetry.successful_parses == 100

    def test_records_are_independent(self):
        """Test that concurrent fallback records never share objects."""
        responder = StructuredResponder(None)
        schema = {"properties": {"tags": {"type": "array"}}}

        async def run_pair():
            return await asyncio.gather(
                responder.generate_structured("a", schema),
                responder.generate_structured("b", schema),
            )

        first, second = asyncio.run(run_pair())
        first["tags"].append("x")
        assert second["tags"] == []

    def test_cancellation_propagates_without_completion(self, responder_factory, telemetry):
        """Test that a cancelled call raises and records no outcome."""
        responder, _ = responder_factory('{"a": 1}', delay=1.0)

        async def cancel_midway():
            task = asyncio.create_task(responder.generate_structured("prompt"))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return task.cancelled()

        assert asyncio.run(cancel_midway()) is True
        assert telemetry.total_requests == 1
        assert telemetry.successful_parses == 0
        assert telemetry.fallbacks_used == 0


class TestStatus:
    def test_status_reports_strategies_and_collaborator(self, responder_factory):
        """Test the diagnostics returned by status()."""
        responder, _ = responder_factory('{"a": 1}')
        asyncio.run(responder.generate_structured("prompt"))
        status = responder.status()
        assert status["collaborator"] == "connected"
        assert status["most_successful_strategy"] == "direct"
        assert len(status["strategies"]) == 8
        assert status["total_requests"] == 1
        assert status["success_rate"] == "100.00%"


def test_escalated_options():
    """Test the fallback attempt's option adjustment."""
    options = GenerationOptions(temperature=0.7, max_tokens=100, timeout=3).escalated()
    assert options.temperature == 0.9
    assert options.max_tokens == 300
    assert options.timeout == 3


def test_default_timeout():
    """Test that options carry a deadline unless the caller sets one."""
    assert GenerationOptions().timeout == DEFAULT_TIMEOUT
    assert GenerationOptions().escalated().timeout == DEFAULT_TIMEOUT
