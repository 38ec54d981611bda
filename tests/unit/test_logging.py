"""Unit tests for the structlog helpers."""

from __future__ import annotations

import structlog

from docsearch.utils.logging import _mask_secrets, job_context


class TestMaskSecrets:
    def test_long_values_keep_a_prefix(self) -> None:
        event = _mask_secrets(None, "info", {"event": "client_built", "api_key": "sk-abcdefghijkl"})
        assert event["api_key"] == "sk-***"
        assert event["event"] == "client_built"

    def test_short_and_empty_values_fully_masked(self) -> None:
        event = _mask_secrets(None, "info", {"authorization": "Bearer", "token": None})
        assert event == {"authorization": "***", "token": "***"}

    def test_other_keys_untouched(self) -> None:
        event = _mask_secrets(None, "info", {"workspace_id": "ws1", "model": "test-embed"})
        assert event == {"workspace_id": "ws1", "model": "test-embed"}


class TestJobContext:
    def test_binds_and_restores(self) -> None:
        structlog.contextvars.clear_contextvars()

        with job_context("job-1", "document_reindex", "ws1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"job_id": "job-1", "job_kind": "document_reindex", "workspace_id": "ws1"}

        assert structlog.contextvars.get_contextvars() == {}
