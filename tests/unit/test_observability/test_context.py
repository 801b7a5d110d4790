"""Tests for run ID context management."""

import asyncio
import re

import pytest

from novelsync.observability.context import (
    clear_run_id,
    generate_run_id,
    get_run_id,
    run_id_context,
    set_run_id,
)


class TestGenerateRunId:
    def test_format(self):
        assert re.fullmatch(r"run-\d{8}-\d{6}-[0-9a-f]{8}", generate_run_id())

    def test_custom_prefix(self):
        assert generate_run_id("scrape").startswith("scrape-")

    def test_unique(self):
        assert generate_run_id() != generate_run_id()


class TestSetRunId:
    def test_generates_when_omitted(self):
        clear_run_id()

        run_id = set_run_id()

        assert run_id.startswith("run-")
        assert get_run_id() == run_id
        clear_run_id()

    def test_uses_provided_id(self):
        set_run_id("my-run")
        assert get_run_id() == "my-run"
        clear_run_id()
        assert get_run_id() is None


class TestRunIdContext:
    def test_scoped_and_restored(self):
        set_run_id("outer")

        with run_id_context("inner") as run_id:
            assert run_id == "inner"
            assert get_run_id() == "inner"

        assert get_run_id() == "outer"
        clear_run_id()

    def test_restored_after_exception(self):
        clear_run_id()

        with pytest.raises(ValueError):
            with run_id_context("failing"):
                raise ValueError("boom")

        assert get_run_id() is None

    @pytest.mark.asyncio
    async def test_inherited_by_tasks(self):
        async def read_run_id():
            await asyncio.sleep(0)
            return get_run_id()

        with run_id_context("async-run"):
            results = await asyncio.gather(read_run_id(), read_run_id())

        assert results == ["async-run", "async-run"]
