"""CLI tests using typer's CliRunner."""

from unittest.mock import patch

import logging

import pytest
from conftest import RoutingLLM
from typer.testing import CliRunner

from interviewcoach import __version__
from interviewcoach.api.cli.commands.practice import run_practice
from interviewcoach.api.cli.main import app, log_level
from interviewcoach.application.factory import create_practice_service
from interviewcoach.infrastructure.persistence.in_memory_session_store import InMemorySessionStore

runner = CliRunner()


class TestCommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_show(self):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "Agent Time Budgets" in result.output

    def test_debug_flag(self):
        result = runner.invoke(app, ["--debug", "version"])
        assert result.exit_code == 0

    @pytest.mark.parametrize("flag", ["--verbose", "-v"])
    def test_verbose_flag(self, flag):
        result = runner.invoke(app, [flag, "version"])
        assert result.exit_code == 0

    @pytest.mark.parametrize(
        "verbose,debug,level",
        [
            (False, False, logging.WARNING),
            (True, False, logging.INFO),
            (False, True, logging.DEBUG),
            (True, True, logging.DEBUG),
        ],
    )
    def test_log_level(self, verbose, debug, level):
        assert log_level(verbose, debug) == level


class TestInteractivePractice:
    @pytest.mark.asyncio
    async def test_session_until_exit(self, test_settings):
        store = InMemorySessionStore()
        service = create_practice_service(test_settings, llm_provider=RoutingLLM(), store=store)

        with patch(
            "interviewcoach.api.cli.commands.practice.Prompt.ask",
            side_effect=["give me a hint", "", "exit"],
        ) as ask:
            await run_practice(service, "cli-user", "Backend Engineer", None)

        assert ask.call_count == 3
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_end_intent_stops_the_loop(self, test_settings):
        service = create_practice_service(test_settings, llm_provider=RoutingLLM(), store=InMemorySessionStore())

        with patch(
            "interviewcoach.api.cli.commands.practice.Prompt.ask",
            side_effect=["I want to end the interview"],
        ) as ask:
            await run_practice(service, "cli-user", "Backend Engineer", None)

        assert ask.call_count == 1
