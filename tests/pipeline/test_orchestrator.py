"""Tests for echoes.pipeline.orchestrator.

Generators are the stubs from conftest.py. GatedGenerator lets a test hold a
round-trip in flight while it resets or changes world.
"""

import asyncio
import logging

import pytest

from echoes.llm import GeneratorError
from echoes.models import GenerationFailure, PlayerState
from echoes.pipeline.orchestrator import FAILURE_MESSAGES
from echoes.session import GameState, SessionCounter
from echoes.worlds import UnknownWorldError, get_world

OPENING = "You wake on cold stone. The dark breathes."


def _contents(orch) -> list[tuple[str, str]]:
    return [(e.kind, e.content) for e in orch.entries]


@pytest.fixture
def started(make_orchestrator, stub_generator, response):
    """Orchestrator whose opening scene has already been played.

    Outcomes are queued behind the opening for the commands that follow.
    """

    async def _start(*outcomes, **kwargs):
        gen = stub_generator(response(OPENING), *outcomes)
        orch = make_orchestrator(gen, **kwargs)
        await orch.initialize()
        return orch, gen

    return _start


# ---------------------------------------------------------------------------
# initialize()
# ---------------------------------------------------------------------------

class TestInitialize:
    async def test_opening_scene(self, make_orchestrator, stub_generator, response) -> None:
        gen = stub_generator(response(OPENING))
        orch = make_orchestrator(gen)
        assert orch.phase == "uninitialized"

        await orch.initialize()

        request = gen.calls[0]
        assert request.opening is True
        assert request.history == []
        assert request.player_state == PlayerState()
        assert request.command == get_world("horror").opening_command
        assert "REPLY FORMAT" in request.system_prompt
        assert _contents(orch) == [("narrator", OPENING)]
        assert [t.role for t in orch.history] == ["user", "assistant"]
        assert not orch.is_processing
        assert orch.is_typing
        assert orch.phase == "playing"
        gen.assert_exhausted()

    async def test_second_call_is_noop(self, make_orchestrator, stub_generator, response) -> None:
        gen = stub_generator(response(OPENING))
        orch = make_orchestrator(gen)
        await orch.initialize()
        await orch.initialize()
        assert len(gen.calls) == 1

    async def test_concurrent_calls_make_one_request(
        self, make_orchestrator, gated_generator, response
    ) -> None:
        gen = gated_generator(response(OPENING))
        orch = make_orchestrator(gen)
        first = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)
        assert orch.phase == "initializing"
        await orch.initialize()
        gen.release()
        await first
        assert len(gen.calls) == 1

    async def test_failure_appends_system_message(
        self, make_orchestrator, stub_generator, failure
    ) -> None:
        orch = make_orchestrator(stub_generator(failure("network")))
        await orch.initialize()
        assert _contents(orch) == [("system", FAILURE_MESSAGES["network"])]
        assert orch.history == ()
        assert not orch.is_processing
        assert orch.phase == "uninitialized"

    async def test_command_after_failed_opening_is_processing(
        self, make_orchestrator, gated_generator, response, failure
    ) -> None:
        gen = gated_generator(failure("network"), response("You find your feet."))
        orch = make_orchestrator(gen)
        init = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)
        assert orch.phase == "initializing"
        gen.release()
        await init
        assert orch.phase == "uninitialized"

        turn = asyncio.create_task(orch.submit_command("stand up"))
        await gen.wait_for_calls(2)
        assert orch.phase == "processing"
        gen.release()
        await turn
        assert orch.phase == "playing"


# ---------------------------------------------------------------------------
# submit_command()
# ---------------------------------------------------------------------------

class TestSubmitCommand:
    async def test_turn_round_trip(self, started, response, sounds) -> None:
        orch, gen = await started(
            response("A rusted key glints.", visual_cue="chest", sound_cue="drip",
                     health_change=-5, inventory_add="rusty key"),
        )

        await orch.submit_command("Search the chest")

        request = gen.calls[1]
        assert request.command == "Search the chest"
        assert request.opening is False
        assert len(request.history) == 2
        assert request.player_state == PlayerState()

        kinds = [e.kind for e in orch.entries]
        assert kinds == ["narrator", "player", "narrator", "art", "system"]
        assert orch.entries[1].content == "Search the chest"
        assert orch.entries[4].content == "► ACQUIRED: RUSTY KEY"
        assert orch.player == PlayerState(health=95, inventory=["rusty key"])
        assert [t.content for t in orch.history[-2:]] == ["Search the chest", "A rusted key glints."]
        assert sounds.played == ["drip"]
        gen.assert_exhausted()

    async def test_player_entry_appears_before_generator_resolves(
        self, make_orchestrator, gated_generator, response
    ) -> None:
        gen = gated_generator(response(OPENING), response("The door groans."))
        orch = make_orchestrator(gen)
        task = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)
        gen.release()
        await task

        turn = asyncio.create_task(orch.submit_command("open door"))
        await gen.wait_for_calls(2)
        assert _contents(orch)[-1] == ("player", "open door")
        assert orch.is_processing
        assert orch.phase == "processing"

        gen.release()
        await turn
        assert [k for k, _ in _contents(orch)] == ["narrator", "player", "narrator"]
        assert not orch.is_processing

    async def test_player_state_cannot_be_changed_from_outside(self, started, response) -> None:
        orch, gen = await started(response("A key.", inventory_add="key"))
        with pytest.raises(AttributeError):
            orch.player.inventory.append("forged")
        with pytest.raises(AttributeError):
            gen.calls[0].player_state.inventory.append("forged")

        await orch.submit_command("take key")
        assert orch.player.inventory == ("key",)
        assert gen.calls[1].player_state.inventory == ()

    async def test_removed_item_notice(self, started, response) -> None:
        orch, _ = await started(
            response("You pocket a match.", inventory_add="match"),
            response("The match flares and dies.", inventory_remove="match"),
        )
        await orch.submit_command("take match")
        await orch.submit_command("strike match")
        assert _contents(orch)[-1] == ("system", "► USED: MATCH")
        assert orch.player.inventory == ()

    async def test_no_notice_for_already_held_item(self, started, response) -> None:
        orch, _ = await started(
            response("A torch.", inventory_add="torch"),
            response("Another torch, but you already have one.", inventory_add="torch"),
        )
        await orch.submit_command("take torch")
        await orch.submit_command("take torch")
        notices = [c for k, c in _contents(orch) if k == "system"]
        assert notices == ["► ACQUIRED: TORCH"]

    async def test_history_is_trimmed_to_last_ten_messages(self, started, response) -> None:
        turns = [response(f"Reply {i}.") for i in range(7)]
        orch, gen = await started(*turns)
        for i in range(7):
            await orch.submit_command(f"cmd {i}")
        assert len(orch.history) == 16
        last = gen.calls[-1]
        assert len(last.history) == 10
        assert last.history[-1].content == "Reply 5."

    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    async def test_blank_command_ignored(self, started, response, text: str) -> None:
        orch, gen = await started()
        await orch.submit_command(text)
        assert len(gen.calls) == 1
        assert len(orch.entries) == 1

    async def test_ignored_while_processing(
        self, make_orchestrator, gated_generator, response
    ) -> None:
        gen = gated_generator(response(OPENING))
        orch = make_orchestrator(gen)
        task = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)
        await orch.submit_command("look")
        assert len(gen.calls) == 1
        assert orch.entries == ()
        gen.release()
        await task

    @pytest.mark.parametrize("text", ["help", "HELP", "  Instructions "])
    async def test_help_is_answered_locally(self, started, response, text: str) -> None:
        orch, gen = await started()
        before = len(orch.entries)

        await orch.submit_command(text)

        assert len(gen.calls) == 1
        new = orch.entries[before:]
        assert len(new) == 1
        assert new[0].kind == "system"
        assert new[0].content == get_world("horror").help_text
        assert len(orch.history) == 2

    async def test_help_uses_active_world(self, make_orchestrator, stub_generator, response) -> None:
        orch = make_orchestrator(stub_generator(response("Neon rain.")))
        await orch.change_world("cyberpunk")
        await orch.submit_command("help")
        assert orch.entries[-1].content == get_world("cyberpunk").help_text


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    @pytest.mark.parametrize("kind", ["network", "auth", "rate_limit", "validation", "unknown"])
    async def test_failure_kinds(self, started, response, failure, kind: str) -> None:
        orch, _ = await started(failure(kind))
        player, history = orch.player, orch.history

        await orch.submit_command("run")

        assert _contents(orch)[-2:] == [("player", "run"), ("system", FAILURE_MESSAGES[kind])]
        assert orch.player == player
        assert orch.history == history
        assert not orch.is_processing

    async def test_technical_detail_stays_out_of_log(self, started, response, failure, caplog) -> None:
        orch, _ = await started(failure("auth", "HTTP 401 from backend"))
        with caplog.at_level(logging.WARNING):
            await orch.submit_command("run")
        assert all("401" not in e.content for e in orch.entries)
        assert "HTTP 401 from backend" in caplog.text

    async def test_raised_generator_error_keeps_kind(self, started, response) -> None:
        orch, _ = await started(GeneratorError("slow down", kind="rate_limit"))
        await orch.submit_command("run")
        assert orch.entries[-1].content == FAILURE_MESSAGES["rate_limit"]
        assert not orch.is_processing

    async def test_unexpected_exception_is_unknown(self, started, response) -> None:
        orch, _ = await started(ZeroDivisionError("oops"))
        await orch.submit_command("run")
        assert orch.entries[-1].content == FAILURE_MESSAGES["unknown"]
        assert not orch.is_processing

    async def test_raw_generator_output_is_validated(self, started, response) -> None:
        raw_ok = {
            "narrative": "Wind howls.",
            "visual_cue": "none",
            "sound_cue": "wind",
            "game_state_update": {"health_change": -3},
        }
        raw_bad = '{"narrative": "x", "visual_cue": "dragon"}'
        orch, _ = await started(raw_ok, raw_bad)

        await orch.submit_command("listen")
        assert orch.player.health == 97
        await orch.submit_command("listen")
        assert orch.entries[-1].content == FAILURE_MESSAGES["validation"]

    async def test_sound_failure_does_not_break_turn(
        self, make_orchestrator, stub_generator, response
    ) -> None:
        class BrokenSpeaker:
            def play(self, cue):
                raise OSError("no audio device")

        orch = make_orchestrator(stub_generator(response(OPENING, sound_cue="wind")),
                                 sounds=BrokenSpeaker())
        await orch.initialize()
        assert _contents(orch) == [("narrator", OPENING)]


# ---------------------------------------------------------------------------
# Sound, art, game over
# ---------------------------------------------------------------------------

class TestPresentation:
    async def test_muted_skips_sound(self, make_orchestrator, stub_generator, response, sounds) -> None:
        orch = make_orchestrator(stub_generator(response(OPENING, sound_cue="scream")))
        orch.set_muted(True)
        await orch.initialize()
        assert sounds.played == []

    async def test_none_cues(self, make_orchestrator, stub_generator, response, sounds) -> None:
        orch = make_orchestrator(stub_generator(response(OPENING)))
        await orch.initialize()
        assert sounds.played == []
        assert [e.kind for e in orch.entries] == ["narrator"]

    async def test_art_lookup_is_injected(self, make_orchestrator, stub_generator, response) -> None:
        orch = make_orchestrator(
            stub_generator(response(OPENING, visual_cue="void"), response("Nothing.", visual_cue="door")),
            art=lambda cue: "[DOOR]" if cue == "door" else "",
        )
        await orch.initialize()
        assert [e.kind for e in orch.entries] == ["narrator"]
        await orch.submit_command("look")
        assert _contents(orch)[-1] == ("art", "[DOOR]")

    async def test_typing_flag(self, make_orchestrator, stub_generator, response) -> None:
        orch = make_orchestrator(stub_generator(response(OPENING)))
        await orch.initialize()
        assert orch.is_typing
        assert orch.snapshot().animate.content == OPENING
        orch.finish_typing()
        assert not orch.is_typing

    async def test_game_over_blocks_commands(self, started, response) -> None:
        orch, gen = await started(
            response("The creature's claws find your heart.", visual_cue="monster",
                     sound_cue="combat", health_change=-150),
        )
        await orch.submit_command("attack")
        assert orch.player.health == 0
        assert orch.player.is_game_over
        assert orch.phase == "game_over"

        await orch.submit_command("get up")
        assert len(gen.calls) == 2
        assert orch.entries[-1].kind != "player"

    def test_text_speed(self, make_orchestrator, stub_generator) -> None:
        orch = make_orchestrator(stub_generator())
        orch.set_text_speed("fast")
        assert orch.preferences.text_speed == "fast"
        with pytest.raises(ValueError):
            orch.set_text_speed("ludicrous")

    def test_toggle_mute(self, make_orchestrator, stub_generator) -> None:
        orch = make_orchestrator(stub_generator())
        assert orch.toggle_mute() is True
        assert orch.toggle_mute() is False

    def test_preferences_are_a_copy(self, make_orchestrator, stub_generator) -> None:
        orch = make_orchestrator(stub_generator())
        orch.preferences.muted = True
        assert orch.preferences.muted is False


# ---------------------------------------------------------------------------
# Sessions: reset and world change
# ---------------------------------------------------------------------------

class TestSessions:
    async def test_reset_restores_defaults_and_replays_opening(self, started, response) -> None:
        orch, gen = await started(
            response("Ouch.", health_change=-40, inventory_add="bone"),
            response("Again, you wake."),
        )
        await orch.submit_command("fall")
        orch.set_muted(True)
        token = orch.session_token

        await orch.reset_game()

        assert orch.session_token == token + 1
        assert orch.player == PlayerState()
        assert _contents(orch) == [("narrator", "Again, you wake.")]
        assert len(orch.history) == 2
        assert orch.preferences.muted is True
        assert gen.calls[-1].opening is True
        gen.assert_exhausted()

    async def test_reset_during_initialize_discards_stale_response(
        self, make_orchestrator, gated_generator, response
    ) -> None:
        gen = gated_generator(
            response("Stale scene.", visual_cue="skeleton", health_change=-50, inventory_add="idol"),
            response("Fresh scene."),
        )
        orch = make_orchestrator(gen)
        init = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)

        reset = asyncio.create_task(orch.reset_game())
        await gen.wait_for_calls(2)

        gen.release()
        await init
        assert orch.player == PlayerState()
        assert orch.entries == ()
        assert orch.history == ()
        assert orch.is_processing  # still owned by the fresh session

        gen.release()
        await reset
        assert _contents(orch) == [("narrator", "Fresh scene.")]
        assert not orch.is_processing

    async def test_reset_during_command_discards_failure_too(
        self, make_orchestrator, gated_generator, response, failure
    ) -> None:
        gen = gated_generator(response(OPENING), failure("network"), response("Fresh."))
        orch = make_orchestrator(gen)
        task = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)
        gen.release()
        await task

        turn = asyncio.create_task(orch.submit_command("run"))
        await gen.wait_for_calls(2)
        reset = asyncio.create_task(orch.reset_game())
        await gen.wait_for_calls(3)

        gen.release()
        await turn
        assert orch.entries == ()
        assert orch.is_processing

        gen.release()
        await reset
        assert _contents(orch) == [("narrator", "Fresh.")]

    async def test_stale_completion_after_fresh_one_changes_nothing(
        self, make_orchestrator, gated_generator, response
    ) -> None:
        gen = gated_generator(response("Stale.", health_change=-20), response("Fresh."))
        orch = make_orchestrator(gen)
        init = asyncio.create_task(orch.initialize())
        await gen.wait_for_calls(1)
        reset = asyncio.create_task(orch.reset_game())
        await gen.wait_for_calls(2)

        # The fresh call finishes first.
        gen.release(1)
        await reset
        assert not orch.is_processing

        gen.release()
        await init
        assert _contents(orch) == [("narrator", "Fresh.")]
        assert orch.player.health == 100
        assert not orch.is_processing

    async def test_change_world(self, started, response) -> None:
        orch, gen = await started(response("Neon rain hisses."))
        await orch.change_world("cyberpunk")

        assert orch.world.key == "cyberpunk"
        assert orch.preferences.world == "cyberpunk"
        assert orch.snapshot().world_title == "Neon Requiem"
        assert gen.calls[-1].command == get_world("cyberpunk").opening_command
        assert gen.calls[-1].system_prompt.startswith(get_world("cyberpunk").system_prompt)
        assert _contents(orch) == [("narrator", "Neon rain hisses.")]

    async def test_unknown_world_changes_nothing(self, started, response) -> None:
        orch, _ = await started()
        token, entries = orch.session_token, orch.entries

        with pytest.raises(UnknownWorldError):
            await orch.change_world("atlantis")

        assert orch.session_token == token
        assert orch.entries == entries
        assert orch.world.key == "horror"

    async def test_shared_session_counter(self, stub_generator, response) -> None:
        from echoes.pipeline.orchestrator import Orchestrator

        session = SessionCounter(start=7)
        orch = Orchestrator(stub_generator(response(OPENING)), session=session, state=GameState())
        await orch.reset_game()
        assert session.current() == 8


def test_failure_messages_cover_every_kind() -> None:
    from typing import get_args

    from echoes.models import ErrorKind

    assert set(FAILURE_MESSAGES) == set(get_args(ErrorKind))
    assert GenerationFailure(message="x").kind == "unknown"
