"""Tests for storyboard.controller — full runs, failure isolation and modifications.

Covers:
- Negotiate -> seed -> scene loop ordering and history growth
- Per-scene failure isolation (refusals, empty replies, transport errors)
- Fatal negotiation failure and input validation
- Side-channel modifications (isolation, caption immutability, serialization)
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from clients.gemini_client import GeminiTransportError
from storyboard.controller import StoryboardController, StoryboardRenderer
from storyboard.errors import NegotiationError, RunInProgressError, ValidationError
from storyboard.models import CreativeDirection, RunStatus


# ── Helpers ──────────────────────────────────────────────────────────────

SCRIPT = "A dog runs in a park."
WATERCOLOR = CreativeDirection(style="Watercolor")


def _image_reply(text="Scene text.", data="aW1n"):
    parts = [{"inlineData": {"mimeType": "image/png", "data": data}}]
    if text is not None:
        parts.insert(0, {"text": text})
    return {"candidates": [{"content": {"role": "model", "parts": parts}}]}


def _refusal_reply(text="I can't depict that."):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _controller(count_reply="3", scene_replies=(), **kwargs):
    client = MagicMock()
    client.generate_text = AsyncMock(return_value=count_reply)
    client.generate_content = AsyncMock(side_effect=list(scene_replies))
    renderer = MagicMock(spec=StoryboardRenderer)
    controller = StoryboardController(client=client, renderer=renderer, **kwargs)
    return controller, client, renderer


def _run(controller, script=SCRIPT, direction=WATERCOLOR):
    return asyncio.run(controller.start_run(script, direction))


# ── Full runs ────────────────────────────────────────────────────────────

class TestStartRun:
    def test_dog_in_park_with_refused_second_scene(self):
        controller, _, _ = _controller("3", [
            _image_reply("The dog waits at the gate.", data="b25l"),
            _refusal_reply("I can't depict that."),
            _image_reply("The dog sprints across the grass.", data="dGhyZWU="),
        ])

        state = _run(controller)

        assert state.status == RunStatus.COMPLETE
        assert state.scene_count == 3
        assert len(state.storyboard) == 3

        first, second, third = state.storyboard
        assert not first.failed and first.image.data == "b25l"
        assert first.caption == first.original_caption == "The dog waits at the gate."
        assert second.failed
        assert second.failure_reason == "I can't depict that."
        assert second.caption == "Scene 2 Failed: I can't depict that."
        assert second.image is None
        assert not third.failed and third.image.data == "dGhyZWU="

    def test_history_grows_two_turns_per_successful_scene(self):
        controller, _, _ = _controller("4", [_image_reply() for _ in range(4)])
        state = _run(controller)
        assert len(state.history) == 2 + 2 * 4

    def test_failed_scene_adds_only_its_prompt(self):
        controller, _, _ = _controller("3", [
            _image_reply(),
            _refusal_reply(),
            _image_reply(),
        ])
        state = _run(controller)
        # negotiation pair + 2 successful pairs + 1 lone user prompt
        assert len(state.history) == 2 + 2 * 2 + 1
        assert [t.role for t in state.history] == [
            "user", "model", "user", "model", "user", "user", "model",
        ]

    def test_full_history_is_resent_every_scene(self):
        controller, client, _ = _controller("3", [_image_reply() for _ in range(3)])
        _run(controller)

        sent_lengths = [len(c.args[0]) for c in client.generate_content.await_args_list]
        assert sent_lengths == [3, 5, 7]

    def test_history_is_seeded_with_negotiation_exchange(self):
        controller, client, _ = _controller("I'd say 2 scenes", [_image_reply(), _image_reply()])
        state = _run(controller)

        prompt = client.generate_text.await_args.args[0]
        assert state.history[0].role == "user"
        assert state.history[0].text == prompt
        assert state.history[1].role == "model"
        assert state.history[1].text == "2"

    def test_scene_prompts_reference_count_and_progress(self):
        controller, _, _ = _controller("3", [_image_reply() for _ in range(3)])
        state = _run(controller)

        prompts = [t.text for t in state.history if t.role == "user"][1:]
        assert "total scenes is 3" in prompts[0]
        assert "**Scene 1**" in prompts[0]
        assert "**Scene 2**" in prompts[1]
        assert "progressive narrative" in prompts[1]
        assert "**Scene 3**" in prompts[2]

    def test_every_scene_failing_still_yields_n_panels(self):
        controller, _, _ = _controller("4", [
            {"candidates": []},
            GeminiTransportError("API request failed: 503", status=503),
            _refusal_reply(),
            {},
        ])
        state = _run(controller)

        assert state.status == RunStatus.COMPLETE
        assert len(state.storyboard) == 4
        assert all(p.failed for p in state.storyboard)
        assert state.failed_scenes == [0, 1, 2, 3]
        assert "empty, invalid, or blocked" in state.storyboard[0].failure_reason
        assert state.storyboard[1].failure_reason == "API request failed: 503"
        assert len(state.history) == 2 + 4

    @pytest.mark.parametrize("bad_reply", [
        {"candidates": [{"content": {"parts": ["oops"]}}]},
        {"candidates": [{"content": "blocked"}]},
        {"candidates": "oops"},
        ["not", "an", "object"],
    ])
    def test_malformed_middle_scene_still_yields_all_panels(self, bad_reply):
        controller, _, renderer = _controller("3", [
            _image_reply("one"),
            bad_reply,
            _image_reply("three"),
        ])
        state = _run(controller)

        assert state.status == RunStatus.COMPLETE
        assert len(state.storyboard) == 3
        assert state.failed_scenes == [1]
        assert not state.storyboard[0].failed
        assert not state.storyboard[2].failed
        renderer.on_error.assert_not_called()

    def test_malformed_first_scene_still_yields_all_panels(self):
        controller, _, _ = _controller("2", [
            {"candidates": [{"content": "blocked"}]},
            _image_reply(),
        ])
        state = _run(controller)
        assert len(state.storyboard) == 2
        assert state.failed_scenes == [0]

    def test_caption_placeholder_when_scene_has_no_text(self):
        controller, _, _ = _controller("1", [_image_reply(text=None)])
        state = _run(controller)
        assert state.storyboard[0].caption == "Description not provided."

    def test_renderer_receives_progress_and_panels(self):
        controller, _, renderer = _controller("2", [_image_reply(), _refusal_reply()])
        _run(controller)

        messages = [c.args[0] for c in renderer.on_progress.call_args_list]
        assert messages == [
            "Asking AI to determine scene breaks...",
            "Generating Scene 1 of 2...",
            "Generating Scene 2 of 2...",
        ]
        indexes = [c.args[0] for c in renderer.on_panel.call_args_list]
        assert indexes == [0, 1]
        assert renderer.on_panel.call_args_list[1].args[1].failed
        renderer.on_error.assert_not_called()


class TestRunFailures:
    def test_empty_script_rejected_before_any_call(self):
        controller, client, renderer = _controller()
        with pytest.raises(ValidationError):
            _run(controller, script="   ")
        client.generate_text.assert_not_awaited()
        renderer.on_error.assert_called_once_with("Please enter a script first.")
        assert controller.state is None

    def test_negotiation_failure_aborts_run(self):
        controller, client, renderer = _controller()
        client.generate_text.side_effect = GeminiTransportError("API request failed: 500", status=500)

        state = _run(controller)

        assert state.status == RunStatus.FAILED
        assert state.storyboard == []
        assert "500" in state.error
        client.generate_content.assert_not_awaited()
        renderer.on_error.assert_called_once()

    def test_negotiation_without_text_aborts_run(self):
        controller, client, _ = _controller(count_reply=None)
        state = _run(controller)
        assert state.status == RunStatus.FAILED
        assert state.error == "AI failed to determine scene count."
        client.generate_content.assert_not_awaited()

    def test_malformed_negotiation_reply_aborts_run(self):
        controller, client, renderer = _controller()
        # The client reports a badly shaped reply as "no text"
        client.generate_text.return_value = None
        state = _run(controller)
        assert state.status == RunStatus.FAILED
        renderer.on_error.assert_called_once_with("AI failed to determine scene count.")

    def test_unexpected_error_marks_run_failed(self):
        controller, client, renderer = _controller("2", [RuntimeError("boom")])

        state = _run(controller)

        assert state.status == RunStatus.FAILED
        assert state.error == "boom"
        assert controller.state is state
        assert not controller.running
        renderer.on_error.assert_called_once_with("boom")

    def test_unexpected_error_without_message_gets_generic_text(self):
        controller, client, renderer = _controller()
        client.generate_text.side_effect = KeyError()

        state = _run(controller)

        assert state.status == RunStatus.FAILED
        assert state.error

    def test_second_run_while_running_is_rejected(self):
        controller, client, _ = _controller("1", [_image_reply()])

        async def scenario():
            gate = asyncio.Event()

            async def slow_count(prompt):
                await gate.wait()
                return "1"

            client.generate_text.side_effect = slow_count
            first = asyncio.create_task(controller.start_run(SCRIPT, WATERCOLOR))
            await asyncio.sleep(0)
            assert controller.running
            with pytest.raises(RunInProgressError):
                await controller.start_run("Another script", WATERCOLOR)
            gate.set()
            return await first

        state = asyncio.run(scenario())
        assert state.status == RunStatus.COMPLETE
        assert not controller.running

    def test_new_run_replaces_state_and_clears_edit_target(self):
        controller, client, _ = _controller("1", [_image_reply(data="Zmlyc3Q="), _image_reply(data="c2Vjb25k")])
        first = _run(controller)
        controller.open_modification(0)
        assert controller.edit_target == 0

        second = _run(controller, script="A cat sleeps.")

        assert second is not first
        assert controller.state is second
        assert controller.edit_target is None
        assert second.storyboard[0].image.data == "c2Vjb25k"
        assert len(second.history) == 4


# ── Modification ─────────────────────────────────────────────────────────

def _finished_controller(scene_replies, **kwargs):
    controller, client, renderer = _controller(str(len(scene_replies)), scene_replies, **kwargs)
    _run(controller)
    return controller, client, renderer


class TestModification:
    def test_success_replaces_image_only(self):
        controller, client, renderer = _finished_controller([
            _image_reply("Original caption", data="b2xk"),
        ])
        history_before = list(controller.state.history)
        client.generate_content.side_effect = [_image_reply("Brand new caption", data="bmV3")]

        controller.open_modification(0)
        result = asyncio.run(controller.request_modification("Make it nighttime"))

        panel = controller.state.storyboard[0]
        assert result.success
        assert panel.image.data == "bmV3"
        assert panel.caption == "Original caption"
        assert panel.original_caption == "Original caption"
        assert controller.state.history == history_before
        renderer.on_panel_updated.assert_called_once_with(0, panel)

    def test_edit_request_is_isolated_single_turn(self):
        controller, client, _ = _finished_controller([_image_reply(data="b2xk"), _image_reply()])
        client.generate_content.side_effect = [_image_reply(data="bmV3")]

        asyncio.run(controller.request_modification("Make it rain", index=0))

        sent = client.generate_content.await_args.args[0]
        assert len(sent) == 1
        assert sent[0]["role"] == "user"
        text, image = sent[0]["parts"]
        assert "Make it rain" in text["text"]
        assert '"Watercolor"' in text["text"]
        assert image == {"inlineData": {"mimeType": "image/png", "data": "b2xk"}}

    def test_unset_target_is_noop(self):
        controller, client, _ = _finished_controller([_image_reply()])
        calls_before = client.generate_content.await_count

        assert asyncio.run(controller.request_modification("Make it rain")) is None
        assert client.generate_content.await_count == calls_before

    def test_out_of_range_index_is_noop(self):
        controller, client, _ = _finished_controller([_image_reply()])
        assert controller.open_modification(5) is None
        assert controller.edit_target is None
        assert asyncio.run(controller.request_modification("Make it rain", index=5)) is None
        assert asyncio.run(controller.request_modification("Make it rain", index=-1)) is None

    def test_no_storyboard_is_noop(self):
        controller, client, _ = _controller()
        assert asyncio.run(controller.request_modification("Make it rain", index=0)) is None
        client.generate_content.assert_not_awaited()

    def test_failed_panel_cannot_be_edited(self):
        controller, _, _ = _finished_controller([_refusal_reply()])
        assert controller.open_modification(0) is None
        assert asyncio.run(controller.request_modification("Make it rain", index=0)) is None

    def test_refused_edit_keeps_original_image(self):
        controller, client, renderer = _finished_controller([_image_reply(data="b2xk")])
        client.generate_content.side_effect = [_refusal_reply("Not allowed.")]

        result = asyncio.run(controller.request_modification("Make it gory", index=0))

        assert not result.success
        assert result.error == "Modification Failed: Not allowed."
        assert controller.state.storyboard[0].image.data == "b2xk"
        renderer.on_panel_updated.assert_not_called()

    def test_transport_failure_is_reported_inline(self):
        controller, client, _ = _finished_controller([_image_reply(data="b2xk"), _image_reply()])
        client.generate_content.side_effect = [GeminiTransportError("API request failed: 429", status=429)]

        result = asyncio.run(controller.request_modification("Make it rain", index=0))

        assert not result.success
        assert "429" in result.error
        assert not controller.state.storyboard[1].failed

    def test_empty_instruction_rejected(self):
        controller, _, _ = _finished_controller([_image_reply()])
        with pytest.raises(ValidationError):
            asyncio.run(controller.request_modification("  ", index=0))

    def test_direction_is_read_at_call_time(self):
        current = {"direction": CreativeDirection(style="Watercolor")}
        controller, client, _ = _finished_controller(
            [_image_reply()],
            direction_provider=lambda: current["direction"],
        )
        current["direction"] = CreativeDirection(style="Anime", character="a tall robot")
        client.generate_content.side_effect = [_image_reply(data="bmV3")]

        asyncio.run(controller.request_modification("Make it rain", index=0))

        text = client.generate_content.await_args.args[0][0]["parts"][0]["text"]
        assert '"Anime"' in text
        assert '"a tall robot"' in text
        assert "Watercolor" not in text

    def test_edits_to_same_panel_are_serialized(self):
        controller, client, _ = _finished_controller([_image_reply(data="djA=")])
        sent_bases = []

        async def edit_reply(contents, *args, **kwargs):
            sent_bases.append(contents[0]["parts"][1]["inlineData"]["data"])
            await asyncio.sleep(0)
            return _image_reply(data=f"djE{len(sent_bases)}")

        client.generate_content.side_effect = edit_reply

        async def scenario():
            return await asyncio.gather(
                controller.request_modification("Make it rain", index=0),
                controller.request_modification("Make it nighttime", index=0),
            )

        first, second = asyncio.run(scenario())

        assert first.success and second.success
        # The second edit starts from the first edit's output
        assert sent_bases == ["djA=", "djE1"]
        assert controller.state.storyboard[0].image.data == "djE2"

    def test_result_discarded_when_run_replaced_mid_edit(self):
        controller, client, _ = _finished_controller([_image_reply(data="b2xk")])

        async def scenario():
            gate = asyncio.Event()

            async def slow_edit(contents, *args, **kwargs):
                await gate.wait()
                return _image_reply(data="bmV3")

            client.generate_content.side_effect = slow_edit
            edit = asyncio.create_task(controller.request_modification("Make it rain", index=0))
            await asyncio.sleep(0)
            old_state = controller.state
            controller.state = None
            gate.set()
            return old_state, await edit

        old_state, result = asyncio.run(scenario())
        assert not result.success
        assert old_state.storyboard[0].image.data == "b2xk"


class TestSlideshowFromController:
    def test_slideshow_skips_failed_panels(self):
        controller, _, _ = _finished_controller([_image_reply("one"), _refusal_reply(), _image_reply("three")])
        slideshow = controller.slideshow(interval=0)
        assert [f.label for f in slideshow.frames] == ["SHOT 1", "SHOT 3"]
