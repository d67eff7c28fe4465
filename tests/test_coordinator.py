"""Tests for the directory-add workflow and turn hooks"""

import asyncio
import json

import pytest

from trustgate.confirmation import ConfirmationOutcome, TrustChoice
from trustgate.coordinator import (
    UNTRUSTED_DIRECTORIES_MESSAGE,
    LifecycleCoordinator,
    MessageKind,
    TurnRequest,
)
from trustgate.hooks import CallableHookTransport, HookChannel
from trustgate.trust import TrustLevel
from trustgate.workspace import WorkspaceContext


class RecordingPresenter:
    def __init__(self, choice=None):
        self.choice = choice
        self.presented = []
        self.shown = asyncio.Event()

    async def present(self, confirmation):
        self.presented.append(confirmation)
        self.shown.set()
        if self.choice is not None:
            await confirmation.choose(self.choice)


class RecordingSink:
    def __init__(self):
        self.items = []

    def add_item(self, kind, text):
        self.items.append((kind, text))

    def texts(self, kind):
        return [text for k, text in self.items if k == kind]


class FakeBackend:
    def __init__(self, response="done"):
        self.response = response
        self.requests = []

    async def generate(self, request: TurnRequest) -> str:
        self.requests.append(request)
        return self.response


def gated(store_loader, presenter=None, sink=None, workspace=None, **kwargs):
    return LifecycleCoordinator(
        workspace or WorkspaceContext(),
        presenter=presenter,
        messages=sink,
        trust_gating_enabled=True,
        workspace_is_trusted=True,
        store_loader=store_loader,
        **kwargs,
    )


class TestAddWithoutGating:
    @pytest.mark.asyncio
    async def test_valid_paths_are_all_added(self, make_dirs, store_loader):
        paths = make_dirs("a", "b", "c")
        coordinator = LifecycleCoordinator(WorkspaceContext(), store_loader=store_loader)

        report = await coordinator.add_directories(paths)

        assert report.added == paths
        assert report.errors == []
        assert coordinator.workspace.get_directories() == paths

    @pytest.mark.asyncio
    async def test_untrusted_workspace_adds_outright(self, make_dirs, store_loader, write_rules):
        (a,) = make_dirs("a")
        write_rules({a: "DO_NOT_TRUST"})
        coordinator = LifecycleCoordinator(
            WorkspaceContext(), trust_gating_enabled=True, workspace_is_trusted=False, store_loader=store_loader
        )
        report = await coordinator.add_directories([a])
        assert report.added == [a]

    @pytest.mark.asyncio
    async def test_comma_separated_input(self, make_dirs, store_loader):
        a, b = make_dirs("a", "b")
        coordinator = LifecycleCoordinator(WorkspaceContext(), store_loader=store_loader)
        report = await coordinator.add_directories(f"{a}, {b},")
        assert report.added == [a, b]

    @pytest.mark.asyncio
    async def test_bad_path_does_not_stop_the_batch(self, make_dirs, store_loader, tmp_path):
        a, b = make_dirs("a", "b")
        missing = str(tmp_path / "missing")
        sink = RecordingSink()
        coordinator = LifecycleCoordinator(WorkspaceContext(), messages=sink, store_loader=store_loader)

        report = await coordinator.add_directories([a, missing, b])

        assert report.added == [a, b]
        assert len(report.errors) == 1
        assert report.errors[0].startswith(f"Error adding '{missing}'")
        assert sink.texts(MessageKind.ERROR) == report.errors

    @pytest.mark.asyncio
    async def test_already_present_paths_are_skipped_quietly(self, make_dirs, store_loader):
        a, b = make_dirs("a", "b")
        sink = RecordingSink()
        coordinator = LifecycleCoordinator(WorkspaceContext(a, [b]), messages=sink, store_loader=store_loader)

        report = await coordinator.add_directories([a, b + "/"])

        assert report.added == [] and report.errors == []
        assert coordinator.workspace.get_directories() == [a, b]
        assert sink.items == [
            (MessageKind.INFO, f"The following directories are already in the workspace:\n- {a}\n- {b}/")
        ]

    @pytest.mark.asyncio
    async def test_duplicates_in_input_are_processed_once(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        coordinator = LifecycleCoordinator(WorkspaceContext(), store_loader=store_loader)
        report = await coordinator.add_directories([a, a, a + "/."])
        assert report.added == [a]
        assert report.errors == []

    @pytest.mark.asyncio
    async def test_empty_input(self, store_loader):
        sink = RecordingSink()
        coordinator = LifecycleCoordinator(WorkspaceContext(), messages=sink, store_loader=store_loader)
        report = await coordinator.add_directories(" , ")
        assert report.added == [] and report.errors == []
        assert sink.texts(MessageKind.ERROR) == ["Please provide at least one path to add."]

    @pytest.mark.asyncio
    async def test_success_message(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        sink = RecordingSink()
        coordinator = LifecycleCoordinator(WorkspaceContext(), messages=sink, store_loader=store_loader)
        await coordinator.add_directories([a])
        assert sink.texts(MessageKind.INFO) == [f"Successfully added directories:\n- {a}"]


class TestAddWithGating:
    @pytest.mark.asyncio
    async def test_mixed_batch_opens_confirmation_for_unknown_only(self, make_dirs, store_loader, write_rules):
        trusted, untrusted, unknown = make_dirs("trusted", "untrusted", "unknown")
        write_rules({trusted: "TRUST_FOLDER", untrusted: "DO_NOT_TRUST"})
        presenter = RecordingPresenter()
        coordinator = gated(store_loader, presenter)

        task = asyncio.create_task(coordinator.add_directories([trusted, untrusted, unknown]))
        await presenter.shown.wait()

        (confirmation,) = presenter.presented
        assert coordinator.workspace.get_directories() == [trusted]
        assert confirmation.unknown_paths == [unknown]
        assert confirmation.trusted_added == [trusted]
        assert confirmation.errors == [UNTRUSTED_DIRECTORIES_MESSAGE.format(paths=untrusted)]
        assert coordinator.get_pending_confirmations() == [confirmation]

        await asyncio.sleep(0)
        assert not task.done()

        await confirmation.choose(TrustChoice.REJECT)
        report = await task

        assert report.added == [trusted]
        assert report.errors == [
            UNTRUSTED_DIRECTORIES_MESSAGE.format(paths=untrusted),
            f"The following directories were not added because they were not trusted:\n- {unknown}",
        ]
        assert coordinator.workspace.get_directories() == [trusted]
        assert coordinator.get_pending_confirmations() == []

    @pytest.mark.asyncio
    async def test_untrusted_message_text(self, make_dirs, store_loader, write_rules):
        (untrusted,) = make_dirs("untrusted")
        write_rules({untrusted: "DO_NOT_TRUST"})
        report = await gated(store_loader).add_directories([untrusted])
        assert report.errors == [
            "The following directories are explicitly untrusted and cannot be added to a trusted workspace:\n"
            f"- {untrusted}\n"
            "Please use the permissions command to modify their trust level."
        ]

    @pytest.mark.asyncio
    async def test_all_trusted_completes_without_prompt(self, make_dirs, store_loader, write_rules, tmp_path):
        a, b = make_dirs("root/a", "root/b")
        write_rules({str(tmp_path / "root"): "TRUST_FOLDER"})
        presenter = RecordingPresenter()

        report = await gated(store_loader, presenter).add_directories([a, b])

        assert report.added == [a, b]
        assert presenter.presented == []

    @pytest.mark.asyncio
    async def test_add_and_remember(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        coordinator = gated(store_loader, RecordingPresenter(TrustChoice.ADD_AND_REMEMBER))

        report = await coordinator.add_directories([a])

        assert report.added == [a]
        assert store_loader().get(a) == TrustLevel.TRUST_FOLDER
        assert coordinator.resolver.classify([a], True, True).trusted == [a]

    @pytest.mark.asyncio
    async def test_add_once_does_not_remember(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        report = await gated(store_loader, RecordingPresenter(TrustChoice.ADD_ONCE)).add_directories([a])
        assert report.added == [a]
        assert store_loader().rules == {}

    @pytest.mark.asyncio
    async def test_unreadable_store_warns_once_and_asks(self, make_dirs, store_loader, trust_file):
        a, b = make_dirs("a", "b")
        trust_file.parent.mkdir(parents=True)
        trust_file.write_text("{oops")
        presenter = RecordingPresenter(TrustChoice.CANCEL)

        report = await gated(store_loader, presenter).add_directories([a, b])

        assert presenter.presented[0].unknown_paths == [a, b]
        assert report.added == []
        assert len(report.errors) == 2
        assert report.errors[0].startswith("Could not read trusted folders")
        assert report.errors[1].startswith("Operation cancelled.")

    @pytest.mark.asyncio
    async def test_without_presenter_unknown_paths_are_not_added(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        coordinator = gated(store_loader)
        report = await coordinator.add_directories([a])
        assert report.added == []
        assert report.errors == [f"Operation cancelled. The following directories were not added:\n- {a}"]

    @pytest.mark.asyncio
    async def test_failing_presenter_cancels(self, make_dirs, store_loader):
        (a,) = make_dirs("a")

        class Broken:
            async def present(self, confirmation):
                raise RuntimeError("terminal gone")

        report = await gated(store_loader, Broken()).add_directories([a])
        assert report.added == []
        assert report.errors[0].startswith("Operation cancelled.")

    @pytest.mark.asyncio
    async def test_interrupting_the_flow_discards_late_choice(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        presenter = RecordingPresenter()
        coordinator = gated(store_loader, presenter)

        task = asyncio.create_task(coordinator.add_directories([a]))
        await presenter.shown.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        confirmation = presenter.presented[0]
        assert confirmation.outcome == ConfirmationOutcome.CANCELLED
        await confirmation.choose(TrustChoice.ADD_AND_REMEMBER)
        assert coordinator.workspace.get_directories() == []
        assert store_loader().rules == {}


class TestMemoryRefresh:
    @pytest.mark.asyncio
    async def test_refresher_receives_added_paths(self, make_dirs, store_loader):
        (a,) = make_dirs("a")
        refreshed = []

        async def refresh(paths):
            refreshed.extend(paths)

        coordinator = LifecycleCoordinator(WorkspaceContext(), store_loader=store_loader, memory_refresher=refresh)
        await coordinator.add_directories([a])
        assert refreshed == [a]

    @pytest.mark.asyncio
    async def test_refresh_failure_is_reported(self, make_dirs, store_loader):
        (a,) = make_dirs("a")

        async def refresh(paths):
            raise OSError("boom")

        coordinator = LifecycleCoordinator(WorkspaceContext(), store_loader=store_loader, memory_refresher=refresh)
        report = await coordinator.add_directories([a])
        assert report.added == [a]
        assert report.errors == ["Error refreshing memory: boom"]


class TestShowDirectories:
    def test_lists_directories(self, make_dirs):
        a, b = make_dirs("a", "b")
        sink = RecordingSink()
        coordinator = LifecycleCoordinator(WorkspaceContext(a, [b]), messages=sink)
        text = coordinator.show_directories()
        assert text == f"Current workspace directories:\n- {a}\n- {b}"
        assert sink.items == [(MessageKind.INFO, text)]


def channel_with(**hooks):
    channel = HookChannel()
    for event, func in hooks.items():
        channel.register(event.replace("_", "-"), CallableHookTransport(func))
    return channel


class TestTurnHooks:
    @pytest.mark.asyncio
    async def test_no_hooks(self):
        backend = FakeBackend("hello")
        result = await LifecycleCoordinator(WorkspaceContext()).run_turn("hi", backend)
        assert result.completed
        assert result.response == "hello"
        assert result.before.ran is False and result.after.ran is False
        assert backend.requests[0].to_prompt_text() == "hi"

    @pytest.mark.asyncio
    async def test_blocking_before_hook_skips_model(self):
        async def before(request):
            return {"decision": "block", "reason": "policy"}

        backend = FakeBackend()
        sink = RecordingSink()
        coordinator = LifecycleCoordinator(WorkspaceContext(), channel=channel_with(before_agent=before), messages=sink)

        result = await coordinator.run_turn("delete everything", backend)

        assert backend.requests == []
        assert result.blocked
        assert result.message == "policy"
        assert result.response is None and result.after is None
        assert sink.texts(MessageKind.ERROR) == ["policy"]

    @pytest.mark.asyncio
    async def test_additional_context_is_merged(self):
        async def before(request):
            return {"decision": "continue", "additionalContext": "Repository uses tabs."}

        backend = FakeBackend()
        coordinator = LifecycleCoordinator(WorkspaceContext(), channel=channel_with(before_agent=before))
        result = await coordinator.run_turn("format this", backend, correlation_id="turn-7")

        (request,) = backend.requests
        assert request.correlation_id == "turn-7"
        assert request.additional_context == ["Repository uses tabs."]
        assert request.to_prompt_text() == "format this\n\nRepository uses tabs."
        assert result.completed

    @pytest.mark.asyncio
    async def test_after_hook_requests_continuation(self):
        async def after(request):
            return {"decision": "block", "reason": "tests still failing"}

        coordinator = LifecycleCoordinator(WorkspaceContext(), channel=channel_with(after_agent=after))
        result = await coordinator.run_turn("fix tests", FakeBackend("patched"))

        assert result.response == "patched"
        assert result.continue_requested
        assert result.continuation_reason == "tests still failing"
        assert not result.completed

    @pytest.mark.asyncio
    async def test_payloads(self):
        payloads = {}

        async def before(request):
            payloads["before"] = (json.loads(request.payload), request.correlation_id)

        async def after(request):
            payloads["after"] = (json.loads(request.payload), request.correlation_id)

        coordinator = LifecycleCoordinator(
            WorkspaceContext(), channel=channel_with(before_agent=before, after_agent=after)
        )
        await coordinator.run_turn("question", FakeBackend("answer"), correlation_id="c42")

        assert payloads["before"] == ({"prompt": "question"}, "c42")
        assert payloads["after"] == ({"prompt": "question", "response": "answer"}, "c42")

    @pytest.mark.asyncio
    async def test_broken_hook_does_not_stop_turn(self):
        async def before(request):
            raise ConnectionError("policy server down")

        backend = FakeBackend()
        channel = channel_with(before_agent=before)
        result = await LifecycleCoordinator(WorkspaceContext(), channel=channel).run_turn("hi", backend)

        assert result.completed
        assert len(backend.requests) == 1
        assert len(channel.diagnostics) == 1

    @pytest.mark.asyncio
    async def test_concurrent_turns_do_not_interfere(self):
        async def before(request):
            await asyncio.sleep(0.01)
            return {"additionalContext": json.loads(request.payload)["prompt"].upper()}

        coordinator = LifecycleCoordinator(WorkspaceContext(), channel=channel_with(before_agent=before))
        backend = FakeBackend()
        await asyncio.gather(coordinator.run_turn("one", backend), coordinator.run_turn("two", backend))

        contexts = sorted(r.additional_context[0] for r in backend.requests)
        assert contexts == ["ONE", "TWO"]
        assert len({r.correlation_id for r in backend.requests}) == 2

    @pytest.mark.asyncio
    async def test_interrupting_a_turn_cancels_the_hook(self):
        started = asyncio.Event()

        async def before(request):
            started.set()
            await asyncio.sleep(10)

        backend = FakeBackend()
        coordinator = LifecycleCoordinator(WorkspaceContext(), channel=channel_with(before_agent=before))
        task = asyncio.create_task(coordinator.run_turn("hi", backend, correlation_id="t1"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert backend.requests == []
        assert not coordinator.channel.is_outstanding("t1")
