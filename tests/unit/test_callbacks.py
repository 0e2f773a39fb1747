"""
Tests for the Dash callbacks.

The decorated functions are returned by ``register_callbacks`` and called
directly. Callbacks that read ``callback_context`` run inside a context that
mimics the triggering click.
"""

import json
from contextvars import copy_context
from types import SimpleNamespace

import pytest
from bayan import Bayan
from bayan.callbacks import _clicked_id, _toast
from bayan.errors import ChatTransportError
from bayan.llm import Echo
from bayan.models import Notification, SavedChat
from bayan.session import IMAGE_TOO_LARGE
from bayan.store import InMemory
from conftest import FakeChatClient
from dash import no_update
from dash._callback_context import context_value
from dash._utils import AttributeDict


def run_triggered(func, component_id, value, *args):
    """Calls ``func`` as if ``component_id``'s n_clicks changed to ``value``."""
    if isinstance(component_id, dict):
        component_id = json.dumps(component_id, separators=(",", ":"), sort_keys=True)
    prop_id = f"{component_id}.n_clicks"

    def run():
        context_value.set(
            AttributeDict(triggered_inputs=[{"prop_id": prop_id, "value": value}])
        )
        return func(*args)

    return copy_context().run(run)


@pytest.fixture
def client():
    return FakeChatClient()


@pytest.fixture
def app(client):
    return Bayan(llm=Echo(), store=InMemory(), client=client)


@pytest.fixture
def callbacks(app):
    return app.callbacks


class TestHelpers:
    def test_toast_without_notifications(self):
        assert _toast([]) == (no_update, no_update, no_update, no_update)

    def test_toast_shows_latest(self):
        notifications = [
            Notification(title="أ", description="أول"),
            Notification(title="خطأ", description="ثاني", variant="destructive"),
        ]
        assert _toast(notifications) == ("خطأ", "ثاني", "danger", True)

    def test_toast_default_variant_is_success(self):
        toast = _toast([Notification(title="تم بنجاح", description="تم")])
        assert toast[2] == "success"

    def test_clicked_id(self):
        ctx = SimpleNamespace(
            triggered=[{"prop_id": "x.n_clicks", "value": 1}],
            triggered_id={"type": "archive-item", "id": "a"},
        )
        assert _clicked_id(ctx) == {"type": "archive-item", "id": "a"}

    @pytest.mark.parametrize("triggered", [[], [{"prop_id": "x.n_clicks", "value": 0}]])
    def test_clicked_id_ignores_rerender(self, triggered):
        ctx = SimpleNamespace(triggered=triggered, triggered_id="x")
        assert _clicked_id(ctx) is None


class TestRouting:
    @pytest.mark.parametrize(
        "pathname, expected",
        [
            ("/", (False, True)),
            (None, (False, True)),
            ("/poetry", (True, False)),
            ("/poetry/", (True, False)),
            ("/app/poetry", (True, False)),
            ("/poetryx", (False, True)),
        ],
    )
    def test_route_pages(self, callbacks, pathname, expected):
        assert callbacks["route_pages"](pathname) == expected


class TestSendMessage:
    def test_all_callbacks_returned(self, callbacks):
        assert set(callbacks) == {
            "route_pages",
            "send_message",
            "attach_images",
            "remove_image",
            "create_new_chat",
            "toggle_archive",
            "switch_conversation",
            "delete_conversation",
            "generate_poetry",
        }

    @pytest.mark.parametrize("n_clicks, text", [(None, "مرحبا"), (1, ""), (1, "   "), (1, None)])
    def test_nothing_to_send(self, callbacks, client, n_clicks, text):
        progress = []
        result = callbacks["send_message"](progress.append, n_clicks, text, None, [])

        assert result == [no_update] * 10
        assert client.sent == []
        assert progress == []

    def test_reply_is_rendered_while_streaming(self, app, callbacks, client):
        progress = []

        result = callbacks["send_message"](progress.append, 1, "مرحبا", None, [])

        rendered = [len(update[0]) for update in progress]
        assert rendered[0] == 1
        assert rendered[1:] == [2] * (len(rendered) - 1)
        assert [str(update[0][-1].children[-1].children) for update in progress[2:4]] == [
            "مرحباً",
            "مرحباً بك",
        ]

        messages, snapshot, text, images, previews, archive = result[:6]
        assert len(messages) == 2
        assert [m["content"] for m in snapshot["messages"]] == ["مرحبا", "مرحباً بك"]
        assert text == ""
        assert images == []
        assert previews == []
        assert len(archive) == 1
        assert result[6:] == (no_update, no_update, no_update, no_update)
        assert app.store.get(snapshot["chat_id"]) is not None

    def test_continues_snapshot_conversation(self, callbacks, client):
        snapshot = {
            "chat_id": "c1",
            "messages": [
                {"role": "user", "content": "أول"},
                {"role": "assistant", "content": "رد"},
            ],
        }

        result = callbacks["send_message"](lambda _: None, 1, "ثاني", snapshot, [])

        assert [m.content for m in client.sent[0]] == ["أول", "رد", "ثاني"]
        assert result[1]["chat_id"] == "c1"

    def test_images_only(self, callbacks, client, image_data_uri):
        callbacks["send_message"](lambda _: None, 1, "", None, [image_data_uri])

        assert client.sent[0][0].images == [image_data_uri]

    def test_failure_shows_toast(self, app, callbacks):
        app.client = FakeChatClient(error=ChatTransportError("فشل في الاتصال بالخادم"))

        result = callbacks["send_message"](lambda _: None, 1, "مرحبا", None, [])

        assert len(result[1]["messages"]) == 1
        assert result[6:] == ("خطأ", "فشل في الاتصال بالخادم", "danger", True)


class TestImages:
    def test_attach_images(self, callbacks, image_data_uri):
        images, previews, *toast = callbacks["attach_images"](
            [image_data_uri, image_data_uri], [], None
        )
        assert images == [image_data_uri, image_data_uri]
        assert len(previews) == 2
        assert toast == [no_update] * 4

    def test_attach_too_large(self, callbacks, image_data_uri):
        too_large = "data:image/png;base64," + "A" * (7 * 1024 * 1024)

        images, previews, *toast = callbacks["attach_images"](
            [too_large], [image_data_uri], None
        )

        assert images == [image_data_uri]
        assert toast[1] == IMAGE_TOO_LARGE

    def test_remove_image(self, callbacks, image_data_uri):
        other = "data:image/png;base64,AAAA"
        images, previews = run_triggered(
            callbacks["remove_image"],
            {"type": "image-remove", "index": 0},
            1,
            [1, None],
            [image_data_uri, other],
            None,
        )
        assert images == [other]
        assert len(previews) == 1

    def test_remove_image_ignores_rerender(self, callbacks, image_data_uri):
        result = run_triggered(
            callbacks["remove_image"],
            {"type": "image-remove", "index": 0},
            0,
            [0],
            [image_data_uri],
            None,
        )
        assert result == (no_update, no_update)


class TestArchive:
    @pytest.fixture
    def saved(self, app, sample_messages):
        record = SavedChat.from_messages(sample_messages, "saved")
        app.store.save_one(record)
        return record

    def test_new_chat(self, callbacks):
        messages, snapshot, is_open = callbacks["create_new_chat"](1)
        assert snapshot == {"chat_id": None, "messages": []}
        assert len(messages) == 1
        assert is_open is False
        assert callbacks["create_new_chat"](None) == (no_update, no_update, no_update)

    def test_toggle_archive(self, callbacks, saved):
        is_open, items = callbacks["toggle_archive"](1, False, None)
        assert is_open is True
        assert len(items) == 1

    def test_switch_conversation(self, callbacks, saved, sample_messages):
        messages, snapshot, is_open = run_triggered(
            callbacks["switch_conversation"],
            {"type": "archive-item", "id": "saved"},
            1,
            [1],
            None,
        )
        assert snapshot["chat_id"] == "saved"
        assert len(messages) == len(sample_messages)
        assert is_open is False

    def test_switch_to_missing_conversation(self, callbacks, saved):
        result = run_triggered(
            callbacks["switch_conversation"],
            {"type": "archive-item", "id": "missing"},
            1,
            [1],
            None,
        )
        assert result == (no_update, no_update, no_update)

    def test_rerendered_list_does_not_switch(self, callbacks, saved):
        result = run_triggered(
            callbacks["switch_conversation"],
            {"type": "archive-item", "id": "saved"},
            0,
            [0],
            None,
        )
        assert result == (no_update, no_update, no_update)

    def test_delete_current_conversation(self, app, callbacks, saved, sample_messages):
        snapshot = {
            "chat_id": "saved",
            "messages": [m.model_dump() for m in sample_messages],
        }
        messages, new_snapshot, items = run_triggered(
            callbacks["delete_conversation"],
            {"type": "archive-delete", "id": "saved"},
            1,
            [1],
            snapshot,
        )
        assert new_snapshot == {"chat_id": None, "messages": []}
        assert app.store.load_all() == []
        assert "لا توجد محادثات محفوظة" in str(items[0].children)


class TestGeneratePoetry:
    def test_success(self, callbacks, client):
        poetry, style, *toast = callbacks["generate_poetry"](1, "الوطن", "حر")

        assert poetry == "قصيدة"
        assert style == {"display": "block"}
        assert toast[2] == "success"
        assert client.poetry_requests == [("الوطن", "حر")]

    def test_blank_topic(self, callbacks, client):
        poetry, style, *toast = callbacks["generate_poetry"](1, "  ", "عمودي")

        assert poetry == ""
        assert style == {"display": "none"}
        assert toast[1] == "الرجاء إدخال موضوع الشعر"
        assert client.poetry_requests == []

    def test_not_clicked(self, callbacks):
        assert callbacks["generate_poetry"](None, "الوطن", "حر") == [no_update] * 6
