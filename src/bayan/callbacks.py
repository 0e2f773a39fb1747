"""Callbacks wiring the layout to the chat and poetry sessions."""

from dash import ALL, Input, Output, State, callback_context, no_update

from .session import ChatSession, PoetrySession

TOAST_OUTPUTS = [
    Output("notification_toast", "header", allow_duplicate=True),
    Output("notification_toast", "children", allow_duplicate=True),
    Output("notification_toast", "icon", allow_duplicate=True),
    Output("notification_toast", "is_open", allow_duplicate=True),
]


def _toast(notifications):
    if not notifications:
        return no_update, no_update, no_update, no_update
    latest = notifications[-1]
    icon = "danger" if latest.variant == "destructive" else "success"
    return latest.title, latest.description, icon, True


def _clicked_id(ctx):
    """The triggering pattern id, ignoring re-renders that reset n_clicks."""
    if not ctx.triggered or not ctx.triggered[0]["value"]:
        return None
    return ctx.triggered_id


def register_callbacks(app):
    def chat_session(snapshot, images=None):
        return ChatSession.from_snapshot(app.client, app.store, snapshot, images)

    @app.callback(
        [Output("chat_page", "hidden"), Output("poetry_page", "hidden")],
        [Input("url_location", "pathname")],
    )
    def route_pages(pathname):
        on_poetry = (pathname or "").rstrip("/").endswith("/poetry")
        return on_poetry, not on_poetry

    @app.callback(
        [
            Output("messages_container", "children", allow_duplicate=True),
            Output("conversation_state", "data", allow_duplicate=True),
            Output("input_textarea", "value"),
            Output("images_state", "data", allow_duplicate=True),
            Output("image_previews", "children", allow_duplicate=True),
            Output("archive_list", "children", allow_duplicate=True),
        ]
        + TOAST_OUTPUTS,
        [Input("submit_button", "n_clicks")],
        [
            State("input_textarea", "value"),
            State("conversation_state", "data"),
            State("images_state", "data"),
        ],
        background=True,
        progress=[Output("messages_container", "children")],
        interval=300,
        running=[
            (Output("status_indicator", "hidden"), False, True),
            (Output("submit_button", "disabled"), True, False),
        ],
        prevent_initial_call=True,
    )
    def send_message(set_progress, n_clicks, user_input, snapshot, images):
        if not n_clicks:
            return [no_update] * 10
        session = chat_session(snapshot, images)
        if not (user_input or "").strip() and not session.pending_images:
            return [no_update] * 10

        # the reply grows in the browser while the stream is read
        session.subscribe(
            lambda messages: set_progress((app.layout_builder.build_messages(messages),))
        )
        session.send(user_input)

        return (
            app.layout_builder.build_messages(session.messages),
            session.snapshot(),
            "",
            session.pending_images,
            app.layout_builder.build_image_previews(session.pending_images),
            app.layout_builder.build_archive(session.archive, session.current_chat_id),
            *_toast(session.notifications),
        )

    @app.callback(
        [
            Output("images_state", "data", allow_duplicate=True),
            Output("image_previews", "children", allow_duplicate=True),
        ]
        + TOAST_OUTPUTS,
        [Input("image_upload", "contents")],
        [State("images_state", "data"), State("conversation_state", "data")],
        prevent_initial_call=True,
    )
    def attach_images(contents, images, snapshot):
        if not contents:
            return [no_update] * 6
        session = chat_session(snapshot, images)
        for data_uri in contents:
            session.attach_image(data_uri)
        return (
            session.pending_images,
            app.layout_builder.build_image_previews(session.pending_images),
            *_toast(session.notifications),
        )

    @app.callback(
        [
            Output("images_state", "data", allow_duplicate=True),
            Output("image_previews", "children", allow_duplicate=True),
        ],
        [Input({"type": "image-remove", "index": ALL}, "n_clicks")],
        [State("images_state", "data"), State("conversation_state", "data")],
        prevent_initial_call=True,
    )
    def remove_image(n_clicks, images, snapshot):
        clicked = _clicked_id(callback_context)
        if clicked is None:
            return no_update, no_update
        session = chat_session(snapshot, images)
        session.remove_image(clicked["index"])
        return (
            session.pending_images,
            app.layout_builder.build_image_previews(session.pending_images),
        )

    @app.callback(
        [
            Output("messages_container", "children", allow_duplicate=True),
            Output("conversation_state", "data", allow_duplicate=True),
            Output("archive", "is_open", allow_duplicate=True),
        ],
        [Input("new_conversation_button", "n_clicks")],
        prevent_initial_call=True,
    )
    def create_new_chat(n_clicks):
        if not n_clicks:
            return no_update, no_update, no_update
        session = chat_session(None)
        session.new_chat()
        return app.layout_builder.build_messages([]), session.snapshot(), False

    @app.callback(
        [
            Output("archive", "is_open", allow_duplicate=True),
            Output("archive_list", "children", allow_duplicate=True),
        ],
        [Input("archive_toggle", "n_clicks")],
        [State("archive", "is_open"), State("conversation_state", "data")],
        prevent_initial_call=True,
    )
    def toggle_archive(n_clicks, is_open, snapshot):
        if not n_clicks:
            return no_update, no_update
        session = chat_session(snapshot)
        return (
            not is_open,
            app.layout_builder.build_archive(session.archive, session.current_chat_id),
        )

    @app.callback(
        [
            Output("messages_container", "children", allow_duplicate=True),
            Output("conversation_state", "data", allow_duplicate=True),
            Output("archive", "is_open", allow_duplicate=True),
        ],
        [Input({"type": "archive-item", "id": ALL}, "n_clicks")],
        [State("conversation_state", "data")],
        prevent_initial_call=True,
    )
    def switch_conversation(n_clicks, snapshot):
        clicked = _clicked_id(callback_context)
        if clicked is None:
            return no_update, no_update, no_update
        session = chat_session(snapshot)
        if not session.load_chat(clicked["id"]):
            return no_update, no_update, no_update
        return (
            app.layout_builder.build_messages(session.messages),
            session.snapshot(),
            False,
        )

    @app.callback(
        [
            Output("messages_container", "children", allow_duplicate=True),
            Output("conversation_state", "data", allow_duplicate=True),
            Output("archive_list", "children", allow_duplicate=True),
        ],
        [Input({"type": "archive-delete", "id": ALL}, "n_clicks")],
        [State("conversation_state", "data")],
        prevent_initial_call=True,
    )
    def delete_conversation(n_clicks, snapshot):
        clicked = _clicked_id(callback_context)
        if clicked is None:
            return no_update, no_update, no_update
        session = chat_session(snapshot)
        session.delete_chat(clicked["id"])
        return (
            app.layout_builder.build_messages(session.messages),
            session.snapshot(),
            app.layout_builder.build_archive(session.archive, session.current_chat_id),
        )

    @app.callback(
        [
            Output("poetry_output", "children"),
            Output("poetry_card", "style"),
        ]
        + TOAST_OUTPUTS,
        [Input("poetry_button", "n_clicks")],
        [State("poetry_topic", "value"), State("poetry_style", "value")],
        running=[
            (Output("poetry_status", "hidden"), False, True),
            (Output("poetry_button", "disabled"), True, False),
        ],
        prevent_initial_call=True,
    )
    def generate_poetry(n_clicks, topic, style):
        if not n_clicks:
            return [no_update] * 6
        session = PoetrySession(app.client)
        poetry = session.generate(topic, style)
        card_style = {"display": "block"} if poetry else {"display": "none"}
        return poetry or "", card_style, *_toast(session.notifications)

    _register_clientside_callbacks(app)
    return {
        func.__name__: func
        for func in (
            route_pages,
            send_message,
            attach_images,
            remove_image,
            create_new_chat,
            toggle_archive,
            switch_conversation,
            delete_conversation,
            generate_poetry,
        )
    }


def _register_clientside_callbacks(app):
    app.clientside_callback(
        """
        function(pathname) {
            setTimeout(function() {
                const textarea = document.getElementById('input_textarea');
                const submitButton = document.getElementById('submit_button');

                if (textarea && submitButton && !window.enterListenerSetup) {
                    window.enterListenerSetup = true;
                    textarea.addEventListener('keydown', function(e) {
                        // Shift+Enter keeps the newline
                        if (e.key === 'Enter' && !e.shiftKey) {
                            e.preventDefault();
                            if (!submitButton.disabled) {
                                submitButton.click();
                            }
                        }
                    });
                }
            }, 100);

            return window.dash_clientside.no_update;
        }
        """,
        Output("submit_button", "n_clicks", allow_duplicate=True),
        [Input("url_location", "pathname")],
        prevent_initial_call="initial_duplicate",
    )

    # Auto-scroll to bottom
    app.clientside_callback(
        """
        function(messages_content) {
            if (messages_content && messages_content.length > 0) {
                setTimeout(function() {
                    const messagesContainer = document.getElementById('messages_container');
                    if (messagesContainer) {
                        messagesContainer.scrollTop = messagesContainer.scrollHeight;
                    }
                }, 100);
            }
            return window.dash_clientside.no_update;
        }
        """,
        Output("messages_container", "data-scroll-trigger", allow_duplicate=True),
        [Input("messages_container", "children")],
        prevent_initial_call=True,
    )
