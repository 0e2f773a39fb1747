"""Layout builders for the chat and poetry pages."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from dash import dcc, html
from dash.development.base_component import Component as DashComponent

from .models import USER_ROLE, ChatMessage, PoetryStyle, SavedChat

REQUIRED_IDS = {
    "url_location",
    "chat_page",
    "poetry_page",
    "messages_container",
    "input_textarea",
    "submit_button",
    "status_indicator",
    "image_upload",
    "image_previews",
    "conversation_state",
    "images_state",
    "new_conversation_button",
    "archive_toggle",
    "archive",
    "archive_list",
    "poetry_topic",
    "poetry_style",
    "poetry_button",
    "poetry_output",
    "poetry_card",
    "poetry_status",
    "notification_toast",
}

POETRY_STYLE_LABELS = {
    PoetryStyle.CLASSICAL: "شعر عمودي",
    PoetryStyle.FREE: "شعر حر",
    PoetryStyle.NABATI: "شعر نبطي",
}


class Layout(ABC):
    """Interface for building the Dash component tree."""

    @abstractmethod
    def build_layout(self) -> DashComponent:
        """Constructs the whole component tree; must carry ``REQUIRED_IDS``."""
        pass

    @abstractmethod
    def build_messages(self, messages: List[ChatMessage]) -> List[DashComponent]:
        """Renders the conversation."""
        pass

    @abstractmethod
    def build_archive(
        self, records: List[SavedChat], current_id: Optional[str] = None
    ) -> List[DashComponent]:
        """Renders the saved chat list."""
        pass

    def build_image_previews(self, images: List[str]) -> List[DashComponent]:
        return [
            html.Div(
                className="position-relative",
                children=[
                    html.Img(
                        src=image,
                        alt=f"صورة {index + 1}",
                        style={"height": "80px", "width": "80px", "objectFit": "cover"},
                        className="rounded border",
                    ),
                    html.Button(
                        "✕",
                        id={"type": "image-remove", "index": index},
                        n_clicks=0,
                        className="btn btn-danger btn-sm position-absolute top-0 start-0 rounded-circle",
                    ),
                ],
            )
            for index, image in enumerate(images)
        ]

    def get_external_stylesheets(self) -> List:
        return []

    def get_external_scripts(self) -> List:
        return []


class Bootstrap(Layout):
    """Right-to-left Bootstrap layout with Arabic copy."""

    def get_external_stylesheets(self) -> List:
        import dash_bootstrap_components as dbc

        return [dbc.themes.BOOTSTRAP, dbc.icons.BOOTSTRAP]

    def build_layout(self) -> DashComponent:
        return html.Div(
            dir="rtl",
            lang="ar",
            className="d-flex flex-column vh-100",
            children=[
                dcc.Location(id="url_location", refresh=False),
                dcc.Store(id="conversation_state", data={"chat_id": None, "messages": []}),
                dcc.Store(id="images_state", data=[]),
                self.build_navbar(),
                self.build_chat_page(),
                self.build_poetry_page(),
                self.build_toast(),
            ],
        )

    def build_navbar(self) -> DashComponent:
        import dash_bootstrap_components as dbc

        return dbc.NavbarSimple(
            brand="بيان",
            color="light",
            children=[
                dbc.NavItem(dbc.NavLink("المساعد الذكي", href="/")),
                dbc.NavItem(dbc.NavLink("مولّد الشعر", href="/poetry")),
            ],
        )

    def build_chat_page(self) -> DashComponent:
        import dash_bootstrap_components as dbc

        header = html.Div(
            className="d-flex justify-content-between align-items-center p-3 border-bottom",
            children=[
                html.Div(
                    [
                        html.H4("المساعد الذكي", className="m-0"),
                        html.Small(
                            "محادثة ذكية بالعربية مع دعم الصور", className="text-muted"
                        ),
                    ]
                ),
                html.Div(
                    className="d-flex gap-2",
                    children=[
                        dbc.Button(
                            [html.I(className="bi bi-plus ms-2"), "محادثة جديدة"],
                            id="new_conversation_button",
                            outline=True,
                            size="sm",
                        ),
                        dbc.Button(
                            [html.I(className="bi bi-archive ms-2"), "الأرشيف"],
                            id="archive_toggle",
                            outline=True,
                            size="sm",
                        ),
                    ],
                ),
            ],
        )
        archive = dbc.Offcanvas(
            id="archive",
            title="الأرشيف",
            placement="end",
            is_open=False,
            children=[dbc.ListGroup(id="archive_list", children=[])],
        )
        input_area = html.Div(
            className="p-3 border-top",
            children=[
                html.Div(id="image_previews", className="d-flex flex-wrap gap-2 mb-2"),
                dbc.InputGroup(
                    [
                        dcc.Upload(
                            id="image_upload",
                            accept="image/*",
                            multiple=True,
                            children=dbc.Button(html.I(className="bi bi-image"), outline=True),
                        ),
                        dbc.Textarea(
                            id="input_textarea",
                            placeholder="اكتب رسالتك هنا...",
                            style={"minHeight": "60px", "maxHeight": "200px"},
                        ),
                        dbc.Button(
                            html.I(className="bi bi-send"), id="submit_button", n_clicks=0
                        ),
                    ]
                ),
                html.Div(
                    id="status_indicator",
                    hidden=True,
                    className="text-muted small mt-1",
                    children=[dbc.Spinner(size="sm"), " جارٍ الرد..."],
                ),
            ],
        )
        return html.Div(
            id="chat_page",
            className="d-flex flex-column flex-grow-1",
            style={"overflow": "hidden"},
            children=[
                header,
                archive,
                html.Div(
                    id="messages_container",
                    className="flex-grow-1 p-3",
                    style={"overflowY": "auto"},
                    children=self.build_messages([]),
                ),
                input_area,
            ],
        )

    def build_poetry_page(self) -> DashComponent:
        import dash_bootstrap_components as dbc

        return html.Div(
            id="poetry_page",
            hidden=True,
            className="container py-4",
            style={"maxWidth": "48rem"},
            children=[
                html.H1("مولّد الشعر الذكي", className="text-center"),
                html.P(
                    "اكتب موضوعاً واترك الذكاء الاصطناعي يُبدع لك شعراً جميلاً",
                    className="text-center text-muted",
                ),
                dbc.Card(
                    dbc.CardBody(
                        [
                            dbc.Label("موضوع القصيدة"),
                            dbc.Textarea(
                                id="poetry_topic",
                                placeholder="مثال: الحب، الوطن، الطبيعة، الشوق...",
                                style={"minHeight": "100px"},
                            ),
                            dbc.Label("نوع الشعر", className="mt-3"),
                            dbc.Select(
                                id="poetry_style",
                                value=PoetryStyle.CLASSICAL.value,
                                options=[
                                    {"label": label, "value": style.value}
                                    for style, label in POETRY_STYLE_LABELS.items()
                                ],
                            ),
                            dbc.Button(
                                [html.I(className="bi bi-stars ms-2"), "إنشاء القصيدة"],
                                id="poetry_button",
                                className="w-100 mt-3",
                                n_clicks=0,
                            ),
                            html.Div(
                                id="poetry_status",
                                hidden=True,
                                className="text-muted small mt-2",
                                children=[dbc.Spinner(size="sm"), " جارٍ الإنشاء..."],
                            ),
                        ]
                    )
                ),
                dbc.Card(
                    id="poetry_card",
                    className="mt-4",
                    style={"display": "none"},
                    children=dbc.CardBody(
                        [
                            html.Div(
                                className="d-flex justify-content-between",
                                children=[
                                    html.H2("القصيدة", className="h4"),
                                    dcc.Clipboard(target_id="poetry_output", title="نسخ"),
                                ],
                            ),
                            html.Div(
                                id="poetry_output",
                                style={"whiteSpace": "pre-wrap"},
                                className="fs-5 font-serif",
                            ),
                        ]
                    ),
                ),
            ],
        )

    def build_toast(self) -> DashComponent:
        import dash_bootstrap_components as dbc

        return dbc.Toast(
            id="notification_toast",
            header="",
            is_open=False,
            dismissable=True,
            duration=4000,
            style={"position": "fixed", "top": 66, "left": 10, "width": 350, "zIndex": 2000},
        )

    def build_messages(self, messages: List[ChatMessage]) -> List[DashComponent]:
        if not messages:
            return [
                html.Div(
                    className="text-center my-5",
                    children=[
                        html.H2("مرحباً بك!"),
                        html.P(
                            "أنا مساعدك الذكي. يمكنني مساعدتك في أي شيء، وأستطيع أيضاً فهم وتحليل الصور!",
                            className="text-muted",
                        ),
                    ],
                )
            ]
        return [self.build_message(msg) for msg in messages]

    def build_message(self, message: ChatMessage) -> DashComponent:
        is_user = message.role == USER_ROLE
        style = {
            "padding": "12px",
            "borderRadius": "12px",
            "marginBottom": "12px",
            "maxWidth": "80%",
            "width": "fit-content",
            "whiteSpace": "pre-wrap",
        }
        # rtl: user turns sit on the left, assistant turns on the right
        if is_user:
            style["marginRight"] = "auto"
            style["backgroundColor"] = "#0d6efd"
            style["color"] = "#ffffff"
        else:
            style["marginLeft"] = "auto"
            style["backgroundColor"] = "#ffffff"
            style["border"] = "1px solid #eee"

        children = []
        if message.images:
            children.append(
                html.Div(
                    className="d-flex flex-wrap gap-2 mb-2",
                    children=[
                        html.Img(
                            src=image,
                            alt=f"صورة {index + 1}",
                            style={"maxWidth": "20rem"},
                            className="rounded border",
                        )
                        for index, image in enumerate(message.images)
                    ],
                )
            )
        children.append(html.Div(message.content))
        return html.Div(children, style=style, className=f"message-{message.role}")

    def build_archive(
        self, records: List[SavedChat], current_id: Optional[str] = None
    ) -> List[DashComponent]:
        import dash_bootstrap_components as dbc

        if not records:
            return [html.P("لا توجد محادثات محفوظة", className="text-muted text-center py-4")]

        items = []
        for record in records:
            saved_on = datetime.fromtimestamp(record.timestamp / 1000).strftime("%Y/%m/%d")
            items.append(
                dbc.ListGroupItem(
                    active=record.id == current_id,
                    className="d-flex justify-content-between align-items-start gap-2",
                    children=[
                        html.Div(
                            id={"type": "archive-item", "id": record.id},
                            n_clicks=0,
                            style={"cursor": "pointer", "minWidth": 0},
                            className="flex-grow-1",
                            children=[
                                html.Div(record.title, className="fw-medium text-truncate"),
                                html.Small(saved_on, className="text-muted"),
                            ],
                        ),
                        html.Button(
                            html.I(className="bi bi-trash"),
                            id={"type": "archive-delete", "id": record.id},
                            n_clicks=0,
                            className="btn btn-sm btn-link text-danger p-0",
                        ),
                    ],
                )
            )
        return items
