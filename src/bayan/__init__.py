"""
The main entrypoint for the Bayan package.

Bayan is an Arabic-facing web application with a streaming chat assistant
that understands images and a poetry generator. The ``Bayan`` class is a Dash
app whose Flask server also hosts the proxy endpoints relaying requests to the
upstream model gateway.
"""

import os
from typing import Optional

import diskcache
from dash import Dash, DiskcacheManager

from . import client, config, layout, llm, store
from .proxy import register_proxy


class Bayan(Dash):
    """
    The chat and poetry application.

    The collaborators are injected, with concrete defaults so that
    ``Bayan().run()`` works out of the box.
    """

    def __init__(
        self,
        layout: Optional["layout.Layout"] = None,
        llm: Optional["llm.LLM"] = None,
        store: Optional["store.Store"] = None,
        client: Optional["client.ProxyClient"] = None,
        **kwargs,
    ) -> None:
        """
        Initialize the application.

        Parameters
        ----------
        layout : layout.Layout, optional
            Layout builder for the Dash component tree.
            Defaults to layout.Bootstrap().
        llm : llm.LLM, optional
            Upstream gateway used by the proxy endpoints. Defaults to
            llm.Gateway() when the gateway key is set, llm.Echo() otherwise.
        store : store.Store, optional
            Saved chat archive. Defaults to store.File() under the data dir.
        client : client.ProxyClient, optional
            HTTP client the UI uses to reach the proxy endpoints.
            Defaults to client.ProxyClient() on the configured service URL.
        **kwargs
            Additional arguments passed to the Dash constructor. Unless a
            ``background_callback_manager`` is given, streamed replies run in
            a DiskcacheManager backed by ``<data dir>/cache``.

        Examples
        --------
        >>> app = Bayan()

        >>> app = Bayan(llm=llm.Echo(), store=store.InMemory())
        """
        layout_module = globals()["layout"]
        llm_module = globals()["llm"]
        store_module = globals()["store"]
        client_module = globals()["client"]

        self.layout_builder = layout if layout is not None else layout_module.Bootstrap()

        if llm is not None:
            self.llm = llm
        elif os.environ.get(config.GATEWAY_KEY_ENV):
            self.llm = llm_module.Gateway()
        else:
            import warnings

            warnings.warn(
                f"Bayan is running with the offline Echo gateway because "
                f"{config.GATEWAY_KEY_ENV} is not set.",
                UserWarning,
            )
            self.llm = llm_module.Echo()

        if "external_stylesheets" not in kwargs:
            kwargs["external_stylesheets"] = []
        kwargs["external_stylesheets"].extend(
            self.layout_builder.get_external_stylesheets()
        )

        if "external_scripts" not in kwargs:
            kwargs["external_scripts"] = []
        kwargs["external_scripts"].extend(self.layout_builder.get_external_scripts())

        if "background_callback_manager" not in kwargs:
            kwargs["background_callback_manager"] = DiskcacheManager(
                diskcache.Cache(str(config.DATA_DIR / "cache"))
            )

        kwargs.setdefault("title", "بيان")
        super().__init__(**kwargs)

        self.store = store if store is not None else store_module.File()
        self.client = client if client is not None else client_module.ProxyClient()

        register_proxy(self.server, self.llm)
        self.layout = self.layout_builder.build_layout()
        self._register_callbacks()

    def _register_callbacks(self) -> None:
        """Registers all the callbacks that orchestrate the collaborators."""
        from .callbacks import register_callbacks

        self.callbacks = register_callbacks(self)
