"""Flask application class carrying the service container."""

from typing import TYPE_CHECKING

from flask import Flask

if TYPE_CHECKING:
    from app.services.container import ServiceContainer


class App(Flask):
    """Flask application with a typed ``container`` attribute."""

    container: "ServiceContainer"
